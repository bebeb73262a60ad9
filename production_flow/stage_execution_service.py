"""
Stage Execution Service
Drives an order through its stage sequence: initialize, start, complete, hold, resume
"""
import logging

from django.db import transaction
from django.utils import timezone

from production_flow.exceptions import (
    AlreadyInitialized,
    FlowNotInitialized,
    FlowValidationError,
    InvalidTransition,
    OrderNotApproved,
    OrderNotFound,
    PreviousStageIncomplete,
    StageAlreadyActive,
    StageNotFound,
)
from production_flow.models import ProductionOrder, ProductionStage, StageHoldLog
from production_flow.models.production_order import DONE_STAGE_STATUSES
from production_flow.template_registry import StageTemplateRegistry
from production_flow.validation import parse_quantity
from utils.enums import (
    ApprovalStatusChoices,
    FlowStatusChoices,
    HoldReasonChoices,
    QualityGradeChoices,
    StageStatusChoices,
)

logger = logging.getLogger(__name__)

ACTIVE_STAGE_STATUSES = (StageStatusChoices.IN_PROGRESS, StageStatusChoices.HELD)


class StageExecutionService:
    """
    Per-order stage state machine

    Every mutation locks the order row for the length of its transaction, so
    operations on one order are serialized while different orders never contend.
    """

    def __init__(self, ledger_service=None, registry=None):
        if ledger_service is None:
            from longation.ledger_service import LongationLedgerService
            ledger_service = LongationLedgerService()
        self.ledger = ledger_service
        self.registry = registry or StageTemplateRegistry()

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize_flow(self, order_id, actor, company_id=None):
        """
        Materialize the order's stages from its product template

        The stages are a frozen copy: later template edits never touch them.
        """
        with transaction.atomic():
            order = self._lock_order(order_id, company_id)

            if order.approval_status != ApprovalStatusChoices.APPROVED:
                raise OrderNotApproved(
                    f"Order {order.order_number} is {order.approval_status}; only approved orders can start production"
                )
            if order.is_flow_initialized or order.stages.exists():
                raise AlreadyInitialized(f"Production flow for order {order.order_number} is already initialized")

            definitions = self.registry.resolve(order.product_type)

            stages = []
            for number, definition in enumerate(definitions, start=1):
                stages.append(ProductionStage(
                    order=order,
                    stage_number=number,
                    stage_type=definition.stage_type,
                    stage_name=definition.stage_name,
                    quality_check_required=definition.quality_check_required,
                    planned_duration_minutes=definition.planned_duration_minutes,
                    status=StageStatusChoices.PENDING,
                    planned_quantity=order.order_quantity if number == 1 else 0,
                ))
            ProductionStage.objects.bulk_create(stages)

            order.flow_initialized_at = timezone.now()
            order.flow_initialized_by = actor
            order.refresh_flow_status()
            order.save()

            logger.info(
                f'Initialized flow for order {order.order_number}: {len(stages)} stages '
                f'from {order.product_type} template by {actor}'
            )

        return self.get_flow_status(order.id, company_id)

    # ------------------------------------------------------------------
    # Stage transitions
    # ------------------------------------------------------------------

    def start_stage(self, order_id, stage_number, actor, company_id=None):
        with transaction.atomic():
            order = self._lock_order(order_id, company_id)
            stages = self._load_stages(order)
            stage = self._find_stage(order, stages, stage_number)

            if stage.status != StageStatusChoices.PENDING:
                raise InvalidTransition(
                    f"Stage {stage.stage_number} ({stage.display_name}) is {stage.status}; only pending stages can be started"
                )

            if stage.stage_number > 1:
                previous = stages[stage.stage_number - 2]
                if previous.status not in DONE_STAGE_STATUSES:
                    raise PreviousStageIncomplete(
                        f"Stage {previous.stage_number} ({previous.display_name}) must be completed "
                        f"before starting stage {stage.stage_number}"
                    )

            active = [s for s in stages if s.status in ACTIVE_STAGE_STATUSES]
            if active:
                raise StageAlreadyActive(
                    f"Stage {active[0].stage_number} ({active[0].display_name}) of order "
                    f"{order.order_number} is already {active[0].status}"
                )

            now = timezone.now()
            stage.status = StageStatusChoices.IN_PROGRESS
            stage.started_at = now
            stage.started_by = actor
            stage.save()

            if order.actual_start_date is None:
                order.actual_start_date = now
            self._save_flow_status(order)

            logger.info(f'Order {order.order_number}: stage {stage.stage_number} ({stage.stage_type}) started by {actor}')
            return stage

    def complete_stage(self, order_id, stage_number, data, actor, company_id=None):
        """
        Record stage output and close the stage

        A positive byproduct_quantity appends one longation stock entry in the
        same transaction. Completing the last stage completes the order.
        """
        actual_quantity = parse_quantity(data.get('actual_quantity'), 'actual_quantity', required=True)
        defect_quantity = parse_quantity(data.get('defect_quantity'), 'defect_quantity')
        byproduct_quantity = parse_quantity(data.get('byproduct_quantity'), 'byproduct_quantity')

        quality_grade = data.get('quality_grade')
        if quality_grade not in QualityGradeChoices.values:
            raise FlowValidationError(
                f"quality_grade must be one of {', '.join(QualityGradeChoices.values)}"
            )

        images = data.get('images') or []
        if not isinstance(images, (list, tuple)):
            raise FlowValidationError("images must be a list")

        with transaction.atomic():
            order = self._lock_order(order_id, company_id)
            stages = self._load_stages(order)
            stage = self._find_stage(order, stages, stage_number)

            if stage.status != StageStatusChoices.IN_PROGRESS:
                raise InvalidTransition(
                    f"Stage {stage.stage_number} ({stage.display_name}) is {stage.status}; only in-progress stages can be completed"
                )

            now = timezone.now()
            stage.status = StageStatusChoices.COMPLETED
            stage.completed_at = now
            stage.completed_by = actor
            stage.actual_quantity = actual_quantity
            stage.defect_quantity = defect_quantity
            stage.byproduct_quantity = byproduct_quantity
            stage.quality_grade = quality_grade
            stage.quality_notes = data.get('quality_notes') or ''
            stage.images = list(images)
            stage.notes = data.get('notes') or ''
            stage.save()

            order.rejected_quantity += defect_quantity

            next_stage = stages[stage.stage_number] if stage.stage_number < len(stages) else None
            if next_stage is not None:
                next_stage.planned_quantity = actual_quantity
                next_stage.save(update_fields=['planned_quantity', 'updated_at'])
            else:
                order.completed_quantity = actual_quantity
                order.actual_end_date = now

            if byproduct_quantity > 0:
                self.ledger.append_entry(order, stage, byproduct_quantity, actor=actor)

            self._save_flow_status(order)

            logger.info(
                f'Order {order.order_number}: stage {stage.stage_number} ({stage.stage_type}) completed by {actor} '
                f'- actual {actual_quantity}, defect {defect_quantity}, byproduct {byproduct_quantity}, grade {quality_grade}'
            )
            if order.flow_status == FlowStatusChoices.COMPLETED:
                logger.info(f'Order {order.order_number}: production flow completed')
            return stage

    def hold_stage(self, order_id, stage_number, reason, actor, company_id=None,
                   reason_code=HoldReasonChoices.OTHERS):
        reason = (reason or '').strip()
        if not reason:
            raise FlowValidationError("A hold reason is required")
        if reason_code not in HoldReasonChoices.values:
            raise FlowValidationError(
                f"reason_code must be one of {', '.join(HoldReasonChoices.values)}"
            )

        with transaction.atomic():
            order = self._lock_order(order_id, company_id)
            stage = self._find_stage(order, self._load_stages(order), stage_number)

            if stage.status != StageStatusChoices.IN_PROGRESS:
                raise InvalidTransition(
                    f"Stage {stage.stage_number} ({stage.display_name}) is {stage.status}; only an active stage can be held"
                )

            now = timezone.now()
            stage.status = StageStatusChoices.HELD
            stage.hold_reason = reason
            stage.held_at = now
            stage.held_by = actor
            stage.save()

            StageHoldLog.objects.create(
                stage=stage,
                order=order,
                reason_code=reason_code,
                reason=reason,
                held_at=now,
                held_by=actor,
            )

            self._save_flow_status(order)

            logger.info(
                f'Order {order.order_number}: stage {stage.stage_number} ({stage.stage_type}) held by {actor} '
                f'- {reason_code}: {reason}'
            )
            return stage

    def resume_stage(self, order_id, stage_number, actor, company_id=None, notes=''):
        with transaction.atomic():
            order = self._lock_order(order_id, company_id)
            stage = self._find_stage(order, self._load_stages(order), stage_number)

            if stage.status != StageStatusChoices.HELD:
                raise InvalidTransition(
                    f"Stage {stage.stage_number} ({stage.display_name}) is {stage.status}; only a held stage can be resumed"
                )

            now = timezone.now()
            held_for = now - stage.held_at
            stage.status = StageStatusChoices.IN_PROGRESS
            stage.resumed_at = now
            stage.resumed_by = actor
            stage.held_duration = stage.held_duration + held_for
            stage.save()

            hold_log = stage.hold_logs.filter(is_resumed=False).order_by('-held_at').first()
            if hold_log:
                hold_log.close(actor, now, notes)

            self._save_flow_status(order)

            logger.info(
                f'Order {order.order_number}: stage {stage.stage_number} ({stage.stage_type}) resumed by {actor} '
                f'after {int(held_for.total_seconds() / 60)} min'
            )
            return stage

    def skip_stage(self, order_id, stage_number, actor, company_id=None, reason=''):
        """
        Mark the next pending stage as not needed for this order

        Follows the same sequencing as start_stage. The stage's planned quantity
        passes unchanged to the following stage.
        """
        with transaction.atomic():
            order = self._lock_order(order_id, company_id)
            stages = self._load_stages(order)
            stage = self._find_stage(order, stages, stage_number)

            if stage.status != StageStatusChoices.PENDING:
                raise InvalidTransition(
                    f"Stage {stage.stage_number} ({stage.display_name}) is {stage.status}; only pending stages can be skipped"
                )
            if stage.stage_number > 1 and stages[stage.stage_number - 2].status not in DONE_STAGE_STATUSES:
                raise PreviousStageIncomplete(
                    f"Stage {stage.stage_number - 1} must be completed before stage {stage.stage_number} is skipped"
                )
            active = [s for s in stages if s.status in ACTIVE_STAGE_STATUSES]
            if active:
                raise StageAlreadyActive(
                    f"Stage {active[0].stage_number} ({active[0].display_name}) of order "
                    f"{order.order_number} is already {active[0].status}"
                )

            stage.status = StageStatusChoices.SKIPPED
            if reason:
                stage.notes = reason
            stage.save()

            if stage.stage_number < len(stages):
                next_stage = stages[stage.stage_number]
                next_stage.planned_quantity = stage.planned_quantity
                next_stage.save(update_fields=['planned_quantity', 'updated_at'])
            else:
                order.completed_quantity = stage.planned_quantity
                order.actual_end_date = timezone.now()

            self._save_flow_status(order)

            logger.info(f'Order {order.order_number}: stage {stage.stage_number} ({stage.stage_type}) skipped by {actor}')
            return stage

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_flow_status(self, order_id, company_id=None):
        """Snapshot of the order and all of its stages"""
        order = self._get_order(ProductionOrder.objects.all(), order_id, company_id)
        stages = self._load_stages(order)

        total = len(stages)
        completed = sum(1 for s in stages if s.status in DONE_STAGE_STATUSES)
        current = next((s for s in stages if s.status in ACTIVE_STAGE_STATUSES), None)
        upcoming = next((s for s in stages if s.status == StageStatusChoices.PENDING), None)

        return {
            'order': {
                'id': order.id,
                'order_number': order.order_number,
                'company_id': order.company_id,
                'product_type': order.product_type,
                'lot_number': order.lot_number,
                'party_name': order.party_name,
                'order_quantity': float(order.order_quantity),
                'completed_quantity': float(order.completed_quantity),
                'rejected_quantity': float(order.rejected_quantity),
                'unit': order.unit,
                'priority': order.priority,
                'approval_status': order.approval_status,
                'planned_end_date': order.planned_end_date,
                'actual_start_date': order.actual_start_date,
                'actual_end_date': order.actual_end_date,
                'is_delayed': order.is_delayed,
            },
            'flow_status': order.flow_status,
            'is_initialized': order.is_flow_initialized,
            'flow_initialized_at': order.flow_initialized_at,
            'total_stages': total,
            'completed_stages': completed,
            'percent_complete': round(100 * completed / total) if total else 0,
            'current_stage': self._stage_snapshot(current) if current else None,
            'next_stage': self._stage_snapshot(upcoming) if upcoming else None,
            'stages': [self._stage_snapshot(s) for s in stages],
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_order(self, queryset, order_id, company_id):
        if company_id is not None:
            queryset = queryset.filter(company_id=company_id)
        try:
            return queryset.get(pk=order_id)
        except (ProductionOrder.DoesNotExist, ValueError):
            raise OrderNotFound(f"Production order {order_id} not found")

    def _lock_order(self, order_id, company_id):
        return self._get_order(ProductionOrder.objects.select_for_update(), order_id, company_id)

    def _load_stages(self, order):
        return list(order.stages.select_related('started_by', 'completed_by').order_by('stage_number'))

    def _find_stage(self, order, stages, stage_number):
        if not order.is_flow_initialized or not stages:
            raise FlowNotInitialized(f"Production flow for order {order.order_number} has not been initialized")
        try:
            number = int(stage_number)
        except (TypeError, ValueError):
            raise StageNotFound(f"Stage {stage_number} not found")
        if number < 1 or number > len(stages):
            raise StageNotFound(f"Order {order.order_number} has no stage {stage_number}")
        return stages[number - 1]

    def _save_flow_status(self, order):
        previous = order.flow_status
        order.refresh_flow_status()
        order.save()
        if previous != order.flow_status:
            logger.info(f'Order {order.order_number}: flow status {previous} -> {order.flow_status}')

    def _stage_snapshot(self, stage):
        return {
            'id': stage.id,
            'stage_number': stage.stage_number,
            'stage_type': stage.stage_type,
            'stage_name': stage.display_name,
            'status': stage.status,
            'quality_check_required': stage.quality_check_required,
            'planned_duration_minutes': stage.planned_duration_minutes,
            'planned_quantity': float(stage.planned_quantity),
            'actual_quantity': float(stage.actual_quantity) if stage.actual_quantity is not None else None,
            'defect_quantity': float(stage.defect_quantity),
            'byproduct_quantity': float(stage.byproduct_quantity),
            'quality_grade': stage.quality_grade or None,
            'quality_notes': stage.quality_notes,
            'images': stage.images,
            'notes': stage.notes,
            'started_at': stage.started_at,
            'started_by': stage.started_by.get_username() if stage.started_by else None,
            'completed_at': stage.completed_at,
            'completed_by': stage.completed_by.get_username() if stage.completed_by else None,
            'hold_reason': stage.hold_reason,
            'held_at': stage.held_at,
            'resumed_at': stage.resumed_at,
            'held_minutes': stage.held_minutes,
            'actual_duration_minutes': stage.actual_duration_minutes,
            'is_overdue': stage.is_overdue,
        }
