"""
Longation Ledger Service
Appends byproduct stock from stage completions and manages its allocations
"""
import logging

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from longation.models import LongationStockEntry, LongationAllocation
from production_flow.exceptions import (
    AllocationNotFound,
    FlowValidationError,
    InsufficientStock,
    InvalidTransition,
    LedgerEntryNotFound,
)
from production_flow.validation import parse_quantity
from utils.enums import AllocationStatusChoices
from utils.sequences import DocumentSequenceGenerator

logger = logging.getLogger(__name__)

ENTRY_PREFIX = 'LS'
ALLOCATION_PREFIX = 'LA'


class LongationLedgerService:
    """
    Shared longation stock ledger

    Availability only changes through single conditional UPDATE statements,
    so concurrent allocations against one entry can never oversubscribe it.
    """

    def __init__(self, sequence_generator=None):
        self.sequences = sequence_generator or DocumentSequenceGenerator()

    def append_entry(self, order, stage, quantity, actor=None, reason=''):
        """
        Record byproduct stock for a stage completion
        Called by StageExecutionService inside its completion transaction
        """
        quantity = parse_quantity(quantity, 'byproduct_quantity', required=True, positive=True)

        with transaction.atomic():
            entry = LongationStockEntry.objects.create(
                entry_number=self.sequences.next_number(order.company_id, ENTRY_PREFIX),
                company_id=order.company_id,
                source_order=order,
                source_stage_number=stage.stage_number,
                source_module=stage.stage_type,
                lot_number=order.lot_number,
                party_name=order.party_name,
                quantity=quantity,
                unit=order.unit,
                available_quantity=quantity,
                reason=reason or f"{stage.display_name} shrinkage",
                created_by=actor,
            )

        logger.info(
            f'Longation stock {entry.entry_number} created: {quantity} {entry.unit} '
            f'from order {order.order_number} stage {stage.stage_number} ({stage.stage_type})'
        )
        return entry

    def allocate(self, entry_id, consumer_order_ref, quantity, actor=None, company_id=None, notes=''):
        """
        Reserve stock from an entry for a consuming order

        Raises InsufficientStock when the entry no longer has the quantity available;
        the caller should re-read availability and retry.
        """
        quantity = parse_quantity(quantity, 'quantity', required=True, positive=True)
        if not consumer_order_ref:
            raise FlowValidationError("consumer_order_ref is required")

        with transaction.atomic():
            entry = self._get_entry(entry_id, company_id)

            updated = LongationStockEntry.objects.filter(
                pk=entry.pk,
                available_quantity__gte=quantity
            ).update(
                available_quantity=F('available_quantity') - quantity,
                updated_at=timezone.now()
            )

            if not updated:
                entry.refresh_from_db(fields=['available_quantity'])
                logger.warning(
                    f'Allocation of {quantity} from {entry.entry_number} rejected: '
                    f'only {entry.available_quantity} available'
                )
                raise InsufficientStock(
                    f"Insufficient longation stock in {entry.entry_number}. "
                    f"Requested: {quantity}, Available: {entry.available_quantity}"
                )

            allocation = LongationAllocation.objects.create(
                allocation_number=self.sequences.next_number(entry.company_id, ALLOCATION_PREFIX),
                entry=entry,
                company_id=entry.company_id,
                consumer_order_ref=str(consumer_order_ref),
                quantity=quantity,
                status=AllocationStatusChoices.ALLOCATED,
                allocated_by=actor,
                notes=notes,
            )

        logger.info(
            f'Allocated {quantity} from {entry.entry_number} to order {consumer_order_ref} '
            f'({allocation.allocation_number})'
        )
        return allocation

    def use(self, allocation_id, actor=None, company_id=None):
        """Mark allocated stock as physically consumed"""
        with transaction.atomic():
            allocation = self._get_allocation(allocation_id, company_id)
            now = timezone.now()

            updated = LongationAllocation.objects.filter(
                pk=allocation.pk,
                status=AllocationStatusChoices.ALLOCATED
            ).update(
                status=AllocationStatusChoices.USED,
                used_by=actor,
                used_at=now,
                updated_at=now
            )
            if not updated:
                allocation.refresh_from_db(fields=['status'])
                raise InvalidTransition(
                    f"Allocation {allocation.allocation_number} is {allocation.status}; "
                    f"only allocated stock can be used"
                )

            allocation.refresh_from_db()

        logger.info(f'Allocation {allocation.allocation_number} marked used')
        return allocation

    def cancel_allocation(self, allocation_id, actor=None, company_id=None, reason=''):
        """Cancel an allocation and return its quantity to the entry"""
        with transaction.atomic():
            allocation = self._get_allocation(allocation_id, company_id)
            now = timezone.now()

            updated = LongationAllocation.objects.filter(
                pk=allocation.pk,
                status=AllocationStatusChoices.ALLOCATED
            ).update(
                status=AllocationStatusChoices.CANCELLED,
                cancelled_by=actor,
                cancelled_at=now,
                cancel_reason=reason,
                updated_at=now
            )
            if not updated:
                allocation.refresh_from_db(fields=['status'])
                raise InvalidTransition(
                    f"Allocation {allocation.allocation_number} is {allocation.status}; "
                    f"only allocated stock can be cancelled"
                )

            LongationStockEntry.objects.filter(pk=allocation.entry_id).update(
                available_quantity=F('available_quantity') + allocation.quantity,
                updated_at=now
            )
            allocation.refresh_from_db()

        logger.info(
            f'Allocation {allocation.allocation_number} cancelled, '
            f'{allocation.quantity} returned to {allocation.entry.entry_number}'
        )
        return allocation

    def browse(self, company_id=None, source_module=None, status=None, lot_number=None, source_order=None):
        """Ledger entries for stock-consumption screens"""
        queryset = LongationStockEntry.objects.for_company(company_id).select_related('source_order')
        if source_module:
            queryset = queryset.filter(source_module=source_module)
        if status:
            queryset = queryset.with_availability(status)
        if lot_number:
            queryset = queryset.filter(lot_number=lot_number)
        if source_order:
            queryset = queryset.filter(source_order_id=source_order)
        return queryset

    def totals(self, company_id=None):
        """Aggregate ledger position, overall and per source module"""
        entries = LongationStockEntry.objects.for_company(company_id)
        allocations = LongationAllocation.objects.all()
        if company_id is not None:
            allocations = allocations.filter(company_id=company_id)

        entry_totals = entries.aggregate(
            total=Sum('quantity'),
            available=Sum('available_quantity')
        )
        allocated = allocations.filter(
            status=AllocationStatusChoices.ALLOCATED
        ).aggregate(total=Sum('quantity'))['total']
        used = allocations.filter(
            status=AllocationStatusChoices.USED
        ).aggregate(total=Sum('quantity'))['total']

        by_module = {}
        for row in entries.values('source_module').annotate(
            total=Sum('quantity'), available=Sum('available_quantity')
        ).order_by('source_module'):
            by_module[row['source_module']] = {
                'total_quantity': float(row['total'] or 0),
                'available_quantity': float(row['available'] or 0),
            }

        return {
            'entry_count': entries.count(),
            'total_quantity': float(entry_totals['total'] or 0),
            'available_quantity': float(entry_totals['available'] or 0),
            'allocated_quantity': float(allocated or 0),
            'used_quantity': float(used or 0),
            'by_source_module': by_module,
        }

    def check_conservation(self, entry):
        entry.refresh_from_db(fields=['available_quantity'])
        return entry.check_conservation()

    def _get_entry(self, entry_id, company_id):
        try:
            return LongationStockEntry.objects.for_company(company_id).get(pk=entry_id)
        except (LongationStockEntry.DoesNotExist, ValueError):
            raise LedgerEntryNotFound(f"Longation stock entry {entry_id} not found")

    def _get_allocation(self, allocation_id, company_id):
        queryset = LongationAllocation.objects.select_related('entry')
        if company_id is not None:
            queryset = queryset.filter(company_id=company_id)
        try:
            return queryset.get(pk=allocation_id)
        except (LongationAllocation.DoesNotExist, ValueError):
            raise AllocationNotFound(f"Longation allocation {allocation_id} not found")
