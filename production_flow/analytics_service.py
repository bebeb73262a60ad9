"""
Flow Analytics Service
Read-only dashboard, stage summary and period analytics over stage and ledger history
"""
import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import Count, Sum
from django.utils import timezone
from django.utils.dateparse import parse_date

from longation.models import LongationStockEntry
from production_flow.exceptions import FlowValidationError
from production_flow.models import ProductionOrder, ProductionStage, StageHoldLog
from utils.enums import (
    AnalyticsPeriodChoices,
    FlowStatusChoices,
    QualityGradeChoices,
    StageStatusChoices,
)

logger = logging.getLogger(__name__)

DEFAULT_PERIOD_DAYS = {
    AnalyticsPeriodChoices.SEVEN_DAYS.value: 7,
    AnalyticsPeriodChoices.THIRTY_DAYS.value: 30,
    AnalyticsPeriodChoices.NINETY_DAYS.value: 90,
    AnalyticsPeriodChoices.ONE_YEAR.value: 365,
}
DEFAULT_RECENT_ACTIVITY_LIMIT = 10
BOTTLENECK_LIMIT = 5


def _flow_settings():
    return getattr(settings, 'PRODUCTION_FLOW_SETTINGS', {})


def _as_float(value):
    return float(value or 0)


def _percentage(part, whole):
    if not whole:
        return 0.0
    return round(float(part) * 100 / float(whole), 2)


def _average(values):
    values = [v for v in values if v is not None]
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def _parse_filter_date(value, field_name):
    if value in (None, ''):
        return None
    if isinstance(value, date):
        return value
    parsed = parse_date(str(value))
    if parsed is None:
        raise FlowValidationError(f"{field_name} must be a date in YYYY-MM-DD format")
    return parsed


class FlowAnalyticsService:
    """
    Projection over orders, stages, hold logs and the longation ledger
    Never mutates anything
    """

    def __init__(self, ledger_service=None):
        if ledger_service is None:
            from longation.ledger_service import LongationLedgerService
            ledger_service = LongationLedgerService()
        self.ledger = ledger_service

    def _orders(self, company_id):
        queryset = ProductionOrder.objects.filter(flow_initialized_at__isnull=False)
        if company_id is not None:
            queryset = queryset.filter(company_id=company_id)
        return queryset

    def _stages(self, company_id):
        queryset = ProductionStage.objects.filter(order__flow_initialized_at__isnull=False)
        if company_id is not None:
            queryset = queryset.filter(order__company_id=company_id)
        return queryset

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def dashboard(self, company_id=None):
        orders = self._orders(company_id)
        now = timezone.now()

        status_counts = {choice: 0 for choice in FlowStatusChoices.values}
        for row in orders.values('flow_status').annotate(count=Count('id')):
            status_counts[row['flow_status']] = row['count']

        delayed = orders.filter(planned_end_date__lt=now).exclude(flow_status=FlowStatusChoices.COMPLETED)

        active_stages = self._stages(company_id).filter(
            status__in=[StageStatusChoices.IN_PROGRESS, StageStatusChoices.HELD]
        ).select_related('order')

        stage_wise_count = defaultdict(int)
        held_stages = []
        overdue_stages = []
        for stage in active_stages:
            if stage.status == StageStatusChoices.IN_PROGRESS:
                stage_wise_count[stage.stage_type] += 1
                if stage.is_overdue:
                    overdue_stages.append(self._active_stage_row(stage))
            else:
                held_stages.append(self._active_stage_row(stage))

        limit = _flow_settings().get('RECENT_ACTIVITY_LIMIT', DEFAULT_RECENT_ACTIVITY_LIMIT)
        recent_activities = []
        for order in orders.order_by('-updated_at')[:limit]:
            recent_activities.append({
                'order_id': order.id,
                'order_number': order.order_number,
                'product_type': order.product_type,
                'party_name': order.party_name,
                'flow_status': order.flow_status,
                'updated_at': order.updated_at,
            })

        return {
            'total_orders': sum(status_counts.values()),
            'not_started': status_counts[FlowStatusChoices.NOT_STARTED],
            'in_progress': status_counts[FlowStatusChoices.IN_PROGRESS],
            'on_hold': status_counts[FlowStatusChoices.ON_HOLD],
            'completed': status_counts[FlowStatusChoices.COMPLETED],
            'delayed_orders': delayed.count(),
            'stage_wise_count': dict(stage_wise_count),
            'held_stages': held_stages,
            'overdue_stages': overdue_stages,
            'longation': self.ledger.totals(company_id),
            'recent_activities': recent_activities,
        }

    def _active_stage_row(self, stage):
        return {
            'order_id': stage.order_id,
            'order_number': stage.order.order_number,
            'stage_number': stage.stage_number,
            'stage_type': stage.stage_type,
            'status': stage.status,
            'started_at': stage.started_at,
            'held_at': stage.held_at,
            'hold_reason': stage.hold_reason,
        }

    # ------------------------------------------------------------------
    # Stage summary
    # ------------------------------------------------------------------

    def stage_summary(self, company_id=None, stage_type=None, date_from=None, date_to=None):
        """
        Per stage type statistics, optionally for orders created in a date range
        """
        date_from = _parse_filter_date(date_from, 'date_from')
        date_to = _parse_filter_date(date_to, 'date_to')
        if date_from and date_to and date_from > date_to:
            raise FlowValidationError("date_from cannot be after date_to")

        stages = self._stages(company_id)
        if stage_type:
            stages = stages.filter(stage_type=stage_type)
        if date_from:
            stages = stages.filter(order__created_at__date__gte=date_from)
        if date_to:
            stages = stages.filter(order__created_at__date__lte=date_to)

        stage_types = self._stage_type_stats(stages)
        return {
            'filters': {
                'stage_type': stage_type,
                'date_from': date_from,
                'date_to': date_to,
            },
            'stage_types': stage_types,
            'bottlenecks': self._bottlenecks(stage_types),
        }

    def _stage_type_stats(self, stages):
        grouped = defaultdict(list)
        for stage in stages.order_by('stage_type', 'order_id'):
            grouped[stage.stage_type].append(stage)

        result = []
        for stage_type, items in grouped.items():
            status_counts = {choice: 0 for choice in StageStatusChoices.values}
            grades = {}
            for stage in items:
                status_counts[stage.status] += 1
                if stage.quality_grade:
                    grades[stage.quality_grade] = grades.get(stage.quality_grade, 0) + 1

            completed = [s for s in items if s.status == StageStatusChoices.COMPLETED]
            total_actual = sum((s.actual_quantity or Decimal('0') for s in completed), Decimal('0'))
            total_defect = sum((s.defect_quantity for s in completed), Decimal('0'))
            total_byproduct = sum((s.byproduct_quantity for s in completed), Decimal('0'))

            result.append({
                'stage_type': stage_type,
                'total': len(items),
                'status_counts': status_counts,
                'avg_duration_minutes': _average([s.actual_duration_minutes for s in completed]),
                'avg_held_minutes': _average([s.held_minutes for s in items if s.started_at]),
                'total_actual_quantity': float(total_actual),
                'total_defect_quantity': float(total_defect),
                'total_byproduct_quantity': float(total_byproduct),
                'defect_rate': _percentage(total_defect, total_actual + total_defect),
                'grade_distribution': grades,
            })
        return result

    def _bottlenecks(self, stage_types):
        ranked = [row for row in stage_types if row['avg_duration_minutes'] > 0]
        ranked.sort(key=lambda row: row['avg_duration_minutes'], reverse=True)
        return [
            {
                'stage_type': row['stage_type'],
                'avg_duration_minutes': row['avg_duration_minutes'],
                'avg_held_minutes': row['avg_held_minutes'],
            }
            for row in ranked[:BOTTLENECK_LIMIT]
        ]

    # ------------------------------------------------------------------
    # Period analytics
    # ------------------------------------------------------------------

    def period_start(self, period):
        periods = _flow_settings().get('ANALYTICS_PERIODS', DEFAULT_PERIOD_DAYS)
        if period not in periods:
            raise FlowValidationError(f"period must be one of {', '.join(periods)}")
        return timezone.now() - timedelta(days=periods[period])

    def flow_analytics(self, company_id=None, period='30d'):
        since = self.period_start(period)

        completed_orders = list(
            self._orders(company_id).filter(
                flow_status=FlowStatusChoices.COMPLETED,
                actual_end_date__gte=since
            )
        )
        cycle_hours = [
            (o.actual_end_date - o.actual_start_date).total_seconds() / 3600
            for o in completed_orders if o.actual_start_date and o.actual_end_date
        ]
        total_production = sum((o.completed_quantity for o in completed_orders), Decimal('0'))

        completed_stages = self._stages(company_id).filter(
            status=StageStatusChoices.COMPLETED,
            completed_at__gte=since
        )
        stage_types = self._stage_type_stats(completed_stages)

        graded = [s for s in completed_stages if s.quality_grade]
        rejected = sum(1 for s in graded if s.quality_grade == QualityGradeChoices.REJECT)
        total_actual = sum((s.actual_quantity or Decimal('0') for s in completed_stages), Decimal('0'))
        total_defect = sum((s.defect_quantity for s in completed_stages), Decimal('0'))

        holds = StageHoldLog.objects.filter(held_at__gte=since)
        if company_id is not None:
            holds = holds.filter(order__company_id=company_id)
        hold_reasons = [
            {
                'reason_code': row['reason_code'],
                'count': row['count'],
                'downtime_minutes': row['downtime'] or 0,
            }
            for row in holds.values('reason_code').annotate(
                count=Count('id'), downtime=Sum('downtime_minutes')
            ).order_by('-count', 'reason_code')
        ]

        entries = LongationStockEntry.objects.for_company(company_id).filter(created_at__gte=since)
        longation_by_module = {
            row['source_module']: _as_float(row['total'])
            for row in entries.values('source_module').annotate(total=Sum('quantity')).order_by('source_module')
        }

        logger.debug(f'Flow analytics for company {company_id}, period {period}: {len(completed_orders)} orders')

        return {
            'period': period,
            'since': since,
            'completed_orders': len(completed_orders),
            'completed_stages': completed_stages.count(),
            'total_production': float(total_production),
            'avg_cycle_time_hours': _average(cycle_hours),
            'quality': {
                'graded_stages': len(graded),
                'rejected_stages': rejected,
                'pass_rate': _percentage(len(graded) - rejected, len(graded)),
                'defect_rate': _percentage(total_defect, total_actual + total_defect),
            },
            'bottlenecks': self._bottlenecks(stage_types),
            'hold_reasons': hold_reasons,
            'longation_by_source_module': longation_by_module,
        }
