"""
Production Order Models
Order header whose flow status is derived from its stage instances
"""
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.contrib.auth import get_user_model
from django.utils import timezone

from utils.enums import (
    PriorityChoices,
    ApprovalStatusChoices,
    FlowStatusChoices,
    StageStatusChoices,
    UnitChoices,
)

User = get_user_model()

DONE_STAGE_STATUSES = (StageStatusChoices.COMPLETED, StageStatusChoices.SKIPPED)


def default_unit():
    return getattr(settings, 'PRODUCTION_FLOW_SETTINGS', {}).get('DEFAULT_UNIT', UnitChoices.METER)


def derive_flow_status(stage_statuses):
    """
    Order-level status as a pure function of its stage statuses.

    all done -> completed, any held -> on_hold,
    any active or partly done -> in_progress, otherwise not_started.
    Skipped stages count as done.
    """
    statuses = list(stage_statuses)
    if not statuses:
        return FlowStatusChoices.NOT_STARTED

    if all(s in DONE_STAGE_STATUSES for s in statuses):
        return FlowStatusChoices.COMPLETED
    if any(s == StageStatusChoices.HELD for s in statuses):
        return FlowStatusChoices.ON_HOLD
    if any(s == StageStatusChoices.IN_PROGRESS or s in DONE_STAGE_STATUSES for s in statuses):
        return FlowStatusChoices.IN_PROGRESS
    return FlowStatusChoices.NOT_STARTED


class ProductionOrder(models.Model):
    """
    Approved production order moving through its stage sequence
    Approval happens upstream; this model only reads approval_status
    """
    order_number = models.CharField(max_length=50)
    company_id = models.CharField(max_length=64, db_index=True)

    # Opaque references to master data
    product_type = models.CharField(max_length=50)
    customer_ref = models.CharField(max_length=64, blank=True)
    lot_number = models.CharField(max_length=50, blank=True)
    party_name = models.CharField(max_length=200, blank=True)

    # Quantity
    order_quantity = models.DecimalField(max_digits=12, decimal_places=3)
    unit = models.CharField(max_length=10, choices=UnitChoices.choices, default=default_unit)
    priority = models.CharField(max_length=10, choices=PriorityChoices.choices, default=PriorityChoices.MEDIUM)

    # Status
    approval_status = models.CharField(
        max_length=20, choices=ApprovalStatusChoices.choices, default=ApprovalStatusChoices.PENDING
    )
    flow_status = models.CharField(
        max_length=20, choices=FlowStatusChoices.choices, default=FlowStatusChoices.NOT_INITIALIZED
    )
    flow_initialized_at = models.DateTimeField(null=True, blank=True)
    flow_initialized_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='initialized_production_flows'
    )

    # Output totals
    completed_quantity = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal('0'),
        help_text="Good output of the final stage"
    )
    rejected_quantity = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal('0'),
        help_text="Sum of defect quantities over all completed stages"
    )

    # Schedule
    planned_end_date = models.DateTimeField(null=True, blank=True)
    actual_start_date = models.DateTimeField(null=True, blank=True)
    actual_end_date = models.DateTimeField(null=True, blank=True)

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Production Order'
        verbose_name_plural = 'Production Orders'
        ordering = ['-created_at']
        unique_together = [['company_id', 'order_number']]
        indexes = [
            models.Index(fields=['company_id', 'flow_status'], name='pf_order_company_status_idx'),
            models.Index(fields=['company_id', 'updated_at'], name='pf_order_company_updated_idx'),
        ]

    def __str__(self):
        return f"{self.order_number} ({self.get_flow_status_display()})"

    @property
    def is_flow_initialized(self):
        return self.flow_initialized_at is not None

    @property
    def is_delayed(self):
        if self.planned_end_date and self.flow_status != FlowStatusChoices.COMPLETED:
            return timezone.now() > self.planned_end_date
        return False

    def compute_flow_status(self):
        if not self.is_flow_initialized:
            return FlowStatusChoices.NOT_INITIALIZED
        return derive_flow_status(self.stages.values_list('status', flat=True))

    def refresh_flow_status(self):
        """Recompute flow_status from the stored stages (caller saves)"""
        self.flow_status = self.compute_flow_status()
        return self.flow_status
