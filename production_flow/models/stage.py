"""
Production Stage Models
Frozen per-order stage instances and their hold/resume history
"""
from datetime import timedelta
from decimal import Decimal

from django.db import models
from django.contrib.auth import get_user_model
from django.utils import timezone

from utils.enums import StageStatusChoices, QualityGradeChoices, HoldReasonChoices

User = get_user_model()


class ProductionStage(models.Model):
    """
    One stage of one order's flow, copied from the stage template at initialization
    Mutated only through StageExecutionService
    """
    order = models.ForeignKey(
        'production_flow.ProductionOrder',
        on_delete=models.CASCADE,
        related_name='stages'
    )

    # Frozen template data
    stage_number = models.PositiveIntegerField()
    stage_type = models.CharField(max_length=40)
    stage_name = models.CharField(max_length=100, blank=True)
    quality_check_required = models.BooleanField(default=False)
    planned_duration_minutes = models.PositiveIntegerField(default=0)

    status = models.CharField(max_length=20, choices=StageStatusChoices.choices, default=StageStatusChoices.PENDING)

    # Output & quality
    planned_quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    actual_quantity = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    defect_quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    byproduct_quantity = models.DecimalField(
        max_digits=12, decimal_places=3, default=Decimal('0'),
        help_text="Shrinkage/reclaimed quantity moved to longation stock"
    )
    quality_grade = models.CharField(max_length=10, choices=QualityGradeChoices.choices, blank=True)
    quality_notes = models.TextField(blank=True)
    images = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)

    # Start / complete
    started_at = models.DateTimeField(null=True, blank=True)
    started_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='started_production_stages'
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='completed_production_stages'
    )

    # Hold / resume
    hold_reason = models.TextField(blank=True)
    held_at = models.DateTimeField(null=True, blank=True)
    held_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='held_production_stages'
    )
    resumed_at = models.DateTimeField(null=True, blank=True)
    resumed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='resumed_production_stages'
    )
    held_duration = models.DurationField(default=timedelta(0))

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Production Stage'
        verbose_name_plural = 'Production Stages'
        ordering = ['order', 'stage_number']
        unique_together = [['order', 'stage_number']]
        indexes = [
            models.Index(fields=['stage_type', 'status'], name='pf_stage_type_status_idx'),
            models.Index(fields=['status', 'completed_at'], name='pf_stage_status_done_idx'),
        ]

    def __str__(self):
        return f"{self.order.order_number} #{self.stage_number} {self.display_name} ({self.status})"

    @property
    def display_name(self):
        return self.stage_name or self.stage_type.replace('_', ' ').title()

    @property
    def held_minutes(self):
        """Accumulated hold time, including a hold still open"""
        total = self.held_duration or timedelta(0)
        if self.status == StageStatusChoices.HELD and self.held_at:
            total += timezone.now() - self.held_at
        return int(total.total_seconds() / 60)

    @property
    def actual_duration_minutes(self):
        """Active processing minutes (hold time excluded)"""
        if self.started_at and self.completed_at:
            delta = self.completed_at - self.started_at - (self.held_duration or timedelta(0))
            return max(0, int(delta.total_seconds() / 60))
        return None

    @property
    def is_overdue(self):
        if self.status != StageStatusChoices.IN_PROGRESS or not self.started_at:
            return False
        if not self.planned_duration_minutes:
            return False
        elapsed = timezone.now() - self.started_at - (self.held_duration or timedelta(0))
        return elapsed > timedelta(minutes=self.planned_duration_minutes)


class StageHoldLog(models.Model):
    """
    One hold/resume cycle of a stage
    Downtime is calculated when the stage is resumed
    """
    stage = models.ForeignKey(ProductionStage, on_delete=models.CASCADE, related_name='hold_logs')
    order = models.ForeignKey(
        'production_flow.ProductionOrder',
        on_delete=models.CASCADE,
        related_name='hold_logs'
    )

    reason_code = models.CharField(max_length=30, choices=HoldReasonChoices.choices, default=HoldReasonChoices.OTHERS)
    reason = models.TextField()
    held_at = models.DateTimeField()
    held_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='stage_holds_created'
    )

    is_resumed = models.BooleanField(default=False)
    resumed_at = models.DateTimeField(null=True, blank=True)
    resumed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='stage_holds_resumed'
    )
    resume_notes = models.TextField(blank=True)
    downtime_minutes = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = 'Stage Hold Log'
        verbose_name_plural = 'Stage Hold Logs'
        ordering = ['-held_at']
        indexes = [
            models.Index(fields=['stage', 'is_resumed'], name='pf_hold_stage_resumed_idx'),
            models.Index(fields=['order', 'held_at'], name='pf_hold_order_held_idx'),
        ]

    def __str__(self):
        state = "Resumed" if self.is_resumed else "Held"
        return f"{self.order.order_number} #{self.stage.stage_number} [{state}]"

    def close(self, resumed_by_user, resumed_at, notes=''):
        self.is_resumed = True
        self.resumed_by = resumed_by_user
        self.resumed_at = resumed_at
        self.resume_notes = notes
        delta = resumed_at - self.held_at
        self.downtime_minutes = max(0, int(delta.total_seconds() / 60))
        self.save()
        return self.downtime_minutes
