"""
Longation Stock Models
Append-only ledger of shrinkage/reclaimed material and its allocations
"""
from decimal import Decimal

from django.db import models
from django.db.models import F, Q, Sum
from django.contrib.auth import get_user_model

from utils.enums import UnitChoices, LongationAvailabilityChoices, AllocationStatusChoices

User = get_user_model()

ACTIVE_ALLOCATION_STATUSES = (AllocationStatusChoices.ALLOCATED, AllocationStatusChoices.USED)


class LongationStockQuerySet(models.QuerySet):

    def for_company(self, company_id):
        if company_id is None:
            return self
        return self.filter(company_id=company_id)

    def with_availability(self, availability):
        """Filter on the derived availability status"""
        if availability == LongationAvailabilityChoices.AVAILABLE:
            return self.filter(available_quantity=F('quantity'))
        if availability == LongationAvailabilityChoices.PARTIALLY_ALLOCATED:
            return self.filter(available_quantity__gt=0, available_quantity__lt=F('quantity'))
        if availability == LongationAvailabilityChoices.FULLY_ALLOCATED:
            return self.filter(available_quantity__lte=0)
        return self


class LongationStockEntry(models.Model):
    """
    Byproduct quantity produced by one stage completion
    Only available_quantity changes after creation, and only through allocations
    """
    entry_number = models.CharField(
        max_length=30, editable=False,
        help_text="Auto-generated: LS-YYYYMMDD-XXXX"
    )
    company_id = models.CharField(max_length=64, db_index=True)

    # Source
    source_order = models.ForeignKey(
        'production_flow.ProductionOrder',
        on_delete=models.PROTECT,
        related_name='longation_entries'
    )
    source_stage_number = models.PositiveIntegerField()
    source_module = models.CharField(max_length=40, help_text="Stage type that produced this stock")
    lot_number = models.CharField(max_length=50, blank=True)
    party_name = models.CharField(max_length=200, blank=True)

    # Quantity
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    unit = models.CharField(max_length=10, choices=UnitChoices.choices, default=UnitChoices.METER)
    available_quantity = models.DecimalField(max_digits=12, decimal_places=3)
    reason = models.TextField(blank=True)

    # Audit
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='longation_entries_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LongationStockQuerySet.as_manager()

    class Meta:
        verbose_name = 'Longation Stock Entry'
        verbose_name_plural = 'Longation Stock Entries'
        ordering = ['-created_at']
        unique_together = [['source_order', 'source_stage_number'], ['company_id', 'entry_number']]
        indexes = [
            models.Index(fields=['company_id', 'source_module'], name='ls_entry_company_module_idx'),
            models.Index(fields=['company_id', 'created_at'], name='ls_entry_company_created_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(available_quantity__gte=0),
                name='longation_available_not_negative',
            ),
            models.CheckConstraint(
                condition=Q(available_quantity__lte=F('quantity')),
                name='longation_available_within_quantity',
            ),
        ]

    def __str__(self):
        return f"{self.entry_number} - {self.source_module} ({self.available_quantity}/{self.quantity} {self.unit})"

    @property
    def status(self):
        if self.available_quantity >= self.quantity:
            return LongationAvailabilityChoices.AVAILABLE
        if self.available_quantity > 0:
            return LongationAvailabilityChoices.PARTIALLY_ALLOCATED
        return LongationAvailabilityChoices.FULLY_ALLOCATED

    @property
    def allocated_quantity(self):
        """Quantity held by allocations that are allocated or used"""
        total = self.allocations.filter(
            status__in=ACTIVE_ALLOCATION_STATUSES
        ).aggregate(total=Sum('quantity'))['total']
        return total or Decimal('0')

    def check_conservation(self):
        """quantity == available + allocated/used allocations"""
        return self.quantity == self.available_quantity + self.allocated_quantity


class LongationAllocation(models.Model):
    """Reservation of longation stock for a consuming order"""
    allocation_number = models.CharField(
        max_length=30, editable=False,
        help_text="Auto-generated: LA-YYYYMMDD-XXXX"
    )
    entry = models.ForeignKey(LongationStockEntry, on_delete=models.PROTECT, related_name='allocations')
    company_id = models.CharField(max_length=64, db_index=True)
    consumer_order_ref = models.CharField(max_length=64, help_text="Order consuming this stock")

    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    status = models.CharField(
        max_length=20, choices=AllocationStatusChoices.choices, default=AllocationStatusChoices.ALLOCATED
    )

    # Lifecycle
    allocated_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='longation_allocations_created'
    )
    allocated_at = models.DateTimeField(auto_now_add=True)
    used_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='longation_allocations_used'
    )
    used_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='longation_allocations_cancelled'
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Longation Allocation'
        verbose_name_plural = 'Longation Allocations'
        ordering = ['-allocated_at']
        unique_together = [['company_id', 'allocation_number']]
        indexes = [
            models.Index(fields=['entry', 'status'], name='ls_alloc_entry_status_idx'),
            models.Index(fields=['company_id', 'status'], name='ls_alloc_company_status_idx'),
            models.Index(fields=['consumer_order_ref'], name='ls_alloc_consumer_idx'),
        ]

    def __str__(self):
        return f"{self.allocation_number} - {self.consumer_order_ref} ({self.quantity}) - {self.status}"
