from django.db import models
from django.utils.translation import gettext_lazy as _


# ============================================================================
# PRODUCTION ORDER CHOICES
# ============================================================================

class PriorityChoices(models.TextChoices):
    LOW = 'low', _('Low')
    MEDIUM = 'medium', _('Medium')
    HIGH = 'high', _('High')
    URGENT = 'urgent', _('Urgent')


class ApprovalStatusChoices(models.TextChoices):
    PENDING = 'pending', _('Pending Approval')
    APPROVED = 'approved', _('Approved')
    REJECTED = 'rejected', _('Rejected')


class FlowStatusChoices(models.TextChoices):
    NOT_INITIALIZED = 'not_initialized', _('Not Initialized')
    NOT_STARTED = 'not_started', _('Not Started')
    IN_PROGRESS = 'in_progress', _('In Progress')
    ON_HOLD = 'on_hold', _('On Hold')
    COMPLETED = 'completed', _('Completed')


class UnitChoices(models.TextChoices):
    METER = 'meter', _('Meter')
    KG = 'kg', _('Kilogram')
    PIECE = 'piece', _('Piece')


# ============================================================================
# STAGE CHOICES
# ============================================================================

class StageTypeChoices(models.TextChoices):
    GREY_FABRIC_INWARD = 'grey_fabric_inward', _('Grey Fabric Inward')
    PRE_PROCESSING = 'pre_processing', _('Pre-Processing (Desizing/Bleaching)')
    BLEACHING = 'bleaching', _('Bleaching')
    AFTER_BLEACHING = 'after_bleaching', _('After Bleaching')
    DYEING = 'dyeing', _('Dyeing')
    PRINTING = 'printing', _('Printing')
    HAZER_SILICATE_CURING = 'hazer_silicate_curing', _('Hazer / Silicate Curing')
    WASHING = 'washing', _('Washing')
    FIXING = 'fixing', _('Color Fixing')
    FELT = 'felt', _('Felt')
    FINISHING = 'finishing', _('Finishing')
    FOLDING_CHECKING = 'folding_checking', _('Folding & Checking')
    QUALITY_CONTROL = 'quality_control', _('Quality Control')
    CUTTING_PACKING = 'cutting_packing', _('Cutting & Packing')
    DISPATCH_INVOICE = 'dispatch_invoice', _('Dispatch & Invoice')


class StageStatusChoices(models.TextChoices):
    PENDING = 'pending', _('Pending')
    IN_PROGRESS = 'in_progress', _('In Progress')
    HELD = 'held', _('Held')
    COMPLETED = 'completed', _('Completed')
    SKIPPED = 'skipped', _('Skipped')


class QualityGradeChoices(models.TextChoices):
    A_PLUS = 'A+', _('A+')
    A = 'A', _('A')
    B_PLUS = 'B+', _('B+')
    B = 'B', _('B')
    C = 'C', _('C')
    REJECT = 'Reject', _('Reject')


class HoldReasonChoices(models.TextChoices):
    MACHINE_BREAKDOWN = 'machine_breakdown', _('Machine Breakdown / Repair')
    POWER_CUT = 'power_cut', _('Power Cut')
    MAINTENANCE = 'maintenance', _('Maintenance')
    MATERIAL_SHORTAGE = 'material_shortage', _('Material Shortage')
    QUALITY_ISSUE = 'quality_issue', _('Quality Issue')
    OTHERS = 'others', _('Others')


# ============================================================================
# LONGATION STOCK CHOICES
# ============================================================================

class LongationAvailabilityChoices(models.TextChoices):
    AVAILABLE = 'available', _('Available')
    PARTIALLY_ALLOCATED = 'partially_allocated', _('Partially Allocated')
    FULLY_ALLOCATED = 'fully_allocated', _('Fully Allocated')


class AllocationStatusChoices(models.TextChoices):
    ALLOCATED = 'allocated', _('Allocated')
    USED = 'used', _('Used')
    CANCELLED = 'cancelled', _('Cancelled')


# ============================================================================
# ANALYTICS CHOICES
# ============================================================================

class AnalyticsPeriodChoices(models.TextChoices):
    SEVEN_DAYS = '7d', _('Last 7 Days')
    THIRTY_DAYS = '30d', _('Last 30 Days')
    NINETY_DAYS = '90d', _('Last 90 Days')
    ONE_YEAR = '1y', _('Last 1 Year')
