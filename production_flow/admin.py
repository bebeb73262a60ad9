from django.contrib import admin, messages
from django.utils.html import format_html

from .exceptions import ProductionFlowError
from .models import StageTemplate, StageDefinition, ProductionOrder, ProductionStage, StageHoldLog
from .stage_execution_service import StageExecutionService


class StageDefinitionInline(admin.TabularInline):
    model = StageDefinition
    extra = 0
    fields = ('stage_number', 'stage_type', 'stage_name', 'quality_check_required', 'planned_duration_minutes')
    ordering = ('stage_number',)


@admin.register(StageTemplate)
class StageTemplateAdmin(admin.ModelAdmin):
    list_display = ('product_type', 'name', 'is_active', 'stage_count', 'updated_at')
    list_filter = ('is_active',)
    search_fields = ('product_type', 'name', 'description')
    readonly_fields = ('created_at', 'updated_at')
    inlines = [StageDefinitionInline]

    def stage_count(self, obj):
        return obj.stages.count()
    stage_count.short_description = 'Stages'


class ProductionStageInline(admin.TabularInline):
    model = ProductionStage
    extra = 0
    can_delete = False
    fields = (
        'stage_number', 'stage_type', 'status', 'planned_quantity', 'actual_quantity',
        'defect_quantity', 'byproduct_quantity', 'quality_grade', 'started_at', 'completed_at'
    )
    readonly_fields = fields
    ordering = ('stage_number',)
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(ProductionOrder)
class ProductionOrderAdmin(admin.ModelAdmin):
    list_display = (
        'order_number', 'company_id', 'product_type', 'party_name', 'order_quantity',
        'approval_status', 'flow_status_badge', 'priority', 'created_at'
    )
    list_filter = ('flow_status', 'approval_status', 'priority', 'product_type', 'company_id')
    search_fields = ('order_number', 'lot_number', 'party_name', 'customer_ref')
    readonly_fields = (
        'flow_status', 'flow_initialized_at', 'flow_initialized_by',
        'completed_quantity', 'rejected_quantity',
        'actual_start_date', 'actual_end_date', 'created_at', 'updated_at'
    )
    inlines = [ProductionStageInline]

    fieldsets = (
        ('Order', {
            'fields': ('order_number', 'company_id', 'product_type', 'customer_ref', 'lot_number', 'party_name')
        }),
        ('Quantity', {
            'fields': ('order_quantity', 'unit', 'priority', 'completed_quantity', 'rejected_quantity')
        }),
        ('Status', {
            'fields': ('approval_status', 'flow_status', 'flow_initialized_at', 'flow_initialized_by')
        }),
        ('Schedule', {
            'fields': ('planned_end_date', 'actual_start_date', 'actual_end_date')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def flow_status_badge(self, obj):
        colors = {
            'not_initialized': 'gray',
            'not_started': 'gray',
            'in_progress': 'blue',
            'on_hold': 'orange',
            'completed': 'green',
        }
        return format_html(
            '<span style="color: {};">{}</span>',
            colors.get(obj.flow_status, 'black'),
            obj.get_flow_status_display()
        )
    flow_status_badge.short_description = 'Flow Status'


class StageHoldLogInline(admin.TabularInline):
    model = StageHoldLog
    fk_name = 'stage'
    extra = 0
    can_delete = False
    fields = ('reason_code', 'reason', 'held_at', 'held_by', 'resumed_at', 'resumed_by', 'downtime_minutes')
    readonly_fields = fields


@admin.register(ProductionStage)
class ProductionStageAdmin(admin.ModelAdmin):
    """Stage fields are read-only; pending stages can only be skipped, through the stage flow rules"""
    list_display = ('order', 'stage_number', 'stage_type', 'status', 'quality_grade', 'started_at', 'completed_at')
    list_filter = ('status', 'stage_type', 'quality_grade')
    search_fields = ('order__order_number', 'stage_name')
    readonly_fields = [f.name for f in ProductionStage._meta.fields]
    inlines = [StageHoldLogInline]
    actions = ['skip_stages']

    def has_add_permission(self, request):
        return False

    def skip_stages(self, request, queryset):
        service = StageExecutionService()
        skipped = 0
        for stage in queryset.select_related('order').order_by('order_id', 'stage_number'):
            try:
                service.skip_stage(stage.order_id, stage.stage_number, request.user)
                skipped += 1
            except ProductionFlowError as e:
                self.message_user(request, f'{stage.order.order_number} stage {stage.stage_number}: {e.message}', messages.WARNING)
        self.message_user(request, f'{skipped} stages were marked as skipped.')
    skip_stages.short_description = 'Skip selected pending stages'


@admin.register(StageHoldLog)
class StageHoldLogAdmin(admin.ModelAdmin):
    list_display = ('order', 'stage', 'reason_code', 'held_at', 'held_by', 'is_resumed', 'downtime_minutes')
    list_filter = ('reason_code', 'is_resumed', 'held_at')
    search_fields = ('order__order_number', 'reason')
    readonly_fields = ('held_at', 'resumed_at', 'downtime_minutes')
