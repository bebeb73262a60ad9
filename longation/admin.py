from django.contrib import admin

from .models import LongationStockEntry, LongationAllocation


class LongationAllocationInline(admin.TabularInline):
    model = LongationAllocation
    extra = 0
    can_delete = False
    fields = ('allocation_number', 'consumer_order_ref', 'quantity', 'status', 'allocated_by', 'allocated_at')
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(LongationStockEntry)
class LongationStockEntryAdmin(admin.ModelAdmin):
    """Ledger entries are append-only; availability changes only through allocations"""
    list_display = (
        'entry_number', 'company_id', 'source_module', 'source_order', 'lot_number',
        'quantity', 'available_quantity', 'unit', 'status', 'created_at'
    )
    list_filter = ('source_module', 'unit', 'company_id', 'created_at')
    search_fields = ('entry_number', 'lot_number', 'party_name', 'source_order__order_number')
    readonly_fields = [f.name for f in LongationStockEntry._meta.fields]
    inlines = [LongationAllocationInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(LongationAllocation)
class LongationAllocationAdmin(admin.ModelAdmin):
    list_display = ('allocation_number', 'entry', 'consumer_order_ref', 'quantity', 'status', 'allocated_at')
    list_filter = ('status', 'company_id', 'allocated_at')
    search_fields = ('allocation_number', 'consumer_order_ref', 'entry__entry_number')
    readonly_fields = [f.name for f in LongationAllocation._meta.fields]

    def has_add_permission(self, request):
        return False
