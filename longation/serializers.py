from rest_framework import serializers

from .models import LongationStockEntry, LongationAllocation
from production_flow.serializers import UserBasicSerializer


class LongationAllocationSerializer(serializers.ModelSerializer):
    """Allocation with its lifecycle actors"""
    entry_number = serializers.CharField(source='entry.entry_number', read_only=True)
    source_module = serializers.CharField(source='entry.source_module', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    allocated_by = UserBasicSerializer(read_only=True)
    used_by = UserBasicSerializer(read_only=True)
    cancelled_by = UserBasicSerializer(read_only=True)

    class Meta:
        model = LongationAllocation
        fields = [
            'id', 'allocation_number', 'entry', 'entry_number', 'source_module',
            'consumer_order_ref', 'quantity', 'status', 'status_display',
            'allocated_by', 'allocated_at', 'used_by', 'used_at',
            'cancelled_by', 'cancelled_at', 'cancel_reason', 'notes'
        ]
        read_only_fields = fields


class LongationStockListSerializer(serializers.ModelSerializer):
    """Optimized serializer for the stock-consumption list"""
    source_order_number = serializers.CharField(source='source_order.order_number', read_only=True)
    status = serializers.CharField(read_only=True)

    class Meta:
        model = LongationStockEntry
        fields = [
            'id', 'entry_number', 'source_order', 'source_order_number', 'source_stage_number',
            'source_module', 'lot_number', 'party_name', 'quantity', 'available_quantity',
            'unit', 'status', 'created_at'
        ]
        read_only_fields = fields


class LongationStockDetailSerializer(LongationStockListSerializer):
    created_by = UserBasicSerializer(read_only=True)
    allocated_quantity = serializers.DecimalField(max_digits=12, decimal_places=3, read_only=True)
    allocations = LongationAllocationSerializer(many=True, read_only=True)

    class Meta(LongationStockListSerializer.Meta):
        fields = LongationStockListSerializer.Meta.fields + [
            'reason', 'created_by', 'allocated_quantity', 'allocations', 'updated_at'
        ]
        read_only_fields = fields


class AllocateSerializer(serializers.Serializer):
    """Body of POST longation-stock/{id}/allocate/"""
    consumer_order_ref = serializers.CharField(max_length=64)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than 0")
        return value


class AllocationCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')
