from rest_framework import serializers
from django.contrib.auth import get_user_model

from .models import ProductionOrder, ProductionStage, StageHoldLog, StageTemplate, StageDefinition
from utils.enums import QualityGradeChoices, HoldReasonChoices

User = get_user_model()


class UserBasicSerializer(serializers.ModelSerializer):
    """Basic user serializer for nested relationships"""
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name']
        read_only_fields = fields


# ============================================================================
# STAGE TEMPLATES
# ============================================================================

class StageDefinitionSerializer(serializers.ModelSerializer):
    stage_type_display = serializers.CharField(source='get_stage_type_display', read_only=True)
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = StageDefinition
        fields = [
            'id', 'stage_number', 'stage_type', 'stage_type_display', 'stage_name',
            'display_name', 'quality_check_required', 'planned_duration_minutes'
        ]
        read_only_fields = fields


class StageTemplateSerializer(serializers.ModelSerializer):
    """Template with its ordered stages"""
    stages = StageDefinitionSerializer(many=True, read_only=True)
    stage_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = StageTemplate
        fields = [
            'id', 'product_type', 'name', 'description', 'is_active',
            'stage_count', 'stages', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


# ============================================================================
# STAGES
# ============================================================================

class StageHoldLogSerializer(serializers.ModelSerializer):
    held_by = UserBasicSerializer(read_only=True)
    resumed_by = UserBasicSerializer(read_only=True)
    reason_code_display = serializers.CharField(source='get_reason_code_display', read_only=True)

    class Meta:
        model = StageHoldLog
        fields = [
            'id', 'reason_code', 'reason_code_display', 'reason', 'held_at', 'held_by',
            'is_resumed', 'resumed_at', 'resumed_by', 'resume_notes', 'downtime_minutes'
        ]
        read_only_fields = fields


class ProductionStageSerializer(serializers.ModelSerializer):
    """Stage instance with actors and derived timings"""
    display_name = serializers.CharField(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    started_by = UserBasicSerializer(read_only=True)
    completed_by = UserBasicSerializer(read_only=True)
    held_by = UserBasicSerializer(read_only=True)
    resumed_by = UserBasicSerializer(read_only=True)
    held_minutes = serializers.IntegerField(read_only=True)
    actual_duration_minutes = serializers.IntegerField(read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)
    hold_logs = StageHoldLogSerializer(many=True, read_only=True)

    class Meta:
        model = ProductionStage
        fields = [
            'id', 'stage_number', 'stage_type', 'stage_name', 'display_name',
            'quality_check_required', 'planned_duration_minutes',
            'status', 'status_display',
            'planned_quantity', 'actual_quantity', 'defect_quantity', 'byproduct_quantity',
            'quality_grade', 'quality_notes', 'images', 'notes',
            'started_at', 'started_by', 'completed_at', 'completed_by',
            'hold_reason', 'held_at', 'held_by', 'resumed_at', 'resumed_by',
            'held_minutes', 'actual_duration_minutes', 'is_overdue', 'hold_logs',
            'updated_at'
        ]
        read_only_fields = fields


# ============================================================================
# ORDERS
# ============================================================================

class ProductionOrderListSerializer(serializers.ModelSerializer):
    """Optimized serializer for order list view"""
    flow_status_display = serializers.CharField(source='get_flow_status_display', read_only=True)
    priority_display = serializers.CharField(source='get_priority_display', read_only=True)
    is_delayed = serializers.BooleanField(read_only=True)

    class Meta:
        model = ProductionOrder
        fields = [
            'id', 'order_number', 'product_type', 'lot_number', 'party_name',
            'order_quantity', 'unit', 'priority', 'priority_display',
            'approval_status', 'flow_status', 'flow_status_display',
            'planned_end_date', 'is_delayed', 'updated_at'
        ]
        read_only_fields = fields


class ProductionOrderDetailSerializer(serializers.ModelSerializer):
    """Order header with all stage instances"""
    flow_status_display = serializers.CharField(source='get_flow_status_display', read_only=True)
    flow_initialized_by = UserBasicSerializer(read_only=True)
    is_delayed = serializers.BooleanField(read_only=True)
    stages = ProductionStageSerializer(many=True, read_only=True)

    class Meta:
        model = ProductionOrder
        fields = [
            'id', 'order_number', 'company_id', 'product_type', 'customer_ref',
            'lot_number', 'party_name', 'order_quantity', 'unit', 'priority',
            'approval_status', 'flow_status', 'flow_status_display',
            'flow_initialized_at', 'flow_initialized_by',
            'completed_quantity', 'rejected_quantity',
            'planned_end_date', 'actual_start_date', 'actual_end_date', 'is_delayed',
            'stages', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


# ============================================================================
# ACTION INPUT
# ============================================================================

class StageCompleteSerializer(serializers.Serializer):
    """Body of POST orders/{id}/stages/{n}/complete/"""
    actual_quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=0)
    defect_quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=0, required=False, default=0)
    byproduct_quantity = serializers.DecimalField(
        max_digits=12, decimal_places=3, min_value=0, required=False, default=0
    )
    quality_grade = serializers.ChoiceField(choices=QualityGradeChoices.choices)
    quality_notes = serializers.CharField(required=False, allow_blank=True, default='')
    images = serializers.ListField(child=serializers.CharField(max_length=500), required=False, default=list)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class StageHoldSerializer(serializers.Serializer):
    reason = serializers.CharField()
    reason_code = serializers.ChoiceField(choices=HoldReasonChoices.choices, default=HoldReasonChoices.OTHERS)


class StageResumeSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class StageSummaryQuerySerializer(serializers.Serializer):
    stage_type = serializers.CharField(required=False, allow_blank=True)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
