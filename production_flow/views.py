from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend
from django.db.models import Prefetch

from .models import ProductionOrder, ProductionStage, StageTemplate, StageDefinition
from .permissions import HasCompanyContext
from .serializers import (
    ProductionOrderListSerializer, ProductionOrderDetailSerializer,
    ProductionStageSerializer, StageTemplateSerializer,
    StageCompleteSerializer, StageHoldSerializer, StageResumeSerializer,
    StageSummaryQuerySerializer
)
from .stage_execution_service import StageExecutionService
from .analytics_service import FlowAnalyticsService
from longation.ledger_service import LongationLedgerService

ledger_service = LongationLedgerService()
stage_service = StageExecutionService(ledger_service=ledger_service)
analytics_service = FlowAnalyticsService(ledger_service=ledger_service)

STAGE_URL = r'stages/(?P<stage_number>\d+)'


class ProductionOrderViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Production orders of the caller's company and their stage flow

    Orders are created and approved upstream; this viewset only drives
    the stage flow and reads it back.
    """
    permission_classes = [IsAuthenticated, HasCompanyContext]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['flow_status', 'product_type', 'priority', 'approval_status']
    search_fields = ['order_number', 'lot_number', 'party_name', 'customer_ref']
    ordering_fields = ['created_at', 'updated_at', 'planned_end_date', 'priority']
    ordering = ['-created_at']

    def get_queryset(self):
        queryset = ProductionOrder.objects.filter(company_id=self.request.company_id)
        if self.action == 'retrieve':
            queryset = queryset.select_related('flow_initialized_by').prefetch_related(
                Prefetch(
                    'stages',
                    queryset=ProductionStage.objects.select_related(
                        'started_by', 'completed_by', 'held_by', 'resumed_by'
                    ).prefetch_related('hold_logs').order_by('stage_number')
                )
            )
        return queryset

    def get_serializer_class(self):
        if self.action == 'list':
            return ProductionOrderListSerializer
        return ProductionOrderDetailSerializer

    def _stage_response(self, stage, status_code=status.HTTP_200_OK):
        stage.refresh_from_db()
        return Response(ProductionStageSerializer(stage).data, status=status_code)

    @action(detail=True, methods=['post'])
    def initialize(self, request, pk=None):
        """Create the order's stages from its product template"""
        snapshot = stage_service.initialize_flow(pk, request.user, company_id=request.company_id)
        return Response(snapshot, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'], url_path='status')
    def flow_status(self, request, pk=None):
        """Current flow snapshot with percent complete"""
        return Response(stage_service.get_flow_status(pk, company_id=request.company_id))

    @action(detail=True, methods=['post'], url_path=f'{STAGE_URL}/start')
    def start_stage(self, request, pk=None, stage_number=None):
        stage = stage_service.start_stage(pk, stage_number, request.user, company_id=request.company_id)
        return self._stage_response(stage)

    @action(detail=True, methods=['post'], url_path=f'{STAGE_URL}/complete')
    def complete_stage(self, request, pk=None, stage_number=None):
        """
        Complete a stage with its output metrics
        The completing user is always the authenticated user
        """
        serializer = StageCompleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        stage = stage_service.complete_stage(
            pk, stage_number, serializer.validated_data, request.user, company_id=request.company_id
        )
        return self._stage_response(stage)

    @action(detail=True, methods=['post'], url_path=f'{STAGE_URL}/hold')
    def hold_stage(self, request, pk=None, stage_number=None):
        serializer = StageHoldSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        stage = stage_service.hold_stage(
            pk, stage_number,
            serializer.validated_data['reason'],
            request.user,
            company_id=request.company_id,
            reason_code=serializer.validated_data['reason_code']
        )
        return self._stage_response(stage)

    @action(detail=True, methods=['post'], url_path=f'{STAGE_URL}/resume')
    def resume_stage(self, request, pk=None, stage_number=None):
        serializer = StageResumeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        stage = stage_service.resume_stage(
            pk, stage_number, request.user,
            company_id=request.company_id,
            notes=serializer.validated_data['notes']
        )
        return self._stage_response(stage)

    @action(detail=False, methods=['get'])
    def dashboard(self, request):
        """Order counts, active stages, longation totals and recent activity"""
        return Response(analytics_service.dashboard(company_id=request.company_id))

    @action(detail=False, methods=['get'])
    def summary(self, request):
        """Per stage type statistics (filters: stage_type, date_from, date_to)"""
        query = StageSummaryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return Response(analytics_service.stage_summary(
            company_id=request.company_id,
            stage_type=query.validated_data.get('stage_type') or None,
            date_from=query.validated_data.get('date_from'),
            date_to=query.validated_data.get('date_to'),
        ))

    @action(detail=False, methods=['get'])
    def analytics(self, request):
        """Completed output, quality, bottlenecks and hold reasons for a period"""
        period = request.query_params.get('period', '30d')
        return Response(analytics_service.flow_analytics(company_id=request.company_id, period=period))


class StageTemplateViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Configured stage templates per product type
    Templates are maintained through the admin or seed_stage_templates
    """
    permission_classes = [IsAuthenticated]
    serializer_class = StageTemplateSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['is_active', 'product_type']
    search_fields = ['product_type', 'name']
    ordering = ['product_type']

    def get_queryset(self):
        return StageTemplate.objects.prefetch_related(
            Prefetch('stages', queryset=StageDefinition.objects.order_by('stage_number'))
        )
