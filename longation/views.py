from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend

from .models import LongationAllocation
from .serializers import (
    LongationStockListSerializer, LongationStockDetailSerializer,
    LongationAllocationSerializer, AllocateSerializer, AllocationCancelSerializer
)
from production_flow.permissions import HasCompanyContext
from production_flow.views import ledger_service


class LongationStockViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Longation stock ledger for stock-consumption screens

    Query params: source_module, status (available / partially_allocated /
    fully_allocated), lot_number, source_order.
    """
    permission_classes = [IsAuthenticated, HasCompanyContext]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['unit', 'source_stage_number']
    search_fields = ['entry_number', 'lot_number', 'party_name', 'source_order__order_number']
    ordering_fields = ['created_at', 'quantity', 'available_quantity']
    ordering = ['-created_at']

    def get_queryset(self):
        params = self.request.query_params
        queryset = ledger_service.browse(
            company_id=self.request.company_id,
            source_module=params.get('source_module'),
            status=params.get('status'),
            lot_number=params.get('lot_number'),
            source_order=params.get('source_order'),
        )
        if self.action == 'retrieve':
            queryset = queryset.select_related('created_by').prefetch_related('allocations__allocated_by')
        return queryset

    def get_serializer_class(self):
        if self.action == 'list':
            return LongationStockListSerializer
        return LongationStockDetailSerializer

    @action(detail=False, methods=['get'])
    def totals(self, request):
        """Total, available, allocated and used quantity, also per source module"""
        return Response(ledger_service.totals(company_id=request.company_id))

    @action(detail=True, methods=['post'])
    def allocate(self, request, pk=None):
        """Reserve stock from this entry for a consuming order"""
        serializer = AllocateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        allocation = ledger_service.allocate(
            pk,
            serializer.validated_data['consumer_order_ref'],
            serializer.validated_data['quantity'],
            actor=request.user,
            company_id=request.company_id,
            notes=serializer.validated_data['notes'],
        )
        return Response(LongationAllocationSerializer(allocation).data, status=status.HTTP_201_CREATED)


class LongationAllocationViewSet(viewsets.ReadOnlyModelViewSet):
    """Allocations of longation stock and their use / cancel transitions"""
    permission_classes = [IsAuthenticated, HasCompanyContext]
    serializer_class = LongationAllocationSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'entry', 'consumer_order_ref']
    search_fields = ['allocation_number', 'consumer_order_ref', 'entry__entry_number']
    ordering_fields = ['allocated_at', 'quantity']
    ordering = ['-allocated_at']

    def get_queryset(self):
        return LongationAllocation.objects.filter(
            company_id=self.request.company_id
        ).select_related('entry', 'allocated_by', 'used_by', 'cancelled_by')

    @action(detail=True, methods=['post'])
    def use(self, request, pk=None):
        """Mark the allocated stock as consumed"""
        allocation = ledger_service.use(pk, actor=request.user, company_id=request.company_id)
        return Response(self.get_serializer(allocation).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Cancel the allocation and return its quantity to the entry"""
        serializer = AllocationCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        allocation = ledger_service.cancel_allocation(
            pk,
            actor=request.user,
            company_id=request.company_id,
            reason=serializer.validated_data['reason'],
        )
        return Response(self.get_serializer(allocation).data)
