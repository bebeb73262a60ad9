from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import ProductionOrderViewSet, StageTemplateViewSet
from longation.views import LongationStockViewSet, LongationAllocationViewSet

app_name = 'production_flow'

router = DefaultRouter()
router.register(r'orders', ProductionOrderViewSet, basename='order')
router.register(r'stage-templates', StageTemplateViewSet, basename='stage-template')
router.register(r'longation-stock', LongationStockViewSet, basename='longation-stock')
router.register(r'longation-allocations', LongationAllocationViewSet, basename='longation-allocation')

urlpatterns = [
    path('', include(router.urls)),
]
