from django.contrib.admin.sites import AdminSite
from django.contrib.messages.storage.fallback import FallbackStorage
from django.test import RequestFactory, TestCase

from production_flow.admin import ProductionStageAdmin
from production_flow.models import ProductionStage
from production_flow.stage_execution_service import StageExecutionService
from production_flow.tests.helpers import FlowFixturesMixin


class ProductionStageAdminTest(FlowFixturesMixin, TestCase):
    """Skip action on the stage admin"""

    def setUp(self):
        self.user = self.create_user()
        self.create_template()
        self.order = self.create_order()
        self.service = StageExecutionService()
        self.service.initialize_flow(self.order.id, self.user)
        self.model_admin = ProductionStageAdmin(ProductionStage, AdminSite())

    def admin_request(self):
        request = RequestFactory().post('/admin/production_flow/productionstage/')
        request.user = self.user
        request.session = {}
        request._messages = FallbackStorage(request)
        return request

    def test_skip_action_marks_pending_stages_skipped(self):
        self.service.start_stage(self.order.id, 1, self.user)
        self.service.complete_stage(self.order.id, 1, self.completion(), self.user)

        queryset = ProductionStage.objects.filter(order=self.order, stage_number__in=[2, 3])
        self.model_admin.skip_stages(self.admin_request(), queryset)

        statuses = list(self.order.stages.order_by('stage_number').values_list('status', flat=True))
        self.assertEqual(statuses, ['completed', 'skipped', 'skipped'])
        self.order.refresh_from_db()
        self.assertEqual(self.order.flow_status, 'completed')

    def test_skip_action_leaves_out_of_sequence_stages(self):
        queryset = ProductionStage.objects.filter(order=self.order, stage_number=3)
        request = self.admin_request()

        self.model_admin.skip_stages(request, queryset)

        self.assertEqual(ProductionStage.objects.get(order=self.order, stage_number=3).status, 'pending')
        self.assertEqual(len(list(request._messages)), 2)
