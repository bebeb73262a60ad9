from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from longation.models import LongationStockEntry
from production_flow.exceptions import (
    AlreadyInitialized,
    FlowNotInitialized,
    FlowValidationError,
    InvalidTransition,
    OrderNotApproved,
    OrderNotFound,
    PreviousStageIncomplete,
    StageAlreadyActive,
    StageNotFound,
    TemplateNotFound,
)
from production_flow.models import ProductionStage, StageHoldLog, StageDefinition
from production_flow.stage_execution_service import StageExecutionService
from production_flow.tests.helpers import FlowFixturesMixin


class FailingLedger:
    """Ledger double whose append always fails"""

    def append_entry(self, order, stage, quantity, actor=None, reason=''):
        raise RuntimeError('ledger unavailable')


class InitializeFlowTest(FlowFixturesMixin, TestCase):
    """Materializing an order's stages from its template"""

    def setUp(self):
        self.user = self.create_user()
        self.template = self.create_template()
        self.service = StageExecutionService()

    def test_initialize_creates_pending_stages(self):
        order = self.create_order()

        snapshot = self.service.initialize_flow(order.id, self.user)

        order.refresh_from_db()
        self.assertEqual(order.flow_status, 'not_started')
        self.assertEqual(order.flow_initialized_by, self.user)
        self.assertIsNotNone(order.flow_initialized_at)
        self.assertEqual(snapshot['total_stages'], 3)
        self.assertEqual(snapshot['percent_complete'], 0)

        stages = list(order.stages.order_by('stage_number'))
        self.assertEqual([s.stage_number for s in stages], [1, 2, 3])
        self.assertEqual([s.stage_type for s in stages], ['bleaching', 'washing', 'felt'])
        self.assertTrue(all(s.status == 'pending' for s in stages))
        self.assertEqual(stages[0].planned_quantity, Decimal('100'))
        self.assertTrue(stages[2].quality_check_required)

    def test_unapproved_order_rejected(self):
        order = self.create_order(approval_status='pending')

        with self.assertRaises(OrderNotApproved):
            self.service.initialize_flow(order.id, self.user)
        self.assertFalse(order.stages.exists())

    def test_initialize_twice_rejected(self):
        order = self.create_order()
        self.service.initialize_flow(order.id, self.user)

        with self.assertRaises(AlreadyInitialized):
            self.service.initialize_flow(order.id, self.user)
        self.assertEqual(order.stages.count(), 3)

    def test_missing_template(self):
        order = self.create_order(product_type='velvet')

        with self.assertRaises(TemplateNotFound):
            self.service.initialize_flow(order.id, self.user)

        order.refresh_from_db()
        self.assertEqual(order.flow_status, 'not_initialized')
        self.assertIsNone(order.flow_initialized_at)

    def test_unknown_order(self):
        with self.assertRaises(OrderNotFound):
            self.service.initialize_flow(999999, self.user)

    def test_other_company_order_not_found(self):
        order = self.create_order(company_id='c2')

        with self.assertRaises(OrderNotFound):
            self.service.initialize_flow(order.id, self.user, company_id='c1')

    def test_stages_are_frozen_copy_of_template(self):
        """Template edits after initialization do not reach existing orders"""
        order = self.create_order()
        self.service.initialize_flow(order.id, self.user)

        StageDefinition.objects.filter(template=self.template, stage_number=2).update(stage_type='dyeing')
        StageDefinition.objects.create(template=self.template, stage_number=4, stage_type='finishing')

        stages = list(order.stages.order_by('stage_number'))
        self.assertEqual(len(stages), 3)
        self.assertEqual(stages[1].stage_type, 'washing')


class StageTransitionTest(FlowFixturesMixin, TestCase):
    """Start / complete / hold / resume on an initialized order"""

    def setUp(self):
        self.user = self.create_user()
        self.create_template()
        self.service = StageExecutionService()
        self.order = self.create_order()
        self.service.initialize_flow(self.order.id, self.user)

    def stage(self, number):
        return ProductionStage.objects.get(order=self.order, stage_number=number)

    def test_scenario_complete_first_stage_with_byproduct(self):
        """Start stage 1, stage 2 blocked, completion writes one ledger entry"""
        stage = self.service.start_stage(self.order.id, 1, self.user)
        self.assertEqual(stage.status, 'in_progress')
        self.assertEqual(stage.started_by, self.user)

        with self.assertRaises(PreviousStageIncomplete):
            self.service.start_stage(self.order.id, 2, self.user)

        self.service.complete_stage(
            self.order.id, 1, self.completion(actual=100, defect=5, byproduct=3), self.user
        )

        stage = self.stage(1)
        self.assertEqual(stage.status, 'completed')
        self.assertEqual(stage.completed_by, self.user)
        self.assertEqual(stage.actual_quantity, Decimal('100'))
        self.assertEqual(stage.defect_quantity, Decimal('5'))

        entries = LongationStockEntry.objects.filter(source_order=self.order)
        self.assertEqual(entries.count(), 1)
        entry = entries.get()
        self.assertEqual(entry.quantity, Decimal('3'))
        self.assertEqual(entry.available_quantity, Decimal('3'))
        self.assertEqual(entry.source_stage_number, 1)
        self.assertEqual(entry.source_module, 'bleaching')
        self.assertEqual(entry.lot_number, 'LOT-7')
        self.assertEqual(entry.company_id, 'c1')

        self.order.refresh_from_db()
        self.assertEqual(self.order.flow_status, 'in_progress')
        self.assertEqual(self.order.rejected_quantity, Decimal('5'))
        self.assertEqual(self.stage(2).planned_quantity, Decimal('100'))

    def test_no_ledger_entry_without_byproduct(self):
        self.service.start_stage(self.order.id, 1, self.user)
        self.service.complete_stage(self.order.id, 1, self.completion(byproduct=0), self.user)

        self.assertFalse(LongationStockEntry.objects.exists())

    def test_first_start_sets_order_start_date(self):
        self.service.start_stage(self.order.id, 1, self.user)

        self.order.refresh_from_db()
        self.assertIsNotNone(self.order.actual_start_date)
        self.assertEqual(self.order.flow_status, 'in_progress')

    def test_start_requires_initialized_flow(self):
        order = self.create_order(order_number='PO-002')

        with self.assertRaises(FlowNotInitialized):
            self.service.start_stage(order.id, 1, self.user)

    def test_unknown_stage_number(self):
        with self.assertRaises(StageNotFound):
            self.service.start_stage(self.order.id, 4, self.user)
        with self.assertRaises(StageNotFound):
            self.service.start_stage(self.order.id, 0, self.user)

    def test_start_active_stage_again_rejected(self):
        self.service.start_stage(self.order.id, 1, self.user)

        with self.assertRaises(InvalidTransition):
            self.service.start_stage(self.order.id, 1, self.user)

    def test_only_one_active_stage(self):
        """A skipped stage does not let a later stage run beside the active one"""
        self.service.start_stage(self.order.id, 1, self.user)
        ProductionStage.objects.filter(order=self.order, stage_number=2).update(status='skipped')

        with self.assertRaises(StageAlreadyActive):
            self.service.start_stage(self.order.id, 3, self.user)
        self.assertEqual(self.stage(3).status, 'pending')

    def test_skip_stage_passes_quantity_on(self):
        self.service.start_stage(self.order.id, 1, self.user)
        self.service.complete_stage(self.order.id, 1, self.completion(actual=95), self.user)

        stage = self.service.skip_stage(self.order.id, 2, self.user, reason='no washing for this lot')

        self.assertEqual(stage.status, 'skipped')
        self.assertEqual(stage.notes, 'no washing for this lot')
        self.assertEqual(self.stage(3).planned_quantity, Decimal('95'))
        self.service.start_stage(self.order.id, 3, self.user)
        self.assertEqual(self.stage(3).status, 'in_progress')

    def test_skip_stage_follows_sequencing(self):
        with self.assertRaises(PreviousStageIncomplete):
            self.service.skip_stage(self.order.id, 2, self.user)

        self.service.start_stage(self.order.id, 1, self.user)
        with self.assertRaises(InvalidTransition):
            self.service.skip_stage(self.order.id, 1, self.user)
        self.assertEqual(self.stage(2).status, 'pending')

    def test_skipping_last_stage_completes_the_flow(self):
        for number in (1, 2):
            self.service.start_stage(self.order.id, number, self.user)
            self.service.complete_stage(self.order.id, number, self.completion(actual=90), self.user)

        self.service.skip_stage(self.order.id, 3, self.user)

        self.order.refresh_from_db()
        self.assertEqual(self.order.flow_status, 'completed')
        self.assertEqual(self.order.completed_quantity, Decimal('90'))
        self.assertIsNotNone(self.order.actual_end_date)

    def test_complete_requires_in_progress(self):
        with self.assertRaises(InvalidTransition):
            self.service.complete_stage(self.order.id, 1, self.completion(), self.user)

    def test_complete_validation(self):
        self.service.start_stage(self.order.id, 1, self.user)

        with self.assertRaises(FlowValidationError):
            self.service.complete_stage(self.order.id, 1, self.completion(defect=-1), self.user)
        with self.assertRaises(FlowValidationError):
            self.service.complete_stage(self.order.id, 1, self.completion(grade='D'), self.user)
        with self.assertRaises(FlowValidationError):
            self.service.complete_stage(self.order.id, 1, {'quality_grade': 'A'}, self.user)
        with self.assertRaises(FlowValidationError):
            self.service.complete_stage(self.order.id, 1, self.completion(actual='lots'), self.user)
        with self.assertRaises(FlowValidationError):
            self.service.complete_stage(self.order.id, 1, self.completion(actual='1e30'), self.user)
        with self.assertRaises(FlowValidationError):
            self.service.complete_stage(self.order.id, 1, self.completion(byproduct='12345678901'), self.user)

        self.assertEqual(self.stage(1).status, 'in_progress')

    def test_failed_completion_leaves_no_partial_mutation(self):
        """A ledger failure rolls back the stage and order changes too"""
        service = StageExecutionService(ledger_service=FailingLedger())
        service.start_stage(self.order.id, 1, self.user)

        with self.assertRaises(RuntimeError):
            service.complete_stage(self.order.id, 1, self.completion(defect=5, byproduct=3), self.user)

        stage = self.stage(1)
        self.assertEqual(stage.status, 'in_progress')
        self.assertIsNone(stage.actual_quantity)
        self.order.refresh_from_db()
        self.assertEqual(self.order.rejected_quantity, Decimal('0'))
        self.assertEqual(self.stage(2).planned_quantity, Decimal('0'))

    def test_reject_grade_is_recorded_without_rework(self):
        self.service.start_stage(self.order.id, 1, self.user)
        self.service.complete_stage(self.order.id, 1, self.completion(grade='Reject'), self.user)

        self.assertEqual(self.stage(1).quality_grade, 'Reject')
        self.assertEqual(self.order.stages.count(), 3)
        self.service.start_stage(self.order.id, 2, self.user)

    def test_scenario_hold_and_resume(self):
        """Hold puts the order on hold; resume restores it and completion still works"""
        self.service.start_stage(self.order.id, 1, self.user)

        self.service.hold_stage(self.order.id, 1, 'machine breakdown', self.user, reason_code='machine_breakdown')
        self.order.refresh_from_db()
        self.assertEqual(self.order.flow_status, 'on_hold')
        stage = self.stage(1)
        self.assertEqual(stage.status, 'held')
        self.assertEqual(stage.hold_reason, 'machine breakdown')
        self.assertEqual(stage.held_by, self.user)

        self.service.resume_stage(self.order.id, 1, self.user)
        self.order.refresh_from_db()
        self.assertEqual(self.order.flow_status, 'in_progress')
        self.assertEqual(self.stage(1).resumed_by, self.user)

        self.service.complete_stage(self.order.id, 1, self.completion(), self.user)
        self.assertEqual(self.stage(1).status, 'completed')

    def test_resume_accumulates_held_duration(self):
        self.service.start_stage(self.order.id, 1, self.user)
        self.service.hold_stage(self.order.id, 1, 'power cut', self.user, reason_code='power_cut')

        # Pretend the hold began 30 minutes ago
        earlier = timezone.now() - timedelta(minutes=30)
        ProductionStage.objects.filter(order=self.order, stage_number=1).update(held_at=earlier)
        StageHoldLog.objects.filter(order=self.order).update(held_at=earlier)

        self.service.resume_stage(self.order.id, 1, self.user, notes='power restored')

        stage = self.stage(1)
        self.assertGreaterEqual(stage.held_duration, timedelta(minutes=30))
        self.assertLess(stage.held_duration, timedelta(minutes=31))

        log = StageHoldLog.objects.get(stage=stage)
        self.assertTrue(log.is_resumed)
        self.assertEqual(log.reason_code, 'power_cut')
        self.assertEqual(log.downtime_minutes, 30)
        self.assertEqual(log.resume_notes, 'power restored')

        # A second hold adds to the total
        self.service.hold_stage(self.order.id, 1, 'maintenance', self.user, reason_code='maintenance')
        ProductionStage.objects.filter(order=self.order, stage_number=1).update(
            held_at=timezone.now() - timedelta(minutes=10)
        )
        self.service.resume_stage(self.order.id, 1, self.user)

        self.assertGreaterEqual(self.stage(1).held_duration, timedelta(minutes=40))
        self.assertEqual(StageHoldLog.objects.filter(stage=stage).count(), 2)

    def test_hold_requires_reason(self):
        self.service.start_stage(self.order.id, 1, self.user)

        with self.assertRaises(FlowValidationError):
            self.service.hold_stage(self.order.id, 1, '   ', self.user)
        with self.assertRaises(FlowValidationError):
            self.service.hold_stage(self.order.id, 1, 'storm', self.user, reason_code='weather')
        self.assertEqual(self.stage(1).status, 'in_progress')

    def test_hold_and_resume_state_checks(self):
        with self.assertRaises(InvalidTransition):
            self.service.hold_stage(self.order.id, 1, 'not started yet', self.user)

        self.service.start_stage(self.order.id, 1, self.user)
        with self.assertRaises(InvalidTransition):
            self.service.resume_stage(self.order.id, 1, self.user)

        self.service.hold_stage(self.order.id, 1, 'quality issue', self.user)
        with self.assertRaises(InvalidTransition):
            self.service.complete_stage(self.order.id, 1, self.completion(), self.user)
        with self.assertRaises(InvalidTransition):
            self.service.hold_stage(self.order.id, 1, 'again', self.user)

    def test_held_stage_blocks_next_start(self):
        self.service.start_stage(self.order.id, 1, self.user)
        self.service.hold_stage(self.order.id, 1, 'material shortage', self.user)

        with self.assertRaises(PreviousStageIncomplete):
            self.service.start_stage(self.order.id, 2, self.user)

    def test_scenario_complete_all_stages(self):
        """Completing the last stage completes the order; nothing can restart"""
        quantities = [(100, 5), (95, 2), (92, 1)]
        for number, (actual, defect) in enumerate(quantities, start=1):
            self.service.start_stage(self.order.id, number, self.user)
            self.service.complete_stage(
                self.order.id, number, self.completion(actual=actual, defect=defect), self.user
            )

        self.order.refresh_from_db()
        self.assertEqual(self.order.flow_status, 'completed')
        self.assertEqual(self.order.completed_quantity, Decimal('92'))
        self.assertEqual(self.order.rejected_quantity, Decimal('8'))
        self.assertIsNotNone(self.order.actual_end_date)
        self.assertEqual(self.stage(3).planned_quantity, Decimal('95'))

        snapshot = self.service.get_flow_status(self.order.id)
        self.assertEqual(snapshot['percent_complete'], 100)
        self.assertEqual(snapshot['completed_stages'], 3)
        self.assertIsNone(snapshot['current_stage'])
        self.assertIsNone(snapshot['next_stage'])

        for number in (1, 2, 3):
            with self.assertRaises(InvalidTransition):
                self.service.start_stage(self.order.id, number, self.user)

    def test_flow_status_snapshot(self):
        self.service.start_stage(self.order.id, 1, self.user)
        self.service.complete_stage(self.order.id, 1, self.completion(), self.user)
        self.service.start_stage(self.order.id, 2, self.user)

        snapshot = self.service.get_flow_status(self.order.id, company_id='c1')

        self.assertEqual(snapshot['flow_status'], 'in_progress')
        self.assertEqual(snapshot['total_stages'], 3)
        self.assertEqual(snapshot['completed_stages'], 1)
        self.assertEqual(snapshot['percent_complete'], 33)
        self.assertEqual(snapshot['current_stage']['stage_number'], 2)
        self.assertEqual(snapshot['next_stage']['stage_number'], 3)
        self.assertEqual(snapshot['stages'][0]['completed_by'], 'operator')
        self.assertEqual(snapshot['order']['order_number'], 'PO-001')

    def test_company_isolation(self):
        with self.assertRaises(OrderNotFound):
            self.service.start_stage(self.order.id, 1, self.user, company_id='c2')
        with self.assertRaises(OrderNotFound):
            self.service.get_flow_status(self.order.id, company_id='c2')
        self.assertEqual(self.stage(1).status, 'pending')
