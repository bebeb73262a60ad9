from django.test import SimpleTestCase

from production_flow.models import derive_flow_status


class DeriveFlowStatusTest(SimpleTestCase):
    """Order flow status as a function of its stage statuses"""

    def test_all_pending_is_not_started(self):
        self.assertEqual(derive_flow_status(['pending', 'pending', 'pending']), 'not_started')

    def test_no_stages_is_not_started(self):
        self.assertEqual(derive_flow_status([]), 'not_started')

    def test_active_stage_is_in_progress(self):
        self.assertEqual(derive_flow_status(['in_progress', 'pending', 'pending']), 'in_progress')

    def test_partly_completed_is_in_progress(self):
        """Between stages nothing is active but the order has started"""
        self.assertEqual(derive_flow_status(['completed', 'pending', 'pending']), 'in_progress')

    def test_held_stage_puts_order_on_hold(self):
        self.assertEqual(derive_flow_status(['completed', 'held', 'pending']), 'on_hold')

    def test_all_completed_is_completed(self):
        self.assertEqual(derive_flow_status(['completed', 'completed', 'completed']), 'completed')

    def test_skipped_counts_as_done(self):
        self.assertEqual(derive_flow_status(['completed', 'skipped', 'completed']), 'completed')
        self.assertEqual(derive_flow_status(['skipped', 'pending']), 'in_progress')

    def test_accepts_any_iterable(self):
        self.assertEqual(derive_flow_status(s for s in ['completed', 'in_progress']), 'in_progress')
