from decimal import Decimal
from unittest import mock

from django.db import IntegrityError, transaction
from django.test import TestCase

from longation.ledger_service import LongationLedgerService
from longation.models import LongationStockEntry, LongationAllocation
from production_flow.exceptions import (
    AllocationNotFound,
    FlowValidationError,
    InsufficientStock,
    InvalidTransition,
    LedgerEntryNotFound,
)
from production_flow.stage_execution_service import StageExecutionService
from production_flow.tests.helpers import FlowFixturesMixin


class LedgerTestMixin(FlowFixturesMixin):

    def setUp(self):
        self.user = self.create_user()
        self.create_template()
        self.ledger = LongationLedgerService()
        self.engine = StageExecutionService(ledger_service=self.ledger)
        self.order = self.create_order()
        self.engine.initialize_flow(self.order.id, self.user)

    def complete_with_byproduct(self, order, number, byproduct):
        self.engine.start_stage(order.id, number, self.user)
        self.engine.complete_stage(order.id, number, self.completion(byproduct=byproduct), self.user)
        return LongationStockEntry.objects.get(source_order=order, source_stage_number=number)


class LongationLedgerServiceTest(LedgerTestMixin, TestCase):
    """Allocation lifecycle against a ledger entry"""

    def setUp(self):
        super().setUp()
        self.entry = self.complete_with_byproduct(self.order, 1, 3)

    def test_entry_created_from_stage_completion(self):
        self.assertTrue(self.entry.entry_number.startswith('LS-'))
        self.assertEqual(self.entry.status, 'available')
        self.assertEqual(self.entry.created_by, self.user)
        self.assertTrue(self.ledger.check_conservation(self.entry))

    def test_scenario_allocate_until_insufficient(self):
        """Allocate 2 of 3, a second 2 fails, the first can be used"""
        allocation_x = self.ledger.allocate(self.entry.id, 'PO-X', 2, actor=self.user)

        self.entry.refresh_from_db()
        self.assertEqual(self.entry.available_quantity, Decimal('1'))
        self.assertEqual(allocation_x.status, 'allocated')
        self.assertEqual(allocation_x.allocated_by, self.user)
        self.assertTrue(allocation_x.allocation_number.startswith('LA-'))
        self.assertEqual(self.entry.status, 'partially_allocated')

        with self.assertRaises(InsufficientStock) as ctx:
            self.ledger.allocate(self.entry.id, 'PO-Y', 2, actor=self.user)
        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(LongationAllocation.objects.filter(consumer_order_ref='PO-Y').count(), 0)

        used = self.ledger.use(allocation_x.id, actor=self.user)
        self.assertEqual(used.status, 'used')
        self.assertEqual(used.used_by, self.user)
        self.assertIsNotNone(used.used_at)

        self.entry.refresh_from_db()
        self.assertEqual(self.entry.available_quantity, Decimal('1'))
        self.assertTrue(self.ledger.check_conservation(self.entry))

    def test_allocation_from_outdated_snapshot_is_rejected(self):
        """The decrement is checked in the database, not against the caller's copy of the entry"""
        snapshot = LongationStockEntry.objects.get(pk=self.entry.pk)
        self.ledger.allocate(self.entry.id, 'PO-A', 2)

        with mock.patch.object(LongationLedgerService, '_get_entry', return_value=snapshot):
            # snapshot was read before PO-A committed and still shows 3 available
            self.assertEqual(snapshot.available_quantity, Decimal('3'))
            with self.assertRaises(InsufficientStock):
                self.ledger.allocate(self.entry.id, 'PO-B', 2)

        self.assertFalse(LongationAllocation.objects.filter(consumer_order_ref='PO-B').exists())
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.available_quantity, Decimal('1'))
        self.assertTrue(self.ledger.check_conservation(self.entry))

        with mock.patch.object(LongationLedgerService, '_get_entry', return_value=snapshot):
            allocation = self.ledger.allocate(self.entry.id, 'PO-C', 1)
        self.assertEqual(allocation.quantity, Decimal('1'))
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.available_quantity, Decimal('0'))
        self.assertTrue(self.ledger.check_conservation(self.entry))

    def test_allocate_everything(self):
        self.ledger.allocate(self.entry.id, 'PO-A', 1)
        self.ledger.allocate(self.entry.id, 'PO-B', 2)

        self.entry.refresh_from_db()
        self.assertEqual(self.entry.available_quantity, Decimal('0'))
        self.assertEqual(self.entry.status, 'fully_allocated')
        self.assertTrue(self.ledger.check_conservation(self.entry))

    def test_allocate_then_cancel_restores_availability(self):
        allocation = self.ledger.allocate(self.entry.id, 'PO-A', 2)

        cancelled = self.ledger.cancel_allocation(allocation.id, actor=self.user, reason='order dropped')

        self.assertEqual(cancelled.status, 'cancelled')
        self.assertEqual(cancelled.cancelled_by, self.user)
        self.assertEqual(cancelled.cancel_reason, 'order dropped')
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.available_quantity, Decimal('3'))
        self.assertEqual(self.entry.status, 'available')
        self.assertTrue(self.ledger.check_conservation(self.entry))

    def test_terminal_allocations_cannot_transition(self):
        used = self.ledger.allocate(self.entry.id, 'PO-A', 1)
        self.ledger.use(used.id)
        cancelled = self.ledger.allocate(self.entry.id, 'PO-B', 1)
        self.ledger.cancel_allocation(cancelled.id)

        with self.assertRaises(InvalidTransition):
            self.ledger.use(used.id)
        with self.assertRaises(InvalidTransition):
            self.ledger.cancel_allocation(used.id)
        with self.assertRaises(InvalidTransition):
            self.ledger.use(cancelled.id)
        with self.assertRaises(InvalidTransition):
            self.ledger.cancel_allocation(cancelled.id)

        # cancelling twice must not return the quantity twice
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.available_quantity, Decimal('2'))
        self.assertTrue(self.ledger.check_conservation(self.entry))

    def test_allocate_validation(self):
        with self.assertRaises(FlowValidationError):
            self.ledger.allocate(self.entry.id, 'PO-A', 0)
        with self.assertRaises(FlowValidationError):
            self.ledger.allocate(self.entry.id, 'PO-A', -1)
        with self.assertRaises(FlowValidationError):
            self.ledger.allocate(self.entry.id, '', 1)
        with self.assertRaises(FlowValidationError):
            self.ledger.allocate(self.entry.id, 'PO-A', '1e30')
        with self.assertRaises(FlowValidationError):
            self.ledger.allocate(self.entry.id, 'PO-A', '12345678901')
        with self.assertRaises(LedgerEntryNotFound):
            self.ledger.allocate(999999, 'PO-A', 1)

        self.entry.refresh_from_db()
        self.assertEqual(self.entry.available_quantity, Decimal('3'))

    def test_company_isolation(self):
        with self.assertRaises(LedgerEntryNotFound):
            self.ledger.allocate(self.entry.id, 'PO-A', 1, company_id='c2')

        allocation = self.ledger.allocate(self.entry.id, 'PO-A', 1, company_id='c1')
        with self.assertRaises(AllocationNotFound):
            self.ledger.use(allocation.id, company_id='c2')
        with self.assertRaises(AllocationNotFound):
            self.ledger.cancel_allocation(allocation.id, company_id='c2')

    def test_one_entry_per_order_stage(self):
        stage = self.order.stages.get(stage_number=1)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                self.ledger.append_entry(self.order, stage, 5)

    def test_browse_filters(self):
        second = self.complete_with_byproduct(self.order, 2, 4)
        self.ledger.allocate(second.id, 'PO-A', 4)

        self.assertEqual(
            list(self.ledger.browse(company_id='c1', source_module='washing')), [second]
        )
        self.assertEqual(
            list(self.ledger.browse(company_id='c1', status='available')), [self.entry]
        )
        self.assertEqual(
            list(self.ledger.browse(company_id='c1', status='fully_allocated')), [second]
        )
        self.assertEqual(list(self.ledger.browse(company_id='c2')), [])

    def test_totals(self):
        second = self.complete_with_byproduct(self.order, 2, 4)
        allocation = self.ledger.allocate(second.id, 'PO-A', 1)
        self.ledger.use(allocation.id)
        self.ledger.allocate(self.entry.id, 'PO-B', 2)

        totals = self.ledger.totals(company_id='c1')

        self.assertEqual(totals['entry_count'], 2)
        self.assertEqual(totals['total_quantity'], 7.0)
        self.assertEqual(totals['available_quantity'], 4.0)
        self.assertEqual(totals['allocated_quantity'], 2.0)
        self.assertEqual(totals['used_quantity'], 1.0)
        self.assertEqual(totals['by_source_module']['bleaching']['available_quantity'], 1.0)
        self.assertEqual(totals['by_source_module']['washing']['total_quantity'], 4.0)
        self.assertEqual(self.ledger.totals(company_id='c2')['entry_count'], 0)
