from decimal import Decimal

from rest_framework import status
from rest_framework.test import APITestCase

from longation.models import LongationStockEntry
from longation.tests.test_ledger_service import LedgerTestMixin

BASE_URL = '/api/production-flow'


class LongationAPITest(LedgerTestMixin, APITestCase):
    """Ledger browse, totals and allocation endpoints"""

    def setUp(self):
        super().setUp()
        self.entry = self.complete_with_byproduct(self.order, 1, 3)
        self.client.force_authenticate(user=self.user)
        self.client.credentials(HTTP_X_COMPANY_ID='c1')

    def allocate(self, quantity, consumer='PO-X'):
        return self.client.post(
            f'{BASE_URL}/longation-stock/{self.entry.id}/allocate/',
            {'consumer_order_ref': consumer, 'quantity': str(quantity)},
            format='json'
        )

    def test_list_and_filter(self):
        response = self.client.get(f'{BASE_URL}/longation-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        row = response.data['results'][0]
        self.assertEqual(row['source_module'], 'bleaching')
        self.assertEqual(row['status'], 'available')
        self.assertEqual(row['source_order_number'], 'PO-001')

        response = self.client.get(f'{BASE_URL}/longation-stock/', {'source_module': 'felt'})
        self.assertEqual(response.data['count'], 0)

        response = self.client.get(f'{BASE_URL}/longation-stock/', {'status': 'fully_allocated'})
        self.assertEqual(response.data['count'], 0)

    def test_other_company_sees_nothing(self):
        self.client.credentials(HTTP_X_COMPANY_ID='c2')

        response = self.client.get(f'{BASE_URL}/longation-stock/')
        self.assertEqual(response.data['count'], 0)

        response = self.allocate(1)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'ledger_entry_not_found')

    def test_allocate_use_and_insufficient_stock(self):
        response = self.allocate(2)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'allocated')
        self.assertEqual(response.data['consumer_order_ref'], 'PO-X')
        allocation_id = response.data['id']

        response = self.allocate(2, consumer='PO-Y')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'insufficient_stock')
        self.assertTrue(response.data['retryable'])

        response = self.client.post(f'{BASE_URL}/longation-allocations/{allocation_id}/use/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'used')

        response = self.client.post(f'{BASE_URL}/longation-allocations/{allocation_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_cancel_returns_quantity(self):
        allocation_id = self.allocate(2).data['id']

        response = self.client.post(
            f'{BASE_URL}/longation-allocations/{allocation_id}/cancel/',
            {'reason': 'not needed'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.available_quantity, Decimal('3'))

    def test_allocate_validation(self):
        response = self.allocate(0)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(
            f'{BASE_URL}/longation-stock/{self.entry.id}/allocate/',
            {'quantity': '1'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_allocation(self):
        response = self.client.post(f'{BASE_URL}/longation-allocations/999999/use/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'allocation_not_found')

    def test_allocations_list_and_totals(self):
        self.allocate(1)

        response = self.client.get(f'{BASE_URL}/longation-allocations/', {'status': 'allocated'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(f'{BASE_URL}/longation-stock/totals/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_quantity'], 3.0)
        self.assertEqual(response.data['available_quantity'], 2.0)
        self.assertEqual(response.data['allocated_quantity'], 1.0)

    def test_entry_detail_lists_allocations(self):
        self.allocate(1)

        response = self.client.get(f'{BASE_URL}/longation-stock/{self.entry.id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['allocations']), 1)
        self.assertEqual(Decimal(response.data['allocated_quantity']), Decimal('1'))
        self.assertEqual(LongationStockEntry.objects.count(), 1)
