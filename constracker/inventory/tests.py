"""
Test suite for the inventory app
Tests: ledger posting and balances, inventory views, manual adjustments
"""
from django.test import TestCase
from rest_framework import status
from constracker.core.exceptions import ValidationError
from constracker.core.models import AuditLog, ImmutableRecordError, User
from constracker.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from constracker.inventory import ledger
from constracker.inventory.models import InventoryMovement

IN = InventoryMovement.DIRECTION_IN
OUT = InventoryMovement.DIRECTION_OUT


class LedgerTests(TestCase):
    """Balances are derived from movements only"""

    def setUp(self):
        self.item = TestDataFactory.create_item(name='Cement')
        self.project = TestDataFactory.create_project()

    def test_empty_balance_is_zero(self):
        self.assertEqual(ledger.balance(self.item), 0)
        self.assertEqual(ledger.balance(self.item, self.project), 0)

    def test_balance_is_in_minus_out_per_scope(self):
        ledger.post(self.item, None, IN, 50, InventoryMovement.SOURCE_ADJUSTMENT)
        ledger.post(self.item, None, OUT, 10, InventoryMovement.SOURCE_MAIN_INVENTORY)
        ledger.post(self.item, self.project, IN, 10, InventoryMovement.SOURCE_MAIN_INVENTORY)

        self.assertEqual(ledger.balance(self.item), 40)
        self.assertEqual(ledger.balance(self.item, self.project), 10)
        self.assertEqual(ledger.balance(self.item.pk, self.project.pk), 10)

    def test_balances_listing(self):
        other = TestDataFactory.create_item(name='Aggregate')
        ledger.post(self.item, None, IN, 5, InventoryMovement.SOURCE_ADJUSTMENT)
        ledger.post(other, None, IN, 7, InventoryMovement.SOURCE_ADJUSTMENT)
        ledger.post(other, None, OUT, 2, InventoryMovement.SOURCE_ADJUSTMENT)

        rows = ledger.balances(None)
        self.assertEqual([row['item_name'] for row in rows], ['Aggregate', 'Cement'])
        self.assertEqual(rows[0]['total_in'], 7)
        self.assertEqual(rows[0]['total_out'], 2)
        self.assertEqual(rows[0]['balance'], 5)
        self.assertEqual(ledger.balances(self.project), [])

    def test_rejects_bad_movements(self):
        with self.assertRaises(ValidationError):
            ledger.post(self.item, None, 'sideways', 1, InventoryMovement.SOURCE_ADJUSTMENT)
        with self.assertRaises(ValidationError):
            ledger.post(self.item, None, IN, 1, 'gift')
        with self.assertRaises(ValidationError):
            ledger.post(self.item, None, IN, 0, InventoryMovement.SOURCE_ADJUSTMENT)
        with self.assertRaises(ValidationError):
            ledger.post(self.item, None, IN, 2.5, InventoryMovement.SOURCE_ADJUSTMENT)
        self.assertEqual(InventoryMovement.objects.count(), 0)

    def test_movements_are_append_only(self):
        movement = ledger.post(self.item, None, IN, 3, InventoryMovement.SOURCE_ADJUSTMENT)
        movement.quantity = 30
        with self.assertRaises(ImmutableRecordError):
            movement.save()
        with self.assertRaises(ImmutableRecordError):
            movement.delete()
        with self.assertRaises(ImmutableRecordError):
            InventoryMovement.objects.filter(pk=movement.pk).update(quantity=30)


class InventoryAPITests(TestCase):
    """Test inventory read endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.foreman = TestDataFactory.create_user(role=User.ROLE_FOREMAN)
        self.mine = TestDataFactory.create_project(name='Mine', personnel=[self.foreman])
        self.other = TestDataFactory.create_project(name='Other')
        self.item = TestDataFactory.create_item(name='Rebar')
        TestDataFactory.stock_central(self.item, 100)
        ledger.post(self.item, self.mine, IN, 20, InventoryMovement.SOURCE_MAIN_INVENTORY)
        ledger.post(self.item, self.other, IN, 30, InventoryMovement.SOURCE_SUPPLIER)
        self.client = AuthenticatedAPIClient().authenticate_user(self.foreman)

    def test_central_inventory(self):
        response = self.client.get('/api/inventory')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['balance'], 100)

    def test_project_inventory(self):
        response = self.client.get(f'/api/inventory/project/{self.mine.pk}')
        self.assertEqual(response.data['project'], {'id': self.mine.pk, 'name': 'Mine'})
        self.assertEqual(response.data['items'][0]['balance'], 20)

    def test_project_inventory_outside_assignment(self):
        response = self.client.get(f'/api/inventory/project/{self.other.pk}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_movement_list_respects_visibility(self):
        response = self.client.get('/api/inventory/movements')
        self.assertEqual(response.data['count'], 2)
        projects = {row['project'] for row in response.data['results']}
        self.assertEqual(projects, {None, self.mine.pk})

    def test_movement_filters(self):
        admin_client = AuthenticatedAPIClient().authenticate_user(self.admin)
        response = admin_client.get('/api/inventory/movements', {'central': 'true'})
        self.assertEqual(response.data['count'], 1)
        response = admin_client.get('/api/inventory/movements', {'source': InventoryMovement.SOURCE_SUPPLIER})
        self.assertEqual(response.data['results'][0]['project'], self.other.pk)


class AdjustmentTests(TestCase):
    """Test manual stock adjustments"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.item = TestDataFactory.create_item(name='Plywood')
        self.project = TestDataFactory.create_project()
        TestDataFactory.stock_central(self.item, 10)
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_adjust_in_to_project(self):
        response = self.client.post('/api/inventory/adjustments', {
            'item': self.item.pk, 'project': self.project.pk, 'direction': IN, 'quantity': 4, 'remarks': 'opening count',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(ledger.balance(self.item, self.project), 4)
        log = AuditLog.objects.get(action='adjusted')
        self.assertEqual(log.project_id, self.project.pk)

    def test_adjust_out_of_central(self):
        response = self.client.post('/api/inventory/adjustments', {
            'item': self.item.pk, 'direction': OUT, 'quantity': 3, 'remarks': 'damaged in storage',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(ledger.balance(self.item), 7)

    def test_cannot_remove_more_than_on_hand(self):
        response = self.client.post('/api/inventory/adjustments', {
            'item': self.item.pk, 'direction': OUT, 'quantity': 11, 'remarks': 'shrinkage',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(ledger.balance(self.item), 10)
        self.assertFalse(AuditLog.objects.filter(action='adjusted').exists())

    def test_remarks_required(self):
        response = self.client.post('/api/inventory/adjustments', {
            'item': self.item.pk, 'direction': IN, 'quantity': 1, 'remarks': '   ',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_zero_quantity_rejected(self):
        response = self.client.post('/api/inventory/adjustments', {
            'item': self.item.pk, 'direction': IN, 'quantity': 0, 'remarks': 'nothing',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_only(self):
        engineer = TestDataFactory.create_user(role=User.ROLE_ENGINEER)
        client = AuthenticatedAPIClient().authenticate_user(engineer)
        response = client.post('/api/inventory/adjustments', {
            'item': self.item.pk, 'direction': IN, 'quantity': 1, 'remarks': 'found',
        })
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
