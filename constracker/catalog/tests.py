"""
Comprehensive test suite for Catalog module
Tests: material approval flow, material filters, categories with units, suppliers
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from constracker.catalog.models import Category, Item, Supplier
from constracker.core.models import AuditLog, User
from constracker.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class MaterialAPITests(TestCase):
    """Test material endpoints and the approval flow"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.foreman = TestDataFactory.create_user(role=User.ROLE_FOREMAN)
        self.engineer = TestDataFactory.create_user(role=User.ROLE_ENGINEER)
        self.admin_client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.foreman_client = AuthenticatedAPIClient().authenticate_user(self.foreman)

    def test_admin_created_material_is_approved(self):
        response = self.admin_client.post('/api/materials', {'name': 'Cement 40kg', 'price': '265.00'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['approval_status'], Item.STATUS_APPROVED)
        self.assertTrue(AuditLog.objects.filter(entity_type='Item', action='create').exists())

    def test_non_admin_material_waits_for_approval(self):
        response = self.foreman_client.post('/api/materials', {'name': 'Rebar 10mm', 'price': '180.00'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['approval_status'], Item.STATUS_PENDING)
        self.assertEqual(response.data['created_by'], self.foreman.pk)
        self.assertTrue(AuditLog.objects.filter(entity_type='Item', action='requests').exists())

    def test_client_cannot_self_approve(self):
        response = self.foreman_client.post('/api/materials', {'name': 'Sand', 'approval_status': 'approved'})
        self.assertEqual(response.data['approval_status'], Item.STATUS_PENDING)

    def test_negative_price_rejected(self):
        response = self.admin_client.post('/api/materials', {'name': 'Gravel', 'price': '-5'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_pending_materials_hidden_from_others(self):
        TestDataFactory.create_item(name='Approved Nails')
        TestDataFactory.create_item(name='Mine Pending', approval_status=Item.STATUS_PENDING, created_by=self.foreman)
        foreign = TestDataFactory.create_item(name='Other Pending', approval_status=Item.STATUS_PENDING, created_by=self.engineer)

        response = self.foreman_client.get('/api/materials')
        names = [row['name'] for row in response.data['results']]
        self.assertEqual(names, ['Approved Nails', 'Mine Pending'])

        response = self.foreman_client.get(f'/api/materials/{foreign.pk}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.admin_client.get('/api/materials')
        self.assertEqual(response.data['count'], 3)

    def test_filters(self):
        supplier = TestDataFactory.create_supplier()
        TestDataFactory.create_item(name='Plywood', price=Decimal('500.00'), supplier=supplier)
        TestDataFactory.create_item(name='Paint', price=Decimal('50.00'))
        TestDataFactory.create_item(name='Drill', item_type=Item.TYPE_ASSET)

        response = self.admin_client.get('/api/materials', {'supplier': supplier.pk})
        self.assertEqual([row['name'] for row in response.data['results']], ['Plywood'])

        response = self.admin_client.get('/api/materials', {'min_price': '100', 'item_type': 'material'})
        self.assertEqual([row['name'] for row in response.data['results']], ['Plywood'])

        response = self.admin_client.get('/api/materials', {'search': 'pai'})
        self.assertEqual([row['name'] for row in response.data['results']], ['Paint'])

    def test_invalid_filter_value(self):
        response = self.admin_client.get('/api/materials', {'approval_status': 'maybe'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_approve_pending_material(self):
        item = TestDataFactory.create_item(approval_status=Item.STATUS_PENDING, created_by=self.foreman)
        response = self.admin_client.put(f'/api/materials/{item.pk}/approve')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        item.refresh_from_db()
        self.assertTrue(item.is_approved)
        self.assertTrue(AuditLog.objects.filter(entity_type='Item', action='approved', object_id=str(item.pk)).exists())

    def test_approve_twice_is_not_found(self):
        item = TestDataFactory.create_item(approval_status=Item.STATUS_PENDING)
        self.admin_client.put(f'/api/materials/{item.pk}/approve')
        response = self.admin_client.put(f'/api/materials/{item.pk}/approve')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_only_admin_approves(self):
        item = TestDataFactory.create_item(approval_status=Item.STATUS_PENDING)
        client = AuthenticatedAPIClient().authenticate_user(self.engineer)
        response = client.put(f'/api/materials/{item.pk}/approve')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_decline_removes_submission(self):
        item = TestDataFactory.create_item(name='Odd Tile', approval_status=Item.STATUS_PENDING)
        response = self.admin_client.put(f'/api/materials/{item.pk}/decline', {'remarks': 'duplicate'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Item.objects.filter(pk=item.pk).exists())
        log = AuditLog.objects.get(entity_type='Item', action='declined')
        self.assertEqual(log.object_name, 'declined material Odd Tile: duplicate')

    def test_decline_approved_material_refused(self):
        item = TestDataFactory.create_item()
        response = self.admin_client.put(f'/api/materials/{item.pk}/decline')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_material_in_use_cannot_be_deleted(self):
        project = TestDataFactory.create_project(personnel=[self.foreman])
        item = TestDataFactory.create_item()
        TestDataFactory.create_request(self.foreman, project, [(item, 2)])
        response = self.admin_client.delete(f'/api/materials/{item.pk}')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_logs_price_change(self):
        item = TestDataFactory.create_item(price=Decimal('100.00'))
        response = self.admin_client.patch(f'/api/materials/{item.pk}', {'price': '120.00'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(entity_type='Item', action='edit')
        self.assertEqual(log.changes, [{'field': 'price', 'before': '100.00', 'after': '120.00'}])


class CategoryUnitSupplierTests(TestCase):
    """Test lookup tables"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.bag = TestDataFactory.create_unit(name='Bag', abbreviation='bag')
        self.kilo = TestDataFactory.create_unit(name='Kilogram', abbreviation='kg')

    def test_create_category_with_units(self):
        response = self.client.post('/api/materials/categories', {'name': 'Cement', 'units': [self.bag.pk]})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        category = Category.objects.get(name='Cement')
        self.assertEqual(list(category.units.all()), [self.bag])

        response = self.client.get(f'/api/materials/categories/{category.pk}/units')
        self.assertEqual([row['name'] for row in response.data], ['Bag'])

    def test_unit_must_belong_to_category(self):
        category = TestDataFactory.create_category(units=[self.bag])
        response = self.client.post('/api/materials', {'name': 'Portland', 'category': category.pk, 'unit': self.kilo.pk})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post('/api/materials', {'name': 'Portland', 'category': category.pk, 'unit': self.bag.pk})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_duplicate_unit_name(self):
        response = self.client.post('/api/materials/units', {'name': 'Bag'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_supplier_crud(self):
        response = self.client.post('/api/materials/suppliers', {'name': 'Acme Hardware', 'contact_number': '0917'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        supplier_id = response.data['id']

        response = self.client.patch(f'/api/materials/suppliers/{supplier_id}', {'address': 'Quezon City'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.delete(f'/api/materials/suppliers/{supplier_id}')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Supplier.objects.filter(pk=supplier_id).exists())
        self.assertEqual(AuditLog.objects.filter(entity_type='Supplier').count(), 3)

    def test_non_admin_reads_but_cannot_write(self):
        foreman = TestDataFactory.create_user(role=User.ROLE_FOREMAN)
        client = AuthenticatedAPIClient().authenticate_user(foreman)
        self.assertEqual(client.get('/api/materials/units').status_code, status.HTTP_200_OK)
        response = client.post('/api/materials/units', {'name': 'Meter'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
