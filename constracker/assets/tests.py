"""
Test suite for the assets app
"""
from django.test import TestCase
from rest_framework import status
from constracker.assets.models import Asset
from constracker.catalog.models import Item
from constracker.core.models import AuditLog, User
from constracker.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class AssetAPITests(TestCase):
    """Test asset registration and visibility"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.foreman = TestDataFactory.create_user(role=User.ROLE_FOREMAN)
        self.project = TestDataFactory.create_project(personnel=[self.foreman])
        self.other = TestDataFactory.create_project()
        self.mixer = TestDataFactory.create_item(name='Concrete Mixer', item_type=Item.TYPE_ASSET)
        self.admin_client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.foreman_client = AuthenticatedAPIClient().authenticate_user(self.foreman)

    def test_register_asset(self):
        response = self.admin_client.post('/api/assets', {
            'item': self.mixer.pk, 'serial_number': ' MX-001 ', 'project': self.project.pk,
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['serial_number'], 'MX-001')
        self.assertEqual(response.data['usage_status'], 'available')
        log = AuditLog.objects.get(entity_type='Asset', action='create')
        self.assertEqual(log.project_id, self.project.pk)

    def test_material_items_cannot_be_assets(self):
        cement = TestDataFactory.create_item(name='Cement')
        response = self.admin_client.post('/api/assets', {'item': cement.pk, 'serial_number': 'X-1'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_serial_numbers_are_unique(self):
        TestDataFactory.create_asset(item=self.mixer, serial_number='MX-001')
        response = self.admin_client.post('/api/assets', {'item': self.mixer.pk, 'serial_number': 'MX-001'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_scoped_to_projects(self):
        TestDataFactory.create_asset(item=self.mixer, project=self.project)
        TestDataFactory.create_asset(item=self.mixer, project=self.other)
        TestDataFactory.create_asset(item=self.mixer)

        response = self.foreman_client.get('/api/assets')
        self.assertEqual(response.data['count'], 1)

        response = self.admin_client.get('/api/assets')
        self.assertEqual(response.data['count'], 3)

    def test_detail_outside_projects_forbidden(self):
        asset = TestDataFactory.create_asset(item=self.mixer, project=self.other)
        response = self.foreman_client.get(f'/api/assets/{asset.pk}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_usage_logs_change(self):
        asset = TestDataFactory.create_asset(item=self.mixer, project=self.project)
        response = self.admin_client.patch(f'/api/assets/{asset.pk}', {'usage_status': 'in-use'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(entity_type='Asset', action='edit')
        self.assertEqual(log.changes, [{'field': 'usage_status', 'before': 'available', 'after': 'in-use'}])

    def test_foreman_cannot_edit(self):
        asset = TestDataFactory.create_asset(item=self.mixer, project=self.project)
        response = self.foreman_client.patch(f'/api/assets/{asset.pk}', {'usage_status': 'retired'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_asset(self):
        asset = TestDataFactory.create_asset(item=self.mixer)
        response = self.admin_client.delete(f'/api/assets/{asset.pk}')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Asset.objects.filter(pk=asset.pk).exists())

    def test_asset_items(self):
        TestDataFactory.create_asset(item=self.mixer)
        TestDataFactory.create_item(name='Generator', item_type=Item.TYPE_ASSET, approval_status=Item.STATUS_PENDING)
        response = self.foreman_client.get('/api/assets/items')
        self.assertEqual([(row['name'], row['asset_count']) for row in response.data], [('Concrete Mixer', 1)])
