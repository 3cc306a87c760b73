"""
Test utilities and factories for creating test data
"""
from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from constracker.core.authentication import build_refresh_token
from constracker.projects.models import Project, ProjectAssignment, Milestone, Task
from constracker.catalog.models import Category, Unit, Supplier, Item
from constracker.procurement import workflow
from constracker.inventory import ledger
from constracker.inventory.models import InventoryMovement
from constracker.assets.models import Asset
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(role=User.ROLE_FOREMAN, username=None, email=None, password='testpass123', full_name=None,
                    is_superuser=False, is_active=True):
        """Create a test user with a site role"""
        if not username:
            username = f'{role}_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            full_name=full_name or username.replace('_', ' ').title(),
            role=role,
            is_superuser=is_superuser,
            is_active=is_active,
        )

    @staticmethod
    def create_admin(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_ADMIN, **kwargs)

    @staticmethod
    def create_project(name=None, status=Project.STATUS_IN_PROGRESS, personnel=()):
        """Create a test project and assign the given users to it"""
        if not name:
            name = f'Project_{TestDataFactory.random_string(6)}'
        project = Project.objects.create(
            name=name,
            location=f'Site of {name}',
            budget=Decimal('1000000.00'),
            status=status,
        )
        for user in personnel:
            ProjectAssignment.objects.create(project=project, user=user)
        return project

    @staticmethod
    def assign(user, project):
        return ProjectAssignment.objects.create(project=project, user=user)

    @staticmethod
    def create_milestone(project, name=None, status=Milestone.STATUS_NOT_STARTED):
        if not name:
            name = f'Milestone_{TestDataFactory.random_string(6)}'
        return Milestone.objects.create(project=project, name=name, status=status)

    @staticmethod
    def create_task(milestone, name=None, status=Task.STATUS_NOT_STARTED, assigned_to=None):
        if not name:
            name = f'Task_{TestDataFactory.random_string(6)}'
        return Task.objects.create(milestone=milestone, name=name, status=status, assigned_to=assigned_to)

    @staticmethod
    def create_unit(name=None, abbreviation='pc'):
        if not name:
            name = f'Unit_{TestDataFactory.random_string(6)}'
        return Unit.objects.create(name=name, abbreviation=abbreviation)

    @staticmethod
    def create_category(name=None, units=()):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        category = Category.objects.create(name=name)
        if units:
            category.units.set(units)
        return category

    @staticmethod
    def create_supplier(name=None):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        return Supplier.objects.create(
            name=name,
            address=f'Test Address {name}',
            contact_number='09171234567',
            email=f'{name.lower()}@test.com',
        )

    @staticmethod
    def create_item(name=None, price=None, approval_status=Item.STATUS_APPROVED, item_type=Item.TYPE_MATERIAL,
                    category=None, supplier=None, unit=None, created_by=None):
        """Create a test catalog item (approved unless told otherwise)"""
        if not name:
            name = f'Item_{TestDataFactory.random_string(6)}'
        if price is None:
            price = Decimal('100.00')
        return Item.objects.create(
            name=name,
            price=price,
            approval_status=approval_status,
            item_type=item_type,
            category=category,
            supplier=supplier,
            unit=unit,
            created_by=created_by,
        )

    @staticmethod
    def create_asset(item=None, serial_number=None, project=None):
        if item is None:
            item = TestDataFactory.create_item(item_type=Item.TYPE_ASSET)
        if not serial_number:
            serial_number = f'SN-{TestDataFactory.random_string(8).upper()}'
        return Asset.objects.create(item=item, serial_number=serial_number, project=project)

    @staticmethod
    def stock_central(item, quantity):
        """Put stock into the central inventory"""
        return ledger.post(item, None, InventoryMovement.DIRECTION_IN, quantity, InventoryMovement.SOURCE_ADJUSTMENT)

    @staticmethod
    def create_request(user, project, lines, request_type='main_inventory', supplier=None, stage='requested'):
        """Create a material request through the workflow; ``lines`` is [(item, quantity)]"""
        return workflow.create_request(
            actor=user,
            project_id=project.pk,
            request_type=request_type,
            supplier_id=supplier.pk if supplier else None,
            items=[{'item_id': item.pk, 'quantity': quantity} for item, quantity in lines],
            stage=stage,
        )

    @staticmethod
    def advance_to_verifying(request_id, approver, receiver):
        """Approve, order and record a complete delivery"""
        workflow.approve(request_id, approver)
        workflow.order(request_id, approver)
        workflow.record_delivery(request_id, receiver, delivered_by='Truck 1', delivery_date='2026-01-15',
                                 delivery_status='complete')


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user, use_header=False):
        """Authenticate the client with a user via the session cookie (or a Bearer header)"""
        access = build_refresh_token(user).access_token
        if use_header:
            self.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        else:
            self.cookies[settings.AUTH_COOKIE_NAME] = str(access)
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
        self.cookies.pop(settings.AUTH_COOKIE_NAME, None)
        super().logout()
