"""
Comprehensive test suite for Reports module
Tests: dashboard summary, project status counts, recent requests
"""
from django.test import TestCase
from rest_framework import status
from constracker.catalog.models import Item
from constracker.core.models import User
from constracker.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from constracker.procurement import workflow
from constracker.projects.models import Project


class DashboardTests(TestCase):
    """Test dashboard endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.engineer = TestDataFactory.create_user(role=User.ROLE_ENGINEER)
        self.foreman = TestDataFactory.create_user(role=User.ROLE_FOREMAN)
        self.project = TestDataFactory.create_project(personnel=[self.engineer, self.foreman])
        TestDataFactory.create_project(status=Project.STATUS_PLANNING)
        self.item = TestDataFactory.create_item()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_summary_counts(self):
        User.objects.filter(pk=self.foreman.pk).update(is_online=True)
        TestDataFactory.create_request(self.foreman, self.project, [(self.item, 1)])
        disputed = TestDataFactory.create_request(self.foreman, self.project, [(self.item, 4)])
        TestDataFactory.advance_to_verifying(disputed.pk, self.engineer, self.foreman)
        line = disputed.items.get()
        workflow.verify(disputed.pk, self.foreman, [{'mr_item_id': line.pk, 'accepted_qty': 3, 'rejected_qty': 1}])
        TestDataFactory.create_item(approval_status=Item.STATUS_PENDING)

        response = self.client.get('/api/dashboard/summary')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['projects'], {'active': 1, 'total': 2})
        self.assertEqual(response.data['personnel'], {'online': 1, 'total': 3})
        self.assertEqual(response.data['material_requests'], {'pending': 1, 'awaiting_verification': 0, 'disputed': 1})
        self.assertEqual(response.data['materials'], {'pending_approval': 1})

    def test_summary_admin_only(self):
        client = AuthenticatedAPIClient().authenticate_user(self.engineer)
        response = client.get('/api/dashboard/summary')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_project_status(self):
        response = self.client.get('/api/dashboard/project-status')
        self.assertEqual(response.data, {'planning': 1, 'in progress': 1, 'completed': 0, 'on hold': 0})

    def test_recent_requests_limit_and_scope(self):
        for _ in range(3):
            TestDataFactory.create_request(self.foreman, self.project, [(self.item, 1)])
        TestDataFactory.create_request(self.admin, TestDataFactory.create_project(), [(self.item, 1)])

        response = self.client.get('/api/dashboard/recent-requests', {'limit': 2})
        self.assertEqual(len(response.data), 2)

        client = AuthenticatedAPIClient().authenticate_user(self.foreman)
        response = client.get('/api/dashboard/recent-requests')
        self.assertEqual(len(response.data), 3)
        self.assertTrue(all(row['project'] == self.project.pk for row in response.data))
