"""
Test suite for the projects app
Tests: project CRUD and visibility, personnel assignment, milestones and tasks
"""
from django.db import transaction
from django.db.models import ProtectedError
from django.test import TestCase
from rest_framework import status
from constracker.core.models import AuditLog, User
from constracker.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from constracker.projects.models import Project, ProjectAssignment, Milestone, Task


class ProjectAPITests(TestCase):
    """Test project endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.engineer = TestDataFactory.create_user(role=User.ROLE_ENGINEER)
        self.mine = TestDataFactory.create_project(name='Riverside Tower', personnel=[self.engineer])
        self.other = TestDataFactory.create_project(name='Hillside Mall')
        self.admin_client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.engineer_client = AuthenticatedAPIClient().authenticate_user(self.engineer)

    def test_admin_lists_all_projects(self):
        response = self.admin_client.get('/api/projects')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_non_admin_lists_assigned_projects_only(self):
        response = self.engineer_client.get('/api/projects')
        self.assertEqual([row['name'] for row in response.data], ['Riverside Tower'])
        self.assertEqual(response.data[0]['personnel_count'], 1)

    def test_non_admin_cannot_open_other_project(self):
        response = self.engineer_client.get(f'/api/projects/{self.other.pk}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_project(self):
        response = self.admin_client.get('/api/projects/99999')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['status'], 'not found')

    def test_search_and_status_filter(self):
        Project.objects.filter(pk=self.other.pk).update(status=Project.STATUS_ON_HOLD)
        response = self.admin_client.get('/api/projects', {'search': 'hill'})
        self.assertEqual([row['id'] for row in response.data], [self.other.pk])
        response = self.admin_client.get('/api/projects', {'status': Project.STATUS_ON_HOLD})
        self.assertEqual([row['id'] for row in response.data], [self.other.pk])

    def test_create_project_admin_only(self):
        data = {'name': 'Bay Bridge', 'location': 'Pier 3', 'budget': '2500000.00', 'status': Project.STATUS_PLANNING}
        response = self.engineer_client.post('/api/projects', data)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.admin_client.post('/api/projects', data)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        log = AuditLog.objects.get(entity_type='Project', action='create')
        self.assertEqual(log.project_id, response.data['id'])

    def test_negative_budget_rejected(self):
        response = self.admin_client.post('/api/projects', {'name': 'Bad', 'budget': '-1'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_records_before_and_after(self):
        response = self.admin_client.patch(f'/api/projects/{self.mine.pk}', {'status': Project.STATUS_COMPLETED})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(entity_type='Project', action='edit')
        self.assertEqual(log.changes, [{'field': 'status', 'before': 'in progress', 'after': 'completed'}])

    def test_projects_cannot_be_deleted(self):
        self.admin_client.patch(f'/api/projects/{self.other.pk}', {'budget': '2000000.00'})
        response = self.admin_client.delete(f'/api/projects/{self.other.pk}')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertTrue(Project.objects.filter(pk=self.other.pk).exists())

        log = AuditLog.objects.get(entity_type='Project', action='edit')
        self.assertEqual(log.project_id, self.other.pk)
        response = self.engineer_client.get('/api/logs')
        self.assertNotIn(log.pk, [row['id'] for row in response.data['results']])

    def test_project_with_logs_is_protected(self):
        self.admin_client.patch(f'/api/projects/{self.other.pk}', {'status': Project.STATUS_COMPLETED})
        with self.assertRaises(ProtectedError):
            with transaction.atomic():
                Project.objects.get(pk=self.other.pk).delete()
        self.assertTrue(AuditLog.objects.filter(project=self.other).exists())

    def test_selection(self):
        response = self.engineer_client.get('/api/selection/project')
        self.assertEqual(response.data, [{'id': self.mine.pk, 'name': 'Riverside Tower'}])


class PersonnelAssignmentTests(TestCase):
    """Test assigning personnel to projects"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.foreman = TestDataFactory.create_user(role=User.ROLE_FOREMAN)
        self.engineer = TestDataFactory.create_user(role=User.ROLE_ENGINEER)
        self.project = TestDataFactory.create_project(personnel=[self.engineer])
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_assign_skips_existing(self):
        response = self.client.post(
            f'/api/projects/{self.project.pk}/personnel',
            {'user_ids': [self.foreman.pk, self.engineer.pk]},
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data), 2)
        self.assertEqual(AuditLog.objects.filter(entity_type='ProjectAssignment', action='create').count(), 1)

    def test_assign_unknown_user(self):
        response = self.client.post(f'/api/projects/{self.project.pk}/personnel', {'user_ids': [99999]})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_assignment_grants_visibility(self):
        foreman_client = AuthenticatedAPIClient().authenticate_user(self.foreman)
        self.assertEqual(foreman_client.get(f'/api/projects/{self.project.pk}').status_code, status.HTTP_403_FORBIDDEN)

        TestDataFactory.assign(self.foreman, self.project)
        self.assertEqual(foreman_client.get(f'/api/projects/{self.project.pk}').status_code, status.HTTP_200_OK)

    def test_remove_assignment(self):
        response = self.client.delete(f'/api/projects/{self.project.pk}/personnel/{self.engineer.pk}')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(ProjectAssignment.objects.filter(project=self.project, user=self.engineer).exists())

    def test_non_admin_cannot_assign(self):
        client = AuthenticatedAPIClient().authenticate_user(self.engineer)
        response = client.post(f'/api/projects/{self.project.pk}/personnel', {'user_ids': [self.foreman.pk]})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class MilestoneTaskTests(TestCase):
    """Test milestones, tasks and progress"""

    def setUp(self):
        self.engineer = TestDataFactory.create_user(role=User.ROLE_ENGINEER)
        self.foreman = TestDataFactory.create_user(role=User.ROLE_FOREMAN)
        self.project = TestDataFactory.create_project(personnel=[self.engineer, self.foreman])
        self.client = AuthenticatedAPIClient().authenticate_user(self.engineer)

    def test_create_milestone(self):
        response = self.client.post(f'/api/projects/{self.project.pk}/milestones', {'name': 'Foundation'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['project'], self.project.pk)
        self.assertEqual(response.data['progress'], 0)

    def test_foreman_cannot_create_milestone(self):
        client = AuthenticatedAPIClient().authenticate_user(self.foreman)
        response = client.post(f'/api/projects/{self.project.pk}/milestones', {'name': 'Foundation'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_foreman_can_read_milestones(self):
        TestDataFactory.create_milestone(self.project, name='Framing')
        client = AuthenticatedAPIClient().authenticate_user(self.foreman)
        response = client.get(f'/api/projects/{self.project.pk}/milestones')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['name'], 'Framing')

    def test_progress_follows_tasks(self):
        milestone = TestDataFactory.create_milestone(self.project)
        TestDataFactory.create_task(milestone, status=Task.STATUS_COMPLETED)
        TestDataFactory.create_task(milestone)
        TestDataFactory.create_task(milestone)
        TestDataFactory.create_task(milestone, status=Task.STATUS_COMPLETED)

        response = self.client.get(f'/api/milestones/{milestone.pk}')
        self.assertEqual(response.data['progress'], 50)
        self.assertEqual(response.data['task_count'], 4)

    def test_create_and_edit_task(self):
        milestone = TestDataFactory.create_milestone(self.project)
        response = self.client.post(
            f'/api/milestones/{milestone.pk}/tasks',
            {'name': 'Pour footing', 'assigned_to': self.foreman.pk},
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        task_id = response.data['id']

        response = self.client.patch(f'/api/tasks/{task_id}', {'status': Task.STATUS_COMPLETED})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(entity_type='Task', action='edit')
        self.assertEqual(log.project_id, self.project.pk)

    def test_delete_milestone_cascades_tasks(self):
        milestone = TestDataFactory.create_milestone(self.project)
        TestDataFactory.create_task(milestone)
        response = self.client.delete(f'/api/milestones/{milestone.pk}')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Milestone.objects.filter(pk=milestone.pk).exists())
        self.assertEqual(Task.objects.count(), 0)

    def test_outsider_cannot_see_milestone(self):
        outsider = TestDataFactory.create_user(role=User.ROLE_ENGINEER)
        milestone = TestDataFactory.create_milestone(self.project)
        client = AuthenticatedAPIClient().authenticate_user(outsider)
        response = client.get(f'/api/milestones/{milestone.pk}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
