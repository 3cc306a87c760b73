"""
Test suite for the core app
Tests: cookie auth, token failure statuses, capabilities, personnel, audit log visibility, append-only guards
"""
from datetime import timedelta
from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import ProtectedError
from django.test import TestCase
from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken
from constracker.core.exceptions import AuthError
from constracker.core.models import AuditLog, ImmutableRecordError, User
from constracker.core.permissions import CAPABILITIES, has_capability
from constracker.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from constracker.core.utils import create_audit_log, diff_changes


def _expired_token(user):
    token = AccessToken.for_user(user)
    token.set_exp(lifetime=-timedelta(minutes=1))
    return str(token)


class LoginTests(TestCase):
    """Test login, logout and the session cookie"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(role=User.ROLE_ENGINEER, email='eng@test.com', password='s3cure-pass!')
        self.project = TestDataFactory.create_project(personnel=[self.user])
        self.client = AuthenticatedAPIClient()

    def test_login_sets_cookie_and_marks_online(self):
        response = self.client.post('/api/auth/login', {'email': 'eng@test.com', 'password': 's3cure-pass!'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'success')
        self.assertEqual(response.data['role'], User.ROLE_ENGINEER)
        self.assertIn(settings.AUTH_COOKIE_NAME, response.cookies)
        self.assertTrue(response.cookies[settings.AUTH_COOKIE_NAME]['httponly'])
        self.assertIn(settings.AUTH_REFRESH_COOKIE_NAME, response.cookies)

        self.user.refresh_from_db()
        self.assertTrue(self.user.is_online)

    def test_token_carries_role_and_projects(self):
        response = self.client.post('/api/auth/login', {'email': 'eng@test.com', 'password': 's3cure-pass!'})
        token = AccessToken(response.cookies[settings.AUTH_COOKIE_NAME].value)
        self.assertEqual(token['id'], self.user.pk)
        self.assertEqual(token['role'], User.ROLE_ENGINEER)
        self.assertEqual(token['projects'], [self.project.pk])

    def test_login_is_case_insensitive_on_email(self):
        response = self.client.post('/api/auth/login', {'email': 'ENG@test.com', 'password': 's3cure-pass!'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_login_wrong_password(self):
        response = self.client.post('/api/auth/login', {'email': 'eng@test.com', 'password': 'nope'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['message'], 'Invalid Credentials')
        self.assertNotIn(settings.AUTH_COOKIE_NAME, response.cookies)

    def test_login_disabled_account(self):
        self.user.is_active = False
        self.user.save()
        response = self.client.post('/api/auth/login', {'email': 'eng@test.com', 'password': 's3cure-pass!'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_requires_fields(self):
        response = self.client.post('/api/auth/login', {'email': 'eng@test.com'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['status'], 'failed')
        self.assertIn('password', response.data['errors'])

    def test_login_is_throttled(self):
        for _ in range(5):
            self.client.post('/api/auth/login', {'email': 'eng@test.com', 'password': 'nope'})
        response = self.client.post('/api/auth/login', {'email': 'eng@test.com', 'password': 's3cure-pass!'})
        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)

    def test_cookie_session_reaches_protected_endpoint(self):
        self.client.post('/api/auth/login', {'email': 'eng@test.com', 'password': 's3cure-pass!'})
        response = self.client.get('/api/profile')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'eng@test.com')
        self.assertEqual(response.data['projects'], [{'id': self.project.pk, 'name': self.project.name}])

    def test_logout_clears_cookie_and_marks_offline(self):
        self.client.post('/api/auth/login', {'email': 'eng@test.com', 'password': 's3cure-pass!'})
        response = self.client.post('/api/auth/logout')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.cookies[settings.AUTH_COOKIE_NAME].value, '')

        self.user.refresh_from_db()
        self.assertFalse(self.user.is_online)

    def test_refresh_issues_new_access_cookie(self):
        self.client.post('/api/auth/login', {'email': 'eng@test.com', 'password': 's3cure-pass!'})
        response = self.client.post('/api/auth/refresh')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(settings.AUTH_COOKIE_NAME, response.cookies)
        token = AccessToken(response.cookies[settings.AUTH_COOKIE_NAME].value)
        self.assertEqual(token['id'], self.user.pk)

    def test_refresh_without_cookie(self):
        response = self.client.post('/api/auth/refresh')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['status'], AuthError.MISSING)


class TokenStatusTests(TestCase):
    """Missing, invalid and expired tokens are reported distinctly"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role=User.ROLE_FOREMAN)
        User.objects.filter(pk=self.user.pk).update(is_online=True)
        self.client = AuthenticatedAPIClient()

    def test_missing_token(self):
        response = self.client.get('/api/profile')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['status'], 'missing token')

    def test_invalid_token(self):
        self.client.cookies[settings.AUTH_COOKIE_NAME] = 'not-a-jwt'
        response = self.client.get('/api/profile')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['status'], 'invalid token')

    def test_tampered_token(self):
        token = str(AccessToken.for_user(self.user))
        self.client.cookies[settings.AUTH_COOKIE_NAME] = token[:-2] + ('aa' if not token.endswith('aa') else 'bb')
        response = self.client.get('/api/profile')
        self.assertEqual(response.data['status'], 'invalid token')

    def test_expired_token_flips_presence(self):
        self.client.cookies[settings.AUTH_COOKIE_NAME] = _expired_token(self.user)
        response = self.client.get('/api/profile')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['status'], 'expired token')

        self.user.refresh_from_db()
        self.assertFalse(self.user.is_online)
        self.assertTrue(self.user.is_active)

    def test_bearer_header_accepted(self):
        self.client.authenticate_user(self.user, use_header=True)
        response = self.client.get('/api/profile')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_check_token_reports_each_state(self):
        response = self.client.get('/api/auth/check-token')
        self.assertEqual(response.data['message'], 'No token Exists')

        self.client.authenticate_user(self.user)
        response = self.client.get('/api/auth/check-token')
        self.assertEqual(response.data['status'], 'success')

        self.client.cookies[settings.AUTH_COOKIE_NAME] = 'garbage'
        response = self.client.get('/api/auth/check-token')
        self.assertEqual(response.data['status'], 'invalid token')

        self.client.cookies[settings.AUTH_COOKIE_NAME] = _expired_token(self.user)
        response = self.client.get('/api/auth/check-token')
        self.assertEqual(response.data['status'], 'expired token')


class CapabilityTests(TestCase):
    """The role/action table"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.engineer = TestDataFactory.create_user(role=User.ROLE_ENGINEER)
        self.foreman = TestDataFactory.create_user(role=User.ROLE_FOREMAN)
        self.manager = TestDataFactory.create_user(role=User.ROLE_PROJECT_MANAGER)

    def test_approval_roles(self):
        for action in ('request.approve', 'request.decline', 'request.order', 'request.review'):
            self.assertTrue(has_capability(self.admin, action))
            self.assertTrue(has_capability(self.engineer, action))
            self.assertTrue(has_capability(self.manager, action))
            self.assertFalse(has_capability(self.foreman, action))

    def test_receiving_roles(self):
        for action in ('request.deliver', 'request.verify'):
            self.assertTrue(has_capability(self.admin, action))
            self.assertTrue(has_capability(self.foreman, action))
            self.assertFalse(has_capability(self.engineer, action))
            self.assertFalse(has_capability(self.manager, action))

    def test_everyone_can_request(self):
        for user in (self.admin, self.engineer, self.foreman, self.manager):
            self.assertTrue(has_capability(user, 'request.create'))

    def test_superuser_counts_as_admin(self):
        superuser = TestDataFactory.create_user(role=User.ROLE_FOREMAN, is_superuser=True)
        self.assertTrue(has_capability(superuser, 'personnel.manage'))

    def test_unknown_action_denied(self):
        self.assertFalse(has_capability(self.admin, 'request.teleport'))

    def test_every_action_lists_known_roles(self):
        roles = {choice for choice, _ in User.ROLE_CHOICES}
        for action, allowed in CAPABILITIES.items():
            self.assertTrue(allowed <= roles, action)

    def test_access_sections(self):
        client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.assertIn('personnel', client.get('/api/access').data)
        client = AuthenticatedAPIClient().authenticate_user(self.foreman)
        self.assertEqual(client.get('/api/access').data, ['dashboard'])


class PersonnelTests(TestCase):
    """Admin-only personnel management"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.foreman = TestDataFactory.create_user(role=User.ROLE_FOREMAN)
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_non_admin_forbidden(self):
        client = AuthenticatedAPIClient().authenticate_user(self.foreman)
        response = client.get('/api/users')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['status'], 'forbidden')

    def test_create_user_writes_log(self):
        response = self.client.post('/api/users', {
            'username': 'newpm',
            'email': 'newpm@test.com',
            'full_name': 'New PM',
            'role': User.ROLE_PROJECT_MANAGER,
            'password': 'Xk2!pLm9qRt4',
            'password_confirm': 'Xk2!pLm9qRt4',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(username='newpm')
        self.assertTrue(user.check_password('Xk2!pLm9qRt4'))
        self.assertTrue(AuditLog.objects.filter(entity_type='User', object_id=str(user.pk), action='create').exists())

    def test_password_mismatch(self):
        response = self.client.post('/api/users', {
            'username': 'x', 'email': 'x@test.com', 'password': 'Xk2!pLm9qRt4', 'password_confirm': 'other',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_user_logs_changes(self):
        response = self.client.patch(f'/api/users/{self.foreman.pk}', {'role': User.ROLE_ENGINEER})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(entity_type='User', action='edit')
        self.assertEqual(log.changes, [{'field': 'role', 'before': 'foreman', 'after': 'engineer'}])

    def test_remove_user_deactivates_account(self):
        response = self.client.delete(f'/api/users/{self.foreman.pk}')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.foreman.refresh_from_db()
        self.assertFalse(self.foreman.is_active)
        log = AuditLog.objects.get(entity_type='User', action='delete')
        self.assertEqual(log.changes, [{'field': 'is_active', 'before': True, 'after': False}])

        response = self.client.delete(f'/api/users/{self.foreman.pk}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_removed_user_keeps_history_and_cannot_log_in(self):
        project = TestDataFactory.create_project(personnel=[self.foreman])
        with transaction.atomic():
            log = create_audit_log(user=self.foreman, action='create', entity_type='Project', object_id=project.pk,
                                   project=project)

        self.client.delete(f'/api/users/{self.foreman.pk}')
        log.refresh_from_db()
        self.assertEqual(log.user_id, self.foreman.pk)
        self.assertEqual(log.project_id, project.pk)

        cache.clear()
        response = AuthenticatedAPIClient().post('/api/auth/login', {'email': self.foreman.email, 'password': 'testpass123'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_user_with_history_cannot_be_hard_deleted(self):
        with transaction.atomic():
            create_audit_log(user=self.foreman, action='create', entity_type='Unit', object_id=1)
        with self.assertRaises(ProtectedError):
            with transaction.atomic():
                self.foreman.delete()
        self.assertTrue(User.objects.filter(pk=self.foreman.pk).exists())

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/users/{self.admin.pk}')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_generate_password(self):
        response = self.client.post('/api/users/generate-password')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        password = response.data['password']
        self.assertEqual(len(password), 14)
        self.assertTrue(any(c.isupper() for c in password))
        self.assertTrue(any(c.isdigit() for c in password))

    def test_update_own_full_name(self):
        client = AuthenticatedAPIClient().authenticate_user(self.foreman)
        response = client.put('/api/profile/full-name', {'full_name': 'Juan Dela Cruz'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.foreman.refresh_from_db()
        self.assertEqual(self.foreman.full_name, 'Juan Dela Cruz')


class AuditLogTests(TestCase):
    """Audit log helper, visibility and immutability"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.engineer = TestDataFactory.create_user(role=User.ROLE_ENGINEER)
        self.project_a = TestDataFactory.create_project(name='Tower A', personnel=[self.engineer])
        self.project_b = TestDataFactory.create_project(name='Tower B')
        with transaction.atomic():
            self.log_a = create_audit_log(user=self.admin, action='create', entity_type='Project', object_id=1, project=self.project_a)
            self.log_b = create_audit_log(user=self.admin, action='create', entity_type='Project', object_id=2, project=self.project_b)
            self.log_global = create_audit_log(user=self.admin, action='create', entity_type='Unit', object_id=3)

    def test_requires_action_entity_and_id(self):
        with self.assertRaises(ValueError):
            create_audit_log(user=self.admin, action='create', entity_type='Project')

    def test_admin_sees_everything(self):
        client = AuthenticatedAPIClient().authenticate_user(self.admin)
        response = client.get('/api/logs')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)

    def test_non_admin_sees_own_projects_and_global(self):
        client = AuthenticatedAPIClient().authenticate_user(self.engineer)
        response = client.get('/api/logs')
        ids = {row['id'] for row in response.data['results']}
        self.assertEqual(ids, {self.log_a.pk, self.log_global.pk})

    def test_non_admin_cannot_open_foreign_log(self):
        client = AuthenticatedAPIClient().authenticate_user(self.engineer)
        response = client.get(f'/api/logs/{self.log_b.pk}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_filters(self):
        client = AuthenticatedAPIClient().authenticate_user(self.admin)
        response = client.get('/api/logs', {'project': self.project_b.pk})
        self.assertEqual([row['id'] for row in response.data['results']], [self.log_b.pk])

        response = client.get('/api/logs', {'sort': 'oldest'})
        self.assertEqual(response.data['results'][0]['id'], self.log_a.pk)

        response = client.get('/api/logs', {'global_only': 'true'})
        self.assertEqual([row['id'] for row in response.data['results']], [self.log_global.pk])

    def test_pagination_envelope(self):
        client = AuthenticatedAPIClient().authenticate_user(self.admin)
        response = client.get('/api/logs', {'limit': 2})
        self.assertEqual(response.data['page_size'], 2)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['next'], 2)
        self.assertIsNone(response.data['previous'])

    def test_rows_cannot_be_changed(self):
        self.log_a.object_name = 'rewritten'
        with self.assertRaises(ImmutableRecordError):
            self.log_a.save()
        with self.assertRaises(ImmutableRecordError):
            self.log_a.delete()
        with self.assertRaises(ImmutableRecordError):
            AuditLog.objects.filter(pk=self.log_a.pk).update(object_name='rewritten')
        with self.assertRaises(ImmutableRecordError):
            AuditLog.objects.all().delete()

    def test_diff_changes_only_lists_changed_fields(self):
        changes = diff_changes({'name': 'A', 'status': 'planning'}, {'name': 'A', 'status': 'in progress'})
        self.assertEqual(changes, [{'field': 'status', 'before': 'planning', 'after': 'in progress'}])
