"""
Comprehensive test suite for Procurement module
Tests: material request lifecycle, delivery and verification, inventory postings,
role checks, project visibility and append-only history
"""
from django.test import TestCase
from rest_framework import status
from constracker.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from constracker.core.models import AuditLog, ImmutableRecordError, User
from constracker.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from constracker.inventory import ledger
from constracker.inventory.models import InventoryMovement
from constracker.procurement import workflow
from constracker.procurement.models import (
    MaterialRequest, MaterialRequestItem, MaterialRequestAction, MaterialDelivery, MaterialVerification
)


class ProcurementTestCase(TestCase):
    """Common fixtures: one project with an engineer (approver) and a foreman (receiver)"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.engineer = TestDataFactory.create_user(role=User.ROLE_ENGINEER)
        self.foreman = TestDataFactory.create_user(role=User.ROLE_FOREMAN)
        self.project = TestDataFactory.create_project(name='Harbor View', personnel=[self.engineer, self.foreman])
        self.cement = TestDataFactory.create_item(name='Cement')
        self.sand = TestDataFactory.create_item(name='Sand')
        self.supplier = TestDataFactory.create_supplier()
        TestDataFactory.stock_central(self.cement, 50)
        TestDataFactory.stock_central(self.sand, 50)

    def make_verifying(self, lines, request_type=MaterialRequest.TYPE_MAIN_INVENTORY):
        supplier = self.supplier if request_type == MaterialRequest.TYPE_SUPPLIER else None
        mr = TestDataFactory.create_request(self.foreman, self.project, lines, request_type=request_type, supplier=supplier)
        TestDataFactory.advance_to_verifying(mr.pk, self.engineer, self.foreman)
        return mr

    def line(self, mr, item):
        return MaterialRequestItem.objects.get(request=mr, item=item)


class CreateRequestTests(ProcurementTestCase):
    """Creating requests through the workflow"""

    def test_create_requested(self):
        mr = TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 10), (self.sand, 4)])
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_REQUESTED)
        self.assertEqual(mr.status, MaterialRequest.STATUS_PENDING)
        self.assertEqual(mr.items.count(), 2)

        action = MaterialRequestAction.objects.get(request=mr)
        self.assertEqual(action.action, 'create')
        self.assertEqual(action.to_stage, MaterialRequest.STAGE_REQUESTED)
        log = AuditLog.objects.get(entity_type='MaterialRequest', object_id=str(mr.pk))
        self.assertEqual(log.action, 'requests')
        self.assertEqual(log.project_id, self.project.pk)

    def test_create_draft_then_submit(self):
        mr = TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 1)], stage=MaterialRequest.STAGE_DRAFT)
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_DRAFT)

        mr = workflow.submit(mr.pk, self.foreman)
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_REQUESTED)
        self.assertTrue(AuditLog.objects.filter(action='submitted', object_id=str(mr.pk)).exists())

    def test_only_requester_submits_draft(self):
        mr = TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 1)], stage=MaterialRequest.STAGE_DRAFT)
        with self.assertRaises(AuthorizationError):
            workflow.submit(mr.pk, self.engineer)

    def test_cannot_start_in_later_stage(self):
        with self.assertRaises(ValidationError):
            TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 1)], stage=MaterialRequest.STAGE_APPROVED)

    def test_supplier_rules(self):
        with self.assertRaises(ValidationError):
            TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 1)], request_type=MaterialRequest.TYPE_SUPPLIER)
        with self.assertRaises(ValidationError):
            TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 1)], supplier=self.supplier)

        mr = TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 1)],
                                            request_type=MaterialRequest.TYPE_SUPPLIER, supplier=self.supplier)
        self.assertEqual(mr.supplier_id, self.supplier.pk)

    def test_line_validation(self):
        with self.assertRaises(ValidationError):
            TestDataFactory.create_request(self.foreman, self.project, [])
        with self.assertRaises(ValidationError):
            TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 0)])
        with self.assertRaises(ValidationError):
            TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 2), (self.cement, 3)])
        self.assertEqual(MaterialRequest.objects.count(), 0)

    def test_pending_material_cannot_be_requested(self):
        pending = TestDataFactory.create_item(approval_status='pending')
        with self.assertRaises(ValidationError):
            TestDataFactory.create_request(self.foreman, self.project, [(pending, 1)])

    def test_foreign_project_refused(self):
        other = TestDataFactory.create_project()
        with self.assertRaises(AuthorizationError):
            TestDataFactory.create_request(self.foreman, other, [(self.cement, 1)])


class StageTransitionTests(ProcurementTestCase):
    """Approve, decline, order and delivery"""

    def setUp(self):
        super().setUp()
        self.mr = TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 10)])

    def test_approve(self):
        mr = workflow.approve(self.mr.pk, self.engineer, 'ok')
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_APPROVED)
        self.assertEqual(mr.status, MaterialRequest.STATUS_APPROVED)
        self.assertEqual(mr.approved_by, self.engineer)
        self.assertIsNotNone(mr.approved_at)

    def test_double_approve_is_not_found(self):
        workflow.approve(self.mr.pk, self.engineer)
        with self.assertRaises(NotFoundError):
            workflow.approve(self.mr.pk, self.engineer)
        self.assertEqual(MaterialRequestAction.objects.filter(request=self.mr, action='approve').count(), 1)

    def test_decline(self):
        mr = workflow.decline(self.mr.pk, self.engineer, 'over budget')
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_CANCELLED)
        self.assertEqual(mr.status, MaterialRequest.STATUS_REJECTED)
        self.assertEqual(mr.remarks, '')

        action = MaterialRequestAction.objects.get(request=self.mr, action='decline')
        self.assertEqual(action.from_stage, MaterialRequest.STAGE_REQUESTED)
        self.assertEqual(action.to_stage, MaterialRequest.STAGE_CANCELLED)
        self.assertEqual(action.remarks, 'over budget')

        with self.assertRaises(NotFoundError):
            workflow.approve(self.mr.pk, self.engineer)

    def test_order_requires_approval(self):
        with self.assertRaises(NotFoundError):
            workflow.order(self.mr.pk, self.engineer)
        workflow.approve(self.mr.pk, self.engineer)
        mr = workflow.order(self.mr.pk, self.engineer)
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_ORDERED)

    def test_delivery_moves_to_verifying_without_stock(self):
        workflow.approve(self.mr.pk, self.engineer)
        workflow.order(self.mr.pk, self.engineer)
        mr, delivery = workflow.record_delivery(self.mr.pk, self.foreman, 'Truck 7', '2026-02-01', 'partial')
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_VERIFYING)
        self.assertEqual(delivery.acknowledged_by, self.foreman)
        self.assertEqual(ledger.balance(self.cement, self.project), 0)

    def test_follow_up_delivery_keeps_stage(self):
        workflow.approve(self.mr.pk, self.engineer)
        workflow.order(self.mr.pk, self.engineer)
        workflow.record_delivery(self.mr.pk, self.foreman, 'Truck 7', '2026-02-01', 'partial')
        mr, _ = workflow.record_delivery(self.mr.pk, self.foreman, 'Truck 8', '2026-02-03', 'complete')
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_VERIFYING)
        self.assertEqual(MaterialDelivery.objects.filter(request=self.mr).count(), 2)

    def test_delivery_before_order_refused(self):
        with self.assertRaises(NotFoundError):
            workflow.record_delivery(self.mr.pk, self.foreman, 'Truck 7', '2026-02-01', 'complete')

    def test_delivery_input_checked(self):
        with self.assertRaises(ValidationError):
            workflow.record_delivery(self.mr.pk, self.foreman, '  ', '2026-02-01', 'complete')
        with self.assertRaises(ValidationError):
            workflow.record_delivery(self.mr.pk, self.foreman, 'Truck', '2026-02-01', 'lost')

    def test_outsider_cannot_act(self):
        outsider = TestDataFactory.create_user(role=User.ROLE_ENGINEER)
        with self.assertRaises(AuthorizationError):
            workflow.approve(self.mr.pk, outsider)

    def test_missing_request(self):
        with self.assertRaises(NotFoundError):
            workflow.approve(999999, self.engineer)


class VerificationTests(ProcurementTestCase):
    """Accept/reject quantities and the resulting stage and ledger entries"""

    def test_full_verify_main_inventory(self):
        mr = self.make_verifying([(self.cement, 10)])
        line = self.line(mr, self.cement)

        mr = workflow.verify(mr.pk, self.foreman, [{'mr_item_id': line.pk, 'accepted_qty': 10, 'rejected_qty': 0}])
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_COMPLETED)

        line.refresh_from_db()
        self.assertEqual((line.received_quantity, line.accepted_quantity, line.rejected_quantity), (10, 10, 0))

        movements = InventoryMovement.objects.filter(material_request=mr)
        self.assertEqual(movements.count(), 2)
        project_in = movements.get(project=self.project)
        self.assertEqual((project_in.direction, project_in.quantity), (InventoryMovement.DIRECTION_IN, 10))
        central_out = movements.get(project__isnull=True)
        self.assertEqual((central_out.direction, central_out.quantity), (InventoryMovement.DIRECTION_OUT, 10))

        self.assertEqual(ledger.balance(self.cement, self.project), 10)
        self.assertEqual(ledger.balance(self.cement), 40)

    def test_supplier_request_posts_only_to_project(self):
        mr = self.make_verifying([(self.cement, 5)], request_type=MaterialRequest.TYPE_SUPPLIER)
        line = self.line(mr, self.cement)
        workflow.verify(mr.pk, self.foreman, [{'mr_item_id': line.pk, 'accepted_qty': 5}])

        movement = InventoryMovement.objects.get(material_request=mr)
        self.assertEqual(movement.source, InventoryMovement.SOURCE_SUPPLIER)
        self.assertEqual(movement.project_id, self.project.pk)
        self.assertEqual(ledger.balance(self.cement), 50)

    def test_partial_verify(self):
        mr = self.make_verifying([(self.cement, 10)])
        line = self.line(mr, self.cement)

        mr = workflow.verify(mr.pk, self.foreman, [{'mr_item_id': line.pk, 'accepted_qty': 6}])
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_PARTIALLY_VERIFIED)
        line.refresh_from_db()
        self.assertEqual(line.pending_quantity, 4)

        mr = workflow.verify(mr.pk, self.foreman, [{'mr_item_id': line.pk, 'accepted_qty': 4}])
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_COMPLETED)
        self.assertEqual(ledger.balance(self.cement, self.project), 10)

    def test_rejections_end_in_dispute(self):
        mr = self.make_verifying([(self.cement, 10)])
        line = self.line(mr, self.cement)

        mr = workflow.verify(mr.pk, self.foreman, [{'mr_item_id': line.pk, 'accepted_qty': 6, 'rejected_qty': 4}])
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_DISPUTED)
        line.refresh_from_db()
        self.assertEqual(line.received_quantity, line.accepted_quantity + line.rejected_quantity)
        self.assertEqual(ledger.balance(self.cement, self.project), 6)

        with self.assertRaises(NotFoundError):
            workflow.verify(mr.pk, self.foreman, [{'mr_item_id': line.pk, 'accepted_qty': 1}])

    def test_multi_line_stays_partial_until_every_line_done(self):
        mr = self.make_verifying([(self.cement, 3), (self.sand, 2)])
        cement_line, sand_line = self.line(mr, self.cement), self.line(mr, self.sand)

        mr = workflow.verify(mr.pk, self.foreman, [{'mr_item_id': cement_line.pk, 'accepted_qty': 3}])
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_PARTIALLY_VERIFIED)

        mr = workflow.verify(mr.pk, self.foreman, [{'mr_item_id': sand_line.pk, 'accepted_qty': 2}])
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_COMPLETED)

    def test_over_pending_rolls_back_whole_batch(self):
        mr = self.make_verifying([(self.cement, 3), (self.sand, 2)])
        cement_line, sand_line = self.line(mr, self.cement), self.line(mr, self.sand)

        with self.assertRaises(ValidationError):
            workflow.verify(mr.pk, self.foreman, [
                {'mr_item_id': cement_line.pk, 'accepted_qty': 3},
                {'mr_item_id': sand_line.pk, 'accepted_qty': 2, 'rejected_qty': 1},
            ])

        mr.refresh_from_db()
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_VERIFYING)
        cement_line.refresh_from_db()
        self.assertEqual(cement_line.received_quantity, 0)
        self.assertEqual(MaterialVerification.objects.count(), 0)
        self.assertFalse(InventoryMovement.objects.filter(material_request=mr).exists())

    def test_entry_shape_checks(self):
        mr = self.make_verifying([(self.cement, 3)])
        line = self.line(mr, self.cement)
        with self.assertRaises(ValidationError):
            workflow.verify(mr.pk, self.foreman, [])
        with self.assertRaises(ValidationError):
            workflow.verify(mr.pk, self.foreman, [{'mr_item_id': line.pk, 'accepted_qty': 0}])
        with self.assertRaises(ValidationError):
            workflow.verify(mr.pk, self.foreman, [{'mr_item_id': line.pk, 'accepted_qty': -1}])
        with self.assertRaises(ValidationError):
            workflow.verify(mr.pk, self.foreman, [{'mr_item_id': line.pk, 'accepted_qty': 1},
                                                  {'mr_item_id': line.pk, 'accepted_qty': 1}])

    def test_line_from_another_request_refused(self):
        mr = self.make_verifying([(self.cement, 3)])
        other = self.make_verifying([(self.sand, 3)])
        with self.assertRaises(ValidationError):
            workflow.verify(mr.pk, self.foreman, [{'mr_item_id': self.line(other, self.sand).pk, 'accepted_qty': 1}])

    def test_verify_before_delivery_refused(self):
        mr = TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 3)])
        workflow.approve(mr.pk, self.engineer)
        workflow.order(mr.pk, self.engineer)
        with self.assertRaises(NotFoundError):
            workflow.verify(mr.pk, self.foreman, [{'mr_item_id': self.line(mr, self.cement).pk, 'accepted_qty': 1}])

    def test_derive_stage_is_repeatable(self):
        mr = self.make_verifying([(self.cement, 10)])
        line = self.line(mr, self.cement)
        workflow.verify(mr.pk, self.foreman, [{'mr_item_id': line.pk, 'accepted_qty': 6}])

        lines = MaterialRequestItem.objects.filter(request=mr)
        first = workflow.derive_stage(lines)
        self.assertEqual(first, workflow.derive_stage(lines))
        self.assertEqual(first, MaterialRequest.STAGE_PARTIALLY_VERIFIED)

    def test_history_rows_are_append_only(self):
        mr = self.make_verifying([(self.cement, 2)])
        workflow.verify(mr.pk, self.foreman, [{'mr_item_id': self.line(mr, self.cement).pk, 'accepted_qty': 2}])

        verification = MaterialVerification.objects.get(request=mr)
        with self.assertRaises(ImmutableRecordError):
            verification.delete()
        with self.assertRaises(ImmutableRecordError):
            MaterialRequestAction.objects.filter(request=mr).update(remarks='edited')
        delivery = MaterialDelivery.objects.get(request=mr)
        delivery.remarks = 'edited'
        with self.assertRaises(ImmutableRecordError):
            delivery.save()


class ReviewTests(ProcurementTestCase):
    """Review remarks on verified requests"""

    def test_review_completed_request(self):
        mr = self.make_verifying([(self.cement, 2)])
        workflow.verify(mr.pk, self.foreman, [{'mr_item_id': self.line(mr, self.cement).pk, 'accepted_qty': 2}])

        mr = workflow.review(mr.pk, self.engineer, 'All good')
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_COMPLETED)
        action = MaterialRequestAction.objects.get(request=mr, action='review')
        self.assertEqual(action.from_stage, action.to_stage)
        self.assertTrue(AuditLog.objects.filter(action='reviewed', object_id=str(mr.pk)).exists())

    def test_review_needs_remarks(self):
        mr = self.make_verifying([(self.cement, 2)])
        workflow.verify(mr.pk, self.foreman, [{'mr_item_id': self.line(mr, self.cement).pk, 'accepted_qty': 2}])
        with self.assertRaises(ValidationError):
            workflow.review(mr.pk, self.engineer, '   ')

    def test_review_before_verification_refused(self):
        mr = self.make_verifying([(self.cement, 2)])
        with self.assertRaises(NotFoundError):
            workflow.review(mr.pk, self.engineer, 'too early')


class MaterialRequestAPITests(ProcurementTestCase):
    """HTTP endpoints, role checks and visibility"""

    def setUp(self):
        super().setUp()
        self.foreman_client = AuthenticatedAPIClient().authenticate_user(self.foreman)
        self.engineer_client = AuthenticatedAPIClient().authenticate_user(self.engineer)

    def create_via_api(self, **overrides):
        payload = {
            'project_id': self.project.pk,
            'request_type': MaterialRequest.TYPE_MAIN_INVENTORY,
            'items': [{'item_id': self.cement.pk, 'quantity': 10}],
        }
        payload.update(overrides)
        return self.foreman_client.post('/api/material-requests', payload, format='json')

    def test_create_and_detail(self):
        response = self.create_via_api(priority_level='high')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        request_data = response.data['request']
        self.assertEqual(request_data['current_stage'], MaterialRequest.STAGE_REQUESTED)
        self.assertEqual(request_data['item_count'], 1)
        self.assertEqual(request_data['total_cost'], '1000.00')

        response = self.foreman_client.get(f"/api/material-requests/{request_data['id']}")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['header']['priority_level'], 'high')
        self.assertEqual(response.data['items'][0]['pending_quantity'], 10)

    def test_create_invalid_payload(self):
        response = self.create_via_api(items=[])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.create_via_api(items=[{'item_id': self.cement.pk, 'quantity': -2}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_scoped_to_assigned_projects(self):
        TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 1)])
        other = TestDataFactory.create_project()
        TestDataFactory.create_request(self.admin, other, [(self.cement, 1)])

        response = self.foreman_client.get('/api/material-requests')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['project'], self.project.pk)

        admin_client = AuthenticatedAPIClient().authenticate_user(self.admin)
        response = admin_client.get('/api/material-requests', {'project': other.pk})
        self.assertEqual(response.data['count'], 1)

    def test_foreign_request_forbidden(self):
        other = TestDataFactory.create_project()
        mr = TestDataFactory.create_request(self.admin, other, [(self.cement, 1)])
        response = self.foreman_client.get(f'/api/material-requests/{mr.pk}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_foreman_cannot_approve(self):
        mr = TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 1)])
        response = self.foreman_client.put(f'/api/material-requests/{mr.pk}/approve')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        mr.refresh_from_db()
        self.assertEqual(mr.current_stage, MaterialRequest.STAGE_REQUESTED)

    def test_engineer_cannot_verify(self):
        mr = self.make_verifying([(self.cement, 2)])
        response = self.engineer_client.post(
            f'/api/material-requests/{mr.pk}/verify',
            [{'mr_item_id': self.line(mr, self.cement).pk, 'accepted_qty': 2}],
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_double_approve_returns_404(self):
        mr = TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 1)])
        response = self.engineer_client.put(f'/api/material-requests/{mr.pk}/approve')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['request']['current_stage'], MaterialRequest.STAGE_APPROVED)

        response = self.engineer_client.put(f'/api/material-requests/{mr.pk}/approve')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['status'], 'not found')

    def test_decline_with_remarks(self):
        mr = TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 1)])
        response = self.engineer_client.put(f'/api/material-requests/{mr.pk}/decline', {'remarks': 'not needed'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['request']['current_stage'], MaterialRequest.STAGE_CANCELLED)
        self.assertEqual(response.data['request']['status'], MaterialRequest.STATUS_REJECTED)

    def test_decline_keeps_requester_remarks(self):
        mr_id = self.create_via_api(remarks='needed for the slab pour').data['request']['id']
        response = self.engineer_client.put(f'/api/material-requests/{mr_id}/decline', {'remarks': 'over budget'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['request']['remarks'], 'needed for the slab pour')

        response = self.foreman_client.get(f'/api/material-requests/{mr_id}/actions')
        decline = [row for row in response.data if row['action'] == 'decline']
        self.assertEqual(len(decline), 1)
        self.assertEqual(decline[0]['remarks'], 'over budget')

        response = self.engineer_client.put(f'/api/material-requests/{mr_id}/decline')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(MaterialRequest.objects.get(pk=mr_id).remarks, 'needed for the slab pour')

    def test_full_flow_over_http(self):
        mr_id = self.create_via_api().data['request']['id']
        self.engineer_client.put(f'/api/material-requests/{mr_id}/approve')
        self.engineer_client.put(f'/api/material-requests/{mr_id}/order')

        response = self.foreman_client.post(f'/api/material-requests/{mr_id}/deliveries', {
            'delivered_by': 'Truck 3', 'delivery_date': '2026-03-02', 'delivery_status': 'complete',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['current_stage'], MaterialRequest.STAGE_VERIFYING)

        line_id = self.foreman_client.get(f'/api/material-requests/{mr_id}').data['items'][0]['id']
        response = self.foreman_client.post(
            f'/api/material-requests/{mr_id}/verify',
            {'items': [{'mr_item_id': line_id, 'accepted_qty': 10}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['request']['current_stage'], MaterialRequest.STAGE_COMPLETED)

        response = self.engineer_client.post(f'/api/material-requests/{mr_id}/review', {'remarks': 'Checked on site'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        actions = self.foreman_client.get(f'/api/material-requests/{mr_id}/actions').data
        self.assertEqual([row['action'] for row in actions],
                         ['create', 'approve', 'order', 'delivery', 'verify', 'review'])

        verifications = self.foreman_client.get(f'/api/material-requests/{mr_id}/verifications').data
        self.assertEqual(verifications[0]['accepted_quantity'], 10)

    def test_over_pending_over_http(self):
        mr = self.make_verifying([(self.cement, 2)])
        response = self.foreman_client.post(
            f'/api/material-requests/{mr.pk}/verify',
            [{'mr_item_id': self.line(mr, self.cement).pk, 'accepted_qty': 3}],
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['status'], 'failed')

    def test_stage_filter(self):
        TestDataFactory.create_request(self.foreman, self.project, [(self.cement, 1)])
        TestDataFactory.create_request(self.foreman, self.project, [(self.sand, 1)], stage=MaterialRequest.STAGE_DRAFT)
        response = self.foreman_client.get('/api/material-requests', {'current_stage': MaterialRequest.STAGE_DRAFT})
        self.assertEqual(response.data['count'], 1)
