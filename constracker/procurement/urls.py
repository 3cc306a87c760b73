from django.urls import path
from .views import (
    material_request_list_create, material_request_detail,
    material_request_submit, material_request_approve, material_request_decline, material_request_order,
    material_request_deliveries, material_request_verify, material_request_review,
    material_request_actions, material_request_verifications,
)

urlpatterns = [
    path('material-requests', material_request_list_create, name='material-request-list-create'),
    path('material-requests/<int:pk>', material_request_detail, name='material-request-detail'),

    # Lifecycle transitions
    path('material-requests/<int:pk>/submit', material_request_submit, name='material-request-submit'),
    path('material-requests/<int:pk>/approve', material_request_approve, name='material-request-approve'),
    path('material-requests/<int:pk>/decline', material_request_decline, name='material-request-decline'),
    path('material-requests/<int:pk>/order', material_request_order, name='material-request-order'),
    path('material-requests/<int:pk>/deliveries', material_request_deliveries, name='material-request-deliveries'),
    path('material-requests/<int:pk>/verify', material_request_verify, name='material-request-verify'),
    path('material-requests/<int:pk>/review', material_request_review, name='material-request-review'),

    # History
    path('material-requests/<int:pk>/actions', material_request_actions, name='material-request-actions'),
    path('material-requests/<int:pk>/verifications', material_request_verifications, name='material-request-verifications'),
]
