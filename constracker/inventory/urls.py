from django.urls import path
from .views import central_inventory, project_inventory, movement_list, adjustment_create

urlpatterns = [
    path('inventory', central_inventory, name='inventory-central'),
    path('inventory/project/<int:pk>', project_inventory, name='inventory-project'),
    path('inventory/movements', movement_list, name='inventory-movement-list'),
    path('inventory/adjustments', adjustment_create, name='inventory-adjustment-create'),
]
