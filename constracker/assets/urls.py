from django.urls import path
from .views import asset_list_create, asset_detail, asset_items

urlpatterns = [
    path('assets', asset_list_create, name='asset-list-create'),
    path('assets/items', asset_items, name='asset-items'),
    path('assets/<int:pk>', asset_detail, name='asset-detail'),
]
