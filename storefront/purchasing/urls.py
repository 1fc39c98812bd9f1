from django.urls import path

from .views import (
    purchase_list_create, purchase_detail, purchase_add_item, purchase_item_detail,
    purchase_export, purchase_create_order,
)

urlpatterns = [
    path('admin/purchases/', purchase_list_create, name='admin-purchase-list'),
    path('admin/purchases/<int:pk>/', purchase_detail, name='admin-purchase-detail'),
    path('admin/purchases/<int:pk>/items/', purchase_add_item, name='admin-purchase-items'),
    path('admin/purchases/<int:pk>/items/<int:item_id>/', purchase_item_detail, name='admin-purchase-item-detail'),
    path('admin/purchases/<int:pk>/export/', purchase_export, name='admin-purchase-export'),
    path('admin/purchases/<int:pk>/create-order/', purchase_create_order, name='admin-purchase-create-order'),
]
