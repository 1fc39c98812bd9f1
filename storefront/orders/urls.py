from django.urls import path

from .views import (
    order_list_create, order_item_messages, order_item_feedback, replacement_response,
    order_unread_counts, admin_order_list_update, admin_order_detail, admin_order_items_add,
    admin_order_item_messages, admin_order_item_message_detail, admin_propose_replacement,
    gruzchik_order_list, gruzchik_order_item_messages,
)

urlpatterns = [
    # Client
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/<int:pk>/unread-counts/', order_unread_counts, name='order-unread-counts'),
    path('order-items/<int:item_id>/messages/', order_item_messages, name='order-item-messages'),
    path('order-items/<int:item_id>/feedback/', order_item_feedback, name='order-item-feedback'),
    path('order-items/<int:item_id>/replacement/response/', replacement_response, name='order-item-replacement-response'),

    # Admin
    path('admin/orders/', admin_order_list_update, name='admin-order-list'),
    path('admin/orders/<int:pk>/', admin_order_detail, name='admin-order-detail'),
    path('admin/orders/<int:pk>/items/', admin_order_items_add, name='admin-order-items-add'),
    path('admin/order-items/<int:item_id>/messages/', admin_order_item_messages, name='admin-order-item-messages'),
    path('admin/order-items/<int:item_id>/messages/<int:message_id>/', admin_order_item_message_detail,
         name='admin-order-item-message-detail'),
    path('admin/order-items/<int:item_id>/replacement/', admin_propose_replacement, name='admin-order-item-replacement'),

    # Gruzchik
    path('gruzchik/orders/', gruzchik_order_list, name='gruzchik-order-list'),
    path('gruzchik/order-items/<int:item_id>/messages/', gruzchik_order_item_messages, name='gruzchik-order-item-messages'),
]
