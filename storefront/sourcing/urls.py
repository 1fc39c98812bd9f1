from django.urls import path

from .views import (
    draft_list, approve_drafts, convert_drafts_to_catalog,
    green_api_webhook, product_source_messages, group_messages,
)

urlpatterns = [
    # Draft review
    path('admin/drafts/', draft_list, name='admin-draft-list'),
    path('admin/drafts/approve/', approve_drafts, name='admin-draft-approve'),
    path('admin/drafts/convert-to-catalog/', convert_drafts_to_catalog, name='admin-draft-convert'),

    # Messages
    path('webhooks/green-api/', green_api_webhook, name='green-api-webhook'),
    path('products/<int:pk>/source-messages/', product_source_messages, name='product-source-messages'),
    path('messages/group/<str:group_id>/', group_messages, name='message-group'),
]
