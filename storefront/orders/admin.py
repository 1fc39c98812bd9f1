from django.contrib import admin

from .models import (
    TransportCompany, Order, OrderItem, OrderItemMessage, OrderItemFeedback, OrderItemReplacement,
)


@admin.register(TransportCompany)
class TransportCompanyAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ['item_code', 'name', 'article', 'price_box', 'qty']
    readonly_fields = ['item_code']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'user', 'status', 'total', 'payment', 'gruzchik', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['order_number', 'phone', 'full_name']
    readonly_fields = ['order_number', 'subtotal', 'total', 'created_at', 'updated_at']
    inlines = [OrderItemInline]


@admin.register(OrderItemMessage)
class OrderItemMessageAdmin(admin.ModelAdmin):
    list_display = ['item', 'user', 'is_service', 'created_at']
    list_filter = ['is_service', 'created_at']


@admin.register(OrderItemFeedback)
class OrderItemFeedbackAdmin(admin.ModelAdmin):
    list_display = ['item', 'user', 'feedback_type', 'created_at']
    list_filter = ['feedback_type']


@admin.register(OrderItemReplacement)
class OrderItemReplacementAdmin(admin.ModelAdmin):
    list_display = ['item', 'admin', 'client', 'status', 'created_at']
    list_filter = ['status']
