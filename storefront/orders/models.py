from django.conf import settings
from django.db import models

from storefront.catalog.models import Product

from .statuses import DEFAULT_STATUS


class TransportCompany(models.Model):
    name = models.CharField(max_length=200, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'transport_companies'
        verbose_name_plural = 'transport companies'
        ordering = ['name']


class Order(models.Model):
    """Client order. Totals are box prices times quantity over non-refused items."""
    order_number = models.CharField(max_length=50, unique=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    gruzchik = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_orders')
    status = models.CharField(max_length=50, default=DEFAULT_STATUS, db_index=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    payment = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    full_name = models.CharField(max_length=200, blank=True, null=True)
    phone = models.CharField(max_length=20)
    email = models.EmailField(blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    comment = models.TextField(blank=True, null=True)
    transport = models.ForeignKey(TransportCompany, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.order_number

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at'], name='orders_user_id_5c2e7a_idx'),
            models.Index(fields=['gruzchik', 'status'], name='orders_gruzchi_9a41d3_idx'),
        ]


class OrderItem(models.Model):
    """Order line. Name, article and box price are copied from the product at order time."""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    slug = models.CharField(max_length=255)
    name = models.CharField(max_length=255)
    article = models.CharField(max_length=100, blank=True, null=True)
    price_box = models.DecimalField(max_digits=12, decimal_places=2)
    qty = models.PositiveIntegerField(default=1)
    item_code = models.CharField(max_length=6, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.item_code} {self.name}"

    class Meta:
        db_table = 'order_items'
        ordering = ['id']


class OrderItemMessage(models.Model):
    """Chat message on an order item between the client, admins and gruzchiks"""
    item = models.ForeignKey(OrderItem, on_delete=models.CASCADE, related_name='messages')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='order_item_messages')
    text = models.TextField(blank=True, null=True)
    is_service = models.BooleanField(default=False)
    attachments = models.JSONField(blank=True, null=True)
    read_by = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name='read_order_item_messages')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_item_messages'
        ordering = ['created_at', 'id']


class OrderItemFeedback(models.Model):
    TYPE_WRONG_SIZE = 'WRONG_SIZE'
    TYPE_WRONG_ITEM = 'WRONG_ITEM'
    TYPE_AGREE_REPLACEMENT = 'AGREE_REPLACEMENT'
    TYPE_CHOICES = [
        (TYPE_WRONG_SIZE, 'Wrong size'),
        (TYPE_WRONG_ITEM, 'Wrong item'),
        (TYPE_AGREE_REPLACEMENT, 'Agree to replacement'),
    ]
    REFUSAL_TYPES = (TYPE_WRONG_SIZE, TYPE_WRONG_ITEM)

    item = models.ForeignKey(OrderItem, on_delete=models.CASCADE, related_name='feedbacks')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='order_item_feedbacks')
    feedback_type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    refusal_reason = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_item_feedbacks'
        ordering = ['-created_at']
        unique_together = [['item', 'user', 'feedback_type']]


class OrderItemReplacement(models.Model):
    """Replacement offered by an admin for an order item, answered by the client"""
    STATUS_PENDING = 'PENDING'
    STATUS_ACCEPTED = 'ACCEPTED'
    STATUS_REJECTED = 'REJECTED'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    item = models.ForeignKey(OrderItem, on_delete=models.CASCADE, related_name='replacements')
    admin = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='proposed_replacements')
    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='received_replacements')
    image_url = models.URLField(max_length=1000, blank=True, null=True)
    image_key = models.CharField(max_length=500, blank=True, null=True)
    admin_comment = models.TextField(blank=True, null=True)
    client_comment = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'order_item_replacements'
        ordering = ['-created_at']
