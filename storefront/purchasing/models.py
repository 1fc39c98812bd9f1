from django.conf import settings
from django.db import models

from storefront.catalog.models import Product


class Purchase(models.Model):
    """Admin-curated product list exported to the joint-purchase site"""
    name = models.CharField(max_length=255)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='purchases')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'purchases'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['created_by', '-created_at'], name='purchases_created_2d8b61_idx'),
        ]


class PurchaseItem(models.Model):
    """One product color in a purchase; old_price is the crossed-out price shown on the site"""
    purchase = models.ForeignKey(Purchase, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='purchase_items')
    color = models.CharField(max_length=100, blank=True, null=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    old_price = models.DecimalField(max_digits=12, decimal_places=2)
    sort_index = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.color or '-'})"

    class Meta:
        db_table = 'purchase_items'
        ordering = ['sort_index', 'id']
        indexes = [
            models.Index(fields=['purchase', 'product'], name='purchase_it_purchas_7e3f20_idx'),
        ]
