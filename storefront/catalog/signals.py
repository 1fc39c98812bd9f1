"""Invalidate the cached category tree when categories or products change"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .cache import invalidate_category_tree, is_suspended
from .models import Category, Product


@receiver([post_save, post_delete], sender=Category)
def invalidate_tree_on_category_change(sender, instance, **kwargs):
    if is_suspended():
        return
    invalidate_category_tree()


@receiver([post_save, post_delete], sender=Product)
def invalidate_tree_on_product_change(sender, instance, **kwargs):
    if is_suspended():
        return
    invalidate_category_tree()
