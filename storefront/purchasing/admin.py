from django.contrib import admin

from .models import Purchase, PurchaseItem


class PurchaseItemInline(admin.TabularInline):
    model = PurchaseItem
    extra = 0
    fields = ['product', 'color', 'name', 'price', 'old_price', 'sort_index']


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_by', 'created_at', 'updated_at']
    search_fields = ['name']
    inlines = [PurchaseItemInline]
