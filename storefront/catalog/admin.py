from django.contrib import admin

from .models import Category, Provider, Product, ProductImage, Review, SearchHistory


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'path', 'slug', 'parent', 'sort', 'is_active', 'created_at']
    list_filter = ['is_active', 'seo_noindex', 'created_at']
    search_fields = ['name', 'slug', 'path']
    ordering = ['path']


@admin.register(Provider)
class ProviderAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'place', 'created_at']
    search_fields = ['name', 'phone', 'place']
    ordering = ['name']


class ProductImageInline(admin.TabularInline):
    model = ProductImage
    extra = 0
    fields = ['url', 'color', 'sort', 'is_primary', 'is_active']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'article', 'price_pair', 'category', 'provider', 'is_active', 'created_at']
    list_filter = ['is_active', 'gender', 'season', 'category', 'created_at']
    search_fields = ['name', 'slug', 'article', 'description']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at', 'active_updated_at']
    inlines = [ProductImageInline]


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ['product', 'rating', 'name', 'is_verified', 'is_published', 'created_at']
    list_filter = ['rating', 'is_verified', 'is_published']
    search_fields = ['name', 'email', 'product__name']
    ordering = ['-created_at']


@admin.register(SearchHistory)
class SearchHistoryAdmin(admin.ModelAdmin):
    list_display = ['query', 'user', 'created_at']
    search_fields = ['query', 'user__phone']
    ordering = ['-created_at']
