from django.urls import path

from .views import (
    admin_category_list_create, admin_category_detail,
    admin_product_list, admin_product_detail, admin_product_color_delete,
    category_tree, category_by_path,
    catalog_list, product_detail, product_reviews, search_history,
)

urlpatterns = [
    # Admin categories
    path('admin/categories/', admin_category_list_create, name='admin-category-list-create'),
    path('admin/categories/<int:pk>/', admin_category_detail, name='admin-category-detail'),

    # Admin products
    path('admin/products/', admin_product_list, name='admin-product-list'),
    path('admin/products/<int:pk>/', admin_product_detail, name='admin-product-detail'),
    path('admin/products/<int:pk>/colors/<str:color>/', admin_product_color_delete, name='admin-product-color-delete'),

    # Public catalog
    path('categories/tree/', category_tree, name='category-tree'),
    path('categories/by-path/', category_by_path, name='category-by-path'),
    path('catalog/', catalog_list, name='catalog-list'),
    path('products/<slug:slug>/', product_detail, name='product-detail'),
    path('products/<int:pk>/reviews/', product_reviews, name='product-reviews'),
    path('search-history/', search_history, name='search-history'),
]
