from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


class Category(models.Model):
    """Catalog category. `path` is the slash-joined chain of segments from the root."""
    name = models.CharField(max_length=200, db_index=True)
    slug = models.SlugField(max_length=255, unique=True)
    path = models.CharField(max_length=500, unique=True)
    parent = models.ForeignKey('self', on_delete=models.PROTECT, null=True, blank=True, related_name='children')
    sort = models.IntegerField(default=500)
    is_active = models.BooleanField(default=True, db_index=True)
    icon = models.CharField(max_length=100, blank=True, null=True)
    seo_title = models.CharField(max_length=255, blank=True, null=True)
    seo_description = models.TextField(blank=True, null=True)
    seo_h1 = models.CharField(max_length=255, blank=True, null=True)
    seo_canonical = models.CharField(max_length=500, blank=True, null=True)
    seo_intro_html = models.TextField(blank=True, null=True)
    seo_noindex = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.path

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['sort', 'name']


class Provider(models.Model):
    """Supplier whose WhatsApp/Telegram posts feed the catalog"""
    name = models.CharField(max_length=200, unique=True)
    phone = models.CharField(max_length=20, blank=True, null=True, db_index=True)
    place = models.CharField(max_length=200, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'providers'


class Product(models.Model):
    """Catalog product, priced per pair and sold by the box"""
    slug = models.SlugField(max_length=255, unique=True)
    name = models.CharField(max_length=255, db_index=True)
    article = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    price_pair = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, default='RUB')
    material = models.CharField(max_length=200, blank=True, null=True)
    gender = models.CharField(max_length=20, blank=True, null=True)
    season = models.CharField(max_length=20, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='products')
    provider = models.ForeignKey(Provider, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    sizes = models.JSONField(default=list, blank=True)  # [{"size": "38", "count": 1}, ...]
    source_message_ids = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    active_updated_at = models.DateTimeField(auto_now_add=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'products'
        indexes = [
            models.Index(fields=['category', 'is_active'], name='products_categor_8f1c2a_idx'),
            models.Index(fields=['-created_at'], name='products_created_4b7d90_idx'),
        ]


class ProductImage(models.Model):
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='images')
    url = models.URLField(max_length=1000)
    key = models.CharField(max_length=500, blank=True, null=True)
    alt = models.CharField(max_length=255, blank=True, null=True)
    sort = models.IntegerField(default=0)
    is_primary = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    color = models.CharField(max_length=100, blank=True, null=True)
    width = models.IntegerField(blank=True, null=True)
    height = models.IntegerField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.url

    class Meta:
        db_table = 'product_images'
        ordering = ['-is_primary', 'sort']


class Review(models.Model):
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='reviews')
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    title = models.CharField(max_length=255, blank=True, null=True)
    comment = models.TextField(blank=True, null=True)
    name = models.CharField(max_length=200)
    email = models.EmailField()
    is_verified = models.BooleanField(default=False)
    is_published = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product_id}: {self.rating}"

    class Meta:
        db_table = 'reviews'
        ordering = ['-created_at']


class SearchHistory(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True, related_name='search_history')
    query = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.query

    class Meta:
        db_table = 'search_history'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at'], name='search_hist_user_id_3e5a1b_idx'),
        ]
