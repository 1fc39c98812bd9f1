from rest_framework import serializers

from .models import Category, Product, ProductImage, Review, Provider


class ProviderSerializer(serializers.ModelSerializer):
    class Meta:
        model = Provider
        fields = ['id', 'name', 'phone', 'place']


class ProductImageSerializer(serializers.ModelSerializer):
    isPrimary = serializers.BooleanField(source='is_primary', read_only=True)
    isActive = serializers.BooleanField(source='is_active', read_only=True)

    class Meta:
        model = ProductImage
        fields = ['id', 'url', 'key', 'alt', 'sort', 'isPrimary', 'isActive', 'color', 'width', 'height']


class CategoryBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'path']


def color_options(images):
    """First image per distinct color, compared case-insensitively"""
    seen = set()
    options = []
    for image in images:
        if not image.color:
            continue
        key = image.color.lower()
        if key in seen:
            continue
        seen.add(key)
        options.append({'color': image.color, 'imageUrl': image.url})
    return options


class CatalogProductSerializer(serializers.ModelSerializer):
    """Product card for catalog listings"""
    pricePair = serializers.DecimalField(source='price_pair', max_digits=12, decimal_places=2, read_only=True)
    category = CategoryBriefSerializer(read_only=True)
    primaryImageUrl = serializers.SerializerMethodField()
    colorOptions = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'slug', 'name', 'article', 'pricePair', 'currency', 'gender', 'season',
                  'sizes', 'category', 'primaryImageUrl', 'colorOptions', 'createdAt']

    def _images(self, obj):
        # prefetched in view with primary-first ordering
        return [img for img in obj.images.all() if img.is_active]

    def get_primaryImageUrl(self, obj):
        images = self._images(obj)
        return images[0].url if images else None

    def get_colorOptions(self, obj):
        return color_options(self._images(obj))


class ProductDetailSerializer(CatalogProductSerializer):
    images = serializers.SerializerMethodField()
    provider = ProviderSerializer(read_only=True)
    sourceMessageIds = serializers.JSONField(source='source_message_ids', read_only=True)

    class Meta(CatalogProductSerializer.Meta):
        fields = CatalogProductSerializer.Meta.fields + [
            'material', 'description', 'images', 'provider', 'sourceMessageIds', 'is_active',
        ]

    def get_images(self, obj):
        return ProductImageSerializer(self._images(obj), many=True).data


class ReviewSerializer(serializers.ModelSerializer):
    rating = serializers.IntegerField(min_value=1, max_value=5, error_messages={
        'min_value': 'Rating must be between 1 and 5',
        'max_value': 'Rating must be between 1 and 5',
    })
    name = serializers.CharField(max_length=200, error_messages={'required': 'Name and email are required'})
    email = serializers.EmailField(write_only=True, error_messages={'required': 'Name and email are required'})

    class Meta:
        model = Review
        fields = ['id', 'rating', 'title', 'comment', 'name', 'email', 'is_verified', 'created_at']
        read_only_fields = ['is_verified', 'created_at']


class AdminProductSerializer(ProductDetailSerializer):
    """Product for the admin panel; inactive images included"""
    activeUpdatedAt = serializers.DateTimeField(source='active_updated_at', read_only=True)

    class Meta(ProductDetailSerializer.Meta):
        fields = ProductDetailSerializer.Meta.fields + ['activeUpdatedAt']

    def _images(self, obj):
        return list(obj.images.all())
