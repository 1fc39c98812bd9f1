from rest_framework import serializers

from storefront.catalog.models import Product
from storefront.catalog.serializers import ProductImageSerializer

from .models import Purchase, PurchaseItem


class PurchaseProductSerializer(serializers.ModelSerializer):
    pricePair = serializers.DecimalField(source='price_pair', max_digits=12, decimal_places=2, read_only=True)
    images = ProductImageSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'slug', 'name', 'article', 'pricePair', 'sizes', 'images']


class PurchaseItemSerializer(serializers.ModelSerializer):
    productId = serializers.IntegerField(source='product_id', read_only=True)
    oldPrice = serializers.DecimalField(source='old_price', max_digits=12, decimal_places=2, read_only=True)
    sortIndex = serializers.IntegerField(source='sort_index', read_only=True)
    product = PurchaseProductSerializer(read_only=True)

    class Meta:
        model = PurchaseItem
        fields = ['id', 'productId', 'color', 'name', 'description', 'price', 'oldPrice', 'sortIndex', 'product']


class PurchaseSerializer(serializers.ModelSerializer):
    itemsCount = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Purchase
        fields = ['id', 'name', 'itemsCount', 'createdAt', 'updatedAt']

    def get_itemsCount(self, obj):
        count = getattr(obj, 'items_count', None)
        return count if count is not None else obj.items.count()

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Требуется название закупки')
        return value


class PurchaseDetailSerializer(PurchaseSerializer):
    items = serializers.SerializerMethodField()

    class Meta(PurchaseSerializer.Meta):
        fields = PurchaseSerializer.Meta.fields + ['items']

    def get_items(self, obj):
        items = obj.items.select_related('product').prefetch_related('product__images').order_by('sort_index', 'id')
        return PurchaseItemSerializer(items, many=True).data
