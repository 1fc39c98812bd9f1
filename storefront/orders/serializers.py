from rest_framework import serializers

from storefront.core.models import User

from .models import (
    TransportCompany, Order, OrderItem, OrderItemMessage, OrderItemFeedback, OrderItemReplacement,
)
from .statuses import get_status_config


class UserBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'name', 'phone', 'label']


class TransportCompanySerializer(serializers.ModelSerializer):
    class Meta:
        model = TransportCompany
        fields = ['id', 'name']


class OrderItemSerializer(serializers.ModelSerializer):
    productId = serializers.IntegerField(source='product_id', read_only=True)
    priceBox = serializers.DecimalField(source='price_box', max_digits=12, decimal_places=2, read_only=True)
    itemCode = serializers.CharField(source='item_code', read_only=True)
    imageUrl = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = ['id', 'productId', 'slug', 'name', 'article', 'priceBox', 'qty', 'itemCode', 'imageUrl']

    def get_imageUrl(self, obj):
        if obj.product is None:
            return None
        images = [img for img in obj.product.images.all() if img.is_active]
        return images[0].url if images else None


class OrderSerializer(serializers.ModelSerializer):
    orderNumber = serializers.CharField(source='order_number', read_only=True)
    statusConfig = serializers.SerializerMethodField()
    fullName = serializers.CharField(source='full_name', read_only=True)
    user = UserBriefSerializer(read_only=True)
    gruzchik = UserBriefSerializer(read_only=True)
    transport = TransportCompanySerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'orderNumber', 'status', 'statusConfig', 'subtotal', 'total', 'payment',
                  'fullName', 'phone', 'email', 'address', 'comment', 'user', 'gruzchik',
                  'transport', 'items', 'createdAt', 'updatedAt']

    def get_statusConfig(self, obj):
        return get_status_config(obj.status)


class OrderLineSerializer(serializers.Serializer):
    slug = serializers.CharField(required=False)
    productId = serializers.IntegerField(required=False)
    qty = serializers.IntegerField(min_value=1, error_messages={'min_value': 'Quantity must be a positive integer'})

    def validate(self, attrs):
        if not attrs.get('slug') and attrs.get('productId') is None:
            raise serializers.ValidationError('Each item needs a slug or productId')
        return attrs


class CustomerInfoSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    phone = serializers.CharField(required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    address = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    comment = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class OrderCreateSerializer(serializers.Serializer):
    """Client order payload; customer fields come flat or nested in customerInfo"""
    items = OrderLineSerializer(many=True, allow_empty=False,
                                error_messages={'empty': 'Order must contain at least one item'})
    phone = serializers.CharField(required=False, allow_blank=True)
    fullName = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    address = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    comment = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    customerInfo = CustomerInfoSerializer(required=False)
    transportCompanyId = serializers.IntegerField(required=False, allow_null=True)

    def validate_transportCompanyId(self, value):
        if value is None:
            raise serializers.ValidationError('Transport company is required')
        if not TransportCompany.objects.filter(pk=value).exists():
            raise serializers.ValidationError('Transport company not found')
        return value

    def validate(self, attrs):
        info = attrs.get('customerInfo') or {}
        customer = {
            'name': attrs.get('fullName') or info.get('name'),
            'phone': attrs.get('phone') or info.get('phone'),
            'email': attrs.get('email') or info.get('email'),
            'address': attrs.get('address') or info.get('address'),
            'comment': attrs.get('comment') or info.get('comment'),
        }
        if not customer['phone']:
            raise serializers.ValidationError({'phone': 'Phone is required'})
        if attrs.get('transportCompanyId') is None:
            raise serializers.ValidationError({'transportCompanyId': 'Transport company is required'})
        attrs['customer'] = customer
        return attrs


class OrderItemsAddSerializer(serializers.Serializer):
    items = OrderLineSerializer(many=True, allow_empty=False,
                                error_messages={'empty': 'At least one item is required'})


def message_sender(user):
    if user.role == User.ROLE_GRUZCHIK:
        return 'gruzchik'
    if user.role == User.ROLE_ADMIN:
        return 'admin'
    return 'client'


class OrderItemMessageSerializer(serializers.ModelSerializer):
    sender = serializers.SerializerMethodField()
    senderName = serializers.SerializerMethodField()
    senderId = serializers.IntegerField(source='user_id', read_only=True)
    timestamp = serializers.DateTimeField(source='created_at', read_only=True)
    isService = serializers.BooleanField(source='is_service', read_only=True)

    class Meta:
        model = OrderItemMessage
        fields = ['id', 'text', 'sender', 'senderName', 'senderId', 'timestamp', 'isService', 'attachments']

    def get_sender(self, obj):
        return message_sender(obj.user)

    def get_senderName(self, obj):
        return obj.user.name or obj.user.phone


class OrderItemFeedbackSerializer(serializers.ModelSerializer):
    type = serializers.CharField(source='feedback_type', read_only=True)
    refusalReason = serializers.CharField(source='refusal_reason', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    user = UserBriefSerializer(read_only=True)

    class Meta:
        model = OrderItemFeedback
        fields = ['id', 'type', 'refusalReason', 'createdAt', 'user']


class OrderItemReplacementSerializer(serializers.ModelSerializer):
    replacementImageUrl = serializers.CharField(source='image_url', read_only=True)
    replacementImageKey = serializers.CharField(source='image_key', read_only=True)
    adminComment = serializers.CharField(source='admin_comment', read_only=True)
    clientComment = serializers.CharField(source='client_comment', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    adminUser = UserBriefSerializer(source='admin', read_only=True)
    clientUser = UserBriefSerializer(source='client', read_only=True)

    class Meta:
        model = OrderItemReplacement
        fields = ['id', 'status', 'replacementImageUrl', 'replacementImageKey', 'adminComment',
                  'clientComment', 'createdAt', 'adminUser', 'clientUser']
