from rest_framework import serializers

from .models import DraftProduct, DraftProductImage, WhatsAppMessage


class DraftProductImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = DraftProductImage
        fields = ['id', 'url', 'key', 'alt', 'sort', 'is_primary', 'is_active', 'color', 'width', 'height']


class DraftProductSerializer(serializers.ModelSerializer):
    images = DraftProductImageSerializer(many=True, read_only=True)
    provider_name = serializers.CharField(source='provider.name', read_only=True, default=None)
    category_path = serializers.CharField(source='category.path', read_only=True, default=None)

    class Meta:
        model = DraftProduct
        fields = ['id', 'name', 'price_pair', 'currency', 'material', 'gender', 'season', 'description',
                  'category', 'category_path', 'provider', 'provider_name', 'sizes', 'source', 'status',
                  'images', 'created_at', 'updated_at']


class WhatsAppMessageSerializer(serializers.ModelSerializer):
    waMessageId = serializers.CharField(source='wa_message_id')
    fromName = serializers.CharField(source='from_name')
    mediaUrl = serializers.CharField(source='media_url')
    mediaMimeType = serializers.CharField(source='media_mime_type')
    mediaWidth = serializers.IntegerField(source='media_width')
    mediaHeight = serializers.IntegerField(source='media_height')
    aiGroupId = serializers.CharField(source='ai_group_id')
    createdAt = serializers.DateTimeField(source='created_at')
    provider = serializers.SerializerMethodField()

    class Meta:
        model = WhatsAppMessage
        fields = ['id', 'waMessageId', 'sender', 'fromName', 'type', 'text', 'timestamp', 'mediaUrl',
                  'mediaMimeType', 'mediaWidth', 'mediaHeight', 'aiGroupId', 'createdAt', 'provider']
        read_only_fields = fields

    def get_provider(self, obj):
        return {'name': obj.provider.name} if obj.provider_id else None
