from django.db import models

from storefront.catalog.models import Category, Provider


class DraftProduct(models.Model):
    """Product assembled from supplier messages, waiting for admin review"""
    STATUS_DRAFT = 'draft'
    STATUS_APPROVED = 'approved'
    STATUS_PROCESSED = 'processed'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_PROCESSED, 'Processed'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    name = models.CharField(max_length=255, blank=True, null=True)
    price_pair = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    currency = models.CharField(max_length=3, default='RUB')
    material = models.CharField(max_length=200, blank=True, null=True)
    gender = models.CharField(max_length=20, blank=True, null=True)
    season = models.CharField(max_length=20, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='drafts')
    provider = models.ForeignKey(Provider, on_delete=models.SET_NULL, null=True, blank=True, related_name='drafts')
    sizes = models.JSONField(default=list, blank=True)
    source = models.JSONField(default=list, blank=True)  # WhatsAppMessage ids
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    is_deleted = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name or f'Draft #{self.pk}'

    class Meta:
        db_table = 'draft_products'
        ordering = ['-created_at']


class DraftProductImage(models.Model):
    draft = models.ForeignKey(DraftProduct, on_delete=models.CASCADE, related_name='images')
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
        db_table = 'draft_product_images'
        ordering = ['sort']


class WhatsAppMessage(models.Model):
    """Raw message captured from a supplier WhatsApp group"""
    wa_message_id = models.CharField(max_length=255, unique=True)
    chat_id = models.CharField(max_length=255, db_index=True)
    sender = models.CharField(max_length=50, blank=True, null=True)  # normalized phone
    from_name = models.CharField(max_length=255, blank=True, null=True)
    type = models.CharField(max_length=50, blank=True, null=True)
    text = models.TextField(blank=True, null=True)
    timestamp = models.BigIntegerField(default=0)
    from_me = models.BooleanField(default=False)
    media_url = models.URLField(max_length=1000, blank=True, null=True)
    media_mime_type = models.CharField(max_length=100, blank=True, null=True)
    media_file_name = models.CharField(max_length=255, blank=True, null=True)
    media_caption = models.TextField(blank=True, null=True)
    media_width = models.IntegerField(blank=True, null=True)
    media_height = models.IntegerField(blank=True, null=True)
    media_file_size = models.BigIntegerField(blank=True, null=True)
    provider = models.ForeignKey(Provider, on_delete=models.SET_NULL, null=True, blank=True, related_name='whatsapp_messages')
    processed = models.BooleanField(default=False, db_index=True)
    raw_payload = models.JSONField(default=dict, blank=True)
    draft_product = models.ForeignKey(DraftProduct, on_delete=models.SET_NULL, null=True, blank=True, related_name='messages')
    ai_group_id = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.wa_message_id

    @property
    def has_media(self):
        return bool(self.media_url)

    class Meta:
        db_table = 'whatsapp_messages'
        ordering = ['timestamp', 'created_at']


class TelegramMessage(models.Model):
    chat_id = models.CharField(max_length=100)
    tg_message_id = models.BigIntegerField()
    chat_title = models.CharField(max_length=255, blank=True, null=True)
    sender_id = models.CharField(max_length=100, blank=True, null=True)
    sender_name = models.CharField(max_length=255, blank=True, null=True)
    text = models.TextField(blank=True, null=True)
    media_url = models.URLField(max_length=1000, blank=True, null=True)
    timestamp = models.BigIntegerField(default=0)
    provider = models.ForeignKey(Provider, on_delete=models.SET_NULL, null=True, blank=True, related_name='telegram_messages')
    processed = models.BooleanField(default=False, db_index=True)
    raw_payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f'{self.chat_id}:{self.tg_message_id}'

    class Meta:
        db_table = 'telegram_messages'
        unique_together = [['chat_id', 'tg_message_id']]
