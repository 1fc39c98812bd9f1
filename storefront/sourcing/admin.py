from django.contrib import admin

from .models import DraftProduct, DraftProductImage, WhatsAppMessage, TelegramMessage


class DraftProductImageInline(admin.TabularInline):
    model = DraftProductImage
    extra = 0
    fields = ['url', 'color', 'sort', 'is_primary', 'is_active']


@admin.register(DraftProduct)
class DraftProductAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'price_pair', 'provider', 'category', 'status', 'is_deleted', 'created_at']
    list_filter = ['status', 'is_deleted', 'gender', 'season']
    search_fields = ['name', 'description']
    ordering = ['-created_at']
    inlines = [DraftProductImageInline]


@admin.register(WhatsAppMessage)
class WhatsAppMessageAdmin(admin.ModelAdmin):
    list_display = ['wa_message_id', 'chat_id', 'sender', 'type', 'provider', 'processed', 'ai_group_id', 'created_at']
    list_filter = ['processed', 'type']
    search_fields = ['wa_message_id', 'sender', 'text', 'ai_group_id']
    ordering = ['-created_at']
    readonly_fields = ['raw_payload']


@admin.register(TelegramMessage)
class TelegramMessageAdmin(admin.ModelAdmin):
    list_display = ['chat_id', 'tg_message_id', 'chat_title', 'sender_name', 'provider', 'processed', 'created_at']
    list_filter = ['processed']
    search_fields = ['chat_title', 'sender_name', 'text']
    ordering = ['-created_at']
