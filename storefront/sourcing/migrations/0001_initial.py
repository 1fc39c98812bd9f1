# Generated manually

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='DraftProduct',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(blank=True, max_length=255, null=True)),
                ('price_pair', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('currency', models.CharField(default='RUB', max_length=3)),
                ('material', models.CharField(blank=True, max_length=200, null=True)),
                ('gender', models.CharField(blank=True, max_length=20, null=True)),
                ('season', models.CharField(blank=True, max_length=20, null=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('sizes', models.JSONField(blank=True, default=list)),
                ('source', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('approved', 'Approved'), ('processed', 'Processed'), ('rejected', 'Rejected')], db_index=True, default='draft', max_length=20)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='drafts', to='catalog.category')),
                ('provider', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='drafts', to='catalog.provider')),
            ],
            options={
                'db_table': 'draft_products',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='DraftProductImage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('url', models.URLField(max_length=1000)),
                ('key', models.CharField(blank=True, max_length=500, null=True)),
                ('alt', models.CharField(blank=True, max_length=255, null=True)),
                ('sort', models.IntegerField(default=0)),
                ('is_primary', models.BooleanField(default=False)),
                ('is_active', models.BooleanField(default=True)),
                ('color', models.CharField(blank=True, max_length=100, null=True)),
                ('width', models.IntegerField(blank=True, null=True)),
                ('height', models.IntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('draft', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='images', to='sourcing.draftproduct')),
            ],
            options={
                'db_table': 'draft_product_images',
                'ordering': ['sort'],
            },
        ),
        migrations.CreateModel(
            name='WhatsAppMessage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('wa_message_id', models.CharField(max_length=255, unique=True)),
                ('chat_id', models.CharField(db_index=True, max_length=255)),
                ('sender', models.CharField(blank=True, max_length=50, null=True)),
                ('from_name', models.CharField(blank=True, max_length=255, null=True)),
                ('type', models.CharField(blank=True, max_length=50, null=True)),
                ('text', models.TextField(blank=True, null=True)),
                ('timestamp', models.BigIntegerField(default=0)),
                ('from_me', models.BooleanField(default=False)),
                ('media_url', models.URLField(blank=True, max_length=1000, null=True)),
                ('media_mime_type', models.CharField(blank=True, max_length=100, null=True)),
                ('media_file_name', models.CharField(blank=True, max_length=255, null=True)),
                ('media_caption', models.TextField(blank=True, null=True)),
                ('media_width', models.IntegerField(blank=True, null=True)),
                ('media_height', models.IntegerField(blank=True, null=True)),
                ('media_file_size', models.BigIntegerField(blank=True, null=True)),
                ('processed', models.BooleanField(db_index=True, default=False)),
                ('raw_payload', models.JSONField(blank=True, default=dict)),
                ('ai_group_id', models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('draft_product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='messages', to='sourcing.draftproduct')),
                ('provider', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='whatsapp_messages', to='catalog.provider')),
            ],
            options={
                'db_table': 'whatsapp_messages',
                'ordering': ['timestamp', 'created_at'],
            },
        ),
        migrations.CreateModel(
            name='TelegramMessage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('chat_id', models.CharField(max_length=100)),
                ('tg_message_id', models.BigIntegerField()),
                ('chat_title', models.CharField(blank=True, max_length=255, null=True)),
                ('sender_id', models.CharField(blank=True, max_length=100, null=True)),
                ('sender_name', models.CharField(blank=True, max_length=255, null=True)),
                ('text', models.TextField(blank=True, null=True)),
                ('media_url', models.URLField(blank=True, max_length=1000, null=True)),
                ('timestamp', models.BigIntegerField(default=0)),
                ('processed', models.BooleanField(db_index=True, default=False)),
                ('raw_payload', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('provider', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='telegram_messages', to='catalog.provider')),
            ],
            options={
                'db_table': 'telegram_messages',
                'unique_together': {('chat_id', 'tg_message_id')},
            },
        ),
    ]
