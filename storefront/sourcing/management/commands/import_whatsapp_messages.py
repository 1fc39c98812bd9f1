"""
Management command to import WhatsApp messages from a CSV export
"""
import csv
import json
import os

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction

from storefront.catalog.models import Provider
from storefront.sourcing.models import WhatsAppMessage, DraftProduct


def parse_bool(value):
    return str(value or '').strip().lower() == 'true'


def parse_int(value, default=None):
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def parse_json(value):
    if not value:
        return {}
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {'value': parsed}


def row_to_fields(row):
    """Map a CSV row (export column names) to WhatsAppMessage fields"""
    return {
        'wa_message_id': (row.get('waMessageId') or '').strip(),
        'chat_id': (row.get('chatId') or '').strip(),
        'sender': row.get('from') or None,
        'from_name': row.get('fromName') or None,
        'type': row.get('type') or None,
        'text': row.get('text') or None,
        'timestamp': parse_int(row.get('timestamp'), 0),
        'from_me': parse_bool(row.get('fromMe')),
        'media_url': row.get('mediaUrl') or None,
        'media_mime_type': row.get('mediaMimeType') or None,
        'media_width': parse_int(row.get('mediaWidth')),
        'media_height': parse_int(row.get('mediaHeight')),
        'media_file_size': parse_int(row.get('mediaFileSize')),
        'processed': parse_bool(row.get('processed')),
        'raw_payload': parse_json(row.get('rawPayload')),
        'ai_group_id': row.get('aiGroupId') or None,
        'provider_id': parse_int(row.get('providerId')),
        'draft_product_id': parse_int(row.get('draftProductId')),
    }


class Command(BaseCommand):
    help = "Imports WhatsApp messages from a CSV export, skipping duplicates"

    def add_arguments(self, parser):
        parser.add_argument(
            '--csv-file',
            type=str,
            required=True,
            help='Path to the CSV export of WhatsApp messages',
        )
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Delete all existing WhatsApp messages before importing',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=100,
            help='Number of messages written per transaction (default: 100)',
        )

    def handle(self, *args, **options):
        csv_file = options['csv_file']
        batch_size = max(options['batch_size'], 1)

        if not os.path.isabs(csv_file):
            csv_file = os.path.normpath(os.path.join(settings.BASE_DIR, '..', csv_file))

        self.stdout.write(self.style.SUCCESS("================================================================================"))
        self.stdout.write(self.style.SUCCESS("IMPORTING WHATSAPP MESSAGES FROM CSV"))
        self.stdout.write(self.style.SUCCESS("================================================================================"))
        self.stdout.write(f"CSV File: {csv_file}")

        if not os.path.exists(csv_file):
            self.stdout.write(self.style.ERROR(f"Error: CSV file not found at {csv_file}"))
            return

        if options['clear']:
            self.stdout.write(self.style.WARNING("Clearing all existing WhatsApp messages..."))
            WhatsAppMessage.objects.all().delete()

        with open(csv_file, 'r', encoding='utf-8-sig', newline='') as f:
            rows = [row_to_fields(row) for row in csv.DictReader(f)]

        self.stdout.write(f"Found {len(rows)} messages to import")

        provider_ids = set(Provider.objects.values_list('id', flat=True))
        draft_ids = set(DraftProduct.objects.values_list('id', flat=True))
        existing = set(WhatsAppMessage.objects.values_list('wa_message_id', flat=True))

        imported_count = 0
        skipped_count = 0
        for start in range(0, len(rows), batch_size):
            batch = []
            for fields in rows[start:start + batch_size]:
                wa_id = fields['wa_message_id']
                if not wa_id or not fields['chat_id'] or wa_id in existing:
                    skipped_count += 1
                    continue
                if fields['provider_id'] not in provider_ids:
                    fields['provider_id'] = None
                if fields['draft_product_id'] not in draft_ids:
                    fields['draft_product_id'] = None
                existing.add(wa_id)
                batch.append(WhatsAppMessage(**fields))

            with transaction.atomic():
                WhatsAppMessage.objects.bulk_create(batch)
            imported_count += len(batch)
            self.stdout.write(f"  Imported {imported_count} messages...")

        self.stdout.write(self.style.SUCCESS("================================================================================"))
        self.stdout.write(self.style.SUCCESS(f"Imported: {imported_count}"))
        self.stdout.write(f"Skipped: {skipped_count}")
