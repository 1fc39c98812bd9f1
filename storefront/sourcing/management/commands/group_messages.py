"""
Management command to group unprocessed WhatsApp messages into draft products with Groq
"""
import logging

import requests
from django.core.management.base import BaseCommand

from storefront.catalog.models import Provider
from storefront.core.exceptions import GroqAPIError
from storefront.sourcing.grouping import group_provider_messages
from storefront.sourcing.groq import GroqClient

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Groups unprocessed supplier messages into draft products using Groq"

    def add_arguments(self, parser):
        parser.add_argument(
            '--provider',
            type=int,
            help='Only process messages of this provider id',
        )

    def handle(self, *args, **options):
        providers = Provider.objects.filter(whatsapp_messages__processed=False).distinct()
        if options.get('provider'):
            providers = providers.filter(pk=options['provider'])

        self.stdout.write(self.style.SUCCESS("================================================================================"))
        self.stdout.write(self.style.SUCCESS("GROUPING SUPPLIER MESSAGES"))
        self.stdout.write(self.style.SUCCESS("================================================================================"))

        try:
            client = GroqClient()
        except GroqAPIError as e:
            self.stdout.write(self.style.ERROR(f"Error: {e}"))
            return

        total_drafts = 0
        failed = 0
        for provider in providers:
            try:
                drafts = group_provider_messages(provider, client=client)
            except (GroqAPIError, requests.RequestException) as e:
                failed += 1
                logger.error(f"Grouping failed for provider {provider.pk}: {str(e)}", exc_info=True)
                self.stdout.write(self.style.ERROR(f"  {provider.name}: {e}"))
                continue
            total_drafts += len(drafts)
            self.stdout.write(f"  {provider.name}: {len(drafts)} drafts")

        self.stdout.write(self.style.SUCCESS(f"Drafts created: {total_drafts}"))
        if failed:
            self.stdout.write(self.style.WARNING(f"Providers failed: {failed}"))
