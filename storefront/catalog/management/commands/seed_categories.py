"""
Management command to load the default shoe category tree:
obuv -> gender -> season -> product type
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from storefront.catalog.cache import suspend_cache_signals
from storefront.catalog.models import Category

ROOT = ('obuv', 'Обувь')

GENDERS = [
    ('mens', 'Мужская обувь'),
    ('womens', 'Женская обувь'),
    ('girls', 'Обувь для девочек'),
    ('boys', 'Обувь для мальчиков'),
]

SEASONS = {
    'autumn': ('Осень', [
        ('boots', 'Ботинки'), ('sneakers', 'Кроссовки'), ('shoes', 'Туфли'),
        ('loafers', 'Лоферы'), ('chelsea', 'Челси'), ('ankle-boots', 'Ботильоны'),
    ]),
    'winter': ('Зима', [
        ('boots', 'Зимние ботинки'), ('ugg', 'Угги'), ('felt-boots', 'Валенки'),
        ('sneakers', 'Зимние кроссовки'), ('thermal', 'Термоботинки'),
        ('knee-boots', 'Зимние сапоги'), ('dutiki', 'Дутики'),
    ]),
    'spring': ('Весна', [
        ('sneakers', 'Кроссовки'), ('canvas', 'Кеды'), ('shoes', 'Туфли'),
        ('moccasins', 'Мокасины'), ('ballet-flats', 'Балетки'),
    ]),
    'summer': ('Лето', [
        ('sandals', 'Сандалии'), ('flip-flops', 'Шлепанцы'), ('heeled-sandals', 'Босоножки'),
        ('mules', 'Мюли'), ('espadrilles', 'Эспадрильи'), ('boots', 'Ботинки'),
    ]),
}


class Command(BaseCommand):
    help = "Loads the default shoe category tree (idempotent)"

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Delete categories without products before seeding',
        )

    def upsert(self, name, slug, path, parent, sort):
        category, created = Category.objects.get_or_create(
            path=path,
            defaults={'name': name, 'slug': slug, 'parent': parent, 'sort': sort, 'is_active': True},
        )
        if created:
            self.created_count += 1
        else:
            self.skipped_count += 1
        return category

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS("================================================================================"))
        self.stdout.write(self.style.SUCCESS("SEEDING CATEGORY TREE"))
        self.stdout.write(self.style.SUCCESS("================================================================================"))

        self.created_count = 0
        self.skipped_count = 0

        with suspend_cache_signals(), transaction.atomic():
            if options['clear']:
                self.stdout.write(self.style.WARNING("Clearing empty categories..."))
                # leaves first so PROTECT on parent never fires
                for category in Category.objects.filter(products__isnull=True).order_by('-path'):
                    if not category.children.exists():
                        category.delete()

            root_segment, root_name = ROOT
            root = self.upsert(root_name, root_segment, root_segment, None, 100)

            for gender_sort, (gender, gender_name) in enumerate(GENDERS, start=1):
                gender_path = f'{root_segment}/{gender}'
                gender_cat = self.upsert(gender_name, gender, gender_path, root, gender_sort * 100)

                for season_sort, (season, (season_name, types)) in enumerate(SEASONS.items(), start=1):
                    season_path = f'{gender_path}/{season}'
                    season_cat = self.upsert(season_name, f'{gender}-{season}', season_path, gender_cat, season_sort * 100)

                    for type_sort, (type_segment, type_name) in enumerate(types, start=1):
                        self.upsert(
                            type_name,
                            f'{gender}-{season}-{type_segment}',
                            f'{season_path}/{type_segment}',
                            season_cat,
                            type_sort * 100,
                        )

        self.stdout.write(self.style.SUCCESS(f"Created: {self.created_count}"))
        self.stdout.write(f"Already present: {self.skipped_count}")
