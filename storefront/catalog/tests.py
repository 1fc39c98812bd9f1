"""
Tests for the category tree, slug allocation, catalog listing, reviews and search history
"""
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase, override_settings
from rest_framework import status

from storefront.catalog.cache import CATEGORY_TREE_CACHE_KEY, get_public_category_tree, suspend_cache_signals
from storefront.catalog.models import Category, Product, ProductImage, Review, SearchHistory
from storefront.catalog.slugs import (
    slugify, sanitize_slug, ensure_unique_slug, capitalize_first_letter, url_path,
)
from storefront.catalog.tree import build_category_tree, prune_empty_branches, leaf_categories, is_descendant
from storefront.core.exceptions import SlugAllocationError
from storefront.core.models import AuditLog
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient


def row(id, parent_id=None, name='', sort=500, path=None):
    return {
        'id': id, 'parent_id': parent_id, 'name': name or f'C{id}', 'slug': f'c{id}',
        'path': path or f'obuv/c{id}', 'sort': sort, 'is_active': True,
    }


class SlugTests(TestCase):

    def test_slugify_transliterates(self):
        self.assertEqual(slugify('Женские Ботинки'), 'zhenskie-botinki')
        self.assertEqual(slugify('  --Кеды 2024!! '), 'kedy-2024')

    def test_sanitize_slug_joins_parent(self):
        self.assertEqual(sanitize_slug('obuv-womens', None, 'Лето'), 'obuv-womens-leto')
        self.assertEqual(sanitize_slug('obuv', 'Custom Slug', 'ignored'), 'custom-slug')
        self.assertEqual(sanitize_slug(None, None, '!!!'), 'category')

    def test_unique_slug_returns_base_when_free(self):
        self.assertEqual(ensure_unique_slug('leto'), 'leto')

    def test_unique_slug_appends_counter(self):
        Category.objects.create(name='Лето', slug='leto', path='leto')
        Category.objects.create(name='Лето 1', slug='leto-1', path='leto1')
        self.assertEqual(ensure_unique_slug('leto'), 'leto-2')

    def test_unique_slug_ignores_own_row(self):
        category = TestDataFactory.create_category()
        self.assertEqual(ensure_unique_slug(category.slug, exclude_id=category.id), category.slug)

    def test_unique_slug_gives_up(self):
        Category.objects.create(name='A', slug='a', path='a')
        Category.objects.create(name='A1', slug='a-1', path='a1')
        Category.objects.create(name='A2', slug='a-2', path='a2')
        with self.assertRaises(SlugAllocationError):
            ensure_unique_slug('a', max_attempts=3)

    def test_capitalize_first_letter(self):
        self.assertEqual(capitalize_first_letter('  зимние САПОГИ '), 'Зимние сапоги')

    @override_settings(CATALOG_ROOT_PATH='obuv')
    def test_url_path_strips_root(self):
        self.assertEqual(url_path('obuv/womens/leto'), 'womens/leto')
        self.assertEqual(url_path('obuv'), '')


class CategoryTreeTests(TestCase):

    def test_siblings_sorted_by_sort_then_name(self):
        tree = build_category_tree([
            row(1),
            row(2, 1, 'Б', sort=10),
            row(3, 1, 'А', sort=10),
            row(4, 1, 'В', sort=5),
        ])
        self.assertEqual([c['name'] for c in tree[0]['children']], ['В', 'А', 'Б'])

    def test_counts_roll_up(self):
        tree = build_category_tree(
            [row(1), row(2, 1), row(3, 2), row(4, 1)],
            counts={1: 1, 3: 5, 4: 2},
        )
        root = tree[0]
        self.assertEqual(root['directProductCount'], 1)
        self.assertEqual(root['totalProductCount'], 8)
        self.assertEqual(root['children'][0]['totalProductCount'], 5)

    def test_multiple_roots_and_empty_input(self):
        self.assertEqual(build_category_tree([]), [])
        tree = build_category_tree([row(1, name='B'), row(2, name='A')])
        self.assertEqual([n['name'] for n in tree], ['A', 'B'])

    def test_orphan_rows_are_not_roots(self):
        tree = build_category_tree([row(1), row(5, parent_id=99)])
        self.assertEqual(len(tree), 1)

    def test_prune_keeps_branches_with_products(self):
        tree = build_category_tree([row(1), row(2, 1), row(3, 1)], counts={2: 1})
        pruned = prune_empty_branches(tree)
        self.assertEqual([c['id'] for c in pruned[0]['children']], [2])

    def test_prune_falls_back_to_full_tree(self):
        tree = build_category_tree([row(1), row(2, 1)])
        self.assertEqual(prune_empty_branches(tree), tree)

    def test_leaf_categories(self):
        tree = build_category_tree([row(1), row(2, 1), row(3, 2), row(4, 1)])
        self.assertEqual(sorted(n['id'] for n in leaf_categories(tree)), [3, 4])

    def test_is_descendant(self):
        root = TestDataFactory.create_category()
        child = TestDataFactory.create_category(parent=root)
        grandchild = TestDataFactory.create_category(parent=child)
        self.assertTrue(is_descendant(root.id, grandchild.id))
        self.assertFalse(is_descendant(grandchild.id, root.id))


class CategoryTreeCacheTests(TestCase):

    def setUp(self):
        cache.clear()
        self.root = TestDataFactory.create_category(segment='obuv')

    def test_tree_is_cached_and_invalidated_on_save(self):
        TestDataFactory.create_product(category=self.root)
        get_public_category_tree()
        self.assertIsNotNone(cache.get(CATEGORY_TREE_CACHE_KEY))
        TestDataFactory.create_category(parent=self.root)
        self.assertIsNone(cache.get(CATEGORY_TREE_CACHE_KEY))

    def test_suspended_signals_invalidate_once_on_exit(self):
        get_public_category_tree()
        with suspend_cache_signals():
            TestDataFactory.create_category(parent=self.root)
            self.assertIsNotNone(cache.get(CATEGORY_TREE_CACHE_KEY))
        self.assertIsNone(cache.get(CATEGORY_TREE_CACHE_KEY))


class AdminCategoryAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.root = Category.objects.create(name='Обувь', slug='obuv', path='obuv')

    def test_create_child_category(self):
        response = self.client.post('/api/v1/admin/categories/', {
            'name': 'женская ОБУВЬ', 'urlSegment': 'womens', 'parentId': self.root.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        item = response.data['item']
        self.assertEqual(item['name'], 'Женская обувь')
        self.assertEqual(item['path'], 'obuv/womens')
        self.assertEqual(item['slug'], 'obuv-zhenskaya-obuv')
        self.assertEqual(item['sort'], 500)
        self.assertTrue(AuditLog.objects.filter(model_name='Category', action='create').exists())

    def test_sort_follows_siblings(self):
        Category.objects.create(name='A', slug='a', path='obuv/a', parent=self.root, sort=700)
        response = self.client.post('/api/v1/admin/categories/', {
            'name': 'B', 'parentId': self.root.id,
        }, format='json')
        self.assertEqual(response.data['item']['sort'], 701)

    def test_duplicate_slug_gets_suffix(self):
        payload = {'name': 'Лето', 'slug': 'leto', 'urlSegment': 'leto', 'parentId': self.root.id}
        self.client.post('/api/v1/admin/categories/', payload, format='json')
        payload['urlSegment'] = 'leto-2'
        response = self.client.post('/api/v1/admin/categories/', payload, format='json')
        self.assertEqual(response.data['item']['slug'], 'leto-1')

    def test_duplicate_path_is_conflict(self):
        payload = {'name': 'Лето', 'urlSegment': 'leto', 'parentId': self.root.id}
        self.client.post('/api/v1/admin/categories/', payload, format='json')
        response = self.client.post('/api/v1/admin/categories/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data['ok'])

    def test_name_required(self):
        response = self.client.post('/api/v1/admin/categories/', {'name': '  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_move_into_descendant_rejected(self):
        child = Category.objects.create(name='C', slug='c', path='obuv/c', parent=self.root)
        response = self.client.patch(f'/api/v1/admin/categories/{self.root.id}/', {
            'name': 'Обувь', 'parentId': child.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_own_parent_rejected(self):
        response = self.client.patch(f'/api/v1/admin/categories/{self.root.id}/', {
            'name': 'Обувь', 'parentId': self.root.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rename_segment_rewrites_descendant_paths(self):
        womens = Category.objects.create(name='W', slug='w', path='obuv/womens', parent=self.root)
        summer = Category.objects.create(name='S', slug='s', path='obuv/womens/leto', parent=womens)
        response = self.client.patch(f'/api/v1/admin/categories/{womens.id}/', {
            'name': 'W', 'urlSegment': 'women', 'parentId': self.root.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summer.refresh_from_db()
        self.assertEqual(summer.path, 'obuv/women/leto')

    def test_rename_keeps_seo_fields_and_flags(self):
        self.root.seo_title = 'Shoes wholesale'
        self.root.seo_description = 'Boxes of shoes'
        self.root.seo_noindex = True
        self.root.is_active = False
        self.root.save()
        response = self.client.patch(f'/api/v1/admin/categories/{self.root.id}/', {
            'name': 'Обувь оптом', 'urlSegment': 'obuv',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.root.refresh_from_db()
        self.assertEqual(self.root.name, 'Обувь оптом')
        self.assertEqual(self.root.seo_title, 'Shoes wholesale')
        self.assertEqual(self.root.seo_description, 'Boxes of shoes')
        self.assertTrue(self.root.seo_noindex)
        self.assertFalse(self.root.is_active)

        self.client.patch(f'/api/v1/admin/categories/{self.root.id}/', {
            'name': 'Обувь оптом', 'urlSegment': 'obuv', 'seoTitle': None, 'isActive': True,
        }, format='json')
        self.root.refresh_from_db()
        self.assertIsNone(self.root.seo_title)
        self.assertEqual(self.root.seo_description, 'Boxes of shoes')
        self.assertTrue(self.root.is_active)

    def test_delete_with_children_conflicts(self):
        Category.objects.create(name='C', slug='c', path='obuv/c', parent=self.root)
        response = self.client.delete(f'/api/v1/admin/categories/{self.root.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_delete_with_products_conflicts(self):
        TestDataFactory.create_product(category=self.root)
        response = self.client.delete(f'/api/v1/admin/categories/{self.root.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_delete_empty(self):
        leaf = Category.objects.create(name='C', slug='c', path='obuv/c', parent=self.root)
        response = self.client.delete(f'/api/v1/admin/categories/{leaf.id}/')
        self.assertTrue(response.data['ok'])
        self.assertFalse(Category.objects.filter(pk=leaf.pk).exists())

    def test_missing_category(self):
        response = self.client.delete('/api/v1/admin/categories/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_includes_counts(self):
        TestDataFactory.create_product(category=self.root)
        response = self.client.get('/api/v1/admin/categories/')
        self.assertEqual(response.data['items'][0]['totalProductCount'], 1)


class AdminProductAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.category = TestDataFactory.create_category()
        self.product = TestDataFactory.create_product(
            name='Sneakers', article='SN-1', category=self.category, price_pair=Decimal('500'),
        )
        self.hidden = TestDataFactory.create_product(name='Boots', article='BT-2', is_active=False)

    def url(self, product=None):
        return f'/api/v1/admin/products/{(product or self.product).pk}/'

    def test_list_includes_inactive(self):
        response = self.client.get('/api/v1/admin/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 2)

    def test_list_search_and_category(self):
        response = self.client.get('/api/v1/admin/products/', {'search': 'bt-2'})
        self.assertEqual([p['id'] for p in response.data['products']], [self.hidden.pk])
        response = self.client.get('/api/v1/admin/products/', {'categoryId': self.category.pk})
        self.assertEqual([p['id'] for p in response.data['products']], [self.product.pk])

    def test_list_bad_pagination_falls_back(self):
        response = self.client.get('/api/v1/admin/products/', {'page': 'x', 'pageSize': '0'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['pageSize'], 1)

    def test_detail_shows_inactive_images(self):
        TestDataFactory.create_product_image(self.product, color='Black', is_active=False)
        response = self.client.get(self.url())
        self.assertEqual(len(response.data['product']['images']), 1)

    def test_patch_writes_only_given_fields(self):
        self.product.material = 'Leather'
        self.product.save()
        other = TestDataFactory.create_category()
        response = self.client.patch(self.url(), {
            'pricePair': '750.50', 'isActive': False, 'categoryId': other.pk,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.price_pair, Decimal('750.50'))
        self.assertFalse(self.product.is_active)
        self.assertEqual(self.product.category, other)
        self.assertEqual(self.product.material, 'Leather')
        self.assertEqual(self.product.name, 'Sneakers')
        self.assertTrue(AuditLog.objects.filter(model_name='Product', action='update').exists())

    def test_patch_rejects_bad_values(self):
        for payload in ({}, {'pricePair': 'cheap'}, {'pricePair': '-1'}, {'name': ' '},
                        {'sizes': 'big'}, {'categoryId': 999999}):
            response = self.client.patch(self.url(), payload, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, payload)
        self.product.refresh_from_db()
        self.assertEqual(self.product.price_pair, Decimal('500'))

    def test_delete(self):
        response = self.client.delete(self.url(self.hidden))
        self.assertTrue(response.data['success'])
        self.assertFalse(Product.objects.filter(pk=self.hidden.pk).exists())
        response = self.client.get(self.url(self.hidden))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_ordered_product_rejected(self):
        TestDataFactory.create_order(products=[self.product])
        response = self.client.delete(self.url())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Product.objects.filter(pk=self.product.pk).exists())

    def test_delete_color_images(self):
        TestDataFactory.create_product_image(self.product, color='Black')
        TestDataFactory.create_product_image(self.product, color='BLACK')
        TestDataFactory.create_product_image(self.product, color='White')
        response = self.client.delete(f'{self.url()}colors/black/')
        self.assertEqual(response.data['deleted'], 2)
        self.assertEqual(list(ProductImage.objects.filter(product=self.product).values_list('color', flat=True)),
                         ['White'])

    def test_client_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/admin/products/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


@override_settings(CATALOG_ROOT_PATH='obuv')
class PublicCategoryAPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.root = Category.objects.create(name='Обувь', slug='obuv', path='obuv')
        self.womens = Category.objects.create(name='Женская', slug='obuv-womens', path='obuv/womens', parent=self.root)
        self.summer = Category.objects.create(name='Лето', slug='obuv-womens-leto', path='obuv/womens/leto', parent=self.womens)
        self.winter = Category.objects.create(name='Зима', slug='obuv-womens-zima', path='obuv/womens/zima', parent=self.womens)
        TestDataFactory.create_product(category=self.summer)

    def test_public_tree_prunes_empty(self):
        response = self.client.get('/api/v1/categories/tree/')
        womens = response.data['items'][0]['children'][0]
        self.assertEqual([c['id'] for c in womens['children']], [self.summer.id])

    def test_by_path(self):
        response = self.client.get('/api/v1/categories/by-path/', {'path': 'womens'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['category']['id'], self.womens.id)
        self.assertEqual([b['name'] for b in response.data['breadcrumbs']], ['Обувь', 'Женская'])
        self.assertEqual([s['id'] for s in response.data['subcategories']], [self.summer.id])
        self.assertFalse(response.data['fallback'])

    def test_by_path_falls_back_to_parent(self):
        response = self.client.get('/api/v1/categories/by-path/', {'path': 'womens/unknown'})
        self.assertEqual(response.data['category']['id'], self.womens.id)
        self.assertTrue(response.data['fallback'])

    def test_by_path_required(self):
        response = self.client.get('/api/v1/categories/by-path/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_by_path_not_found(self):
        response = self.client.get('/api/v1/categories/by-path/', {'path': 'nothing'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class CatalogAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.root = TestDataFactory.create_category()
        self.child = TestDataFactory.create_category(parent=self.root)
        self.cheap = TestDataFactory.create_product(name='Кеды белые', category=self.child, price_pair=Decimal('300'))
        self.pricey = TestDataFactory.create_product(name='Ботинки', category=self.root, price_pair=Decimal('900'))
        TestDataFactory.create_product_image(self.cheap, color='White', is_primary=True)
        TestDataFactory.create_product_image(self.pricey, color='Black', is_primary=True)
        TestDataFactory.create_product(name='Скрытый', category=self.root, is_active=False)

    def test_lists_active_products(self):
        response = self.client.get('/api/v1/catalog/')
        self.assertEqual(response.data['pagination']['total'], 2)

    def test_category_includes_descendants(self):
        response = self.client.get('/api/v1/catalog/', {'categoryId': self.root.id})
        self.assertEqual(response.data['pagination']['total'], 2)
        response = self.client.get('/api/v1/catalog/', {'categoryId': self.child.id})
        self.assertEqual([p['id'] for p in response.data['products']], [self.cheap.id])

    def test_price_range_and_sort(self):
        response = self.client.get('/api/v1/catalog/', {'minPrice': 100, 'maxPrice': 1000, 'sortBy': 'price_desc'})
        self.assertEqual([p['id'] for p in response.data['products']], [self.pricey.id, self.cheap.id])

    def test_color_filter_is_case_insensitive(self):
        response = self.client.get('/api/v1/catalog/', {'colors': 'white'})
        self.assertEqual([p['id'] for p in response.data['products']], [self.cheap.id])

    def test_search_records_history(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/catalog/', {'search': 'Кеды'})
        self.assertEqual(response.data['pagination']['total'], 1)
        self.assertTrue(SearchHistory.objects.filter(user=user, query='Кеды').exists())

    def test_product_detail(self):
        response = self.client.get(f'/api/v1/products/{self.cheap.slug}/')
        self.assertEqual(response.data['name'], 'Кеды белые')
        self.assertEqual(response.data['colorOptions'][0]['color'], 'White')

    def test_product_detail_inactive_is_404(self):
        hidden = TestDataFactory.create_product(is_active=False)
        response = self.client.get(f'/api/v1/products/{hidden.slug}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ReviewAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.product = TestDataFactory.create_product()

    def test_submit_and_average(self):
        url = f'/api/v1/products/{self.product.id}/reviews/'
        self.client.post(url, {'rating': 5, 'name': 'Анна', 'email': 'a@example.com'}, format='json')
        self.client.post(url, {'rating': 4, 'name': 'Олег', 'email': 'o@example.com'}, format='json')
        response = self.client.get(url)
        self.assertEqual(response.data['totalReviews'], 2)
        self.assertEqual(response.data['averageRating'], 4.5)
        self.assertNotIn('email', response.data['reviews'][0])

    def test_rating_out_of_range(self):
        response = self.client.post(f'/api/v1/products/{self.product.id}/reviews/', {
            'rating': 6, 'name': 'Анна', 'email': 'a@example.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Rating must be between 1 and 5')

    def test_unknown_product(self):
        response = self.client.post('/api/v1/products/99999/reviews/', {
            'rating': 3, 'name': 'Анна', 'email': 'a@example.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(Review.objects.count(), 0)


class SearchHistoryAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()

    def test_anonymous_gets_empty_list(self):
        response = self.client.get('/api/v1/search-history/')
        self.assertEqual(response.data['searchHistory'], [])

    def test_anonymous_delete_is_401(self):
        response = self.client.delete('/api/v1/search-history/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_case_insensitive_upsert(self):
        self.client.authenticate_user(self.user)
        self.client.get('/api/v1/catalog/', {'search': 'Sneakers'})
        self.client.get('/api/v1/catalog/', {'search': 'sneakers'})
        response = self.client.get('/api/v1/search-history/')
        self.assertEqual(len(response.data['searchHistory']), 1)
        self.assertEqual(response.data['searchHistory'][0]['query'], 'sneakers')

    def test_delete_one(self):
        self.client.authenticate_user(self.user)
        first = SearchHistory.objects.create(user=self.user, query='кеды')
        SearchHistory.objects.create(user=self.user, query='ботинки')
        self.client.delete(f'/api/v1/search-history/?id={first.id}')
        self.assertEqual(list(SearchHistory.objects.values_list('query', flat=True)), ['ботинки'])


class SeedCategoriesCommandTests(TestCase):

    def test_seed_is_idempotent(self):
        call_command('seed_categories', stdout=StringIO())
        count = Category.objects.count()
        call_command('seed_categories', stdout=StringIO())
        self.assertEqual(Category.objects.count(), count)
        self.assertTrue(Category.objects.filter(path='obuv/womens/summer/sandals').exists())
