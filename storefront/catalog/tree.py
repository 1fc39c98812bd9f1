"""
Category tree assembly.

Rows are grouped by parent, children are attached recursively and product
counts roll up from the leaves: total = direct + sum of children totals.
Siblings are ordered by (sort, name).
"""
from collections import defaultdict

from django.db.models import Count

from .models import Category, Product
from .slugs import url_path, last_segment

CATEGORY_FIELDS = [
    'id', 'name', 'slug', 'path', 'parent_id', 'sort', 'is_active', 'icon',
    'seo_title', 'seo_description', 'seo_h1', 'seo_canonical',
    'seo_intro_html', 'seo_noindex', 'created_at', 'updated_at',
]


def _sort_key(row):
    return (row['sort'], row['name'])


def category_node(row, direct_count=0, children=None):
    """Serialize one category row (dict) into a tree node"""
    children = children or []
    node = {
        'id': row['id'],
        'name': row['name'],
        'slug': row['slug'],
        'path': row['path'],
        'parentId': row['parent_id'],
        'sort': row['sort'],
        'isActive': row['is_active'],
        'icon': row.get('icon'),
        'seoTitle': row.get('seo_title'),
        'seoDescription': row.get('seo_description'),
        'seoH1': row.get('seo_h1'),
        'seoCanonical': row.get('seo_canonical'),
        'seoIntroHtml': row.get('seo_intro_html'),
        'seoNoindex': row.get('seo_noindex', False),
        'urlPath': url_path(row['path']),
        'segment': last_segment(row['path']),
        'directProductCount': direct_count,
        'totalProductCount': direct_count + sum(c['totalProductCount'] for c in children),
        'children': children,
    }
    return node


def build_category_tree(rows, counts=None):
    """
    Build nested nodes from flat category rows.

    Args:
        rows: iterable of dicts with at least id, parent_id, name, slug, path,
            sort and is_active.
        counts: mapping of category id to its direct product count.
    """
    counts = counts or {}
    children_by_parent = defaultdict(list)
    for row in rows:
        children_by_parent[row['parent_id']].append(row)

    def to_node(row):
        children = [to_node(child) for child in sorted(children_by_parent.get(row['id'], []), key=_sort_key)]
        return category_node(row, counts.get(row['id'], 0), children)

    return [to_node(root) for root in sorted(children_by_parent.get(None, []), key=_sort_key)]


def prune_empty_branches(nodes):
    """Drop subtrees without products; keep the whole tree if nothing would remain"""
    def prune(items):
        kept = []
        for node in items:
            if node['totalProductCount'] <= 0:
                continue
            kept.append({**node, 'children': prune(node['children'])})
        return kept

    pruned = prune(nodes)
    return pruned if pruned else nodes


def leaf_categories(nodes):
    leaves = []
    for node in nodes:
        if node['children']:
            leaves.extend(leaf_categories(node['children']))
        else:
            leaves.append(node)
    return leaves


def descendant_ids(category_id):
    """Ids of every category below `category_id` (not including itself)"""
    children_by_parent = defaultdict(list)
    for cid, parent_id in Category.objects.values_list('id', 'parent_id'):
        children_by_parent[parent_id].append(cid)

    found = []
    stack = list(children_by_parent.get(category_id, []))
    while stack:
        cid = stack.pop()
        found.append(cid)
        stack.extend(children_by_parent.get(cid, []))
    return found


def is_descendant(category_id, candidate_parent_id):
    """True when `candidate_parent_id` sits somewhere below `category_id`"""
    return candidate_parent_id in descendant_ids(category_id)


def load_tree(active_only=False):
    """Query categories with direct product counts and assemble the tree"""
    categories = Category.objects.all()
    products = Product.objects.all()
    if active_only:
        categories = categories.filter(is_active=True)
        products = products.filter(is_active=True)

    rows = list(categories.values(*CATEGORY_FIELDS))
    counts = {
        row['category_id']: row['total']
        for row in products.values('category_id').annotate(total=Count('id'))
    }
    return build_category_tree(rows, counts)
