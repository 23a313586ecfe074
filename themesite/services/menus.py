import logging

from ..cache import CacheEntry, system_clock
from ..utils import as_number, normalise_id

logger = logging.getLogger(__name__)


def resolve_item_url(item):
    if item.get('url'):
        return item['url']
    reference = item.get('reference') or {}
    if item.get('type') == 'external' and isinstance(reference, dict) and reference.get('url'):
        return reference['url']
    return None


def _sort_nodes(nodes):
    nodes.sort(key=lambda node: (as_number(node.get('order')), (node.get('title') or '').lower()))
    for node in nodes:
        _sort_nodes(node['children'])
    return nodes


def build_tree(items):
    """Turn flat, parent-referencing menu items into a sorted tree.

    A missing parent, or a parent chain that loops back to the item, puts the
    item at the root.
    """
    if not isinstance(items, list) or not items:
        return []

    lookup = {}
    for item in items:
        if not isinstance(item, dict):
            continue
        item_id = normalise_id(item.get('_id') or item.get('id'))
        if not item_id:
            continue
        lookup[item_id] = dict(item, id=item_id, children=[])

    parents = {item_id: normalise_id(node.get('parentId')) for item_id, node in lookup.items()}

    def creates_cycle(item_id):
        seen = set()
        current = parents.get(item_id)
        while current and current in lookup and current not in seen:
            if current == item_id:
                return True
            seen.add(current)
            current = parents.get(current)
        return False

    roots = []
    for item_id, node in lookup.items():
        parent_id = parents[item_id]
        if parent_id and parent_id in lookup and not creates_cycle(item_id):
            lookup[parent_id]['children'].append(node)
        else:
            roots.append(node)
    return _sort_nodes(roots)


def map_menu_item(node):
    href = resolve_item_url(node)
    if not href:
        return None
    children = [child for child in (map_menu_item(c) for c in node.get('children') or []) if child]
    return {
        'id': normalise_id(node.get('_id') or node.get('id')),
        'label': node.get('title') or '',
        'href': href,
        'target': node.get('target') or '_self',
        'css_classes': node.get('cssClasses') or '',
        'children': children,
    }


def shape_menu(raw, tree):
    return {
        'id': normalise_id(raw.get('_id') or raw.get('id')),
        'name': raw.get('name') or '',
        'slug': raw.get('slug') or None,
        'items': [item for item in (map_menu_item(node) for node in tree or []) if item],
    }


class MenuCache:
    def __init__(self, api, sources=None, ttl=300, clock=system_clock):
        self.api = api
        self.sources = sources or {}
        self.ttl = ttl
        self.clock = clock
        self._entries = {}

    def fetch_menu_by_id(self, menu_id):
        if not menu_id:
            return None
        response = self.api.request(f'/menus/{menu_id}', allow_not_found=True)
        if not isinstance(response, dict) or response.get('error'):
            return None
        return shape_menu(response, build_tree(response.get('items') or []))

    def fetch_menu_by_slug(self, slug):
        if not slug:
            return None
        response = self.api.request(f'/public/menus/slug/{slug}', allow_not_found=True)
        if not isinstance(response, dict) or response.get('error'):
            return None
        tree = response.get('tree')
        if not isinstance(tree, list):
            tree = build_tree(response.get('items') or [])
        return shape_menu(dict(response, slug=slug), tree)

    def ensure_menu(self, cache_key='primary', menu_id=None, slug=None, force=False):
        source = self.sources.get(cache_key) or {}
        resolved_id = menu_id if menu_id is not None else source.get('id')
        resolved_slug = slug if slug is not None else source.get('slug')
        key = (resolved_id or None, resolved_slug or None)
        now = self.clock()

        if not resolved_id and not resolved_slug:
            self._entries[cache_key] = CacheEntry(None, now, key)
            return None

        entry = self._entries.get(cache_key)
        if not force and entry is not None and entry.key == key and entry.is_fresh(now, self.ttl):
            return entry.data

        try:
            menu = self.fetch_menu_by_id(resolved_id)
            if menu is None:
                menu = self.fetch_menu_by_slug(resolved_slug)
        except Exception:
            if entry is not None and entry.data:
                logger.warning('Menu refresh failed for %s, serving cached menu.', cache_key, exc_info=True)
                return entry.data
            raise

        self._entries[cache_key] = CacheEntry(menu, self.clock(), key)
        return menu

    def get_menu(self, cache_key='primary'):
        entry = self._entries.get(cache_key)
        return entry.data if entry is not None else None
