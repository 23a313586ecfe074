import logging

from ..cache import system_clock
from ..utils import as_number, normalise_id

logger = logging.getLogger(__name__)


def normalise_category(raw):
    return {
        'id': normalise_id(raw.get('_id') or raw.get('id')),
        'name': raw.get('name') or '',
        'slug': raw.get('slug'),
        'description': raw.get('description') or '',
        'parent_id': normalise_id(raw.get('parentId')),
        'ancestors': [a for a in (normalise_id(item) for item in raw.get('ancestors') or []) if a],
        'position': as_number(raw.get('position')),
    }


def parse_category_list(response):
    """Extract the flat category list from a ``GET /categories`` response."""
    if not isinstance(response, dict):
        return []
    items = response.get('categories') or response.get('items') or []
    return [item for item in items if isinstance(item, dict)]


class _CategorySnapshot:
    __slots__ = ('categories', 'by_slug', 'by_id', 'fetched_at')

    def __init__(self, categories=(), fetched_at=0.0):
        self.categories = list(categories)
        self.by_slug = {c['slug']: c for c in self.categories if c.get('slug')}
        self.by_id = {c['id']: c for c in self.categories if c.get('id')}
        self.fetched_at = fetched_at


class CategoryCache:
    def __init__(self, api, ttl=300, fetch_limit=200, clock=system_clock):
        self.api = api
        self.ttl = ttl
        self.fetch_limit = fetch_limit
        self.clock = clock
        self._snapshot = _CategorySnapshot()

    def _fetch(self):
        response = self.api.request('/categories', params={'flat': 'true', 'limit': self.fetch_limit})
        categories = [normalise_category(item) for item in parse_category_list(response)]
        routable = [c for c in categories if c['slug'] and c['id']]
        if len(routable) < len(categories):
            logger.warning('Skipped %d categories without a slug or id.', len(categories) - len(routable))
        routable.sort(key=lambda c: (c['position'], c['name'].lower()))
        # Single assignment so readers never see a half-built index.
        self._snapshot = _CategorySnapshot(routable, self.clock())
        return self._snapshot.categories

    def ensure_categories(self, force=False):
        snapshot = self._snapshot
        if (
            not force
            and snapshot.fetched_at
            and self.clock() - snapshot.fetched_at < self.ttl
        ):
            return snapshot.categories
        try:
            return self._fetch()
        except Exception:
            if snapshot.categories:
                logger.warning('Category refresh failed, serving cached list.', exc_info=True)
                return snapshot.categories
            raise

    def get_categories(self):
        return self._snapshot.categories

    def get_top_level_categories(self):
        return [c for c in self._snapshot.categories if not c.get('parent_id')]

    def get_category_by_slug(self, slug):
        if not slug:
            return None
        return self._snapshot.by_slug.get(slug)

    def get_category_by_id(self, category_id):
        if not category_id:
            return None
        return self._snapshot.by_id.get(category_id)

    def build_category_trail(self, category_ids=None):
        by_id = self._snapshot.by_id
        return [by_id[cid] for cid in category_ids or [] if cid in by_id]
