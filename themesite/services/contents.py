import logging

from ..cache import SWEEP_EVERY, CacheEntry, system_clock
from ..utils import format_date, normalise_id, sanitize_html, summarise_text

logger = logging.getLogger(__name__)

LIST_ENVELOPE_KEYS = ('items', 'contents', 'data', 'results')


def pick_media(media, prefer=None):
    """Choose the best image variant of a media record, or ``None``."""
    if not isinstance(media, dict):
        return None
    alt = media.get('altText') or media.get('caption') or ''

    variants = [v for v in media.get('variants') or [] if isinstance(v, dict)]
    if variants:
        by_name = {}
        for variant in variants:
            by_name.setdefault(variant.get('name'), variant)
        preferred = (
            (prefer and by_name.get(prefer))
            or by_name.get('large')
            or by_name.get('medium')
            or variants[0]
        )
        if preferred.get('url'):
            return {
                'url': preferred['url'],
                'width': preferred.get('width'),
                'height': preferred.get('height'),
                'alt': alt,
            }

    if media.get('url'):
        return {
            'url': media['url'],
            'width': media.get('width'),
            'height': media.get('height'),
            'alt': alt,
        }
    return None


def extract_category_ids(categories):
    return [cid for cid in (normalise_id(item) for item in categories or []) if cid]


def parse_content_list(response):
    """Extract raw content items from a ``GET /contents`` response."""
    if not isinstance(response, dict):
        return []
    for key in LIST_ENVELOPE_KEYS:
        items = response.get(key)
        if isinstance(items, list) and items:
            return [item for item in items if isinstance(item, dict)]
    return []


def parse_pagination(response):
    if isinstance(response, dict) and isinstance(response.get('pagination'), dict):
        return response['pagination']
    return None


class ContentService:
    def __init__(self, api, tenant=None, page_size=50, max_lookup_pages=10, detail_ttl=60, clock=system_clock):
        self.api = api
        self.tenant = tenant
        self.page_size = page_size
        self.max_lookup_pages = max_lookup_pages
        self.detail_ttl = detail_ttl
        self.clock = clock
        self.slug_index = {}
        self._details = {}
        self._calls = 0

    def _tick(self, now):
        self._calls += 1
        if self._calls % SWEEP_EVERY == 0:
            self.sweep(now)

    def sweep(self, now=None):
        """Drop expired details and the slugs that only pointed at them."""
        now = self.clock() if now is None else now
        for content_id, entry in list(self._details.items()):
            if not entry.is_fresh(now, self.detail_ttl):
                self._details.pop(content_id, None)
        for slug, content_id in list(self.slug_index.items()):
            if content_id not in self._details:
                self.slug_index.pop(slug, None)

    def _remember(self, content):
        if content.get('slug') and content.get('id'):
            self.slug_index[content['slug']] = content['id']
        return content

    def normalise_list_item(self, item, is_lead=False):
        publish_date = item.get('publishAt') or item.get('publishedAt')
        return self._remember({
            'id': normalise_id(item.get('_id') or item.get('id')),
            'title': item.get('title') or '',
            'slug': item.get('slug'),
            'summary': summarise_text(item.get('summary') or item.get('excerpt') or item.get('title')),
            'publish_date': publish_date,
            'formatted_publish_date': format_date(publish_date),
            'hero_image': pick_media(
                item.get('featuredMediaId') or item.get('featuredMedia'),
                prefer='large' if is_lead else 'medium',
            ),
            'category_ids': extract_category_ids(item.get('categories')),
        })

    def normalise_detail(self, item):
        publish_date = item.get('publishAt') or item.get('publishedAt')
        return self._remember({
            'id': normalise_id(item.get('_id') or item.get('id')),
            'title': item.get('title') or '',
            'slug': item.get('slug'),
            'summary': summarise_text(item.get('summary') or item.get('title'), 320),
            'publish_date': publish_date,
            'formatted_publish_date': format_date(publish_date),
            'hero_image': pick_media(item.get('featuredMediaId') or item.get('featuredMedia')),
            'html': sanitize_html(item.get('html')),
            'categories': item.get('categories') or [],
            'category_ids': extract_category_ids(item.get('categories')),
        })

    def normalise_collection(self, response, is_lead=False):
        return [
            self.normalise_list_item(item, is_lead=is_lead and index == 0)
            for index, item in enumerate(parse_content_list(response))
        ]

    def _list(self, **params):
        return self.api.request('/contents', params=dict(status='published', **params))

    def get_featured_contents(self, limit=4):
        tenant_id = self.tenant.get_tenant_id() if self.tenant is not None else None
        response = self._list(tenant=tenant_id, limit=limit, page=1)
        return self.normalise_collection(response, is_lead=True)

    def get_contents_by_category(self, category_id, page=1, limit=12):
        if not category_id:
            return {'items': [], 'pagination': None}
        response = self._list(category=category_id, page=page, limit=limit)
        return {'items': self.normalise_collection(response), 'pagination': parse_pagination(response)}

    def search_contents(self, term, page=1, limit=12):
        term = term.strip() if isinstance(term, str) else ''
        if not term:
            return {'items': [], 'pagination': None}
        response = self._list(search=term, page=page, limit=limit)
        return {'items': self.normalise_collection(response), 'pagination': parse_pagination(response)}

    def find_content_id_by_slug(self, slug):
        if not slug:
            return None
        if slug in self.slug_index:
            return self.slug_index[slug]

        for page in range(1, self.max_lookup_pages + 1):
            response = self._list(page=page, limit=self.page_size)
            for item in self.normalise_collection(response):
                if item['slug'] == slug and item['id']:
                    return item['id']
            total_pages = (parse_pagination(response) or {}).get('pages')
            if not total_pages or page >= total_pages:
                break
        logger.info('No published content found for slug %r.', slug)
        return None

    def get_content_by_id(self, content_id):
        if not content_id:
            return None
        now = self.clock()
        self._tick(now)
        cached = self._details.get(content_id)
        if cached is not None and cached.is_fresh(now, self.detail_ttl):
            return cached.data

        response = self.api.request(f'/contents/{content_id}', allow_not_found=True)
        if not isinstance(response, dict):
            return None
        raw = response.get('content') if isinstance(response.get('content'), dict) else response
        content = self.normalise_detail(raw)
        self._details[content_id] = CacheEntry(content, now, content_id)
        return content

    def get_content(self, content_id=None, slug=None):
        target_id = content_id
        if not target_id and slug:
            target_id = self.find_content_id_by_slug(slug)
        if not target_id:
            return None
        return self.get_content_by_id(target_id)
