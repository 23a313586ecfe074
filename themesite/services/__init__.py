from flask import current_app

from ..api_client import ApiClient
from ..cache import system_clock
from .categories import CategoryCache
from .contact_form import ContactFormService
from .contents import ContentService
from .menus import MenuCache
from .tenant import TenantCache
from .throttle import ContactThrottle

EXTENSION_KEY = 'themesite'


class SiteServices:
    """One instance of every cache and service, sharing an API client and clock."""

    def __init__(self, config, api=None, clock=None):
        self.clock = clock or system_clock
        self.api = api or ApiClient.from_config(config)
        self.tenant = TenantCache(
            self.api,
            site_url=config.get('SITE_URL', ''),
            logo_layout=config.get('THEME_LOGO_LAYOUT', ''),
            retry_seconds=config.get('TENANT_RETRY_SECONDS', 60),
            clock=self.clock,
        )
        self.categories = CategoryCache(
            self.api,
            ttl=config.get('CATEGORIES_CACHE_TTL', 300),
            fetch_limit=config.get('CATEGORIES_FETCH_LIMIT', 200),
            clock=self.clock,
        )
        self.menus = MenuCache(
            self.api,
            sources=config.get('MENU_SOURCES', {}),
            ttl=config.get('MENU_CACHE_TTL', 300),
            clock=self.clock,
        )
        self.contents = ContentService(
            self.api,
            tenant=self.tenant,
            page_size=config.get('CONTENT_PAGE_SIZE', 50),
            max_lookup_pages=config.get('CONTENT_LOOKUP_MAX_PAGES', 10),
            detail_ttl=config.get('CONTENT_CACHE_TTL', 60),
            clock=self.clock,
        )
        self.contact_form = ContactFormService(
            self.api,
            form_id=config.get('CONTACT_FORM_ID', ''),
            form_slug=config.get('CONTACT_FORM_SLUG', ''),
            api_key=config.get('CTX_API_KEY', ''),
            default_locale=config.get('CTX_DEFAULT_LOCALE', 'tr'),
            ttl=config.get('CONTACT_FORM_CACHE_TTL', 300),
            clock=self.clock,
        )
        self.throttle = ContactThrottle(
            window_seconds=config.get('CONTACT_RATE_LIMIT_WINDOW_SECONDS', 60),
            max_requests=config.get('CONTACT_RATE_LIMIT_MAX', 5),
            cooldown_seconds=config.get('CONTACT_COOLDOWN_SECONDS', 60),
            clock=self.clock,
        )


def get_services():
    return current_app.extensions[EXTENSION_KEY]
