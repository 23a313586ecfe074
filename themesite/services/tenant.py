import logging

from ..cache import system_clock
from ..theme import build_theme_from_branding

logger = logging.getLogger(__name__)


class TenantCache:
    """Tenant record, branding and derived theme, loaded once per process."""

    def __init__(self, api, site_url='', logo_layout='', retry_seconds=60, clock=system_clock):
        self.api = api
        self.site_url = site_url
        self.logo_layout = logo_layout
        self.retry_seconds = retry_seconds
        self.clock = clock
        self._tenant = None
        self._branding = None
        self._theme = build_theme_from_branding(None, site_url, logo_layout)
        self._loaded = False
        self._last_attempt = 0.0

    @property
    def loaded(self):
        return self._loaded

    def load(self):
        self._last_attempt = self.clock()
        data = self.api.request('/tenant/info') or {}
        tenant = data.get('tenant') or None
        branding = data.get('branding') or None
        theme = build_theme_from_branding(branding, self.site_url, self.logo_layout)
        self._tenant, self._branding, self._theme = tenant, branding, theme
        self._loaded = True
        return {'tenant': tenant, 'branding': branding, 'theme': theme}

    def ensure_loaded(self):
        if self._loaded:
            return True
        if self._last_attempt and self.clock() - self._last_attempt < self.retry_seconds:
            return False
        try:
            self.load()
        except Exception:
            logger.warning('Failed to load tenant info, using default theme.', exc_info=True)
            return False
        return True

    def get_tenant(self):
        return self._tenant

    def get_branding(self):
        return self._branding

    def get_theme(self):
        return self._theme

    def get_tenant_id(self):
        tenant = self._tenant or {}
        return tenant.get('id') or tenant.get('_id') or None

    def get_default_locale(self):
        tenant = self._tenant or {}
        return tenant.get('defaultLocale') or None
