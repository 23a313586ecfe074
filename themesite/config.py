import os


def _env(*names, default=''):
    """Return the first non-empty environment value among ``names``."""
    for name in names:
        value = (os.environ.get(name) or '').strip()
        if value:
            return value
    return default


def _is_vercel_runtime():
    return bool(os.environ.get('VERCEL') or os.environ.get('VERCEL_ENV'))


def _is_managed_runtime():
    return bool(
        os.environ.get('RAILWAY_ENVIRONMENT')
        or os.environ.get('RAILWAY_PROJECT_ID')
        or os.environ.get('RENDER')
        or os.environ.get('RENDER_SERVICE_ID')
        or _is_vercel_runtime()
    )


def _is_production_runtime():
    flask_env = (os.environ.get('FLASK_ENV') or '').strip().lower()
    railway_env = (os.environ.get('RAILWAY_ENVIRONMENT') or '').strip().lower()
    render_env = (os.environ.get('RENDER_ENV') or '').strip().lower()
    vercel_env = (os.environ.get('VERCEL_ENV') or '').strip().lower()
    return flask_env == 'production' or railway_env == 'production' or render_env == 'production' or vercel_env == 'production'


def _as_bool(value, default=False):
    if value is None:
        return default
    return str(value).strip().lower() in {'1', 'true', 'yes', 'on'}


def _as_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value, default):
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or ''
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = _as_bool(
        os.environ.get('SESSION_COOKIE_SECURE'),
        ((os.environ.get('PREFERRED_URL_SCHEME') or '').lower() == 'https') or _is_production_runtime(),
    )
    TRUST_PROXY_HEADERS = _as_bool(os.environ.get('TRUST_PROXY_HEADERS'), _is_managed_runtime())
    PREFERRED_URL_SCHEME = os.environ.get('PREFERRED_URL_SCHEME') or ('https' if SESSION_COOKIE_SECURE else 'http')
    APP_BASE_URL = (os.environ.get('APP_BASE_URL') or '').rstrip('/')
    HSTS_ENABLED = _as_bool(os.environ.get('HSTS_ENABLED'), True)
    HSTS_MAX_AGE = _as_int(os.environ.get('HSTS_MAX_AGE'), 31536000)
    HSTS_INCLUDE_SUBDOMAINS = _as_bool(os.environ.get('HSTS_INCLUDE_SUBDOMAINS'), True)
    HSTS_PRELOAD = _as_bool(os.environ.get('HSTS_PRELOAD'), False)

    # Content API
    CTX_API_BASE_URL = _env('CTX_API_BASE_URL', 'CTX_API_URL', default='https://api.ctxhub.net/api').rstrip('/')
    CTX_API_KEY = _env('CTX_API_KEY', 'ctxApiKey')
    CTX_TENANT_ID = _env('CTX_TENANT_ID', 'ctxTenantId')
    CTX_API_TIMEOUT_SECONDS = max(1.0, _as_float(os.environ.get('CTX_API_TIMEOUT_SECONDS'), 10.0))
    CTX_DEFAULT_LOCALE = _env('CTX_DEFAULT_LOCALE', 'THEME_DEFAULT_LOCALE', default='tr')
    WARM_CACHES_ON_STARTUP = _as_bool(os.environ.get('WARM_CACHES_ON_STARTUP'), True)
    TENANT_RETRY_SECONDS = max(1, _as_int(os.environ.get('TENANT_RETRY_SECONDS'), 60))

    # Caches and listing bounds
    CATEGORIES_CACHE_TTL = max(1, _as_int(os.environ.get('CATEGORIES_CACHE_TTL_SECONDS'), 300))
    CATEGORIES_FETCH_LIMIT = max(1, _as_int(os.environ.get('CATEGORIES_FETCH_LIMIT'), 200))
    MENU_CACHE_TTL = max(1, _as_int(os.environ.get('MENU_CACHE_TTL_SECONDS'), 300))
    CONTENT_CACHE_TTL = max(0, _as_int(os.environ.get('CONTENT_CACHE_TTL_SECONDS'), 60))
    CONTENT_PAGE_SIZE = max(1, _as_int(os.environ.get('CONTENT_PAGE_SIZE'), 50))
    CONTENT_LOOKUP_MAX_PAGES = max(1, _as_int(os.environ.get('CONTENT_LOOKUP_MAX_PAGES'), 10))
    CONTENT_LIST_LIMIT = max(1, _as_int(os.environ.get('CONTENT_LIST_LIMIT'), 12))
    FEATURED_CONTENT_LIMIT = max(1, _as_int(os.environ.get('FEATURED_CONTENT_LIMIT'), 9))

    # Navigation menus, keyed by cache key
    MENU_SOURCES = {
        'primary': {
            'id': _env('THEME_MENU_ID', 'MENU_ID') or None,
            'slug': _env('THEME_MENU_SLUG', 'MENU_SLUG') or None,
        },
        'footer': {
            'id': _env('THEME_FOOTER_MENU_ID') or None,
            'slug': _env('THEME_FOOTER_MENU_SLUG') or None,
        },
    }

    # Theme
    SITE_URL = _env('SITE_URL', 'CTX_SITE_URL', 'ctxSiteUrl')
    THEME_LOGO_LAYOUT = _env('THEME_LOGO_LAYOUT').lower()

    # Contact form
    CONTACT_FORM_ID = _env('CTX_API_CONTACT_FORM_ID', 'ctxApiContactFormId')
    CONTACT_FORM_SLUG = _env('CTX_API_CONTACT_FORM_SLUG', 'ctxApiContactFormSlug')
    CONTACT_FORM_CACHE_TTL = max(1, _as_int(os.environ.get('CONTACT_FORM_CACHE_TTL_SECONDS'), 300))
    CONTACT_RATE_LIMIT_WINDOW_SECONDS = max(1, _as_int(os.environ.get('CONTACT_RATE_LIMIT_WINDOW_SECONDS'), 60))
    CONTACT_RATE_LIMIT_MAX = max(1, _as_int(os.environ.get('CONTACT_RATE_LIMIT_MAX'), 5))
    CONTACT_COOLDOWN_SECONDS = max(0, _as_int(os.environ.get('CONTACT_COOLDOWN_SECONDS'), 60))

    SENTRY_DSN = (os.environ.get('SENTRY_DSN') or '').strip()
    SENTRY_ENVIRONMENT = (os.environ.get('SENTRY_ENVIRONMENT') or '').strip()
    SENTRY_TRACES_SAMPLE_RATE = _as_float(os.environ.get('SENTRY_TRACES_SAMPLE_RATE'), 0.0)
    LOG_JSON = _as_bool(os.environ.get('LOG_JSON'), True)
    LOG_LEVEL = (os.environ.get('LOG_LEVEL') or 'INFO').strip().upper()
