__version__ = '1.0.0'

import json
import logging
import re
import secrets
from urllib.parse import urlparse

from flask import Flask, abort, flash, g, has_request_context, redirect, render_template, request, session, url_for
from markupsafe import Markup, escape
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .services import EXTENSION_KEY, SiteServices, get_services
from .theme import theme_css_vars

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{8,80}$")
_sentry_initialized = False
NAVIGATION_MENU_KEYS = ('primary', 'footer')
CACHE_EXEMPT_ENDPOINTS = {'static', 'health', 'healthz', 'readyz'}


class JsonLogFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'time': self.formatTime(record, self.datefmt),
        }
        if has_request_context():
            payload.update(
                {
                    'request_id': getattr(g, 'request_id', ''),
                    'method': request.method,
                    'path': request.path,
                    'remote_ip': request.remote_addr,
                }
            )
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger(__name__).setLevel(level)
    if not app.config.get('LOG_JSON', True):
        return
    formatter = JsonLogFormatter()
    for handler in app.logger.handlers:
        handler.setFormatter(formatter)


def get_csrf_token():
    token = session.get('_csrf_token')
    if not token:
        token = secrets.token_urlsafe(32)
        session['_csrf_token'] = token
    return token


def csrf_input():
    token = get_csrf_token()
    return Markup(f'<input type="hidden" name="_csrf_token" value="{escape(token)}">')  # nosec B704


def get_csp_nonce():
    nonce = getattr(g, 'csp_nonce', '')
    if nonce:
        return nonce
    nonce = secrets.token_urlsafe(16)
    g.csp_nonce = nonce
    return nonce


def safe_referrer_path(fallback):
    raw_referrer = (request.referrer or '').strip()
    if not raw_referrer:
        return fallback

    parsed = urlparse(raw_referrer)
    if parsed.scheme and parsed.scheme not in {'http', 'https'}:
        return fallback
    if parsed.netloc and parsed.netloc != request.host:
        return fallback

    path = parsed.path or '/'
    if not path.startswith('/'):
        return fallback

    target = path
    if parsed.query:
        target = f"{target}?{parsed.query}"
    return target


def init_sentry(app):
    global _sentry_initialized
    if _sentry_initialized:
        return

    dsn = (app.config.get('SENTRY_DSN') or '').strip()
    if not dsn:
        return

    try:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        traces_sample_rate = float(app.config.get('SENTRY_TRACES_SAMPLE_RATE') or 0.0)
        sentry_sdk.init(
            dsn=dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=traces_sample_rate,
            environment=(app.config.get('SENTRY_ENVIRONMENT') or None),
        )
        _sentry_initialized = True
        app.logger.info('Sentry monitoring enabled.')
    except Exception:
        app.logger.exception('Failed to initialize Sentry monitoring.')


def refresh_site_caches(services, logger):
    """Best-effort refresh of everything the page chrome needs."""
    services.tenant.ensure_loaded()
    try:
        services.categories.ensure_categories()
    except Exception:
        logger.warning('Failed to refresh categories from the content API.', exc_info=True)
    for cache_key in NAVIGATION_MENU_KEYS:
        try:
            services.menus.ensure_menu(cache_key=cache_key)
        except Exception:
            logger.warning('Failed to refresh %s menu from the content API.', cache_key, exc_info=True)


def create_app(config_overrides=None, api_client=None, clock=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)
    configure_logging(app)

    if not app.config.get('SECRET_KEY'):
        import warnings
        app.config['SECRET_KEY'] = secrets.token_urlsafe(32)
        warnings.warn(
            'SECRET_KEY is not set, using a random key. '
            'CSRF tokens will not survive restarts. '
            'Set the SECRET_KEY environment variable for production.',
            stacklevel=2,
        )

    if app.config.get('TRUST_PROXY_HEADERS'):
        # Only trust one proxy hop (the platform edge) when explicitly enabled.
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    init_sentry(app)

    services = SiteServices(app.config, api=api_client, clock=clock)
    app.extensions[EXTENSION_KEY] = services

    @app.before_request
    def assign_request_id():
        incoming = (request.headers.get('X-Request-ID') or '').strip()
        if _REQUEST_ID_RE.match(incoming):
            g.request_id = incoming
        else:
            g.request_id = secrets.token_hex(16)

    @app.before_request
    def enforce_csrf():
        if request.method not in ('POST', 'PUT', 'PATCH', 'DELETE'):
            return
        expected = session.get('_csrf_token')
        provided = request.form.get('_csrf_token') or request.headers.get('X-CSRF-Token')
        if not expected or not provided or not secrets.compare_digest(expected, provided):
            abort(400, description='Invalid or missing CSRF token.')

    @app.before_request
    def ensure_csp_nonce():
        get_csp_nonce()

    @app.before_request
    def refresh_caches():
        if request.endpoint in CACHE_EXEMPT_ENDPOINTS:
            return
        refresh_site_caches(get_services(), app.logger)

    @app.context_processor
    def inject_globals():
        site = get_services()
        theme = site.tenant.get_theme()
        return dict(
            theme=theme,
            tenant=site.tenant.get_tenant(),
            categories=site.categories.get_top_level_categories(),
            menu=site.menus.get_menu('primary'),
            footer_menu=site.menus.get_menu('footer'),
            theme_css_vars=theme_css_vars(theme),
            current_path=request.path if has_request_context() else '/',
            csrf_input=csrf_input,
            csp_nonce=get_csp_nonce(),
        )

    @app.after_request
    def add_security_headers(response):
        response.headers['X-Request-ID'] = getattr(g, 'request_id', '')
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('Referrer-Policy', 'strict-origin-when-cross-origin')
        response.headers.setdefault('Permissions-Policy', 'geolocation=(), microphone=(), camera=()')
        if request.is_secure and app.config.get('HSTS_ENABLED', True):
            hsts_max_age = max(0, int(app.config.get('HSTS_MAX_AGE', 31536000)))
            hsts_parts = [f'max-age={hsts_max_age}']
            if app.config.get('HSTS_INCLUDE_SUBDOMAINS', True):
                hsts_parts.append('includeSubDomains')
            if app.config.get('HSTS_PRELOAD', False):
                hsts_parts.append('preload')
            response.headers.setdefault('Strict-Transport-Security', '; '.join(hsts_parts))

        if response.content_type and response.content_type.startswith('text/html'):
            nonce = get_csp_nonce()
            response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'
            csp_parts = [
                "default-src 'self'",
                "base-uri 'self'",
                "frame-ancestors 'none'",
                "form-action 'self'",
                "object-src 'none'",
                "img-src 'self' data: https:",
                f"script-src 'self' 'nonce-{nonce}'",
                f"style-src 'self' 'nonce-{nonce}' https://fonts.googleapis.com",
                "font-src 'self' data: https://fonts.gstatic.com",
                "frame-src https:",
            ]
            if request.is_secure:
                csp_parts.append('upgrade-insecure-requests')
            response.headers['Content-Security-Policy'] = "; ".join(csp_parts)
        return response

    @app.errorhandler(400)
    def handle_bad_request(error):
        description = str(getattr(error, 'description', '') or '')
        if 'CSRF' in description:
            flash('Your form session expired. Please retry your action.', 'danger')
            return redirect(safe_referrer_path(url_for('main.index')))
        return error

    @app.errorhandler(404)
    def handle_not_found(error):
        message = getattr(error, 'description', '') or 'The requested page could not be found.'
        return render_template('errors/404.html', message=message), 404

    @app.errorhandler(500)
    def handle_server_error(error):
        return render_template('errors/500.html', message='Something went wrong while loading the site.'), 500

    @app.get('/health')
    def health():
        tenant = get_services().tenant.get_tenant() or {}
        return {'status': 'ok', 'tenant': tenant.get('slug') or None}, 200

    @app.get('/healthz')
    def healthz():
        return health()

    @app.get('/readyz')
    def readyz():
        site = get_services()
        checks = {
            'tenant_loaded': site.tenant.loaded,
            'categories_cached': bool(site.categories.get_categories()),
            'contact_form_configured': site.contact_form.configured,
        }
        ready = checks['tenant_loaded'] and checks['categories_cached']
        return {'status': 'ready' if ready else 'warming', 'checks': checks}, (200 if ready else 503)

    from .routes.main import main_bp
    app.register_blueprint(main_bp)

    if app.config.get('WARM_CACHES_ON_STARTUP', True):
        try:
            services.tenant.load()
        except Exception:
            app.logger.exception('Failed to load tenant info, falling back to default theme.')
        refresh_site_caches(services, app.logger)

    return app
