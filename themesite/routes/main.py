import json

from flask import Blueprint, abort, current_app, render_template, request, url_for

from ..errors import ApiError, RateLimitExceeded, ThemeSiteError
from ..i18n import build_locale_preference, get_contact_copy
from ..services import get_services
from ..utils import build_share_url, clean_text, get_request_ip

main_bp = Blueprint('main', __name__)

SHARE_PROVIDERS = ('facebook', 'x', 'pinterest', 'whatsapp')
HONEYPOT_FIELD = 'honeypot'
RESERVED_FORM_KEYS = {'_csrf_token', 'locale', HONEYPOT_FIELD}
MAX_PAGE = 1000


def get_page_arg():
    page = request.args.get('page', 1, type=int) or 1
    return max(1, min(page, MAX_PAGE))


def get_submitted_values():
    body = {}
    for key, items in request.form.lists():
        if key in RESERVED_FORM_KEYS:
            continue
        body[key] = items if len(items) > 1 else items[0]
    return body


def get_locale_preference():
    submitted = request.form.get('locale') if request.method == 'POST' else None
    return build_locale_preference(
        tenant_locale=get_services().tenant.get_default_locale(),
        submitted_locale=submitted,
        accept_languages=request.accept_languages.values(),
    )


def absolute_public_url(endpoint, **values):
    base = (current_app.config.get('APP_BASE_URL') or '').rstrip('/')
    if base:
        return f"{base}{url_for(endpoint, **values)}"
    return url_for(endpoint, _external=True, **values)


def extract_error_message(error):
    body = getattr(error, 'body', '') or ''
    if not body:
        return None
    try:
        parsed = json.loads(body)
    except (TypeError, ValueError):
        return None
    if isinstance(parsed, dict) and isinstance(parsed.get('message'), str) and parsed['message'].strip():
        return parsed['message'].strip()
    return None


def success_state(message, locale_preference, cooldown_remaining):
    return {
        'status': 'success',
        'message': message,
        'values': {},
        'errors': {},
        'locale_preference': list(locale_preference),
        'cooldown_remaining': cooldown_remaining,
    }


def error_state(message, locale_preference, values=None, errors=None):
    return {
        'status': 'error',
        'message': message,
        'values': values or {},
        'errors': errors or {},
        'locale_preference': list(locale_preference),
    }


def render_contact_page(copy, contact_form=None, form_state=None, status=200):
    return render_template(
        'contact.html',
        contact_form=contact_form,
        form_state=form_state,
        copy=copy,
        honeypot_field=HONEYPOT_FIELD,
    ), status


def begin_cooldown(ip, message, locale_preference):
    throttle = get_services().throttle
    throttle.start_cooldown(ip, message)
    return success_state(message, locale_preference, throttle.cooldown_seconds)


@main_bp.route('/')
def index():
    limit = current_app.config.get('FEATURED_CONTENT_LIMIT', 9)
    featured_contents = get_services().contents.get_featured_contents(limit)
    return render_template('index.html', featured_contents=featured_contents)


@main_bp.route('/category/<slug>')
def category(slug):
    site = get_services()
    found = site.categories.get_category_by_slug(slug)
    if not found:
        abort(404, description='The requested category could not be found.')

    results = site.contents.get_contents_by_category(
        found['id'],
        page=get_page_arg(),
        limit=current_app.config.get('CONTENT_LIST_LIMIT', 12),
    )
    return render_template(
        'category.html',
        category=found,
        contents=results['items'],
        pagination=results['pagination'],
    )


@main_bp.route('/content/<slug>')
def content_detail(slug):
    site = get_services()
    content = site.contents.get_content(slug=slug)
    if not content:
        abort(404, description='Content could not be found.')

    canonical_url = absolute_public_url('main.content_detail', slug=content['slug'] or slug)
    share_links = [
        {'provider': provider, 'url': build_share_url(provider, content['title'], canonical_url)}
        for provider in SHARE_PROVIDERS
    ]
    trail = site.categories.build_category_trail(content['category_ids'])
    breadcrumbs = None
    if trail:
        breadcrumbs = [
            {'label': 'Home', 'href': url_for('main.index')},
            {'label': trail[0]['name'], 'href': url_for('main.category', slug=trail[0]['slug'])},
            {'label': content['title'], 'href': None},
        ]
    return render_template(
        'content_detail.html',
        content=dict(content, categories=trail),
        share_links=share_links,
        breadcrumbs=breadcrumbs,
        canonical_url=canonical_url,
    )


@main_bp.route('/search')
def search():
    term = clean_text(request.args.get('q', ''), 200)
    results = {'items': [], 'pagination': None}
    if term:
        results = get_services().contents.search_contents(
            term,
            page=get_page_arg(),
            limit=current_app.config.get('CONTENT_LIST_LIMIT', 12),
        )
    return render_template('search.html', term=term, results=results)


@main_bp.route('/contact', methods=['GET', 'POST'])
def contact():
    site = get_services()
    tenant_locale = site.tenant.get_default_locale()
    locale_preference = get_locale_preference()
    copy = get_contact_copy(locale_preference, tenant_locale)
    ip = get_request_ip()

    cooldown = site.throttle.get_cooldown(ip)
    if cooldown:
        remaining, message = cooldown
        state = success_state(message or copy['cooldown_default_message'], locale_preference, remaining)
        return render_contact_page(copy, form_state=state)

    contact_form = site.contact_form.get_contact_form(locale=locale_preference)
    if contact_form is None:
        current_app.logger.warning('Contact form is not available.')
    if request.method == 'GET':
        return render_contact_page(copy, contact_form=contact_form)

    if not contact_form:
        state = error_state(copy['form_unavailable'], locale_preference, values=get_submitted_values())
        return render_contact_page(copy, form_state=state)

    honeypot = clean_text(request.form.get(HONEYPOT_FIELD, ''), 500)
    if contact_form['settings'].get('enable_honeypot', True) and honeypot:
        current_app.logger.info('Contact submission discarded by honeypot.')
        message = (
            site.contact_form.resolve_text(contact_form['settings'].get('success_message'), locale_preference)
            or copy['success_default_message']
        )
        state = begin_cooldown(ip, message, locale_preference)
        return render_contact_page(copy, contact_form=contact_form, form_state=state)

    errors, values, data = site.contact_form.build_submission_payload(
        contact_form,
        get_submitted_values(),
        locale_preference,
    )
    if errors:
        state = error_state(copy['validation_error_message'], locale_preference, values=values, errors=errors)
        return render_contact_page(copy, contact_form=contact_form, form_state=state, status=422)

    try:
        site.throttle.enforce_rate_limit(ip)
        result = site.contact_form.submit_contact_form(
            data,
            locale=locale_preference[0] if locale_preference else None,
            honeypot=honeypot,
        )
    except ThemeSiteError as exc:
        current_app.logger.warning(f'Contact submission failed: {exc}')
        message = extract_error_message(exc) or copy['submission_error_message']
        status = 502
        if isinstance(exc, RateLimitExceeded) or (isinstance(exc, ApiError) and exc.status == 429):
            message = copy['rate_limit_message']
            status = 429
        state = error_state(message, locale_preference, values=values)
        return render_contact_page(copy, contact_form=contact_form, form_state=state, status=status)

    result = result if isinstance(result, dict) else {}
    message = (
        site.contact_form.resolve_text(
            result.get('message') or contact_form['settings'].get('success_message'),
            locale_preference,
        )
        or copy['success_default_message']
    )
    current_app.logger.info(f"Contact submission accepted (fields={len(data)})")
    state = begin_cooldown(ip, message, locale_preference)
    return render_contact_page(copy, contact_form=contact_form, form_state=state)
