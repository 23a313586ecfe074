"""Shared utility functions used across services and route modules."""
import html
import ipaddress
import re
from datetime import datetime
from urllib.parse import quote

import bleach
from flask import request

_TAG_RE = re.compile(r'<[^>]*>')
_MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
)

ALLOWED_RICH_TEXT_TAGS = [
    'a', 'abbr', 'b', 'blockquote', 'br', 'code', 'div', 'em', 'figcaption', 'figure',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'hr', 'i', 'iframe', 'img', 'li', 'ol', 'p',
    'pre', 'span', 'strong', 'sub', 'sup', 'table', 'tbody', 'td', 'th', 'thead', 'tr', 'u', 'ul',
]
ALLOWED_RICH_TEXT_ATTRIBUTES = {
    'a': ['href', 'title', 'target', 'rel'],
    'img': ['src', 'alt', 'title', 'width', 'height', 'loading'],
    'iframe': ['src', 'width', 'height', 'title', 'allowfullscreen'],
    'td': ['colspan', 'rowspan'],
    'th': ['colspan', 'rowspan', 'scope'],
    '*': ['class'],
}
ALLOWED_RICH_TEXT_PROTOCOLS = ['http', 'https', 'mailto', 'tel']


def clean_text(value, max_length=255):
    return (value or '').strip()[:max_length]


def normalise_id(value):
    """Coerce an API identifier (plain value or embedded document) to a string."""
    if value is None or value == '' or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        inner = value.get('_id') or value.get('id')
        return normalise_id(inner)
    return str(value)


def as_number(value, default=0):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def strip_html(value):
    if not value:
        return value
    return _TAG_RE.sub('', value)


def summarise_text(value, max_length=220):
    if not value:
        return ''
    clean = strip_html(html.unescape(str(value)))
    if len(clean) <= max_length:
        return clean
    return f'{clean[:max_length].rstrip()}…'


def parse_datetime(value):
    if not value or not isinstance(value, str):
        return None
    raw = value.strip()
    if raw.endswith('Z'):
        raw = raw[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def format_date(value):
    """Render an API timestamp as ``5 March 2024``; unparseable input is returned as-is."""
    if not value:
        return None
    parsed = value if isinstance(value, datetime) else parse_datetime(value)
    if parsed is None:
        return value
    return f'{parsed.day} {_MONTH_NAMES[parsed.month - 1]} {parsed.year}'


def sanitize_html(value, max_length=500000):
    cleaned = bleach.clean(
        (value or '').strip(),
        tags=ALLOWED_RICH_TEXT_TAGS,
        attributes=ALLOWED_RICH_TEXT_ATTRIBUTES,
        protocols=ALLOWED_RICH_TEXT_PROTOCOLS,
        strip=True,
    )
    return cleaned[:max_length]


def build_share_url(provider, title, url):
    if provider == 'facebook':
        return f'https://www.facebook.com/sharer/sharer.php?u={quote(url, safe="")}'
    if provider == 'x':
        return f'https://twitter.com/intent/tweet?text={quote(title, safe="")}&url={quote(url, safe="")}'
    if provider == 'pinterest':
        return f'https://pinterest.com/pin/create/button/?url={quote(url, safe="")}&description={quote(title, safe="")}'
    if provider == 'whatsapp':
        return f'https://wa.me/?text={quote(f"{title} {url}", safe="")}'
    return url


def normalized_ip(value):
    candidate = (value or '').split(',', 1)[0].strip()
    if not candidate:
        return ''
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return ''


def get_request_ip():
    # request.remote_addr is proxy-aware when ProxyFix is enabled by app config.
    remote_ip = normalized_ip(request.remote_addr)
    return remote_ip or 'unknown'
