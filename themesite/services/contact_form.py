"""Contact form schema loading, localization, validation and submission.

The form is loaded from the private endpoint by id when possible and from
the public endpoint by slug otherwise. Validation never raises: it returns
``(errors, values, data)`` where ``values`` is what the visitor typed (for
re-display) and ``data`` holds only the fields that passed.
"""
import logging
import math
import re

from ..cache import CacheEntry, system_clock
from ..errors import NotConfiguredError
from ..i18n import (
    as_locale_list,
    get_contact_copy,
    get_validation_messages,
    locale_cache_key,
    resolve_text,
)
from ..utils import as_number

logger = logging.getLogger(__name__)

FIELD_TYPES = (
    'text', 'textarea', 'email', 'phone', 'number', 'rating', 'checkbox',
    'select', 'radio', 'date', 'hidden', 'file', 'section',
)
EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_RE = re.compile(r'^[\d\s+().-]{6,}$')
NUMBER_RE = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')
DEFAULT_SUCCESS_MESSAGE = {
    'tr': 'Gönderiminiz için teşekkürler!',
    'en': 'Thank you for your submission!',
}


def _is_empty(value):
    return value is None or value == '' or value == []


def _trimmed(value):
    return value.strip() if isinstance(value, str) else ''


def normalise_checkbox_value(value):
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None and str(item)]
    if value is None or value == '':
        return []
    return [str(value)]


def parse_number(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if not isinstance(value, str) or not NUMBER_RE.match(value.strip()):
        return None
    parsed = float(value.strip())
    if not math.isfinite(parsed):
        return None
    return int(parsed) if parsed.is_integer() else parsed


class ContactFormService:
    def __init__(
        self,
        api,
        form_id='',
        form_slug='',
        api_key='',
        default_locale='tr',
        ttl=300,
        clock=system_clock,
    ):
        self.api = api
        self.form_id = form_id or None
        self.form_slug = form_slug or None
        self.api_key = api_key or None
        self.default_locale = default_locale or 'tr'
        self.ttl = ttl
        self.clock = clock
        self._entry = CacheEntry()

    @property
    def configured(self):
        return bool(self.form_id or self.form_slug)

    def resolve_text(self, value, locale_preference=None):
        return resolve_text(value, locale_preference, self.default_locale)

    def normalise_field(self, field, locale_preference):
        options = [
            {
                'value': option.get('value'),
                'label': self.resolve_text(option.get('label'), locale_preference),
            }
            for option in field.get('options') or []
            if isinstance(option, dict)
        ]
        return {
            'id': field.get('id') or field.get('_id') or field.get('name'),
            'name': field.get('name'),
            'type': field.get('type') or 'text',
            'label': self.resolve_text(field.get('label'), locale_preference),
            'placeholder': self.resolve_text(field.get('placeholder'), locale_preference),
            'help_text': self.resolve_text(field.get('helpText'), locale_preference),
            'required': bool(field.get('required')),
            'validation': field.get('validation') or {},
            'options': options,
            'default_value': field.get('defaultValue'),
            'order': as_number(field.get('order')),
            'width': field.get('width') or 'full',
            'class_name': field.get('className') or '',
        }

    def normalise_form(self, form, locale_preference):
        if not isinstance(form, dict):
            return None
        locales = as_locale_list(locale_preference)
        raw_fields = [f for f in form.get('fields') or [] if isinstance(f, dict)]
        indexed = [(self.normalise_field(field, locales), index) for index, field in enumerate(raw_fields)]
        indexed.sort(key=lambda pair: (pair[0]['order'], pair[1]))
        settings = form.get('settings') or {}
        return {
            'id': form.get('_id') or form.get('id') or self.form_id,
            'slug': form.get('slug') or self.form_slug,
            'title': self.resolve_text(form.get('title'), locales),
            'description': self.resolve_text(form.get('description'), locales),
            'fields': [field for field, _ in indexed],
            'settings': {
                'submit_button_text': (
                    self.resolve_text(settings.get('submitButtonText'), locales)
                    or get_contact_copy(locales)['submit_button_text']
                ),
                'success_message': settings.get('successMessage') or dict(DEFAULT_SUCCESS_MESSAGE),
                'enable_honeypot': settings.get('enableHoneypot') is not False,
            },
        }

    def fetch_private_form(self, locale_preference):
        if not self.form_id:
            return None
        response = self.api.request(f'/forms/{self.form_id}', allow_not_found=True)
        if not isinstance(response, dict) or not response.get('form'):
            logger.warning('Private contact form fetch returned no form (id=%s).', self.form_id)
            return None
        return self.normalise_form(response['form'], locale_preference)

    def fetch_public_form(self, locale_preference):
        slug = self.form_slug or self.form_id
        if not slug:
            return None
        try:
            response = self.api.request(f'/public/forms/{slug}', allow_not_found=True)
        except Exception:
            logger.warning('Public contact form fetch failed (slug=%s).', slug, exc_info=True)
            return None
        if not isinstance(response, dict) or not response.get('form'):
            logger.warning('Public contact form fetch returned no form (slug=%s).', slug)
            return None
        return self.normalise_form(response['form'], locale_preference)

    def fetch_contact_form(self, locale_preference):
        form = None
        try:
            form = self.fetch_private_form(locale_preference)
        except Exception:
            logger.warning('Private contact form fetch failed, falling back to public endpoint.', exc_info=True)
        if form is None:
            form = self.fetch_public_form(locale_preference)
        if form is None:
            logger.error(
                'Failed to fetch contact form via id or slug (id=%s, slug=%s).',
                self.form_id,
                self.form_slug,
            )
        return form

    def get_contact_form(self, locale=None, force=False):
        if not self.configured:
            return None
        locales = as_locale_list(locale)
        key = locale_cache_key(locales)
        now = self.clock()
        entry = self._entry
        if not force and entry.data and entry.key == key and entry.is_fresh(now, self.ttl):
            return entry.data

        form = self.fetch_contact_form(locales)
        if form is None:
            return entry.data or None
        self._entry = CacheEntry(form, self.clock(), key)
        return form

    def clear_cache(self):
        self._entry = CacheEntry()

    def build_submission_payload(self, form, body, locale_preference=None):
        locales = as_locale_list(locale_preference)
        messages = get_validation_messages(locales)
        errors, values, data = {}, {}, {}

        if not isinstance(form, dict) or not isinstance(form.get('fields'), list):
            return {'form': messages['form_unavailable']}, {}, {}

        body = body or {}
        for field in form['fields']:
            name = field.get('name')
            field_type = field.get('type')
            if field_type == 'section':
                continue
            if field_type == 'file':
                errors[name] = messages['file_unsupported']
                continue

            raw_value = body.get(name)
            value = field.get('default_value') if _is_empty(raw_value) else raw_value
            values[name] = value

            validation = field.get('validation') or {}
            label = field.get('label') or name
            custom_message = (
                self.resolve_text(validation.get('errorMessage'), locales)
                if validation.get('errorMessage') else None
            )
            required_message = custom_message or messages['required'].format(label=label)

            if field_type == 'checkbox':
                tokens = normalise_checkbox_value(value)
                values[name] = tokens
                if field.get('required') and not tokens:
                    errors[name] = required_message
                elif tokens:
                    data[name] = tokens

            elif field_type in ('number', 'rating'):
                text = value.strip() if isinstance(value, str) else value
                if _is_empty(text):
                    if field.get('required'):
                        errors[name] = required_message
                    continue
                parsed = parse_number(text)
                if parsed is None:
                    errors[name] = custom_message or messages['number'].format(label=label)
                    continue
                values[name] = text
                error = None
                minimum, maximum = parse_number(validation.get('min')), parse_number(validation.get('max'))
                if minimum is not None and parsed < minimum:
                    error = custom_message or messages['min'].format(label=label, limit=minimum)
                if maximum is not None and parsed > maximum:
                    error = custom_message or messages['max'].format(label=label, limit=maximum)
                if error:
                    errors[name] = error
                else:
                    data[name] = parsed

            elif field_type == 'hidden':
                if _is_empty(value):
                    value = field.get('default_value')
                    value = '' if value is None else value
                    values[name] = value
                if not _is_empty(value):
                    data[name] = value

            else:
                text = _trimmed(value)
                values[name] = text
                if not text:
                    if field.get('required'):
                        errors[name] = required_message
                    continue
                if field_type == 'email' and not EMAIL_RE.match(text):
                    errors[name] = custom_message or messages['email']
                elif field_type == 'phone' and not PHONE_RE.match(text):
                    errors[name] = custom_message or messages['phone']
                elif (
                    field_type in ('select', 'radio')
                    and field.get('options')
                    and not any(option.get('value') == text for option in field['options'])
                ):
                    errors[name] = custom_message or messages['choice'].format(label=label)
                else:
                    data[name] = text

        return errors, values, data

    def submit_contact_form(self, data, locale=None, honeypot=''):
        if not self.api_key:
            raise NotConfiguredError('Content API key is not configured.')
        if not self.form_id:
            raise NotConfiguredError('Contact form id is not configured.')
        return self.api.request(
            f'/public/forms/{self.form_id}/submit',
            method='POST',
            headers={'X-API-Key': self.api_key},
            body={
                'apiKey': self.api_key,
                'data': data,
                'locale': locale or self.default_locale,
                'source': 'web',
                'honeypot': honeypot or '',
            },
        )
