"""Locale negotiation and the Turkish/English copy used by the contact page."""
import json

FALLBACK_LOCALES = ('tr', 'en')
SUPPORTED_PREFIXES = ('en', 'tr')

CONTACT_COPY = {
    'tr': {
        'form_unavailable': 'İletişim formu şu anda kullanılamıyor. Lütfen daha sonra tekrar deneyin.',
        'validation_error_message': 'Lütfen formdaki hataları kontrol edin ve tekrar deneyin.',
        'submission_error_message': 'Gönderim sırasında bir hata oluştu. Lütfen daha sonra tekrar deneyin.',
        'rate_limit_message': 'Çok fazla deneme yaptınız. Lütfen biraz bekleyip tekrar deneyin.',
        'cooldown_default_message': 'Talebiniz alındı. Yeni bir gönderim için lütfen biraz bekleyin.',
        'success_default_message': 'Talebiniz başarıyla iletildi.',
        'submit_button_text': 'Gönder',
        'select_placeholder': 'Seçiniz',
        'cooldown_text_prefix': 'Yeni bir gönderim yapmak için',
        'cooldown_text_suffix': 'saniye bekleyin.',
        'honeypot_label': 'Bu alanı boş bırakın',
        'page_head_title': 'İletişim',
        'page_hero_tagline': 'Bizimle İletişime Geçin',
        'page_hero_heading': 'İletişim Formu',
        'page_hero_description': (
            'Sorularınız, önerileriniz veya geri bildirimleriniz için formu doldurmanız yeterli. '
            'En kısa sürede size dönüş yapacağız.'
        ),
        'form_title_fallback': 'İletişim Formu',
    },
    'en': {
        'form_unavailable': 'The contact form is currently unavailable. Please try again later.',
        'validation_error_message': 'Please check the errors in the form and try again.',
        'submission_error_message': 'Something went wrong while submitting. Please try again later.',
        'rate_limit_message': 'Too many attempts detected. Please wait a moment before trying again.',
        'cooldown_default_message': 'We received your request. Please wait a bit before sending another one.',
        'success_default_message': 'Your request has been submitted successfully.',
        'submit_button_text': 'Submit',
        'select_placeholder': 'Select an option',
        'cooldown_text_prefix': 'Please wait',
        'cooldown_text_suffix': 'seconds before submitting again.',
        'honeypot_label': 'Leave this field empty',
        'page_head_title': 'Contact',
        'page_hero_tagline': 'Get in Touch',
        'page_hero_heading': 'Contact Form',
        'page_hero_description': (
            'Share your questions, suggestions, or feedback and we will get back to you as soon as possible.'
        ),
        'form_title_fallback': 'Contact Form',
    },
}

VALIDATION_MESSAGES = {
    'tr': {
        'form_unavailable': 'Form şu anda kullanılamıyor.',
        'file_unsupported': 'Dosya yükleme bu temada henüz desteklenmiyor.',
        'required': '{label} alanı zorunludur.',
        'number': '{label} geçerli bir sayı olmalıdır.',
        'min': '{label} {limit} değerinden küçük olamaz.',
        'max': '{label} {limit} değerinden büyük olamaz.',
        'email': 'Lütfen geçerli bir e-posta adresi girin.',
        'phone': 'Lütfen geçerli bir telefon numarası girin.',
        'choice': '{label} için geçersiz seçim.',
    },
    'en': {
        'form_unavailable': 'Form is unavailable.',
        'file_unsupported': 'File uploads are not supported by this theme yet.',
        'required': '{label} is required.',
        'number': '{label} must be a valid number.',
        'min': '{label} cannot be less than {limit}.',
        'max': '{label} cannot be greater than {limit}.',
        'email': 'Please enter a valid email address.',
        'phone': 'Please enter a valid phone number.',
        'choice': 'Invalid selection for {label}.',
    },
}


def as_locale_list(locale):
    if isinstance(locale, (list, tuple)):
        return [item for item in locale if item]
    return [locale] if locale else []


def locale_cache_key(locale):
    return json.dumps(as_locale_list(locale))


def build_locale_preference(tenant_locale=None, state_locales=None, submitted_locale=None, accept_languages=None):
    """Assemble the ordered, de-duplicated locale preference for a request."""
    locales = []

    def add(value):
        value = (value or '').strip() if isinstance(value, str) else ''
        if value and value not in locales:
            locales.append(value)

    add(tenant_locale)
    for item in state_locales or []:
        add(item)
    add(submitted_locale)
    for item in accept_languages or []:
        add(item)
    return locales


def resolve_primary_locale(locale_preference, tenant_locale=None):
    candidates = [str(item).lower() for item in as_locale_list(locale_preference)]
    if tenant_locale:
        candidates.append(str(tenant_locale).lower())
    for prefix in SUPPORTED_PREFIXES:
        for candidate in candidates:
            if candidate.startswith(prefix):
                return candidate
    if candidates:
        return candidates[0]
    return 'tr'


def _language(locale):
    return 'en' if (locale or '').startswith('en') else 'tr'


def get_contact_copy(locale_preference, tenant_locale=None):
    locale = resolve_primary_locale(locale_preference, tenant_locale)
    copy = dict(CONTACT_COPY[_language(locale)])
    copy['locale'] = locale
    return copy


def get_validation_messages(locale_preference):
    return VALIDATION_MESSAGES[_language(resolve_primary_locale(locale_preference))]


def resolve_text(value, locale_preference=None, default_locale='tr'):
    """Pick the best translation out of a ``{locale: text}`` map.

    Requested locales win, then ``default_locale``, then Turkish and English,
    then whatever the map holds first.
    """
    if not value:
        return ''
    if isinstance(value, str):
        return value
    if not isinstance(value, dict):
        return str(value)

    locales = []
    for locale in [*as_locale_list(locale_preference), default_locale, *FALLBACK_LOCALES]:
        if locale and locale not in locales:
            locales.append(locale)
    for locale in locales:
        if value.get(locale):
            return value[locale]
    return next(iter(value.values()), '') or ''
