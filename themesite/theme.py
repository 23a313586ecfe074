import re

HEX_COLOR_RE = re.compile(r'^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')
_CSS_VAR_NAME_RE = re.compile(r'^--[a-zA-Z0-9_-]{1,64}$')
LOGO_LAYOUTS = {'fullwidth', 'inline'}

DEFAULT_THEME = {
    'site_name': 'KESK English',
    'brand_name': 'KESK',
    'site_url': 'https://en.kesk.org.tr',
    'primary_color': '#1E73BE',
    'secondary_color': '#0F172A',
    'accent_color': '#38BDF8',
    'background_color': '#F1F5F9',
    'surface_color': '#FFFFFF',
    'text_color': '#0F172A',
    'muted_text_color': '#4B5563',
    'border_color': 'rgba(15, 23, 42, 0.12)',
    'logo_url': None,
    'favicon_url': None,
    'logo_layout': 'inline',
    'navigation': [
        {'label': 'Home', 'href': '/'},
        {
            'label': 'Reports',
            'href': '/#reports',
            'children': [
                {'label': 'Statements', 'href': '/#statements'},
                {'label': 'Delegations', 'href': '/#delegations'},
            ],
        },
        {'label': 'Contact', 'href': '/contact'},
    ],
    'hero': {
        'headline': 'Building peace, equality and democracy',
        'description': (
            'Stay up to date with the latest activities, statements and reports from the '
            'Confederation of Public Employees Trade Union.'
        ),
    },
}

_CSS_VAR_KEYS = {
    '--theme-primary': 'primary_color',
    '--theme-secondary': 'secondary_color',
    '--theme-accent': 'accent_color',
    '--theme-background': 'background_color',
    '--theme-surface': 'surface_color',
    '--theme-text': 'text_color',
    '--theme-muted-text': 'muted_text_color',
    '--theme-border': 'border_color',
}


def normalize_hex(color):
    if not color or not isinstance(color, str):
        return None
    value = color.strip()
    if HEX_COLOR_RE.match(value):
        return value.upper()
    return None


def build_theme_from_branding(branding=None, site_url='', logo_layout=''):
    branding = branding or {}
    layout = (logo_layout or '').strip().lower()
    theme = dict(DEFAULT_THEME)
    theme.update(
        site_url=site_url or DEFAULT_THEME['site_url'],
        site_name=branding.get('siteName') or branding.get('name') or DEFAULT_THEME['site_name'],
        brand_name=branding.get('name') or DEFAULT_THEME['brand_name'],
        logo_url=branding.get('logoUrl') or DEFAULT_THEME['logo_url'],
        favicon_url=branding.get('faviconUrl') or DEFAULT_THEME['favicon_url'],
        logo_layout=layout if layout in LOGO_LAYOUTS else DEFAULT_THEME['logo_layout'],
    )

    primary = normalize_hex(branding.get('primaryColor'))
    secondary = normalize_hex(branding.get('secondaryColor'))
    if primary:
        theme['primary_color'] = primary
    if secondary:
        theme['secondary_color'] = secondary
    elif primary:
        theme['secondary_color'] = primary
    return theme


def sanitize_css_var_map(raw):
    if not isinstance(raw, dict):
        return {}
    safe = {}
    for key, value in raw.items():
        key_text = str(key or '').strip()
        if not _CSS_VAR_NAME_RE.match(key_text):
            continue
        value_text = str(value or '').strip()[:200]
        if not value_text:
            continue
        if any(token in value_text for token in ('{', '}', '<', '>', ';')):
            continue
        safe[key_text] = value_text
    return safe


def theme_css_vars(theme):
    theme = theme or DEFAULT_THEME
    return sanitize_css_var_map({name: theme.get(key) for name, key in _CSS_VAR_KEYS.items()})
