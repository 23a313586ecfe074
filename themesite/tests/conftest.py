import copy
import re

import pytest

from themesite import create_app
from themesite.errors import ApiError

CSRF_TOKEN_RE = re.compile(r'name="_csrf_token" value="([^"]+)"')


def extract_csrf_token(html):
    match = CSRF_TOKEN_RE.search(html or "")
    return match.group(1) if match else None


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeApi:
    """Scripted stand-in for ApiClient.

    Responses are keyed by ``(method, path)``. A value may be a payload, an
    exception instance (raised), or a callable ``(params, body) -> payload``.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def set(self, path, response, method="GET"):
        self.routes[(method, path)] = response

    def request(self, path, method="GET", params=None, body=None, headers=None, allow_not_found=False):
        self.calls.append(
            {
                "method": method,
                "path": path,
                "params": dict(params or {}),
                "body": body,
                "headers": dict(headers or {}),
            }
        )
        handler = self.routes.get((method, path))
        if handler is None:
            if allow_not_found:
                return None
            raise ApiError(f"No scripted response for {method} {path}", status=404, body="")
        result = handler(dict(params or {}), body) if callable(handler) else handler
        if isinstance(result, Exception):
            raise result
        return copy.deepcopy(result)

    def paths(self, method=None):
        return [call["path"] for call in self.calls if method is None or call["method"] == method]

    def reset_calls(self):
        self.calls = []


CONTACT_FORM = {
    "_id": "form-1",
    "slug": "contact",
    "title": {"tr": "İletişim", "en": "Contact us"},
    "description": {"en": "Write to us"},
    "fields": [
        {"name": "message", "type": "textarea", "label": {"en": "Message"}, "required": True, "order": 3},
        {"name": "name", "type": "text", "label": {"en": "Name"}, "required": True, "order": 1},
        {"name": "email", "type": "email", "label": {"en": "Email"}, "required": True, "order": 2},
    ],
    "settings": {
        "submitButtonText": {"en": "Send"},
        "successMessage": {"en": "Thanks, we got it!", "tr": "Teşekkürler!"},
        "enableHoneypot": True,
    },
}


def default_routes():
    return {
        ("GET", "/tenant/info"): {
            "tenant": {"id": "tenant-1", "slug": "acme", "defaultLocale": "en"},
            "branding": {"name": "Acme", "primaryColor": "#123abc"},
        },
        ("GET", "/categories"): {
            "categories": [
                {"_id": "cat-news", "name": "News", "slug": "news", "position": 1},
                {"_id": "cat-local", "name": "Local", "slug": "local", "parentId": "cat-news", "position": 2},
            ]
        },
        ("GET", "/menus/menu-1"): {
            "_id": "menu-1",
            "name": "Main",
            "items": [
                {"_id": "m1", "title": "Home", "url": "/", "order": 1},
                {"_id": "m2", "title": "About", "url": "/about", "order": 2},
            ],
        },
        ("GET", "/contents"): {"items": [], "pagination": {"page": 1, "pages": 1, "total": 0}},
        ("GET", "/forms/form-1"): {"form": copy.deepcopy(CONTACT_FORM)},
        ("POST", "/public/forms/form-1/submit"): {"success": True},
    }


def build_test_app(api, clock=None, overrides=None):
    config = {
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
        "LOG_JSON": False,
        "WARM_CACHES_ON_STARTUP": False,
        "CTX_API_KEY": "test-api-key",
        "CTX_DEFAULT_LOCALE": "tr",
        "CONTACT_FORM_ID": "form-1",
        "CONTACT_FORM_SLUG": "",
        "MENU_SOURCES": {"primary": {"id": "menu-1", "slug": None}, "footer": {"id": None, "slug": None}},
    }
    if overrides:
        config.update(overrides)
    return create_app(config, api_client=api, clock=clock or FakeClock())


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def api():
    return FakeApi(default_routes())


@pytest.fixture()
def app(api, clock):
    return build_test_app(api, clock)


@pytest.fixture()
def client(app):
    return app.test_client()
