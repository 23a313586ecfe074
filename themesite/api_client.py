"""Thin JSON wrapper around the content API.

Every upstream call goes through one ``ApiClient``. The client owns a single
``httpx.Client`` for the life of the process; tests may inject their own.
"""
import json
import logging
import time

import httpx

from . import __version__
from .errors import ApiError, ApiParseError

logger = logging.getLogger(__name__)


def build_http_client(timeout=10.0):
    return httpx.Client(
        follow_redirects=True,
        timeout=httpx.Timeout(timeout),
        headers={'User-Agent': f'themesite/{__version__}'},
        limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
    )


def _clean_params(params):
    if not params:
        return None
    cleaned = {}
    for key, value in params.items():
        if value is None or value == '':
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        cleaned[key] = value
    return cleaned or None


class ApiClient:
    def __init__(self, base_url, api_key='', tenant_id='', http_client=None, timeout=10.0):
        self.base_url = (base_url or '').rstrip('/')
        self.api_key = api_key or ''
        self.tenant_id = tenant_id or ''
        self._client = http_client or build_http_client(timeout)

    @classmethod
    def from_config(cls, config, http_client=None):
        return cls(
            config.get('CTX_API_BASE_URL', ''),
            api_key=config.get('CTX_API_KEY', ''),
            tenant_id=config.get('CTX_TENANT_ID', ''),
            http_client=http_client,
            timeout=config.get('CTX_API_TIMEOUT_SECONDS', 10.0),
        )

    def build_url(self, path):
        return f"{self.base_url}/{(path or '').lstrip('/')}"

    def _headers(self, extra=None):
        headers = {
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        }
        if extra:
            headers.update(extra)
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        if self.tenant_id:
            headers['x-tenant-id'] = self.tenant_id
        return headers

    def request(self, path, method='GET', params=None, body=None, headers=None, allow_not_found=False):
        """Call the API and return the decoded JSON body.

        Returns ``None`` for an empty body, or for a 404 when
        ``allow_not_found`` is set. Raises ``ApiError`` for any other
        failure status and ``ApiParseError`` for a body that is not JSON.
        """
        url = self.build_url(path)
        started = time.monotonic()
        try:
            response = self._client.request(
                method,
                url,
                params=_clean_params(params),
                content=json.dumps(body) if body is not None else None,
                headers=self._headers(headers),
            )
        except httpx.HTTPError as exc:
            raise ApiError(f'Content API request to {url} failed: {exc}', url=url) from exc

        logger.debug(
            'content api %s %s -> %s (%.0f ms)',
            method,
            response.request.url,
            response.status_code,
            (time.monotonic() - started) * 1000,
        )

        if allow_not_found and response.status_code == 404:
            return None

        if response.status_code >= 400:
            raise ApiError(
                f'Content API request failed ({response.status_code} {response.reason_phrase})',
                status=response.status_code,
                body=response.text,
                url=url,
            )

        text = response.text
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ApiParseError(
                f'Failed to parse content API response for {response.request.url}: {exc}',
                status=response.status_code,
                body=text,
                url=url,
            ) from exc

    def close(self):
        self._client.close()
