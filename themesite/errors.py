"""Exceptions raised by the content API client and the contact pipeline.

Validation problems are never raised; they are returned as data by
``build_submission_payload``. A missing entity is ``None``, not an error.
"""


class ThemeSiteError(Exception):
    pass


class ApiError(ThemeSiteError):
    """Non-2xx answer (or transport failure) from the content API."""

    def __init__(self, message, status=None, body='', url=''):
        super().__init__(message)
        self.status = status
        self.body = body
        self.url = url


class ApiParseError(ApiError):
    pass


class NotConfiguredError(ThemeSiteError):
    pass


class RateLimitExceeded(ThemeSiteError):
    status = 429

    def __init__(self, retry_after):
        super().__init__(f'Rate limit exceeded, retry in {retry_after}s')
        self.retry_after = retry_after
