from __future__ import annotations
import os
import logging
from typing import Dict, Optional
import requests
from .exceptions import ApiAuthError, ApiRateLimitError, ApiRequestError
from .signing import remove_param

logger = logging.getLogger(__name__)

RATE_LIMIT_MARKER = 'AppCallLimit'


def _redact(url: str) -> str:
    if '?' not in url:
        return url
    base, query = url.split('?', 1)
    for name in ('access_token', 'sign'):
        query = remove_param(query, name)
    return base + '?' + query


class BaseClient:
    """Plain HTTP transport: returns the body text, flags rate limiting.

    No retries and no status handling beyond 429; callers decode the body.
    """

    def __init__(self, timeout: int = 30, debug: bool = False):
        self.session = requests.Session()
        self.timeout = timeout
        self.debug = debug

    def _check_body(self, resp: requests.Response) -> str:
        body = resp.text
        if resp.status_code == 429 or RATE_LIMIT_MARKER in body:
            raise ApiRateLimitError(f"Rate limit exceeded ({resp.status_code}): {body[:200]}")
        return body

    def _log(self, method: str, url: str, resp: requests.Response) -> None:
        if self.debug:
            logger.info('[LAZADA DEBUG] %s %s %s %s', method, _redact(url), resp.status_code, resp.text[:500])

    def _get(self, url: str, access_token: Optional[str] = None) -> str:
        headers = {'Authorization': f"Bearer {access_token or ''}"}
        try:
            resp = self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise ApiRequestError(f"Network error: {e}") from e
        self._log('GET', url, resp)
        return self._check_body(resp)

    def _post(self, url: str, data: Dict[str, str] | None = None) -> str:
        # Form-encoded body; no Authorization header on POST
        try:
            resp = self.session.post(url, data=data or {}, timeout=self.timeout)
        except requests.RequestException as e:
            raise ApiRequestError(f"Network error: {e}") from e
        self._log('POST', url, resp)
        return self._check_body(resp)

    @staticmethod
    def env(name: str, required: bool = True) -> Optional[str]:
        val = os.getenv(name)
        if required and (val is None or val.strip() == ''):
            raise ApiAuthError(f"Missing required environment variable: {name}")
        return val
