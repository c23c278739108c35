from __future__ import annotations
import hashlib
import hmac
import time
from dataclasses import dataclass, replace
from typing import Dict, Mapping, Optional
from urllib.parse import urlencode

from .exceptions import ReservedParameterError

# Lazada "sha256" signing: HMAC-SHA256(secret, api_path + sorted(key+value)), uppercase hex
SIGN_METHOD = 'sha256'
RESERVED_PARAMS = frozenset({'app_key', 'timestamp', 'sign_method', 'access_token', 'sign'})


@dataclass(frozen=True)
class Credentials:
    app_key: str
    app_secret: str
    access_token: Optional[str] = None

    def with_access_token(self, access_token: Optional[str]) -> 'Credentials':
        return replace(self, access_token=access_token or None)

    def __repr__(self) -> str:
        token = 'set' if self.access_token else 'unset'
        return f"Credentials(app_key={self.app_key!r}, app_secret=***, access_token={token})"


def now_millis() -> str:
    return str(int(time.time() * 1000))


def sign(app_secret: str, api_path: str, params: Mapping[str, str]) -> str:
    pairs = sorted(k + v for k, v in params.items())
    message = api_path + ''.join(pairs)
    digest = hmac.new(app_secret.encode('utf-8'), message.encode('utf-8'), hashlib.sha256).hexdigest()
    return digest.upper()


def common_params(credentials: Credentials, timestamp: Optional[str] = None) -> Dict[str, str]:
    common = {
        'app_key': credentials.app_key,
        'timestamp': timestamp or now_millis(),
        'sign_method': SIGN_METHOD,
    }
    if credentials.access_token:
        common['access_token'] = credentials.access_token
    return common


def _check_params(params: Mapping[str, str]) -> None:
    clashes = sorted(RESERVED_PARAMS.intersection(params))
    if clashes:
        raise ReservedParameterError(f"Parameters reserved for signing: {', '.join(clashes)}")
    for k, v in params.items():
        if not isinstance(v, str):
            raise TypeError(f"Parameter {k!r} must be a string, got {type(v).__name__}")


def build_query(credentials: Credentials, method: str, api_path: str,
                params: Mapping[str, str] | None = None, timestamp: Optional[str] = None) -> str:
    """Return the URL-encoded, signed query string for one API call.

    Call parameters are always covered by the signature, but only emitted in
    the query for GET; POST callers send them in the form body instead.
    """
    params = dict(params or {})
    _check_params(params)
    common = common_params(credentials, timestamp)
    merged = {**common, **params}
    common['sign'] = sign(credentials.app_secret, api_path, merged)

    values = dict(common)
    if method.upper() == 'GET':
        values.update(params)
    return urlencode(sorted(values.items()))


def remove_param(query: str, name: str) -> str:
    parts = [p for p in query.split('&') if not p.startswith(name + '=')]
    return '&'.join(parts)
