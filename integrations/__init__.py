"""Lazada Open Platform client (signed REST calls, token exchange, XML product payloads).

Usage example:
    from integrations.lazada_client import LazadaClient
    from integrations.lazada_models import ListProductsRequest
    client = LazadaClient.from_env()
    products = client.list_products(ListProductsRequest(limit=50)).products
"""
from .exceptions import (  # noqa: F401
    ApiRequestError,
    ApiAuthError,
    ApiRateLimitError,
    ApiDecodeError,
    ReservedParameterError,
)
from .signing import Credentials, build_query, sign  # noqa: F401
from .lazada_client import LazadaClient  # noqa: F401
