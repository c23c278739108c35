from __future__ import annotations
import os
import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode

from .base_client import BaseClient
from .exceptions import ApiDecodeError
from .signing import Credentials, build_query
from .lazada_models import (
    ApiResponse,
    CreateProductRequest,
    CreateProductResponse,
    GetOrderItemsRequest,
    GetOrderRequest,
    GetPayoutRequest,
    GetProductItemRequest,
    ListOrdersRequest,
    ListOrdersResponse,
    ListProductsRequest,
    ListProductsResponse,
    ListTransactionsRequest,
    ListTransactionsResponse,
    PayoutResponse,
    Product,
    Seller,
    Token,
    UpdatePriceQuantityRequest,
    jsonify,
)

logger = logging.getLogger(__name__)

BASE_URL = 'https://api.lazada.vn/rest'
AUTH_API_URL = 'https://auth.lazada.com/rest'
AUTHORIZE_URL = 'https://auth.lazada.com/oauth/authorize'
CALLBACK_URL = 'https://4vn.app/lazada/authorized'
COUNTRY = 'vn'

MAX_SKUS_PER_CALL = 50  # vendor recommends 20
MAX_IMAGES_PER_SKU = 8


class LazadaClient(BaseClient):
    """Lazada Open Platform seller API client.

    Credentials are an immutable value: token exchange returns a ``Token``
    and ``with_token`` builds a new client, so one instance never changes
    identity under a caller.

    Usage:
        client = LazadaClient.from_env()
        token = client.get_access_token(code)
        client = client.with_token(token)
        products = client.list_products(ListProductsRequest(limit=20))
    """

    def __init__(self, credentials: Credentials, *, base_url: str = BASE_URL, auth_url: str = AUTH_API_URL,
                 callback_url: str = CALLBACK_URL, country: str = COUNTRY, timeout: int = 30, debug: bool = False):
        super().__init__(timeout=timeout, debug=debug)
        self.credentials = credentials
        self.BASE_URL = base_url.rstrip('/')
        self.AUTH_URL = auth_url.rstrip('/')
        self.callback_url = callback_url
        self.country = country

    @classmethod
    def from_env(cls) -> 'LazadaClient':
        app_key = BaseClient.env('LAZADA_APP_KEY')
        app_secret = BaseClient.env('LAZADA_APP_SECRET')
        access_token = os.getenv('LAZADA_ACCESS_TOKEN') or None
        return cls(
            Credentials(app_key, app_secret, access_token),  # type: ignore[arg-type]
            base_url=os.getenv('LAZADA_BASE_URL') or BASE_URL,
            callback_url=os.getenv('LAZADA_CALLBACK_URL') or CALLBACK_URL,
            country=os.getenv('LAZADA_COUNTRY') or COUNTRY,
            timeout=int(os.getenv('LAZADA_TIMEOUT') or 30),
            debug=os.getenv('LAZADA_DEBUG', '').lower() in ('1', 'true', 'yes'),
        )

    def with_credentials(self, credentials: Credentials) -> 'LazadaClient':
        clone = type(self)(credentials, base_url=self.BASE_URL, auth_url=self.AUTH_URL,
                            callback_url=self.callback_url, country=self.country,
                            timeout=self.timeout, debug=self.debug)
        clone.session = self.session
        return clone

    def with_token(self, token: Token | str) -> 'LazadaClient':
        access_token = token.access_token if isinstance(token, Token) else token
        return self.with_credentials(self.credentials.with_access_token(access_token))

    # -- plumbing

    def _call_get(self, path: str, params: Dict[str, str] | None = None) -> str:
        qs = build_query(self.credentials, 'GET', path, params)
        return self._get(f"{self.BASE_URL}{path}?{qs}", self.credentials.access_token)

    def _call_post(self, path: str, data: Dict[str, str], base_url: Optional[str] = None,
                   credentials: Optional[Credentials] = None) -> str:
        qs = build_query(credentials or self.credentials, 'POST', path, data)
        return self._post(f"{base_url or self.BASE_URL}{path}?{qs}", data)

    @staticmethod
    def _check_skus(skus: Sequence[Any]) -> None:
        if not skus:
            raise ValueError('at least one SKU is required')
        if len(skus) > MAX_SKUS_PER_CALL:
            raise ValueError(f'Lazada accepts at most {MAX_SKUS_PER_CALL} SKUs per call, got {len(skus)}')

    # -- auth

    def _app_credentials(self) -> Credentials:
        # token endpoints are signed with the app key only
        return self.credentials.with_access_token(None)

    def make_auth_url(self) -> str:
        params = {
            'response_type': 'code',
            'force_auth': 'true',
            'country': self.country,
            'redirect_uri': self.callback_url,
            'client_id': self.credentials.app_key,
        }
        return AUTHORIZE_URL + '?' + urlencode(sorted(params.items()))

    def get_access_token(self, code: str) -> Token:
        if not code:
            raise ValueError('authorization code required')
        body = self._call_post('/auth/token/create', {'code': code}, base_url=self.AUTH_URL,
                               credentials=self._app_credentials())
        token = Token.from_json(body)
        logger.info('Token exchange finished (code=%s, account=%s)', token.code, token.account)
        return token

    def refresh_token(self, refresh_token: str) -> Token:
        if not refresh_token:
            raise ValueError('refresh_token required')
        body = self._call_post('/auth/token/refresh', {'refresh_token': refresh_token}, base_url=self.AUTH_URL,
                               credentials=self._app_credentials())
        return Token.from_json(body)

    # -- products

    def list_products(self, req: ListProductsRequest | None = None) -> ListProductsResponse:
        req = req or ListProductsRequest()
        body = self._call_get('/products/get', req.to_params())
        return ListProductsResponse.from_json(body)

    def get_product(self, req: GetProductItemRequest) -> Product:
        params = req.to_params()
        if not params:
            raise ValueError('item_id or seller_sku required')
        body = self._call_get('/product/item/get', params)
        res = ApiResponse.from_json(body)
        if res.data is not None and not isinstance(res.data, dict):
            raise ApiDecodeError(f"Unexpected product payload: {body[:200]}")
        return Product.from_dict(res.data or {})

    def update_price_quantity(self, req: UpdatePriceQuantityRequest) -> ApiResponse:
        self._check_skus(req.skus)
        body = self._call_post('/product/price_quantity/update', {'payload': req.to_xml()})
        return ApiResponse.from_json(body)

    def _check_product(self, req: CreateProductRequest) -> None:
        self._check_skus(req.skus)
        for sku in req.skus:
            if len(sku.images) > MAX_IMAGES_PER_SKU:
                raise ValueError(f'SKU {sku.seller_sku}: at most {MAX_IMAGES_PER_SKU} images, got {len(sku.images)}')

    def create_product(self, req: CreateProductRequest) -> CreateProductResponse:
        self._check_product(req)
        if req.primary_category is None and not req.associated_sku:
            raise ValueError('primary_category is required unless associated_sku is given')
        body = self._call_post('/product/create', {'payload': req.to_xml()})
        return CreateProductResponse.from_json(body)

    def update_product(self, req: CreateProductRequest) -> CreateProductResponse:
        self._check_product(req)
        body = self._call_post('/product/update', {'payload': req.to_xml()})
        return CreateProductResponse.from_json(body)

    def remove_product(self, skus: List[str]) -> ApiResponse:
        self._check_skus(skus)
        body = self._call_post('/product/remove', {'seller_sku_list': jsonify(list(skus))})
        return ApiResponse.from_json(body)

    # -- orders

    def list_orders(self, req: ListOrdersRequest) -> ListOrdersResponse:
        body = self._call_get('/orders/get', req.to_params())
        return ListOrdersResponse.from_json(body)

    def get_order_items(self, req: GetOrderItemsRequest) -> ApiResponse:
        body = self._call_get('/order/items/get', req.to_params())
        return ApiResponse.from_json(body)

    def get_order(self, req: GetOrderRequest) -> ApiResponse:
        body = self._call_get('/order/get', req.to_params())
        return ApiResponse.from_json(body)

    def get_multiple_order_items(self, order_ids: List[int]) -> ApiResponse:
        if not order_ids:
            raise ValueError('order_ids list cannot be empty')
        body = self._call_get('/orders/items/get', {'order_ids': jsonify([int(o) for o in order_ids])})
        return ApiResponse.from_json(body)

    # -- finance

    def get_payout(self, req: GetPayoutRequest) -> PayoutResponse:
        body = self._call_get('/finance/payout/status/get', req.to_params())
        return PayoutResponse.from_json(body)

    def list_transactions(self, req: ListTransactionsRequest) -> ListTransactionsResponse:
        body = self._call_get('/finance/transaction/detail/get', req.to_params())
        return ListTransactionsResponse.from_json(body)

    # -- seller

    def get_seller_metrics(self) -> Dict[str, Any]:
        body = self._call_get('/seller/metrics/get')
        res = ApiResponse.from_json(body)
        return res.data if isinstance(res.data, dict) else {}

    def get_seller(self) -> Seller:
        body = self._call_get('/seller/get')
        res = ApiResponse.from_json(body)
        return Seller.from_dict(res.data if isinstance(res.data, dict) else {})
