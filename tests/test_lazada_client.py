import json
from urllib.parse import parse_qs, urlparse

import pytest

from integrations.exceptions import ApiDecodeError, ApiRateLimitError, ApiRequestError
from integrations.lazada_client import AUTHORIZE_URL, CALLBACK_URL, LazadaClient
from integrations.lazada_models import (
    CreateProductRequest,
    CreateProductSKU,
    GetOrderItemsRequest,
    GetOrderRequest,
    GetPayoutRequest,
    GetProductItemRequest,
    ListOrdersRequest,
    ListProductsRequest,
    ListTransactionsRequest,
    Token,
    UpdatePriceQuantityRequest,
    PriceQuantitySKU,
    XML_HEADER,
)
from integrations.mock_provider import envelope, generate_fake_products, generate_fake_seller, seed_mock
from integrations.signing import Credentials, sign


def _called(mock):
    url = mock.call_args[0][0]
    parsed = urlparse(url)
    return parsed, {k: v[0] for k, v in parse_qs(parsed.query).items()}


def _assert_signed(path, query, body_params=None):
    signed = {k: v for k, v in query.items() if k != 'sign'}
    signed.update(body_params or {})
    assert query['sign'] == sign('S', path, signed)


def _sku(n, images=0):
    return CreateProductSKU(seller_sku=f'SKU-{n}', price=100000.0, package_height=10.0, package_length=20.0,
                            package_width=5.0, package_weight=0.5,
                            images=[f'https://example.com/{n}-{i}.jpg' for i in range(images)])


def test_list_products_signed_get(make_client):
    seed_mock(1)
    products = generate_fake_products(2)
    client = make_client(envelope({'total_products': 2, 'products': products}))

    res = client.list_products(ListProductsRequest(filter='live', limit=10))

    parsed, query = _called(client.session.get)
    assert parsed.netloc == 'api.lazada.vn'
    assert parsed.path == '/rest/products/get'
    assert query['filter'] == 'live'
    assert query['limit'] == '10'
    assert query['access_token'] == 'tok'
    _assert_signed('/products/get', query)
    assert client.session.get.call_args[1]['headers'] == {'Authorization': 'Bearer tok'}
    assert res.ok
    assert res.total_products == 2
    assert [p['item_id'] for p in res.products] == [p['item_id'] for p in products]


def test_get_product_by_item_id(make_client):
    client = make_client(envelope({'item_id': 1000001, 'primary_category': 10000318, 'status': 'Active',
                                   'attributes': {'name': 'Lamp'}, 'skus': [{'SellerSku': 'A'}]}))
    product = client.get_product(GetProductItemRequest(item_id=1000001))
    _, query = _called(client.session.get)
    assert query['item_id'] == '1000001'
    assert 'seller_sku' not in query
    _assert_signed('/product/item/get', query)
    assert product.item_id == 1000001
    assert product.attributes['name'] == 'Lamp'
    assert product.skus[0]['SellerSku'] == 'A'


def test_get_product_requires_identifier(make_client):
    client = make_client()
    with pytest.raises(ValueError):
        client.get_product(GetProductItemRequest())
    client.session.get.assert_not_called()


def test_create_product_posts_xml_payload(make_client):
    client = make_client(envelope({'item_id': 42, 'sku_list': [{'seller_sku': 'SKU-1', 'sku_id': 7}]}))
    req = CreateProductRequest(skus=[_sku(1, images=2)], primary_category=10000318,
                               attributes={'name': 'Lamp', 'brand': 'No Brand', 'short_description': 'A lamp'})

    res = client.create_product(req)

    parsed, query = _called(client.session.post)
    data = client.session.post.call_args[1]['data']
    assert parsed.path == '/rest/product/create'
    assert 'payload' not in query
    assert data['payload'].startswith(XML_HEADER + '\n<Request><Product>')
    _assert_signed('/product/create', query, data)
    assert res.item_id == 42
    assert res.sku_list[0]['sku_id'] == 7


def test_update_product_uses_update_path(make_client):
    client = make_client(envelope({'item_id': 42}))
    client.update_product(CreateProductRequest(skus=[_sku(1)], associated_sku='SKU-0'))
    parsed, _ = _called(client.session.post)
    assert parsed.path == '/rest/product/update'


def test_create_product_requires_category_or_associated_sku(make_client):
    client = make_client()
    with pytest.raises(ValueError):
        client.create_product(CreateProductRequest(skus=[_sku(1)]))
    client.session.post.assert_not_called()


def test_write_limits(make_client):
    client = make_client()
    with pytest.raises(ValueError):
        client.create_product(CreateProductRequest(skus=[_sku(i) for i in range(51)], primary_category=1))
    with pytest.raises(ValueError):
        client.create_product(CreateProductRequest(skus=[_sku(1, images=9)], primary_category=1))
    with pytest.raises(ValueError):
        client.remove_product([])
    with pytest.raises(ValueError):
        client.update_price_quantity(UpdatePriceQuantityRequest(skus=[PriceQuantitySKU(f'S{i}') for i in range(51)]))
    client.session.post.assert_not_called()


def test_fifty_skus_accepted(make_client):
    client = make_client(envelope(None))
    res = client.update_price_quantity(UpdatePriceQuantityRequest(
        skus=[PriceQuantitySKU(f'S{i}', quantity=1) for i in range(50)]))
    assert res.ok
    parsed, _ = _called(client.session.post)
    assert parsed.path == '/rest/product/price_quantity/update'


def test_remove_product_sends_json_list(make_client):
    client = make_client(envelope(None))
    client.remove_product(['A', 'B'])
    data = client.session.post.call_args[1]['data']
    assert data == {'seller_sku_list': '["A","B"]'}


def test_list_orders(make_client):
    client = make_client(envelope({'count': 1, 'countTotal': 3, 'orders': [{'order_id': 1}]}))
    res = client.list_orders(ListOrdersRequest(created_after='2024-05-01T00:00:00+07:00', status='pending'))
    _, query = _called(client.session.get)
    assert query['created_after'] == '2024-05-01T00:00:00+07:00'
    assert query['status'] == 'pending'
    assert res.count == 3
    assert res.orders == [{'order_id': 1}]


def test_order_lookups(make_client):
    client = make_client(envelope([{'order_item_id': 1}]), envelope({'order_id': 9}), envelope([{'order_id': 9}]))
    items = client.get_order_items(GetOrderItemsRequest(order_id=300000000001))
    assert client.session.get.call_args[0][0].startswith('https://api.lazada.vn/rest/order/items/get?')
    assert items.data == [{'order_item_id': 1}]
    order = client.get_order(GetOrderRequest(order_id='9'))
    assert order.data == {'order_id': 9}
    client.get_multiple_order_items([1, 2])
    parsed, query = _called(client.session.get)
    assert parsed.path == '/rest/orders/items/get'
    assert query['order_ids'] == '[1,2]'


def test_finance_endpoints(make_client):
    client = make_client(
        envelope([{'statement_number': 'VN-2024-01', 'paid': 1, 'payout': '100.00 VND'}]),
        envelope([{'transaction_number': '1', 'amount': '-2000.00', 'fee_name': 'Payment Fee'}]),
    )
    payouts = client.get_payout(GetPayoutRequest(created_after='2024-01-01')).payouts
    assert payouts[0].statement_number == 'VN-2024-01'
    assert payouts[0].paid == '1'
    txs = client.list_transactions(ListTransactionsRequest(start_time='2024-01-01', end_time='2024-01-07')).transactions
    _, query = _called(client.session.get)
    assert query['trans_type'] == '-1'
    assert txs[0].amount == '-2000.00'
    assert txs[0].raw['fee_name'] == 'Payment Fee'


def test_seller_endpoints(make_client):
    client = make_client(envelope({'main_category_name': 'Home', 'positive_seller_rating': 98}),
                         envelope(generate_fake_seller()))
    metrics = client.get_seller_metrics()
    parsed, query = _called(client.session.get)
    assert parsed.path == '/rest/seller/metrics/get'
    assert set(query) == {'app_key', 'timestamp', 'sign_method', 'access_token', 'sign'}
    assert metrics['positive_seller_rating'] == 98
    seller = client.get_seller()
    assert seller.seller_id == 100000001
    assert seller.verified is True


def test_vendor_business_error_is_returned_not_raised(make_client):
    client = make_client({'code': 'IllegalAccessToken', 'type': 'ISV', 'message': 'The specified access token is invalid',
                          'request_id': 'r1'})
    res = client.list_orders(ListOrdersRequest(created_after='2024-01-01'))
    assert not res.ok
    assert res.code == 'IllegalAccessToken'
    assert res.orders == []


def test_rate_limit_propagates(make_client):
    client = make_client({'code': 'AppCallLimit', 'type': 'ISP', 'message': 'limit', 'data': {'products': []}})
    with pytest.raises(ApiRateLimitError):
        client.list_products()


def test_decode_failure_is_wrapped(make_client):
    client = make_client('<html>gateway error</html>')
    with pytest.raises(ApiDecodeError) as info:
        client.get_seller()
    assert isinstance(info.value, ApiRequestError)
    assert isinstance(info.value.__cause__, json.JSONDecodeError)


def test_get_access_token_does_not_mutate_client(make_client):
    token_body = {'access_token': 'new-tok', 'refresh_token': 'ref', 'expires_in': 604800,
                  'refresh_expires_in': 2592000, 'account': 'seller@example.com', 'country': 'vn',
                  'country_user_info': [{'country': 'vn', 'seller_id': '1'}], 'code': '0', 'request_id': 'r'}
    client = make_client(token_body, access_token=None)

    token = client.get_access_token('auth-code')

    parsed, query = _called(client.session.post)
    assert parsed.netloc == 'auth.lazada.com'
    assert parsed.path == '/rest/auth/token/create'
    assert 'code' not in query
    assert client.session.post.call_args[1]['data'] == {'code': 'auth-code'}
    _assert_signed('/auth/token/create', query, {'code': 'auth-code'})
    assert isinstance(token, Token)
    assert token.ok
    assert token.refresh_token == 'ref'
    assert client.credentials.access_token is None

    authorized = client.with_token(token)
    assert authorized is not client
    assert authorized.credentials.access_token == 'new-tok'
    assert authorized.session is client.session
    assert client.credentials.access_token is None


def test_token_endpoints_sign_without_access_token(make_client):
    client = make_client({'access_token': 'b', 'refresh_token': 'r2', 'code': '0'}, access_token='old')
    token = client.refresh_token('r1')
    parsed, query = _called(client.session.post)
    assert parsed.path == '/rest/auth/token/refresh'
    assert 'access_token' not in query
    assert token.access_token == 'b'
    assert client.credentials.access_token == 'old'


def test_make_auth_url(make_client):
    client = make_client()
    url = client.make_auth_url()
    assert url.startswith(AUTHORIZE_URL + '?')
    query = {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}
    assert query == {'client_id': 'K', 'country': 'vn', 'force_auth': 'true',
                     'redirect_uri': CALLBACK_URL, 'response_type': 'code'}


def test_from_env(monkeypatch):
    monkeypatch.setenv('LAZADA_APP_KEY', 'K')
    monkeypatch.setenv('LAZADA_APP_SECRET', 'S')
    monkeypatch.setenv('LAZADA_ACCESS_TOKEN', 'tok')
    monkeypatch.setenv('LAZADA_BASE_URL', 'https://api.lazada.co.th/rest/')
    monkeypatch.setenv('LAZADA_TIMEOUT', '5')
    monkeypatch.setenv('LAZADA_DEBUG', 'true')
    client = LazadaClient.from_env()
    assert client.credentials == Credentials('K', 'S', 'tok')
    assert client.BASE_URL == 'https://api.lazada.co.th/rest'
    assert client.timeout == 5
    assert client.debug is True


def test_finance_vendor_error_is_visible(make_client):
    client = make_client({'code': 'IllegalAccessToken', 'type': 'ISV', 'message': 'The specified access token is invalid or expired'},
                         {'code': 'IllegalAccessToken', 'type': 'ISV', 'message': 'The specified access token is invalid or expired'})
    payout = client.get_payout(GetPayoutRequest(created_after='2024-01-01'))
    assert not payout.ok
    assert payout.code == 'IllegalAccessToken'
    assert payout.payouts == []
    txs = client.list_transactions(ListTransactionsRequest())
    assert not txs.ok
    assert txs.transactions == []


def test_from_env_ignores_empty_overrides(monkeypatch):
    monkeypatch.setenv('LAZADA_APP_KEY', 'K')
    monkeypatch.setenv('LAZADA_APP_SECRET', 'S')
    for name in ('LAZADA_BASE_URL', 'LAZADA_CALLBACK_URL', 'LAZADA_COUNTRY', 'LAZADA_TIMEOUT'):
        monkeypatch.setenv(name, '')
    client = LazadaClient.from_env()
    assert client.BASE_URL == 'https://api.lazada.vn/rest'
    assert client.callback_url == CALLBACK_URL
    assert client.country == 'vn'
    assert client.timeout == 30


def test_with_token_keeps_subclass(make_client):
    class RegionalClient(LazadaClient):
        pass

    client = RegionalClient(Credentials('K', 'S'), base_url='https://api.lazada.co.th/rest')
    other = client.with_token('tok')
    assert type(other) is RegionalClient
    assert other.BASE_URL == 'https://api.lazada.co.th/rest'
    assert other.session is client.session
    assert other.credentials.access_token == 'tok'
