from datetime import date, datetime, timedelta, timezone

import pytest

from integrations.exceptions import ApiDecodeError
from integrations.lazada_models import (
    ApiResponse,
    CreateProductRequest,
    CreateProductSKU,
    GetProductItemRequest,
    ListOrdersRequest,
    ListProductsRequest,
    ListTransactionsRequest,
    PriceQuantitySKU,
    Token,
    UpdatePriceQuantityRequest,
    XML_HEADER,
)


def _full_request():
    return CreateProductRequest(
        primary_category=10000318,
        associated_sku='PARENT-1',
        attributes={'name': 'Desk Lamp & Shade', 'brand': 'No Brand', 'short_description': '<p>Warm light</p>'},
        skus=[
            CreateProductSKU(
                seller_sku='LAMP-1', price=250000.0, package_height=30.0, package_length=20.5,
                package_width=20.0, package_weight=1.2, quantity=15, special_price=199000.0,
                special_from_date='2024-06-01', special_to_date='2024-06-30', color_family='Black',
                size='Int:M', package_content='1 lamp',
                images=['https://example.com/a.jpg', 'https://example.com/b.jpg'],
            ),
            CreateProductSKU(seller_sku='LAMP-2', price=10.5, package_height=1.0, package_length=1.0,
                             package_width=1.0, package_weight=0.1),
        ],
    )


def test_create_product_xml_round_trip():
    req = _full_request()
    assert CreateProductRequest.from_xml(req.to_xml()) == req


def test_xml_declaration_and_layout():
    xml = _full_request().to_xml()
    assert xml.startswith('<?xml version="1.0" encoding="utf-8"?>\n<Request><Product><PrimaryCategory>10000318</PrimaryCategory>')
    assert '<AssociatedSku>PARENT-1</AssociatedSku>' in xml
    assert '<Attributes><name>Desk Lamp &amp; Shade</name>' in xml
    assert '<Images><Image>https://example.com/a.jpg</Image><Image>https://example.com/b.jpg</Image></Images>' in xml
    assert '<price>250000</price>' in xml
    assert '<package_length>20.5</package_length>' in xml
    assert '<price>10.5</price>' in xml


def test_unset_optional_fields_are_omitted():
    req = CreateProductRequest(primary_category=1, skus=[
        CreateProductSKU(seller_sku='S', price=1.0, package_height=1.0, package_length=1.0,
                         package_width=1.0, package_weight=1.0)])
    xml = req.to_xml()
    for tag in ('AssociatedSku', 'Attributes', 'quantity', 'special_price', 'special_from_date',
                'color_family', 'size', 'package_content', 'Images'):
        assert f'<{tag}>' not in xml
    parsed = CreateProductRequest.from_xml(xml)
    assert parsed == req
    assert parsed.skus[0].quantity is None


def test_price_quantity_xml():
    req = UpdatePriceQuantityRequest(skus=[
        PriceQuantitySKU('A', price=100.0, quantity=3),
        PriceQuantitySKU('B', sale_price=80.5, sale_start_date='2024-01-01', sale_end_date='2024-01-31'),
    ])
    xml = req.to_xml()
    assert xml.startswith(XML_HEADER)
    assert '<Request><Product><Skus><Sku><SellerSku>A</SellerSku><Price>100</Price><Quantity>3</Quantity></Sku>' in xml
    assert '<SalePrice>' not in xml.split('</Sku>')[0]
    assert UpdatePriceQuantityRequest.from_xml(xml) == req


def test_from_xml_rejects_garbage():
    with pytest.raises(ValueError):
        CreateProductRequest.from_xml('not xml')
    with pytest.raises(ValueError):
        CreateProductRequest.from_xml(XML_HEADER + '<Request/>')


def test_list_products_params():
    params = ListProductsRequest(limit=10, offset=0, sku_seller_list=['A', 'B'],
                                 created_after=datetime(2024, 1, 1, tzinfo=timezone(timedelta(hours=7)))).to_params()
    assert params == {
        'filter': 'all',
        'limit': '10',
        'offset': '0',
        'sku_seller_list': '["A","B"]',
        'created_after': '2024-01-01T00:00:00+07:00',
    }


def test_get_product_params_skip_unset():
    assert GetProductItemRequest(item_id=0, seller_sku='X').to_params() == {'seller_sku': 'X'}
    assert GetProductItemRequest(item_id=5).to_params() == {'item_id': '5'}


def test_datetimes_are_sent_without_microseconds():
    since = datetime(2024, 5, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)
    params = ListOrdersRequest(update_after=since).to_params()
    assert params['update_after'] == '2024-05-01T10:00:00+00:00'
    assert ListTransactionsRequest(start_time=date(2024, 5, 1)).to_params()['start_time'] == '2024-05-01'


def test_orders_and_transactions_params():
    assert ListOrdersRequest(update_after='2024-01-01', sort_direction='DESC', limit=100).to_params() == {
        'update_after': '2024-01-01', 'sort_direction': 'DESC', 'limit': '100'}
    assert ListTransactionsRequest().to_params() == {'trans_type': '-1'}
    assert ListTransactionsRequest(start_time=date(2024, 1, 1), trans_type='13').to_params() == {
        'start_time': '2024-01-01', 'trans_type': '13'}


def test_api_response_envelope():
    res = ApiResponse.from_json('{"code":"0","request_id":"r","data":{"x":1}}')
    assert res.ok
    assert res.data == {'x': 1}
    assert res.raw['request_id'] == 'r'


def test_decode_errors():
    with pytest.raises(ApiDecodeError):
        ApiResponse.from_json('')
    with pytest.raises(ApiDecodeError):
        ApiResponse.from_json('[1, 2]')
    with pytest.raises(ApiDecodeError):
        Token.from_json('oops')


def test_token_failure_payload():
    token = Token.from_json('{"code":"InvalidCode","type":"ISV","message":"Invalid authorization code"}')
    assert not token.ok
    assert token.access_token == ''
    assert token.message == 'Invalid authorization code'
