"""Request and response types for the Lazada Open Platform endpoints.

Requests turn themselves into the string parameter maps that get signed
(``to_params``) or into the XML ``payload`` documents used by the product
write endpoints (``to_xml``). Responses keep the vendor envelope
(``code``/``type``/``message``/``request_id``) and the decoded ``data``;
product and order schemas are left as plain dicts.
"""
from __future__ import annotations
import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from .exceptions import ApiDecodeError

XML_HEADER = '<?xml version="1.0" encoding="utf-8"?>'

DateLike = Union[str, date, datetime]


def jsonify(value: Any) -> str:
    return json.dumps(value, separators=(',', ':'))


def format_number(value: Union[int, float]) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def format_date(value: DateLike) -> str:
    if isinstance(value, datetime):
        return value.isoformat(timespec='seconds')
    if isinstance(value, date):
        return value.isoformat()
    return value


def _put(params: Dict[str, str], key: str, value: Any) -> None:
    if value is None or value == '':
        return
    if isinstance(value, bool):
        params[key] = 'true' if value else 'false'
    elif isinstance(value, (int, float)):
        params[key] = format_number(value)
    elif isinstance(value, (date, datetime)):
        params[key] = format_date(value)
    elif isinstance(value, (list, tuple)):
        params[key] = jsonify(list(value))
    else:
        params[key] = str(value)


# ---------------------------------------------------------------- GET requests

@dataclass
class ListProductsRequest:
    filter: str = 'all'  # all, live, inactive, deleted, image-missing, pending, rejected, sold-out
    search: Optional[str] = None
    created_after: Optional[DateLike] = None
    created_before: Optional[DateLike] = None
    update_after: Optional[DateLike] = None
    update_before: Optional[DateLike] = None
    offset: Optional[int] = None
    limit: Optional[int] = None
    options: Optional[int] = None
    sku_seller_list: Optional[List[str]] = None

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        for name in ('filter', 'search', 'created_after', 'created_before', 'update_after',
                     'update_before', 'offset', 'limit', 'options', 'sku_seller_list'):
            _put(params, name, getattr(self, name))
        return params


@dataclass
class GetProductItemRequest:
    item_id: Optional[int] = None
    seller_sku: Optional[str] = None

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.item_id and self.item_id > 0:
            params['item_id'] = str(self.item_id)
        if self.seller_sku:
            params['seller_sku'] = self.seller_sku
        return params


@dataclass
class ListOrdersRequest:
    created_after: Optional[DateLike] = None
    created_before: Optional[DateLike] = None
    update_after: Optional[DateLike] = None
    update_before: Optional[DateLike] = None
    status: Optional[str] = None
    sort_by: Optional[str] = None  # created_at | updated_at
    sort_direction: Optional[str] = None  # ASC | DESC
    offset: Optional[int] = None
    limit: Optional[int] = None

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        for name in ('created_after', 'created_before', 'update_after', 'update_before',
                     'status', 'sort_by', 'sort_direction', 'offset', 'limit'):
            _put(params, name, getattr(self, name))
        return params


@dataclass
class GetOrderItemsRequest:
    order_id: int

    def to_params(self) -> Dict[str, str]:
        return {'order_id': str(self.order_id)}


@dataclass
class GetOrderRequest:
    order_id: str

    def to_params(self) -> Dict[str, str]:
        return {'order_id': str(self.order_id)}


@dataclass
class GetPayoutRequest:
    created_after: DateLike

    def to_params(self) -> Dict[str, str]:
        return {'created_after': format_date(self.created_after)}


@dataclass
class ListTransactionsRequest:
    start_time: Optional[DateLike] = None
    end_time: Optional[DateLike] = None
    trans_type: str = '-1'  # -1 = every transaction type
    trade_order_id: Optional[str] = None
    trade_order_line_id: Optional[str] = None
    offset: Optional[int] = None
    limit: Optional[int] = None

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        for name in ('start_time', 'end_time', 'trans_type', 'trade_order_id',
                     'trade_order_line_id', 'offset', 'limit'):
            _put(params, name, getattr(self, name))
        return params


# ---------------------------------------------------------------- XML payloads

def _text(parent: ET.Element, tag: str, value: Any) -> None:
    if value is None:
        return
    el = ET.SubElement(parent, tag)
    el.text = format_number(value) if isinstance(value, (int, float)) else str(value)


def _serialize(root: ET.Element) -> str:
    return XML_HEADER + '\n' + ET.tostring(root, encoding='unicode')


def _parse(payload: str) -> ET.Element:
    # ElementTree refuses str input that carries an encoding declaration
    try:
        return ET.fromstring(payload.encode('utf-8'))
    except ET.ParseError as e:
        raise ValueError(f"Invalid XML payload: {e}") from e


def _get(el: ET.Element, tag: str, cast=str):
    child = el.find(tag)
    if child is None:
        return None
    return cast(child.text or '')


@dataclass
class PriceQuantitySKU:
    seller_sku: str
    price: Optional[float] = None
    sale_price: Optional[float] = None
    sale_start_date: Optional[str] = None  # 2017-08-08
    sale_end_date: Optional[str] = None
    quantity: Optional[int] = None

    def to_element(self) -> ET.Element:
        sku = ET.Element('Sku')
        _text(sku, 'SellerSku', self.seller_sku)
        _text(sku, 'Price', self.price)
        _text(sku, 'SalePrice', self.sale_price)
        _text(sku, 'SaleStartDate', self.sale_start_date)
        _text(sku, 'SaleEndDate', self.sale_end_date)
        _text(sku, 'Quantity', self.quantity)
        return sku

    @classmethod
    def from_element(cls, el: ET.Element) -> 'PriceQuantitySKU':
        return cls(
            seller_sku=_get(el, 'SellerSku') or '',
            price=_get(el, 'Price', float),
            sale_price=_get(el, 'SalePrice', float),
            sale_start_date=_get(el, 'SaleStartDate'),
            sale_end_date=_get(el, 'SaleEndDate'),
            quantity=_get(el, 'Quantity', int),
        )


@dataclass
class UpdatePriceQuantityRequest:
    skus: List[PriceQuantitySKU] = field(default_factory=list)

    def to_xml(self) -> str:
        root = ET.Element('Request')
        skus = ET.SubElement(ET.SubElement(root, 'Product'), 'Skus')
        for sku in self.skus:
            skus.append(sku.to_element())
        return _serialize(root)

    @classmethod
    def from_xml(cls, payload: str) -> 'UpdatePriceQuantityRequest':
        root = _parse(payload)
        return cls(skus=[PriceQuantitySKU.from_element(el) for el in root.findall('Product/Skus/Sku')])


@dataclass
class CreateProductSKU:
    seller_sku: str
    price: float
    package_height: float
    package_length: float
    package_width: float
    package_weight: float
    quantity: Optional[int] = None
    special_price: Optional[float] = None  # required with special_from_date / special_to_date
    special_from_date: Optional[str] = None
    special_to_date: Optional[str] = None
    color_family: Optional[str] = None
    size: Optional[str] = None
    package_content: Optional[str] = None
    images: List[str] = field(default_factory=list)

    def to_element(self) -> ET.Element:
        sku = ET.Element('Sku')
        _text(sku, 'SellerSku', self.seller_sku)
        _text(sku, 'price', self.price)
        _text(sku, 'quantity', self.quantity)
        _text(sku, 'special_price', self.special_price)
        _text(sku, 'special_from_date', self.special_from_date)
        _text(sku, 'special_to_date', self.special_to_date)
        _text(sku, 'color_family', self.color_family)
        _text(sku, 'size', self.size)
        _text(sku, 'package_height', self.package_height)
        _text(sku, 'package_length', self.package_length)
        _text(sku, 'package_width', self.package_width)
        _text(sku, 'package_weight', self.package_weight)
        _text(sku, 'package_content', self.package_content)
        if self.images:
            images = ET.SubElement(sku, 'Images')
            for url in self.images:
                _text(images, 'Image', url)
        return sku

    @classmethod
    def from_element(cls, el: ET.Element) -> 'CreateProductSKU':
        return cls(
            seller_sku=_get(el, 'SellerSku') or '',
            price=_get(el, 'price', float),
            package_height=_get(el, 'package_height', float),
            package_length=_get(el, 'package_length', float),
            package_width=_get(el, 'package_width', float),
            package_weight=_get(el, 'package_weight', float),
            quantity=_get(el, 'quantity', int),
            special_price=_get(el, 'special_price', float),
            special_from_date=_get(el, 'special_from_date'),
            special_to_date=_get(el, 'special_to_date'),
            color_family=_get(el, 'color_family'),
            size=_get(el, 'size'),
            package_content=_get(el, 'package_content'),
            images=[img.text or '' for img in el.findall('Images/Image')],
        )


@dataclass
class CreateProductRequest:
    """Payload for /product/create and /product/update.

    ``attributes`` must carry name, short_description and brand unless
    ``associated_sku`` points at an existing product.
    """
    skus: List[CreateProductSKU] = field(default_factory=list)
    primary_category: Optional[int] = None
    associated_sku: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    def to_xml(self) -> str:
        root = ET.Element('Request')
        product = ET.SubElement(root, 'Product')
        _text(product, 'PrimaryCategory', self.primary_category)
        _text(product, 'AssociatedSku', self.associated_sku)
        if self.attributes:
            attrs = ET.SubElement(product, 'Attributes')
            for key, value in self.attributes.items():
                _text(attrs, key, value)
        skus = ET.SubElement(product, 'Skus')
        for sku in self.skus:
            skus.append(sku.to_element())
        return _serialize(root)

    @classmethod
    def from_xml(cls, payload: str) -> 'CreateProductRequest':
        root = _parse(payload)
        product = root.find('Product')
        if product is None:
            raise ValueError('Invalid XML payload: missing Product element')
        attrs = product.find('Attributes')
        return cls(
            skus=[CreateProductSKU.from_element(el) for el in product.findall('Skus/Sku')],
            primary_category=_get(product, 'PrimaryCategory', int),
            associated_sku=_get(product, 'AssociatedSku'),
            attributes={child.tag: child.text or '' for child in attrs} if attrs is not None else {},
        )


# ---------------------------------------------------------------- responses

def _decode(body: str) -> Dict[str, Any]:
    try:
        obj = json.loads(body)
    except (json.JSONDecodeError, TypeError) as e:
        raise ApiDecodeError(f"Failed to decode JSON response: {e}: {str(body)[:200]}") from e
    if not isinstance(obj, dict):
        raise ApiDecodeError(f"Unexpected JSON response (expected object): {str(body)[:200]}")
    return obj


@dataclass
class ApiResponse:
    code: str = ''
    type: Optional[str] = None
    message: Optional[str] = None
    request_id: Optional[str] = None
    data: Any = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def ok(self) -> bool:
        return self.code == '0'

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]):
        return cls(
            code=str(obj.get('code', '')),
            type=obj.get('type'),
            message=obj.get('message'),
            request_id=obj.get('request_id'),
            data=obj.get('data'),
            raw=obj,
        )

    @classmethod
    def from_json(cls, body: str):
        return cls.from_dict(_decode(body))

    def _data_dict(self) -> Dict[str, Any]:
        return self.data if isinstance(self.data, dict) else {}


class ListProductsResponse(ApiResponse):
    @property
    def total_products(self) -> int:
        return int(self._data_dict().get('total_products') or 0)

    @property
    def products(self) -> List[Dict[str, Any]]:
        return self._data_dict().get('products') or []


class ListOrdersResponse(ApiResponse):
    @property
    def count(self) -> int:
        data = self._data_dict()
        return int(data.get('countTotal') or data.get('count') or 0)

    @property
    def orders(self) -> List[Dict[str, Any]]:
        return self._data_dict().get('orders') or []


class PayoutResponse(ApiResponse):
    @property
    def payouts(self) -> List['PayoutStatus']:
        rows = self.data if isinstance(self.data, list) else []
        return [PayoutStatus.from_dict(p) for p in rows if isinstance(p, dict)]


class ListTransactionsResponse(ApiResponse):
    @property
    def transactions(self) -> List['Transaction']:
        rows = self.data if isinstance(self.data, list) else []
        return [Transaction.from_dict(t) for t in rows if isinstance(t, dict)]


class CreateProductResponse(ApiResponse):
    @property
    def item_id(self) -> Optional[int]:
        val = self._data_dict().get('item_id')
        return int(val) if val not in (None, '') else None

    @property
    def sku_list(self) -> List[Dict[str, Any]]:
        return self._data_dict().get('sku_list') or []


@dataclass
class Token:
    access_token: str = ''
    refresh_token: str = ''
    expires_in: int = 0
    refresh_expires_in: int = 0
    account_id: Optional[str] = None
    account: Optional[str] = None
    country: Optional[str] = None
    country_user_info: List[Dict[str, Any]] = field(default_factory=list)
    code: str = ''
    message: Optional[str] = None
    request_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def ok(self) -> bool:
        return self.code == '0' and bool(self.access_token)

    @classmethod
    def from_json(cls, body: str) -> 'Token':
        obj = _decode(body)
        return cls(
            access_token=obj.get('access_token') or '',
            refresh_token=obj.get('refresh_token') or '',
            expires_in=int(obj.get('expires_in') or 0),
            refresh_expires_in=int(obj.get('refresh_expires_in') or 0),
            account_id=obj.get('account_id'),
            account=obj.get('account'),
            country=obj.get('country'),
            country_user_info=obj.get('country_user_info') or [],
            code=str(obj.get('code', '')),
            message=obj.get('message'),
            request_id=obj.get('request_id'),
            raw=obj,
        )


@dataclass
class Product:
    item_id: Optional[int] = None
    primary_category: Optional[int] = None
    status: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    skus: List[Dict[str, Any]] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> 'Product':
        item_id = obj.get('item_id')
        category = obj.get('primary_category')
        return cls(
            item_id=int(item_id) if item_id not in (None, '') else None,
            primary_category=int(category) if category not in (None, '') else None,
            status=obj.get('status'),
            attributes=obj.get('attributes') or {},
            skus=obj.get('skus') or [],
            raw=obj,
        )


@dataclass
class PayoutStatus:
    statement_number: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    paid: Optional[str] = None
    opening_balance: Optional[str] = None
    closing_balance: Optional[str] = None
    payout: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> 'PayoutStatus':
        return cls(
            statement_number=obj.get('statement_number'),
            created_at=obj.get('created_at'),
            updated_at=obj.get('updated_at'),
            paid=None if obj.get('paid') is None else str(obj.get('paid')),
            opening_balance=obj.get('opening_balance'),
            closing_balance=obj.get('closing_balance'),
            payout=obj.get('payout'),
            raw=obj,
        )


@dataclass
class Transaction:
    transaction_number: Optional[str] = None
    transaction_date: Optional[str] = None
    transaction_type: Optional[str] = None
    fee_name: Optional[str] = None
    amount: Optional[str] = None
    order_no: Optional[str] = None
    orderItem_no: Optional[str] = None
    seller_sku: Optional[str] = None
    statement: Optional[str] = None
    paid_status: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> 'Transaction':
        return cls(
            transaction_number=obj.get('transaction_number'),
            transaction_date=obj.get('transaction_date'),
            transaction_type=obj.get('transaction_type'),
            fee_name=obj.get('fee_name'),
            amount=None if obj.get('amount') is None else str(obj.get('amount')),
            order_no=obj.get('order_no'),
            orderItem_no=obj.get('orderItem_no'),
            seller_sku=obj.get('seller_sku'),
            statement=obj.get('statement'),
            paid_status=obj.get('paid_status'),
            raw=obj,
        )


@dataclass
class Seller:
    seller_id: Optional[int] = None
    name: Optional[str] = None
    short_code: Optional[str] = None
    email: Optional[str] = None
    location: Optional[str] = None
    verified: bool = False
    cb: bool = False
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> 'Seller':
        seller_id = obj.get('seller_id')
        return cls(
            seller_id=int(seller_id) if seller_id not in (None, '') else None,
            name=obj.get('name'),
            short_code=obj.get('short_code'),
            email=obj.get('email'),
            location=obj.get('location'),
            verified=bool(obj.get('verified')),
            cb=bool(obj.get('cb')),
            raw=obj,
        )
