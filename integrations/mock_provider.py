from __future__ import annotations
import random
from datetime import datetime, timedelta, timezone
from typing import List, Dict, Any, Optional

_RANDOM = random.Random()


def seed_mock(seed: Optional[int] = None) -> None:
    if seed is not None:
        _RANDOM.seed(seed)


def _lazada_time(dt: datetime) -> str:
    # Lazada renders local (+07:00 for VN) timestamps as "2024-01-31 13:45:00 +0700"
    return dt.astimezone(timezone(timedelta(hours=7))).strftime('%Y-%m-%d %H:%M:%S %z')


def envelope(data: Any) -> Dict[str, Any]:
    """Wrap ``data`` the way every Lazada response is wrapped."""
    return {
        'code': '0',
        'type': '',
        'message': '',
        'request_id': f"{_RANDOM.getrandbits(48):012x}",
        'data': data,
    }

CATEGORIES = [10000318, 10000451, 10100387, 10002019, 10001958]
ADJECTIVES = ["Smart","Eco","Ultra","Mini","Pro","Air","Max","Hyper","Nano","Prime"]
NOUNS = ["Speaker","Lamp","Bottle","Backpack","Watch","Camera","Helmet","Router","Shirt","Drone"]
ORDER_STATUSES = ["pending","packed","ready_to_ship","shipped","delivered","canceled","returned"]
FEE_NAMES = ["Item Price Credit","Payment Fee","Commission","Shipping Fee (Paid By Customer)","Promotional Charges Vouchers"]


def generate_fake_products(n: int = 20, price_min: float = 50000.0, price_max: float = 3000000.0) -> List[Dict[str, Any]]:
    """Products shaped like the ``data.products`` list of /products/get (VND prices)."""
    items: List[Dict[str, Any]] = []
    now = datetime.now(timezone.utc)
    for i in range(n):
        item_id = 1000000 + i + 1
        name = f"{_RANDOM.choice(ADJECTIVES)} {_RANDOM.choice(NOUNS)}"
        price = float(round(_RANDOM.uniform(price_min, price_max), -3))
        skus = []
        for v in range(_RANDOM.randint(1, 3)):
            special = float(round(price * _RANDOM.uniform(0.8, 0.95), -3)) if _RANDOM.random() < 0.4 else None
            sku = {
                'SkuId': item_id * 10 + v,
                'SellerSku': f"FAKE-{item_id}-{v+1}",
                'ShopSku': f"{item_id}_VNAMZ-{item_id * 10 + v}",
                'price': price,
                'quantity': _RANDOM.randint(0, 200),
                'Status': 'active',
                'package_weight': str(round(_RANDOM.uniform(0.1, 5.0), 2)),
                'Images': [f"https://example.com/img/{item_id}-{v+1}.jpg"],
            }
            if special is not None:
                sku['special_price'] = special
            skus.append(sku)
        created = now - timedelta(days=_RANDOM.randint(1, 365))
        items.append({
            'item_id': item_id,
            'primary_category': _RANDOM.choice(CATEGORIES),
            'status': _RANDOM.choice(['Active', 'Active', 'InActive']),
            'created_time': str(int(created.timestamp() * 1000)),
            'updated_time': str(int(now.timestamp() * 1000)),
            'attributes': {'name': name, 'brand': 'No Brand', 'short_description': f"<ul><li>{name}</li></ul>"},
            'skus': skus,
        })
    return items


def generate_fake_orders(m: int = 10, seller_skus: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    """Orders shaped like the ``data.orders`` list of /orders/get."""
    if seller_skus is None:
        seller_skus = [f"FAKE-{1000000 + i + 1}-1" for i in range(30)]
    orders: List[Dict[str, Any]] = []
    now = datetime.now(timezone.utc)
    for i in range(m):
        order_id = 300000000000 + i + 1
        created = now - timedelta(hours=_RANDOM.randint(1, 240))
        items_count = _RANDOM.randint(1, 4)
        price = round(_RANDOM.uniform(50000.0, 2500000.0), -3) * items_count
        shipping = float(_RANDOM.choice([0, 15000, 22000, 30000]))
        orders.append({
            'order_id': order_id,
            'order_number': order_id,
            'created_at': _lazada_time(created),
            'updated_at': _lazada_time(created + timedelta(hours=_RANDOM.randint(0, 24))),
            'price': f"{price:.2f}",
            'shipping_fee': shipping,
            'voucher': 0.0,
            'items_count': items_count,
            'payment_method': _RANDOM.choice(['COD', 'MIXEDCARD', 'PAYMENT_ACCOUNT']),
            'statuses': [_RANDOM.choice(ORDER_STATUSES)],
            'customer_first_name': f"Buyer {i+1}",
            'address_shipping': {'country': 'Vietnam', 'city': _RANDOM.choice(['Ha Noi', 'Ho Chi Minh', 'Da Nang'])},
            'warehouse_code': 'dropshipping',
            'seller_skus': _RANDOM.sample(seller_skus, k=min(items_count, len(seller_skus))),
        })
    return orders


def generate_fake_transactions(n: int = 20, order_ids: Optional[List[int]] = None) -> List[Dict[str, Any]]:
    """Rows shaped like the ``data`` list of /finance/transaction/detail/get."""
    if order_ids is None:
        order_ids = [300000000000 + i + 1 for i in range(10)]
    out: List[Dict[str, Any]] = []
    now = datetime.now(timezone.utc)
    for i in range(n):
        fee = _RANDOM.choice(FEE_NAMES)
        amount = round(_RANDOM.uniform(10000.0, 1500000.0), -2)
        if fee != 'Item Price Credit':
            amount = -round(amount * 0.05, -2)
        day = now - timedelta(days=_RANDOM.randint(0, 30))
        out.append({
            'transaction_number': f"{_RANDOM.getrandbits(40)}",
            'transaction_date': day.strftime('%d %b %Y'),
            'transaction_type': 'Orders-Sales' if amount > 0 else 'Orders-Lazada Fees',
            'fee_name': fee,
            'amount': f"{amount:.2f}",
            'VAT_in_amount': '0.00',
            'WHT_amount': '0.00',
            'order_no': str(_RANDOM.choice(order_ids)),
            'orderItem_no': str(_RANDOM.getrandbits(40)),
            'seller_sku': f"FAKE-{1000000 + _RANDOM.randint(1, 30)}-1",
            'statement': f"{day.strftime('%d %b %Y')} - {(day + timedelta(days=6)).strftime('%d %b %Y')}",
            'paid_status': _RANDOM.choice(['Paid', 'Not paid']),
        })
    return out


def generate_fake_seller() -> Dict[str, Any]:
    return {
        'seller_id': 100000001,
        'name': 'Mock Seller',
        'short_code': 'VN1XXXXXXX',
        'email': 'seller@example.com',
        'location': 'Ho Chi Minh',
        'verified': True,
        'cb': False,
    }
