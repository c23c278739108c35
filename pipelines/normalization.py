from __future__ import annotations
import json
from typing import Any, Dict, List, Sequence, Tuple
from datetime import datetime, timezone

import pandas as pd

SOURCE = 'lazada'

PRODUCT_KEY = ['source', 'seller_sku']
ORDER_KEY = ['source', 'order_id']
TRANSACTION_KEY = ['source', 'transaction_number']


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def _limit_additional(obj: Dict[str, Any], max_len: int = 8000) -> str:
    raw = json.dumps(obj, ensure_ascii=False, sort_keys=True)
    if len(raw) > max_len:
        return raw[:max_len] + '...'
    return raw


def _safe_float(val: Any) -> float | None:
    try:
        if val is None or val == '':
            return None
        return float(val)
    except (TypeError, ValueError):
        return None


def _str_or_none(val: Any) -> str | None:
    return None if val is None or val == '' else str(val)


def normalize_products(raw_products: List[Dict[str, Any]], raw_file: str, raw_hash: str) -> List[Dict[str, Any]]:
    """Flatten /products/get items into one record per SKU."""
    out = []
    collected_at = _now_iso()
    for p in raw_products:
        attrs = p.get('attributes') or {}
        for sku in p.get('skus') or []:
            images = sku.get('Images') or []
            out.append({
                'source': SOURCE,
                'item_id': _str_or_none(p.get('item_id')),
                'seller_sku': _str_or_none(sku.get('SellerSku')),
                'shop_sku': _str_or_none(sku.get('ShopSku')),
                'title': attrs.get('name'),
                'brand': attrs.get('brand'),
                'primary_category': _str_or_none(p.get('primary_category')),
                'status': sku.get('Status') or p.get('status'),
                'price_amount': _safe_float(sku.get('price')),
                'special_price': _safe_float(sku.get('special_price')),
                'quantity': int(sku['quantity']) if sku.get('quantity') not in (None, '') else None,
                'image_url': images[0] if images else None,
                'collected_at': collected_at,
                'raw_hash': raw_hash,
                'raw_file': raw_file,
                'additional': _limit_additional({'sku_id': sku.get('SkuId'), 'package_weight': sku.get('package_weight')}),
            })
    return out


def normalize_orders(raw_orders: List[Dict[str, Any]], raw_file: str, raw_hash: str) -> List[Dict[str, Any]]:
    """Normalize /orders/get orders into the unified order schema.

    Buyer names and addresses are not kept; only the shipping city and
    country survive into ``additional``.
    """
    out: List[Dict[str, Any]] = []
    ingested_at = _now_iso()
    for o in raw_orders:
        statuses = o.get('statuses') or []
        shipping = o.get('address_shipping') or {}
        out.append({
            'source': SOURCE,
            'order_id': _str_or_none(o.get('order_id')),
            'order_number': _str_or_none(o.get('order_number')),
            'created_at': o.get('created_at'),
            'updated_at': o.get('updated_at'),
            'total_price': _safe_float(o.get('price')),
            'shipping_fee': _safe_float(o.get('shipping_fee')),
            'voucher': _safe_float(o.get('voucher')),
            'items_count': int(o.get('items_count') or 0),
            'payment_method': o.get('payment_method'),
            'status': ','.join(statuses) if statuses else None,
            'raw_file': raw_file,
            'raw_hash': raw_hash,
            'ingested_at': ingested_at,
            'additional': _limit_additional({
                'warehouse_code': o.get('warehouse_code'),
                'city': shipping.get('city'),
                'country': shipping.get('country'),
            }),
        })
    return out


def normalize_transactions(raw_transactions: List[Dict[str, Any]], raw_file: str, raw_hash: str) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    ingested_at = _now_iso()
    for t in raw_transactions:
        out.append({
            'source': SOURCE,
            'transaction_number': _str_or_none(t.get('transaction_number')),
            'transaction_date': t.get('transaction_date'),
            'transaction_type': t.get('transaction_type'),
            'fee_name': t.get('fee_name'),
            'amount': _safe_float(t.get('amount')),
            'order_id': _str_or_none(t.get('order_no')),
            'order_item_id': _str_or_none(t.get('orderItem_no')),
            'seller_sku': _str_or_none(t.get('seller_sku')),
            'statement': t.get('statement'),
            'paid_status': t.get('paid_status'),
            'raw_file': raw_file,
            'raw_hash': raw_hash,
            'ingested_at': ingested_at,
        })
    return out


def merge_records(existing: pd.DataFrame | None, new_records: List[Dict[str, Any]], key_cols: Sequence[str],
                  key_mode: str = 'triple', order_col: str | None = None) -> Tuple[pd.DataFrame, int, int]:
    """Merge new records into an existing dataframe.

    Returns:
      (combined_df, new_count, updated_count)

    key_mode:
      - 'triple': keep multiple versions distinguished by key_cols + raw_hash
      - 'pair': single latest version per key_cols (new rows overwrite)
    """
    key_cols = list(key_cols)
    df_new = pd.DataFrame(new_records)
    if key_mode not in ('triple', 'pair'):
        raise ValueError(f"Unknown key_mode: {key_mode}")
    if df_new.empty:
        base = existing if existing is not None else df_new
        return base, 0, 0
    if key_mode == 'pair':
        if order_col and order_col in df_new.columns:
            df_new = df_new.sort_values(order_col)
        df_new = df_new.drop_duplicates(key_cols, keep='last')
    if existing is None or existing.empty:
        return df_new.reset_index(drop=True), len(df_new), 0

    if key_mode == 'triple':
        version_cols = key_cols + ['raw_hash']
        existing_keys = set(tuple(r) for r in existing[version_cols].values.tolist())
        mask = [tuple(row[k] for k in version_cols) not in existing_keys for row in df_new.to_dict('records')]
        df_filtered = df_new[mask]
        combined = pd.concat([existing, df_filtered], ignore_index=True)
        return combined, len(df_filtered), 0

    existing_keys = set(tuple(r) for r in existing[key_cols].values.tolist())
    new_keys = set(tuple(r[k] for k in key_cols) for r in df_new.to_dict('records'))
    keep = [tuple(r) not in new_keys for r in existing[key_cols].values.tolist()]
    truly_new = len([k for k in new_keys if k not in existing_keys])
    updated_count = len([k for k in new_keys if k in existing_keys])
    combined = pd.concat([existing[keep], df_new], ignore_index=True)
    return combined, truly_new, updated_count
