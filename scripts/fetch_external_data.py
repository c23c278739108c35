#!/usr/bin/env python
"""CLI to fetch a single Lazada resource as JSON.

Examples:
  python scripts/fetch_external_data.py --resource auth-url
  python scripts/fetch_external_data.py --resource token --code 0_100132_XXXX --out data/token.json
  python scripts/fetch_external_data.py --resource refresh --refresh-token 50001600... --out data/token.json
  python scripts/fetch_external_data.py --resource products --filter live --limit 50 --out data/lazada_products.json
  python scripts/fetch_external_data.py --resource product --seller-sku ABC-1 --out data/product.json
  python scripts/fetch_external_data.py --resource orders --since 2024-05-01T00:00:00+07:00 --status pending --out data/orders.json
  python scripts/fetch_external_data.py --resource order-items --ids 300000000001,300000000002 --out data/items.json
  python scripts/fetch_external_data.py --resource transactions --since 2024-05-01 --until 2024-05-07 --out data/tx.json
  python scripts/fetch_external_data.py --resource seller --out data/seller.json

Options:
  --verbose (debug logging, including redacted request URLs)
"""
from __future__ import annotations
import argparse
import json
import logging
import sys
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

from integrations.exceptions import ApiRequestError
from integrations.lazada_client import LazadaClient
from integrations.lazada_models import (
    ApiResponse,
    GetOrderItemsRequest,
    GetOrderRequest,
    GetPayoutRequest,
    GetProductItemRequest,
    ListOrdersRequest,
    ListProductsRequest,
    ListTransactionsRequest,
)

logger = logging.getLogger('scripts.fetch_external_data')

RESOURCES = ['auth-url', 'token', 'refresh', 'products', 'product', 'orders', 'order', 'order-items',
             'payout', 'transactions', 'metrics', 'seller']


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(description='Fetch Lazada seller data')
    p.add_argument('--resource', required=True, choices=RESOURCES)
    p.add_argument('--limit', type=int, default=50)
    p.add_argument('--offset', type=int, default=0)
    p.add_argument('--filter', default='all', help='Product filter (all, live, inactive, ...)')
    p.add_argument('--status', help='Order status filter')
    p.add_argument('--since', help='created_after / start_time (ISO 8601)')
    p.add_argument('--until', help='created_before / end_time (ISO 8601)')
    p.add_argument('--ids', help='Comma separated order ids (order, order-items)')
    p.add_argument('--item-id', type=int)
    p.add_argument('--seller-sku')
    p.add_argument('--code', help='Authorization code for --resource token')
    p.add_argument('--refresh-token', help='Refresh token for --resource refresh')
    p.add_argument('--out', help='Output JSON file path (stdout when omitted)')
    p.add_argument('--verbose', action='store_true')
    return p.parse_args(argv)


def _plain(obj: Any) -> Any:
    if isinstance(obj, ApiResponse):
        return obj.raw
    if is_dataclass(obj):
        return asdict(obj)
    if isinstance(obj, list):
        return [_plain(o) for o in obj]
    return obj


def _ids(args) -> List[str]:
    if not args.ids:
        raise SystemExit(f'--ids required for {args.resource}')
    return [x.strip() for x in args.ids.split(',') if x.strip()]


def fetch(client: LazadaClient, args) -> Any:
    resource = args.resource
    if resource == 'auth-url':
        return client.make_auth_url()
    if resource == 'token':
        if not args.code:
            raise SystemExit('--code required for token')
        return client.get_access_token(args.code)
    if resource == 'refresh':
        if not args.refresh_token:
            raise SystemExit('--refresh-token required for refresh')
        return client.refresh_token(args.refresh_token)
    if resource == 'products':
        return client.list_products(ListProductsRequest(filter=args.filter, created_after=args.since,
                                                        created_before=args.until, offset=args.offset,
                                                        limit=args.limit))
    if resource == 'product':
        if not (args.item_id or args.seller_sku):
            raise SystemExit('--item-id or --seller-sku required for product')
        return client.get_product(GetProductItemRequest(item_id=args.item_id, seller_sku=args.seller_sku))
    if resource == 'orders':
        if not args.since:
            raise SystemExit('--since required for orders')
        return client.list_orders(ListOrdersRequest(created_after=args.since, created_before=args.until,
                                                    status=args.status, offset=args.offset, limit=args.limit))
    if resource == 'order':
        return [client.get_order(GetOrderRequest(order_id=oid)) for oid in _ids(args)]
    if resource == 'order-items':
        ids = _ids(args)
        if len(ids) == 1:
            return client.get_order_items(GetOrderItemsRequest(order_id=int(ids[0])))
        return client.get_multiple_order_items([int(x) for x in ids])
    if resource == 'payout':
        if not args.since:
            raise SystemExit('--since required for payout')
        return client.get_payout(GetPayoutRequest(created_after=args.since))
    if resource == 'transactions':
        return client.list_transactions(ListTransactionsRequest(start_time=args.since, end_time=args.until,
                                                                offset=args.offset, limit=args.limit))
    if resource == 'metrics':
        return client.get_seller_metrics()
    if resource == 'seller':
        return client.get_seller()
    raise SystemExit(f'Unsupported resource: {resource}')


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format='[%(levelname)s] %(message)s')
    load_dotenv(PROJECT_ROOT / '.env')

    client = LazadaClient.from_env()
    client.debug = client.debug or args.verbose
    try:
        data = _plain(fetch(client, args))
    except ApiRequestError as e:
        logger.error('Lazada %s failed: %s', args.resource, e)
        return 1

    text = json.dumps(data, ensure_ascii=False, indent=2)
    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding='utf-8')
        logger.info('Wrote %s', out_path)
    else:
        print(text)
    return 0


if __name__ == '__main__':
    sys.exit(main())
