#!/usr/bin/env python
"""Lazada ingestion pipeline: fetch → save raw → normalize → merge → persist.

Examples:
  python pipelines/run_pipeline.py --verbose
  python pipelines/run_pipeline.py --resources products,orders --key-mode pair
  python pipelines/run_pipeline.py --fake-only --seed 42 --dry-run
"""
from __future__ import annotations
import argparse
import uuid
import json
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

# Ensure project root is on sys.path when running directly
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import yaml
from dotenv import load_dotenv

from integrations.lazada_client import LazadaClient
from integrations.lazada_models import ListOrdersRequest, ListProductsRequest, ListTransactionsRequest
from integrations.mock_provider import (
    generate_fake_products,
    generate_fake_orders,
    generate_fake_transactions,
    seed_mock,
)
from pipelines.storage import (
    save_raw,
    load_existing,
    persist,
    append_run_log,
    sha256_json,
    utc_now_iso,
)
from pipelines.normalization import (
    normalize_products,
    normalize_orders,
    normalize_transactions,
    merge_records,
    PRODUCT_KEY,
    ORDER_KEY,
    TRANSACTION_KEY,
)

logger = logging.getLogger('pipelines.run_pipeline')

CONFIG_PATH = PROJECT_ROOT / 'config' / 'pipeline_config.yaml'
RESOURCES = ('products', 'orders', 'transactions')


def load_config(path: Path = CONFIG_PATH) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open('r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(description='Run the Lazada ingestion pipeline')
    p.add_argument('--resources', help='Comma separated resource filter (products,orders,transactions)')
    p.add_argument('--config', type=Path, default=CONFIG_PATH)
    p.add_argument('--run-id', default='auto')
    p.add_argument('--dry-run', action='store_true')
    p.add_argument('--limit', type=int, help='Page size override')
    p.add_argument('--max-pages', type=int, help='Page count override')
    p.add_argument('--lookback-days', type=int, help='Window for orders/transactions')
    p.add_argument('--verbose', action='store_true')
    p.add_argument('--fake', action='store_true', help='Generate fake data for resources whose real fetch fails')
    p.add_argument('--fake-only', action='store_true', help='Skip all API calls and generate synthetic data directly')
    p.add_argument('--key-mode', choices=['triple', 'pair'], default='triple',
                   help='Dedup mode: triple=(source,key,raw_hash), pair=(source,key) overwrite')
    p.add_argument('--seed', type=int, help='Deterministic seed for synthetic data')
    return p.parse_args(argv)


def fetch_products(client: LazadaClient, limit: int, max_pages: int, product_filter: str = 'all') -> List[Dict[str, Any]]:
    products: List[Dict[str, Any]] = []
    for page in range(max_pages):
        res = client.list_products(ListProductsRequest(filter=product_filter, offset=page * limit, limit=limit))
        if not res.ok:
            raise RuntimeError(f'products/get failed: {res.code} {res.message}')
        products.extend(res.products)
        if len(res.products) < limit:
            break
    return products


def fetch_orders(client: LazadaClient, since: datetime, limit: int, max_pages: int,
                 status: Optional[str] = None, sort_by: Optional[str] = None) -> List[Dict[str, Any]]:
    orders: List[Dict[str, Any]] = []
    for page in range(max_pages):
        req = ListOrdersRequest(update_after=since, status=status, sort_by=sort_by,
                                offset=page * limit, limit=limit)
        res = client.list_orders(req)
        if not res.ok:
            raise RuntimeError(f'orders/get failed: {res.code} {res.message}')
        orders.extend(res.orders)
        if len(res.orders) < limit:
            break
    return orders


def fetch_transactions(client: LazadaClient, since: datetime, until: datetime, limit: int,
                       max_pages: int) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for page in range(max_pages):
        req = ListTransactionsRequest(start_time=since.date(), end_time=until.date(),
                                      offset=page * limit, limit=limit)
        res = client.list_transactions(req)
        if not res.ok:
            raise RuntimeError(f'finance/transaction/detail/get failed: {res.code} {res.message}')
        batch = res.transactions
        rows.extend(t.raw for t in batch)
        if len(batch) < limit:
            break
    return rows


def _ingest(name: str, fetch: Callable[[], List[Dict[str, Any]]], fake: Callable[[], List[Dict[str, Any]]],
            normalize, args, run_id: str) -> tuple:
    """Fetch one resource (or fake it) and return (records, raw_payload, raw_files)."""
    if args.fake_only:
        payload = fake()
        resource = f'{name}_fake'
    else:
        try:
            payload = fetch()
            resource = name
        except Exception as e:
            if not args.fake:
                raise
            logger.warning('[fake] %s real fetch failed (%s); generating synthetic data', name, e)
            payload = fake()
            resource = f'{name}_fake'
    if not payload:
        return [], payload, 0
    raw_path = save_raw(resource, payload, run_id)
    return normalize(payload, str(raw_path), sha256_json(payload)), payload, 1


def run(args) -> Dict[str, Any]:
    cfg = load_config(args.config)
    defaults = cfg.get('defaults') or {}
    res_cfg = cfg.get('resources') or {}
    wanted = [r.strip() for r in args.resources.split(',')] if args.resources else list(RESOURCES)
    unknown = [r for r in wanted if r not in RESOURCES]
    if unknown:
        raise SystemExit(f"Unknown resources: {', '.join(unknown)}")

    limit = args.limit or defaults.get('limit', 50)
    max_pages = args.max_pages or defaults.get('max_pages', 1)
    lookback = args.lookback_days or defaults.get('lookback_days', 7)
    until = datetime.now(timezone.utc)
    since = until - timedelta(days=lookback)

    run_id = args.run_id if args.run_id != 'auto' else uuid.uuid4().hex[:8]
    if args.seed is not None:
        seed_mock(args.seed)
    started_at = utc_now_iso()
    status = 'success'
    raw_files = 0
    counts: Dict[str, Dict[str, int]] = {}

    client: Optional[LazadaClient] = None
    if not args.fake_only:
        try:
            client = LazadaClient.from_env()
        except Exception as e:
            if not args.fake:
                raise
            logger.warning('[fake] Lazada client unavailable (%s)', e)

    def _real(fn):
        def call():
            if client is None:
                raise RuntimeError('no Lazada client configured')
            return fn()
        return call

    product_payload: List[Dict[str, Any]] = []
    order_payload: List[Dict[str, Any]] = []
    tables = {
        'products': (PRODUCT_KEY, 'collected_at'),
        'orders': (ORDER_KEY, 'updated_at'),
        'transactions': (TRANSACTION_KEY, 'ingested_at'),
    }
    try:
        for name in wanted:
            if name == 'products':
                prod_cfg = res_cfg.get('products') or {}
                records, product_payload, n = _ingest(
                    'products',
                    _real(lambda: fetch_products(client, limit, max_pages, prod_cfg.get('filter') or 'all')),
                    lambda: generate_fake_products(limit),
                    normalize_products, args, run_id)
            elif name == 'orders':
                ord_cfg = res_cfg.get('orders') or {}
                skus = [s['SellerSku'] for p in product_payload for s in p.get('skus', [])] or None
                records, order_payload, n = _ingest(
                    'orders',
                    _real(lambda: fetch_orders(client, since, limit, max_pages, ord_cfg.get('status'), ord_cfg.get('sort_by'))),
                    lambda: generate_fake_orders(limit, skus),
                    normalize_orders, args, run_id)
            else:
                if not (res_cfg.get('transactions') or {}).get('enabled', True):
                    continue
                order_ids = [o['order_id'] for o in order_payload] or None
                records, _, n = _ingest(
                    'transactions',
                    _real(lambda: fetch_transactions(client, since, until, limit, max_pages)),
                    lambda: generate_fake_transactions(limit, order_ids),
                    normalize_transactions, args, run_id)
            raw_files += n
            key_cols, order_col = tables[name]
            merged, new_count, updated_count = merge_records(load_existing(name), records, key_cols,
                                                             key_mode=args.key_mode, order_col=order_col)
            counts[name] = {'new': new_count, 'updated': updated_count}
            if not args.dry_run and (new_count > 0 or updated_count > 0):
                persist(name, merged)
                logger.info('Persisted %s, total now %d (added %d, %d updated)', name, len(merged), new_count, updated_count)
    except Exception:
        status = 'error'
        logger.exception('Pipeline run %s failed', run_id)

    log_record = {
        'run_id': run_id,
        'started_at': started_at,
        'finished_at': utc_now_iso(),
        'status': status,
        'raw_files': raw_files,
        'resources': wanted,
        'counts': counts,
    }
    if not args.dry_run:
        append_run_log(log_record)
    return log_record


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format='[%(levelname)s] %(message)s')
    load_dotenv(PROJECT_ROOT / '.env')
    record = run(args)
    if args.verbose:
        print(json.dumps(record, indent=2))
    return 0 if record['status'] == 'success' else 1


if __name__ == '__main__':
    sys.exit(main())
