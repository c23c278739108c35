#!/usr/bin/env python
"""Environment & connectivity diagnostics for the Lazada client.

Usage:
  python scripts/diagnose_env.py [--ping]

Without flags runs variable presence checks. Use --ping to call /seller/get.
"""
from __future__ import annotations
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

from integrations.exceptions import ApiRequestError
from integrations.lazada_client import LazadaClient

logger = logging.getLogger('scripts.diagnose_env')

MANDATORY: List[str] = ['LAZADA_APP_KEY', 'LAZADA_APP_SECRET']
OPTIONAL: List[str] = ['LAZADA_ACCESS_TOKEN', 'LAZADA_BASE_URL', 'LAZADA_CALLBACK_URL', 'LAZADA_COUNTRY',
                       'LAZADA_TIMEOUT', 'LAZADA_DEBUG']
SECRETS = {'LAZADA_APP_SECRET', 'LAZADA_ACCESS_TOKEN'}


def mask(val: str | None) -> str | None:
    if not val:
        return val
    if len(val) <= 6:
        return '*' * len(val)
    return val[:4] + '...' + val[-4:]


def check_presence() -> Dict[str, str]:
    report: Dict[str, str] = {}
    for k in MANDATORY + OPTIONAL:
        v = os.getenv(k)
        if v and v.strip():
            report[k] = 'OK'
        else:
            report[k] = 'MISSING' if k in MANDATORY else 'unset'
    return report


def print_report() -> bool:
    presence = check_presence()
    widest = max(len(k) for k in presence)
    print('\n[VARIABLE PRESENCE]')
    for k, status in presence.items():
        raw = os.getenv(k)
        shown = mask(raw) if k in SECRETS else raw
        print(f"  {k.ljust(widest)} : {status:<8} {'' if status != 'OK' else shown}")
    print()
    return all(presence[k] == 'OK' for k in MANDATORY)


def ping() -> bool:
    try:
        client = LazadaClient.from_env()
    except ApiRequestError as e:
        print(f"[lazada] Skipping connectivity test ({e})")
        return False
    if not client.credentials.access_token:
        print('[lazada] No LAZADA_ACCESS_TOKEN; /seller/get needs an authorized seller.')
        print(f"[lazada] Authorize at: {client.make_auth_url()}")
        return False
    print(f"[lazada] GET {client.BASE_URL}/seller/get")
    try:
        seller = client.get_seller()
    except ApiRequestError as e:
        print(f"[lazada] ERROR: {e}")
        return False
    if seller.seller_id is None:
        print('[lazada] Empty seller payload.')
        print('HINT: an invalid or expired access token returns no data; run fetch_external_data.py --resource refresh.')
        return False
    print(f"[lazada] Seller: {seller.name} (id={seller.seller_id}, location={seller.location})")
    return True


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(description='Check Lazada configuration')
    p.add_argument('--ping', action='store_true', help='Call /seller/get with the configured token')
    args = p.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format='[%(levelname)s] %(message)s')
    load_dotenv(PROJECT_ROOT / '.env')
    ok = print_report()
    if args.ping:
        ok = ping() and ok
    return 0 if ok else 1


if __name__ == '__main__':
    sys.exit(main())
