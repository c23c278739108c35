from __future__ import annotations
import json
import hashlib
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from datetime import datetime, timezone

import pandas as pd

logger = logging.getLogger(__name__)

RAW_DIR = Path('data/raw')
NORMALIZED_DIR = Path('data/normalized')
RUNS_LOG = Path('metadata/pipeline_runs.jsonl')
PROVIDER = 'lazada'


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def sha256_json(data: Any) -> str:
    h = hashlib.sha256()
    h.update(json.dumps(data, sort_keys=True, ensure_ascii=False).encode('utf-8'))
    return h.hexdigest()


def save_raw(resource: str, payload: Any, run_id: str, tag: Optional[str] = None) -> Path:
    ts = utc_now_iso().replace(':', '-').replace('.', '-')
    safe_tag = ''
    if tag:
        safe_tag = '_' + tag.replace(' ', '-').replace('/', '-').lower()
    out_dir = RAW_DIR / PROVIDER / resource
    out_dir.mkdir(parents=True, exist_ok=True)
    fpath = out_dir / f"{ts}_{run_id}{safe_tag}.json"
    fpath.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding='utf-8')
    return fpath


def table_path(name: str) -> Path:
    return NORMALIZED_DIR / f"{name}.parquet"


def load_existing(name: str) -> Optional[pd.DataFrame]:
    """Load a normalized table (products, orders, transactions) if it was persisted before."""
    path = table_path(name)
    if not path.exists():
        return None
    return pd.read_parquet(path)


def persist(name: str, df: pd.DataFrame) -> Path:
    path = table_path(name)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_parquet(path, index=False)
    logger.debug('Wrote %d rows to %s', len(df), path)
    return path


def append_run_log(record: Dict[str, Any]) -> None:
    RUNS_LOG.parent.mkdir(parents=True, exist_ok=True)
    with RUNS_LOG.open('a', encoding='utf-8') as f:
        f.write(json.dumps(record, ensure_ascii=False) + '\n')
