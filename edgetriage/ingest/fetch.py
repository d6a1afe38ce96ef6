from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

import requests

from edgetriage.core.config import settings
from edgetriage.core.errors import SourceError

log = logging.getLogger("ingest.fetch")


def fetch_csv_text(url: str, timeout: Optional[float] = None, session: Optional[requests.Session] = None) -> str:
    getter = session or requests
    try:
        resp = getter.get(url, timeout=timeout or settings.FETCH_TIMEOUT)
    except requests.RequestException as e:
        raise SourceError(f"Failed to fetch csvUrl ({e.__class__.__name__})") from e
    if not resp.ok:
        raise SourceError(f"Failed to fetch csvUrl ({resp.status_code} {resp.reason})")

    text = resp.text
    log.info("fetch", extra={"stage": "ingest", "source": "url", "bytes": len(text)})
    return text

def read_csv_file(path: str | Path) -> str:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise SourceError(f"Could not read CSV file {p}: {e.strerror or e}") from e
    log.info("fetch", extra={"stage": "ingest", "source": "file", "bytes": len(text)})
    return text

def load_csv_text(source: str, timeout: Optional[float] = None) -> str:
    if source.startswith(("http://", "https://")):
        return fetch_csv_text(source, timeout=timeout)
    return read_csv_file(source)
