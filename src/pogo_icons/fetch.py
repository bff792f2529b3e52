"""Upstream gamemaster download and cache layer.

Fetches the PvPoke ``pokemon.json`` gamemaster and caches it under
``data/raw/pokemon.json`` wrapped with ``_meta`` so repeated builds inside
the TTL window do not hit the network.
"""

import time
from typing import Any, Dict, List, Optional, Tuple

import requests

from .cache.io import read_cached, read_json, write_cached
from .config import GAMEMASTER_CACHE_PATH


def _should_retry_http(status_code: Optional[int]) -> bool:
    if status_code is None:
        return True
    if status_code == 429:
        return True
    return 500 <= status_code <= 599


def _extract_status_code(exc: Exception) -> Optional[int]:
    resp = getattr(exc, "response", None)
    return getattr(resp, "status_code", None)


def fetch_json(
    url: str,
    *,
    timeout: float,
    max_retries: int,
    retry_backoff_seconds: float,
) -> Tuple[int, Optional[str], Any]:
    """Fetch JSON from ``url`` returning ``(status, etag, payload)``.

    Retries transport errors, 429 and 5xx with exponential backoff; other
    HTTP errors are raised immediately.
    """
    attempt = 0
    while True:
        try:
            resp = requests.get(url, timeout=timeout)
            resp.raise_for_status()
            return resp.status_code, resp.headers.get("ETag"), resp.json()
        except requests.exceptions.HTTPError as exc:
            status_code = _extract_status_code(exc)
            if attempt >= max_retries or not _should_retry_http(status_code):
                raise
        except requests.exceptions.RequestException:
            if attempt >= max_retries:
                raise

        attempt += 1
        backoff = retry_backoff_seconds * (2 ** (attempt - 1))
        time.sleep(backoff)


def fetch_gamemaster(
    cfg: Dict[str, Any],
    *,
    force: bool = False,
    cache_path: str = GAMEMASTER_CACHE_PATH,
) -> List[Dict[str, Any]]:
    """Return the gamemaster entry list, from cache when fresh.

    Raises ``RuntimeError`` when the upstream cannot be fetched or does not
    return a JSON list.
    """
    url = str(cfg["gamemaster_url"])
    ttl_days = float(cfg["ttl_days"].get("gamemaster", 1))

    if not force:
        data = read_cached(cache_path, ttl_days)
        if isinstance(data, list):
            print(f"Using cached gamemaster: {cache_path}")
            return data

    print(f"Fetching PvPoke pokemon.json from {url} ...")
    try:
        status, etag, payload = fetch_json(
            url,
            timeout=float(cfg["request_timeout_seconds"]),
            max_retries=int(cfg["max_retries"]),
            retry_backoff_seconds=float(cfg["retry_backoff_seconds"]),
        )
    except (requests.exceptions.RequestException, ValueError) as exc:
        raise RuntimeError(f"Failed to fetch PvPoke data from {url}: {exc}") from None

    if not isinstance(payload, list):
        raise RuntimeError(f"Unexpected PvPoke payload from {url}: expected a JSON list")

    write_cached(cache_path, url, payload, etag=etag, status=status)
    return payload


def load_gamemaster(
    cfg: Dict[str, Any],
    *,
    input_path: Optional[str] = None,
    force: bool = False,
) -> List[Dict[str, Any]]:
    """Load gamemaster entries from ``input_path`` if given, else upstream.

    A local file may hold either the bare entry list or a cached
    ``{"_meta": ..., "data": [...]}`` wrapper.
    """
    if input_path is None:
        return fetch_gamemaster(cfg, force=force)

    data = read_json(input_path)
    if isinstance(data, dict):
        data = data.get("data")
    if not isinstance(data, list):
        raise RuntimeError(f"Missing or invalid gamemaster file: {input_path}")
    print(f"Using local gamemaster: {input_path}")
    return data
