"""Configuration loading for the icon pipeline."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from .cache.io import read_json

DEFAULT_CONFIG_PATH = "config/config.json"

DATA_DIR = "data"
RAW_DIR = "data/raw"
SPRITES_DIR = "sprites"
DIST_DIR = "dist"

SPECIES_MAP_PATH = "data/species-map.json"
MISSING_SPRITES_PATH = "data/missing-sprites.json"
GAMEMASTER_CACHE_PATH = "data/raw/pokemon.json"

DEFAULTS: Dict[str, Any] = {
    "gamemaster_url": (
        "https://raw.githubusercontent.com/pvpoke/pvpoke/master/src/data/gamemaster/pokemon.json"
    ),
    "sprite_base_url": (
        "https://raw.githubusercontent.com/PokeMiners/pogo_assets/master/"
        "Images/Pokemon%20-%20256x256/Addressable%20Assets"
    ),
    "theme": "go",
    "version": "1.0.0",
    "form_codes_path": "data/form-codes.json",
    "fetch_concurrency": 10,
    "optimize_batch_size": 20,
    "request_timeout_seconds": 30,
    "max_retries": 5,
    "retry_backoff_seconds": 1.0,
    "ttl_days": {"gamemaster": 1},
    "css_fragments": [
        ["Base", "css/base.css"],
        ["Sizes", "css/sizes.css"],
        ["Effects", "css/effects.css"],
    ],
}


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load JSON configuration from ``config_path`` merged over ``DEFAULTS``.

    Raises ``RuntimeError`` if the file is missing or invalid.
    """
    data = read_json(config_path)
    if not isinstance(data, dict) or not data:
        raise RuntimeError(f"Missing or invalid config: {config_path}")
    merged = dict(DEFAULTS)
    merged.update(data)
    merged["ttl_days"] = {**DEFAULTS["ttl_days"], **(data.get("ttl_days") or {})}
    return merged


def css_fragments(cfg: Dict[str, Any]) -> List[Tuple[str, str]]:
    """Return configured ``(title, path)`` pairs for hand-written CSS fragments."""
    pairs: List[Tuple[str, str]] = []
    for item in cfg.get("css_fragments") or []:
        if not isinstance(item, (list, tuple)) or len(item) != 2:
            raise RuntimeError(f"Invalid css_fragments entry in config: {item!r}")
        title, path = item
        pairs.append((str(title), str(path)))
    return pairs
