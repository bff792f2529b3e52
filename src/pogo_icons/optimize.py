"""Sprite optimization.

Recompresses downloaded sprites from ``sprites/<theme>/`` into
``dist/sprites/<theme>/``. The pass is lossless: same format, same
dimensions, higher compression. Outputs at least as new as their source
are left alone.
"""

from __future__ import annotations

import asyncio
import io
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from PIL import Image

from .cache.io import atomic_write_bytes, ensure_dir
from .config import DIST_DIR, SPRITES_DIR, load_config

SUBDIRS = ("regular", "shiny")


@dataclass
class OptimizeStats:
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    src_bytes: int = 0
    dst_bytes: int = 0
    errors: List[str] = field(default_factory=list)

    def merge(self, other: "OptimizeStats") -> "OptimizeStats":
        return OptimizeStats(
            processed=self.processed + other.processed,
            skipped=self.skipped + other.skipped,
            failed=self.failed + other.failed,
            src_bytes=self.src_bytes + other.src_bytes,
            dst_bytes=self.dst_bytes + other.dst_bytes,
            errors=self.errors + other.errors,
        )


def is_up_to_date(src_path: str, dst_path: str) -> bool:
    """True when ``dst_path`` exists and is at least as new as ``src_path``."""
    try:
        return os.stat(dst_path).st_mtime >= os.stat(src_path).st_mtime
    except FileNotFoundError:
        return False


def recompress(data: bytes) -> bytes:
    """Re-encode image bytes losslessly in their own format."""
    with Image.open(io.BytesIO(data)) as img:
        fmt = img.format or "PNG"
        params = {"optimize": True}
        if fmt == "PNG":
            params["compress_level"] = 9
        out = io.BytesIO()
        img.save(out, format=fmt, **params)
    return out.getvalue()


def _optimize_file(src_path: str, dst_path: str) -> Tuple[int, int]:
    with open(src_path, "rb") as f:
        data = f.read()
    result = recompress(data)
    atomic_write_bytes(dst_path, result)
    return len(data), len(result)


async def optimize_one(src_path: str, dst_path: str) -> OptimizeStats:
    if is_up_to_date(src_path, dst_path):
        return OptimizeStats(skipped=1)
    try:
        src_size, dst_size = await asyncio.to_thread(_optimize_file, src_path, dst_path)
    except OSError as exc:
        # PIL.UnidentifiedImageError is an OSError as well.
        return OptimizeStats(failed=1, errors=[f"ERR: {os.path.basename(src_path)} - {exc}"])
    return OptimizeStats(processed=1, src_bytes=src_size, dst_bytes=dst_size)


def list_sprites(src_dir: str) -> Optional[List[str]]:
    """Sorted ``*.png`` names in ``src_dir``, or None if the directory is absent."""
    if not os.path.isdir(src_dir):
        return None
    return sorted(name for name in os.listdir(src_dir) if name.endswith(".png"))


async def optimize_sprites(
    src_root: str,
    dst_root: str,
    *,
    batch_size: int = 20,
    verbose: bool = False,
) -> OptimizeStats:
    """Optimize ``regular`` and ``shiny`` sprites independently, in batches."""
    size = max(1, batch_size)
    stats = OptimizeStats()

    for subdir in SUBDIRS:
        src_dir = os.path.join(src_root, subdir)
        dst_dir = os.path.join(dst_root, subdir)

        files = list_sprites(src_dir)
        if files is None:
            if verbose:
                print(f"  No {subdir} sprites found, skipping.")
            continue

        ensure_dir(dst_dir)
        if verbose:
            print(f"Processing {subdir}: {len(files)} files...")

        for i in range(0, len(files), size):
            batch = files[i:i + size]
            results = await asyncio.gather(
                *(
                    optimize_one(os.path.join(src_dir, name), os.path.join(dst_dir, name))
                    for name in batch
                )
            )
            for result in results:
                stats = stats.merge(result)
            if verbose:
                print(f"  [{min(i + size, len(files))}/{len(files)}]")

    return stats


def run_optimize_sprites(config_path: str) -> int:
    """Optimize all downloaded sprites into ``dist/sprites/<theme>``."""
    print("=== Optimize Sprites ===\n")
    cfg = load_config(config_path)
    theme = str(cfg["theme"])

    stats = asyncio.run(
        optimize_sprites(
            os.path.join(SPRITES_DIR, theme),
            os.path.join(DIST_DIR, "sprites", theme),
            batch_size=int(cfg["optimize_batch_size"]),
            verbose=True,
        )
    )

    for line in stats.errors:
        print(f"  {line}")

    saved_mb = (stats.src_bytes - stats.dst_bytes) / 1024 / 1024
    dst_mb = stats.dst_bytes / 1024 / 1024

    print(f"\nProcessed:   {stats.processed} files")
    print(f"Skipped:     {stats.skipped} files (already up to date)")
    print(f"Failed:      {stats.failed} files")
    print(f"Output size: {dst_mb:.1f} MB (saved {saved_mb:.1f} MB)")
    print("")
    return 0
