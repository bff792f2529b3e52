"""Bulk sprite download from the PokeMiners asset repository.

Reads the species map and downloads the regular and shiny sprite of every
entry into ``sprites/<theme>/{regular,shiny}/``. Files already on disk are
never requested again, so the step can be re-run after an interruption.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import httpx

from .cache.io import atomic_write_bytes, atomic_write_json, ensure_dir
from .config import MISSING_SPRITES_PATH, SPECIES_MAP_PATH, SPRITES_DIR, load_config
from .mapping import MappingEntry, load_species_map

VARIANTS = ("regular", "shiny")


@dataclass(frozen=True)
class SpriteTask:
    url: str
    dest: str
    label: str
    variant: str
    class_name: str

    @property
    def file(self) -> str:
        return os.path.basename(self.dest)


@dataclass(frozen=True)
class MissingSprite:
    class_name: str
    variant: str
    file: str

    def to_dict(self) -> dict:
        return {"className": self.class_name, "variant": self.variant, "file": self.file}


@dataclass
class FetchTally:
    """Outcome counts for a set of download tasks; merged batch by batch."""

    downloaded: int = 0
    failed: int = 0
    missing: List[MissingSprite] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def merge(self, other: "FetchTally") -> "FetchTally":
        return FetchTally(
            downloaded=self.downloaded + other.downloaded,
            failed=self.failed + other.failed,
            missing=self.missing + other.missing,
            errors=self.errors + other.errors,
        )


@dataclass
class FetchReport:
    total: int
    skipped: int
    tally: FetchTally

    @property
    def attempted(self) -> int:
        return self.total - self.skipped


def build_tasks(
    entries: Sequence[MappingEntry],
    sprites_dir: str,
    base_url: str,
) -> List[SpriteTask]:
    """Two tasks per entry (regular, shiny), in species-map order."""
    base = base_url.rstrip("/")
    tasks: List[SpriteTask] = []
    for entry in entries:
        for variant in VARIANTS:
            filename = entry.sprite_file if variant == "regular" else entry.shiny_sprite_file
            suffix = " [shiny]" if variant == "shiny" else ""
            tasks.append(
                SpriteTask(
                    url=f"{base}/{filename}",
                    dest=os.path.join(sprites_dir, variant, filename),
                    label=f"{entry.label}{suffix}",
                    variant=variant,
                    class_name=entry.class_name,
                )
            )
    return tasks


async def download_one(client: httpx.AsyncClient, task: SpriteTask) -> FetchTally:
    """Download a single sprite; never raises for HTTP or IO failures."""
    try:
        resp = await client.get(task.url)
        if resp.status_code == 404:
            return FetchTally(missing=[MissingSprite(task.class_name, task.variant, task.file)])
        if not resp.is_success:
            return FetchTally(failed=1, errors=[f"WARN: {resp.status_code} for {task.label}"])
        atomic_write_bytes(task.dest, resp.content)
        return FetchTally(downloaded=1)
    except (httpx.HTTPError, OSError) as exc:
        return FetchTally(failed=1, errors=[f"ERR: {task.label} - {exc}"])


async def run_batches(
    client: httpx.AsyncClient,
    tasks: Sequence[SpriteTask],
    concurrency: int,
    progress: Optional[Callable[[int, int, FetchTally], None]] = None,
) -> FetchTally:
    """Download ``tasks`` in batches of ``concurrency``; each batch settles first."""
    size = max(1, concurrency)
    total = len(tasks)
    tally = FetchTally()
    for i in range(0, total, size):
        batch = tasks[i:i + size]
        results = await asyncio.gather(*(download_one(client, t) for t in batch))
        for result in results:
            tally = tally.merge(result)
        if progress is not None:
            progress(min(i + size, total), total, tally)
    return tally


async def fetch_sprites(
    entries: Sequence[MappingEntry],
    sprites_dir: str,
    *,
    base_url: str,
    concurrency: int = 10,
    timeout: float = 30.0,
    client: Optional[httpx.AsyncClient] = None,
    progress: Optional[Callable[[int, int, FetchTally], None]] = None,
) -> FetchReport:
    """Download every missing sprite referenced by ``entries``."""
    for variant in VARIANTS:
        ensure_dir(os.path.join(sprites_dir, variant))

    tasks = build_tasks(entries, sprites_dir, base_url)
    to_download = [t for t in tasks if not os.path.exists(t.dest)]
    skipped = len(tasks) - len(to_download)

    if not to_download:
        return FetchReport(total=len(tasks), skipped=skipped, tally=FetchTally())

    if client is not None:
        tally = await run_batches(client, to_download, concurrency, progress)
    else:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
            tally = await run_batches(own_client, to_download, concurrency, progress)

    return FetchReport(total=len(tasks), skipped=skipped, tally=tally)


def _print_progress(done: int, total: int, tally: FetchTally) -> None:
    print(
        f"  [{done}/{total}] Downloaded: {tally.downloaded}, "
        f"Missing: {len(tally.missing)}, Failed: {tally.failed}"
    )


def run_fetch_sprites(
    config_path: str,
    *,
    concurrency: Optional[int] = None,
    map_path: str = SPECIES_MAP_PATH,
    missing_path: str = MISSING_SPRITES_PATH,
) -> int:
    """Fetch regular + shiny sprites for the whole species map.

    Partial coverage is not an error: missing and failed downloads are
    reported and the step still returns 0.
    """
    print("=== Fetch Sprites ===\n")
    cfg = load_config(config_path)
    entries = load_species_map(map_path)
    sprites_dir = os.path.join(SPRITES_DIR, str(cfg["theme"]))

    report = asyncio.run(
        fetch_sprites(
            entries,
            sprites_dir,
            base_url=str(cfg["sprite_base_url"]),
            concurrency=int(concurrency or cfg["fetch_concurrency"]),
            timeout=float(cfg["request_timeout_seconds"]),
            progress=_print_progress,
        )
    )
    tally = report.tally

    for line in tally.errors:
        print(f"  {line}")

    atomic_write_json(missing_path, [m.to_dict() for m in tally.missing])

    print("")
    print(
        "Summary: "
        + ", ".join(
            [
                f"total={report.total}",
                f"attempted={report.attempted}",
                f"downloaded={tally.downloaded}",
                f"skipped={report.skipped}",
                f"missing={len(tally.missing)}",
                f"failed={tally.failed}",
            ]
        )
    )

    if tally.missing:
        print(f"\nMissing sprites written to: {missing_path}")
        print("First 10 missing:")
        for m in tally.missing[:10]:
            print(f"  {m.class_name} ({m.variant}): {m.file}")

    print("")
    return 0
