"""Species mapping builder.

Turns PvPoke gamemaster entries into the canonical species map
(``data/species-map.json``): one entry per species variant, sorted by
``(dex, form)``, carrying the sprite filenames every later step uses.
Later steps never recompute filenames on their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .cache.io import atomic_write_json, read_json
from .config import SPECIES_MAP_PATH, load_config
from .fetch import load_gamemaster
from .forms import FormCodeTable, load_form_codes, resolve_sprite_variant, sprite_filenames
from .naming import normalize_identifier, parse_name_and_form


class RecordFlag(str, Enum):
    SHADOW = "shadow"
    DUPLICATE = "duplicate"
    DUPLICATE_AT_MAX_RANK = "duplicate-at-max-rank"
    TEAMBUILDER_EXCLUDE = "teambuilder-exclude"
    LEGENDARY = "legendary"
    MYTHICAL = "mythical"
    MEGA = "mega"
    ULTRA_BEAST = "ultrabeast"


# Upstream tag spellings -> flag. PvPoke writes the compact forms.
_TAG_FLAGS: Dict[str, RecordFlag] = {
    "shadow": RecordFlag.SHADOW,
    "duplicate": RecordFlag.DUPLICATE,
    "duplicate1500": RecordFlag.DUPLICATE_AT_MAX_RANK,
    "duplicate-at-max-rank": RecordFlag.DUPLICATE_AT_MAX_RANK,
    "teambuilderexclude": RecordFlag.TEAMBUILDER_EXCLUDE,
    "teambuilder-exclude": RecordFlag.TEAMBUILDER_EXCLUDE,
    "legendary": RecordFlag.LEGENDARY,
    "mythical": RecordFlag.MYTHICAL,
    "mega": RecordFlag.MEGA,
    "ultrabeast": RecordFlag.ULTRA_BEAST,
}

DUPLICATE_FLAGS = frozenset(
    {
        RecordFlag.DUPLICATE,
        RecordFlag.DUPLICATE_AT_MAX_RANK,
        RecordFlag.TEAMBUILDER_EXCLUDE,
    }
)

# Retained on MappingEntry.tags, written with their upstream spelling.
KEPT_TAGS: Tuple[RecordFlag, ...] = (
    RecordFlag.LEGENDARY,
    RecordFlag.MYTHICAL,
    RecordFlag.MEGA,
    RecordFlag.ULTRA_BEAST,
)


@dataclass(frozen=True)
class RawSpeciesRecord:
    """One upstream gamemaster entry, reduced to the fields the map needs."""

    species_name: str
    dex: int
    species_id: str
    flags: Tuple[RecordFlag, ...] = ()

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RawSpeciesRecord":
        """Parse an upstream entry; raises ``ValueError`` when unusable."""
        name = d.get("speciesName")
        dex = d.get("dex")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"entry without speciesName: {d.get('speciesId')!r}")
        if isinstance(dex, bool) or not isinstance(dex, int):
            raise ValueError(f"entry without numeric dex: {name!r}")
        tags = d.get("tags")
        if tags is None:
            tags = []
        if not isinstance(tags, (list, tuple)):
            raise ValueError(f"entry with non-list tags: {name!r}")
        # Upstream order, first occurrence wins.
        flags: List[RecordFlag] = []
        for tag in tags:
            flag = _TAG_FLAGS.get(tag) if isinstance(tag, str) else None
            if flag is not None and flag not in flags:
                flags.append(flag)
        return cls(
            species_name=name,
            dex=dex,
            species_id=str(d.get("speciesId") or ""),
            flags=tuple(flags),
        )

    @property
    def is_shadow(self) -> bool:
        return RecordFlag.SHADOW in self.flags

    @property
    def is_duplicate(self) -> bool:
        return any(flag in DUPLICATE_FLAGS for flag in self.flags)


@dataclass(frozen=True)
class MappingEntry:
    """A canonical species variant, persisted in ``species-map.json``."""

    name: str
    form: str
    dex: int
    class_name: str
    upstream_id: str
    sprite_file: str
    shiny_sprite_file: str
    tags: Tuple[str, ...] = ()
    form_code_fallback: bool = False

    @property
    def label(self) -> str:
        return f"{self.name} ({self.form})" if self.form else self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "form": self.form,
            "dex": self.dex,
            "className": self.class_name,
            "upstreamId": self.upstream_id,
            "spriteFile": self.sprite_file,
            "shinySpriteFile": self.shiny_sprite_file,
            "tags": list(self.tags),
            "formCodeFallback": self.form_code_fallback,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MappingEntry":
        return cls(
            name=d["name"],
            form=d.get("form", ""),
            dex=int(d["dex"]),
            class_name=d["className"],
            upstream_id=d.get("upstreamId", ""),
            sprite_file=d["spriteFile"],
            shiny_sprite_file=d["shinySpriteFile"],
            tags=tuple(d.get("tags") or ()),
            form_code_fallback=bool(d.get("formCodeFallback", False)),
        )


@dataclass
class MappingStats:
    total: int = 0
    mapped: int = 0
    skipped_shadow: int = 0
    skipped_duplicate: int = 0
    skipped_invalid: int = 0
    duplicates: List[str] = field(default_factory=list)
    unmapped: List[MappingEntry] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    @property
    def excluded(self) -> int:
        return self.skipped_shadow + self.skipped_duplicate + self.skipped_invalid


def build_entry(record: RawSpeciesRecord, table: FormCodeTable, notes: List[str]) -> MappingEntry:
    name, form = parse_name_and_form(record.species_name)
    variant, used_fallback = resolve_sprite_variant(record.dex, form, table, notes)
    sprite_file, shiny_sprite_file = sprite_filenames(record.dex, variant)
    return MappingEntry(
        name=name,
        form=form,
        dex=record.dex,
        class_name=normalize_identifier(name, form),
        upstream_id=record.species_id,
        sprite_file=sprite_file,
        shiny_sprite_file=shiny_sprite_file,
        tags=tuple(flag.value for flag in record.flags if flag in KEPT_TAGS),
        form_code_fallback=used_fallback,
    )


def find_duplicate_class_names(entries: Iterable[MappingEntry]) -> List[str]:
    """Return one item per occurrence of a class name beyond its first."""
    seen: set[str] = set()
    dupes: List[str] = []
    for entry in entries:
        if entry.class_name in seen:
            dupes.append(entry.class_name)
        seen.add(entry.class_name)
    return dupes


def build_species_map(
    raw_entries: Iterable[Dict[str, Any]],
    table: FormCodeTable,
) -> Tuple[List[MappingEntry], MappingStats]:
    """Build the canonical, sorted species map from upstream entries."""
    stats = MappingStats()
    entries: List[MappingEntry] = []

    for raw in raw_entries:
        stats.total += 1
        if not isinstance(raw, dict):
            stats.skipped_invalid += 1
            continue
        try:
            record = RawSpeciesRecord.from_dict(raw)
        except ValueError as exc:
            stats.skipped_invalid += 1
            stats.notes.append(f"Skipped invalid entry: {exc}")
            continue

        # Shadow is a CSS effect over the normal form, not a separate species.
        if record.is_shadow:
            stats.skipped_shadow += 1
            continue
        if record.is_duplicate:
            stats.skipped_duplicate += 1
            continue

        entries.append(build_entry(record, table, stats.notes))

    entries.sort(key=lambda e: (e.dex, e.form))
    stats.mapped = len(entries)
    stats.duplicates = find_duplicate_class_names(entries)
    stats.unmapped = [e for e in entries if e.form_code_fallback]
    return entries, stats


def save_species_map(path: str, entries: Sequence[MappingEntry]) -> None:
    atomic_write_json(path, [e.to_dict() for e in entries])


def load_species_map(path: str = SPECIES_MAP_PATH) -> List[MappingEntry]:
    """Read the canonical species map.

    Raises ``RuntimeError`` if it is missing or malformed; every step after
    the mapping build depends on it.
    """
    data = read_json(path)
    if not isinstance(data, list):
        raise RuntimeError(f"Missing or invalid species map: {path} (run the mapping step first)")
    try:
        return [MappingEntry.from_dict(d) for d in data]
    except (KeyError, TypeError, ValueError) as exc:
        raise RuntimeError(f"Invalid species map entry in {path}: {exc}") from None


def run_build_mapping(
    config_path: str,
    *,
    input_path: Optional[str] = None,
    force: bool = False,
    output_path: str = SPECIES_MAP_PATH,
) -> int:
    """Build ``species-map.json`` from the gamemaster dataset and form codes."""
    print("=== Build Mapping ===\n")
    cfg = load_config(config_path)
    table = load_form_codes(str(cfg["form_codes_path"]))

    raw_entries = load_gamemaster(cfg, input_path=input_path, force=force)
    print(f"  Loaded {len(raw_entries)} entries.\n")

    entries, stats = build_species_map(raw_entries, table)

    for note in stats.notes:
        print(f"  INFO: {note}")

    if stats.duplicates:
        preview = ", ".join(stats.duplicates[:5])
        more = "..." if len(stats.duplicates) > 5 else ""
        print(f"  WARN: {len(stats.duplicates)} duplicate class names: {preview}{more}")

    save_species_map(output_path, entries)

    print(f"Species mapped: {stats.mapped}")
    print(
        f"Skipped:        {stats.excluded} "
        f"(shadow={stats.skipped_shadow}, duplicate={stats.skipped_duplicate}, "
        f"invalid={stats.skipped_invalid})"
    )
    print(f"Output:         {output_path}\n")

    if stats.unmapped:
        print(f"Unmapped forms ({len(stats.unmapped)}):")
        for entry in stats.unmapped[:20]:
            print(f"  {entry.name} ({entry.form}) -> {entry.sprite_file}")
        if len(stats.unmapped) > 20:
            print(f"  ... and {len(stats.unmapped) - 20} more")

    return 0
