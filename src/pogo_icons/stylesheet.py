"""Stylesheet generation.

Assembles ``dist/pogo-icons.css`` from the hand-written CSS fragments and
one generated rule per species map entry, then writes a minified copy.

Rules:
- Class names and custom property names are a public contract
- Rule order follows species map order (reproducible diffs)
- Dex aliases (``.pogo-25``) come from base forms only
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import AbstractSet, List, Optional, Sequence, Set, Tuple

from .cache.io import atomic_write_text, ensure_dir
from .config import DIST_DIR, SPECIES_MAP_PATH, css_fragments, load_config
from .mapping import MappingEntry, load_species_map

CSS_NAME = "pogo-icons.css"
MIN_CSS_NAME = "pogo-icons.min.css"

_COMMENT_RE = re.compile(r"/\*[\s\S]*?\*/")
_WHITESPACE_RE = re.compile(r"\s+")
_PUNCT_SPACE_RE = re.compile(r"\s*([{}:;,>~+])\s*")
_TRAILING_SEMI_RE = re.compile(r";+}")


@dataclass
class CssStats:
    generated: int = 0
    aliases: int = 0
    skipped_no_sprite: int = 0


def minify_css(css: str) -> str:
    """Strip comments and redundant whitespace; idempotent."""
    # Removing one comment can join "/" and "*" into a new one.
    out = css
    while True:
        stripped = _COMMENT_RE.sub("", out)
        if stripped == out:
            break
        out = stripped
    out = _WHITESPACE_RE.sub(" ", out)
    out = _PUNCT_SPACE_RE.sub(r"\1", out)
    out = _TRAILING_SEMI_RE.sub("}", out)
    return out.strip()


def _rule(selector: str, sprite_path: str, shiny_path: str) -> str:
    return (
        f"{selector} {{\n"
        f"  --pogo-sprite: url('{sprite_path}');\n"
        f"  --pogo-sprite-shiny: url('{shiny_path}');\n"
        f"}}"
    )


def build_species_rules(
    entries: Sequence[MappingEntry],
    *,
    theme: str,
    available: Optional[AbstractSet[str]] = None,
) -> Tuple[List[str], List[str], CssStats]:
    """Return ``(species_rules, dex_aliases, stats)`` in species map order.

    ``available`` holds the regular sprite filenames actually built; when it
    is None every entry is emitted.
    """
    stats = CssStats()
    species_rules: List[str] = []
    dex_aliases: List[str] = []
    dex_aliased: Set[int] = set()

    for entry in entries:
        if available is not None and entry.sprite_file not in available:
            stats.skipped_no_sprite += 1
            continue

        sprite_path = f"sprites/{theme}/regular/{entry.sprite_file}"
        shiny_path = f"sprites/{theme}/shiny/{entry.shiny_sprite_file}"

        species_rules.append(_rule(f".pogo-{entry.class_name}", sprite_path, shiny_path))
        stats.generated += 1

        if not entry.form and entry.dex not in dex_aliased:
            dex_aliases.append(_rule(f".pogo-{entry.dex}", sprite_path, shiny_path))
            dex_aliased.add(entry.dex)

    stats.aliases = len(dex_aliases)
    return species_rules, dex_aliases, stats


def assemble_css(
    entries: Sequence[MappingEntry],
    fragments: Sequence[Tuple[str, str]],
    *,
    theme: str = "go",
    version: str = "1.0.0",
    available: Optional[AbstractSet[str]] = None,
) -> Tuple[str, str, CssStats]:
    """Build the full stylesheet and its minified form.

    ``fragments`` are ``(title, css_text)`` pairs included verbatim
    (trimmed) ahead of the generated rules.
    """
    species_rules, dex_aliases, stats = build_species_rules(
        entries, theme=theme, available=available
    )

    header = (
        "/*!\n"
        f" * pogo-icons v{version}\n"
        " * FontAwesome-style Pokemon GO sprite icons\n"
        f" * Theme: {theme}\n"
        f" * Species: {stats.generated}\n"
        " */\n"
    )

    parts: List[str] = [header]
    for title, text in fragments:
        parts.extend([f"/* === {title} === */", text.strip(), ""])
    parts.extend(
        [
            f"/* === Species ({stats.generated} entries) === */",
            "\n".join(species_rules),
            "",
            f"/* === Dex Number Aliases ({stats.aliases} base forms) === */",
            "\n".join(dex_aliases),
            "",
        ]
    )
    css = "\n".join(parts)
    return css, minify_css(css), stats


def read_fragments(pairs: Sequence[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Read hand-written CSS fragments; a missing fragment is a config error."""
    out: List[Tuple[str, str]] = []
    for title, path in pairs:
        try:
            with open(path, "r", encoding="utf-8") as f:
                out.append((title, f.read()))
        except OSError as exc:
            raise RuntimeError(f"Missing CSS fragment {title!r}: {path} ({exc})") from None
    return out


def available_sprites(regular_dir: str) -> Optional[Set[str]]:
    """Filenames in the built regular sprite dir, or None if not built yet."""
    if not os.path.isdir(regular_dir):
        return None
    return set(os.listdir(regular_dir))


def run_generate_css(
    config_path: str,
    *,
    map_path: str = SPECIES_MAP_PATH,
    dist_dir: str = DIST_DIR,
) -> int:
    """Write ``pogo-icons.css`` and ``pogo-icons.min.css`` into ``dist_dir``."""
    print("=== Generate CSS ===\n")
    cfg = load_config(config_path)
    theme = str(cfg["theme"])

    fragments = read_fragments(css_fragments(cfg))
    entries = load_species_map(map_path)

    available = available_sprites(os.path.join(dist_dir, "sprites", theme, "regular"))
    if available is None:
        print("  NOTE: dist sprites not found, generating CSS for all mapped species.\n")

    css, min_css, stats = assemble_css(
        entries,
        fragments,
        theme=theme,
        version=str(cfg["version"]),
        available=available,
    )

    ensure_dir(dist_dir)
    css_path = os.path.join(dist_dir, CSS_NAME)
    min_path = os.path.join(dist_dir, MIN_CSS_NAME)
    atomic_write_text(css_path, css)
    atomic_write_text(min_path, min_css)

    css_kb = len(css.encode("utf-8")) / 1024
    min_kb = len(min_css.encode("utf-8")) / 1024

    print(f"Species classes: {stats.generated}")
    print(f"Dex aliases:     {stats.aliases}")
    if stats.skipped_no_sprite:
        print(f"No sprite:       {stats.skipped_no_sprite} (skipped)")
    print(f"Output:          {css_path} ({css_kb:.1f} KB)")
    print(f"Minified:        {min_path} ({min_kb:.1f} KB)")
    print("")
    return 0
