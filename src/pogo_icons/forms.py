"""Form code resolution and sprite filename construction.

PokeMiners names sprites ``pm{dex}[.<suffix>][.s].icon.png``. The suffix
depends on how a form is encoded upstream:

- no suffix for a species' base/default form
- costume codes already carry their marker (``cLIBRE`` -> ``pm25.cLIBRE``)
- every other code is a form code and gets an ``f`` prefix
  (``MEGA_X`` -> ``pm6.fMEGA_X``)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .cache.io import read_json

_FALLBACK_SEPARATORS_RE = re.compile(r"[\s-]+")
_FALLBACK_DISALLOWED_RE = re.compile(r"[^A-Z0-9_]")

COSTUME_MARKER = "c"


@dataclass(frozen=True)
class FormCodeTable:
    """Form name -> code table plus the per-dex implicit default form."""

    form_map: Dict[str, Optional[str]]
    default_forms: Dict[str, str]


def load_form_codes(path: str) -> FormCodeTable:
    """Load ``{"formMap": {...}, "defaultForms": {...}}`` from ``path``.

    Raises ``RuntimeError`` if the file is missing or malformed.
    """
    data = read_json(path)
    if not isinstance(data, dict):
        raise RuntimeError(f"Missing or invalid form codes: {path}")
    return parse_form_codes(data, source=path)


def parse_form_codes(data: Mapping[str, Any], source: str = "<form codes>") -> FormCodeTable:
    form_map = data.get("formMap")
    default_forms = data.get("defaultForms")
    if not isinstance(form_map, dict) or not isinstance(default_forms, dict):
        raise RuntimeError(
            f"Invalid form codes in {source}: expected 'formMap' and 'defaultForms' objects"
        )
    for form, code in form_map.items():
        if code is not None and not isinstance(code, str):
            raise RuntimeError(
                f"Invalid form code for {form!r} in {source}: expected string or null"
            )
    for dex, form in default_forms.items():
        if not isinstance(form, str):
            raise RuntimeError(
                f"Invalid default form for dex {dex} in {source}: expected string"
            )
    return FormCodeTable(
        form_map=dict(form_map),
        default_forms={str(k): v for k, v in default_forms.items()},
    )


def fallback_form_code(form: str) -> str:
    """Synthesize a code from free text: ``"Rainy Season-2"`` -> ``"RAINY_SEASON_2"``."""
    code = _FALLBACK_SEPARATORS_RE.sub("_", form.upper())
    return _FALLBACK_DISALLOWED_RE.sub("", code)


def resolve_form_code(
    dex: int,
    form: str,
    form_map: Mapping[str, Optional[str]],
    default_forms: Mapping[str, str],
    notes: Optional[List[str]] = None,
) -> Optional[str]:
    """Resolve a free-text form to a PokeMiners code; ``None`` means no suffix.

    First match wins: empty form; the dex's default form; an explicit
    ``form_map`` entry (whose value may itself be ``None``); otherwise a
    synthesized fallback code, which is reported through ``notes``.
    """
    code, _ = _resolve(dex, form, form_map, default_forms, notes)
    return code


def _resolve(
    dex: int,
    form: str,
    form_map: Mapping[str, Optional[str]],
    default_forms: Mapping[str, str],
    notes: Optional[List[str]],
) -> Tuple[Optional[str], bool]:
    if not form:
        return None, False

    if default_forms.get(str(dex)) == form:
        return None, False

    if form in form_map:
        return form_map[form], False

    fallback = fallback_form_code(form)
    if notes is not None:
        notes.append(f'No mapping for "{form}" (dex {dex}), using fallback: {fallback}')
    return fallback, True


class VariantKind(str, Enum):
    NO_SUFFIX = "none"
    COSTUME = "costume"
    FORM = "form"


@dataclass(frozen=True)
class SpriteVariant:
    """Which of the three upstream filename shapes a species variant uses."""

    kind: VariantKind
    code: str = ""

    @classmethod
    def from_code(cls, code: Optional[str]) -> "SpriteVariant":
        if not code:
            return NO_SUFFIX
        if code.startswith(COSTUME_MARKER):
            return cls(VariantKind.COSTUME, code)
        return cls(VariantKind.FORM, code)


NO_SUFFIX = SpriteVariant(VariantKind.NO_SUFFIX)


def resolve_sprite_variant(
    dex: int,
    form: str,
    table: FormCodeTable,
    notes: Optional[List[str]] = None,
) -> Tuple[SpriteVariant, bool]:
    """Return ``(variant, used_fallback)`` for a species form."""
    code, used_fallback = _resolve(dex, form, table.form_map, table.default_forms, notes)
    return SpriteVariant.from_code(code), used_fallback


def sprite_filenames(dex: int, variant: SpriteVariant) -> Tuple[str, str]:
    """Return ``(regular, shiny)`` sprite filenames for ``dex`` + ``variant``."""
    if variant.kind is VariantKind.NO_SUFFIX:
        stem = f"pm{dex}"
    elif variant.kind is VariantKind.COSTUME:
        stem = f"pm{dex}.{variant.code}"
    elif variant.kind is VariantKind.FORM:
        stem = f"pm{dex}.f{variant.code}"
    else:
        raise ValueError(f"Unknown sprite variant kind: {variant.kind!r}")
    return f"{stem}.icon.png", f"{stem}.s.icon.png"
