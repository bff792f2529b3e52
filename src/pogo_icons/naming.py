"""Naming helpers.

Centralizes display-name parsing and the CSS class identifier format.
Class names are a public contract: pages link against them, so the rules
here must stay stable across builds.
"""

from __future__ import annotations

import re
from typing import Tuple

# Trailing "(Form)" group; the form itself may not contain parentheses, so
# "A (B) (C)" splits into ("A (B)", "C").
_TRAILING_FORM_RE = re.compile(r"^(.+?)\s*\(([^()]+)\)$")

_APOSTROPHES_RE = re.compile(r"['’]")
_DOTS_COLONS_RE = re.compile(r"[.:]")
_NAME_DISALLOWED_RE = re.compile(r"[^a-z0-9\s-]")
_FORM_DISALLOWED_RE = re.compile(r"[^a-z0-9\s%-]")
_WHITESPACE_RE = re.compile(r"\s+")
_HYPHENS_RE = re.compile(r"-+")


def parse_name_and_form(display_name: str) -> Tuple[str, str]:
    """Split a display name into ``(name, form)``.

    ``"Giratina (Origin)"`` -> ``("Giratina", "Origin")``;
    names without a trailing parenthetical yield an empty form.
    """
    text = (display_name or "").strip()
    m = _TRAILING_FORM_RE.match(text)
    if m:
        return m.group(1).strip(), m.group(2).strip()
    return text, ""


def _slug(text: str, disallowed: re.Pattern) -> str:
    out = text.lower()
    out = _APOSTROPHES_RE.sub("", out)  # Farfetch'd -> farfetchd
    out = _DOTS_COLONS_RE.sub("", out)  # Mr. Mime -> mr mime, Type: Null -> type null
    out = disallowed.sub("", out)
    out = _WHITESPACE_RE.sub("-", out)
    return _HYPHENS_RE.sub("-", out)


def normalize_identifier(name: str, form: str = "") -> str:
    """Build the stable class identifier for a species variant.

    Rules:
    - lowercase; drop apostrophes, periods and colons
    - strip anything outside ``[a-z0-9\\s-]`` (``%`` is also kept in forms)
    - whitespace runs become ``-``, repeated hyphens collapse
    - a non-empty form is normalized on its own and appended as ``<name>-<form>``

    Total: any input produces some identifier, possibly empty.
    """
    cls = _slug(name or "", _NAME_DISALLOWED_RE)
    if form:
        cls += "-" + _slug(form, _FORM_DISALLOWED_RE)
    return cls
