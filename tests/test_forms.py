"""Tests for form code resolution and sprite filenames."""

import json

import pytest

from pogo_icons.forms import (
    NO_SUFFIX,
    FormCodeTable,
    SpriteVariant,
    VariantKind,
    fallback_form_code,
    load_form_codes,
    parse_form_codes,
    resolve_form_code,
    resolve_sprite_variant,
    sprite_filenames,
)

FORM_MAP = {
    "Origin": "ORIGIN",
    "Altered": None,
    "Libre": "cLIBRE",
    "Mega X": "MEGA_X",
}
DEFAULT_FORMS = {"487": "Altered", "386": "Normal"}


class TestResolveFormCode:
    """First match wins: empty, dex default, form map, fallback."""

    def test_empty_form_is_base(self):
        assert resolve_form_code(1, "", FORM_MAP, DEFAULT_FORMS) is None

    def test_dex_default_form(self):
        assert resolve_form_code(386, "Normal", FORM_MAP, DEFAULT_FORMS) is None

    def test_default_form_is_per_dex(self):
        """'Normal' is only the default for dex 386."""
        notes = []
        assert resolve_form_code(25, "Normal", FORM_MAP, DEFAULT_FORMS, notes) == "NORMAL"
        assert len(notes) == 1

    def test_form_map_code(self):
        assert resolve_form_code(487, "Origin", FORM_MAP, DEFAULT_FORMS) == "ORIGIN"

    def test_form_map_explicit_null(self):
        assert resolve_form_code(999, "Altered", FORM_MAP, DEFAULT_FORMS) is None

    def test_default_beats_form_map(self):
        form_map = {"Altered": "ALTERED"}
        assert resolve_form_code(487, "Altered", form_map, DEFAULT_FORMS) is None

    def test_fallback_code_and_note(self):
        notes = []
        code = resolve_form_code(351, "Rainy Form", FORM_MAP, DEFAULT_FORMS, notes)
        assert code == "RAINY_FORM"
        assert notes == ['No mapping for "Rainy Form" (dex 351), using fallback: RAINY_FORM']

    def test_mapped_forms_emit_no_note(self):
        notes = []
        resolve_form_code(487, "Origin", FORM_MAP, DEFAULT_FORMS, notes)
        resolve_form_code(1, "", FORM_MAP, DEFAULT_FORMS, notes)
        assert notes == []

    def test_deterministic(self):
        results = {resolve_form_code(6, "Sunny Day", FORM_MAP, DEFAULT_FORMS) for _ in range(5)}
        assert results == {"SUNNY_DAY"}


class TestFallbackFormCode:
    @pytest.mark.parametrize(
        "form, expected",
        [
            ("Rainy", "RAINY"),
            ("Pom-Pom Style", "POM_POM_STYLE"),
            ("Pa'u  Style", "PAU_STYLE"),
            ("10% Forme", "10_FORME"),
            ("Crowned - Sword", "CROWNED_SWORD"),
            ("???", ""),
        ],
    )
    def test_examples(self, form, expected):
        assert fallback_form_code(form) == expected


class TestSpriteFilenames:
    """Three filename shapes, chosen by the resolved code."""

    def test_no_suffix(self):
        assert sprite_filenames(1, SpriteVariant.from_code(None)) == (
            "pm1.icon.png",
            "pm1.s.icon.png",
        )

    def test_costume(self):
        assert sprite_filenames(25, SpriteVariant.from_code("cLIBRE")) == (
            "pm25.cLIBRE.icon.png",
            "pm25.cLIBRE.s.icon.png",
        )

    def test_form(self):
        assert sprite_filenames(6, SpriteVariant.from_code("MEGA_X")) == (
            "pm6.fMEGA_X.icon.png",
            "pm6.fMEGA_X.s.icon.png",
        )

    def test_uppercase_c_is_a_form_code(self):
        variant = SpriteVariant.from_code("CROWNED_SWORD")
        assert variant.kind is VariantKind.FORM
        assert sprite_filenames(888, variant)[0] == "pm888.fCROWNED_SWORD.icon.png"

    def test_empty_code_is_no_suffix(self):
        assert SpriteVariant.from_code("") == NO_SUFFIX


class TestResolveSpriteVariant:
    def test_flags_fallback(self):
        table = FormCodeTable(form_map=FORM_MAP, default_forms=DEFAULT_FORMS)
        variant, used_fallback = resolve_sprite_variant(351, "Snowy", table)
        assert variant == SpriteVariant(VariantKind.FORM, "SNOWY")
        assert used_fallback is True

    def test_mapped_is_not_fallback(self):
        table = FormCodeTable(form_map=FORM_MAP, default_forms=DEFAULT_FORMS)
        variant, used_fallback = resolve_sprite_variant(25, "Libre", table)
        assert variant.kind is VariantKind.COSTUME
        assert used_fallback is False


class TestLoadFormCodes:
    def test_load(self, tmp_path):
        path = tmp_path / "form-codes.json"
        path.write_text(
            json.dumps({"formMap": FORM_MAP, "defaultForms": {487: "Altered"}}),
            encoding="utf-8",
        )
        table = load_form_codes(str(path))
        assert table.form_map["Libre"] == "cLIBRE"
        assert table.default_forms == {"487": "Altered"}

    def test_missing_file_is_config_error(self, tmp_path):
        with pytest.raises(RuntimeError, match="Missing or invalid form codes"):
            load_form_codes(str(tmp_path / "nope.json"))

    def test_wrong_shape_is_config_error(self):
        with pytest.raises(RuntimeError, match="formMap"):
            parse_form_codes({"formMap": []})

    def test_non_string_code_is_config_error(self):
        with pytest.raises(RuntimeError, match="expected string or null"):
            parse_form_codes({"formMap": {"Origin": 3}, "defaultForms": {}})
