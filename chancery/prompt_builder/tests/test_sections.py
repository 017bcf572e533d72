import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chancery.prompt_builder.sections import (
    CHARACTER_SECTIONS,
    SCENE_WIDE_SECTIONS,
    SECTION_TABLE,
    DefaultKey,
    SectionKind,
    is_present,
    non_empty,
    parse_default_key,
    parse_section_kind,
)


def test_section_kind_and_default_key_round_trip():
    for kind in SectionKind:
        assert kind.default_key.section_kind is kind
    for key in DefaultKey:
        assert key.section_kind.default_key is key


def test_table_covers_every_member_once():
    assert [info.kind for info in SECTION_TABLE] == list(SectionKind)
    assert [info.default_key for info in SECTION_TABLE] == list(DefaultKey)


def test_persisted_values_are_stable():
    assert [kind.value for kind in SectionKind] == [
        "physicalDescription",
        "outfit",
        "pose",
        "environment",
        "lighting",
        "style",
        "technical",
        "negative",
    ]


def test_display_labels():
    assert SectionKind.STYLE.display_label == "Style Modifiers"
    assert SectionKind.TECHNICAL.display_label == "Technical Modifiers"
    assert DefaultKey.NEGATIVE.display_label == "Negative Prompt"


@pytest.mark.parametrize("value", [None, "", "   ", "\t\n"])
def test_blank_values_are_absent(value):
    assert non_empty(value) is None
    assert not is_present(value)


def test_non_empty_trims_whitespace_and_newlines():
    assert non_empty("\n  tall \t") == "tall"


def test_scene_and_character_sections_partition_the_kinds():
    assert set(SCENE_WIDE_SECTIONS) | set(CHARACTER_SECTIONS) == set(SectionKind)
    assert not set(SCENE_WIDE_SECTIONS) & set(CHARACTER_SECTIONS)


def test_parse_section_kind_accepts_value_and_name():
    assert parse_section_kind("physicalDescription") is SectionKind.PHYSICAL_DESCRIPTION
    assert parse_section_kind("PHYSICAL_DESCRIPTION") is SectionKind.PHYSICAL_DESCRIPTION
    assert parse_section_kind("Lighting") is SectionKind.LIGHTING
    assert parse_default_key("negative") is DefaultKey.NEGATIVE


def test_parse_section_kind_rejects_unknown():
    with pytest.raises(ValueError, match="unknown section kind"):
        parse_section_kind("camera")
