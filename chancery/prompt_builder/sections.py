"""Prompt sections and their default keys.

- Purpose: define the closed set of prompt sections, the matching default keys, and the
  single table both directions of the mapping are derived from.
- Assumptions: enum values are the persisted identifiers shared with storage and sync.
- Side effects: none.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union


def non_empty(value: Optional[str]) -> Optional[str]:
    """Return ``value`` trimmed, or ``None`` when it is missing or whitespace-only.

    Every layer (prompt fields, character/scene/global defaults, preset text) uses this
    helper so that blank means absent everywhere.
    """

    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def is_present(value: Optional[str]) -> bool:
    return non_empty(value) is not None


class SectionKind(str, Enum):
    PHYSICAL_DESCRIPTION = "physicalDescription"
    OUTFIT = "outfit"
    POSE = "pose"
    ENVIRONMENT = "environment"
    LIGHTING = "lighting"
    STYLE = "style"
    TECHNICAL = "technical"
    NEGATIVE = "negative"

    @property
    def default_key(self) -> "DefaultKey":
        return _BY_KIND[self].default_key

    @property
    def display_label(self) -> str:
        return _BY_KIND[self].label

    @property
    def placeholder(self) -> str:
        return _BY_KIND[self].placeholder

    @property
    def icon_name(self) -> str:
        return _BY_KIND[self].icon

    @property
    def prompt_field(self) -> str:
        """Attribute name holding this section on prompt objects."""

        return _BY_KIND[self].prompt_field


class DefaultKey(str, Enum):
    PHYSICAL_DESCRIPTION = "physicalDescription"
    OUTFIT = "outfit"
    POSE = "pose"
    ENVIRONMENT = "environment"
    LIGHTING = "lighting"
    STYLE = "style"
    TECHNICAL = "technical"
    NEGATIVE = "negative"

    @property
    def section_kind(self) -> SectionKind:
        return _BY_DEFAULT_KEY[self].kind

    @property
    def display_label(self) -> str:
        return self.section_kind.display_label


@dataclass(frozen=True)
class SectionInfo:
    kind: SectionKind
    default_key: DefaultKey
    label: str
    placeholder: str
    icon: str
    prompt_field: str


SECTION_TABLE: Tuple[SectionInfo, ...] = (
    SectionInfo(
        SectionKind.PHYSICAL_DESCRIPTION,
        DefaultKey.PHYSICAL_DESCRIPTION,
        "Physical Description",
        "Describe physical features...",
        "person.fill",
        "physical_description",
    ),
    SectionInfo(
        SectionKind.OUTFIT,
        DefaultKey.OUTFIT,
        "Outfit",
        "Describe clothing and accessories...",
        "tshirt.fill",
        "outfit",
    ),
    SectionInfo(
        SectionKind.POSE,
        DefaultKey.POSE,
        "Pose",
        "Describe pose and expression...",
        "figure.stand",
        "pose",
    ),
    SectionInfo(
        SectionKind.ENVIRONMENT,
        DefaultKey.ENVIRONMENT,
        "Environment",
        "Describe the setting and background...",
        "mountain.2.fill",
        "environment",
    ),
    SectionInfo(
        SectionKind.LIGHTING,
        DefaultKey.LIGHTING,
        "Lighting",
        "Describe lighting conditions...",
        "sun.max.fill",
        "lighting",
    ),
    SectionInfo(
        SectionKind.STYLE,
        DefaultKey.STYLE,
        "Style Modifiers",
        "Add artistic style modifiers...",
        "paintbrush.fill",
        "style_modifiers",
    ),
    SectionInfo(
        SectionKind.TECHNICAL,
        DefaultKey.TECHNICAL,
        "Technical Modifiers",
        "Add technical parameters...",
        "slider.horizontal.3",
        "technical_modifiers",
    ),
    SectionInfo(
        SectionKind.NEGATIVE,
        DefaultKey.NEGATIVE,
        "Negative Prompt",
        "Elements to exclude...",
        "xmark.circle.fill",
        "negative_prompt",
    ),
)

_BY_KIND: Dict[SectionKind, SectionInfo] = {info.kind: info for info in SECTION_TABLE}
_BY_DEFAULT_KEY: Dict[DefaultKey, SectionInfo] = {info.default_key: info for info in SECTION_TABLE}

# Sections a scene prompt carries scene-wide; the rest live in per-character settings.
SCENE_WIDE_SECTIONS: Tuple[SectionKind, ...] = (
    SectionKind.ENVIRONMENT,
    SectionKind.LIGHTING,
    SectionKind.STYLE,
    SectionKind.TECHNICAL,
    SectionKind.NEGATIVE,
)
CHARACTER_SECTIONS: Tuple[SectionKind, ...] = (
    SectionKind.PHYSICAL_DESCRIPTION,
    SectionKind.OUTFIT,
    SectionKind.POSE,
)


def parse_section_kind(value: Union[str, SectionKind]) -> SectionKind:
    """Accept an enum member, its persisted value, or its member name (any case)."""

    if isinstance(value, SectionKind):
        return value
    if not isinstance(value, str):
        raise ValueError(f"section kind must be a string, got {type(value).__name__}")
    candidate = value.strip()
    for kind in SectionKind:
        if candidate == kind.value or candidate.upper() == kind.name or candidate.lower() == kind.value.lower():
            return kind
    raise ValueError(f"unknown section kind: {value!r}")


def parse_default_key(value: Union[str, DefaultKey]) -> DefaultKey:
    if isinstance(value, DefaultKey):
        return value
    return parse_section_kind(value).default_key
