"""Prompt Builder compiler utilities.

Default resolution and the three prompt renderings: the sectioned single-character prompt,
the flat comma-joined scene prompt used for copying/generation, and the labeled scene
preview. Everything here is a pure read over already-loaded entities.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Union

from .models import SavedPrompt, SceneCharacterSettings, ScenePrompt, new_id
from .sections import SCENE_WIDE_SECTIONS, DefaultKey, SectionKind, non_empty

if TYPE_CHECKING:  # pragma: no cover - typing only
    from chancery.character_studio.models import CharacterProfile, CharacterScene

NEGATIVE_PREFIX = "Negative prompt: "
SCENE_NEGATIVE_SEPARATOR = " ### "
EMPTY_PREVIEW = "No prompt content yet"
FALLBACK_GENERATOR = "ai-artgen"
GENERATOR_BASE_URL = "https://perchance.org/"

# Sections rendered as "<label>:\n<value>" blocks, in output order.
SINGLE_PROMPT_SECTIONS = (
    SectionKind.PHYSICAL_DESCRIPTION,
    SectionKind.OUTFIT,
    SectionKind.POSE,
    SectionKind.ENVIRONMENT,
    SectionKind.LIGHTING,
    SectionKind.STYLE,
    SectionKind.TECHNICAL,
)

_SCENE_PREVIEW_LABELS = (
    ("environment", "Environment"),
    ("lighting", "Lighting"),
    ("style_modifiers", "Style"),
    ("technical_modifiers", "Technical"),
    ("additional_info", "Additional"),
)

_CHARACTER_PREVIEW_LABELS = (
    ("physical_description", "Description"),
    ("outfit", "Outfit"),
    ("pose", "Pose"),
    ("additional_info", "Additional"),
)

DefaultsLike = Optional[Mapping[DefaultKey, str]]


def resolve_value(
    prompt_value: Optional[str],
    scoped_default: Optional[str],
    global_default: Optional[str],
) -> Optional[str]:
    """Return the first present value among prompt, scoped default and global default."""

    for candidate in (prompt_value, scoped_default, global_default):
        if non_empty(candidate) is not None:
            return candidate
    return None


def effective_default(
    key: DefaultKey,
    scoped_defaults: DefaultsLike,
    global_defaults: DefaultsLike,
) -> Optional[str]:
    """Resolve a default with no prompt value: scoped (character/scene) first, then global."""

    scoped = (scoped_defaults or {}).get(key)
    global_value = (global_defaults or {}).get(key)
    return non_empty(resolve_value(None, scoped, global_value))


def effective_generator(owner: Union["CharacterProfile", "CharacterScene"], library_default: Optional[str]) -> str:
    """Generator slug for an owner: its own override, then the library default, then the fallback."""

    return non_empty(owner.default_generator) or non_empty(library_default) or FALLBACK_GENERATOR


def generator_url(slug: str) -> str:
    return f"{GENERATOR_BASE_URL}{slug.strip()}"


def _negative_line(value: str) -> str:
    if value.lower().startswith("negative prompt"):
        return value
    return f"{NEGATIVE_PREFIX}{value}"


def compose_single_character_prompt(
    character: "CharacterProfile",
    prompt: SavedPrompt,
    global_defaults: DefaultsLike = None,
) -> str:
    """Build the sectioned prompt for one character.

    Each section resolves prompt text, then the character default, then the global
    default. Name leads, the negative line follows the technical section, and
    additional information (prompt-only, no defaults) closes the prompt. Absent
    sections are left out entirely; blocks are separated by a blank line.
    """

    global_defaults = global_defaults or {}
    blocks: List[str] = []

    name = non_empty(character.name)
    if name:
        blocks.append(f"Name:\n{name}")

    def resolved(kind: SectionKind) -> Optional[str]:
        key = kind.default_key
        return non_empty(
            resolve_value(prompt.content(kind), character.character_defaults.get(key), global_defaults.get(key))
        )

    for kind in SINGLE_PROMPT_SECTIONS:
        value = resolved(kind)
        if value:
            blocks.append(f"{kind.display_label}:\n{value}")

    negative = resolved(SectionKind.NEGATIVE)
    if negative:
        blocks.append(_negative_line(negative))

    additional = non_empty(prompt.additional_info)
    if additional:
        blocks.append(f"Additional Information:\n{additional}")

    return "\n\n".join(blocks)


def scene_characters(
    scene: "CharacterScene",
    characters: Union[Mapping[str, "CharacterProfile"], Iterable["CharacterProfile"]],
) -> List["CharacterProfile"]:
    """Return the scene's members in scene order, skipping ids that no longer resolve."""

    if isinstance(characters, Mapping):
        by_id = dict(characters)
    else:
        by_id = {character.id: character for character in characters}

    members: List["CharacterProfile"] = []
    seen = set()
    for character_id in scene.character_ids:
        character = by_id.get(character_id)
        if character is None or character_id in seen:
            continue
        seen.add(character_id)
        members.append(character)
    return members


def _settings(scene_prompt: ScenePrompt, character: "CharacterProfile") -> SceneCharacterSettings:
    return scene_prompt.settings_for(character.id) or SceneCharacterSettings()


def compose_scene_flat(
    scene_prompt: ScenePrompt,
    characters: Iterable[Optional["CharacterProfile"]],
) -> str:
    """Single-line scene prompt for copying and sending to a generator.

    Stored values are read as-is; defaults were applied when the scene prompt was created.
    """

    parts: List[str] = []
    for character in characters:
        if character is None:
            continue
        settings = _settings(scene_prompt, character)
        outfit = non_empty(settings.outfit)
        clause = [
            non_empty(character.name),
            non_empty(settings.physical_description),
            f"wearing {outfit}" if outfit else None,
            non_empty(settings.pose),
            non_empty(settings.additional_info),
        ]
        text = ", ".join(part for part in clause if part)
        if text:
            parts.append(text)

    for attribute, _ in _SCENE_PREVIEW_LABELS:
        value = non_empty(getattr(scene_prompt, attribute))
        if value:
            parts.append(value)

    result = ", ".join(parts)
    negative = non_empty(scene_prompt.negative_prompt)
    if negative:
        result += f"{SCENE_NEGATIVE_SEPARATOR}{negative}"
    return result


def compose_scene_labeled(
    scene_prompt: ScenePrompt,
    characters: Iterable[Optional["CharacterProfile"]],
) -> str:
    """Human-readable scene preview with one bracketed block per character."""

    blocks: List[str] = []
    for character in characters:
        if character is None:
            continue
        settings = _settings(scene_prompt, character)
        lines = [
            f"{label}: {value}"
            for value, label in (
                (non_empty(getattr(settings, attribute)), label) for attribute, label in _CHARACTER_PREVIEW_LABELS
            )
            if value
        ]
        header = f"[{(character.name or '').strip()}]"
        blocks.append(f"{header}\n" + ("\n".join(lines) if lines else "(No settings)"))

    scene_lines = [
        f"{label}: {value}"
        for value, label in (
            (non_empty(getattr(scene_prompt, attribute)), label) for attribute, label in _SCENE_PREVIEW_LABELS
        )
        if value
    ]
    if scene_lines:
        blocks.append("[Scene Settings]\n" + "\n".join(scene_lines))

    negative = non_empty(scene_prompt.negative_prompt)
    if negative:
        blocks.append(f"[Negative]\n{negative}")

    return "\n\n".join(blocks) if blocks else EMPTY_PREVIEW


def seed_scene_prompt_defaults(
    scene: "CharacterScene",
    global_defaults: DefaultsLike,
) -> Dict[DefaultKey, Optional[str]]:
    """Initial scene-wide values for a new scene prompt: scene default, then global default."""

    return {
        kind.default_key: effective_default(kind.default_key, scene.scene_defaults, global_defaults)
        for kind in SCENE_WIDE_SECTIONS
    }


def new_scene_prompt(
    scene: "CharacterScene",
    global_defaults: DefaultsLike,
    title: str = "New Prompt",
) -> ScenePrompt:
    prompt = ScenePrompt(title=title)
    for key, value in seed_scene_prompt_defaults(scene, global_defaults).items():
        prompt.set_content(key.section_kind, value)
    return prompt


def duplicate_scene_prompt(prompt: ScenePrompt, title: str = "") -> ScenePrompt:
    """Copy text and character settings under a new id; images stay with the original."""

    return ScenePrompt(
        title=title.strip() or f"{prompt.title} (Copy)",
        environment=prompt.environment,
        lighting=prompt.lighting,
        style_modifiers=prompt.style_modifiers,
        technical_modifiers=prompt.technical_modifiers,
        negative_prompt=prompt.negative_prompt,
        additional_info=prompt.additional_info,
        character_settings=copy.deepcopy(prompt.character_settings),
        preset_names=dict(prompt.preset_names),
    )


def duplicate_prompt(prompt: SavedPrompt, title: str = "") -> SavedPrompt:
    duplicate = copy.deepcopy(prompt)
    duplicate.id = new_id()
    duplicate.title = title.strip() or f"{prompt.title} (Copy)"
    duplicate.images = []
    return duplicate


def load_from_character_prompt(
    scene_prompt: ScenePrompt,
    character_id: str,
    prompt: SavedPrompt,
) -> SceneCharacterSettings:
    """Fill one character's scene settings from a saved character prompt.

    Uses the section fields only; the legacy ``text`` field is never copied.
    """

    settings = scene_prompt.character_settings.get(character_id) or SceneCharacterSettings()
    settings.physical_description = prompt.physical_description
    settings.outfit = prompt.outfit
    settings.pose = prompt.pose
    settings.additional_info = prompt.additional_info
    settings.source_prompt_id = prompt.id
    scene_prompt.character_settings[character_id] = settings
    return settings


def load_scene_settings_from_prompt(scene_prompt: ScenePrompt, prompt: SavedPrompt) -> ScenePrompt:
    for kind in SCENE_WIDE_SECTIONS:
        scene_prompt.set_content(kind, prompt.content(kind))
    return scene_prompt
