"""Shared data models for the Prompt Builder module.

- Purpose: define serializable structures for prompts, scene prompts, per-character scene
  settings, images, presets and default maps.
- Assumptions: lists remain order-sensitive; ``to_dict``/``from_dict`` are the persisted shape.
- Side effects: none; classes are passive containers.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional
from uuid import uuid4

from .sections import (
    CHARACTER_SECTIONS,
    SCENE_WIDE_SECTIONS,
    DefaultKey,
    SectionKind,
    non_empty,
    parse_default_key,
    parse_section_kind,
)

DefaultsMap = Dict[DefaultKey, str]
PresetNames = Dict[SectionKind, str]

SUMMARY_LIMIT = 80


def new_id() -> str:
    return str(uuid4())


def _require_mapping(payload: object, what: str) -> None:
    if not isinstance(payload, Mapping):
        raise ValueError(f"{what} must be an object, got {type(payload).__name__}")


def _read_text(payload: Mapping[str, object], key: str, default: Optional[str] = None) -> Optional[str]:
    value = payload.get(key, default)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key} must be a string or null")
    return value


def _read_id(payload: Mapping[str, object], key: str = "id") -> str:
    value = payload.get(key)
    if value is None:
        return new_id()
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value


def _read_list(payload: Mapping[str, object], key: str) -> list:
    value = payload.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"{key} must be a list")
    return value


# --- Default maps ---------------------------------------------------------


def set_default(defaults: DefaultsMap, key: DefaultKey, value: Optional[str]) -> None:
    """Store a trimmed default, or drop the key when ``value`` is blank."""

    cleaned = non_empty(value)
    if cleaned is None:
        defaults.pop(key, None)
    else:
        defaults[key] = cleaned


def clean_defaults(values: Optional[Mapping[object, Optional[str]]]) -> DefaultsMap:
    if values is not None:
        _require_mapping(values, "defaults")
    cleaned: DefaultsMap = {}
    for raw_key, value in (values or {}).items():
        if value is not None and not isinstance(value, str):
            raise ValueError(f"default for {raw_key!r} must be a string or null")
        set_default(cleaned, parse_default_key(raw_key), value)
    return cleaned


def defaults_to_dict(defaults: Mapping[DefaultKey, str]) -> Dict[str, str]:
    return {key.value: value for key, value in defaults.items()}


def defaults_from_dict(payload: Optional[Mapping[str, object]]) -> DefaultsMap:
    if payload is not None and not isinstance(payload, Mapping):
        raise ValueError("defaults must be an object")
    return clean_defaults(payload)  # type: ignore[arg-type]


def _preset_names_to_dict(names: Mapping[SectionKind, str]) -> Dict[str, str]:
    return {kind.value: name for kind, name in names.items() if name}


def _preset_names_from_dict(payload: Optional[Mapping[str, object]]) -> PresetNames:
    if payload is not None:
        _require_mapping(payload, "preset_names")
    names: PresetNames = {}
    for raw_kind, name in (payload or {}).items():
        if name is None:
            continue
        if not isinstance(name, str):
            raise ValueError(f"preset name for {raw_kind!r} must be a string")
        names[parse_section_kind(raw_kind)] = name
    return names


# --- Images and presets ---------------------------------------------------


@dataclass
class PromptImage:
    """Raw image bytes attached to a prompt, scene prompt or standalone gallery."""

    data: bytes
    id: str = field(default_factory=new_id)

    def same_image(self, other: "PromptImage") -> bool:
        return self.data == other.data

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "data": base64.b64encode(self.data).decode("ascii")}

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "PromptImage":
        _require_mapping(payload, "image")
        encoded = payload.get("data")
        if not isinstance(encoded, str):
            raise ValueError("image data must be a base64 string")
        try:
            data = base64.b64decode(encoded.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise ValueError(f"image data is not valid base64: {exc}") from exc
        return cls(id=_read_id(payload), data=data)


@dataclass
class PromptPreset:
    kind: SectionKind
    name: str
    text: str
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "kind": self.kind.value, "name": self.name, "text": self.text}

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "PromptPreset":
        _require_mapping(payload, "preset")
        kind = payload.get("kind")
        if not isinstance(kind, str):
            raise ValueError("preset kind must be a string")
        name = _read_text(payload, "name")
        text = _read_text(payload, "text")
        if non_empty(name) is None:
            raise ValueError("preset name must be a non-empty string")
        if non_empty(text) is None:
            raise ValueError("preset text must be a non-empty string")
        return cls(id=_read_id(payload), kind=parse_section_kind(kind), name=name, text=text)  # type: ignore[arg-type]


# --- Single-character prompts ---------------------------------------------


@dataclass
class SavedPrompt:
    """A saved single-character prompt.

    Section text lives in one optional attribute per :class:`SectionKind`; ``additional_info``
    exists only at prompt level. ``preset_names`` is display metadata recording which preset
    a section's text came from and is never read by the composers.
    """

    id: str = field(default_factory=new_id)
    title: str = ""
    text: str = ""
    physical_description: Optional[str] = None
    outfit: Optional[str] = None
    pose: Optional[str] = None
    environment: Optional[str] = None
    lighting: Optional[str] = None
    style_modifiers: Optional[str] = None
    technical_modifiers: Optional[str] = None
    negative_prompt: Optional[str] = None
    additional_info: Optional[str] = None
    preset_names: PresetNames = field(default_factory=dict)
    images: List[PromptImage] = field(default_factory=list)

    def content(self, kind: SectionKind) -> Optional[str]:
        return getattr(self, kind.prompt_field)

    def set_content(self, kind: SectionKind, value: Optional[str]) -> None:
        setattr(self, kind.prompt_field, value)

    def preset_name(self, kind: SectionKind) -> Optional[str]:
        return self.preset_names.get(kind)

    def set_preset_name(self, kind: SectionKind, name: Optional[str]) -> None:
        if name:
            self.preset_names[kind] = name
        else:
            self.preset_names.pop(kind, None)

    def _positive_parts(self) -> List[str]:
        values = [self.content(kind) for kind in SectionKind if kind is not SectionKind.NEGATIVE]
        values.append(self.additional_info)
        return [part for part in (non_empty(value) for value in values) if part]

    @property
    def composed_prompt(self) -> str:
        """Quick single-line form: positive sections joined by commas, negative after a pipe."""

        positive = ", ".join(self._positive_parts())
        negative = non_empty(self.negative_prompt)
        if negative is None:
            return positive
        return f"| {negative}" if not positive else f"{positive} | {negative}"

    @property
    def has_content(self) -> bool:
        return bool(self._positive_parts()) or non_empty(self.negative_prompt) is not None

    @property
    def image_count(self) -> int:
        return len(self.images)

    @property
    def auto_summary(self) -> str:
        parts = self._positive_parts()
        if not parts:
            return "Untitled Prompt"
        summary = ", ".join(parts[:2])
        if len(summary) > SUMMARY_LIMIT:
            summary = summary[: SUMMARY_LIMIT - 3].rstrip() + "..."
        return summary

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"id": self.id, "title": self.title, "text": self.text}
        for kind in SectionKind:
            payload[kind.prompt_field] = self.content(kind)
        payload["additional_info"] = self.additional_info
        payload["preset_names"] = _preset_names_to_dict(self.preset_names)
        payload["images"] = [image.to_dict() for image in self.images]
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "SavedPrompt":
        _require_mapping(payload, "prompt")
        prompt = cls(
            id=_read_id(payload),
            title=_read_text(payload, "title", "") or "",
            text=_read_text(payload, "text", "") or "",
            additional_info=_read_text(payload, "additional_info"),
            preset_names=_preset_names_from_dict(payload.get("preset_names")),  # type: ignore[arg-type]
            images=[PromptImage.from_dict(item) for item in _read_list(payload, "images")],
        )
        for kind in SectionKind:
            prompt.set_content(kind, _read_text(payload, kind.prompt_field))
        return prompt


# --- Scene prompts ----------------------------------------------------------


@dataclass
class SceneCharacterSettings:
    """Per-character values inside one scene prompt."""

    physical_description: Optional[str] = None
    outfit: Optional[str] = None
    pose: Optional[str] = None
    additional_info: Optional[str] = None
    source_prompt_id: Optional[str] = None
    preset_names: PresetNames = field(default_factory=dict)

    def content(self, kind: SectionKind) -> Optional[str]:
        if kind not in CHARACTER_SECTIONS:
            return None
        return getattr(self, kind.prompt_field)

    def set_content(self, kind: SectionKind, value: Optional[str]) -> None:
        if kind not in CHARACTER_SECTIONS:
            raise ValueError(f"{kind.value} is a scene-wide section")
        setattr(self, kind.prompt_field, value)

    def to_dict(self) -> Dict[str, object]:
        return {
            "physical_description": self.physical_description,
            "outfit": self.outfit,
            "pose": self.pose,
            "additional_info": self.additional_info,
            "source_prompt_id": self.source_prompt_id,
            "preset_names": _preset_names_to_dict(self.preset_names),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "SceneCharacterSettings":
        _require_mapping(payload, "character settings")
        return cls(
            physical_description=_read_text(payload, "physical_description"),
            outfit=_read_text(payload, "outfit"),
            pose=_read_text(payload, "pose"),
            additional_info=_read_text(payload, "additional_info"),
            source_prompt_id=_read_text(payload, "source_prompt_id"),
            preset_names=_preset_names_from_dict(payload.get("preset_names")),  # type: ignore[arg-type]
        )


@dataclass
class ScenePrompt:
    """A multi-character prompt: scene-wide sections plus settings keyed by character id."""

    id: str = field(default_factory=new_id)
    title: str = ""
    environment: Optional[str] = None
    lighting: Optional[str] = None
    style_modifiers: Optional[str] = None
    technical_modifiers: Optional[str] = None
    negative_prompt: Optional[str] = None
    additional_info: Optional[str] = None
    character_settings: Dict[str, SceneCharacterSettings] = field(default_factory=dict)
    images: List[PromptImage] = field(default_factory=list)
    preset_names: PresetNames = field(default_factory=dict)

    def content(self, kind: SectionKind) -> Optional[str]:
        if kind not in SCENE_WIDE_SECTIONS:
            return None
        return getattr(self, kind.prompt_field)

    def set_content(self, kind: SectionKind, value: Optional[str]) -> None:
        if kind not in SCENE_WIDE_SECTIONS:
            raise ValueError(f"{kind.value} is set per character on scene prompts")
        setattr(self, kind.prompt_field, value)

    def settings_for(self, character_id: str) -> Optional[SceneCharacterSettings]:
        return self.character_settings.get(character_id)

    @property
    def has_content(self) -> bool:
        fields = [self.content(kind) for kind in SCENE_WIDE_SECTIONS] + [self.additional_info]
        return any(non_empty(value) for value in fields) or bool(self.character_settings)

    @property
    def image_count(self) -> int:
        return len(self.images)

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"id": self.id, "title": self.title}
        for kind in SCENE_WIDE_SECTIONS:
            payload[kind.prompt_field] = self.content(kind)
        payload["additional_info"] = self.additional_info
        payload["character_settings"] = {
            character_id: settings.to_dict() for character_id, settings in self.character_settings.items()
        }
        payload["images"] = [image.to_dict() for image in self.images]
        payload["preset_names"] = _preset_names_to_dict(self.preset_names)
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "ScenePrompt":
        _require_mapping(payload, "scene prompt")
        raw_settings = payload.get("character_settings") or {}
        if not isinstance(raw_settings, Mapping):
            raise ValueError("character_settings must be an object keyed by character id")
        prompt = cls(
            id=_read_id(payload),
            title=_read_text(payload, "title", "") or "",
            additional_info=_read_text(payload, "additional_info"),
            character_settings={
                str(character_id): SceneCharacterSettings.from_dict(settings)
                for character_id, settings in raw_settings.items()
            },
            images=[PromptImage.from_dict(item) for item in _read_list(payload, "images")],
            preset_names=_preset_names_from_dict(payload.get("preset_names")),  # type: ignore[arg-type]
        )
        for kind in SCENE_WIDE_SECTIONS:
            prompt.set_content(kind, _read_text(payload, kind.prompt_field))
        return prompt
