"""Character Studio models and serialization helpers."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional
from urllib.parse import urlparse

from chancery.prompt_builder.compiler import effective_default
from chancery.prompt_builder.models import (
    DefaultsMap,
    PromptImage,
    SavedPrompt,
    ScenePrompt,
    defaults_from_dict,
    defaults_to_dict,
    new_id,
)
from chancery.prompt_builder.sections import DefaultKey


# Shared JSON Schema for use by storage and sync collaborators.
CHARACTER_SCHEMA: Dict[str, object] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "CharacterProfile",
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": {"type": "string", "description": "Stable identifier; equality is by id only."},
        "name": {"type": "string", "description": "Character display name."},
        "bio": {"type": "string", "description": "Free-text biography."},
        "notes": {"type": "string", "description": "Private notes."},
        "prompts": {"type": "array", "items": {"type": "object"}, "description": "Ordered saved prompts."},
        "profile_image_data": {
            "type": ["string", "null"],
            "description": "Base64-encoded profile image bytes.",
        },
        "standalone_images": {
            "type": "array",
            "items": {"type": "object"},
            "description": "Images not tied to any prompt, in display order.",
        },
        "links": {"type": "array", "items": {"type": "object"}},
        "character_defaults": {
            "type": "object",
            "additionalProperties": {"type": "string"},
            "description": "Per-character section defaults keyed by default key.",
        },
        "default_generator": {"type": ["string", "null"]},
        "theme_id": {"type": ["string", "null"]},
    },
}

SCENE_SCHEMA: Dict[str, object] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "CharacterScene",
    "type": "object",
    "required": ["id", "name", "character_ids"],
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
        "description": {"type": "string"},
        "notes": {"type": "string"},
        "character_ids": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Member character ids; order is significant.",
        },
        "prompts": {"type": "array", "items": {"type": "object"}},
        "profile_image_data": {"type": ["string", "null"]},
        "standalone_images": {"type": "array", "items": {"type": "object"}},
        "links": {"type": "array", "items": {"type": "object"}},
        "scene_defaults": {"type": "object", "additionalProperties": {"type": "string"}},
        "default_generator": {"type": ["string", "null"]},
        "theme_id": {"type": ["string", "null"]},
    },
}


def _check_required(payload: Mapping[str, object], schema: Dict[str, object]) -> None:
    if not isinstance(payload, Mapping):
        raise ValueError(f"{schema['title']} payload must be an object")
    missing = [key for key in schema["required"] if key not in payload]  # type: ignore[union-attr]
    if missing:
        raise ValueError(f"{schema['title']} payload is missing required fields: {', '.join(missing)}")


def _encode_bytes(data: Optional[bytes]) -> Optional[str]:
    if data is None:
        return None
    return base64.b64encode(data).decode("ascii")


def _decode_bytes(value: object, field_name: str) -> Optional[bytes]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a base64 string or null")
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"{field_name} is not valid base64: {exc}") from exc


def _optional_str(payload: Mapping[str, object], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key} must be a string or null")
    return value


@dataclass
class RelatedLink:
    title: str
    url: str
    id: str = field(default_factory=new_id)

    @property
    def is_valid(self) -> bool:
        parsed = urlparse(self.url)
        return bool(parsed.scheme and parsed.netloc)

    @property
    def host(self) -> Optional[str]:
        return urlparse(self.url).hostname

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "title": self.title, "url": self.url}

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "RelatedLink":
        if not isinstance(payload, Mapping):
            raise ValueError("link must be an object")
        return cls(id=str(payload.get("id") or new_id()), title=str(payload.get("title", "")), url=str(payload.get("url", "")))


@dataclass(eq=False)
class CharacterProfile:
    """Represent a character with its prompts, images and section defaults."""

    name: str
    id: str = field(default_factory=new_id)
    bio: str = ""
    notes: str = ""
    prompts: List[SavedPrompt] = field(default_factory=list)
    profile_image_data: Optional[bytes] = None
    standalone_images: List[PromptImage] = field(default_factory=list)
    links: List[RelatedLink] = field(default_factory=list)
    character_defaults: DefaultsMap = field(default_factory=dict)
    default_generator: Optional[str] = None
    theme_id: Optional[str] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CharacterProfile):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def has_profile_image(self) -> bool:
        return self.profile_image_data is not None

    @property
    def prompt_count(self) -> int:
        return len(self.prompts)

    @property
    def total_image_count(self) -> int:
        return sum(prompt.image_count for prompt in self.prompts) + len(self.standalone_images)

    @property
    def all_images(self) -> List[PromptImage]:
        images = [image for prompt in self.prompts for image in prompt.images]
        images.extend(self.standalone_images)
        return images

    @property
    def has_custom_defaults(self) -> bool:
        return bool(self.character_defaults)

    @property
    def has_custom_theme(self) -> bool:
        return self.theme_id is not None

    @property
    def has_custom_generator(self) -> bool:
        return self.default_generator is not None

    def effective_default(self, key: DefaultKey, global_defaults: Mapping[DefaultKey, str]) -> Optional[str]:
        return effective_default(key, self.character_defaults, global_defaults)

    def prompt_by_id(self, prompt_id: str) -> Optional[SavedPrompt]:
        return next((prompt for prompt in self.prompts if prompt.id == prompt_id), None)

    def to_dict(self) -> Dict[str, object]:
        """Serialize the CharacterProfile into a JSON-compatible dict."""

        return {
            "id": self.id,
            "name": self.name,
            "bio": self.bio,
            "notes": self.notes,
            "prompts": [prompt.to_dict() for prompt in self.prompts],
            "profile_image_data": _encode_bytes(self.profile_image_data),
            "standalone_images": [image.to_dict() for image in self.standalone_images],
            "links": [link.to_dict() for link in self.links],
            "character_defaults": defaults_to_dict(self.character_defaults),
            "default_generator": self.default_generator,
            "theme_id": self.theme_id,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "CharacterProfile":
        """Create a CharacterProfile from a JSON-compatible dict."""

        _check_required(payload, CHARACTER_SCHEMA)
        return cls(
            id=str(payload["id"]),
            name=str(payload["name"]),
            bio=str(payload.get("bio") or ""),
            notes=str(payload.get("notes") or ""),
            prompts=[SavedPrompt.from_dict(item) for item in payload.get("prompts") or []],  # type: ignore[union-attr]
            profile_image_data=_decode_bytes(payload.get("profile_image_data"), "profile_image_data"),
            standalone_images=[
                PromptImage.from_dict(item) for item in payload.get("standalone_images") or []  # type: ignore[union-attr]
            ],
            links=[RelatedLink.from_dict(item) for item in payload.get("links") or []],  # type: ignore[union-attr]
            character_defaults=defaults_from_dict(payload.get("character_defaults")),  # type: ignore[arg-type]
            default_generator=_optional_str(payload, "default_generator"),
            theme_id=_optional_str(payload, "theme_id"),
        )


@dataclass(eq=False)
class CharacterScene:
    """A group of characters with their own scene prompts and scene defaults.

    ``character_ids`` keeps the order the user arranged; it may reference characters that
    were deleted elsewhere, which lookups treat as absent.
    """

    name: str
    id: str = field(default_factory=new_id)
    description: str = ""
    notes: str = ""
    character_ids: List[str] = field(default_factory=list)
    prompts: List[ScenePrompt] = field(default_factory=list)
    profile_image_data: Optional[bytes] = None
    standalone_images: List[PromptImage] = field(default_factory=list)
    links: List[RelatedLink] = field(default_factory=list)
    scene_defaults: DefaultsMap = field(default_factory=dict)
    default_generator: Optional[str] = None
    theme_id: Optional[str] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CharacterScene):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def prompt_count(self) -> int:
        return len(self.prompts)

    @property
    def character_count(self) -> int:
        return len(self.character_ids)

    @property
    def total_image_count(self) -> int:
        return sum(prompt.image_count for prompt in self.prompts) + len(self.standalone_images)

    @property
    def all_images(self) -> List[PromptImage]:
        images = [image for prompt in self.prompts for image in prompt.images]
        images.extend(self.standalone_images)
        return images

    def add_character(self, character_id: str) -> None:
        if character_id not in self.character_ids:
            self.character_ids.append(character_id)

    def remove_character(self, character_id: str) -> None:
        self.character_ids = [member for member in self.character_ids if member != character_id]

    def prompt_by_id(self, prompt_id: str) -> Optional[ScenePrompt]:
        return next((prompt for prompt in self.prompts if prompt.id == prompt_id), None)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "notes": self.notes,
            "character_ids": list(self.character_ids),
            "prompts": [prompt.to_dict() for prompt in self.prompts],
            "profile_image_data": _encode_bytes(self.profile_image_data),
            "standalone_images": [image.to_dict() for image in self.standalone_images],
            "links": [link.to_dict() for link in self.links],
            "scene_defaults": defaults_to_dict(self.scene_defaults),
            "default_generator": self.default_generator,
            "theme_id": self.theme_id,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "CharacterScene":
        _check_required(payload, SCENE_SCHEMA)
        character_ids = payload["character_ids"]
        if not isinstance(character_ids, list) or not all(isinstance(item, str) for item in character_ids):
            raise ValueError("character_ids must be a list of strings")
        return cls(
            id=str(payload["id"]),
            name=str(payload["name"]),
            description=str(payload.get("description") or ""),
            notes=str(payload.get("notes") or ""),
            character_ids=list(character_ids),
            prompts=[ScenePrompt.from_dict(item) for item in payload.get("prompts") or []],  # type: ignore[union-attr]
            profile_image_data=_decode_bytes(payload.get("profile_image_data"), "profile_image_data"),
            standalone_images=[
                PromptImage.from_dict(item) for item in payload.get("standalone_images") or []  # type: ignore[union-attr]
            ],
            links=[RelatedLink.from_dict(item) for item in payload.get("links") or []],  # type: ignore[union-attr]
            scene_defaults=defaults_from_dict(payload.get("scene_defaults")),  # type: ignore[arg-type]
            default_generator=_optional_str(payload, "default_generator"),
            theme_id=_optional_str(payload, "theme_id"),
        )
