"""Shared character and scene registry used across modules.

The registry centralizes id lookups so the composers, gallery and CLI all resolve
characters through the same abstraction. Scenes may hold ids of characters that were
deleted elsewhere; those ids resolve to ``None`` instead of raising.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from chancery.prompt_builder.compiler import scene_characters

from .models import CharacterProfile, CharacterScene


class CharacterRegistry:
    """Index characters and scenes by id, preserving library order."""

    def __init__(
        self,
        characters: Optional[Iterable[CharacterProfile]] = None,
        scenes: Optional[Iterable[CharacterScene]] = None,
    ) -> None:
        self._characters: Dict[str, CharacterProfile] = {}
        self._scenes: Dict[str, CharacterScene] = {}
        for character in characters or []:
            self.add_character(character)
        for scene in scenes or []:
            self.add_scene(scene)

    @property
    def characters(self) -> List[CharacterProfile]:
        return list(self._characters.values())

    @property
    def scenes(self) -> List[CharacterScene]:
        return list(self._scenes.values())

    def add_character(self, character: CharacterProfile) -> None:
        self._characters[character.id] = character

    def add_scene(self, scene: CharacterScene) -> None:
        self._scenes[scene.id] = scene

    def remove_character(self, character_id: str) -> Optional[CharacterProfile]:
        return self._characters.pop(character_id, None)

    def remove_scene(self, scene_id: str) -> Optional[CharacterScene]:
        return self._scenes.pop(scene_id, None)

    def get(self, character_id: str) -> CharacterProfile:
        """Return a character by id or raise KeyError."""

        try:
            return self._characters[character_id]
        except KeyError:
            raise KeyError(f"Character not found for id {character_id}") from None

    def find(self, character_id: str) -> Optional[CharacterProfile]:
        """Return a character when it exists, otherwise ``None``."""

        return self._characters.get(character_id)

    def get_scene(self, scene_id: str) -> CharacterScene:
        try:
            return self._scenes[scene_id]
        except KeyError:
            raise KeyError(f"Scene not found for id {scene_id}") from None

    def find_scene(self, scene_id: str) -> Optional[CharacterScene]:
        return self._scenes.get(scene_id)

    def members_of(self, scene: CharacterScene) -> List[CharacterProfile]:
        """Resolve a scene's members in scene order, skipping unknown or repeated ids."""

        return scene_characters(scene, self._characters)

    def scenes_with(self, character_id: str) -> List[CharacterScene]:
        return [scene for scene in self._scenes.values() if character_id in scene.character_ids]

    def list_ids(self) -> Iterable[str]:
        """Enumerate known character identifiers."""

        return list(self._characters)
