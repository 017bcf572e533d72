"""Persistence and compile facades for the Prompt Builder module.

- Purpose: keep the character/scene library, presets and global settings in JSON files
  under one data directory, and expose compile helpers that resolve ids against it.
- Assumptions: a single user edits the library at a time; files are rewritten whole.
- Side effects: ``LibraryStore.save`` writes ``characters.json``, ``scenes.json``,
  ``presets.json`` and ``settings.json`` under the data root.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from chancery.character_studio.models import CharacterProfile, CharacterScene
from chancery.character_studio.registry import CharacterRegistry

from . import compiler
from .gallery import GalleryEntry, ordered_gallery_images
from .models import PromptPreset, ScenePrompt
from .presets import DEFAULT_GENERATOR, GlobalDefaults, PresetRegistry
from .sections import DefaultKey, SectionKind, non_empty

logger = logging.getLogger(__name__)

CHARACTERS_FILE = "characters.json"
SCENES_FILE = "scenes.json"
PRESETS_FILE = "presets.json"
SETTINGS_FILE = "settings.json"


class LibraryError(Exception):
    """A library file exists but cannot be read back into entities."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class LibraryStore:
    """JSON-file backed character/scene library with presets and global defaults."""

    def __init__(
        self,
        root: Path,
        seed_samples: bool = True,
        default_generator: str = DEFAULT_GENERATOR,
    ) -> None:
        self.root = Path(root)
        self.seed_samples = seed_samples
        self.characters: List[CharacterProfile] = []
        self.scenes: List[CharacterScene] = []
        self.presets = PresetRegistry()
        self.global_defaults = GlobalDefaults()
        self.default_generator = default_generator

    # --- Files ---------------------------------------------------------------

    def _read_json(self, name: str) -> Optional[Any]:
        path = self.root / name
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise LibraryError(path, f"invalid JSON: {exc}") from exc

    def _write_json(self, name: str, payload: Any) -> None:
        path = self.root / name
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def load(self) -> "LibraryStore":
        """Read every library file that exists, seeding samples for missing presets/settings."""

        characters = self._read_json(CHARACTERS_FILE)
        scenes = self._read_json(SCENES_FILE)
        presets = self._read_json(PRESETS_FILE)
        settings = self._read_json(SETTINGS_FILE)

        try:
            self.characters = [CharacterProfile.from_dict(item) for item in characters or []]
        except (ValueError, TypeError) as exc:
            raise LibraryError(self.root / CHARACTERS_FILE, str(exc)) from exc
        try:
            self.scenes = [CharacterScene.from_dict(item) for item in scenes or []]
        except (ValueError, TypeError) as exc:
            raise LibraryError(self.root / SCENES_FILE, str(exc)) from exc

        if presets is None:
            self.presets = PresetRegistry.with_samples() if self.seed_samples else PresetRegistry()
        else:
            try:
                self.presets = PresetRegistry.from_list(presets)
            except (ValueError, TypeError) as exc:
                raise LibraryError(self.root / PRESETS_FILE, str(exc)) from exc

        if settings is None:
            self.global_defaults = GlobalDefaults.with_samples() if self.seed_samples else GlobalDefaults()
        else:
            self._apply_settings(settings)

        logger.info(
            "Loaded library from %s: %d characters, %d scenes, %d presets",
            self.root,
            len(self.characters),
            len(self.scenes),
            len(self.presets),
        )
        return self

    def _apply_settings(self, settings: Any) -> None:
        path = self.root / SETTINGS_FILE
        if not isinstance(settings, dict):
            raise LibraryError(path, "settings must be an object")
        try:
            self.global_defaults = GlobalDefaults(settings.get("global_defaults") or {})
        except (ValueError, TypeError) as exc:
            raise LibraryError(path, str(exc)) from exc
        generator = settings.get("default_generator")
        if isinstance(generator, str) and generator.strip():
            self.default_generator = generator.strip()

    def save(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self._write_json(CHARACTERS_FILE, [character.to_dict() for character in self.characters])
        self._write_json(SCENES_FILE, [scene.to_dict() for scene in self.scenes])
        self._write_json(PRESETS_FILE, self.presets.to_list())
        self._write_json(
            SETTINGS_FILE,
            {"global_defaults": self.global_defaults.to_dict(), "default_generator": self.default_generator},
        )
        logger.info("Saved library to %s", self.root)

    # --- Lookups -------------------------------------------------------------

    @property
    def registry(self) -> CharacterRegistry:
        return CharacterRegistry(self.characters, self.scenes)

    def find_character(self, character_id: str) -> Optional[CharacterProfile]:
        return next((character for character in self.characters if character.id == character_id), None)

    def find_scene(self, scene_id: str) -> Optional[CharacterScene]:
        return next((scene for scene in self.scenes if scene.id == scene_id), None)

    def character(self, character_id: str) -> CharacterProfile:
        character = self.find_character(character_id)
        if character is None:
            raise LookupError(f"Character not found for id {character_id}")
        return character

    def scene(self, scene_id: str) -> CharacterScene:
        scene = self.find_scene(scene_id)
        if scene is None:
            raise LookupError(f"Scene not found for id {scene_id}")
        return scene

    # --- Characters and scenes ----------------------------------------------

    def add_character(self, character: CharacterProfile) -> CharacterProfile:
        self.characters.append(character)
        logger.info("Added character %r", character.name)
        return character

    def update_character(self, character: CharacterProfile) -> None:
        for index, existing in enumerate(self.characters):
            if existing.id == character.id:
                self.characters[index] = character
                return
        raise LookupError(f"Character not found for id {character.id}")

    def delete_character(self, character_id: str) -> bool:
        """Remove a character; scenes keep the id and composers skip it."""

        character = self.find_character(character_id)
        if character is None:
            logger.warning("Attempted to delete non-existent character: %s", character_id)
            return False
        self.characters.remove(character)
        logger.info("Deleted character %r", character.name)
        return True

    def add_scene(self, scene: CharacterScene) -> CharacterScene:
        self.scenes.append(scene)
        logger.info("Added scene %r", scene.name)
        return scene

    def update_scene(self, scene: CharacterScene) -> None:
        for index, existing in enumerate(self.scenes):
            if existing.id == scene.id:
                self.scenes[index] = scene
                return
        raise LookupError(f"Scene not found for id {scene.id}")

    def delete_scene(self, scene_id: str) -> bool:
        scene = self.find_scene(scene_id)
        if scene is None:
            logger.warning("Attempted to delete non-existent scene: %s", scene_id)
            return False
        self.scenes.remove(scene)
        logger.info("Deleted scene %r", scene.name)
        return True

    def add_scene_prompt(self, scene_id: str, title: str = "New Prompt") -> ScenePrompt:
        """Create a seeded scene prompt and place it first in the scene's list."""

        scene = self.scene(scene_id)
        prompt = compiler.new_scene_prompt(scene, self.global_defaults, title=title)
        scene.prompts.insert(0, prompt)
        return prompt

    # --- Presets and settings -----------------------------------------------

    def upsert_preset(self, kind: SectionKind, name: str, text: str) -> Optional[PromptPreset]:
        return self.presets.upsert(kind, name, text)

    def delete_preset(self, preset_id: str) -> bool:
        return self.presets.delete(preset_id)

    def set_global_default(self, key: DefaultKey, value: Optional[str]) -> None:
        self.global_defaults.set(key, value)

    def set_default_generator(self, generator: str) -> bool:
        """Store a trimmed generator slug; blank or unchanged values are ignored."""

        trimmed = non_empty(generator)
        if trimmed is None or trimmed == self.default_generator:
            return False
        self.default_generator = trimmed
        logger.info("Default generator set to %s", trimmed)
        return True


class PromptCompilerService:
    """Resolve ids against a library and run the composers."""

    def __init__(self, store: LibraryStore) -> None:
        self.store = store

    def compile_character_prompt(self, character_id: str, prompt_id: str) -> str:
        character = self.store.character(character_id)
        prompt = character.prompt_by_id(prompt_id)
        if prompt is None:
            raise LookupError(f"Prompt {prompt_id} not found for character {character.name}")
        return compiler.compose_single_character_prompt(character, prompt, self.store.global_defaults)

    def compile_scene_prompt(self, scene_id: str, prompt_id: str, labeled: bool = False) -> str:
        scene = self.store.scene(scene_id)
        prompt = scene.prompt_by_id(prompt_id)
        if prompt is None:
            raise LookupError(f"Prompt {prompt_id} not found for scene {scene.name}")
        members = self.store.registry.members_of(scene)
        if labeled:
            return compiler.compose_scene_labeled(prompt, members)
        return compiler.compose_scene_flat(prompt, members)

    def _owner(self, owner_id: str):
        owner = self.store.find_character(owner_id) or self.store.find_scene(owner_id)
        if owner is None:
            raise LookupError(f"No character or scene with id {owner_id}")
        return owner

    def generator_for(self, owner_id: str) -> str:
        """Slug of the generator a character's or scene's prompts are sent to."""

        return compiler.effective_generator(self._owner(owner_id), self.store.default_generator)

    def generator_url_for(self, owner_id: str) -> str:
        return compiler.generator_url(self.generator_for(owner_id))

    def gallery(self, owner_id: str) -> List[GalleryEntry]:
        return ordered_gallery_images(self._owner(owner_id))

    def gallery_payload(self, owner_id: str) -> List[Dict[str, object]]:
        return [entry.to_dict() for entry in self.gallery(owner_id)]
