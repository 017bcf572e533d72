"""Gallery ordering shared by grid and swipe views.

- Purpose: produce the one ordered, deduplicated image sequence for a character or scene,
  plus the library-wide creations gallery.
- Assumptions: owners expose ``profile_image_data``, ``prompts`` (each with ``images``) and
  ``standalone_images``; image identity for dedup is byte equality.
- Side effects: none.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence, Set

from .models import PromptImage


class _PromptWithImages(Protocol):
    id: str
    title: str
    images: List[PromptImage]


class GalleryOwner(Protocol):
    id: str
    name: str
    profile_image_data: Optional[bytes]
    prompts: Sequence[_PromptWithImages]
    standalone_images: List[PromptImage]


@dataclass(frozen=True)
class GalleryEntry:
    image_id: str
    data: bytes
    prompt_index: Optional[int] = None
    prompt_id: Optional[str] = None
    prompt_title: Optional[str] = None
    is_profile_image: bool = False

    def to_dict(self) -> dict:
        return {
            "image_id": self.image_id,
            "prompt_index": self.prompt_index,
            "prompt_id": self.prompt_id,
            "prompt_title": self.prompt_title,
            "is_profile_image": self.is_profile_image,
        }


@dataclass(frozen=True)
class CreationEntry:
    """One image in the library-wide gallery, tagged with where it came from."""

    image_id: str
    data: bytes
    owner_id: str
    owner_name: str
    owner_kind: str
    prompt_title: Optional[str] = None
    is_profile_image: bool = False


def profile_image_id(data: bytes) -> str:
    """Stable id for the synthetic profile entry, derived from its bytes."""

    return "profile-" + hashlib.sha256(data).hexdigest()[:16]


def ordered_gallery_images(owner: GalleryOwner) -> List[GalleryEntry]:
    """Profile image (unless it duplicates a stored image), prompt images, then standalone images.

    Grid and swipe views both read this list so thumbnail ``n`` opens swipe position ``n``.
    """

    prompt_entries = [
        GalleryEntry(
            image_id=image.id,
            data=image.data,
            prompt_index=index,
            prompt_id=prompt.id,
            prompt_title=prompt.title,
        )
        for index, prompt in enumerate(owner.prompts)
        for image in prompt.images
    ]
    standalone_entries = [GalleryEntry(image_id=image.id, data=image.data) for image in owner.standalone_images]

    entries: List[GalleryEntry] = []
    profile = owner.profile_image_data
    if profile is not None:
        stored = {entry.data for entry in prompt_entries} | {entry.data for entry in standalone_entries}
        if profile not in stored:
            entries.append(GalleryEntry(image_id=profile_image_id(profile), data=profile, is_profile_image=True))
    entries.extend(prompt_entries)
    entries.extend(standalone_entries)
    return entries


def gallery_position(owner: GalleryOwner, image_id: str) -> Optional[int]:
    for index, entry in enumerate(ordered_gallery_images(owner)):
        if entry.image_id == image_id:
            return index
    return None


def _owner_creations(owner: GalleryOwner, owner_kind: str, seen: Set[bytes]) -> Iterable[CreationEntry]:
    def entry(image_id: str, data: bytes, title: Optional[str] = None, profile: bool = False) -> CreationEntry:
        return CreationEntry(
            image_id=image_id,
            data=data,
            owner_id=owner.id,
            owner_name=owner.name,
            owner_kind=owner_kind,
            prompt_title=title,
            is_profile_image=profile,
        )

    candidates = [entry(image.id, image.data, prompt.title) for prompt in owner.prompts for image in prompt.images]
    candidates.extend(entry(image.id, image.data) for image in owner.standalone_images)
    if owner.profile_image_data is not None:
        candidates.append(entry(profile_image_id(owner.profile_image_data), owner.profile_image_data, profile=True))

    for candidate in candidates:
        if candidate.data in seen:
            continue
        seen.add(candidate.data)
        yield candidate


def library_creations(
    characters: Iterable[GalleryOwner],
    scenes: Iterable[GalleryOwner],
) -> List[CreationEntry]:
    """Every image in the library once: characters before scenes, first occurrence wins."""

    seen: Set[bytes] = set()
    creations: List[CreationEntry] = []
    for character in characters:
        creations.extend(_owner_creations(character, "character", seen))
    for scene in scenes:
        creations.extend(_owner_creations(scene, "scene", seen))
    return creations
