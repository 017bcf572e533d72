"""Preset and global-default registries.

- Purpose: keep the named reusable snippets per section and the library-wide defaults that
  back the precedence resolver.
- Assumptions: presets are matched by kind plus case-insensitive name; defaults never store
  blank text.
- Side effects: mutations are logged; persistence is handled by ``services.LibraryStore``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Union

from .models import (
    DefaultsMap,
    PresetNames,
    PromptPreset,
    SavedPrompt,
    SceneCharacterSettings,
    ScenePrompt,
    clean_defaults,
    defaults_to_dict,
    set_default,
)
from .sections import CHARACTER_SECTIONS, SCENE_WIDE_SECTIONS, DefaultKey, SectionKind, non_empty

logger = logging.getLogger(__name__)

DEFAULT_GENERATOR = "ai-vibrant-image-generator"


SAMPLE_PRESETS = (
    (SectionKind.OUTFIT, "Casual Outfit", "hoodie, jeans, sneakers, relaxed casual style"),
    (SectionKind.OUTFIT, "Fantasy Armor", "ornate plate armor, engraved runes, flowing cape"),
    (SectionKind.POSE, "Hero Pose", "standing tall, chest out, confident stance, looking at viewer"),
    (SectionKind.POSE, "Relaxed Sitting", "sitting cross-legged, relaxed shoulders, soft expression"),
    (SectionKind.ENVIRONMENT, "Cozy Room", "warm cozy bedroom, soft blankets, fairy lights, bookshelves"),
    (SectionKind.ENVIRONMENT, "Sci-Fi Lab", "sleek futuristic lab, holographic screens, glowing consoles"),
    (
        SectionKind.LIGHTING,
        "Golden Hour",
        "golden hour lighting, warm orange and amber tones, sun low on horizon, long soft shadows, lens flare, "
        "magical hour, warm color temperature, backlit subject, glowing highlights",
    ),
    (
        SectionKind.LIGHTING,
        "Studio Portrait",
        "professional studio lighting setup, three-point lighting, key light with soft fill light, rim light "
        "separation, softbox diffusion, even illumination, no harsh shadows, controlled lighting environment",
    ),
    (
        SectionKind.LIGHTING,
        "Dramatic Rim",
        "dramatic rim lighting, strong backlight creating silhouette edges, high contrast chiaroscuro, moody "
        "atmosphere, dark shadows, glowing outline, cinematic lighting, volumetric light rays",
    ),
    (
        SectionKind.LIGHTING,
        "Soft Natural",
        "soft diffused natural daylight, overcast sky lighting, gentle shadows, flattering skin tones, even ambient "
        "light, no harsh highlights, natural color balance, outdoor shade lighting",
    ),
    (
        SectionKind.LIGHTING,
        "Neon Cyberpunk",
        "neon lighting, vibrant pink and cyan color cast, electric blue and magenta glow, reflective wet surfaces, "
        "urban night atmosphere, holographic reflections, LED accent lights, futuristic city glow",
    ),
    (
        SectionKind.LIGHTING,
        "Candlelight",
        "warm candlelight illumination, flickering orange and amber glow, intimate romantic atmosphere, soft dancing "
        "shadows, low-key lighting, warm color temperature, cozy ambiance, fire glow",
    ),
    (
        SectionKind.LIGHTING,
        "Moonlight",
        "cool moonlight illumination, blue-silver ethereal tones, night atmosphere, subtle soft shadows, starlight, "
        "nocturnal ambiance, cool color temperature, mystical glow",
    ),
    (
        SectionKind.LIGHTING,
        "Window Light",
        "natural window light from side, soft directional indoor lighting, Rembrandt lighting pattern, gentle "
        "shadows on opposite side, ambient room fill, diffused daylight through curtains",
    ),
    (
        SectionKind.STYLE,
        "Photorealistic",
        "photorealistic rendering, hyperrealistic detail, lifelike appearance, natural skin texture and pores, "
        "realistic material properties, physically accurate lighting, indistinguishable from photograph, "
        "ultra-realistic",
    ),
    (
        SectionKind.STYLE,
        "Digital Painting",
        "digital painting style, painterly brushstrokes visible, rich saturated color palette, artistic "
        "interpretation, professional digital art, trending on artstation, detailed illustration, masterful technique",
    ),
    (
        SectionKind.STYLE,
        "Anime/Manga",
        "anime art style, manga aesthetic, clean crisp lineart, cel-shaded flat coloring, large expressive eyes, "
        "Japanese animation style, vibrant colors, dynamic poses, studio quality anime",
    ),
    (
        SectionKind.STYLE,
        "Oil Painting",
        "classical oil painting style, old masters technique, rich impasto textures, museum quality fine art, "
        "Renaissance influence, visible canvas texture, glazing layers, timeless masterpiece quality",
    ),
    (
        SectionKind.STYLE,
        "Watercolor",
        "traditional watercolor painting, soft bleeding edges, transparent color washes, wet-on-wet technique, "
        "delicate paper texture, artistic color bleeding, loose expressive style, luminous transparency",
    ),
    (
        SectionKind.STYLE,
        "Comic Book",
        "comic book illustration style, bold black ink outlines, halftone dot shading, dynamic action composition, "
        "graphic novel aesthetic, pop art influence, vibrant flat colors, sequential art style",
    ),
    (
        SectionKind.STYLE,
        "3D Render",
        "3D CGI render, photorealistic CGI, subsurface scattering on skin, ray traced global illumination, Octane "
        "render engine, Unreal Engine 5 quality, physically based rendering, studio lighting setup",
    ),
    (
        SectionKind.STYLE,
        "Concept Art",
        "professional concept art, entertainment design illustration, trending on artstation and deviantart, "
        "industry standard quality, detailed environment and character design, visual development art",
    ),
    (
        SectionKind.STYLE,
        "Fantasy Art",
        "epic fantasy art illustration, magical atmosphere with particle effects, detailed fantasy world building, "
        "dramatic composition, enchanted lighting, mythical aesthetic, book cover quality",
    ),
    (
        SectionKind.STYLE,
        "Vintage Photo",
        "vintage photograph aesthetic, authentic film grain texture, faded muted colors, retro color grading, "
        "nostalgic 1970s feel, aged photo quality, slight vignette, analog camera look",
    ),
    (
        SectionKind.TECHNICAL,
        "Ultra HD",
        "8k UHD resolution, ultra-detailed rendering, extremely sharp focus throughout, high definition clarity, "
        "intricate fine details visible, maximum quality output, professional grade",
    ),
    (
        SectionKind.TECHNICAL,
        "Portrait Depth",
        "shallow depth of field, wide aperture f/1.4 to f/2.8, beautiful creamy bokeh background, subject tack "
        "sharp in focus, blurred background separation, portrait lens compression, 85mm equivalent",
    ),
    (
        SectionKind.TECHNICAL,
        "Wide Angle",
        "wide angle lens perspective, 24mm focal length equivalent, expansive environmental context, slight barrel "
        "distortion, dramatic foreground to background scale, architectural photography style",
    ),
    (
        SectionKind.TECHNICAL,
        "Cinematic",
        "cinematic film composition, 35mm motion picture film look, anamorphic lens characteristics with oval "
        "bokeh, 2.39:1 aspect ratio feel, movie still quality, color graded, theatrical lighting",
    ),
    (
        SectionKind.TECHNICAL,
        "Macro Detail",
        "macro photography extreme close-up, intricate microscopic details visible, razor sharp focus plane, "
        "professional macro lens, detailed texture capture, scientific precision",
    ),
    (
        SectionKind.TECHNICAL,
        "Professional Photo",
        "professional photography quality, full-frame DSLR camera, perfect exposure and white balance, accurate "
        "color reproduction, editorial quality, magazine cover worthy, studio professional",
    ),
    (
        SectionKind.TECHNICAL,
        "Soft Aesthetic",
        "soft focus dreamy atmosphere, gentle gaussian blur, ethereal glowing quality, diffused lighting, romantic "
        "soft-focus lens effect, hazy dreamlike ambiance, pastel tones",
    ),
    (
        SectionKind.TECHNICAL,
        "High Contrast",
        "high contrast dramatic look, deep rich blacks, bright clean highlights, punchy vibrant saturated colors, "
        "bold tonal range, striking visual impact, vivid color pop",
    ),
    (
        SectionKind.NEGATIVE,
        "Standard Quality",
        "blurry, out of focus, low quality, low resolution, pixelated, jpeg artifacts, compression artifacts, noise, "
        "grainy, poorly rendered, amateur quality",
    ),
    (
        SectionKind.NEGATIVE,
        "Anatomy Fixes",
        "bad anatomy, wrong anatomy, extra limbs, missing limbs, floating limbs, disconnected limbs, deformed hands, "
        "extra fingers, fused fingers, too many fingers, missing fingers, mutated hands, malformed limbs",
    ),
    (
        SectionKind.NEGATIVE,
        "Face Fixes",
        "deformed face, ugly face, disfigured features, bad eyes, crossed eyes, asymmetrical eyes, lazy eye, "
        "asymmetrical face, distorted facial features, uncanny valley, weird expression, mutation",
    ),
    (
        SectionKind.NEGATIVE,
        "Clean Output",
        "watermark, signature, text overlay, logo, username, artist name, copyright notice, website URL, banner, "
        "title, caption, label, stamp, border",
    ),
    (
        SectionKind.NEGATIVE,
        "Composition",
        "cropped awkwardly, out of frame, cut off at edges, bad framing, poorly composed, off-center subject, "
        "cluttered background, distracting elements, unbalanced composition",
    ),
    (
        SectionKind.NEGATIVE,
        "Full Negative",
        "blurry, low quality, bad anatomy, extra limbs, deformed, disfigured, ugly, mutation, watermark, text, "
        "signature, cropped, worst quality, low resolution, jpeg artifacts, error, duplicate",
    ),
    (
        SectionKind.NEGATIVE,
        "Realistic Negative",
        "cartoon, anime, illustration, painting, drawing, sketch, artwork, cgi, 3d render, digital art, unrealistic, "
        "stylized, artistic interpretation, non-photographic",
    ),
    (
        SectionKind.NEGATIVE,
        "Anime Negative",
        "realistic, photorealistic, photograph, 3d render, western cartoon style, bad proportions, off-model, "
        "inconsistent style, wrong art style, semi-realistic",
    ),
)

# Blank entries are dropped when seeded, leaving those sections without a global default.
SAMPLE_DEFAULTS: Dict[DefaultKey, str] = {
    DefaultKey.OUTFIT: "",
    DefaultKey.POSE: "",
    DefaultKey.ENVIRONMENT: "",
    DefaultKey.LIGHTING: "soft natural lighting",
    DefaultKey.STYLE: "high quality, detailed",
    DefaultKey.TECHNICAL: "sharp focus, high resolution",
    DefaultKey.NEGATIVE: "blurry, low quality, bad anatomy, extra limbs, watermark, text",
}


class PresetRegistry:
    """Ordered collection of presets keyed by (kind, case-insensitive name)."""

    def __init__(self, presets: Optional[Iterable[PromptPreset]] = None) -> None:
        self._presets: List[PromptPreset] = list(presets or [])

    @classmethod
    def with_samples(cls) -> "PresetRegistry":
        return cls(PromptPreset(kind=kind, name=name, text=text) for kind, name, text in SAMPLE_PRESETS)

    def __len__(self) -> int:
        return len(self._presets)

    def __iter__(self) -> Iterator[PromptPreset]:
        return iter(self._presets)

    @property
    def presets(self) -> List[PromptPreset]:
        return list(self._presets)

    def by_kind(self, kind: SectionKind) -> List[PromptPreset]:
        """Presets of one section kind in insertion order."""

        return [preset for preset in self._presets if preset.kind == kind]

    def find(self, preset_id: str) -> Optional[PromptPreset]:
        return next((preset for preset in self._presets if preset.id == preset_id), None)

    def find_by_name(self, kind: SectionKind, name: str) -> Optional[PromptPreset]:
        wanted = name.strip().casefold()
        return next(
            (preset for preset in self._presets if preset.kind == kind and preset.name.casefold() == wanted),
            None,
        )

    def upsert(self, kind: SectionKind, name: str, text: str) -> Optional[PromptPreset]:
        """Add a preset, or replace the text of the one with the same kind and name.

        Name and text are trimmed; a blank name or text leaves the registry unchanged and
        returns ``None``.
        """

        trimmed_name = non_empty(name)
        trimmed_text = non_empty(text)
        if trimmed_name is None or trimmed_text is None:
            logger.debug("Ignoring preset with blank name or text for %s", kind.value)
            return None

        existing = self.find_by_name(kind, trimmed_name)
        if existing is not None:
            existing.text = trimmed_text
            logger.info("Updated %s preset %r", kind.value, existing.name)
            return existing

        preset = PromptPreset(kind=kind, name=trimmed_name, text=trimmed_text)
        self._presets.append(preset)
        logger.info("Added %s preset %r", kind.value, trimmed_name)
        return preset

    def delete(self, preset_id: str) -> bool:
        preset = self.find(preset_id)
        if preset is None:
            logger.warning("Attempted to remove non-existent preset: %s", preset_id)
            return False
        self._presets.remove(preset)
        logger.info("Removed %s preset %r", preset.kind.value, preset.name)
        return True

    def matching_preset(self, kind: SectionKind, text: Optional[str]) -> Optional[str]:
        """Id of the first preset of ``kind`` whose trimmed text equals ``text``."""

        wanted = non_empty(text)
        if wanted is None:
            return None
        for preset in self.by_kind(kind):
            if preset.text.strip() == wanted:
                return preset.id
        return None

    def to_list(self) -> List[Dict[str, object]]:
        return [preset.to_dict() for preset in self._presets]

    @classmethod
    def from_list(cls, payload: Sequence[Mapping]) -> "PresetRegistry":
        if not isinstance(payload, list):
            raise ValueError("presets payload must be a list")
        return cls(PromptPreset.from_dict(item) for item in payload)


class GlobalDefaults(Mapping):
    """Library-wide section defaults; the last fallback of the precedence resolver."""

    def __init__(self, values: Optional[Mapping[object, Optional[str]]] = None) -> None:
        self._values: DefaultsMap = clean_defaults(values)

    @classmethod
    def with_samples(cls) -> "GlobalDefaults":
        return cls(SAMPLE_DEFAULTS)

    def __getitem__(self, key: DefaultKey) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[DefaultKey]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def set(self, key: DefaultKey, value: Optional[str]) -> None:
        """Store the trimmed value, or clear the key when ``value`` is blank."""

        set_default(self._values, key, value)
        if key in self._values:
            logger.debug("Global default for %s set", key.value)
        else:
            logger.debug("Global default for %s cleared", key.value)

    def as_dict(self) -> DefaultsMap:
        return dict(self._values)

    def to_dict(self) -> Dict[str, str]:
        return defaults_to_dict(self._values)


MarkerTarget = Union[SavedPrompt, ScenePrompt, SceneCharacterSettings]


def _marker_kinds(target: MarkerTarget) -> Sequence[SectionKind]:
    if isinstance(target, ScenePrompt):
        return SCENE_WIDE_SECTIONS
    if isinstance(target, SceneCharacterSettings):
        return CHARACTER_SECTIONS
    return tuple(SectionKind)


def refresh_preset_markers(target: MarkerTarget, registry: PresetRegistry) -> PresetNames:
    """Recompute which preset each section's text came from.

    A marker is kept while its named preset still holds the section's text; otherwise it is
    replaced by the first matching preset, or dropped when nothing matches.
    """

    for kind in _marker_kinds(target):
        text = target.content(kind)
        current = target.preset_names.get(kind)
        if current is not None:
            preset = registry.find_by_name(kind, current)
            if preset is not None and non_empty(text) == preset.text.strip():
                continue
        match_id = registry.matching_preset(kind, text)
        match = registry.find(match_id) if match_id else None
        if match is None:
            target.preset_names.pop(kind, None)
        else:
            target.preset_names[kind] = match.name
    return target.preset_names
