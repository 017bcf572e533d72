import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chancery.prompt_builder.models import (
    PromptImage,
    PromptPreset,
    SavedPrompt,
    SceneCharacterSettings,
    ScenePrompt,
    clean_defaults,
    defaults_from_dict,
    defaults_to_dict,
)
from chancery.prompt_builder.sections import DefaultKey, SectionKind


def test_content_accessors_follow_section_kind():
    prompt = SavedPrompt(title="Portrait")
    prompt.set_content(SectionKind.STYLE, "oil painting")
    assert prompt.style_modifiers == "oil painting"
    assert prompt.content(SectionKind.STYLE) == "oil painting"


def test_composed_prompt_joins_present_sections():
    prompt = SavedPrompt(physical_description="tall", outfit="  ", pose="sitting", negative_prompt="blurry")
    assert prompt.composed_prompt == "tall, sitting | blurry"


def test_composed_prompt_with_only_negative():
    assert SavedPrompt(negative_prompt="blurry").composed_prompt == "| blurry"


def test_auto_summary_uses_first_two_parts():
    prompt = SavedPrompt(outfit="red coat", lighting="dusk", style_modifiers="ink")
    assert prompt.auto_summary == "red coat, dusk"
    assert SavedPrompt().auto_summary == "Untitled Prompt"


def test_auto_summary_truncates_long_text():
    prompt = SavedPrompt(physical_description="x" * 120)
    summary = prompt.auto_summary
    assert len(summary) <= 80
    assert summary.endswith("...")


def test_has_content_counts_negative_only_prompts():
    assert SavedPrompt(negative_prompt="text").has_content
    assert not SavedPrompt(physical_description="   ").has_content


def test_saved_prompt_round_trip_keeps_images_and_markers():
    prompt = SavedPrompt(
        title="Hero",
        physical_description="tall",
        negative_prompt="blurry",
        additional_info="holding a lantern",
        images=[PromptImage(data=b"\x89PNG-one")],
    )
    prompt.set_preset_name(SectionKind.NEGATIVE, "Clean Output")

    restored = SavedPrompt.from_dict(prompt.to_dict())

    assert restored == prompt
    assert restored.images[0].data == b"\x89PNG-one"
    assert restored.preset_name(SectionKind.NEGATIVE) == "Clean Output"


def test_saved_prompt_rejects_non_string_sections():
    with pytest.raises(ValueError, match="outfit"):
        SavedPrompt.from_dict({"outfit": 5})


def test_image_payload_must_be_base64():
    with pytest.raises(ValueError, match="base64"):
        PromptImage.from_dict({"id": "a", "data": "not base64!!"})


def test_preset_requires_name_and_text():
    with pytest.raises(ValueError, match="name"):
        PromptPreset.from_dict({"kind": "outfit", "name": " ", "text": "coat"})


def test_scene_character_settings_reject_scene_wide_sections():
    settings = SceneCharacterSettings()
    assert settings.content(SectionKind.LIGHTING) is None
    with pytest.raises(ValueError):
        settings.set_content(SectionKind.LIGHTING, "dusk")


def test_scene_prompt_round_trip():
    prompt = ScenePrompt(
        title="Duel",
        environment="ruins",
        negative_prompt="text",
        character_settings={"luna": SceneCharacterSettings(outfit="armor", source_prompt_id="p1")},
    )
    prompt.preset_names[SectionKind.ENVIRONMENT] = "Ruins"

    restored = ScenePrompt.from_dict(prompt.to_dict())

    assert restored == prompt
    assert restored.settings_for("luna").source_prompt_id == "p1"


def test_scene_prompt_has_content():
    assert not ScenePrompt().has_content
    assert ScenePrompt(character_settings={"a": SceneCharacterSettings()}).has_content


def test_defaults_maps_drop_blank_values():
    cleaned = clean_defaults({"lighting": " dusk ", "outfit": "   ", DefaultKey.POSE: None})
    assert cleaned == {DefaultKey.LIGHTING: "dusk"}
    assert defaults_from_dict(defaults_to_dict(cleaned)) == cleaned


def test_defaults_reject_unknown_keys():
    with pytest.raises(ValueError):
        defaults_from_dict({"camera": "35mm"})
