import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chancery.character_studio.models import CharacterProfile, CharacterScene
from chancery.prompt_builder import compiler
from chancery.prompt_builder.models import PromptImage, SavedPrompt
from chancery.prompt_builder.sections import DefaultKey


@pytest.mark.parametrize(
    "prompt_value, scoped, global_value, expected",
    [
        ("own", "scoped", "global", "own"),
        (None, "scoped", "global", "scoped"),
        ("   ", "scoped", "global", "scoped"),
        (None, "\n\t", "global", "global"),
        ("", "", "", None),
        (None, None, None, None),
    ],
)
def test_resolve_value_precedence(prompt_value, scoped, global_value, expected):
    assert compiler.resolve_value(prompt_value, scoped, global_value) == expected


def test_effective_default_prefers_scoped_over_global():
    scoped = {DefaultKey.LIGHTING: "candles"}
    global_defaults = {DefaultKey.LIGHTING: "sun", DefaultKey.STYLE: "ink"}
    assert compiler.effective_default(DefaultKey.LIGHTING, scoped, global_defaults) == "candles"
    assert compiler.effective_default(DefaultKey.STYLE, scoped, global_defaults) == "ink"
    assert compiler.effective_default(DefaultKey.POSE, scoped, global_defaults) is None


def test_single_character_prompt_minimal_example():
    character = CharacterProfile(name="Rin")
    prompt = SavedPrompt(physical_description="tall")
    assert compiler.compose_single_character_prompt(character, prompt, {}) == "Name:\nRin\n\nPhysical Description:\ntall"


def test_single_character_prompt_section_order():
    character = CharacterProfile(name="Rin")
    prompt = SavedPrompt(
        physical_description="tall",
        outfit="coat",
        pose="kneeling",
        environment="forest",
        lighting="dusk",
        style_modifiers="ink",
        technical_modifiers="8k",
        negative_prompt="blurry",
        additional_info="holding a lantern",
    )
    output = compiler.compose_single_character_prompt(character, prompt, {})
    markers = [
        "Name:",
        "Physical Description:",
        "Outfit:",
        "Pose:",
        "Environment:",
        "Lighting:",
        "Style Modifiers:",
        "Technical Modifiers:",
        "Negative prompt: blurry",
        "Additional Information:",
    ]
    positions = [output.index(marker) for marker in markers]
    assert positions == sorted(positions)


def test_single_character_prompt_uses_character_then_global_defaults():
    character = CharacterProfile(name="Rin", character_defaults={DefaultKey.OUTFIT: "cloak"})
    prompt = SavedPrompt(outfit="  ")
    global_defaults = {DefaultKey.OUTFIT: "tunic", DefaultKey.LIGHTING: "soft light"}

    output = compiler.compose_single_character_prompt(character, prompt, global_defaults)

    assert "Outfit:\ncloak" in output
    assert "tunic" not in output
    assert "Lighting:\nsoft light" in output


def test_blank_character_default_falls_through_to_global():
    character = CharacterProfile(name="Rin", character_defaults={})
    character.character_defaults[DefaultKey.STYLE] = "   "
    output = compiler.compose_single_character_prompt(character, SavedPrompt(), {DefaultKey.STYLE: "watercolor"})
    assert output.endswith("Style Modifiers:\nwatercolor")


def test_negative_prefix_is_not_doubled():
    character = CharacterProfile(name="Rin")
    prompt = SavedPrompt(negative_prompt="Negative prompt: blurry")
    output = compiler.compose_single_character_prompt(character, prompt, {})
    assert output.count("Negative prompt:") == 1
    assert output.endswith("Negative prompt: blurry")


@pytest.mark.parametrize("negative", ["Negative prompt - blurry", "negative prompt: blurry", "NEGATIVE PROMPT blurry"])
def test_any_negative_prompt_lead_is_kept_as_is(negative):
    output = compiler.compose_single_character_prompt(CharacterProfile(name=""), SavedPrompt(negative_prompt=negative), {})
    assert output == negative


def test_negative_default_gets_prefix():
    output = compiler.compose_single_character_prompt(
        CharacterProfile(name=""), SavedPrompt(), {DefaultKey.NEGATIVE: "text"}
    )
    assert output == "Negative prompt: text"


def test_additional_information_ignores_defaults():
    character = CharacterProfile(name="Rin")
    output = compiler.compose_single_character_prompt(character, SavedPrompt(additional_info=" extra "), {})
    assert output == "Name:\nRin\n\nAdditional Information:\nextra"


def test_empty_inputs_compose_to_empty_string():
    assert compiler.compose_single_character_prompt(CharacterProfile(name="  "), SavedPrompt(), None) == ""


def test_composition_is_idempotent_and_pure():
    character = CharacterProfile(name="Rin", character_defaults={DefaultKey.POSE: "standing"})
    prompt = SavedPrompt(physical_description="tall", negative_prompt="blurry")
    before = prompt.to_dict()
    first = compiler.compose_single_character_prompt(character, prompt, {DefaultKey.STYLE: "ink"})
    second = compiler.compose_single_character_prompt(character, prompt, {DefaultKey.STYLE: "ink"})
    assert first == second
    assert prompt.to_dict() == before


def test_duplicate_prompt_gets_new_id_and_no_images():
    prompt = SavedPrompt(title="Hero", outfit="coat", images=[PromptImage(data=b"img")])
    copy = compiler.duplicate_prompt(prompt, "")
    assert copy.id != prompt.id
    assert copy.title == "Hero (Copy)"
    assert copy.outfit == "coat"
    assert copy.images == []
    assert prompt.images


def test_effective_generator_prefers_owner_then_library_then_fallback():
    assert compiler.effective_generator(CharacterProfile(name="Rin", default_generator="mine"), "lib") == "mine"
    assert compiler.effective_generator(CharacterProfile(name="Rin", default_generator="  "), " lib ") == "lib"
    assert compiler.effective_generator(CharacterScene(name="Duel", default_generator="scene-gen"), "lib") == "scene-gen"
    assert compiler.effective_generator(CharacterScene(name="Duel", default_generator=""), "lib") == "lib"
    assert compiler.effective_generator(CharacterProfile(name="Rin"), "   ") == "ai-artgen"
    assert compiler.effective_generator(CharacterProfile(name="Rin"), None) == compiler.FALLBACK_GENERATOR


def test_generator_url():
    assert compiler.generator_url(" ai-artgen ") == "https://perchance.org/ai-artgen"
