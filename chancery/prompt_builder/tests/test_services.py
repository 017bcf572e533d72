import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chancery.character_studio.models import CharacterProfile, CharacterScene
from chancery.prompt_builder.models import PromptImage, SavedPrompt, SceneCharacterSettings, ScenePrompt
from chancery.prompt_builder.presets import SAMPLE_PRESETS
from chancery.prompt_builder.sections import DefaultKey, SectionKind
from chancery.prompt_builder.services import LibraryError, LibraryStore, PromptCompilerService


@pytest.fixture
def store(tmp_path):
    return LibraryStore(tmp_path / "library").load()


def test_fresh_library_is_seeded_with_samples(store):
    assert len(store.presets) == len(SAMPLE_PRESETS)
    assert store.global_defaults[DefaultKey.STYLE] == "high quality, detailed"
    assert store.characters == []


def test_fresh_library_without_samples(tmp_path):
    store = LibraryStore(tmp_path, seed_samples=False).load()
    assert len(store.presets) == 0
    assert len(store.global_defaults) == 0


def test_save_and_reload_round_trip(store):
    rin = store.add_character(
        CharacterProfile(
            name="Rin",
            character_defaults={DefaultKey.OUTFIT: "cloak"},
            prompts=[SavedPrompt(title="Portrait", physical_description="tall", images=[PromptImage(data=b"\x00\x01")])],
            profile_image_data=b"\xff\xd8",
        )
    )
    scene = store.add_scene(
        CharacterScene(
            name="Duel",
            character_ids=[rin.id],
            prompts=[ScenePrompt(environment="ruins", character_settings={rin.id: SceneCharacterSettings(pose="kneel")})],
        )
    )
    store.upsert_preset(SectionKind.OUTFIT, "Knight", "plate armor")
    store.set_global_default(DefaultKey.LIGHTING, "dusk")
    store.set_default_generator("  other-generator ")
    store.save()

    reloaded = LibraryStore(store.root).load()

    loaded_rin = reloaded.character(rin.id)
    assert loaded_rin.to_dict() == rin.to_dict()
    assert reloaded.scene(scene.id).to_dict() == scene.to_dict()
    assert reloaded.presets.find_by_name(SectionKind.OUTFIT, "knight").text == "plate armor"
    assert reloaded.global_defaults[DefaultKey.LIGHTING] == "dusk"
    assert reloaded.default_generator == "other-generator"


def test_set_default_generator_ignores_blank_and_unchanged(store):
    assert store.set_default_generator("   ") is False
    assert store.set_default_generator(store.default_generator) is False
    assert store.set_default_generator("new-one") is True


def test_corrupt_file_raises_library_error(tmp_path):
    (tmp_path / "characters.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(LibraryError, match="characters.json") as excinfo:
        LibraryStore(tmp_path).load()
    assert excinfo.value.path == tmp_path / "characters.json"


def test_invalid_record_raises_library_error(tmp_path):
    (tmp_path / "scenes.json").write_text(json.dumps([{"id": "s", "name": "Duel"}]), encoding="utf-8")
    with pytest.raises(LibraryError, match="character_ids"):
        LibraryStore(tmp_path).load()


def test_deleting_character_keeps_dangling_scene_ids(store):
    luna = store.add_character(CharacterProfile(name="Luna"))
    aria = store.add_character(CharacterProfile(name="Aria"))
    prompt = ScenePrompt(environment="ruins")
    scene = store.add_scene(CharacterScene(name="Duel", character_ids=[luna.id, aria.id], prompts=[prompt]))

    assert store.delete_character(luna.id) is True
    assert store.delete_character(luna.id) is False
    assert scene.character_ids == [luna.id, aria.id]

    service = PromptCompilerService(store)
    assert service.compile_scene_prompt(scene.id, prompt.id) == "Aria, ruins"


def test_add_scene_prompt_is_seeded_and_first(store):
    scene = store.add_scene(
        CharacterScene(name="Duel", prompts=[ScenePrompt(title="old")], scene_defaults={DefaultKey.ENVIRONMENT: "A"})
    )
    store.set_global_default(DefaultKey.ENVIRONMENT, "B")
    prompt = store.add_scene_prompt(scene.id)
    assert scene.prompts[0] is prompt
    assert prompt.environment == "A"
    assert prompt.lighting == "soft natural lighting"


def test_compile_character_prompt_uses_global_defaults(store):
    rin = store.add_character(CharacterProfile(name="Rin", prompts=[SavedPrompt(physical_description="tall")]))
    output = PromptCompilerService(store).compile_character_prompt(rin.id, rin.prompts[0].id)
    assert output.startswith("Name:\nRin\n\nPhysical Description:\ntall")
    assert "Lighting:\nsoft natural lighting" in output
    assert output.count("Negative prompt:") == 1


def test_compile_unknown_ids_raise_lookup_error(store):
    service = PromptCompilerService(store)
    with pytest.raises(LookupError, match="Character not found"):
        service.compile_character_prompt("nope", "nope")
    rin = store.add_character(CharacterProfile(name="Rin"))
    with pytest.raises(LookupError, match="Prompt"):
        service.compile_character_prompt(rin.id, "nope")


def test_labeled_scene_compile(store):
    rin = store.add_character(CharacterProfile(name="Rin"))
    prompt = ScenePrompt()
    scene = store.add_scene(CharacterScene(name="Duel", character_ids=[rin.id], prompts=[prompt]))
    assert PromptCompilerService(store).compile_scene_prompt(scene.id, prompt.id, labeled=True) == "[Rin]\n(No settings)"


def test_gallery_payload(store):
    rin = store.add_character(CharacterProfile(name="Rin", standalone_images=[PromptImage(data=b"x", id="x")]))
    payload = PromptCompilerService(store).gallery_payload(rin.id)
    assert payload == [
        {"image_id": "x", "prompt_index": None, "prompt_id": None, "prompt_title": None, "is_profile_image": False}
    ]


@pytest.mark.parametrize(
    "filename, payload",
    [
        ("presets.json", ["oops"]),
        ("characters.json", [{"id": "c", "name": "Rin", "prompts": ["oops"]}]),
        ("characters.json", [{"id": "c", "name": "Rin", "prompts": [{"preset_names": "x"}]}]),
        ("characters.json", [{"id": "c", "name": "Rin", "links": ["oops"]}]),
        ("scenes.json", [{"id": "s", "name": "Duel", "character_ids": [], "prompts": [{"character_settings": {"c": 1}}]}]),
        ("settings.json", {"global_defaults": ["oops"]}),
    ],
)
def test_wrongly_shaped_nested_records_raise_library_error(tmp_path, filename, payload):
    (tmp_path / filename).write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(LibraryError, match=filename):
        LibraryStore(tmp_path).load()


def test_generator_resolution_for_characters_and_scenes(store):
    store.set_default_generator("library-gen")
    own = store.add_character(CharacterProfile(name="Rin", default_generator=" custom-gen "))
    blank = store.add_character(CharacterProfile(name="Luna", default_generator="   "))
    scene = store.add_scene(CharacterScene(name="Duel", default_generator="scene-gen"))
    plain_scene = store.add_scene(CharacterScene(name="Walk"))

    service = PromptCompilerService(store)
    assert service.generator_for(own.id) == "custom-gen"
    assert service.generator_for(blank.id) == "library-gen"
    assert service.generator_for(scene.id) == "scene-gen"
    assert service.generator_for(plain_scene.id) == "library-gen"
    assert service.generator_url_for(own.id) == "https://perchance.org/custom-gen"


def test_generator_for_unknown_owner_raises_lookup_error(store):
    with pytest.raises(LookupError, match="No character or scene"):
        PromptCompilerService(store).generator_for("nope")
