"""CLI entrypoint for Prompt Builder.

- Purpose: compose character and scene prompts from the saved library, manage presets and
  global defaults, and print gallery order.
- Assumptions: the library lives under the configured data directory (or ``--data-dir``).
- Side effects: ``presets add/remove`` and ``defaults set`` rewrite the library files.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable

from chancery.config_service import ConfigError, load_config, save_config
from chancery.path_utils import ensure_file_path, get_log_path

from .sections import DefaultKey, parse_default_key, parse_section_kind
from .services import LibraryError, LibraryStore, PromptCompilerService

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compose prompts from the Chancery character library")
    parser.add_argument("--data-dir", type=Path, help="Library directory (overrides the configured data_dir)")
    parser.add_argument("--config", help="Path to the JSON/YAML settings file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    compose = subparsers.add_parser("compose", help="Print the sectioned prompt for one character")
    compose.add_argument("--character", required=True, help="Character id")
    compose.add_argument("--prompt", required=True, help="Prompt id")
    compose.add_argument("--generator", action="store_true", help="Also print the generator URL for this character")

    scene = subparsers.add_parser("scene", help="Print a scene prompt")
    scene.add_argument("--scene", required=True, help="Scene id")
    scene.add_argument("--prompt", required=True, help="Scene prompt id")
    scene.add_argument("--labeled", action="store_true", help="Print the labeled preview instead of the flat prompt")
    scene.add_argument("--generator", action="store_true", help="Also print the generator URL for this scene")

    presets = subparsers.add_parser("presets", help="List or edit presets")
    preset_commands = presets.add_subparsers(dest="preset_command", required=True)
    preset_list = preset_commands.add_parser("list", help="List presets")
    preset_list.add_argument("--kind", help="Only show presets of this section kind")
    preset_add = preset_commands.add_parser("add", help="Add or update a preset")
    preset_add.add_argument("kind")
    preset_add.add_argument("name")
    preset_add.add_argument("text")
    preset_remove = preset_commands.add_parser("remove", help="Remove a preset by id")
    preset_remove.add_argument("preset_id")

    defaults = subparsers.add_parser("defaults", help="Show or edit global defaults")
    default_commands = defaults.add_subparsers(dest="defaults_command", required=True)
    default_commands.add_parser("show", help="Print global defaults as JSON")
    default_set = default_commands.add_parser("set", help="Set a global default; omit VALUE to clear")
    default_set.add_argument("key")
    default_set.add_argument("value", nargs="?")

    gallery = subparsers.add_parser("gallery", help="Print gallery order as JSON")
    owner = gallery.add_mutually_exclusive_group(required=True)
    owner.add_argument("--character", help="Character id")
    owner.add_argument("--scene", help="Scene id")
    return parser


def _open_store(args: argparse.Namespace) -> LibraryStore:
    config = load_config(args.config)
    if config.migrated:
        save_config(config.data, config.path)
        logger.info("Migrated settings file %s to version %s", config.path, config.data["version"])
    if not args.verbose:
        logging.getLogger().setLevel(config.log_level)
    root = args.data_dir or config.data_dir
    logger.debug("Using library at %s", root)
    return LibraryStore(root, seed_samples=config.seed_samples, default_generator=config.default_generator).load()


def _run_presets(args: argparse.Namespace, store: LibraryStore) -> None:
    if args.preset_command == "list":
        presets = store.presets.by_kind(parse_section_kind(args.kind)) if args.kind else store.presets.presets
        print(json.dumps([preset.to_dict() for preset in presets], indent=2))
    elif args.preset_command == "add":
        preset = store.upsert_preset(parse_section_kind(args.kind), args.name, args.text)
        if preset is None:
            raise ValueError("Preset name and text must not be blank")
        store.save()
        print(json.dumps(preset.to_dict(), indent=2))
    elif args.preset_command == "remove":
        if not store.delete_preset(args.preset_id):
            raise LookupError(f"No preset with id {args.preset_id}")
        store.save()


def _run_defaults(args: argparse.Namespace, store: LibraryStore) -> None:
    if args.defaults_command == "set":
        key: DefaultKey = parse_default_key(args.key)
        store.set_global_default(key, args.value)
        store.save()
    print(json.dumps(store.global_defaults.to_dict(), indent=2))


def main(argv: Iterable[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)
    file_handler = logging.FileHandler(ensure_file_path(get_log_path()), encoding="utf-8")
    file_handler.setFormatter(logging.Formatter("%(asctime)s " + LOG_FORMAT))
    root_logger = logging.getLogger()
    root_logger.addHandler(file_handler)

    try:
        store = _open_store(args)
        service = PromptCompilerService(store)
        if args.command == "compose":
            print(service.compile_character_prompt(args.character, args.prompt))
            if args.generator:
                print(f"\nGenerator: {service.generator_url_for(args.character)}")
        elif args.command == "scene":
            print(service.compile_scene_prompt(args.scene, args.prompt, labeled=args.labeled))
            if args.generator:
                print(f"\nGenerator: {service.generator_url_for(args.scene)}")
        elif args.command == "presets":
            _run_presets(args, store)
        elif args.command == "defaults":
            _run_defaults(args, store)
        elif args.command == "gallery":
            owner_id = store.character(args.character).id if args.character else store.scene(args.scene).id
            print(json.dumps(service.gallery_payload(owner_id), indent=2))
    except (LibraryError, ConfigError, ValueError, LookupError) as exc:
        logger.error("%s", exc)
        raise SystemExit(str(exc)) from exc
    finally:
        root_logger.removeHandler(file_handler)
        file_handler.close()


if __name__ == "__main__":
    main()
