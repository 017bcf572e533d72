"""
Chancery - character and scene prompt library.

This package contains:
- prompt_builder: section model, default resolution, prompt composers, presets and galleries.
- character_studio: character and scene entities plus the id-keyed registry.
- path_utils / config_service: shared path resolution and settings loading.
"""
