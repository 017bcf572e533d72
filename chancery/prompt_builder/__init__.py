"""Prompt Builder: sections, default resolution, composers, presets and galleries."""
