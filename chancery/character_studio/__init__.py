"""Character Studio: character and scene entities plus the shared id registry."""
