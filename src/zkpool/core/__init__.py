"""Core pool protocol: notes, accumulator, validator and entry points."""
