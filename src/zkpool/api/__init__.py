"""REST API for the shielded pool."""
