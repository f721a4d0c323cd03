"""Pydantic models for the wire formats of the pool."""
