"""Core verification engine and data models."""
