"""Content pinning."""
