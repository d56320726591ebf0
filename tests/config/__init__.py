"""Test configuration helpers (markers and collection hooks)."""
