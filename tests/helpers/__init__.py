"""Shared builders for the unit tests."""
