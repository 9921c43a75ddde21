"""Test suite for culture-connect."""
