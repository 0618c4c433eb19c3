"""Validation and text utilities."""
