"""Storyloom: collaborative book writing API with AI-assisted drafting."""

__version__ = "1.0.0"
