"""Automated narrators for simulations and tests."""

from .stub_ai import StubNarrator

__all__ = ["StubNarrator"]
