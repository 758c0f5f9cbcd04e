"""Werewolf narrator core - phase state machine, random events, checkpoints and replay."""

__version__ = "0.1.0"
