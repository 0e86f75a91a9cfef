"""Persona bot: intent-and-context routing pipeline for a personal chat persona."""

__version__ = "1.0.0"
