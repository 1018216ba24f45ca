"""Tools for a headless AI coding agent, with wake-word and text-to-speech helpers."""

__version__ = "0.1.0"