"""Huddle: chat backend with direct messaging and real-time presence."""

__version__ = "0.1.0"
