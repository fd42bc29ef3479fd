"""Streaming chat service: persisted multi-turn conversations with a language model."""

__version__ = "0.1.0"
