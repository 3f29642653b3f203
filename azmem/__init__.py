"""Layered local-first memory: transcripts, blocks, facts and links in SQLite."""

__version__ = "0.1.0"