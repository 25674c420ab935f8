"""Chunking, rewriting, manifest and restore building blocks for deduplicating backups."""

__version__ = "0.1.0"