"""Instructor roster Excel importer (off-days and course roster)."""

__version__ = "0.1.0"
