"""Command line interface (entry point: roster_import.cli.__main__:main)."""
