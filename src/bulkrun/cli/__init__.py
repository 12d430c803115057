"""
CLI layer for bulkrun.

Provides a Typer application whose commands delegate to the operations
layer (``bulkrun.ops``). This package handles only terminal transport:
argument parsing, prompts, progress bars and coloured output.

Entry point::

    bulkrun --help
"""

from bulkrun.cli.app import app

__all__ = ["app"]
