"""Service exports."""

from . import adapters, export, extraction, figure_import, interpreter, prompts, registry

__all__ = ["adapters", "export", "extraction", "figure_import", "interpreter", "prompts", "registry"]
