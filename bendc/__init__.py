"""Parser, lowering passes, interaction-net conversion, options and HVM runner for an indentation-based functional language."""

__version__ = "0.1.0"