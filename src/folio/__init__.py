"""Folio: a block-tree page editor engine with local sqlite storage."""

__version__ = "0.1.0"
