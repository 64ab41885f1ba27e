"""Corpus loading stages."""

from . import corpus

__all__ = ["corpus"]
