"""Printable game kit export"""

from .markdown import MarkdownExporter

__all__ = ["MarkdownExporter"]
