"""DOCX container generation."""

from .writer import ContainerGenerator, ContainerSummary, estimate_word_count, write_docx

__all__ = ["ContainerGenerator", "ContainerSummary", "estimate_word_count", "write_docx"]
