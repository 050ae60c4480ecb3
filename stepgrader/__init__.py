"""Batch grading of scanned exam submissions with multimodal language models."""

__version__ = "0.1.0"
