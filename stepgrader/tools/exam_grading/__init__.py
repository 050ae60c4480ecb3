"""Exam grading tool: batch grading of scanned submissions with a multimodal LLM."""

from .grader import ExamGrader
from .registry import SubmissionRegistry
from .response_parser import parse_response
from .encoder import encode_document
from .models import Document, EncodedPart, GradingResult, Submission, SubmissionStatus
from .batch_grader import BatchGrader, BatchResult

__all__ = [
    'ExamGrader',
    'SubmissionRegistry',
    'parse_response',
    'encode_document',
    'Document',
    'EncodedPart',
    'GradingResult',
    'Submission',
    'SubmissionStatus',
    'BatchGrader',
    'BatchResult'
]
