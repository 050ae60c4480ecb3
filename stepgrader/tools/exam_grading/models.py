"""Pydantic models for exam documents, submissions and grading results."""

import base64
import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_ai import BinaryContent

from stepgrader.errors import EncodingError, EmptyBatchError, InvalidTransitionError

PDF_MIME_TYPE = "application/pdf"


class Document(BaseModel):
    """One uploaded file: an exam/answer-key page or a page of student work."""
    display_name: str = Field(description="Name shown in listings, usually the file name")
    mime_type: str = Field(description="Declared media type, e.g. image/png or application/pdf")
    data: Optional[bytes] = Field(default=None, repr=False, description="In-memory file contents")
    path: Optional[Path] = Field(default=None, description="File to read the contents from")

    @model_validator(mode="after")
    def _check_source(self) -> "Document":
        if (self.data is None) == (self.path is None):
            raise ValueError("Document needs exactly one of data or path")
        return self

    @property
    def kind(self) -> Literal["pdf", "image"]:
        return "pdf" if "pdf" in self.mime_type else "image"

    @classmethod
    def from_path(cls, path: Path, display_name: Optional[str] = None) -> "Document":
        """
        Build a document backed by a file on disk.

        Args:
            path: Image or PDF file
            display_name: Name to show (defaults to the file name)

        Raises:
            EncodingError: If the file type is neither an image nor a PDF
        """
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        if mime_type is None or not (mime_type == PDF_MIME_TYPE or mime_type.startswith("image/")):
            raise EncodingError(f"Unsupported file type for {path.name}: {mime_type or 'unknown'}")
        return cls(display_name=display_name or path.name, mime_type=mime_type, path=path)

    def read_bytes(self) -> bytes:
        """
        Return the raw file contents.

        Raises:
            EncodingError: If the backing file cannot be read
        """
        if self.data is not None:
            return self.data
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise EncodingError(f"Could not read {self.display_name}: {e}") from e


class EncodedPart(BaseModel):
    """A document ready to embed in a model request."""
    media_type: str
    data: str = Field(repr=False, description="Base64-encoded file contents")

    def to_binary_content(self):
        """Convert to the pydantic-ai request part."""
        return BinaryContent(data=base64.b64decode(self.data), media_type=self.media_type)


class StudentInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    full_name: Optional[str] = None
    class_name: Optional[str] = Field(default=None, alias="class")
    student_id: Optional[str] = None


class QuestionScore(BaseModel):
    """Score for one question (or sub-question) of the exam."""
    model_config = ConfigDict(extra="allow")

    question_id: str
    max_points: Optional[float] = None
    earned_points: Optional[float] = None
    verdict: Optional[Literal["correct", "partial", "incorrect", "missing"]] = None
    feedback: str = ""


class Scores(BaseModel):
    model_config = ConfigDict(extra="allow")

    total: Optional[float] = None
    by_question: List[QuestionScore] = Field(default_factory=list)


class ScoreBreakdown(BaseModel):
    """Typed view of the JSON block returned by the model."""
    model_config = ConfigDict(extra="allow")

    student: StudentInfo = Field(default_factory=StudentInfo)
    scores: Scores = Field(default_factory=Scores)


class GradingResult(BaseModel):
    """Parsed model response for one submission."""
    report_text: str = Field(description="Human-readable Markdown report")
    structured_data: Dict[str, Any] = Field(
        default_factory=dict,
        description="Machine-readable scores and verdicts; empty if the JSON block was unusable"
    )
    raw_response_text: str = Field(description="Full response text as returned by the model")

    @property
    def total_score(self) -> Optional[float]:
        scores = self.structured_data.get("scores")
        if isinstance(scores, dict):
            return scores.get("total")
        return None

    @property
    def student_name(self) -> Optional[str]:
        student = self.structured_data.get("student")
        if isinstance(student, dict):
            return student.get("full_name")
        return None

    def score_breakdown(self) -> Optional[ScoreBreakdown]:
        """Validate the structured data into a ScoreBreakdown, or None if it does not fit."""
        try:
            return ScoreBreakdown.model_validate(self.structured_data)
        except ValidationError:
            return None


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class Submission(BaseModel):
    """One student's pages plus their grading state."""
    id: str
    name: str
    pages: Tuple[Document, ...] = Field(default=(), description="Ordered pages; change them through the registry")
    status: SubmissionStatus = SubmissionStatus.PENDING
    result: Optional[GradingResult] = None
    error: Optional[str] = None

    def reset(self):
        """Return to pending, dropping the outcome of any earlier run."""
        self.status = SubmissionStatus.PENDING
        self.result = None
        self.error = None

    def mark_in_progress(self):
        if self.status != SubmissionStatus.PENDING:
            raise InvalidTransitionError(f"{self.name}: cannot start grading from {self.status.value}")
        self.status = SubmissionStatus.IN_PROGRESS

    def mark_completed(self, result: GradingResult):
        if self.status != SubmissionStatus.IN_PROGRESS:
            raise InvalidTransitionError(f"{self.name}: cannot complete from {self.status.value}")
        self.status = SubmissionStatus.COMPLETED
        self.result = result
        self.error = None

    def mark_failed(self, reason: str, allow_pending: bool = False):
        """
        Record a failure.

        Args:
            reason: Failure message shown to the user
            allow_pending: Also allow failing a submission that never started
                (used when a batch is cancelled)
        """
        allowed = {SubmissionStatus.IN_PROGRESS}
        if allow_pending:
            allowed.add(SubmissionStatus.PENDING)
        if self.status not in allowed:
            raise InvalidTransitionError(f"{self.name}: cannot fail from {self.status.value}")
        self.status = SubmissionStatus.FAILED
        self.result = None
        self.error = reason or "Unknown grading error"


@dataclass(frozen=True)
class BatchItem:
    submission: Submission
    pages: Tuple[Document, ...]


@dataclass(frozen=True)
class Batch:
    """Frozen snapshot of what gets graded in one run."""
    reference_documents: Tuple[Document, ...]
    items: Tuple[BatchItem, ...]

    @classmethod
    def freeze(cls, reference_documents: Sequence[Document],
               submissions: Sequence[Submission]) -> "Batch":
        """
        Snapshot the reference documents and every submission that has pages.

        Raises:
            EmptyBatchError: If there are no reference documents or no eligible submissions
        """
        items = tuple(
            BatchItem(submission=s, pages=tuple(s.pages))
            for s in submissions if len(s.pages) > 0
        )
        if not reference_documents:
            raise EmptyBatchError("Upload the exam and answer key before grading")
        if not items:
            raise EmptyBatchError("Add at least one submission with pages before grading")
        return cls(reference_documents=tuple(reference_documents), items=items)

    @property
    def submissions(self) -> List[Submission]:
        return [item.submission for item in self.items]

    def __len__(self) -> int:
        return len(self.items)
