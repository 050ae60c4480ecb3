"""In-memory collection of reference documents and student submissions."""

import logging
import uuid
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from stepgrader.errors import (
    RegistryError,
    RegistryLockedError,
    SubmissionLockedError,
    SubmissionNotFoundError,
)
from .models import PDF_MIME_TYPE, Batch, Document, Submission, SubmissionStatus

LOG = logging.getLogger(__name__)


class SubmissionRegistry:
    """
    Owns the reference document set and the ordered list of submissions.

    Submissions that are being graded cannot be edited, and the reference
    documents are frozen between begin_batch() and end_batch().
    """

    def __init__(self):
        self._reference_documents: List[Document] = []
        self._submissions: List[Submission] = []
        self._issued_ids: Set[str] = set()
        self._batch_active = False

    @property
    def reference_documents(self) -> Tuple[Document, ...]:
        return tuple(self._reference_documents)

    @property
    def submissions(self) -> Tuple[Submission, ...]:
        return tuple(self._submissions)

    @property
    def batch_active(self) -> bool:
        return self._batch_active

    def _new_id(self) -> str:
        while True:
            candidate = uuid.uuid4().hex[:9]
            if candidate not in self._issued_ids:
                self._issued_ids.add(candidate)
                return candidate

    def _editable(self, submission_id: str) -> Submission:
        submission = self.get(submission_id)
        if submission.status == SubmissionStatus.IN_PROGRESS:
            raise SubmissionLockedError(f"{submission.name} is being graded and cannot be changed")
        return submission

    def _check_references_unlocked(self):
        if self._batch_active:
            raise RegistryLockedError("Reference documents cannot change while a batch is running")

    def get(self, submission_id: str) -> Submission:
        for submission in self._submissions:
            if submission.id == submission_id:
                return submission
        raise SubmissionNotFoundError(f"No submission with id {submission_id}")

    def add_submission(self, name: Optional[str] = None,
                       pages: Iterable[Document] = ()) -> Submission:
        """Add a pending submission, named "Student N" unless a name is given."""
        submission = Submission(
            id=self._new_id(),
            name=name or f"Student {len(self._submissions) + 1}",
            pages=tuple(pages),
        )
        self._submissions.append(submission)
        LOG.debug(f"Added submission {submission.name} ({submission.id})")
        return submission

    def add_submissions_from_pdfs(self, paths: Iterable[Path]) -> List[Submission]:
        """
        Bulk upload: every PDF becomes one submission named after the file.

        Non-PDF paths are skipped. Submissions that have no pages yet are dropped
        first so the placeholder entries do not linger.

        Raises:
            RegistryError: If none of the paths is a PDF
        """
        pdfs = []
        for path in paths:
            path = Path(path)
            if path.suffix.lower() == ".pdf":
                pdfs.append(path)
            else:
                LOG.warning(f"Skipping {path.name}: bulk upload only accepts PDF files")
        if not pdfs:
            raise RegistryError("Bulk upload only supports PDF files (one file per student)")

        self._submissions = [
            s for s in self._submissions
            if s.pages or s.status == SubmissionStatus.IN_PROGRESS
        ]
        added = []
        for path in pdfs:
            document = Document(display_name=path.name, mime_type=PDF_MIME_TYPE, path=path)
            added.append(self.add_submission(name=path.stem, pages=[document]))
        LOG.info(f"Added {len(added)} submissions from PDF files")
        return added

    def remove_submission(self, submission_id: str) -> Submission:
        submission = self._editable(submission_id)
        self._submissions.remove(submission)
        return submission

    def rename_submission(self, submission_id: str, name: str) -> Submission:
        submission = self._editable(submission_id)
        submission.name = name
        return submission

    def add_pages(self, submission_id: str, documents: Iterable[Document]) -> Submission:
        """Append pages to a submission, keeping upload order."""
        submission = self._editable(submission_id)
        submission.pages = submission.pages + tuple(documents)
        return submission

    def remove_page(self, submission_id: str, index: int) -> Document:
        submission = self._editable(submission_id)
        if not 0 <= index < len(submission.pages):
            raise IndexError(f"{submission.name} has no page {index}")
        removed = submission.pages[index]
        submission.pages = submission.pages[:index] + submission.pages[index + 1:]
        return removed

    def add_reference_documents(self, documents: Iterable[Document]):
        self._check_references_unlocked()
        self._reference_documents.extend(documents)

    def remove_reference_document(self, index: int) -> Document:
        self._check_references_unlocked()
        if not 0 <= index < len(self._reference_documents):
            raise IndexError(f"No reference document {index}")
        return self._reference_documents.pop(index)

    def eligible_submissions(self) -> List[Submission]:
        """Submissions with at least one page, in registry order."""
        return [s for s in self._submissions if s.pages]

    def reset(self):
        """Drop all reference documents and submissions."""
        self._check_references_unlocked()
        self._reference_documents = []
        self._submissions = []

    def begin_batch(self) -> Batch:
        """
        Freeze the current state into a Batch and lock the reference documents.

        Raises:
            EmptyBatchError: If there is nothing to grade
            RegistryLockedError: If a batch is already running
        """
        if self._batch_active:
            raise RegistryLockedError("A batch is already running")
        batch = Batch.freeze(self._reference_documents, self._submissions)
        self._batch_active = True
        return batch

    def end_batch(self):
        self._batch_active = False
