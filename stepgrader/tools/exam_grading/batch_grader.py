"""Batch grader that processes submissions one at a time using async/await."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import yaml
from tqdm import tqdm

from stepgrader.libs.config_loader import ConfigType, get_config
from .grader import ExamGrader
from .models import Batch, BatchItem, Document, Submission, SubmissionStatus
from .registry import SubmissionRegistry

LOG = logging.getLogger(__name__)

CANCELLED_REASON = "Cancelled"


def submission_to_dict(submission: Submission, pages: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """
    Convert a submission's outcome to a dictionary for YAML serialization.

    Args:
        submission: Graded submission
        pages: Names of the pages that were graded (defaults to the current pages)
    """
    if pages is None:
        pages = [page.display_name for page in submission.pages]
    data = {
        'id': submission.id,
        'name': submission.name,
        'status': submission.status.value,
        'pages': list(pages),
    }
    if submission.result:
        data['student_name'] = submission.result.student_name
        data['total_score'] = submission.result.total_score
        data['structured_data'] = submission.result.structured_data
    if submission.error:
        data['error_message'] = submission.error
    return data


@dataclass
class BatchResult:
    """Outcome of one batch run."""
    submissions: List[Submission]
    cancelled: bool = False
    timestamp: str = ""
    graded_pages: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    @property
    def completed(self) -> List[Submission]:
        return [s for s in self.submissions if s.status == SubmissionStatus.COMPLETED]

    @property
    def failed(self) -> List[Submission]:
        return [s for s in self.submissions if s.status == SubmissionStatus.FAILED]

    @property
    def selected_id(self) -> Optional[str]:
        """Submission to show first: the first one, in batch order, that completed."""
        completed = self.completed
        return completed[0].id if completed else None

    def to_dict(self) -> Dict[str, Any]:
        scores = [s.result.total_score for s in self.completed
                  if isinstance(s.result.total_score, (int, float))]
        return {
            'grading_summary': {
                'timestamp': self.timestamp,
                'total_submissions': len(self.submissions),
                'completed': len(self.completed),
                'failed': len(self.failed),
                'cancelled': self.cancelled,
                'average_score': sum(scores) / len(scores) if scores else 0,
            },
            'submissions': [submission_to_dict(s, self.graded_pages.get(s.id)) for s in self.submissions]
        }


class BatchGrader:
    """
    Grade every submission of a batch, strictly one after another.

    A failure on one submission is recorded on that submission and the batch moves
    on to the next one.
    """

    def __init__(self, configs: ConfigType, model: Optional[str] = None,
                 settings: Optional[Dict[str, Any]] = None,
                 grader: Optional[ExamGrader] = None,
                 on_update: Optional[Callable[[Submission], None]] = None,
                 show_progress: Optional[bool] = None):
        """
        Initialize the batch grader.

        Args:
            configs: Configuration dictionary
            model: Optional model override
            settings: Optional settings override
            grader: Grader to use (built from configs when omitted)
            on_update: Called with the submission after every status change
            show_progress: Show a progress bar (overrides config)

        Raises:
            ConfigurationError: If the grader cannot be configured
        """
        self.configs = configs
        self.grader = grader or ExamGrader(configs=configs, model=model, settings=settings)
        self.on_update = on_update
        if show_progress is None:
            show_progress = get_config("grading.progress_bar", configs, default=True)
        self.show_progress = show_progress
        self._cancel_requested = False

    def cancel(self):
        """Stop after the submission currently being graded."""
        LOG.info("Cancellation requested, stopping after the current submission")
        self._cancel_requested = True

    def _notify(self, submission: Submission):
        if self.on_update is not None:
            self.on_update(submission)

    def _cancel_items(self, items: Sequence[BatchItem]):
        for item in items:
            item.submission.mark_failed(CANCELLED_REASON, allow_pending=True)
            self._notify(item.submission)

    async def _grade_item(self, batch: Batch, item: BatchItem):
        submission = item.submission
        submission.mark_in_progress()
        self._notify(submission)
        LOG.debug(f"Grading submission: {submission.name} ({len(item.pages)} pages)")

        try:
            result = await self.grader.grade_async(batch.reference_documents, item.pages)
        except asyncio.CancelledError:
            LOG.warning(f"Grading of {submission.name} was cancelled")
            submission.mark_failed(CANCELLED_REASON)
            self._notify(submission)
            raise
        except Exception as e:
            LOG.error(f"Error grading {submission.name}: {e}")
            submission.mark_failed(str(e) or type(e).__name__)
        else:
            submission.mark_completed(result)
            LOG.debug(f"Graded {submission.name}: total={result.total_score}")
        self._notify(submission)

    async def _run(self, batch: Batch) -> BatchResult:
        self._cancel_requested = False
        for item in batch.items:
            item.submission.reset()
            self._notify(item.submission)

        LOG.info(f"Grading {len(batch)} submissions against {len(batch.reference_documents)} reference documents")
        cancelled = False
        with tqdm(total=len(batch), desc="Grading submissions", disable=not self.show_progress) as progress:
            for index, item in enumerate(batch.items):
                if self._cancel_requested:
                    self._cancel_items(batch.items[index:])
                    cancelled = True
                    break
                try:
                    await self._grade_item(batch, item)
                except asyncio.CancelledError:
                    self._cancel_items(batch.items[index + 1:])
                    raise
                progress.update(1)

        result = BatchResult(
            submissions=batch.submissions,
            cancelled=cancelled,
            graded_pages={item.submission.id: tuple(p.display_name for p in item.pages) for item in batch.items},
        )
        LOG.info(f"Batch complete: {len(result.completed)} completed, {len(result.failed)} failed")
        return result

    async def run_batch(self, registry: SubmissionRegistry) -> BatchResult:
        """
        Grade every eligible submission in the registry.

        Raises:
            EmptyBatchError: If there are no reference documents or no submission has pages
        """
        batch = registry.begin_batch()
        try:
            return await self._run(batch)
        finally:
            registry.end_batch()

    async def run_submissions(self, reference_documents: Sequence[Document],
                              submissions: Sequence[Submission]) -> BatchResult:
        """
        Grade the given submissions without a registry.

        Raises:
            EmptyBatchError: If there are no reference documents or no submission has pages
        """
        return await self._run(Batch.freeze(reference_documents, submissions))

    def run_batch_sync(self, registry: SubmissionRegistry) -> BatchResult:
        """Synchronous wrapper for run_batch."""
        return asyncio.run(self.run_batch(registry))

    def save_summary(self, result: BatchResult, output_path: Path):
        """
        Save grading summary to YAML file.

        Args:
            result: Outcome of a batch run
            output_path: Path to save summary file
        """
        with open(output_path, 'w') as f:
            yaml.dump(result.to_dict(), f, default_flow_style=False, sort_keys=False, allow_unicode=True)

        LOG.info(f"Summary saved to {output_path}")
