"""Write per-submission JSON and Markdown exports."""

import json
import logging
import re
from collections import Counter
from pathlib import Path
from typing import List

from stepgrader.errors import StepGraderError
from .batch_grader import BatchResult
from .models import Submission, SubmissionStatus

LOG = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')


def safe_filename(name: str) -> str:
    """Replace characters that are not allowed in file names."""
    cleaned = _UNSAFE_CHARS.sub("_", name).strip(" .")
    return cleaned or "submission"


def _require_result(submission: Submission):
    if submission.status != SubmissionStatus.COMPLETED or submission.result is None:
        raise StepGraderError(f"{submission.name} has no grading result to export")


def export_submission_json(submission: Submission, output_dir: Path, stem: str = None) -> Path:
    """Write the structured data of a completed submission as pretty-printed JSON."""
    _require_result(submission)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{stem or safe_filename(submission.name)}_result.json"
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(submission.result.structured_data, f, indent=2, ensure_ascii=False)
    return path


def export_submission_report(submission: Submission, output_dir: Path, stem: str = None) -> Path:
    """Write the Markdown report of a completed submission."""
    _require_result(submission)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{stem or safe_filename(submission.name)}_report.md"
    path.write_text(submission.result.report_text.rstrip() + "\n", encoding='utf-8')
    return path


def export_batch(result: BatchResult, output_dir: Path) -> List[Path]:
    """
    Export every completed submission of a batch.

    Submissions sharing a name get their id appended so files do not overwrite
    each other. Failed submissions are skipped.

    Returns:
        Paths of all written files
    """
    name_counts = Counter(safe_filename(s.name) for s in result.completed)
    written = []
    for submission in result.completed:
        stem = safe_filename(submission.name)
        if name_counts[stem] > 1:
            stem = f"{stem}_{submission.id}"
        written.append(export_submission_json(submission, output_dir, stem))
        written.append(export_submission_report(submission, output_dir, stem))
        LOG.debug(f"Exported {submission.name} to {output_dir}")
    LOG.info(f"Exported {len(result.completed)} graded submissions to {output_dir}")
    return written
