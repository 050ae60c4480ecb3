"""Tests for submission lifecycle and result models."""

import pytest

from stepgrader.errors import EmptyBatchError, InvalidTransitionError
from stepgrader.tools.exam_grading.models import (
    Batch,
    Document,
    GradingResult,
    Submission,
    SubmissionStatus,
)


def page(name: str = "page.png") -> Document:
    return Document(display_name=name, mime_type="image/png", data=b"img")


@pytest.fixture
def sample_result():
    return GradingResult(
        report_text="# Report",
        structured_data={
            "student": {"full_name": "Tran Thi B", "class": "11A2", "student_id": "5"},
            "scores": {
                "total": 6,
                "by_question": [
                    {"question_id": "1", "max_points": 4, "earned_points": 4,
                     "verdict": "correct", "feedback": "ok"},
                    {"question_id": "2", "max_points": 6, "earned_points": 2,
                     "verdict": "partial", "feedback": "sign error"},
                ]
            }
        },
        raw_response_text="raw",
    )


class TestSubmissionLifecycle:

    def test_new_submission_is_pending(self):
        submission = Submission(id="abc", name="Student 1")
        assert submission.status == SubmissionStatus.PENDING
        assert submission.result is None
        assert submission.error is None

    def test_complete(self, sample_result):
        submission = Submission(id="abc", name="Student 1", pages=[page()])
        submission.mark_in_progress()
        submission.mark_completed(sample_result)

        assert submission.status == SubmissionStatus.COMPLETED
        assert submission.result == sample_result
        assert submission.error is None

    def test_fail(self):
        submission = Submission(id="abc", name="Student 1", pages=[page()])
        submission.mark_in_progress()
        submission.mark_failed("quota exceeded")

        assert submission.status == SubmissionStatus.FAILED
        assert submission.error == "quota exceeded"
        assert submission.result is None

    def test_fail_with_empty_reason_still_has_message(self):
        submission = Submission(id="abc", name="Student 1")
        submission.mark_in_progress()
        submission.mark_failed("")

        assert submission.error

    def test_terminal_states_cannot_restart_without_reset(self, sample_result):
        submission = Submission(id="abc", name="Student 1")
        submission.mark_in_progress()
        submission.mark_completed(sample_result)

        with pytest.raises(InvalidTransitionError):
            submission.mark_in_progress()
        with pytest.raises(InvalidTransitionError):
            submission.mark_failed("late error")

        submission.reset()
        assert submission.status == SubmissionStatus.PENDING
        assert submission.result is None

    def test_cannot_complete_pending(self, sample_result):
        submission = Submission(id="abc", name="Student 1")
        with pytest.raises(InvalidTransitionError):
            submission.mark_completed(sample_result)

    def test_cancel_pending(self):
        submission = Submission(id="abc", name="Student 1")
        with pytest.raises(InvalidTransitionError):
            submission.mark_failed("Cancelled")

        submission.mark_failed("Cancelled", allow_pending=True)
        assert submission.status == SubmissionStatus.FAILED


class TestGradingResult:

    def test_accessors(self, sample_result):
        assert sample_result.total_score == 6
        assert sample_result.student_name == "Tran Thi B"

    def test_accessors_on_empty_data(self):
        result = GradingResult(report_text="text", raw_response_text="text")
        assert result.total_score is None
        assert result.student_name is None

    def test_score_breakdown(self, sample_result):
        breakdown = sample_result.score_breakdown()

        assert breakdown.student.class_name == "11A2"
        assert breakdown.scores.total == 6
        assert [q.verdict for q in breakdown.scores.by_question] == ["correct", "partial"]

    def test_score_breakdown_unexpected_shape(self):
        result = GradingResult(
            report_text="r",
            structured_data={"scores": {"by_question": [{"verdict": "excellent"}]}},
            raw_response_text="r",
        )
        assert result.score_breakdown() is None


class TestBatch:

    def test_freeze_filters_empty_submissions(self):
        with_pages = Submission(id="a", name="A", pages=[page()])
        empty = Submission(id="b", name="B")

        batch = Batch.freeze([page("exam.pdf")], [empty, with_pages])

        assert batch.submissions == [with_pages]
        assert len(batch) == 1

    def test_freeze_snapshots_pages(self):
        submission = Submission(id="a", name="A", pages=[page("p1.png")])
        batch = Batch.freeze([page("exam.pdf")], [submission])

        submission.pages = submission.pages + (page("p2.png"),)

        assert [p.display_name for p in batch.items[0].pages] == ["p1.png"]

    def test_freeze_requires_reference_documents(self):
        submission = Submission(id="a", name="A", pages=[page()])
        with pytest.raises(EmptyBatchError):
            Batch.freeze([], [submission])

    def test_freeze_requires_eligible_submission(self):
        with pytest.raises(EmptyBatchError):
            Batch.freeze([page("exam.pdf")], [Submission(id="a", name="A")])
