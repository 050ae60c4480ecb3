"""Tests for building a registry from command-line paths."""

import tempfile
from pathlib import Path

import pytest

from stepgrader.errors import EncodingError
from stepgrader.tools.exam_grading.batch_cli import build_registry, directory_pages


@pytest.fixture
def workspace():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "exam.pdf").write_bytes(b"%PDF exam")
        (root / "key.jpg").write_bytes(b"key")

        (root / "alice").mkdir()
        (root / "alice" / "page2.jpg").write_bytes(b"2")
        (root / "alice" / "page1.jpg").write_bytes(b"1")
        (root / "alice" / "notes.txt").write_text("ignore me")
        (root / "alice" / ".hidden.png").write_bytes(b"h")

        (root / "bob.pdf").write_bytes(b"%PDF bob")
        (root / "carol.png").write_bytes(b"c")
        (root / "empty").mkdir()
        yield root


def test_directory_pages_sorted(workspace):
    pages = directory_pages(workspace / "alice")
    assert [p.display_name for p in pages] == ["page1.jpg", "page2.jpg"]


def test_build_registry(workspace):
    registry = build_registry(
        [workspace / "exam.pdf", workspace / "key.jpg"],
        [workspace / "alice", workspace / "bob.pdf", workspace / "empty", workspace / "carol.png"],
    )

    assert [d.display_name for d in registry.reference_documents] == ["exam.pdf", "key.jpg"]
    assert [s.name for s in registry.submissions] == ["alice", "bob", "carol"]
    assert [len(s.pages) for s in registry.submissions] == [2, 1, 1]
    assert registry.submissions[1].pages[0].kind == "pdf"


def test_build_registry_rejects_unsupported_reference(workspace):
    (workspace / "exam.docx").write_bytes(b"doc")
    with pytest.raises(EncodingError):
        build_registry([workspace / "exam.docx"], [workspace / "bob.pdf"])
