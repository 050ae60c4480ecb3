#!/usr/bin/env python3
"""Command-line interface for grading a batch of exam submissions."""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List

from stepgrader.errors import ConfigurationError, EncodingError, RegistryError
from stepgrader.libs.config_loader import get_config, load_all_configs
from .batch_grader import BatchGrader
from .exporter import export_batch
from .models import Document
from .registry import SubmissionRegistry

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
LOG = logging.getLogger(__name__)

PAGE_SUFFIXES = {'.pdf', '.png', '.jpg', '.jpeg', '.gif', '.webp', '.bmp', '.tif', '.tiff'}


def directory_pages(directory: Path) -> List[Document]:
    """Image and PDF files of a directory, sorted by name, as pages."""
    files = sorted(
        p for p in directory.iterdir()
        if p.is_file() and not p.name.startswith('.') and p.suffix.lower() in PAGE_SUFFIXES
    )
    return [Document.from_path(p) for p in files]


def build_registry(reference_paths: List[Path], submission_paths: List[Path]) -> SubmissionRegistry:
    """
    Populate a registry from command-line paths.

    A PDF file is one student. A directory is one student whose image/PDF files are
    the pages. Any other image file is a one-page student.
    """
    registry = SubmissionRegistry()
    registry.add_reference_documents(Document.from_path(p) for p in reference_paths)

    for path in submission_paths:
        if path.is_dir():
            pages = directory_pages(path)
            if not pages:
                LOG.warning(f"No image or PDF files in {path}, skipping")
                continue
            registry.add_submission(name=path.name, pages=pages)
        elif path.suffix.lower() == '.pdf':
            registry.add_submissions_from_pdfs([path])
        else:
            registry.add_submission(name=path.stem, pages=[Document.from_path(path)])
    return registry


def main():
    """Main entry point for grade-exams command."""
    parser = argparse.ArgumentParser(
        description='Grade scanned exam submissions against an answer key using OpenAI',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One PDF per student
  grade-exams --reference exam.pdf answer_key.pdf --submissions scans/*.pdf

  # One directory of page photos per student
  grade-exams -r exam.pdf -s students/alice students/bob --output-dir graded/

  # Use a specific model and a longer timeout
  grade-exams -r exam.pdf -s scans/*.pdf --model gpt-4.1 --timeout 600
        """
    )

    # Required arguments
    parser.add_argument(
        '--reference', '-r',
        type=Path,
        nargs='+',
        required=True,
        help='Exam paper and answer key / marking guide (images or PDFs)'
    )
    parser.add_argument(
        '--submissions', '-s',
        type=Path,
        nargs='+',
        required=True,
        help='Student submissions: one PDF per student or one directory of pages per student'
    )

    # Optional arguments
    parser.add_argument(
        '--output-dir', '-o',
        type=Path,
        default=None,
        help='Directory for the JSON and Markdown exports (default: grading.output_dir from config)'
    )
    parser.add_argument(
        '--summary',
        type=Path,
        default=None,
        help='Path to save summary YAML file (default: grading_summary_TIMESTAMP.yaml in the output dir)'
    )
    parser.add_argument(
        '--model', '-m',
        type=str,
        default=None,
        help='OpenAI model to use (overrides config value)'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        default=None,
        help='Seconds to wait for each response (overrides config value)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args()

    # Set logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate inputs
    for path in args.reference + args.submissions:
        if not path.exists():
            LOG.error(f"Path does not exist: {path}")
            sys.exit(1)

    # Load configuration
    try:
        config = load_all_configs()
    except Exception as e:
        LOG.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    try:
        registry = build_registry(args.reference, args.submissions)
    except (EncodingError, RegistryError) as e:
        LOG.error(f"Invalid input files: {e}")
        sys.exit(1)

    # Initialize batch grader
    try:
        if args.timeout is not None:
            config.setdefault('grading', {})['timeout_seconds'] = args.timeout
        batch_grader = BatchGrader(configs=config, model=args.model)
    except ConfigurationError as e:
        LOG.error(f"Configuration error: {e}")
        sys.exit(1)

    LOG.info(f"Using {len(registry.reference_documents)} reference documents")
    if args.model:
        LOG.info(f"Using model: {args.model}")

    try:
        result = batch_grader.run_batch_sync(registry)
    except RegistryError as e:
        LOG.error(f"Nothing to grade: {e}")
        sys.exit(1)

    output_dir = args.output_dir or Path(get_config("grading.output_dir", config, default="graded"))
    export_batch(result, output_dir)

    if args.summary is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        summary_path = output_dir / f"grading_summary_{timestamp}.yaml"
    else:
        summary_path = args.summary

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        batch_grader.save_summary(result, summary_path)
    except OSError as e:
        LOG.error(f"Failed to save summary: {e}")

    completed = result.completed
    failed = result.failed

    print(f"\n{'='*60}")
    print(f"Batch Grading Complete")
    print(f"{'='*60}")
    print(f"Total submissions: {len(result.submissions)}")
    print(f"Successfully graded: {len(completed)}")
    print(f"Failed: {len(failed)}")

    if completed:
        print(f"\nScores:")
        for submission in completed:
            total = submission.result.total_score
            print(f"  {submission.name}: {total if total is not None else '?'}")

    if failed:
        print(f"\nFailed submissions:")
        for submission in failed:
            print(f"  {submission.name}: {submission.error}")

    print(f"\nReports saved in: {output_dir}")
    print(f"Summary saved to: {summary_path}")

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
