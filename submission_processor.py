"""
Submission Processor

Stages one Canvas submission for grading: checks it carries exactly one
zip, downloads and extracts it into a per-student workspace, then looks
for the files a grader needs to open (C sources, headers, Makefile,
README). Failures are returned as outcome objects, never raised, so the
session can report them and move on.
"""

import logging
import re
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Union

from archive_extractor import ArchiveError, extract_zip
from canvas_integration import CanvasAPIError
from submission_models import (
    AttachmentCountError,
    DownloadError,
    ExtractError,
    NoMatchingSourceFiles,
    Ready,
    Submission,
)

logger = logging.getLogger(__name__)

README_DISCLAIMER = "by submitting this file to carmen, i certify that i have performed all"

SOURCE_EXTENSIONS = ('.c', '.h')


def is_source_file(filename: str) -> bool:
    """True for .c/.h files, a Makefile, or anything named readme* (any case)"""
    name = filename.lower()
    return name.endswith(SOURCE_EXTENSIONS) or name == 'makefile' or name.startswith('readme')


def find_source_files(directory: Union[str, Path]) -> List[Path]:
    """Recursively collect presentable files, sorted by path"""
    directory = Path(directory)
    return sorted(p for p in directory.rglob('*') if p.is_file() and is_source_file(p.name))


def workspace_name(submission: Submission) -> str:
    """Directory name for a submission; stable across runs"""
    if submission.sortable_name:
        slug = re.sub(r'[^\w\s-]', '', submission.sortable_name).strip()
        slug = re.sub(r'[-\s]+', '_', slug)
        if slug:
            return f"{slug}_{submission.submission_id}"
    return f"submission_{submission.submission_id}"


class SubmissionProcessor:
    """Turns one Submission into a classified processing outcome"""

    def __init__(self, downloader, extractor: Callable[..., Set[Path]] = extract_zip):
        """
        Args:
            downloader: Object with download_attachment(url) -> bytes
            extractor: Callable(data, destination) -> set of extracted paths
        """
        self.downloader = downloader
        self.extractor = extractor

    def process(self, submission: Submission, destination_root: Union[str, Path]):
        count = len(submission.attachments)
        if count != 1:
            logger.info(f"Submission {submission.submission_id}: {count} attachments, not downloading")
            return AttachmentCountError(count)

        attachment = submission.attachments[0]
        try:
            data = self.downloader.download_attachment(attachment.url)
        except CanvasAPIError as e:
            logger.warning(f"Submission {submission.submission_id}: download of {attachment.filename} failed: {e}")
            return DownloadError(e)

        directory = Path(destination_root) / workspace_name(submission)
        try:
            self.extractor(data, directory)
        except (ArchiveError, OSError) as e:
            logger.warning(f"Submission {submission.submission_id}: extraction into {directory} failed: {e}")
            return ExtractError(e)

        source_files = find_source_files(directory)
        if not source_files:
            logger.info(f"Submission {submission.submission_id}: no presentable files in {directory}")
            return NoMatchingSourceFiles(directory)

        logger.info(f"Submission {submission.submission_id}: staged {len(source_files)} file(s) in {directory}")
        return Ready(directory, source_files)


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding='utf-8', errors='ignore')
    except OSError:
        return None


def check_attestation(submission: Submission, source_files: Iterable[Path],
                      disclaimer: str = README_DISCLAIMER) -> Dict[str, Dict[Path, bool]]:
    """
    Build the pre-grading checklist shown to the grader

    Returns:
        {'name': {path: contains last name}, 'disclaimer': {readme path: contains disclaimer}}
    """
    last_name = (submission.last_name or '').lower()
    disclaimer = disclaimer.lower()
    report = {'name': {}, 'disclaimer': {}}

    for path in source_files:
        text = (_read_text(path) or '').lower()
        report['name'][path] = bool(last_name) and last_name in text
        if path.name.lower().startswith('readme'):
            report['disclaimer'][path] = bool(disclaimer) and disclaimer in text

    return report
