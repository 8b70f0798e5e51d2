"""
Data model for DuckStage: Canvas submissions, roster portions and the
classified outcome of staging one submission.

Part of the DuckWorks Educational Automation Suite
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Attachment:
    filename: str
    url: str
    size: int = 0                        # bytes
    content_type: Optional[str] = None

    @staticmethod
    def from_canvas(data: Dict[str, Any]) -> "Attachment":
        return Attachment(
            filename=data.get("filename") or data.get("display_name") or "",
            url=data.get("url", ""),
            size=int(data.get("size") or 0),
            content_type=data.get("content-type") or data.get("content_type"),
        )


@dataclass(frozen=True)
class Submission:
    """One student's (or group's) graded unit, immutable once fetched."""

    submission_id: int                   # Canvas user id the submission belongs to
    attachments: Tuple[Attachment, ...] = ()
    sortable_name: Optional[str] = None  # "Last, First"
    workflow_state: Optional[str] = None
    submitted_at: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.sortable_name or f"user {self.submission_id}"

    @property
    def last_name(self) -> Optional[str]:
        if not self.sortable_name:
            return None
        return self.sortable_name.split(",")[0].strip() or None

    @property
    def is_processable(self) -> bool:
        return len(self.attachments) == 1


@dataclass(frozen=True)
class Course:
    id: int
    name: str


@dataclass(frozen=True)
class Assignment:
    id: int
    name: str
    due_at: Optional[str] = None


@dataclass
class Portion:
    index: int                           # 0-based
    submissions: List[Submission]

    @property
    def size(self) -> int:
        return len(self.submissions)


# Processing outcomes ---------------------------------------------------------

@dataclass
class Ready:
    directory: Path
    source_files: List[Path]

    kind = "ready"
    is_transient = False

    def describe(self) -> str:
        return f"{len(self.source_files)} source file(s) in {self.directory}"


@dataclass
class AttachmentCountError:
    actual_count: int

    kind = "attachment_count"
    is_transient = False

    def describe(self) -> str:
        return f"expected exactly one zip attachment, found {self.actual_count}"


@dataclass
class DownloadError:
    cause: Exception

    kind = "download"
    is_transient = True

    def describe(self) -> str:
        return f"download failed: {self.cause}"


@dataclass
class ExtractError:
    cause: Exception

    kind = "extract"
    is_transient = True

    def describe(self) -> str:
        return f"extraction failed: {self.cause}"


@dataclass
class NoMatchingSourceFiles:
    directory: Optional[Path] = None

    kind = "no_source_files"
    is_transient = False

    def describe(self) -> str:
        return "archive holds no .c/.h/Makefile/README files"


@dataclass
class SubmissionRecord:
    """One row of the session report."""

    portion_index: int
    position: int                        # 0-based index inside the portion
    submission_id: int
    student_name: str
    outcome: str
    detail: str = ""
    matched_files: int = 0
    decision: str = ""
    recorded_at: Optional[str] = None
