"""
Progress Tracker
Remembers how far a grader got inside each (course, assignment, portion)
so an interrupted session resumes at the right submission.
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


class ProgressError(Exception):
    """Raised when the progress store is unreadable or asked to rewind"""


def marker_key(course_id, assignment_id, portion_index: int) -> str:
    """Key a marker by all three fields so portions never share progress"""
    return f"{course_id}:{assignment_id}:{portion_index}"


class ProgressTracker:
    """JSON-file backed store of resume markers (last write wins per key)"""

    def __init__(self, progress_file: Union[str, Path]):
        """
        Initialize the progress tracker

        Args:
            progress_file: JSON file holding every marker, created on first write
        """
        self.progress_file = Path(progress_file)

    def _read(self) -> Dict[str, Dict]:
        if not self.progress_file.exists():
            return {}
        try:
            with open(self.progress_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ProgressError(f"Could not read progress file {self.progress_file}: {e}") from e

        if not isinstance(data, dict):
            raise ProgressError(f"Progress file {self.progress_file} is not a JSON object")
        return data.get('markers', {})

    def _write(self, markers: Dict[str, Dict]) -> None:
        self.progress_file.parent.mkdir(parents=True, exist_ok=True)
        payload = {'version': 1, 'markers': markers}

        # Write beside the target, then swap in, so a crash never leaves half a file
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.progress_file.parent), prefix='.progress-', suffix='.json'
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.progress_file)
        except OSError as e:
            raise ProgressError(f"Could not save progress to {self.progress_file}: {e}") from e
        finally:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def load(self, course_id, assignment_id, portion_index: int) -> int:
        """Get the next submission index for a portion (0 if never seen)"""
        marker = self._read().get(marker_key(course_id, assignment_id, portion_index))
        if not marker:
            return 0
        return int(marker.get('next_index', 0))

    def advance(self, course_id, assignment_id, portion_index: int, new_index: int) -> None:
        """
        Persist the next submission index for a portion

        Args:
            course_id: Canvas course ID
            assignment_id: Canvas assignment ID
            portion_index: 0-based portion index
            new_index: Index of the next unprocessed submission
        """
        if new_index < 0:
            raise ProgressError(f"Progress index cannot be negative: {new_index}")

        markers = self._read()
        key = marker_key(course_id, assignment_id, portion_index)
        previous = int(markers.get(key, {}).get('next_index', 0))
        if new_index < previous:
            raise ProgressError(
                f"Refusing to move progress for {key} back from {previous} to {new_index}"
            )

        markers[key] = {
            'course_id': course_id,
            'assignment_id': assignment_id,
            'portion_index': portion_index,
            'next_index': new_index,
            'updated_at': datetime.now().isoformat(timespec='seconds'),
        }
        self._write(markers)
        logger.info(f"Progress {key}: {previous} -> {new_index}")

    def reset(self, course_id, assignment_id, portion_index: int) -> bool:
        """Forget a portion's marker; returns True if one existed"""
        markers = self._read()
        key = marker_key(course_id, assignment_id, portion_index)
        if key not in markers:
            return False
        del markers[key]
        self._write(markers)
        logger.info(f"Progress {key} reset")
        return True

    def markers(self, course_id, assignment_id) -> Dict[int, Dict]:
        """Get every stored marker for an assignment, keyed by portion index"""
        prefix = f"{course_id}:{assignment_id}:"
        found = {}
        for key, marker in self._read().items():
            if key.startswith(prefix):
                found[int(marker.get('portion_index', key[len(prefix):]))] = marker
        return dict(sorted(found.items()))

    def updated_at(self, course_id, assignment_id, portion_index: int) -> Optional[str]:
        marker = self._read().get(marker_key(course_id, assignment_id, portion_index))
        return marker.get('updated_at') if marker else None
