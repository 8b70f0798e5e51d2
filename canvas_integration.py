"""
Canvas Integration for DuckStage

Canvas LMS client plus the roster fetcher that turns an assignment's
submissions into an ordered list of Submission objects.

1. Authenticated, paginated, rate-limit aware API access
2. Deterministic roster ordering (sortable name, then user id)
3. Optional concurrent prefetch of a portion's attachments

Author: DuckWorks Development Team
"""

import logging
import math
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, Iterable, List, Optional

import requests

from submission_models import Assignment, Attachment, Course, Submission

logger = logging.getLogger(__name__)

_NEXT_LINK = re.compile(r'<([^>]+)>;\s*rel="next"')

DEFAULT_RETRY_AFTER = 60.0


def retry_after_seconds(value: Optional[str], default: float = DEFAULT_RETRY_AFTER) -> float:
    """Seconds to wait for a Retry-After header given as delta-seconds or an HTTP-date"""
    if not value:
        return default
    try:
        seconds = float(value)
    except ValueError:
        seconds = None
    if seconds is not None:
        return max(seconds, 0.0) if math.isfinite(seconds) else default
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        retry_at = None
    if retry_at is None:
        logger.warning(f"Unreadable Retry-After header {value!r}; waiting {default} seconds")
        return default
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max((retry_at - datetime.now(timezone.utc)).total_seconds(), 0.0)


class CanvasAPIError(Exception):
    """Raised for transport failures and non-2xx Canvas responses"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CanvasAPI:
    """Canvas LMS API client for staging submissions"""

    def __init__(self, canvas_url: str, api_token: str, timeout: float = 30, max_retries: int = 3):
        """
        Initialize Canvas API client

        Args:
            canvas_url: Your Canvas instance URL (e.g., "https://yourschool.instructure.com")
            api_token: Your Canvas API access token
            timeout: Seconds to wait for each HTTP request
            max_retries: How many times to honor a 429 Retry-After before giving up
        """
        self.canvas_url = canvas_url.rstrip('/')
        self.api_token = api_token
        self.timeout = timeout
        self.max_retries = max_retries
        self.headers = {
            'Authorization': f'Bearer {api_token}',
        }

    def _request_url(self, method: str, url: str, **kwargs) -> requests.Response:
        """Make an authenticated request, waiting out rate limits"""
        attempt = 0
        while True:
            try:
                response = requests.request(method, url, headers=self.headers,
                                            timeout=self.timeout, **kwargs)
            except requests.RequestException as e:
                raise CanvasAPIError(f"{method} {url} failed: {e}") from e

            if response.status_code == 429 and attempt < self.max_retries:  # Rate limited
                attempt += 1
                retry_after = retry_after_seconds(response.headers.get('Retry-After'))
                logger.warning(f"Rate limited by Canvas. Waiting {retry_after} seconds "
                               f"(attempt {attempt}/{self.max_retries})...")
                time.sleep(retry_after)
                continue

            if not response.ok:
                raise CanvasAPIError(
                    f"{method} {url} returned HTTP {response.status_code}",
                    status_code=response.status_code,
                )
            return response

    def _make_request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Make authenticated request to Canvas API"""
        return self._request_url(method, f"{self.canvas_url}/api/v1/{endpoint}", **kwargs)

    def _get_all(self, endpoint: str, params: Optional[Dict] = None) -> List[Dict]:
        """Fetch every page of a Canvas API endpoint and return merged list"""
        params = dict(params or {})
        params.setdefault('per_page', 100)

        results = []
        response = self._make_request('GET', endpoint, params=params)
        while True:
            page = response.json()
            if isinstance(page, list):
                results.extend(page)
            else:
                results.append(page)

            # Follow the Link: <...>; rel="next" header for pagination
            match = _NEXT_LINK.search(response.headers.get('Link', ''))
            if not match:
                break
            response = self._request_url('GET', match.group(1))

        return results

    def get_courses(self) -> List[Course]:
        """Get list of courses for the authenticated user"""
        courses = self._get_all('courses')
        return [Course(id=c['id'], name=c.get('name') or f"Course {c['id']}")
                for c in courses if 'id' in c]

    def get_assignments(self, course_id: int) -> List[Assignment]:
        """Get assignments for a specific course"""
        assignments = self._get_all(f'courses/{course_id}/assignments')
        return [Assignment(id=a['id'], name=a.get('name') or f"Assignment {a['id']}",
                           due_at=a.get('due_at'))
                for a in assignments if 'id' in a]

    def get_assignment_submissions(self, course_id: int, assignment_id: int) -> List[Dict]:
        """
        Get all submissions for an assignment, with the submitting user embedded

        Args:
            course_id: Canvas course ID
            assignment_id: Canvas assignment ID

        Returns:
            List of raw submission objects
        """
        submissions = self._get_all(
            f'courses/{course_id}/assignments/{assignment_id}/submissions',
            params={'include[]': ['user']},
        )
        logger.info(f"Retrieved {len(submissions)} submissions for assignment {assignment_id}")
        return submissions

    def get_user_profile(self, user_id: int) -> Dict:
        """Get a user's profile (used when a submission lacks the user object)"""
        return self._make_request('GET', f'users/{user_id}/profile').json()

    def download_attachment(self, file_url: str) -> bytes:
        """
        Download a submission attachment from Canvas

        Args:
            file_url: Direct download URL for the file

        Returns:
            The file's bytes
        """
        return self._request_url('GET', file_url).content


def _submission_from_canvas(raw: Dict, profile: Optional[Dict]) -> Submission:
    user = raw.get('user') or profile or {}
    attachments = tuple(Attachment.from_canvas(a) for a in raw.get('attachments') or [])
    return Submission(
        submission_id=raw.get('user_id') or user.get('id'),
        attachments=attachments,
        sortable_name=user.get('sortable_name') or user.get('name'),
        workflow_state=raw.get('workflow_state'),
        submitted_at=raw.get('submitted_at'),
    )


def roster_sort_key(submission: Submission):
    return ((submission.sortable_name or '').casefold(), submission.submission_id)


def fetch_roster(api: CanvasAPI, course_id: int, assignment_id: int,
                 max_workers: int = 8) -> List[Submission]:
    """
    Fetch an assignment's submissions in a stable order

    Canvas does not promise a stable listing order, so the roster is sorted
    by sortable name and then user id; portions computed in separate runs
    therefore agree.
    """
    raw_submissions = api.get_assignment_submissions(course_id, assignment_id)

    missing = [raw['user_id'] for raw in raw_submissions if not raw.get('user') and raw.get('user_id')]
    profiles = {}
    if missing:
        logger.info(f"Fetching {len(missing)} user profiles...")
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            for user_id, profile in zip(missing, pool.map(api.get_user_profile, missing)):
                profiles[user_id] = profile

    roster = [_submission_from_canvas(raw, profiles.get(raw.get('user_id'))) for raw in raw_submissions]
    roster.sort(key=roster_sort_key)
    return roster


class PrefetchingDownloader:
    """
    Downloads a portion's attachments concurrently ahead of the grading loop

    Each URL's bytes (or CanvasAPIError) are handed out once; a later request
    for the same URL goes back to Canvas, so a grader's retry is a real retry.
    """

    def __init__(self, api: CanvasAPI, max_workers: int = 4):
        self.api = api
        self.max_workers = max_workers
        self._results = {}
        self._lock = threading.Lock()

    def _fetch(self, url: str) -> None:
        try:
            result = self.api.download_attachment(url)
        except CanvasAPIError as e:
            result = e
        with self._lock:
            self._results[url] = result

    def prefetch(self, submissions: Iterable[Submission]) -> int:
        """Download every processable submission's attachment; returns how many were attempted"""
        urls = [s.attachments[0].url for s in submissions if s.is_processable]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            list(pool.map(self._fetch, urls))
        logger.info(f"Prefetched {len(urls)} attachment(s)")
        return len(urls)

    def download_attachment(self, url: str) -> bytes:
        with self._lock:
            result = self._results.pop(url, None)
        if result is None:
            return self.api.download_attachment(url)
        if isinstance(result, CanvasAPIError):
            raise result
        return result
