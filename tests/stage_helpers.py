"""
Test doubles and builders shared by the DuckStage tests
"""

import io
import zipfile

from canvas_integration import CanvasAPIError
from session_driver import GraderChoice
from submission_models import Attachment, Submission


def build_zip(files):
    """Return zip bytes holding {name: text} entries"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as z:
        for name, content in files.items():
            z.writestr(name, content)
    return buffer.getvalue()


def make_submission(submission_id, name=None, attachments=1):
    return Submission(
        submission_id=submission_id,
        attachments=tuple(
            Attachment(filename=f"lab{i}.zip", url=f"https://canvas.test/files/{submission_id}/{i}", size=10)
            for i in range(attachments)
        ),
        sortable_name=name or f"Student{submission_id:02d}, Test",
    )


class FakeDownloader:
    """Serves zip bytes per URL and counts calls"""

    def __init__(self, payloads=None, default=None):
        self.payloads = dict(payloads or {})
        self.default = default
        self.calls = []

    def download_attachment(self, url):
        self.calls.append(url)
        payload = self.payloads.get(url, self.default)
        if isinstance(payload, list):
            payload = payload.pop(0)
        if isinstance(payload, Exception):
            raise payload
        if payload is None:
            raise CanvasAPIError(f"GET {url} returned HTTP 404", status_code=404)
        return payload


class RecordingLauncher:
    def __init__(self):
        self.editor_calls = []
        self.shell_calls = []

    def open_editor(self, paths, cwd):
        self.editor_calls.append((list(paths), cwd))
        return 0

    def spawn_shell(self, cwd):
        self.shell_calls.append(cwd)
        return 0


class ScriptedConsole:
    """Answers prompts from a script; continues by default and skips failed launches"""

    def __init__(self, ready=None, errors=None, launch_choices=None):
        self.ready = list(ready or [])
        self.errors = list(errors or [])
        self.launch_choices = list(launch_choices or [])
        self.announced = []
        self.reported = []
        self.launcher_failures = []
        self.finished_states = []

    def announce(self, session, index, submission):
        self.announced.append((index, submission.submission_id))

    def confirm_ready(self, submission, outcome, attestation):
        return self.ready.pop(0) if self.ready else GraderChoice.CONTINUE

    def resolve_error(self, submission, outcome):
        self.reported.append((submission.submission_id, outcome.kind))
        return self.errors.pop(0) if self.errors else GraderChoice.CONTINUE

    def resolve_launcher_failure(self, submission, errors):
        self.launcher_failures.append((submission.submission_id, [str(e) for e in errors]))
        return self.launch_choices.pop(0) if self.launch_choices else GraderChoice.SKIP

    def finished(self, session):
        self.finished_states.append(session.state)


