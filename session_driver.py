"""
Session Driver

Walks a grader through one portion of an assignment's roster, one
submission at a time:

    IDLE -> PORTION_SELECTED -> ITERATING -> PAUSED | COMPLETE

The progress marker only moves after the grader is done with a submission
(graded it, or acknowledged/skipped its error). Pausing before that point
leaves the in-flight submission to be staged again on resume.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

from editor_launcher import LauncherError
from portioning import InvalidPartitionRequest, partition
from progress_tracker import ProgressTracker
from submission_models import Portion, Ready, Submission, SubmissionRecord
from submission_processor import README_DISCLAIMER, check_attestation

logger = logging.getLogger(__name__)


class InvalidResumeIndex(ValueError):
    """Raised when a requested start position would skip unprocessed submissions"""


class SessionState(Enum):
    IDLE = "idle"
    PORTION_SELECTED = "portion_selected"
    ITERATING = "iterating"
    PAUSED = "paused"
    COMPLETE = "complete"


class GraderChoice(Enum):
    CONTINUE = "continue"   # open the files / acknowledge the error
    RETRY = "retry"         # stage the same submission again
    SKIP = "skip"           # give up on a transient error and move on
    PAUSE = "pause"         # stop here without advancing


@dataclass
class GradingSession:
    """Everything one grading pass over a portion needs to carry around"""

    course_id: int
    assignment_id: int
    portion_count: int
    portion: Portion
    marker: int                  # stored resume index
    next_index: int              # next position the loop will stage
    state: SessionState = SessionState.IDLE
    records: List[SubmissionRecord] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return max(self.portion.size - self.next_index, 0)


class SessionDriver:
    """Runs the fetch -> extract -> verify -> present loop for one portion"""

    def __init__(self, processor, tracker: ProgressTracker, launcher, console,
                 destination_root, disclaimer: str = README_DISCLAIMER):
        """
        Args:
            processor: SubmissionProcessor (or anything with process(submission, root))
            tracker: ProgressTracker owning the resume markers
            launcher: Object with open_editor(paths, cwd) and spawn_shell(cwd)
            console: Grader-facing prompts (see grader_console.ConsoleGrader)
            destination_root: Directory under which submissions are extracted
            disclaimer: README sentence shown in the attestation checklist
        """
        self.processor = processor
        self.tracker = tracker
        self.launcher = launcher
        self.console = console
        self.destination_root = destination_root
        self.disclaimer = disclaimer

    def select_portion(self, course_id: int, assignment_id: int, roster: Sequence[Submission],
                       portion_count: int, portion_index: int,
                       start_index: Optional[int] = None) -> GradingSession:
        """
        Compute the portion and its resume point

        Args:
            course_id: Canvas course ID
            assignment_id: Canvas assignment ID
            roster: Ordered submissions for the assignment
            portion_count: How many portions the roster is split into
            portion_index: 0-based portion to grade
            start_index: Optional earlier position to re-review from

        Returns:
            A session in PORTION_SELECTED, or COMPLETE when nothing is left
        """
        portions = partition(roster, portion_count)
        if not 0 <= portion_index < len(portions):
            raise InvalidPartitionRequest(
                f"Portion {portion_index + 1} does not exist (choose 1-{portion_count})"
            )
        portion = portions[portion_index]

        stored = self.tracker.load(course_id, assignment_id, portion_index)
        if stored > portion.size:
            logger.warning(f"Stored progress {stored} exceeds portion size {portion.size}; "
                           f"the roster has shrunk since it was saved")
            stored = portion.size

        if start_index is None:
            start_index = stored
        elif not 0 <= start_index <= stored:
            raise InvalidResumeIndex(
                f"Can only restart at positions 1-{stored + 1} of portion {portion_index + 1}; "
                f"later submissions have not been staged yet"
            )

        session = GradingSession(
            course_id=course_id,
            assignment_id=assignment_id,
            portion_count=portion_count,
            portion=portion,
            marker=stored,
            next_index=start_index,
        )
        session.state = SessionState.COMPLETE if start_index >= portion.size else SessionState.PORTION_SELECTED
        logger.info(f"Selected portion {portion_index + 1}/{portion_count} ({portion.size} submissions), "
                    f"starting at {start_index}, state {session.state.value}")
        return session

    def run(self, session: GradingSession) -> GradingSession:
        """Iterate the portion until it is complete or the grader pauses"""
        if session.state == SessionState.COMPLETE:
            self.console.finished(session)
            return session

        session.state = SessionState.ITERATING
        try:
            while session.next_index < session.portion.size:
                if not self._stage(session, session.next_index):
                    session.state = SessionState.PAUSED
                    break
        except KeyboardInterrupt:
            logger.info(f"Interrupted at position {session.next_index} of portion {session.portion.index}")
            session.state = SessionState.PAUSED

        if session.state == SessionState.ITERATING:
            session.state = SessionState.COMPLETE
        self.console.finished(session)
        return session

    def _stage(self, session: GradingSession, index: int) -> bool:
        """Handle one position; False means the grader paused before finishing it"""
        submission = session.portion.submissions[index]
        self.console.announce(session, index, submission)

        while True:
            outcome = self.processor.process(submission, self.destination_root)

            if isinstance(outcome, Ready):
                attestation = check_attestation(submission, outcome.source_files, self.disclaimer)
                if self.console.confirm_ready(submission, outcome, attestation) == GraderChoice.PAUSE:
                    return False
                choice = self._present(submission, outcome)
                if choice == GraderChoice.PAUSE:
                    return False
                decision = 'skipped' if choice == GraderChoice.SKIP else 'graded'
                self._complete(session, index, submission, outcome, decision)
                return True

            choice = self.console.resolve_error(submission, outcome)
            if choice == GraderChoice.PAUSE:
                return False
            if choice == GraderChoice.RETRY and outcome.is_transient:
                logger.info(f"Retrying submission {submission.submission_id} ({outcome.kind})")
                continue

            decision = 'skipped' if outcome.is_transient else 'acknowledged'
            self._complete(session, index, submission, outcome, decision)
            return True

    def _present(self, submission: Submission, outcome: Ready) -> GraderChoice:
        """Open the editor, then the shell; on a failed launch the grader decides what happens next"""
        while True:
            failures = []
            try:
                self.launcher.open_editor(outcome.source_files, outcome.directory)
            except LauncherError as e:
                failures.append(e)
            try:
                self.launcher.spawn_shell(outcome.directory)
            except LauncherError as e:
                failures.append(e)

            if not failures:
                return GraderChoice.CONTINUE
            for error in failures:
                logger.error(f"Submission {submission.submission_id}: {error}")

            choice = self.console.resolve_launcher_failure(submission, failures)
            if choice != GraderChoice.RETRY:
                return choice
            logger.info(f"Relaunching editor and shell for submission {submission.submission_id}")

    def _complete(self, session: GradingSession, index: int, submission: Submission,
                  outcome, decision: str) -> None:
        new_index = index + 1
        # Re-reviewing earlier positions must not rewind stored progress
        if new_index > session.marker:
            self.tracker.advance(session.course_id, session.assignment_id,
                                 session.portion.index, new_index)
            session.marker = new_index
        session.next_index = new_index

        session.records.append(SubmissionRecord(
            portion_index=session.portion.index,
            position=index,
            submission_id=submission.submission_id,
            student_name=submission.display_name,
            outcome=outcome.kind,
            detail=outcome.describe(),
            matched_files=len(outcome.source_files) if isinstance(outcome, Ready) else 0,
            decision=decision,
            recorded_at=datetime.now().isoformat(timespec='seconds'),
        ))
        logger.info(f"Submission {submission.submission_id} {decision} ({outcome.kind})")
