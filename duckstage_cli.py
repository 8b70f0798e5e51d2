#!/usr/bin/env python3
"""
DuckStage command line interface

Pick a course and assignment, split its submissions into portions, and
grade one portion submission by submission. Progress is saved after each
submission so an interrupted session picks up where it stopped.

Part of the DuckWorks Educational Automation Suite
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from canvas_integration import CanvasAPI, CanvasAPIError, PrefetchingDownloader, fetch_roster
from duckstage_config import ConfigurationError, StageSettings, TOOL_NAME, load_settings
from duckworks_framework import DuckWorksConfig, print_duckworks_header
from editor_launcher import ProcessLauncher
from grader_console import ConsoleGrader, EmptyMenuError
from portioning import InvalidPartitionRequest, partition
from progress_tracker import ProgressError, ProgressTracker
from secure_key_manager import CanvasCredentialStore
from session_driver import InvalidResumeIndex, SessionDriver, SessionState
from session_report import export_session_report
from submission_models import Assignment, Course
from submission_processor import SubmissionProcessor

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_BAD_SELECTION = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="duckstage",
        description="Stage Canvas code submissions portion by portion for hands-on grading",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument('--course', type=int, help='Canvas course ID (prompted when omitted)')
    parser.add_argument('--assignment', type=int, help='Canvas assignment ID (prompted when omitted)')
    parser.add_argument('--portions', type=int, help='number of portions to split the roster into')
    parser.add_argument('--portion', type=int, help='portion to grade, 1-based')
    parser.add_argument('--start', type=int,
                        help='1-based position to re-review from (defaults to the saved resume point)')
    parser.add_argument('--dest', help='directory submissions are extracted into (DUCKSTAGE_DEST)')
    parser.add_argument('--prefetch', action='store_true',
                        help="download the portion's remaining attachments before grading starts")
    parser.add_argument('--report', metavar='PATH', help='export a .xlsx or .csv report when the session ends')
    parser.add_argument('--status', action='store_true', help='show progress for every portion and exit')
    parser.add_argument('--reset-progress', action='store_true',
                        help="forget the selected portion's saved progress and exit")
    parser.add_argument('--save-credentials', action='store_true',
                        help='store the Canvas URL and token in the encrypted key store and exit')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='log file verbosity (LOG_LEVEL)')
    return parser


def configure_logging(level: str, log_file: str) -> None:
    """Full detail to the log file; only warnings reach the grader's terminal"""
    console = logging.StreamHandler()
    console.setLevel(logging.WARNING)
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            console,
        ]
    )


def save_credentials(input_func=input) -> int:
    store = CanvasCredentialStore(DuckWorksConfig(TOOL_NAME).tool_config_dir)
    canvas_url = input_func("Canvas URL (e.g. https://yourschool.instructure.com): ").strip()
    api_token = input_func("Canvas API token: ").strip()
    if not canvas_url or not api_token:
        print("❌ Both the Canvas URL and the API token are required")
        return EXIT_FATAL
    try:
        store.save_canvas_credentials(canvas_url, api_token)
    except (ValueError, OSError) as e:
        print(f"❌ Could not save credentials: {e}")
        return EXIT_FATAL
    print("✅ Canvas credentials saved and encrypted")
    return EXIT_OK


def select_course(api: CanvasAPI, console: ConsoleGrader, course_id: Optional[int]) -> Course:
    if course_id is not None:
        return Course(id=course_id, name=f"Course {course_id}")
    print("Loading courses...")
    return console.choose("Course", api.get_courses(), lambda c: f"{c.name} (ID: {c.id})")


def select_assignment(api: CanvasAPI, console: ConsoleGrader, course: Course,
                      assignment_id: Optional[int]) -> Assignment:
    if assignment_id is not None:
        return Assignment(id=assignment_id, name=f"Assignment {assignment_id}")
    print(f"Loading assignments for {course.name}...")
    return console.choose("Assignment", api.get_assignments(course.id),
                          lambda a: f"{a.name} (ID: {a.id}) - Due: {a.due_at or 'No due date'}")


def _report_format(path: str, settings: StageSettings) -> str:
    suffix = Path(path).suffix.lower().lstrip('.')
    return suffix if suffix in ('xlsx', 'csv') else settings.report_format


def run(args: argparse.Namespace, settings: StageSettings, api: CanvasAPI,
        tracker: ProgressTracker, console: ConsoleGrader) -> int:
    course = select_course(api, console, args.course)
    assignment = select_assignment(api, console, course, args.assignment)

    print("Fetching available submissions...")
    roster = fetch_roster(api, course.id, assignment.id)
    if not roster:
        print(f"⚠️  {assignment.name} has no submissions")
        return EXIT_OK
    print(f"Found {len(roster)} submissions")

    portion_count = args.portions if args.portions is not None else console.ask_number(
        f"Division count (1-{len(roster)}): ", minimum=1, maximum=len(roster))
    portions = partition(roster, portion_count)

    if args.status:
        console.describe_markers(tracker.markers(course.id, assignment.id), [p.size for p in portions])
        return EXIT_OK

    portion_number = args.portion if args.portion is not None else console.ask_number(
        f"Portion (1-{portion_count}, default 1): ", minimum=1, maximum=portion_count, default=1)
    portion_index = portion_number - 1
    if not 1 <= portion_number <= portion_count:
        raise InvalidPartitionRequest(f"Portion {portion_number} does not exist (choose 1-{portion_count})")

    if args.reset_progress:
        if tracker.reset(course.id, assignment.id, portion_index):
            print(f"✅ Progress for portion {portion_number} cleared")
        else:
            print(f"📝 Portion {portion_number} had no saved progress")
        return EXIT_OK

    downloader = PrefetchingDownloader(api) if args.prefetch else api
    driver = SessionDriver(
        processor=SubmissionProcessor(downloader),
        tracker=tracker,
        launcher=ProcessLauncher(settings.editor, settings.shell),
        console=console,
        destination_root=Path(args.dest) if args.dest else settings.destination_root,
        disclaimer=settings.readme_disclaimer,
    )

    start_index = args.start - 1 if args.start is not None else None
    session = driver.select_portion(course.id, assignment.id, roster, portion_count,
                                    portion_index, start_index)

    if session.state != SessionState.COMPLETE:
        if session.marker:
            saved = tracker.updated_at(course.id, assignment.id, portion_index)
            print(f"↩️  Resuming portion {portion_number} at submission {session.next_index + 1} "
                  f"of {session.portion.size} (saved {saved})")
        if args.prefetch:
            print("📥 Prefetching submissions...")
            downloader.prefetch(session.portion.submissions[session.next_index:])

    session = driver.run(session)

    if args.report and session.records:
        path = export_session_report(session.records, _report_format(args.report, settings), args.report)
        print(f"📊 Report saved to {path}")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    print_duckworks_header(TOOL_NAME)

    try:
        if args.save_credentials:
            return save_credentials()

        try:
            settings = load_settings()
        except ConfigurationError as e:
            print(f"❌ Configuration error: {e}")
            return EXIT_FATAL

        configure_logging(args.log_level or settings.log_level, settings.log_file)

        api = CanvasAPI(settings.canvas_url, settings.canvas_token, timeout=settings.http_timeout)
        tracker = ProgressTracker(settings.progress_file)
        console = ConsoleGrader()

        return run(args, settings, api, tracker, console)
    except (CanvasAPIError, ProgressError) as e:
        logger.error(f"Aborting: {e}")
        print(f"❌ {e}")
        return EXIT_FATAL
    except (InvalidPartitionRequest, InvalidResumeIndex, EmptyMenuError) as e:
        logger.error(f"Invalid selection: {e}")
        print(f"❌ {e}")
        return EXIT_BAD_SELECTION
    except (KeyboardInterrupt, EOFError):
        print("\nCancelled.")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
