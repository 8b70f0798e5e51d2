"""
Console prompts for DuckStage grading sessions
Part of the DuckWorks Educational Automation Suite
"""

from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from session_driver import GraderChoice, GradingSession, SessionState
from submission_models import Ready, Submission

T = TypeVar('T')


class EmptyMenuError(ValueError):
    """Raised when a selection menu has nothing to offer"""


class ConsoleGrader:
    """Grader-facing prompts written to the terminal"""

    def __init__(self, input_func: Callable[[str], str] = input):
        self.input = input_func

    def _ask(self, prompt: str, choices: Dict[str, GraderChoice], default: str) -> GraderChoice:
        while True:
            try:
                answer = self.input(prompt).strip().lower() or default
            except EOFError:
                print()
                return GraderChoice.PAUSE
            if answer in choices:
                return choices[answer]
            print(f"   Please answer one of: {', '.join(sorted(choices))}")

    def announce(self, session: GradingSession, index: int, submission: Submission) -> None:
        print(f"\n🦆 [{index + 1}/{session.portion.size}] Grading {submission.display_name} "
              f"(id {submission.submission_id})")

    def confirm_ready(self, submission: Submission, outcome: Ready,
                      attestation: Dict[str, Dict]) -> GraderChoice:
        print(f"   📁 {outcome.directory}")
        print("   File contains name:")
        for path, found in attestation['name'].items():
            print(f"\t{'✔' if found else '✗'} {path.relative_to(outcome.directory)}")
        if attestation['disclaimer']:
            print("   File contains readme disclaimer:")
            for path, found in attestation['disclaimer'].items():
                print(f"\t{'✔' if found else '✗'} {path.relative_to(outcome.directory)}")
        else:
            print("   ⚠️  No README found")

        return self._ask("   Press Enter to open the editor and shell, or 'q' to pause: ",
                         {'': GraderChoice.CONTINUE, 'q': GraderChoice.PAUSE}, '')

    def resolve_error(self, submission: Submission, outcome) -> GraderChoice:
        print(f"   ❌ {submission.display_name} (id {submission.submission_id}) "
              f"[{outcome.kind}]: {outcome.describe()}")
        if outcome.is_transient:
            return self._ask("   [r]etry, [s]kip, or [q] pause? (default r): ",
                             {'r': GraderChoice.RETRY, 's': GraderChoice.SKIP, 'q': GraderChoice.PAUSE}, 'r')
        return self._ask("   Press Enter to skip this submission, or 'q' to pause: ",
                         {'': GraderChoice.CONTINUE, 'q': GraderChoice.PAUSE}, '')

    def resolve_launcher_failure(self, submission: Submission, errors: Sequence[Exception]) -> GraderChoice:
        for error in errors:
            print(f"   ⚠️  Could not open files for {submission.display_name}: {error}")
        return self._ask("   [r]etry, [s]kip without grading, or [q] pause? (default r): ",
                         {'r': GraderChoice.RETRY, 's': GraderChoice.SKIP, 'q': GraderChoice.PAUSE}, 'r')

    def finished(self, session: GradingSession) -> None:
        portion_label = f"portion {session.portion.index + 1}/{session.portion_count}"
        if session.state == SessionState.COMPLETE:
            print(f"\n✅ {portion_label.capitalize()} complete ({session.portion.size} submissions)")
        else:
            print(f"\n⏸️  Paused {portion_label} at submission {session.next_index + 1} "
                  f"of {session.portion.size} ({session.remaining} left); run again to resume")

    def choose(self, label: str, items: Sequence[T], describe: Callable[[T], str]) -> T:
        """Numbered menu selection, re-prompting until a valid number is given"""
        if not items:
            raise EmptyMenuError(f"No {label.lower()}s to choose from")
        print(f"\n{label}s:")
        for i, item in enumerate(items, 1):
            print(f"   {i}. {describe(item)}")
        while True:
            try:
                choice = int(self.input(f"\nEnter {label.lower()} number (1-{len(items)}): "))
                if 1 <= choice <= len(items):
                    return items[choice - 1]
                print("Invalid choice. Please try again.")
            except ValueError:
                print("Please enter a valid number.")

    def ask_number(self, prompt: str, minimum: int = 1, maximum: Optional[int] = None,
                   default: Optional[int] = None) -> int:
        while True:
            raw = self.input(prompt).strip()
            if not raw and default is not None:
                return default
            try:
                value = int(raw)
            except ValueError:
                print("Please enter a valid number.")
                continue
            if value < minimum or (maximum is not None and value > maximum):
                upper = maximum if maximum is not None else "any"
                print(f"Please enter a number between {minimum} and {upper}.")
                continue
            return value

    def describe_markers(self, markers: Dict[int, Dict], sizes: List[int]) -> None:
        print("\nProgress by portion:")
        for index, size in enumerate(sizes):
            marker = markers.get(index)
            done = min(int(marker['next_index']), size) if marker else 0
            saved = f" (saved {marker['updated_at']})" if marker else ""
            status = "✅" if done >= size else "  "
            print(f"   {status} Portion {index + 1}: {done}/{size}{saved}")
