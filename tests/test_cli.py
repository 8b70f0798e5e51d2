"""
Tests for the duckstage command line flow (Canvas and processes are faked)
"""

import pytest

import duckstage_cli
from duckstage_config import ConfigurationError, StageSettings
from grader_console import ConsoleGrader
from progress_tracker import ProgressTracker
from submission_models import Assignment, Course
from stage_helpers import RecordingLauncher, build_zip


class FakeCanvas:
    def __init__(self, students=5):
        self.zip_bytes = build_zip({"hw/main.c": "int main(void) { return 0; }"})
        self.raw = [
            {"user_id": i, "user": {"id": i, "sortable_name": f"Student{i}, Test"},
             "attachments": [{"filename": "hw.zip", "url": f"https://files/{i}", "size": 1}]}
            for i in range(1, students + 1)
        ]
        self.downloads = []

    def get_courses(self):
        return [Course(1, "Systems I"), Course(2, "Systems II")]

    def get_assignments(self, course_id):
        return [Assignment(9, "Lab 1")]

    def get_assignment_submissions(self, course_id, assignment_id):
        return self.raw

    def get_user_profile(self, user_id):
        raise AssertionError("profiles are embedded")

    def download_attachment(self, url):
        self.downloads.append(url)
        return self.zip_bytes


def make_settings(tmp_path):
    return StageSettings(
        canvas_url="https://canvas.test",
        canvas_token="tok",
        destination_root=tmp_path / "submissions",
        progress_file=tmp_path / "progress.json",
        report_format="csv",
    )


def scripted_input(answers):
    answers = list(answers)

    def fake_input(prompt):
        return answers.pop(0)
    return fake_input


@pytest.fixture
def recording_launcher(monkeypatch):
    launcher = RecordingLauncher()
    monkeypatch.setattr(duckstage_cli, "ProcessLauncher", lambda editor, shell: launcher)
    return launcher


def test_interactive_session_with_report(tmp_path, recording_launcher):
    canvas = FakeCanvas(students=5)
    tracker = ProgressTracker(tmp_path / "progress.json")
    # course 2, assignment 1, two portions, portion 2, then Enter for each of its 3 submissions
    console = ConsoleGrader(scripted_input(["2", "1", "2", "2", "", "", ""]))
    report = tmp_path / "report.csv"
    args = duckstage_cli.build_parser().parse_args(["--report", str(report)])

    assert duckstage_cli.run(args, make_settings(tmp_path), canvas, tracker, console) == 0

    assert canvas.downloads == ["https://files/3", "https://files/4", "https://files/5"]
    assert len(recording_launcher.shell_calls) == 3
    assert tracker.load(2, 9, 1) == 3
    assert report.exists()


def test_pause_then_resume(tmp_path, recording_launcher):
    canvas = FakeCanvas(students=3)
    tracker = ProgressTracker(tmp_path / "progress.json")
    args = duckstage_cli.build_parser().parse_args(["--course", "1", "--assignment", "9",
                                                    "--portions", "1", "--portion", "1"])

    duckstage_cli.run(args, make_settings(tmp_path), canvas, tracker, ConsoleGrader(scripted_input(["", "q"])))
    assert tracker.load(1, 9, 0) == 1

    duckstage_cli.run(args, make_settings(tmp_path), canvas, tracker, ConsoleGrader(scripted_input(["", ""])))
    assert tracker.load(1, 9, 0) == 3
    assert canvas.downloads == ["https://files/1", "https://files/2", "https://files/2", "https://files/3"]


def test_status_and_reset(tmp_path, capsys):
    canvas = FakeCanvas(students=4)
    tracker = ProgressTracker(tmp_path / "progress.json")
    tracker.advance(1, 9, 1, 2)
    console = ConsoleGrader(scripted_input([]))
    settings = make_settings(tmp_path)
    parse = duckstage_cli.build_parser().parse_args

    duckstage_cli.run(parse(["--course", "1", "--assignment", "9", "--portions", "2", "--status"]),
                      settings, canvas, tracker, console)
    out = capsys.readouterr().out
    assert "Portion 1: 0/2" in out
    assert "Portion 2: 2/2" in out

    duckstage_cli.run(parse(["--course", "1", "--assignment", "9", "--portions", "2", "--portion", "2",
                             "--reset-progress"]), settings, canvas, tracker, console)
    assert tracker.load(1, 9, 1) == 0
    assert canvas.downloads == []


def test_main_reports_configuration_error(monkeypatch):
    def broken_settings():
        raise ConfigurationError("CANVAS_ACCESS_TOKEN is not set")
    monkeypatch.setattr(duckstage_cli, "load_settings", broken_settings)

    assert duckstage_cli.main([]) == duckstage_cli.EXIT_FATAL


def test_main_rejects_impossible_partition(tmp_path, monkeypatch):
    monkeypatch.setattr(duckstage_cli, "load_settings", lambda: make_settings(tmp_path))
    monkeypatch.setattr(duckstage_cli, "configure_logging", lambda level, log_file: None)
    monkeypatch.setattr(duckstage_cli, "CanvasAPI", lambda *args, **kwargs: FakeCanvas(students=2))

    code = duckstage_cli.main(["--course", "1", "--assignment", "9", "--portions", "3", "--portion", "1"])
    assert code == duckstage_cli.EXIT_BAD_SELECTION


def test_ctrl_c_at_password_prompt_exits_cleanly(monkeypatch):
    def interrupted():
        raise KeyboardInterrupt
    monkeypatch.setattr(duckstage_cli, "load_settings", interrupted)

    assert duckstage_cli.main([]) == duckstage_cli.EXIT_INTERRUPTED


def test_ctrl_c_while_saving_credentials_exits_cleanly(monkeypatch):
    def interrupted():
        raise KeyboardInterrupt
    monkeypatch.setattr(duckstage_cli, "save_credentials", interrupted)

    assert duckstage_cli.main(["--save-credentials"]) == duckstage_cli.EXIT_INTERRUPTED


@pytest.mark.parametrize("flags", [
    ["--portions", "0", "--portion", "1"],
    ["--portions", "2", "--portion", "0"],
    ["--portions", "2", "--portion", "3", "--reset-progress"],
])
def test_zero_or_out_of_range_portion_flags_are_rejected(tmp_path, monkeypatch, flags):
    monkeypatch.setattr(duckstage_cli, "load_settings", lambda: make_settings(tmp_path))
    monkeypatch.setattr(duckstage_cli, "configure_logging", lambda level, log_file: None)
    monkeypatch.setattr(duckstage_cli, "CanvasAPI", lambda *args, **kwargs: FakeCanvas(students=4))

    code = duckstage_cli.main(["--course", "1", "--assignment", "9"] + flags)
    assert code == duckstage_cli.EXIT_BAD_SELECTION


def test_empty_course_list_is_a_bad_selection(tmp_path, monkeypatch):
    class NoCourses(FakeCanvas):
        def get_courses(self):
            return []

    monkeypatch.setattr(duckstage_cli, "load_settings", lambda: make_settings(tmp_path))
    monkeypatch.setattr(duckstage_cli, "configure_logging", lambda level, log_file: None)
    monkeypatch.setattr(duckstage_cli, "CanvasAPI", lambda *args, **kwargs: NoCourses())

    assert duckstage_cli.main([]) == duckstage_cli.EXIT_BAD_SELECTION
