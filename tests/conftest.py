"""
Shared fixtures for DuckStage tests
"""

import pytest

from stage_helpers import RecordingLauncher, build_zip


@pytest.fixture
def c_project_zip():
    return build_zip({
        "lab1/main.c": "/* Student01 */ int main(void) { return 0; }\n",
        "lab1/main.h": "#pragma once\n",
        "lab1/output.txt": "42\n",
    })


@pytest.fixture
def launcher():
    return RecordingLauncher()


@pytest.fixture
def progress_file(tmp_path):
    return tmp_path / "state" / "progress.json"
