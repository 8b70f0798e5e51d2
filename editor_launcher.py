"""
Editor and shell launching for the grader

Both calls block until the grader closes the program, the way the
original command-line grading flow worked.
"""

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Optional, Sequence, Union

logger = logging.getLogger(__name__)


class LauncherError(Exception):
    """Raised when the editor or shell cannot be started"""


class ProcessLauncher:
    """Runs $EDITOR and $SHELL attached to the grader's terminal"""

    def __init__(self, editor: Optional[str] = None, shell: Optional[str] = None):
        self.editor = editor or os.environ.get("EDITOR") or "vi"
        self.shell = shell or os.environ.get("SHELL") or "sh"

    def _run(self, command, cwd: Union[str, Path]) -> int:
        logger.debug(f"Running {command} in {cwd}")
        try:
            # stdio is inherited so the editor/shell own the terminal until they exit
            completed = subprocess.run(command, cwd=str(cwd))
        except OSError as e:
            raise LauncherError(f"could not start {command[0]}: {e}") from e
        return completed.returncode

    def open_editor(self, paths: Sequence[Union[str, Path]], cwd: Union[str, Path]) -> int:
        """Open every path in one editor invocation"""
        command = shlex.split(self.editor) + [str(p) for p in paths]
        return self._run(command, cwd)

    def spawn_shell(self, cwd: Union[str, Path]) -> int:
        """Open an interactive shell in the submission directory"""
        return self._run(shlex.split(self.shell), cwd)
