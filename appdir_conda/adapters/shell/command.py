"""
Shell command adapter — run an external tool and capture the outcome.

No timeout is applied: installers and conda solves can legitimately
take a very long time, and a hung tool hangs the run.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import time
from pathlib import Path

from appdir_conda.adapters.base import Adapter
from appdir_conda.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class ShellCommandAdapter(Adapter):
    """Execute an argv list and return a Receipt.

    Streamed actions inherit stdout/stderr so the tool's own
    diagnostics reach the user; otherwise output is captured.
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, action: Action) -> tuple[bool, str]:
        if not action.argv:
            return False, "Empty command"

        if action.cwd and not Path(action.cwd).is_dir():
            return False, f"Working directory does not exist: {action.cwd}"

        return True, ""

    def execute(self, action: Action) -> Receipt:
        command = shlex.join(action.argv)
        logger.debug("Executing: %s (cwd=%s)", command, action.cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                action.argv,
                cwd=action.cwd,
                env=action.env,
                capture_output=not action.stream,
                text=True,
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Command execution error: {e}",
                metadata={"command": command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = (result.stdout or "").strip()
        stderr = (result.stderr or "").strip()

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=action.id,
                output=output,
                duration_ms=elapsed_ms,
                return_code=result.returncode,
                metadata={"command": command, "stderr": stderr},
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=action.id,
            error=stderr or f"Command exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            return_code=result.returncode,
            metadata={"command": command, "stdout": output},
        )
