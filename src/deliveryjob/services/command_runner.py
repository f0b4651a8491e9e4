"""Subprocess execution service for delivery-job."""

import subprocess
from typing import List, Mapping, Optional, Type

from deliveryjob.errors import DeliveryError


class CommandRunner:
    """Runs external commands with consistent error handling."""

    def __init__(self, logger, subprocess_module=subprocess):
        self.logger = logger
        self.subprocess = subprocess_module

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        cwd: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        user: Optional[str] = None,
        error_class: Type[DeliveryError] = DeliveryError,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        kwargs = {}
        if user is not None:
            kwargs["user"] = user
            kwargs["group"] = user

        try:
            result = self.subprocess.run(
                cmd,
                text=True,
                capture_output=capture_output,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                **kwargs,
            )
        except FileNotFoundError as exc:
            raise error_class(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except Exception as exc:
            raise error_class(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0 or not check:
            return result

        stderr = (result.stderr or "").strip() if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{stderr}"
        raise error_class(message)
