"""Re-runs `delivery job` inside a docker container and relays its output."""

import os
import subprocess
import sys
from typing import BinaryIO, List, Optional

from deliveryjob.constants import DEFAULT_DOCKER_DNS
from deliveryjob.errors import ContainerIoFailed, ContainerSpawnFailed
from deliveryjob.errors_catalog import actionable_error
from deliveryjob.models import RunOptions

# (flag, RunOptions attribute) pairs forwarded as `flag value` when non-empty.
VALUE_FLAGS = (
    ("--change", "change"),
    ("--for", "pipeline"),
    ("--job-root", "job_root"),
    ("--project", "project"),
    ("--user", "user"),
    ("--server", "server"),
    ("--ent", "ent"),
    ("--org", "org"),
    ("--patchset", "patchset"),
    ("--change-id", "change_id"),
    ("--git-url", "git_url"),
    ("--shasum", "shasum"),
    ("--branch", "branch"),
    ("--config", "config"),
    ("--log-file", "log_file"),
)

# Forwarded as a bare flag when true.
BOOL_FLAGS = (
    ("--skip-default", "skip_default"),
    ("--local", "local"),
    ("--verbose", "verbose"),
)


def relay_output(stream: BinaryIO, sink: BinaryIO):
    """Copies `stream` to `sink` a line at a time, flushing after every line."""
    for line in iter(stream.readline, b""):
        sink.write(line)
        sink.flush()


class ContainerDelegate:
    """Builds the docker invocation for a job and streams it to our stdout."""

    def __init__(
        self,
        logger,
        console,
        subprocess_module=subprocess,
        output: Optional[BinaryIO] = None,
        docker_cmd: str = "docker",
        dns: str = DEFAULT_DOCKER_DNS,
    ):
        self.logger = logger
        self.console = console
        self.subprocess = subprocess_module
        self.output = output
        self.docker_cmd = docker_cmd
        self.dns = dns

    def _config_mount(self, opts: RunOptions, cwd: str) -> Optional[str]:
        """Read-only mount for a `--config` file that lives outside `cwd`."""
        if not opts.config:
            return None
        config_dir = os.path.dirname(os.path.abspath(os.path.join(cwd, opts.config)))
        if os.path.commonpath([config_dir, os.path.abspath(cwd)]) == os.path.abspath(cwd):
            return None
        return f"{config_dir}:{config_dir}:ro"

    def build_command(self, opts: RunOptions, cwd: str) -> List[str]:
        cmd = [
            self.docker_cmd,
            "run",
            "-t",
            "-i",
            "-v",
            f"{cwd}:{cwd}",
            "-w",
            cwd,
            "--dns",
            self.dns,
            opts.docker_image,
            "delivery",
            "job",
            opts.stage,
            opts.phases,
        ]

        config_mount = self._config_mount(opts, cwd)
        if config_mount:
            cmd[8:8] = ["-v", config_mount]

        for flag, attribute in VALUE_FLAGS:
            value = getattr(opts, attribute)
            if value:
                cmd.extend([flag, value])

        for flag, attribute in BOOL_FLAGS:
            if getattr(opts, attribute):
                cmd.append(flag)

        return cmd

    def stream(self, cmd: List[str], image: str = "") -> int:
        self.logger.debug("Executing: %s", " ".join(cmd))
        try:
            process = self.subprocess.Popen(
                cmd,
                stdout=self.subprocess.PIPE,
                stderr=self.subprocess.STDOUT,
            )
        except OSError as exc:
            raise ContainerSpawnFailed(
                actionable_error("container_spawn_failed", image=image or cmd[0])
            ) from exc

        if not process.stdout:
            process.kill()
            raise ContainerSpawnFailed("failed to execute container: no output stream")

        sink = self.output if self.output is not None else sys.stdout.buffer
        try:
            with process.stdout:
                relay_output(process.stdout, sink)
        except OSError as exc:
            process.kill()
            process.wait()
            raise ContainerIoFailed(f"Lost container output stream: {exc}") from exc

        return process.wait()

    def run(self, opts: RunOptions, cwd: str) -> int:
        self.console.print(f"[blue]Running job in container {opts.docker_image}[/blue]")
        return self.stream(self.build_command(opts, cwd), image=opts.docker_image)
