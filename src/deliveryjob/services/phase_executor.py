"""Bootstrap, configure and run a job's phases in a workspace."""

import logging
from enum import Enum
from typing import Optional

from rich.console import Console

from deliveryjob.constants import DEFAULT_PHASE
from deliveryjob.errors import DeliveryError
from deliveryjob.models import ChangeRecord, Privilege, ResolvedChange


class JobState(Enum):
    PENDING = "pending"
    BOOTSTRAPPING = "bootstrapping"
    CONFIGURING = "configuring"
    EXECUTING = "executing"
    DONE = "done"
    FAILED = "failed"


def privilege_policy(privileged: bool) -> Privilege:
    return Privilege.DROP if privileged else Privilege.NO_DROP


def runs_default_phase(privileged: bool, skip_default: bool) -> bool:
    return privileged and not skip_default


class PhaseExecutor:
    """Drives a workspace through bootstrapping, configuring and executing.

    The first failure moves the executor to FAILED and is re-raised; nothing after it
    runs and nothing is retried.
    """

    def __init__(self, workspace, logger: logging.Logger, console: Console):
        self.workspace = workspace
        self.logger = logger
        self.console = console
        self.state = JobState.PENDING
        self.failed_in: Optional[JobState] = None

    def _transition(self, state: JobState):
        self.logger.debug("Job state: %s -> %s", self.state.value, state.value)
        self.state = state

    def execute(
        self,
        resolved: ResolvedChange,
        clone_url: str,
        pipeline: str,
        shasum: str,
        config,
        change: ChangeRecord,
        workspace_path: str,
        privileged: bool,
        skip_default: bool,
    ) -> int:
        try:
            self._transition(JobState.BOOTSTRAPPING)
            self.workspace.build()
            self.workspace.setup_repo_for_change(clone_url, resolved.reference, pipeline, shasum)

            self._transition(JobState.CONFIGURING)
            self.console.print("[white]Configuring the job[/white]")
            self.workspace.filesystem.remove_tree(self.workspace.build_cookbook)
            self.workspace.setup_chef_for_job(config, change, workspace_path)

            self._transition(JobState.EXECUTING)
            self.console.print("[white]Running the job[/white]")
            if runs_default_phase(privileged, skip_default):
                self.console.print("[yellow]Setting up the builder[/yellow]")
                self.workspace.run_job(DEFAULT_PHASE, Privilege.NO_DROP, resolved.is_local)

            phases = change.phase.split()
            label = "phases" if len(phases) > 1 else "phase"
            self.console.print(f"[magenta]Running {label} {', '.join(phases)}[/magenta]")
            self.workspace.run_job(change.phase, privilege_policy(privileged), resolved.is_local)
        except DeliveryError:
            self.failed_in = self.state
            self._transition(JobState.FAILED)
            raise

        self._transition(JobState.DONE)
        return 0
