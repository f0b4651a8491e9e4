"""Shared domain models for delivery-job."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Mapping, Optional

from .constants import DEFAULT_PATCHSET


class Privilege(Enum):
    """Whether a phase script runs as the build user or keeps our identity."""

    DROP = "drop"
    NO_DROP = "no_drop"


@dataclass(frozen=True)
class RunOptions:
    """Snapshot of `delivery job` arguments. Empty strings mean "not given"."""

    stage: str
    phases: str
    server: str = ""
    ent: str = ""
    org: str = ""
    user: str = ""
    project: str = ""
    pipeline: str = ""
    branch: str = ""
    change: str = ""
    change_id: str = ""
    patchset: str = ""
    shasum: str = ""
    git_url: str = ""
    job_root: str = ""
    docker_image: str = ""
    config: str = ""
    log_file: str = ""
    local: bool = False
    skip_default: bool = False
    verbose: bool = False

    @property
    def phase_list(self) -> List[str]:
        return self.phases.split()


@dataclass(frozen=True)
class RunEnvironment:
    """Process-wide state read once at startup."""

    cwd: str
    home: Optional[str]
    privileged: bool
    variables: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedChange:
    reference: str
    is_local: bool
    patchset: str = DEFAULT_PATCHSET


@dataclass(frozen=True)
class ChangeRecord:
    """Everything the job configuration needs to know about the change under test."""

    enterprise: str
    organization: str
    project: str
    pipeline: str
    stage: str
    phase: str
    git_url: str
    sha: str
    patchset_branch: str
    change_id: str
    patchset_number: str
