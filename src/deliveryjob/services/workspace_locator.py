"""Derives where a job's workspace lives on disk."""

import os
from pathlib import Path
from typing import Optional, Sequence

from deliveryjob.constants import WORKSPACE_DIRNAME
from deliveryjob.errors import NoHomeDirectory
from deliveryjob.errors_catalog import actionable_error


def home_directory() -> Optional[str]:
    try:
        return str(Path.home())
    except (RuntimeError, KeyError):
        return None


def workspace_base(home: Optional[str], privileged: bool) -> str:
    """Builders run us as root with $HOME set to the workspace location.

    Everyone else gets `~/.delivery` so job files stay out of their home directory.
    """
    if not home:
        raise NoHomeDirectory(actionable_error("no_home_directory"))
    if privileged:
        return home
    return os.path.join(home, WORKSPACE_DIRNAME)


def job_key(
    server: str,
    enterprise: str,
    organization: str,
    project: str,
    pipeline: str,
    stage: str,
    phases: Sequence[str],
) -> Sequence[str]:
    return (server, enterprise, organization, project, pipeline, stage, "-".join(phases))


def locate_job_root(base: Optional[str], key: Sequence[str], job_root: str = "") -> str:
    """`job_root` wins outright; otherwise the 7 key segments are joined under `base`."""
    if job_root:
        return job_root
    if not base:
        raise NoHomeDirectory(actionable_error("no_home_directory"))
    return os.path.join(base, *key)
