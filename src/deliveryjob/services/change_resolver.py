"""Turns change selectors into a git reference to build."""

import logging
from typing import Callable, Optional

from rich.console import Console

from deliveryjob.constants import DEFAULT_PATCHSET
from deliveryjob.models import ResolvedChange, RunOptions


def review_reference(pipeline: str, change: str, patchset: str) -> str:
    return f"_reviews/{pipeline}/{change}/{patchset or DEFAULT_PATCHSET}"


def resolve_change(
    opts: RunOptions,
    pipeline: str,
    head_lookup: Callable[[], str],
    console: Optional[Console] = None,
    logger: Optional[logging.Logger] = None,
) -> ResolvedChange:
    """Picks the reference to merge: branch, then review change, then shasum, then HEAD.

    Only the first selector that is set counts; the rest are ignored.
    `head_lookup` is only called for the local fallback and may raise
    `VcsLookupFailed`.
    """
    patchset = opts.patchset or DEFAULT_PATCHSET

    if opts.branch:
        selector, resolved = opts.branch, ResolvedChange(opts.branch, False, patchset)
    elif opts.change:
        reference = review_reference(pipeline, opts.change, patchset)
        selector, resolved = opts.change, ResolvedChange(reference, False, patchset)
    elif opts.shasum:
        selector, resolved = opts.shasum, ResolvedChange("", False, patchset)
    else:
        head = head_lookup()
        selector, resolved = head, ResolvedChange(head, True, patchset)

    if console is not None:
        console.print(
            f"[white]Cloning repository, and merging[/white] [yellow]{selector}[/yellow] "
            f"[white]to[/white] [magenta]{pipeline}[/magenta]"
        )
    if logger is not None:
        logger.debug("Resolved change %r (local=%s)", resolved.reference, resolved.is_local)
    return resolved


def resolve_clone_url(
    opts: RunOptions,
    resolved: ResolvedChange,
    cwd: str,
    ssh_url: Callable[[], str],
) -> str:
    if opts.git_url:
        return opts.git_url
    if resolved.is_local:
        return cwd
    return ssh_url()
