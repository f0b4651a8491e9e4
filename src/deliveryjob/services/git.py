"""Git plumbing used by the change resolver and the workspace."""

from typing import List

from deliveryjob.errors import VcsLookupFailed, WorkspaceProvisioningFailed
from deliveryjob.errors_catalog import actionable_error


class GitService:
    """Thin wrappers around the git commands a job needs."""

    def __init__(self, command_runner, git_cmd: str = "git"):
        self.command_runner = command_runner
        self.git_cmd = git_cmd

    def _git(self, args: List[str], cwd: str, capture_output: bool = True) -> str:
        result = self.command_runner.run(
            [self.git_cmd] + args,
            capture_output=capture_output,
            cwd=cwd,
            error_class=WorkspaceProvisioningFailed,
        )
        return (result.stdout or "").strip()

    def get_head(self, cwd: str) -> str:
        """Returns the checked out branch, or the commit sha when HEAD is detached."""
        try:
            head = self._git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd)
            if head == "HEAD":
                head = self._git(["rev-parse", "HEAD"], cwd=cwd)
        except WorkspaceProvisioningFailed as exc:
            raise VcsLookupFailed(actionable_error("not_a_repository", path=cwd)) from exc

        if not head:
            raise VcsLookupFailed(actionable_error("not_a_repository", path=cwd))
        return head

    def clone(self, url: str, destination: str, cwd: str):
        self._git(["clone", url, destination], cwd=cwd)

    def set_remote_url(self, url: str, cwd: str):
        self._git(["remote", "set-url", "origin", url], cwd=cwd)

    def fetch(self, cwd: str, ref: str = ""):
        args = ["fetch", "--prune", "origin"]
        if ref:
            args.append(ref)
        self._git(args, cwd=cwd)

    def checkout_branch(self, branch: str, start_point: str, cwd: str):
        self._git(["checkout", "-f", "-B", branch, start_point], cwd=cwd)

    def checkout(self, ref: str, cwd: str):
        self._git(["checkout", "-f", ref], cwd=cwd)

    def merge(self, ref: str, cwd: str):
        self._git(["merge", "--no-edit", ref], cwd=cwd)

    def clean(self, cwd: str):
        self._git(["clean", "-fdx"], cwd=cwd)
