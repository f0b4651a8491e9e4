"""Job workspace: directory skeleton, source checkout, job configuration, phase scripts."""

import json
import os
from dataclasses import asdict
from typing import Dict, Mapping, Optional

from deliveryjob.constants import DEFAULT_BUILD_COOKBOOK, DIR_MODE, PROJECT_CONFIG_RELPATH, SCRIPT_MODE
from deliveryjob.errors import PhaseExecutionFailed, WorkspaceProvisioningFailed
from deliveryjob.errors_catalog import actionable_error
from deliveryjob.models import ChangeRecord, Privilege


class Workspace:
    """Owns `<root>/{repo,chef,cache}` for a single job.

    Phase scripts see `base_env` plus the `DELIVERY_*` variables; the caller decides
    what `base_env` holds.
    """

    def __init__(
        self,
        root: str,
        git_service,
        command_runner,
        filesystem_service,
        logger,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        self.root = root
        self.repo = os.path.join(root, "repo")
        self.chef = os.path.join(root, "chef")
        self.cache = os.path.join(root, "cache")
        self.build_cookbook = os.path.join(self.chef, "build_cookbook")
        self.dna_file = os.path.join(self.chef, "dna.json")
        self.git = git_service
        self.command_runner = command_runner
        self.filesystem = filesystem_service
        self.logger = logger
        self.build_user: Optional[str] = None
        self.base_env: Dict[str, str] = dict(base_env or {})
        self.env: Dict[str, str] = {}

    def build(self):
        for path in (self.root, self.repo, self.chef, self.cache):
            self.filesystem.make_dirs(path, DIR_MODE)

    def setup_repo_for_change(self, clone_url: str, reference: str, pipeline: str, shasum: str):
        """Clones or refreshes `repo/`, then lands on the revision under test.

        The pipeline branch is always reset to origin's copy first. A shasum is checked
        out directly; any other reference is fetched and merged on top.
        """
        if os.path.isdir(os.path.join(self.repo, ".git")):
            self.git.set_remote_url(clone_url, cwd=self.repo)
            self.git.fetch(cwd=self.repo)
        else:
            self.filesystem.remove_tree(self.repo)
            self.git.clone(clone_url, self.repo, cwd=self.root)

        self.git.checkout_branch(pipeline, f"origin/{pipeline}", cwd=self.repo)
        self.git.clean(cwd=self.repo)

        if shasum:
            self.git.checkout(shasum, cwd=self.repo)
        elif reference and reference != pipeline:
            self.git.fetch(cwd=self.repo, ref=reference)
            self.git.merge("FETCH_HEAD", cwd=self.repo)

    def _project_config(self) -> dict:
        path = os.path.join(self.repo, PROJECT_CONFIG_RELPATH)
        if not os.path.exists(path):
            return {}
        try:
            with open(path, encoding="utf-8") as file_obj:
                parsed = json.load(file_obj)
        except (OSError, ValueError) as exc:
            raise WorkspaceProvisioningFailed(f"Invalid project config '{path}': {exc}") from exc
        if not isinstance(parsed, dict):
            raise WorkspaceProvisioningFailed(f"Project config '{path}' must be a JSON object.")
        return parsed

    def _build_cookbook_source(self, project_config: dict) -> str:
        setting = project_config.get("build_cookbook", DEFAULT_BUILD_COOKBOOK)
        if isinstance(setting, dict):
            setting = setting.get("path", DEFAULT_BUILD_COOKBOOK)
        return os.path.normpath(os.path.join(self.repo, str(setting)))

    def setup_chef_for_job(self, config, change: ChangeRecord, workspace_path: str):
        """Copies the build cookbook into `chef/` and writes `chef/dna.json`."""
        project_config = self._project_config()
        source = self._build_cookbook_source(project_config)
        if not os.path.isdir(source):
            raise WorkspaceProvisioningFailed(actionable_error("build_cookbook_missing", path=source))
        self.filesystem.copy_tree(source, self.build_cookbook)

        self.build_user = config.build_user
        dna = {
            "delivery": {
                "workspace_path": workspace_path,
                "workspace": {
                    "root": self.root,
                    "repo": self.repo,
                    "chef": self.chef,
                    "cache": self.cache,
                },
                "change": asdict(change),
                "config": project_config,
            },
            "delivery_builder": {"build_user": self.build_user},
        }
        try:
            with open(self.dna_file, "w", encoding="utf-8") as file_obj:
                json.dump(dna, file_obj, indent=2, sort_keys=True)
        except OSError as exc:
            raise WorkspaceProvisioningFailed(f"Could not write {self.dna_file}: {exc}") from exc

        self.env = {
            "DELIVERY_DNA": self.dna_file,
            "DELIVERY_WORKSPACE": self.root,
            "DELIVERY_REPO": self.repo,
            "DELIVERY_CACHE": self.cache,
            "DELIVERY_STAGE": change.stage,
            "DELIVERY_PROJECT": change.project,
            "DELIVERY_PIPELINE": change.pipeline,
        }

    def phase_script(self, phase: str) -> str:
        return os.path.join(self.build_cookbook, "phases", phase)

    def run_job(self, phases: str, privilege: Privilege, local_change: bool):
        """Runs each phase script in order, stopping at the first failure."""
        for phase in phases.split():
            script = self.phase_script(phase)
            if not os.path.isfile(script):
                raise PhaseExecutionFailed(
                    actionable_error("phase_script_missing", phase=phase, path=script)
                )
            self.filesystem.set_permissions(script, SCRIPT_MODE)

            env = dict(self.base_env)
            env.update(self.env)
            env["DELIVERY_PHASE"] = phase
            env["DELIVERY_LOCAL_CHANGE"] = "true" if local_change else "false"

            user = self.build_user if privilege is Privilege.DROP else None
            self.logger.info("Running phase %s (%s)", phase, privilege.value)
            self.command_runner.run(
                [script],
                cwd=self.repo,
                env=env,
                user=user,
                error_class=PhaseExecutionFailed,
            )
