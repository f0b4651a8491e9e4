import logging
import os
import subprocess
from dataclasses import replace
from typing import Optional

from rich.console import Console

from .config import DeliveryConfig
from .constants import LOCAL_DEFAULTS
from .errors import DeliveryError
from .models import ChangeRecord, RunEnvironment, RunOptions
from .services.change_resolver import resolve_change, resolve_clone_url
from .services.command_runner import CommandRunner
from .services.container_delegate import ContainerDelegate
from .services.filesystem import FileSystemService
from .services.git import GitService
from .services.phase_executor import PhaseExecutor
from .services.workspace import Workspace
from .services.workspace_locator import job_key, locate_job_root, workspace_base

console = Console()
logger = logging.getLogger("deliveryjob")


def with_default(value: str, default: str, local: bool) -> str:
    if not local or value:
        return value
    return default


class DeliveryJob:
    """Runs one `delivery job` invocation, locally or inside a container."""

    def __init__(
        self,
        options: RunOptions,
        environment: RunEnvironment,
        config_values: Optional[dict] = None,
        subprocess_module=subprocess,
    ):
        self.options = options
        self.environment = environment
        self.config = self._build_config(config_values or {})

        self.command_runner = CommandRunner(logger=logger, subprocess_module=subprocess_module)
        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.git_service = GitService(self.command_runner)
        self.container_delegate = ContainerDelegate(
            logger=logger,
            console=console,
            subprocess_module=subprocess_module,
            dns=self.config.docker_dns,
        )
        self.workspace: Optional[Workspace] = None
        self.phase_executor: Optional[PhaseExecutor] = None

    def _build_config(self, config_values: dict) -> DeliveryConfig:
        opts = self.options
        config = DeliveryConfig(config_values)
        if opts.project:
            config.set_project(opts.project)
        elif "project" not in config.values:
            config.set_project(os.path.basename(os.path.normpath(self.environment.cwd)))

        return (
            config.set_pipeline(opts.pipeline)
            .set_user(with_default(opts.user, LOCAL_DEFAULTS["user"], opts.local))
            .set_server(with_default(opts.server, LOCAL_DEFAULTS["server"], opts.local))
            .set_enterprise(with_default(opts.ent, LOCAL_DEFAULTS["ent"], opts.local))
            .set_organization(with_default(opts.org, LOCAL_DEFAULTS["org"], opts.local))
        )

    def _container_options(self) -> RunOptions:
        """Options for the container run, with merged settings spelled out as flags.

        The container cannot see a config file found above the mounted directory.
        """
        values = self.config.values
        return replace(
            self.options,
            server=str(values.get("server", "")),
            user=str(values.get("user", "")),
            ent=str(values.get("enterprise", "")),
            org=str(values.get("organization", "")),
            project=str(values.get("project", "")),
            pipeline=str(values.get("pipeline", "")),
        )

    def run_local(self) -> int:
        opts = self.options
        env = self.environment

        project = self.config.project()
        server = self.config.server()
        enterprise = self.config.enterprise()
        organization = self.config.organization()
        pipeline = self.config.pipeline()

        console.print(
            f"[white]Starting job for[/white] [green]{project}[/green] "
            f"[yellow]{opts.stage}[/yellow] [magenta]{opts.phases}[/magenta]"
        )

        base = None
        if env.home or not opts.job_root:
            base = workspace_base(env.home, env.privileged)
        logger.debug("Workspace Path: %s", base)
        key = job_key(server, enterprise, organization, project, pipeline, opts.stage, opts.phase_list)
        job_root = locate_job_root(base, key, opts.job_root)

        console.print(f"[white]Creating workspace in {job_root}[/white]")
        resolved = resolve_change(
            opts,
            pipeline,
            lambda: self.git_service.get_head(env.cwd),
            console=console,
            logger=logger,
        )
        clone_url = resolve_clone_url(opts, resolved, env.cwd, self.config.delivery_git_ssh_url)

        change = ChangeRecord(
            enterprise=enterprise,
            organization=organization,
            project=project,
            pipeline=pipeline,
            stage=opts.stage,
            phase=" ".join(opts.phase_list),
            git_url=clone_url,
            sha=opts.shasum,
            patchset_branch=resolved.reference,
            change_id=opts.change_id,
            patchset_number=resolved.patchset,
        )

        self.workspace = Workspace(
            root=job_root,
            git_service=self.git_service,
            command_runner=self.command_runner,
            filesystem_service=self.filesystem_service,
            logger=logger,
            base_env=env.variables,
        )
        self.phase_executor = PhaseExecutor(self.workspace, logger=logger, console=console)
        return self.phase_executor.execute(
            resolved=resolved,
            clone_url=clone_url,
            pipeline=pipeline,
            shasum=opts.shasum,
            config=self.config,
            change=change,
            workspace_path=base or job_root,
            privileged=env.privileged,
            skip_default=opts.skip_default,
        )

    def run(self) -> int:
        try:
            console.print("[green]Chef Delivery[/green]")
            if self.options.docker_image:
                return self.container_delegate.run(self._container_options(), self.environment.cwd)
            return self.run_local()

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except DeliveryError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            return 1
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return 1
