import logging
import os

import click
from rich.logging import RichHandler

from .core import DeliveryJob, console
from .errors import DeliveryError
from .models import RunEnvironment, RunOptions
from .services.config_loader import ConfigLoader
from .services.workspace_locator import home_directory

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


def is_privileged() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def _configure_logging(verbose: bool, log_file):
    logger = logging.getLogger("deliveryjob")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


@click.group()
def main():
    """Chef Delivery command line tools."""


@main.command()
@click.argument("stage")
@click.argument("phases")
@click.option("--project", "-p", default="", help="The project name")
@click.option("--for", "--pipeline", "pipeline", default="", help="A pipeline to target")
@click.option("--user", "-u", default="", help="User name for Delivery authentication")
@click.option("--server", "-s", default="", help="The Delivery server address")
@click.option("--ent", "-e", default="", help="The enterprise in which the project lives")
@click.option("--org", "-o", default="", help="The organization in which the project lives")
@click.option("--patchset", "-P", default="", help="A patchset number (default 'latest')")
@click.option("--change", "-c", default="", help="Review change to build")
@click.option("--change-id", default="", help="The change id recorded for the job")
@click.option("--shasum", "-S", default="", help="A git SHA to check out")
@click.option("--branch", "-b", default="", help="A branch to merge")
@click.option("--git-url", "-g", default="", help="Git URL to clone (default: server or cwd)")
@click.option("--job-root", "-j", default="", help="Path to the job root")
@click.option("--docker", "docker_image", default="", help="Docker image to run the job in")
@click.option("--skip-default", is_flag=True, help="Skip the default phase")
@click.option("--local", "-l", is_flag=True, help="Operate without a Delivery server")
@click.option("--config", default="", type=click.Path(), help="Path to a .delivery/cli.yml file.")
@click.option("--verbose", is_flag=True, help="Enable verbose logging")
@click.option("--log-file", default="", type=click.Path(), help="Path to log file")
def job(stage, phases, **kwargs):
    """Run one or more phase jobs."""
    _configure_logging(kwargs["verbose"], kwargs["log_file"])
    cwd = os.getcwd()
    config = kwargs["config"]

    try:
        config_loader = ConfigLoader()
        config_values = config_loader.load(config) if config else config_loader.load_from(cwd)
    except DeliveryError as exc:
        if not kwargs["docker_image"]:
            raise click.ClickException(str(exc)) from exc
        # The container run loads its own config.
        logging.getLogger("deliveryjob").warning("Ignoring config for container run: %s", exc)
        config_values = {}

    options = RunOptions(stage=stage, phases=phases, **kwargs)
    environment = RunEnvironment(
        cwd=cwd,
        home=home_directory(),
        privileged=is_privileged(),
        variables=dict(os.environ),
    )
    runner = DeliveryJob(options=options, environment=environment, config_values=config_values)
    raise SystemExit(runner.run())


@main.command()
@click.option("--server", "-s", default="", help="The Delivery server address")
@click.option("--user", "-u", default="", help="User name for Delivery authentication")
@click.option("--ent", "-e", default="", help="The enterprise in which the project lives")
@click.option("--org", "-o", default="", help="The organization in which the project lives")
@click.option("--for", "--pipeline", "pipeline", default="", help="Default pipeline to target")
@click.option("--path", default="", type=click.Path(), help="Directory to write .delivery/cli.yml in")
def setup(server, user, ent, org, pipeline, path):
    """Write a .delivery/cli.yml for the current project."""
    console.print("[green]Chef Delivery[/green]")
    values = {
        "server": server,
        "user": user,
        "enterprise": ent,
        "organization": org,
        "pipeline": pipeline,
    }
    try:
        written = ConfigLoader().write(path or os.getcwd(), values)
    except DeliveryError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[white]Wrote {written}[/white]")


if __name__ == "__main__":
    main()
