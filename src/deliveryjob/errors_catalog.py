"""Actionable error catalog for delivery-job."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "no_home_directory": {
        "what": "Unable to find a home directory for the workspace.",
        "next": "Set $HOME or pass `--job-root` with an explicit workspace path.",
    },
    "config_incomplete": {
        "what": "Missing required setting '{key}'.",
        "next": "Pass `{flag}` or run `delivery setup` to store it in .delivery/cli.yml.",
    },
    "not_a_repository": {
        "what": "Could not read the current HEAD in {path}.",
        "next": "Run from inside a git repository or select a change with `--branch`, `--change` or `--shasum`.",
    },
    "build_cookbook_missing": {
        "what": "Build cookbook not found at {path}.",
        "next": "Add a build cookbook to the project or point `build_cookbook` in .delivery/config.json at it.",
    },
    "phase_script_missing": {
        "what": "No script for phase '{phase}' at {path}.",
        "next": "Add an executable `phases/{phase}` to the build cookbook.",
    },
    "container_spawn_failed": {
        "what": "Failed to execute container with image {image}.",
        "next": "Check that docker is installed, running, and that the image can be pulled.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
