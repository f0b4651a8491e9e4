"""Shared constants for delivery-job."""

DIR_MODE = 0o755
SCRIPT_MODE = 0o755

WORKSPACE_DIRNAME = ".delivery"
CONFIG_RELPATH = ".delivery/cli.yml"
PROJECT_CONFIG_RELPATH = ".delivery/config.json"
DEFAULT_BUILD_COOKBOOK = ".delivery/build_cookbook"

DEFAULT_PHASE = "default"
DEFAULT_PATCHSET = "latest"
DEFAULT_PIPELINE = "master"
DEFAULT_GIT_PORT = 8989
DEFAULT_BUILD_USER = "dbuild"
DEFAULT_DOCKER_DNS = "8.8.8.8"

# Fallbacks applied only to `delivery job --local`.
LOCAL_DEFAULTS = {
    "user": "you",
    "server": "localhost",
    "ent": "local",
    "org": "workstation",
}
