"""Merged job configuration: config file values overridden by CLI flags."""

from typing import Any, Dict, Optional

from .constants import DEFAULT_BUILD_USER, DEFAULT_DOCKER_DNS, DEFAULT_GIT_PORT, DEFAULT_PIPELINE
from .errors import ConfigIncomplete
from .errors_catalog import actionable_error

_FLAGS = {
    "server": "--server",
    "user": "--user",
    "enterprise": "--ent",
    "organization": "--org",
    "project": "--project",
    "pipeline": "--for",
}


class DeliveryConfig:
    """Holds delivery settings.

    Setters ignore empty values so that a flag the user did not pass never clobbers
    a value read from `.delivery/cli.yml`. Accessors for required settings raise
    `ConfigIncomplete` when neither source provided one.
    """

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self.values: Dict[str, Any] = {"pipeline": DEFAULT_PIPELINE}
        self.values.update({k: v for k, v in (values or {}).items() if v not in (None, "")})

    def _set(self, key: str, value: Optional[str]) -> "DeliveryConfig":
        if value:
            self.values[key] = value
        return self

    def set_server(self, value: Optional[str]) -> "DeliveryConfig":
        return self._set("server", value)

    def set_user(self, value: Optional[str]) -> "DeliveryConfig":
        return self._set("user", value)

    def set_enterprise(self, value: Optional[str]) -> "DeliveryConfig":
        return self._set("enterprise", value)

    def set_organization(self, value: Optional[str]) -> "DeliveryConfig":
        return self._set("organization", value)

    def set_project(self, value: Optional[str]) -> "DeliveryConfig":
        return self._set("project", value)

    def set_pipeline(self, value: Optional[str]) -> "DeliveryConfig":
        return self._set("pipeline", value)

    def _require(self, key: str) -> str:
        value = self.values.get(key)
        if not value:
            raise ConfigIncomplete(actionable_error("config_incomplete", key=key, flag=_FLAGS[key]))
        return str(value)

    def server(self) -> str:
        return self._require("server")

    def user(self) -> str:
        return self._require("user")

    def enterprise(self) -> str:
        return self._require("enterprise")

    def organization(self) -> str:
        return self._require("organization")

    def project(self) -> str:
        return self._require("project")

    def pipeline(self) -> str:
        return self._require("pipeline")

    @property
    def git_port(self) -> int:
        return int(self.values.get("git_port", DEFAULT_GIT_PORT))

    @property
    def build_user(self) -> str:
        return str(self.values.get("build_user", DEFAULT_BUILD_USER))

    @property
    def docker_dns(self) -> str:
        return str(self.values.get("docker_dns", DEFAULT_DOCKER_DNS))

    def delivery_git_ssh_url(self) -> str:
        user = self.user()
        server = self.server()
        ent = self.enterprise()
        org = self.organization()
        project = self.project()
        return f"ssh://{user}@{ent}@{server}:{self.git_port}/{ent}/{org}/{project}"

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.values)
