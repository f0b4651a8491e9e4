"""Configuration loader for delivery-job."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from deliveryjob.constants import CONFIG_RELPATH
from deliveryjob.errors import DeliveryError


class ConfigLoader:
    """Loads and writes `.delivery/cli.yml` files."""

    SUPPORTED_KEYS = {
        "server",
        "user",
        "enterprise",
        "organization",
        "pipeline",
        "project",
        "git_port",
        "build_user",
        "docker_dns",
    }

    def find(self, start_dir: str) -> Optional[str]:
        """Walks up from `start_dir` looking for `.delivery/cli.yml`."""
        current = Path(start_dir).resolve()
        for directory in [current, *current.parents]:
            candidate = directory / CONFIG_RELPATH
            if candidate.is_file():
                return str(candidate)
        return None

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise DeliveryError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise DeliveryError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise DeliveryError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise DeliveryError(f"Unknown configuration keys: {unknown_list}")

        return parsed

    def load_from(self, start_dir: str) -> Dict[str, Any]:
        return self.load(self.find(start_dir))

    def write(self, directory: str, values: Dict[str, Any]) -> str:
        """Merges `values` into `<directory>/.delivery/cli.yml` and returns its path."""
        path = Path(directory) / CONFIG_RELPATH
        current = self.load(str(path)) if path.exists() else {}
        current.update({k: v for k, v in values.items() if v not in (None, "")})

        try:
            os.makedirs(path.parent, exist_ok=True)
            path.write_text(yaml.safe_dump(current, default_flow_style=False), encoding="utf-8")
        except OSError as exc:
            raise DeliveryError(f"Could not write config file '{path}': {exc}") from exc
        return str(path)
