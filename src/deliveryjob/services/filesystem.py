"""Filesystem helpers for delivery-job."""

import logging
import os
import shutil
import sys

from rich.console import Console

from deliveryjob.errors import WorkspaceProvisioningFailed


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        try:
            os.chmod(path, mode)
        except Exception as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    def make_dirs(self, path: str, mode: int):
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as exc:
            raise WorkspaceProvisioningFailed(f"Could not create directory {path}: {exc}") from exc
        self.set_permissions(path, mode)

    def remove_tree(self, path: str):
        """Removes `path` if present. Failing to remove it is an error."""
        if not os.path.lexists(path):
            return

        try:
            if os.path.isdir(path) and not os.path.islink(path):
                shutil.rmtree(path)
            else:
                os.remove(path)
        except OSError as exc:
            raise WorkspaceProvisioningFailed(f"Could not remove {path}: {exc}") from exc
        self.logger.debug("Removed: %s", path)

    def copy_tree(self, source: str, destination: str):
        try:
            shutil.copytree(source, destination, dirs_exist_ok=True)
        except (OSError, shutil.Error) as exc:
            raise WorkspaceProvisioningFailed(
                f"Could not copy {source} to {destination}: {exc}"
            ) from exc
