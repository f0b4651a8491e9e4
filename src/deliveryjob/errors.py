"""Domain errors for delivery-job."""


class DeliveryError(RuntimeError):
    """Raised when a job cannot continue safely."""


class NoHomeDirectory(DeliveryError):
    """The platform reports no home directory and no job root was given."""


class VcsLookupFailed(DeliveryError):
    """The current HEAD of the local repository could not be determined."""


class ConfigIncomplete(DeliveryError):
    """A required setting is missing from both the CLI and the config file."""


class WorkspaceProvisioningFailed(DeliveryError):
    """Creating the workspace, cloning or merging the change failed."""


class PhaseExecutionFailed(DeliveryError):
    """A phase script is missing or exited non-zero."""


class ContainerSpawnFailed(DeliveryError):
    """The container child process could not be started."""


class ContainerIoFailed(DeliveryError):
    """Relaying the container output stream failed."""
