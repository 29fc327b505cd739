"""Custom exception hierarchy for fleetdeck configuration and deployments."""

from typing import Any


class FleetDeckError(Exception):
    """Base exception for all fleetdeck errors.

    All fleetdeck-specific exceptions inherit from this class, enabling
    centralized exception handling in the CLI.
    """

    pass


class ConfigError(FleetDeckError):
    """Exception raised for configuration errors.

    Raised when the bootstrap configuration (app name, version, environment,
    instance type, region) cannot be loaded or fails validation.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class DeploymentError(FleetDeckError):
    """Exception raised when a deployment step fails.

    Every failure during a rolling deployment is fatal to the run. The
    operation names the step or remote call that failed.

    Attributes:
        operation: Deployment step or AWS operation that failed
        message: Human-readable error message
    """

    def __init__(self, operation: str, message: str) -> None:
        """Create a deployment error.

        Args:
            operation: Deployment step or AWS operation that failed
            message: Descriptive error message
        """
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}")


class TransportError(DeploymentError):
    """An AWS call failed (network, credentials, throttling or API error).

    Attributes:
        code: AWS error code when the service returned one
    """

    def __init__(self, operation: str, message: str, code: str | None = None) -> None:
        """Create a transport error for a failed AWS call."""
        self.code = code
        super().__init__(operation, message)


class ResourceNotFoundError(DeploymentError):
    """An expected AWS resource is missing.

    Attributes:
        resource: Kind of resource (e.g. "auto-scaling group", "key pair")
        name: Name that was looked up
        region: AWS region that was queried
    """

    def __init__(
        self, operation: str, resource: str, name: str, region: str
    ) -> None:
        """Create a not-found error for a named resource."""
        self.resource = resource
        self.name = name
        self.region = region
        super().__init__(operation, f"{resource} {name} not found in {region}")


class AlreadyDeployedError(DeploymentError):
    """The target launch template is already assigned to the fleet.

    Attributes:
        launch_template: Target launch template name
        fleet: Auto Scaling group name
    """

    def __init__(self, launch_template: str, fleet: str) -> None:
        """Create an error for a version that is already deployed."""
        self.launch_template = launch_template
        self.fleet = fleet
        super().__init__(
            "check_fleet",
            f"launch template {launch_template} is already assigned to "
            f"auto-scaling group {fleet}",
        )


class PollTimeoutError(DeploymentError):
    """A poll exceeded its time budget.

    Attributes:
        label: Name of the wait that timed out
        elapsed: Seconds of accumulated waiting
        last_status: Last status observed by the probe (None if never probed)
    """

    def __init__(self, label: str, elapsed: float, last_status: Any) -> None:
        """Create a timeout error carrying the last observed status."""
        self.label = label
        self.elapsed = elapsed
        self.last_status = last_status
        super().__init__(
            label,
            f"timed out after {elapsed:g}s (last status: {last_status})",
        )


class ImageNotAvailableError(DeploymentError):
    """The image exists but is not usable, or could not be found.

    Attributes:
        image_name: Image name or prefix that was looked up
        state: Lifecycle state reported for the newest matching image
        description: Diagnostic description from the lookup
    """

    def __init__(self, image_name: str, state: str, description: str) -> None:
        """Create an error for an image that never became available."""
        self.image_name = image_name
        self.state = state
        self.description = description
        super().__init__("wait_for_available_image", description)
