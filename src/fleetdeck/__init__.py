"""fleetdeck - zero-downtime rolling AMI deployments for Auto Scaling groups.

fleetdeck replaces the instances of an EC2 Auto Scaling group behind a
classic load balancer with instances running a new AMI version, one swap at
a time and gated on health checks.

Main features:
- Concurrent preflight checks of every resource the deployment needs
- Launch template registration and capacity expansion with headroom
- Health gating on both Auto Scaling and the load balancer
- Cleanup of superseded images and snapshots in the development environment
"""

from fleetdeck.lib.errors import (
    ConfigError,
    DeploymentError,
    FleetDeckError,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ConfigError",
    "DeploymentError",
    "FleetDeckError",
]
