"""Entry points that wire AWS clients into a deployment run."""

from __future__ import annotations

import asyncio

from fleetdeck.deploy.actions import FleetActions
from fleetdeck.deploy.aws import AWSClients, AWSConfig, create_clients
from fleetdeck.deploy.inspector import ResourceInspector
from fleetdeck.deploy.preflight import run_preflight
from fleetdeck.deploy.rollout import RollingDeployment
from fleetdeck.deploy.waits import Sleep, wait_for_available_image
from fleetdeck.models.deployment import DeployConfig
from fleetdeck.models.fleet import DeployReport, ImageLookup, PreflightResult


def _clients_for(config: DeployConfig, clients: AWSClients | None) -> AWSClients:
    if clients is not None:
        return clients
    return create_clients(AWSConfig.from_env(config.region))


async def run_deployment(
    config: DeployConfig,
    clients: AWSClients | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> DeployReport:
    """Roll ``config.version`` out onto the fleet.

    Args:
        config: Deployment configuration
        clients: AWS clients (created from the environment when omitted)
        sleep: Awaitable sleep used by every poll

    Returns:
        Report of the successful run.

    Raises:
        DeploymentError: The first error encountered
    """
    clients = _clients_for(config, clients)
    deployment = RollingDeployment(
        config,
        ResourceInspector(config, clients),
        FleetActions(config, clients),
        sleep=sleep,
    )
    return await deployment.run()


async def check_resources(
    config: DeployConfig,
    clients: AWSClients | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> PreflightResult:
    """Run the preflight checks alone, without touching the fleet."""
    clients = _clients_for(config, clients)
    return await run_preflight(config, ResourceInspector(config, clients), sleep=sleep)


async def wait_for_image(
    config: DeployConfig,
    clients: AWSClients | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> ImageLookup:
    """Wait for the configured image to become available."""
    clients = _clients_for(config, clients)
    return await wait_for_available_image(
        ResourceInspector(config, clients),
        config.image_name,
        config.image_exact_match,
        sleep=sleep,
    )
