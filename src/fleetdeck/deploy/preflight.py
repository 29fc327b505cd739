"""Pre-deployment resource checks.

Verifies that the AWS environment is in order before any change is made:
the image is available, and the load balancer, Auto Scaling group, security
groups, key pair and instance profile all exist. Independent checks run
concurrently; the launch template check depends on the fleet lookup.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from fleetdeck.deploy.inspector import ResourceInspector
from fleetdeck.deploy.waits import Sleep, available_image, wait_for_available_image
from fleetdeck.lib.concurrency import run_all
from fleetdeck.lib.errors import AlreadyDeployedError
from fleetdeck.models.deployment import DeployConfig
from fleetdeck.models.fleet import FleetSnapshot, ImageLookup, PreflightResult

logger = logging.getLogger(__name__)

ImageWait = Callable[..., Awaitable[ImageLookup]]


async def check_fleet(
    config: DeployConfig, inspector: ResourceInspector
) -> tuple[FleetSnapshot, bool]:
    """Look up the fleet, reject redeploys, then check for the target template.

    Returns:
        The fleet snapshot and whether the target launch template exists.

    Raises:
        AlreadyDeployedError: If the target template is already assigned
    """
    fleet = await inspector.describe_fleet()
    logger.info(f"Found auto-scaling group {fleet.name} ({fleet.describe()})")

    target = config.launch_template_name
    if fleet.launch_template_name == target:
        raise AlreadyDeployedError(target, fleet.name)

    exists = await inspector.launch_template_exists(target)
    return fleet, exists


async def run_preflight(
    config: DeployConfig,
    inspector: ResourceInspector,
    *,
    image_wait: ImageWait = wait_for_available_image,
    sleep: Sleep = asyncio.sleep,
) -> PreflightResult:
    """Run every resource check and build a consistent precondition snapshot.

    All branches start together. The first failing branch cancels the
    others and its error is raised; no partial result is returned.

    Args:
        config: Deployment configuration
        inspector: Resource inspector to query
        image_wait: Image availability wait (injectable for tests)
        sleep: Awaitable sleep used by the image wait

    Returns:
        Immutable PreflightResult consumed by the rolling deployment.
    """
    logger.info(">>> Performing pre-deployment resource checks <<<")

    results = await run_all(
        {
            "image": image_wait(
                inspector,
                config.image_name,
                config.image_exact_match,
                sleep=sleep,
            ),
            "load_balancer": inspector.describe_load_balancer(),
            "fleet": check_fleet(config, inspector),
            "security_groups": inspector.find_security_groups(),
            "key_pair": inspector.check_key_pair(),
            "instance_profile": inspector.check_instance_profile(),
        }
    )

    image: ImageLookup = results["image"]
    fleet, template_exists = results["fleet"]
    latest = available_image(image, config.image_name)

    return PreflightResult(
        image_id=latest.image_id,
        superseded_images=image.superseded,
        load_balancer=results["load_balancer"],
        fleet=fleet,
        prior_launch_template=fleet.launch_template_name,
        launch_template_exists=template_exists,
        security_group_ids=tuple(results["security_groups"]),
        key_pair_name=results["key_pair"],
        instance_profile_name=results["instance_profile"],
    )
