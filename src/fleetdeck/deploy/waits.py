"""Polling waits used by preflight and the rolling deployment."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from fleetdeck.config.defaults import (
    IMAGE_WAIT_BASE_SECONDS,
    IMAGE_WAIT_TIMEOUT_SECONDS,
    LB_HEALTH_INTERVAL_SECONDS,
    LB_HEALTH_TIMEOUT_SECONDS,
    LB_STATE_IN_SERVICE,
    NEW_MEMBER_INTERVAL_SECONDS,
    NEW_MEMBER_TIMEOUT_SECONDS,
)
from fleetdeck.deploy.inspector import ResourceInspector
from fleetdeck.lib.errors import DeploymentError, ImageNotAvailableError
from fleetdeck.lib.polling import ExponentialBackoff, FixedInterval, poll
from fleetdeck.models.fleet import (
    FleetMember,
    FleetSnapshot,
    ImageLookup,
    ImageRecord,
    ImageState,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def available_image(lookup: ImageLookup, name: str) -> ImageRecord:
    """Return the newest image of ``lookup`` if it is available.

    Raises:
        ImageNotAvailableError: If no image matched or the newest one is
            not in the available state
    """
    if lookup.latest is None or not lookup.is_available:
        raise ImageNotAvailableError(name, lookup.state, lookup.description)
    return lookup.latest


async def wait_for_available_image(
    inspector: ResourceInspector,
    name: str,
    exact_match: bool = True,
    *,
    sleep: Sleep = asyncio.sleep,
) -> ImageLookup:
    """Wait until the newest image matching ``name`` leaves the pending state.

    Args:
        inspector: Resource inspector to query
        name: Image name (or prefix when ``exact_match`` is False)
        exact_match: Match the name exactly instead of as a prefix
        sleep: Awaitable sleep function

    Returns:
        The lookup for an available image.

    Raises:
        ImageNotAvailableError: If the image is missing or ended up in a
            state other than available
        PollTimeoutError: If the image stayed pending for 5 minutes
    """

    async def probe() -> ImageLookup:
        return await inspector.lookup_images(name, exact_match)

    lookup = await poll(
        probe,
        lambda result: result.state != ImageState.PENDING,
        ExponentialBackoff(IMAGE_WAIT_BASE_SECONDS),
        IMAGE_WAIT_TIMEOUT_SECONDS,
        label=f"wait_for_available_image {name}",
        describe=lambda result: result.state if result else ImageState.UNKNOWN,
        sleep=sleep,
    )

    available_image(lookup, name)
    logger.info(lookup.description)
    return lookup


async def wait_for_new_member(
    inspector: ResourceInspector,
    launch_template: str,
    *,
    sleep: Sleep = asyncio.sleep,
) -> tuple[FleetMember, FleetSnapshot]:
    """Wait for an in-service, healthy member running ``launch_template``.

    Returns:
        The new member and the fleet snapshot in which it was observed.
    """

    def describe(snapshot: FleetSnapshot | None) -> str:
        if snapshot is None:
            return "no snapshot yet"
        return snapshot.describe()

    snapshot = await poll(
        inspector.describe_fleet,
        lambda result: result.ready_member(launch_template) is not None,
        FixedInterval(NEW_MEMBER_INTERVAL_SECONDS),
        NEW_MEMBER_TIMEOUT_SECONDS,
        label="wait_for_new_member",
        describe=describe,
        sleep=sleep,
    )

    member = snapshot.ready_member(launch_template)
    if member is None:
        raise DeploymentError(
            "wait_for_new_member",
            f"no ready member on {launch_template} ({snapshot.describe()})",
        )
    logger.info(
        f"New instance in auto-scaling group {snapshot.name}: {member.instance_id}"
    )
    return member, snapshot


async def wait_for_load_balancer(
    inspector: ResourceInspector,
    instance_id: str,
    *,
    sleep: Sleep = asyncio.sleep,
) -> str:
    """Wait until the load balancer reports ``instance_id`` as InService."""

    async def probe() -> str:
        return await inspector.instance_health(instance_id)

    state = await poll(
        probe,
        lambda result: result == LB_STATE_IN_SERVICE,
        FixedInterval(LB_HEALTH_INTERVAL_SECONDS),
        LB_HEALTH_TIMEOUT_SECONDS,
        label=f"wait_for_load_balancer {instance_id}",
        describe=lambda result: result or "Undefined",
        sleep=sleep,
    )
    logger.info(f"{instance_id} has joined the load balancer and is in service")
    return state
