"""Removal of superseded launch templates, images and snapshots."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from fleetdeck.config.defaults import CLEANUP_CONCURRENCY
from fleetdeck.deploy.actions import FleetActions
from fleetdeck.lib.concurrency import bounded_map
from fleetdeck.lib.errors import DeploymentError
from fleetdeck.models.fleet import CleanupResult, ImageRecord, PreflightResult

logger = logging.getLogger(__name__)


async def delete_superseded_images(
    images: Sequence[ImageRecord],
    actions: FleetActions,
    limit: int = CLEANUP_CONCURRENCY,
) -> tuple[list[str], list[str]]:
    """Deregister images, then delete their backing snapshots.

    Snapshot deletion starts only after every deregistration succeeded.
    Within each phase at most ``limit`` calls run at once and the first
    failure cancels the rest of that phase.

    Returns:
        Deregistered image ids and deleted snapshot ids.
    """
    if not images:
        logger.info("No old AMIs to delete")
        return [], []

    image_ids = [image.image_id for image in images]
    logger.info(f"Deleting old AMIs: {image_ids}")
    deregistered = await bounded_map(actions.deregister_image, image_ids, limit)

    snapshot_ids = [sid for image in images for sid in image.snapshot_ids]
    deleted = await bounded_map(actions.delete_snapshot, snapshot_ids, limit)
    return deregistered, deleted


async def clean_up(preflight: PreflightResult, actions: FleetActions) -> CleanupResult:
    """Delete the prior launch template and every superseded image.

    Raises:
        DeploymentError: If the fleet had no prior launch template
    """
    prior = preflight.prior_launch_template
    if not prior:
        raise DeploymentError(
            "delete_launch_template", "missing prior launch template"
        )
    await actions.delete_launch_template(prior)

    image_ids, snapshot_ids = await delete_superseded_images(
        preflight.superseded_images, actions
    )
    return CleanupResult(
        launch_template=prior, image_ids=image_ids, snapshot_ids=snapshot_ids
    )
