"""Rolling replacement of an Auto Scaling group's instances.

The deployment runs strictly in order:

    suspend scaling -> preflight -> ensure launch template -> expand capacity
    -> await new member -> await load balancer -> retire old members
    -> shrink capacity -> cleanup (development only) -> done

Every step is awaited before the next one starts. The first error stops the
run; applied changes are not rolled back. The one compensating action is an
explicit resume of scaling processes when the run fails before expansion
got to resume them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from fleetdeck.deploy.actions import FleetActions
from fleetdeck.deploy.cleanup import clean_up
from fleetdeck.deploy.inspector import ResourceInspector
from fleetdeck.deploy.preflight import run_preflight
from fleetdeck.deploy.waits import Sleep, wait_for_load_balancer, wait_for_new_member
from fleetdeck.lib.errors import FleetDeckError
from fleetdeck.models.deployment import DeployConfig
from fleetdeck.models.fleet import (
    CapacityPlan,
    DeployReport,
    DeployState,
    FleetMember,
    FleetSnapshot,
    PreflightResult,
)

logger = logging.getLogger(__name__)

Preflight = Callable[..., Awaitable[PreflightResult]]


class RollingDeployment:
    """State machine for one rolling deployment run.

    Attributes:
        report: Progress and outcome of the run, updated as states complete
    """

    def __init__(
        self,
        config: DeployConfig,
        inspector: ResourceInspector,
        actions: FleetActions,
        *,
        preflight: Preflight = run_preflight,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config
        self._inspector = inspector
        self._actions = actions
        self._preflight = preflight
        self._sleep = sleep
        self._suspended = False
        self._resume_attempted = False
        self.report = DeployReport(
            fleet_name=config.fleet_name,
            launch_template_name=config.launch_template_name,
        )

    def _enter(self, state: DeployState) -> None:
        logger.info(f">>> {state.value.replace('_', ' ')} <<<")
        self.report.states.append(state)

    async def run(self) -> DeployReport:
        """Execute the deployment.

        Any exit other than success, including cancellation, marks the
        report as failed and resumes scaling processes if they were left
        suspended. The exception then propagates unchanged.

        Returns:
            The report of a successful run.

        Raises:
            FleetDeckError: The first error encountered; ``report`` then
                records the failed state and the error message
        """
        logger.info(f">>> DEPLOYING {self._config.image_name} <<<")
        try:
            await self._run()
        except BaseException as exc:
            self.report.final_state = DeployState.FAILED
            self.report.error = str(exc) or type(exc).__name__
            logger.error(f"Deployment failed: {self.report.error}")
            await self._resume_after_failure()
            raise

        self.report.final_state = DeployState.DONE
        logger.info(f">>> Deployed {self._config.launch_template_name} <<<")
        return self.report

    async def _run(self) -> None:
        self._enter(DeployState.SUSPEND_SCALING)
        await self._actions.suspend_processes()
        self._suspended = True

        self._enter(DeployState.PREFLIGHT)
        preflight = await self._preflight(
            self._config, self._inspector, sleep=self._sleep
        )
        self.report.image_id = preflight.image_id

        self._enter(DeployState.ENSURE_LAUNCH_TEMPLATE)
        await self.ensure_launch_template(preflight)

        self._enter(DeployState.EXPAND_CAPACITY)
        plan = await self.expand_capacity(preflight.fleet)

        self._enter(DeployState.AWAIT_NEW_MEMBER)
        member, snapshot = await wait_for_new_member(
            self._inspector, self._config.launch_template_name, sleep=self._sleep
        )
        self.report.new_instance_id = member.instance_id

        self._enter(DeployState.AWAIT_LOAD_BALANCER)
        await wait_for_load_balancer(
            self._inspector, member.instance_id, sleep=self._sleep
        )

        self._enter(DeployState.RETIRE_OLD_MEMBERS)
        await self.retire_old_members(snapshot)

        self._enter(DeployState.SHRINK_CAPACITY)
        await self.shrink_capacity(plan)

        if self._config.is_development:
            self._enter(DeployState.CLEANUP)
            self.report.cleanup = await clean_up(preflight, self._actions)

        self.report.states.append(DeployState.DONE)

    async def ensure_launch_template(self, preflight: PreflightResult) -> None:
        """Create the target launch template unless it is already registered."""
        if preflight.launch_template_exists:
            logger.info(
                f"Reusing launch template {self._config.launch_template_name}"
            )
            return
        await self._actions.create_launch_template(
            preflight.image_id, list(preflight.security_group_ids)
        )

    async def expand_capacity(self, fleet: FleetSnapshot) -> CapacityPlan:
        """Grow the fleet by one instance on the new launch template."""
        plan = CapacityPlan.from_snapshot(fleet)
        self.report.capacity = plan
        if plan.headroom_bumped:
            logger.info(
                f"Desired capacity equals max ({plan.original_max}); "
                f"raising max to {plan.expanded_max}"
            )
        await self._actions.update_fleet(plan.expanded_desired, plan.expanded_max)

        self._resume_attempted = True
        await self._actions.resume_processes()
        return plan

    async def retire_old_members(self, snapshot: FleetSnapshot) -> list[str]:
        """Terminate, one at a time, every member not on the new template."""
        old: list[FleetMember] = snapshot.superseded_members(
            self._config.launch_template_name
        )
        old_ids = [member.instance_id for member in old]
        logger.info(f"Replacing old instances in {snapshot.name}: {old_ids}")

        for instance_id in old_ids:
            await self._actions.terminate_member(instance_id)
            self.report.retired_instance_ids.append(instance_id)
        return old_ids

    async def shrink_capacity(self, plan: CapacityPlan) -> None:
        """Restore desired capacity and, if it was bumped, the maximum."""
        await self._actions.update_fleet(plan.shrunk_desired, plan.shrunk_max)

    async def _resume_after_failure(self) -> None:
        """Resume scaling processes if the run stopped while they were suspended."""
        if not self._suspended or self._resume_attempted:
            return
        logger.warning(
            f"Resuming suspended processes for {self._config.fleet_name} "
            "after failure"
        )
        try:
            await self._actions.resume_processes()
        except FleetDeckError as exc:
            logger.error(
                f"Could not resume processes for {self._config.fleet_name}: {exc}. "
                "Resume them manually."
            )
