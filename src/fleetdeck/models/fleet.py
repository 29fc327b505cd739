"""Pydantic models for fleet, image and deployment run state."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from fleetdeck.config.defaults import HEALTH_HEALTHY, LIFECYCLE_IN_SERVICE


class ImageState:
    """Lifecycle states reported for an AMI."""

    PENDING = "pending"
    AVAILABLE = "available"
    UNKNOWN = "unknown"


class FleetMember(BaseModel):
    """A single instance in the Auto Scaling group."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    instance_id: str = Field(..., description="EC2 instance id")
    lifecycle_state: str = Field(..., description="Auto Scaling lifecycle state")
    health_status: str = Field(..., description="Auto Scaling health status")
    launch_template_name: str | None = Field(
        default=None, description="Launch template the instance was started from"
    )

    def is_ready(self, launch_template: str) -> bool:
        """Return True if in service, healthy and running ``launch_template``."""
        return (
            self.lifecycle_state == LIFECYCLE_IN_SERVICE
            and self.health_status == HEALTH_HEALTHY
            and self.launch_template_name == launch_template
        )


class FleetSnapshot(BaseModel):
    """Point-in-time view of the Auto Scaling group.

    Snapshots are never modified; a fresh one is fetched whenever a
    decision needs current data.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., description="Auto Scaling group name")
    desired_capacity: int = Field(..., ge=0)
    min_size: int = Field(..., ge=0)
    max_size: int = Field(..., ge=0)
    launch_template_name: str | None = Field(
        default=None, description="Launch template currently assigned"
    )
    members: tuple[FleetMember, ...] = Field(default=())

    def ready_member(self, launch_template: str) -> FleetMember | None:
        """Return the first member that is ready on ``launch_template``."""
        for member in self.members:
            if member.is_ready(launch_template):
                return member
        return None

    def superseded_members(self, launch_template: str) -> list[FleetMember]:
        """Return members not running ``launch_template``."""
        return [m for m in self.members if m.launch_template_name != launch_template]

    def describe(self) -> str:
        return (
            f"lt: {self.launch_template_name}, des: {self.desired_capacity}, "
            f"min: {self.min_size}, max: {self.max_size}, "
            f"members: {len(self.members)}"
        )


class ImageRecord(BaseModel):
    """An AMI with its backing EBS snapshots."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    image_id: str
    name: str
    state: str
    created_at: datetime
    snapshot_ids: tuple[str, ...] = Field(default=())


class ImageLookup(BaseModel):
    """Result of looking up images by name or name prefix.

    Attributes:
        state: State of the newest match, or "unknown" if nothing matched
        latest: Newest image by creation date
        superseded: Every other match (cleanup candidates)
        description: Human-readable summary for logs and errors
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    state: str = ImageState.UNKNOWN
    latest: ImageRecord | None = None
    superseded: tuple[ImageRecord, ...] = Field(default=())
    description: str = ""

    @property
    def is_available(self) -> bool:
        return self.state == ImageState.AVAILABLE and self.latest is not None


class LoadBalancerStatus(BaseModel):
    """Summary of the classic load balancer in front of the fleet."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    dns_name: str
    member_count: int = Field(..., ge=0)


class PreflightResult(BaseModel):
    """Consistent precondition snapshot produced by the preflight checks.

    Write-once output of preflight, consumed by the rolling deployment.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    image_id: str = Field(..., description="AMI id for the new launch template")
    superseded_images: tuple[ImageRecord, ...] = Field(default=())
    load_balancer: LoadBalancerStatus
    fleet: FleetSnapshot
    prior_launch_template: str | None = Field(
        default=None, description="Launch template assigned before this run"
    )
    launch_template_exists: bool = Field(
        default=False, description="Target launch template is already registered"
    )
    security_group_ids: tuple[str, ...] = Field(default=())
    key_pair_name: str
    instance_profile_name: str


class CapacityPlan(BaseModel):
    """Capacity bounds before, during and after the swap.

    Desired capacity grows by one. The maximum grows by one (headroom bump)
    only when desired already equals the maximum.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    original_desired: int
    original_max: int
    expanded_desired: int
    expanded_max: int
    headroom_bumped: bool

    @classmethod
    def from_snapshot(cls, fleet: FleetSnapshot) -> CapacityPlan:
        bumped = fleet.desired_capacity == fleet.max_size
        return cls(
            original_desired=fleet.desired_capacity,
            original_max=fleet.max_size,
            expanded_desired=fleet.desired_capacity + 1,
            expanded_max=fleet.max_size + 1 if bumped else fleet.max_size,
            headroom_bumped=bumped,
        )

    @property
    def shrunk_desired(self) -> int:
        return self.expanded_desired - 1

    @property
    def shrunk_max(self) -> int:
        return self.expanded_max - 1 if self.headroom_bumped else self.expanded_max


class DeployState(str, Enum):
    """States of the rolling deployment, in execution order."""

    SUSPEND_SCALING = "suspend_scaling"
    PREFLIGHT = "preflight"
    ENSURE_LAUNCH_TEMPLATE = "ensure_launch_template"
    EXPAND_CAPACITY = "expand_capacity"
    AWAIT_NEW_MEMBER = "await_new_member"
    AWAIT_LOAD_BALANCER = "await_load_balancer"
    RETIRE_OLD_MEMBERS = "retire_old_members"
    SHRINK_CAPACITY = "shrink_capacity"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


class CleanupResult(BaseModel):
    """Resources removed by the cleanup step."""

    model_config = ConfigDict(extra="forbid")

    launch_template: str | None = None
    image_ids: list[str] = Field(default_factory=list)
    snapshot_ids: list[str] = Field(default_factory=list)


class DeployReport(BaseModel):
    """Outcome of a rolling deployment run."""

    model_config = ConfigDict(extra="forbid")

    fleet_name: str
    launch_template_name: str
    image_id: str | None = None
    states: list[DeployState] = Field(default_factory=list)
    final_state: DeployState | None = None
    new_instance_id: str | None = None
    retired_instance_ids: list[str] = Field(default_factory=list)
    capacity: CapacityPlan | None = None
    cleanup: CleanupResult | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.final_state == DeployState.DONE
