"""Read-only queries against EC2, ELB, Auto Scaling and IAM.

Each query is a single request normalized into fleetdeck models. Missing
resources that a deployment requires raise ResourceNotFoundError; any other
failure surfaces as TransportError without local retries.
"""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import ClientError

from fleetdeck.config.defaults import LB_STATE_NOT_REGISTERED
from fleetdeck.deploy.aws import AWSClients, aws_call
from fleetdeck.lib.errors import ResourceNotFoundError
from fleetdeck.models.deployment import DeployConfig
from fleetdeck.models.fleet import (
    FleetMember,
    FleetSnapshot,
    ImageLookup,
    ImageRecord,
    ImageState,
    LoadBalancerStatus,
)

logger = logging.getLogger(__name__)

LAUNCH_TEMPLATE_NOT_FOUND = "InvalidLaunchTemplateName.NotFoundException"
LOAD_BALANCER_NOT_FOUND = "LoadBalancerNotFound"
KEY_PAIR_NOT_FOUND = "InvalidKeyPair.NotFound"
IAM_NO_SUCH_ENTITY = "NoSuchEntity"
ELB_INVALID_INSTANCE = "InvalidInstance"


def _snapshot_ids(image: dict[str, Any]) -> tuple[str, ...]:
    return tuple(
        mapping["Ebs"]["SnapshotId"]
        for mapping in image.get("BlockDeviceMappings", [])
        if mapping.get("Ebs", {}).get("SnapshotId")
    )


def _to_image_record(image: dict[str, Any]) -> ImageRecord:
    return ImageRecord(
        image_id=image["ImageId"],
        name=image.get("Name", ""),
        state=image.get("State", ImageState.UNKNOWN),
        created_at=image["CreationDate"],
        snapshot_ids=_snapshot_ids(image),
    )


def _launch_template_of(resource: dict[str, Any]) -> str | None:
    template = resource.get("LaunchTemplate") or {}
    return template.get("LaunchTemplateName")


class ResourceInspector:
    """Stateless queries for the resources a deployment depends on."""

    def __init__(self, config: DeployConfig, clients: AWSClients) -> None:
        self._config = config
        self._clients = clients

    @property
    def region(self) -> str:
        return self._config.region

    async def lookup_images(self, name: str, exact_match: bool) -> ImageLookup:
        """Find images by exact name or name prefix.

        The newest image by creation date is reported as ``latest``; every
        other match is ``superseded`` and carries its snapshot ids.
        """
        pattern = name if exact_match else f"{name}*"
        response = await aws_call(
            "describe_images",
            self._clients.ec2.describe_images,
            Owners=[self._config.image_owner],
            Filters=[{"Name": "name", "Values": [pattern]}],
        )

        images = [_to_image_record(image) for image in response.get("Images", [])]
        if not images:
            return ImageLookup(
                state=ImageState.UNKNOWN,
                description=f"image {pattern} not found in {self.region}",
            )

        images.sort(key=lambda image: image.created_at, reverse=True)
        latest, superseded = images[0], tuple(images[1:])
        stats = (
            f"(id: {latest.image_id}, state: {latest.state}, "
            f"created: {latest.created_at.isoformat()})"
        )

        if latest.state != ImageState.AVAILABLE:
            description = f"image {latest.name} is not available {stats}"
        else:
            description = f"found image {latest.name} {stats}"

        return ImageLookup(
            state=latest.state,
            latest=latest,
            superseded=superseded,
            description=description,
        )

    async def describe_load_balancer(self) -> LoadBalancerStatus:
        """Return the fleet's load balancer or raise ResourceNotFoundError."""
        name = self._config.load_balancer_name
        try:
            response = await aws_call(
                "describe_load_balancers",
                self._clients.elb.describe_load_balancers,
                passthrough=(LOAD_BALANCER_NOT_FOUND,),
                LoadBalancerNames=[name],
            )
        except ClientError as exc:
            raise ResourceNotFoundError(
                "check_load_balancer", "load balancer", name, self.region
            ) from exc

        descriptions = response.get("LoadBalancerDescriptions", [])
        if not descriptions:
            raise ResourceNotFoundError(
                "check_load_balancer", "load balancer", name, self.region
            )

        lb = descriptions[0]
        status = LoadBalancerStatus(
            name=name,
            dns_name=lb.get("DNSName", ""),
            member_count=len(lb.get("Instances", [])),
        )
        logger.info(
            f"Found load balancer {status.dns_name} with "
            f"{status.member_count} member instances"
        )
        return status

    async def launch_template_exists(self, name: str) -> bool:
        """Return True if a launch template named ``name`` is registered."""
        try:
            response = await aws_call(
                "describe_launch_templates",
                self._clients.ec2.describe_launch_templates,
                passthrough=(LAUNCH_TEMPLATE_NOT_FOUND,),
                LaunchTemplateNames=[name],
            )
        except ClientError:
            return False

        exists = bool(response.get("LaunchTemplates"))
        if exists:
            logger.info(f"Found an existing launch template {name} in {self.region}")
        return exists

    async def describe_fleet(self) -> FleetSnapshot:
        """Return a fresh snapshot of the Auto Scaling group."""
        name = self._config.fleet_name
        response = await aws_call(
            "describe_auto_scaling_groups",
            self._clients.autoscaling.describe_auto_scaling_groups,
            AutoScalingGroupNames=[name],
        )

        groups = response.get("AutoScalingGroups", [])
        if not groups:
            raise ResourceNotFoundError(
                "check_fleet", "auto-scaling group", name, self.region
            )

        group = groups[0]
        members = tuple(
            FleetMember(
                instance_id=instance["InstanceId"],
                lifecycle_state=instance.get("LifecycleState", ""),
                health_status=instance.get("HealthStatus", ""),
                launch_template_name=_launch_template_of(instance),
            )
            for instance in group.get("Instances", [])
        )
        return FleetSnapshot(
            name=name,
            desired_capacity=group["DesiredCapacity"],
            min_size=group["MinSize"],
            max_size=group["MaxSize"],
            launch_template_name=_launch_template_of(group),
            members=members,
        )

    async def find_security_groups(self) -> list[str]:
        """Return ids of the application group and, if present, the base group."""
        app_group = self._config.security_group_name
        base_group = self._config.base_security_group
        response = await aws_call(
            "describe_security_groups",
            self._clients.ec2.describe_security_groups,
            Filters=[{"Name": "group-name", "Values": [app_group, base_group]}],
        )

        group_ids: list[str] = []
        app_group_found = False
        for group in response.get("SecurityGroups", []):
            if group["GroupName"] in (app_group, base_group):
                group_ids.append(group["GroupId"])
            if group["GroupName"] == app_group:
                app_group_found = True

        if not app_group_found:
            raise ResourceNotFoundError(
                "check_security_groups", "security group", app_group, self.region
            )

        logger.info(
            f"Found {len(group_ids)} security group(s) in {self.region}: {group_ids}"
        )
        return group_ids

    async def check_key_pair(self) -> str:
        """Verify the application key pair exists and return its name."""
        name = self._config.key_pair_name
        try:
            response = await aws_call(
                "describe_key_pairs",
                self._clients.ec2.describe_key_pairs,
                passthrough=(KEY_PAIR_NOT_FOUND,),
                KeyNames=[name],
            )
        except ClientError as exc:
            raise ResourceNotFoundError(
                "check_key_pair", "key pair", name, self.region
            ) from exc

        if not response.get("KeyPairs"):
            raise ResourceNotFoundError("check_key_pair", "key pair", name, self.region)

        logger.info(f"Found key pair {name} in {self.region}")
        return name

    async def check_instance_profile(self) -> str:
        """Verify the application role has an instance profile; return its name."""
        role = self._config.instance_profile_name
        try:
            response = await aws_call(
                "list_instance_profiles_for_role",
                self._clients.iam.list_instance_profiles_for_role,
                passthrough=(IAM_NO_SUCH_ENTITY,),
                RoleName=role,
            )
        except ClientError as exc:
            raise ResourceNotFoundError(
                "check_instance_profile", "instance profile", role, self.region
            ) from exc

        if not response.get("InstanceProfiles"):
            raise ResourceNotFoundError(
                "check_instance_profile", "instance profile", role, self.region
            )

        logger.info(f"Found instance profile {role} in {self.region}")
        return role

    async def instance_health(self, instance_id: str) -> str:
        """Return the load balancer's view of ``instance_id``.

        An instance the load balancer does not know about yet is reported as
        ``InstanceNotRegistered`` rather than an error.
        """
        try:
            response = await aws_call(
                "describe_instance_health",
                self._clients.elb.describe_instance_health,
                passthrough=(ELB_INVALID_INSTANCE,),
                LoadBalancerName=self._config.load_balancer_name,
                Instances=[{"InstanceId": instance_id}],
            )
        except ClientError:
            return LB_STATE_NOT_REGISTERED

        states = response.get("InstanceStates", [])
        if not states:
            return LB_STATE_NOT_REGISTERED
        return str(states[0]["State"])
