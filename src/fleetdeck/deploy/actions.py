"""Mutating AWS calls made during a rolling deployment.

Each call is issued once and awaited; nothing here retries or compensates.
"""

from __future__ import annotations

import logging

from fleetdeck.deploy.aws import AWSClients, aws_call
from fleetdeck.models.deployment import DeployConfig

logger = logging.getLogger(__name__)


class FleetActions:
    """Mutations against the fleet and the images that back it."""

    def __init__(self, config: DeployConfig, clients: AWSClients) -> None:
        self._config = config
        self._clients = clients

    async def suspend_processes(self) -> None:
        """Pause the Auto Scaling group's automatic processes."""
        await aws_call(
            "suspend_processes",
            self._clients.autoscaling.suspend_processes,
            AutoScalingGroupName=self._config.fleet_name,
        )
        logger.info(f"Suspended processes for {self._config.fleet_name}")

    async def resume_processes(self) -> None:
        """Resume the Auto Scaling group's automatic processes."""
        await aws_call(
            "resume_processes",
            self._clients.autoscaling.resume_processes,
            AutoScalingGroupName=self._config.fleet_name,
        )
        logger.info(f"Resumed processes for {self._config.fleet_name}")

    async def create_launch_template(
        self, image_id: str, security_group_ids: list[str]
    ) -> None:
        """Register the target launch template."""
        name = self._config.launch_template_name
        await aws_call(
            "create_launch_template",
            self._clients.ec2.create_launch_template,
            LaunchTemplateName=name,
            LaunchTemplateData={
                "ImageId": image_id,
                "InstanceType": self._config.instance_type,
                "KeyName": self._config.key_pair_name,
                "SecurityGroupIds": security_group_ids,
                "IamInstanceProfile": {"Name": self._config.instance_profile_name},
                "UserData": self._config.user_data,
            },
        )
        logger.info(f"Created launch template {name} in {self._config.region}")

    async def delete_launch_template(self, name: str) -> None:
        """Delete a launch template by name."""
        await aws_call(
            "delete_launch_template",
            self._clients.ec2.delete_launch_template,
            LaunchTemplateName=name,
        )
        logger.info(f"Deleted old launch template {name} in {self._config.region}")

    async def update_fleet(self, desired: int, max_size: int) -> None:
        """Assign the target launch template and set capacity bounds."""
        name = self._config.launch_template_name
        await aws_call(
            "update_auto_scaling_group",
            self._clients.autoscaling.update_auto_scaling_group,
            AutoScalingGroupName=self._config.fleet_name,
            LaunchTemplate={"LaunchTemplateName": name, "Version": "$Latest"},
            DesiredCapacity=desired,
            MaxSize=max_size,
        )
        logger.info(
            f"Updated auto-scaling group {self._config.fleet_name} "
            f"(lt: {name}, des: {desired}, max: {max_size})"
        )

    async def terminate_member(self, instance_id: str) -> None:
        """Terminate a fleet member without decrementing desired capacity."""
        await aws_call(
            "terminate_instance_in_auto_scaling_group",
            self._clients.autoscaling.terminate_instance_in_auto_scaling_group,
            InstanceId=instance_id,
            ShouldDecrementDesiredCapacity=False,
        )
        logger.info(
            f"Terminated auto-scaling group {self._config.fleet_name} "
            f"member instance: {instance_id}"
        )

    async def deregister_image(self, image_id: str) -> str:
        await aws_call(
            "deregister_image",
            self._clients.ec2.deregister_image,
            ImageId=image_id,
        )
        logger.info(f"De-registered AMI {image_id}")
        return image_id

    async def delete_snapshot(self, snapshot_id: str) -> str:
        await aws_call(
            "delete_snapshot",
            self._clients.ec2.delete_snapshot,
            SnapshotId=snapshot_id,
        )
        logger.info(f"Deleted snapshot {snapshot_id}")
        return snapshot_id
