"""Shared fixtures for deployment tests.

Provides an in-memory stand-in for the EC2, ELB, Auto Scaling and IAM
clients. It answers with boto3-shaped responses, raises botocore
ClientErrors for missing resources, records every mutating call, and
simulates the Auto Scaling group launching and replacing instances.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from botocore.exceptions import ClientError

from fleetdeck.deploy.actions import FleetActions
from fleetdeck.deploy.aws import AWSClients
from fleetdeck.deploy.inspector import ResourceInspector
from fleetdeck.models.deployment import DeployConfig

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def client_error(code: str, operation: str, message: str = "error") -> ClientError:
    """Build a botocore ClientError with the given code."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def make_image(
    image_id: str,
    name: str,
    state: str = "available",
    age_days: int = 0,
    snapshot_ids: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Build a describe_images entry; larger age_days means older."""
    created = BASE_TIME - timedelta(days=age_days)
    return {
        "ImageId": image_id,
        "Name": name,
        "State": state,
        "CreationDate": created.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
        "BlockDeviceMappings": [
            {"DeviceName": "/dev/xvda", "Ebs": {"SnapshotId": sid}}
            for sid in snapshot_ids
        ]
        + [{"DeviceName": "/dev/xvdb", "VirtualName": "ephemeral0"}],
    }


class FakeAWS:
    """In-memory AWS account holding one fleet and its dependencies."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._instance_counter = 0
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failures: dict[str, Exception] = {}

        self.images: list[dict[str, Any]] = []
        self.launch_templates: dict[str, dict[str, Any]] = {}
        self.group: dict[str, Any] | None = None
        self.load_balancer: dict[str, Any] | None = None
        self.lb_health_sequence: list[str | None] = [None, "OutOfService"]
        self.security_groups: list[dict[str, str]] = []
        self.key_pairs: list[str] = []
        self.instance_profiles: dict[str, list[str]] = {}
        self.suspended = False

    # -- setup helpers -------------------------------------------------

    def add_fleet(
        self,
        name: str,
        launch_template: str | None,
        desired: int,
        max_size: int,
        min_size: int = 1,
    ) -> None:
        self.group = {
            "AutoScalingGroupName": name,
            "DesiredCapacity": desired,
            "MinSize": min_size,
            "MaxSize": max_size,
            "Instances": [],
        }
        if launch_template:
            self.group["LaunchTemplate"] = {"LaunchTemplateName": launch_template}
            self.launch_templates[launch_template] = {}
        for _ in range(desired):
            self._launch(launch_template, pending=False, prefix="i-old")

    def add_dependencies(self, config: DeployConfig) -> None:
        """Create the load balancer, groups, key pair and profile for config."""
        self.load_balancer = {
            "LoadBalancerName": config.load_balancer_name,
            "DNSName": f"{config.load_balancer_name}.elb.amazonaws.com",
            "Instances": [
                {"InstanceId": i["InstanceId"]} for i in self.instances
            ],
        }
        self.security_groups = [
            {"GroupName": config.security_group_name, "GroupId": "sg-app"},
            {"GroupName": config.base_security_group, "GroupId": "sg-base"},
        ]
        self.key_pairs = [config.key_pair_name]
        self.instance_profiles = {
            config.instance_profile_name: [config.instance_profile_name]
        }

    @property
    def instances(self) -> list[dict[str, Any]]:
        assert self.group is not None
        return self.group["Instances"]

    def mutations(self) -> list[str]:
        return [name for name, _ in self.calls]

    def _launch(self, launch_template: str | None, pending: bool, prefix: str) -> str:
        self._instance_counter += 1
        instance_id = f"{prefix}{self._instance_counter}"
        instance: dict[str, Any] = {
            "InstanceId": instance_id,
            "LifecycleState": "Pending" if pending else "InService",
            "HealthStatus": "Healthy",
        }
        if launch_template:
            instance["LaunchTemplate"] = {"LaunchTemplateName": launch_template}
        self.instances.append(instance)
        return instance_id

    def _record(self, name: str, params: dict[str, Any]) -> None:
        if name in self.failures:
            raise self.failures[name]
        self.calls.append((name, params))

    def _current_template(self) -> str | None:
        assert self.group is not None
        return self.group.get("LaunchTemplate", {}).get("LaunchTemplateName")

    # -- clients -------------------------------------------------------

    def clients(self) -> AWSClients:
        return AWSClients(
            ec2=FakeEC2(self),
            elb=FakeELB(self),
            autoscaling=FakeAutoScaling(self),
            iam=FakeIAM(self),
        )


class _FakeClient:
    def __init__(self, aws: FakeAWS) -> None:
        self.aws = aws

    def _check_read(self, name: str) -> None:
        if name in self.aws.failures:
            raise self.aws.failures[name]


class FakeEC2(_FakeClient):
    def describe_images(self, **params: Any) -> dict[str, Any]:
        self._check_read("describe_images")
        pattern = params["Filters"][0]["Values"][0]
        if pattern.endswith("*"):
            prefix = pattern[:-1]
            matched = [i for i in self.aws.images if i["Name"].startswith(prefix)]
        else:
            matched = [i for i in self.aws.images if i["Name"] == pattern]
        return {"Images": [dict(i) for i in matched]}

    def describe_launch_templates(self, **params: Any) -> dict[str, Any]:
        self._check_read("describe_launch_templates")
        name = params["LaunchTemplateNames"][0]
        if name not in self.aws.launch_templates:
            raise client_error(
                "InvalidLaunchTemplateName.NotFoundException",
                "DescribeLaunchTemplates",
            )
        return {"LaunchTemplates": [{"LaunchTemplateName": name}]}

    def create_launch_template(self, **params: Any) -> dict[str, Any]:
        with self.aws._lock:
            self.aws._record("create_launch_template", params)
            self.aws.launch_templates[params["LaunchTemplateName"]] = params
        return {"LaunchTemplate": {"LaunchTemplateName": params["LaunchTemplateName"]}}

    def delete_launch_template(self, **params: Any) -> dict[str, Any]:
        with self.aws._lock:
            self.aws._record("delete_launch_template", params)
            self.aws.launch_templates.pop(params["LaunchTemplateName"], None)
        return {}

    def describe_security_groups(self, **params: Any) -> dict[str, Any]:
        self._check_read("describe_security_groups")
        wanted = params["Filters"][0]["Values"]
        return {
            "SecurityGroups": [
                g for g in self.aws.security_groups if g["GroupName"] in wanted
            ]
        }

    def describe_key_pairs(self, **params: Any) -> dict[str, Any]:
        self._check_read("describe_key_pairs")
        name = params["KeyNames"][0]
        if name not in self.aws.key_pairs:
            raise client_error("InvalidKeyPair.NotFound", "DescribeKeyPairs")
        return {"KeyPairs": [{"KeyName": name}]}

    def deregister_image(self, **params: Any) -> dict[str, Any]:
        with self.aws._lock:
            self.aws._record(f"deregister_image:{params['ImageId']}", params)
            self.aws.images = [
                i for i in self.aws.images if i["ImageId"] != params["ImageId"]
            ]
        return {}

    def delete_snapshot(self, **params: Any) -> dict[str, Any]:
        with self.aws._lock:
            self.aws._record(f"delete_snapshot:{params['SnapshotId']}", params)
        return {}


class FakeELB(_FakeClient):
    def describe_load_balancers(self, **params: Any) -> dict[str, Any]:
        self._check_read("describe_load_balancers")
        lb = self.aws.load_balancer
        if lb is None or lb["LoadBalancerName"] != params["LoadBalancerNames"][0]:
            raise client_error("LoadBalancerNotFound", "DescribeLoadBalancers")
        return {"LoadBalancerDescriptions": [lb]}

    def describe_instance_health(self, **params: Any) -> dict[str, Any]:
        self._check_read("describe_instance_health")
        with self.aws._lock:
            sequence = self.aws.lb_health_sequence
            state = sequence.pop(0) if sequence else "InService"
        if state is None:
            return {"InstanceStates": []}
        instance_id = params["Instances"][0]["InstanceId"]
        return {"InstanceStates": [{"InstanceId": instance_id, "State": state}]}


class FakeAutoScaling(_FakeClient):
    def describe_auto_scaling_groups(self, **params: Any) -> dict[str, Any]:
        self._check_read("describe_auto_scaling_groups")
        group = self.aws.group
        if group is None or group["AutoScalingGroupName"] not in params.get(
            "AutoScalingGroupNames", []
        ):
            return {"AutoScalingGroups": []}

        with self.aws._lock:
            response = {
                "AutoScalingGroups": [
                    {**group, "Instances": [dict(i) for i in group["Instances"]]}
                ]
            }
            # Pending instances come into service by the next describe
            for instance in group["Instances"]:
                if instance["LifecycleState"] == "Pending":
                    instance["LifecycleState"] = "InService"
        return response

    def update_auto_scaling_group(self, **params: Any) -> dict[str, Any]:
        with self.aws._lock:
            self.aws._record("update_auto_scaling_group", params)
            group = self.aws.group
            assert group is not None
            if "LaunchTemplate" in params:
                group["LaunchTemplate"] = {
                    "LaunchTemplateName": params["LaunchTemplate"]["LaunchTemplateName"]
                }
            group["MaxSize"] = params.get("MaxSize", group["MaxSize"])
            group["DesiredCapacity"] = params.get(
                "DesiredCapacity", group["DesiredCapacity"]
            )
            template = self.aws._current_template()
            while len(group["Instances"]) < group["DesiredCapacity"]:
                self.aws._launch(template, pending=True, prefix="i-new")
            while len(group["Instances"]) > group["DesiredCapacity"]:
                group["Instances"].pop()
        return {}

    def suspend_processes(self, **params: Any) -> dict[str, Any]:
        with self.aws._lock:
            self.aws._record("suspend_processes", params)
            self.aws.suspended = True
        return {}

    def resume_processes(self, **params: Any) -> dict[str, Any]:
        with self.aws._lock:
            self.aws._record("resume_processes", params)
            self.aws.suspended = False
        return {}

    def terminate_instance_in_auto_scaling_group(
        self, **params: Any
    ) -> dict[str, Any]:
        with self.aws._lock:
            self.aws._record("terminate_instance_in_auto_scaling_group", params)
            group = self.aws.group
            assert group is not None
            group["Instances"] = [
                i for i in group["Instances"] if i["InstanceId"] != params["InstanceId"]
            ]
            if not params["ShouldDecrementDesiredCapacity"]:
                # The group replaces the terminated instance
                self.aws._launch(
                    self.aws._current_template(), pending=False, prefix="i-rep"
                )
        return {}


class FakeIAM(_FakeClient):
    def list_instance_profiles_for_role(self, **params: Any) -> dict[str, Any]:
        self._check_read("list_instance_profiles_for_role")
        role = params["RoleName"]
        if role not in self.aws.instance_profiles:
            raise client_error("NoSuchEntity", "ListInstanceProfilesForRole")
        return {
            "InstanceProfiles": [
                {"InstanceProfileName": name}
                for name in self.aws.instance_profiles[role]
            ]
        }


class RecordingSleep:
    """Awaitable sleep that records requested delays and returns at once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


@pytest.fixture
def prod_config() -> DeployConfig:
    """Production deployment of app 1.2.0."""
    return DeployConfig(
        app_name="app",
        environment="prod",
        version="1.2.0",
        instance_type="t3.small",
    )


@pytest.fixture
def dev_config() -> DeployConfig:
    """Development deployment of app 1.2.0 with a fixed suffix."""
    return DeployConfig(
        app_name="app",
        environment="develop",
        version="1.2.0",
        instance_type="t3.small",
        timestamp_ms=1700000000000,
    )


@pytest.fixture
def fake_aws_factory() -> Callable[[DeployConfig], FakeAWS]:
    """Return a factory building a healthy account for a config.

    The fleet has desired=2, max=2 on the previous launch template, and the
    target image is available.
    """

    def _build(config: DeployConfig) -> FakeAWS:
        aws = FakeAWS()
        previous = (
            "app-develop@1.1.0-1690000000000"
            if config.is_development
            else f"{config.fleet_name}@1.1.0"
        )
        aws.add_fleet(config.fleet_name, previous, desired=2, max_size=2)
        aws.add_dependencies(config)
        aws.images.append(
            make_image("ami-new", config.image_name, snapshot_ids=("snap-new",))
        )
        return aws

    return _build


@pytest.fixture
def sleep() -> RecordingSleep:
    """Recording sleep replacing asyncio.sleep in polls."""
    return RecordingSleep()


@pytest.fixture
def make_inspector() -> Callable[[DeployConfig, FakeAWS], ResourceInspector]:
    def _make(config: DeployConfig, aws: FakeAWS) -> ResourceInspector:
        return ResourceInspector(config, aws.clients())

    return _make


@pytest.fixture
def make_actions() -> Callable[[DeployConfig, FakeAWS], FleetActions]:
    def _make(config: DeployConfig, aws: FakeAWS) -> FleetActions:
        return FleetActions(config, aws.clients())

    return _make


@pytest.fixture
def fake_aws() -> FakeAWS:
    """Empty in-memory AWS account."""
    return FakeAWS()


@pytest.fixture
def image_factory() -> Callable[..., dict[str, Any]]:
    """Builder for describe_images entries."""
    return make_image


@pytest.fixture(name="client_error")
def client_error_fixture() -> Callable[..., ClientError]:
    """Builder for botocore ClientErrors."""
    return client_error
