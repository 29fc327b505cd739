"""Pydantic models for deployment configuration.

This module defines the bootstrap configuration of a rolling deployment and
the resource names derived from it.
"""

import base64
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fleetdeck.config.defaults import (
    DEFAULT_BASE_SECURITY_GROUP,
    DEFAULT_DEV_ENV_NAME,
    DEFAULT_IMAGE_OWNER,
    DEFAULT_REGION,
)
from fleetdeck.deploy import naming

# Regex patterns for validation
NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
VERSION_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.+-]*$")
REGION_PATTERN = re.compile(r"^[a-z]{2}(-[a-z]+)+-\d$")
# "self", an AWS-managed owner alias or a 12-digit account id
IMAGE_OWNER_PATTERN = re.compile(r"^(self|amazon|aws-marketplace|\d{12})$")


class DeployConfig(BaseModel):
    """Immutable configuration for one deployment run.

    All resource names are derived from ``app_name``, ``environment`` and
    ``version``. In the development environment the launch template name
    gets a per-run millisecond timestamp so the same version can be
    redeployed, and images are matched by prefix.

    Attributes:
        app_name: Application name
        environment: Target environment (e.g. production, develop)
        version: Version tag of the image to deploy
        instance_type: EC2 instance type for new instances
        region: AWS region
        dev_env_name: Name of the development environment
        base_security_group: Shared security group attached when present
        image_owner: Owner whose images are looked up ("self" or an account id)
        timestamp_ms: Uniqueness suffix (development environment only)
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    app_name: str = Field(..., description="Application name")
    environment: str = Field(..., description="Target environment")
    version: str = Field(..., description="Version tag of the image to deploy")
    instance_type: str = Field(..., description="EC2 instance type")
    region: str = Field(default=DEFAULT_REGION, description="AWS region")
    dev_env_name: str = Field(
        default=DEFAULT_DEV_ENV_NAME, description="Development environment name"
    )
    base_security_group: str = Field(
        default=DEFAULT_BASE_SECURITY_GROUP,
        description="Shared security group name",
    )
    image_owner: str = Field(
        default=DEFAULT_IMAGE_OWNER,
        description="Owner of the images to deploy",
    )
    timestamp_ms: int | None = Field(
        default=None,
        ge=0,
        description="Launch template uniqueness suffix (development only)",
    )

    @model_validator(mode="before")
    @classmethod
    def assign_dev_suffix(cls, data: Any) -> Any:
        """Stamp a uniqueness suffix when deploying to the development env."""
        if not isinstance(data, dict):
            return data
        dev_env = data.get("dev_env_name") or DEFAULT_DEV_ENV_NAME
        if data.get("environment") == dev_env and data.get("timestamp_ms") is None:
            data = {**data, "timestamp_ms": naming.unique_suffix()}
        return data

    @field_validator("app_name", "environment")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate names used to build AWS resource names."""
        if not NAME_PATTERN.match(v):
            raise ValueError(
                f"Invalid name: {v!r}. Must start with a letter or digit and "
                "contain only letters, digits, '_', '.', '-'"
            )
        return v

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate the version tag."""
        if not VERSION_PATTERN.match(v):
            raise ValueError(f"Invalid version: {v!r}")
        return v

    @field_validator("image_owner")
    @classmethod
    def validate_image_owner(cls, v: str) -> str:
        """Validate the image owner (self, amazon, aws-marketplace or account id)."""
        if not IMAGE_OWNER_PATTERN.match(v):
            raise ValueError(f"Invalid image owner: {v!r}")
        return v

    @field_validator("region")
    @classmethod
    def validate_region(cls, v: str) -> str:
        """Validate AWS region format (e.g. us-east-1)."""
        if not REGION_PATTERN.match(v):
            raise ValueError(f"Invalid AWS region: {v!r}")
        return v

    @model_validator(mode="after")
    def validate_suffix_scope(self) -> "DeployConfig":
        """Only the development environment carries a uniqueness suffix."""
        if self.timestamp_ms is not None and not self.is_development:
            raise ValueError(
                "timestamp_ms is only allowed for the development environment "
                f"'{self.dev_env_name}'"
            )
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == self.dev_env_name

    @property
    def image_exact_match(self) -> bool:
        """Images are matched by exact name outside the development env."""
        return not self.is_development

    @property
    def image_name(self) -> str:
        return naming.image_name(self.app_name, self.version)

    @property
    def launch_template_name(self) -> str:
        return naming.launch_template_name(
            self.app_name, self.environment, self.version, self.timestamp_ms
        )

    @property
    def fleet_name(self) -> str:
        return naming.fleet_name(self.app_name, self.environment)

    @property
    def load_balancer_name(self) -> str:
        return naming.load_balancer_name(self.app_name, self.environment)

    @property
    def security_group_name(self) -> str:
        return naming.security_group_name(self.app_name, self.environment)

    @property
    def key_pair_name(self) -> str:
        return naming.key_pair_name(self.app_name)

    @property
    def instance_profile_name(self) -> str:
        return naming.instance_profile_name(self.app_name, self.environment)

    @property
    def user_data(self) -> str:
        """Base64-encoded boot script, as EC2 expects it."""
        script = naming.user_data_script(self.app_name, self.environment)
        return base64.b64encode(script.encode("utf-8")).decode("ascii")

    def resource_names(self) -> dict[str, str]:
        """Return every derived resource name keyed by resource kind."""
        return {
            "fleet": self.fleet_name,
            "launch_template": self.launch_template_name,
            "image": self.image_name,
            "key_pair": self.key_pair_name,
            "load_balancer": self.load_balancer_name,
            "security_group": self.security_group_name,
            "instance_profile": self.instance_profile_name,
        }
