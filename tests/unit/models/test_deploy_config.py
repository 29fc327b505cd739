"""Tests for the DeployConfig model."""

from __future__ import annotations

import base64
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from fleetdeck.models.deployment import DeployConfig


def _config(**overrides: object) -> DeployConfig:
    data: dict[str, object] = {
        "app_name": "app",
        "environment": "prod",
        "version": "1.2.0",
        "instance_type": "t3.small",
    }
    data.update(overrides)
    return DeployConfig(**data)


class TestDeployConfigDefaults:
    """Tests for defaults and derived names."""

    def test_defaults(self) -> None:
        """Region, dev env name and base group have defaults."""
        config = _config()

        assert config.region == "us-east-1"
        assert config.dev_env_name == "develop"
        assert config.base_security_group == "BASE"
        assert config.image_owner == "self"
        assert config.timestamp_ms is None
        assert config.is_development is False
        assert config.image_exact_match is True

    def test_resource_names(self) -> None:
        """Every resource name is derived from app, env and version."""
        assert _config().resource_names() == {
            "fleet": "app-prod",
            "launch_template": "app-prod@1.2.0",
            "image": "app@1.2.0",
            "key_pair": "app",
            "load_balancer": "app-prod",
            "security_group": "APP_PROD",
            "instance_profile": "app_prod",
        }

    def test_user_data_is_base64(self) -> None:
        """User data is the base64 encoded boot script."""
        decoded = base64.b64decode(_config().user_data).decode("utf-8")
        assert decoded == "#!/bin/bash\n\ninitctl emit launch-app NODE_ENV=prod"

    def test_config_is_frozen(self) -> None:
        """Configuration cannot be changed after construction."""
        config = _config()
        with pytest.raises(ValidationError):
            config.version = "2.0.0"  # type: ignore[misc]


class TestDevelopmentEnvironment:
    """Tests for development-only behavior."""

    def test_dev_env_gets_timestamp_suffix(self) -> None:
        """The development environment stamps the launch template name."""
        with patch(
            "fleetdeck.deploy.naming.unique_suffix", return_value=1700000000000
        ):
            config = _config(environment="develop")

        assert config.timestamp_ms == 1700000000000
        assert config.launch_template_name == "app-develop@1.2.0-1700000000000"
        assert config.is_development is True
        assert config.image_exact_match is False

    def test_explicit_timestamp_is_kept(self) -> None:
        config = _config(environment="develop", timestamp_ms=42)
        assert config.launch_template_name == "app-develop@1.2.0-42"

    def test_custom_dev_env_name(self) -> None:
        """A renamed development environment is recognized."""
        config = _config(environment="sandbox", dev_env_name="sandbox", timestamp_ms=1)
        assert config.is_development is True

    def test_timestamp_rejected_outside_dev(self) -> None:
        """Only the development environment may carry a suffix."""
        with pytest.raises(ValidationError, match="only allowed"):
            _config(timestamp_ms=1700000000000)


class TestDeployConfigValidation:
    """Tests for field validation."""

    @pytest.mark.parametrize("field", ["app_name", "environment", "version"])
    def test_rejects_invalid_characters(self, field: str) -> None:
        with pytest.raises(ValidationError):
            _config(**{field: "bad name!"})

    def test_rejects_invalid_region(self) -> None:
        with pytest.raises(ValidationError, match="Invalid AWS region"):
            _config(region="mars")

    def test_requires_instance_type(self) -> None:
        with pytest.raises(ValidationError):
            DeployConfig(app_name="app", environment="prod", version="1.2.0")

    def test_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            _config(subnet="x")

    @pytest.mark.parametrize("owner", ["self", "amazon", "123456789012"])
    def test_accepts_image_owner(self, owner: str) -> None:
        assert _config(image_owner=owner).image_owner == owner

    @pytest.mark.parametrize("owner", ["", "someone", "12345"])
    def test_rejects_invalid_image_owner(self, owner: str) -> None:
        with pytest.raises(ValidationError, match="Invalid image owner"):
            _config(image_owner=owner)
