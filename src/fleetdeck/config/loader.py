"""Configuration loader for fleetdeck deployments.

Builds a DeployConfig from, in increasing order of precedence:

1. Built-in defaults (see :mod:`fleetdeck.config.defaults`)
2. An optional YAML file (``fleetdeck.yaml`` in the working directory, or an
   explicit path), with ``${VAR}`` environment substitution
3. ``FLEETDECK_*`` environment variables
4. Explicit overrides (CLI options)
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from fleetdeck.config.defaults import DEFAULT_CONFIG_FILE
from fleetdeck.config.env_loader import substitute_env_vars
from fleetdeck.config.validator import to_config_error
from fleetdeck.lib.errors import ConfigError
from fleetdeck.models.deployment import DeployConfig

logger = logging.getLogger(__name__)

# Environment variable to field name mapping
ENV_VAR_MAP = {
    "app_name": "FLEETDECK_APP",
    "environment": "FLEETDECK_ENV",
    "version": "FLEETDECK_VERSION",
    "instance_type": "FLEETDECK_INSTANCE_TYPE",
    "region": "FLEETDECK_REGION",
    "dev_env_name": "FLEETDECK_DEV_ENV",
    "base_security_group": "FLEETDECK_BASE_SECURITY_GROUP",
    "image_owner": "FLEETDECK_IMAGE_OWNER",
}


def _read_yaml_file(path: Path) -> dict[str, Any]:
    """Read a YAML mapping with environment variable substitution.

    Raises:
        ConfigError: If the file cannot be read or is not a mapping
    """
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(field="config", message=f"Cannot read {path}: {exc}") from exc

    try:
        content = yaml.safe_load(substitute_env_vars(raw_text))
    except yaml.YAMLError as exc:
        raise ConfigError(
            field="config", message=f"Invalid YAML in {path}: {exc}"
        ) from exc

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(
            field="config",
            message=f"{path} must contain a mapping, got {type(content).__name__}",
        )
    return content


def _env_values(env: Mapping[str, str]) -> dict[str, str]:
    return {
        field: env[var]
        for field, var in ENV_VAR_MAP.items()
        if env.get(var)
    }


def load_deploy_config(
    config_path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> DeployConfig:
    """Load and validate the deployment configuration.

    Args:
        config_path: YAML file to read; ``fleetdeck.yaml`` in the current
            directory is used when present and no path is given
        overrides: Field values that take precedence over everything else;
            None values are ignored
        env: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated DeployConfig

    Raises:
        ConfigError: If the file is missing or invalid, or validation fails
    """
    env = os.environ if env is None else env
    data: dict[str, Any] = {}

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(field="config", message=f"File not found: {path}")
        data.update(_read_yaml_file(path))
    elif Path(DEFAULT_CONFIG_FILE).exists():
        logger.debug(f"Using configuration from {DEFAULT_CONFIG_FILE}")
        data.update(_read_yaml_file(Path(DEFAULT_CONFIG_FILE)))

    data.update(_env_values(env))
    if overrides:
        data.update(
            {key: value for key, value in overrides.items() if value is not None}
        )

    try:
        return DeployConfig(**data)
    except PydanticValidationError as exc:
        raise to_config_error(exc) from exc
