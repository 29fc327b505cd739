"""Configuration loading and defaults for fleetdeck deployments.

Main components:
- fleetdeck.config.loader.load_deploy_config: Build a DeployConfig from a
  YAML file, the environment and CLI options
- Environment variable substitution (${VAR_NAME} pattern)
- Default constants for regions, poll intervals and timeouts
"""

from fleetdeck.config.env_loader import substitute_env_vars

__all__ = [
    "substitute_env_vars",
]
