"""Environment variable substitution for configuration files."""

import os
import re

from fleetdeck.lib.errors import ConfigError

# Matches ${VAR_NAME}
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def substitute_env_vars(text: str) -> str:
    """Replace every ``${VAR_NAME}`` in ``text`` with its environment value.

    Args:
        text: Raw configuration text

    Returns:
        Text with all references substituted

    Raises:
        ConfigError: If a referenced variable is not set

    Example:
        >>> os.environ["APP_VERSION"] = "1.2.0"
        >>> substitute_env_vars("version: ${APP_VERSION}")
        'version: 1.2.0'
    """

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        value = os.environ.get(name)
        if value is None:
            raise ConfigError(
                field=name,
                message=f"Environment variable '{name}' is referenced but not set",
            )
        return value

    return ENV_VAR_PATTERN.sub(replace, text)
