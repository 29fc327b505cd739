"""Validation helpers for deployment configuration."""

from pydantic import ValidationError as PydanticValidationError

from fleetdeck.lib.errors import ConfigError

# CLI option that sets each DeployConfig field, used in error hints
FIELD_OPTIONS: dict[str, str] = {
    "app_name": "--app",
    "environment": "--env",
    "version": "--version",
    "instance_type": "--instance-type",
    "region": "--region",
    "image_owner": "--image-owner",
}


def flatten_pydantic_errors(exc: PydanticValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into one message per field.

    Args:
        exc: Pydantic ValidationError exception

    Returns:
        Human-readable error messages

    Example:
        >>> try:
        ...     DeployConfig(app_name="app", environment="prod")
        ... except PydanticValidationError as e:
        ...     flatten_pydantic_errors(e)
        ["Field 'version' (--version): Field required", ...]
    """
    messages: list[str] = []

    for error in exc.errors():
        loc = error.get("loc", ())
        field = ".".join(str(item) for item in loc) if loc else "config"
        option = FIELD_OPTIONS.get(field)
        label = f"'{field}' ({option})" if option else f"'{field}'"

        msg = error.get("msg", "Unknown error")
        if error.get("type") == "value_error":
            messages.append(f"Field {label}: {msg} (received: {error.get('input')!r})")
        else:
            messages.append(f"Field {label}: {msg}")

    return messages or ["Validation failed with unknown error"]


def to_config_error(exc: PydanticValidationError) -> ConfigError:
    """Convert a pydantic ValidationError into a ConfigError."""
    errors = exc.errors()
    loc = errors[0].get("loc", ()) if errors else ()
    field = str(loc[0]) if loc else "config"
    return ConfigError(field=field, message="; ".join(flatten_pydantic_errors(exc)))
