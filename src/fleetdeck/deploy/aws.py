"""boto3 client construction and error translation.

All AWS calls made by the inspector and the fleet actions go through
:func:`aws_call`, which runs the blocking boto3 call in a worker thread and
turns botocore failures into :class:`TransportError`.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from fleetdeck.lib.errors import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AWSConfig:
    """AWS connection settings.

    Attributes:
        region: AWS region
        profile: Named credentials profile (optional)
        endpoint_url: Custom endpoint for LocalStack/testing
    """

    region: str
    profile: str | None = None
    endpoint_url: str | None = None

    @classmethod
    def from_env(cls, region: str) -> AWSConfig:
        """Build settings for ``region`` with overrides from the environment."""
        return cls(
            region=region,
            profile=os.environ.get("FLEETDECK_AWS_PROFILE")
            or os.environ.get("AWS_PROFILE"),
            endpoint_url=os.environ.get("FLEETDECK_AWS_ENDPOINT_URL")
            or os.environ.get("AWS_ENDPOINT_URL"),
        )


@dataclass(frozen=True)
class AWSClients:
    """The four service clients a rolling deployment talks to."""

    ec2: Any
    elb: Any
    autoscaling: Any
    iam: Any


def create_clients(config: AWSConfig) -> AWSClients:
    """Create EC2, ELB, Auto Scaling and IAM clients for ``config``.

    botocore's own retry mode is left at "standard"; fleetdeck never retries
    a failed call itself.
    """
    session = boto3.Session(profile_name=config.profile, region_name=config.region)
    kwargs: dict[str, Any] = {"config": BotoConfig(retries={"mode": "standard"})}
    if config.endpoint_url:
        kwargs["endpoint_url"] = config.endpoint_url

    return AWSClients(
        ec2=session.client("ec2", **kwargs),
        elb=session.client("elb", **kwargs),
        autoscaling=session.client("autoscaling", **kwargs),
        iam=session.client("iam", **kwargs),
    )


def error_code(exc: ClientError) -> str:
    """Return the AWS error code of a ClientError."""
    return str(exc.response.get("Error", {}).get("Code", ""))


async def aws_call(
    operation: str,
    method: Callable[..., Any],
    *,
    passthrough: tuple[str, ...] = (),
    **params: Any,
) -> Any:
    """Invoke a boto3 client method without blocking the event loop.

    Args:
        operation: Name used in error messages
        method: Bound boto3 client method
        passthrough: Error codes re-raised as ClientError for the caller to
            interpret (e.g. a not-found code that means "absent")
        **params: Request parameters

    Returns:
        The response dictionary.

    Raises:
        TransportError: If the call fails
        ClientError: If the error code is listed in ``passthrough``
    """
    try:
        return await asyncio.to_thread(functools.partial(method, **params))
    except ClientError as exc:
        code = error_code(exc)
        if code in passthrough:
            raise
        message = exc.response.get("Error", {}).get("Message", str(exc))
        raise TransportError(operation, f"{code}: {message}", code=code) from exc
    except BotoCoreError as exc:
        raise TransportError(operation, str(exc)) from exc
