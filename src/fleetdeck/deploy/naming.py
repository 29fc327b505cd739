"""AWS resource naming conventions.

Expected names for an application ``app`` deployed to ``env`` at ``version``:

    Auto Scaling group:  <app>-<env>
    Launch template:     <app>-<env>@<version>   (dev env: -<unix ms> suffix)
    AMI:                 <app>@<version>
    Key pair:            <app>
    Load balancer:       <app>-<env>              (non-alphanumerics removed from app)
    Security group:      <APP>_<ENV>
    IAM role / profile:  <app>_<env>
"""

from __future__ import annotations

import re
import time

_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


def fleet_name(app: str, env: str) -> str:
    """Return the Auto Scaling group name."""
    return f"{app}-{env}"


def launch_template_name(
    app: str, env: str, version: str, suffix_ms: int | None = None
) -> str:
    """Return the launch template name, with an optional uniqueness suffix."""
    name = f"{app}-{env}@{version}"
    if suffix_ms is not None:
        name += f"-{suffix_ms}"
    return name


def image_name(app: str, version: str) -> str:
    """Return the AMI name."""
    return f"{app}@{version}"


def key_pair_name(app: str) -> str:
    """Return the EC2 key pair name."""
    return app


def load_balancer_name(app: str, env: str) -> str:
    """Return the load balancer name (ELB names only allow alphanumerics and -)."""
    return f"{_NON_ALPHANUMERIC.sub('', app)}-{env}"


def security_group_name(app: str, env: str) -> str:
    """Return the application security group name."""
    return f"{app.upper()}_{env.upper()}"


def instance_profile_name(app: str, env: str) -> str:
    """Return the IAM role and instance profile name."""
    return f"{app}_{env}"


def unique_suffix() -> int:
    """Return the current unix time in milliseconds."""
    return time.time_ns() // 1_000_000


def user_data_script(app: str, env: str) -> str:
    """Return the boot script that starts the application on a new instance."""
    return f"#!/bin/bash\n\ninitctl emit launch-{app} NODE_ENV={env}"
