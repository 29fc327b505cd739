"""CLI commands for rolling deployments.

Implements the 'fleetdeck deploy' command group for rolling a new AMI version
onto an Auto Scaling group and for running its checks on their own.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import Any, TypeVar

import click

from fleetdeck.config.loader import load_deploy_config
from fleetdeck.lib.errors import ConfigError, DeploymentError
from fleetdeck.lib.logging_config import get_logger, setup_logging
from fleetdeck.models.deployment import DeployConfig
from fleetdeck.models.fleet import DeployReport, PreflightResult

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@contextmanager
def handle_deployment_errors() -> Generator[None, None, None]:
    """Context manager for consistent error handling in deployment commands.

    Exit codes:
        2: Configuration error
        3: Deployment error
    """
    try:
        yield
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        click.secho("Error: Configuration error", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except DeploymentError as e:
        logger.error(f"Deployment error: {e}")
        click.secho(f"Error: {e.operation} failed", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(3)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(3)


def deploy_options(func: F) -> F:
    """Attach the options shared by every deploy subcommand."""
    options = [
        click.option("--app", "app_name", type=str, help="Application name"),
        click.option("--env", "environment", type=str, help="Target environment"),
        click.option("--version", "version", type=str, help="Version to deploy"),
        click.option(
            "--instance-type", "instance_type", type=str, help="EC2 instance type"
        ),
        click.option("--region", type=str, default=None, help="AWS region"),
        click.option(
            "--image-owner",
            "image_owner",
            type=str,
            default=None,
            help="Owner of the AMIs to deploy (self or an account id)",
        ),
        click.option(
            "--config",
            "config_path",
            type=click.Path(exists=True, dir_okay=False),
            default=None,
            help="Path to a fleetdeck.yaml file",
        ),
        click.option(
            "--verbose", "-v", is_flag=True, help="Enable verbose debug logging"
        ),
        click.option("--quiet", "-q", is_flag=True, help="Suppress progress output"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_config(config_path: str | None, **overrides: Any) -> DeployConfig:
    return load_deploy_config(config_path, overrides=overrides)


def _display_config(config: DeployConfig) -> None:
    click.echo()
    click.secho("Deploy Configuration:", bold=True)
    click.echo(f"  Application:      {config.app_name}")
    click.echo(f"  Environment:      {config.environment}")
    click.echo(f"  Version:          {config.version}")
    click.echo(f"  Instance type:    {config.instance_type}")
    click.echo(f"  Region:           {config.region}")
    click.echo(f"  Image owner:      {config.image_owner}")
    click.echo()


def _display_names(config: DeployConfig) -> None:
    click.secho("Resource Names:", bold=True)
    for kind, name in config.resource_names().items():
        click.echo(f"  {kind + ':':<18}{name}")


def _display_preflight(result: PreflightResult) -> None:
    click.secho("Preflight Checks Passed:", fg="green", bold=True)
    click.echo(f"  Image:            {result.image_id}")
    click.echo(f"  Load balancer:    {result.load_balancer.dns_name}")
    click.echo(f"  Fleet:            {result.fleet.describe()}")
    click.echo(f"  Security groups:  {', '.join(result.security_group_ids)}")
    click.echo(f"  Key pair:         {result.key_pair_name}")
    click.echo(f"  Instance profile: {result.instance_profile_name}")
    click.echo(
        f"  Launch template:  "
        f"{'already registered' if result.launch_template_exists else 'to create'}"
    )
    if result.superseded_images:
        ids = ", ".join(image.image_id for image in result.superseded_images)
        click.echo(f"  Superseded AMIs:  {ids}")


def _display_report(report: DeployReport) -> None:
    click.echo()
    click.secho("Deployment Successful!", fg="green", bold=True)
    click.echo(f"  Fleet:            {report.fleet_name}")
    click.echo(f"  Launch template:  {report.launch_template_name}")
    click.echo(f"  Image:            {report.image_id}")
    click.echo(f"  New instance:     {report.new_instance_id}")
    retired = ", ".join(report.retired_instance_ids) or "(none)"
    click.echo(f"  Retired:          {retired}")
    if report.capacity:
        click.echo(
            f"  Capacity:         des {report.capacity.shrunk_desired}, "
            f"max {report.capacity.shrunk_max}"
        )
    if report.cleanup:
        click.echo(
            f"  Cleaned up:       {report.cleanup.launch_template}, "
            f"{len(report.cleanup.image_ids)} AMI(s), "
            f"{len(report.cleanup.snapshot_ids)} snapshot(s)"
        )
    click.echo()


@click.group(name="deploy", invoke_without_command=True)
@click.pass_context
def deploy(ctx: click.Context) -> None:
    """Roll new AMI versions onto Auto Scaling groups.

    Subcommands:

        run         Perform a rolling deployment
        check       Run the pre-deployment resource checks only
        wait-image  Wait for the AMI to become available
        names       Show the AWS resource names that will be used

    Example:

        fleetdeck deploy run --app shop --env production --version 1.2.0 \\
            --instance-type t3.small
    """
    ctx.ensure_object(dict)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@deploy.command()
@deploy_options
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be done without executing",
)
def run(
    config_path: str | None,
    verbose: bool,
    quiet: bool,
    dry_run: bool,
    **overrides: Any,
) -> None:
    """Replace the fleet's instances with instances running the new AMI."""
    if not quiet:
        setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        config = _load_config(config_path, **overrides)

        if not quiet:
            _display_config(config)

        if dry_run:
            _display_names(config)
            click.echo()
            click.secho("[DRY RUN] No changes were made", fg="yellow")
            sys.exit(0)

        from fleetdeck.deploy.orchestrator import run_deployment

        report = asyncio.run(run_deployment(config))

        if quiet:
            click.echo(report.launch_template_name)
            sys.exit(0)

        _display_report(report)


@deploy.command()
@deploy_options
def check(
    config_path: str | None,
    verbose: bool,
    quiet: bool,
    **overrides: Any,
) -> None:
    """Run the pre-deployment resource checks without changing anything."""
    if not quiet:
        setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        config = _load_config(config_path, **overrides)

        from fleetdeck.deploy.orchestrator import check_resources

        result = asyncio.run(check_resources(config))

        if not quiet:
            _display_preflight(result)


@deploy.command(name="wait-image")
@deploy_options
def wait_image(
    config_path: str | None,
    verbose: bool,
    quiet: bool,
    **overrides: Any,
) -> None:
    """Wait until the AMI for the version is available and print its id."""
    if not quiet:
        setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        config = _load_config(config_path, **overrides)

        from fleetdeck.deploy.orchestrator import wait_for_image
        from fleetdeck.deploy.waits import available_image

        lookup = asyncio.run(wait_for_image(config))
        click.echo(available_image(lookup, config.image_name).image_id)


@deploy.command()
@deploy_options
def names(
    config_path: str | None,
    verbose: bool,
    quiet: bool,
    **overrides: Any,
) -> None:
    """Show the AWS resource names derived from app, environment and version."""
    if not quiet:
        setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        config = _load_config(config_path, **overrides)
        _display_names(config)
