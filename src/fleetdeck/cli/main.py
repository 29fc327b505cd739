"""fleetdeck command-line entry point."""

import click

from fleetdeck import __version__
from fleetdeck.cli.commands.deploy import deploy


@click.group()
@click.version_option(__version__, prog_name="fleetdeck")
def main() -> None:
    """fleetdeck - zero-downtime AMI rollouts for Auto Scaling groups."""


main.add_command(deploy)


if __name__ == "__main__":  # pragma: no cover
    main()
