"""Command-line interface for fleetdeck."""
