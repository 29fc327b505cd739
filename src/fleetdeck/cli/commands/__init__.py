"""fleetdeck CLI command groups."""
