"""fleetdeck deployment engine.

This package provides the rolling deployment of a new AMI version onto an
Auto Scaling group: resource inspection, preflight checks, the rolling
replacement state machine and cleanup of superseded images.

Entry points live in :mod:`fleetdeck.deploy.orchestrator`.
"""
