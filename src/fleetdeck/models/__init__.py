"""Pydantic models for fleetdeck deployments."""
