"""Pytest configuration and shared fixtures for fleetdeck tests."""

from pathlib import Path
from typing import Any

import pytest


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Point boto3 at dummy credentials so no test can reach a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_PROFILE", raising=False)


def pytest_collection_modifyitems(config: Any, items: list[Any]) -> None:
    """Mark every test under tests/unit with the ``unit`` marker."""
    unit_dir = Path(__file__).parent / "unit"
    for item in items:
        if unit_dir in Path(item.path).parents:
            item.add_marker(pytest.mark.unit)
