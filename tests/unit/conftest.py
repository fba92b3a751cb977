"""
Pytest configuration and shared fixtures for unit tests.
"""

import uuid

import pytest

from coastwatch.db.models import UserRole
from coastwatch.services.policy import Identity


# =============================================================================
# Common Test Data
# =============================================================================


@pytest.fixture
def citizen() -> Identity:
    """A citizen identity."""
    return Identity(subject_id=uuid.uuid4(), role=UserRole.citizen)


@pytest.fixture
def verifier() -> Identity:
    """A verifier identity."""
    return Identity(subject_id=uuid.uuid4(), role=UserRole.verifier)


@pytest.fixture
def admin() -> Identity:
    """An admin identity."""
    return Identity(subject_id=uuid.uuid4(), role=UserRole.admin)


@pytest.fixture
def valid_draft() -> dict:
    """A well-formed report submission in API (camelCase) form."""
    return {
        "hazardType": "high-waves",
        "severity": "high",
        "description": "Waves over the sea wall near the harbour entrance.",
        "location": {"type": "Point", "coordinates": [80.2707, 13.0827]},
    }
