"""Fixtures for store-level tests."""

import pytest

from relational_projector.state.store import ProjectionState


@pytest.fixture
def state(driver) -> ProjectionState:
    """Projection state with the builder's catalog loaded."""
    return driver.state
