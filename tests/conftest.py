"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from tests.fixtures.fakes import FakeClock, StubSigner


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def signer() -> StubSigner:
    return StubSigner()
