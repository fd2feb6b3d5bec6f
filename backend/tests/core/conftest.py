"""Core test fixtures — in-memory snapshots, no database."""

import pytest

from tests.core.snapshot_factory import GET_ORDERS_SQL, make_snapshot, sp


@pytest.fixture
def snapshot():
    return make_snapshot()


@pytest.fixture
def snapshot_with_sp():
    return make_snapshot(routines=[sp(100, "usp_GetOrders", GET_ORDERS_SQL)])
