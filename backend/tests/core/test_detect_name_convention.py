"""Name-Convention Detector — tests for `<Table>Id` column matching.

Tests cover:
    - Orders.CustomerId → Customers.CustomerId at 0.6
    - sole primary keys, incompatible types and physical FKs are never proposed
    - same-named tables in two schemas produce ambiguous candidates
    - composite primary keys map every key column or nothing
    - configured score replaces the default
"""

from schemalink.core.domain_types import DiscoveryMethod
from schemalink.core.detect_name_convention import detect_name_convention
from schemalink.core.schema_snapshot import ColumnInfo, PhysicalFkInfo, TableInfo
from schemalink.core.tuning import DetectionConfig
from tests.core.snapshot_factory import (
    CUSTOMER_ID, CUSTOMERS, LINE_ORDER_ID, ORDER_CUSTOMER_ID, ORDER_ID,
    ORDER_LINES, ORDERS, make_snapshot,
)


def _keys(output):
    return {c.key for c in output.candidates}


def test_orders_customer_id_references_customers(snapshot):
    output = detect_name_convention(snapshot)
    candidate = next(
        c for c in output.candidates if c.source_table_id == ORDERS
    )
    assert candidate.key == (ORDERS, (ORDER_CUSTOMER_ID,), CUSTOMERS, (CUSTOMER_ID,))
    assert candidate.raw_score == 0.6
    assert candidate.method == DiscoveryMethod.NAME_CONVENTION
    assert candidate.is_ambiguous is False
    assert "Orders.CustomerId" in candidate.reason


def test_detects_every_id_column(snapshot):
    assert _keys(detect_name_convention(snapshot)) == {
        (ORDERS, (ORDER_CUSTOMER_ID,), CUSTOMERS, (CUSTOMER_ID,)),
        (ORDER_LINES, (LINE_ORDER_ID,), ORDERS, (ORDER_ID,)),
    }


def test_sole_primary_key_is_never_a_source(snapshot):
    sources = {c.source_column_ids for c in detect_name_convention(snapshot).candidates}
    assert (CUSTOMER_ID,) not in sources
    assert (ORDER_ID,) not in sources


def test_incompatible_type_is_skipped():
    snapshot = make_snapshot(extra_tables=[TableInfo(4, "Payments")], extra_columns=[
        ColumnInfo(40, 4, "PaymentId", "int", False, True, ordinal=1),
        ColumnInfo(41, 4, "CustomerId", "uniqueidentifier", ordinal=2),
    ])
    sources = {c.source_table_id for c in detect_name_convention(snapshot).candidates}
    assert 4 not in sources


def test_physical_fk_is_not_reproposed():
    physical = PhysicalFkInfo(
        1, "FK_Orders_Customers", ORDERS, (ORDER_CUSTOMER_ID,), CUSTOMERS, (CUSTOMER_ID,),
    )
    output = detect_name_convention(make_snapshot(physical_fks=[physical]))
    assert (ORDERS, (ORDER_CUSTOMER_ID,), CUSTOMERS, (CUSTOMER_ID,)) not in _keys(output)


def test_same_name_in_two_schemas_is_ambiguous():
    snapshot = make_snapshot(
        extra_tables=[TableInfo(5, "Customers", schema_name="sales")],
        extra_columns=[ColumnInfo(50, 5, "CustomerId", "int", False, True, ordinal=1)],
    )
    from_orders = [
        c for c in detect_name_convention(snapshot).candidates
        if c.source_table_id == ORDERS
    ]
    assert {c.target_table_id for c in from_orders} == {CUSTOMERS, 5}
    assert all(c.is_ambiguous for c in from_orders)


def test_composite_key_maps_every_key_column():
    snapshot = make_snapshot(
        extra_tables=[TableInfo(8, "Batches"), TableInfo(9, "BatchItems")],
        extra_columns=[
            ColumnInfo(80, 8, "BatchId", "int", False, True, ordinal=1),
            ColumnInfo(81, 8, "PlantCode", "int", False, True, ordinal=2),
            ColumnInfo(90, 9, "ItemNo", "int", False, True, ordinal=1),
            ColumnInfo(91, 9, "BatchId", "int", ordinal=2),
            ColumnInfo(92, 9, "PlantCode", "int", ordinal=3),
        ],
    )
    candidate = next(
        c for c in detect_name_convention(snapshot).candidates if c.source_table_id == 9
    )
    assert candidate.key == (9, (91, 92), 8, (80, 81))
    assert candidate.raw_score == 0.5


def test_composite_key_without_matching_columns_is_skipped():
    snapshot = make_snapshot(
        extra_tables=[TableInfo(8, "Batches"), TableInfo(9, "BatchItems")],
        extra_columns=[
            ColumnInfo(80, 8, "BatchId", "int", False, True, ordinal=1),
            ColumnInfo(81, 8, "PlantCode", "int", False, True, ordinal=2),
            ColumnInfo(90, 9, "ItemNo", "int", False, True, ordinal=1),
            ColumnInfo(91, 9, "BatchId", "int", ordinal=2),
        ],
    )
    sources = {c.source_table_id for c in detect_name_convention(snapshot).candidates}
    assert 9 not in sources


def test_configured_score_is_used(snapshot):
    output = detect_name_convention(snapshot, DetectionConfig(name_convention_score=0.4))
    assert {c.raw_score for c in output.candidates} == {0.4}


def test_no_warnings_for_clean_schema(snapshot):
    assert detect_name_convention(snapshot).warnings == []
