"""SQL Lexical Scanner — tests for references, aliases and equalities.

Tests cover:
    - comments and string literals never produce references
    - bracketed identifiers are unwrapped
    - GO and semicolons split statements
    - INSERT column lists are not function calls; FROM table functions are
    - EXEC targets, including `EXEC @rc = proc`
    - alias resolution picks the latest preceding definition
    - unterminated comments raise SqlLexError
"""

import pytest

from schemalink.core.sql_lexer import (
    SqlLexError, scan_sql, split_statements, strip_comments_and_literals,
)


def _table_names(statement):
    return [t.name for t in statement.tables]


def test_line_comment_is_ignored():
    [statement] = scan_sql("SELECT * FROM Orders -- JOIN Customers c\n")
    assert _table_names(statement) == ["Orders"]


def test_block_comment_is_ignored():
    [statement] = scan_sql("SELECT * /* FROM Customers */ FROM Orders")
    assert _table_names(statement) == ["Orders"]


def test_string_literal_is_blanked():
    [statement] = scan_sql("SELECT 'FROM Customers' FROM Orders")
    assert _table_names(statement) == ["Orders"]


def test_escaped_quote_inside_literal():
    cleaned = strip_comments_and_literals("SELECT 'it''s' FROM Orders")
    assert "FROM Orders" in cleaned
    assert "it" not in cleaned


def test_bracketed_identifier_with_space():
    [statement] = scan_sql("SELECT * FROM [dbo].[Order Details] od")
    table = statement.tables[0]
    assert table.name == "dbo.Order_Details"
    assert table.alias == "od"
    assert table.bare_name == "Order_Details"


def test_unterminated_block_comment_raises():
    with pytest.raises(SqlLexError):
        scan_sql("SELECT * FROM Orders /* never closed")


def test_split_on_go_and_semicolon():
    assert len(split_statements("SELECT 1\nGO\nSELECT 2; SELECT 3")) == 3


def test_empty_text_has_no_statements():
    assert scan_sql("   ") == []
    assert scan_sql(None) == []


def test_insert_column_list_is_not_a_call():
    [statement] = scan_sql("INSERT INTO Orders (OrderId, CustomerId) VALUES (1, 2)")
    table = statement.tables[0]
    assert (table.name, table.clause, table.is_call) == ("Orders", "INTO", False)


def test_table_valued_function_is_a_call():
    [statement] = scan_sql("SELECT * FROM dbo.fn_Recent(7) r")
    table = statement.tables[0]
    assert table.is_call is True
    assert table.alias == "r"


def test_delete_from():
    [statement] = scan_sql("DELETE FROM Orders WHERE OrderId = 1")
    assert [(t.name, t.clause) for t in statement.tables] == [("Orders", "DELETE")]


def test_exec_with_return_code():
    [statement] = scan_sql("EXEC @rc = dbo.usp_Archive 5")
    assert statement.executes == ["dbo.usp_Archive"]


def test_join_equality_is_recorded():
    [statement] = scan_sql(
        "SELECT * FROM Orders o JOIN Customers c ON o.CustomerId = c.CustomerId"
    )
    [equality] = statement.equalities
    assert (equality.left_qualifier, equality.left_column) == ("o", "CustomerId")
    assert (equality.right_qualifier, equality.right_column) == ("c", "CustomerId")
    assert equality.clause == "ON"
    assert statement.resolve_qualifier("o", equality.position) == "Orders"
    assert statement.resolve_qualifier("c", equality.position) == "Customers"


def test_latest_alias_definition_wins():
    [statement] = scan_sql(
        "SELECT * FROM Orders x "
        "WHERE EXISTS (SELECT 1 FROM Customers x WHERE x.CustomerId = x.CustomerId)"
    )
    position = statement.equalities[0].position
    assert statement.resolve_qualifier("x", position) == "Customers"


def test_subquery_does_not_change_outer_clause():
    [statement] = scan_sql(
        "SELECT * FROM Orders o "
        "JOIN (SELECT CustomerId FROM Customers) c ON o.CustomerId = c.CustomerId"
    )
    assert [e.clause for e in statement.equalities] == ["ON"]
