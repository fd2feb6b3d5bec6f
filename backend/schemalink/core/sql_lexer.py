"""SQL Lexical Scanner — table references, aliases and column equalities from routine text.

Invariants:
    - PURE: text in, ScannedStatement list out
    - Comments and string literals never produce tokens
    - Bracketed, double-quoted and backtick identifiers are unwrapped before tokenizing
    - Clause context is tracked per parenthesis level: a subquery never changes
      the clause of its enclosing query
    - Unterminated comments, literals or quoted identifiers raise SqlLexError

Design Decisions:
    - Lexical signals only, no AST: tolerant of dialect differences and of
      partially valid procedure bodies
    - Alias resolution uses the latest definition preceding the reference, so
      reusing an alias in a later statement maps to the later table
"""

import re
from dataclasses import dataclass, field


class SqlLexError(ValueError):
    """Routine text cannot be tokenized."""


CLAUSE_KEYWORDS = frozenset({
    "SELECT", "FROM", "JOIN", "ON", "WHERE", "GROUP", "ORDER", "HAVING",
    "SET", "INTO", "VALUES", "UPDATE", "DELETE", "INSERT", "EXEC", "EXECUTE",
    "UNION", "EXCEPT", "INTERSECT", "RETURN", "RETURNS", "BEGIN", "END",
    "IF", "ELSE", "WHILE", "DECLARE", "CREATE", "ALTER", "MERGE", "USING",
    "WHEN", "THEN", "CASE", "OUTPUT", "WITH", "AS", "BY",
})

RESERVED = CLAUSE_KEYWORDS | frozenset({
    "INNER", "LEFT", "RIGHT", "FULL", "OUTER", "CROSS", "APPLY", "AND", "OR",
    "NOT", "NULL", "IS", "IN", "EXISTS", "LIKE", "BETWEEN", "TOP", "DISTINCT",
    "ALL", "ANY", "PROCEDURE", "PROC", "FUNCTION", "VIEW", "TABLE", "TRIGGER",
    "NOLOCK", "LIMIT", "OFFSET", "FETCH", "FOR", "OVER", "PARTITION",
    "ASC", "DESC", "TRAN", "TRANSACTION", "COMMIT", "ROLLBACK", "GO",
})

_JOIN_CONDITION_CLAUSES = frozenset({"ON", "WHERE"})

_TOKEN = re.compile(
    r"""
    (?P<word>[A-Za-z_#@][\w#@$]*(?:\.[A-Za-z_#@][\w#@$]*)*)
    |(?P<op><>|!=|<=|>=|=|,|\(|\)|;)
    |(?P<other>\S)
    """,
    re.VERBOSE,
)
_GO_LINE = re.compile(r"^\s*GO\s*$", re.IGNORECASE | re.MULTILINE)
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class Token:
    kind: str
    text: str

    @property
    def upper(self) -> str:
        return self.text.upper()

    def is_word(self) -> bool:
        return self.kind == "word"

    def is_keyword(self) -> bool:
        return self.kind == "word" and self.upper in RESERVED


@dataclass(frozen=True)
class TableReference:
    """A table-like name following FROM/JOIN/UPDATE/INTO/DELETE."""
    name: str
    alias: str | None
    clause: str
    position: int
    is_call: bool = False

    @property
    def bare_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class ColumnEquality:
    """`left_qualifier.left_column = right_qualifier.right_column`."""
    left_qualifier: str
    left_column: str
    right_qualifier: str
    right_column: str
    clause: str
    position: int


@dataclass
class ScannedStatement:
    text: str
    tables: list[TableReference] = field(default_factory=list)
    equalities: list[ColumnEquality] = field(default_factory=list)
    executes: list[str] = field(default_factory=list)

    def resolve_qualifier(self, qualifier: str, position: int) -> str | None:
        """Table name a qualifier stands for at a token position.

        Latest alias defined before the position wins, then a referenced
        table with that name, then the qualifier itself when it is schema-qualified.
        """
        wanted = qualifier.lower()
        preceding = [t for t in self.tables if t.position < position]
        for ref in reversed(preceding):
            if ref.alias and ref.alias.lower() == wanted:
                return ref.name
        for ref in reversed(preceding):
            if ref.name.lower() == wanted or ref.bare_name.lower() == wanted:
                return ref.name
        if "." in qualifier:
            return qualifier
        if any(t.alias and t.alias.lower() == wanted for t in self.tables):
            return None
        return qualifier


# --- Text normalisation -------------------------------------------------------

def strip_comments_and_literals(text: str) -> str:
    """Drop comments, blank out string literals, unwrap quoted identifiers."""
    out: list[str] = []
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""
        if ch == "-" and nxt == "-":
            end = text.find("\n", i)
            out.append(" ")
            i = n if end == -1 else end
        elif ch == "/" and nxt == "*":
            end = text.find("*/", i + 2)
            if end == -1:
                raise SqlLexError("unterminated block comment")
            out.append(" ")
            i = end + 2
        elif ch == "'":
            i = _skip_string_literal(text, i)
            out.append(" '' ")
        elif ch in "[\"`":
            closer = "]" if ch == "[" else ch
            end = text.find(closer, i + 1)
            if end == -1:
                raise SqlLexError("unterminated quoted identifier")
            out.append(_WHITESPACE.sub("_", text[i + 1:end].strip()))
            i = end + 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _skip_string_literal(text: str, start: int) -> int:
    j = start + 1
    while True:
        j = text.find("'", j)
        if j == -1:
            raise SqlLexError("unterminated string literal")
        if j + 1 < len(text) and text[j + 1] == "'":
            j += 2
            continue
        return j + 1


def split_statements(text: str) -> list[str]:
    """Split on GO batch separators and semicolons; empty pieces dropped."""
    statements = []
    for batch in _GO_LINE.split(text):
        for piece in batch.split(";"):
            if piece.strip():
                statements.append(piece)
    return statements


def tokenize(text: str) -> list[Token]:
    tokens = []
    for match in _TOKEN.finditer(text):
        kind = match.lastgroup
        tokens.append(Token(kind, match.group(kind)))
    return tokens


# --- Scanning -----------------------------------------------------------------

def scan_sql(text: str | None) -> list[ScannedStatement]:
    """Scan routine text into statements with references and equalities."""
    if not text or not text.strip():
        return []
    cleaned = strip_comments_and_literals(text)
    return [_scan_statement(s) for s in split_statements(cleaned)]


def _scan_statement(text: str) -> ScannedStatement:
    tokens = tokenize(text)
    statement = ScannedStatement(text=text)
    clause_stack: list[str] = []
    clause = ""
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token.text == "(":
            clause_stack.append(clause)
        elif token.text == ")":
            clause = clause_stack.pop() if clause_stack else ""
        elif token.is_word() and token.upper in CLAUSE_KEYWORDS:
            keyword = token.upper
            if keyword in ("FROM", "JOIN", "UPDATE", "INTO", "DELETE", "INSERT"):
                i = _read_table_refs(tokens, i, keyword, statement)
                clause = keyword if keyword != "INSERT" else "INTO"
                continue
            if keyword in ("EXEC", "EXECUTE"):
                _read_execute(tokens, i, statement)
            clause = keyword
        elif token.is_word() and "." in token.text:
            _read_equality(tokens, i, clause, statement)
        i += 1
    return statement


def _read_table_refs(
    tokens: list[Token], i: int, keyword: str, statement: ScannedStatement,
) -> int:
    """Consume table reference(s) after a keyword; returns next token index."""
    context = keyword
    j = i + 1
    if keyword == "DELETE":
        if j < len(tokens) and tokens[j].upper == "FROM":
            j += 1
    elif keyword == "INSERT":
        if j < len(tokens) and tokens[j].upper == "INTO":
            j += 1
        context = "INTO"

    while True:
        j, ref = _read_one_table(tokens, j, context)
        if ref is None:
            return j
        statement.tables.append(ref)
        # Comma-separated FROM lists: FROM A a, B b
        if keyword == "FROM" and j < len(tokens) and tokens[j].text == ",":
            j += 1
            context = "FROM"
            continue
        return j


def _read_one_table(
    tokens: list[Token], j: int, context: str,
) -> tuple[int, TableReference | None]:
    if j >= len(tokens) or not tokens[j].is_word() or tokens[j].is_keyword():
        return j, None
    name_token = tokens[j]
    position = j
    j += 1
    is_call = False
    if j < len(tokens) and tokens[j].text == "(":
        is_call = context in ("FROM", "JOIN")
        j = _skip_parens(tokens, j)
    if j < len(tokens) and tokens[j].upper == "AS":
        j += 1
    alias = None
    if j < len(tokens) and tokens[j].is_word() and not tokens[j].is_keyword():
        if "." not in tokens[j].text:
            alias = tokens[j].text
            j += 1
    return j, TableReference(
        name=name_token.text, alias=alias, clause=context,
        position=position, is_call=is_call,
    )


def _skip_parens(tokens: list[Token], j: int) -> int:
    depth = 0
    while j < len(tokens):
        if tokens[j].text == "(":
            depth += 1
        elif tokens[j].text == ")":
            depth -= 1
            if depth == 0:
                return j + 1
        j += 1
    return j


def _read_execute(tokens: list[Token], i: int, statement: ScannedStatement) -> None:
    j = i + 1
    # EXEC @rc = dbo.Proc
    if (
        j + 1 < len(tokens) and tokens[j].text.startswith("@")
        and tokens[j + 1].text == "="
    ):
        j += 2
    if j < len(tokens) and tokens[j].is_word() and not tokens[j].text.startswith("@"):
        statement.executes.append(tokens[j].text)


def _read_equality(
    tokens: list[Token], i: int, clause: str, statement: ScannedStatement,
) -> None:
    if clause not in _JOIN_CONDITION_CLAUSES:
        return
    if i + 2 >= len(tokens) or tokens[i + 1].text != "=":
        return
    right = tokens[i + 2]
    if not right.is_word() or "." not in right.text:
        return
    # a.x = b.y = c.z is not a join condition
    if i + 3 < len(tokens) and tokens[i + 3].text == "=":
        return
    if i > 0 and tokens[i - 1].text == "=":
        return
    left_qualifier, left_column = tokens[i].text.rsplit(".", 1)
    right_qualifier, right_column = right.text.rsplit(".", 1)
    statement.equalities.append(ColumnEquality(
        left_qualifier=left_qualifier,
        left_column=left_column,
        right_qualifier=right_qualifier,
        right_column=right_column,
        clause=clause,
        position=i,
    ))
