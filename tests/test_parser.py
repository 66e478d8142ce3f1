"""Tests complets pour le SQL Parser."""

import pytest

from sql_styler.parser import (
    SQLParser, parse, parse_many, parse_result, analyze, MAX_NESTING_DEPTH, MAX_CHAIN_LENGTH,
)
from sql_styler.ast_nodes import (
    SimpleSelectQuery, BinarySelectQuery, ValuesQuery, InsertQuery, UpdateQuery,
    DeleteQuery, CreateTableQuery, AlterTableStatement, DropStatement,
    CreateIndexStatement, ExplainStatement, AnalyzeStatement,
    ColumnReference, Literal, BinaryExpression, LogicalExpression, UnaryExpression,
    ParenExpression, ParameterExpression, FunctionCall, WindowFunctionCall,
    CaseExpression, InExpression, BetweenExpression, CastExpression,
    SubquerySource, TableSource, ParseResult, MergeQuery, MergeWhenClause,
    MergeUpdateAction, MergeDeleteAction, MergeInsertAction, MergeDoNothingAction,
)
from sql_styler.errors import ParseError, LexError


# ============================================================
# SECTION 1: SELECT
# ============================================================

class TestBasicParsing:
    """Tests de parsing basique."""

    def test_simple_select(self):
        query = parse("SELECT id, name FROM users")
        assert isinstance(query, SimpleSelectQuery)
        assert len(query.select_clause.items) == 2
        assert query.select_clause.items[0].expression.column.name == "id"
        assert isinstance(query.from_clause.source.source, TableSource)
        assert query.from_clause.source.source.name.full_name == "users"

    def test_select_star(self):
        query = parse("SELECT * FROM t")
        column = query.select_clause.items[0].expression
        assert isinstance(column, ColumnReference)
        assert column.is_wildcard

    def test_aliases(self):
        query = parse("SELECT a AS x, b y FROM t u")
        items = query.select_clause.items
        assert items[0].alias.name == "x"
        assert items[1].alias.name == "y"
        assert query.from_clause.source.alias.name == "u"

    def test_quoted_identifier(self):
        query = parse('SELECT "My Col" FROM t')
        identifier = query.select_clause.items[0].expression.column
        assert identifier.name == "My Col"
        assert identifier.quoted

    def test_distinct(self):
        assert parse("SELECT DISTINCT a FROM t").select_clause.distinct
        query = parse("SELECT DISTINCT ON (a) a, b FROM t")
        assert len(query.select_clause.distinct_on) == 1

    def test_all_clauses(self):
        query = parse(
            "SELECT a, count(*) FROM t WHERE a > 1 GROUP BY a HAVING count(*) > 2 "
            "ORDER BY a DESC NULLS LAST LIMIT 10 OFFSET 5"
        )
        assert query.where_clause is not None
        assert len(query.group_by_clause.items) == 1
        assert query.having_clause is not None
        item = query.order_by_clause.items[0]
        assert item.direction == "desc"
        assert item.nulls == "last"
        assert query.limit_clause.value.value == 10
        assert query.offset_clause.value.value == 5

    def test_semicolon(self):
        assert isinstance(parse("SELECT 1;"), SimpleSelectQuery)

    def test_parse_result(self):
        result = parse_result("SELECT a FROM users JOIN orders ON users.id = orders.user_id")
        assert isinstance(result, ParseResult)
        assert result.tables_referenced == ["users", "orders"]
        assert result.tokens[-1].type.name == "EOF"


class TestJoinsAndSubqueries:
    """Tests des jointures et sous-requêtes."""

    def test_join_types(self):
        query = parse("SELECT * FROM a LEFT OUTER JOIN b ON a.id = b.id CROSS JOIN c")
        joins = query.from_clause.joins
        assert joins[0].join_type == "left outer join"
        assert isinstance(joins[0].condition, BinaryExpression)
        assert joins[1].join_type == "cross join"

    def test_join_using(self):
        query = parse("SELECT * FROM a JOIN b USING (id)")
        assert [i.name for i in query.from_clause.joins[0].using] == ["id"]

    def test_comma_join(self):
        query = parse("SELECT * FROM a, b")
        assert query.from_clause.joins[0].join_type == ","

    def test_subquery_in_from(self):
        query = parse("SELECT * FROM (SELECT a FROM t) s")
        source = query.from_clause.source
        assert isinstance(source.source, SubquerySource)
        assert source.alias.name == "s"

    def test_in_subquery(self):
        query = parse("SELECT * FROM t WHERE a IN (SELECT b FROM u)")
        condition = query.where_clause.condition
        assert isinstance(condition, InExpression)
        assert isinstance(condition.query, SimpleSelectQuery)


# ============================================================
# SECTION 2: EXPRESSIONS
# ============================================================

class TestExpressions:
    """Précédence et formes d'expressions."""

    def test_precedence_multiplication(self):
        expr = parse("SELECT 1 + 2 * 3").select_clause.items[0].expression
        assert expr.operator == "+"
        assert isinstance(expr.right, BinaryExpression)
        assert expr.right.operator == "*"

    def test_and_binds_tighter_than_or(self):
        expr = parse("SELECT * FROM t WHERE a = 1 OR b = 2 AND c = 3").where_clause.condition
        assert isinstance(expr, LogicalExpression)
        assert expr.operator == "or"
        assert expr.operands[1].operator == "and"

    def test_logical_chain_is_flat(self):
        expr = parse("SELECT * FROM t WHERE a AND b AND c").where_clause.condition
        assert expr.operator == "and"
        assert len(expr.operands) == 3

    def test_subtraction_is_left_associative(self):
        expr = parse("SELECT a - b - c").select_clause.items[0].expression
        assert isinstance(expr.left, BinaryExpression)
        assert expr.right.column.name == "c"

    def test_parentheses_are_kept(self):
        expr = parse("SELECT (a + b) * c").select_clause.items[0].expression
        assert isinstance(expr.left, ParenExpression)

    def test_unary(self):
        expr = parse("SELECT -a").select_clause.items[0].expression
        assert isinstance(expr, UnaryExpression)
        assert expr.operator == "-"
        expr = parse("SELECT * FROM t WHERE NOT a").where_clause.condition
        assert expr.operator == "not"

    def test_is_not_null(self):
        expr = parse("SELECT * FROM t WHERE a IS NOT NULL").where_clause.condition
        assert expr.operator == "is not"
        assert expr.right.literal_type == "null"

    def test_between_and_like(self):
        expr = parse("SELECT * FROM t WHERE a NOT BETWEEN 1 AND 5").where_clause.condition
        assert isinstance(expr, BetweenExpression)
        assert expr.negated
        expr = parse("SELECT * FROM t WHERE a NOT LIKE 'x%'").where_clause.condition
        assert expr.operator == "not like"

    def test_literals(self):
        items = parse("SELECT 1, 2.5, 'txt', NULL, TRUE").select_clause.items
        values = [item.expression for item in items]
        assert values[0].value == 1
        assert values[1].literal_type == "decimal"
        assert values[2].value == "txt"
        assert values[2].raw == "'txt'"
        assert values[3].literal_type == "null"
        assert values[4].value is True

    def test_parameters(self):
        items = parse("SELECT :name, $2, ?").select_clause.items
        params = [item.expression for item in items]
        assert all(isinstance(p, ParameterExpression) for p in params)
        assert params[0].name == "name"
        assert params[1].index == 2
        assert params[2].name == ""

    def test_case(self):
        expr = parse("SELECT CASE WHEN a = 1 THEN 'x' ELSE 'y' END").select_clause.items[0].expression
        assert isinstance(expr, CaseExpression)
        assert len(expr.branches) == 1
        assert expr.else_value.value == "y"

    def test_casts(self):
        expr = parse("SELECT CAST(a AS integer)").select_clause.items[0].expression
        assert isinstance(expr, CastExpression)
        assert expr.syntax == "cast"
        expr = parse("SELECT a::text").select_clause.items[0].expression
        assert expr.syntax == "::"
        assert expr.target_type == "text"

    def test_functions(self):
        result = parse_result("SELECT count(DISTINCT a), upper(b) FROM t")
        expr = result.statement.select_clause.items[0].expression
        assert isinstance(expr, FunctionCall)
        assert expr.distinct
        assert result.functions_used == ["count", "upper"]

    def test_window_function(self):
        expr = parse(
            "SELECT row_number() OVER (PARTITION BY a ORDER BY b) FROM t"
        ).select_clause.items[0].expression
        assert isinstance(expr, WindowFunctionCall)
        assert len(expr.window.partition_by) == 1


# ============================================================
# SECTION 3: AUTRES INSTRUCTIONS
# ============================================================

class TestStatements:
    """Requêtes ensemblistes, DML et DDL."""

    def test_union_is_left_associative(self):
        query = parse("SELECT 1 UNION SELECT 2 UNION ALL SELECT 3")
        assert isinstance(query, BinarySelectQuery)
        assert query.operator == "union all"
        assert isinstance(query.left, BinarySelectQuery)

    def test_union_order_by(self):
        query = parse("SELECT a FROM t UNION SELECT a FROM u ORDER BY a")
        assert query.order_by_clause is not None

    def test_union_tail_belongs_to_chain(self):
        query = parse("SELECT a FROM t UNION SELECT a FROM u ORDER BY a LIMIT 1")
        assert isinstance(query, BinarySelectQuery)
        assert query.order_by_clause is not None
        assert query.limit_clause.value.value == 1
        assert query.right.order_by_clause is None
        assert query.right.limit_clause is None

    def test_union_fetch(self):
        query = parse("SELECT a FROM t UNION ALL SELECT a FROM u OFFSET 2 FETCH FIRST 5 ROWS ONLY")
        assert query.offset_clause is not None
        assert query.fetch_clause.count.value == 5
        assert query.right.fetch_clause is None

    def test_parenthesized_operand_keeps_its_tail(self):
        query = parse("SELECT a FROM t UNION (SELECT a FROM u ORDER BY a LIMIT 1)")
        assert query.order_by_clause is None
        assert query.right.query.limit_clause is not None

    def test_with_clause(self):
        query = parse("WITH a AS (SELECT 1), b AS (SELECT 2) SELECT * FROM a")
        assert [cte.name.name for cte in query.with_clause.tables] == ["a", "b"]

    def test_values(self):
        query = parse("VALUES (1, 2), (3, 4)")
        assert isinstance(query, ValuesQuery)
        assert len(query.tuples) == 2

    def test_insert(self):
        query = parse("INSERT INTO t (a, b) VALUES (1, 2) RETURNING a")
        assert isinstance(query, InsertQuery)
        assert [c.name for c in query.columns] == ["a", "b"]
        assert isinstance(query.source, ValuesQuery)
        assert query.returning_clause is not None

    def test_insert_default_values(self):
        query = parse("INSERT INTO t DEFAULT VALUES")
        assert query.source is None

    def test_update(self):
        query = parse("UPDATE t SET a = 1, b = b + 1 WHERE c = 2")
        assert isinstance(query, UpdateQuery)
        assert len(query.set_clause.items) == 2

    def test_delete(self):
        query = parse("DELETE FROM t USING u WHERE t.id = u.id")
        assert isinstance(query, DeleteQuery)
        assert len(query.using) == 1

    def test_create_table(self):
        query = parse("CREATE TABLE IF NOT EXISTS t (id int PRIMARY KEY, name text NOT NULL)")
        assert isinstance(query, CreateTableQuery)
        assert query.if_not_exists
        assert [c.name.name for c in query.columns] == ["id", "name"]
        assert query.columns[0].constraints[0].kind == "primary key"

    def test_alter_table(self):
        query = parse("ALTER TABLE t ADD COLUMN c int, DROP COLUMN d")
        assert isinstance(query, AlterTableStatement)
        assert [a.action_type for a in query.actions] == ["add column", "drop column"]

    def test_drop(self):
        query = parse("DROP TABLE IF EXISTS a, b CASCADE")
        assert isinstance(query, DropStatement)
        assert query.if_exists
        assert len(query.names) == 2
        assert query.behavior == "cascade"

    def test_create_index(self):
        query = parse("CREATE UNIQUE INDEX idx ON t (a, b DESC)")
        assert isinstance(query, CreateIndexStatement)
        assert query.unique
        assert query.columns[1].direction == "desc"

    def test_explain_and_analyze(self):
        query = parse("EXPLAIN ANALYZE SELECT 1")
        assert isinstance(query, ExplainStatement)
        assert query.analyze
        assert isinstance(parse("ANALYZE t"), AnalyzeStatement)


# ============================================================
# SECTION 4: ERREURS
# ============================================================

class TestParseErrors:
    """Erreurs avec position (ligne, colonne)."""

    def test_error_position(self):
        with pytest.raises(ParseError) as exc_info:
            parse("SELECT FROM")
        error = exc_info.value
        assert error.position == (1, 8)
        assert "line 1, column 8" in str(error)

    def test_error_on_later_line(self):
        with pytest.raises(ParseError) as exc_info:
            parse("SELECT a\nFROM t\nWHERE")
        assert exc_info.value.line == 3
        assert exc_info.value.found == "end of input"

    def test_trailing_garbage(self):
        with pytest.raises(ParseError):
            parse("SELECT 1 2")

    def test_empty_statement(self):
        with pytest.raises(ParseError):
            parse("")

    def test_unsupported_statement(self):
        with pytest.raises(ParseError) as exc_info:
            parse("GRANT x")
        assert exc_info.value.column == 1

    def test_lex_error_propagates(self):
        with pytest.raises(LexError):
            parse("SELECT 'oops")

    def test_analyze_does_not_raise(self):
        result = analyze("SELECT FROM")
        assert not result.success
        assert result.position == (1, 8)
        assert "column 8" in result.error_message
        ok = analyze("SELECT 1")
        assert ok.success
        assert isinstance(ok.query, SimpleSelectQuery)
        assert ok.error_message is None


class TestNestingDepth:
    """Garde de profondeur."""

    def test_deep_nesting_rejected(self):
        sql = "SELECT " + "(" * (MAX_NESTING_DEPTH + 50) + "1" + ")" * (MAX_NESTING_DEPTH + 50)
        with pytest.raises(ParseError) as exc_info:
            parse(sql)
        assert "nesting depth" in str(exc_info.value)

    def test_reasonable_nesting_accepted(self):
        sql = "SELECT " + "(" * 30 + "1" + ")" * 30
        assert isinstance(parse(sql), SimpleSelectQuery)

    def test_parser_is_reusable(self):
        parser = SQLParser()
        with pytest.raises(ParseError):
            parser.parse("SELECT FROM")
        result = parser.parse("SELECT a FROM t")
        assert result.tables_referenced == ["t"]

    def test_long_postfix_chain_rejected(self):
        with pytest.raises(ParseError) as exc_info:
            parse("SELECT a" + "::int" * 3000)
        assert "nesting depth" in str(exc_info.value)

    def test_short_postfix_chain_accepted(self):
        expr = parse("SELECT a::int::text FROM t").select_clause.items[0].expression
        assert isinstance(expr, CastExpression)
        assert isinstance(expr.expression, CastExpression)


class TestOperatorChains:
    """Chaînes d'opérateurs au même niveau."""

    @pytest.mark.parametrize("count", [99, MAX_CHAIN_LENGTH])
    def test_flat_chain_accepted(self, count):
        sql = "SELECT " + " + ".join(f"a{i}" for i in range(count)) + " FROM t"
        expr = parse(sql).select_clause.items[0].expression
        assert isinstance(expr, BinaryExpression)
        assert expr.operator == "+"

    def test_concat_chain_accepted(self):
        sql = "SELECT " + " || ".join(["a"] * MAX_CHAIN_LENGTH) + " FROM t"
        assert isinstance(parse(sql), SimpleSelectQuery)

    def test_too_long_chain_rejected(self):
        sql = "SELECT " + " + ".join(["a"] * (MAX_CHAIN_LENGTH + 50)) + " FROM t"
        with pytest.raises(ParseError) as exc_info:
            parse(sql)
        assert "chain length" in str(exc_info.value)


# ============================================================
# SECTION 5: MERGE
# ============================================================

class TestMerge:
    """MERGE INTO ... USING ... ON ... WHEN ..."""

    SQL = (
        "MERGE INTO target t USING source s ON t.id = s.id "
        "WHEN MATCHED AND s.deleted THEN DELETE "
        "WHEN MATCHED THEN UPDATE SET name = s.name WHERE t.name <> s.name "
        "WHEN NOT MATCHED THEN INSERT (id, name) VALUES (s.id, s.name) "
        "WHEN NOT MATCHED BY SOURCE THEN DO NOTHING"
    )

    def test_structure(self):
        query = parse(self.SQL)
        assert isinstance(query, MergeQuery)
        assert query.target.source.name.full_name == "target"
        assert query.source.source.name.full_name == "source"
        assert isinstance(query.on_condition, BinaryExpression)
        assert all(isinstance(c, MergeWhenClause) for c in query.when_clauses)

    def test_match_types(self):
        query = parse(self.SQL)
        assert [c.match_type for c in query.when_clauses] == [
            "matched", "matched", "not matched", "not matched by source",
        ]

    def test_actions(self):
        query = parse(self.SQL)
        delete, update, insert, nothing = [c.action for c in query.when_clauses]
        assert isinstance(delete, MergeDeleteAction)
        assert isinstance(update, MergeUpdateAction)
        assert update.where_clause is not None
        assert len(update.set_clause.items) == 1
        assert isinstance(insert, MergeInsertAction)
        assert [c.name for c in insert.columns] == ["id", "name"]
        assert len(insert.values.items) == 2
        assert isinstance(nothing, MergeDoNothingAction)

    def test_when_condition(self):
        query = parse(self.SQL)
        assert query.when_clauses[0].condition is not None
        assert query.when_clauses[1].condition is None

    def test_insert_default_values(self):
        query = parse("MERGE INTO t USING s ON t.id = s.id WHEN NOT MATCHED THEN INSERT DEFAULT VALUES")
        assert query.when_clauses[0].action.values is None

    def test_with_merge(self):
        query = parse("WITH s AS (SELECT 1 AS id) MERGE INTO t USING s ON t.id = s.id "
                      "WHEN MATCHED THEN DELETE")
        assert isinstance(query, MergeQuery)
        assert query.with_clause is not None

    def test_tables_referenced(self):
        result = parse_result("MERGE INTO t USING s ON t.id = s.id WHEN MATCHED THEN DELETE")
        assert result.tables_referenced == ["t", "s"]

    def test_missing_when(self):
        with pytest.raises(ParseError) as exc_info:
            parse("MERGE INTO t USING s ON t.id = s.id")
        assert exc_info.value.expected == "WHEN"

    def test_unknown_action(self):
        with pytest.raises(ParseError):
            parse("MERGE INTO t USING s ON t.id = s.id WHEN MATCHED THEN SELECT 1")


# ============================================================
# SECTION 6: SCRIPTS
# ============================================================

class TestParseMany:
    """Plusieurs instructions séparées par ';'."""

    def test_statements(self):
        queries = parse_many("SELECT 1; UPDATE t SET a = 1; DELETE FROM t")
        assert [type(q) for q in queries] == [SimpleSelectQuery, UpdateQuery, DeleteQuery]

    def test_empty_statements_skipped(self):
        assert len(parse_many(";; SELECT 1;;; SELECT 2;")) == 2

    def test_empty_script(self):
        assert parse_many("") == []
        assert parse_many(" ; ; ") == []

    def test_comment_carried_to_next_statement(self):
        queries = parse_many("SELECT 1;\n-- orphelin\n;\nSELECT 2")
        assert [c.text for c in queries[0].positioned_comments] == []
        assert [c.text for c in queries[1].positioned_comments] == ["-- orphelin"]

    def test_comment_after_last_statement(self):
        queries = parse_many("SELECT 1;\nSELECT 2;\n-- fin")
        assert [c.text for c in queries[1].positioned_comments] == ["-- fin"]

    def test_results_are_independent(self):
        results = SQLParser().parse_many("SELECT a FROM t; SELECT b FROM u")
        assert [r.tables_referenced for r in results] == [["t"], ["u"]]
        assert all(isinstance(r, ParseResult) for r in results)

    def test_error_position_is_absolute(self):
        with pytest.raises(ParseError) as exc_info:
            parse_many("SELECT 1;\nSELECT FROM t")
        assert exc_info.value.line == 2

    def test_single_parse_rejects_script(self):
        with pytest.raises(ParseError):
            parse("SELECT 1; SELECT 2")
