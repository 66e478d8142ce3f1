"""
Tests complets pour le formateur SQL.
"""

import inspect
from dataclasses import dataclass

import pytest

from sql_styler import ast_nodes
from sql_styler.ast_nodes import (
    ASTNode, Expression, Identifier, QualifiedName, ColumnReference, Literal,
    ParameterExpression, BinaryExpression, LogicalExpression, UnaryExpression,
    SelectItem, SelectClause, TableSource, SourceExpression, FromClause,
    WhereClause, SimpleSelectQuery, AlterTableAction, AlterTableStatement,
)
from sql_styler.errors import ConfigurationError, FormatError
from sql_styler.formatter import SQLFormatter, FormatResult, format_sql, minify_sql, validate_sql
from sql_styler.parser import parse
from sql_styler.sql_generator import SQLGenerator
from sql_styler.style import FormatStyle


def select_where(condition):
    """SELECT * FROM users WHERE <condition>, construit à la main."""
    return SimpleSelectQuery(
        select_clause=SelectClause(items=[SelectItem(ColumnReference(Identifier('*')))]),
        from_clause=FromClause(source=SourceExpression(TableSource(QualifiedName.of('users')))),
        where_clause=WhereClause(condition),
    )


def column(name):
    return ColumnReference(Identifier(name))


# ============================================================
# SECTION 1: SORTIE SUR UNE LIGNE
# ============================================================

class TestOneLine:
    """Configuration par défaut: une seule ligne."""

    def test_lower_keywords_quoted_identifiers(self):
        formatter = SQLFormatter(keyword_case='lower', identifier_escape='quote')
        result = formatter.format(parse("SELECT id, name FROM users WHERE active = true"))
        assert result.formatted_sql == 'select "id", "name" from "users" where "active" = true'

    def test_preserve_prints_lowercase(self):
        assert SQLFormatter(keyword_case='preserve').format_sql("SELECT A FROM T") == "select A from T"

    def test_upper(self):
        assert SQLFormatter(keyword_case='upper').format_sql("select a from t") == "SELECT a FROM t"

    def test_minify(self):
        assert minify_sql("SELECT\n    a,\n    b\nFROM t") == "SELECT a, b FROM t"

    def test_format_accepts_text(self):
        result = SQLFormatter().format("SELECT 1")
        assert isinstance(result, FormatResult)
        assert str(result) == "select 1"

    @pytest.mark.parametrize("sql,expected", [
        ("SELECT * FROM a JOIN b ON a.id = b.id", "select * from a join b on a.id = b.id"),
        ("SELECT * FROM a, b", "select * from a, b"),
        ("SELECT a FROM t UNION ALL SELECT a FROM u", "select a from t union all select a from u"),
        ("INSERT INTO t (a, b) VALUES (1, 2)", "insert into t (a, b) values (1, 2)"),
        ("INSERT INTO t DEFAULT VALUES", "insert into t default values"),
        ("UPDATE t SET a = 1 WHERE b = 2", "update t set a = 1 where b = 2"),
        ("DELETE FROM t WHERE a = 1", "delete from t where a = 1"),
        ("SELECT CASE WHEN a = 1 THEN 'x' ELSE 'y' END FROM t",
         "select case when a = 1 then 'x' else 'y' end from t"),
        ("SELECT a FROM t WHERE b IN (1, 2, 3)", "select a from t where b in (1, 2, 3)"),
        ("SELECT a::text FROM t", "select a::text from t"),
        ("DROP TABLE IF EXISTS a, b CASCADE", "drop table if exists a, b cascade"),
        ("CREATE TABLE t (id int PRIMARY KEY, name text NOT NULL)",
         "create table t (id int primary key, name text not null)"),
        ("ALTER TABLE t DROP COLUMN c", "alter table t drop column c"),
        ("SELECT count(*) FROM t", "select count(*) from t"),
        ("SELECT a FROM t UNION SELECT a FROM u ORDER BY a LIMIT 1",
         "select a from t union select a from u order by a limit 1"),
        ("MERGE INTO t USING s ON t.id = s.id WHEN MATCHED THEN DELETE",
         "merge into t using s on t.id = s.id when matched then delete"),
        ("MERGE INTO t USING s ON t.id = s.id WHEN NOT MATCHED THEN INSERT DEFAULT VALUES",
         "merge into t using s on t.id = s.id when not matched then insert default values"),
    ])
    def test_statements(self, sql, expected):
        assert SQLFormatter().format_sql(sql) == expected


# ============================================================
# SECTION 2: SORTIE MULTI-LIGNES
# ============================================================

class TestMultiLine:
    """Styles indentés."""

    def test_standard(self):
        assert format_sql("SELECT a,b FROM t WHERE x>1") == "SELECT\n    a,\n    b\nFROM\n    t\nWHERE\n    x > 1"

    def test_comma_before(self):
        assert format_sql("SELECT a,b FROM t", comma_break='before') == "SELECT\n    a\n    , b\nFROM\n    t"

    def test_comma_none(self):
        assert format_sql("SELECT a,b FROM t", comma_break='none') == "SELECT\n    a, b\nFROM\n    t"

    def test_tabs(self):
        sql = format_sql("SELECT a FROM t", indent_char='tab', indent_size=1)
        assert sql == "SELECT\n\ta\nFROM\n\tt"

    def test_crlf(self):
        assert format_sql("SELECT a FROM t", newline='crlf') == "SELECT\r\n    a\r\nFROM\r\n    t"

    def test_and_before(self):
        sql = format_sql("SELECT a FROM t WHERE x = 1 AND y = 2", style=FormatStyle.EXPANDED)
        assert sql == "SELECT\n    a\nFROM\n    t\nWHERE\n    x = 1\n    AND y = 2"

    def test_and_after(self):
        sql = format_sql("SELECT a FROM t WHERE x = 1 AND y = 2", and_break='after')
        assert sql == "SELECT\n    a\nFROM\n    t\nWHERE\n    x = 1 AND\n    y = 2"

    def test_join_on_new_line(self):
        sql = format_sql("SELECT * FROM a JOIN b ON a.id = b.id")
        assert sql == "SELECT\n    *\nFROM\n    a\n    JOIN b ON a.id = b.id"

    def test_case(self):
        sql = format_sql("SELECT CASE WHEN a = 1 THEN 'x' ELSE 'y' END FROM t")
        assert sql == "SELECT\n    CASE\n        WHEN a = 1 THEN 'x'\n        ELSE 'y'\n    END\nFROM\n    t"

    def test_case_one_line(self):
        sql = format_sql("SELECT CASE WHEN a = 1 THEN 'x' ELSE 'y' END FROM t", case_one_line=True)
        assert sql == "SELECT\n    CASE WHEN a = 1 THEN 'x' ELSE 'y' END\nFROM\n    t"

    def test_subquery(self):
        sql = format_sql("SELECT * FROM (SELECT a FROM t) s")
        assert sql == ("SELECT\n    *\nFROM\n    (\n        SELECT\n            a\n"
                       "        FROM\n            t\n    ) AS s")

    def test_subquery_one_line(self):
        sql = format_sql("SELECT * FROM (SELECT a FROM t) s", subquery_one_line=True)
        assert sql == "SELECT\n    *\nFROM\n    (SELECT a FROM t) AS s"

    def test_values(self):
        assert format_sql("INSERT INTO t VALUES (1), (2)") == "INSERT INTO\n    t\nVALUES\n    (1),\n    (2)"

    def test_values_one_line(self):
        sql = format_sql("INSERT INTO t VALUES (1), (2)", values_one_line=True)
        assert sql == "INSERT INTO\n    t\nVALUES (1), (2)"

    def test_nested_parentheses(self):
        sql = format_sql("SELECT a FROM t WHERE ((x = 1))", indent_nested_parentheses=True)
        assert sql == "SELECT\n    a\nFROM\n    t\nWHERE\n    (\n        (x = 1)\n    )"

    def test_argument_commas_never_break(self):
        sql = format_sql("SELECT coalesce(a, b) FROM t")
        assert "COALESCE" not in sql
        assert "coalesce(a, b)" in sql


class TestWithClause:
    """Mise en page de la clause WITH."""

    SQL = "WITH a AS (SELECT 1), b AS (SELECT 2) SELECT * FROM b"

    def test_standard(self):
        sql = format_sql("WITH a AS (SELECT 1) SELECT * FROM a")
        assert sql == "WITH\n    a AS (\n        SELECT\n            1\n    )\nSELECT\n    *\nFROM\n    a"

    def test_cte_comma_before(self):
        expected = ("WITH\n    a AS (\n        SELECT\n            1\n    )\n"
                    "    , b AS (\n        SELECT\n            2\n    )\n"
                    "SELECT\n    *\nFROM\n    b")
        assert format_sql(self.SQL, cte_comma_break='before') == expected

    def test_cte_comma_after(self):
        expected = ("WITH\n    a AS (\n        SELECT\n            1\n    ),\n"
                    "    b AS (\n        SELECT\n            2\n    )\n"
                    "SELECT\n    *\nFROM\n    b")
        assert format_sql(self.SQL, cte_comma_break='after') == expected

    def test_full_oneline(self):
        sql = format_sql("WITH a AS (SELECT 1) SELECT * FROM a", with_clause_style='full-oneline')
        assert sql == "WITH a AS (SELECT 1)\nSELECT\n    *\nFROM\n    a"

    def test_cte_oneline(self):
        sql = format_sql("WITH a AS (SELECT 1) SELECT * FROM a", with_clause_style='cte-oneline')
        assert sql == "WITH\n    a AS (SELECT 1)\nSELECT\n    *\nFROM\n    a"


# ============================================================
# SECTION 3: IDENTIFIANTS ET PRÉCÉDENCE
# ============================================================

class TestIdentifiers:
    """Échappement des identifiants."""

    def test_reserved_word_is_quoted(self):
        assert SQLFormatter().format(Identifier('select')).formatted_sql == '"select"'

    def test_non_reserved_keyword_is_bare(self):
        assert SQLFormatter().format(Identifier('rows')).formatted_sql == 'rows'

    def test_unsafe_name_is_quoted(self):
        assert SQLFormatter().format(Identifier('my col')).formatted_sql == '"my col"'

    def test_quoted_name_keeps_quotes(self):
        assert SQLFormatter().format(Identifier('Id', quoted=True)).formatted_sql == '"Id"'

    def test_escape_doubles_end_delimiter(self):
        assert SQLFormatter(identifier_escape='backtick').format(Identifier('a`b')).formatted_sql == '`a``b`'
        assert SQLFormatter(identifier_escape='bracket').format(Identifier('a]b')).formatted_sql == '[a]]b]'

    def test_star_is_never_escaped(self):
        result = SQLFormatter(identifier_escape='quote').format_sql("SELECT t.* FROM t")
        assert result == 'select "t".* from "t"'

    def test_function_names_are_raw(self):
        result = SQLFormatter(identifier_escape='quote').format_sql("SELECT upper(a) FROM t")
        assert result == 'select upper("a") from "t"'

    @pytest.mark.parametrize("sql", [
        "ANALYZE VERBOSE t (a, b)",
        "CREATE INDEX CONCURRENTLY i ON t (a)",
        "EXPLAIN ANALYZE VERBOSE SELECT a FROM t",
    ])
    def test_bracket_escape_round_trip(self, sql):
        formatter = SQLFormatter(identifier_escape='bracket')
        once = formatter.format_sql(sql)
        assert '[t]' in once
        assert formatter.format_sql(once) == once
        assert type(parse(once)) is type(parse(sql))


class TestPrecedence:
    """Parenthèses ajoutées sur les arbres construits par programme."""

    def render(self, node):
        return SQLFormatter().format(node).formatted_sql

    def test_lower_precedence_left_operand(self):
        node = BinaryExpression(BinaryExpression(column('a'), '+', column('b')), '*', column('c'))
        assert self.render(node) == "(a + b) * c"

    def test_equal_precedence_right_operand(self):
        node = BinaryExpression(column('a'), '-', BinaryExpression(column('b'), '-', column('c')))
        assert self.render(node) == "a - (b - c)"

    def test_left_associative_chain(self):
        node = BinaryExpression(BinaryExpression(column('a'), '-', column('b')), '-', column('c'))
        assert self.render(node) == "a - b - c"

    def test_logical(self):
        node = LogicalExpression('or', [column('a'), LogicalExpression('and', [column('b'), column('c')])])
        assert self.render(node) == "a or b and c"
        node = LogicalExpression('and', [column('a'), LogicalExpression('or', [column('b'), column('c')])])
        assert self.render(node) == "a and (b or c)"

    def test_double_minus_is_not_a_comment(self):
        node = UnaryExpression('-', UnaryExpression('-', Literal(1, 'integer')))
        assert self.render(node) == "- -1"

    def test_conjoin(self):
        node = LogicalExpression.conjoin(column('a'), LogicalExpression('and', [column('b'), column('c')]))
        assert len(node.operands) == 3
        assert self.render(node) == "a and b and c"

    def test_literals(self):
        assert self.render(Literal("it's", 'string')) == "'it''s'"
        assert self.render(Literal(None, 'null')) == "null"
        assert self.render(Literal(False, 'boolean')) == "false"
        assert self.render(Literal(2.5, 'decimal')) == "2.5"


# ============================================================
# SECTION 4: PARAMÈTRES
# ============================================================

class TestParameters:
    """Rendu et collecte des paramètres."""

    def query(self):
        return select_where(LogicalExpression('and', [
            BinaryExpression(column('id'), '=', ParameterExpression(name='id', value=42)),
            BinaryExpression(column('kind'), '=', ParameterExpression(value='admin')),
        ]))

    def test_named(self):
        result = SQLFormatter().format(self.query())
        assert result.formatted_sql == "select * from users where id = :id and kind = :2"
        assert result.params == {'id': 42, '2': 'admin'}

    def test_indexed(self):
        result = SQLFormatter(parameter_style='indexed', parameter_symbol='$').format(self.query())
        assert result.formatted_sql == "select * from users where id = $1 and kind = $2"
        assert result.params == [42, 'admin']

    def test_anonymous(self):
        result = SQLFormatter(parameter_style='anonymous').format(self.query())
        assert result.formatted_sql == "select * from users where id = ? and kind = ?"
        assert result.params == [42, 'admin']

    def test_symbol_pair(self):
        result = SQLFormatter(parameter_symbol={'start': '{', 'end': '}'}).format(self.query())
        assert result.formatted_sql == "select * from users where id = {id} and kind = {2}"

    def test_params_reset_between_calls(self):
        formatter = SQLFormatter(parameter_style='indexed')
        formatter.format(self.query())
        assert formatter.format(self.query()).params == [42, 'admin']

    def test_parsed_parameters(self):
        result = SQLFormatter().format_sql("SELECT * FROM t WHERE a = :x")
        assert result == "select * from t where a = :x"

    def test_position_name_not_taken_by_explicit_name(self):
        result = SQLFormatter().format(parse("SELECT ?, :1"))
        assert result.formatted_sql == "select :2, :1"
        assert sorted(result.params) == ["1", "2"]

    def test_dollar_index_kept_beside_anonymous(self):
        result = SQLFormatter().format(parse("SELECT ?, $1"))
        assert result.formatted_sql == "select :2, :1"
        assert len(result.params) == 2


# ============================================================
# SECTION 5: ROBUSTESSE
# ============================================================

class TestGeneratorCoverage:
    """Chaque nœud concret a une règle de génération."""

    def test_every_node_has_a_rule(self):
        missing = []
        for name, cls in inspect.getmembers(ast_nodes, inspect.isclass):
            if issubclass(cls, ASTNode) and cls not in (ASTNode, Expression):
                if not hasattr(SQLGenerator, f'_gen_{name}'):
                    missing.append(name)
        assert missing == []

    def test_unknown_node(self):
        @dataclass
        class Mystery(Expression):
            pass

        with pytest.raises(FormatError):
            SQLFormatter().format(Mystery())

    def test_unknown_alter_action(self):
        node = AlterTableStatement(table=QualifiedName.of('t'), actions=[AlterTableAction('explode')])
        with pytest.raises(FormatError):
            SQLFormatter().format(node)

    def test_configuration_error(self):
        with pytest.raises(ConfigurationError):
            SQLFormatter(keyword_case='title')


class TestRoundTrip:
    """Reparser la sortie donne le même texte."""

    QUERIES = [
        "SELECT a, b FROM t WHERE x > 1 ORDER BY a",
        "WITH a AS (SELECT 1) SELECT * FROM a",
        "SELECT * FROM a LEFT JOIN b ON a.id = b.id WHERE a.x = 1 OR b.y = 2",
        "SELECT CASE WHEN a = 1 THEN 'x' ELSE 'y' END FROM t",
        "SELECT a FROM t UNION SELECT b FROM u",
        "INSERT INTO t (a, b) VALUES (1, 2), (3, 4)",
        "UPDATE t SET a = a + 1 WHERE b IS NOT NULL",
        "SELECT count(*) OVER (PARTITION BY a ORDER BY b) FROM t",
        "SELECT a FROM t UNION SELECT a FROM u ORDER BY a LIMIT 1",
        "SELECT a FROM t UNION ALL SELECT a FROM u FETCH FIRST 5 ROWS ONLY",
        "SELECT a FROM t EXCEPT (SELECT a FROM u ORDER BY a LIMIT 1)",
        "SELECT " + " + ".join(f"a{i}" for i in range(120)) + " FROM t",
        ("MERGE INTO target t USING source s ON t.id = s.id "
         "WHEN MATCHED AND s.deleted THEN DELETE "
         "WHEN MATCHED THEN UPDATE SET name = s.name "
         "WHEN NOT MATCHED THEN INSERT (id, name) VALUES (s.id, s.name) "
         "WHEN NOT MATCHED BY SOURCE THEN DO NOTHING"),
    ]

    @pytest.mark.parametrize("sql", QUERIES)
    @pytest.mark.parametrize("style", ["standard", "compact", "expanded", "aligned"])
    def test_idempotent(self, sql, style):
        once = format_sql(sql, style=style)
        assert format_sql(once, style=style) == once

    @pytest.mark.parametrize("sql", QUERIES)
    def test_same_tree(self, sql):
        assert parse(format_sql(sql)) == parse(sql)

    def test_format_file(self, tmp_path):
        source = tmp_path / "query.sql"
        target = tmp_path / "out.sql"
        source.write_text("SELECT a FROM t", encoding='utf-8')
        formatted = SQLFormatter('compact').format_file(str(source), str(target))
        assert formatted == "SELECT a FROM t"
        assert target.read_text(encoding='utf-8') == "SELECT a FROM t"


class TestValidate:
    """validate_sql()."""

    def test_valid(self):
        result = validate_sql("SELECT a FROM users -- note")
        assert result['valid']
        assert result['info']['statement_type'] == 'SimpleSelectQuery'
        assert result['info']['tables'] == ['users']
        assert result['info']['comments'] == 1
        assert result['formatted'] == "SELECT\n    a\nFROM\n    users"

    def test_invalid(self):
        result = validate_sql("SELECT FROM")
        assert not result['valid']
        assert result['position'] == (1, 8)
        assert result['formatted'] is None
