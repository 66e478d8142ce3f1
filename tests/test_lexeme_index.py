"""
Tests de l'index des lexèmes (recherche par position).
"""

from sql_styler.lexeme_index import LexemeIndex, LexemeRole, normalize_name
from sql_styler.parser import SQLParser
from sql_styler.tokenizer import tokenize


def index_of(sql):
    return SQLParser().parse(sql).lexeme_index


class TestLookup:
    """Recherche dichotomique par (ligne, colonne)."""

    def test_lookup_keyword(self):
        info = index_of("SELECT a FROM t").lookup(1, 3)
        assert info.token.value == "SELECT"
        assert info.role == LexemeRole.KEYWORD

    def test_lookup_whitespace(self):
        assert index_of("SELECT a FROM t").lookup(1, 7) is None

    def test_lookup_past_end(self):
        assert index_of("SELECT a").lookup(5, 1) is None

    def test_lookup_before_start(self):
        assert index_of("  SELECT a").lookup(1, 1) is None

    def test_lookup_second_line(self):
        info = index_of("SELECT a\nFROM users").lookup(2, 8)
        assert info.token.value == "users"
        assert info.role == LexemeRole.TABLE
        assert info.identity == ("table", "users")

    def test_lookup_comment(self):
        info = index_of("SELECT a -- note\nFROM t").lookup(1, 12)
        assert info.role == LexemeRole.COMMENT

    def test_eof_not_indexed(self):
        index = index_of("SELECT 1")
        assert len(index) == 2


class TestRoles:
    """Rôles syntaxiques et identités."""

    def test_cte_definition_and_reference(self):
        sql = "WITH a AS (SELECT 1) SELECT * FROM a"
        index = index_of(sql)
        definition = index.lookup(1, 6)
        reference = index.lookup(1, 36)
        assert definition.role == LexemeRole.CTE
        assert reference.role == LexemeRole.CTE
        assert definition.identity == reference.identity == ("cte", "a")
        assert len(index.find_identity(("cte", "a"))) == 2

    def test_cte_identity_is_case_insensitive(self):
        index = index_of("WITH Foo AS (SELECT 1) SELECT * FROM foo")
        assert len(index.find_identity(("cte", "foo"))) == 2

    def test_cte_is_not_a_table(self):
        result = SQLParser().parse("WITH a AS (SELECT 1) SELECT * FROM a")
        assert result.tables_referenced == []

    def test_alias_namespace_column(self):
        index = index_of("SELECT u.id FROM users u")
        assert index.lookup(1, 8).role == LexemeRole.NAMESPACE
        column = index.lookup(1, 10)
        assert column.role == LexemeRole.COLUMN
        assert column.identity == ("column", "id")
        alias = index.lookup(1, 24)
        assert alias.role == LexemeRole.ALIAS

    def test_function_and_parameter(self):
        index = index_of("SELECT upper(:name)")
        assert index.lookup(1, 8).role == LexemeRole.FUNCTION
        assert index.lookup(1, 14).role == LexemeRole.PARAMETER

    def test_literal_and_operator(self):
        index = index_of("SELECT 1 + 2")
        assert index.lookup(1, 8).role == LexemeRole.LITERAL
        assert index.lookup(1, 10).role == LexemeRole.OPERATOR


class TestNormalizeName:
    """Nom logique d'un identifiant."""

    def test_unquoted_is_lowercased(self):
        assert normalize_name(tokenize("Users")[0]) == "users"

    def test_quoted_keeps_case(self):
        assert normalize_name(tokenize('"My""Col"')[0]) == 'My"Col'
        assert normalize_name(tokenize("[My Col]")[0]) == "My Col"

    def test_index_without_roles(self):
        index = LexemeIndex(tokenize("SELECT a"))
        assert index.lookup(1, 8).role == LexemeRole.IDENTIFIER
