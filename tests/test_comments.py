"""
Tests du rattachement et de l'impression des commentaires.
"""

import pytest

from sql_styler.ast_nodes import CommentAnchor, PositionedComment, iter_comments
from sql_styler.formatter import SQLFormatter
from sql_styler.parser import parse, parse_result
from sql_styler.printer import escape_comment


COMMENTED_SQL = "-- header\nSELECT a, -- first\n  b /* second */\nFROM t"


def fmt(sql, style=None, **options):
    return SQLFormatter(style, **options).format_sql(sql)


# ============================================================
# SECTION 1: RATTACHEMENT
# ============================================================

class TestAttachment:
    """Chaque commentaire est rattaché à exactement un nœud."""

    def test_comment_count(self):
        result = parse_result(COMMENTED_SQL)
        assert result.comment_count == 3

    def test_anchors(self):
        query = parse(COMMENTED_SQL)
        assert [c.text for c in query.comments(CommentAnchor.HEADER)] == ["-- header"]
        item = query.select_clause.items[1]
        assert [c.text for c in item.comments(CommentAnchor.LEADING)] == ["-- first"]
        column = item.expression
        assert [c.text for c in column.comments(CommentAnchor.TRAILING)] == ["/* second */"]

    def test_each_comment_once(self):
        texts = [comment.text for _, comment in iter_comments(parse(COMMENTED_SQL))]
        assert sorted(texts) == sorted(["-- header", "-- first", "/* second */"])

    def test_comment_positions(self):
        query = parse(COMMENTED_SQL)
        header = query.comments(CommentAnchor.HEADER)[0]
        assert (header.line, header.column) == (1, 1)

    def test_cte_comment_is_header(self):
        query = parse("WITH -- note\na AS (SELECT 1) SELECT * FROM a")
        cte = query.with_clause.tables[0]
        assert [c.anchor for c in cte.positioned_comments] == [CommentAnchor.HEADER]

    def test_comment_at_end_of_text(self):
        result = parse_result("SELECT a FROM t\n-- fin")
        assert result.comment_count == 1

    def test_clone_keeps_comments(self):
        query = parse(COMMENTED_SQL)
        copy = query.clone()
        assert copy.comments(CommentAnchor.HEADER)[0].text == "-- header"
        assert copy.comments(CommentAnchor.HEADER)[0] is not query.comments(CommentAnchor.HEADER)[0]


class TestCommentLines:
    """Découpage du texte d'un commentaire."""

    def test_line_comment(self):
        comment = PositionedComment("--  hello ", CommentAnchor.LEADING)
        assert comment.is_line_comment
        assert comment.lines() == ["hello"]

    def test_decorated_block(self):
        comment = PositionedComment("/*\n * one\n * two\n */", CommentAnchor.HEADER)
        assert comment.lines() == ["one", "two"]

    def test_empty_block(self):
        assert PositionedComment("/**/", CommentAnchor.LEADING).lines() == []

    def test_escape_comment(self):
        assert escape_comment("a */ b") == "a * / b"
        assert escape_comment("/* x") == "/ * x"


# ============================================================
# SECTION 2: MODES D'EXPORT
# ============================================================

class TestExportModes:
    """Sélection des commentaires selon export_comment."""

    SQL = "-- h\nSELECT a /* c */ FROM t"

    def test_none(self):
        assert fmt(self.SQL) == "select a from t"

    def test_full(self):
        assert fmt(self.SQL, export_comment="full") == "/* h */ select a /* c */ from t"

    def test_boolean_alias(self):
        assert fmt(self.SQL, export_comment=True) == "/* h */ select a /* c */ from t"

    def test_top_header_only(self):
        assert fmt(self.SQL, export_comment="top-header-only") == "/* h */ select a from t"
        assert fmt("SELECT a,\n/* lead */ b FROM t", export_comment="top-header-only") == "select a, b from t"

    def test_header_only_keeps_leading(self):
        assert fmt(self.SQL, export_comment="header-only") == "/* h */ select a from t"
        assert fmt("SELECT a,\n/* lead */ b FROM t", export_comment="header-only") == \
            "select a, /* lead */ b from t"

    def test_empty_comment_dropped(self):
        assert fmt("/**/ SELECT 1", export_comment="full") == "select 1"


# ============================================================
# SECTION 3: STYLES DE COMMENTAIRE
# ============================================================

class TestCommentStyles:
    """Rendu block et smart en sortie multi-lignes."""

    def test_block_style(self):
        expected = "/* header */\nSELECT\n    a,\n    /* first */ b /* second */\nFROM\n    t"
        assert fmt(COMMENTED_SQL, "standard", export_comment="full") == expected

    def test_smart_style(self):
        expected = "-- header\nSELECT\n    a,\n    -- first\n    b -- second\nFROM\n    t"
        assert fmt(COMMENTED_SQL, "standard", export_comment="full", comment_style="smart") == expected

    def test_smart_multiline_block(self):
        sql = "/* line one\n   line two */\nSELECT 1"
        expected = "/*\nline one\nline two\n*/\nSELECT\n    1"
        assert fmt(sql, "standard", export_comment="full", comment_style="smart") == expected

    def test_block_multiline(self):
        sql = "/* line one\n   line two */\nSELECT 1"
        expected = "/* line one */ /* line two */\nSELECT\n    1"
        assert fmt(sql, "standard", export_comment="full") == expected

    def test_delimiters_escaped(self):
        expected = "/* a * / b */\nSELECT\n    1"
        assert fmt("-- a */ b\nSELECT 1", "standard", export_comment="full") == expected

    def test_oneline_ignores_smart(self):
        assert fmt("-- h\nSELECT 1", export_comment="full", comment_style="smart") == "/* h */ select 1"


# ============================================================
# SECTION 4: COMMENTAIRES ET VIRGULES
# ============================================================

class TestCommentsAndCommas:
    """Un commentaire trailing reste attaché à son élément, quelle que soit la virgule."""

    SQL = "SELECT a /* c */, b FROM t"

    def test_comma_after(self):
        expected = "SELECT\n    a /* c */,\n    b\nFROM\n    t"
        assert fmt(self.SQL, "standard", export_comment="full") == expected

    def test_comma_before(self):
        expected = "SELECT\n    a /* c */\n    , b\nFROM\n    t"
        assert fmt(self.SQL, "standard", export_comment="full", comma_break="before") == expected

    def test_comma_none(self):
        expected = "SELECT\n    a /* c */, b\nFROM\n    t"
        assert fmt(self.SQL, "standard", export_comment="full", comma_break="none") == expected

    def test_line_comment_keeps_comma_out(self):
        sql = "SELECT a -- c\n, b FROM t"
        expected = "SELECT\n    a -- c\n    ,\n    b\nFROM\n    t"
        assert fmt(sql, "standard", export_comment="full", comment_style="smart") == expected


# ============================================================
# SECTION 5: CLAUSE WITH
# ============================================================

class TestWithClauseComments:
    """Le commentaire d'une CTE est imprimé une seule fois."""

    SQL = "WITH -- note\na AS (SELECT 1) SELECT * FROM a"

    @pytest.mark.parametrize("comment_style", ["block", "smart"])
    def test_printed_once(self, comment_style):
        formatted = fmt(self.SQL, "standard", export_comment="full", comment_style=comment_style)
        assert formatted.count("note") == 1

    def test_block(self):
        expected = ("WITH\n    /* note */ a AS (\n        SELECT\n            1\n    )\n"
                    "SELECT\n    *\nFROM\n    a")
        assert fmt(self.SQL, "standard", export_comment="full") == expected

    def test_smart(self):
        expected = ("WITH\n    -- note\n    a AS (\n        SELECT\n            1\n    )\n"
                    "SELECT\n    *\nFROM\n    a")
        assert fmt(self.SQL, "standard", export_comment="full", comment_style="smart") == expected


# ============================================================
# SECTION 6: STABILITÉ
# ============================================================

class TestCommentRoundTrip:
    """Reformater la sortie conserve les commentaires."""

    @pytest.mark.parametrize("comment_style", ["block", "smart"])
    def test_count_preserved(self, comment_style):
        formatted = fmt(COMMENTED_SQL, "standard", export_comment="full", comment_style=comment_style)
        assert parse_result(formatted).comment_count == 3

    def test_idempotent(self):
        once = fmt(COMMENTED_SQL, "standard", export_comment="full", comment_style="smart")
        twice = fmt(once, "standard", export_comment="full", comment_style="smart")
        assert once == twice


# ============================================================
# SECTION 7: LISTES ENTRE PARENTHÈSES
# ============================================================

class TestParenthesizedListComments:
    """Un commentaire dans une liste de noms reste dans la liste."""

    QUERIES = [
        "INSERT INTO t (a, -- a\n b) VALUES (1, 2)",
        "INSERT INTO t (a, b\n-- a\n) VALUES (1, 2)",
        "SELECT * FROM t JOIN u USING (a, -- a\n b)",
        "SELECT * FROM t AS z(a, -- a\n b)",
        "ANALYZE t (a, -- a\n b)",
        "EXPLAIN (ANALYZE, -- a\n VERBOSE) SELECT 1",
        "EXPLAIN (ANALYZE, VERBOSE\n-- a\n) SELECT 1",
    ]

    @pytest.mark.parametrize("sql", QUERIES)
    def test_attached_once(self, sql):
        assert parse_result(sql).comment_count == 1

    @pytest.mark.parametrize("sql", QUERIES)
    @pytest.mark.parametrize("style", ["standard", "compact"])
    def test_printed_inside_parentheses(self, sql, style):
        formatted = fmt(sql, style, export_comment="full")
        before, after = formatted.split("/* a */")
        assert before.count("(") > before.count(")")
        assert after.count(")") > after.count("(")

    @pytest.mark.parametrize("sql", QUERIES)
    @pytest.mark.parametrize("mode", ["full", "header-only"])
    def test_idempotent(self, sql, mode):
        once = fmt(sql, "standard", export_comment=mode)
        assert fmt(once, "standard", export_comment=mode) == once

    def test_same_tree(self):
        for sql in self.QUERIES:
            assert parse(fmt(sql, "standard", export_comment="full")) == parse(sql)


class TestDashesInBlockComment:
    """'--' dans un commentaire bloc n'est pas un commentaire de ligne."""

    def test_comma_stays_on_line(self):
        formatted = fmt("SELECT a /* x--y */, b FROM t", "standard", export_comment="full")
        assert formatted == "SELECT\n    a /* x--y */,\n    b\nFROM\n    t"
        assert "\n    ,\n" not in formatted
