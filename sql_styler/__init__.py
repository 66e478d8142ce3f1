"""
SQL Styler - Parser et formateur SQL qui conserve les commentaires.

Ce module fournit:
- Tokenizer: Analyse lexicale du SQL, positions ligne/colonne
- AST Nodes: Représentation structurée des éléments SQL
- Parser: Analyse syntaxique, rattachement des commentaires, index des lexèmes
- Formatter: Régénération du SQL selon une configuration de style
- Export JSON: Conversion de l'AST en JSON

Usage:
    from sql_styler import parse, SQLFormatter, format_sql

    # Parser SQL -> AST
    query = parse("SELECT * FROM users WHERE age > 18")

    # Formater l'AST
    formatter = SQLFormatter(keyword_case='lower', identifier_escape='quote')
    result = formatter.format(query)
    print(result.formatted_sql)  # select * from "users" where "age" > 18

    # Formater directement du SQL
    formatted = format_sql("SELECT a,b,c FROM t WHERE x>1")
    minified = minify_sql(formatted)

    # Position -> lexème (outils de renommage)
    result = SQLParser().parse("WITH a AS (SELECT 1) SELECT * FROM a")
    info = result.lexeme_index.lookup(1, 6)
    info.role, info.identity   # LexemeRole.CTE, ('cte', 'a')
"""

from .tokenizer import SQLTokenizer, Token, TokenType, LexemeKind, tokenize
from .ast_nodes import *
from .errors import SQLStylerError, LexError, ParseError, ConfigurationError, FormatError
from .parser import (
    SQLParser, AnalyzeResult, parse, parse_many, parse_result, analyze,
    MAX_NESTING_DEPTH, MAX_CHAIN_LENGTH,
)
from .lexeme_index import LexemeIndex, LexemeInfo, LexemeRole
from .line_printer import LinePrinter
from .style import StyleConfiguration, FormatStyle, CommentExportMode, resolve_style
from .sql_generator import SQLGenerator
from .printer import SqlPrinter
from .formatter import SQLFormatter, FormatResult, format_sql, minify_sql, validate_sql
from .json_exporter import ASTToJSONExporter, export_to_json

__version__ = "1.0.0"
__all__ = [
    "SQLTokenizer",
    "Token",
    "TokenType",
    "LexemeKind",
    "tokenize",
    "SQLStylerError",
    "LexError",
    "ParseError",
    "ConfigurationError",
    "FormatError",
    "SQLParser",
    "AnalyzeResult",
    "parse",
    "parse_many",
    "parse_result",
    "analyze",
    "MAX_NESTING_DEPTH",
    "MAX_CHAIN_LENGTH",
    "LexemeIndex",
    "LexemeInfo",
    "LexemeRole",
    "LinePrinter",
    "StyleConfiguration",
    "FormatStyle",
    "CommentExportMode",
    "resolve_style",
    "SQLGenerator",
    "SqlPrinter",
    "SQLFormatter",
    "FormatResult",
    "format_sql",
    "minify_sql",
    "validate_sql",
    "ASTToJSONExporter",
    "export_to_json",
]
