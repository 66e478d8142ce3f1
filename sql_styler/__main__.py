#!/usr/bin/env python3
"""
SQL Styler - Script principal.

Formate du SQL depuis la ligne de commande, un fichier ou l'entrée standard,
ou affiche ses tokens / son AST en JSON.

Usage:
    python -m sql_styler "SELECT * FROM users"
    python -m sql_styler -f query.sql --keyword-case lower --comma-break before
    python -m sql_styler -f query.sql --mode json -o result.json
    python -m sql_styler --mode tokens "SELECT 1"
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .errors import SQLStylerError
from .formatter import SQLFormatter
from .json_exporter import ASTToJSONExporter, tokens_to_list
from .parser import SQLParser
from .style import (
    BREAK_STYLES, COMMENT_STYLES, IDENTIFIER_ESCAPES, KEYWORD_CASES, NEWLINES,
    PARAMETER_STYLES, PRESETS, WITH_CLAUSE_STYLES, CommentExportMode, FormatStyle,
)
from .tokenizer import SQLTokenizer

logger = logging.getLogger(__name__)

# Options de style exposées telles quelles sur la ligne de commande
STYLE_FLAGS = (
    'preset', 'keyword_case', 'indent_size', 'indent_char', 'newline',
    'comma_break', 'cte_comma_break', 'values_comma_break', 'and_break', 'or_break',
    'identifier_escape', 'export_comment', 'comment_style', 'with_clause_style',
    'parameter_style', 'parameter_symbol',
)

ONE_LINE_FLAGS = ('parentheses_one_line', 'between_one_line', 'values_one_line',
                  'join_one_line', 'case_one_line', 'subquery_one_line', 'indent_nested_parentheses')


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sql_styler",
        description="Formate du SQL ou exporte ses tokens et son AST en JSON.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exemples:
  # Formater une requête directement
  python -m sql_styler "SELECT id, name FROM users WHERE age > 18"

  # Formater un fichier, virgules en début de ligne
  python -m sql_styler -f query.sql --comma-break before

  # Sur une seule ligne, identifiants quotés, commentaires conservés
  python -m sql_styler --style compact --identifier-escape quote --export-comment full -f query.sql

  # Exporter l'AST en JSON
  python -m sql_styler --mode json -f query.sql -o result.json

  # Afficher seulement les tokens
  python -m sql_styler --mode tokens "SELECT * FROM users"
"""
    )

    parser.add_argument("sql", nargs="?", help="Requête SQL à traiter")
    parser.add_argument("-f", "--file", type=str, help="Fichier SQL à traiter")
    parser.add_argument("-o", "--output", type=str, help="Fichier de sortie")
    parser.add_argument("-m", "--mode", choices=['format', 'tokens', 'json'], default='format',
                        help="Sortie: SQL formaté, tokens ou AST JSON (défaut: format)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Journalisation détaillée sur stderr")

    style = parser.add_argument_group("style")
    style.add_argument("-s", "--style", choices=[s.value for s in FormatStyle], default='standard',
                       help="Style prédéfini (défaut: standard)")
    style.add_argument("--preset", choices=sorted(PRESETS), help="Préréglages d'un dialecte")
    style.add_argument("--keyword-case", choices=KEYWORD_CASES)
    style.add_argument("--indent-size", type=int)
    style.add_argument("--indent-char", choices=['space', 'tab'])
    style.add_argument("--newline", choices=sorted(NEWLINES))
    style.add_argument("--comma-break", choices=BREAK_STYLES)
    style.add_argument("--cte-comma-break", choices=BREAK_STYLES)
    style.add_argument("--values-comma-break", choices=BREAK_STYLES)
    style.add_argument("--and-break", choices=BREAK_STYLES)
    style.add_argument("--or-break", choices=BREAK_STYLES)
    style.add_argument("--identifier-escape", choices=sorted(IDENTIFIER_ESCAPES))
    style.add_argument("--export-comment", choices=[m.value for m in CommentExportMode])
    style.add_argument("--comment-style", choices=COMMENT_STYLES)
    style.add_argument("--with-clause-style", choices=WITH_CLAUSE_STYLES)
    style.add_argument("--parameter-style", choices=PARAMETER_STYLES)
    style.add_argument("--parameter-symbol", type=str)
    for flag in ONE_LINE_FLAGS:
        style.add_argument("--" + flag.replace('_', '-'), action="store_true")

    export = parser.add_argument_group("json")
    export.add_argument("--indent", type=int, default=2, help="Indentation du JSON (défaut: 2)")
    export.add_argument("--compact", action="store_true", help="JSON compact, sans métadonnées")
    export.add_argument("--no-metadata", action="store_true", help="Exclure les métadonnées")
    export.add_argument("--with-tokens", action="store_true", help="Inclure les tokens dans l'export JSON")
    return parser


def style_options(args: argparse.Namespace) -> dict:
    """Options de style données explicitement sur la ligne de commande."""
    options = {}
    for flag in STYLE_FLAGS:
        value = getattr(args, flag)
        if value is not None:
            options[flag] = value
    for flag in ONE_LINE_FLAGS:
        if getattr(args, flag):
            options[flag] = True
    return options


def read_sql(args: argparse.Namespace) -> Optional[str]:
    if args.file:
        filepath = Path(args.file)
        if not filepath.exists():
            print(f"Erreur: Le fichier '{args.file}' n'existe pas.", file=sys.stderr)
            return None
        return filepath.read_text(encoding='utf-8')
    if args.sql:
        return args.sql
    if not sys.stdin.isatty():
        return sys.stdin.read()
    print("Erreur: Aucune requête SQL fournie.", file=sys.stderr)
    print("Usage: python -m sql_styler \"SELECT * FROM users\"", file=sys.stderr)
    print("       python -m sql_styler -f query.sql", file=sys.stderr)
    return None


def write_output(text: str, output: Optional[str]):
    if output:
        Path(output).write_text(text, encoding='utf-8')
        print(f"Résultat sauvegardé dans '{output}'")
    else:
        print(text)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_argument_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    sql = read_sql(args)
    if sql is None:
        return 1
    if not sql.strip():
        print("Erreur: La requête SQL est vide.", file=sys.stderr)
        return 1

    try:
        if args.mode == 'tokens':
            tokens = tokens_to_list(SQLTokenizer(sql).tokenize())
            write_output(json.dumps({"tokens": tokens}, indent=args.indent, ensure_ascii=False), args.output)
            return 0

        result = SQLParser().parse(sql)

        if args.mode == 'json':
            exporter = ASTToJSONExporter(
                indent=args.indent,
                include_metadata=not args.no_metadata,
                include_tokens=args.with_tokens,
                compact=args.compact
            )
            write_output(exporter.export(result), args.output)
            return 0

        formatter = SQLFormatter(args.style, **style_options(args))
        write_output(formatter.format(result).formatted_sql, args.output)
        return 0
    except SQLStylerError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Erreur: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
