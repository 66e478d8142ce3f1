"""
SQL Formatter - Formateur et indenteur SQL.

Ce module relie les trois étapes du formatage: génération des jetons
d'impression depuis l'AST, impression ligne par ligne, collecte des
paramètres. Un SQLFormatter lie une StyleConfiguration pour toute sa
durée de vie et n'a aucun autre état.

Usage:
    from sql_styler.formatter import format_sql, SQLFormatter, FormatStyle

    # Formatage simple
    formatted = format_sql("SELECT a,b,c FROM t WHERE x>1")

    # Avec style prédéfini
    formatted = format_sql(sql, style=FormatStyle.COMPACT)

    # Configuration avancée
    formatter = SQLFormatter(
        indent_size=2,
        newline='lf',
        keyword_case='upper',
        comma_break='before',
        identifier_escape='quote',
    )
    result = formatter.format(parse(sql))
    result.formatted_sql, result.params
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .ast_nodes import ASTNode, ParseResult
from .errors import SQLStylerError
from .parser import SQLParser, analyze
from .printer import SqlPrinter
from .sql_generator import SQLGenerator
from .style import FormatStyle, StyleConfiguration, resolve_style

logger = logging.getLogger(__name__)


@dataclass
class FormatResult:
    """Texte formaté et valeurs des paramètres rencontrés."""
    formatted_sql: str
    params: Union[Dict[str, Any], List[Any]] = field(default_factory=dict)

    def __str__(self):
        return self.formatted_sql


class SQLFormatter:
    """
    Formateur SQL avec options personnalisables.

    Args:
        style: StyleConfiguration, FormatStyle (ou son nom) ou dictionnaire d'options
        **options: Options de style (snake_case ou camelCase), prioritaires sur `style`

    Raises:
        ConfigurationError: option inconnue ou valeur invalide
    """

    def __init__(self,
                 style: Union[StyleConfiguration, FormatStyle, str, Dict[str, Any], None] = None,
                 **options):
        if isinstance(style, StyleConfiguration):
            self.style = resolve_style(options, base=style) if options else style
        elif isinstance(style, dict):
            self.style = resolve_style(style, **options)
        else:
            self.style = resolve_style(options, style=style)

    def format(self, node: Union[ASTNode, ParseResult, str]) -> FormatResult:
        """
        Formate un AST.

        Args:
            node: Nœud racine, ParseResult ou texte SQL (parsé au passage)

        Returns:
            FormatResult(formatted_sql, params)
        """
        if isinstance(node, str):
            node = SQLParser().parse(node)
        if isinstance(node, ParseResult):
            node = node.statement

        generator = SQLGenerator(self.style)
        token = generator.generate(node)
        formatted = SqlPrinter(self.style).print(token)
        logger.debug("Formatted %s (%d characters)", type(node).__name__, len(formatted))
        return FormatResult(formatted_sql=formatted, params=generator.params)

    def format_sql(self, sql: str) -> str:
        """Parse puis formate un texte SQL."""
        return self.format(sql).formatted_sql

    def format_file(self, filepath: str, output_path: Optional[str] = None) -> str:
        """
        Formate un fichier SQL.

        Args:
            filepath: Chemin du fichier à formater
            output_path: Chemin de sortie (si None, retourne seulement le contenu)

        Returns:
            Contenu formaté
        """
        with open(filepath, 'r', encoding='utf-8') as f:
            sql = f.read()

        formatted = self.format_sql(sql)

        if output_path:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(formatted)

        return formatted


def format_sql(sql: str,
               style: Union[StyleConfiguration, FormatStyle, str, None] = FormatStyle.STANDARD,
               **options) -> str:
    """
    Fonction utilitaire pour formater du SQL.

    Args:
        sql: Code SQL à formater
        style: Style de formatage prédéfini ou configuration complète
        **options: Options de style supplémentaires

    Returns:
        Code SQL formaté

    Examples:
        >>> format_sql("SELECT a,b FROM t WHERE x>1")
        'SELECT\\n    a,\\n    b\\nFROM\\n    t\\nWHERE\\n    x > 1'

        >>> format_sql("SELECT a FROM t", style=FormatStyle.COMPACT)
        'SELECT a FROM t'
    """
    return SQLFormatter(style, **options).format_sql(sql)


def minify_sql(sql: str) -> str:
    """
    Minifie une requête SQL: une seule ligne, sans commentaires.

    Examples:
        >>> minify_sql("SELECT\\n    a,\\n    b\\nFROM t")
        'SELECT a, b FROM t'
    """
    return SQLFormatter(FormatStyle.COMPACT).format_sql(sql)


def validate_sql(sql: str) -> dict:
    """
    Valide la syntaxe SQL et retourne les informations.

    Args:
        sql: Code SQL à valider

    Returns:
        Dict avec 'valid', 'error', 'formatted', 'info'
    """
    result = analyze(sql)
    if not result.success:
        return {
            'valid': False,
            'error': result.error_message,
            'position': result.position,
            'formatted': None,
            'info': None,
        }

    parsed = SQLParser().parse(sql)
    try:
        formatted = SQLFormatter(FormatStyle.STANDARD).format(parsed).formatted_sql
    except SQLStylerError as e:
        logger.debug("Formatting failed after a successful parse: %s", e)
        formatted = None
    return {
        'valid': True,
        'error': None,
        'position': None,
        'formatted': formatted,
        'info': {
            'statement_type': type(parsed.statement).__name__,
            'tables': parsed.tables_referenced,
            'functions': parsed.functions_used,
            'comments': parsed.comment_count,
        },
    }
