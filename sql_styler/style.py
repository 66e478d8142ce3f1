"""
Configuration de style.

Une StyleConfiguration est résolue une seule fois par formateur et ne
change plus ensuite. resolve_style() accepte les clés en snake_case ou
en camelCase ainsi que les alias logiques ('lf', 'space', 'quote'...).

Usage:
    from sql_styler.style import resolve_style, FormatStyle

    style = resolve_style({'keywordCase': 'upper', 'indentSize': 2, 'newline': 'lf'})
    style = resolve_style(style=FormatStyle.EXPANDED, comma_break='before')
"""

import logging
import re
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class FormatStyle(Enum):
    """Styles de formatage prédéfinis."""
    STANDARD = "standard"      # Une clause par ligne, virgules en fin de ligne
    COMPACT = "compact"        # Une seule ligne
    EXPANDED = "expanded"      # AND/OR sur leur propre ligne
    ALIGNED = "aligned"        # Virgules en début de ligne


class CommentExportMode(Enum):
    """Commentaires émis par le formateur."""
    FULL = "full"
    NONE = "none"
    HEADER_ONLY = "header-only"
    TOP_HEADER_ONLY = "top-header-only"


NEWLINES = {'lf': '\n', 'crlf': '\r\n', 'cr': '\r'}
INDENT_CHARS = {'space': ' ', 'tab': '\t'}
BREAK_STYLES = ('none', 'before', 'after')
KEYWORD_CASES = ('upper', 'lower', 'preserve')
COMMENT_STYLES = ('block', 'smart')
WITH_CLAUSE_STYLES = ('standard', 'full-oneline', 'cte-oneline')
PARAMETER_STYLES = ('named', 'indexed', 'anonymous')

IDENTIFIER_ESCAPES = {
    'quote': ('"', '"'),
    'backtick': ('`', '`'),
    'bracket': ('[', ']'),
    'none': None,
}

# Réglages par dialecte: échappement et style des paramètres
PRESETS: Dict[str, Dict[str, Any]] = {
    'postgres': {'identifier_escape': 'quote', 'parameter_symbol': '$', 'parameter_style': 'indexed'},
    'postgres_named': {'identifier_escape': 'quote', 'parameter_symbol': ':', 'parameter_style': 'named'},
    'mysql': {'identifier_escape': 'backtick', 'parameter_symbol': '?', 'parameter_style': 'anonymous'},
    'mariadb': {'identifier_escape': 'backtick', 'parameter_symbol': '?', 'parameter_style': 'anonymous'},
    'sqlserver': {'identifier_escape': 'bracket', 'parameter_symbol': '@', 'parameter_style': 'named'},
    'sqlite': {'identifier_escape': 'quote', 'parameter_symbol': ':', 'parameter_style': 'named'},
    'oracle': {'identifier_escape': 'quote', 'parameter_symbol': ':', 'parameter_style': 'named'},
    'bigquery': {'identifier_escape': 'backtick', 'parameter_symbol': '@', 'parameter_style': 'named'},
    'duckdb': {'identifier_escape': 'quote', 'parameter_symbol': '?', 'parameter_style': 'anonymous'},
    'snowflake': {'identifier_escape': 'quote', 'parameter_symbol': '?', 'parameter_style': 'anonymous'},
    'redshift': {'identifier_escape': 'quote', 'parameter_symbol': '$', 'parameter_style': 'indexed'},
}

STYLE_PRESETS: Dict[FormatStyle, Dict[str, Any]] = {
    FormatStyle.STANDARD: {
        'indent_char': 'space', 'indent_size': 4, 'newline': 'lf',
        'keyword_case': 'upper', 'comma_break': 'after',
    },
    FormatStyle.COMPACT: {
        'keyword_case': 'upper',
    },
    FormatStyle.EXPANDED: {
        'indent_char': 'space', 'indent_size': 4, 'newline': 'lf',
        'keyword_case': 'upper', 'comma_break': 'after',
        'and_break': 'before', 'or_break': 'before',
    },
    FormatStyle.ALIGNED: {
        'indent_char': 'space', 'indent_size': 4, 'newline': 'lf',
        'keyword_case': 'upper', 'comma_break': 'before', 'and_break': 'before',
    },
}


@dataclass(frozen=True)
class StyleConfiguration:
    """
    Options de style résolues.

    Les valeurs par défaut produisent une sortie sur une seule ligne,
    sans commentaires ni échappement des identifiants.
    """
    indent_char: str = ''
    indent_size: int = 0
    newline: str = ' '
    keyword_case: str = 'preserve'
    comma_break: str = 'none'
    cte_comma_break: Optional[str] = None
    values_comma_break: Optional[str] = None
    and_break: str = 'none'
    or_break: str = 'none'
    identifier_escape: Optional[Tuple[str, str]] = None
    export_comment: CommentExportMode = CommentExportMode.NONE
    comment_style: str = 'block'
    with_clause_style: str = 'standard'
    parentheses_one_line: bool = False
    between_one_line: bool = False
    values_one_line: bool = False
    join_one_line: bool = False
    case_one_line: bool = False
    subquery_one_line: bool = False
    indent_nested_parentheses: bool = False
    parameter_symbol: Union[str, Tuple[str, str]] = ':'
    parameter_style: str = 'named'

    @property
    def effective_cte_comma_break(self) -> str:
        return self.cte_comma_break or self.comma_break

    @property
    def effective_values_comma_break(self) -> str:
        return self.values_comma_break or self.comma_break

    @property
    def is_oneline(self) -> bool:
        return self.newline == ' '

    @property
    def parameter_affixes(self) -> Tuple[str, str]:
        if isinstance(self.parameter_symbol, str):
            return self.parameter_symbol, ''
        return tuple(self.parameter_symbol)

    def oneline(self) -> "StyleConfiguration":
        """Variante sur une ligne, utilisée pour les constructions compactes."""
        return replace(self, newline=' ', indent_char='', indent_size=0,
                       comma_break='none', cte_comma_break=None, values_comma_break=None,
                       and_break='none', or_break='none', with_clause_style='standard')


_FIELD_NAMES = {f.name for f in fields(StyleConfiguration)}
_CAMEL = re.compile(r'(?<!^)(?=[A-Z])')


def _snake_case(key: str) -> str:
    return _CAMEL.sub('_', key).lower().replace('-', '_')


def _choice(key: str, value: Any, allowed) -> str:
    if value not in allowed:
        raise ConfigurationError(f"Invalid value {value!r} for option '{key}' (expected one of {', '.join(allowed)})")
    return value


def _resolve_value(key: str, value: Any) -> Any:
    """Convertit une valeur brute (alias logique) en valeur résolue."""
    if key == 'indent_char':
        if value in INDENT_CHARS:
            return INDENT_CHARS[value]
        if not isinstance(value, str):
            raise ConfigurationError(f"Invalid value {value!r} for option 'indent_char'")
        return value
    if key == 'indent_size':
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigurationError(f"Invalid value {value!r} for option 'indent_size'")
        return value
    if key == 'newline':
        if value in NEWLINES:
            return NEWLINES[value]
        if value not in ('\n', '\r\n', '\r', ' '):
            raise ConfigurationError(f"Invalid value {value!r} for option 'newline'")
        return value
    if key == 'keyword_case':
        if value == 'none':
            return 'preserve'
        return _choice(key, value, KEYWORD_CASES)
    if key in ('comma_break', 'and_break', 'or_break'):
        return _choice(key, value, BREAK_STYLES)
    if key in ('cte_comma_break', 'values_comma_break'):
        return None if value is None else _choice(key, value, BREAK_STYLES)
    if key == 'identifier_escape':
        return _resolve_identifier_escape(value)
    if key == 'export_comment':
        return _resolve_export_comment(value)
    if key == 'comment_style':
        return _choice(key, value, COMMENT_STYLES)
    if key == 'with_clause_style':
        return _choice(key, value, WITH_CLAUSE_STYLES)
    if key == 'parameter_style':
        return _choice(key, value, PARAMETER_STYLES)
    if key == 'parameter_symbol':
        if isinstance(value, str):
            return value
        if isinstance(value, dict) and 'start' in value:
            return value['start'], value.get('end', '')
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return tuple(value)
        raise ConfigurationError(f"Invalid value {value!r} for option 'parameter_symbol'")
    if isinstance(value, bool):
        return value
    raise ConfigurationError(f"Invalid value {value!r} for option '{key}' (expected a boolean)")


def _resolve_identifier_escape(value: Any) -> Optional[Tuple[str, str]]:
    if value is None:
        return None
    if isinstance(value, str):
        if value not in IDENTIFIER_ESCAPES:
            raise ConfigurationError(
                f"Unknown identifier escape {value!r} (expected one of {', '.join(IDENTIFIER_ESCAPES)})")
        return IDENTIFIER_ESCAPES[value]
    if isinstance(value, dict) and 'start' in value and 'end' in value:
        pair = (value['start'], value['end'])
    elif isinstance(value, (tuple, list)) and len(value) == 2:
        pair = tuple(value)
    else:
        raise ConfigurationError(f"Invalid identifier escape {value!r}")
    if not all(isinstance(part, str) and part for part in pair):
        raise ConfigurationError(f"Invalid identifier escape {value!r}")
    return pair


def _resolve_export_comment(value: Any) -> CommentExportMode:
    if isinstance(value, CommentExportMode):
        return value
    if value is True:
        return CommentExportMode.FULL
    if value is False or value is None:
        return CommentExportMode.NONE
    try:
        return CommentExportMode(value)
    except ValueError:
        raise ConfigurationError(
            f"Unknown comment export mode {value!r} "
            f"(expected one of {', '.join(m.value for m in CommentExportMode)})") from None


def resolve_style(options: Optional[Dict[str, Any]] = None,
                  style: Optional[FormatStyle] = None,
                  base: Optional[StyleConfiguration] = None,
                  **overrides) -> StyleConfiguration:
    """
    Construit une StyleConfiguration à partir d'options brutes.

    Args:
        options: Dictionnaire d'options (snake_case ou camelCase)
        style: Style prédéfini appliqué avant les options
        base: Configuration de départ, complétée par les options
        **overrides: Options supplémentaires, prioritaires

    Returns:
        StyleConfiguration figée

    Raises:
        ConfigurationError: clé inconnue ou valeur invalide
    """
    raw: Dict[str, Any] = {}
    merged = dict(options or {})
    merged.update(overrides)

    if style is not None:
        if isinstance(style, str):
            try:
                style = FormatStyle(style)
            except ValueError:
                raise ConfigurationError(f"Unknown format style {style!r}") from None
        raw.update(STYLE_PRESETS[style])

    preset_name = merged.pop('preset', None)
    if preset_name is not None:
        if preset_name not in PRESETS:
            raise ConfigurationError(f"Unknown preset {preset_name!r} (expected one of {', '.join(PRESETS)})")
        raw.update(PRESETS[preset_name])

    for key, value in merged.items():
        name = _snake_case(key)
        if name not in _FIELD_NAMES:
            raise ConfigurationError(f"Unknown style option {key!r}")
        raw[name] = value

    resolved = {name: _resolve_value(name, value) for name, value in raw.items()}
    config = replace(base, **resolved) if base is not None else StyleConfiguration(**resolved)
    logger.debug("Resolved style: %s", config)
    return config
