"""
Tests de la résolution des options de style.
"""

import pytest

from sql_styler.errors import ConfigurationError
from sql_styler.style import (
    CommentExportMode, FormatStyle, StyleConfiguration, resolve_style,
)


# ============================================================
# SECTION 1: VALEURS PAR DÉFAUT ET PRÉRÉGLAGES
# ============================================================

class TestDefaults:
    """Configuration par défaut: une ligne, sans commentaires."""

    def test_defaults(self):
        style = StyleConfiguration()
        assert style.is_oneline
        assert style.keyword_case == 'preserve'
        assert style.export_comment == CommentExportMode.NONE
        assert style.identifier_escape is None

    def test_effective_breaks_fall_back(self):
        style = resolve_style({'comma_break': 'before'})
        assert style.effective_cte_comma_break == 'before'
        assert style.effective_values_comma_break == 'before'
        style = resolve_style({'comma_break': 'before', 'cte_comma_break': 'after'})
        assert style.effective_cte_comma_break == 'after'

    def test_oneline_variant(self):
        style = resolve_style(style=FormatStyle.EXPANDED).oneline()
        assert style.is_oneline
        assert style.and_break == 'none'
        assert style.keyword_case == 'upper'

    def test_parameter_affixes(self):
        assert StyleConfiguration().parameter_affixes == (':', '')
        style = resolve_style({'parameter_symbol': {'start': '{', 'end': '}'}})
        assert style.parameter_affixes == ('{', '}')


class TestPresets:
    """Styles prédéfinis et préréglages de dialecte."""

    def test_standard(self):
        style = resolve_style(style=FormatStyle.STANDARD)
        assert style.newline == '\n'
        assert style.indent_char == ' '
        assert style.indent_size == 4
        assert style.keyword_case == 'upper'

    def test_style_by_name(self):
        assert resolve_style(style='compact').is_oneline

    def test_dialect_preset(self):
        style = resolve_style({'preset': 'postgres'})
        assert style.identifier_escape == ('"', '"')
        assert style.parameter_style == 'indexed'
        assert style.parameter_symbol == '$'

    def test_explicit_option_wins_over_preset(self):
        style = resolve_style({'preset': 'mysql', 'identifier_escape': 'quote'})
        assert style.identifier_escape == ('"', '"')

    def test_base_configuration(self):
        base = resolve_style(style='standard')
        style = resolve_style({'keyword_case': 'lower'}, base=base)
        assert style.keyword_case == 'lower'
        assert style.indent_size == 4


# ============================================================
# SECTION 2: CONVERSIONS
# ============================================================

class TestConversions:
    """Alias logiques et noms camelCase."""

    def test_camel_case_keys(self):
        style = resolve_style({'keywordCase': 'upper', 'indentSize': 2})
        assert style.keyword_case == 'upper'
        assert style.indent_size == 2

    def test_overrides(self):
        style = resolve_style({'keyword_case': 'upper'}, keyword_case='lower')
        assert style.keyword_case == 'lower'

    def test_aliases(self):
        style = resolve_style({'newline': 'crlf', 'indent_char': 'tab', 'keyword_case': 'none'})
        assert style.newline == '\r\n'
        assert style.indent_char == '\t'
        assert style.keyword_case == 'preserve'

    def test_identifier_escapes(self):
        assert resolve_style({'identifier_escape': 'backtick'}).identifier_escape == ('`', '`')
        assert resolve_style({'identifier_escape': 'bracket'}).identifier_escape == ('[', ']')
        assert resolve_style({'identifier_escape': 'none'}).identifier_escape is None
        assert resolve_style({'identifier_escape': ('<', '>')}).identifier_escape == ('<', '>')

    def test_export_comment_values(self):
        assert resolve_style({'export_comment': True}).export_comment == CommentExportMode.FULL
        assert resolve_style({'export_comment': False}).export_comment == CommentExportMode.NONE
        assert resolve_style({'export_comment': 'header-only'}).export_comment == CommentExportMode.HEADER_ONLY

    def test_configuration_is_frozen(self):
        style = StyleConfiguration()
        with pytest.raises(Exception):
            style.indent_size = 8


# ============================================================
# SECTION 3: ERREURS
# ============================================================

class TestConfigurationErrors:
    """Options inconnues ou invalides."""

    @pytest.mark.parametrize("options", [
        {'unknown_option': 1},
        {'keyword_case': 'title'},
        {'comma_break': 'sometimes'},
        {'identifier_escape': 'curly'},
        {'identifier_escape': ('', '"')},
        {'indent_size': -1},
        {'indent_size': True},
        {'newline': 'windows'},
        {'export_comment': 'everything'},
        {'comment_style': 'fancy'},
        {'with_clause_style': 'compact'},
        {'parameter_style': 'positional'},
        {'parameter_symbol': 3},
        {'preset': 'oracle9'},
        {'case_one_line': 'yes'},
    ])
    def test_invalid(self, options):
        with pytest.raises(ConfigurationError):
            resolve_style(options)

    def test_unknown_style(self):
        with pytest.raises(ConfigurationError):
            resolve_style(style='fancy')

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            resolve_style({'keyword_case': 'title'})
