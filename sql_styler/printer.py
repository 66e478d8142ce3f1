"""
Imprimeur SQL.

Parcourt l'arbre de PrintToken produit par le générateur et pilote un
LinePrinter: indentation des clauses, sauts de ligne avant les
jointures et les branches CASE, placement des virgules et des AND/OR,
rendu compact de certaines constructions et mise en forme des
commentaires.
"""

import logging
from typing import List, Optional

from .line_printer import LinePrinter
from .print_tokens import ContainerType, PrintToken, PrintTokenType, NEWLINE_BEFORE_CONTAINERS
from .style import StyleConfiguration

logger = logging.getLogger(__name__)

# Conteneurs dont le contenu est indenté d'un niveau
INDENT_CONTAINERS = frozenset({
    ContainerType.SELECT_CLAUSE,
    ContainerType.FROM_CLAUSE,
    ContainerType.WHERE_CLAUSE,
    ContainerType.GROUP_BY_CLAUSE,
    ContainerType.HAVING_CLAUSE,
    ContainerType.WINDOW_CLAUSE,
    ContainerType.ORDER_BY_CLAUSE,
    ContainerType.LIMIT_CLAUSE,
    ContainerType.OFFSET_CLAUSE,
    ContainerType.RETURNING_CLAUSE,
    ContainerType.WITH_CLAUSE,
    ContainerType.VALUES,
    ContainerType.SIMPLE_SELECT_QUERY,
    ContainerType.INLINE_QUERY,
    ContainerType.CTE_QUERY,
    ContainerType.SET_OPERATOR,
    ContainerType.INSERT_CLAUSE,
    ContainerType.UPDATE_CLAUSE,
    ContainerType.SET_CLAUSE,
    ContainerType.DELETE_CLAUSE,
    ContainerType.USING_CLAUSE,
    ContainerType.MERGE_INTO_CLAUSE,
    ContainerType.MERGE_ON_CLAUSE,
    ContainerType.MERGE_WHEN_CLAUSE,
    ContainerType.SWITCH_CASE_ARGUMENT,
    ContainerType.CREATE_TABLE_DEFINITION,
    ContainerType.ALTER_TABLE_STATEMENT,
    ContainerType.INDEX_COLUMN_LIST,
})

_LOGICAL_OPERATORS = ('and', 'or')


def escape_comment(text: str) -> str:
    """Neutralise les délimiteurs de bloc contenus dans un commentaire."""
    return text.replace('*/', '* /').replace('/*', '/ *')


class SqlPrinter:
    """
    Imprime un arbre de PrintToken selon une StyleConfiguration.

    Usage:
        printer = SqlPrinter(style)
        sql = printer.print(token)
    """

    def __init__(self, style: Optional[StyleConfiguration] = None):
        self.style = style or StyleConfiguration()
        self._printer: Optional[LinePrinter] = None
        self._pending_break: Optional[int] = None
        self._case_depth = 0

    @property
    def oneline(self) -> bool:
        return self.style.is_oneline

    def print(self, token: PrintToken, level: int = 0) -> str:
        """
        Imprime un arbre de jetons.

        Args:
            token: Jeton racine
            level: Niveau d'indentation de départ

        Returns:
            Texte SQL, sans espace final
        """
        self._printer = LinePrinter(self.style.indent_char or ' ', self.style.indent_size,
                                    self.style.newline, self.style.comma_break)
        self._printer.current_line.level = level
        self._pending_break = None
        self._case_depth = 0
        self._append(token, level, ContainerType.NONE)
        return self._printer.print()

    def _newline(self, level: int):
        self._pending_break = None
        self._printer.append_newline(level)

    def _keyword(self, text: str) -> str:
        if self.style.keyword_case == 'upper':
            return text.upper()
        return text.lower()

    # ============== Parcours ==============

    def _append(self, token: PrintToken, level: int, parent: ContainerType):
        if token.is_empty():
            return
        if self._pending_break is not None:
            # Un commentaire '--' vient d'être imprimé: la suite va à la ligne
            self._newline(self._pending_break)
            if token.type == PrintTokenType.COMMENT_NEWLINE:
                return

        container_type = token.container_type
        if container_type == ContainerType.COMMENT_BLOCK:
            self._append_comment_block(token, level)
            return
        if not self.oneline and self._is_compact(token):
            self._append_compact(token, level)
            return
        if not self.oneline and container_type in NEWLINE_BEFORE_CONTAINERS:
            self._newline(level)

        self._append_text(token, level, parent)
        for child in token.keyword_tokens:
            self._append(child, level, container_type)

        if container_type == ContainerType.PAREN_EXPRESSION and self._indents_nested(token):
            self._append_nested_parentheses(token, level)
            return

        inner_level = level
        increased = False
        if (not self.oneline and container_type in INDENT_CONTAINERS
                and not self._printer.is_current_line_empty()):
            inner_level = level + 1
            increased = True
            self._newline(inner_level)

        saved_case_depth = self._case_depth
        if container_type in (ContainerType.SIMPLE_SELECT_QUERY, ContainerType.INLINE_QUERY):
            self._case_depth = 0
        elif container_type == ContainerType.CASE_EXPRESSION:
            self._case_depth += 1

        for child in token.inner_tokens:
            self._append(child, inner_level, container_type)

        self._case_depth = saved_case_depth
        if increased:
            self._newline(level)

    def _append_text(self, token: PrintToken, level: int, parent: ContainerType):
        """Imprime le texte propre d'un jeton (avant ses enfants)."""
        token_type = token.type
        if token_type in (PrintTokenType.COMMA, PrintTokenType.ARGUMENT_SPLITTER):
            self._append_comma(token, level, parent)
        elif token_type == PrintTokenType.SPACE:
            self._printer.append_text(' ')
        elif token_type == PrintTokenType.COMMENT_NEWLINE:
            if self.oneline:
                self._printer.append_text(' ')
            else:
                self._newline(level)
        elif token_type == PrintTokenType.KEYWORD:
            if token.text:
                self._printer.append_text(self._keyword(token.text))
        elif token_type == PrintTokenType.OPERATOR and token.text in _LOGICAL_OPERATORS:
            self._append_logical_operator(token.text, level)
        elif token.text:
            self._printer.append_text(token.text)

    def _append_comma(self, token: PrintToken, level: int, parent: ContainerType):
        if token.type == PrintTokenType.ARGUMENT_SPLITTER or self.oneline:
            self._printer.append_text(',')
            return
        if parent == ContainerType.WITH_CLAUSE:
            style = self.style.effective_cte_comma_break
        elif parent == ContainerType.VALUES:
            style = self.style.effective_values_comma_break
        else:
            style = self.style.comma_break

        if style == 'before':
            self._newline(level)
            self._printer.append_text(',', style)
        elif style == 'after':
            self._newline(level)
            self._printer.append_text(',', style)
            self._newline(level)
        else:
            self._printer.append_text(',', style)

    def _append_logical_operator(self, text: str, level: int):
        style = self.style.and_break if text == 'and' else self.style.or_break
        text = self._keyword(text)
        if self.oneline or self._case_depth > 0 or style == 'none':
            self._printer.append_text(text)
        elif style == 'before':
            self._newline(level)
            self._printer.append_text(text)
        else:
            self._printer.append_text(text)
            self._newline(level)

    # ============== Rendu compact ==============

    def _is_compact(self, token: PrintToken) -> bool:
        """Vrai si le conteneur doit être imprimé sur une seule ligne."""
        container_type = token.container_type
        style = self.style
        if container_type == ContainerType.PAREN_EXPRESSION:
            return style.parentheses_one_line and not self._indents_nested(token)
        if container_type == ContainerType.WITH_CLAUSE:
            return style.with_clause_style == 'full-oneline'
        if container_type == ContainerType.COMMON_TABLE:
            return style.with_clause_style == 'cte-oneline'
        return (container_type == ContainerType.WINDOW_SPEC
                or (container_type == ContainerType.BETWEEN_EXPRESSION and style.between_one_line)
                or (container_type == ContainerType.VALUES and style.values_one_line)
                or (container_type == ContainerType.JOIN_ON_CLAUSE and style.join_one_line)
                or (container_type == ContainerType.CASE_EXPRESSION and style.case_one_line)
                or (container_type == ContainerType.INLINE_QUERY and style.subquery_one_line))

    def _append_compact(self, token: PrintToken, level: int):
        text = SqlPrinter(self.style.oneline()).print(token)
        self._printer.append_text(text)
        if token.container_type == ContainerType.WITH_CLAUSE:
            self._newline(level)

    # ============== Parenthèses imbriquées ==============

    def _indents_nested(self, token: PrintToken) -> bool:
        return (self.style.indent_nested_parentheses and not self.oneline
                and token.contains(ContainerType.PAREN_EXPRESSION))

    def _append_nested_parentheses(self, token: PrintToken, level: int):
        """( puis contenu indenté puis ) à la ligne."""
        for child in token.inner_tokens:
            if child.type == PrintTokenType.PARENTHESIS and child.text == '(':
                self._printer.append_text('(')
                self._newline(level + 1)
            elif child.type == PrintTokenType.PARENTHESIS and child.text == ')':
                self._newline(level)
                self._printer.append_text(')')
            else:
                self._append(child, level + 1, ContainerType.PAREN_EXPRESSION)

    # ============== Commentaires ==============

    def _append_comment_block(self, token: PrintToken, level: int):
        lines: List[str] = []
        for comment in token.inner_tokens:
            lines.extend(comment.text.split('\n'))
        if not lines:
            return

        if self.oneline or self.style.comment_style == 'block':
            self._printer.append_text(' '.join(f'/* {escape_comment(line)} */' for line in lines))
            return

        if len(lines) == 1:
            self._printer.append_text(f'-- {lines[0]}')
        else:
            self._printer.append_text('/*')
            for line in lines:
                self._newline(level)
                self._printer.append_text(escape_comment(line))
            self._newline(level)
            self._printer.append_text('*/')
        self._pending_break = level
