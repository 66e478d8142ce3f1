"""
Jetons d'impression.

Le générateur traduit l'AST en un arbre de PrintToken; l'imprimeur
(printer.SqlPrinter) parcourt cet arbre et pilote le LinePrinter.
Un conteneur porte un ContainerType qui décide de la mise en page:
indentation, passage à la ligne, rendu sur une seule ligne.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

from .ast_nodes import CommentAnchor


class PrintTokenType(Enum):
    """Nature d'un jeton d'impression."""
    CONTAINER = auto()
    KEYWORD = auto()
    VALUE = auto()
    COMMA = auto()
    ARGUMENT_SPLITTER = auto()
    PARENTHESIS = auto()
    OPERATOR = auto()
    COMMENT = auto()
    PARAMETER = auto()
    DOT = auto()
    TYPE = auto()
    SPACE = auto()
    COMMENT_NEWLINE = auto()


class ContainerType(Enum):
    """Type de conteneur, utilisé par l'imprimeur pour la mise en page."""
    NONE = auto()
    COMMENT_BLOCK = auto()

    # Requêtes
    SIMPLE_SELECT_QUERY = auto()
    BINARY_SELECT_QUERY = auto()
    SET_OPERATOR = auto()
    PARENTHESIZED_QUERY = auto()
    VALUES_QUERY = auto()
    VALUES = auto()
    INLINE_QUERY = auto()
    CTE_QUERY = auto()

    # Clauses
    WITH_CLAUSE = auto()
    COMMON_TABLE = auto()
    SELECT_CLAUSE = auto()
    SELECT_ITEM = auto()
    FROM_CLAUSE = auto()
    SOURCE_EXPRESSION = auto()
    JOIN_CLAUSE = auto()
    JOIN_ON_CLAUSE = auto()
    WHERE_CLAUSE = auto()
    GROUP_BY_CLAUSE = auto()
    HAVING_CLAUSE = auto()
    WINDOW_CLAUSE = auto()
    ORDER_BY_CLAUSE = auto()
    LIMIT_CLAUSE = auto()
    OFFSET_CLAUSE = auto()
    FETCH_CLAUSE = auto()
    FOR_CLAUSE = auto()
    RETURNING_CLAUSE = auto()

    # DML
    INSERT_CLAUSE = auto()
    UPDATE_CLAUSE = auto()
    SET_CLAUSE = auto()
    DELETE_CLAUSE = auto()
    USING_CLAUSE = auto()
    INSERT_QUERY = auto()
    UPDATE_QUERY = auto()
    DELETE_QUERY = auto()
    MERGE_QUERY = auto()
    MERGE_INTO_CLAUSE = auto()
    MERGE_ON_CLAUSE = auto()
    MERGE_WHEN_CLAUSE = auto()

    # Expressions
    EXPRESSION = auto()
    PAREN_EXPRESSION = auto()
    BETWEEN_EXPRESSION = auto()
    CASE_EXPRESSION = auto()
    SWITCH_CASE_ARGUMENT = auto()
    CASE_BRANCH = auto()
    CASE_ELSE = auto()
    FUNCTION_CALL = auto()
    WINDOW_SPEC = auto()

    # DDL
    CREATE_TABLE_QUERY = auto()
    CREATE_TABLE_DEFINITION = auto()
    ALTER_TABLE_STATEMENT = auto()
    DROP_STATEMENT = auto()
    CREATE_INDEX_STATEMENT = auto()
    INDEX_COLUMN_LIST = auto()
    EXPLAIN_STATEMENT = auto()
    ANALYZE_STATEMENT = auto()


@dataclass
class PrintToken:
    """
    Nœud de l'arbre d'impression.

    Attributes:
        type: Nature du jeton
        text: Texte émis avant les enfants (mot-clé d'une clause par exemple)
        container_type: Mise en page des enfants
        inner_tokens: Enfants, imprimés dans l'ordre
        keyword_tokens: Jetons imprimés après `text`, avant l'indentation
        anchor: Ancrage d'origine pour un COMMENT_BLOCK
    """
    type: PrintTokenType
    text: str = ''
    container_type: ContainerType = ContainerType.NONE
    inner_tokens: List["PrintToken"] = field(default_factory=list)
    keyword_tokens: List["PrintToken"] = field(default_factory=list)
    anchor: Optional[CommentAnchor] = None

    def is_empty(self) -> bool:
        return not self.text and not self.inner_tokens and self.type != PrintTokenType.COMMENT_NEWLINE

    def contains(self, container_type: ContainerType) -> bool:
        """Vrai si un descendant est un conteneur du type donné."""
        stack = list(self.inner_tokens)
        while stack:
            token = stack.pop()
            if token.container_type == container_type:
                return True
            stack.extend(token.inner_tokens)
        return False

    def __repr__(self):
        if self.inner_tokens:
            return f"PrintToken({self.container_type.name}, {self.text!r}, {len(self.inner_tokens)} children)"
        return f"PrintToken({self.type.name}, {self.text!r})"


def keyword(text: str) -> PrintToken:
    return PrintToken(PrintTokenType.KEYWORD, text)


def value(text: str) -> PrintToken:
    return PrintToken(PrintTokenType.VALUE, text)


def operator(text: str) -> PrintToken:
    return PrintToken(PrintTokenType.OPERATOR, text)


def space() -> PrintToken:
    return PrintToken(PrintTokenType.SPACE, ' ')


def comma() -> PrintToken:
    return PrintToken(PrintTokenType.COMMA, ',')


def argument_comma() -> PrintToken:
    return PrintToken(PrintTokenType.ARGUMENT_SPLITTER, ',')


def paren(text: str) -> PrintToken:
    return PrintToken(PrintTokenType.PARENTHESIS, text)


def dot() -> PrintToken:
    return PrintToken(PrintTokenType.DOT, '.')


def container(container_type: ContainerType, tokens: List[PrintToken], text: str = '',
              token_type: PrintTokenType = PrintTokenType.CONTAINER) -> PrintToken:
    """Construit un conteneur; `text` est imprimé avant les enfants."""
    return PrintToken(token_type, text, container_type, list(tokens))


# Conteneurs précédés d'un saut de ligne en sortie multi-lignes
NEWLINE_BEFORE_CONTAINERS = frozenset({
    ContainerType.JOIN_CLAUSE,
    ContainerType.CASE_BRANCH,
    ContainerType.CASE_ELSE,
})
