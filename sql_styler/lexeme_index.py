"""
Index des lexèmes par position.

Construit une seule fois par parsing, il permet de retrouver à partir
d'une position (ligne, colonne) le token qui la contient, son rôle
syntaxique et son identité logique. Les outils de renommage s'en servent
pour relier la définition d'une CTE à toutes ses références.
"""

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .tokenizer import LexemeKind, Token, TokenType


class LexemeRole(Enum):
    """Rôle syntaxique d'un lexème dans la requête."""
    KEYWORD = "keyword"
    CTE = "cte"
    TABLE = "table"
    COLUMN = "column"
    ALIAS = "alias"
    FUNCTION = "function"
    NAMESPACE = "namespace"
    TYPE = "type"
    PARAMETER = "parameter"
    LITERAL = "literal"
    OPERATOR = "operator"
    PUNCTUATION = "punctuation"
    COMMENT = "comment"
    IDENTIFIER = "identifier"


_DEFAULT_ROLES = {
    LexemeKind.KEYWORD: LexemeRole.KEYWORD,
    LexemeKind.IDENTIFIER: LexemeRole.IDENTIFIER,
    LexemeKind.OPERATOR: LexemeRole.OPERATOR,
    LexemeKind.LITERAL: LexemeRole.LITERAL,
    LexemeKind.PUNCTUATION: LexemeRole.PUNCTUATION,
    LexemeKind.COMMENT: LexemeRole.COMMENT,
}


@dataclass(frozen=True)
class LexemeInfo:
    """Résultat d'une recherche par position."""
    token: Token
    role: LexemeRole
    identity: Optional[Tuple[str, str]] = None


def normalize_name(token: Token) -> str:
    """Nom logique d'un identifiant: sans délimiteurs, minuscule si non quoté."""
    value = token.value
    if token.type == TokenType.QUOTED_IDENTIFIER:
        closing = ']' if value[0] == '[' else value[0]
        return value[1:-1].replace(closing * 2, closing)
    return value.lower()


class LexemeIndex:
    """Recherche dichotomique des lexèmes triés par (ligne, colonne)."""

    def __init__(self, tokens: List[Token],
                 roles: Optional[Dict[int, LexemeRole]] = None,
                 identities: Optional[Dict[int, Tuple[str, str]]] = None):
        roles = roles or {}
        identities = identities or {}
        entries = []
        for token in tokens:
            if token.type == TokenType.EOF:
                continue
            role = roles.get(token.position)
            if role is None:
                role = _DEFAULT_ROLES[token.kind]
            entries.append(LexemeInfo(token, role, identities.get(token.position)))
        entries.sort(key=lambda info: info.token.start)
        self._entries = entries
        self._starts = [info.token.start for info in entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def lookup(self, line: int, column: int) -> Optional[LexemeInfo]:
        """
        Retourne le lexème contenant la position (ligne, colonne).

        Args:
            line: Ligne (à partir de 1)
            column: Colonne (à partir de 1)

        Returns:
            LexemeInfo ou None si la position tombe sur un espace
        """
        index = bisect_right(self._starts, (line, column)) - 1
        if index < 0:
            return None
        info = self._entries[index]
        if info.token.contains(line, column):
            return info
        return None

    def find_identity(self, identity: Tuple[str, str]) -> List[LexemeInfo]:
        """Toutes les occurrences d'une même identité logique."""
        return [info for info in self._entries if info.identity == identity]
