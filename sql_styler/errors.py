"""
Hiérarchie des erreurs du moteur de parsing et de formatage.

Toutes les erreurs visibles par l'utilisateur mentionnent la position
exacte (ligne, colonne) dans le texte source.
"""

from typing import Optional


class SQLStylerError(Exception):
    """Erreur de base de sql_styler."""
    pass


class LexError(SQLStylerError):
    """Erreur lexicale (chaîne, commentaire ou identifiant non terminé)."""

    def __init__(self, message: str, line: int, column: int):
        self.line = line
        self.column = column
        self.reason = message
        super().__init__(f"{message} at line {line}, column {column}")


class ParseError(SQLStylerError):
    """Erreur de parsing SQL: token inattendu ou fin de texte prématurée."""

    def __init__(self, message: str, token=None,
                 expected: Optional[str] = None, found: Optional[str] = None):
        self.token = token
        self.reason = message
        self.expected = expected
        self.found = found
        if found is None and token is not None:
            found = token.value if token.value else 'end of input'
            self.found = found
        self.line = token.line if token is not None else None
        self.column = token.column if token is not None else None
        if token is not None:
            super().__init__(f"{message} at line {token.line}, column {token.column}")
        else:
            super().__init__(message)

    @property
    def position(self):
        """Position (ligne, colonne) de l'erreur."""
        return (self.line, self.column)


class ConfigurationError(SQLStylerError, ValueError):
    """Option de style inconnue ou valeur invalide."""
    pass


class FormatError(SQLStylerError):
    """Nœud que le formateur ne sait pas imprimer. Toujours un défaut interne."""
    pass
