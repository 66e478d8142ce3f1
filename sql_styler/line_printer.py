"""
Assembleur de lignes.

Accumule des fragments de texte et des sauts de ligne à un niveau
d'indentation donné. Le placement des virgules est résolu à l'appel
de print(): une ligne qui commence par une virgule enregistrée en
style 'after' ou 'none' est ramenée à la fin de la ligne précédente,
sauf si celle-ci se termine par un commentaire '--'.
"""

import re
from typing import List, Optional

COMMA_BREAK_STYLES = ('none', 'before', 'after')

_SKIPPED_SECTIONS = re.compile(
    r"'(?:[^']|'')*'"
    r'|"(?:[^"]|"")*"'
    r'|`(?:[^`]|``)*`'
    r'|\[(?:[^\]]|\]\])*\]'
    r'|/\*.*?\*/',
    re.DOTALL,
)


class PrintLine:
    """Une ligne en construction: niveau d'indentation et texte."""

    def __init__(self, level: int, text: str = '', comma_break: Optional[str] = None):
        self.level = level
        self.text = text
        self.comma_break = comma_break

    def is_empty(self) -> bool:
        return self.text.strip() == ''

    def __repr__(self):
        return f"PrintLine({self.level}, {self.text!r})"


def has_line_comment(text: str) -> bool:
    """Vrai si la ligne contient '--' hors chaînes, identifiants quotés et blocs /* */."""
    return '--' in _SKIPPED_SECTIONS.sub('', text)


class LinePrinter:
    """
    Tampon de lignes avec résolution différée des virgules.

    Args:
        indent_char: Caractère d'indentation (' ' ou '\\t')
        indent_size: Répétitions de indent_char par niveau
        newline: Séparateur de lignes (' ' pour une sortie sur une ligne)
        comma_break: Style de virgule par défaut
    """

    def __init__(self, indent_char: str = ' ', indent_size: int = 0,
                 newline: str = '\n', comma_break: str = 'none'):
        self.indent_char = indent_char
        self.indent_size = indent_size
        self.newline = newline
        self.comma_break = comma_break
        self.lines: List[PrintLine] = [PrintLine(0)]

    @property
    def current_line(self) -> PrintLine:
        return self.lines[-1]

    @property
    def current_level(self) -> int:
        return self.lines[-1].level

    def is_current_line_empty(self) -> bool:
        return self.lines[-1].is_empty()

    def append_newline(self, level: int):
        """Termine la ligne courante et en ouvre une au niveau donné."""
        current = self.lines[-1]
        if current.is_empty():
            # Ligne vide: on se contente de changer son niveau
            current.level = level
            current.text = ''
            return
        current.text = current.text.rstrip()
        self.lines.append(PrintLine(level))

    def append_text(self, text: str, comma_break: Optional[str] = None):
        """
        Ajoute un fragment à la ligne courante.

        Un espace en début de ligne ou après un espace est ignoré.
        Une virgule en début de ligne retient son style pour print().
        """
        current = self.lines[-1]
        if text == ' ' and (current.text == '' or current.text.endswith(' ')):
            return
        if text == ',' and current.is_empty():
            current.comma_break = comma_break or self.comma_break
            current.text = ''
        current.text += text

    def _indent(self, level: int) -> str:
        return self.indent_char * (self.indent_size * level)

    def print(self) -> str:
        """Résout les virgules et assemble le texte final."""
        merged: List[PrintLine] = []
        for line in self.lines:
            text = line.text.rstrip()
            if not text:
                continue
            if (line.comma_break in ('after', 'none') and merged
                    and not has_line_comment(merged[-1].text)):
                merged[-1].text = merged[-1].text.rstrip() + text
                continue
            merged.append(PrintLine(line.level, text))
        return self.newline.join(self._indent(line.level) + line.text for line in merged)
