"""
Tokenizer (Analyseur Lexical) pour SQL.

Convertit une chaîne SQL en une séquence de tokens positionnés.
Les commentaires sont conservés comme tokens afin que le parser puisse
les rattacher à l'AST. Les espaces blancs ne sont jamais émis mais servent
au calcul des positions (ligne, colonne), toutes deux à partir de 1.

Politique de colonnes: chaque caractère compte pour une colonne,
tabulation comprise.
"""

import logging
from enum import Enum, auto
from dataclasses import dataclass
from typing import List, Optional, Iterator

from .errors import LexError

logger = logging.getLogger(__name__)


class TokenType(Enum):
    """Types de tokens SQL."""

    # Mots-clés DML
    SELECT = auto()
    INSERT = auto()
    UPDATE = auto()
    DELETE = auto()
    MERGE = auto()

    # Mots-clés DDL
    CREATE = auto()
    ALTER = auto()
    DROP = auto()
    TABLE = auto()
    INDEX = auto()
    TEMPORARY = auto()
    TEMP = auto()
    ADD = auto()
    RENAME = auto()
    TO = auto()
    COLUMN = auto()
    IF = auto()

    # Utilitaires
    EXPLAIN = auto()
    ANALYZE = auto()

    # Clauses DML
    INTO = auto()
    VALUES = auto()
    SET = auto()
    RETURNING = auto()

    # Contraintes
    PRIMARY = auto()
    KEY = auto()
    FOREIGN = auto()
    REFERENCES = auto()
    UNIQUE = auto()
    CHECK = auto()
    CONSTRAINT = auto()
    DEFAULT = auto()
    CASCADE = auto()
    RESTRICT = auto()

    # Clauses communes
    FROM = auto()
    WHERE = auto()
    AND = auto()
    OR = auto()
    NOT = auto()
    IN = auto()
    BETWEEN = auto()
    LIKE = auto()
    ILIKE = auto()
    IS = auto()
    NULL = auto()
    TRUE = auto()
    FALSE = auto()
    AS = auto()
    ON = auto()
    USING = auto()
    CAST = auto()

    # Jointures
    JOIN = auto()
    INNER = auto()
    LEFT = auto()
    RIGHT = auto()
    FULL = auto()
    OUTER = auto()
    CROSS = auto()
    NATURAL = auto()
    LATERAL = auto()

    # Agrégation et tri
    GROUP = auto()
    BY = auto()
    HAVING = auto()
    ORDER = auto()
    ASC = auto()
    DESC = auto()
    NULLS = auto()
    FIRST = auto()
    LAST = auto()
    GROUPING = auto()
    SETS = auto()
    CUBE = auto()
    ROLLUP = auto()

    # Pagination
    LIMIT = auto()
    OFFSET = auto()
    FETCH = auto()
    NEXT = auto()
    ROW = auto()
    ROWS = auto()
    ONLY = auto()
    FOR = auto()

    # Modificateurs
    DISTINCT = auto()
    ALL = auto()
    EXISTS = auto()
    ANY = auto()
    SOME = auto()

    # Opérations ensemblistes
    UNION = auto()
    INTERSECT = auto()
    EXCEPT = auto()

    # CASE
    CASE = auto()
    WHEN = auto()
    THEN = auto()
    ELSE = auto()
    END = auto()

    # CTE
    WITH = auto()
    RECURSIVE = auto()

    # Fenêtrage
    OVER = auto()
    PARTITION = auto()
    WINDOW = auto()
    RANGE = auto()
    GROUPS = auto()
    PRECEDING = auto()
    FOLLOWING = auto()
    UNBOUNDED = auto()
    CURRENT = auto()
    FILTER = auto()

    # Types et littéraux typés
    ARRAY = auto()
    INTERVAL = auto()
    DATE = auto()
    TIME = auto()
    TIMESTAMP = auto()

    # Littéraux
    INTEGER = auto()
    FLOAT = auto()
    STRING = auto()
    IDENTIFIER = auto()
    QUOTED_IDENTIFIER = auto()
    PARAMETER = auto()        # :name, $1, ?, @name

    # Opérateurs
    EQUALS = auto()           # =
    NOT_EQUALS = auto()       # <> ou !=
    LESS_THAN = auto()        # <
    GREATER_THAN = auto()     # >
    LESS_EQUAL = auto()       # <=
    GREATER_EQUAL = auto()    # >=
    PLUS = auto()             # +
    MINUS = auto()            # -
    STAR = auto()             # * (multiplication ou sélection)
    DIVIDE = auto()           # /
    MODULO = auto()           # %
    CONCAT = auto()           # ||
    DOUBLE_COLON = auto()     # ::

    # Ponctuation
    COMMA = auto()            # ,
    DOT = auto()              # .
    SEMICOLON = auto()        # ;
    LPAREN = auto()           # (
    RPAREN = auto()           # )
    LBRACKET = auto()         # [
    RBRACKET = auto()         # ]

    # Spéciaux
    COMMENT = auto()
    EOF = auto()


class LexemeKind(Enum):
    """Catégorie grossière d'un token."""
    KEYWORD = "keyword"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    LITERAL = "literal"
    PUNCTUATION = "punctuation"
    COMMENT = "comment"


OPERATOR_TYPES = frozenset({
    TokenType.EQUALS, TokenType.NOT_EQUALS, TokenType.LESS_THAN,
    TokenType.GREATER_THAN, TokenType.LESS_EQUAL, TokenType.GREATER_EQUAL,
    TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.DIVIDE,
    TokenType.MODULO, TokenType.CONCAT, TokenType.DOUBLE_COLON,
})

LITERAL_TYPES = frozenset({
    TokenType.INTEGER, TokenType.FLOAT, TokenType.STRING, TokenType.PARAMETER,
})

# Mots non réservés suivis d'un nom, avec le mot-clé qui les précède
STATEMENT_WORDS = {
    'verbose': TokenType.ANALYZE,
    'concurrently': TokenType.INDEX,
}

PUNCTUATION_TYPES = frozenset({
    TokenType.COMMA, TokenType.DOT, TokenType.SEMICOLON, TokenType.LPAREN,
    TokenType.RPAREN, TokenType.LBRACKET, TokenType.RBRACKET, TokenType.EOF,
})


@dataclass(frozen=True)
class Token:
    """Représente un token SQL (lexème) et son étendue dans le source."""
    type: TokenType
    value: str
    line: int
    column: int
    position: int  # Position absolue dans le texte
    end_line: int = 0
    end_column: int = 0  # Exclusive

    @property
    def kind(self) -> LexemeKind:
        if self.type == TokenType.COMMENT:
            return LexemeKind.COMMENT
        if self.type in (TokenType.IDENTIFIER, TokenType.QUOTED_IDENTIFIER):
            return LexemeKind.IDENTIFIER
        if self.type in LITERAL_TYPES:
            return LexemeKind.LITERAL
        if self.type in OPERATOR_TYPES:
            return LexemeKind.OPERATOR
        if self.type in PUNCTUATION_TYPES:
            return LexemeKind.PUNCTUATION
        return LexemeKind.KEYWORD

    @property
    def start(self):
        return (self.line, self.column)

    @property
    def end(self):
        return (self.end_line, self.end_column)

    def contains(self, line: int, column: int) -> bool:
        """Vrai si la position (ligne, colonne) tombe dans ce token."""
        return self.start <= (line, column) < self.end

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, line={self.line}, col={self.column})"


class SQLTokenizer:
    """Analyseur lexical pour SQL."""

    # Mots-clés SQL (insensible à la casse)
    KEYWORDS = {
        # DML
        'select': TokenType.SELECT,
        'insert': TokenType.INSERT,
        'update': TokenType.UPDATE,
        'delete': TokenType.DELETE,
        'merge': TokenType.MERGE,
        # DDL
        'create': TokenType.CREATE,
        'alter': TokenType.ALTER,
        'drop': TokenType.DROP,
        'table': TokenType.TABLE,
        'index': TokenType.INDEX,
        'temporary': TokenType.TEMPORARY,
        'temp': TokenType.TEMP,
        'add': TokenType.ADD,
        'rename': TokenType.RENAME,
        'to': TokenType.TO,
        'column': TokenType.COLUMN,
        'if': TokenType.IF,
        'explain': TokenType.EXPLAIN,
        'analyze': TokenType.ANALYZE,
        'analyse': TokenType.ANALYZE,
        # DML clauses
        'into': TokenType.INTO,
        'values': TokenType.VALUES,
        'set': TokenType.SET,
        'returning': TokenType.RETURNING,
        # Constraints
        'primary': TokenType.PRIMARY,
        'key': TokenType.KEY,
        'foreign': TokenType.FOREIGN,
        'references': TokenType.REFERENCES,
        'unique': TokenType.UNIQUE,
        'check': TokenType.CHECK,
        'constraint': TokenType.CONSTRAINT,
        'default': TokenType.DEFAULT,
        'cascade': TokenType.CASCADE,
        'restrict': TokenType.RESTRICT,
        # Clauses communes
        'from': TokenType.FROM,
        'where': TokenType.WHERE,
        'and': TokenType.AND,
        'or': TokenType.OR,
        'not': TokenType.NOT,
        'in': TokenType.IN,
        'between': TokenType.BETWEEN,
        'like': TokenType.LIKE,
        'ilike': TokenType.ILIKE,
        'is': TokenType.IS,
        'null': TokenType.NULL,
        'true': TokenType.TRUE,
        'false': TokenType.FALSE,
        'as': TokenType.AS,
        'on': TokenType.ON,
        'using': TokenType.USING,
        'cast': TokenType.CAST,
        'join': TokenType.JOIN,
        'inner': TokenType.INNER,
        'left': TokenType.LEFT,
        'right': TokenType.RIGHT,
        'full': TokenType.FULL,
        'outer': TokenType.OUTER,
        'cross': TokenType.CROSS,
        'natural': TokenType.NATURAL,
        'lateral': TokenType.LATERAL,
        'group': TokenType.GROUP,
        'by': TokenType.BY,
        'having': TokenType.HAVING,
        'order': TokenType.ORDER,
        'asc': TokenType.ASC,
        'desc': TokenType.DESC,
        'nulls': TokenType.NULLS,
        'first': TokenType.FIRST,
        'last': TokenType.LAST,
        'grouping': TokenType.GROUPING,
        'sets': TokenType.SETS,
        'cube': TokenType.CUBE,
        'rollup': TokenType.ROLLUP,
        'limit': TokenType.LIMIT,
        'offset': TokenType.OFFSET,
        'fetch': TokenType.FETCH,
        'next': TokenType.NEXT,
        'row': TokenType.ROW,
        'rows': TokenType.ROWS,
        'only': TokenType.ONLY,
        'for': TokenType.FOR,
        'distinct': TokenType.DISTINCT,
        'all': TokenType.ALL,
        'exists': TokenType.EXISTS,
        'any': TokenType.ANY,
        'some': TokenType.SOME,
        'union': TokenType.UNION,
        'intersect': TokenType.INTERSECT,
        'except': TokenType.EXCEPT,
        'case': TokenType.CASE,
        'when': TokenType.WHEN,
        'then': TokenType.THEN,
        'else': TokenType.ELSE,
        'end': TokenType.END,
        'with': TokenType.WITH,
        'recursive': TokenType.RECURSIVE,
        'over': TokenType.OVER,
        'partition': TokenType.PARTITION,
        'window': TokenType.WINDOW,
        'range': TokenType.RANGE,
        'groups': TokenType.GROUPS,
        'preceding': TokenType.PRECEDING,
        'following': TokenType.FOLLOWING,
        'unbounded': TokenType.UNBOUNDED,
        'current': TokenType.CURRENT,
        'filter': TokenType.FILTER,
        'array': TokenType.ARRAY,
        'interval': TokenType.INTERVAL,
        'date': TokenType.DATE,
        'time': TokenType.TIME,
        'timestamp': TokenType.TIMESTAMP,
    }

    # Mots-clés utilisables comme identifiants (noms de colonnes, alias...)
    NON_RESERVED = frozenset({
        TokenType.TEMPORARY, TokenType.TEMP, TokenType.ADD, TokenType.RENAME,
        TokenType.INDEX, TokenType.IF, TokenType.EXPLAIN, TokenType.ANALYZE, TokenType.MERGE,
        TokenType.KEY, TokenType.CASCADE, TokenType.RESTRICT,
        TokenType.NULLS, TokenType.FIRST, TokenType.LAST, TokenType.SETS,
        TokenType.CUBE, TokenType.ROLLUP, TokenType.NEXT, TokenType.ROW,
        TokenType.ROWS, TokenType.RANGE, TokenType.GROUPS, TokenType.PRECEDING,
        TokenType.FOLLOWING, TokenType.UNBOUNDED, TokenType.CURRENT,
        TokenType.FILTER, TokenType.DATE, TokenType.TIME, TokenType.TIMESTAMP,
        TokenType.INTERVAL, TokenType.PARTITION, TokenType.OVER,
        TokenType.RECURSIVE, TokenType.GROUPING,
    })

    def __init__(self, sql: str, include_comments: bool = True):
        """
        Initialise le tokenizer.

        Args:
            sql: Le code SQL à tokenizer
            include_comments: Inclure les tokens de commentaires
        """
        self.sql = sql
        self.include_comments = include_comments
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []

    def _current_char(self) -> Optional[str]:
        """Retourne le caractère courant ou None si fin de chaîne."""
        if self.pos >= len(self.sql):
            return None
        return self.sql[self.pos]

    def _peek(self, offset: int = 1) -> Optional[str]:
        """Regarde le caractère à offset positions devant."""
        pos = self.pos + offset
        if pos >= len(self.sql):
            return None
        return self.sql[pos]

    def _advance(self, count: int = 1) -> str:
        """Avance de count caractères et retourne les caractères consommés."""
        result = self.sql[self.pos:self.pos + count]
        for char in result:
            self.pos += 1
            # \r\n compte pour un seul saut de ligne
            if char == '\n' or (char == '\r' and self._current_char() != '\n'):
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        return result

    def _make_token(self, token_type: TokenType, value: str,
                    start_line: int, start_col: int, start_pos: int) -> Token:
        """Crée un token se terminant à la position courante."""
        return Token(token_type, value, start_line, start_col, start_pos,
                     self.line, self.column)

    def _skip_whitespace(self):
        """Consomme les espaces blancs."""
        while self._current_char() is not None and self._current_char().isspace():
            self._advance()

    def _read_single_line_comment(self) -> Token:
        """Lit un commentaire sur une seule ligne (-- ...)."""
        start_line, start_col, start_pos = self.line, self.column, self.pos
        value = self._advance(2)  # Consomme --

        while self._current_char() is not None and self._current_char() not in '\r\n':
            value += self._advance()

        return self._make_token(TokenType.COMMENT, value, start_line, start_col, start_pos)

    def _read_multi_line_comment(self) -> Token:
        """Lit un commentaire multi-ligne (/* ... */), sans imbrication."""
        start_line, start_col, start_pos = self.line, self.column, self.pos
        value = self._advance(2)  # Consomme /*

        while self._current_char() is not None:
            if self._current_char() == '*' and self._peek() == '/':
                value += self._advance(2)
                return self._make_token(TokenType.COMMENT, value, start_line, start_col, start_pos)
            value += self._advance()

        raise LexError("Unterminated block comment", start_line, start_col)

    def _read_string(self, backslash_escapes: bool = False) -> Token:
        """Lit une chaîne de caractères entre apostrophes ('' échappe ')."""
        start_line, start_col, start_pos = self.line, self.column, self.pos
        value = ""
        if self._current_char() in ('e', 'E'):
            value += self._advance()
        value += self._advance()  # Consomme le premier guillemet

        while self._current_char() is not None:
            char = self._current_char()

            if backslash_escapes and char == '\\' and self._peek() is not None:
                value += self._advance(2)
                continue

            # Échappement par doublement du guillemet
            if char == "'":
                value += self._advance()
                if self._current_char() == "'":
                    value += self._advance()
                else:
                    return self._make_token(TokenType.STRING, value, start_line, start_col, start_pos)
            else:
                value += self._advance()

        raise LexError("Unterminated string literal", start_line, start_col)

    def _read_quoted_identifier(self, closing: str) -> Token:
        """Lit un identifiant entre guillemets doubles, backticks ou crochets."""
        start_line, start_col, start_pos = self.line, self.column, self.pos
        value = self._advance()  # Consomme le délimiteur ouvrant

        while self._current_char() is not None:
            char = self._current_char()
            value += self._advance()
            if char == closing:
                # Délimiteur doublé = délimiteur littéral
                if self._current_char() == closing:
                    value += self._advance()
                    continue
                return self._make_token(TokenType.QUOTED_IDENTIFIER, value,
                                        start_line, start_col, start_pos)

        raise LexError("Unterminated quoted identifier", start_line, start_col)

    def _read_number(self) -> Token:
        """Lit un nombre (entier, décimal ou notation scientifique)."""
        start_line, start_col, start_pos = self.line, self.column, self.pos
        value = ""
        is_float = False

        # Partie entière
        while self._current_char() is not None and self._current_char().isdigit():
            value += self._advance()

        # Partie décimale
        if self._current_char() == '.' and (self._peek() or '').isdigit():
            is_float = True
            value += self._advance()  # Consomme le point
            while self._current_char() is not None and self._current_char().isdigit():
                value += self._advance()
        elif self._current_char() == '.' and value and not (self._peek() or '').isalpha():
            # 1. est un décimal valide
            is_float = True
            value += self._advance()

        # Notation scientifique
        if self._current_char() is not None and self._current_char() in 'eE':
            next_char = self._peek() or ''
            after = self._peek(2) or ''
            if next_char.isdigit() or (next_char in ('+', '-') and after.isdigit()):
                is_float = True
                value += self._advance()  # Consomme 'e'
                if self._current_char() in '+-':
                    value += self._advance()
                while self._current_char() is not None and self._current_char().isdigit():
                    value += self._advance()

        token_type = TokenType.FLOAT if is_float else TokenType.INTEGER
        return self._make_token(token_type, value, start_line, start_col, start_pos)

    @staticmethod
    def _is_word_char(char: Optional[str]) -> bool:
        return char is not None and (char.isalnum() or char in '_$')

    def _read_identifier_or_keyword(self) -> Token:
        """Lit un identifiant ou un mot-clé."""
        start_line, start_col, start_pos = self.line, self.column, self.pos
        value = ""

        while self._is_word_char(self._current_char()):
            value += self._advance()

        # Vérifie si c'est un mot-clé
        token_type = self.KEYWORDS.get(value.lower(), TokenType.IDENTIFIER)
        return self._make_token(token_type, value, start_line, start_col, start_pos)

    def _read_parameter(self) -> Token:
        """Lit un paramètre de requête (:name, $1, @name ou ?)."""
        start_line, start_col, start_pos = self.line, self.column, self.pos
        value = self._advance()
        if value != '?':
            while self._is_word_char(self._current_char()):
                value += self._advance()
        return self._make_token(TokenType.PARAMETER, value, start_line, start_col, start_pos)

    def _read_operator_or_punctuation(self) -> Token:
        """Lit un opérateur ou un signe de ponctuation."""
        start_line, start_col, start_pos = self.line, self.column, self.pos
        char = self._current_char()
        next_char = self._peek()

        # Opérateurs à deux caractères
        two_char = char + (next_char or '')
        two_char_operators = {
            '<>': TokenType.NOT_EQUALS,
            '!=': TokenType.NOT_EQUALS,
            '<=': TokenType.LESS_EQUAL,
            '>=': TokenType.GREATER_EQUAL,
            '||': TokenType.CONCAT,
            '::': TokenType.DOUBLE_COLON,
        }
        if two_char in two_char_operators:
            self._advance(2)
            return self._make_token(two_char_operators[two_char], two_char,
                                    start_line, start_col, start_pos)

        # Opérateurs et ponctuation à un caractère
        operators = {
            '=': TokenType.EQUALS,
            '<': TokenType.LESS_THAN,
            '>': TokenType.GREATER_THAN,
            '+': TokenType.PLUS,
            '-': TokenType.MINUS,
            '*': TokenType.STAR,
            '/': TokenType.DIVIDE,
            '%': TokenType.MODULO,
            ',': TokenType.COMMA,
            '.': TokenType.DOT,
            ';': TokenType.SEMICOLON,
            '(': TokenType.LPAREN,
            ')': TokenType.RPAREN,
            '[': TokenType.LBRACKET,
            ']': TokenType.RBRACKET,
        }
        if char not in operators:
            raise LexError(f"Unexpected character {char!r}", start_line, start_col)

        self._advance()
        return self._make_token(operators[char], char, start_line, start_col, start_pos)

    def _last_significant(self, count: int = 1) -> Optional[Token]:
        """Le count-ième token non commentaire en partant de la fin."""
        for token in reversed(self.tokens):
            if token.type != TokenType.COMMENT:
                count -= 1
                if count == 0:
                    return token
        return None

    def _after_statement_word(self) -> bool:
        """Vrai après ANALYZE VERBOSE ou INDEX CONCURRENTLY, où '[' ouvre un nom."""
        last_token = self._last_significant()
        before = self._last_significant(2)
        if last_token is None or before is None or last_token.type != TokenType.IDENTIFIER:
            return False
        return STATEMENT_WORDS.get(last_token.value.lower()) == before.type

    def tokenize(self) -> List[Token]:
        """
        Tokenize la chaîne SQL complète.

        Returns:
            Liste de tokens terminée par un token EOF

        Raises:
            LexError: chaîne, commentaire ou identifiant non terminé
        """
        self.tokens = []
        self.pos = 0
        self.line = 1
        self.column = 1

        while self.pos < len(self.sql):
            char = self._current_char()
            next_char = self._peek()

            # Espaces blancs
            if char.isspace():
                self._skip_whitespace()
                continue

            # Commentaires
            if char == '-' and next_char == '-':
                token = self._read_single_line_comment()
                if self.include_comments:
                    self.tokens.append(token)
                continue

            if char == '/' and next_char == '*':
                token = self._read_multi_line_comment()
                if self.include_comments:
                    self.tokens.append(token)
                continue

            # Chaînes de caractères
            if char == "'":
                self.tokens.append(self._read_string())
                continue

            if char in ('e', 'E') and next_char == "'":
                self.tokens.append(self._read_string(backslash_escapes=True))
                continue

            # Identifiants entre guillemets
            if char == '"':
                self.tokens.append(self._read_quoted_identifier('"'))
                continue

            if char == '`':
                self.tokens.append(self._read_quoted_identifier('`'))
                continue

            # Crochet: subscript (arr[1], ARRAY[...]) ou identifiant T-SQL ([Column Name])
            if char == '[':
                last_token = self._last_significant()
                if self._after_statement_word():
                    self.tokens.append(self._read_quoted_identifier(']'))
                elif last_token and last_token.type in (
                    TokenType.ARRAY, TokenType.IDENTIFIER, TokenType.QUOTED_IDENTIFIER,
                    TokenType.RBRACKET, TokenType.RPAREN, TokenType.LBRACKET,
                    TokenType.PARAMETER,
                ) or next_char in ('[', ']') or (next_char or '').isdigit():
                    self.tokens.append(self._read_operator_or_punctuation())
                else:
                    self.tokens.append(self._read_quoted_identifier(']'))
                continue

            # Nombres
            if char.isdigit():
                self.tokens.append(self._read_number())
                continue

            if char == '.' and (next_char or '').isdigit():
                last_token = self._last_significant()
                if not last_token or last_token.type not in (
                    TokenType.IDENTIFIER, TokenType.QUOTED_IDENTIFIER, TokenType.RPAREN
                ):
                    self.tokens.append(self._read_number())
                    continue

            # Paramètres
            if char == '?':
                self.tokens.append(self._read_parameter())
                continue

            if char == ':' and next_char != ':' and ((next_char or '').isalnum() or next_char == '_'):
                self.tokens.append(self._read_parameter())
                continue

            if char == '$' and (next_char or '').isdigit():
                self.tokens.append(self._read_parameter())
                continue

            if char == '@' and ((next_char or '').isalpha() or next_char == '_'):
                self.tokens.append(self._read_parameter())
                continue

            # Identifiants ou mots-clés
            if char.isalpha() or char == '_':
                self.tokens.append(self._read_identifier_or_keyword())
                continue

            # Opérateurs et ponctuation
            self.tokens.append(self._read_operator_or_punctuation())

        # Token de fin
        self.tokens.append(Token(TokenType.EOF, '', self.line, self.column, self.pos,
                                 self.line, self.column))
        logger.debug("Tokenized %d characters into %d tokens", len(self.sql), len(self.tokens))

        return self.tokens

    def __iter__(self) -> Iterator[Token]:
        """Permet d'itérer sur les tokens."""
        if not self.tokens:
            self.tokenize()
        return iter(self.tokens)


def tokenize(sql: str, include_comments: bool = True) -> List[Token]:
    """
    Fonction utilitaire pour tokenizer du SQL.

    Args:
        sql: Le code SQL à tokenizer
        include_comments: Inclure les tokens de commentaires

    Returns:
        Liste de tokens
    """
    tokenizer = SQLTokenizer(sql, include_comments)
    return tokenizer.tokenize()
