"""
Parser SQL - Analyseur syntaxique.

Convertit une séquence de tokens en un AST (Abstract Syntax Tree).
Les expressions sont analysées par précédence (precedence climbing),
les instructions par descente récursive clause par clause.

Les commentaires sont rattachés pendant le parsing:

- un commentaire situé sur la même ligne qu'un élément qui vient de se
  terminer (identifiant, littéral, parenthèse fermante...) est *trailing*
  sur cet élément;
- sinon il est *leading* sur le token suivant;
- un commentaire précédant le premier mot-clé d'une instruction, ou le nom
  d'une CTE, est un commentaire *header*.

Chaque commentaire est attribué à exactement un nœud.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from .ast_nodes import (
    ASTNode, CommentAnchor, PositionedComment, ParseResult,
    Expression, Identifier, QualifiedName, ColumnReference, Literal, TypedLiteral,
    ParameterExpression, BinaryExpression, LogicalExpression, UnaryExpression,
    BetweenExpression, InExpression, ExistsExpression, CaseBranch, CaseExpression,
    FunctionCall, WindowFrameBound, WindowFrame, WindowSpec, WindowFunctionCall,
    CastExpression, ParenExpression, SubqueryExpression, TupleExpression,
    ArrayExpression, ArraySubscript, IntervalExpression,
    SelectItem, SelectClause, TableSource, SubquerySource, FunctionSource,
    SourceExpression, JoinClause, FromClause, WhereClause, GroupingSetsExpression,
    GroupByClause, HavingClause, OrderByItem, OrderByClause, WindowDefinition,
    WindowClause, LimitClause, OffsetClause, FetchClause, ForClause,
    CommonTable, WithClause, SimpleSelectQuery, BinarySelectQuery,
    ParenthesizedQuery, ValuesQuery, ReturningClause, SetClauseItem, SetClause,
    InsertQuery, UpdateQuery, DeleteQuery, MergeUpdateAction, MergeDeleteAction,
    MergeInsertAction, MergeDoNothingAction, MergeWhenClause, MergeQuery, ReferenceDefinition,
    ColumnConstraintDefinition, TableColumnDefinition, TableConstraintDefinition,
    CreateTableQuery, AlterTableAction, AlterTableStatement, DropStatement,
    CreateIndexStatement, ExplainOption, ExplainStatement, AnalyzeStatement,
)
from .errors import LexError, ParseError, SQLStylerError
from .lexeme_index import LexemeIndex, LexemeRole, normalize_name
from .tokenizer import LexemeKind, SQLTokenizer, Token, TokenType

logger = logging.getLogger(__name__)

MAX_NESTING_DEPTH = 100
# Opérateurs infixes enchaînés au même niveau (a + b + c ...)
MAX_CHAIN_LENGTH = 200

# Précédences, de la plus lâche à la plus forte
PREC_OR = 1
PREC_AND = 2
PREC_NOT = 3
PREC_COMPARISON = 4
PREC_CONCAT = 5
PREC_ADDITIVE = 6
PREC_MULTIPLICATIVE = 7
PREC_UNARY = 8

COMPARISON_OPERATORS = {
    TokenType.EQUALS: '=',
    TokenType.NOT_EQUALS: None,  # conserve '<>' ou '!='
    TokenType.LESS_THAN: '<',
    TokenType.GREATER_THAN: '>',
    TokenType.LESS_EQUAL: '<=',
    TokenType.GREATER_EQUAL: '>=',
}

ARITHMETIC_PRECEDENCE = {
    TokenType.CONCAT: PREC_CONCAT,
    TokenType.PLUS: PREC_ADDITIVE,
    TokenType.MINUS: PREC_ADDITIVE,
    TokenType.STAR: PREC_MULTIPLICATIVE,
    TokenType.DIVIDE: PREC_MULTIPLICATIVE,
    TokenType.MODULO: PREC_MULTIPLICATIVE,
}

# Tokens qui terminent un élément: un commentaire sur la même ligne s'y rattache
ELEMENT_END_TYPES = frozenset({
    TokenType.IDENTIFIER, TokenType.QUOTED_IDENTIFIER, TokenType.INTEGER,
    TokenType.FLOAT, TokenType.STRING, TokenType.PARAMETER, TokenType.RPAREN,
    TokenType.RBRACKET, TokenType.STAR, TokenType.NULL, TokenType.TRUE,
    TokenType.FALSE, TokenType.END, TokenType.ASC, TokenType.DESC,
    TokenType.FIRST, TokenType.LAST, TokenType.ROW, TokenType.ROWS,
    TokenType.ONLY, TokenType.KEY, TokenType.CASCADE, TokenType.RESTRICT,
    TokenType.PRECEDING, TokenType.FOLLOWING, TokenType.DATE, TokenType.TIME,
    TokenType.TIMESTAMP,
})

JOIN_START_TYPES = (
    TokenType.JOIN, TokenType.INNER, TokenType.LEFT, TokenType.RIGHT,
    TokenType.FULL, TokenType.CROSS, TokenType.NATURAL,
)

SET_OPERATION_TYPES = (TokenType.UNION, TokenType.INTERSECT, TokenType.EXCEPT)

NILADIC_FUNCTIONS = {
    'current_date', 'current_time', 'current_timestamp', 'localtime',
    'localtimestamp', 'current_user', 'session_user', 'current_schema',
    'current_catalog',
}

INTERVAL_UNITS = {
    'year', 'years', 'month', 'months', 'week', 'weeks', 'day', 'days',
    'hour', 'hours', 'minute', 'minutes', 'second', 'seconds',
}

REFERENTIAL_ACTIONS = ('cascade', 'restrict', 'set null', 'set default', 'no action')


@dataclass
class AnalyzeResult:
    """Résultat non levant de analyze()."""
    success: bool
    query: Optional[ASTNode] = None
    error: Optional[SQLStylerError] = None

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error else None

    @property
    def position(self):
        if self.error is None:
            return None
        return (getattr(self.error, 'line', None), getattr(self.error, 'column', None))


class SQLParser:
    """Parser SQL qui construit un AST à partir de tokens."""

    def __init__(self):
        self.tokens: List[Token] = []
        self.raw_tokens: List[Token] = []
        self.pos: int = 0
        self._reset()

    def _reset(self):
        """Réinitialise l'état du parser."""
        self.pos = 0
        self._depth = 0
        self._leading: Dict[int, List[PositionedComment]] = {}
        self._trailing: Dict[int, List[PositionedComment]] = {}
        self._pending: List[PositionedComment] = []
        self._roles: Dict[int, LexemeRole] = {}
        self._identities: Dict[int, tuple] = {}
        self._cte_scopes: List[Set[str]] = []
        self.tables_referenced: List[str] = []
        self.functions_used: List[str] = []

    # ============== Navigation ==============

    def _current(self) -> Token:
        """Retourne le token courant."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 1) -> Token:
        """Regarde le token à offset positions devant."""
        pos = self.pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[pos]

    def _advance(self) -> Token:
        """Avance au prochain token et retourne le précédent."""
        token = self._current()
        self._pending.extend(self._leading.pop(self.pos, []))
        self._pending.extend(self._trailing.pop(self.pos, []))
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return token

    def _match(self, *token_types: TokenType) -> bool:
        """Vérifie si le token courant est d'un des types spécifiés."""
        return self._current().type in token_types

    def _check(self, token_type: TokenType) -> bool:
        """Vérifie si le token courant est du type spécifié."""
        return self._current().type == token_type

    def _check_word(self, word: str, offset: int = 0) -> bool:
        """Vérifie un mot non réservé (identifiant non quoté)."""
        token = self._peek(offset) if offset else self._current()
        return token.type == TokenType.IDENTIFIER and token.value.lower() == word

    def _error(self, message: str, expected: Optional[str] = None) -> ParseError:
        return ParseError(message, self._current(), expected=expected)

    def _expect(self, token_type: TokenType, message: str = None) -> Token:
        """Attend un token d'un type spécifique, lève une erreur sinon."""
        if not self._check(token_type):
            expected = token_type.name
            msg = message or f"Expected {expected}, found {self._describe(self._current())}"
            raise ParseError(msg, self._current(), expected=expected)
        return self._advance()

    def _expect_word(self, word: str) -> Token:
        if not self._check_word(word):
            raise ParseError(f"Expected {word.upper()}, found {self._describe(self._current())}",
                             self._current(), expected=word.upper())
        self._set_role(self._current(), LexemeRole.KEYWORD)
        return self._advance()

    def _consume_if(self, token_type: TokenType) -> bool:
        """Consomme le token si c'est du type spécifié."""
        if self._check(token_type):
            self._advance()
            return True
        return False

    @staticmethod
    def _describe(token: Token) -> str:
        if token.type == TokenType.EOF:
            return "end of input"
        return repr(token.value)

    @staticmethod
    def _is_identifier_token(token: Token) -> bool:
        return (token.type in (TokenType.IDENTIFIER, TokenType.QUOTED_IDENTIFIER)
                or token.type in SQLTokenizer.NON_RESERVED)

    @staticmethod
    def _is_word_token(token: Token) -> bool:
        return token.kind in (LexemeKind.IDENTIFIER, LexemeKind.KEYWORD) and token.type != TokenType.EOF

    @contextmanager
    def _nested(self):
        """Garde de profondeur: lève ParseError au-delà de MAX_NESTING_DEPTH."""
        self._depth += 1
        try:
            if self._depth > MAX_NESTING_DEPTH:
                raise ParseError("Maximum nesting depth exceeded", self._current(),
                                 expected=f"at most {MAX_NESTING_DEPTH} nested levels")
            yield
        finally:
            self._depth -= 1

    # ============== Commentaires ==============

    def _attach_comments(self, raw_tokens: List[Token]) -> List[Token]:
        """
        Répartit les commentaires en leading/trailing sur les tokens significatifs.

        Returns:
            La liste des tokens sans les commentaires
        """
        significant: List[Token] = []
        run: List[PositionedComment] = []
        for token in raw_tokens:
            if token.type != TokenType.COMMENT:
                if run:
                    self._leading[len(significant)] = run
                    run = []
                significant.append(token)
                continue
            previous = significant[-1] if significant else None
            if (not run and previous is not None
                    and previous.type in ELEMENT_END_TYPES
                    and previous.end_line == token.line):
                comment = PositionedComment(token.value, CommentAnchor.TRAILING, token.line, token.column)
                self._trailing.setdefault(len(significant) - 1, []).append(comment)
            else:
                run.append(PositionedComment(token.value, CommentAnchor.LEADING, token.line, token.column))

        # Commentaires en fin de texte: trailing sur le dernier token
        eof_index = len(significant) - 1
        tail = self._leading.pop(eof_index, [])
        if tail and eof_index > 0:
            for comment in tail:
                comment.anchor = CommentAnchor.TRAILING
            self._trailing.setdefault(eof_index - 1, []).extend(tail)
        elif tail:
            self._leading[eof_index] = tail
        return significant

    def _take_leading(self, anchor: CommentAnchor = CommentAnchor.LEADING) -> List[PositionedComment]:
        """Retire les commentaires leading du token courant."""
        comments = self._leading.pop(self.pos, [])
        for comment in comments:
            comment.anchor = anchor
        return comments

    def _collect(self) -> List[PositionedComment]:
        """Récupère les commentaires des tokens consommés depuis le dernier rattachement."""
        comments, self._pending = self._pending, []
        return comments

    def _finish(self, node, leading: Optional[List[PositionedComment]] = None):
        """Rattache au nœud ses commentaires et ceux encore en attente."""
        comments = list(leading or []) + self._collect()
        if comments:
            node.positioned_comments = comments + node.positioned_comments
        return node

    # ============== Rôles des lexèmes ==============

    def _set_role(self, token: Token, role: LexemeRole, identity: Optional[tuple] = None):
        self._roles[token.position] = role
        if identity is not None:
            self._identities[token.position] = identity

    def _cte_in_scope(self, name: str) -> bool:
        return any(name in scope for scope in self._cte_scopes)

    # ============== Point d'entrée ==============

    def parse(self, sql: str) -> ParseResult:
        """
        Parse une requête SQL et retourne le résultat.

        Args:
            sql: La requête SQL à parser

        Returns:
            ParseResult contenant l'AST, les tokens et l'index des lexèmes

        Raises:
            LexError, ParseError
        """
        return self._parse_tokens(SQLTokenizer(sql).tokenize())

    def _parse_tokens(self, raw_tokens: List[Token]) -> ParseResult:
        self._reset()
        self.raw_tokens = raw_tokens
        self.tokens = self._attach_comments(self.raw_tokens)

        statement = self._parse_statement()
        self._consume_if(TokenType.SEMICOLON)
        if not self._check(TokenType.EOF):
            raise ParseError(f"Unexpected token {self._describe(self._current())} after end of statement",
                             self._current(), expected="end of input")
        self._finish_trailing(statement)

        logger.debug("Parsed %s (%d tokens)", statement.get_type(), len(self.raw_tokens))
        return ParseResult(
            statement=statement,
            tokens=self.raw_tokens,
            lexeme_index=LexemeIndex(self.raw_tokens, self._roles, self._identities),
            tables_referenced=self.tables_referenced,
            functions_used=self.functions_used,
        )

    def parse_many(self, sql: str) -> List[ParseResult]:
        """
        Parse un script de plusieurs instructions séparées par ';'.

        Les instructions vides (';;') sont ignorées. Leurs commentaires passent
        en tête de l'instruction suivante; ceux qui suivent le dernier ';'
        restent en trailing sur la dernière instruction. Un script sans
        instruction donne une liste vide.

        Raises:
            LexError, ParseError
        """
        results: List[ParseResult] = []
        carry: List[Token] = []
        for segment in _split_statements(SQLTokenizer(sql).tokenize()):
            if all(token.type in (TokenType.COMMENT, TokenType.SEMICOLON, TokenType.EOF)
                   for token in segment):
                carry.extend(token for token in segment if token.type == TokenType.COMMENT)
                continue
            results.append(self._parse_tokens(carry + segment))
            carry = []
        if carry and results:
            results[-1].statement.positioned_comments.extend(
                PositionedComment(token.value, CommentAnchor.TRAILING, token.line, token.column)
                for token in carry
            )
        logger.debug("Parsed script of %d statements", len(results))
        return results

    def _finish_trailing(self, node: ASTNode):
        leftovers = self._collect()
        node.positioned_comments.extend(leftovers)

    def _parse_statement(self) -> ASTNode:
        """Aiguille vers le sous-parser selon le premier mot-clé."""
        header = self._take_leading(CommentAnchor.HEADER)
        token = self._current()
        logger.debug("Statement dispatch on %s", token.type.name)

        if self._match(TokenType.WITH, TokenType.SELECT, TokenType.VALUES, TokenType.LPAREN):
            statement = self._parse_query()
        elif self._check(TokenType.INSERT):
            statement = self._parse_insert()
        elif self._check(TokenType.UPDATE):
            statement = self._parse_update()
        elif self._check(TokenType.DELETE):
            statement = self._parse_delete()
        elif self._check(TokenType.MERGE):
            statement = self._parse_merge()
        elif self._check(TokenType.CREATE):
            statement = self._parse_create()
        elif self._check(TokenType.ALTER):
            statement = self._parse_alter_table()
        elif self._check(TokenType.DROP):
            statement = self._parse_drop()
        elif self._check(TokenType.EXPLAIN):
            statement = self._parse_explain()
        elif self._check(TokenType.ANALYZE):
            statement = self._parse_analyze()
        elif token.type == TokenType.EOF:
            raise ParseError("Empty statement", token, expected="statement")
        else:
            raise ParseError(f"Unsupported statement starting with {self._describe(token)}",
                             token, expected="SELECT, WITH, VALUES, INSERT, UPDATE, DELETE, MERGE, "
                                             "CREATE, ALTER, DROP, EXPLAIN or ANALYZE")

        if header:
            statement.positioned_comments = header + statement.positioned_comments
        return statement

    # ============== Requêtes SELECT ==============

    def _parse_query(self) -> ASTNode:
        """Parse une requête: [WITH ...] opérande {UNION|INTERSECT|EXCEPT opérande}."""
        with self._nested():
            with_clause = None
            if self._check(TokenType.WITH):
                with_clause = self._parse_with_clause()
            try:
                if with_clause is not None and self._check(TokenType.INSERT):
                    return self._parse_insert(with_clause)
                if with_clause is not None and self._check(TokenType.UPDATE):
                    return self._parse_update(with_clause)
                if with_clause is not None and self._check(TokenType.DELETE):
                    return self._parse_delete(with_clause)
                if with_clause is not None and self._check(TokenType.MERGE):
                    return self._parse_merge(with_clause)

                query = self._parse_set_operand()
                while self._match(*SET_OPERATION_TYPES):
                    op_comments = self._take_leading()
                    operator = self._advance().value.lower()
                    if self._match(TokenType.ALL, TokenType.DISTINCT):
                        operator += ' ' + self._advance().value.lower()
                    op_comments += self._collect()
                    right = self._parse_set_operand(with_tail=False)
                    if op_comments:
                        right.positioned_comments = op_comments + right.positioned_comments
                    query = BinarySelectQuery(left=query, operator=operator, right=right)

                if isinstance(query, BinarySelectQuery):
                    self._parse_query_tail(query)

                if with_clause is not None:
                    self._leftmost_query(query).with_clause = with_clause
                return query
            finally:
                if with_clause is not None:
                    self._cte_scopes.pop()

    def _leftmost_query(self, query: ASTNode) -> ASTNode:
        while isinstance(query, (BinarySelectQuery, ParenthesizedQuery)):
            query = query.left if isinstance(query, BinarySelectQuery) else query.query
        return query

    def _parse_query_tail(self, query):
        """ORDER BY / LIMIT / OFFSET / FETCH d'un SELECT ou d'une chaîne ensembliste."""
        if self._check(TokenType.ORDER):
            query.order_by_clause = self._parse_order_by_clause()
        if self._check(TokenType.LIMIT):
            query.limit_clause = self._parse_limit_clause()
        if self._check(TokenType.OFFSET):
            query.offset_clause = self._parse_offset_clause()
            # OFFSET peut précéder LIMIT
            if query.limit_clause is None and self._check(TokenType.LIMIT):
                query.limit_clause = self._parse_limit_clause()
        if self._check(TokenType.FETCH):
            query.fetch_clause = self._parse_fetch_clause()

    def _parse_set_operand(self, with_tail: bool = True) -> ASTNode:
        """
        Parse un opérande d'opération ensembliste.

        Un opérande droit non parenthésé (with_tail=False) s'arrête avant
        ORDER BY / LIMIT / OFFSET / FETCH: ces clauses portent sur la chaîne.
        """
        if self._check(TokenType.SELECT):
            return self._parse_select(with_tail)
        if self._check(TokenType.VALUES):
            return self._parse_values()
        if self._check(TokenType.LPAREN):
            lead = self._take_leading()
            self._advance()
            lead += self._collect()
            query = self._parse_query()
            self._expect(TokenType.RPAREN, "Expected ) after parenthesized query")
            return self._finish(ParenthesizedQuery(query=query), lead)
        raise self._error(f"Expected SELECT, VALUES or (, found {self._describe(self._current())}",
                          expected="SELECT, VALUES or (")

    def _parse_with_clause(self) -> WithClause:
        """Parse WITH [RECURSIVE] cte, cte... et ouvre la portée des CTE."""
        lead = self._take_leading()
        self._expect(TokenType.WITH)
        recursive = self._consume_if(TokenType.RECURSIVE)
        lead += self._collect()

        self._cte_scopes.append(set())
        try:
            tables = [self._parse_common_table()]
            while self._consume_if(TokenType.COMMA):
                tables.append(self._parse_common_table())
        except SQLStylerError:
            self._cte_scopes.pop()
            raise
        return self._finish(WithClause(tables=tables, recursive=recursive), lead)

    def _parse_common_table(self) -> CommonTable:
        """Parse name [(cols)] AS [[NOT] MATERIALIZED] (query)."""
        header = self._collect() + self._take_leading(CommentAnchor.HEADER)
        for comment in header:
            comment.anchor = CommentAnchor.HEADER
        name_token = self._current()
        if not self._is_identifier_token(name_token):
            raise self._error(f"Expected CTE name, found {self._describe(name_token)}", expected="CTE name")
        self._advance()
        name = self._identifier_from(name_token)
        normalized = normalize_name(name_token)
        self._cte_scopes[-1].add(normalized)
        self._set_role(name_token, LexemeRole.CTE, ('cte', normalized))

        columns = None
        if self._check(TokenType.LPAREN):
            columns = self._parse_identifier_list(LexemeRole.COLUMN)

        self._expect(TokenType.AS, "Expected AS in CTE definition")
        materialized = None
        if self._check(TokenType.NOT) and self._check_word('materialized', 1):
            self._advance()
            self._advance()
            materialized = False
        elif self._check_word('materialized'):
            self._advance()
            materialized = True

        self._expect(TokenType.LPAREN, "Expected ( before CTE query")
        trailing = self._collect()
        query = self._parse_query()
        self._expect(TokenType.RPAREN, "Expected ) after CTE query")
        cte = CommonTable(name=name, query=query, columns=columns, materialized=materialized)
        self._finish(cte, header)
        cte.positioned_comments.extend(trailing)
        return cte

    def _parse_select(self, with_tail: bool = True) -> SimpleSelectQuery:
        """Parse une requête SELECT simple et ses clauses."""
        with self._nested():
            lead = self._take_leading()
            self._expect(TokenType.SELECT)
            distinct = False
            distinct_on = None
            if self._consume_if(TokenType.DISTINCT):
                distinct = True
                if self._consume_if(TokenType.ON):
                    self._expect(TokenType.LPAREN)
                    distinct_on = self._parse_expression_list()
                    self._expect(TokenType.RPAREN)
            else:
                self._consume_if(TokenType.ALL)
            lead += self._collect()

            items = [self._parse_select_item()]
            while self._consume_if(TokenType.COMMA):
                items.append(self._parse_select_item())
            select_clause = SelectClause(items=items, distinct=distinct, distinct_on=distinct_on)

            query = SimpleSelectQuery(select_clause=select_clause)
            if self._check(TokenType.FROM):
                query.from_clause = self._parse_from_clause()
            if self._check(TokenType.WHERE):
                query.where_clause = self._parse_where_clause()
            if self._check(TokenType.GROUP):
                query.group_by_clause = self._parse_group_by_clause()
            if self._check(TokenType.HAVING):
                query.having_clause = self._parse_having_clause()
            if self._check(TokenType.WINDOW):
                query.window_clause = self._parse_window_clause()
            if with_tail:
                self._parse_query_tail(query)
                if self._check(TokenType.FOR):
                    query.for_clause = self._parse_for_clause()
            return self._finish(query, lead)

    def _parse_select_item(self) -> SelectItem:
        """Parse un élément de la liste SELECT (ou RETURNING)."""
        lead = self._take_leading()
        expression = self._parse_expression()
        alias = self._parse_alias()
        return self._finish(SelectItem(expression=expression, alias=alias), lead)

    def _parse_alias(self, implicit: bool = True) -> Optional[Identifier]:
        """Parse [AS] alias. Sans AS, seul un identifiant non réservé est accepté."""
        if self._consume_if(TokenType.AS):
            token = self._current()
            if not self._is_identifier_token(token):
                raise self._error(f"Expected alias after AS, found {self._describe(token)}", expected="alias")
        elif implicit and self._match(TokenType.IDENTIFIER, TokenType.QUOTED_IDENTIFIER):
            token = self._current()
        else:
            return None
        self._advance()
        self._set_role(token, LexemeRole.ALIAS, ('alias', normalize_name(token)))
        return self._identifier_from(token)

    def _parse_values(self) -> ValuesQuery:
        """Parse VALUES (...), (...)."""
        lead = self._take_leading()
        self._expect(TokenType.VALUES)
        lead += self._collect()
        tuples = [self._parse_values_tuple()]
        while self._consume_if(TokenType.COMMA):
            tuples.append(self._parse_values_tuple())
        return self._finish(ValuesQuery(tuples=tuples), lead)

    def _parse_values_tuple(self) -> TupleExpression:
        lead = self._take_leading()
        self._expect(TokenType.LPAREN, "Expected ( in VALUES list")
        lead += self._collect()
        items = self._parse_expression_list()
        self._expect(TokenType.RPAREN, "Expected ) in VALUES list")
        return self._finish(TupleExpression(items=items), lead)

    # ============== Clauses ==============

    def _clause_start(self) -> List[PositionedComment]:
        """Consomme le mot-clé de clause et renvoie ses commentaires."""
        lead = self._take_leading()
        self._advance()
        return lead

    def _parse_from_clause(self) -> FromClause:
        lead = self._clause_start()
        lead += self._collect()
        source = self._parse_source()
        joins = []
        while True:
            if self._check(TokenType.COMMA):
                join_lead = self._take_leading()
                self._advance()
                join_lead += self._collect()
                joins.append(self._finish(JoinClause(join_type=',', source=self._parse_source()), join_lead))
            elif self._match(*JOIN_START_TYPES):
                joins.append(self._parse_join())
            else:
                break
        return self._finish(FromClause(source=source, joins=joins), lead)

    def _parse_join(self) -> JoinClause:
        """Parse [NATURAL] [INNER|LEFT|RIGHT|FULL [OUTER]|CROSS] JOIN source [ON|USING]."""
        lead = self._take_leading()
        words = []
        if self._check(TokenType.NATURAL):
            words.append(self._advance().value.lower())
        if self._match(TokenType.LEFT, TokenType.RIGHT, TokenType.FULL):
            words.append(self._advance().value.lower())
            if self._check(TokenType.OUTER):
                words.append(self._advance().value.lower())
        elif self._match(TokenType.INNER, TokenType.CROSS):
            words.append(self._advance().value.lower())
        self._expect(TokenType.JOIN, "Expected JOIN")
        words.append('join')
        lead += self._collect()

        source = self._parse_source()
        condition = None
        using = None
        if self._consume_if(TokenType.ON):
            condition = self._parse_expression()
        elif self._consume_if(TokenType.USING):
            using = self._parse_identifier_list(LexemeRole.COLUMN)
        join = JoinClause(join_type=' '.join(words), source=source, condition=condition, using=using)
        return self._finish(join, lead)

    def _parse_source(self) -> SourceExpression:
        """Parse une source FROM: table, (sous-requête) ou fonction, avec alias."""
        lead = self._take_leading()
        lateral = self._consume_if(TokenType.LATERAL)

        if self._check(TokenType.LPAREN):
            self._advance()
            lead += self._collect()
            if not self._match(TokenType.SELECT, TokenType.WITH, TokenType.VALUES, TokenType.LPAREN):
                raise self._error("Expected subquery in FROM", expected="SELECT, WITH or VALUES")
            query = self._parse_query()
            self._expect(TokenType.RPAREN, "Expected ) after subquery")
            source = SubquerySource(query=query)
        else:
            only = self._consume_if(TokenType.ONLY)
            name_tokens = self._parse_name_tokens()
            name = self._qualified_from(name_tokens)
            if self._check(TokenType.LPAREN):
                self._set_role(name_tokens[-1], LexemeRole.FUNCTION)
                source = FunctionSource(function=self._parse_function_call(name, []))
            else:
                self._mark_table_reference(name_tokens)
                source = TableSource(name=name, only=only)

        alias = self._parse_alias()
        column_aliases = None
        if alias is not None and self._check(TokenType.LPAREN):
            column_aliases = self._parse_identifier_list(LexemeRole.COLUMN)
        node = SourceExpression(source=source, alias=alias, column_aliases=column_aliases, lateral=lateral)
        return self._finish(node, lead)

    def _mark_table_reference(self, name_tokens: List[Token]):
        """Affecte le rôle TABLE ou CTE aux tokens d'un nom de table."""
        for token in name_tokens[:-1]:
            self._set_role(token, LexemeRole.NAMESPACE)
        last = name_tokens[-1]
        normalized = normalize_name(last)
        if len(name_tokens) == 1 and self._cte_in_scope(normalized):
            self._set_role(last, LexemeRole.CTE, ('cte', normalized))
            return
        full = '.'.join(normalize_name(t) for t in name_tokens)
        self._set_role(last, LexemeRole.TABLE, ('table', full))
        if full not in self.tables_referenced:
            self.tables_referenced.append(full)

    def _parse_where_clause(self) -> WhereClause:
        lead = self._clause_start()
        lead += self._collect()
        return self._finish(WhereClause(condition=self._parse_expression()), lead)

    def _parse_having_clause(self) -> HavingClause:
        lead = self._clause_start()
        lead += self._collect()
        return self._finish(HavingClause(condition=self._parse_expression()), lead)

    def _parse_group_by_clause(self) -> GroupByClause:
        """Parse GROUP BY, y compris GROUPING SETS, CUBE et ROLLUP."""
        lead = self._clause_start()
        self._expect(TokenType.BY, "Expected BY after GROUP")
        lead += self._collect()
        items = [self._parse_grouping_element()]
        while self._consume_if(TokenType.COMMA):
            items.append(self._parse_grouping_element())
        return self._finish(GroupByClause(items=items), lead)

    def _parse_grouping_element(self) -> Expression:
        if self._check(TokenType.GROUPING) and self._peek().type == TokenType.SETS:
            lead = self._take_leading()
            self._advance()
            self._advance()
            kind = 'grouping sets'
        elif self._match(TokenType.CUBE, TokenType.ROLLUP) and self._peek().type == TokenType.LPAREN:
            lead = self._take_leading()
            kind = self._advance().value.lower()
        else:
            return self._parse_expression()
        self._expect(TokenType.LPAREN)
        lead += self._collect()
        sets = []
        if not self._check(TokenType.RPAREN):
            sets.append(self._parse_grouping_set())
            while self._consume_if(TokenType.COMMA):
                sets.append(self._parse_grouping_set())
        self._expect(TokenType.RPAREN)
        return self._finish(GroupingSetsExpression(kind=kind, sets=sets), lead)

    def _parse_grouping_set(self) -> Expression:
        if self._check(TokenType.LPAREN) and self._peek().type == TokenType.RPAREN:
            self._advance()
            self._advance()
            return self._finish(TupleExpression(items=[]))
        return self._parse_grouping_element()

    def _parse_window_clause(self) -> WindowClause:
        lead = self._clause_start()
        lead += self._collect()
        windows = [self._parse_window_definition()]
        while self._consume_if(TokenType.COMMA):
            windows.append(self._parse_window_definition())
        return self._finish(WindowClause(windows=windows), lead)

    def _parse_window_definition(self) -> WindowDefinition:
        lead = self._take_leading()
        name = self._parse_identifier(LexemeRole.ALIAS)
        self._expect(TokenType.AS, "Expected AS in window definition")
        spec = self._parse_window_spec()
        return self._finish(WindowDefinition(name=name, spec=spec), lead)

    def _parse_order_by_clause(self) -> OrderByClause:
        lead = self._clause_start()
        self._expect(TokenType.BY, "Expected BY after ORDER")
        lead += self._collect()
        items = [self._parse_order_by_item()]
        while self._consume_if(TokenType.COMMA):
            items.append(self._parse_order_by_item())
        return self._finish(OrderByClause(items=items), lead)

    def _parse_order_by_item(self) -> OrderByItem:
        lead = self._take_leading()
        expression = self._parse_expression()
        direction = None
        nulls = None
        if self._match(TokenType.ASC, TokenType.DESC):
            direction = self._advance().value.lower()
        if self._consume_if(TokenType.NULLS):
            if not self._match(TokenType.FIRST, TokenType.LAST):
                raise self._error("Expected FIRST or LAST after NULLS", expected="FIRST or LAST")
            nulls = self._advance().value.lower()
        item = OrderByItem(expression=expression, direction=direction, nulls=nulls)
        return self._finish(item, lead)

    def _parse_limit_clause(self) -> LimitClause:
        lead = self._clause_start()
        lead += self._collect()
        return self._finish(LimitClause(value=self._parse_expression()), lead)

    def _parse_offset_clause(self) -> OffsetClause:
        lead = self._clause_start()
        lead += self._collect()
        value = self._parse_expression()
        unit = None
        if self._match(TokenType.ROW, TokenType.ROWS):
            unit = self._advance().value.lower()
        return self._finish(OffsetClause(value=value, unit=unit), lead)

    def _parse_fetch_clause(self) -> FetchClause:
        """Parse FETCH {FIRST|NEXT} [n] {ROW|ROWS} ONLY."""
        lead = self._clause_start()
        if not self._match(TokenType.FIRST, TokenType.NEXT):
            raise self._error("Expected FIRST or NEXT after FETCH", expected="FIRST or NEXT")
        position = self._advance().value.lower()
        lead += self._collect()
        count = None
        if not self._match(TokenType.ROW, TokenType.ROWS):
            count = self._parse_expression(PREC_CONCAT)
        if not self._match(TokenType.ROW, TokenType.ROWS):
            raise self._error("Expected ROW or ROWS in FETCH", expected="ROW or ROWS")
        unit = self._advance().value.lower()
        self._expect(TokenType.ONLY, "Expected ONLY in FETCH")
        return self._finish(FetchClause(count=count, position=position, unit=unit), lead)

    def _parse_for_clause(self) -> ForClause:
        """Parse FOR UPDATE / FOR SHARE [NOWAIT | SKIP LOCKED]."""
        lead = self._clause_start()
        words = []
        while self._is_word_token(self._current()):
            words.append(self._advance().value.lower())
        if not words:
            raise self._error("Expected lock mode after FOR", expected="UPDATE or SHARE")
        return self._finish(ForClause(lock_mode=' '.join(words)), lead)

    def _parse_returning_clause(self) -> ReturningClause:
        lead = self._clause_start()
        lead += self._collect()
        items = [self._parse_select_item()]
        while self._consume_if(TokenType.COMMA):
            items.append(self._parse_select_item())
        return self._finish(ReturningClause(items=items), lead)

    # ============== DML ==============

    def _parse_target_table(self, implicit_alias: bool = True) -> SourceExpression:
        lead = self._take_leading()
        only = self._consume_if(TokenType.ONLY)
        name_tokens = self._parse_name_tokens()
        self._mark_table_reference(name_tokens)
        source = TableSource(name=self._qualified_from(name_tokens), only=only)
        alias = self._parse_alias(implicit=implicit_alias)
        return self._finish(SourceExpression(source=source, alias=alias), lead)

    def _parse_insert(self, with_clause: Optional[WithClause] = None) -> InsertQuery:
        """Parse INSERT INTO table [(cols)] {VALUES | query | DEFAULT VALUES} [RETURNING]."""
        lead = self._take_leading()
        self._expect(TokenType.INSERT)
        self._expect(TokenType.INTO, "Expected INTO after INSERT")
        lead += self._collect()
        table = self._parse_target_table(implicit_alias=False)

        columns = None
        if self._check(TokenType.LPAREN) and self._peek().type not in (TokenType.SELECT, TokenType.WITH):
            columns = self._parse_identifier_list(LexemeRole.COLUMN)

        if self._check(TokenType.DEFAULT):
            self._advance()
            self._expect(TokenType.VALUES, "Expected VALUES after DEFAULT")
            source = None
        elif self._match(TokenType.VALUES, TokenType.SELECT, TokenType.WITH, TokenType.LPAREN):
            source = self._parse_query()
        else:
            raise self._error(f"Expected VALUES or query in INSERT, found {self._describe(self._current())}",
                              expected="VALUES, SELECT or DEFAULT VALUES")

        query = InsertQuery(table=table, columns=columns, source=source, with_clause=with_clause)
        if self._check(TokenType.RETURNING):
            query.returning_clause = self._parse_returning_clause()
        return self._finish(query, lead)

    def _parse_update(self, with_clause: Optional[WithClause] = None) -> UpdateQuery:
        """Parse UPDATE table SET ... [FROM] [WHERE] [RETURNING]."""
        lead = self._take_leading()
        self._expect(TokenType.UPDATE)
        lead += self._collect()
        table = self._parse_target_table()
        set_clause = self._parse_set_clause("Expected SET in UPDATE")

        query = UpdateQuery(table=table, set_clause=set_clause, with_clause=with_clause)
        if self._check(TokenType.FROM):
            query.from_clause = self._parse_from_clause()
        if self._check(TokenType.WHERE):
            query.where_clause = self._parse_where_clause()
        if self._check(TokenType.RETURNING):
            query.returning_clause = self._parse_returning_clause()
        return self._finish(query, lead)

    def _parse_set_clause(self, message: str) -> SetClause:
        lead = self._take_leading()
        self._expect(TokenType.SET, message)
        lead += self._collect()
        items = [self._parse_set_item()]
        while self._consume_if(TokenType.COMMA):
            items.append(self._parse_set_item())
        return self._finish(SetClause(items=items), lead)

    def _parse_set_item(self) -> SetClauseItem:
        lead = self._take_leading()
        name_tokens = self._parse_name_tokens()
        for token in name_tokens[:-1]:
            self._set_role(token, LexemeRole.NAMESPACE)
        self._set_role(name_tokens[-1], LexemeRole.COLUMN, ('column', normalize_name(name_tokens[-1])))
        identifiers = [self._identifier_from(t) for t in name_tokens]
        column = ColumnReference(column=identifiers[-1], namespaces=identifiers[:-1])
        self._expect(TokenType.EQUALS, "Expected = in SET clause")
        value = self._parse_expression()
        return self._finish(SetClauseItem(column=column, value=value), lead)

    def _parse_delete(self, with_clause: Optional[WithClause] = None) -> DeleteQuery:
        """Parse DELETE FROM table [USING ...] [WHERE] [RETURNING]."""
        lead = self._take_leading()
        self._expect(TokenType.DELETE)
        self._expect(TokenType.FROM, "Expected FROM after DELETE")
        lead += self._collect()
        table = self._parse_target_table()

        query = DeleteQuery(table=table, with_clause=with_clause)
        if self._consume_if(TokenType.USING):
            query.using = [self._parse_source()]
            while self._consume_if(TokenType.COMMA):
                query.using.append(self._parse_source())
        if self._check(TokenType.WHERE):
            query.where_clause = self._parse_where_clause()
        if self._check(TokenType.RETURNING):
            query.returning_clause = self._parse_returning_clause()
        return self._finish(query, lead)

    # ============== MERGE ==============

    def _parse_merge(self, with_clause: Optional[WithClause] = None) -> MergeQuery:
        """
        Parse MERGE INTO cible [alias] USING source [alias] ON condition
        suivi d'au moins une clause WHEN [NOT] MATCHED ... THEN action.
        """
        lead = self._take_leading()
        self._expect(TokenType.MERGE)
        self._expect(TokenType.INTO, "Expected INTO after MERGE")
        lead += self._collect()
        target = self._parse_target_table()
        self._expect(TokenType.USING, "Expected USING in MERGE")
        source = self._parse_source()
        self._expect(TokenType.ON, "Expected ON in MERGE")
        on_condition = self._parse_expression()

        if not self._check(TokenType.WHEN):
            raise self._error(f"Expected WHEN clause in MERGE, found {self._describe(self._current())}",
                              expected="WHEN")
        when_clauses = []
        while self._check(TokenType.WHEN):
            when_clauses.append(self._parse_merge_when())
        query = MergeQuery(target=target, source=source, on_condition=on_condition,
                           when_clauses=when_clauses, with_clause=with_clause)
        return self._finish(query, lead)

    def _parse_merge_when(self) -> MergeWhenClause:
        lead = self._take_leading()
        self._expect(TokenType.WHEN)
        match_type = 'matched'
        if self._consume_if(TokenType.NOT):
            match_type = 'not matched'
        self._expect_word('matched')
        if match_type == 'not matched' and self._consume_if(TokenType.BY):
            if self._check_word('source') or self._check_word('target'):
                match_type += ' by ' + self._expect_word(self._current().value.lower()).value.lower()
            else:
                raise self._error("Expected SOURCE or TARGET after NOT MATCHED BY",
                                  expected="SOURCE or TARGET")
        # imprimés avant WHEN
        for comment in self._pending:
            comment.anchor = CommentAnchor.LEADING
        lead += self._collect()

        condition = None
        if self._consume_if(TokenType.AND):
            lead += self._collect()
            condition = self._parse_expression()
        self._expect(TokenType.THEN, "Expected THEN in MERGE WHEN clause")
        action = self._parse_merge_action(self._collect())
        return self._finish(MergeWhenClause(match_type=match_type, action=action, condition=condition), lead)

    def _parse_merge_action(self, lead: List[PositionedComment]) -> ASTNode:
        """UPDATE SET ... | DELETE | INSERT [(cols)] VALUES (...) | DO NOTHING."""
        lead = lead + self._take_leading()
        if self._consume_if(TokenType.UPDATE):
            lead += self._collect()
            action = MergeUpdateAction(set_clause=self._parse_set_clause("Expected SET after UPDATE"))
            if self._check(TokenType.WHERE):
                action.where_clause = self._parse_where_clause()
        elif self._consume_if(TokenType.DELETE):
            lead += self._collect()
            action = MergeDeleteAction()
            if self._check(TokenType.WHERE):
                action.where_clause = self._parse_where_clause()
        elif self._consume_if(TokenType.INSERT):
            lead += self._collect()
            action = MergeInsertAction()
            if self._check(TokenType.LPAREN):
                action.columns = self._parse_identifier_list(LexemeRole.COLUMN)
            if self._consume_if(TokenType.DEFAULT):
                self._expect(TokenType.VALUES, "Expected VALUES after DEFAULT")
            else:
                self._expect(TokenType.VALUES, "Expected VALUES in MERGE INSERT")
                action.values = self._parse_values_tuple()
        elif self._check_word('do'):
            self._expect_word('do')
            self._expect_word('nothing')
            action = MergeDoNothingAction()
        else:
            raise self._error(f"Unsupported MERGE action {self._describe(self._current())}",
                              expected="UPDATE, DELETE, INSERT or DO NOTHING")
        return self._finish(action, lead)

    # ============== DDL ==============

    def _parse_if_not_exists(self) -> bool:
        if self._check(TokenType.IF) and self._peek().type == TokenType.NOT:
            self._advance()
            self._advance()
            self._expect(TokenType.EXISTS, "Expected EXISTS after IF NOT")
            return True
        return False

    def _parse_if_exists(self) -> bool:
        if self._check(TokenType.IF) and self._peek().type == TokenType.EXISTS:
            self._advance()
            self._advance()
            return True
        return False

    def _parse_behavior(self) -> Optional[str]:
        if self._match(TokenType.CASCADE, TokenType.RESTRICT):
            return self._advance().value.lower()
        return None

    def _parse_create(self) -> ASTNode:
        """Aiguille CREATE TABLE / CREATE INDEX."""
        lead = self._take_leading()
        self._expect(TokenType.CREATE)
        temporary = False
        if self._match(TokenType.TEMPORARY, TokenType.TEMP):
            self._advance()
            temporary = True
        if self._check(TokenType.TABLE):
            statement = self._parse_create_table(temporary)
        elif not temporary and self._match(TokenType.UNIQUE, TokenType.INDEX):
            statement = self._parse_create_index()
        else:
            raise self._error(f"Unsupported CREATE statement near {self._describe(self._current())}",
                              expected="TABLE or INDEX")
        return self._finish(statement, lead)

    def _parse_create_table(self, temporary: bool) -> CreateTableQuery:
        self._expect(TokenType.TABLE)
        if_not_exists = self._parse_if_not_exists()
        name_tokens = self._parse_name_tokens()
        self._mark_table_reference(name_tokens)
        query = CreateTableQuery(table=self._qualified_from(name_tokens), temporary=temporary,
                                 if_not_exists=if_not_exists)

        if self._consume_if(TokenType.AS):
            query.as_query = self._parse_query()
            return query

        self._expect(TokenType.LPAREN, "Expected ( or AS after table name")
        while True:
            if self._match(TokenType.CONSTRAINT, TokenType.PRIMARY, TokenType.UNIQUE,
                           TokenType.FOREIGN, TokenType.CHECK):
                query.constraints.append(self._parse_table_constraint())
            else:
                query.columns.append(self._parse_column_definition())
            if not self._consume_if(TokenType.COMMA):
                break
        self._expect(TokenType.RPAREN, "Expected ) after table definition")
        return query

    def _parse_column_definition(self) -> TableColumnDefinition:
        """Parse nom type [contraintes...]."""
        lead = self._take_leading()
        name = self._parse_identifier(LexemeRole.COLUMN)
        data_type = None
        if self._is_word_token(self._current()) and not self._match(
                TokenType.CONSTRAINT, TokenType.NOT, TokenType.NULL, TokenType.PRIMARY,
                TokenType.UNIQUE, TokenType.DEFAULT, TokenType.CHECK, TokenType.REFERENCES):
            data_type = self._parse_type_name()
        constraints = []
        while True:
            constraint = self._parse_column_constraint()
            if constraint is None:
                break
            constraints.append(constraint)
        return self._finish(TableColumnDefinition(name=name, data_type=data_type, constraints=constraints), lead)

    def _parse_column_constraint(self) -> Optional[ColumnConstraintDefinition]:
        lead = self._take_leading()
        name = None
        if self._consume_if(TokenType.CONSTRAINT):
            name = self._parse_identifier(LexemeRole.IDENTIFIER)

        if self._check(TokenType.NOT):
            self._advance()
            self._expect(TokenType.NULL, "Expected NULL after NOT")
            constraint = ColumnConstraintDefinition(kind='not null', name=name)
        elif self._consume_if(TokenType.NULL):
            constraint = ColumnConstraintDefinition(kind='null', name=name)
        elif self._consume_if(TokenType.PRIMARY):
            self._expect(TokenType.KEY, "Expected KEY after PRIMARY")
            constraint = ColumnConstraintDefinition(kind='primary key', name=name)
        elif self._consume_if(TokenType.UNIQUE):
            constraint = ColumnConstraintDefinition(kind='unique', name=name)
        elif self._consume_if(TokenType.DEFAULT):
            constraint = ColumnConstraintDefinition(kind='default', name=name,
                                                    expression=self._parse_expression(PREC_CONCAT))
        elif self._consume_if(TokenType.CHECK):
            self._expect(TokenType.LPAREN)
            expression = self._parse_expression()
            self._expect(TokenType.RPAREN)
            constraint = ColumnConstraintDefinition(kind='check', name=name, expression=expression)
        elif self._check(TokenType.REFERENCES):
            constraint = ColumnConstraintDefinition(kind='references', name=name,
                                                    reference=self._parse_reference())
        else:
            if name is not None:
                raise self._error("Expected constraint after CONSTRAINT name", expected="constraint")
            if lead:
                self._leading[self.pos] = lead
            return None
        return self._finish(constraint, lead)

    def _parse_table_constraint(self) -> TableConstraintDefinition:
        """Parse [CONSTRAINT nom] PRIMARY KEY | UNIQUE | FOREIGN KEY | CHECK."""
        lead = self._take_leading()
        name = None
        if self._consume_if(TokenType.CONSTRAINT):
            name = self._parse_identifier(LexemeRole.IDENTIFIER)

        if self._consume_if(TokenType.PRIMARY):
            self._expect(TokenType.KEY, "Expected KEY after PRIMARY")
            constraint = TableConstraintDefinition(kind='primary key', name=name,
                                                   columns=self._parse_identifier_list(LexemeRole.COLUMN))
        elif self._consume_if(TokenType.UNIQUE):
            constraint = TableConstraintDefinition(kind='unique', name=name,
                                                   columns=self._parse_identifier_list(LexemeRole.COLUMN))
        elif self._consume_if(TokenType.FOREIGN):
            self._expect(TokenType.KEY, "Expected KEY after FOREIGN")
            columns = self._parse_identifier_list(LexemeRole.COLUMN)
            constraint = TableConstraintDefinition(kind='foreign key', name=name, columns=columns,
                                                   reference=self._parse_reference())
        elif self._consume_if(TokenType.CHECK):
            self._expect(TokenType.LPAREN)
            expression = self._parse_expression()
            self._expect(TokenType.RPAREN)
            constraint = TableConstraintDefinition(kind='check', name=name, expression=expression)
        else:
            raise self._error(f"Expected table constraint, found {self._describe(self._current())}",
                              expected="PRIMARY KEY, UNIQUE, FOREIGN KEY or CHECK")
        return self._finish(constraint, lead)

    def _parse_reference(self) -> ReferenceDefinition:
        """Parse REFERENCES table [(cols)] [ON DELETE action] [ON UPDATE action]."""
        self._expect(TokenType.REFERENCES)
        name_tokens = self._parse_name_tokens()
        self._mark_table_reference(name_tokens)
        reference = ReferenceDefinition(table=self._qualified_from(name_tokens))
        if self._check(TokenType.LPAREN):
            reference.columns = self._parse_identifier_list(LexemeRole.COLUMN)
        while self._check(TokenType.ON) and self._peek().type in (TokenType.DELETE, TokenType.UPDATE):
            self._advance()
            event = self._advance().type
            action = self._parse_referential_action()
            if event == TokenType.DELETE:
                reference.on_delete = action
            else:
                reference.on_update = action
        return reference

    def _parse_referential_action(self) -> str:
        if self._match(TokenType.CASCADE, TokenType.RESTRICT):
            return self._advance().value.lower()
        if self._check(TokenType.SET) and self._peek().type in (TokenType.NULL, TokenType.DEFAULT):
            self._advance()
            return 'set ' + self._advance().value.lower()
        if self._check_word('no') and self._check_word('action', 1):
            self._advance()
            self._advance()
            return 'no action'
        raise self._error("Expected referential action", expected=', '.join(REFERENTIAL_ACTIONS))

    def _parse_create_index(self) -> CreateIndexStatement:
        """Parse [UNIQUE] INDEX [CONCURRENTLY] [IF NOT EXISTS] [nom] ON table [USING m] (...) [WHERE]."""
        unique = self._consume_if(TokenType.UNIQUE)
        self._expect(TokenType.INDEX, "Expected INDEX")
        concurrently = False
        if self._check_word('concurrently'):
            self._advance()
            concurrently = True
        if_not_exists = self._parse_if_not_exists()
        name = None
        if not self._check(TokenType.ON):
            name = self._parse_identifier(LexemeRole.IDENTIFIER)
        self._expect(TokenType.ON, "Expected ON in CREATE INDEX")
        name_tokens = self._parse_name_tokens()
        self._mark_table_reference(name_tokens)
        using = None
        if self._consume_if(TokenType.USING):
            using = self._parse_identifier(LexemeRole.IDENTIFIER)
        self._expect(TokenType.LPAREN, "Expected ( before index columns")
        columns = [self._parse_order_by_item()]
        while self._consume_if(TokenType.COMMA):
            columns.append(self._parse_order_by_item())
        self._expect(TokenType.RPAREN, "Expected ) after index columns")
        statement = CreateIndexStatement(table=self._qualified_from(name_tokens), columns=columns, name=name,
                                         unique=unique, concurrently=concurrently,
                                         if_not_exists=if_not_exists, using=using)
        if self._check(TokenType.WHERE):
            statement.where_clause = self._parse_where_clause()
        return statement

    def _parse_alter_table(self) -> AlterTableStatement:
        """Parse ALTER TABLE [IF EXISTS] [ONLY] nom action, action..."""
        lead = self._take_leading()
        self._expect(TokenType.ALTER)
        self._expect(TokenType.TABLE, "Expected TABLE after ALTER")
        if_exists = self._parse_if_exists()
        only = self._consume_if(TokenType.ONLY)
        name_tokens = self._parse_name_tokens()
        self._mark_table_reference(name_tokens)
        actions = [self._parse_alter_action()]
        while self._consume_if(TokenType.COMMA):
            actions.append(self._parse_alter_action())
        statement = AlterTableStatement(table=self._qualified_from(name_tokens), actions=actions,
                                        if_exists=if_exists, only=only)
        return self._finish(statement, lead)

    def _parse_alter_action(self) -> AlterTableAction:
        lead = self._take_leading()
        if self._consume_if(TokenType.ADD):
            if self._match(TokenType.CONSTRAINT, TokenType.PRIMARY, TokenType.UNIQUE,
                           TokenType.FOREIGN, TokenType.CHECK):
                action = AlterTableAction('add constraint', constraint=self._parse_table_constraint())
            else:
                self._consume_if(TokenType.COLUMN)
                if_not_exists = self._parse_if_not_exists()
                action = AlterTableAction('add column', column=self._parse_column_definition(),
                                          if_exists=if_not_exists)
        elif self._consume_if(TokenType.DROP):
            if self._consume_if(TokenType.CONSTRAINT):
                action_type = 'drop constraint'
                role = LexemeRole.IDENTIFIER
            else:
                self._consume_if(TokenType.COLUMN)
                action_type = 'drop column'
                role = LexemeRole.COLUMN
            if_exists = self._parse_if_exists()
            name = self._parse_identifier(role)
            action = AlterTableAction(action_type, name=name, if_exists=if_exists,
                                      behavior=self._parse_behavior())
        elif self._consume_if(TokenType.RENAME):
            if self._consume_if(TokenType.TO):
                action = AlterTableAction('rename to', new_name=self._parse_identifier(LexemeRole.TABLE))
            else:
                self._consume_if(TokenType.COLUMN)
                name = self._parse_identifier(LexemeRole.COLUMN)
                self._expect(TokenType.TO, "Expected TO in RENAME COLUMN")
                action = AlterTableAction('rename column', name=name,
                                          new_name=self._parse_identifier(LexemeRole.COLUMN))
        elif self._consume_if(TokenType.ALTER):
            self._consume_if(TokenType.COLUMN)
            name = self._parse_identifier(LexemeRole.COLUMN)
            action = self._parse_alter_column(name)
        else:
            raise self._error(f"Unsupported ALTER TABLE action {self._describe(self._current())}",
                              expected="ADD, DROP, RENAME or ALTER")
        return self._finish(action, lead)

    def _parse_alter_column(self, name: Identifier) -> AlterTableAction:
        if self._check_word('type'):
            self._advance()
            return AlterTableAction('alter column type', name=name, data_type=self._parse_type_name())
        if self._consume_if(TokenType.SET):
            if self._check_word('data'):
                self._advance()
                self._expect_word('type')
                return AlterTableAction('alter column type', name=name, data_type=self._parse_type_name())
            if self._consume_if(TokenType.DEFAULT):
                return AlterTableAction('alter column set default', name=name,
                                        expression=self._parse_expression())
            self._expect(TokenType.NOT, "Expected DEFAULT or NOT NULL after SET")
            self._expect(TokenType.NULL)
            return AlterTableAction('alter column set not null', name=name)
        if self._consume_if(TokenType.DROP):
            if self._consume_if(TokenType.DEFAULT):
                return AlterTableAction('alter column drop default', name=name)
            self._expect(TokenType.NOT, "Expected DEFAULT or NOT NULL after DROP")
            self._expect(TokenType.NULL)
            return AlterTableAction('alter column drop not null', name=name)
        raise self._error("Unsupported ALTER COLUMN action", expected="TYPE, SET or DROP")

    def _parse_drop(self) -> DropStatement:
        """Parse DROP TABLE|INDEX [IF EXISTS] nom, ... [CASCADE|RESTRICT]."""
        lead = self._take_leading()
        self._expect(TokenType.DROP)
        if not self._match(TokenType.TABLE, TokenType.INDEX):
            raise self._error(f"Unsupported DROP target {self._describe(self._current())}",
                              expected="TABLE or INDEX")
        object_type = self._advance().value.lower()
        if_exists = self._parse_if_exists()
        names = []
        while True:
            name_tokens = self._parse_name_tokens()
            if object_type == 'table':
                self._mark_table_reference(name_tokens)
            names.append(self._qualified_from(name_tokens))
            if not self._consume_if(TokenType.COMMA):
                break
        statement = DropStatement(object_type=object_type, names=names, if_exists=if_exists,
                                  behavior=self._parse_behavior())
        return self._finish(statement, lead)

    # ============== Utilitaires ==============

    def _parse_explain(self) -> ExplainStatement:
        """Parse EXPLAIN [ANALYZE] [VERBOSE] [(option [valeur], ...)] instruction."""
        lead = self._take_leading()
        self._expect(TokenType.EXPLAIN)
        statement = ExplainStatement(statement=None)
        if self._check(TokenType.LPAREN):
            lead += self._collect()
            option_lead = self._take_leading()
            self._advance()
            while True:
                option_lead += self._collect() + self._take_leading()
                option_token = self._current()
                if not self._is_word_token(option_token):
                    raise self._error("Expected EXPLAIN option", expected="option name")
                self._advance()
                value = None
                if not self._match(TokenType.COMMA, TokenType.RPAREN):
                    value = self._advance().value
                option = ExplainOption(name=option_token.value.lower(), value=value)
                statement.options.append(self._finish(option, option_lead))
                option_lead = []
                if not self._consume_if(TokenType.COMMA):
                    break
            self._close_list(statement.options[-1], "Expected ) after EXPLAIN options")
        else:
            statement.analyze = self._consume_if(TokenType.ANALYZE)
            if self._check_word('verbose'):
                self._advance()
                statement.verbose = True
        lead += self._collect()
        statement.statement = self._parse_statement()
        return self._finish(statement, lead)

    def _parse_analyze(self) -> AnalyzeStatement:
        """Parse ANALYZE [VERBOSE] [table [(colonnes)]]."""
        lead = self._take_leading()
        self._expect(TokenType.ANALYZE)
        statement = AnalyzeStatement()
        if self._check_word('verbose'):
            self._advance()
            statement.verbose = True
        if self._is_identifier_token(self._current()):
            name_tokens = self._parse_name_tokens()
            self._mark_table_reference(name_tokens)
            statement.target = self._qualified_from(name_tokens)
            if self._check(TokenType.LPAREN):
                statement.columns = self._parse_identifier_list(LexemeRole.COLUMN)
        return self._finish(statement, lead)

    # ============== Noms et identifiants ==============

    @staticmethod
    def _identifier_from(token: Token) -> Identifier:
        if token.type == TokenType.QUOTED_IDENTIFIER:
            return Identifier(name=normalize_name(token), quoted=True)
        return Identifier(name=token.value, quoted=False)

    def _parse_identifier(self, role: LexemeRole) -> Identifier:
        token = self._current()
        if not self._is_identifier_token(token):
            raise self._error(f"Expected identifier, found {self._describe(token)}", expected="identifier")
        self._advance()
        identity = None
        if role in (LexemeRole.COLUMN, LexemeRole.ALIAS, LexemeRole.TABLE):
            identity = (role.value, normalize_name(token))
        self._set_role(token, role, identity)
        return self._identifier_from(token)

    def _parse_identifier_list(self, role: LexemeRole) -> List[Identifier]:
        """
        Parse une liste d'identifiants entre parenthèses.

        Les commentaires de la liste, parenthèse ouvrante comprise, sont
        rattachés aux identifiants. Ceux déjà en attente avant la liste
        restent au nœud englobant.
        """
        carry = self._collect()
        lead = self._take_leading()
        self._expect(TokenType.LPAREN)
        identifiers = []
        while True:
            lead += self._collect() + self._take_leading()
            identifiers.append(self._finish(self._parse_identifier(role), lead))
            lead = []
            if not self._consume_if(TokenType.COMMA):
                break
        self._close_list(identifiers[-1])
        self._pending = carry + self._pending
        return identifiers

    def _close_list(self, last: ASTNode, message: Optional[str] = None):
        """Consomme ')' et rattache au dernier élément les commentaires qui la précèdent."""
        closing = self._collect() + self._take_leading(CommentAnchor.TRAILING)
        for comment in closing:
            comment.anchor = CommentAnchor.TRAILING
        last.positioned_comments.extend(closing)
        self._expect(TokenType.RPAREN, message)

    def _parse_name_tokens(self) -> List[Token]:
        """Parse les tokens d'un nom pointé (a.b.c)."""
        token = self._current()
        if not self._is_identifier_token(token):
            raise self._error(f"Expected name, found {self._describe(token)}", expected="name")
        tokens = [self._advance()]
        while self._check(TokenType.DOT) and self._is_word_token(self._peek()):
            self._advance()
            tokens.append(self._advance())
        return tokens

    def _qualified_from(self, tokens: List[Token]) -> QualifiedName:
        identifiers = [self._identifier_from(t) for t in tokens]
        return QualifiedName(namespaces=identifiers[:-1], name=identifiers[-1])

    def _parse_type_name(self) -> str:
        """Parse un nom de type: int, varchar(20), double precision, timestamp with time zone, int[]."""
        token = self._current()
        if not self._is_word_token(token):
            raise self._error(f"Expected type name, found {self._describe(token)}", expected="type name")
        words = [self._advance().value]
        self._set_role(token, LexemeRole.TYPE)
        while self._check(TokenType.DOT) and self._is_word_token(self._peek()):
            self._advance()
            words[-1] += '.' + self._advance().value
        if self._check_word('precision') or self._check_word('varying'):
            words.append(self._advance().value)
        text = ' '.join(words)

        if self._check(TokenType.LPAREN):
            self._advance()
            args = []
            while not self._check(TokenType.RPAREN):
                arg = self._current()
                if arg.type not in (TokenType.INTEGER, TokenType.IDENTIFIER, TokenType.STRING):
                    raise self._error("Invalid type modifier", expected="type modifier")
                args.append(self._advance().value)
                if not self._consume_if(TokenType.COMMA):
                    break
            self._expect(TokenType.RPAREN, "Expected ) after type modifiers")
            text += '(' + ', '.join(args) + ')'

        if ((self._check(TokenType.WITH) or self._check_word('without'))
                and self._peek().type == TokenType.TIME and self._check_word('zone', 2)):
            zone_words = [self._advance().value, self._advance().value, self._advance().value]
            text += ' ' + ' '.join(zone_words)

        while self._check(TokenType.LBRACKET) and self._peek().type in (TokenType.RBRACKET, TokenType.INTEGER):
            self._advance()
            size = self._advance().value if self._check(TokenType.INTEGER) else ''
            self._expect(TokenType.RBRACKET)
            text += f'[{size}]'
        return text

    # ============== Expressions ==============

    def _parse_expression_list(self) -> List[Expression]:
        expressions = [self._parse_expression()]
        while self._consume_if(TokenType.COMMA):
            expressions.append(self._parse_expression())
        return expressions

    def _infix_precedence(self) -> Optional[int]:
        """Précédence de l'opérateur infixe courant, None si aucun."""
        token_type = self._current().type
        if token_type == TokenType.OR:
            return PREC_OR
        if token_type == TokenType.AND:
            return PREC_AND
        if token_type in COMPARISON_OPERATORS or token_type in (
                TokenType.IS, TokenType.IN, TokenType.BETWEEN, TokenType.LIKE, TokenType.ILIKE):
            return PREC_COMPARISON
        if token_type == TokenType.NOT and self._peek().type in (
                TokenType.IN, TokenType.BETWEEN, TokenType.LIKE, TokenType.ILIKE):
            return PREC_COMPARISON
        return ARITHMETIC_PRECEDENCE.get(token_type)

    def _parse_expression(self, min_precedence: int = PREC_OR) -> Expression:
        """
        Parse une expression par precedence climbing.

        Args:
            min_precedence: Précédence minimale des opérateurs consommés

        Returns:
            L'expression construite
        """
        with self._nested():
            left = self._parse_prefix()
            chain = 0
            while True:
                precedence = self._infix_precedence()
                if precedence is None or precedence < min_precedence:
                    return left
                if precedence in (PREC_OR, PREC_AND):
                    left = self._parse_logical(left, precedence)
                    continue
                chain += 1
                if chain > MAX_CHAIN_LENGTH:
                    raise ParseError("Maximum operator chain length exceeded", self._current(),
                                     expected=f"at most {MAX_CHAIN_LENGTH} chained operators")
                left = self._parse_infix(left, precedence)

    def _parse_logical(self, left: Expression, precedence: int) -> LogicalExpression:
        """Construit un AND/OR n-aire aplati."""
        token_type = TokenType.OR if precedence == PREC_OR else TokenType.AND
        operands = [left]
        while self._check(token_type):
            self._advance()
            operands.append(self._parse_expression(precedence + 1))
        return self._finish(LogicalExpression(operator=token_type.name.lower(), operands=operands))

    def _parse_infix(self, left: Expression, precedence: int) -> Expression:
        token = self._current()

        if token.type in COMPARISON_OPERATORS:
            self._advance()
            operator = COMPARISON_OPERATORS[token.type] or token.value
            right = self._parse_expression(precedence + 1)
            return self._finish(BinaryExpression(left=left, operator=operator, right=right))

        if token.type in ARITHMETIC_PRECEDENCE:
            self._advance()
            right = self._parse_expression(precedence + 1)
            return self._finish(BinaryExpression(left=left, operator=token.value, right=right))

        if token.type == TokenType.IS:
            self._advance()
            operator = 'is'
            if self._consume_if(TokenType.NOT):
                operator = 'is not'
            if self._consume_if(TokenType.DISTINCT):
                self._expect(TokenType.FROM, "Expected FROM after IS DISTINCT")
                operator += ' distinct from'
                right = self._parse_expression(precedence + 1)
            elif self._match(TokenType.NULL, TokenType.TRUE, TokenType.FALSE) or self._check_word('unknown'):
                right = self._parse_primary()
            else:
                raise self._error("Expected NULL, TRUE, FALSE or DISTINCT FROM after IS",
                                  expected="NULL, TRUE, FALSE, UNKNOWN or DISTINCT FROM")
            return self._finish(BinaryExpression(left=left, operator=operator, right=right))

        negated = self._consume_if(TokenType.NOT)
        token = self._current()

        if token.type == TokenType.IN:
            self._advance()
            self._expect(TokenType.LPAREN, "Expected ( after IN")
            node = InExpression(expression=left, negated=negated)
            if self._match(TokenType.SELECT, TokenType.WITH, TokenType.VALUES):
                node.query = self._parse_query()
            else:
                node.values = self._parse_expression_list()
            self._expect(TokenType.RPAREN, "Expected ) after IN list")
            return self._finish(node)

        if token.type == TokenType.BETWEEN:
            self._advance()
            lower = self._parse_expression(PREC_CONCAT)
            self._expect(TokenType.AND, "Expected AND in BETWEEN")
            upper = self._parse_expression(PREC_CONCAT)
            return self._finish(BetweenExpression(expression=left, lower=lower, upper=upper, negated=negated))

        if token.type in (TokenType.LIKE, TokenType.ILIKE):
            self._advance()
            operator = ('not ' if negated else '') + token.value.lower()
            right = self._parse_expression(precedence + 1)
            return self._finish(BinaryExpression(left=left, operator=operator, right=right))

        raise self._error(f"Unexpected operator {self._describe(token)}", expected="operator")

    def _parse_prefix(self) -> Expression:
        """Parse NOT, signes unaires, puis primaire et suffixes (::type, [i])."""
        token = self._current()
        if token.type == TokenType.NOT:
            self._advance()
            lead = self._collect()
            operand = self._parse_expression(PREC_NOT)
            return self._finish(UnaryExpression(operator='not', operand=operand), lead)
        if token.type in (TokenType.MINUS, TokenType.PLUS):
            self._advance()
            lead = self._collect()
            operand = self._parse_expression(PREC_UNARY)
            return self._finish(UnaryExpression(operator=token.value, operand=operand), lead)

        expression = self._parse_primary()
        postfix = 0
        while True:
            if self._match(TokenType.DOUBLE_COLON, TokenType.LBRACKET):
                # chaque suffixe ajoute un niveau à l'arbre
                postfix += 1
                if self._depth + postfix > MAX_NESTING_DEPTH:
                    raise ParseError("Maximum nesting depth exceeded", self._current(),
                                     expected=f"at most {MAX_NESTING_DEPTH} nested levels")
            if self._check(TokenType.DOUBLE_COLON):
                self._advance()
                target = self._parse_type_name()
                expression = self._finish(CastExpression(expression=expression, target_type=target, syntax='::'))
            elif self._check(TokenType.LBRACKET):
                self._advance()
                index = self._parse_expression()
                self._expect(TokenType.RBRACKET, "Expected ] after subscript")
                expression = self._finish(ArraySubscript(expression=expression, index=index))
            else:
                return expression

    def _parse_primary(self) -> Expression:
        """Parse une expression primaire."""
        token = self._current()
        next_type = self._peek().type

        # Parenthèses, tuple ou sous-requête
        if token.type == TokenType.LPAREN:
            self._advance()
            lead = self._collect()
            if self._match(TokenType.SELECT, TokenType.WITH, TokenType.VALUES):
                query = self._parse_query()
                self._expect(TokenType.RPAREN, "Expected ) after subquery")
                return self._finish(SubqueryExpression(query=query), lead)
            first = self._parse_expression()
            if self._consume_if(TokenType.COMMA):
                items = [first] + self._parse_expression_list()
                self._expect(TokenType.RPAREN, "Expected ) after tuple")
                return self._finish(TupleExpression(items=items), lead)
            self._expect(TokenType.RPAREN, "Expected )")
            return self._finish(ParenExpression(expression=first), lead)

        # Littéraux
        if token.type == TokenType.INTEGER:
            self._advance()
            return self._finish(Literal(value=int(token.value), literal_type='integer', raw=token.value))
        if token.type == TokenType.FLOAT:
            self._advance()
            return self._finish(Literal(value=float(token.value), literal_type='decimal', raw=token.value))
        if token.type == TokenType.STRING:
            return self._finish(self._parse_string_literal())
        if token.type == TokenType.NULL:
            self._advance()
            return self._finish(Literal(value=None, literal_type='null'))
        if token.type in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return self._finish(Literal(value=token.type == TokenType.TRUE, literal_type='boolean'))
        if self._check_word('unknown'):
            self._advance()
            return self._finish(Literal(value=None, literal_type='unknown'))

        if token.type == TokenType.PARAMETER:
            self._advance()
            self._set_role(token, LexemeRole.PARAMETER)
            name = token.value[1:] if token.value != '?' else ''
            index = int(name) if token.value.startswith('$') else None
            return self._finish(ParameterExpression(name=name, index=index))

        if token.type == TokenType.CASE:
            return self._parse_case_expression()

        if token.type == TokenType.CAST and next_type == TokenType.LPAREN:
            self._advance()
            self._advance()
            lead = self._collect()
            expression = self._parse_expression()
            self._expect(TokenType.AS, "Expected AS in CAST expression")
            target = self._parse_type_name()
            self._expect(TokenType.RPAREN, "Expected ) after CAST")
            return self._finish(CastExpression(expression=expression, target_type=target), lead)

        if token.type == TokenType.EXISTS:
            self._advance()
            self._expect(TokenType.LPAREN, "Expected ( after EXISTS")
            lead = self._collect()
            query = self._parse_query()
            self._expect(TokenType.RPAREN, "Expected ) after EXISTS subquery")
            return self._finish(ExistsExpression(query=query), lead)

        if token.type == TokenType.ARRAY and next_type == TokenType.LBRACKET:
            self._advance()
            self._advance()
            lead = self._collect()
            elements = []
            if not self._check(TokenType.RBRACKET):
                elements = self._parse_expression_list()
            self._expect(TokenType.RBRACKET, "Expected ] after ARRAY elements")
            return self._finish(ArrayExpression(elements=elements), lead)

        if token.type in (TokenType.ARRAY, TokenType.ANY, TokenType.ALL, TokenType.SOME) \
                and next_type == TokenType.LPAREN:
            self._advance()
            self._set_role(token, LexemeRole.FUNCTION)
            name = QualifiedName(namespaces=[], name=Identifier(token.value.lower()))
            return self._parse_function_call(name, [])

        if token.type == TokenType.INTERVAL and next_type == TokenType.STRING:
            self._advance()
            lead = self._collect()
            value = self._parse_string_literal()
            unit = None
            if self._current().type == TokenType.IDENTIFIER and self._current().value.lower() in INTERVAL_UNITS:
                unit = self._advance().value.lower()
            return self._finish(IntervalExpression(value=value, unit=unit), lead)

        if token.type in (TokenType.DATE, TokenType.TIME, TokenType.TIMESTAMP) and next_type == TokenType.STRING:
            self._advance()
            lead = self._collect()
            value = self._parse_string_literal()
            return self._finish(TypedLiteral(type_name=token.value.lower(), value=value), lead)

        # Étoile seule
        if token.type == TokenType.STAR:
            self._advance()
            return self._finish(ColumnReference(column=Identifier('*')))

        # Identifiant, colonne qualifiée ou appel de fonction
        if self._is_identifier_token(token) or (
                token.type in (TokenType.LEFT, TokenType.RIGHT) and next_type == TokenType.LPAREN):
            return self._parse_identifier_or_function()

        raise ParseError(f"Unexpected token {self._describe(token)}", token, expected="expression")

    def _parse_string_literal(self) -> Literal:
        token = self._expect(TokenType.STRING)
        raw = token.value
        if raw[0] in ('e', 'E'):
            value = raw[2:-1].replace("''", "'")
        else:
            value = raw[1:-1].replace("''", "'")
        return Literal(value=value, literal_type='string', raw=raw)

    def _parse_identifier_or_function(self) -> Expression:
        """Parse une colonne (a, t.a, t.*) ou un appel de fonction (schema.f(...))."""
        first = self._advance()
        lead = self._collect()
        tokens = [first]
        while self._check(TokenType.DOT):
            self._advance()
            if self._check(TokenType.STAR):
                self._advance()
                self._mark_column_namespaces(tokens)
                identifiers = [self._identifier_from(t) for t in tokens]
                return self._finish(ColumnReference(column=Identifier('*'), namespaces=identifiers), lead)
            if not self._is_word_token(self._current()):
                raise self._error(f"Expected name after '.', found {self._describe(self._current())}",
                                  expected="name")
            tokens.append(self._advance())

        if self._check(TokenType.LPAREN):
            for token in tokens[:-1]:
                self._set_role(token, LexemeRole.NAMESPACE)
            self._set_role(tokens[-1], LexemeRole.FUNCTION)
            return self._parse_function_call(self._qualified_from(tokens), lead)

        if len(tokens) == 1 and first.type == TokenType.IDENTIFIER and first.value.lower() in NILADIC_FUNCTIONS:
            self._set_role(first, LexemeRole.FUNCTION)
            name = QualifiedName(namespaces=[], name=Identifier(first.value))
            return self._finish(FunctionCall(name=name, args=None), lead)

        self._mark_column_namespaces(tokens[:-1])
        last = tokens[-1]
        self._set_role(last, LexemeRole.COLUMN, ('column', normalize_name(last)))
        identifiers = [self._identifier_from(t) for t in tokens]
        return self._finish(ColumnReference(column=identifiers[-1], namespaces=identifiers[:-1]), lead)

    def _mark_column_namespaces(self, tokens: List[Token]):
        for token in tokens:
            normalized = normalize_name(token)
            if len(tokens) == 1 and self._cte_in_scope(normalized):
                self._set_role(token, LexemeRole.CTE, ('cte', normalized))
            else:
                self._set_role(token, LexemeRole.NAMESPACE)

    def _parse_function_call(self, name: QualifiedName, lead: List[PositionedComment]) -> Expression:
        """Parse (args) [FILTER (WHERE ...)] [OVER ...] après le nom de fonction."""
        with self._nested():
            self._expect(TokenType.LPAREN)
            lead = lead + self._collect()
            function_name = name.full_name.lower()
            if function_name not in self.functions_used:
                self.functions_used.append(function_name)

            call = FunctionCall(name=name)
            if self._check(TokenType.DISTINCT):
                self._advance()
                call.distinct = True
            elif self._check(TokenType.ALL) and self._peek().type != TokenType.RPAREN:
                self._advance()

            if self._check(TokenType.STAR) and self._peek().type == TokenType.RPAREN:
                self._advance()
                call.args = [self._finish(ColumnReference(column=Identifier('*')))]
            elif self._match(TokenType.SELECT, TokenType.WITH):
                call.args = [self._parse_query()]
            elif not self._match(TokenType.RPAREN, TokenType.ORDER):
                call.args = self._parse_expression_list()
            if self._check(TokenType.ORDER):
                call.order_by = self._parse_order_by_clause()
            self._expect(TokenType.RPAREN, f"Expected ) after arguments of {name.full_name}")

            if self._check(TokenType.FILTER) and self._peek().type == TokenType.LPAREN:
                self._advance()
                self._advance()
                self._expect(TokenType.WHERE, "Expected WHERE in FILTER")
                call.filter = self._parse_expression()
                self._expect(TokenType.RPAREN, "Expected ) after FILTER")

            if self._check(TokenType.OVER):
                self._advance()
                call = self._finish(call, lead)
                lead = []
                if self._check(TokenType.LPAREN):
                    window = self._parse_window_spec()
                else:
                    window = self._parse_identifier(LexemeRole.ALIAS)
                return self._finish(WindowFunctionCall(function=call, window=window))
            return self._finish(call, lead)

    def _parse_window_spec(self) -> WindowSpec:
        """Parse ( [base] [PARTITION BY ...] [ORDER BY ...] [cadre] )."""
        self._expect(TokenType.LPAREN, "Expected ( in window specification")
        lead = self._collect()
        spec = WindowSpec()
        if self._check(TokenType.IDENTIFIER):
            spec.base_name = self._parse_identifier(LexemeRole.ALIAS)
        if self._consume_if(TokenType.PARTITION):
            self._expect(TokenType.BY, "Expected BY after PARTITION")
            spec.partition_by = self._parse_expression_list()
        if self._check(TokenType.ORDER):
            spec.order_by = self._parse_order_by_clause()
        if self._match(TokenType.ROWS, TokenType.RANGE, TokenType.GROUPS):
            spec.frame = self._parse_window_frame()
        self._expect(TokenType.RPAREN, "Expected ) after window specification")
        return self._finish(spec, lead)

    def _parse_window_frame(self) -> WindowFrame:
        unit = self._advance().value.lower()
        if self._consume_if(TokenType.BETWEEN):
            start = self._parse_frame_bound()
            self._expect(TokenType.AND, "Expected AND in frame BETWEEN")
            end = self._parse_frame_bound()
            return WindowFrame(unit=unit, start=start, end=end)
        return WindowFrame(unit=unit, start=self._parse_frame_bound())

    def _parse_frame_bound(self) -> WindowFrameBound:
        if self._consume_if(TokenType.UNBOUNDED):
            if not self._match(TokenType.PRECEDING, TokenType.FOLLOWING):
                raise self._error("Expected PRECEDING or FOLLOWING", expected="PRECEDING or FOLLOWING")
            return WindowFrameBound(bound='unbounded ' + self._advance().value.lower())
        if self._consume_if(TokenType.CURRENT):
            self._expect(TokenType.ROW, "Expected ROW after CURRENT")
            return WindowFrameBound(bound='current row')
        offset = self._parse_expression(PREC_CONCAT)
        if not self._match(TokenType.PRECEDING, TokenType.FOLLOWING):
            raise self._error("Expected PRECEDING or FOLLOWING", expected="PRECEDING or FOLLOWING")
        return WindowFrameBound(bound=self._advance().value.lower(), offset=offset)

    def _parse_case_expression(self) -> CaseExpression:
        """Parse une expression CASE."""
        with self._nested():
            self._expect(TokenType.CASE)
            lead = self._collect()

            # CASE simple (CASE expr WHEN ...) ou CASE recherché (CASE WHEN cond ...)
            operand = None
            if not self._check(TokenType.WHEN):
                operand = self._parse_expression()
                operand.positioned_comments.extend(self._collect())

            branches = []
            while self._check(TokenType.WHEN):
                branch_lead = self._take_leading()
                self._advance()
                branch_lead += self._collect()
                condition = self._parse_expression()
                self._expect(TokenType.THEN, "Expected THEN in CASE")
                result = self._parse_expression()
                branches.append(self._finish(CaseBranch(condition=condition, result=result), branch_lead))
            if not branches:
                raise self._error("Expected WHEN in CASE", expected="WHEN")

            else_value = None
            if self._check(TokenType.ELSE):
                else_lead = self._take_leading()
                self._advance()
                else_lead += self._collect()
                else_value = self._parse_expression()
                if else_lead:
                    else_value.positioned_comments = else_lead + else_value.positioned_comments

            self._expect(TokenType.END, "Expected END to close CASE")
            node = CaseExpression(branches=branches, operand=operand, else_value=else_value)
            return self._finish(node, lead)


def parse(sql: str) -> ASTNode:
    """
    Fonction utilitaire: parse du SQL et retourne la racine de l'AST.

    Raises:
        LexError, ParseError
    """
    return SQLParser().parse(sql).statement


def parse_many(sql: str) -> List[ASTNode]:
    """Parse un script: une racine d'AST par instruction."""
    return [result.statement for result in SQLParser().parse_many(sql)]


def _split_statements(raw_tokens: List[Token]):
    """Découpe les tokens bruts après chaque ';', chaque segment terminé par un EOF."""
    segment: List[Token] = []
    for token in raw_tokens:
        if token.type == TokenType.EOF:
            break
        segment.append(token)
        if token.type == TokenType.SEMICOLON:
            end = Token(TokenType.EOF, '', token.end_line, token.end_column, token.position + 1,
                        token.end_line, token.end_column)
            yield segment + [end]
            segment = []
    yield segment + [raw_tokens[-1]]


def parse_result(sql: str) -> ParseResult:
    """Parse du SQL et retourne le ParseResult complet (tokens, index...)."""
    return SQLParser().parse(sql)


def analyze(sql: str) -> AnalyzeResult:
    """
    Variante non levante de parse().

    Returns:
        AnalyzeResult(success, query, error)
    """
    try:
        return AnalyzeResult(success=True, query=parse(sql))
    except (LexError, ParseError) as exc:
        logger.debug("analyze() failed: %s", exc)
        return AnalyzeResult(success=False, error=exc)
