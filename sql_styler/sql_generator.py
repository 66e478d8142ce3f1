"""
SQL Generator - Traduit un AST en arbre de jetons d'impression.

Le générateur ne décide d'aucune mise en page: il produit des
PrintToken typés (mots-clés, valeurs, virgules, conteneurs) que
l'imprimeur (printer.SqlPrinter) place ensuite sur les lignes.
Il se charge en revanche de tout ce qui dépend du contenu:

- échappement des identifiants,
- rendu et collecte des paramètres,
- parenthèses nécessaires sur les arbres construits par programme,
- sélection des commentaires selon le mode d'export.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Set, Union

from .ast_nodes import (
    ASTNode, CommentAnchor, Identifier, QualifiedName, ColumnReference,
    Literal, TypedLiteral, ParameterExpression, BinaryExpression, LogicalExpression,
    UnaryExpression, BetweenExpression, InExpression, ExistsExpression, CaseBranch,
    CaseExpression, FunctionCall, WindowFrameBound, WindowFrame, WindowSpec,
    WindowFunctionCall, CastExpression, ParenExpression, SubqueryExpression,
    TupleExpression, ArrayExpression, ArraySubscript, IntervalExpression,
    SelectItem, SelectClause, TableSource, SubquerySource, FunctionSource,
    SourceExpression, JoinClause, FromClause, WhereClause, GroupingSetsExpression,
    GroupByClause, HavingClause, OrderByItem, OrderByClause, WindowDefinition,
    WindowClause, LimitClause, OffsetClause, FetchClause, ForClause, CommonTable,
    WithClause, SimpleSelectQuery, BinarySelectQuery, ParenthesizedQuery,
    ValuesQuery, ReturningClause, SetClauseItem, SetClause, InsertQuery,
    UpdateQuery, DeleteQuery, MergeUpdateAction, MergeDeleteAction, MergeInsertAction,
    MergeDoNothingAction, MergeWhenClause, MergeQuery, ReferenceDefinition,
    ColumnConstraintDefinition,
    TableColumnDefinition, TableConstraintDefinition, CreateTableQuery,
    AlterTableAction, AlterTableStatement, DropStatement, CreateIndexStatement,
    ExplainOption, ExplainStatement, AnalyzeStatement, ParseResult,
)
from .errors import FormatError
from .print_tokens import (
    ContainerType, PrintToken, PrintTokenType, NEWLINE_BEFORE_CONTAINERS,
    argument_comma, comma, container, dot, keyword, operator, paren, space, value,
)
from .style import CommentExportMode, StyleConfiguration
from .tokenizer import SQLTokenizer

logger = logging.getLogger(__name__)

QUERY_TYPES = (SimpleSelectQuery, BinarySelectQuery, ParenthesizedQuery, ValuesQuery)

_BARE_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_$]*$')

# Précédence des nœuds, alignée sur celle du parser (9 = atome)
_OPERATOR_PRECEDENCE = {
    '||': 5,
    '+': 6, '-': 6,
    '*': 7, '/': 7, '%': 7,
}
PREC_ATOM = 9


def node_precedence(node: ASTNode) -> int:
    """Précédence d'un nœud d'expression, de 1 (OR) à 9 (atome)."""
    if isinstance(node, LogicalExpression):
        return 1 if node.operator == 'or' else 2
    if isinstance(node, UnaryExpression):
        return 3 if node.operator.lower() == 'not' else 8
    if isinstance(node, (BetweenExpression, InExpression)):
        return 4
    if isinstance(node, BinaryExpression):
        return _OPERATOR_PRECEDENCE.get(node.operator, 4)
    return PREC_ATOM


def _has_tail(query: ASTNode) -> bool:
    """Vrai pour un SELECT portant ORDER BY, LIMIT, OFFSET, FETCH ou FOR."""
    if not isinstance(query, SimpleSelectQuery):
        return False
    return any(clause is not None for clause in (
        query.order_by_clause, query.limit_clause, query.offset_clause,
        query.fetch_clause, query.for_clause))


def is_reserved_word(name: str) -> bool:
    token_type = SQLTokenizer.KEYWORDS.get(name.lower())
    return token_type is not None and token_type not in SQLTokenizer.NON_RESERVED


class SQLGenerator:
    """
    Génère l'arbre de PrintToken d'un AST.

    Une instance est réutilisable: chaque appel à generate() repart
    d'une liste de paramètres vide.

    Usage:
        generator = SQLGenerator(style)
        token = generator.generate(query)
        generator.params   # valeurs des paramètres rencontrés
    """

    def __init__(self, style: Optional[StyleConfiguration] = None):
        self.style = style or StyleConfiguration()
        self.params: Union[Dict[str, Any], List[Any]] = {}
        self._root: Optional[ASTNode] = None
        self._explicit_names: Set[str] = set()

    def generate(self, node: Union[ASTNode, ParseResult]) -> PrintToken:
        """
        Génère les jetons d'impression d'une instruction.

        Args:
            node: Nœud racine ou ParseResult

        Returns:
            PrintToken racine

        Raises:
            FormatError: nœud sans règle de génération
        """
        if isinstance(node, ParseResult):
            node = node.statement
        self.params = {} if self.style.parameter_style == 'named' else []
        self._root = node
        self._explicit_names = {n.name for n in node.walk()
                                if isinstance(n, ParameterExpression) and n.name}
        return self._generate(node)

    def _generate(self, node: ASTNode) -> PrintToken:
        """Dispatch vers la méthode appropriée selon le type de nœud."""
        method = getattr(self, f'_gen_{type(node).__name__}', None)
        if method is None:
            raise FormatError(f"No generation rule for node type {type(node).__name__}")
        return self._wrap_comments(node, method(node))

    # ============== Utilitaires ==============

    @staticmethod
    def _join(tokens: List[PrintToken], separator=comma) -> List[PrintToken]:
        """Intercale `separator` (suivi d'un espace) entre les jetons."""
        result: List[PrintToken] = []
        for index, token in enumerate(tokens):
            if index:
                result.append(separator())
                result.append(space())
            result.append(token)
        return result

    @staticmethod
    def _spaced(tokens: List[Optional[PrintToken]]) -> List[PrintToken]:
        """Intercale des espaces entre les jetons non vides."""
        result: List[PrintToken] = []
        for token in tokens:
            if token is None or token.is_empty():
                continue
            if result:
                result.append(space())
            result.append(token)
        return result

    def _list(self, nodes: List[ASTNode], separator=comma) -> List[PrintToken]:
        return self._join([self._generate(node) for node in nodes], separator)

    def _arguments(self, nodes: List[ASTNode]) -> List[PrintToken]:
        """(a, b, c) avec des virgules qui ne coupent jamais la ligne."""
        return [paren('(')] + self._list(nodes, argument_comma) + [paren(')')]

    def _inline_query(self, query: ASTNode, container_type=ContainerType.INLINE_QUERY) -> List[PrintToken]:
        return [paren('('), container(container_type, [self._generate(query)]), paren(')')]

    def _optional(self, node: Optional[ASTNode]) -> Optional[PrintToken]:
        return self._generate(node) if node is not None else None

    def _wrapped(self, node: ASTNode, parent_precedence: int, strict: bool = False) -> PrintToken:
        """Génère un opérande en l'entourant de parenthèses si nécessaire."""
        token = self._generate(node)
        precedence = node_precedence(node)
        if precedence < parent_precedence or (strict and precedence == parent_precedence):
            return container(ContainerType.PAREN_EXPRESSION, [paren('('), token, paren(')')])
        return token

    # ============== Commentaires ==============

    def _comment_blocks(self, node: ASTNode) -> Dict[CommentAnchor, PrintToken]:
        mode = self.style.export_comment
        if mode == CommentExportMode.NONE or not node.positioned_comments:
            return {}
        comments = node.positioned_comments
        if mode == CommentExportMode.TOP_HEADER_ONLY:
            if node is not self._root:
                return {}
            comments = [c for c in comments if c.anchor == CommentAnchor.HEADER]
        elif mode == CommentExportMode.HEADER_ONLY:
            comments = [c for c in comments if c.anchor in (CommentAnchor.HEADER, CommentAnchor.LEADING)]

        blocks: Dict[CommentAnchor, PrintToken] = {}
        for comment in comments:
            lines = comment.lines()
            if not lines:
                continue
            block = blocks.setdefault(comment.anchor, PrintToken(
                PrintTokenType.CONTAINER, '', ContainerType.COMMENT_BLOCK, [], anchor=comment.anchor))
            block.inner_tokens.append(PrintToken(PrintTokenType.COMMENT, '\n'.join(lines), anchor=comment.anchor))
        return blocks

    def _wrap_comments(self, node: ASTNode, token: PrintToken) -> PrintToken:
        """Place les commentaires du nœud autour de son jeton."""
        blocks = self._comment_blocks(node)
        if not blocks:
            return token
        before: List[PrintToken] = []
        after: List[PrintToken] = []
        if CommentAnchor.HEADER in blocks:
            before.append(blocks[CommentAnchor.HEADER])
            if node is self._root:
                before.append(PrintToken(PrintTokenType.COMMENT_NEWLINE))
            else:
                before.append(space())
        if CommentAnchor.LEADING in blocks:
            before += [blocks[CommentAnchor.LEADING], space()]
        if CommentAnchor.TRAILING in blocks:
            after += [space(), blocks[CommentAnchor.TRAILING]]

        # Ces conteneurs commencent par un saut de ligne: les commentaires vont à l'intérieur
        if token.container_type in NEWLINE_BEFORE_CONTAINERS:
            token.inner_tokens = before + token.inner_tokens + after
            return token
        return container(ContainerType.NONE, before + [token] + after)

    # ============== Identifiants ==============

    def _escape(self, name: str, quoted: bool = False) -> str:
        if name == '*' and not quoted:
            return name
        escape = self.style.identifier_escape
        if escape is not None:
            start, end = escape
            return start + name.replace(end, end * 2) + end
        if quoted or not _BARE_IDENTIFIER.match(name) or is_reserved_word(name):
            return '"' + name.replace('"', '""') + '"'
        return name

    def _raw_name(self, identifier: Identifier) -> str:
        """Nom de fonction ou de méthode: imprimé tel quel, sauf s'il était quoté."""
        if identifier.quoted:
            start, end = self.style.identifier_escape or ('"', '"')
            return start + identifier.name.replace(end, end * 2) + end
        return identifier.name

    def _gen_Identifier(self, node: Identifier) -> PrintToken:
        return value(self._escape(node.name, node.quoted))

    def _gen_QualifiedName(self, node: QualifiedName) -> PrintToken:
        tokens = []
        for part in node.namespaces:
            tokens += [self._generate(part), dot()]
        tokens.append(self._generate(node.name))
        return container(ContainerType.NONE, tokens)

    def _function_name(self, node: QualifiedName) -> PrintToken:
        parts = [self._raw_name(part) for part in node.namespaces + [node.name]]
        return self._wrap_comments(node, value('.'.join(parts)))

    def _gen_ColumnReference(self, node: ColumnReference) -> PrintToken:
        tokens = []
        for part in node.namespaces:
            tokens += [self._generate(part), dot()]
        tokens.append(self._generate(node.column))
        return container(ContainerType.NONE, tokens)

    # ============== Littéraux et paramètres ==============

    def _gen_Literal(self, node: Literal) -> PrintToken:
        if node.literal_type == 'null':
            return keyword('null')
        if node.literal_type == 'unknown':
            return keyword('unknown')
        if node.literal_type == 'boolean':
            return keyword('true' if node.value else 'false')
        if node.raw is not None:
            return value(node.raw)
        if node.literal_type == 'string':
            return value("'" + str(node.value).replace("'", "''") + "'")
        return value(str(node.value))

    def _gen_TypedLiteral(self, node: TypedLiteral) -> PrintToken:
        return container(ContainerType.NONE, [keyword(node.type_name.lower()), space(), self._generate(node.value)])

    def _gen_ParameterExpression(self, node: ParameterExpression) -> PrintToken:
        prefix, suffix = self.style.parameter_affixes
        if self.style.parameter_style == 'anonymous':
            self.params.append(node.value)
            return PrintToken(PrintTokenType.PARAMETER, '?')
        if self.style.parameter_style == 'indexed':
            self.params.append(node.value)
            return PrintToken(PrintTokenType.PARAMETER, f'{prefix}{len(self.params)}{suffix}')
        name = node.name
        if not name:
            # nom de position, jamais pris par un paramètre nommé
            position = len(self.params) + 1
            while str(position) in self.params or str(position) in self._explicit_names:
                position += 1
            name = str(position)
        self.params[name] = node.value
        return PrintToken(PrintTokenType.PARAMETER, f'{prefix}{name}{suffix}')

    # ============== Expressions ==============

    def _gen_BinaryExpression(self, node: BinaryExpression) -> PrintToken:
        """
        a + b + c est un arbre ((a + b) + c): la branche gauche de même
        précédence est parcourue par une boucle et imprimée à plat.
        """
        precedence = node_precedence(node)
        chain = [node]
        left = node.left
        while (isinstance(left, BinaryExpression) and node_precedence(left) == precedence
               and not self._comment_blocks(left)):
            chain.append(left)
            left = left.left

        tokens = [self._wrapped(left, precedence)]
        for link in reversed(chain):
            op = link.operator
            op_token = keyword(op.lower()) if op[0].isalpha() else operator(op)
            tokens += [space(), op_token, space(), self._wrapped(link.right, precedence, strict=True)]
        return container(ContainerType.EXPRESSION, tokens)

    def _gen_LogicalExpression(self, node: LogicalExpression) -> PrintToken:
        precedence = node_precedence(node)
        tokens: List[PrintToken] = []
        for index, operand in enumerate(node.operands):
            if index:
                tokens += [space(), operator(node.operator.lower()), space()]
            tokens.append(self._wrapped(operand, precedence))
        return container(ContainerType.EXPRESSION, tokens)

    def _gen_UnaryExpression(self, node: UnaryExpression) -> PrintToken:
        if node.operator.lower() == 'not':
            return container(ContainerType.EXPRESSION,
                             [keyword('not'), space(), self._wrapped(node.operand, 3)])
        tokens = [operator(node.operator)]
        operand = node.operand
        # "- -1" ne doit pas devenir un commentaire "--1"
        if (isinstance(operand, UnaryExpression) and operand.operator in ('-', '+')) or \
                (isinstance(operand, Literal) and str(operand.raw or operand.value).startswith(('-', '+'))):
            tokens.append(space())
        tokens.append(self._wrapped(operand, 8))
        return container(ContainerType.EXPRESSION, tokens)

    def _gen_BetweenExpression(self, node: BetweenExpression) -> PrintToken:
        tokens = [
            self._wrapped(node.expression, 4), space(),
            keyword('not between' if node.negated else 'between'), space(),
            self._wrapped(node.lower, 5), space(), keyword('and'), space(),
            self._wrapped(node.upper, 5),
        ]
        return container(ContainerType.BETWEEN_EXPRESSION, tokens)

    def _gen_InExpression(self, node: InExpression) -> PrintToken:
        tokens = [self._wrapped(node.expression, 4), space(),
                  keyword('not in' if node.negated else 'in'), space()]
        if node.query is not None:
            tokens += self._inline_query(node.query)
        else:
            tokens += self._arguments(node.values)
        return container(ContainerType.EXPRESSION, tokens)

    def _gen_ExistsExpression(self, node: ExistsExpression) -> PrintToken:
        return container(ContainerType.EXPRESSION, [keyword('exists'), space()] + self._inline_query(node.query))

    def _gen_CaseBranch(self, node: CaseBranch) -> PrintToken:
        tokens = [keyword('when'), space(), self._generate(node.condition), space(),
                  keyword('then'), space(), self._generate(node.result)]
        return container(ContainerType.CASE_BRANCH, tokens)

    def _gen_CaseExpression(self, node: CaseExpression) -> PrintToken:
        tokens = [keyword('case')]
        if node.operand is not None:
            tokens += [space(), self._generate(node.operand)]
        branches: List[PrintToken] = []
        for branch in node.branches:
            branches += [space(), self._generate(branch)]
        if node.else_value is not None:
            branches += [space(), container(ContainerType.CASE_ELSE,
                                            [keyword('else'), space(), self._generate(node.else_value)])]
        tokens.append(container(ContainerType.SWITCH_CASE_ARGUMENT, branches))
        tokens += [space(), keyword('end')]
        return container(ContainerType.CASE_EXPRESSION, tokens)

    def _inline_order_by(self, clause: OrderByClause) -> PrintToken:
        tokens = [keyword('order by'), space()] + self._list(clause.items, argument_comma)
        return self._wrap_comments(clause, container(ContainerType.NONE, tokens))

    def _gen_FunctionCall(self, node: FunctionCall) -> PrintToken:
        tokens = [self._function_name(node.name)]
        if node.args is None:
            return container(ContainerType.FUNCTION_CALL, tokens)
        tokens.append(paren('('))
        if node.distinct:
            tokens += [keyword('distinct'), space()]
        arguments = []
        for arg in node.args:
            if isinstance(arg, QUERY_TYPES):
                arguments.append(container(ContainerType.INLINE_QUERY, [self._generate(arg)]))
            else:
                arguments.append(self._generate(arg))
        tokens += self._join(arguments, argument_comma)
        if node.order_by is not None:
            tokens += [space(), self._inline_order_by(node.order_by)]
        tokens.append(paren(')'))
        if node.filter is not None:
            tokens += [space(), keyword('filter'), space(), paren('('), keyword('where'), space(),
                       self._generate(node.filter), paren(')')]
        return container(ContainerType.FUNCTION_CALL, tokens)

    def _gen_WindowFrameBound(self, node: WindowFrameBound) -> PrintToken:
        if node.offset is not None:
            return container(ContainerType.NONE, [self._generate(node.offset), space(), keyword(node.bound)])
        return keyword(node.bound)

    def _gen_WindowFrame(self, node: WindowFrame) -> PrintToken:
        tokens = [keyword(node.unit.lower()), space()]
        if node.end is not None:
            tokens += [keyword('between'), space(), self._generate(node.start), space(),
                       keyword('and'), space(), self._generate(node.end)]
        else:
            tokens.append(self._generate(node.start))
        return container(ContainerType.NONE, tokens)

    def _gen_WindowSpec(self, node: WindowSpec) -> PrintToken:
        parts: List[Optional[PrintToken]] = [self._optional(node.base_name)]
        if node.partition_by:
            parts.append(container(ContainerType.NONE, [keyword('partition by'), space()]
                                   + self._list(node.partition_by, argument_comma)))
        parts.append(self._optional(node.order_by))
        parts.append(self._optional(node.frame))
        tokens = [paren('(')] + self._spaced(parts) + [paren(')')]
        return container(ContainerType.WINDOW_SPEC, tokens)

    def _gen_WindowFunctionCall(self, node: WindowFunctionCall) -> PrintToken:
        tokens = [self._generate(node.function), space(), keyword('over'), space(), self._generate(node.window)]
        return container(ContainerType.EXPRESSION, tokens)

    def _gen_CastExpression(self, node: CastExpression) -> PrintToken:
        target = PrintToken(PrintTokenType.TYPE, node.target_type)
        if node.syntax == '::':
            return container(ContainerType.EXPRESSION,
                             [self._wrapped(node.expression, PREC_ATOM), operator('::'), target])
        tokens = [keyword('cast'), paren('('), self._generate(node.expression), space(),
                  keyword('as'), space(), target, paren(')')]
        return container(ContainerType.FUNCTION_CALL, tokens)

    def _gen_ParenExpression(self, node: ParenExpression) -> PrintToken:
        return container(ContainerType.PAREN_EXPRESSION,
                         [paren('('), self._generate(node.expression), paren(')')])

    def _gen_SubqueryExpression(self, node: SubqueryExpression) -> PrintToken:
        return container(ContainerType.EXPRESSION, self._inline_query(node.query))

    def _gen_TupleExpression(self, node: TupleExpression) -> PrintToken:
        return container(ContainerType.EXPRESSION, self._arguments(node.items))

    def _gen_ArrayExpression(self, node: ArrayExpression) -> PrintToken:
        tokens = [keyword('array'), paren('[')] + self._list(node.elements, argument_comma) + [paren(']')]
        return container(ContainerType.EXPRESSION, tokens)

    def _gen_ArraySubscript(self, node: ArraySubscript) -> PrintToken:
        tokens = [self._wrapped(node.expression, PREC_ATOM), paren('['), self._generate(node.index), paren(']')]
        return container(ContainerType.EXPRESSION, tokens)

    def _gen_IntervalExpression(self, node: IntervalExpression) -> PrintToken:
        tokens = [keyword('interval'), space(), self._generate(node.value)]
        if node.unit:
            tokens += [space(), keyword(node.unit.lower())]
        return container(ContainerType.EXPRESSION, tokens)

    def _gen_GroupingSetsExpression(self, node: GroupingSetsExpression) -> PrintToken:
        return container(ContainerType.EXPRESSION,
                         [keyword(node.kind), space()] + self._arguments(node.sets))

    # ============== SELECT ==============

    def _gen_SelectItem(self, node: SelectItem) -> PrintToken:
        tokens = [self._generate(node.expression)]
        if node.alias is not None:
            tokens += [space(), keyword('as'), space(), self._generate(node.alias)]
        return container(ContainerType.SELECT_ITEM, tokens)

    def _gen_SelectClause(self, node: SelectClause) -> PrintToken:
        token = container(ContainerType.SELECT_CLAUSE, [space()] + self._list(node.items),
                          text='select', token_type=PrintTokenType.KEYWORD)
        if node.distinct_on:
            token.keyword_tokens = [space(), keyword('distinct on'), space()] + self._arguments(node.distinct_on)
        elif node.distinct:
            token.keyword_tokens = [space(), keyword('distinct')]
        return token

    def _clause(self, container_type: ContainerType, text: str, tokens: List[PrintToken]) -> PrintToken:
        """Clause introduite par un mot-clé: `text` puis les éléments indentés."""
        return container(container_type, [space()] + tokens, text=text, token_type=PrintTokenType.KEYWORD)

    # ============== FROM ==============

    def _gen_TableSource(self, node: TableSource) -> PrintToken:
        tokens = [self._generate(node.name)]
        if node.only:
            tokens = [keyword('only'), space()] + tokens
        return container(ContainerType.NONE, tokens)

    def _gen_SubquerySource(self, node: SubquerySource) -> PrintToken:
        return container(ContainerType.NONE, self._inline_query(node.query))

    def _gen_FunctionSource(self, node: FunctionSource) -> PrintToken:
        return self._generate(node.function)

    def _gen_SourceExpression(self, node: SourceExpression) -> PrintToken:
        tokens = []
        if node.lateral:
            tokens += [keyword('lateral'), space()]
        tokens.append(self._generate(node.source))
        if node.alias is not None:
            tokens += [space(), keyword('as'), space(), self._generate(node.alias)]
            if node.column_aliases:
                tokens += self._arguments(node.column_aliases)
        return container(ContainerType.SOURCE_EXPRESSION, tokens)

    def _gen_JoinClause(self, node: JoinClause) -> PrintToken:
        # Jointure par virgule: la virgule est émise par la clause FROM
        if node.join_type == ',':
            return self._generate(node.source)
        tokens = [keyword(node.join_type.lower()), space(), self._generate(node.source)]
        if node.condition is not None:
            tokens += [space(), keyword('on'), space(),
                       container(ContainerType.JOIN_ON_CLAUSE, [self._generate(node.condition)])]
        elif node.using:
            tokens += [space(), keyword('using'), space()] + self._arguments(node.using)
        return container(ContainerType.JOIN_CLAUSE, tokens)

    def _gen_FromClause(self, node: FromClause) -> PrintToken:
        tokens = [self._generate(node.source)]
        for join in node.joins:
            if join.join_type == ',':
                tokens += [comma(), space(), self._generate(join)]
            else:
                tokens += [space(), self._generate(join)]
        return self._clause(ContainerType.FROM_CLAUSE, 'from', tokens)

    # ============== Autres clauses ==============

    def _gen_WhereClause(self, node: WhereClause) -> PrintToken:
        return self._clause(ContainerType.WHERE_CLAUSE, 'where', [self._generate(node.condition)])

    def _gen_GroupByClause(self, node: GroupByClause) -> PrintToken:
        return self._clause(ContainerType.GROUP_BY_CLAUSE, 'group by', self._list(node.items))

    def _gen_HavingClause(self, node: HavingClause) -> PrintToken:
        return self._clause(ContainerType.HAVING_CLAUSE, 'having', [self._generate(node.condition)])

    def _gen_OrderByItem(self, node: OrderByItem) -> PrintToken:
        tokens = [self._generate(node.expression)]
        if node.direction:
            tokens += [space(), keyword(node.direction.lower())]
        if node.nulls:
            tokens += [space(), keyword('nulls ' + node.nulls.lower())]
        return container(ContainerType.NONE, tokens)

    def _gen_OrderByClause(self, node: OrderByClause) -> PrintToken:
        return self._clause(ContainerType.ORDER_BY_CLAUSE, 'order by', self._list(node.items))

    def _gen_WindowDefinition(self, node: WindowDefinition) -> PrintToken:
        return container(ContainerType.NONE, [self._generate(node.name), space(), keyword('as'), space(),
                                              self._generate(node.spec)])

    def _gen_WindowClause(self, node: WindowClause) -> PrintToken:
        return self._clause(ContainerType.WINDOW_CLAUSE, 'window', self._list(node.windows))

    def _gen_LimitClause(self, node: LimitClause) -> PrintToken:
        return self._clause(ContainerType.LIMIT_CLAUSE, 'limit', [self._generate(node.value)])

    def _gen_OffsetClause(self, node: OffsetClause) -> PrintToken:
        tokens = [self._generate(node.value)]
        if node.unit:
            tokens += [space(), keyword(node.unit.lower())]
        return self._clause(ContainerType.OFFSET_CLAUSE, 'offset', tokens)

    def _gen_FetchClause(self, node: FetchClause) -> PrintToken:
        tokens = [keyword(node.position.lower())]
        if node.count is not None:
            tokens += [space(), self._generate(node.count)]
        tokens += [space(), keyword(node.unit.lower()), space(), keyword('only')]
        return self._clause(ContainerType.FETCH_CLAUSE, 'fetch', tokens)

    def _gen_ForClause(self, node: ForClause) -> PrintToken:
        return self._clause(ContainerType.FOR_CLAUSE, 'for', [keyword(node.lock_mode.lower())])

    def _gen_ReturningClause(self, node: ReturningClause) -> PrintToken:
        return self._clause(ContainerType.RETURNING_CLAUSE, 'returning', self._list(node.items))

    # ============== CTE ==============

    def _gen_CommonTable(self, node: CommonTable) -> PrintToken:
        tokens = [self._generate(node.name)]
        if node.columns:
            tokens += self._arguments(node.columns)
        tokens += [space(), keyword('as'), space()]
        if node.materialized is not None:
            tokens += [keyword('materialized' if node.materialized else 'not materialized'), space()]
        tokens += self._inline_query(node.query, ContainerType.CTE_QUERY)
        return container(ContainerType.COMMON_TABLE, tokens)

    def _gen_WithClause(self, node: WithClause) -> PrintToken:
        return self._clause(ContainerType.WITH_CLAUSE, 'with recursive' if node.recursive else 'with',
                            self._list(node.tables))

    # ============== Requêtes ==============

    def _gen_SimpleSelectQuery(self, node: SimpleSelectQuery) -> PrintToken:
        clauses = [
            node.with_clause, node.select_clause, node.from_clause, node.where_clause,
            node.group_by_clause, node.having_clause, node.window_clause, node.order_by_clause,
            node.limit_clause, node.offset_clause, node.fetch_clause, node.for_clause,
        ]
        return container(ContainerType.SIMPLE_SELECT_QUERY,
                         self._spaced([self._optional(clause) for clause in clauses]))

    def _gen_BinarySelectQuery(self, node: BinarySelectQuery) -> PrintToken:
        right = self._generate(node.right)
        if isinstance(node.right, BinarySelectQuery) or _has_tail(node.right):
            right = container(ContainerType.PARENTHESIZED_QUERY,
                              [paren('('), container(ContainerType.INLINE_QUERY, [right]), paren(')')])
        set_operator = PrintToken(PrintTokenType.KEYWORD, node.operator.lower(), ContainerType.SET_OPERATOR)
        tokens = self._spaced([
            self._generate(node.left), set_operator, right,
            self._optional(node.order_by_clause), self._optional(node.limit_clause),
            self._optional(node.offset_clause), self._optional(node.fetch_clause),
        ])
        return container(ContainerType.BINARY_SELECT_QUERY, tokens)

    def _gen_ParenthesizedQuery(self, node: ParenthesizedQuery) -> PrintToken:
        return container(ContainerType.PARENTHESIZED_QUERY, self._inline_query(node.query))

    def _gen_ValuesQuery(self, node: ValuesQuery) -> PrintToken:
        values = self._clause(ContainerType.VALUES, 'values', self._list(node.tuples))
        return container(ContainerType.VALUES_QUERY, self._spaced([self._optional(node.with_clause), values]))

    # ============== DML ==============

    def _gen_SetClauseItem(self, node: SetClauseItem) -> PrintToken:
        return container(ContainerType.NONE, [self._generate(node.column), space(), operator('='), space(),
                                              self._generate(node.value)])

    def _gen_SetClause(self, node: SetClause) -> PrintToken:
        return self._clause(ContainerType.SET_CLAUSE, 'set', self._list(node.items))

    def _gen_InsertQuery(self, node: InsertQuery) -> PrintToken:
        target = [self._generate(node.table)]
        if node.columns:
            target += [space()] + self._arguments(node.columns)
        insert = self._clause(ContainerType.INSERT_CLAUSE, 'insert into', target)
        source = self._generate(node.source) if node.source is not None else keyword('default values')
        tokens = self._spaced([
            self._optional(node.with_clause), insert, source, self._optional(node.returning_clause),
        ])
        return container(ContainerType.INSERT_QUERY, tokens)

    def _gen_UpdateQuery(self, node: UpdateQuery) -> PrintToken:
        tokens = self._spaced([
            self._optional(node.with_clause),
            self._clause(ContainerType.UPDATE_CLAUSE, 'update', [self._generate(node.table)]),
            self._generate(node.set_clause),
            self._optional(node.from_clause),
            self._optional(node.where_clause),
            self._optional(node.returning_clause),
        ])
        return container(ContainerType.UPDATE_QUERY, tokens)

    def _gen_DeleteQuery(self, node: DeleteQuery) -> PrintToken:
        using = None
        if node.using:
            using = self._clause(ContainerType.USING_CLAUSE, 'using', self._list(node.using))
        tokens = self._spaced([
            self._optional(node.with_clause),
            self._clause(ContainerType.DELETE_CLAUSE, 'delete from', [self._generate(node.table)]),
            using,
            self._optional(node.where_clause),
            self._optional(node.returning_clause),
        ])
        return container(ContainerType.DELETE_QUERY, tokens)

    # ============== MERGE ==============

    def _gen_MergeQuery(self, node: MergeQuery) -> PrintToken:
        tokens = self._spaced([
            self._optional(node.with_clause),
            self._clause(ContainerType.MERGE_INTO_CLAUSE, 'merge into', [self._generate(node.target)]),
            self._clause(ContainerType.USING_CLAUSE, 'using', [self._generate(node.source)]),
            self._clause(ContainerType.MERGE_ON_CLAUSE, 'on', [self._generate(node.on_condition)]),
        ] + [self._generate(clause) for clause in node.when_clauses])
        return container(ContainerType.MERGE_QUERY, tokens)

    def _gen_MergeWhenClause(self, node: MergeWhenClause) -> PrintToken:
        """WHEN ... THEN sur une ligne, l'action indentée dessous."""
        header = [space(), keyword(node.match_type.lower())]
        if node.condition is not None:
            header += [space(), keyword('and'), space(), self._generate(node.condition)]
        header += [space(), keyword('then')]
        token = self._clause(ContainerType.MERGE_WHEN_CLAUSE, 'when', [self._generate(node.action)])
        token.keyword_tokens = header
        return token

    def _gen_MergeUpdateAction(self, node: MergeUpdateAction) -> PrintToken:
        tokens = self._spaced([keyword('update'), self._generate(node.set_clause),
                               self._optional(node.where_clause)])
        return container(ContainerType.NONE, tokens)

    def _gen_MergeDeleteAction(self, node: MergeDeleteAction) -> PrintToken:
        return container(ContainerType.NONE, self._spaced([keyword('delete'), self._optional(node.where_clause)]))

    def _gen_MergeInsertAction(self, node: MergeInsertAction) -> PrintToken:
        tokens = [keyword('insert')]
        if node.columns:
            tokens += [space()] + self._arguments(node.columns)
        if node.values is None:
            tokens += [space(), keyword('default values')]
        else:
            tokens += [space(), keyword('values'), space(), self._generate(node.values)]
        return container(ContainerType.NONE, tokens)

    def _gen_MergeDoNothingAction(self, node: MergeDoNothingAction) -> PrintToken:
        return keyword('do nothing')

    # ============== DDL ==============

    def _gen_ReferenceDefinition(self, node: ReferenceDefinition) -> PrintToken:
        tokens = [keyword('references'), space(), self._generate(node.table)]
        if node.columns:
            tokens += self._arguments(node.columns)
        if node.on_delete:
            tokens += [space(), keyword('on delete ' + node.on_delete.lower())]
        if node.on_update:
            tokens += [space(), keyword('on update ' + node.on_update.lower())]
        return container(ContainerType.NONE, tokens)

    def _constraint_name(self, name: Optional[Identifier]) -> List[PrintToken]:
        if name is None:
            return []
        return [keyword('constraint'), space(), self._generate(name), space()]

    def _gen_ColumnConstraintDefinition(self, node: ColumnConstraintDefinition) -> PrintToken:
        tokens = self._constraint_name(node.name)
        kind = node.kind.lower()
        if kind == 'default':
            tokens += [keyword('default'), space(), self._generate(node.expression)]
        elif kind == 'check':
            tokens += [keyword('check'), space(), paren('('), self._generate(node.expression), paren(')')]
        elif kind == 'references':
            tokens.append(self._generate(node.reference))
        else:
            tokens.append(keyword(kind))
        return container(ContainerType.NONE, tokens)

    def _gen_TableColumnDefinition(self, node: TableColumnDefinition) -> PrintToken:
        tokens = [self._generate(node.name)]
        if node.data_type:
            tokens += [space(), PrintToken(PrintTokenType.TYPE, node.data_type)]
        for constraint in node.constraints:
            tokens += [space(), self._generate(constraint)]
        return container(ContainerType.NONE, tokens)

    def _gen_TableConstraintDefinition(self, node: TableConstraintDefinition) -> PrintToken:
        tokens = self._constraint_name(node.name)
        kind = node.kind.lower()
        tokens.append(keyword(kind))
        if kind == 'check':
            tokens += [space(), paren('('), self._generate(node.expression), paren(')')]
        else:
            tokens += [space()] + self._arguments(node.columns or [])
        if node.reference is not None:
            tokens += [space(), self._generate(node.reference)]
        return container(ContainerType.NONE, tokens)

    def _gen_CreateTableQuery(self, node: CreateTableQuery) -> PrintToken:
        words = ['create']
        if node.temporary:
            words.append('temporary')
        words.append('table')
        if node.if_not_exists:
            words.append('if not exists')
        tokens = [keyword(' '.join(words)), space(), self._generate(node.table)]
        if node.as_query is not None:
            tokens += [space(), keyword('as'), space(), self._generate(node.as_query)]
        else:
            definitions = self._list(node.columns + node.constraints)
            tokens += [space(), paren('('), container(ContainerType.CREATE_TABLE_DEFINITION, definitions),
                       paren(')')]
        return container(ContainerType.CREATE_TABLE_QUERY, tokens)

    def _gen_AlterTableAction(self, node: AlterTableAction) -> PrintToken:
        action = node.action_type.lower()
        tokens: List[PrintToken]
        if action == 'add column':
            words = 'add column if not exists' if node.if_exists else 'add column'
            tokens = [keyword(words), space(), self._generate(node.column)]
        elif action == 'add constraint':
            tokens = [keyword('add'), space(), self._generate(node.constraint)]
        elif action in ('drop column', 'drop constraint'):
            words = action + (' if exists' if node.if_exists else '')
            tokens = [keyword(words), space(), self._generate(node.name)]
            if node.behavior:
                tokens += [space(), keyword(node.behavior.lower())]
        elif action == 'rename column':
            tokens = [keyword('rename column'), space(), self._generate(node.name), space(),
                      keyword('to'), space(), self._generate(node.new_name)]
        elif action == 'rename to':
            tokens = [keyword('rename to'), space(), self._generate(node.new_name)]
        elif action.startswith('alter column '):
            tokens = [keyword('alter column'), space(), self._generate(node.name), space()]
            if action == 'alter column type':
                tokens += [keyword('type'), space(), PrintToken(PrintTokenType.TYPE, node.data_type)]
            elif action == 'alter column set default':
                tokens += [keyword('set default'), space(), self._generate(node.expression)]
            elif action in ('alter column drop default', 'alter column set not null',
                            'alter column drop not null'):
                tokens.append(keyword(action[len('alter column '):]))
            else:
                raise FormatError(f"Unsupported ALTER TABLE action: {node.action_type}")
        else:
            raise FormatError(f"Unsupported ALTER TABLE action: {node.action_type}")
        return container(ContainerType.NONE, tokens)

    def _gen_AlterTableStatement(self, node: AlterTableStatement) -> PrintToken:
        words = ['alter table']
        if node.if_exists:
            words.append('if exists')
        if node.only:
            words.append('only')
        tokens = [keyword(' '.join(words)), space(), self._generate(node.table), space(),
                  container(ContainerType.ALTER_TABLE_STATEMENT, self._list(node.actions))]
        return container(ContainerType.NONE, tokens)

    def _gen_DropStatement(self, node: DropStatement) -> PrintToken:
        words = ['drop', node.object_type.lower()]
        if node.if_exists:
            words.append('if exists')
        tokens = [keyword(' '.join(words)), space()] + self._list(node.names, argument_comma)
        if node.behavior:
            tokens += [space(), keyword(node.behavior.lower())]
        return container(ContainerType.DROP_STATEMENT, tokens)

    def _gen_CreateIndexStatement(self, node: CreateIndexStatement) -> PrintToken:
        words = ['create']
        if node.unique:
            words.append('unique')
        words.append('index')
        if node.concurrently:
            words.append('concurrently')
        if node.if_not_exists:
            words.append('if not exists')
        tokens = [keyword(' '.join(words))]
        if node.name is not None:
            tokens += [space(), self._generate(node.name)]
        tokens += [space(), keyword('on'), space(), self._generate(node.table)]
        if node.using is not None:
            tokens += [space(), keyword('using'), space(), value(self._raw_name(node.using))]
        tokens += [space(), paren('('),
                   container(ContainerType.INDEX_COLUMN_LIST, self._list(node.columns)), paren(')')]
        if node.where_clause is not None:
            tokens += [space(), self._generate(node.where_clause)]
        return container(ContainerType.CREATE_INDEX_STATEMENT, tokens)

    def _gen_ExplainOption(self, node: ExplainOption) -> PrintToken:
        tokens = [keyword(node.name.lower())]
        if node.value is not None:
            tokens += [space(), value(node.value)]
        return container(ContainerType.NONE, tokens)

    def _gen_ExplainStatement(self, node: ExplainStatement) -> PrintToken:
        tokens = [keyword('explain')]
        if node.analyze:
            tokens += [space(), keyword('analyze')]
        if node.verbose:
            tokens += [space(), keyword('verbose')]
        if node.options:
            tokens += [space()] + self._arguments(node.options)
        tokens += [space(), self._generate(node.statement)]
        return container(ContainerType.EXPLAIN_STATEMENT, tokens)

    def _gen_AnalyzeStatement(self, node: AnalyzeStatement) -> PrintToken:
        tokens = [keyword('analyze')]
        if node.verbose:
            tokens += [space(), keyword('verbose')]
        if node.target is not None:
            tokens += [space(), self._generate(node.target)]
            if node.columns:
                tokens += [space()] + self._arguments(node.columns)
        return container(ContainerType.ANALYZE_STATEMENT, tokens)
