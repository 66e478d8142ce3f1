"""
Nœuds de l'Arbre Syntaxique Abstrait (AST) pour SQL.

Ce module définit toutes les classes représentant les différents
éléments d'une requête SQL. Les nœuds sont des données pures: aucun
n'a de logique de parsing ni de référence vers son parent.

Chaque nœud porte une liste ``positioned_comments`` contenant les
commentaires du source qui lui ont été rattachés par le parser.
Les transformations doivent produire de nouveaux nœuds (voir ``clone``)
plutôt que modifier un arbre partagé.
"""

import copy
from abc import ABC
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


class CommentAnchor(Enum):
    """Position d'un commentaire par rapport à son nœud."""
    LEADING = "leading"
    TRAILING = "trailing"
    HEADER = "header"


@dataclass
class PositionedComment:
    """Commentaire du source rattaché à un nœud."""
    text: str
    anchor: CommentAnchor
    line: int = 0
    column: int = 0

    @property
    def is_line_comment(self) -> bool:
        return self.text.startswith('--')

    @property
    def content(self) -> str:
        """Texte du commentaire sans ses délimiteurs."""
        if self.is_line_comment:
            return self.text[2:].strip()
        body = self.text
        if body.startswith('/*'):
            body = body[2:]
        if body.endswith('*/'):
            body = body[:-2]
        return body.strip()

    def lines(self) -> List[str]:
        """Lignes non vides du commentaire, décoration '*' retirée."""
        result = []
        for raw in self.content.splitlines():
            line = raw.strip()
            if line.startswith('* ') or line == '*':
                line = line[1:].strip()
            if line:
                result.append(line)
        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "anchor": self.anchor.value,
            "line": self.line,
            "column": self.column,
        }


def _serialize(value: Any) -> Any:
    if isinstance(value, (ASTNode, PositionedComment)):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass
class ASTNode(ABC):
    """Classe de base pour tous les nœuds de l'AST."""
    positioned_comments: List[PositionedComment] = field(
        default_factory=list, kw_only=True, compare=False, repr=False
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convertit le nœud en dictionnaire."""
        result: Dict[str, Any] = {"node_type": self.get_type()}
        for f in fields(self):
            if f.name == 'positioned_comments':
                continue
            result[f.name] = _serialize(getattr(self, f.name))
        if self.positioned_comments:
            result["comments"] = _serialize(self.positioned_comments)
        return result

    def get_type(self) -> str:
        """Retourne le type du nœud."""
        return self.__class__.__name__

    def clone(self) -> "ASTNode":
        """Copie profonde du sous-arbre, commentaires compris."""
        return copy.deepcopy(self)

    def comments(self, anchor: Optional[CommentAnchor] = None) -> List[PositionedComment]:
        """Commentaires du nœud, éventuellement filtrés par ancrage."""
        if anchor is None:
            return list(self.positioned_comments)
        return [c for c in self.positioned_comments if c.anchor == anchor]

    def children(self) -> Iterator["ASTNode"]:
        """Nœuds enfants directs, dans l'ordre des champs."""
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, ASTNode):
                yield value
            elif isinstance(value, (list, tuple)):
                for item in value:
                    if isinstance(item, ASTNode):
                        yield item

    def walk(self) -> Iterator["ASTNode"]:
        """Parcours en profondeur (préfixe) du sous-arbre."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(list(node.children())))


# ============== Expressions ==============

@dataclass
class Expression(ASTNode):
    """Classe de base pour les expressions."""
    pass


@dataclass
class Identifier(Expression):
    """Identifiant simple (nom de colonne, table, alias...)."""
    name: str
    quoted: bool = False


@dataclass
class QualifiedName(Expression):
    """Nom qualifié: schema.table, catalog.schema.table, fonction..."""
    namespaces: List[Identifier]
    name: Identifier

    @property
    def full_name(self) -> str:
        return '.'.join([ns.name for ns in self.namespaces] + [self.name.name])

    @classmethod
    def of(cls, dotted: str) -> "QualifiedName":
        parts = [Identifier(part) for part in dotted.split('.')]
        return cls(namespaces=parts[:-1], name=parts[-1])


@dataclass
class ColumnReference(Expression):
    """Référence de colonne (table.colonne, *, t.*)."""
    column: Identifier
    namespaces: List[Identifier] = field(default_factory=list)

    @property
    def is_wildcard(self) -> bool:
        return self.column.name == '*' and not self.column.quoted

    @property
    def full_name(self) -> str:
        return '.'.join([ns.name for ns in self.namespaces] + [self.column.name])


@dataclass
class Literal(Expression):
    """Valeur littérale (nombre, chaîne, booléen, NULL)."""
    value: Any
    literal_type: str  # 'integer', 'decimal', 'string', 'boolean', 'null'
    raw: Optional[str] = None  # Texte source exact, si connu


@dataclass
class TypedLiteral(Expression):
    """Littéral typé: DATE '2024-01-01', TIMESTAMP '...'."""
    type_name: str
    value: Literal


@dataclass
class ParameterExpression(Expression):
    """Paramètre de requête (:name, $1, ?) avec sa valeur éventuelle."""
    name: str = ''
    value: Any = None
    index: Optional[int] = None


@dataclass
class BinaryExpression(Expression):
    """Opération binaire (=, +, ||, LIKE, IS NOT...)."""
    left: Expression
    operator: str
    right: Expression


@dataclass
class LogicalExpression(Expression):
    """Conjonction ou disjonction n-aire (a AND b AND c)."""
    operator: str  # 'and' ou 'or'
    operands: List[Expression]

    @classmethod
    def conjoin(cls, *predicates: Expression) -> Expression:
        """
        Combine des prédicats par AND en aplatissant les AND existants.

        Un seul prédicat est retourné tel quel.
        """
        operands: List[Expression] = []
        for predicate in predicates:
            if predicate is None:
                continue
            if isinstance(predicate, LogicalExpression) and predicate.operator == 'and':
                operands.extend(predicate.operands)
            else:
                operands.append(predicate)
        if not operands:
            raise ValueError("conjoin() requires at least one predicate")
        if len(operands) == 1:
            return operands[0]
        return cls(operator='and', operands=operands)


@dataclass
class UnaryExpression(Expression):
    """Opération unaire (NOT, -, +)."""
    operator: str
    operand: Expression


@dataclass
class BetweenExpression(Expression):
    """expr [NOT] BETWEEN lower AND upper."""
    expression: Expression
    lower: Expression
    upper: Expression
    negated: bool = False


@dataclass
class InExpression(Expression):
    """expr [NOT] IN (valeurs | sous-requête)."""
    expression: Expression
    values: List[Expression] = field(default_factory=list)
    query: Optional[ASTNode] = None
    negated: bool = False


@dataclass
class ExistsExpression(Expression):
    """EXISTS (sous-requête)."""
    query: ASTNode


@dataclass
class CaseBranch(ASTNode):
    """Branche WHEN ... THEN ...."""
    condition: Expression
    result: Expression


@dataclass
class CaseExpression(Expression):
    """Expression CASE (simple ou recherchée)."""
    branches: List[CaseBranch]
    operand: Optional[Expression] = None
    else_value: Optional[Expression] = None


@dataclass
class FunctionCall(Expression):
    """
    Appel de fonction.

    ``args`` vaut None pour les fonctions sans parenthèses
    (CURRENT_DATE...). Un argument peut être une requête
    (ANY(SELECT ...), ARRAY(SELECT ...)).
    """
    name: QualifiedName
    args: Optional[List[ASTNode]] = field(default_factory=list)
    distinct: bool = False
    order_by: Optional["OrderByClause"] = None
    filter: Optional[Expression] = None


@dataclass
class WindowFrameBound(ASTNode):
    """Borne de cadre: UNBOUNDED PRECEDING, CURRENT ROW, n FOLLOWING..."""
    bound: str  # 'unbounded preceding', 'unbounded following', 'current row', 'preceding', 'following'
    offset: Optional[Expression] = None


@dataclass
class WindowFrame(ASTNode):
    """Cadre de fenêtre (ROWS/RANGE/GROUPS)."""
    unit: str
    start: WindowFrameBound
    end: Optional[WindowFrameBound] = None


@dataclass
class WindowSpec(ASTNode):
    """Spécification OVER (...)."""
    partition_by: List[Expression] = field(default_factory=list)
    order_by: Optional["OrderByClause"] = None
    frame: Optional[WindowFrame] = None
    base_name: Optional[Identifier] = None


@dataclass
class WindowFunctionCall(Expression):
    """Fonction de fenêtrage: f(...) OVER (...) ou OVER nom."""
    function: FunctionCall
    window: ASTNode  # WindowSpec ou Identifier


@dataclass
class CastExpression(Expression):
    """CAST(expr AS type) ou expr::type."""
    expression: Expression
    target_type: str
    syntax: str = 'cast'  # 'cast' ou '::'


@dataclass
class ParenExpression(Expression):
    """Expression entre parenthèses explicites."""
    expression: Expression


@dataclass
class SubqueryExpression(Expression):
    """Sous-requête scalaire (SELECT ...)."""
    query: ASTNode


@dataclass
class TupleExpression(Expression):
    """Liste de valeurs entre parenthèses: (a, b, c)."""
    items: List[Expression]


@dataclass
class ArrayExpression(Expression):
    """ARRAY[...] ."""
    elements: List[Expression]


@dataclass
class ArraySubscript(Expression):
    """Accès par indice: arr[1]."""
    expression: Expression
    index: Expression


@dataclass
class IntervalExpression(Expression):
    """INTERVAL '1 day' [unité]."""
    value: Expression
    unit: Optional[str] = None


# ============== Éléments de SELECT ==============

@dataclass
class SelectItem(ASTNode):
    """Élément de la liste SELECT."""
    expression: Expression
    alias: Optional[Identifier] = None


@dataclass
class SelectClause(ASTNode):
    """SELECT [DISTINCT [ON (...)]] items."""
    items: List[SelectItem]
    distinct: bool = False
    distinct_on: Optional[List[Expression]] = None


# ============== Éléments de FROM ==============

@dataclass
class TableSource(ASTNode):
    """Table nommée."""
    name: QualifiedName
    only: bool = False


@dataclass
class SubquerySource(ASTNode):
    """Sous-requête dans FROM."""
    query: ASTNode


@dataclass
class FunctionSource(ASTNode):
    """Fonction table dans FROM (generate_series(...), unnest(...))."""
    function: FunctionCall


@dataclass
class SourceExpression(ASTNode):
    """Source de données avec alias optionnel."""
    source: ASTNode
    alias: Optional[Identifier] = None
    column_aliases: Optional[List[Identifier]] = None
    lateral: bool = False


@dataclass
class JoinClause(ASTNode):
    """Jointure. join_type vaut par exemple 'left join' ou ',' (liste FROM)."""
    join_type: str
    source: SourceExpression
    condition: Optional[Expression] = None
    using: Optional[List[Identifier]] = None


@dataclass
class FromClause(ASTNode):
    """Clause FROM."""
    source: SourceExpression
    joins: List[JoinClause] = field(default_factory=list)


@dataclass
class WhereClause(ASTNode):
    condition: Expression


@dataclass
class GroupingSetsExpression(Expression):
    """GROUPING SETS (...), CUBE (...), ROLLUP (...)."""
    kind: str  # 'grouping sets', 'cube', 'rollup'
    sets: List[Expression]


@dataclass
class GroupByClause(ASTNode):
    items: List[Expression]


@dataclass
class HavingClause(ASTNode):
    condition: Expression


# ============== Clause ORDER BY ==============

@dataclass
class OrderByItem(ASTNode):
    """Élément de tri (également utilisé pour les colonnes d'index)."""
    expression: Expression
    direction: Optional[str] = None  # 'asc', 'desc' ou None (implicite)
    nulls: Optional[str] = None      # 'first', 'last' ou None


@dataclass
class OrderByClause(ASTNode):
    items: List[OrderByItem]


@dataclass
class WindowDefinition(ASTNode):
    """Fenêtre nommée: WINDOW w AS (...)."""
    name: Identifier
    spec: WindowSpec


@dataclass
class WindowClause(ASTNode):
    windows: List[WindowDefinition]


@dataclass
class LimitClause(ASTNode):
    value: Expression


@dataclass
class OffsetClause(ASTNode):
    value: Expression
    unit: Optional[str] = None  # 'row' ou 'rows'


@dataclass
class FetchClause(ASTNode):
    """FETCH FIRST n ROWS ONLY."""
    count: Optional[Expression] = None
    position: str = 'first'
    unit: str = 'rows'


@dataclass
class ForClause(ASTNode):
    """Clause de verrouillage: FOR UPDATE, FOR SHARE NOWAIT..."""
    lock_mode: str


# ============== CTE (Common Table Expressions) ==============

@dataclass
class CommonTable(ASTNode):
    """Définition de CTE: name [(cols)] AS [NOT] [MATERIALIZED] (query)."""
    name: Identifier
    query: ASTNode
    columns: Optional[List[Identifier]] = None
    materialized: Optional[bool] = None


@dataclass
class WithClause(ASTNode):
    tables: List[CommonTable]
    recursive: bool = False


# ============== Requêtes ==============

@dataclass
class SimpleSelectQuery(ASTNode):
    """Requête SELECT simple."""
    select_clause: SelectClause
    with_clause: Optional[WithClause] = None
    from_clause: Optional[FromClause] = None
    where_clause: Optional[WhereClause] = None
    group_by_clause: Optional[GroupByClause] = None
    having_clause: Optional[HavingClause] = None
    window_clause: Optional[WindowClause] = None
    order_by_clause: Optional[OrderByClause] = None
    limit_clause: Optional[LimitClause] = None
    offset_clause: Optional[OffsetClause] = None
    fetch_clause: Optional[FetchClause] = None
    for_clause: Optional[ForClause] = None


@dataclass
class BinarySelectQuery(ASTNode):
    """
    Opération ensembliste (UNION [ALL], INTERSECT, EXCEPT).

    Les chaînes sont associatives à gauche: a UNION b UNION c
    donne ((a UNION b) UNION c). ORDER BY, LIMIT, OFFSET et FETCH
    placés après la chaîne portent sur toute la chaîne et sont stockés
    sur le nœud le plus externe.
    """
    left: ASTNode
    operator: str
    right: ASTNode
    order_by_clause: Optional[OrderByClause] = None
    limit_clause: Optional[LimitClause] = None
    offset_clause: Optional[OffsetClause] = None
    fetch_clause: Optional[FetchClause] = None


@dataclass
class ParenthesizedQuery(ASTNode):
    """Requête entre parenthèses dans une opération ensembliste."""
    query: ASTNode


@dataclass
class ValuesQuery(ASTNode):
    """VALUES (...), (...)."""
    tuples: List[TupleExpression]
    with_clause: Optional[WithClause] = None


@dataclass
class ReturningClause(ASTNode):
    items: List[SelectItem]


@dataclass
class SetClauseItem(ASTNode):
    """Affectation colonne = valeur dans UPDATE."""
    column: ColumnReference
    value: Expression


@dataclass
class SetClause(ASTNode):
    items: List[SetClauseItem]


@dataclass
class InsertQuery(ASTNode):
    """INSERT INTO table [(cols)] {VALUES ... | SELECT ... | DEFAULT VALUES}."""
    table: SourceExpression
    columns: Optional[List[Identifier]] = None
    source: Optional[ASTNode] = None  # None = DEFAULT VALUES
    with_clause: Optional[WithClause] = None
    returning_clause: Optional[ReturningClause] = None


@dataclass
class UpdateQuery(ASTNode):
    """UPDATE table SET ... [FROM ...] [WHERE ...] [RETURNING ...]."""
    table: SourceExpression
    set_clause: SetClause
    from_clause: Optional[FromClause] = None
    where_clause: Optional[WhereClause] = None
    with_clause: Optional[WithClause] = None
    returning_clause: Optional[ReturningClause] = None


@dataclass
class DeleteQuery(ASTNode):
    """DELETE FROM table [USING ...] [WHERE ...] [RETURNING ...]."""
    table: SourceExpression
    using: Optional[List[SourceExpression]] = None
    where_clause: Optional[WhereClause] = None
    with_clause: Optional[WithClause] = None
    returning_clause: Optional[ReturningClause] = None


@dataclass
class MergeUpdateAction(ASTNode):
    """THEN UPDATE SET ... [WHERE ...]."""
    set_clause: SetClause
    where_clause: Optional[WhereClause] = None


@dataclass
class MergeDeleteAction(ASTNode):
    """THEN DELETE [WHERE ...]."""
    where_clause: Optional[WhereClause] = None


@dataclass
class MergeInsertAction(ASTNode):
    """THEN INSERT [(cols)] {VALUES (...) | DEFAULT VALUES}."""
    columns: Optional[List[Identifier]] = None
    values: Optional[TupleExpression] = None  # None = DEFAULT VALUES


@dataclass
class MergeDoNothingAction(ASTNode):
    """THEN DO NOTHING."""
    pass


@dataclass
class MergeWhenClause(ASTNode):
    """
    WHEN [NOT] MATCHED [BY SOURCE|BY TARGET] [AND condition] THEN action.

    match_type: 'matched', 'not matched', 'not matched by source',
    'not matched by target'.
    """
    match_type: str
    action: ASTNode
    condition: Optional[Expression] = None


@dataclass
class MergeQuery(ASTNode):
    """MERGE INTO cible USING source ON condition WHEN ... [WHEN ...]."""
    target: SourceExpression
    source: SourceExpression
    on_condition: Expression
    when_clauses: List[MergeWhenClause]
    with_clause: Optional[WithClause] = None


# ============== DDL Statements ==============

@dataclass
class ReferenceDefinition(ASTNode):
    """REFERENCES table [(cols)] [ON DELETE ...] [ON UPDATE ...]."""
    table: QualifiedName
    columns: Optional[List[Identifier]] = None
    on_delete: Optional[str] = None
    on_update: Optional[str] = None


@dataclass
class ColumnConstraintDefinition(ASTNode):
    """Contrainte de colonne (NOT NULL, DEFAULT x, REFERENCES...)."""
    kind: str  # 'not null', 'null', 'primary key', 'unique', 'default', 'check', 'references'
    name: Optional[Identifier] = None
    expression: Optional[Expression] = None
    reference: Optional[ReferenceDefinition] = None


@dataclass
class TableColumnDefinition(ASTNode):
    """Définition de colonne dans CREATE TABLE."""
    name: Identifier
    data_type: Optional[str] = None
    constraints: List[ColumnConstraintDefinition] = field(default_factory=list)


@dataclass
class TableConstraintDefinition(ASTNode):
    """Contrainte de table (PRIMARY KEY (...), FOREIGN KEY ...)."""
    kind: str  # 'primary key', 'unique', 'foreign key', 'check'
    name: Optional[Identifier] = None
    columns: Optional[List[Identifier]] = None
    expression: Optional[Expression] = None
    reference: Optional[ReferenceDefinition] = None


@dataclass
class CreateTableQuery(ASTNode):
    """CREATE [TEMPORARY] TABLE [IF NOT EXISTS] name (...) | AS query."""
    table: QualifiedName
    columns: List[TableColumnDefinition] = field(default_factory=list)
    constraints: List[TableConstraintDefinition] = field(default_factory=list)
    temporary: bool = False
    if_not_exists: bool = False
    as_query: Optional[ASTNode] = None


@dataclass
class AlterTableAction(ASTNode):
    """
    Action d'un ALTER TABLE.

    action_type: 'add column', 'add constraint', 'drop column',
    'drop constraint', 'rename column', 'rename to', 'alter column type',
    'alter column set default', 'alter column drop default',
    'alter column set not null', 'alter column drop not null'.
    """
    action_type: str
    column: Optional[TableColumnDefinition] = None
    constraint: Optional[TableConstraintDefinition] = None
    name: Optional[Identifier] = None
    new_name: Optional[Identifier] = None
    data_type: Optional[str] = None
    expression: Optional[Expression] = None
    if_exists: bool = False
    behavior: Optional[str] = None  # 'cascade' ou 'restrict'


@dataclass
class AlterTableStatement(ASTNode):
    table: QualifiedName
    actions: List[AlterTableAction]
    if_exists: bool = False
    only: bool = False


@dataclass
class DropStatement(ASTNode):
    """DROP TABLE|INDEX [IF EXISTS] names [CASCADE|RESTRICT]."""
    object_type: str
    names: List[QualifiedName]
    if_exists: bool = False
    behavior: Optional[str] = None


@dataclass
class CreateIndexStatement(ASTNode):
    """CREATE [UNIQUE] INDEX [CONCURRENTLY] [IF NOT EXISTS] [name] ON table (...)."""
    table: QualifiedName
    columns: List[OrderByItem]
    name: Optional[Identifier] = None
    unique: bool = False
    concurrently: bool = False
    if_not_exists: bool = False
    using: Optional[Identifier] = None
    where_clause: Optional[WhereClause] = None


@dataclass
class ExplainOption(ASTNode):
    """Option EXPLAIN (FORMAT JSON, COSTS false...)."""
    name: str
    value: Optional[str] = None


@dataclass
class ExplainStatement(ASTNode):
    """EXPLAIN [ANALYZE] [VERBOSE] [(options)] statement."""
    statement: ASTNode
    options: List[ExplainOption] = field(default_factory=list)
    analyze: bool = False
    verbose: bool = False


@dataclass
class AnalyzeStatement(ASTNode):
    """ANALYZE [VERBOSE] [table [(cols)]]."""
    target: Optional[QualifiedName] = None
    columns: Optional[List[Identifier]] = None
    verbose: bool = False


# ============== Résultat du parsing ==============

@dataclass
class ParseResult:
    """Résultat complet d'un parsing: AST, tokens et métadonnées."""
    statement: ASTNode
    tokens: List[Any] = field(default_factory=list)
    lexeme_index: Any = None
    tables_referenced: List[str] = field(default_factory=list)
    functions_used: List[str] = field(default_factory=list)

    @property
    def comment_count(self) -> int:
        return sum(len(node.positioned_comments) for node in self.statement.walk())


def iter_comments(node: ASTNode) -> Iterator[Tuple[ASTNode, PositionedComment]]:
    """Tous les commentaires du sous-arbre avec leur nœud propriétaire."""
    for current in node.walk():
        for comment in current.positioned_comments:
            yield current, comment
