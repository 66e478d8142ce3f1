"""
Sérialisation JSON d'un résultat de parsing.

La sortie contient toujours la clé ``statement`` (l'AST, commentaires
positionnés compris), puis selon les options ``metadata`` et ``tokens``.
"""

import json
from typing import Any, Dict, List, Optional

from .ast_nodes import ParseResult
from .tokenizer import Token, TokenType


def token_to_dict(token: Token) -> Dict[str, Any]:
    return {
        "type": token.type.name,
        "kind": token.kind.value,
        "value": token.value,
        "line": token.line,
        "column": token.column,
        "end_line": token.end_line,
        "end_column": token.end_column,
    }


def tokens_to_list(tokens: List[Token]) -> List[Dict[str, Any]]:
    """Tokens sérialisés, sans le marqueur EOF."""
    return [token_to_dict(t) for t in tokens if t.type != TokenType.EOF]


class ASTToJSONExporter:
    """
    Exporte un ParseResult en JSON.

    Le mode ``compact`` supprime l'indentation et les métadonnées; les
    tokens restent inclus s'ils sont demandés.
    """

    def __init__(self, indent: int = 2, include_metadata: bool = True,
                 include_tokens: bool = False, compact: bool = False):
        self.compact = compact
        self.indent: Optional[int] = None if compact else indent
        self.include_metadata = include_metadata and not compact
        self.include_tokens = include_tokens

    def export_to_dict(self, result: ParseResult) -> Dict[str, Any]:
        data: Dict[str, Any] = {"statement": result.statement.to_dict()}
        if self.include_metadata:
            data["metadata"] = self._metadata(result)
        if self.include_tokens:
            data["tokens"] = tokens_to_list(result.tokens)
        return data

    def export(self, result: ParseResult) -> str:
        return self._dumps(self.export_to_dict(result))

    def export_to_file(self, result: ParseResult, filepath: str) -> None:
        """Écrit le JSON dans ``filepath`` (UTF-8)."""
        with open(filepath, 'w', encoding='utf-8') as stream:
            stream.write(self.export(result))

    def _dumps(self, data: Dict[str, Any]) -> str:
        separators = (',', ':') if self.compact else None
        return json.dumps(data, indent=self.indent, separators=separators, ensure_ascii=False)

    @staticmethod
    def _metadata(result: ParseResult) -> Dict[str, Any]:
        return {
            "tables_referenced": list(result.tables_referenced),
            "functions_used": list(result.functions_used),
            "comment_count": result.comment_count,
        }


def export_to_json(parse_result: ParseResult, indent: int = 2, include_metadata: bool = True,
                   include_tokens: bool = False, compact: bool = False) -> str:
    """Raccourci pour ``ASTToJSONExporter(...).export(parse_result)``."""
    return ASTToJSONExporter(indent, include_metadata, include_tokens, compact).export(parse_result)


def to_dict(parse_result: ParseResult, include_metadata: bool = True,
            include_tokens: bool = False) -> Dict[str, Any]:
    return ASTToJSONExporter(include_metadata=include_metadata,
                             include_tokens=include_tokens).export_to_dict(parse_result)
