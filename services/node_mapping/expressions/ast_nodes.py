"""
Expression AST nodes.

Parsed expressions are kept as structured references rather than source text;
turning them into target-language syntax is the emitter's job.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

PathKey = Union[str, int]


@dataclass(frozen=True)
class Literal:
    """Literal fallback value: string, number, boolean or null"""
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "literal", "value": self.value}

    def __repr__(self) -> str:
        return f"Literal({self.value!r})"


@dataclass(frozen=True)
class NodeReference:
    """Output of another node: $('Name').item.json.path"""
    node_name: str
    accessor: str = "item"  # item | first | last | all
    path: Tuple[PathKey, ...] = ()
    node_id: Optional[str] = None  # filled in on resolution
    variable: Optional[str] = None  # output accessor variable, filled in on resolution

    @property
    def resolved(self) -> bool:
        return self.node_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "node",
            "node_name": self.node_name,
            "node_id": self.node_id,
            "variable": self.variable,
            "accessor": self.accessor,
            "path": list(self.path),
        }

    def __repr__(self) -> str:
        return f"NodeReference({self.node_name!r}, {self.accessor}, {list(self.path)})"


@dataclass(frozen=True)
class InputReference:
    """Current input item: $json.path, when it cannot be pinned to one node"""
    accessor: str = "item"
    path: Tuple[PathKey, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "input", "accessor": self.accessor, "path": list(self.path)}

    def __repr__(self) -> str:
        return f"InputReference({self.accessor}, {list(self.path)})"


@dataclass(frozen=True)
class EnvReference:
    """Environment variable: $env.NAME"""
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "env", "name": self.name}

    def __repr__(self) -> str:
        return f"EnvReference({self.name!r})"


Reference = Union[NodeReference, InputReference, EnvReference]


@dataclass(frozen=True)
class ReferenceChain:
    """Alternatives tried in order, then the optional literal fallback"""
    references: Tuple[Reference, ...]
    fallback: Optional[Literal] = None
    operator: Optional[str] = None  # "||" or "??" when alternatives are present

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "chain",
            "references": [ref.to_dict() for ref in self.references],
            "fallback": self.fallback.to_dict() if self.fallback else None,
            "operator": self.operator,
        }


@dataclass(frozen=True)
class ExpressionIR:
    """A resolved expression value: literal text interleaved with reference chains"""
    source: str
    segments: Tuple[Union[str, ReferenceChain], ...] = field(default_factory=tuple)

    @property
    def chains(self) -> List[ReferenceChain]:
        return [s for s in self.segments if isinstance(s, ReferenceChain)]

    @property
    def references(self) -> List[Reference]:
        return [ref for chain in self.chains for ref in chain.references]

    @property
    def node_references(self) -> List[NodeReference]:
        return [r for r in self.references if isinstance(r, NodeReference)]

    @property
    def env_names(self) -> List[str]:
        return [r.name for r in self.references if isinstance(r, EnvReference)]

    @property
    def is_single_reference(self) -> bool:
        """True when the whole value is one {{ }} segment with no surrounding text"""
        return len(self.segments) == 1 and isinstance(self.segments[0], ReferenceChain)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "expression",
            "source": self.source,
            "segments": [s if isinstance(s, str) else s.to_dict() for s in self.segments],
        }


@dataclass(frozen=True)
class RawExpression:
    """Expression text the grammar does not cover, passed through untouched"""
    source: str
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "raw", "source": self.source, "reason": self.reason}


def serialize_value(value: Any) -> Any:
    """JSON-ready copy of a parameter value, with IR nodes as tagged dicts"""
    if isinstance(value, (ExpressionIR, RawExpression, ReferenceChain, Literal,
                          NodeReference, InputReference, EnvReference)):
        return value.to_dict()
    if isinstance(value, dict):
        return {key: serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    return value
