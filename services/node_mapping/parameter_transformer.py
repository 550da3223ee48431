"""
Parameter transformer

Turns a node's raw parameter bag into code-ready values: literals are checked
and coerced against their declared type, expressions are parsed and their
node references resolved against the workflow graph.
"""

import copy
import json
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from core.catalog.models import ParamType, ParameterDefinition
from .expressions import (
    EnvReference, ExpressionIR, ExpressionSyntaxError, InputReference,
    NodeReference, RawExpression, ReferenceChain, is_expression, parse_expression,
)
from .models import IssueKind, OutputAccessor, ValidationIssue

# Plain decimal literals only; rejects "nan", "inf" and "1_000"
NUMERIC_LITERAL = re.compile(r'^-?\d+(\.\d+)?([eE][+-]?\d+)?$')

logger = logging.getLogger(__name__)


@dataclass
class TransformationContext:
    """What the transformer knows about the node's place in the workflow"""
    node_id: str
    node_name: str
    accessors: Dict[str, OutputAccessor] = field(default_factory=dict)  # upstream node name -> accessor
    node_names: Set[str] = field(default_factory=set)
    cyclic_names: Set[str] = field(default_factory=set)
    direct_inputs: List[str] = field(default_factory=list)  # names, document order


@dataclass
class TransformationResult:
    parameters: Dict[str, Any] = field(default_factory=dict)
    warnings: List[ValidationIssue] = field(default_factory=list)
    errors: List[ValidationIssue] = field(default_factory=list)
    environment_variables: List[str] = field(default_factory=list)
    node_references: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add(self, issue: ValidationIssue) -> None:
        (self.errors if issue.is_error else self.warnings).append(issue)


class ParameterTransformer:
    """Transforms raw node parameters into literals and expression IR"""

    def transform(
        self,
        parameters: Dict[str, Any],
        definitions: Sequence[ParameterDefinition],
        context: TransformationContext,
    ) -> TransformationResult:
        result = TransformationResult()
        declared = {d.name: d for d in definitions}
        env_names: Set[str] = set()
        references: List[str] = []
        state = (context, result, env_names, references)

        for name, value in parameters.items():
            definition = declared.get(name)
            if definition is None:
                result.parameters[name] = self._walk(value, name, state)
            elif _is_missing(value) and definition.required:
                self._apply_default_or_report(definition, result, context)
            else:
                result.parameters[name] = self._transform_declared(value, definition, state)

        for definition in definitions:
            if definition.name not in parameters:
                self._apply_default_or_report(definition, result, context)

        result.environment_variables = sorted(env_names)
        result.node_references = list(dict.fromkeys(references))

        logger.debug(
            f"Transformed {len(result.parameters)} parameters for {context.node_name}: "
            f"{len(result.errors)} errors, {len(result.warnings)} warnings"
        )
        return result

    def _apply_default_or_report(self, definition: ParameterDefinition, result: TransformationResult,
                                 context: TransformationContext) -> None:
        if definition.default is not None:
            result.parameters[definition.name] = copy.deepcopy(definition.default)
        elif definition.required:
            result.add(ValidationIssue.of(
                IssueKind.PARAMETER_ERROR,
                "MISSING_REQUIRED_PARAMETER",
                f"Required parameter '{definition.name}' is missing",
                node_id=context.node_id,
                node_name=context.node_name,
                path=definition.name,
            ))

    def _transform_declared(self, value: Any, definition: ParameterDefinition, state) -> Any:
        context, result = state[0], state[1]
        path = definition.name

        if is_expression(value):
            return self._resolve_expression(value, path, state)

        if isinstance(value, (dict, list)):
            walked = self._walk(value, path, state)
            expected = {ParamType.OBJECT: dict, ParamType.ARRAY: list}.get(definition.type)
            if expected is not None and not isinstance(walked, expected):
                result.add(self._type_warning(
                    "TYPE_MISMATCH", f"expected {definition.type.value}, got {type(value).__name__}",
                    definition, context))
            return walked

        if value is None:
            return None

        if definition.type == ParamType.OPTIONS:
            if definition.options and value not in definition.options:
                result.add(ValidationIssue.of(
                    IssueKind.PARAMETER_WARNING,
                    "INVALID_OPTION",
                    f"Parameter '{path}' value {value!r} is not one of {definition.options}",
                    node_id=context.node_id,
                    node_name=context.node_name,
                    path=path,
                ))
            return value

        coerced, changed, ok = coerce_literal(value, definition.type)
        if not ok:
            result.add(self._type_warning(
                "TYPE_MISMATCH", f"expected {definition.type.value}, got {value!r}; passed through unchanged",
                definition, context))
            return value
        if changed:
            result.add(self._type_warning(
                "TYPE_COERCED", f"coerced {value!r} to {definition.type.value}",
                definition, context))
        return coerced

    def _type_warning(self, code: str, detail: str, definition: ParameterDefinition,
                      context: TransformationContext) -> ValidationIssue:
        return ValidationIssue.of(
            IssueKind.PARAMETER_WARNING,
            code,
            f"Parameter '{definition.name}': {detail}",
            node_id=context.node_id,
            node_name=context.node_name,
            path=definition.name,
        )

    def _walk(self, value: Any, path: str, state) -> Any:
        """Resolve expressions anywhere inside nested objects and arrays"""
        if is_expression(value):
            return self._resolve_expression(value, path, state)
        if isinstance(value, dict):
            return {key: self._walk(item, f"{path}.{key}", state) for key, item in value.items()}
        if isinstance(value, list):
            return [self._walk(item, f"{path}[{i}]", state) for i, item in enumerate(value)]
        return value

    def _resolve_expression(self, value: str, path: str, state) -> Any:
        context, result, env_names, references = state

        try:
            ir = parse_expression(value)
        except ExpressionSyntaxError as e:
            result.add(ValidationIssue.of(
                IssueKind.PARAMETER_WARNING,
                "UNSUPPORTED_EXPRESSION",
                f"Expression {value!r} is not supported ({e}); passed through as raw text",
                node_id=context.node_id,
                node_name=context.node_name,
                path=path,
            ))
            return RawExpression(source=value, reason=str(e))

        segments = []
        for segment in ir.segments:
            if isinstance(segment, ReferenceChain):
                resolved = tuple(
                    self._resolve_reference(ref, path, context, result, env_names, references)
                    for ref in segment.references
                )
                segment = replace(segment, references=resolved)
            segments.append(segment)

        return ExpressionIR(source=ir.source, segments=tuple(segments))

    def _resolve_reference(self, ref, path: str, context: TransformationContext,
                           result: TransformationResult, env_names: Set[str], references: List[str]):
        if isinstance(ref, EnvReference):
            env_names.add(ref.name)
            return ref

        if isinstance(ref, InputReference):
            # $json pins to a node only when there is exactly one usable input
            if len(context.direct_inputs) == 1:
                input_name = context.direct_inputs[0]
                accessor = context.accessors.get(input_name)
                if accessor is not None and input_name not in context.cyclic_names:
                    references.append(input_name)
                    return NodeReference(
                        node_name=input_name,
                        accessor=ref.accessor,
                        path=ref.path,
                        node_id=accessor.node_id,
                        variable=accessor.variable,
                    )
            return ref

        code, message = self._check_node_reference(ref.node_name, context)
        if code is not None:
            result.add(ValidationIssue.of(
                IssueKind.STRUCTURAL_ERROR, code, message,
                node_id=context.node_id, node_name=context.node_name, path=path,
            ))
            return ref

        accessor = context.accessors[ref.node_name]
        references.append(ref.node_name)
        return replace(ref, node_id=accessor.node_id, variable=accessor.variable)

    def _check_node_reference(self, name: str, context: TransformationContext) -> Tuple[Optional[str], str]:
        if name not in context.node_names:
            return "UNRESOLVED_REFERENCE", f"Expression references unknown node '{name}'"
        if name == context.node_name or name in context.cyclic_names:
            return "CYCLIC_REFERENCE", f"Expression references '{name}', which depends on this node"
        if name not in context.accessors:
            return "UNREACHABLE_REFERENCE", f"Expression references '{name}', which is not upstream of this node"
        return None, ""


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def coerce_literal(value: Any, param_type: ParamType) -> Tuple[Any, bool, bool]:
    """
    Best-effort conversion of a literal to a declared parameter type.

    Returns:
        (value, changed, ok); on failure value is the input unchanged
    """
    if param_type == ParamType.STRING:
        if isinstance(value, str):
            return value, False, True
        if isinstance(value, bool):
            return ("true" if value else "false"), True, True
        if isinstance(value, (int, float)):
            return str(value), True, True
        return value, False, False

    if param_type == ParamType.NUMBER:
        if isinstance(value, bool):
            return value, False, False
        if isinstance(value, (int, float)):
            return value, False, True
        if isinstance(value, str):
            text = value.strip()
            match = NUMERIC_LITERAL.match(text)
            if match:
                is_int = match.group(1) is None and match.group(2) is None
                return (int(text) if is_int else float(text)), True, True
        return value, False, False

    if param_type == ParamType.BOOLEAN:
        if isinstance(value, bool):
            return value, False, True
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true", True, True
        return value, False, False

    if param_type in (ParamType.OBJECT, ParamType.ARRAY):
        expected = dict if param_type == ParamType.OBJECT else list
        if isinstance(value, expected):
            return value, False, True
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except ValueError:
                return value, False, False
            if isinstance(parsed, expected):
                return parsed, True, True
        return value, False, False

    return value, False, True
