"""
Tests for the parameter transformer.
"""
import pytest
from core.catalog import ParameterDefinition, ParamType
from services.node_mapping.expressions import (
    EnvReference, ExpressionIR, InputReference, NodeReference, RawExpression,
)
from services.node_mapping.models import IssueKind, OutputAccessor
from services.node_mapping.parameter_transformer import (
    ParameterTransformer,
    TransformationContext,
    coerce_literal,
)


def make_context(**overrides) -> TransformationContext:
    """Context for node 'Current' whose only upstream node is 'Source'"""
    values = dict(
        node_id="current",
        node_name="Current",
        accessors={"Source": OutputAccessor(node_id="source", node_name="Source", variable="source")},
        node_names={"Source", "Current", "Elsewhere"},
        cyclic_names=set(),
        direct_inputs=["Source"],
    )
    values.update(overrides)
    return TransformationContext(**values)


@pytest.fixture
def transformer():
    return ParameterTransformer()


class TestLiteralParameters:
    """Test handling of literal parameter values."""

    def test_defaults_applied_for_missing_optional(self, transformer):
        """Test that declared defaults fill in missing parameters."""
        definitions = [ParameterDefinition(name="timeout", type=ParamType.NUMBER, default=10000)]

        result = transformer.transform({}, definitions, make_context())

        assert result.parameters == {"timeout": 10000}
        assert result.valid

    def test_missing_required_is_error(self, transformer):
        """Test MISSING_REQUIRED_PARAMETER for required parameters without default."""
        definitions = [ParameterDefinition(name="url", required=True)]

        result = transformer.transform({}, definitions, make_context())

        assert not result.valid
        assert result.errors[0].code == "MISSING_REQUIRED_PARAMETER"
        assert result.errors[0].kind == IssueKind.PARAMETER_ERROR
        assert result.errors[0].path == "url"

    def test_empty_string_counts_as_missing_for_required(self, transformer):
        """Test that an empty required value is reported."""
        definitions = [ParameterDefinition(name="url", required=True)]

        result = transformer.transform({"url": ""}, definitions, make_context())

        assert result.errors[0].code == "MISSING_REQUIRED_PARAMETER"

    def test_undeclared_parameters_pass_through(self, transformer):
        """Test that unknown parameters are kept."""
        result = transformer.transform({"custom": {"a": 1}}, [], make_context())
        assert result.parameters == {"custom": {"a": 1}}
        assert not result.warnings

    def test_numeric_string_coerced_with_warning(self, transformer):
        """Test best-effort coercion of a numeric string."""
        definitions = [ParameterDefinition(name="timeout", type=ParamType.NUMBER)]

        result = transformer.transform({"timeout": "30"}, definitions, make_context())

        assert result.parameters["timeout"] == 30
        assert result.warnings[0].code == "TYPE_COERCED"
        assert result.valid

    def test_uncoercible_value_passes_through(self, transformer):
        """Test that a failed coercion keeps the raw literal with a warning."""
        definitions = [ParameterDefinition(name="timeout", type=ParamType.NUMBER)]

        result = transformer.transform({"timeout": "soon"}, definitions, make_context())

        assert result.parameters["timeout"] == "soon"
        assert result.warnings[0].code == "TYPE_MISMATCH"
        assert result.warnings[0].kind == IssueKind.PARAMETER_WARNING

    @pytest.mark.parametrize("text", ["nan", "inf", "-Infinity", "1_000"])
    def test_non_decimal_number_strings_not_coerced(self, transformer, text):
        """Test that special float spellings and underscores stay strings."""
        definitions = [ParameterDefinition(name="timeout", type=ParamType.NUMBER)]

        result = transformer.transform({"timeout": text}, definitions, make_context())

        assert result.parameters["timeout"] == text
        assert [w.code for w in result.warnings] == ["TYPE_MISMATCH"]

    def test_invalid_option_warns(self, transformer):
        """Test options outside the allowed list."""
        definitions = [ParameterDefinition(name="method", type=ParamType.OPTIONS, options=["GET", "POST"])]

        result = transformer.transform({"method": "FETCH"}, definitions, make_context())

        assert result.parameters["method"] == "FETCH"
        assert result.warnings[0].code == "INVALID_OPTION"

    def test_object_type_mismatch_warns(self, transformer):
        """Test a list given for an object parameter."""
        definitions = [ParameterDefinition(name="headers", type=ParamType.OBJECT)]

        result = transformer.transform({"headers": [1, 2]}, definitions, make_context())

        assert result.parameters["headers"] == [1, 2]
        assert result.warnings[0].code == "TYPE_MISMATCH"


class TestCoerceLiteral:
    """Test the coerce_literal helper."""

    @pytest.mark.parametrize("value,param_type,expected", [
        ("12", ParamType.NUMBER, 12),
        ("1.5", ParamType.NUMBER, 1.5),
        ("-3", ParamType.NUMBER, -3),
        (" 2e3 ", ParamType.NUMBER, 2000.0),
        ("TRUE", ParamType.BOOLEAN, True),
        ("false", ParamType.BOOLEAN, False),
        (5, ParamType.STRING, "5"),
        (True, ParamType.STRING, "true"),
        ('{"a": 1}', ParamType.OBJECT, {"a": 1}),
        ("[1, 2]", ParamType.ARRAY, [1, 2]),
    ])
    def test_successful_coercions(self, value, param_type, expected):
        """Test each supported coercion."""
        coerced, changed, ok = coerce_literal(value, param_type)
        assert ok and changed
        assert coerced == expected

    @pytest.mark.parametrize("value,param_type", [
        (True, ParamType.NUMBER),
        ("nan", ParamType.NUMBER),
        ("Infinity", ParamType.NUMBER),
        ("1_000", ParamType.NUMBER),
        ("0x10", ParamType.NUMBER),
        ("yes", ParamType.BOOLEAN),
        ("[1]", ParamType.OBJECT),
        ("not json", ParamType.ARRAY),
        ({"a": 1}, ParamType.STRING),
    ])
    def test_failed_coercions(self, value, param_type):
        """Test values that cannot be coerced."""
        coerced, changed, ok = coerce_literal(value, param_type)
        assert not ok
        assert coerced == value


class TestExpressionResolution:
    """Test resolution of expression references."""

    def test_upstream_reference_resolves(self, transformer):
        """Test that a predecessor reference gets its node id and variable."""
        result = transformer.transform({"text": "={{ $('Source').item.json.message }}"}, [], make_context())

        ir = result.parameters["text"]
        assert isinstance(ir, ExpressionIR)
        ref = ir.node_references[0]
        assert ref.node_id == "source"
        assert ref.variable == "source"
        assert ref.path == ("message",)
        assert result.node_references == ["Source"]
        assert result.valid

    def test_unknown_node_is_unresolved_reference(self, transformer):
        """Test UNRESOLVED_REFERENCE for names not in the workflow."""
        result = transformer.transform({"text": "={{ $('Ghost').item.json.x }}"}, [], make_context())

        assert result.errors[0].code == "UNRESOLVED_REFERENCE"
        assert result.errors[0].kind == IssueKind.STRUCTURAL_ERROR
        assert result.errors[0].path == "text"
        assert not result.parameters["text"].node_references[0].resolved

    def test_self_reference_is_cyclic(self, transformer):
        """Test CYCLIC_REFERENCE when a node reads its own output."""
        result = transformer.transform({"text": "={{ $('Current').item.json.x }}"}, [], make_context())
        assert result.errors[0].code == "CYCLIC_REFERENCE"

    def test_cycle_peer_reference_is_cyclic(self, transformer):
        """Test CYCLIC_REFERENCE for a node on the same cycle."""
        context = make_context(cyclic_names={"Source", "Current"})

        result = transformer.transform({"text": "={{ $('Source').item.json.x }}"}, [], context)

        assert result.errors[0].code == "CYCLIC_REFERENCE"

    def test_non_predecessor_is_unreachable(self, transformer):
        """Test UNREACHABLE_REFERENCE for an existing node that is not upstream."""
        result = transformer.transform({"text": "={{ $('Elsewhere').item.json.x }}"}, [], make_context())
        assert result.errors[0].code == "UNREACHABLE_REFERENCE"

    def test_json_resolves_to_single_input(self, transformer):
        """Test that $json points at the only direct input."""
        result = transformer.transform({"text": "={{ $json.name }}"}, [], make_context())

        ref = result.parameters["text"].references[0]
        assert isinstance(ref, NodeReference)
        assert ref.node_id == "source"
        assert ref.path == ("name",)

    def test_json_with_several_inputs_stays_input_reference(self, transformer):
        """Test that $json is left as an input reference for merge points."""
        context = make_context(
            accessors={
                "Source": OutputAccessor(node_id="source", node_name="Source", variable="source"),
                "Other": OutputAccessor(node_id="other", node_name="Other", variable="other"),
            },
            direct_inputs=["Source", "Other"],
        )

        result = transformer.transform({"text": "={{ $json.name }}"}, [], context)

        assert isinstance(result.parameters["text"].references[0], InputReference)
        assert result.valid

    def test_env_references_collected(self, transformer):
        """Test that $env names are reported sorted and unique."""
        parameters = {
            "url": "={{ $env.BASE_URL }}/v1",
            "headers": {"Authorization": "=Bearer {{ $env.API_TOKEN }}", "X-Base": "={{ $env.BASE_URL }}"},
        }

        result = transformer.transform(parameters, [], make_context())

        assert result.environment_variables == ["API_TOKEN", "BASE_URL"]
        assert isinstance(result.parameters["headers"]["Authorization"].references[0], EnvReference)

    def test_nested_values_are_walked(self, transformer):
        """Test expressions inside arrays of objects."""
        parameters = {"values": {"items": [{"value": "={{ $('Source').item.json.id }}"}, {"value": "static"}]}}
        definitions = [ParameterDefinition(name="values", type=ParamType.OBJECT)]

        result = transformer.transform(parameters, definitions, make_context())

        items = result.parameters["values"]["items"]
        assert isinstance(items[0]["value"], ExpressionIR)
        assert items[1]["value"] == "static"

    def test_error_path_points_into_nested_value(self, transformer):
        """Test that nested issue paths name the exact field."""
        parameters = {"headers": {"X-Id": "={{ $('Ghost').item.json.id }}"}}

        result = transformer.transform(parameters, [], make_context())

        assert result.errors[0].path == "headers.X-Id"

    def test_unsupported_expression_passes_through_raw(self, transformer):
        """Test UNSUPPORTED_EXPRESSION warning and RawExpression output."""
        value = "={{ $json.price * 1.2 }}"

        result = transformer.transform({"total": value}, [], make_context())

        raw = result.parameters["total"]
        assert isinstance(raw, RawExpression)
        assert raw.source == value
        assert result.warnings[0].code == "UNSUPPORTED_EXPRESSION"
        assert result.valid

    def test_expression_skips_type_coercion(self, transformer):
        """Test that declared types are not applied to expressions."""
        definitions = [ParameterDefinition(name="timeout", type=ParamType.NUMBER)]

        result = transformer.transform({"timeout": "={{ $json.timeout }}"}, definitions, make_context())

        assert isinstance(result.parameters["timeout"], ExpressionIR)
        assert not result.warnings
