"""
Tests for the node mapping utility helpers.
"""
from services.node_mapping import (
    WorkflowData,
    calculate_complexity_score,
    estimate_conversion_time,
    generate_conversion_summary,
    get_unsupported_node_types,
    is_workflow_supported,
)
from tests.conftest import HTTP_REQUEST, MANUAL_TRIGGER, NO_OP, make_node, make_workflow


def chain_of(count):
    names = [f"Step {i}" for i in range(count)]
    nodes = [make_node(name, NO_OP) for name in names]
    return make_workflow(nodes, list(zip(names, names[1:])))


class TestSupportChecks:
    """Test is_workflow_supported and get_unsupported_node_types."""

    def test_supported_workflow(self, registry, linear_workflow):
        """Test a workflow made of registered types only."""
        assert is_workflow_supported(linear_workflow, registry)
        assert get_unsupported_node_types(linear_workflow, registry) == []

    def test_unsupported_types_deduplicated_in_order(self, registry):
        """Test distinct unsupported types in document order."""
        document = make_workflow([
            make_node("A", "vendor.zeta"), make_node("B", MANUAL_TRIGGER),
            make_node("C", "vendor.alpha"), make_node("D", "vendor.zeta"),
        ])

        assert not is_workflow_supported(document, registry)
        assert get_unsupported_node_types(document, registry) == ["vendor.zeta", "vendor.alpha"]

    def test_accepts_workflow_data(self, registry, linear_workflow):
        """Test that parsed WorkflowData is accepted as well as documents."""
        workflow = WorkflowData.from_n8n(linear_workflow)
        assert is_workflow_supported(workflow, registry)


class TestEstimates:
    """Test complexity and conversion time estimates."""

    def test_complexity_score(self, linear_workflow):
        """Test nodes plus half the connections."""
        assert calculate_complexity_score(linear_workflow) == 2.5

    def test_small_workflow_estimate(self, registry, linear_workflow):
        """Test that small workflows are not scaled down."""
        assert estimate_conversion_time(linear_workflow, registry) == 4

    def test_unsupported_nodes_cost_more(self, registry):
        """Test the per-node cost of unsupported types."""
        document = make_workflow([
            make_node("A", MANUAL_TRIGGER), make_node("B", NO_OP), make_node("C", "vendor.unknown"),
        ])

        assert estimate_conversion_time(document, registry) == 9

    def test_large_workflow_scaled_by_complexity(self, registry):
        """Test scaling once complexity passes ten."""
        document = chain_of(12)

        assert calculate_complexity_score(document) == 17.5
        assert estimate_conversion_time(document, registry) == 42


class TestConversionSummary:
    """Test the markdown conversion summary."""

    def test_ready_workflow(self, mapper, linear_workflow):
        """Test the summary of a clean mapping."""
        summary = generate_conversion_summary(mapper.map_workflow(linear_workflow))

        assert summary.startswith("# Workflow Conversion Summary")
        assert "- **Total Nodes**: 2" in summary
        assert "- **Supported Nodes**: 2 (100%)" in summary
        assert "- **Trigger Nodes**: 1" in summary
        assert "- **Action Nodes**: 1" in summary
        assert "## Errors" not in summary
        assert "Ready for conversion" in summary

    def test_blocked_workflow(self, mapper):
        """Test unsupported types and configuration sections."""
        document = make_workflow([
            make_node("Start", MANUAL_TRIGGER),
            make_node("Fetch", HTTP_REQUEST, {"url": "={{ $env.API_URL }}"}),
            make_node("Legacy", "vendor.unknown"),
        ], [("Start", "Fetch"), ("Fetch", "Legacy")])

        summary = generate_conversion_summary(mapper.map_workflow(document))

        assert "## Errors (1)" in summary
        assert "- [UNSUPPORTED_NODE_TYPE] Legacy: Node type 'vendor.unknown' is not supported" in summary
        assert "## Unsupported Node Types\n- vendor.unknown" in summary
        assert "- **Environment Variables**: 1 variables need to be set" in summary
        assert "Conversion blocked" in summary

    def test_failed_mapping(self, mapper):
        """Test the status line of a failed run."""
        summary = generate_conversion_summary(mapper.map_workflow({"nodes": []}))

        assert "[EMPTY_WORKFLOW]" in summary
        assert "Mapping failed" in summary
