"""
Tests for the node type catalog and registry.
"""
import pytest
import threading
from core.catalog import (
    CredentialDefinition,
    CredentialField,
    ImportDefinition,
    NodeCategory,
    NodeRegistry,
    NodeTypeDefinition,
    OverwritePolicy,
    ParameterDefinition,
    builtin_node_types,
    register_builtin_node_types,
)
from core.errors import DuplicateNodeTypeError, ErrorCode, NodeTypeNotFoundError


def make_definition(type_id: str = "test.node", category: NodeCategory = NodeCategory.ACTION,
                    display_name: str = "Test Node") -> NodeTypeDefinition:
    return NodeTypeDefinition(type=type_id, display_name=display_name, category=category)


class TestCatalogModels:
    """Test the catalog record models."""

    def test_definitions_are_frozen(self):
        """Test that catalog records cannot be modified after creation."""
        definition = make_definition()
        with pytest.raises(Exception):
            definition.display_name = "Changed"

    def test_default_slots(self):
        """Test that nodes default to one main input and output."""
        definition = make_definition()
        assert definition.inputs == ["main"]
        assert definition.outputs == ["main"]

    def test_parameter_and_credential_lookup(self):
        """Test lookup helpers on a definition."""
        definition = NodeTypeDefinition(
            type="test.node",
            display_name="Test",
            category=NodeCategory.ACTION,
            parameters=[ParameterDefinition(name="url", required=True)],
            credentials=[CredentialDefinition(name="apiAuth", fields=[
                CredentialField(name="token", sensitive=True),
                CredentialField(name="region", required=False),
            ])],
        )

        assert definition.get_parameter("url").required is True
        assert definition.get_parameter("missing") is None
        assert [f.name for f in definition.get_credential("apiAuth").required_fields] == ["token"]
        assert definition.get_credential("other") is None

    def test_import_distribution_name(self):
        """Test that the distribution defaults to the top-level module name."""
        assert ImportDefinition(module="apscheduler.triggers.cron").distribution == "apscheduler"
        assert ImportDefinition(module="slack_sdk", package="slack-sdk").distribution == "slack-sdk"


class TestNodeRegistry:
    """Test the NodeRegistry class."""

    def test_register_and_lookup(self):
        """Test exact-match lookup of a registered type."""
        registry = NodeRegistry()
        definition = make_definition()

        assert registry.register(definition) is True
        assert registry.lookup("test.node") is definition
        assert registry.is_supported("test.node")
        assert "test.node" in registry
        assert len(registry) == 1

    def test_lookup_missing_raises(self):
        """Test that a missing type raises NodeTypeNotFoundError."""
        registry = NodeRegistry()

        with pytest.raises(NodeTypeNotFoundError) as exc_info:
            registry.lookup("missing.node")

        assert exc_info.value.type_id == "missing.node"
        assert exc_info.value.code == ErrorCode.NODE_TYPE_NOT_FOUND
        assert registry.get("missing.node") is None

    def test_lookup_is_exact_match_only(self):
        """Test that no fuzzy or case-insensitive matching happens."""
        registry = NodeRegistry()
        registry.register(make_definition("n8n-nodes-base.httpRequest"))

        assert not registry.is_supported("n8n-nodes-base.httprequest")
        assert not registry.is_supported("httpRequest")

    def test_replace_policy_overwrites(self):
        """Test that the default policy replaces existing entries."""
        registry = NodeRegistry()
        registry.register(make_definition(display_name="First"))
        registry.register(make_definition(display_name="Second"))

        assert registry.lookup("test.node").display_name == "Second"

    def test_keep_policy_ignores_new_entry(self):
        """Test that the keep policy leaves the first entry in place."""
        registry = NodeRegistry(OverwritePolicy.KEEP)
        registry.register(make_definition(display_name="First"))

        assert registry.register(make_definition(display_name="Second")) is False
        assert registry.lookup("test.node").display_name == "First"

    def test_error_policy_raises(self):
        """Test that the error policy raises on duplicates."""
        registry = NodeRegistry("error")
        registry.register(make_definition())

        with pytest.raises(DuplicateNodeTypeError):
            registry.register(make_definition())

    def test_per_call_overwrite_override(self):
        """Test that a per-call policy wins over the registry default."""
        registry = NodeRegistry(OverwritePolicy.ERROR)
        registry.register(make_definition(display_name="First"))

        registry.register(make_definition(display_name="Second"), overwrite="replace")

        assert registry.lookup("test.node").display_name == "Second"

    def test_list_all_is_sorted(self):
        """Test that listing is ordered by type identifier."""
        registry = NodeRegistry()
        registry.register_many([make_definition("b.node"), make_definition("a.node"), make_definition("c.node")])

        assert [d.type for d in registry.list_all()] == ["a.node", "b.node", "c.node"]

    def test_list_by_category(self):
        """Test filtering by category."""
        registry = NodeRegistry()
        registry.register(make_definition("a.trigger", NodeCategory.TRIGGER))
        registry.register(make_definition("b.action", NodeCategory.ACTION))

        assert [d.type for d in registry.list_by_category("trigger")] == ["a.trigger"]

    def test_snapshot_is_isolated_from_later_writes(self):
        """Test that a snapshot does not see registrations made after it."""
        registry = NodeRegistry()
        registry.register(make_definition("a.node"))
        snapshot = registry.snapshot()

        registry.register(make_definition("b.node"))

        assert list(snapshot) == ["a.node"]
        with pytest.raises(TypeError):
            snapshot["c.node"] = make_definition("c.node")

    def test_concurrent_registration(self):
        """Test that parallel writers do not lose registrations."""
        registry = NodeRegistry()

        def register_range(start):
            for i in range(start, start + 50):
                registry.register(make_definition(f"node.{i:03d}"))

        threads = [threading.Thread(target=register_range, args=(n * 50,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(registry) == 200


class TestBuiltinCatalog:
    """Test the built-in node type catalog."""

    def test_nothing_registered_by_default(self):
        """Test that a new registry is empty."""
        assert len(NodeRegistry()) == 0

    def test_register_builtin_node_types(self):
        """Test that every built-in type is installed."""
        registry = NodeRegistry()
        count = register_builtin_node_types(registry)

        assert count == len(builtin_node_types()) == 16
        for name in ("manualTrigger", "webhook", "scheduleTrigger", "cron", "httpRequest", "slack",
                     "telegram", "postgres", "emailSend", "openAi", "set", "code", "if", "switch",
                     "merge", "noOp"):
            assert registry.is_supported(f"n8n-nodes-base.{name}")

    def test_triggers_have_no_inputs(self):
        """Test that trigger types declare no input slots."""
        for definition in builtin_node_types():
            if definition.category == NodeCategory.TRIGGER:
                assert definition.inputs == []

    def test_http_request_uses_httpx(self):
        """Test that the HTTP request node imports the HTTP client package."""
        registry = NodeRegistry()
        register_builtin_node_types(registry)

        imports = registry.lookup("n8n-nodes-base.httpRequest").imports
        assert any(imp.distribution == "httpx" for imp in imports)
