"""
Pytest configuration and fixtures for the node mapping tests.
"""
import pytest
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import patch

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.catalog import NodeRegistry, register_builtin_node_types
from core.config import Settings
from services.node_mapping import NodeMapper

HTTP_REQUEST = "n8n-nodes-base.httpRequest"
MANUAL_TRIGGER = "n8n-nodes-base.manualTrigger"
WEBHOOK = "n8n-nodes-base.webhook"
SCHEDULE_TRIGGER = "n8n-nodes-base.scheduleTrigger"
SLACK = "n8n-nodes-base.slack"
OPENAI = "n8n-nodes-base.openAi"
SET = "n8n-nodes-base.set"
NO_OP = "n8n-nodes-base.noOp"
MERGE = "n8n-nodes-base.merge"


def make_node(
    name: str,
    node_type: str,
    parameters: Optional[Dict[str, Any]] = None,
    node_id: Optional[str] = None,
    credentials: Optional[Dict[str, Any]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """One node as it appears in an n8n export"""
    node = {
        "id": node_id or name.lower().replace(" ", "-"),
        "name": name,
        "type": node_type,
        "typeVersion": 1,
        "position": [0, 0],
        "parameters": parameters or {},
    }
    if credentials:
        node["credentials"] = credentials
    node.update(extra)
    return node


def make_workflow(nodes: List[Dict[str, Any]], edges: Optional[List[tuple]] = None,
                  name: str = "Test Workflow") -> Dict[str, Any]:
    """n8n workflow document; edges are (source name, target name) pairs on main slot 0"""
    connections: Dict[str, Any] = {}
    for source, target in edges or []:
        slots = connections.setdefault(source, {"main": [[]]})["main"]
        slots[0].append({"node": target, "type": "main", "index": 0})
    return {"name": name, "nodes": nodes, "connections": connections}


@pytest.fixture
def test_settings():
    """Settings built from defaults only."""
    with patch.dict(os.environ, {}, clear=True):
        yield Settings(_env_file=None)


@pytest.fixture
def registry():
    """Registry holding the built-in node types."""
    registry = NodeRegistry()
    register_builtin_node_types(registry)
    return registry


@pytest.fixture
def mapper(registry, test_settings):
    """Node mapper over the built-in registry."""
    return NodeMapper(registry, test_settings)


@pytest.fixture
def linear_workflow():
    """Manual trigger -> HTTP request reading the trigger's output."""
    return make_workflow(
        [
            make_node("Start", MANUAL_TRIGGER),
            make_node("Fetch", HTTP_REQUEST, {
                "url": "={{ $('Start').item.json.url }}",
                "method": "GET",
            }),
        ],
        [("Start", "Fetch")],
    )
