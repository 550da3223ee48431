"""
Read-only helpers around node mapping: support checks, complexity and effort
estimates, and the markdown conversion summary.
"""

import math
from typing import Any, Dict, List, Union

from core.catalog import NodeRegistry
from .models import MappingResult, WorkflowData

WorkflowInput = Union[WorkflowData, Dict[str, Any]]

# Minutes of manual work per node
SUPPORTED_NODE_MINUTES = 2
UNSUPPORTED_NODE_MINUTES = 5


def _as_workflow(workflow: WorkflowInput) -> WorkflowData:
    if isinstance(workflow, WorkflowData):
        return workflow
    return WorkflowData.from_n8n(workflow)


def is_workflow_supported(workflow: WorkflowInput, registry: NodeRegistry) -> bool:
    """True when every node type is registered"""
    return all(registry.is_supported(node.type) for node in _as_workflow(workflow).nodes)


def get_unsupported_node_types(workflow: WorkflowInput, registry: NodeRegistry) -> List[str]:
    """Distinct unregistered node types, in document order"""
    types = (node.type for node in _as_workflow(workflow).nodes if not registry.is_supported(node.type))
    return list(dict.fromkeys(types))


def calculate_complexity_score(workflow: WorkflowInput) -> float:
    """Nodes plus half the connections"""
    workflow = _as_workflow(workflow)
    return len(workflow.nodes) + 0.5 * len(workflow.connections)


def estimate_conversion_time(workflow: WorkflowInput, registry: NodeRegistry) -> int:
    """Rough conversion effort in minutes"""
    workflow = _as_workflow(workflow)
    supported = sum(1 for node in workflow.nodes if registry.is_supported(node.type))
    unsupported = len(workflow.nodes) - supported
    complexity = calculate_complexity_score(workflow)

    base = supported * SUPPORTED_NODE_MINUTES + unsupported * UNSUPPORTED_NODE_MINUTES
    return math.ceil(base * max(1, complexity / 10))


def generate_conversion_summary(result: MappingResult) -> str:
    """Markdown report of a mapping run"""
    summary = result.summary
    validation = result.validation

    lines = [
        "# Workflow Conversion Summary",
        "",
        "## Overview",
        f"- **Total Nodes**: {summary.total_nodes}",
        f"- **Supported Nodes**: {summary.supported_nodes} ({round(summary.supported_percentage)}%)",
        f"- **Trigger Nodes**: {summary.trigger_nodes}",
        f"- **Action Nodes**: {summary.action_nodes}",
        f"- **Transform Nodes**: {summary.transform_nodes}",
        "",
    ]

    if validation.errors:
        lines.append(f"## Errors ({len(validation.errors)})")
        lines.extend(f"- {error}" for error in validation.errors)
        lines.append("")

    if validation.warnings:
        lines.append(f"## Warnings ({len(validation.warnings)})")
        lines.extend(f"- {warning}" for warning in validation.warnings)
        lines.append("")

    if validation.unsupported_nodes:
        lines.append("## Unsupported Node Types")
        lines.extend(f"- {node_type}" for node_type in validation.unsupported_nodes)
        lines.append("")

    env_count = len(result.environment_variables)
    credential_fields = sum(len(t.fields) for t in result.credential_templates.values())
    if env_count or credential_fields:
        lines.append("## Configuration Required")
        if env_count:
            lines.append(f"- **Environment Variables**: {env_count} variables need to be set")
        if credential_fields:
            lines.append(f"- **Credentials**: {credential_fields} credential fields need to be configured")
        lines.append("")

    lines.append("## Status")
    if result.failed:
        lines.append("❌ **Mapping failed** - The workflow could not be mapped; see the errors above.")
    elif validation.valid:
        lines.append("✅ **Ready for conversion** - All nodes are supported and properly configured.")
    else:
        lines.append("❌ **Conversion blocked** - Please resolve the errors above before proceeding.")

    return "\n".join(lines)
