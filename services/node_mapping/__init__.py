"""
Node mapping service.

Maps n8n workflow graphs to code-generation-ready data: transformed
parameters, credential environment variables, and the dependency manifest
of the generated project.
"""

from .models import (
    WorkflowData,
    WorkflowNode,
    WorkflowConnection,
    CredentialReference,
    MappingResult,
    MappingStatus,
    MappedNode,
    ValidationIssue,
    IssueKind,
    EnvironmentVariable,
    GeneratedDependencies,
)
from .node_mapper import NodeMapper, create_node_mapper
from .parameter_transformer import ParameterTransformer, TransformationContext, TransformationResult
from .credential_mapper import CredentialMapper, mask_value, to_env_name
from .dependency_generator import DependencyGenerator, generate_dependency_documentation
from .utils import (
    is_workflow_supported,
    get_unsupported_node_types,
    calculate_complexity_score,
    estimate_conversion_time,
    generate_conversion_summary,
)

__all__ = [
    # Models
    "WorkflowData",
    "WorkflowNode",
    "WorkflowConnection",
    "CredentialReference",
    "MappingResult",
    "MappingStatus",
    "MappedNode",
    "ValidationIssue",
    "IssueKind",
    "EnvironmentVariable",
    "GeneratedDependencies",

    # Components
    "NodeMapper",
    "create_node_mapper",
    "ParameterTransformer",
    "TransformationContext",
    "TransformationResult",
    "CredentialMapper",
    "mask_value",
    "to_env_name",
    "DependencyGenerator",
    "generate_dependency_documentation",

    # Utilities
    "is_workflow_supported",
    "get_unsupported_node_types",
    "calculate_complexity_score",
    "estimate_conversion_time",
    "generate_conversion_summary",
]
