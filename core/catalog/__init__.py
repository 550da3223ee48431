"""
Node type catalog.
Node type, parameter, credential and import definitions plus the registry that holds them.
"""

from .models import (
    # Core models
    NodeTypeDefinition,
    ParameterDefinition,
    CredentialDefinition,
    CredentialField,
    ImportDefinition,

    # Enums
    NodeCategory,
    ParamType,
    ImportKind,
    DependencyType,
)

from .registry import NodeRegistry, OverwritePolicy
from .builtin import builtin_node_types, register_builtin_node_types

__all__ = [
    # Models
    "NodeTypeDefinition",
    "ParameterDefinition",
    "CredentialDefinition",
    "CredentialField",
    "ImportDefinition",
    "NodeCategory",
    "ParamType",
    "ImportKind",
    "DependencyType",

    # Registry
    "NodeRegistry",
    "OverwritePolicy",
    "builtin_node_types",
    "register_builtin_node_types",
]

__version__ = "1.0.0"
