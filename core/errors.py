"""
Error types for the workflow node mapping core.

Problems found inside a workflow are never raised; they are collected as
validation issues on the mapping result. The exceptions here are reserved for
callers misusing an API (looking up an unknown node type, registering a
duplicate under the ``error`` policy, handing over a malformed document).
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Standardized error codes."""
    # Catalog errors (1xxx)
    NODE_TYPE_NOT_FOUND = "E1001"
    NODE_TYPE_DUPLICATE = "E1002"

    # Workflow document errors (2xxx)
    WORKFLOW_INVALID = "E2001"

    # Unknown
    UNKNOWN = "E9999"


class NodeMappingError(Exception):
    """Base class for all node mapping errors."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class NodeTypeNotFoundError(NodeMappingError):
    """Raised by an exact-match registry lookup that finds nothing."""

    code = ErrorCode.NODE_TYPE_NOT_FOUND

    def __init__(self, type_id: str):
        super().__init__(f"Node type not registered: {type_id}", {"type": type_id})
        self.type_id = type_id


class DuplicateNodeTypeError(NodeMappingError):
    """Raised when registering an existing type under the 'error' overwrite policy."""

    code = ErrorCode.NODE_TYPE_DUPLICATE

    def __init__(self, type_id: str):
        super().__init__(f"Node type already registered: {type_id}", {"type": type_id})
        self.type_id = type_id


class WorkflowParseError(NodeMappingError):
    """Raised when a workflow document cannot be turned into WorkflowData."""

    code = ErrorCode.WORKFLOW_INVALID
