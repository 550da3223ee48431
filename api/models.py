"""
API models for the workflow node mapping service
"""

from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional

# ============================================================================
# Request Models
# ============================================================================

class WorkflowRequest(BaseModel):
    workflow: Dict[str, Any] = Field(..., description="Parsed n8n workflow document")


class MapWorkflowRequest(WorkflowRequest):
    credentials: Optional[Dict[str, Dict[str, Any]]] = Field(
        default=None,
        description="Credential data keyed by credential id or name; only marks variables as set"
    )

# ============================================================================
# Response Models
# ============================================================================

class NodeTypeInfo(BaseModel):
    type: str
    display_name: str
    category: str
    description: str = ""
    credentials: List[str] = []


class AnalyzeResponse(BaseModel):
    supported: bool
    total_nodes: int
    supported_nodes: int
    unsupported_node_types: List[str]
    supported_percentage: float
    complexity_score: float
    estimated_minutes: int


class SummaryResponse(BaseModel):
    status: str
    valid: bool
    summary: str
