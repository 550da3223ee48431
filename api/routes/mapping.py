"""
Mapping routes: node type listing, workflow mapping, analysis and summaries.
"""

from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_node_mapper
from api.models import AnalyzeResponse, MapWorkflowRequest, NodeTypeInfo, SummaryResponse, WorkflowRequest
from core.catalog import NodeCategory, NodeTypeDefinition
from services.node_mapping import (
    NodeMapper,
    WorkflowData,
    calculate_complexity_score,
    estimate_conversion_time,
    generate_conversion_summary,
    get_unsupported_node_types,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/mapping", tags=["mapping"])


def _node_type_info(definition: NodeTypeDefinition) -> NodeTypeInfo:
    return NodeTypeInfo(
        type=definition.type,
        display_name=definition.display_name,
        category=definition.category.value,
        description=definition.description,
        credentials=[cred.name for cred in definition.credentials],
    )


@router.get("/node-types", response_model=List[NodeTypeInfo])
async def list_node_types(
    category: Optional[NodeCategory] = Query(None, description="Only list node types of this category"),
    mapper: NodeMapper = Depends(get_node_mapper),
) -> List[NodeTypeInfo]:
    """List supported node types"""
    definitions = mapper.registry.list_by_category(category) if category else mapper.registry.list_all()
    return [_node_type_info(d) for d in definitions]


@router.get("/node-types/{type_id}")
async def get_node_type(type_id: str, mapper: NodeMapper = Depends(get_node_mapper)) -> Dict[str, Any]:
    """Full definition of one node type"""
    return mapper.registry.lookup(type_id).model_dump(mode="json")


@router.post("/map")
async def map_workflow(
    request: MapWorkflowRequest,
    strict: Optional[bool] = Query(None, description="Fail on unsupported node types or structural errors"),
    mapper: NodeMapper = Depends(get_node_mapper),
) -> Dict[str, Any]:
    """Map a workflow to code-generation-ready data"""
    workflow = WorkflowData.from_n8n(request.workflow)
    result = mapper.map_workflow(workflow, strict=strict, credentials=request.credentials)
    return result.model_dump(mode="json")


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_workflow(
    request: WorkflowRequest,
    mapper: NodeMapper = Depends(get_node_mapper),
) -> AnalyzeResponse:
    """Support and effort estimate for a workflow, without mapping it"""
    workflow = WorkflowData.from_n8n(request.workflow)
    stats = mapper.get_workflow_mapping_stats(workflow)
    unsupported = get_unsupported_node_types(workflow, mapper.registry)

    return AnalyzeResponse(
        supported=not unsupported,
        total_nodes=stats["total_nodes"],
        supported_nodes=stats["supported_nodes"],
        unsupported_node_types=unsupported,
        supported_percentage=stats["supported_percentage"],
        complexity_score=calculate_complexity_score(workflow),
        estimated_minutes=estimate_conversion_time(workflow, mapper.registry),
    )


@router.post("/summary", response_model=SummaryResponse)
async def summarize_workflow(
    request: MapWorkflowRequest,
    strict: Optional[bool] = Query(None),
    mapper: NodeMapper = Depends(get_node_mapper),
) -> SummaryResponse:
    """Map a workflow and return the markdown conversion summary"""
    workflow = WorkflowData.from_n8n(request.workflow)
    result = mapper.map_workflow(workflow, strict=strict, credentials=request.credentials)
    return SummaryResponse(
        status=result.status.value,
        valid=result.validation.valid,
        summary=generate_conversion_summary(result),
    )
