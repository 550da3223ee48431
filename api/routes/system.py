"""
System routes for health checks and system status.
"""

from datetime import datetime, timezone
from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_node_mapper
from services.node_mapping import NodeMapper

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/system", tags=["system"])


@router.get("/health")
async def health_check(mapper: NodeMapper = Depends(get_node_mapper)) -> Dict[str, Any]:
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "registered_node_types": len(mapper.registry),
    }
