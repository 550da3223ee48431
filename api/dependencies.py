"""
FastAPI dependencies shared by the route modules.
"""

from fastapi import Request

from services.node_mapping import NodeMapper


def get_node_mapper(request: Request) -> NodeMapper:
    """The mapper built at application startup"""
    return request.app.state.node_mapper
