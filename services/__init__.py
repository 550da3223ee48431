"""
Services package for workflow node mapping.
"""

from .node_mapping import NodeMapper, create_node_mapper

__all__ = [
    "NodeMapper",
    "create_node_mapper",
]
