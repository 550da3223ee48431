"""
Node type registry.

A keyed table of NodeTypeDefinition records. Lookups are exact-match only.
Writes are serialized by a lock and publish a fresh read-only table, so
mapping runs reading a snapshot never see a half-applied registration.
"""

import logging
import threading
from enum import Enum
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Union

from core.errors import DuplicateNodeTypeError, NodeTypeNotFoundError
from .models import NodeCategory, NodeTypeDefinition

logger = logging.getLogger(__name__)


class OverwritePolicy(str, Enum):
    """What registering an already known type identifier does"""
    REPLACE = "replace"
    KEEP = "keep"
    ERROR = "error"


class NodeRegistry:
    """Registry for node type definitions"""

    def __init__(self, overwrite_policy: Union[OverwritePolicy, str] = OverwritePolicy.REPLACE):
        self.overwrite_policy = OverwritePolicy(overwrite_policy)
        self._types: Mapping[str, NodeTypeDefinition] = MappingProxyType({})
        self._write_lock = threading.Lock()

    def register(
        self,
        definition: NodeTypeDefinition,
        overwrite: Optional[Union[OverwritePolicy, str]] = None
    ) -> bool:
        """
        Register a node type definition.

        Args:
            definition: The definition to add
            overwrite: Per-call override of the registry's overwrite policy

        Returns:
            True if the table now holds this definition, False if an existing
            entry was kept
        """
        policy = OverwritePolicy(overwrite) if overwrite is not None else self.overwrite_policy

        with self._write_lock:
            if definition.type in self._types:
                if policy == OverwritePolicy.ERROR:
                    raise DuplicateNodeTypeError(definition.type)
                if policy == OverwritePolicy.KEEP:
                    logger.warning(f"Node type {definition.type} already registered, keeping existing entry")
                    return False
                logger.info(f"Replacing node type {definition.type}")

            table = dict(self._types)
            table[definition.type] = definition
            self._types = MappingProxyType(table)

        logger.debug(f"Registered node type {definition.type} ({definition.category.value})")
        return True

    def register_many(
        self,
        definitions: Iterable[NodeTypeDefinition],
        overwrite: Optional[Union[OverwritePolicy, str]] = None
    ) -> int:
        """Register several definitions, returning how many were stored"""
        return sum(1 for definition in definitions if self.register(definition, overwrite))

    def lookup(self, type_id: str) -> NodeTypeDefinition:
        """Get a definition by exact type identifier, raising if absent"""
        definition = self._types.get(type_id)
        if definition is None:
            raise NodeTypeNotFoundError(type_id)
        return definition

    def get(self, type_id: str) -> Optional[NodeTypeDefinition]:
        """Get a definition by exact type identifier, or None"""
        return self._types.get(type_id)

    def is_supported(self, type_id: str) -> bool:
        return type_id in self._types

    def list_all(self) -> List[NodeTypeDefinition]:
        """All definitions, ordered by type identifier"""
        table = self._types
        return [table[key] for key in sorted(table)]

    def list_by_category(self, category: Union[NodeCategory, str]) -> List[NodeTypeDefinition]:
        category = NodeCategory(category)
        return [d for d in self.list_all() if d.category == category]

    def snapshot(self) -> Mapping[str, NodeTypeDefinition]:
        """The current table; later registrations do not affect it"""
        return self._types

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._types
