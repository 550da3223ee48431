"""
Workflow graph

Builds a directed graph from workflow nodes and connections and answers the
reachability questions expression resolution needs. The graph is not assumed
to be acyclic.
"""
import logging
from typing import Dict, FrozenSet, List, Set

import networkx as nx

from .models import WorkflowConnection, WorkflowData

logger = logging.getLogger(__name__)


class WorkflowGraph:
    """
    Connection graph of one workflow.

    Nodes are keyed by node id and carry their document index; connections
    whose endpoints do not exist are kept aside as orphans instead of edges.
    """

    def __init__(self, workflow: WorkflowData):
        self.graph = nx.MultiDiGraph()
        self.orphans: List[WorkflowConnection] = []

        for index, node in enumerate(workflow.nodes):
            if not self.graph.has_node(node.id):
                self.graph.add_node(node.id, index=index, name=node.name)

        for conn in workflow.connections:
            if self.graph.has_node(conn.source) and self.graph.has_node(conn.target):
                self.graph.add_edge(
                    conn.source,
                    conn.target,
                    source_output=conn.source_output,
                    source_index=conn.source_index,
                    target_input=conn.target_input,
                    target_index=conn.target_index,
                )
            else:
                self.orphans.append(conn)

        self._cycle_peers = self._compute_cycle_peers()
        logger.debug(
            f"Built workflow graph: {self.graph.number_of_nodes()} nodes, "
            f"{self.graph.number_of_edges()} edges, {len(self.orphans)} orphan connections"
        )

    def index_of(self, node_id: str) -> int:
        return self.graph.nodes[node_id]["index"]

    def name_of(self, node_id: str) -> str:
        return self.graph.nodes[node_id]["name"]

    def _by_index(self, node_ids) -> List[str]:
        return sorted(node_ids, key=self.index_of)

    def direct_inputs(self, node_id: str) -> List[str]:
        """Distinct direct predecessors, in document order"""
        return self._by_index(set(self.graph.predecessors(node_id)))

    def ancestors(self, node_id: str) -> Set[str]:
        """Every node with a path into node_id"""
        return nx.ancestors(self.graph, node_id)

    def cycle_peers(self, node_id: str) -> FrozenSet[str]:
        """Nodes sharing a cycle with node_id (itself included when it is on one)"""
        return self._cycle_peers.get(node_id, frozenset())

    def _compute_cycle_peers(self) -> Dict[str, FrozenSet[str]]:
        peers = {}
        for component in nx.strongly_connected_components(self.graph):
            if len(component) == 1:
                node_id = next(iter(component))
                if not self.graph.has_edge(node_id, node_id):
                    continue
            members = frozenset(component)
            for node_id in component:
                peers[node_id] = members
        return peers

    def is_acyclic(self) -> bool:
        return nx.is_directed_acyclic_graph(self.graph)

    def find_cycles(self) -> List[List[str]]:
        """
        Elementary cycles, each as node ids starting at its first node in
        document order, sorted by document position.
        """
        cycles = []
        for cycle in nx.simple_cycles(nx.DiGraph(self.graph)):
            start = min(range(len(cycle)), key=lambda i: self.index_of(cycle[i]))
            cycles.append(cycle[start:] + cycle[:start])
        cycles.sort(key=lambda c: [self.index_of(n) for n in c])
        return cycles

    def execution_order(self) -> List[str]:
        """
        Topological order with ties broken by document position, or plain
        document order when the graph has cycles.
        """
        if not self.is_acyclic():
            logger.debug("Graph has cycles, using document order")
            return self._by_index(self.graph.nodes)
        return list(nx.lexicographical_topological_sort(self.graph, key=self.index_of))
