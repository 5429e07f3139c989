"""Turn a declarative graph definition into a runnable :class:`Graph`."""

from __future__ import annotations

from typing import Any

from .graph import Graph
from .node_factory import NodeRegistry


class CompileError(Exception):
    """A graph definition could not be compiled."""


class UnknownNodeTypeError(CompileError):
    """A node refers to a type the registry does not know."""

    def __init__(self, node_id: int, type_id: int) -> None:
        super().__init__(f"Node {node_id} has unknown type {type_id}")
        self.node_id = node_id
        self.type_id = type_id


class InvalidConnectionError(CompileError):
    """A connection refers to a node that is not in the definition."""

    def __init__(self, source: int, dest: int) -> None:
        super().__init__(f"Invalid connection from {source} to {dest}")
        self.source = source
        self.dest = dest


def compile_graph(
    definition: Any, registry: NodeRegistry, max_block: int, max_voices: int
) -> Graph:
    """Build a graph from ``definition`` using the registry's factories.

    ``definition`` provides ``nodes`` (a mapping of node id to an object with
    ``type_id`` and ``param_values``), ``connections`` (objects with
    ``source_node`` and ``dest_node``) and ``output_node`` (an id or None).
    Nodes are created in ascending id order, their parameters applied, the
    connections wired and the output node chosen. The graph still needs
    :meth:`Graph.prepare` before processing.
    """
    graph = Graph(max_block, max_voices)
    id_to_index: dict[int, int] = {}

    node_ids = sorted(definition.nodes)
    for node_id in node_ids:
        node_def = definition.nodes[node_id]
        factory = registry.get_factory(node_def.type_id)
        if factory is None:
            raise UnknownNodeTypeError(node_id, node_def.type_id)
        idx = graph.add_node(factory)
        id_to_index[node_id] = idx
        for param_id, value in node_def.param_values.items():
            graph.set_param(idx, param_id, value)

    # The runtime graph links whole nodes, not ports, so repeated
    # source -> dest pairs collapse into a single edge.
    connected: dict[int, list[int]] = {}
    for conn in definition.connections:
        sources = connected.setdefault(conn.dest_node, [])
        if conn.source_node in sources:
            continue
        sources.append(conn.source_node)
        src_idx = id_to_index.get(conn.source_node)
        dst_idx = id_to_index.get(conn.dest_node)
        if src_idx is None or dst_idx is None:
            raise InvalidConnectionError(conn.source_node, conn.dest_node)
        graph.connect(src_idx, dst_idx)

    output_id = definition.output_node
    if output_id is not None:
        if output_id in id_to_index:
            graph.output_node = id_to_index[output_id]
    elif node_ids:
        graph.output_node = len(graph.nodes) - 1

    graph.id_to_index = id_to_index
    return graph