"""
Graph Searcher - Path enumeration over a built access graph.

Two primitives walk the frozen edge list:
- find_ancestors: towards edge sources ("what reaches this node?")
- find_descendants: towards edge destinations ("what can this node reach?")

Both lazily yield every distinct path, not every distinct node, because two
paths to the same identity carry different evidence. A node is never
revisited within one path, so cyclic canAssume chains terminate.

Typical usage:
    searcher = GraphSearcher(graph.edges)
    for user, path in searcher.find_ancestors(service_node, NodeType.USER):
        ...
"""

from collections import defaultdict
from typing import Collection, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from bifrost.graph.model import Edge, LEAF_IDENTITY_TYPES, Node, NodeType

Path = Tuple[Edge, ...]
Match = Tuple[Node, Path]
WantedType = Union[NodeType, Collection[NodeType]]


def _as_type_set(wanted_type: WantedType) -> frozenset:
    if isinstance(wanted_type, NodeType):
        return frozenset({wanted_type})
    return frozenset(wanted_type)


def find_service_node(nodes: Iterable[Node], service: str) -> Optional[Node]:
    """
    Find the Service node for a prefix (case-insensitive).

    Raises:
        ValueError: If more than one service node matches
    """
    matches = [
        n for n in nodes
        if n.type is NodeType.SERVICE and n.name.lower() == service.lower()
    ]
    if len(matches) > 1:
        raise ValueError(f"More than one service node found for '{service}', found {len(matches)}")
    return matches[0] if matches else None


class GraphSearcher:
    """Read-only queries over an edge list"""

    def __init__(self, edges: Iterable[Edge]):
        self.edges: List[Edge] = list(edges)
        self._incoming: Dict[Node, List[Edge]] = defaultdict(list)
        self._outgoing: Dict[Node, List[Edge]] = defaultdict(list)
        for edge in self.edges:
            self._incoming[edge.destination].append(edge)
            self._outgoing[edge.source].append(edge)

    def find_ancestors(self, target: Node, wanted_type: WantedType) -> Iterator[Match]:
        """
        Yield ``(ancestor, path)`` for every path from an ancestor of
        ``wanted_type`` down to ``target``.

        The path is ordered from the ancestor's edge to the edge entering
        ``target``. The walk stops at the first node of the wanted type.
        """
        return self._walk(target, _as_type_set(wanted_type), upward=True, path=(), visited=(target,))

    def find_descendants(self, target: Node, wanted_type: WantedType) -> Iterator[Match]:
        """
        Yield ``(descendant, path)`` for every path from ``target`` to a
        descendant of ``wanted_type``, ordered from ``target`` outward.
        """
        return self._walk(target, _as_type_set(wanted_type), upward=False, path=(), visited=(target,))

    def _walk(
        self,
        current: Node,
        wanted: frozenset,
        upward: bool,
        path: Path,
        visited: Tuple[Node, ...],
    ) -> Iterator[Match]:
        edges = self._incoming.get(current, ()) if upward else self._outgoing.get(current, ())
        for edge in edges:
            neighbour = edge.source if upward else edge.destination

            if neighbour in visited:
                continue

            extended = (edge,) + path if upward else path + (edge,)
            if neighbour.type in wanted:
                yield neighbour, extended
            else:
                yield from self._walk(neighbour, wanted, upward, extended, visited + (neighbour,))

    # Specializations

    def find_groups_attached_to(self, target: Node) -> Iterator[Match]:
        return self.find_ancestors(target, NodeType.GROUP)

    def find_roles_attached_to(self, target: Node) -> Iterator[Match]:
        return self.find_ancestors(target, NodeType.ROLE)

    def find_services_attached_to(self, target: Node) -> Iterator[Match]:
        return self.find_descendants(target, NodeType.SERVICE)

    def find_identity_groups_attached_to(self, target: Node) -> Iterator[Match]:
        """Okta groups reaching ``target``; IAM groups when no Okta group does."""
        okta_groups = list(self.find_ancestors(target, NodeType.OKTA_GROUP))
        if okta_groups:
            return iter(okta_groups)
        return self.find_ancestors(target, NodeType.GROUP)

    def find_identity_principals_attached_to(self, target: Node) -> Iterator[Match]:
        return self.find_ancestors(target, NodeType.IDENTITY_PRINCIPAL)

    def find_users_attached_to(self, target: Node) -> Iterator[Match]:
        """Every leaf identity (IAM, Okta or Identity Store user) reaching ``target``."""
        return self.find_ancestors(target, LEAF_IDENTITY_TYPES)
