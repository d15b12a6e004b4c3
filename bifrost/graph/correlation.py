"""
Identity correlation strategies.

A correlator maps a leaf identity node to a correlation key; identities
sharing a key are presented as one IdentityPrincipal. The default keys on
the local part of the name (``alice@corp.example`` -> ``alice``), which is a
naming heuristic and can merge unrelated people across domains. Use
``exact`` when the directories share no naming convention.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from bifrost.graph.model import Edge, LEAF_IDENTITY_TYPES, Node, NodeType, Relation

logger = logging.getLogger(__name__)

Correlator = Callable[[Node], Optional[str]]


def local_part(node: Node) -> Optional[str]:
    """Substring of the name before the first ``@``."""
    key = node.name.split('@', 1)[0].strip()
    return key or None


def exact_name(node: Node) -> Optional[str]:
    """The full name; only identically named identities are merged."""
    return node.name.strip() or None


CORRELATORS: Dict[str, Correlator] = {
    'local-part': local_part,
    'exact': exact_name,
}


def get_correlator(name: str) -> Correlator:
    try:
        return CORRELATORS[name]
    except KeyError:
        raise ValueError(f"Unknown correlation strategy '{name}' (choose from {', '.join(CORRELATORS)})")


def correlate_identities(
    nodes: Iterable[Node],
    correlator: Correlator = local_part,
) -> Tuple[List[Node], List[Edge]]:
    """
    Group leaf identities by correlation key.

    Returns:
        (identity principal nodes, ``is`` edges from each principal to its members)
    """
    groups: Dict[str, Tuple[str, List[Node]]] = {}
    for node in nodes:
        if node.type not in LEAF_IDENTITY_TYPES:
            continue
        key = correlator(node)
        if key is None:
            continue
        display, members = groups.setdefault(key.lower(), (key, []))
        if node not in members:
            members.append(node)

    principals: List[Node] = []
    edges: List[Edge] = []
    for display, members in groups.values():
        principal = Node(name=display, type=NodeType.IDENTITY_PRINCIPAL, arn=display)
        principals.append(principal)
        edges.extend(Edge(principal, member, Relation.IS) for member in members)

    logger.info("Correlated %d identities into %d principal(s)", sum(len(m) for _, m in groups.values()), len(principals))
    return principals, edges
