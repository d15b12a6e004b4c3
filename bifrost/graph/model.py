"""
Node and edge types of the access graph.

Nodes are compared case-insensitively on (name, type, arn); the account id
is informational. An edge carries either a plain relation or the subset of
a policy analysis for the service it points at.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

import networkx as nx

from bifrost.iam.arn_utils import is_cross_account
from bifrost.iam.policy_analyzer import PolicyAnalysis


class NodeType(Enum):
    """Kinds of node in the access graph."""
    SERVICE = "service"
    MANAGED_POLICY = "managed_policy"
    INLINE_POLICY = "inline_policy"
    GROUP = "group"
    ROLE = "role"
    USER = "user"
    PERMISSION_SET = "permission_set"
    IDENTITY_STORE_USER = "identity_store_user"
    IDENTITY_STORE_GROUP = "identity_store_group"
    OKTA_USER = "okta_user"
    OKTA_GROUP = "okta_group"
    IDENTITY_PRINCIPAL = "identity_principal"


# Leaf identities: the humans or machines that sign in somewhere
LEAF_IDENTITY_TYPES = frozenset({
    NodeType.USER,
    NodeType.OKTA_USER,
    NodeType.IDENTITY_STORE_USER,
})

POLICY_TYPES = frozenset({NodeType.MANAGED_POLICY, NodeType.INLINE_POLICY})

# Prefixes used when a node is shown outside its graph
TYPED_NAME_PREFIX: Dict[NodeType, str] = {
    NodeType.SERVICE: "",
    NodeType.MANAGED_POLICY: "AwsIamPolicy:",
    NodeType.INLINE_POLICY: "AwsInlinePolicy:",
    NodeType.GROUP: "AwsIamGroup:",
    NodeType.ROLE: "AwsIamRole:",
    NodeType.USER: "AwsIamUser:",
    NodeType.PERMISSION_SET: "AwsPermissionSet:",
    NodeType.IDENTITY_STORE_USER: "AwsIdentityStoreUser:",
    NodeType.IDENTITY_STORE_GROUP: "AwsIdentityStoreGroup:",
    NodeType.OKTA_USER: "OktaUser:",
    NodeType.OKTA_GROUP: "OktaGroup:",
    NodeType.IDENTITY_PRINCIPAL: "ID:",
}


class Relation(Enum):
    """Plain edge labels."""
    ATTACHED_TO = "attachedTo"
    MEMBER_OF = "memberOf"
    REFERENCES = "references"
    CAN_ASSUME = "canAssume"
    IS = "is"


@dataclass(frozen=True, eq=False)
class Node:
    """Vertex of the access graph"""
    name: str
    type: NodeType
    arn: str
    account_id: Optional[str] = None

    @property
    def identity(self) -> tuple:
        return (self.name.lower(), self.type, self.arn.lower())

    @property
    def key(self) -> str:
        """Stable identifier for exchange formats."""
        return f"{self.type.value}:{self.arn.lower()}"

    @property
    def typed_name(self) -> str:
        return f"{TYPED_NAME_PREFIX[self.type]}{self.name}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def __repr__(self) -> str:
        return f"Node({self.type.value}, {self.name!r})"


EdgeLabel = Union[Relation, PolicyAnalysis]


@dataclass(frozen=True)
class Edge:
    """Directed edge; ``label`` is a Relation or a per-service PolicyAnalysis"""
    source: Node
    destination: Node
    label: EdgeLabel

    @property
    def relation(self) -> Relation:
        if isinstance(self.label, Relation):
            return self.label
        return Relation.REFERENCES

    @property
    def analysis(self) -> Optional[PolicyAnalysis]:
        if isinstance(self.label, PolicyAnalysis):
            return self.label
        return None

    @property
    def label_text(self) -> str:
        if isinstance(self.label, Relation):
            return self.label.value
        return self.label.label

    @property
    def grants_write(self) -> bool:
        """True if the edge carries analysis evidence of a non-deny write stanza."""
        return self.analysis is not None and not self.analysis.read_only()


@dataclass
class AccessGraph:
    """
    Assembled access graph: a node arena plus an edge list.

    Invariant: no two nodes are equal and every edge endpoint is a node.
    """
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    @classmethod
    def merge(cls, graphs: Iterable['AccessGraph']) -> 'AccessGraph':
        """Combine per-account graphs, dropping duplicate nodes and edges."""
        merged = cls()
        seen_nodes = set()
        seen_edges = set()
        for graph in graphs:
            for node in graph.nodes:
                if node not in seen_nodes:
                    seen_nodes.add(node)
                    merged.nodes.append(node)
            for edge in graph.edges:
                if edge not in seen_edges:
                    seen_edges.add(edge)
                    merged.edges.append(edge)
        return merged

    def nodes_of_type(self, node_type: NodeType) -> List[Node]:
        return [n for n in self.nodes if n.type is node_type]

    def to_networkx(self) -> nx.DiGraph:
        """Convert to a networkx DiGraph keyed by ``Node.key``."""
        graph = nx.DiGraph()
        for node in self.nodes:
            graph.add_node(
                node.key,
                name=node.name,
                type=node.type.value,
                arn=node.arn,
                account_id=node.account_id,
            )
        for edge in self.edges:
            graph.add_edge(
                edge.source.key,
                edge.destination.key,
                relation=edge.relation.value,
                label=edge.label_text,
                write=edge.grants_write,
                cross_account=is_cross_account(edge.source.arn, edge.destination.arn),
            )
        return graph

    def stats(self) -> Dict[str, Any]:
        type_counts = {t.value: 0 for t in NodeType}
        accounts = set()
        for node in self.nodes:
            type_counts[node.type.value] += 1
            if node.account_id:
                accounts.add(node.account_id)

        relation_counts = {r.value: 0 for r in Relation}
        cross_account_edges = 0
        for edge in self.edges:
            relation_counts[edge.relation.value] += 1
            if edge.relation is Relation.CAN_ASSUME and is_cross_account(edge.source.arn, edge.destination.arn):
                cross_account_edges += 1

        return {
            'node_count': len(self.nodes),
            'edge_count': len(self.edges),
            'nodes_by_type': type_counts,
            'edges_by_relation': relation_counts,
            'cross_account_edges': cross_account_edges,
            'account_count': len(accounts),
            'accounts': sorted(accounts),
        }

    def node_link_data(self) -> Dict[str, Any]:
        """networkx node-link representation with a ``stats`` block."""
        data = nx.node_link_data(self.to_networkx(), edges='links')
        data['stats'] = self.stats()
        return data
