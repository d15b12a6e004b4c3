# ᚷᚱᚨᛈᚺᚢᛁᛉ • Graphviz Exporter - DOT Language
"""
Export the access graph as a Graphviz ``strict digraph``.

Node colours follow the node type; the catch-all ``*`` service is drawn in
red as ``EVERYTHING!``. Edges leaving IAM users share the user colour.

Usage:
    DOTExporter.save(graph, 'output/graph.dot')
    dot -Tsvg output/graph.dot > graph.svg
"""

from pathlib import Path
from typing import Dict, List, Union

from bifrost.graph.model import AccessGraph, Node, NodeType
from bifrost.services import WILDCARD_SERVICE, service_display_name

NODE_COLORS: Dict[NodeType, str] = {
    NodeType.IDENTITY_PRINCIPAL: 'blue',
    NodeType.USER: 'cornflowerblue',
    NodeType.OKTA_USER: 'cyan',
    NodeType.IDENTITY_STORE_USER: 'cyan3',
    NodeType.ROLE: 'darkgreen',
    NodeType.GROUP: 'darkolivegreen',
    NodeType.OKTA_GROUP: 'darkolivegreen4',
    NodeType.IDENTITY_STORE_GROUP: 'darkolivegreen3',
    NodeType.SERVICE: 'crimson',
}

NODE_LABEL_PREFIX: Dict[NodeType, str] = {
    NodeType.MANAGED_POLICY: 'AWS Policy ',
    NodeType.INLINE_POLICY: 'AWS Inline Policy ',
    NodeType.GROUP: 'AWS Group ',
    NodeType.ROLE: 'AWS Role ',
    NodeType.USER: 'AWS IAM User ',
    NodeType.PERMISSION_SET: 'AWS Permission Set ',
    NodeType.IDENTITY_STORE_USER: 'Identity Store User ',
    NodeType.IDENTITY_STORE_GROUP: 'Identity Store Group ',
    NodeType.OKTA_GROUP: 'Okta Group ',
    NodeType.OKTA_USER: 'Okta User ',
}

WILDCARD_NODE_ID = 'EVERYTHING!'


def _quote(value: str) -> str:
    return '"' + value.replace('\\', '\\\\').replace('"', '\\"') + '"'


class DOTExporter:
    """Export an AccessGraph to Graphviz DOT."""

    @staticmethod
    def node_id(node: Node) -> str:
        if node.type is NodeType.SERVICE and node.name == WILDCARD_SERVICE:
            return WILDCARD_NODE_ID
        return node.key

    @staticmethod
    def node_label(node: Node) -> str:
        if node.type is NodeType.SERVICE:
            return service_display_name(node.name)
        return NODE_LABEL_PREFIX.get(node.type, '') + node.name

    @classmethod
    def export(cls, graph: AccessGraph) -> str:
        """Export graph to DOT source text."""
        statements: List[str] = []

        for node in graph.nodes:
            attrs = []
            if cls.node_id(node) == WILDCARD_NODE_ID:
                attrs.append('color=red')
            elif node.type in NODE_COLORS:
                attrs.append(f'color={NODE_COLORS[node.type]}')
            attrs.append(f'label={_quote(cls.node_label(node))}')
            attrs.append(f'type={_quote(node.type.value)}')
            statements.append(f'{_quote(cls.node_id(node))} [{" ".join(attrs)}]')

        for edge in graph.edges:
            attrs = []
            if edge.source.type is NodeType.USER:
                attrs.append(f'color={NODE_COLORS[NodeType.USER]}')
            attrs.append(f'label={_quote(edge.label_text)}')
            statements.append(
                f'{_quote(cls.node_id(edge.source))} -> {_quote(cls.node_id(edge.destination))} [{" ".join(attrs)}]'
            )

        body = ';\n\t'.join(statements)
        return f'strict digraph aws {{\n\t{body}\n}}\n'

    @classmethod
    def save(cls, graph: AccessGraph, output_path: Union[str, Path]) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(cls.export(graph), encoding='utf-8')
        return output_path
