# ᛞᚷᛗᛚ • DGML Exporter - Directed Graph Markup Language
"""
Export the access graph as DGML for the Visual Studio graph viewer.

Nodes carry their type as Category; service nodes whose prefix is not in
the service table are labelled ``UNKNOWN SERVICE PREFIX <prefix>``.

Usage:
    DGMLExporter.save(graph, 'output/graph.dgml')
    xml_string = DGMLExporter.export(graph)
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Union

from bifrost.graph.model import AccessGraph, Node, NodeType
from bifrost.services import service_display_name

DGML_NAMESPACE = 'http://schemas.microsoft.com/vs/2009/dgml'


class DGMLExporter:
    """Export an AccessGraph to DGML."""

    @staticmethod
    def node_label(node: Node) -> str:
        if node.type is NodeType.SERVICE:
            return service_display_name(node.name)
        return node.name

    @classmethod
    def to_element(cls, graph: AccessGraph) -> ET.Element:
        root = ET.Element('DirectedGraph', xmlns=DGML_NAMESPACE)

        nodes = ET.SubElement(root, 'Nodes')
        for node in graph.nodes:
            ET.SubElement(nodes, 'Node', Id=node.key, Label=cls.node_label(node), Category=node.type.value)

        links = ET.SubElement(root, 'Links')
        for edge in graph.edges:
            ET.SubElement(
                links, 'Link',
                Source=edge.source.key, Target=edge.destination.key, Label=edge.label_text,
            )

        categories = ET.SubElement(root, 'Categories')
        for node_type in NodeType:
            ET.SubElement(categories, 'Category', Id=node_type.value)

        return root

    @classmethod
    def export(cls, graph: AccessGraph) -> str:
        """
        Export graph to a DGML string.

        Args:
            graph: Access graph to serialize

        Returns:
            XML document text
        """
        root = cls.to_element(graph)
        ET.indent(root)
        return '<?xml version="1.0" encoding="utf-8"?>\n' + ET.tostring(root, encoding='unicode') + '\n'

    @classmethod
    def save(cls, graph: AccessGraph, output_path: Union[str, Path]) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(cls.export(graph), encoding='utf-8')
        return output_path
