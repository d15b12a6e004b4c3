# ᛃᛊᛟᚾ • JSON Exporter - networkx Node-Link Data
"""
Export the access graph (and optionally an access report) as JSON.

The graph section is networkx node-link data, so it loads straight back
with ``networkx.node_link_graph(data['graph'], edges='links')``.

Usage:
    data = JSONExporter.export(graph, report=report)
    JSONExporter.save(graph, 'output/graph.json', report=report)
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from bifrost import __version__
from bifrost.graph.model import AccessGraph
from bifrost.report import AccessReport

SCHEMA_VERSION = '1.0.0'


class JSONExporter:
    """Export an AccessGraph to node-link JSON."""

    @classmethod
    def export(
        cls,
        graph: AccessGraph,
        report: Optional[AccessReport] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Build the JSON document.

        Args:
            graph: Access graph to serialize
            report: Access report to embed next to the graph
            metadata: Extra metadata fields (accounts, service, ...)

        Returns:
            Dict with ``schema_version``, ``metadata``, ``graph`` and ``report``
        """
        return {
            'schema_version': SCHEMA_VERSION,
            'metadata': {
                'generated_at': datetime.now(timezone.utc).isoformat(),
                'bifrost_version': __version__,
                **(metadata or {}),
            },
            'graph': graph.node_link_data(),
            'report': report.to_dict() if report is not None else None,
        }

    @classmethod
    def to_json(cls, graph: AccessGraph, **kwargs) -> str:
        return json.dumps(cls.export(graph, **kwargs), indent=2, default=str)

    @classmethod
    def save(cls, graph: AccessGraph, output_path: Union[str, Path], **kwargs) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(cls.export(graph, **kwargs), f, indent=2, default=str)
        return output_path
