# ᚢᛏᚠᛟᚱᛊᛖᛚ • Exporters - Graph Exchange Formats
"""
Bifrost Exporters - Carry the access graph to other tools.

Formats:
- DGML: Visual Studio graph viewer
- DOT: Graphviz
- JSON: networkx node-link data plus the access report
"""

from bifrost.exporters.dgml import DGMLExporter
from bifrost.exporters.dot import DOTExporter
from bifrost.exporters.json_export import JSONExporter

__all__ = ['DGMLExporter', 'DOTExporter', 'JSONExporter']
