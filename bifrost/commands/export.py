# ᛗᚢᚾᛁᚾ • Muninn - Memory (Graph Files)
"""
Write the graph exchange files requested on the command line.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from bifrost.cli_utils import DGML_FILE_NAME, DOT_FILE_NAME, JSON_FILE_NAME, console
from bifrost.exporters import DGMLExporter, DOTExporter, JSONExporter
from bifrost.graph.model import AccessGraph
from bifrost.report import AccessReport

logger = logging.getLogger(__name__)


def run_export(
    graph: AccessGraph,
    output: str,
    dgml: bool = False,
    graphviz: bool = False,
    json_output: bool = False,
    report: Optional[AccessReport] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> List[Path]:
    """
    Export the graph to each requested format under ``output``.

    Returns:
        Paths of the files written
    """
    output_dir = Path(output)
    written: List[Path] = []

    if dgml:
        with console.status("[bold green]Writing directed graph markup language file..."):
            written.append(DGMLExporter.save(graph, output_dir / DGML_FILE_NAME))
        console.print(f"[green]✓[/green] DGML written to {written[-1]}")

    if graphviz:
        with console.status("[bold green]Writing Graphviz DOT file..."):
            written.append(DOTExporter.save(graph, output_dir / DOT_FILE_NAME))
        console.print(f"[green]✓[/green] Graphviz DOT written to {written[-1]}")

    if json_output:
        with console.status("[bold green]Writing node-link JSON file..."):
            written.append(JSONExporter.save(graph, output_dir / JSON_FILE_NAME, report=report, metadata=metadata))
        console.print(f"[green]✓[/green] JSON written to {written[-1]}")

    logger.info("Exported %d file(s) to %s", len(written), output_dir)
    return written
