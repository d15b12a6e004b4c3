# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#                            ᛗᚢᚾᛁᚾᚾ • MUNINN
#                           Odin's Raven of Memory
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
#   Muninn flies back over everything Huginn gathered: every snapshot
#   is loaded, every account's graph built and merged, and the roads to
#   one service written down.
#
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import click
from rich.table import Table

from bifrost.cli_utils import console
from bifrost.commands.export import run_export
from bifrost.config import BuildOptions, load_ignore_list
from bifrost.graph.builder import GraphBuilder
from bifrost.graph.correlation import get_correlator
from bifrost.graph.model import AccessGraph
from bifrost.inventory import OktaDirectory
from bifrost.okta.client import domain_name
from bifrost.report import REPORT_FILE_NAME, AccessReport, build_access_report, render_text
from bifrost.snapshot import SnapshotStore

logger = logging.getLogger(__name__)


class NoSnapshotError(RuntimeError):
    """Raised when no account snapshot is available to report on"""


@dataclass
class ReportRun:
    """Everything a report run produced"""
    graph: AccessGraph
    report: AccessReport
    accounts: List[str] = field(default_factory=list)
    files: List[Path] = field(default_factory=list)


def load_okta_directories(store: SnapshotStore, okta_domain: Optional[str]) -> Optional[OktaDirectory]:
    """The snapshot of ``okta_domain``, or every Okta snapshot merged when None."""
    domains = [domain_name(okta_domain)] if okta_domain else store.discover_okta_domains()
    merged: Optional[OktaDirectory] = None
    for domain in domains:
        directory = store.load_okta(domain)
        if directory is None:
            continue
        if merged is None:
            merged = OktaDirectory()
        merged.groups.extend(directory.groups)
        merged.users.extend(directory.users)
        for group_id, members in directory.memberships.items():
            merged.memberships.setdefault(group_id, []).extend(members)
    return merged


def _print_summary(report: AccessReport) -> None:
    table = Table(
        title=f"Access to {report.service_name}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Identity")
    table.add_column("Type", style="dim")
    table.add_column("Paths", justify="right")
    table.add_column("Write", justify="center")
    for entry in report.entries:
        table.add_row(
            entry.identity.name,
            entry.identity.type.value,
            str(len(entry.paths)),
            "[red]✓[/red]" if entry.has_write else "",
        )
    console.print(table)


def run_report(
    service: str,
    db: str,
    output: str,
    config: str,
    account_id: Optional[str] = None,
    okta_domain: Optional[str] = None,
    dgml: bool = False,
    graphviz: bool = False,
    json_output: bool = False,
    no_files: bool = False,
    no_prune: bool = False,
    no_identity: bool = False,
    include_wildcard: bool = False,
    workers: int = 1,
    correlation: str = 'local-part',
    max_age_hours: Optional[float] = None,
) -> ReportRun:
    """
    Build the access graph from snapshots and report who reaches ``service``.

    Args:
        service: Service prefix to report on
        db: Snapshot directory
        output: Directory for the report and graph files
        config: Directory (or file) holding IGNORE.csv
        account_id: Only this account; every account in ``db`` when None
        okta_domain: Only this Okta snapshot; every Okta snapshot when None
        no_files: Print the report instead of writing it
        no_prune: Keep nodes that do not reach a service
        no_identity: Leave out users and identity correlation
        include_wildcard: Also report paths to ``*`` grants
        workers: Threads used for policy analysis
        correlation: Identity correlation strategy name

    Returns:
        ReportRun with the merged graph and the report

    Raises:
        NoSnapshotError: If no account snapshot is found
        PolicyParseError: If a policy or trust document is malformed
    """
    service = service.lower()
    store = SnapshotStore(db, max_age_hours=max_age_hours)

    accounts = [account_id] if account_id else store.discover_accounts()
    if not accounts:
        raise NoSnapshotError(f"No account snapshot found in {store.db_path}; run 'bifrost scan' first")
    if not account_id:
        console.print(f"[dim]No account specified, using the {len(accounts)} found in {store.db_path}[/dim]")

    okta = load_okta_directories(store, okta_domain)
    if okta is not None:
        console.print(f"[green]✓[/green] Loaded Okta snapshot: {len(okta.groups)} groups, {len(okta.users)} users")

    options = BuildOptions(
        service_prefixes=() if no_prune else (service,),
        no_prune=no_prune,
        no_identities=no_identity,
        max_workers=workers,
        correlator=get_correlator(correlation),
    )
    builder = GraphBuilder(options)

    graphs = []
    for account in accounts:
        with console.status(f"[bold green]Processing AWS account {account}..."):
            inventory = store.load_inventory(account)
            graphs.append(builder.build(inventory, okta))
        console.print(
            f"[green]✓[/green] Account {account}: "
            f"{len(graphs[-1].nodes)} nodes, {len(graphs[-1].edges)} edges"
        )
    graph = AccessGraph.merge(graphs)
    logger.debug("Merged %d account graphs into %d nodes", len(graphs), len(graph.nodes))

    ignore_rules = load_ignore_list(config)
    report = build_access_report(graph, service, ignore_rules, include_wildcard=include_wildcard)
    text = render_text(report, datetime.now(timezone.utc))

    run = ReportRun(graph=graph, report=report, accounts=accounts)
    run.files.extend(run_export(
        graph, output, dgml=dgml, graphviz=graphviz, json_output=json_output, report=report,
        metadata={'service': service, 'accounts': accounts},
    ))

    if no_files:
        click.echo(text, nl=False)
    else:
        report_path = Path(output) / REPORT_FILE_NAME
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(text, encoding='utf-8')
        run.files.append(report_path)
        console.print(f"[green]✓[/green] Report written to {report_path}")

    _print_summary(report)
    console.print(
        f"\n[bold]Done.[/bold] {len(report.entries)} identities, {report.path_count} paths "
        f"to {report.service_name}\n"
    )
    return run
