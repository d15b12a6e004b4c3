# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#                              ᛊᚨᚷᚨ • SAGA
#                    Goddess of Poetry and History
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
#   Saga records who reaches a service and by which road: every identity
#   with a path to the service node, grouped by the principal it belongs
#   to, each road written out hop by hop.
#
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bifrost.config import IgnoreRule, is_ignored
from bifrost.graph.model import AccessGraph, Node, Relation
from bifrost.graph.searcher import GraphSearcher, find_service_node
from bifrost.services import WILDCARD_SERVICE, service_display_name

logger = logging.getLogger(__name__)

REPORT_FILE_NAME = 'authorization-paths.txt'
WRITE_MARKER = '(WRITE)'


@dataclass(frozen=True)
class ReportPath:
    """One road from an identity to a service, identity first"""
    nodes: Tuple[Node, ...]
    write: bool = False

    @property
    def names(self) -> List[str]:
        return [node.name for node in self.nodes]

    @property
    def service(self) -> Node:
        return self.nodes[-1]

    def render(self) -> str:
        text = '->'.join(node.typed_name for node in self.nodes)
        return f"{text} {WRITE_MARKER}" if self.write else text

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': [node.typed_name for node in self.nodes],
            'write': self.write,
        }


@dataclass
class ReportEntry:
    """Every path reaching the service, for one identity"""
    identity: Node
    paths: List[ReportPath] = field(default_factory=list)

    @property
    def has_write(self) -> bool:
        return any(p.write for p in self.paths)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'identity': self.identity.typed_name,
            'identity_type': self.identity.type.value,
            'write': self.has_write,
            'paths': [p.to_dict() for p in self.paths],
        }


@dataclass
class AccessReport:
    """Access report for one service prefix"""
    service: str
    entries: List[ReportEntry] = field(default_factory=list)

    @property
    def service_name(self) -> str:
        return service_display_name(self.service)

    @property
    def path_count(self) -> int:
        return sum(len(e.paths) for e in self.entries)

    def entry_for(self, identity_name: str) -> Optional[ReportEntry]:
        for entry in self.entries:
            if entry.identity.name.lower() == identity_name.lower():
                return entry
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'service': self.service,
            'service_name': self.service_name,
            'identity_count': len(self.entries),
            'path_count': self.path_count,
            'entries': [e.to_dict() for e in self.entries],
        }


def build_access_report(
    graph: AccessGraph,
    service: str,
    ignore_rules: Sequence[IgnoreRule] = (),
    include_wildcard: bool = False,
) -> AccessReport:
    """
    Collect every identity with a path to a service.

    Args:
        graph: Built (and usually pruned) access graph
        service: Service prefix to report on, e.g. ``s3``
        ignore_rules: (identity, service) pairs to leave out
        include_wildcard: Also report paths to the ``*`` service node

    Returns:
        AccessReport with entries sorted by identity name
    """
    service = service.lower()
    report = AccessReport(service=service)

    targets = [find_service_node(graph.nodes, service)]
    if include_wildcard and service != WILDCARD_SERVICE:
        targets.append(find_service_node(graph.nodes, WILDCARD_SERVICE))
    targets = [t for t in targets if t is not None]
    if not targets:
        logger.warning("No service node for '%s' in the graph", service)
        return report

    # Leaf identity -> identity principal it was correlated into
    principal_of: Dict[Node, Node] = {
        edge.destination: edge.source for edge in graph.edges if edge.relation is Relation.IS
    }

    searcher = GraphSearcher(graph.edges)
    entries: Dict[Node, ReportEntry] = {}
    ignored = 0

    for target in targets:
        for user, path in searcher.find_users_attached_to(target):
            owner = principal_of.get(user, user)
            if is_ignored(ignore_rules, owner.name, service) or is_ignored(ignore_rules, user.name, service):
                ignored += 1
                continue

            report_path = ReportPath(
                nodes=tuple(edge.source for edge in path) + (target,),
                write=any(edge.grants_write for edge in path),
            )
            entry = entries.setdefault(owner, ReportEntry(identity=owner))
            if report_path not in entry.paths:
                entry.paths.append(report_path)

    report.entries = sorted(entries.values(), key=lambda e: (e.identity.name.lower(), e.identity.name))
    logger.info(
        "Access report for %s: %d identities, %d paths (%d ignored)",
        service, len(report.entries), report.path_count, ignored,
    )
    return report


def render_text(report: AccessReport, generated_at: Optional[datetime] = None) -> str:
    """
    Render the plain-text report.

    Layout:
        Report of accesses to <Service name> generated on <ISO timestamp>
        <service>: <TypedIdentityName>
        <TAB>path: <n1>-><n2>->...-><service> [(WRITE)]
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    lines = [f"Report of accesses to {report.service_name} generated on {generated_at.isoformat()}"]
    for entry in report.entries:
        lines.append(f"{report.service}: {entry.identity.typed_name}")
        for path in entry.paths:
            lines.append(f"\tpath: {path.render()}")
    return '\n'.join(lines) + '\n'
