"""
Build options and the report ignore list.

The ignore list lives in ``<config path>/IGNORE.csv`` as ``identity,service``
rows. An optional header row and ``#`` comment lines are skipped; ``*`` in
either column matches anything.
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Union

from bifrost.graph.correlation import Correlator, local_part

logger = logging.getLogger(__name__)

IGNORE_FILE_NAME = 'IGNORE.csv'


@dataclass
class BuildOptions:
    """Options passed to the graph builder"""
    service_prefixes: Sequence[str] = ()
    no_prune: bool = False
    no_identities: bool = False
    max_workers: int = 1
    correlator: Correlator = local_part


@dataclass(frozen=True)
class IgnoreRule:
    """Suppresses report paths for an (identity, service) pair"""
    identity: str
    service: str

    def matches(self, identity_name: str, service: str) -> bool:
        identity_ok = self.identity == '*' or self.identity.lower() == identity_name.lower()
        service_ok = self.service == '*' or self.service.lower() == service.lower()
        return identity_ok and service_ok


def load_ignore_list(path: Union[str, Path]) -> List[IgnoreRule]:
    """
    Load ignore rules from a CSV file or a config directory.

    Args:
        path: IGNORE.csv itself, or the directory holding it

    Returns:
        List of rules; empty if the file does not exist

    Raises:
        ValueError: If a row does not have exactly two columns
    """
    path = Path(path)
    if path.is_dir():
        path = path / IGNORE_FILE_NAME
    if not path.exists():
        logger.debug("No ignore list at %s", path)
        return []

    rules: List[IgnoreRule] = []
    with open(path, newline='', encoding='utf-8') as f:
        for line_no, row in enumerate(csv.reader(f), 1):
            cells = [cell.strip() for cell in row]
            if not any(cells) or cells[0].startswith('#'):
                continue
            if len(cells) != 2:
                raise ValueError(f"{path}:{line_no}: expected 'identity,service', got {row!r}")
            if line_no == 1 and [c.lower() for c in cells] == ['identity', 'service']:
                continue
            rules.append(IgnoreRule(identity=cells[0], service=cells[1]))

    logger.info("Loaded %d ignore rule(s) from %s", len(rules), path)
    return rules


def is_ignored(rules: Sequence[IgnoreRule], identity_name: str, service: str) -> bool:
    return any(rule.matches(identity_name, service) for rule in rules)
