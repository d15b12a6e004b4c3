"""
Policy Analyzer - Normalises policy documents into per-action stanzas.

Each action of each statement becomes one Stanza recording deny/allow,
read/write and the service prefix it applies to. ``sts:AssumeRole`` grants
are resolved against the known role ARNs to produce assume-role targets.

Typical usage:
    analysis = analyze_policy(policy.arn, policy.document, role_arns, ['s3'])
    analysis.read_only('s3')
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from bifrost.iam.arn_utils import wildcard_to_regex
from bifrost.iam.policy_document import (
    PolicyParseError, RawDocument, WILDCARD, parse_policy_document
)

logger = logging.getLogger(__name__)

# Undocumented internal prefixes that show up in AWS managed policies
EXCLUDED_SERVICE_PREFIXES = frozenset({'sysops-sap', 'ssm-sap'})
READ_ONLY_ACTION_PREFIXES = ('describe', 'get', 'list', 'search')
ASSUME_ROLE_ACTION = 'sts:assumerole'

LABEL_REFERENCES = 'references'
LABEL_CONTROLS = 'controls'
LABEL_READS = 'reads'


@dataclass(frozen=True)
class Stanza:
    """Normalised fact for one action of one statement"""
    deny: bool
    write: bool
    service: str
    service_action: Optional[Tuple[str, str]] = None
    resources: Optional[Tuple[str, ...]] = None

    @property
    def action(self) -> str:
        if self.service_action is None:
            return WILDCARD
        return ':'.join(self.service_action)

    @property
    def grants_write(self) -> bool:
        return self.write and not self.deny


@dataclass(frozen=True)
class PolicyAnalysis:
    """
    Analysis of one policy document.

    A full analysis is labelled ``references``. Subsets produced by
    ``subset_for_service`` hold the stanzas of one service, write stanzas
    first, and are labelled ``controls`` or ``reads`` by their first stanza.
    """
    policy_ref: str
    stanzas: Tuple[Stanza, ...] = ()
    assume_role_targets: Tuple[str, ...] = ()
    service: Optional[str] = field(default=None, compare=False)

    def merge(self, other: 'PolicyAnalysis') -> 'PolicyAnalysis':
        """Concatenate stanzas and targets of a duplicate analysis of the same policy."""
        return PolicyAnalysis(
            policy_ref=self.policy_ref,
            stanzas=self.stanzas + other.stanzas,
            assume_role_targets=self.assume_role_targets + other.assume_role_targets,
        )

    def services(self) -> List[str]:
        """Distinct service prefixes, in order of first appearance."""
        seen: List[str] = []
        for stanza in self.stanzas:
            if stanza.service not in seen:
                seen.append(stanza.service)
        return seen

    def subset_for_service(self, service: str) -> 'PolicyAnalysis':
        matching = [s for s in self.stanzas if s.service == service]
        ordered = [s for s in matching if s.write] + [s for s in matching if not s.write]
        return PolicyAnalysis(
            policy_ref=self.policy_ref,
            stanzas=tuple(ordered),
            assume_role_targets=self.assume_role_targets,
            service=service,
        )

    def first_write_stanza(self) -> Optional[Stanza]:
        if self.stanzas and self.stanzas[0].write:
            return self.stanzas[0]
        return next((s for s in self.stanzas if s.write), None)

    def read_only(self, service: Optional[str] = None) -> bool:
        """True unless some non-deny stanza (for ``service``, when given) grants write."""
        return not any(
            s.grants_write for s in self.stanzas
            if service is None or s.service == service
        )

    @property
    def label(self) -> str:
        if self.service is None:
            return LABEL_REFERENCES
        if self.stanzas and self.stanzas[0].write:
            return LABEL_CONTROLS
        return LABEL_READS

    def __str__(self) -> str:
        return self.label


def split_action(action: str) -> Tuple[str, str]:
    """
    Split ``service:ActionName`` on the first colon.

    Raises:
        PolicyParseError: If the action has no service prefix
    """
    service, sep, name = action.partition(':')
    if not sep:
        raise PolicyParseError(f"Action {action!r} has no service prefix")
    return service, name


def is_write_action(action_name: str) -> bool:
    """Anything not named Describe*, Get*, List* or Search* is treated as a write."""
    return not action_name.lower().startswith(READ_ONLY_ACTION_PREFIXES)


def _service_selected(service: str, service_filter: Sequence[str]) -> bool:
    if not service_filter:
        return True
    return any(service.lower() == wanted.lower() for wanted in service_filter)


def analyze_policy(
    policy_ref: str,
    document: RawDocument,
    known_roles: Iterable[str],
    service_filter: Optional[Sequence[str]] = None,
) -> PolicyAnalysis:
    """
    Analyze one policy document.

    Args:
        policy_ref: Policy ARN (or ``<owner>/<name>`` for inline policies)
        document: Raw policy document
        known_roles: ARNs of every role that assume-role grants can target
        service_filter: Service prefixes to keep stanzas for; empty keeps all

    Returns:
        PolicyAnalysis with stanzas and resolved assume-role targets

    Raises:
        PolicyParseError: If the document is malformed
    """
    parsed = parse_policy_document(document, policy_ref=policy_ref)
    role_arns = list(known_roles)
    service_filter = service_filter or ()

    stanzas: List[Stanza] = []
    targets: List[str] = []

    for statement in parsed.statements:
        deny = statement.is_deny

        if statement.action.is_any:
            stanzas.append(Stanza(deny=deny, write=True, service=WILDCARD))
            continue

        # Condition-only Deny statements have no Action and yield nothing
        for action in statement.action:
            try:
                service, name = split_action(action)
            except PolicyParseError as e:
                raise e.for_policy(policy_ref) from e

            if service.lower() in EXCLUDED_SERVICE_PREFIXES:
                continue

            write = is_write_action(name)

            if action.lower() == ASSUME_ROLE_ACTION and statement.resource:
                for arn in _resolve_assume_targets(statement.resource, role_arns):
                    if arn not in targets:
                        targets.append(arn)

            if _service_selected(service, service_filter):
                resources = None if statement.resource.is_any or statement.resource.is_empty \
                    else tuple(statement.resource)
                stanzas.append(Stanza(
                    deny=deny,
                    write=write,
                    service=service.lower(),
                    service_action=(service, name),
                    resources=resources,
                ))

    logger.debug(
        "Analyzed %s: %d stanza(s), %d assume-role target(s)",
        policy_ref, len(stanzas), len(targets)
    )
    return PolicyAnalysis(policy_ref=policy_ref, stanzas=tuple(stanzas), assume_role_targets=tuple(targets))


def _resolve_assume_targets(resource, role_arns: List[str]) -> List[str]:
    if resource.is_any:
        return list(role_arns)

    matched: List[str] = []
    for pattern in resource:
        regex = wildcard_to_regex(pattern)
        matched.extend(arn for arn in role_arns if regex.match(arn))
    return matched
