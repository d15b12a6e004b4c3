"""
Trust Analyzer - Extracts who may assume a role from its trust policy.

Three facts are recorded per role:
- root_allowed: some statement names an account root as AWS principal
- trusted_principals: roles named on sts:AssumeRole plus SAML providers
  named on sts:AssumeRoleWithSAML, under either effect
- trusted_users: IAM users named on sts:AssumeRole
"""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from bifrost.iam.arn_utils import is_root_principal, normalize_principal_arn
from bifrost.iam.policy_document import PolicyStatement, RawDocument, parse_policy_document

logger = logging.getLogger(__name__)

ASSUME_ROLE = 'sts:assumerole'
ASSUME_ROLE_WITH_SAML = 'sts:assumerolewithsaml'


@dataclass(frozen=True)
class TrustAnalysis:
    """Normalised trust facts for one role"""
    role_ref: Optional[str] = None
    root_allowed: bool = False
    trusted_principals: FrozenSet[str] = field(default_factory=frozenset)
    trusted_users: FrozenSet[str] = field(default_factory=frozenset)

    def trusts(self, principal_arn: str) -> bool:
        """Case-insensitive check that ``principal_arn`` is named in the trust policy."""
        wanted = principal_arn.lower()
        return any(arn.lower() == wanted for arn in self.trusted_principals | self.trusted_users)

    @property
    def saml_providers(self) -> FrozenSet[str]:
        return frozenset(arn for arn in self.trusted_principals if ':saml-provider/' in arn.lower())


def _mentions_action(statement: PolicyStatement, action: str) -> bool:
    # Effect is not consulted; a Deny still names its principals
    if statement.action.is_any:
        return True
    return any(a.lower() == action for a in statement.action)


def analyze_trust(trust_document: RawDocument, role_ref: Optional[str] = None) -> TrustAnalysis:
    """
    Analyze a role's trust (assume role policy) document.

    Args:
        trust_document: Raw trust document, URL-encoded text or decoded dict
        role_ref: Role ARN, used in error messages

    Returns:
        TrustAnalysis for the role

    Raises:
        PolicyParseError: If the document is malformed
    """
    document = parse_policy_document(trust_document, policy_ref=role_ref)

    root_allowed = False
    roles = set()
    users = set()
    saml_providers = set()

    for statement in document.statements:
        if statement.principal is None or statement.principal.is_any:
            continue

        aws_principals = [normalize_principal_arn(p) for p in statement.principal.aws]

        # Any mention of an account root counts, whatever the action or effect
        if any(is_root_principal(p) for p in aws_principals):
            root_allowed = True

        if _mentions_action(statement, ASSUME_ROLE):
            for arn in aws_principals:
                lowered = arn.lower()
                if ':role/' in lowered:
                    roles.add(arn)
                elif ':user/' in lowered:
                    users.add(arn)

        if _mentions_action(statement, ASSUME_ROLE_WITH_SAML):
            saml_providers.update(
                arn for arn in statement.principal.federated if ':saml-provider/' in arn.lower()
            )

    analysis = TrustAnalysis(
        role_ref=role_ref,
        root_allowed=root_allowed,
        trusted_principals=frozenset(roles | saml_providers),
        trusted_users=frozenset(users),
    )
    logger.debug(
        "Analyzed trust of %s: root_allowed=%s, %d trusted principal(s)",
        role_ref, analysis.root_allowed, len(analysis.trusted_principals)
    )
    return analysis
