"""IAM policy parsing, analysis and collection."""

from bifrost.iam.policy_document import (
    ActionList, PolicyDocument, PolicyParseError, PolicyStatement, PrincipalMap,
    ResourceList, parse_policy_document,
)
from bifrost.iam.policy_analyzer import PolicyAnalysis, Stanza, analyze_policy
from bifrost.iam.trust_analyzer import TrustAnalysis, analyze_trust

__all__ = [
    'ActionList', 'PolicyDocument', 'PolicyParseError', 'PolicyStatement', 'PrincipalMap',
    'ResourceList', 'parse_policy_document', 'PolicyAnalysis', 'Stanza', 'analyze_policy',
    'TrustAnalysis', 'analyze_trust',
]
