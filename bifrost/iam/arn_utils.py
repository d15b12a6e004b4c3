"""
ARN parsing utilities.

Account extraction, principal normalisation and IAM-style wildcard matching
for resource ARNs.
"""

from typing import Optional, Pattern
import re

ACCOUNT_ID_PATTERN = re.compile(r'^\d{12}$')


def extract_account_id(arn: Optional[str]) -> Optional[str]:
    """
    Return the account field (5th colon-separated part) of an ARN.

    Examples:
        arn:aws:iam::111111111111:role/Admin -> 111111111111
        arn:aws:iam::111111111111:saml-provider/Okta -> 111111111111
        arn:aws:iam::aws:policy/ReadOnlyAccess -> None
        arn:aws:sso:::permissionSet/ssoins-1/ps-1 -> None

    Args:
        arn: Any ARN, or None

    Returns:
        The 12-digit account id, or None when the field is empty or not an id
    """
    if not isinstance(arn, str):
        return None

    parts = arn.split(':', 5)
    if len(parts) < 6:
        return None

    account_id = parts[4]
    return account_id if ACCOUNT_ID_PATTERN.match(account_id) else None


def is_cross_account(source_arn: str, target_arn: str) -> bool:
    """True only when both ARNs carry an account id and the ids differ."""
    accounts = extract_account_id(source_arn), extract_account_id(target_arn)
    return None not in accounts and accounts[0] != accounts[1]


def normalize_principal_arn(value: str) -> str:
    """
    Normalise an AWS principal as written in a trust policy.

    A bare 12-digit account ID is shorthand for that account's root:
        123456789012 -> arn:aws:iam::123456789012:root
    """
    if ACCOUNT_ID_PATTERN.match(value):
        return f'arn:aws:iam::{value}:root'
    return value


def is_root_principal(arn: str) -> bool:
    """True if the principal names an account root (``...:root``)."""
    return normalize_principal_arn(arn).lower().endswith(':root')


def wildcard_to_regex(pattern: str) -> Pattern[str]:
    """
    Compile an IAM resource glob into an anchored, case-sensitive regex.

    ``*`` matches any run of characters, ``?`` matches exactly one; every
    other character is literal.
    """
    escaped = re.escape(pattern).replace(r'\*', '.*').replace(r'\?', '.')
    return re.compile(f'^{escaped}$')
