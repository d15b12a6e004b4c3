# ᚺᛟᚱᛞ • Hoard - Collected Identity Inventories
"""
Input collections for the graph builder.

Each type mirrors one AWS or Okta API record. ``from_api`` accepts the shape
returned by boto3 / the Okta REST API (and by the snapshot files, which
store that same shape); ``to_api`` writes it back.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


Document = Union[str, Dict[str, Any]]
ApiRecord = Dict[str, Any]

OKTA_AWS_GROUP_PATTERN = re.compile(r'^aws_(?P<account_id>\d+)_(?P<role_name>[a-zA-Z0-9+=,.@\-_]+)$')


def _inline_policies(records: Optional[List[ApiRecord]]) -> List['InlinePolicy']:
    return [InlinePolicy.from_api(r) for r in records or []]


def _attached_arns(records: Optional[List[ApiRecord]]) -> List[str]:
    return [r.get('PolicyArn') or r['Arn'] for r in records or []]


@dataclass
class PolicyVersion:
    version_id: str
    document: Document
    is_default: bool = False


@dataclass
class ManagedPolicy:
    """Customer or AWS managed policy with its versions"""
    arn: str
    name: str
    default_version_id: Optional[str] = None
    versions: List[PolicyVersion] = field(default_factory=list)

    @property
    def document(self) -> Optional[Document]:
        """The active (default version) document."""
        for version in self.versions:
            if version.version_id == self.default_version_id:
                return version.document
        for version in self.versions:
            if version.is_default:
                return version.document
        return None

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'ManagedPolicy':
        if 'PolicyVersionList' not in record and 'Document' in record:
            version_id = record.get('DefaultVersionId', 'v1')
            return cls(
                arn=record['Arn'],
                name=record['PolicyName'],
                default_version_id=version_id,
                versions=[PolicyVersion(version_id, record['Document'], True)],
            )

        return cls(
            arn=record['Arn'],
            name=record['PolicyName'],
            default_version_id=record.get('DefaultVersionId'),
            versions=[
                PolicyVersion(
                    version_id=v['VersionId'],
                    document=v['Document'],
                    is_default=bool(v.get('IsDefaultVersion')),
                )
                for v in record.get('PolicyVersionList', [])
            ],
        )

    def to_api(self) -> ApiRecord:
        return {
            'Arn': self.arn,
            'PolicyName': self.name,
            'DefaultVersionId': self.default_version_id,
            'PolicyVersionList': [
                {'VersionId': v.version_id, 'Document': v.document, 'IsDefaultVersion': v.is_default}
                for v in self.versions
            ],
        }


@dataclass
class InlinePolicy:
    name: str
    document: Document
    path: Optional[str] = None

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'InlinePolicy':
        return cls(
            name=record.get('PolicyName') or record['Name'],
            document=record['PolicyDocument'],
            path=record.get('Path'),
        )

    def to_api(self) -> ApiRecord:
        record = {'PolicyName': self.name, 'PolicyDocument': self.document}
        if self.path is not None:
            record['Path'] = self.path
        return record


@dataclass
class IamGroup:
    name: str
    arn: str
    group_id: Optional[str] = None
    attached_policy_arns: List[str] = field(default_factory=list)
    inline_policies: List[InlinePolicy] = field(default_factory=list)

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'IamGroup':
        return cls(
            name=record['GroupName'],
            arn=record['Arn'],
            group_id=record.get('GroupId'),
            attached_policy_arns=_attached_arns(record.get('AttachedManagedPolicies')),
            inline_policies=_inline_policies(record.get('GroupPolicyList')),
        )

    def to_api(self) -> ApiRecord:
        return {
            'GroupName': self.name,
            'Arn': self.arn,
            'GroupId': self.group_id,
            'AttachedManagedPolicies': [{'PolicyArn': arn} for arn in self.attached_policy_arns],
            'GroupPolicyList': [p.to_api() for p in self.inline_policies],
        }


@dataclass
class IamRole:
    name: str
    arn: str
    trust_document: Document
    role_id: Optional[str] = None
    attached_policy_arns: List[str] = field(default_factory=list)
    inline_policies: List[InlinePolicy] = field(default_factory=list)

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'IamRole':
        return cls(
            name=record['RoleName'],
            arn=record['Arn'],
            trust_document=record['AssumeRolePolicyDocument'],
            role_id=record.get('RoleId'),
            attached_policy_arns=_attached_arns(record.get('AttachedManagedPolicies')),
            inline_policies=_inline_policies(record.get('RolePolicyList')),
        )

    def to_api(self) -> ApiRecord:
        return {
            'RoleName': self.name,
            'Arn': self.arn,
            'RoleId': self.role_id,
            'AssumeRolePolicyDocument': self.trust_document,
            'AttachedManagedPolicies': [{'PolicyArn': arn} for arn in self.attached_policy_arns],
            'RolePolicyList': [p.to_api() for p in self.inline_policies],
        }


@dataclass
class IamUser:
    name: str
    arn: str
    user_id: Optional[str] = None
    group_names: List[str] = field(default_factory=list)
    attached_policy_arns: List[str] = field(default_factory=list)
    inline_policies: List[InlinePolicy] = field(default_factory=list)

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'IamUser':
        return cls(
            name=record['UserName'],
            arn=record['Arn'],
            user_id=record.get('UserId'),
            group_names=list(record.get('GroupList', [])),
            attached_policy_arns=_attached_arns(record.get('AttachedManagedPolicies')),
            inline_policies=_inline_policies(record.get('UserPolicyList')),
        )

    def to_api(self) -> ApiRecord:
        return {
            'UserName': self.name,
            'Arn': self.arn,
            'UserId': self.user_id,
            'GroupList': list(self.group_names),
            'AttachedManagedPolicies': [{'PolicyArn': arn} for arn in self.attached_policy_arns],
            'UserPolicyList': [p.to_api() for p in self.inline_policies],
        }


@dataclass
class SamlProvider:
    arn: str

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'SamlProvider':
        return cls(arn=record['Arn'])

    def to_api(self) -> ApiRecord:
        return {'Arn': self.arn}


@dataclass
class PermissionSet:
    """Identity Center permission set with its policies"""
    arn: str
    name: str
    description: Optional[str] = None
    attached_policy_arns: List[str] = field(default_factory=list)
    inline_policies: List[InlinePolicy] = field(default_factory=list)

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'PermissionSet':
        inline = record.get('InlinePolicy')
        inline_policies = _inline_policies(record.get('InlinePolicies'))
        if inline:
            inline_policies.append(InlinePolicy(name=record['Name'], document=inline))
        return cls(
            arn=record['PermissionSetArn'],
            name=record['Name'],
            description=record.get('Description'),
            attached_policy_arns=_attached_arns(record.get('AttachedManagedPolicies')),
            inline_policies=inline_policies,
        )

    def to_api(self) -> ApiRecord:
        """The ListPermissionSets / DescribePermissionSet record; policies are stored separately."""
        return {'PermissionSetArn': self.arn, 'Name': self.name, 'Description': self.description}


@dataclass
class IdentityStoreUser:
    user_id: str
    user_name: str
    display_name: Optional[str] = None

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'IdentityStoreUser':
        return cls(
            user_id=record['UserId'],
            user_name=record['UserName'],
            display_name=record.get('DisplayName'),
        )

    def to_api(self) -> ApiRecord:
        return {'UserId': self.user_id, 'UserName': self.user_name, 'DisplayName': self.display_name}


@dataclass
class IdentityStoreGroup:
    group_id: str
    display_name: str

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'IdentityStoreGroup':
        return cls(group_id=record['GroupId'], display_name=record.get('DisplayName') or record['GroupId'])

    def to_api(self) -> ApiRecord:
        return {'GroupId': self.group_id, 'DisplayName': self.display_name}


@dataclass
class GroupMembership:
    group_id: str
    user_id: str
    membership_id: Optional[str] = None

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'GroupMembership':
        member = record.get('MemberId') or {}
        return cls(
            group_id=record['GroupId'],
            user_id=member.get('UserId') or record['UserId'],
            membership_id=record.get('MembershipId'),
        )

    def to_api(self) -> ApiRecord:
        return {'GroupId': self.group_id, 'MembershipId': self.membership_id, 'MemberId': {'UserId': self.user_id}}


@dataclass
class AccountAssignment:
    account_id: str
    permission_set_arn: str
    principal_type: str
    principal_id: str

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'AccountAssignment':
        return cls(
            account_id=record['AccountId'],
            permission_set_arn=record['PermissionSetArn'],
            principal_type=record['PrincipalType'],
            principal_id=record['PrincipalId'],
        )

    def to_api(self) -> ApiRecord:
        return {
            'AccountId': self.account_id,
            'PermissionSetArn': self.permission_set_arn,
            'PrincipalType': self.principal_type,
            'PrincipalId': self.principal_id,
        }


@dataclass
class OktaGroup:
    """Okta group; ``aws_<accountId>_<roleName>`` groups map onto AWS roles"""
    id: str
    name: str

    @property
    def _aws_match(self):
        return OKTA_AWS_GROUP_PATTERN.match(self.name or '')

    @property
    def aws_account_id(self) -> Optional[str]:
        match = self._aws_match
        return match.group('account_id') if match else None

    @property
    def aws_role_name(self) -> Optional[str]:
        match = self._aws_match
        return match.group('role_name') if match else None

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'OktaGroup':
        if 'profile' in record:
            return cls(id=record['id'], name=record['profile'].get('name', ''))
        return cls(id=record['Id'], name=record['Name'])

    def to_api(self) -> ApiRecord:
        return {'id': self.id, 'profile': {'name': self.name}}


@dataclass
class OktaUser:
    user_id: str
    login: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    manager_id: Optional[str] = None

    @classmethod
    def from_api(cls, record: ApiRecord) -> 'OktaUser':
        profile = record.get('profile', {})
        return cls(
            user_id=record['id'],
            login=profile.get('login'),
            first_name=profile.get('firstName'),
            last_name=profile.get('lastName'),
            manager_id=profile.get('managerId'),
        )

    def to_api(self) -> ApiRecord:
        return {
            'id': self.user_id,
            'profile': {
                'login': self.login,
                'firstName': self.first_name,
                'lastName': self.last_name,
                'managerId': self.manager_id,
            },
        }


@dataclass
class OktaGroupMember:
    group_id: str
    user_id: str
    login: Optional[str] = None

    @classmethod
    def from_api(cls, record: ApiRecord, group_id: Optional[str] = None) -> 'OktaGroupMember':
        return cls(
            group_id=group_id or record['groupId'],
            user_id=record['id'],
            login=record.get('profile', {}).get('login'),
        )

    def to_api(self) -> ApiRecord:
        return {'groupId': self.group_id, 'id': self.user_id, 'profile': {'login': self.login}}


@dataclass
class AccountInventory:
    """Everything collected for one AWS account"""
    account_id: str
    managed_policies: List[ManagedPolicy] = field(default_factory=list)
    groups: List[IamGroup] = field(default_factory=list)
    roles: List[IamRole] = field(default_factory=list)
    users: List[IamUser] = field(default_factory=list)
    saml_providers: List[SamlProvider] = field(default_factory=list)
    permission_sets: List[PermissionSet] = field(default_factory=list)
    identity_store_users: List[IdentityStoreUser] = field(default_factory=list)
    identity_store_groups: List[IdentityStoreGroup] = field(default_factory=list)
    group_memberships: List[GroupMembership] = field(default_factory=list)
    account_assignments: List[AccountAssignment] = field(default_factory=list)

    @property
    def role_arns(self) -> List[str]:
        return [role.arn for role in self.roles]

    def summary(self) -> Dict[str, int]:
        return {
            'managed_policies': len(self.managed_policies),
            'groups': len(self.groups),
            'roles': len(self.roles),
            'users': len(self.users),
            'saml_providers': len(self.saml_providers),
            'permission_sets': len(self.permission_sets),
            'identity_store_users': len(self.identity_store_users),
            'identity_store_groups': len(self.identity_store_groups),
            'account_assignments': len(self.account_assignments),
        }


@dataclass
class OktaDirectory:
    """Okta groups, users and per-group memberships"""
    groups: List[OktaGroup] = field(default_factory=list)
    users: List[OktaUser] = field(default_factory=list)
    memberships: Dict[str, List[OktaGroupMember]] = field(default_factory=dict)

    def members_of(self, group_id: str) -> List[OktaGroupMember]:
        return self.memberships.get(group_id, [])
