"""
Pytest configuration and fixtures for Bifrost tests.

Inventories are built from the same record shapes boto3 and the Okta API
return, so every test exercises the ``from_api`` decoding as well.
"""

from typing import Any, Dict, Iterable, List, Optional

import pytest

from bifrost.config import BuildOptions
from bifrost.graph.builder import GraphBuilder
from bifrost.inventory import (
    AccountAssignment, AccountInventory, GroupMembership, IamGroup, IamRole, IamUser,
    IdentityStoreGroup, IdentityStoreUser, ManagedPolicy, OktaDirectory, OktaGroup,
    OktaGroupMember, OktaUser, PermissionSet, SamlProvider,
)

ACCOUNT_ID = '111111111111'
OTHER_ACCOUNT_ID = '222222222222'


class InventoryFactory:
    """Builds IAM records the way GetAccountAuthorizationDetails returns them"""

    def __init__(self, account_id: str = ACCOUNT_ID):
        self.account_id = account_id

    def arn(self, kind: str, name: str) -> str:
        return f'arn:aws:iam::{self.account_id}:{kind}/{name}'

    @staticmethod
    def document(*statements: Dict[str, Any]) -> Dict[str, Any]:
        return {'Version': '2012-10-17', 'Statement': list(statements)}

    @staticmethod
    def allow(action: Any, resource: Any = '*') -> Dict[str, Any]:
        return {'Effect': 'Allow', 'Action': action, 'Resource': resource}

    @staticmethod
    def deny(action: Any, resource: Any = '*') -> Dict[str, Any]:
        return {'Effect': 'Deny', 'Action': action, 'Resource': resource}

    def trust(self, principal: Any, action: str = 'sts:AssumeRole', effect: str = 'Allow') -> Dict[str, Any]:
        return self.document({'Effect': effect, 'Principal': principal, 'Action': action})

    @staticmethod
    def _inline(inline: Optional[Dict[str, Dict[str, Any]]]) -> List[Dict[str, Any]]:
        return [{'PolicyName': name, 'PolicyDocument': doc} for name, doc in (inline or {}).items()]

    @staticmethod
    def _attached(policies: Iterable[ManagedPolicy]) -> List[Dict[str, str]]:
        return [{'PolicyName': p.name, 'PolicyArn': p.arn} for p in policies]

    def policy(self, name: str, *statements: Dict[str, Any]) -> ManagedPolicy:
        return ManagedPolicy.from_api({
            'PolicyName': name,
            'Arn': self.arn('policy', name),
            'DefaultVersionId': 'v2',
            'PolicyVersionList': [
                {'VersionId': 'v1', 'Document': self.document(self.allow('iam:PassRole')), 'IsDefaultVersion': False},
                {'VersionId': 'v2', 'Document': self.document(*statements), 'IsDefaultVersion': True},
            ],
        })

    def group(self, name: str, policies: Iterable[ManagedPolicy] = (), inline=None) -> IamGroup:
        return IamGroup.from_api({
            'GroupName': name,
            'Arn': self.arn('group', name),
            'AttachedManagedPolicies': self._attached(policies),
            'GroupPolicyList': self._inline(inline),
        })

    def role(self, name: str, trust: Dict[str, Any], policies: Iterable[ManagedPolicy] = (), inline=None) -> IamRole:
        return IamRole.from_api({
            'RoleName': name,
            'Arn': self.arn('role', name),
            'AssumeRolePolicyDocument': trust,
            'AttachedManagedPolicies': self._attached(policies),
            'RolePolicyList': self._inline(inline),
        })

    def user(self, name: str, groups: Iterable[str] = (), policies: Iterable[ManagedPolicy] = (), inline=None) -> IamUser:
        return IamUser.from_api({
            'UserName': name,
            'Arn': self.arn('user', name),
            'GroupList': list(groups),
            'AttachedManagedPolicies': self._attached(policies),
            'UserPolicyList': self._inline(inline),
        })

    def saml_provider(self, name: str) -> SamlProvider:
        return SamlProvider.from_api({'Arn': self.arn('saml-provider', name)})


def build(inventory: AccountInventory, okta: Optional[OktaDirectory] = None, **options):
    """Build a graph with BuildOptions(**options)."""
    return GraphBuilder(BuildOptions(**options)).build(inventory, okta)


@pytest.fixture
def factory() -> InventoryFactory:
    """Return an InventoryFactory for the default account."""
    return InventoryFactory()


@pytest.fixture
def s3_inventory(factory) -> AccountInventory:
    """
    alice -> Readers -> ReadS3 (s3:GetObject)
    bob   -> Writers -> WriteS3 (s3:PutObject)
    carol -> ReadEc2 (ec2:DescribeInstances)
    """
    read_s3 = factory.policy('ReadS3', factory.allow('s3:GetObject', 'arn:aws:s3:::reports/*'))
    write_s3 = factory.policy('WriteS3', factory.allow(['s3:PutObject', 's3:GetObject']))
    read_ec2 = factory.policy('ReadEc2', factory.allow('ec2:DescribeInstances'))

    return AccountInventory(
        account_id=ACCOUNT_ID,
        managed_policies=[read_s3, write_s3, read_ec2],
        groups=[factory.group('Readers', [read_s3]), factory.group('Writers', [write_s3])],
        users=[
            factory.user('alice', groups=['Readers']),
            factory.user('bob', groups=['Writers']),
            factory.user('carol', policies=[read_ec2]),
        ],
    )


@pytest.fixture
def okta_inventory(factory) -> AccountInventory:
    """okta-admin trusts the Okta SAML provider and can read S3."""
    read_s3 = factory.policy('ReadS3', factory.allow('s3:GetObject'))
    provider = factory.saml_provider('Okta')
    role = factory.role(
        'okta-admin',
        factory.trust({'Federated': provider.arn}, action='sts:AssumeRoleWithSAML'),
        policies=[read_s3],
    )
    return AccountInventory(
        account_id=ACCOUNT_ID,
        managed_policies=[read_s3],
        roles=[role],
        saml_providers=[provider],
    )


@pytest.fixture
def okta_directory() -> OktaDirectory:
    """aws_<account>_okta-admin with two members, one of them suspended (no login)."""
    group_id = '00g1'
    return OktaDirectory(
        groups=[
            OktaGroup.from_api({'id': group_id, 'profile': {'name': f'aws_{ACCOUNT_ID}_okta-admin'}}),
            OktaGroup.from_api({'id': '00g2', 'profile': {'name': f'aws_{OTHER_ACCOUNT_ID}_okta-admin'}}),
            OktaGroup.from_api({'id': '00g3', 'profile': {'name': 'Engineering'}}),
        ],
        users=[
            OktaUser.from_api({'id': '00u1', 'profile': {'login': 'alice@corp.example', 'firstName': 'Alice'}}),
            OktaUser.from_api({'id': '00u2', 'profile': {}}),
        ],
        memberships={
            group_id: [
                OktaGroupMember.from_api({'id': '00u1', 'profile': {'login': 'alice@corp.example'}}, group_id=group_id),
                OktaGroupMember.from_api({'id': '00u2', 'profile': {}}, group_id=group_id),
            ],
        },
    )


@pytest.fixture
def identity_center_inventory(factory) -> AccountInventory:
    """
    ISUser dana -> ISGroup Admins -> PermissionSet AdminAccess -> ReadS3
    ISUser erin -> PermissionSet AdminAccess (direct assignment)
    """
    read_s3 = factory.policy('ReadS3', factory.allow('s3:GetObject'))
    ps_arn = 'arn:aws:sso:::permissionSet/ssoins-1111/ps-0001'
    permission_set = PermissionSet.from_api({
        'PermissionSetArn': ps_arn,
        'Name': 'AdminAccess',
        'Description': 'Full admin',
        'AttachedManagedPolicies': [{'Name': 'ReadS3', 'Arn': read_s3.arn}],
    })
    return AccountInventory(
        account_id=ACCOUNT_ID,
        managed_policies=[read_s3],
        permission_sets=[permission_set],
        identity_store_users=[
            IdentityStoreUser.from_api({'UserId': 'u-dana', 'UserName': 'dana@corp.example', 'DisplayName': 'Dana'}),
            IdentityStoreUser.from_api({'UserId': 'u-erin', 'UserName': 'erin@corp.example'}),
        ],
        identity_store_groups=[IdentityStoreGroup.from_api({'GroupId': 'g-admins', 'DisplayName': 'Admins'})],
        group_memberships=[GroupMembership.from_api({'GroupId': 'g-admins', 'MemberId': {'UserId': 'u-dana'}})],
        account_assignments=[
            AccountAssignment.from_api({
                'AccountId': ACCOUNT_ID, 'PermissionSetArn': ps_arn,
                'PrincipalType': 'GROUP', 'PrincipalId': 'g-admins',
            }),
            AccountAssignment.from_api({
                'AccountId': ACCOUNT_ID, 'PermissionSetArn': ps_arn,
                'PrincipalType': 'USER', 'PrincipalId': 'u-erin',
            }),
            AccountAssignment.from_api({
                'AccountId': OTHER_ACCOUNT_ID, 'PermissionSetArn': ps_arn,
                'PrincipalType': 'GROUP', 'PrincipalId': 'g-elsewhere',
            }),
        ],
    )
