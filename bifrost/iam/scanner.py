"""
AWS Inventory Scanner - Collects IAM and Identity Center data for one account.

IAM comes from GetAccountAuthorizationDetails (users, groups, roles and
managed policies with every version) plus the SAML provider list. Identity
Center permission sets, assignments and Identity Store users/groups are
collected best-effort: accounts without an SSO instance, or credentials
without SSO permissions, leave those collections empty.

Typical usage:
    scanner = AwsInventoryScanner(profile_name='production')
    inventory = scanner.scan()
"""

import logging
from typing import Any, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from bifrost.inventory import (
    AccountAssignment, AccountInventory, GroupMembership, IamGroup, IamRole, IamUser,
    IdentityStoreGroup, IdentityStoreUser, InlinePolicy, ManagedPolicy, PermissionSet, SamlProvider,
)

logger = logging.getLogger(__name__)

# Constants
MAX_RETRIES = 5
AUTHORIZATION_DETAIL_FILTER = ['User', 'Role', 'Group', 'LocalManagedPolicy', 'AWSManagedPolicy']


class AwsInventoryScanner:
    """Collects an AccountInventory through boto3"""

    def __init__(
        self,
        session: Optional[boto3.Session] = None,
        profile_name: Optional[str] = None,
        region_name: Optional[str] = None,
    ):
        """
        Initialize scanner with AWS credentials

        Args:
            session: Pre-built boto3 session; takes precedence over profile_name
            profile_name: AWS profile name from ~/.aws/credentials
            region_name: Region for the Identity Center APIs
        """
        boto_config = Config(retries={'max_attempts': MAX_RETRIES, 'mode': 'standard'})

        self.session = session or boto3.Session(profile_name=profile_name, region_name=region_name)
        self.iam = self.session.client('iam', config=boto_config)
        self.sts = self.session.client('sts', config=boto_config)
        self.sso_admin = self.session.client('sso-admin', config=boto_config)
        self.identitystore = self.session.client('identitystore', config=boto_config)

        try:
            self.account_id = self.sts.get_caller_identity()['Account']
        except (ClientError, BotoCoreError) as e:
            logger.critical("Failed to get AWS account ID: %s", e)
            raise RuntimeError(f"AWS authentication failed: {e}") from e

    def scan(self, include_identity_center: bool = True) -> AccountInventory:
        """
        Collect the full inventory of the account

        Raises:
            RuntimeError: If the IAM APIs fail
        """
        inventory = AccountInventory(account_id=self.account_id)
        self.scan_authorization_details(inventory)
        inventory.saml_providers = self.scan_saml_providers()

        if include_identity_center:
            self.scan_identity_center(inventory)

        logger.info("Scanned account %s: %s", self.account_id, inventory.summary())
        return inventory

    def scan_authorization_details(self, inventory: AccountInventory) -> None:
        """Fill users, groups, roles and managed policies of ``inventory``."""
        try:
            paginator = self.iam.get_paginator('get_account_authorization_details')
            for page in paginator.paginate(Filter=AUTHORIZATION_DETAIL_FILTER):
                inventory.users.extend(IamUser.from_api(u) for u in page.get('UserDetailList', []))
                inventory.groups.extend(IamGroup.from_api(g) for g in page.get('GroupDetailList', []))
                inventory.roles.extend(IamRole.from_api(r) for r in page.get('RoleDetailList', []))
                inventory.managed_policies.extend(ManagedPolicy.from_api(p) for p in page.get('Policies', []))
        except ClientError as e:
            logger.critical("AWS API error reading authorization details: %s", e)
            raise RuntimeError(f"Failed to read IAM authorization details: {e}") from e

    def scan_saml_providers(self) -> List[SamlProvider]:
        try:
            response = self.iam.list_saml_providers()
        except ClientError as e:
            logger.critical("AWS API error listing SAML providers: %s", e)
            raise RuntimeError(f"Failed to list SAML providers: {e}") from e
        return [SamlProvider.from_api(p) for p in response.get('SAMLProviderList', [])]

    def scan_identity_center(self, inventory: AccountInventory) -> None:
        """Fill permission sets, assignments and Identity Store data, best-effort."""
        try:
            instances = self._paginate(self.sso_admin, 'list_instances', 'Instances')
        except ClientError as e:
            logger.warning("Identity Center not readable, skipping: %s", e)
            return

        if not instances:
            logger.info("No Identity Center instance visible from account %s", self.account_id)
            return

        for instance in instances:
            try:
                self._scan_instance(inventory, instance['InstanceArn'], instance['IdentityStoreId'])
            except ClientError as e:
                logger.warning("Failed to read Identity Center instance %s: %s", instance['InstanceArn'], e)

    def _scan_instance(self, inventory: AccountInventory, instance_arn: str, identity_store_id: str) -> None:
        for permission_set_arn in self._paginate(
            self.sso_admin, 'list_permission_sets', 'PermissionSets', InstanceArn=instance_arn
        ):
            described = self.sso_admin.describe_permission_set(
                InstanceArn=instance_arn, PermissionSetArn=permission_set_arn
            )['PermissionSet']
            permission_set = PermissionSet.from_api(described)

            managed = self._paginate(
                self.sso_admin, 'list_managed_policies_in_permission_set', 'AttachedManagedPolicies',
                InstanceArn=instance_arn, PermissionSetArn=permission_set_arn,
            )
            permission_set.attached_policy_arns = [p['Arn'] for p in managed]

            inline = self.sso_admin.get_inline_policy_for_permission_set(
                InstanceArn=instance_arn, PermissionSetArn=permission_set_arn
            ).get('InlinePolicy')
            if inline:
                permission_set.inline_policies = [InlinePolicy(name=permission_set.name, document=inline)]

            inventory.permission_sets.append(permission_set)
            inventory.account_assignments.extend(
                AccountAssignment.from_api(a) for a in self._paginate(
                    self.sso_admin, 'list_account_assignments', 'AccountAssignments',
                    InstanceArn=instance_arn, AccountId=self.account_id, PermissionSetArn=permission_set_arn,
                )
            )

        inventory.identity_store_users = [
            IdentityStoreUser.from_api(u)
            for u in self._paginate(self.identitystore, 'list_users', 'Users', IdentityStoreId=identity_store_id)
        ]
        inventory.identity_store_groups = [
            IdentityStoreGroup.from_api(g)
            for g in self._paginate(self.identitystore, 'list_groups', 'Groups', IdentityStoreId=identity_store_id)
        ]
        for group in inventory.identity_store_groups:
            inventory.group_memberships.extend(
                GroupMembership.from_api(m) for m in self._paginate(
                    self.identitystore, 'list_group_memberships', 'GroupMemberships',
                    IdentityStoreId=identity_store_id, GroupId=group.group_id,
                )
            )

    @staticmethod
    def _paginate(client: Any, operation: str, result_key: str, **kwargs: Any) -> List[Any]:
        results: List[Any] = []
        for page in client.get_paginator(operation).paginate(**kwargs):
            results.extend(page.get(result_key, []))
        return results
