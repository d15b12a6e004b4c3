# ᛗᛁᛗᛁᚱ • Mimir's Well - Snapshot Store
"""
On-disk JSON snapshots of collected inventories.

One file per collection, in the API record shape:

    aws-<account>-group-list.json                     aws-<account>-policy-list.json
    aws-<account>-role-list.json                      aws-<account>-user-list.json
    aws-<account>-saml-idp-list.json                  aws-<account>-permission-set-list.json
    aws-<account>-permission-set-managed-policy-map.json
    aws-<account>-permission-set-inline-policy-map.json
    aws-<account>-identity-store-user-list.json       aws-<account>-identity-store-group-list.json
    aws-<account>-identity-store-group-members-map.json
    aws-<account>-permission-set-assignments-list.json
    okta-<domain>-group-list.json  okta-<domain>-user-list.json  okta-<domain>-membership-list.json

The group, policy, role and user lists are required; every other collection
is optional and loads empty when missing.
"""

import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from bifrost.inventory import (
    AccountAssignment, AccountInventory, GroupMembership, IamGroup, IamRole, IamUser,
    IdentityStoreGroup, IdentityStoreUser, InlinePolicy, ManagedPolicy, OktaDirectory,
    OktaGroup, OktaGroupMember, OktaUser, PermissionSet, SamlProvider,
)

logger = logging.getLogger(__name__)

REQUIRED_AWS_COLLECTIONS = ('group-list', 'policy-list', 'role-list', 'user-list')
OKTA_COLLECTIONS = ('group-list', 'user-list', 'membership-list')

_AWS_FILE_PATTERN = re.compile(r'^aws-(?P<account>\d{12})-group-list\.json$')
_OKTA_FILE_PATTERN = re.compile(r'^okta-(?P<domain>.+)-group-list\.json$')


class SnapshotStore:
    """Reads and writes inventory snapshots under a db directory"""

    def __init__(self, db_path: Union[str, Path], max_age_hours: Optional[float] = None):
        """
        Args:
            db_path: Directory holding the snapshot files
            max_age_hours: Treat files older than this as missing (None = never stale)
        """
        self.db_path = Path(db_path)
        self.max_age_hours = max_age_hours

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def aws_path(self, account_id: str, collection: str) -> Path:
        return self.db_path / f'aws-{account_id}-{collection}.json'

    def okta_path(self, domain: str, collection: str) -> Path:
        return self.db_path / f'okta-{domain}-{collection}.json'

    def _is_fresh(self, path: Path) -> bool:
        if not path.exists():
            return False
        if self.max_age_hours is None:
            return True
        age_hours = (time.time() - path.stat().st_mtime) / 3600
        if age_hours > self.max_age_hours:
            logger.info("Snapshot %s is %.1f hours old (limit %.1f), treating as missing",
                        path.name, age_hours, self.max_age_hours)
            return False
        return True

    def _read(self, path: Path) -> Optional[Any]:
        if not self._is_fresh(path):
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Unreadable snapshot %s, treating as missing: %s", path, e)
            return None

    def _write(self, path: Path, data: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, default=str)
        logger.debug("Wrote %s", path)
        return path

    # ------------------------------------------------------------------
    # AWS
    # ------------------------------------------------------------------

    def discover_accounts(self) -> List[str]:
        """Accounts whose required collections are all present and fresh."""
        if not self.db_path.is_dir():
            return []
        accounts = []
        for path in sorted(self.db_path.iterdir()):
            match = _AWS_FILE_PATTERN.match(path.name)
            if match and self.has_inventory(match.group('account')):
                accounts.append(match.group('account'))
        return accounts

    def has_inventory(self, account_id: str) -> bool:
        return all(self._is_fresh(self.aws_path(account_id, c)) for c in REQUIRED_AWS_COLLECTIONS)

    def load_inventory(self, account_id: str) -> AccountInventory:
        """
        Load one account's inventory.

        Raises:
            FileNotFoundError: If a required collection is missing or stale
        """
        def records(collection: str, required: bool = False):
            data = self._read(self.aws_path(account_id, collection))
            if data is None:
                if required:
                    raise FileNotFoundError(f"Missing snapshot {self.aws_path(account_id, collection)}")
                return [] if collection.endswith('-list') else {}
            return data

        managed_map: Dict[str, List[str]] = records('permission-set-managed-policy-map')
        inline_map: Dict[str, List[Dict[str, Any]]] = records('permission-set-inline-policy-map')
        permission_sets = []
        for record in records('permission-set-list'):
            permission_set = PermissionSet.from_api(record)
            permission_set.attached_policy_arns.extend(managed_map.get(permission_set.arn, []))
            permission_set.inline_policies.extend(InlinePolicy.from_api(p) for p in inline_map.get(permission_set.arn, []))
            permission_sets.append(permission_set)

        members_map: Dict[str, List[Dict[str, Any]]] = records('identity-store-group-members-map')
        memberships = [
            GroupMembership.from_api({**m, 'GroupId': m.get('GroupId', group_id)})
            for group_id, group_members in members_map.items()
            for m in group_members
        ]

        inventory = AccountInventory(
            account_id=account_id,
            managed_policies=[ManagedPolicy.from_api(r) for r in records('policy-list', required=True)],
            groups=[IamGroup.from_api(r) for r in records('group-list', required=True)],
            roles=[IamRole.from_api(r) for r in records('role-list', required=True)],
            users=[IamUser.from_api(r) for r in records('user-list', required=True)],
            saml_providers=[SamlProvider.from_api(r) for r in records('saml-idp-list')],
            permission_sets=permission_sets,
            identity_store_users=[IdentityStoreUser.from_api(r) for r in records('identity-store-user-list')],
            identity_store_groups=[IdentityStoreGroup.from_api(r) for r in records('identity-store-group-list')],
            group_memberships=memberships,
            account_assignments=[AccountAssignment.from_api(r) for r in records('permission-set-assignments-list')],
        )
        logger.info("Loaded snapshot for account %s: %s", account_id, inventory.summary())
        return inventory

    def save_inventory(self, inventory: AccountInventory) -> List[Path]:
        account_id = inventory.account_id

        permission_sets = []
        managed_map: Dict[str, List[str]] = {}
        inline_map: Dict[str, List[Dict[str, Any]]] = {}
        for permission_set in inventory.permission_sets:
            permission_sets.append(permission_set.to_api())
            managed_map[permission_set.arn] = list(permission_set.attached_policy_arns)
            inline_map[permission_set.arn] = [p.to_api() for p in permission_set.inline_policies]

        members_map: Dict[str, List[Dict[str, Any]]] = {}
        for membership in inventory.group_memberships:
            members_map.setdefault(membership.group_id, []).append(membership.to_api())

        collections = {
            'group-list': [g.to_api() for g in inventory.groups],
            'policy-list': [p.to_api() for p in inventory.managed_policies],
            'role-list': [r.to_api() for r in inventory.roles],
            'user-list': [u.to_api() for u in inventory.users],
            'saml-idp-list': [s.to_api() for s in inventory.saml_providers],
            'permission-set-list': permission_sets,
            'permission-set-managed-policy-map': managed_map,
            'permission-set-inline-policy-map': inline_map,
            'identity-store-user-list': [u.to_api() for u in inventory.identity_store_users],
            'identity-store-group-list': [g.to_api() for g in inventory.identity_store_groups],
            'identity-store-group-members-map': members_map,
            'permission-set-assignments-list': [a.to_api() for a in inventory.account_assignments],
        }
        return [self._write(self.aws_path(account_id, name), data) for name, data in collections.items()]

    # ------------------------------------------------------------------
    # Okta
    # ------------------------------------------------------------------

    def discover_okta_domains(self) -> List[str]:
        if not self.db_path.is_dir():
            return []
        domains = []
        for path in sorted(self.db_path.iterdir()):
            match = _OKTA_FILE_PATTERN.match(path.name)
            if match:
                domains.append(match.group('domain'))
        return domains

    def load_okta(self, domain: str) -> Optional[OktaDirectory]:
        """Load an Okta directory; None unless all three collections are present."""
        groups, users, memberships = (self._read(self.okta_path(domain, c)) for c in OKTA_COLLECTIONS)
        if groups is None or users is None or memberships is None:
            logger.info("No complete Okta snapshot for %s", domain)
            return None

        directory = OktaDirectory(
            groups=[OktaGroup.from_api(g) for g in groups],
            users=[OktaUser.from_api(u) for u in users],
            memberships={
                group_id: [OktaGroupMember.from_api(m, group_id=group_id) for m in members]
                for group_id, members in memberships.items()
            },
        )
        logger.info("Loaded Okta snapshot for %s: %d groups, %d users", domain, len(directory.groups), len(directory.users))
        return directory

    def save_okta(self, domain: str, directory: OktaDirectory) -> List[Path]:
        return [
            self._write(self.okta_path(domain, 'group-list'), [g.to_api() for g in directory.groups]),
            self._write(self.okta_path(domain, 'user-list'), [u.to_api() for u in directory.users]),
            self._write(self.okta_path(domain, 'membership-list'), {
                group_id: [m.to_api() for m in members]
                for group_id, members in directory.memberships.items()
            }),
        ]
