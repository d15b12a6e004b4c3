# ᚺᚢᚷᛁᚾᚾ • Huginn - Thought (Collection)
"""
Collect AWS (and optionally Okta) data into the snapshot directory.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.table import Table

from bifrost.cli_utils import console
from bifrost.iam.scanner import AwsInventoryScanner
from bifrost.inventory import AccountInventory
from bifrost.okta.client import OktaClient
from bifrost.snapshot import SnapshotStore

logger = logging.getLogger(__name__)


def _print_summary(inventory: AccountInventory) -> None:
    table = Table(title=f"Account {inventory.account_id}", show_header=True, header_style="bold cyan")
    table.add_column("Collection")
    table.add_column("Count", justify="right")
    for name, count in inventory.summary().items():
        table.add_row(name.replace('_', ' '), str(count))
    console.print(table)


def run_scan(
    db: str,
    profile: Optional[str] = None,
    region: Optional[str] = None,
    include_identity_center: bool = True,
    okta_domain: Optional[str] = None,
    okta_token: Optional[str] = None,
) -> AccountInventory:
    """
    Scan one AWS account (and an Okta org, when configured) into ``db``.

    Args:
        db: Snapshot directory
        profile: AWS CLI profile name
        region: Region for the Identity Center APIs
        include_identity_center: Also read permission sets and Identity Store
        okta_domain: Okta org domain; Okta is skipped when None
        okta_token: Okta API token

    Returns:
        The collected AccountInventory
    """
    store = SnapshotStore(db)

    console.print("\n[bold cyan]🔍 Bifrost Scanner[/bold cyan]\n")
    if profile:
        console.print(f"[dim]Using AWS profile:[/dim] {profile}")

    scanner = AwsInventoryScanner(profile_name=profile, region_name=region)
    logger.info("Scanner initialized for account %s", scanner.account_id)

    with console.status(f"[bold green]Scanning account {scanner.account_id}..."):
        inventory = scanner.scan(include_identity_center=include_identity_center)
    written = store.save_inventory(inventory)
    console.print(f"[green]✓[/green] Wrote {len(written)} snapshot files for account {inventory.account_id}")
    _print_summary(inventory)

    if okta_domain:
        client = OktaClient(okta_domain, okta_token or '')
        with console.status(f"[bold green]Reading Okta directory {client.domain}..."):
            directory = client.fetch_directory()
        store.save_okta(client.domain, directory)
        console.print(
            f"[green]✓[/green] Okta {client.domain}: {len(directory.groups)} AWS groups, "
            f"{len(directory.users)} users"
        )
    else:
        logger.debug("No Okta domain configured, skipping Okta")

    console.print(f"[green]✓[/green] Snapshot saved to {store.db_path}\n")
    return inventory
