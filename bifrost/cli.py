# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#                              ᛒᛁᚠᚱᛟᛊᛏ • BIFRÖST
#                     The Rainbow Bridge Between Realms
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
#   Three realms of identity (IAM, Identity Center and Okta) meet the
#   realm of services here. Every command crosses this bridge.
#
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

from __future__ import annotations

import logging
from typing import Optional

import click
from botocore.exceptions import BotoCoreError, ClientError

# ᚱᚢᚾᛖᛊ • Runic Imports from the Sacred Scrolls
from bifrost.cli_utils import (
    # Constants
    DEFAULT_CONFIG_PATH, DEFAULT_DB_PATH, DEFAULT_OUTPUT_PATH, DEFAULT_SERVICE, DEFAULT_WORKERS,
    ENV_ACCOUNT_ID, ENV_OKTA_API_TOKEN, ENV_OKTA_BASE_URL, ExitCode,
    # Console
    console, set_console_theme, configure_logging, env_or,
    # Banner
    print_banner, print_version_info,
)
from bifrost.commands import NoSnapshotError, run_report, run_scan
from bifrost.graph.correlation import CORRELATORS
from bifrost.iam.policy_document import PolicyParseError
from bifrost.okta.client import OktaApiError
from bifrost.services import is_known_service

# ᛗᛁᛗᛁᚱ • Mimir's Well of Wisdom - Logger
logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def main(ctx, verbose):
    """
    🌈 BIFROST - AWS access graph

    Finds every road from an identity (IAM user, Identity Center user or
    Okta user) through groups, roles, permission sets and policies to an
    AWS service.

    \b
    Quick Start:
      bifrost scan --profile prod              # Snapshot IAM into ./db
      bifrost report s3                        # Who can reach S3?
      bifrost report s3 --graphviz --dgml      # ...and draw the graph
    """
    configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        print_banner()
        console.print(ctx.get_help())


@main.command()
def version():
    """Show version and system information."""
    print_version_info()


@main.command()
@click.option('--profile', default=None, help='AWS profile name to use')
@click.option('--region', default=None, help='Region for the Identity Center APIs')
@click.option('--db', default=DEFAULT_DB_PATH, show_default=True, type=click.Path(file_okay=False),
              help='Snapshot directory')
@click.option('--no-identity-center', is_flag=True, help='Skip permission sets and Identity Store')
@click.option('--okta-domain', default=None, help=f'Okta org domain (or ${ENV_OKTA_BASE_URL})')
@click.option('--okta-token', default=None, help=f'Okta API token (or ${ENV_OKTA_API_TOKEN})')
@click.option('--no-color', is_flag=True, help='Disable colored output')
def scan(
    profile: Optional[str],
    region: Optional[str],
    db: str,
    no_identity_center: bool,
    okta_domain: Optional[str],
    okta_token: Optional[str],
    no_color: bool,
) -> None:
    """
    Snapshot IAM, Identity Center and Okta into the db directory.
    """
    set_console_theme(no_color=no_color)
    logger.info("Starting scan: profile=%s, db=%s", profile, db)

    try:
        run_scan(
            db,
            profile=profile,
            region=region,
            include_identity_center=not no_identity_center,
            okta_domain=env_or(okta_domain, ENV_OKTA_BASE_URL),
            okta_token=env_or(okta_token, ENV_OKTA_API_TOKEN),
        )
    except OktaApiError as e:
        logger.error("Okta collection failed: %s", e, exc_info=True)
        console.print(f"[red]✗ Okta error:[/red] {e}")
        raise SystemExit(ExitCode.OKTA_ERROR)
    except (RuntimeError, ClientError, BotoCoreError) as e:
        logger.error("AWS collection failed: %s", e, exc_info=True)
        console.print(f"[red]✗ AWS error:[/red] {e}")
        raise SystemExit(ExitCode.AWS_ERROR)
    except Exception as e:
        logger.error("Scan command failed: %s", e, exc_info=True)
        console.print(f"[red]✗ Error:[/red] {e}")
        raise SystemExit(ExitCode.ERROR)


@main.command()
@click.argument('service', default=DEFAULT_SERVICE)
@click.option('--db', default=DEFAULT_DB_PATH, show_default=True, help='Snapshot directory')
@click.option('--output', default=DEFAULT_OUTPUT_PATH, show_default=True, help='Directory for report and graph files')
@click.option('--config', default=DEFAULT_CONFIG_PATH, show_default=True, help='Directory holding IGNORE.csv')
@click.option('--account-id', default=None, help=f'Only this account (or ${ENV_ACCOUNT_ID}); default: every snapshot')
@click.option('--okta-domain', default=None, help=f'Only this Okta snapshot (or ${ENV_OKTA_BASE_URL})')
@click.option('--dgml', is_flag=True, help='Write graph.dgml')
@click.option('--graphviz', is_flag=True, help='Write graph.dot')
@click.option('--json', 'json_output', is_flag=True, help='Write graph.json (node-link data + report)')
@click.option('--no-files', is_flag=True, help='Print the report instead of writing authorization-paths.txt')
@click.option('--no-prune', is_flag=True, help='Keep every service and nodes that reach no service')
@click.option('--no-identity', is_flag=True, help='Leave users and identity correlation out of the graph')
@click.option('--include-wildcard', is_flag=True, help="Also report paths to '*' grants")
@click.option('--workers', default=DEFAULT_WORKERS, show_default=True, type=click.IntRange(min=1),
              help='Threads for policy analysis')
@click.option('--correlation', type=click.Choice(sorted(CORRELATORS)), default='local-part', show_default=True,
              help='How identities from different directories are matched')
@click.option('--max-age-hours', type=float, default=None, help='Treat older snapshot files as missing')
@click.option('--no-color', is_flag=True, help='Disable colored output')
def report(
    service: str,
    db: str,
    output: str,
    config: str,
    account_id: Optional[str],
    okta_domain: Optional[str],
    dgml: bool,
    graphviz: bool,
    json_output: bool,
    no_files: bool,
    no_prune: bool,
    no_identity: bool,
    include_wildcard: bool,
    workers: int,
    correlation: str,
    max_age_hours: Optional[float],
    no_color: bool,
) -> None:
    """
    Report every identity that can reach SERVICE (an IAM prefix such as s3).
    """
    set_console_theme(no_color=no_color)

    if not is_known_service(service):
        console.print(f"[red]✗ Unknown AWS service prefix:[/red] {service}")
        raise SystemExit(ExitCode.INVALID_SERVICE_PREFIX)

    logger.info("Starting report: service=%s, db=%s, output=%s", service, db, output)

    try:
        run_report(
            service,
            db=db,
            output=output,
            config=config,
            account_id=env_or(account_id, ENV_ACCOUNT_ID),
            okta_domain=env_or(okta_domain, ENV_OKTA_BASE_URL),
            dgml=dgml,
            graphviz=graphviz,
            json_output=json_output,
            no_files=no_files,
            no_prune=no_prune,
            no_identity=no_identity,
            include_wildcard=include_wildcard,
            workers=workers,
            correlation=correlation,
            max_age_hours=max_age_hours,
        )
    except (NoSnapshotError, FileNotFoundError) as e:
        logger.error("No data to report on: %s", e)
        console.print(f"[red]✗ No data:[/red] {e}")
        raise SystemExit(ExitCode.NO_DATA)
    except PolicyParseError as e:
        logger.error("Policy parse error: %s", e, exc_info=True)
        console.print(f"[red]✗ Policy parse error:[/red] {e}")
        raise SystemExit(ExitCode.POLICY_PARSE_ERROR)
    except Exception as e:
        logger.error("Report command failed: %s", e, exc_info=True)
        console.print(f"[red]✗ Error:[/red] {e}")
        raise SystemExit(ExitCode.ERROR)


if __name__ == '__main__':
    main()
