# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#                            ᚱᚢᚾᛁᚱ • THE RUNES
#                    Sacred Symbols of Power and Knowledge
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
#   Shared console, exit codes and defaults for every command that
#   crosses the bridge.
#
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

from __future__ import annotations

import logging
import os
from typing import Optional

from rich.console import Console

# ᚢᚱᚢᛉ • Uruz - The Rune of Strength (Constants)
DEFAULT_DB_PATH = './db'
DEFAULT_OUTPUT_PATH = './output'
DEFAULT_CONFIG_PATH = './conf'
DEFAULT_SERVICE = 'ec2'
DEFAULT_WORKERS = 1
DGML_FILE_NAME = 'graph.dgml'
DOT_FILE_NAME = 'graph.dot'
JSON_FILE_NAME = 'graph.json'

# Environment fallbacks for CLI options
ENV_ACCOUNT_ID = 'AWS_ACCOUNT_ID'
ENV_OKTA_BASE_URL = 'OKTA_BASE_URL'
ENV_OKTA_API_TOKEN = 'OKTA_API_TOKEN'


# ᛏᛁᚹᚨᛉ • Tiwaz - Exit Codes for CI/CD Integration
class ExitCode:
    """
    Standardized exit codes.

    Usage:
        sys.exit(ExitCode.INVALID_SERVICE_PREFIX)
    """
    SUCCESS = 0                 # Report written
    ERROR = 1                   # Unhandled error
    INVALID_SERVICE_PREFIX = 3  # Service prefix not in the service table
    AWS_ERROR = 10              # AWS API/credential error
    OKTA_ERROR = 11             # Okta API error
    POLICY_PARSE_ERROR = 12     # Malformed policy or trust document
    NO_DATA = 13                # No account snapshot to report on


# ═══════════════════════════════════════════════════════════════════════════════
# Logging
# ═══════════════════════════════════════════════════════════════════════════════
LOG_FORMAT = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'


def configure_logging(verbose: bool = False) -> None:
    """WARNING by default, DEBUG with --verbose."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)
    # botocore is chatty at DEBUG
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


# ═══════════════════════════════════════════════════════════════════════════════
# Console Configuration
# ═══════════════════════════════════════════════════════════════════════════════
console = Console(stderr=True)


def set_console_theme(*, no_color: bool = False) -> None:
    """
    Configure the shared console instance.

    Args:
        no_color: If True, disable all colored/styled output (useful for CI/CD)
    """
    console.no_color = no_color


def env_or(value: Optional[str], env_name: str) -> Optional[str]:
    """CLI value if given, else the environment variable, else None."""
    if value:
        return value
    return os.environ.get(env_name) or None


# ᚨᛊᚲᛁᛁ • ASCII Art Banner
BIFROST_BANNER = """
[bold magenta]
    ██████╗ ██╗███████╗██████╗  ██████╗ ███████╗████████╗
    ██╔══██╗██║██╔════╝██╔══██╗██╔═══██╗██╔════╝╚══██╔══╝
    ██████╔╝██║█████╗  ██████╔╝██║   ██║███████╗   ██║
    ██╔══██╗██║██╔══╝  ██╔══██╗██║   ██║╚════██║   ██║
    ██████╔╝██║██║     ██║  ██║╚██████╔╝███████║   ██║
    ╚═════╝ ╚═╝╚═╝     ╚═╝  ╚═╝ ╚═════╝ ╚══════╝   ╚═╝
[/bold magenta]
[dim]          ᛒᛁᚠᚱᛟᛊᛏ • Every road from identity to service 🌈[/dim]
"""

BIFROST_BANNER_SMALL = "[bold magenta]🌈 BIFROST[/bold magenta] [dim]• AWS access graph[/dim]"


def print_banner(*, small: bool = False) -> None:
    """Print the Bifrost ASCII banner."""
    console.print(BIFROST_BANNER_SMALL if small else BIFROST_BANNER)


def print_version_info() -> None:
    """Print version and system information."""
    import platform
    import sys
    from bifrost import __version__

    console.print(BIFROST_BANNER)
    console.print(f"[bold cyan]Version:[/bold cyan]     {__version__}")
    console.print(f"[bold cyan]Python:[/bold cyan]      {sys.version.split()[0]}")
    console.print(f"[bold cyan]Platform:[/bold cyan]    {platform.system()} {platform.release()}")
    console.print()
    console.print("[dim]Run 'bifrost --help' for available commands[/dim]")
