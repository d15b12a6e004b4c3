# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#                        ᚺᚢᚷᛁᚾᚾ ᚨᚾᛞ ᛗᚢᚾᛁᚾᚾ • HUGINN & MUNINN
#                        Odin's Ravens - Thought & Memory
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
#   Huginn gathers (scan), Muninn remembers (report); the exporters
#   carry what they found to other tools.
#
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

from bifrost.commands.scan import run_scan
from bifrost.commands.report import NoSnapshotError, run_report
from bifrost.commands.export import run_export

__all__ = ['run_scan', 'run_report', 'run_export', 'NoSnapshotError']
