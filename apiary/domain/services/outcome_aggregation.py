"""
Outcome Aggregation Service

Architectural Intent:
- Folds the executor's FleetSummary and the skip set into the final result
- Renders the user-facing report
- Maps a summary to a process exit status as a pure function; the CLI is
  the only caller and the only place that exits

Exit status policy:
- EXIT_INTERRUPTED when the run was cancelled before every task finished
- EXIT_FAILURE when any attempted task failed, when nothing was attempted,
  or when hosts were skipped and fail_on_skipped is set
- EXIT_OK otherwise
- EXIT_NO_MATCH is reserved for an empty selection, which never reaches
  the executor
"""

from __future__ import annotations
from typing import Iterable

from apiary.domain.entities.fleet_summary import FleetSummary, SkipEntry

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NO_MATCH = 2
EXIT_INTERRUPTED = 130


class OutcomeAggregator:
    def __init__(self, fail_on_skipped: bool = False) -> None:
        self.fail_on_skipped = fail_on_skipped

    def finalize(self, summary: FleetSummary, skips: Iterable[SkipEntry]) -> FleetSummary:
        return summary.with_skipped(skips)

    def render(self, summary: FleetSummary) -> str:
        lines = [
            f"attempted={summary.attempted} succeeded={summary.succeeded} "
            f"failed={summary.failed} skipped={summary.skipped_count}"
        ]
        for outcome in summary.failures:
            lines.append(f"  failed  {outcome.name} [{outcome.phase_reached}]: {outcome.cause}")
        for entry in sorted(summary.skipped, key=lambda e: e.name):
            lines.append(f"  skipped {entry.name}: {entry.reason}")
        if summary.interrupted:
            lines.append(
                f"  interrupted: {len(summary.not_started)} host(s) never started"
            )
            for name in sorted(summary.not_started):
                lines.append(f"  not started {name}")
        return "\n".join(lines)

    def exit_status(self, summary: FleetSummary) -> int:
        if summary.interrupted:
            return EXIT_INTERRUPTED
        if summary.attempted == 0 or summary.failed > 0:
            return EXIT_FAILURE
        if self.fail_on_skipped and summary.skipped_count > 0:
            return EXIT_FAILURE
        return EXIT_OK
