from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from spotsave.models import COPIED, DRY_RUN, ERROR, EXISTS, FAILED, TOO_SMALL
from spotsave.time_utils import local_timestamp_str

LOGGER = logging.getLogger(__name__)

SUMMARY_KEYS = [COPIED, EXISTS, TOO_SMALL, ERROR, FAILED, DRY_RUN]


@dataclass
class RunReport:
    run_ts: str
    source_dir: Path
    output_dir: Path
    dry_run: bool
    counts: Counter = field(default_factory=Counter)

    @property
    def visited(self) -> int:
        return sum(self.counts[key] for key in SUMMARY_KEYS)

    @property
    def copied(self) -> int:
        return int(self.counts.get(COPIED, 0))


class RunReporter:
    """Sink for pipeline messages.

    Every line goes through ``logging``; handler failures are routed to
    ``Handler.handleError`` by the logging module, so nothing here raises
    back into the pipeline. Outcomes are tallied for the batch summary.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or LOGGER
        self.counts: Counter[str] = Counter()

    def info(self, message: str) -> None:
        self.logger.info(message)

    def record(self, outcome: str, message: str | None = None, *, level: int = logging.INFO) -> None:
        self.counts[outcome] += 1
        if message:
            self.logger.log(level, message)

    def start(self, source_dir: Path, output_dir: Path, *, dry_run: bool = False) -> RunReport:
        self.counts = Counter()
        report = RunReport(
            run_ts=local_timestamp_str(),
            source_dir=source_dir,
            output_dir=output_dir,
            dry_run=dry_run,
            counts=self.counts,
        )
        self.logger.info("scanning %s -> %s%s", source_dir, output_dir, " (dry run)" if dry_run else "")
        return report


def build_summary(report: RunReport) -> list[str]:
    lines = [
        f"--- Run Summary [{report.run_ts}] ---",
        f"source_dir: {report.source_dir}",
        f"output_dir: {report.output_dir}",
        f"dry_run: {report.dry_run}",
        f"files_visited: {report.visited}",
    ]
    for key in SUMMARY_KEYS:
        if key == DRY_RUN and not report.dry_run:
            continue
        lines.append(f"{key}: {report.counts[key]}")
    return lines
