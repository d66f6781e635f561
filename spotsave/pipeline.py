from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from spotsave.errors import PreconditionError, TraversalError
from spotsave.models import COPIED, DRY_RUN, ERROR, EXISTS, FAILED, TOO_SMALL, CopyOutcome, Threshold
from spotsave.policy import assess
from spotsave.reporter import RunReport, RunReporter

# The delivery cache stores JPEG content without an extension. The real
# encoding is not inspected.
OUTPUT_SUFFIX = ".jpg"


def check_directory(dir_path: Path) -> None:
    try:
        is_dir = dir_path.is_dir()
        exists = is_dir or dir_path.exists()
    except OSError as exc:
        raise PreconditionError(f"{dir_path}: {exc}") from exc
    if not exists:
        raise PreconditionError(f"{dir_path} doesn't exist")
    if not is_dir:
        raise PreconditionError(f"{dir_path} is not a directory")


def target_path(output_dir: Path, source: Path) -> Path:
    return output_dir / (source.name + OUTPUT_SUFFIX)


def copy_file(source: Path, target: Path) -> CopyOutcome:
    """Copy ``source`` to a freshly created ``target``; never overwrites.

    The exclusive-create open makes the existence check and the creation a
    single step for each destination path.
    """

    try:
        with source.open("rb") as src, target.open("xb") as dst:
            shutil.copyfileobj(src, dst)
    except FileExistsError:
        return CopyOutcome(status=EXISTS, target=target)
    except OSError as exc:
        return CopyOutcome(status=FAILED, target=target, reason=f"couldn't copy file {target}: {exc}")
    return CopyOutcome(status=COPIED, target=target)


def _iter_files(source_dir: Path, output_dir: Path):
    def _abort(exc: OSError) -> None:
        raise TraversalError(f"couldn't walk {exc.filename or source_dir}: {exc.strerror or exc}") from exc

    output_resolved = output_dir.resolve()
    for dirpath, dirs, files in os.walk(source_dir, onerror=_abort):
        base = Path(dirpath)
        # never rescan our own output when it is nested in the cache
        dirs[:] = [d for d in dirs if (base / d).resolve() != output_resolved]
        for name in files:
            yield base / name


def process_file(
    source: Path,
    output_dir: Path,
    threshold: Threshold,
    reporter: RunReporter,
    *,
    dry_run: bool = False,
) -> str:
    assessment = assess(source, threshold)
    if assessment.status == ERROR:
        reporter.record(ERROR, f"couldn't get size of {source}: {assessment.reason}", level=logging.ERROR)
        return ERROR

    if assessment.status == TOO_SMALL:
        dims = assessment.dimensions
        reporter.record(TOO_SMALL, f"{source.name} size is too small ({dims.width}x{dims.height})")
        return TOO_SMALL

    target = target_path(output_dir, source)
    try:
        exists = target.exists()
    except OSError as exc:
        reporter.record(FAILED, f"couldn't check {target}: {exc}", level=logging.ERROR)
        return FAILED
    if exists:
        reporter.record(EXISTS, f"File {target} already exists")
        return EXISTS

    if dry_run:
        reporter.record(DRY_RUN, f"would copy file {target}")
        return DRY_RUN

    reporter.info(f"copying file {target}")
    outcome = copy_file(source, target)
    if outcome.status == EXISTS:
        reporter.record(EXISTS, f"File {target} already exists")
    elif outcome.status == FAILED:
        reporter.record(FAILED, outcome.reason, level=logging.ERROR)
    else:
        reporter.record(COPIED)
    return outcome.status


def run(
    source_dir: Path,
    output_dir: Path,
    threshold: Threshold,
    reporter: RunReporter | None = None,
    *,
    dry_run: bool = False,
) -> RunReport:
    """Copy every cached wallpaper under ``source_dir`` into ``output_dir``.

    Raises ``PreconditionError`` before any traversal when either directory is
    missing, and ``TraversalError`` when the walk itself fails. Per-file
    extraction and copy failures are only reported.
    """

    reporter = reporter or RunReporter()
    check_directory(source_dir)
    check_directory(output_dir)

    report = reporter.start(source_dir, output_dir, dry_run=dry_run)
    for source in _iter_files(source_dir, output_dir):
        process_file(source, output_dir, threshold, reporter, dry_run=dry_run)
    return report
