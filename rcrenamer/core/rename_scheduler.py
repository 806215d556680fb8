"""
Rename Scheduler
================

Executes rename recommendations inside a destination directory without ever
overwriting a file.

Renaming files in the directory that is being reconciled creates transient
collisions: the name a file wants may still be held by another file that is
itself waiting to be renamed. The scheduler therefore runs in passes:

1. Every pending recommendation is tried once per pass
   - source gone: reported as missing, dropped
   - destination is the source itself: already named, dropped
   - destination occupied by another file: deferred to the next pass
   - destination free: renamed (progress)
2. Deferred items form the next pass, in reverse order
3. Stop when nothing is pending, or when a pass renamed nothing while
   items remain (a rename cycle such as A->B, B->A: deadlock)

Rename failures (permissions, cross-device moves) are captured per item in
the report; they never abort the batch.

In dry-run mode the filesystem is never touched. A simulated view of the
directory tracks the names that earlier simulated renames vacated and
occupied, so the reported plan matches what a real run would do.

Usage:
    scheduler = RenameScheduler(Path("/downloads"), dry_run=True)
    report = scheduler.apply(recommendations)
    if report.deadlocked:
        print(f"{len(report.deadlocked)} files stuck in a rename cycle")
"""

from __future__ import annotations

import logging
import os
import shutil
import threading
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Iterable, List, Optional, Set

from .catalog import RenamingRecommendation

logger = logging.getLogger(__name__)


class RenameOutcome(Enum):
    """Result of one attempt to execute a recommendation."""
    RENAMED = auto()   # Renamed (or simulated under dry-run)
    SKIPPED = auto()   # Already carries the target name
    DEFERRED = auto()  # Target name occupied by another file
    MISSING = auto()   # Source file disappeared
    FAILED = auto()    # Rename raised an error


@dataclass(frozen=True)
class RenameFailure:
    """A recommendation whose rename raised an error."""
    recommendation: RenamingRecommendation
    error: str


@dataclass
class RenameReport:
    """
    Outcome of a scheduler run.

    Attributes:
        dry_run: Whether renames were only simulated
        renamed: Recommendations executed (or simulated)
        skipped: Recommendations whose source already had the target name
        missing: Recommendations whose source file no longer existed
        errors: Recommendations whose rename failed
        deadlocked: Recommendations left over when a pass made no progress
        pending: Recommendations not processed because of cancellation
        cancelled: Whether the run stopped on a cancellation request
        passes: Number of passes run
    """
    dry_run: bool = False
    renamed: List[RenamingRecommendation] = field(default_factory=list)
    skipped: List[RenamingRecommendation] = field(default_factory=list)
    missing: List[RenamingRecommendation] = field(default_factory=list)
    errors: List[RenameFailure] = field(default_factory=list)
    deadlocked: List[RenamingRecommendation] = field(default_factory=list)
    pending: List[RenamingRecommendation] = field(default_factory=list)
    cancelled: bool = False
    passes: int = 0

    @property
    def ok(self) -> bool:
        """True if every recommendation was renamed or already named."""
        return not (self.missing or self.errors or self.deadlocked or self.pending)

    def __repr__(self) -> str:
        return (
            f"RenameReport("
            f"renamed={len(self.renamed)}, "
            f"skipped={len(self.skipped)}, "
            f"missing={len(self.missing)}, "
            f"errors={len(self.errors)}, "
            f"deadlocked={len(self.deadlocked)}, "
            f"passes={self.passes}, "
            f"dry_run={self.dry_run})"
        )


class _DirectoryView:
    """
    Existence checks and moves, optionally simulated.

    When simulating, moves only update the vacated/occupied sets that
    overlay the real directory state.
    """

    def __init__(self, simulate: bool) -> None:
        self.simulate = simulate
        self._vacated: Set[Path] = set()
        self._occupied: Set[Path] = set()

    def exists(self, path: Path) -> bool:
        if path in self._occupied:
            return True
        if path in self._vacated:
            return False
        return path.exists()

    def same_file(self, src: Path, dst: Path) -> bool:
        """Whether dst names src itself, e.g. differing only in case on a case-insensitive filesystem."""
        if os.path.normcase(str(src)) == os.path.normcase(str(dst)):
            return True
        if src.name.casefold() != dst.name.casefold() or src.parent != dst.parent:
            return False
        if {src, dst} & (self._vacated | self._occupied):
            return False
        try:
            return src.samefile(dst)
        except OSError:
            return False

    def move(self, src: Path, dst: Path) -> None:
        if not self.simulate:
            shutil.move(str(src), str(dst))
            return
        self._occupied.discard(src)
        self._vacated.add(src)
        self._vacated.discard(dst)
        self._occupied.add(dst)


def _normalize(path: Path) -> Path:
    return Path(os.path.abspath(path))


def is_safe_target_name(target_name: str) -> bool:
    """Reject empty, absolute and parent-relative target names."""
    if not target_name:
        return False
    target = Path(target_name)
    if target.is_absolute() or target.anchor:
        return False
    return '..' not in target.parts and target.name not in ('', '.')


class RenameScheduler:
    """
    Pass-based executor for rename recommendations.

    Example:
        scheduler = RenameScheduler(Path("downloads"))
        report = scheduler.apply(recommendations)
    """

    def __init__(
        self,
        dest_dir: Path,
        dry_run: bool = False,
        cancel_event: Optional[threading.Event] = None
    ) -> None:
        """
        Args:
            dest_dir: Directory receiving the renamed files (must exist)
            dry_run: Simulate renames without touching the filesystem
            cancel_event: Optional event checked before each item
        """
        self.dest_dir = _normalize(Path(dest_dir))
        self.dry_run = dry_run
        self._cancel_event = cancel_event or threading.Event()

    @classmethod
    def from_config(
        cls,
        config,
        dest_dir: Path,
        cancel_event: Optional[threading.Event] = None
    ) -> RenameScheduler:
        """Create a scheduler from a Config (uses rename.dry_run)."""
        return cls(dest_dir, dry_run=config.rename.dry_run, cancel_event=cancel_event)

    def cancel(self) -> None:
        """Stop before the next item."""
        self._cancel_event.set()

    def apply(self, recommendations: Iterable[RenamingRecommendation]) -> RenameReport:
        """
        Execute recommendations until done or deadlocked.

        Args:
            recommendations: Renames in preferred order

        Returns:
            RenameReport describing every recommendation's fate
        """
        report = RenameReport(dry_run=self.dry_run)
        view = _DirectoryView(simulate=self.dry_run)
        to_do = list(recommendations)

        logger.info(
            f"{'[dry run] ' if self.dry_run else ''}Applying {len(to_do)} renames in {self.dest_dir}"
        )

        while to_do:
            report.passes += 1
            push_back: List[RenamingRecommendation] = []
            progress = 0

            for position, recommendation in enumerate(to_do):
                if self._cancel_event.is_set():
                    logger.warning("Rename run cancelled")
                    report.cancelled = True
                    report.pending = to_do[position:] + list(reversed(push_back))
                    return report

                outcome = self._execute(recommendation, view, report)
                if outcome is RenameOutcome.DEFERRED:
                    push_back.append(recommendation)
                elif outcome is RenameOutcome.RENAMED:
                    progress += 1

            if push_back:
                logger.info(f"Try to rename {len(push_back)} pushed back files")

            push_back.reverse()
            to_do = push_back

            if to_do and progress == 0:
                logger.error(
                    f"Stuck in a renaming loop: {len(to_do)} files can not be renamed "
                    f"without taking each other's names"
                )
                report.deadlocked = to_do
                break

        logger.info(f"Rename run finished: {report!r}")
        return report

    def _execute(
        self,
        recommendation: RenamingRecommendation,
        view: _DirectoryView,
        report: RenameReport
    ) -> RenameOutcome:
        """Try one recommendation and record the outcome in the report."""
        src = _normalize(recommendation.source)

        if not is_safe_target_name(recommendation.target_name):
            logger.error(f"Refusing unsafe target name {recommendation.target_name!r} for {src.name}")
            report.errors.append(RenameFailure(recommendation, "unsafe target name"))
            return RenameOutcome.FAILED

        dst = _normalize(self.dest_dir / recommendation.target_name)

        if not view.exists(src):
            logger.warning(f"Not renaming {src}: file not found")
            report.missing.append(recommendation)
            return RenameOutcome.MISSING

        if view.exists(dst):
            if dst == src:
                logger.info(f"No need to rename {src}")
                report.skipped.append(recommendation)
                return RenameOutcome.SKIPPED
            if not view.same_file(src, dst):
                logger.info(f"Will not rename {src} because it would overwrite {dst}, will try later")
                return RenameOutcome.DEFERRED

        try:
            view.move(src, dst)
        except OSError as e:
            logger.error(f"Failed to rename {src} to {dst}: {e}")
            report.errors.append(RenameFailure(recommendation, str(e)))
            return RenameOutcome.FAILED

        if self.dry_run:
            logger.info(f"[dry run] Will rename {src} to {dst}")
        else:
            logger.info(f"Renamed {src} to {dst}")
        report.renamed.append(recommendation)
        return RenameOutcome.RENAMED


def apply_renames(
    recommendations: Iterable[RenamingRecommendation],
    dest_dir: Path,
    dry_run: bool = False
) -> RenameReport:
    """Execute recommendations in dest_dir with a default scheduler."""
    return RenameScheduler(dest_dir, dry_run=dry_run).apply(recommendations)
