import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import (
    Category,
    FileEntry,
    FolderAction,
    FolderActionKind,
    MoveOutcome,
    OutcomeKind,
    RunPhase,
    RunStatus,
)


@dataclass
class CategoryTotals:
    processed: int = 0
    moved: int = 0
    skipped: int = 0
    failed: int = 0
    simulated: int = 0
    bytes_moved: int = 0

    def add(self, outcome: MoveOutcome) -> None:
        self.processed += 1
        if outcome.kind is OutcomeKind.MOVED:
            self.moved += 1
            self.bytes_moved += outcome.bytes_moved
        elif outcome.kind is OutcomeKind.FAILED:
            self.failed += 1
        elif outcome.kind is OutcomeKind.SIMULATED_ONLY:
            self.simulated += 1
        else:
            self.skipped += 1

    def merge(self, other: "CategoryTotals") -> None:
        self.processed += other.processed
        self.moved += other.moved
        self.skipped += other.skipped
        self.failed += other.failed
        self.simulated += other.simulated
        self.bytes_moved += other.bytes_moved


@dataclass(frozen=True)
class ReportEntry:
    source: Path
    category: Category
    outcome: MoveOutcome


@dataclass
class RunReport:
    """
    Aggregate outcome of one run. Components update it only through the
    record_* / warn / error methods, which serialize on an internal lock.
    """
    simulate: bool = False
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    phase: RunPhase = RunPhase.IDLE
    status: RunStatus = RunStatus.RUNNING
    timed_out: bool = False
    totals: Dict[Category, CategoryTotals] = field(
        default_factory=lambda: {c: CategoryTotals() for c in Category}
    )
    entries: List[ReportEntry] = field(default_factory=list)
    folder_actions: List[FolderAction] = field(default_factory=list)
    duplicates: int = 0
    folders_moved: int = 0
    empty_dirs_removed: int = 0
    cruft_dirs_removed: int = 0
    metadata_dirs_removed: int = 0
    duplicate_risk: List[Path] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    # --- per-file outcomes
    def record_outcome(self, entry: FileEntry, category: Category, outcome: MoveOutcome) -> None:
        with self._lock:
            self.totals[category].add(outcome)
            self.entries.append(ReportEntry(entry.path, category, outcome))
            if outcome.kind is OutcomeKind.FAILED:
                self.errors.append(f"{entry.path}: {outcome.reason}")
                if outcome.duplicate_risk:
                    self.duplicate_risk.append(entry.path)
            elif outcome.kind.is_skip:
                self.warnings.append(f"{entry.path}: {outcome.kind.value}")

    # --- folder-level actions (music pass, cleanup)
    def record_folder_action(self, action: FolderAction) -> None:
        with self._lock:
            self.folder_actions.append(action)
            if action.kind is FolderActionKind.MOVED:
                self.folders_moved += 1
            elif action.kind is FolderActionKind.DIVERTED:
                self.duplicates += 1
            elif action.kind is FolderActionKind.REMOVED_EMPTY:
                self.empty_dirs_removed += 1
            elif action.kind is FolderActionKind.REMOVED_NO_MUSIC:
                self.cruft_dirs_removed += 1
            elif action.kind is FolderActionKind.REMOVED_METADATA:
                self.metadata_dirs_removed += 1
            elif action.kind is FolderActionKind.FAILED:
                self.errors.append(f"{action.path}: {action.reason}")

    # --- messages and lifecycle
    def warn(self, message: str) -> None:
        with self._lock:
            self.warnings.append(message)

    def error(self, message: str) -> None:
        with self._lock:
            self.errors.append(message)

    def enter(self, phase: RunPhase) -> None:
        with self._lock:
            self.phase = phase

    def mark_timed_out(self, message: str) -> bool:
        """Record the timeout once. Returns True for the call that recorded it."""
        with self._lock:
            if self.timed_out:
                return False
            self.timed_out = True
            self.warnings.append(message)
            return True

    def fail(self, message: str) -> None:
        with self._lock:
            self.status = RunStatus.FAILED
            self.errors.append(message)

    def finalize(self) -> None:
        with self._lock:
            self.finished_at = datetime.now()
            self.duration_seconds = (self.finished_at - self.started_at).total_seconds()
            if self.status is RunStatus.RUNNING:
                self.status = RunStatus.COMPLETED
            self.phase = RunPhase.DONE

    # --- read side
    def overall(self) -> CategoryTotals:
        out = CategoryTotals()
        for t in self.totals.values():
            out.merge(t)
        return out

    def outcome_count(self, kind: OutcomeKind) -> int:
        return sum(1 for e in self.entries if e.outcome.kind is kind)

    def summary(self) -> Dict[str, Any]:
        overall = self.overall()
        return {
            "processed": overall.processed,
            "moved": overall.moved,
            "skipped": overall.skipped,
            "failed": overall.failed,
            "simulated": overall.simulated,
            "bytes_moved": overall.bytes_moved,
            "duplicates": self.duplicates,
            "folders_moved": self.folders_moved,
            "empty_dirs_removed": self.empty_dirs_removed,
            "cruft_dirs_removed": self.cruft_dirs_removed,
            "metadata_dirs_removed": self.metadata_dirs_removed,
            "duplicate_risk": len(self.duplicate_risk),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "simulate": self.simulate,
            "timed_out": self.timed_out,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "summary": self.summary(),
            "categories": {
                c.value: vars(t).copy() for c, t in self.totals.items()
            },
            "entries": [
                {
                    "source": str(e.source),
                    "category": e.category.value,
                    "outcome": e.outcome.kind.value,
                    "destination": str(e.outcome.destination) if e.outcome.destination else "",
                    "bytes": e.outcome.bytes_moved,
                    "reason": e.outcome.reason,
                    "duplicate_risk": e.outcome.duplicate_risk,
                }
                for e in self.entries
            ],
            "folders": [
                {
                    "action": a.kind.value,
                    "path": str(a.path),
                    "target": str(a.target) if a.target else "",
                    "reason": a.reason,
                    "simulated": a.simulated,
                }
                for a in self.folder_actions
            ],
            "duplicate_risk": [str(p) for p in self.duplicate_risk],
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
