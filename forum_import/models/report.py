"""Import run report models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import uuid

RowId = Optional[Union[int, str]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImportStatus(str, Enum):
    """Status of an import run or one of its entity phases."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RowFailure:
    """A row that failed to map or persist."""
    row_id: RowId
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"row_id": self.row_id, "message": self.message}


@dataclass
class RowSkip:
    """A row excluded by import policy."""
    row_id: RowId
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"row_id": self.row_id, "reason": self.reason}


@dataclass
class EntityReport:
    """Counters and row-level outcomes for one entity kind."""
    entity: str
    status: ImportStatus = ImportStatus.PENDING
    total: int = 0
    attempted: int = 0
    imported: int = 0
    skipped: int = 0
    failures: List[RowFailure] = field(default_factory=list)
    skips: List[RowSkip] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def record_imported(self) -> None:
        self.attempted += 1
        self.imported += 1

    def record_skip(self, row_id: RowId, reason: str) -> None:
        self.attempted += 1
        self.skipped += 1
        self.skips.append(RowSkip(row_id=row_id, reason=reason))

    def record_failure(self, row_id: RowId, message: str) -> None:
        self.attempted += 1
        self.failures.append(RowFailure(row_id=row_id, message=message))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "entity": self.entity,
            "status": self.status.value,
            "total": self.total,
            "attempted": self.attempted,
            "imported": self.imported,
            "skipped": self.skipped,
            "failed": self.failed,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "failures": [f.to_dict() for f in self.failures],
            "skips": [s.to_dict() for s in self.skips],
        }


@dataclass
class ImportReport:
    """The run summary: one EntityReport per phase, in phase order."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    status: ImportStatus = ImportStatus.PENDING
    dry_run: bool = False
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    entities: Dict[str, EntityReport] = field(default_factory=dict)
    error: Optional[str] = None

    def start_entity(self, entity: str) -> EntityReport:
        """Add the report for a phase that is about to run."""
        entry = EntityReport(entity=entity, status=ImportStatus.RUNNING, started_at=utcnow())
        self.entities[entity] = entry
        return entry

    def get(self, entity: str) -> Optional[EntityReport]:
        return self.entities.get(entity)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "dry_run": self.dry_run,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "error": self.error,
            "entities": {name: e.to_dict() for name, e in self.entities.items()},
        }

    def format_summary(self) -> str:
        """Human-readable summary of counts and every skipped / failed row."""
        lines = [
            "=" * 60,
            f"IMPORT {self.status.value.upper()}" + (" (dry run)" if self.dry_run else ""),
            "=" * 60,
        ]
        for entity in self.entities.values():
            lines.append(
                f"{entity.entity:<18} attempted {entity.attempted:>7}  "
                f"imported {entity.imported:>7}  skipped {entity.skipped:>7}  "
                f"failed {entity.failed:>7}"
            )

        for entity in self.entities.values():
            if entity.failures:
                lines.append("")
                lines.append(f"Failed {entity.entity}:")
                for failure in entity.failures:
                    prefix = f"#{failure.row_id}: " if failure.row_id is not None else ""
                    lines.append(f"  - {prefix}{failure.message}")
            if entity.skips:
                lines.append("")
                lines.append(f"Skipped {entity.entity}:")
                for skip in entity.skips:
                    prefix = f"#{skip.row_id}: " if skip.row_id is not None else ""
                    lines.append(f"  - {prefix}{skip.reason}")

        if self.error:
            lines.append("")
            lines.append(f"Run aborted: {self.error}")
        if self.duration_seconds is not None:
            lines.append(f"Duration: {self.duration_seconds:.2f} seconds")
        return "\n".join(lines)
