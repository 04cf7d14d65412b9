"""Import run configuration."""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import os

SOURCE_URL_ENV = "FORUM_IMPORT_SOURCE_URL"
TARGET_URL_ENV = "FORUM_IMPORT_TARGET_URL"


@dataclass
class ImportConfig:
    """Configuration for an import run."""
    name: str = "forum-import"

    # Connections (SQLAlchemy URLs)
    source_url: Optional[str] = None
    target_url: Optional[str] = None

    # Execution options
    chunk_size: int = 1000
    dry_run: bool = False
    disable_foreign_key_checks: bool = True

    # Reactions
    reaction_type_name: str = "Like"
    reaction_type_score: int = 1

    # Output
    output_dir: str = "./data"
    save_report: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "source_url": self.source_url,
            "target_url": self.target_url,
            "chunk_size": self.chunk_size,
            "dry_run": self.dry_run,
            "disable_foreign_key_checks": self.disable_foreign_key_checks,
            "reaction_type_name": self.reaction_type_name,
            "reaction_type_score": self.reaction_type_score,
            "output_dir": self.output_dir,
            "save_report": self.save_report,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportConfig":
        """Create from dictionary representation, falling back to the environment for URLs."""
        chunk_size = int(data.get("chunk_size", 1000))
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        return cls(
            name=data.get("name", "forum-import"),
            source_url=data.get("source_url") or os.environ.get(SOURCE_URL_ENV),
            target_url=data.get("target_url") or os.environ.get(TARGET_URL_ENV),
            chunk_size=chunk_size,
            dry_run=data.get("dry_run", False),
            disable_foreign_key_checks=data.get("disable_foreign_key_checks", True),
            reaction_type_name=data.get("reaction_type_name", "Like"),
            reaction_type_score=int(data.get("reaction_type_score", 1)),
            output_dir=data.get("output_dir", "./data"),
            save_report=data.get("save_report", True),
        )

    def validate(self) -> list:
        """Return a list of configuration problems."""
        errors = []
        if not self.source_url:
            errors.append(f"A source database URL is required (--source-url or {SOURCE_URL_ENV})")
        if not self.target_url and not self.dry_run:
            errors.append(f"A target database URL is required (--target-url or {TARGET_URL_ENV})")
        return errors
