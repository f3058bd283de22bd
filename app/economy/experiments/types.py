from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class ExperimentDefinition:
    test_id: str
    name: str
    status: str
    variants: dict[str, dict[str, object]]
    last_reset_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.test_id,
            "name": self.name,
            "status": self.status,
            "variants": self.variants,
            "lastResetAt": self.last_reset_at.isoformat() if self.last_reset_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(slots=True)
class AssignmentResult:
    test_id: str
    variant: str
    page: str
    test: ExperimentDefinition | None
    cached: bool = False
    message: str | None = None
