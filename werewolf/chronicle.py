"""Per-night chronicle of what the moderator saw happen."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .models import ChronicleEntry


@dataclass
class Chronicle:
    nights: Dict[int, List[ChronicleEntry]] = field(default_factory=dict)
    max_entries_per_night: int = 200

    def ensure_night(self, night: int) -> List[ChronicleEntry]:
        if night not in self.nights:
            self.nights[night] = []
        return self.nights[night]

    def log(self, night: int, message: str, kind: str = "system") -> ChronicleEntry:
        entries = self.ensure_night(night)
        entry = ChronicleEntry(message=message, kind=kind)
        entries.append(entry)
        if len(entries) > self.max_entries_per_night:
            del entries[: len(entries) - self.max_entries_per_night]
        return entry

    def entries(self, night: int) -> List[ChronicleEntry]:
        return list(self.nights.get(night, []))

    def by_kind(self, kind: str) -> List[ChronicleEntry]:
        return [e for night in sorted(self.nights) for e in self.nights[night] if e.kind == kind]

    def digest(self, limit: int = 6) -> List[str]:
        """Most recent messages across all nights, oldest first."""
        messages = [e.message for night in sorted(self.nights) for e in self.nights[night]]
        return messages[-limit:]
