from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class AgentState:
    """Mutable state shared by every tool call and iteration of one run."""

    summary: str = ""
    files: dict[str, str] = field(default_factory=dict)

    def merge_files(self, written: dict[str, str]) -> None:
        # Paths are only ever added or overwritten, never removed.
        self.files.update(written)

    @property
    def has_summary(self) -> bool:
        return bool(self.summary)
