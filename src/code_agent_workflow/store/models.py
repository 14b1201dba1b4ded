from __future__ import annotations

import json
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProjectRecord:
    id: str
    user_id: str
    name: str
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class FragmentRecord:
    id: str
    message_id: str
    sandbox_url: str
    title: str
    files: dict[str, str] = field(default_factory=dict)
    created_at: str = ""

    @classmethod
    def from_row(cls, row) -> FragmentRecord:
        return cls(
            id=row["id"],
            message_id=row["message_id"],
            sandbox_url=row["sandbox_url"],
            title=row["title"],
            files=json.loads(row["files_json"]),
            created_at=row["created_at"],
        )


@dataclass(frozen=True)
class MessageRecord:
    id: str
    project_id: str
    role: str
    type: str
    content: str
    created_at: str
    updated_at: str
    fragment: FragmentRecord | None = None
