from __future__ import annotations

import json
import secrets
from uuid import uuid4

from code_agent_workflow.store.models import FragmentRecord, MessageRecord, ProjectRecord
from code_agent_workflow.store.store import Store, utc_now

_SLUG_ADJECTIVES = (
    "amber", "brisk", "calm", "clever", "crimson", "eager", "gentle", "golden",
    "hidden", "jolly", "lively", "lucky", "mellow", "nimble", "quiet", "rapid",
    "silver", "sunny", "swift", "tidy", "vivid", "witty",
)
_SLUG_NOUNS = (
    "badger", "canyon", "comet", "falcon", "forest", "harbor", "island", "lantern",
    "meadow", "orbit", "otter", "pixel", "river", "rocket", "sparrow", "summit",
    "thunder", "tiger", "valley", "willow",
)


def generate_slug() -> str:
    return f"{secrets.choice(_SLUG_ADJECTIVES)}-{secrets.choice(_SLUG_NOUNS)}"


class ProjectRepository:
    def __init__(self, store: Store):
        self._store = store

    def create_project(self, user_id: str, first_message: str, *, name: str | None = None) -> ProjectRecord:
        now = utc_now()
        project = ProjectRecord(id=str(uuid4()), user_id=user_id, name=name or generate_slug(), created_at=now, updated_at=now)
        with self._store.transaction():
            self._store.execute(
                """
                INSERT INTO projects (id, user_id, name, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (project.id, project.user_id, project.name, project.created_at, project.updated_at),
            )
            self._insert_message(project.id, "USER", "RESULT", first_message, now)
        return project

    def get_project(self, project_id: str, *, user_id: str | None = None) -> ProjectRecord | None:
        if user_id is None:
            row = self._store.execute(
                "SELECT * FROM projects WHERE id = ? LIMIT 1",
                (project_id,),
            ).fetchone()
        else:
            row = self._store.execute(
                "SELECT * FROM projects WHERE id = ? AND user_id = ? LIMIT 1",
                (project_id, user_id),
            ).fetchone()
        if row is None:
            return None
        return ProjectRecord(**dict(row))

    def list_projects(self, user_id: str) -> list[ProjectRecord]:
        rows = self._store.execute(
            "SELECT * FROM projects WHERE user_id = ? ORDER BY updated_at DESC",
            (user_id,),
        ).fetchall()
        return [ProjectRecord(**dict(row)) for row in rows]

    def create_message(self, project_id: str, role: str, message_type: str, content: str) -> MessageRecord:
        now = utc_now()
        with self._store.transaction():
            message_id = self._insert_message(project_id, role, message_type, content, now)
        return MessageRecord(
            id=message_id,
            project_id=project_id,
            role=role,
            type=message_type,
            content=content,
            created_at=now,
            updated_at=now,
        )

    def create_result_with_fragment(
        self,
        project_id: str,
        *,
        content: str,
        sandbox_url: str,
        title: str,
        files: dict[str, str],
    ) -> MessageRecord:
        """Persist an ASSISTANT/RESULT message and its fragment in one transaction."""
        now = utc_now()
        fragment_id = str(uuid4())
        with self._store.transaction():
            message_id = self._insert_message(project_id, "ASSISTANT", "RESULT", content, now)
            self._store.execute(
                """
                INSERT INTO fragments (id, message_id, sandbox_url, title, files_json, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (fragment_id, message_id, sandbox_url, title, json.dumps(files, ensure_ascii=True), now),
            )
        return MessageRecord(
            id=message_id,
            project_id=project_id,
            role="ASSISTANT",
            type="RESULT",
            content=content,
            created_at=now,
            updated_at=now,
            fragment=FragmentRecord(
                id=fragment_id,
                message_id=message_id,
                sandbox_url=sandbox_url,
                title=title,
                files=dict(files),
                created_at=now,
            ),
        )

    def recent_messages(self, project_id: str, *, limit: int = 5) -> list[MessageRecord]:
        """Return the newest ``limit`` messages, newest first."""
        rows = self._store.execute(
            """
            SELECT * FROM messages
            WHERE project_id = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?
            """,
            (project_id, max(1, limit)),
        ).fetchall()
        return [MessageRecord(**dict(row)) for row in rows]

    def list_messages(self, project_id: str, *, user_id: str) -> list[MessageRecord]:
        rows = self._store.execute(
            """
            SELECT m.*, f.id AS fragment_id, f.sandbox_url, f.title, f.files_json,
                   f.created_at AS fragment_created_at
            FROM messages m
            JOIN projects p ON p.id = m.project_id
            LEFT JOIN fragments f ON f.message_id = m.id
            WHERE m.project_id = ? AND p.user_id = ?
            ORDER BY m.updated_at ASC, m.rowid ASC
            """,
            (project_id, user_id),
        ).fetchall()
        messages: list[MessageRecord] = []
        for row in rows:
            fragment = None
            if row["fragment_id"] is not None:
                fragment = FragmentRecord(
                    id=row["fragment_id"],
                    message_id=row["id"],
                    sandbox_url=row["sandbox_url"],
                    title=row["title"],
                    files=json.loads(row["files_json"]),
                    created_at=row["fragment_created_at"],
                )
            messages.append(
                MessageRecord(
                    id=row["id"],
                    project_id=row["project_id"],
                    role=row["role"],
                    type=row["type"],
                    content=row["content"],
                    created_at=row["created_at"],
                    updated_at=row["updated_at"],
                    fragment=fragment,
                )
            )
        return messages

    def get_fragment(self, fragment_id: str) -> FragmentRecord | None:
        row = self._store.execute(
            "SELECT * FROM fragments WHERE id = ? LIMIT 1",
            (fragment_id,),
        ).fetchone()
        if row is None:
            return None
        return FragmentRecord.from_row(row)

    def _insert_message(self, project_id: str, role: str, message_type: str, content: str, now: str) -> str:
        message_id = str(uuid4())
        self._store.execute(
            """
            INSERT INTO messages (id, project_id, role, type, content, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (message_id, project_id, role, message_type, content, now, now),
        )
        self._store.execute(
            "UPDATE projects SET updated_at = ? WHERE id = ?",
            (now, project_id),
        )
        return message_id
