from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger
from tenacity import AsyncRetrying, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from code_agent_workflow.errors import NonRetriableError
from code_agent_workflow.store.store import Store, utc_now

_MISSING = object()


class StepRunner:
    """Memoized, retried execution of named workflow steps.

    A step is keyed by ``(run_id, name)``. Once a step has produced a result it
    is stored as JSON and every later call with the same key returns the stored
    value instead of executing again, so a replayed run resumes where it
    stopped without repeating side effects.
    """

    def __init__(
        self,
        store: Store,
        run_id: str,
        *,
        attempts: int = 3,
        wait_multiplier: float = 1.0,
        wait_max: float = 30.0,
    ):
        self._store = store
        self._run_id = run_id
        self._attempts = max(1, attempts)
        self._wait_multiplier = wait_multiplier
        self._wait_max = wait_max

    @property
    def run_id(self) -> str:
        return self._run_id

    def get(self, name: str, default: Any = None) -> Any:
        stored = self._load(name)
        return default if stored is _MISSING else stored

    def completed_steps(self) -> list[str]:
        rows = self._store.execute(
            "SELECT name FROM steps WHERE run_id = ? ORDER BY created_at ASC, rowid ASC",
            (self._run_id,),
        ).fetchall()
        return [str(row["name"]) for row in rows]

    async def run(self, name: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        stored = self._load(name)
        if stored is not _MISSING:
            logger.debug(f"Step {name!r} already completed for run {self._run_id}; using stored result")
            return stored

        def _on_retry(retry_state) -> None:
            wait = retry_state.next_action.sleep if retry_state.next_action else 0
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            reason = f"{type(exc).__name__}: {exc}" if exc else "Unknown"
            logger.warning(
                f"Step {name!r} failed ({reason}). Retrying in {wait:.1f}s "
                f"(attempt {retry_state.attempt_number}/{self._attempts})..."
            )

        async for attempt in AsyncRetrying(
            retry=retry_if_not_exception_type(NonRetriableError),
            wait=wait_exponential(multiplier=self._wait_multiplier, max=self._wait_max),
            stop=stop_after_attempt(self._attempts),
            before_sleep=_on_retry,
            reraise=True,
        ):
            with attempt:
                result = await fn()

        self._save(name, result)
        logger.debug(f"Step {name!r} completed for run {self._run_id}")
        return result

    def _load(self, name: str) -> Any:
        row = self._store.execute(
            "SELECT result_json FROM steps WHERE run_id = ? AND name = ? LIMIT 1",
            (self._run_id, name),
        ).fetchone()
        if row is None:
            return _MISSING
        return json.loads(row["result_json"])

    def _save(self, name: str, result: Any) -> None:
        self._store.execute(
            """
            INSERT OR IGNORE INTO steps (run_id, name, result_json, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (self._run_id, name, json.dumps(result, ensure_ascii=True), utc_now()),
        )
        self._store.commit()
