from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import ClassVar

from loguru import logger

from code_agent_workflow.agent_state import AgentState
from code_agent_workflow.errors import InvalidRequest
from code_agent_workflow.network import AgentNetwork
from code_agent_workflow.notifications import (
    FragmentCompleted,
    GenerationError,
    NotificationPublisher,
    TerminalEvent,
)
from code_agent_workflow.outcome import GENERIC_ERROR_MESSAGE, OutcomeReconciler, is_error
from code_agent_workflow.post_processing import PostProcessor
from code_agent_workflow.sandbox.session_manager import SandboxSessionManager
from code_agent_workflow.store.projects import ProjectRepository
from code_agent_workflow.store.steps import StepRunner
from code_agent_workflow.store.store import Store

HISTORY_LIMIT = 5
SUCCESS_MESSAGE = "Fragment generated successfully!"


def _new_run_id() -> str:
    return str(uuid.uuid4())


def billing_error_message(reason: str) -> str:
    return (
        "Generation completed, but there was an issue consuming credits. "
        f"Reason: {reason}. No credits were consumed."
    )


@dataclass(frozen=True)
class GenerationRequest:
    EVENT_NAME: ClassVar[str] = "code-agent/run"

    user_id: str
    project_id: str
    value: str
    effective_points: int
    run_id: str = field(default_factory=_new_run_id)

    def __post_init__(self) -> None:
        if not self.user_id:
            raise InvalidRequest("User ID is required")
        try:
            uuid.UUID(self.project_id)
        except (TypeError, ValueError):
            raise InvalidRequest(f"Project ID must be a UUID: {self.project_id!r}") from None
        if not self.value:
            raise InvalidRequest("Prompt is required")
        if self.effective_points <= 0:
            raise InvalidRequest("Effective points must be positive")

    @classmethod
    def from_event(cls, data: dict, *, run_id: str | None = None) -> GenerationRequest:
        try:
            return cls(
                user_id=str(data.get("userId") or ""),
                project_id=str(data.get("projectId") or ""),
                value=str(data.get("value") or ""),
                effective_points=int(data.get("effectivePoints") or 0),
                run_id=run_id or _new_run_id(),
            )
        except (TypeError, ValueError) as ex:
            if isinstance(ex, InvalidRequest):
                raise
            raise InvalidRequest(f"Malformed {cls.EVENT_NAME} event: {ex}") from ex

    def to_event(self) -> dict:
        return {
            "name": self.EVENT_NAME,
            "data": {
                "value": self.value,
                "projectId": self.project_id,
                "userId": self.user_id,
                "effectivePoints": self.effective_points,
            },
        }


@dataclass
class RunResult:
    status: str
    event: TerminalEvent
    summary: str = ""
    files: dict[str, str] = field(default_factory=dict)
    sandbox_url: str | None = None
    title: str | None = None
    message_id: str | None = None
    fragment_id: str | None = None


class CodeAgentWorkflow:
    """Durable pipeline behind one ``code-agent/run`` event.

    Every side effect runs as a named step of the run's ``StepRunner``, so a
    run replayed with the same ``run_id`` skips what already happened. Whatever
    goes wrong, exactly one terminal event is published at the end.
    """

    def __init__(
        self,
        *,
        store: Store,
        projects: ProjectRepository,
        sandboxes: SandboxSessionManager,
        network: AgentNetwork,
        post_processor: PostProcessor,
        reconciler: OutcomeReconciler,
        notifier: NotificationPublisher,
        step_attempts: int = 3,
        step_wait_multiplier: float = 1.0,
    ):
        self._store = store
        self._projects = projects
        self._sandboxes = sandboxes
        self._network = network
        self._post_processor = post_processor
        self._reconciler = reconciler
        self._notifier = notifier
        self._step_attempts = step_attempts
        self._step_wait_multiplier = step_wait_multiplier

    async def handle_event(self, data: dict, *, run_id: str | None = None) -> RunResult:
        return await self.run(GenerationRequest.from_event(data, run_id=run_id))

    async def run(self, request: GenerationRequest) -> RunResult:
        steps = StepRunner(
            self._store,
            request.run_id,
            attempts=self._step_attempts,
            wait_multiplier=self._step_wait_multiplier,
        )
        state = AgentState()
        result = RunResult(status="error", event=GenerationError(request.project_id, GENERIC_ERROR_MESSAGE))
        with logger.contextualize(run_id=request.run_id):
            logger.info(f"Run {request.run_id}: starting for project {request.project_id} (user {request.user_id})")

            try:
                result = await self._execute(request, state, steps)
            except Exception:
                logger.exception(f"Run {request.run_id}: failed with an unexpected error")
                result.summary = state.summary
                result.files = dict(state.files)

            await self._notifier.publish_terminal(request.user_id, result.event, steps)
            logger.info(f"Run {request.run_id}: finished with status {result.status}")
        return result

    async def _execute(self, request: GenerationRequest, state: AgentState, steps: StepRunner) -> RunResult:
        sandbox_id = await steps.run("get-sandbox-id", self._sandboxes.create)

        async def load_history() -> list[dict]:
            return self._load_history(request)

        history = await steps.run("get-previous-messages", load_history)

        await self._network.run(
            request.value,
            state=state,
            history=history,
            sandboxes=self._sandboxes,
            sandbox_id=sandbox_id,
            steps=steps,
        )

        if is_error(state):
            logger.info(
                f"Run {request.run_id}: agent produced no usable result "
                f"(summary={bool(state.summary)}, files={len(state.files)}); no credits consumed"
            )
            outcome = await self._reconciler.save_error(request.project_id, steps)
            return RunResult(
                status="error",
                event=GenerationError(request.project_id, GENERIC_ERROR_MESSAGE),
                summary=state.summary,
                files=dict(state.files),
                message_id=outcome.message_id,
            )

        title, response = await self._post_processor.run(state.summary, steps)
        sandbox_url = await steps.run("get-sandbox-url", lambda: self._sandboxes.sandbox_url(sandbox_id))

        outcome = await self._reconciler.save_result(
            request.project_id,
            state,
            sandbox_url=sandbox_url,
            title=title,
            response=response,
            steps=steps,
        )
        settlement = await self._reconciler.settle(
            outcome,
            user_id=request.user_id,
            allotment=request.effective_points,
            steps=steps,
        )

        result = RunResult(
            status="completed",
            event=FragmentCompleted(
                project_id=request.project_id,
                message=SUCCESS_MESSAGE,
                message_id=outcome.message_id,
                fragment_id=outcome.fragment_id,
                sandbox_url=outcome.sandbox_url,
                title=outcome.title,
            ),
            summary=state.summary,
            files=dict(state.files),
            sandbox_url=outcome.sandbox_url,
            title=outcome.title,
            message_id=outcome.message_id,
            fragment_id=outcome.fragment_id,
        )
        if not settlement.charged:
            result.status = "billing_error"
            result.event = GenerationError(request.project_id, billing_error_message(settlement.reason or "unknown"))
        return result

    def _load_history(self, request: GenerationRequest) -> list[dict]:
        records = self._projects.recent_messages(request.project_id, limit=HISTORY_LIMIT + 1)
        # The prompt itself was stored before dispatch; it is sent as the new turn instead.
        if records and records[0].role == "USER" and records[0].content == request.value:
            records = records[1:]
        records = records[:HISTORY_LIMIT]
        return [
            {
                "role": "assistant" if record.role == "ASSISTANT" else "user",
                "content": record.content,
            }
            for record in reversed(records)
        ]
