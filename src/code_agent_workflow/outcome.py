from __future__ import annotations

from dataclasses import asdict, dataclass

from loguru import logger

from code_agent_workflow.agent_state import AgentState
from code_agent_workflow.store.projects import ProjectRepository
from code_agent_workflow.store.steps import StepRunner
from code_agent_workflow.usage import GENERATION_COST, QuotaLedger

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


def is_error(state: AgentState) -> bool:
    return not state.summary or not state.files


@dataclass(frozen=True)
class Outcome:
    is_error: bool
    message_id: str
    fragment_id: str | None = None
    sandbox_url: str | None = None
    title: str | None = None

    @classmethod
    def from_step(cls, stored: dict) -> Outcome:
        return cls(**stored)


@dataclass(frozen=True)
class Settlement:
    charged: bool
    reason: str | None = None

    @classmethod
    def from_step(cls, stored: dict) -> Settlement:
        return cls(charged=bool(stored.get("charged")), reason=stored.get("reason"))


class OutcomeReconciler:
    """Persists the result of a run and decides whether it may be billed."""

    CONSUME_STEP = "consume-credits"

    def __init__(self, projects: ProjectRepository, ledger: QuotaLedger):
        self._projects = projects
        self._ledger = ledger

    async def save_error(self, project_id: str, steps: StepRunner) -> Outcome:
        async def save() -> dict:
            message = self._projects.create_message(project_id, "ASSISTANT", "ERROR", GENERIC_ERROR_MESSAGE)
            return asdict(Outcome(is_error=True, message_id=message.id))

        outcome = Outcome.from_step(await steps.run("save-error", save))
        logger.info(f"Run {steps.run_id}: saved error message {outcome.message_id}")
        return outcome

    async def save_result(
        self,
        project_id: str,
        state: AgentState,
        *,
        sandbox_url: str,
        title: str,
        response: str,
        steps: StepRunner,
    ) -> Outcome:
        async def save() -> dict:
            message = self._projects.create_result_with_fragment(
                project_id,
                content=response,
                sandbox_url=sandbox_url,
                title=title,
                files=state.files,
            )
            return asdict(
                Outcome(
                    is_error=False,
                    message_id=message.id,
                    fragment_id=message.fragment.id if message.fragment else None,
                    sandbox_url=sandbox_url,
                    title=title,
                )
            )

        outcome = Outcome.from_step(await steps.run("save-result", save))
        logger.info(
            f"Run {steps.run_id}: saved result message {outcome.message_id} "
            f"with fragment {outcome.fragment_id} ({len(state.files)} file(s))"
        )
        return outcome

    async def settle(self, outcome: Outcome | None, *, user_id: str, allotment: int, steps: StepRunner) -> Settlement:
        """Charge credits for a persisted success; never for anything else.

        A failed charge does not undo the saved result; the reason is returned
        so it can be reported to the user.
        """
        if outcome is None or outcome.is_error or not outcome.message_id:
            logger.info(f"Run {steps.run_id}: no credits consumed for {user_id}")
            return Settlement(charged=False)

        async def consume() -> dict:
            status = self._ledger.consume(user_id, allotment, GENERATION_COST)
            return {"charged": True, "status": status.to_payload()}

        try:
            stored = await steps.run(self.CONSUME_STEP, consume)
        except Exception as ex:
            reason = str(ex) or "An unexpected error occurred while processing your credits."
            logger.error(f"Run {steps.run_id}: failed to consume credits for user {user_id}: {ex}")

            # Recorded under the same step so a replay reports the failure instead of charging.
            async def record_failure() -> dict:
                return {"charged": False, "reason": reason}

            stored = await steps.run(self.CONSUME_STEP, record_failure)
        return Settlement.from_step(stored)
