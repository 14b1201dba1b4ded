import asyncio

from code_agent_workflow.agent_state import AgentState
from code_agent_workflow.sandbox import SandboxSessionManager
from code_agent_workflow.sandbox.local import LocalSandboxProvider
from code_agent_workflow.store import StepRunner, Store
from code_agent_workflow.tool import ToolContext
from tests.fakes import TempDirTestCase


class ToolTestCase(TempDirTestCase):
    def setUp(self) -> None:
        super().setUp()
        self._store = Store(str(self._tmp_dir / "app.db"))
        self._sandbox_provider = LocalSandboxProvider(str(self._tmp_dir / "sandboxes"))
        self._sandboxes = SandboxSessionManager(self._sandbox_provider, "template")
        self._sandbox_id = asyncio.run(self._sandboxes.create())
        self._state = AgentState()

    def tearDown(self) -> None:
        self._store.close()
        super().tearDown()

    def _context(self, step_name: str, *, run_id: str = "run-1", sandbox_id: str | None = None) -> ToolContext:
        return ToolContext(
            state=self._state,
            sandboxes=self._sandboxes,
            sandbox_id=sandbox_id or self._sandbox_id,
            steps=StepRunner(self._store, run_id, attempts=1, wait_multiplier=0),
            step_name=step_name,
        )

    def _sandbox_path(self, path: str):
        return self._tmp_dir / "sandboxes" / self._sandbox_id / path
