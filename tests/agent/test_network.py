import asyncio
import unittest

from code_agent_workflow.agent import CodingAgent
from code_agent_workflow.agent_config import AgentConfig
from code_agent_workflow.agent_state import AgentState
from code_agent_workflow.network import MAX_ITERATIONS, AgentNetwork, next_agent
from code_agent_workflow.sandbox import SandboxSessionManager
from code_agent_workflow.sandbox.local import LocalSandboxProvider
from code_agent_workflow.store import StepRunner, Store
from code_agent_workflow.tool_registry import get_all
from tests.fakes import FakeProvider, TempDirTestCase, text_reply, tool_reply, write_call

SUMMARY = "<task_summary>\nBuilt a todo app.\n</task_summary>"


class RouterTests(unittest.TestCase):
    def test_routes_to_agent_until_summary(self) -> None:
        agent = object()
        self.assertIs(agent, next_agent(AgentState(), agent))
        self.assertIsNone(next_agent(AgentState(summary=SUMMARY), agent))


class AgentNetworkTests(TempDirTestCase):
    def setUp(self) -> None:
        super().setUp()
        self._store = Store(str(self._tmp_dir / "app.db"))
        self._sandboxes = SandboxSessionManager(LocalSandboxProvider(str(self._tmp_dir / "sandboxes")), "template")
        self._sandbox_id = asyncio.run(self._sandboxes.create())

    def tearDown(self) -> None:
        self._store.close()
        super().tearDown()

    def _run(self, provider: FakeProvider, *, state: AgentState | None = None, run_id: str = "run-1", **config):
        agent = CodingAgent(provider, AgentConfig(tools=get_all(), system_prompt="sys", **config))
        network = AgentNetwork(agent)
        state = state if state is not None else AgentState()
        result = asyncio.run(
            network.run(
                "build a todo app",
                state=state,
                history=[{"role": "assistant", "content": "earlier answer"}],
                sandboxes=self._sandboxes,
                sandbox_id=self._sandbox_id,
                steps=StepRunner(self._store, run_id, attempts=1, wait_multiplier=0),
            )
        )
        return result

    def test_stops_when_summary_is_reported(self) -> None:
        provider = FakeProvider([
            tool_reply(write_call("t1", {"app/page.tsx": "a", "app/list.tsx": "b", "app/item.tsx": "c"})),
            text_reply(SUMMARY),
        ])

        result = self._run(provider)

        self.assertEqual(2, result.iterations)
        self.assertEqual(SUMMARY, result.state.summary)
        self.assertEqual({"app/page.tsx", "app/list.tsx", "app/item.tsx"}, set(result.state.files))
        self.assertEqual(2, len(provider.agent_calls))

    def test_history_precedes_prompt(self) -> None:
        provider = FakeProvider([text_reply(SUMMARY)])
        self._run(provider)

        messages = provider.agent_calls[0]["messages"]
        self.assertEqual({"role": "assistant", "content": "earlier answer"}, messages[0])
        self.assertEqual({"role": "user", "content": "build a todo app"}, messages[1])

    def test_gives_up_after_iteration_cap(self) -> None:
        provider = FakeProvider([])

        result = self._run(provider)

        self.assertEqual(MAX_ITERATIONS, result.iterations)
        self.assertEqual(MAX_ITERATIONS, len(provider.agent_calls))
        self.assertEqual("", result.state.summary)

    def test_tool_errors_are_fed_back_to_agent(self) -> None:
        provider = FakeProvider([
            tool_reply(("t1", "deleteEverything", {}), ("t2", "terminal", {"command": "exit 4"})),
            text_reply(SUMMARY),
        ])

        self._run(provider)

        tool_results = provider.agent_calls[1]["messages"][-1]["content"]
        self.assertEqual(["t1", "t2"], [r["tool_use_id"] for r in tool_results])
        self.assertTrue(all(r.get("is_error") for r in tool_results))
        self.assertIn('unknown tool "deleteEverything"', tool_results[0]["content"])
        self.assertTrue(tool_results[1]["content"].startswith("Command failed: "))

    def test_long_tool_output_is_truncated(self) -> None:
        provider = FakeProvider([
            tool_reply(("t1", "terminal", {"command": "printf 'x%.0s' $(seq 1 200)"})),
            text_reply(SUMMARY),
        ])

        self._run(provider, max_tool_result_chars=50)

        content = provider.agent_calls[1]["messages"][-1]["content"][0]["content"]
        self.assertTrue(content.startswith("x" * 50))
        self.assertIn("[OUTPUT TRUNCATED: Showing 50 of 200 characters from terminal]", content)

    def test_max_tokens_without_tools_nudges_agent(self) -> None:
        provider = FakeProvider([text_reply("partial", stop_reason="max_tokens"), text_reply(SUMMARY)])

        self._run(provider)

        nudge = provider.agent_calls[1]["messages"][-1]
        self.assertEqual("user", nudge["role"])
        self.assertIn("exceeded the token limit", nudge["content"])

    def test_replay_uses_stored_inferences_and_rebuilds_files(self) -> None:
        script = [
            tool_reply(write_call("t1", {"a.ts": "1"})),
            tool_reply(write_call("t2", {"a.ts": "2", "b.ts": "2"})),
            text_reply(SUMMARY),
        ]
        self._run(FakeProvider(list(script)))

        replay_provider = FakeProvider([])
        result = self._run(replay_provider)

        self.assertEqual([], replay_provider.calls)
        self.assertEqual({"a.ts": "2", "b.ts": "2"}, result.state.files)
        self.assertEqual(SUMMARY, result.state.summary)


if __name__ == "__main__":
    unittest.main()
