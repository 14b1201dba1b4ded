import asyncio
import unittest

from code_agent_workflow.errors import NonRetriableError
from code_agent_workflow.store import StepRunner
from tests.fakes import StoreTestCase


class StepRunnerTests(StoreTestCase):
    def _runner(self, run_id: str = "run-1", attempts: int = 3) -> StepRunner:
        return StepRunner(self._store, run_id, attempts=attempts, wait_multiplier=0)

    def test_completed_step_is_not_executed_again(self) -> None:
        calls = []

        async def step() -> dict:
            calls.append(1)
            return {"value": len(calls)}

        async def scenario():
            first = await self._runner().run("create", step)
            second = await self._runner().run("create", step)
            return first, second

        first, second = asyncio.run(scenario())
        self.assertEqual({"value": 1}, first)
        self.assertEqual({"value": 1}, second)
        self.assertEqual(1, len(calls))

    def test_steps_are_scoped_by_run_id(self) -> None:
        calls = []

        async def step() -> str:
            calls.append(1)
            return "done"

        async def scenario():
            await self._runner("run-a").run("create", step)
            await self._runner("run-b").run("create", step)

        asyncio.run(scenario())
        self.assertEqual(2, len(calls))

    def test_transient_failure_is_retried(self) -> None:
        attempts = []

        async def flaky() -> str:
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("temporary")
            return "ok"

        result = asyncio.run(self._runner(attempts=3).run("flaky", flaky))
        self.assertEqual("ok", result)
        self.assertEqual(3, len(attempts))

    def test_failure_after_last_attempt_propagates_and_stores_nothing(self) -> None:
        async def broken() -> str:
            raise ConnectionError("down")

        runner = self._runner(attempts=2)
        with self.assertRaises(ConnectionError):
            asyncio.run(runner.run("broken", broken))
        self.assertIsNone(runner.get("broken"))
        self.assertEqual([], runner.completed_steps())

    def test_non_retriable_error_is_raised_immediately(self) -> None:
        attempts = []

        async def rejected() -> str:
            attempts.append(1)
            raise NonRetriableError("no")

        with self.assertRaises(NonRetriableError):
            asyncio.run(self._runner(attempts=5).run("rejected", rejected))
        self.assertEqual(1, len(attempts))

    def test_completed_steps_in_execution_order(self) -> None:
        async def value() -> int:
            return 1

        async def scenario():
            runner = self._runner()
            await runner.run("first", value)
            await runner.run("second", value)
            return runner.completed_steps()

        self.assertEqual(["first", "second"], asyncio.run(scenario()))

    def test_none_result_is_memoized(self) -> None:
        calls = []

        async def nothing() -> None:
            calls.append(1)
            return None

        async def scenario():
            runner = self._runner()
            await runner.run("nothing", nothing)
            await runner.run("nothing", nothing)

        asyncio.run(scenario())
        self.assertEqual(1, len(calls))


if __name__ == "__main__":
    unittest.main()
