import asyncio
import unittest

from code_agent_workflow.post_processing import PostProcessor
from code_agent_workflow.store import StepRunner
from code_agent_workflow.system_prompt import FRAGMENT_TITLE_PROMPT, RESPONSE_PROMPT
from tests.fakes import FakeProvider, StoreTestCase


class PostProcessorTests(StoreTestCase):
    def _steps(self) -> StepRunner:
        return StepRunner(self._store, "run-1", attempts=1, wait_multiplier=0)

    def test_generates_title_and_response_from_summary(self) -> None:
        provider = FakeProvider(single_shot={
            FRAGMENT_TITLE_PROMPT: "Todo App",
            RESPONSE_PROMPT: "I built a todo app for you.",
        })

        title, response = asyncio.run(PostProcessor(provider, model="gpt-4o").run("<task_summary>x</task_summary>", self._steps()))

        self.assertEqual("Todo App", title)
        self.assertEqual("I built a todo app for you.", response)
        self.assertEqual(2, len(provider.single_shot_calls))
        self.assertTrue(all(c["model"] == "gpt-4o" for c in provider.single_shot_calls))
        self.assertEqual("<task_summary>x</task_summary>", provider.calls[0]["messages"][0]["content"])

    def test_failing_generator_falls_back_to_default(self) -> None:
        provider = FakeProvider(single_shot={
            FRAGMENT_TITLE_PROMPT: RuntimeError("model unavailable"),
            RESPONSE_PROMPT: "Done.",
        })

        title, response = asyncio.run(PostProcessor(provider, model="gpt-4o").run("summary", self._steps()))

        self.assertEqual("Fragment", title)
        self.assertEqual("Done.", response)

    def test_outputs_are_memoized_per_run(self) -> None:
        provider = FakeProvider()
        processor = PostProcessor(provider, model="gpt-4o")

        asyncio.run(processor.run("summary", self._steps()))
        asyncio.run(processor.run("summary", self._steps()))

        self.assertEqual(2, len(provider.calls))


if __name__ == "__main__":
    unittest.main()
