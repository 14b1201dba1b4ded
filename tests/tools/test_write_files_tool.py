import asyncio
import unittest

from code_agent_workflow.tool import Err, Ok
from code_agent_workflow.tools.write_files_tool import WriteFilesTool
from tests.tools.base import ToolTestCase


class WriteFilesToolTests(ToolTestCase):
    def setUp(self) -> None:
        super().setUp()
        self._tool = WriteFilesTool()

    def test_writes_files_and_records_them_in_state(self) -> None:
        tool_input = {"files": [
            {"path": "app/page.tsx", "content": "page"},
            {"path": "app/layout.tsx", "content": "layout"},
        ]}
        result = asyncio.run(self._tool.execute(tool_input, self._context("createOrUpdateFiles:t1")))

        self.assertIsInstance(result, Ok)
        self.assertIn("app/page.tsx", result.value)
        self.assertEqual({"app/page.tsx": "page", "app/layout.tsx": "layout"}, self._state.files)
        self.assertEqual("page", self._sandbox_path("app/page.tsx").read_text())

    def test_files_accumulate_with_last_write_winning(self) -> None:
        async def scenario():
            await self._tool.execute(
                {"files": [{"path": "a.ts", "content": "1"}, {"path": "b.ts", "content": "1"}]},
                self._context("createOrUpdateFiles:t1"),
            )
            await self._tool.execute(
                {"files": [{"path": "b.ts", "content": "2"}, {"path": "c.ts", "content": "2"}]},
                self._context("createOrUpdateFiles:t2"),
            )

        asyncio.run(scenario())
        self.assertEqual({"a.ts": "1", "b.ts": "2", "c.ts": "2"}, self._state.files)

    def test_partial_failure_keeps_files_already_written(self) -> None:
        tool_input = {"files": [
            {"path": "ok.ts", "content": "fine"},
            {"path": "../escape.ts", "content": "nope"},
            {"path": "never.ts", "content": "skipped"},
        ]}
        result = asyncio.run(self._tool.execute(tool_input, self._context("createOrUpdateFiles:t1")))

        self.assertIsInstance(result, Err)
        self.assertTrue(result.message.startswith("Error: "))
        self.assertEqual({"ok.ts": "fine"}, self._state.files)

    def test_replay_rebuilds_state_without_writing_again(self) -> None:
        tool_input = {"files": [{"path": "a.ts", "content": "1"}]}
        asyncio.run(self._tool.execute(tool_input, self._context("createOrUpdateFiles:t1")))
        self._sandbox_path("a.ts").write_text("changed later")

        self._state.files.clear()
        result = asyncio.run(self._tool.execute(tool_input, self._context("createOrUpdateFiles:t1")))

        self.assertIsInstance(result, Ok)
        self.assertEqual({"a.ts": "1"}, self._state.files)
        self.assertEqual("changed later", self._sandbox_path("a.ts").read_text())

    def test_unknown_sandbox_is_an_error_result(self) -> None:
        result = asyncio.run(
            self._tool.execute(
                {"files": [{"path": "a.ts", "content": "1"}]},
                self._context("createOrUpdateFiles:t1", sandbox_id="local-gone"),
            )
        )
        self.assertIsInstance(result, Err)
        self.assertEqual({}, self._state.files)


if __name__ == "__main__":
    unittest.main()
