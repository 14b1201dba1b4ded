import asyncio
import json
import unittest

from code_agent_workflow.tool import Err, Ok, result_from_step, result_to_step
from code_agent_workflow.tools.read_files_tool import ReadFilesTool
from code_agent_workflow.tools.terminal_tool import TerminalTool
from tests.tools.base import ToolTestCase


class TerminalToolTests(ToolTestCase):
    def test_returns_stdout(self) -> None:
        result = asyncio.run(TerminalTool().execute({"command": "echo hello"}, self._context("terminal:t1")))
        self.assertEqual(Ok("hello\n"), result)

    def test_failure_becomes_error_transcript(self) -> None:
        result = asyncio.run(
            TerminalTool().execute({"command": "echo out; echo err >&2; exit 1"}, self._context("terminal:t1"))
        )
        self.assertIsInstance(result, Err)
        self.assertTrue(result.message.startswith("Command failed: "))
        self.assertIn("stdout: out", result.message)
        self.assertIn("stderr: err", result.message)

    def test_command_runs_once_per_step(self) -> None:
        command = {"command": "echo x >> log.txt"}
        asyncio.run(TerminalTool().execute(command, self._context("terminal:t1")))
        asyncio.run(TerminalTool().execute(command, self._context("terminal:t1")))
        self.assertEqual("x\n", self._sandbox_path("log.txt").read_text())


class ReadFilesToolTests(ToolTestCase):
    def test_reads_requested_files(self) -> None:
        self._sandbox_path("a.txt").write_text("A")
        self._sandbox_path("b.txt").write_text("B")

        result = asyncio.run(ReadFilesTool().execute({"files": ["a.txt", "b.txt"]}, self._context("readFiles:t1")))

        self.assertIsInstance(result, Ok)
        self.assertEqual(
            [{"path": "a.txt", "content": "A"}, {"path": "b.txt", "content": "B"}],
            json.loads(result.value),
        )

    def test_missing_file_is_error_result(self) -> None:
        result = asyncio.run(ReadFilesTool().execute({"files": ["missing.txt"]}, self._context("readFiles:t1")))
        self.assertIsInstance(result, Err)
        self.assertTrue(result.message.startswith("Error: "))


class ToolResultStepTests(unittest.TestCase):
    def test_results_survive_step_storage(self) -> None:
        self.assertEqual(Ok("fine"), result_from_step(result_to_step(Ok("fine"))))
        self.assertEqual(Err("Error: x"), result_from_step(result_to_step(Err("Error: x"))))


if __name__ == "__main__":
    unittest.main()
