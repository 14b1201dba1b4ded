import re
import sqlite3
import unittest

from code_agent_workflow.store import ProjectRepository
from code_agent_workflow.store.projects import generate_slug
from tests.fakes import StoreTestCase


class ProjectRepositoryTests(StoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self._projects = ProjectRepository(self._store)

    def test_generate_slug_is_kebab_case(self) -> None:
        self.assertRegex(generate_slug(), re.compile(r"^[a-z]+-[a-z]+$"))

    def test_create_project_stores_first_user_message(self) -> None:
        project = self._projects.create_project("user-1", "build a todo app")

        messages = self._projects.list_messages(project.id, user_id="user-1")
        self.assertEqual(1, len(messages))
        self.assertEqual("USER", messages[0].role)
        self.assertEqual("RESULT", messages[0].type)
        self.assertEqual("build a todo app", messages[0].content)
        self.assertIsNone(messages[0].fragment)

    def test_create_project_returns_stored_record(self) -> None:
        project = self._projects.create_project("user-1", "hello", name="calm-otter")

        self.assertEqual(project, self._projects.get_project(project.id))
        self.assertEqual("calm-otter", project.name)

    def test_get_project_respects_owner(self) -> None:
        project = self._projects.create_project("user-1", "hello")
        self.assertIsNotNone(self._projects.get_project(project.id, user_id="user-1"))
        self.assertIsNone(self._projects.get_project(project.id, user_id="user-2"))
        self.assertEqual([], self._projects.list_messages(project.id, user_id="user-2"))

    def test_result_with_fragment_is_saved_together(self) -> None:
        project = self._projects.create_project("user-1", "hello")
        message = self._projects.create_result_with_fragment(
            project.id,
            content="Here is your app",
            sandbox_url="https://sandbox.example",
            title="Todo App",
            files={"app/page.tsx": "export default 1"},
        )

        self.assertIsNotNone(message.fragment)
        stored = self._projects.get_fragment(message.fragment.id)
        self.assertEqual({"app/page.tsx": "export default 1"}, stored.files)
        self.assertEqual(message.id, stored.message_id)

        listed = self._projects.list_messages(project.id, user_id="user-1")
        self.assertEqual(["USER", "ASSISTANT"], [m.role for m in listed])
        self.assertEqual("Todo App", listed[1].fragment.title)

    def test_failed_fragment_insert_rolls_back_message(self) -> None:
        with self.assertRaises(sqlite3.IntegrityError):
            self._projects.create_result_with_fragment(
                "missing-project",
                content="x",
                sandbox_url="https://x",
                title="t",
                files={},
            )
        count = self._store.execute("SELECT COUNT(*) AS n FROM messages").fetchone()["n"]
        self.assertEqual(0, count)

    def test_recent_messages_newest_first_and_limited(self) -> None:
        project = self._projects.create_project("user-1", "m0")
        for i in range(1, 7):
            self._projects.create_message(project.id, "ASSISTANT" if i % 2 else "USER", "RESULT", f"m{i}")

        recent = self._projects.recent_messages(project.id, limit=5)
        self.assertEqual(["m6", "m5", "m4", "m3", "m2"], [m.content for m in recent])

    def test_list_projects_most_recent_first(self) -> None:
        first = self._projects.create_project("user-1", "one")
        second = self._projects.create_project("user-1", "two")
        self._projects.create_message(first.id, "USER", "RESULT", "again")

        listed = self._projects.list_projects("user-1")
        self.assertEqual([first.id, second.id], [p.id for p in listed])


if __name__ == "__main__":
    unittest.main()
