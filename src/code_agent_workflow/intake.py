from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from code_agent_workflow.errors import InvalidRequest, ProjectNotFound, QuotaExceeded
from code_agent_workflow.store.models import MessageRecord, ProjectRecord
from code_agent_workflow.store.projects import ProjectRepository
from code_agent_workflow.usage import (
    GENERATION_COST,
    Identity,
    QuotaLedger,
    UsageStatus,
    allotment_for,
    require_identity,
)
from code_agent_workflow.workflow import GenerationRequest

MAX_PROMPT_CHARS = 10_000

Dispatch = Callable[[GenerationRequest], Awaitable[Any]]


def validate_prompt(value: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequest("Value is required")
    if len(value) > MAX_PROMPT_CHARS:
        raise InvalidRequest(f"Value is too long (max {MAX_PROMPT_CHARS} characters)")
    return value


class Intake:
    """Admits user prompts and hands them to the workflow.

    Nothing is persisted and nothing is dispatched unless the caller is
    authenticated, the prompt is valid and the identity still has credits.
    """

    def __init__(self, projects: ProjectRepository, ledger: QuotaLedger, dispatch: Dispatch):
        self._projects = projects
        self._ledger = ledger
        self._dispatch = dispatch

    async def create_project(self, identity: Identity | None, prompt: str) -> ProjectRecord:
        identity = require_identity(identity)
        validate_prompt(prompt)
        allotment = self._admit(identity)

        project = self._projects.create_project(identity.user_id, prompt)
        logger.info(f"Created project {project.id} ({project.name}) for user {identity.user_id}")
        await self._dispatch(
            GenerationRequest(
                user_id=identity.user_id,
                project_id=project.id,
                value=prompt,
                effective_points=allotment,
            )
        )
        return project

    async def submit_message(self, identity: Identity | None, project_id: str, value: str) -> MessageRecord:
        identity = require_identity(identity)
        validate_prompt(value)
        if self._projects.get_project(project_id, user_id=identity.user_id) is None:
            raise ProjectNotFound(project_id)
        allotment = self._admit(identity)

        message = self._projects.create_message(project_id, "USER", "RESULT", value)
        logger.info(f"Queued message {message.id} for project {project_id}")
        await self._dispatch(
            GenerationRequest(
                user_id=identity.user_id,
                project_id=project_id,
                value=value,
                effective_points=allotment,
            )
        )
        return message

    def list_messages(self, identity: Identity | None, project_id: str) -> list[MessageRecord]:
        identity = require_identity(identity)
        if self._projects.get_project(project_id, user_id=identity.user_id) is None:
            raise ProjectNotFound(project_id)
        return self._projects.list_messages(project_id, user_id=identity.user_id)

    def list_projects(self, identity: Identity | None) -> list[ProjectRecord]:
        identity = require_identity(identity)
        return self._projects.list_projects(identity.user_id)

    def usage_status(self, identity: Identity | None) -> UsageStatus | None:
        return self._ledger.get_status(identity)

    def _admit(self, identity: Identity) -> int:
        allotment = allotment_for(identity)
        remaining = self._ledger.remaining(identity.user_id, allotment)
        if remaining < GENERATION_COST:
            status = self._ledger.get_status(identity)
            ms_before_next = status.ms_before_next if status else 0
            logger.info(f"Rejected request from {identity.user_id}: no credits left")
            raise QuotaExceeded(ms_before_next=ms_before_next)
        return allotment
