from __future__ import annotations

from loguru import logger

from code_agent_workflow.sandbox.base import SANDBOX_PORT, SANDBOX_TIMEOUT_MS, SandboxProvider, SandboxSession


class SandboxSessionManager:
    """Creates and re-attaches sandboxes, refreshing the idle timeout each time.

    ``create`` runs once per generation request; every tool call afterwards
    uses ``connect`` with the remembered id, which only refreshes the timeout.
    """

    def __init__(
        self,
        provider: SandboxProvider,
        template: str,
        *,
        timeout_ms: int = SANDBOX_TIMEOUT_MS,
        port: int = SANDBOX_PORT,
    ):
        self._provider = provider
        self._template = template
        self._timeout_ms = timeout_ms
        self._port = port

    async def create(self) -> str:
        session = await self._provider.create(self._template)
        await session.set_timeout(self._timeout_ms)
        logger.info(f"Created sandbox {session.sandbox_id} from template {self._template!r}")
        return session.sandbox_id

    async def connect(self, sandbox_id: str) -> SandboxSession:
        session = await self._provider.connect(sandbox_id)
        await session.set_timeout(self._timeout_ms)
        return session

    async def sandbox_url(self, sandbox_id: str) -> str:
        session = await self.connect(sandbox_id)
        return f"https://{session.get_host(self._port)}"
