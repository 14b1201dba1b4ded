from code_agent_workflow.sandbox.base import (
    SANDBOX_PORT,
    SANDBOX_TIMEOUT_MS,
    CommandOutput,
    SandboxProvider,
    SandboxSession,
    create_sandbox_provider,
)
from code_agent_workflow.sandbox.session_manager import SandboxSessionManager

__all__ = [
    "SANDBOX_PORT",
    "SANDBOX_TIMEOUT_MS",
    "CommandOutput",
    "SandboxProvider",
    "SandboxSession",
    "SandboxSessionManager",
    "create_sandbox_provider",
]
