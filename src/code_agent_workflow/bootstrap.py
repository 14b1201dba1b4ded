from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from code_agent_workflow.agent import CodingAgent
from code_agent_workflow.agent_config import AgentConfig
from code_agent_workflow.app_config import AppConfig, RuntimeEnv
from code_agent_workflow.intake import Dispatch, Intake
from code_agent_workflow.logging_config import setup_logging
from code_agent_workflow.network import AgentNetwork
from code_agent_workflow.notifications import NotificationPublisher, Publisher, create_publisher
from code_agent_workflow.outcome import OutcomeReconciler
from code_agent_workflow.post_processing import PostProcessor
from code_agent_workflow.provider import LLMProvider, create_provider
from code_agent_workflow.sandbox import SandboxSessionManager, create_sandbox_provider
from code_agent_workflow.store import ProjectRepository, Store
from code_agent_workflow.system_prompt import get_system_prompt
from code_agent_workflow.tool_registry import get_all
from code_agent_workflow.usage import QuotaLedger
from code_agent_workflow.workflow import CodeAgentWorkflow


@dataclass
class AppRuntime:
    store: Store
    projects: ProjectRepository
    ledger: QuotaLedger
    publisher: Publisher
    workflow: CodeAgentWorkflow
    intake: Intake
    log_descriptions: list[str]

    def close(self) -> None:
        self.store.close()


def _resolve_path(path: str) -> str:
    if path == ":memory:":
        return path
    resolved = Path(path)
    if not resolved.is_absolute():
        resolved = Path.cwd() / resolved
    return str(resolved)


def build_runtime(
    app: AppConfig,
    env: RuntimeEnv,
    *,
    provider: LLMProvider | None = None,
    dispatch: Dispatch | None = None,
    configure_logging: bool = True,
    require_api_key: bool = True,
) -> AppRuntime:
    log_descriptions: list[str] = []
    if configure_logging:
        log_descriptions = setup_logging(app.log_level, log_file=app.log_file)

    if provider is None:
        if require_api_key and not env.provider_api_key:
            raise ValueError(f"{env.provider_env_var} environment variable is required.")
        provider = create_provider(app.provider_name, env.provider_api_key)

    store = Store(_resolve_path(app.database_path))
    projects = ProjectRepository(store)
    ledger = QuotaLedger(store)
    publisher = create_publisher(app.publisher, store=store, redis_url=env.redis_url)

    sandbox_provider = create_sandbox_provider(
        app.sandbox_provider,
        root=_resolve_path(app.sandbox_root),
        api_key=env.e2b_api_key or "",
    )
    sandboxes = SandboxSessionManager(
        sandbox_provider,
        app.sandbox_template,
        timeout_ms=app.sandbox_timeout_ms,
        port=app.sandbox_port,
    )

    agent = CodingAgent(
        provider,
        AgentConfig(
            model=app.model,
            max_tokens=app.max_tokens,
            temperature=app.temperature,
            tools=get_all(),
            system_prompt=get_system_prompt(),
            max_tool_result_chars=app.max_tool_result_chars,
        ),
    )

    workflow = CodeAgentWorkflow(
        store=store,
        projects=projects,
        sandboxes=sandboxes,
        network=AgentNetwork(agent, max_iter=app.max_iterations),
        post_processor=PostProcessor(provider, model=app.post_process_model),
        reconciler=OutcomeReconciler(projects, ledger),
        notifier=NotificationPublisher(publisher),
        step_attempts=app.step_attempts,
    )

    intake = Intake(projects, ledger, dispatch or workflow.run)

    return AppRuntime(
        store=store,
        projects=projects,
        ledger=ledger,
        publisher=publisher,
        workflow=workflow,
        intake=intake,
        log_descriptions=log_descriptions,
    )
