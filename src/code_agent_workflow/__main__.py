import argparse
import asyncio
import json
import sys

from dotenv import load_dotenv
from loguru import logger

from code_agent_workflow.app_config import load_json_config, parse_app_config, resolve_runtime_env
from code_agent_workflow.bootstrap import AppRuntime, build_runtime
from code_agent_workflow.errors import WorkflowError
from code_agent_workflow.notifications import StorePublisher, fragment_channel
from code_agent_workflow.usage import Identity


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="code_agent_workflow",
        description="Generate and iterate on sandboxed web app fragments with a coding agent.",
    )
    parser.add_argument("--user-id", default="local-user", help="identity the request is made as")
    parser.add_argument("--pro", action="store_true", help="use the pro credit allotment")
    parser.add_argument("--config", default=None, help="path to config.json (default: ./config.json)")

    sub = parser.add_subparsers(dest="command", required=True)

    new = sub.add_parser("new", help="create a project from a prompt and generate its first fragment")
    new.add_argument("prompt")

    send = sub.add_parser("send", help="send a follow-up prompt to an existing project")
    send.add_argument("project_id")
    send.add_argument("prompt")

    messages = sub.add_parser("messages", help="list the messages of a project")
    messages.add_argument("project_id")

    sub.add_parser("projects", help="list your projects")
    sub.add_parser("usage", help="show remaining credits")

    notifications = sub.add_parser("notifications", help="show published notifications")
    notifications.add_argument("--limit", type=int, default=20)

    return parser


def _print_json(value: object) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


async def run_command(args: argparse.Namespace, runtime: AppRuntime) -> int:
    identity = Identity(user_id=args.user_id, has_pro_access=args.pro)
    intake = runtime.intake

    if args.command == "new":
        project = await intake.create_project(identity, args.prompt)
        print(f"Project: {project.id} ({project.name})")
    elif args.command == "send":
        message = await intake.submit_message(identity, args.project_id, args.prompt)
        print(f"Message: {message.id}")
    elif args.command == "messages":
        for message in intake.list_messages(identity, args.project_id):
            print(f"[{message.created_at}] {message.role}/{message.type}: {message.content}")
            if message.fragment is not None:
                print(f"    fragment {message.fragment.id}: {message.fragment.title} -> {message.fragment.sandbox_url}")
                for path in sorted(message.fragment.files):
                    print(f"      - {path}")
    elif args.command == "projects":
        for project in intake.list_projects(identity):
            print(f"{project.id}  {project.name}  (updated {project.updated_at})")
    elif args.command == "usage":
        status = intake.usage_status(identity)
        _print_json(status.to_payload() if status else None)
    elif args.command == "notifications":
        if not isinstance(runtime.publisher, StorePublisher):
            print("Notifications are only kept when Publisher is 'store'.")
            return 1
        _print_json(runtime.publisher.list_notifications(fragment_channel(identity.user_id), limit=args.limit))
    return 0


async def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    app = parse_app_config(load_json_config(args.config))
    env = resolve_runtime_env(app.provider_name)
    try:
        # Read-only commands never call the model, so they run without an API key.
        runtime = build_runtime(app, env, require_api_key=args.command in ("new", "send"))
    except ValueError as ex:
        logger.error(str(ex))
        return 1

    try:
        return await run_command(args, runtime)
    except WorkflowError as ex:
        logger.error(f"{type(ex).__name__}: {ex}")
        return 1
    finally:
        runtime.close()


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
