#!/usr/bin/env python3
"""
autodev CLI
Command-line front-end for the autodev planner, chat, plugin and repository explorer.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from colorama import init, Fore, Style
from dotenv import load_dotenv

from autodev.config import AgentConfig
from autodev.errors import AutodevError
from autodev.plan import Plan, Task, TaskState, STATE_MARKERS
from autodev.session import AgentSession
from autodev.tools.demo import stream_demo_plan
from autodev.tools.executor import Executor

STATE_COLORS = {
    TaskState.OPEN: Fore.BLUE,
    TaskState.IN_PROGRESS: Fore.YELLOW,
    TaskState.COMPLETED: Fore.GREEN,
    TaskState.VERIFIED: Fore.GREEN + Style.BRIGHT,
    TaskState.ABANDONED: Fore.RED,
}


class CLIColors:
    """Color utilities for CLI output"""

    @staticmethod
    def success(text: str) -> str:
        return f"{Fore.GREEN}{text}{Style.RESET_ALL}"

    @staticmethod
    def error(text: str) -> str:
        return f"{Fore.RED}{text}{Style.RESET_ALL}"

    @staticmethod
    def warning(text: str) -> str:
        return f"{Fore.YELLOW}{text}{Style.RESET_ALL}"

    @staticmethod
    def info(text: str) -> str:
        return f"{Fore.CYAN}{text}{Style.RESET_ALL}"

    @staticmethod
    def highlight(text: str) -> str:
        return f"{Fore.MAGENTA}{Style.BRIGHT}{text}{Style.RESET_ALL}"

    @staticmethod
    def task(task: Task, depth: int) -> str:
        color = STATE_COLORS[task.state]
        indent = "    " * depth
        return f"{indent}{color}{STATE_MARKERS[task.state]} {task.id}{Style.RESET_ALL} {task.goal}"


def colored_plan(plan: Plan) -> str:
    lines = []

    def visit(task: Task, depth: int):
        lines.append(CLIColors.task(task, depth))
        for subtask in task.subtasks:
            visit(subtask, depth + 1)

    visit(plan.root_task, 0)
    return "\n".join(lines)


class AutodevCLI:
    """Main CLI class for autodev"""

    def __init__(self, cfg: Optional[AgentConfig] = None, executor: Optional[Executor] = None):
        self.config = cfg or AgentConfig.from_env()
        self.executor = executor or Executor(self.config)
        if self.executor.llm.fallback:
            print(CLIColors.warning("⚠️  LLM_API_KEY not set; chat and planning use canned replies."))

    @property
    def session(self) -> AgentSession:
        return self.executor.session

    def demo(self, delay: float) -> bool:
        plan = Plan(self.config.main_goal)

        async def play():
            async for update in stream_demo_plan(plan, delay=delay):
                print(f"  {update.task_id:>6}  {update.state:<12} {update.goal}")

        print(CLIColors.info("🎬 Running demo plan..."))
        asyncio.run(play())
        print()
        print(colored_plan(plan))
        return True

    def plan_goal(self, goal: str) -> bool:
        """Decompose a goal into subtasks and print the resulting plan"""
        try:
            print(CLIColors.info(f"🎯 Planning: {goal}"))
            self.session.plan = Plan(goal)
            tasks = self.executor.planner.decompose(self.session.plan)
            if not tasks:
                print(CLIColors.warning("📋 No steps generated."))
            print(colored_plan(self.session.plan))
            return True
        except AutodevError as e:
            print(CLIColors.error(f"❌ Error planning: {e}"))
            return False

    def chat(self, message: str) -> bool:
        try:
            reply = self.session.send_message(self.executor.llm, message)
        except AutodevError as e:
            print(CLIColors.error(f"❌ LLM error: {e}"))
            return False
        print(CLIColors.highlight("🤖 ") + reply)
        return True

    def interactive_chat(self) -> bool:
        print(CLIColors.info("💬 Chat mode. Type 'exit' to quit."))
        while True:
            try:
                message = input(CLIColors.info("you> ")).strip()
            except (EOFError, KeyboardInterrupt):
                print()
                return True
            if message.lower() in ("exit", "quit"):
                return True
            if message:
                self.chat(message)

    def run_plugin(self, operation: str, repositories: list[str], branch: str, query: Optional[str]) -> bool:
        try:
            results = self.executor.plugin.run_many(operation, repositories, branch, query)
        except AutodevError as e:
            print(CLIColors.error(f"❌ {e}"))
            return False
        for result in results:
            if result.ok:
                print(CLIColors.success(f"✅ {result.repository}"))
            else:
                print(CLIColors.error(f"❌ {result.repository}"))
            print(result.summary)
            print()
        return all(r.ok for r in results)

    def tree(self, repo: str, branch: Optional[str], path: str) -> bool:
        try:
            fs = self.executor.github(repo)
            try:
                branch = branch or fs.default_branch()
                entries = fs.list_dir(branch, path)
            finally:
                fs.close()
        except (AutodevError, ValueError) as e:
            print(CLIColors.error(f"❌ {e}"))
            return False
        print(f"\n📁 {repo}@{branch}:/{path}")
        for entry in entries:
            icon = "📁" if entry.is_dir else "📄"
            print(f"  {icon} {entry.path}")
        return True

    def cat(self, repo: str, branch: Optional[str], path: str) -> bool:
        try:
            fs = self.executor.github(repo)
            try:
                content = fs.read_file(branch or fs.default_branch(), path)
            finally:
                fs.close()
        except (AutodevError, ValueError) as e:
            print(CLIColors.error(f"❌ {e}"))
            return False
        print(content)
        return True


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser"""
    parser = argparse.ArgumentParser(
        description="autodev CLI - plans, chat and repository tools for an AI coding agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --port 8080
  %(prog)s demo --delay 0.1
  %(prog)s plan "implement user authentication"
  %(prog)s chat "hello"
  %(prog)s plugin query owner/repo --query "where is auth handled?"
  %(prog)s tree owner/repo src
""",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8080)

    demo_parser = subparsers.add_parser("demo", help="Play the scripted demo plan")
    demo_parser.add_argument("--delay", type=float, default=None, help="Seconds between updates")

    plan_parser = subparsers.add_parser("plan", help="Decompose a goal into subtasks")
    plan_parser.add_argument("goal", help="Goal to plan")

    chat_parser = subparsers.add_parser("chat", help="Chat with the LLM (interactive without a message)")
    chat_parser.add_argument("message", nargs="?", help="Message to send")

    plugin_parser = subparsers.add_parser("plugin", help="Index, query or search repositories")
    plugin_parser.add_argument("operation", choices=["index", "query", "search"])
    plugin_parser.add_argument("repositories", nargs="+", help="owner/name repositories")
    plugin_parser.add_argument("--branch", default="main")
    plugin_parser.add_argument("--query", help="Query text for query/search")

    tree_parser = subparsers.add_parser("tree", help="List a GitHub directory")
    tree_parser.add_argument("repo", help="owner/name")
    tree_parser.add_argument("path", nargs="?", default="")
    tree_parser.add_argument("--branch", help="Branch (default: main, master or first)")

    cat_parser = subparsers.add_parser("cat", help="Print a GitHub file")
    cat_parser.add_argument("repo", help="owner/name")
    cat_parser.add_argument("path")
    cat_parser.add_argument("--branch", help="Branch (default: main, master or first)")

    return parser


def main(argv: Optional[list[str]] = None):
    """Main CLI entry point"""
    init()  # Initialize colorama for Windows
    load_dotenv()
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("server.api:app", host=args.host, port=args.port, reload=False)
        sys.exit(0)

    cli = AutodevCLI()

    if args.command == "demo":
        delay = cli.config.demo_delay if args.delay is None else args.delay
        success = cli.demo(delay)
    elif args.command == "plan":
        success = cli.plan_goal(args.goal)
    elif args.command == "chat":
        success = cli.chat(args.message) if args.message else cli.interactive_chat()
    elif args.command == "plugin":
        success = cli.run_plugin(args.operation, args.repositories, args.branch, args.query)
    elif args.command == "tree":
        success = cli.tree(args.repo, args.branch, args.path)
    elif args.command == "cat":
        success = cli.cat(args.repo, args.branch, args.path)
    else:
        print(CLIColors.error(f"❌ Unknown command: {args.command}"))
        parser.print_help()
        success = False

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
