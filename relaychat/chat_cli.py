"""
Command-line chat client for a running RelayChat backend.

Usage:
    relaychat-chat "Explain photosynthesis" --model llama3
    relaychat-chat "Follow-up question" --conversation <id> --model llama3
    relaychat-chat "Hello" --backend routed
    relaychat-chat --interactive --model llama3
    relaychat-chat --list-conversations
    relaychat-chat --list-models
    echo "prompt" | relaychat-chat - --model llama3
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from relaychat.application.session.controller import ConversationSession
from relaychat.client import DEFAULT_BASE_URL, RelayChatClient
from relaychat.domain.errors import DomainError

logger = logging.getLogger(__name__)

INTERACTIVE_HELP = """Commands:
  /new [title]          start a new conversation
  /list                 list conversations
  /open <id>            open a conversation
  /rename <title>       rename the active conversation
  /delete <id>          delete a conversation
  /search <query>       search titles and messages
  /model <name> [local|routed]
  /quit"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="relaychat-chat",
        description="Chat with a local or routed LLM through a RelayChat backend.",
    )
    parser.add_argument("prompt", nargs="?", default=None, help="Prompt text, or '-' to read stdin.")
    parser.add_argument(
        "--url",
        default=os.getenv("RELAYCHAT_URL", DEFAULT_BASE_URL),
        help=f"Backend URL (default: RELAYCHAT_URL or {DEFAULT_BASE_URL}).",
    )
    parser.add_argument("--model", default=None, help="Model name (required for the local backend).")
    parser.add_argument(
        "--backend",
        choices=["local", "routed"],
        default="local",
        help="Backend to relay to (default: local).",
    )
    parser.add_argument("--conversation", default=None, help="Continue an existing conversation by id.")
    parser.add_argument("--owner", default=None, help="Owner identity sent to the backend.")
    parser.add_argument("--interactive", "-i", action="store_true", help="Start an interactive session.")
    parser.add_argument("--list-conversations", action="store_true", help="Print conversations and exit.")
    parser.add_argument("--list-models", action="store_true", help="Print local backend models and exit.")
    parser.add_argument("--search", default=None, help="Search conversations and exit.")
    parser.add_argument("--json", dest="json_output", action="store_true", help="Print JSON output.")
    parser.add_argument("--env-file", default=None, help="Path to a .env file to load first.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output to stderr.")
    return parser


def _print_conversations(conversations, json_output: bool) -> None:
    if json_output:
        print(json.dumps([c.to_dict() for c in conversations], indent=2))
        return
    if not conversations:
        print("No conversations.")
        return
    for conv in conversations:
        print(f"{conv.id}  {conv.title}  ({conv.message_count} messages)")


async def _drain_titles(session: ConversationSession) -> None:
    """Give a first-message title request the chance to land before exit."""
    await session.background.drain()


async def run_interactive(session: ConversationSession) -> int:
    print("RelayChat interactive session. Type /help for commands.")
    loop = asyncio.get_running_loop()
    while True:
        title = session.conversation.title if session.conversation else "(no conversation)"
        try:
            line = await loop.run_in_executor(None, input, f"[{title}] > ")
        except EOFError:
            break
        line = line.strip()
        if not line:
            continue
        command, _, argument = line.partition(" ")
        argument = argument.strip()
        try:
            if command in ("/quit", "/exit"):
                break
            elif command == "/help":
                print(INTERACTIVE_HELP)
            elif command == "/new":
                conv = await session.new_conversation(argument or None)
                print(f"Started {conv.id}")
            elif command == "/list":
                _print_conversations(await session.refresh_conversations(), False)
            elif command == "/open":
                detail = await session.select_conversation(argument)
                if detail is None:
                    print(f"Not found: {argument}")
                else:
                    for msg in session.messages:
                        print(f"{msg.role}: {msg.content}")
            elif command == "/rename":
                await session.rename(argument)
            elif command == "/delete":
                await session.delete_conversation(argument)
            elif command == "/search":
                _print_conversations(await session.search(argument), False)
            elif command == "/model":
                name, _, backend = argument.partition(" ")
                session.set_model(name or None, backend.strip() or None)
            else:
                outcome = await session.submit(line)
                if outcome.succeeded:
                    print(outcome.reply)
                else:
                    print(f"Error ({outcome.failed_step}): {outcome.error.message}", file=sys.stderr)
        except DomainError as exc:
            print(f"Error: {exc.message}", file=sys.stderr)

    await _drain_titles(session)
    return 0


async def run(args: argparse.Namespace) -> int:
    async with RelayChatClient(args.url, owner=args.owner) as client:
        if args.list_models:
            print(json.dumps(await client.list_local_models(), indent=2))
            return 0

        session = ConversationSession(
            client, client, client, model=args.model, backend=args.backend
        )

        if args.list_conversations:
            _print_conversations(await session.refresh_conversations(), args.json_output)
            return 0
        if args.search:
            _print_conversations(await session.search(args.search), args.json_output)
            return 0

        if args.conversation:
            if await session.select_conversation(args.conversation) is None:
                print(f"Error: conversation {args.conversation} not found", file=sys.stderr)
                return 1

        if args.interactive:
            return await run_interactive(session)

        prompt = args.prompt
        if prompt == "-" or (prompt is None and not sys.stdin.isatty()):
            prompt = sys.stdin.read().strip()
        if not prompt:
            print("Error: no prompt provided.", file=sys.stderr)
            return 2

        try:
            outcome = await session.submit(prompt)
        except DomainError as exc:
            print(f"Error: {exc.message}", file=sys.stderr)
            return 2

        await _drain_titles(session)

        if args.json_output:
            print(json.dumps({
                "succeeded": outcome.succeeded,
                "reply": outcome.reply,
                "failed_step": outcome.failed_step,
                "error": outcome.error.message if outcome.error else None,
                "conversation": session.conversation.to_dict() if session.conversation else None,
            }, indent=2))
        elif outcome.succeeded:
            print(outcome.reply)
        else:
            print(f"Error ({outcome.failed_step}): {outcome.error.message}", file=sys.stderr)
        return 0 if outcome.succeeded else 1


def main(argv: Optional[list] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.env_file:
        load_dotenv(dotenv_path=Path(args.env_file).expanduser())
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
