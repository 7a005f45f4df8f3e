"""
RelayChat Server CLI - Start the RelayChat backend server.

Usage:
    relaychat-server                          # Start with defaults
    relaychat-server --port 8000              # Custom port
    relaychat-server --env /path/to/.env      # Custom env file
"""

import argparse
import os
import sys
from pathlib import Path


def _apply_env_file(env_path: Path) -> None:
    """Load environment variables from a .env file."""
    from dotenv import load_dotenv

    if not env_path.exists():
        print(f"Error: env file not found: {env_path}", file=sys.stderr)
        sys.exit(2)

    load_dotenv(dotenv_path=str(env_path))


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser for relaychat-server CLI."""
    parser = argparse.ArgumentParser(
        prog="relaychat-server",
        description="Start the RelayChat backend server.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to run the server on (default: 8000 or PORT env var).",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind to (default: 127.0.0.1 or RELAYCHAT_HOST env var).",
    )
    parser.add_argument(
        "--env",
        dest="env_file",
        default=None,
        help="Path to .env file (default: .env in current directory).",
    )
    parser.add_argument(
        "--db-url",
        dest="db_url",
        default=None,
        help="Conversation store URL (sets CHAT_HISTORY_DB_URL).",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development (not recommended for production).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1). DuckDB stores need a single worker.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit.",
    )
    return parser


def run_server(args: argparse.Namespace) -> int:
    """Run the RelayChat server with the given arguments."""
    import uvicorn

    host = args.host or os.getenv("RELAYCHAT_HOST", "127.0.0.1")
    port = args.port or int(os.getenv("PORT", "8000"))

    print(f"Starting RelayChat server on {host}:{port}")

    if args.reload or args.workers > 1:
        if args.reload:
            print("Warning: --reload is enabled. This is not recommended for production.")
        uvicorn.run(
            "relaychat.main:app",
            host=host,
            port=port,
            reload=args.reload,
            workers=1 if args.reload else args.workers,
        )
    else:
        from relaychat.main import app

        uvicorn.run(app, host=host, port=port)

    return 0


def main() -> None:
    """Main entry point for relaychat-server CLI."""
    parser = build_parser()
    args = parser.parse_args()

    if args.version:
        from relaychat.version import VERSION
        print(f"relaychat-server version {VERSION}")
        sys.exit(0)

    # Apply env file first (before any imports that read settings)
    if args.env_file:
        _apply_env_file(Path(args.env_file).expanduser())
    else:
        cwd_env = Path.cwd() / ".env"
        if cwd_env.exists():
            _apply_env_file(cwd_env)

    if args.db_url:
        os.environ["CHAT_HISTORY_DB_URL"] = args.db_url

    sys.exit(run_server(args))


if __name__ == "__main__":
    main()
