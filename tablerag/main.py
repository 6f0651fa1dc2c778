"""Interactive console for asking questions about indexed CSV files."""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import Callable, List, Optional

import structlog

from tablerag.agent import Agent, build_agent
from tablerag.config import load_credentials
from tablerag.errors import ConfigurationError, RagError
from tablerag.logging_setup import configure_logging

logger = structlog.get_logger()

GREETING = "Do you have any questions?"
FOLLOW_UP = "Do you have any further questions?"


async def chat_loop(
    agent: Agent,
    read_line: Callable[[], str] = input,
    write: Callable[[str], None] = print,
) -> int:
    """Answer one question per line until end of input.

    Per-question errors are printed and the loop continues.

    Returns:
        Number of questions answered successfully
    """
    answered = 0
    write(GREETING)

    while True:
        try:
            question = await asyncio.to_thread(read_line)
        except (EOFError, KeyboardInterrupt):
            break

        question = question.strip()
        if not question:
            continue

        try:
            response = await agent.prompt(question)
        except ConfigurationError:
            raise
        except RagError as e:
            logger.warning("question_failed", error=str(e), error_type=type(e).__name__)
            write(f"Error: {e}")
        else:
            write(response)
            answered += 1

        write(FOLLOW_UP)

    return answered


async def run(args: argparse.Namespace) -> int:
    try:
        credentials = load_credentials(backend=args.backend)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    agent = build_agent(credentials)

    try:
        if args.init:
            await agent.init()

        if args.index:
            stats = await agent.indexer.index_files(args.index)
            for path, error in stats["errors"].items():
                print(f"Failed to index {path}: {error}", file=sys.stderr)

        await chat_loop(agent)

    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except RagError as e:
        print(f"Startup failed: {e}", file=sys.stderr)
        return 1

    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ask questions about CSV files indexed in a vector store",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Create the vector collection before starting",
    )
    parser.add_argument(
        "--index",
        nargs="+",
        type=Path,
        metavar="PATH",
        help="Index these files before starting",
    )
    parser.add_argument(
        "--backend",
        choices=["qdrant", "faiss"],
        default=None,
        help="Vector store backend (default: VECTOR_BACKEND or qdrant)",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(level=args.log_level)
    try:
        code = asyncio.run(run(args))
    except KeyboardInterrupt:
        # Ctrl-C ends the session
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
