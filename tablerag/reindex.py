"""Index CSV files into the vector collection.

Usage:
    tablerag-index data/titanic.csv              # Index one file
    tablerag-index --init data/*.csv             # Create the collection first
    tablerag-index --verbose data/*.csv          # Show detailed progress
"""
import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import structlog

from tablerag import config
from tablerag.agent import build_agent
from tablerag.config import load_credentials
from tablerag.errors import ConfigurationError, RagError
from tablerag.logging_setup import configure_logging

logger = structlog.get_logger()


class ProgressReporter:
    """Simple progress reporter for CLI."""

    def __init__(self, verbose: bool = False, stream=None):
        self.verbose = verbose
        self.stream = stream or sys.stdout
        self.start_time = None

    def _print(self, *args, **kwargs):
        print(*args, file=self.stream, **kwargs)

    def start(self, message: str):
        """Start progress reporting."""
        self.start_time = datetime.now()
        self._print(f"\n{'=' * 60}")
        self._print(f"  {message}")
        self._print(f"{'=' * 60}\n")

    def update(self, current: int, total: int, file_path: Path):
        """Update progress."""
        percentage = (current / total) * 100 if total > 0 else 0
        bar_length = 40
        filled = int(bar_length * current / total) if total > 0 else 0
        bar = "█" * filled + "░" * (bar_length - filled)

        self._print(
            f"\r  [{bar}] {percentage:5.1f}% ({current}/{total}) {file_path.name[:30]:<30}",
            end="",
            flush=True,
        )

        if self.verbose:
            self._print()

    def finish(self, stats: dict, point_count: Optional[int] = None):
        """Finish progress reporting."""
        self._print("\n")
        elapsed_seconds = (datetime.now() - self.start_time).total_seconds()

        self._print(f"{'=' * 60}")
        self._print("  Indexing Complete!")
        self._print(f"{'=' * 60}\n")
        self._print(f"  📁 Files processed:      {stats['files_processed']}")
        self._print(f"  ❌ Files failed:         {stats['files_failed']}")
        self._print(f"  🧮 Points written:       {stats['points_written']}")
        if point_count is not None:
            self._print(f"  🗄️  Collection size:      {point_count}")
        self._print(f"  ⏱️  Time elapsed:         {elapsed_seconds:.1f}s")
        self._print(f"\n{'=' * 60}\n")

        for path, error in stats["errors"].items():
            self._print(f"⚠️  {path}: {error}")

        if stats["files_failed"] > 0:
            self._print(f"\n⚠️  Warning: {stats['files_failed']} file(s) failed to index.\n")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Index CSV files into the vector collection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tablerag-index data/titanic.csv
  tablerag-index --init data/*.csv
        """,
    )
    parser.add_argument("paths", nargs="+", type=Path, help="Files to index")
    parser.add_argument(
        "--init",
        action="store_true",
        help="Create the collection before indexing",
    )
    parser.add_argument(
        "--backend",
        choices=["qdrant", "faiss"],
        default=None,
        help="Vector store backend (default: VECTOR_BACKEND or qdrant)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show verbose progress output",
    )
    return parser.parse_args(argv)


async def collection_size(agent) -> Optional[int]:
    """Point count for the summary, or None if the store cannot count."""
    try:
        return await agent.store.count(agent.indexer.collection)
    except ConfigurationError:
        raise
    except RagError as e:
        logger.warning("collection_count_failed", error=str(e), error_type=type(e).__name__)
        return None


async def run(args: argparse.Namespace) -> int:
    """Index the requested files and return the process exit code."""
    try:
        credentials = load_credentials(backend=args.backend)
    except ConfigurationError as e:
        print(f"\n❌ Configuration error: {e}\n", file=sys.stderr)
        return 1

    print("\n📋 Configuration:")
    print(f"   Backend:          {credentials.backend}")
    print(f"   Collection:       {config.COLLECTION_NAME}")
    print(f"   Embedding model:  {config.EMBEDDING_MODEL}")
    print(f"   Dimensions:       {config.EMBEDDING_DIMENSIONS}")

    agent = build_agent(credentials)
    progress = ProgressReporter(verbose=args.verbose)

    try:
        if args.init:
            created = await agent.init()
            print(f"   Collection:       {'created' if created else 'already exists'}")

        progress.start(f"Indexing {len(args.paths)} file(s)")
        stats = await agent.indexer.index_files(args.paths, progress_callback=progress.update)
        progress.finish(stats, point_count=await collection_size(agent))

    except KeyboardInterrupt:
        print("\n\n⚠️  Indexing cancelled by user.\n")
        return 1

    except RagError as e:
        print(f"\n❌ Error: {e}\n", file=sys.stderr)
        logger.error("reindex_failed", error=str(e), error_type=type(e).__name__)
        return 1

    return 1 if stats["files_failed"] > 0 else 0


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
