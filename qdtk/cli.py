"""
qdtk command line: list, stats, dump and search
"""

import argparse
import json
import logging
import sys
from typing import Optional

from tqdm import tqdm

from qdtk import __version__
from qdtk.client import QdrantClient
from qdtk.config import load_settings
from qdtk.errors import QdtkError, RequestError, TransportError
from qdtk.export import (
    ExportOptions,
    JsonLinesSink,
    Projection,
    export_all,
    export_collection,
    is_all_collections,
)
from qdtk.matcher import Query
from qdtk.pager import CursorPager
from qdtk.search import preview_collection, search_collection

logger = logging.getLogger(__name__)

DIVIDER = "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━"


def print_section(title: str, file=None):
    print(DIVIDER, file=file)
    print(title, file=file)
    print(DIVIDER, file=file)


def configure_logging(debug: bool = False, quiet: bool = False):
    """Route qdtk log records to stderr"""
    if debug:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    package_logger = logging.getLogger("qdtk")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        package_logger.addHandler(handler)


class DumpProgress:
    """tqdm bar fed by the exporter's (done, total) callback"""

    def __init__(self):
        self.bar = None

    def __call__(self, done: int, total: Optional[int]):
        if self.bar is None:
            self.bar = tqdm(
                total=total,
                desc="    ",
                unit="pts",
                file=sys.stderr,
                ncols=80,
            )
        self.bar.update(done - self.bar.n)

    def close(self):
        if self.bar is not None:
            self.bar.close()
            self.bar = None


# --- Commands ---


def cmd_list(client: QdrantClient, settings, args) -> int:
    names = client.list_collections()
    if not names:
        print("⚠️  No collections found")
        return 0

    print_section(f"📚 Collections ({len(names)})")
    for name in names:
        try:
            info = client.collection_info(name)
        except (RequestError, TransportError) as e:
            print(f"  ● {name} (error)", file=sys.stderr)
            logger.debug("%s: %s", name, e)
            continue

        points = info.get("points_count") or 0
        marker = "●" if points else "○"
        print(f"  {marker} {name} ({points} points)")
        if args.verbose:
            print(f"    Vectors: {info.get('vectors_count', '-')}")
            print(f"    Status: {info.get('status', '-')}")
            print(f"    Segments: {info.get('segments_count', '-')}")
            print()
    return 0


def cmd_stats(client: QdrantClient, settings, args) -> int:
    print_section("📊 Database Info")
    try:
        telemetry = client.telemetry()
        version = (telemetry.get("app") or {}).get("version")
        if version:
            print(f"Version: Qdrant {version}")
    except (RequestError, TransportError):
        pass

    names = client.list_collections()
    print(f"Collections: {len(names)}")
    print()

    print_section("📦 Collection Details")
    print(f"{'Collection':<20}{'Points':<20}{'Vectors':<20}{'Status':<20}")
    total_points = 0
    total_vectors = 0
    for name in names:
        try:
            info = client.collection_info(name)
        except (RequestError, TransportError):
            print(f"{name:<20}{'error':<20}{'-':<20}{'-':<20}")
            continue

        points = info.get("points_count") or 0
        vectors = info.get("vectors_count")
        total_points += points
        total_vectors += vectors or 0
        shown_vectors = "-" if vectors is None else vectors
        print(f"{name:<20}{points:<20}{shown_vectors:<20}{info.get('status') or '-':<20}")

    print()
    print(DIVIDER)
    print(f"  Total Points: {total_points}")
    print(f"  Total Vectors: {total_vectors}")
    return 0


def status(message: str = ""):
    """Print a dump status line to stderr"""
    print(message, file=sys.stderr)


def cmd_dump(client: QdrantClient, settings, args) -> int:
    options = ExportOptions(
        limit=args.limit,
        batch_size=settings.batch_size,
        with_vectors=args.with_vectors,
        projection=Projection.PAYLOAD_ONLY if args.payload_only else Projection.FULL,
        retry_delay=settings.retry_delay,
        max_retries=settings.max_retries,
    )

    quiet = args.quiet
    show_progress = not args.no_progress
    if args.output:
        try:
            stream = open(args.output, "wb")
        except OSError as e:
            print(f"✗ Failed to create output file: {e}", file=sys.stderr)
            return 1
        if not quiet:
            status(f"ℹ️  Output: {args.output}")
    else:
        stream = sys.stdout.buffer
        quiet = True
        show_progress = False

    progress = DumpProgress() if show_progress and not quiet else None
    on_start = None if quiet else _print_collection_counts
    sink = JsonLinesSink(stream)
    try:
        if is_all_collections(args.collection):
            return _dump_all(client, sink, options, progress, quiet, on_start)

        dumped = export_collection(
            client, args.collection, sink, options, progress=progress, on_start=on_start
        )
        if progress is not None:
            progress.close()
        if not quiet:
            status(f"✓ Dumped {dumped} points")
        return 0
    finally:
        if progress is not None:
            progress.close()
        if args.output:
            stream.close()
        else:
            stream.flush()


def _print_collection_counts(name: str, total: Optional[int], expected: Optional[int]):
    if total == 0:
        status("    Empty collection, skipping")
        return
    shown_total = "?" if total is None else total
    shown_expected = "all" if expected is None else expected
    status(f"    Points: {shown_total}  Dumping: {shown_expected}")


def _dump_all(client, sink, options, progress, quiet, on_start) -> int:
    names = client.list_collections()
    if not quiet:
        print_section(f"📦 Dumping {len(names)} collections", file=sys.stderr)

    def on_collection(name: str):
        if progress is not None:
            progress.close()
        if not quiet:
            status(f"\n  ▸ {name}")

    summary = export_all(
        client,
        sink,
        options,
        progress=progress,
        on_collection=on_collection,
        on_start=on_start,
        collections=names,
    )
    if progress is not None:
        progress.close()

    if not quiet:
        for failed in summary.failed:
            print(f"✗ {failed.name}: {failed.error}", file=sys.stderr)
        status()
        status(
            f"✓ Dump completed: {summary.total} total points "
            f"from {len(summary.collections)} collections"
        )
    return 0


def cmd_search(client: QdrantClient, settings, args) -> int:
    if not args.query:
        records = preview_collection(client, args.collection, limit=args.limit)
        _print_results(records, args.raw)
        return 0

    pager = CursorPager(
        client,
        args.collection,
        page_size=settings.batch_size,
        with_payload=True,
        with_vectors=False,
        retry_delay=settings.retry_delay,
        max_retries=settings.max_retries,
    )
    result = search_collection(
        pager,
        Query(args.query, field=args.field),
        limit=args.limit,
        scan_limit=settings.scan_limit,
    )

    if not args.raw:
        print(f"ℹ️  Searched {result.scanned} documents, found {len(result.matches)} matches")
        print()
    _print_results(result.matches, args.raw)
    return 0


def _print_results(records, raw: bool):
    if raw:
        documents = [{"id": r.id, "payload": r.payload} for r in records]
        print(json.dumps(documents, indent=2, ensure_ascii=False))
        return

    for i, record in enumerate(records, 1):
        print(f"[{i}] ID: {record.id}")
        payload = json.dumps(record.payload, indent=2, ensure_ascii=False)
        print("    " + payload.replace("\n", "\n    "))
        print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qdtk",
        description="Qdrant ToolKit - Navigate and dump data from Qdrant vector databases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  qdtk --url http://localhost:6333 list -v
  qdtk --url http://localhost:6333 stats
  qdtk dump -c docs -o docs.jsonl
  qdtk dump -c all -o everything.jsonl --with-vectors
  qdtk search -c docs -q "invoice" -f title
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--url", help="Qdrant URL (e.g., https://qdrant.example.com or http://host:6333)"
    )
    parser.add_argument("--api-key", help="API key sent in the api-key header")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
    parser.add_argument(
        "--insecure", action="store_true", help="Skip TLS certificate verification"
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Debug mode")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # List command
    list_parser = subparsers.add_parser("list", help="List collections")
    list_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show detailed collection info"
    )
    list_parser.set_defaults(func=cmd_list)

    # Stats command
    stats_parser = subparsers.add_parser("stats", help="Get database statistics")
    stats_parser.set_defaults(func=cmd_stats)

    # Dump command
    dump_parser = subparsers.add_parser("dump", help="Dump collection data")
    dump_parser.add_argument(
        "-c",
        "--collection",
        required=True,
        help="Collection name (use '*' or 'all' for all collections)",
    )
    dump_parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    dump_parser.add_argument(
        "-l", "--limit", type=int, default=0, help="Max documents to dump (0 = unlimited)"
    )
    dump_parser.add_argument(
        "-b", "--batch-size", type=int, help="Batch size for scrolling (default: 100)"
    )
    dump_parser.add_argument(
        "-v",
        "--with-vectors",
        action="store_true",
        help="Include vectors in output",
    )
    dump_parser.add_argument(
        "-p",
        "--payload-only",
        action="store_true",
        help="Output only payload (no metadata)",
    )
    dump_parser.add_argument(
        "--no-progress", action="store_true", help="Disable progress bar"
    )
    dump_parser.add_argument(
        "-q", "--quiet", action="store_true", help="Quiet mode (minimal output)"
    )
    dump_parser.add_argument(
        "--retry-delay", type=float, help="Seconds to wait before retrying a timeout"
    )
    dump_parser.add_argument(
        "--max-retries", type=int, help="Give up after N timeouts (default: never)"
    )
    dump_parser.set_defaults(func=cmd_dump)

    # Search command
    search_parser = subparsers.add_parser("search", help="Search in collection")
    search_parser.add_argument(
        "-c", "--collection", required=True, help="Collection name"
    )
    search_parser.add_argument(
        "-q",
        "--query",
        default="",
        help="Text to search in payloads (searches all text fields)",
    )
    search_parser.add_argument("-f", "--field", help="Specific field to search in")
    search_parser.add_argument(
        "-l", "--limit", type=int, default=10, help="Max results (default: 10)"
    )
    search_parser.add_argument(
        "--scan-limit",
        type=int,
        help="Max documents to scan before giving up (default: 10000)",
    )
    search_parser.add_argument(
        "-b", "--batch-size", type=int, help="Batch size for scrolling (default: 100)"
    )
    search_parser.add_argument(
        "-r", "--raw", action="store_true", help="Output raw JSON"
    )
    search_parser.set_defaults(func=cmd_search)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    quiet = getattr(args, "quiet", False) or (
        args.command == "dump" and not args.output
    )
    configure_logging(debug=args.debug, quiet=quiet and not args.debug)

    overrides = {
        "url": args.url,
        "api_key": args.api_key,
        "timeout": args.timeout,
        "verify_tls": False if args.insecure else None,
        "batch_size": getattr(args, "batch_size", None),
        "retry_delay": getattr(args, "retry_delay", None),
        "max_retries": getattr(args, "max_retries", None),
        "scan_limit": getattr(args, "scan_limit", None),
    }

    try:
        settings = load_settings(overrides)
        client = QdrantClient(
            settings.url,
            api_key=settings.api_key,
            timeout=settings.timeout,
            verify_tls=settings.verify_tls,
        )
        return args.func(client, settings, args)
    except QdtkError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n✗ Interrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
