"""
Command line interface for tag aggregation.

Example:

    Collect posts tagged with '#outage' every 2 minutes on 'mastodon.social'
    and serve the live report on http://127.0.0.1:8080/

    tag-aggregation collect -t outage -i 120 -s mastodon.social --http
"""

import argparse
import signal
import sys
import threading
from typing import Optional, Sequence

from tag_aggregation import __version__
from tag_aggregation.config import (
    CollectorConfig,
    Config,
    DatabaseConfig,
    SourceConfig,
    load_config_from_yaml,
)
from tag_aggregation.core.collector import Collector
from tag_aggregation.core.reporter import Reporter
from tag_aggregation.errors import CollectorError, TagAggregationError
from tag_aggregation.logger import get_logger, setup_logger
from tag_aggregation.sources import FeedSource, FileSource, MastodonSource
from tag_aggregation.storage import PostStore
from tag_aggregation.web import StatsServer, create_app

logger = get_logger(__name__)


def _common_parser() -> argparse.ArgumentParser:
    """Flags accepted both before and after the subcommand."""
    common = argparse.ArgumentParser(add_help=False)
    # SUPPRESS keeps a subcommand default from overwriting a flag given before it
    common.add_argument("-c", "--config", default=argparse.SUPPRESS, help="YAML configuration file")
    common.add_argument(
        "-v", "--verbose", action="store_true", default=argparse.SUPPRESS,
        help="Verbose (debug) logging",
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    common = _common_parser()

    parser = argparse.ArgumentParser(
        prog="tag-aggregation",
        description="Collects hashtag timelines from Mastodon servers and aggregates tagged posts.",
        parents=[common],
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    collect = subparsers.add_parser(
        "collect",
        help="Collect and aggregate tagged posts",
        description="Collects posts for the provided tag(s) and aggregates them over time.",
        parents=[common],
    )
    collect.add_argument(
        "-t", "--tags", action="append", default=[],
        help="Tag name (repeatable, comma-separated values accepted)",
    )
    collect.add_argument(
        "-s", "--server", action="append", default=[],
        help="Server to poll (repeatable, default from config)",
    )
    collect.add_argument("--file", help="Read statuses from a JSON file instead of servers")
    collect.add_argument("-d", "--database", help="Database file to store results (default in-memory)")
    collect.add_argument("-i", "--interval", type=int, help="Seconds between collection cycles")
    collect.add_argument("--http", action="store_true", help="Keep collecting and serve stats over HTTP")
    collect.add_argument("--host", help="Stats server host")
    collect.add_argument("--port", type=int, help="Stats server port")

    return parser


def _split_tags(values: Sequence[str]) -> list[str]:
    tags = []
    for value in values:
        for tag in value.split(","):
            tag = tag.strip().lstrip("#")
            if tag and tag not in tags:
                tags.append(tag)
    return tags


def build_config(args: argparse.Namespace) -> Config:
    """Build the configuration from the YAML file and command line flags.

    Args:
        args: Parsed arguments

    Returns:
        Config with flag overrides applied
    """
    config_path = getattr(args, "config", None)
    config = load_config_from_yaml(config_path) if config_path else Config()

    if getattr(args, "verbose", False):
        config.logging.level = "DEBUG"

    if args.database:
        config.database = DatabaseConfig(**{**config.database.model_dump(), "path": args.database})
    if args.interval is not None:
        config.collector = CollectorConfig(
            **{**config.collector.model_dump(), "poll_interval_seconds": args.interval}
        )
    if args.server:
        config.source = SourceConfig(**{**config.source.model_dump(), "servers": args.server})
    if args.host:
        config.web.host = args.host
    if args.port is not None:
        config.web.port = args.port

    tags = _split_tags(args.tags)
    if tags:
        config.report.tags = tags

    return config


def build_sources(config: Config, file_path: Optional[str] = None) -> list[FeedSource]:
    """Create the feed sources to poll.

    Args:
        config: Application configuration
        file_path: Optional JSON file replacing the configured servers

    Returns:
        Sources in polling order
    """
    if file_path:
        return [FileSource(file_path)]
    return [MastodonSource.from_config(server, config.source) for server in config.source.servers]


def wait_for_interrupt() -> None:
    """Block until SIGINT or SIGTERM is received."""
    stop_event = threading.Event()

    def _handler(signum, frame):
        logger.debug(f"Received signal {signum}")
        stop_event.set()

    previous = {
        sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        while not stop_event.wait(0.5):
            pass
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def run_collect(config: Config, sources: list[FeedSource], http: bool = False) -> int:
    """Run the collect command.

    Args:
        config: Application configuration
        sources: Feed sources to poll
        http: Keep collecting and serve the stats endpoint until interrupted

    Returns:
        Process exit code
    """
    tags = config.report.tags
    if not tags:
        logger.error("No tags given; use -t/--tags")
        return 1

    store = PostStore.open(config.database)
    try:
        collector = Collector(sources, store, config.collector)
        reporter = Reporter(store, config.report)

        if http:
            app = create_app(reporter, collector, debug=config.web.debug)
            server = StatsServer(
                app,
                host=config.web.host,
                port=config.web.port,
                shutdown_grace_seconds=config.web.shutdown_grace_seconds,
            )
            server.start()

            try:
                collector.start(tags)
                wait_for_interrupt()
            finally:
                collector.stop()
                server.shutdown()
            return 0

        try:
            collector.collect_once(tags)
        except CollectorError as e:
            logger.error(f"Collection incomplete: {e}")

        posts = reporter.report(tags)
        if not posts:
            print("no results", file=sys.stderr)
            return 0

        print(Reporter.render_json(posts))
        return 0
    finally:
        for source in sources:
            source.close()
        store.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the ``tag-aggregation`` command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_logger(config.logging)

    if args.command == "collect":
        try:
            return run_collect(config, build_sources(config, args.file), http=args.http)
        except TagAggregationError as e:
            logger.error(f"{e}")
            return 1

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
