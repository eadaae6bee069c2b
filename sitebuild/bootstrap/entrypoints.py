"""
bootstrap/entrypoints.py - Application entry points

Runs a full build of a site, then keeps watching a change channel and
rebuilds only the units each change affects. The channel is stdin: one
JSON change notification per line, as sent by a parent file watcher.

    $ sitebuild mysite.adapter:SiteAdapter --debounce-ms 50
"""

from __future__ import annotations
from typing import IO, Optional
import argparse
import asyncio
import json
import logging
import sys

from sitebuild.core.constants import DEFAULT_LOG_FORMAT, VERSION

logger = logging.getLogger("bootstrap.entrypoints")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    json_format: bool = False,
    fmt: str = DEFAULT_LOG_FORMAT,
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
        fmt: Format string for plain text logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        class JSONFormatter(logging.Formatter):
            def format(self, record):
                return json.dumps({
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                })

        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(fmt)

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Incremental static site builder",
        prog="sitebuild",
    )

    parser.add_argument(
        "adapter",
        help="Site adapter as 'package.module:attribute'",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--debounce-ms",
        type=int,
        help="Quiet period before a batch of changes is rebuilt",
        default=None,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run the full build and exit without watching for changes",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path",
        default=None,
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines",
    )
    return parser


async def read_changes(session, stream: IO[str]) -> None:
    """
    Feed change notifications from a line stream into the session.

    Malformed lines are logged and skipped. Returns at end of stream
    after pending changes are flushed.
    """
    from sitebuild.errors.taxonomy import ProtocolError
    from sitebuild.protocol.messages import parse_message

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()
    consumer = asyncio.create_task(session.run(queue))

    try:
        while True:
            try:
                line = await loop.run_in_executor(None, stream.readline)
            except UnicodeDecodeError as e:
                logger.warning(f"Skipping undecodable change notification: {e}")
                continue
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            try:
                message = parse_message(line)
            except ProtocolError as e:
                logger.warning(f"Skipping malformed change notification: {e.message}")
                continue
            if message is not None:
                await queue.put(message)
    finally:
        await queue.put(None)
        await consumer


def cli_main(args: list = None, stdin: Optional[IO[str]] = None) -> int:
    """
    CLI entry point.

    Args:
        args: Command line arguments (defaults to sys.argv)
        stdin: Change notification stream (defaults to sys.stdin)

    Returns:
        Exit code
    """
    parsed = build_parser().parse_args(args)

    from sitebuild.errors.taxonomy import BuildError
    from .config import load_config

    try:
        config = load_config(parsed.config)
        if parsed.debounce_ms is not None:
            config.build.debounce_ms = parsed.debounce_ms
            config.validate()
    except BuildError as e:
        print(f"sitebuild: {e.message}", file=sys.stderr)
        return EXIT_USAGE

    if parsed.verbose or config.debug:
        log_level = "DEBUG"
    else:
        log_level = parsed.log_level or config.logging.level
    setup_logging(
        level=log_level,
        log_file=parsed.log_file or config.logging.log_file,
        json_format=parsed.json_logs or config.logging.json_logs,
        fmt=config.logging.format,
    )
    logger.info(f"sitebuild {config.version} ({config.environment})")

    try:
        from sitebuild.build.adapters import load_adapter
        from sitebuild.build.session import BuildSession

        adapter = load_adapter(parsed.adapter)
        adapter.configure(dict(config.settings))
        session = BuildSession.from_adapter(adapter, config.build)
    except BuildError as e:
        logger.error(e.message)
        return EXIT_USAGE

    try:
        result = session.start()

        if not parsed.once:
            asyncio.run(read_changes(session, stdin or sys.stdin))

        report = session.error_report()
        if report.total_errors:
            logger.warning(report.summary)

        if parsed.once:
            return EXIT_OK if result.success else EXIT_FAILURE
        if session.driver.failed_units:
            logger.error(
                f"{len(session.driver.failed_units)} unit(s) still failing at exit"
            )
            return EXIT_FAILURE
        return EXIT_OK

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return EXIT_FAILURE


def main() -> None:
    """Console script entry point."""
    sys.exit(cli_main(sys.argv[1:]))


if __name__ == "__main__":
    main()
