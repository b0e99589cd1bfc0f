from __future__ import annotations

import argparse
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .commands import detect as cmd_detect
from .commands import doctor as cmd_doctor
from .commands import import_records as cmd_import
from .commands import mark as cmd_mark
from .commands import runs as cmd_runs
from .config import Settings, find_config
from .core.matching import MatcherError
from .store import CatalogStore

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}


class RelativePathFormatter(logging.Formatter):
    """Shows paths under the working directory relative to it."""

    def __init__(self, fmt: str, base: Path) -> None:
        super().__init__(fmt)
        self.base = str(base)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if self.base and self.base != "/":
            message = message.replace(f"{self.base}/", "")
        return message


class ColorFormatter(RelativePathFormatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


class WarningBufferHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.records: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:  # pragma: no cover
            msg = record.getMessage()
        self.records.append(msg)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Find and flag duplicate catalog titles")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    parser.add_argument(
        "--strategy",
        choices=["greedy", "transitive"],
        default=None,
        help="Override matching.strategy from the config",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    detect_parser = subparsers.add_parser(
        "detect", help="Report duplicate groups without changing anything"
    )
    detect_parser.add_argument(
        "--input", type=Path, default=None, help="CSV/JSON/JSONL file (defaults to source.path or the catalog)"
    )
    detect_parser.add_argument(
        "--report", type=Path, default=None, help="Write the JSON report here instead of report.output"
    )
    detect_parser.add_argument(
        "--quiet", action="store_true", help="Skip the terminal report"
    )
    mark_parser = subparsers.add_parser(
        "mark", help="Reset and re-apply duplicate flags in the catalog"
    )
    mark_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only show which books would be marked",
    )
    import_parser = subparsers.add_parser(
        "import", help="Load records from a file into the catalog"
    )
    import_parser.add_argument("path", type=Path, help="CSV, JSON or JSON Lines file")
    runs_parser = subparsers.add_parser("runs", help="Show recorded detect/mark/import runs")
    runs_parser.add_argument(
        "--limit", type=int, default=20, help="Number of runs to show (max 1000)"
    )
    runs_parser.add_argument(
        "--event", default=None, help="Filter by event type (e.g. mark_complete)"
    )
    runs_parser.add_argument(
        "--since",
        default=None,
        help="Only show runs after this id or timestamp (YYYY-MM-DD HH:MM:SS)",
    )
    runs_parser.add_argument(
        "--json", action="store_true", help="Emit machine-readable JSON to stdout"
    )
    subparsers.add_parser("doctor", help="Check config, record source and catalog")
    return parser


def configure_logging(level_name: str, warn_log_path: Path) -> WarningBufferHandler:
    log_level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    base = Path.cwd()

    color_handler = logging.StreamHandler()
    color_handler.setFormatter(ColorFormatter(LOG_FORMAT, base))
    root_logger.addHandler(color_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(RelativePathFormatter(LOG_FORMAT, base))
    root_logger.addHandler(warn_buffer)

    file_handler = logging.FileHandler(warn_log_path, mode="w", encoding="utf-8", delay=True)
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(RelativePathFormatter(LOG_FORMAT, base))
    root_logger.addHandler(file_handler)
    return warn_buffer


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = Settings.load(find_config(args.config))
    except (FileNotFoundError, ValidationError, yaml.YAMLError) as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc
    if args.strategy:
        settings.matching.strategy = args.strategy

    warn_log_path = Path.cwd() / "catalog-dedupe-warnings.log"
    warn_buffer = configure_logging(args.log_level, warn_log_path)

    store: CatalogStore | None = None
    if args.command in {"mark", "import", "runs"} or (
        args.command == "detect" and Path(settings.store.path).exists()
    ):
        store = CatalogStore(Path(settings.store.path))

    try:
        match args.command:
            case "detect":
                cmd_detect.run(
                    settings,
                    input_path=args.input,
                    report_path=args.report,
                    store=store,
                    quiet=args.quiet,
                )
            case "mark":
                cmd_mark.run(store, settings, dry_run=args.dry_run)
            case "import":
                cmd_import.run(store, settings, args.path)
            case "runs":
                cmd_runs.run(
                    store,
                    limit=args.limit,
                    event=args.event,
                    since=args.since,
                    json_output=args.json,
                )
            case "doctor":
                report = cmd_doctor.run(settings)
                for line in report.lines():
                    print(line)
                if not report.ok:
                    raise SystemExit(1)
            case _:
                parser.error("Unknown command")
    except (MatcherError, ValueError, FileNotFoundError) as exc:
        logging.getLogger(__name__).error("%s", exc)
        raise SystemExit(1) from exc
    finally:
        if store:
            store.close()
        if warn_buffer.records:
            print("\n\033[33mWarnings/Errors summary:\033[0m")
            for line in warn_buffer.records:
                print(f" - {line}")
            print(f"\nFull warning log: {warn_log_path}")


if __name__ == "__main__":  # pragma: no cover
    main()
