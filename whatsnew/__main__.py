"""
Command line entry point.

    python -m whatsnew <snapshot-dir> <output-dir> [--minimal-version V]

Loads every ``java-<version>.json`` in the snapshot directory and writes
``new.json``, ``deprecated.json`` and ``removed.json`` to the output
directory.
"""
from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import Settings, configure_logging, split_list
from .diff import build_report
from .errors import WhatsNewError
from .report import ReportKind
from .serialization import load_snapshots
from .version import VersionRegistry

logger = logging.getLogger("whatsnew")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    defaults = Settings.from_env()
    parser = argparse.ArgumentParser(
        prog="whatsnew",
        description="Report new, deprecated and removed Java API elements per release",
    )
    parser.add_argument("snapshot_dir", type=Path, help="Directory with java-<version>.json snapshots")
    parser.add_argument("output_dir", type=Path, help="Directory to write the reports to")
    parser.add_argument("--minimal-version",
                        dest="minimal_version",
                        default=defaults.minimal_version,
                        help="Oldest release to report new elements for (default: %(default)s)")
    parser.add_argument("--ignore-packages",
                        dest="ignore_packages",
                        default=",".join(defaults.ignore_packages),
                        help="Comma-separated packages to skip")
    parser.add_argument("--log-level",
                        dest="log_level",
                        default=defaults.log_level,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        type=str.upper)
    return parser.parse_args(argv)


def run(settings: Settings, output_dir: Path) -> dict[ReportKind, Path]:
    registry = VersionRegistry()
    floor = registry.parse(settings.minimal_version)
    snapshots = load_snapshots(settings.snapshot_dir, registry, settings.ignore_packages)
    if not snapshots:
        raise WhatsNewError(f"No java-<version>.json snapshots found in {settings.snapshot_dir}")

    output_dir.mkdir(parents=True, exist_ok=True)
    written = {}
    for kind in ReportKind:
        report = build_report(kind, snapshots, floor)
        path = output_dir / f"{kind.value}.json"
        path.write_text(json.dumps(report.to_response().model_dump(mode="json"), indent=2), encoding="utf-8")
        logger.info("Wrote %s report with %d releases to %s", kind.value, len(report.versions()), path)
        written[kind] = path
    return written


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = Settings(
            snapshot_dir=args.snapshot_dir,
            minimal_version=args.minimal_version,
            ignore_packages=split_list(args.ignore_packages),
            log_level=args.log_level,
        )
    except ValueError as exc:
        print(f"whatsnew: {exc}", file=sys.stderr)
        return 2

    configure_logging(settings)
    try:
        run(settings, args.output_dir)
    except (WhatsNewError, OSError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
