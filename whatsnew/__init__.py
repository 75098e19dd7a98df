"""Per-release reports of new, deprecated and removed Java API elements."""
from .diff import (
    SinceResolver,
    build_report,
    deprecated_report,
    diff_deprecated,
    diff_new,
    diff_removed,
    new_report,
    removed_report,
)
from .model import ApiSnapshot, ClassKind, Javadoc, SnapshotBuilder
from .report import ChangeReport, ReportKind
from .retention import cumulative_view, merge, retain_since
from .serialization import dump_snapshot, load_snapshot, load_snapshots
from .signatures import MemberKind
from .version import Version, VersionRegistry

__all__ = [
    "ApiSnapshot",
    "ChangeReport",
    "ClassKind",
    "Javadoc",
    "MemberKind",
    "ReportKind",
    "SinceResolver",
    "SnapshotBuilder",
    "Version",
    "VersionRegistry",
    "build_report",
    "cumulative_view",
    "deprecated_report",
    "diff_deprecated",
    "diff_new",
    "diff_removed",
    "dump_snapshot",
    "load_snapshot",
    "load_snapshots",
    "merge",
    "new_report",
    "removed_report",
    "retain_since",
]
