"""
FastAPI backend for the Java API change reports.

Endpoints:
  GET  /versions                   → loaded releases
  GET  /snapshots/{version}        → persisted form of one snapshot
  POST /snapshots/{version}        → (dev) load or replace one snapshot
  GET  /reports/{kind}             → new / deprecated / removed, all releases
  GET  /reports/{kind}/{version}   → one release's section of a report
"""
from __future__ import annotations
import logging
from typing import Any
from fastapi import Body, FastAPI, HTTPException
from pydantic import BaseModel

from .config import Settings, configure_logging
from .diff import build_report
from .errors import InvalidVersionFormat, WhatsNewError
from .model import ApiSnapshot, Javadoc
from .report import ChangeReport, ReportKind, ReportResponse, VersionSection
from .serialization import dump_snapshot, load_snapshot, load_snapshots
from .version import Version, VersionRegistry

logger = logging.getLogger(__name__)

# ── App setup ───────────────────────────────────────────────────────
settings = Settings.from_env()
configure_logging(settings)

app = FastAPI(
    title="What's New in Java",
    description="New, deprecated and removed Java API elements per release.",
    version="1.0.0",
)


class ReleaseInfo(BaseModel):
    version: str
    javadoc: Javadoc
    has_modules: bool
    package_count: int


# ── In-memory store ─────────────────────────────────────────────────
_registry = VersionRegistry()
_snapshots: dict[Version, ApiSnapshot] = {}
_reports: dict[ReportKind, ChangeReport] = {}


def _refresh_cache() -> None:
    _reports.clear()


def reset_store() -> None:
    """Forget every loaded snapshot."""
    _snapshots.clear()
    _refresh_cache()


def _load_snapshot_dir() -> None:
    directory = settings.snapshot_dir
    if not directory.is_dir():
        logger.info("Snapshot directory %s not found; starting empty", directory)
        return
    _snapshots.update(load_snapshots(directory, _registry, settings.ignore_packages))
    _refresh_cache()


_load_snapshot_dir()


def _report(kind: ReportKind) -> ChangeReport:
    report = _reports.get(kind)
    if report is None:
        floor = _registry.parse(settings.minimal_version)
        snapshots = dict(sorted(_snapshots.items()))
        report = _reports[kind] = build_report(kind, snapshots, floor)
    return report


def _parse_version(value: str) -> Version:
    try:
        return _registry.parse(value)
    except InvalidVersionFormat as exc:
        raise HTTPException(400, str(exc)) from exc


def _snapshot(value: str) -> tuple[Version, ApiSnapshot]:
    version = _parse_version(value)
    snapshot = _snapshots.get(version)
    if snapshot is None:
        raise HTTPException(404, f"Version '{value}' not loaded")
    return version, snapshot


# ── Routes ───────────────────────────────────────────────────────────

@app.get("/versions", response_model=list[ReleaseInfo], summary="List loaded releases")
async def get_versions():
    """Loaded releases, oldest first."""
    return [
        ReleaseInfo(
            version=str(version),
            javadoc=snapshot.javadoc,
            has_modules=not snapshot.has_automatic_module(),
            package_count=sum(1 for _ in snapshot.all_packages()),
        )
        for version, snapshot in sorted(_snapshots.items())
    ]


@app.get("/snapshots/{version}", summary="Get one snapshot in its persisted form")
async def get_snapshot(version: str):
    _, snapshot = _snapshot(version)
    return dump_snapshot(snapshot)


@app.post("/snapshots/{version}", summary="(Dev) Load or replace one snapshot")
async def put_snapshot(version: str, document: dict[str, Any] = Body(...)):
    """Replaces the snapshot for a release; reports are recomputed on next access."""
    parsed = _parse_version(version)
    try:
        snapshot = load_snapshot(document, _registry, settings.ignore_packages, source=f"java-{version}.json")
    except WhatsNewError as exc:
        raise HTTPException(400, str(exc)) from exc

    replaced = parsed in _snapshots
    _snapshots[parsed] = snapshot
    _refresh_cache()
    return {"version": str(parsed), "replaced": replaced, "loaded": len(_snapshots)}


@app.get("/reports/{kind}", response_model=ReportResponse, summary="Get a full change report")
async def get_report(kind: ReportKind):
    return _report(kind).to_response()


@app.get("/reports/{kind}/{version}", response_model=VersionSection, summary="Get one release of a report")
async def get_report_section(kind: ReportKind, version: str):
    parsed = _parse_version(version)
    report = _report(kind)
    if parsed not in report.versions():
        raise HTTPException(404, f"No {kind.value} elements for version '{version}'")
    return report.section(parsed)