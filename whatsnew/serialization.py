"""
Persisted snapshot format.

One JSON file per release, named ``java-<version>.json``. The release is
taken from the file name; ``since`` values inside the file are the
scraped ``@since`` tags of each element. Releases with modules store a
``modules`` object, older ones a flat ``packages`` object.
"""
from __future__ import annotations
import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import InvalidVersionFormat, MalformedSnapshot
from .model import (
    ApiClass,
    ApiSnapshot,
    ClassKind,
    Javadoc,
    Member,
    Module,
    Package,
    SnapshotBuilder,
)
from .signatures import MemberKind
from .version import Version, VersionRegistry

logger = logging.getLogger(__name__)

SNAPSHOT_FILE_PATTERN = re.compile(r"^java-(\d+(?:[.u]\d+)*)\.json$")

# member kind → property name in a class document
MEMBER_SECTIONS = (
    (MemberKind.CONSTRUCTOR, "constructors"),
    (MemberKind.FIELD,       "fields"),
    (MemberKind.METHOD,      "methods"),
)


# ── Documents ────────────────────────────────────────────────────────

class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class VersionedDocument(_Document):
    since: Optional[str] = None
    deprecated: bool = False


class MemberDocument(VersionedDocument):
    pass


class ClassDocument(VersionedDocument):
    type: ClassKind
    super_class: Optional[str] = Field(default=None, alias="superClass")
    interfaces: list[str]
    constructors: dict[str, MemberDocument]
    field_members: dict[str, MemberDocument] = Field(alias="fields")
    methods: dict[str, MemberDocument]
    inherited_methods: list[str] = Field(alias="inheritedMethods")

    def members(self, kind: MemberKind) -> dict[str, MemberDocument]:
        if kind is MemberKind.CONSTRUCTOR:
            return self.constructors
        if kind is MemberKind.FIELD:
            return self.field_members
        return self.methods


class PackageDocument(VersionedDocument):
    classes: dict[str, ClassDocument]


class ModuleDocument(VersionedDocument):
    packages: dict[str, PackageDocument]


class JavadocDocument(_Document):
    base_url: str = Field(alias="baseURL")
    uses_modules: bool = Field(alias="useModules")


class SnapshotDocument(_Document):
    javadoc: JavadocDocument
    modules: Optional[dict[str, ModuleDocument]] = None
    packages: Optional[dict[str, PackageDocument]] = None

    @model_validator(mode="after")
    def _modules_or_packages(self) -> SnapshotDocument:
        if (self.modules is None) == (self.packages is None):
            raise ValueError("exactly one of 'modules' or 'packages' is required")
        return self


# ── Loading ──────────────────────────────────────────────────────────

def load_snapshot(
    data: Any,
    registry: VersionRegistry,
    ignore_packages: Iterable[str] = (),
    source: str = "<snapshot>",
) -> ApiSnapshot:
    """Build a snapshot from its decoded JSON document."""
    try:
        document = SnapshotDocument.model_validate(data)
    except ValidationError as exc:
        raise MalformedSnapshot(f"{source}: {exc}") from exc

    ignored = set(ignore_packages)
    builder = SnapshotBuilder(Javadoc(
        base_url=document.javadoc.base_url,
        uses_modules=document.javadoc.uses_modules,
    ))

    try:
        if document.packages is not None:
            builder.add_automatic_module()
            _load_packages(builder, None, document.packages, registry, ignored, source)
        else:
            for module_name, module_doc in document.modules.items():
                since = _parse_since(registry, module_doc.since, source, module_name)
                builder.add_module(module_name, since, module_doc.deprecated)
                _load_packages(builder, module_name, module_doc.packages, registry, ignored, source)
    except ValidationError as exc:
        raise MalformedSnapshot(f"{source}: {exc}") from exc

    return builder.build()


def _load_packages(
    builder: SnapshotBuilder,
    module_name: Optional[str],
    packages: dict[str, PackageDocument],
    registry: VersionRegistry,
    ignored: set[str],
    source: str,
) -> None:
    for package_name, package_doc in packages.items():
        if package_name in ignored:
            logger.debug("Ignoring package %s", package_name)
            continue
        package_path = package_name if module_name is None else f"{module_name}/{package_name}"
        since = _parse_since(registry, package_doc.since, source, package_path)
        builder.add_package(module_name, package_name, since, package_doc.deprecated)
        for class_name, class_doc in package_doc.classes.items():
            class_path = f"{package_path}.{class_name}"
            builder.add_class(
                package_name,
                class_name,
                kind=class_doc.type,
                super_class=class_doc.super_class,
                interfaces=class_doc.interfaces,
                inherited_methods=class_doc.inherited_methods,
                since=_parse_since(registry, class_doc.since, source, class_path),
                deprecated=class_doc.deprecated,
            )
            for kind, _ in MEMBER_SECTIONS:
                for signature, member_doc in class_doc.members(kind).items():
                    builder.add_member(
                        package_name,
                        class_name,
                        kind,
                        signature,
                        since=_parse_since(registry, member_doc.since, source, f"{class_path}#{signature}"),
                        deprecated=member_doc.deprecated,
                    )


def _parse_since(registry: VersionRegistry, value: Optional[str], source: str, path: str) -> Optional[Version]:
    try:
        return registry.parse_optional(value)
    except InvalidVersionFormat as exc:
        raise MalformedSnapshot(f"{source}: {path}: {exc}") from exc


def read_snapshot(path: Path, registry: VersionRegistry, ignore_packages: Iterable[str] = ()) -> ApiSnapshot:
    logger.info("Loading Java API from file %s", path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise MalformedSnapshot(f"{path}: invalid JSON: {exc}") from exc
    return load_snapshot(data, registry, ignore_packages, source=str(path))


def snapshot_version(path: Path, registry: VersionRegistry) -> Optional[Version]:
    """The release a snapshot file describes, or None if it is not a snapshot file."""
    match = SNAPSHOT_FILE_PATTERN.match(path.name)
    return registry.parse(match.group(1)) if match else None


def load_snapshots(
    directory: Path,
    registry: VersionRegistry,
    ignore_packages: Iterable[str] = (),
) -> dict[Version, ApiSnapshot]:
    """Load every ``java-<version>.json`` in a directory, ordered by version."""
    ignore_packages = tuple(ignore_packages)
    snapshots: dict[Version, ApiSnapshot] = {}
    for path in sorted(Path(directory).iterdir()):
        if not path.is_file():
            continue
        version = snapshot_version(path, registry)
        if version is None:
            continue
        if version in snapshots:
            raise MalformedSnapshot(f"{path}: duplicate snapshot for version {version}")
        snapshots[version] = read_snapshot(path, registry, ignore_packages)

    logger.info("Loaded %d Java APIs from %s", len(snapshots), directory)
    return dict(sorted(snapshots.items()))


# ── Dumping ──────────────────────────────────────────────────────────

def dump_snapshot(snapshot: ApiSnapshot) -> dict[str, Any]:
    """The persisted JSON document of a snapshot."""
    document: dict[str, Any] = {
        "javadoc": {
            "baseURL": snapshot.javadoc.base_url,
            "useModules": snapshot.javadoc.uses_modules,
        },
    }
    automatic = snapshot.find_automatic_module()
    if automatic is None:
        document["modules"] = {m.name: _dump_module(m) for m in snapshot.modules.values()}
    else:
        document["packages"] = {p.name: _dump_package(p) for p in automatic.packages.values()}
    return document


def snapshot_to_json(snapshot: ApiSnapshot) -> str:
    return json.dumps(dump_snapshot(snapshot), indent=2)


def write_snapshot(snapshot: ApiSnapshot, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(snapshot_to_json(snapshot), encoding="utf-8")
    logger.info("Wrote Java API to file %s", path)


def _dump_versioned(node: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if node.since is not None:
        out["since"] = str(node.since)
    if node.deprecated:
        out["deprecated"] = True
    return out


def _dump_module(module: Module) -> dict[str, Any]:
    out = _dump_versioned(module)
    out["packages"] = {p.name: _dump_package(p) for p in module.packages.values()}
    return out


def _dump_package(package: Package) -> dict[str, Any]:
    out = _dump_versioned(package)
    out["classes"] = {c.name: _dump_class(c) for c in package.classes.values()}
    return out


def _dump_class(api_class: ApiClass) -> dict[str, Any]:
    out: dict[str, Any] = {"type": api_class.kind.value}
    out.update(_dump_versioned(api_class))
    if api_class.super_class is not None:
        out["superClass"] = api_class.super_class
    out["interfaces"] = api_class.interfaces.names()
    for kind, section in MEMBER_SECTIONS:
        out[section] = {
            m.signature: _dump_member(m)
            for m in api_class.members.values()
            if m.kind is kind
        }
    out["inheritedMethods"] = api_class.inherited_signatures()
    return out


def _dump_member(member: Member) -> dict[str, Any]:
    return _dump_versioned(member)
