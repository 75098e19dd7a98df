"""
Per-release change reports.

A ``ChangeReport`` collects findings of one kind (new, deprecated or
removed) keyed by release, newest first. Releases with modules group
their findings by module; older releases list packages directly. Entries
are created on demand, so the diff engine can record a member and get its
enclosing class, package and module entries for free.
"""
from __future__ import annotations
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from .errors import ConflictingEntity
from .model import ClassKind, Javadoc
from .signatures import MemberKind, normalize_constructor
from .version import Version


class ReportKind(str, Enum):
    NEW        = "new"
    DEPRECATED = "deprecated"
    REMOVED    = "removed"


# ── Entries ──────────────────────────────────────────────────────────

class ReportMember(BaseModel):
    kind: MemberKind
    signature: str                      # display form

    @property
    def sort_key(self) -> tuple[str, str]:
        signature = self.signature
        if self.kind is MemberKind.CONSTRUCTOR:
            signature = normalize_constructor(signature)
        return (signature, self.kind.value)


class ReportClass(BaseModel):
    name: str
    full_name: str
    kind: ClassKind
    super_class: Optional[str] = None
    interfaces: list[str] = Field(default_factory=list)
    members: dict[tuple[str, str], ReportMember] = Field(default_factory=dict, exclude=True)

    @property
    def inheritance_keyword(self) -> str:
        return self.kind.inheritance_keyword

    def add_member(self, kind: MemberKind, signature: str) -> ReportMember:
        member = ReportMember(kind=kind, signature=signature)
        return self.members.setdefault(member.sort_key, member)

    def sorted_members(self) -> list[ReportMember]:
        return [self.members[key] for key in sorted(self.members)]

    def has_content(self) -> bool:
        return bool(self.members)


class ReportPackage(BaseModel):
    name: str
    module_name: Optional[str] = None
    classes: dict[str, ReportClass] = Field(default_factory=dict)

    def ensure_class(
        self,
        name: str,
        kind: ClassKind,
        super_class: Optional[str] = None,
        interfaces: Optional[list[str]] = None,
    ) -> ReportClass:
        entry = self.classes.get(name)
        if entry is None:
            entry = ReportClass(
                name=name,
                full_name=f"{self.name}.{name}",
                kind=kind,
                super_class=super_class,
                interfaces=list(interfaces or []),
            )
            self.classes[name] = entry
        elif entry.kind is not kind:
            raise ConflictingEntity(
                f"Non-matching Java class encountered for class {self.name}.{name}; "
                f"expected type {kind.value}, was {entry.kind.value}"
            )
        return entry

    def has_content(self) -> bool:
        return bool(self.classes)


class ReportModule(BaseModel):
    name: str
    packages: dict[str, ReportPackage] = Field(default_factory=dict)

    def ensure_package(self, name: str) -> ReportPackage:
        entry = self.packages.get(name)
        if entry is None:
            entry = self.packages[name] = ReportPackage(name=name, module_name=self.name)
        return entry

    def has_content(self) -> bool:
        return bool(self.packages)


# ── Response models ──────────────────────────────────────────────────

class MemberView(BaseModel):
    kind: MemberKind
    signature: str


class ClassView(BaseModel):
    name: str
    full_name: str
    kind: ClassKind
    super_class: Optional[str] = None
    interfaces: list[str] = []
    members: list[MemberView] = []


class PackageView(BaseModel):
    name: str
    module_name: Optional[str] = None
    classes: list[ClassView] = []


class ModuleView(BaseModel):
    name: str
    packages: list[PackageView] = []


class VersionSection(BaseModel):
    """Everything reported for one release."""
    version: str
    javadoc: Optional[Javadoc] = None
    modules: list[ModuleView] = []
    packages: list[PackageView] = []


class ReportResponse(BaseModel):
    kind: ReportKind
    versions: list[VersionSection]


# ── Report ───────────────────────────────────────────────────────────

class ChangeReport:
    """
    Findings of one kind for a chain of releases.

    Usage:
        report = ChangeReport(ReportKind.NEW)
        report.ensure_package(version, "java.base", "java.util") \\
              .ensure_class("List", ClassKind.INTERFACE) \\
              .add_member(MemberKind.METHOD, "of()")
        response = report.to_response()
    """

    def __init__(self, kind: ReportKind) -> None:
        self.kind = kind
        self.modules_per_version: dict[Version, dict[str, ReportModule]] = {}
        self.packages_per_version: dict[Version, dict[str, ReportPackage]] = {}
        self.javadocs: dict[Version, Javadoc] = {}

    def ensure_module(self, version: Version, module_name: str) -> ReportModule:
        modules = self.modules_per_version.setdefault(version, {})
        entry = modules.get(module_name)
        if entry is None:
            entry = modules[module_name] = ReportModule(name=module_name)
        return entry

    def ensure_package(self, version: Version, module_name: Optional[str], package_name: str) -> ReportPackage:
        """
        Entry for a package, under its module when the release has modules.

        ``module_name`` is None for packages of the automatic module.
        """
        if module_name is not None and version.has_modules():
            return self.ensure_module(version, module_name).ensure_package(package_name)
        packages = self.packages_per_version.setdefault(version, {})
        entry = packages.get(package_name)
        if entry is None:
            entry = packages[package_name] = ReportPackage(name=package_name)
        return entry

    def replace_module(self, version: Version, module_name: str) -> ReportModule:
        """Collapse a module entry into a bare 'entire module' entry."""
        entry = ReportModule(name=module_name)
        self.modules_per_version.setdefault(version, {})[module_name] = entry
        return entry

    def versions(self) -> list[Version]:
        return sorted(set(self.modules_per_version) | set(self.packages_per_version), reverse=True)

    def modules(self, version: Version) -> list[ReportModule]:
        entries = self.modules_per_version.get(version, {})
        return [entries[name] for name in sorted(entries)]

    def packages(self, version: Version) -> list[ReportPackage]:
        entries = self.packages_per_version.get(version, {})
        return [entries[name] for name in sorted(entries)]

    def is_empty(self) -> bool:
        return not self.versions()

    # ── Conversion ───────────────────────────────────────────────────

    def section(self, version: Version) -> VersionSection:
        return VersionSection(
            version=str(version),
            javadoc=self.javadocs.get(version),
            modules=[_module_view(m) for m in self.modules(version)],
            packages=[_package_view(p) for p in self.packages(version)],
        )

    def to_response(self) -> ReportResponse:
        return ReportResponse(kind=self.kind, versions=[self.section(v) for v in self.versions()])


def _module_view(module: ReportModule) -> ModuleView:
    packages = [module.packages[name] for name in sorted(module.packages)]
    return ModuleView(name=module.name, packages=[_package_view(p) for p in packages])


def _package_view(package: ReportPackage) -> PackageView:
    classes = [package.classes[name] for name in sorted(package.classes)]
    return PackageView(
        name=package.name,
        module_name=package.module_name,
        classes=[_class_view(c) for c in classes],
    )


def _class_view(entry: ReportClass) -> ClassView:
    return ClassView(
        name=entry.name,
        full_name=entry.full_name,
        kind=entry.kind,
        super_class=entry.super_class,
        interfaces=entry.interfaces,
        members=[MemberView(kind=m.kind, signature=m.signature) for m in entry.sorted_members()],
    )
