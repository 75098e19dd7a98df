"""
New / deprecated / removed detection across releases.

Each computation compares two adjacent snapshots (current, previous) and
attributes its findings to the current release. The walk is top-down and
stops at the highest level where a whole subtree changed: a new package is
reported as a package, not as every class in it.

If either snapshot predates the module system the walk starts at the
package level, matching packages by name across modules; otherwise it
starts with modules.

Whole-chain reports walk all snapshots pairwise from newest to oldest. The
new report additionally folds in the scraped ``@since`` tags of every
element ever seen, since those can place elements that structural
comparison cannot (for instance when the oldest snapshot is not the first
release).
"""
from __future__ import annotations
import logging
from typing import Callable, Iterable, Iterator, Mapping, Optional

from .model import AUTOMATIC_MODULE, ApiClass, ApiSnapshot, Member, Module, Package
from .report import ChangeReport, ReportClass, ReportKind, ReportPackage
from .retention import cumulative_view, retain_since
from .signatures import MemberKey, MemberKind
from .version import Version

logger = logging.getLogger(__name__)

PackageEntry = Callable[[], ReportPackage]


# ── Since resolution ─────────────────────────────────────────────────

class SinceResolver:
    """
    Resolves the since of an element from every snapshot that contains it.

    Javadoc metadata is not always consistent between releases. When the
    same element carries different since values, the highest one at or
    above the floor wins (the highest overall if none is) and a warning is
    logged.
    """

    def __init__(self, snapshots: Mapping[Version, ApiSnapshot], floor: Version) -> None:
        self._snapshots = list(snapshots.values())
        self.floor = floor
        self._cache: dict[tuple, Optional[Version]] = {}

    def module(self, name: str) -> Optional[Version]:
        return self._cached(("module", name), lambda: (
            m.since for m in (s.find_module(name) for s in self._snapshots) if m is not None
        ), name)

    def package(self, name: str) -> Optional[Version]:
        return self._cached(("package", name), lambda: (
            p.since for p in (s.find_package(name) for s in self._snapshots) if p is not None
        ), name)

    def api_class(self, package_name: str, class_name: str) -> Optional[Version]:
        return self._cached(("class", package_name, class_name), lambda: (
            c.since for c in (s.find_class(package_name, class_name) for s in self._snapshots) if c is not None
        ), f"{package_name}.{class_name}")

    def member(self, package_name: str, class_name: str, key: MemberKey) -> Optional[Version]:
        def values() -> Iterator[Optional[Version]]:
            for snapshot in self._snapshots:
                api_class = snapshot.find_class(package_name, class_name)
                member = None if api_class is None else api_class.find_member_by_key(key)
                if member is not None:
                    yield member.since
        return self._cached(("member", package_name, class_name, key), values,
                            f"{package_name}.{class_name}.{key.signature}")

    def _cached(
        self,
        key: tuple,
        values: Callable[[], Iterable[Optional[Version]]],
        source: str,
    ) -> Optional[Version]:
        if key not in self._cache:
            self._cache[key] = self.resolve(values(), source)
        return self._cache[key]

    def resolve(self, values: Iterable[Optional[Version]], source: str) -> Optional[Version]:
        versions = {v for v in values if v is not None}
        if not versions:
            return None
        if len(versions) == 1:
            return next(iter(versions))

        candidates = [v for v in versions if v >= self.floor]
        chosen = max(candidates or versions)
        logger.warning(
            "Found multiple since values for %s: %s; using %s",
            source,
            ", ".join(str(v) for v in sorted(versions)),
            chosen,
        )
        return chosen


# ── Shared walking ───────────────────────────────────────────────────

def pairs(snapshots: Mapping[Version, ApiSnapshot]) -> Iterator[tuple[Version, ApiSnapshot, ApiSnapshot]]:
    """(release, current, previous) for each adjacent pair, newest first."""
    versions = sorted(snapshots, reverse=True)
    for current, previous in zip(versions, versions[1:]):
        yield current, snapshots[current], snapshots[previous]


def report_module_name(package: Package) -> Optional[str]:
    return None if package.module_name == AUTOMATIC_MODULE else package.module_name


def class_entry(package_entry: ReportPackage, api_class: ApiClass) -> ReportClass:
    return package_entry.ensure_class(
        api_class.name,
        api_class.kind,
        api_class.super_class,
        api_class.interfaces.names(),
    )


def is_inherited(api_class: ApiClass, member: Member) -> bool:
    return member.kind is MemberKind.METHOD and api_class.is_inherited_method(member.signature)


class _PairDiff:
    """One release's comparison; subclasses decide what counts as a finding."""

    def __init__(self, report: ChangeReport, label: Version) -> None:
        self.report = report
        self.label = label

    def run(self, current: ApiSnapshot, previous: ApiSnapshot) -> ChangeReport:
        if current.has_automatic_module() or previous.has_automatic_module():
            logger.debug("Comparing packages of %s (%s)", self.label, self.report.kind.value)
            self.walk_packages(current, previous)
        else:
            logger.debug("Comparing modules of %s (%s)", self.label, self.report.kind.value)
            self.walk_modules(current, previous)
        return self.report

    def walk_modules(self, current: ApiSnapshot, previous: ApiSnapshot) -> None:
        raise NotImplementedError

    def walk_packages(self, current: ApiSnapshot, previous: ApiSnapshot) -> None:
        raise NotImplementedError

    def entry(self, module_name: Optional[str], package_name: str) -> PackageEntry:
        """Deferred report entry, so untouched packages leave no trace."""
        return lambda: self.report.ensure_package(self.label, module_name, package_name)


# ── New ──────────────────────────────────────────────────────────────

class NewDiff(_PairDiff):
    """
    Elements of the current snapshot without a counterpart in the previous.

    With a resolver, an element whose since tag names another release is
    left to that release; without one the comparison is purely structural.
    """

    def __init__(
        self,
        report: ChangeReport,
        label: Version,
        resolver: Optional[SinceResolver] = None,
    ) -> None:
        super().__init__(report, label)
        self.resolver = resolver

    def accepts(self, since: Optional[Version]) -> bool:
        if since is None:
            return True
        return since == self.label and since >= self.resolver.floor

    def walk_modules(self, current: ApiSnapshot, previous: ApiSnapshot) -> None:
        for module in current.modules.values():
            counterpart = previous.find_module(module.name)
            if counterpart is None:
                if self.accepts(self._module_since(module)):
                    self.report.ensure_module(self.label, module.name)
            else:
                self.walk_package_list(module.packages.values(), counterpart.find_package)

    def walk_packages(self, current: ApiSnapshot, previous: ApiSnapshot) -> None:
        self.walk_package_list(current.all_packages(), previous.find_package)

    def walk_package_list(
        self,
        packages: Iterable[Package],
        find_previous: Callable[[str], Optional[Package]],
    ) -> None:
        for package in packages:
            counterpart = find_previous(package.name)
            module_name = report_module_name(package)
            if counterpart is None:
                if self.accepts(self._package_since(package)):
                    self.report.ensure_package(self.label, module_name, package.name)
            else:
                self.walk_classes(package, counterpart, self.entry(module_name, package.name))

    def walk_classes(self, package: Package, counterpart: Package, entry: PackageEntry) -> None:
        for api_class in package.classes.values():
            previous_class = counterpart.find_class(api_class.name)
            if previous_class is None:
                if self.accepts(self._class_since(api_class)):
                    class_entry(entry(), api_class)
            else:
                self.walk_members(api_class, previous_class, entry)

    def walk_members(self, api_class: ApiClass, previous_class: ApiClass, entry: PackageEntry) -> None:
        for key, member in api_class.members.items():
            if previous_class.find_member_by_key(key) is not None:
                continue
            if is_inherited(previous_class, member):
                # declared now, but was already available by inheritance
                continue
            if self.accepts(self._member_since(api_class, key)):
                class_entry(entry(), api_class).add_member(member.kind, member.pretty_signature)

    def _module_since(self, module: Module) -> Optional[Version]:
        return None if self.resolver is None else self.resolver.module(module.name)

    def _package_since(self, package: Package) -> Optional[Version]:
        return None if self.resolver is None else self.resolver.package(package.name)

    def _class_since(self, api_class: ApiClass) -> Optional[Version]:
        if self.resolver is None:
            return None
        return self.resolver.api_class(api_class.package_name, api_class.name)

    def _member_since(self, api_class: ApiClass, key: MemberKey) -> Optional[Version]:
        if self.resolver is None:
            return None
        return self.resolver.member(api_class.package_name, api_class.name, key)


# ── Deprecated ───────────────────────────────────────────────────────

def became_deprecated(current, previous) -> bool:
    return current.is_deprecated and not previous.is_deprecated


class DeprecatedDiff(_PairDiff):
    """
    Elements that exist in both snapshots and just became deprecated.

    Children of an element that just became deprecated are not reported
    separately.
    """

    def walk_modules(self, current: ApiSnapshot, previous: ApiSnapshot) -> None:
        for module in current.modules.values():
            counterpart = previous.find_module(module.name)
            if counterpart is None:
                continue
            if became_deprecated(module, counterpart):
                self.report.ensure_module(self.label, module.name)
            else:
                self.walk_package_list(module.packages.values(), counterpart.find_package)

    def walk_packages(self, current: ApiSnapshot, previous: ApiSnapshot) -> None:
        self.walk_package_list(current.all_packages(), previous.find_package)

    def walk_package_list(
        self,
        packages: Iterable[Package],
        find_previous: Callable[[str], Optional[Package]],
    ) -> None:
        for package in packages:
            counterpart = find_previous(package.name)
            if counterpart is None:
                continue
            module_name = report_module_name(package)
            if became_deprecated(package, counterpart):
                self.report.ensure_package(self.label, module_name, package.name)
            else:
                self.walk_classes(package, counterpart, self.entry(module_name, package.name))

    def walk_classes(self, package: Package, counterpart: Package, entry: PackageEntry) -> None:
        for api_class in package.classes.values():
            previous_class = counterpart.find_class(api_class.name)
            if previous_class is None:
                continue
            if became_deprecated(api_class, previous_class):
                class_entry(entry(), api_class)
            else:
                self.walk_members(api_class, previous_class, entry)

    def walk_members(self, api_class: ApiClass, previous_class: ApiClass, entry: PackageEntry) -> None:
        for key, member in api_class.members.items():
            if not member.deprecated:
                continue
            previous_member = previous_class.find_member_by_key(key)
            if previous_member is None or not previous_member.deprecated:
                # covers members that were previously inherited, and new
                # members that are deprecated right away
                class_entry(entry(), api_class).add_member(member.kind, member.pretty_signature)


# ── Removed ──────────────────────────────────────────────────────────

class RemovedDiff(_PairDiff):
    """Elements of the previous snapshot without a counterpart in the current."""

    def run(self, current: ApiSnapshot, previous: ApiSnapshot) -> ChangeReport:
        self.current = current
        return super().run(current, previous)

    def walk_modules(self, current: ApiSnapshot, previous: ApiSnapshot) -> None:
        for module in previous.modules.values():
            counterpart = current.find_module(module.name)
            if counterpart is None:
                self.report.ensure_module(self.label, module.name)
            else:
                self.walk_package_list(module.packages.values(), counterpart.find_package)

    def walk_packages(self, current: ApiSnapshot, previous: ApiSnapshot) -> None:
        self.walk_package_list(previous.all_packages(), current.find_package)

    def walk_package_list(
        self,
        packages: Iterable[Package],
        find_current: Callable[[str], Optional[Package]],
    ) -> None:
        for package in packages:
            counterpart = find_current(package.name)
            if counterpart is None:
                moved = self.current.find_package(package.name)
                if moved is not None:
                    logger.warning(
                        "Package %s has moved from module %s to %s",
                        package.name, package.module_name, moved.module_name,
                    )
                self.report.ensure_package(self.label, report_module_name(package), package.name)
            else:
                entry = self.entry(report_module_name(counterpart), package.name)
                self.walk_classes(counterpart, package, entry)

    def walk_classes(self, package: Package, previous_package: Package, entry: PackageEntry) -> None:
        for previous_class in previous_package.classes.values():
            api_class = package.find_class(previous_class.name)
            if api_class is None:
                class_entry(entry(), previous_class)
            else:
                self.walk_members(api_class, previous_class, entry)

    def walk_members(self, api_class: ApiClass, previous_class: ApiClass, entry: PackageEntry) -> None:
        for key, member in previous_class.members.items():
            if api_class.find_member_by_key(key) is not None:
                continue
            if is_inherited(api_class, member):
                # no longer declared, but still available by inheritance
                continue
            class_entry(entry(), api_class).add_member(member.kind, member.pretty_signature)


# ── Single pairs ─────────────────────────────────────────────────────

def diff_new(
    current: ApiSnapshot,
    previous: ApiSnapshot,
    label: Version,
    report: Optional[ChangeReport] = None,
    resolver: Optional[SinceResolver] = None,
) -> ChangeReport:
    report = report or ChangeReport(ReportKind.NEW)
    return NewDiff(report, label, resolver).run(current, previous)


def diff_deprecated(
    current: ApiSnapshot,
    previous: ApiSnapshot,
    label: Version,
    report: Optional[ChangeReport] = None,
) -> ChangeReport:
    report = report or ChangeReport(ReportKind.DEPRECATED)
    return DeprecatedDiff(report, label).run(current, previous)


def diff_removed(
    current: ApiSnapshot,
    previous: ApiSnapshot,
    label: Version,
    report: Optional[ChangeReport] = None,
) -> ChangeReport:
    report = report or ChangeReport(ReportKind.REMOVED)
    return RemovedDiff(report, label).run(current, previous)


# ── Whole chains ─────────────────────────────────────────────────────

def new_report(snapshots: Mapping[Version, ApiSnapshot], floor: Version) -> ChangeReport:
    """Everything new per release, from structure and from since tags."""
    report = _chain_report(ReportKind.NEW, snapshots)
    if not snapshots:
        return report

    resolver = SinceResolver(snapshots, floor)
    collect_tagged(report, snapshots, resolver)
    for label, current, previous in pairs(snapshots):
        NewDiff(report, label, resolver).run(current, previous)
        if label.introduced_modules():
            collapse_new_modules(report, label, current, previous)
    return report


def deprecated_report(snapshots: Mapping[Version, ApiSnapshot]) -> ChangeReport:
    report = _chain_report(ReportKind.DEPRECATED, snapshots)
    for label, current, previous in pairs(snapshots):
        DeprecatedDiff(report, label).run(current, previous)
    return report


def removed_report(snapshots: Mapping[Version, ApiSnapshot]) -> ChangeReport:
    report = _chain_report(ReportKind.REMOVED, snapshots)
    for label, current, previous in pairs(snapshots):
        RemovedDiff(report, label).run(current, previous)
    return report


def build_report(
    kind: ReportKind,
    snapshots: Mapping[Version, ApiSnapshot],
    floor: Version,
) -> ChangeReport:
    if kind is ReportKind.NEW:
        return new_report(snapshots, floor)
    if kind is ReportKind.DEPRECATED:
        return deprecated_report(snapshots)
    return removed_report(snapshots)


def _chain_report(kind: ReportKind, snapshots: Mapping[Version, ApiSnapshot]) -> ChangeReport:
    logger.info("Collecting %s elements for %d releases", kind.value, len(snapshots))
    report = ChangeReport(kind)
    report.javadocs = {version: snapshot.javadoc for version, snapshot in snapshots.items()}
    return report


# ── Since tags ───────────────────────────────────────────────────────

def collect_tagged(
    report: ChangeReport,
    snapshots: Mapping[Version, ApiSnapshot],
    resolver: SinceResolver,
) -> None:
    """
    Record every element at the release its since tag names.

    Each snapshot is pruned below the floor before merging, so an element
    tagged at or above the floor in any release is visited even when the
    newest release lost its tag. An element is skipped when its enclosing
    element is already reported as new in the same release.
    """
    floor = resolver.floor
    merged = cumulative_view(snapshots)
    retained = cumulative_view({
        version: retain_since(snapshot, floor) for version, snapshot in snapshots.items()
    })

    for module in retained.modules.values():
        covered: Optional[Version] = None
        if not module.automatic:
            since = resolver.module(module.name)
            if _at_least(since, floor) and _module_is_new(merged.find_module(module.name), since, resolver):
                report.ensure_module(since, module.name)
                covered = since
        _collect_tagged_packages(report, module, covered, resolver)


def _module_is_new(module: Module, since: Version, resolver: SinceResolver) -> bool:
    # At the release that introduced modules, a module is only new itself
    # when every package it holds is new there too.
    if not since.introduced_modules():
        return True
    return bool(module.packages) and all(
        resolver.package(name) == since for name in module.packages
    )


def _collect_tagged_packages(
    report: ChangeReport,
    module: Module,
    covered: Optional[Version],
    resolver: SinceResolver,
) -> None:
    floor = resolver.floor
    module_name = None if module.automatic else module.name
    for package in module.packages.values():
        since = resolver.package(package.name)
        package_covered = _covered(since, floor)
        if _at_least(since, floor) and since != covered:
            report.ensure_package(since, module_name, package.name)

        for api_class in package.classes.values():
            class_since = resolver.api_class(package.name, api_class.name)
            class_covered = _covered(class_since, floor)
            if _at_least(class_since, floor) and class_since != package_covered:
                class_entry(report.ensure_package(class_since, module_name, package.name), api_class)

            for key, member in api_class.members.items():
                member_since = resolver.member(package.name, api_class.name, key)
                if _at_least(member_since, floor) and member_since != class_covered:
                    class_entry(report.ensure_package(member_since, module_name, package.name), api_class) \
                        .add_member(member.kind, member.pretty_signature)


def _at_least(since: Optional[Version], floor: Version) -> bool:
    return since is not None and since >= floor


def _covered(since: Optional[Version], floor: Version) -> Optional[Version]:
    """The release in which this element is reported as a whole, if any."""
    return since if _at_least(since, floor) else None


# ── Module introduction ──────────────────────────────────────────────

def collapse_new_modules(
    report: ChangeReport,
    label: Version,
    current: ApiSnapshot,
    previous: ApiSnapshot,
) -> None:
    """
    At the release that introduced modules, turn module entries whose
    packages are all new into bare 'entire module is new' entries.

    Every package the module holds must be new, not only the ones already
    listed in its entry.
    """
    for name, entry in list(report.modules_per_version.get(label, {}).items()):
        module = current.find_module(name)
        if module is None or not module.packages or not entry.packages:
            continue
        if all(
            _package_is_new(package, entry.packages.get(package.name), label, previous)
            for package in module.packages.values()
        ):
            report.replace_module(label, name)


def _package_is_new(
    package: Package,
    entry: Optional[ReportPackage],
    label: Version,
    previous: ApiSnapshot,
) -> bool:
    if package.since is not None and not package.has_minimal_since(label):
        return False
    if entry is not None and entry.has_content():
        # classes reported inside need their own listing
        return False
    return previous.find_package(package.name) is None
