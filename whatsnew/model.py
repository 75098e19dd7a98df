"""
Data model for one API snapshot.

A snapshot is a tree: modules → packages → classes → members. Every node
carries a ``since`` version and a ``deprecated`` flag. Releases before the
module system hold a single synthetic automatic module.

Children refer to their parent by name only (``module_name``,
``package_name``, ``class_name``); navigation goes top-down through the
``find_*`` queries. Trees are populated once through ``SnapshotBuilder`` and
are read-only afterwards.
"""
from __future__ import annotations
import logging
from enum import Enum
from typing import Iterable, Iterator, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import DuplicateEntity, MissingParent
from .signatures import MemberKey, MemberKind, Signature, display_signature, member_key
from .version import Version

logger = logging.getLogger(__name__)

AUTOMATIC_MODULE = "<automatic>"


class ClassKind(str, Enum):
    CLASS      = "class"
    ENUM       = "enum"
    INTERFACE  = "interface"
    ANNOTATION = "annotation"
    RECORD     = "record"

    @property
    def is_interface(self) -> bool:
        return self in (ClassKind.INTERFACE, ClassKind.ANNOTATION)

    @property
    def inheritance_keyword(self) -> str:
        return "extends" if self.is_interface else "implements"


class Javadoc(BaseModel):
    """Where a snapshot's documentation lives; needed to build links."""
    model_config = ConfigDict(frozen=True)

    base_url: str
    uses_modules: bool


class Versionable(BaseModel):
    """Shared since/deprecated attributes of every tree node."""
    model_config = ConfigDict(frozen=True)

    since: Optional[Version] = None
    deprecated: bool = False

    def is_since(self, version: Version) -> bool:
        return self.since is not None and self.since == version

    def has_minimal_since(self, version: Version) -> bool:
        return self.since is not None and self.since >= version

    is_at_least_since = has_minimal_since

    @property
    def is_deprecated(self) -> bool:
        return self.deprecated


class InterfaceList(BaseModel):
    """Implemented interfaces, indexed by erased name."""
    model_config = ConfigDict(frozen=True)

    by_raw_name: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def of(cls, names: Iterable[str]) -> InterfaceList:
        by_raw = {raw_type(name): name for name in names}
        return cls(by_raw_name=dict(sorted(by_raw.items())))

    def names(self) -> list[str]:
        return list(self.by_raw_name.values())

    def has_interface(self, name: str) -> bool:
        return raw_type(name) in self.by_raw_name

    def generic_name(self, name: str) -> Optional[str]:
        return self.by_raw_name.get(raw_type(name))


def raw_type(name: str) -> str:
    index = name.find("<")
    return name if index == -1 else name[:index]


# ── Tree nodes ───────────────────────────────────────────────────────

class Member(Versionable):
    kind: MemberKind
    class_name: str
    signature: str                      # raw anchor text

    @property
    def pretty_signature(self) -> str:
        return display_signature(self.signature, self.class_name)

    @property
    def key(self) -> MemberKey:
        return member_key(self.kind, self.signature)

    def __str__(self) -> str:
        return f"{self.class_name}.{self.pretty_signature}"


class ApiClass(Versionable):
    name: str
    package_name: str
    kind: ClassKind = ClassKind.CLASS
    super_class: Optional[str] = None
    interfaces: InterfaceList = Field(default_factory=InterfaceList)
    inherited_methods: tuple[Signature, ...] = ()
    members: dict[MemberKey, Member] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _requires_super_class(self) -> ApiClass:
        if self.super_class is None and not self.kind.is_interface and self.full_name != "java.lang.Object":
            raise ValueError(f"Class {self.full_name} ({self.kind.value}) has no super class")
        return self

    @property
    def full_name(self) -> str:
        return f"{self.package_name}.{self.name}"

    def find_member(self, kind: MemberKind, signature: str) -> Optional[Member]:
        return self.members.get(member_key(kind, signature))

    def find_member_by_key(self, key: MemberKey) -> Optional[Member]:
        return self.members.get(key)

    def is_inherited_method(self, signature: str) -> bool:
        """True if the signature matches a method available by inheritance."""
        candidate = Signature.parse(signature)
        return any(inherited.matches(candidate) for inherited in self.inherited_methods)

    def inherited_signatures(self) -> list[str]:
        return [s.original for s in self.inherited_methods]

    def __str__(self) -> str:
        return self.full_name


class Package(Versionable):
    name: str
    module_name: str
    module_deprecated: bool = False
    classes: dict[str, ApiClass] = Field(default_factory=dict)

    @property
    def is_deprecated(self) -> bool:
        return self.deprecated or self.module_deprecated

    def find_class(self, name: str) -> Optional[ApiClass]:
        return self.classes.get(name)

    def __str__(self) -> str:
        return self.name


class Module(Versionable):
    name: str
    automatic: bool = False
    packages: dict[str, Package] = Field(default_factory=dict)

    def is_since(self, version: Version) -> bool:
        # At the release that introduced modules, only a module whose every
        # package is new there counts as new itself.
        return super().is_since(version) and (
            not version.introduced_modules() or self._all_packages_since(version)
        )

    def _all_packages_since(self, version: Version) -> bool:
        return bool(self.packages) and all(p.is_since(version) for p in self.packages.values())

    def find_package(self, name: str) -> Optional[Package]:
        return self.packages.get(name)

    def __str__(self) -> str:
        return self.name


class ApiSnapshot(BaseModel):
    """The complete API tree of one release."""
    model_config = ConfigDict(frozen=True)

    javadoc: Javadoc
    modules: dict[str, Module] = Field(default_factory=dict)

    def has_automatic_module(self) -> bool:
        return AUTOMATIC_MODULE in self.modules

    def find_module(self, name: str) -> Optional[Module]:
        return self.modules.get(name)

    def find_automatic_module(self) -> Optional[Module]:
        return self.modules.get(AUTOMATIC_MODULE)

    def all_packages(self) -> Iterator[Package]:
        for module in self.modules.values():
            yield from module.packages.values()

    def find_package(self, name: str) -> Optional[Package]:
        """Package names are unique across modules, so search all of them."""
        for module in self.modules.values():
            package = module.packages.get(name)
            if package is not None:
                return package
        return None

    def find_class(self, package_name: str, class_name: str) -> Optional[ApiClass]:
        package = self.find_package(package_name)
        return None if package is None else package.find_class(class_name)

    def find_member(
        self,
        package_name: str,
        class_name: str,
        kind: MemberKind,
        signature: str,
    ) -> Optional[Member]:
        api_class = self.find_class(package_name, class_name)
        return None if api_class is None else api_class.find_member(kind, signature)


# ── Builder ──────────────────────────────────────────────────────────

class SnapshotBuilder:
    """
    Populates a snapshot, then hands it out with ``build()``.

    Usage:
        builder = SnapshotBuilder(Javadoc(base_url=url, uses_modules=True))
        builder.add_module("java.base", since=None)
        builder.add_package("java.base", "java.util")
        builder.add_class("java.util", "List", ClassKind.INTERFACE)
        builder.add_member("java.util", "List", MemberKind.METHOD, "of--")
        snapshot = builder.build()
    """

    def __init__(self, javadoc: Javadoc) -> None:
        self._snapshot = ApiSnapshot(javadoc=javadoc)
        self._packages: dict[str, Package] = {}
        self._built = False

    def add_module(self, name: str, since: Optional[Version] = None, deprecated: bool = False) -> Module:
        self._check_open()
        modules = self._snapshot.modules
        if AUTOMATIC_MODULE in modules:
            raise DuplicateEntity(f"Cannot add module {name} when the automatic module is defined")
        if name in modules:
            raise DuplicateEntity(f"Duplicate module: {name}")
        module = Module(name=name, since=since, deprecated=deprecated)
        modules[name] = module
        return module

    def add_automatic_module(self) -> Module:
        self._check_open()
        modules = self._snapshot.modules
        if AUTOMATIC_MODULE in modules:
            raise DuplicateEntity("Automatic module is already defined")
        if modules:
            raise DuplicateEntity("Cannot add the automatic module if other modules are defined")
        module = Module(name=AUTOMATIC_MODULE, automatic=True)
        modules[AUTOMATIC_MODULE] = module
        return module

    def add_package(
        self,
        module_name: Optional[str],
        name: str,
        since: Optional[Version] = None,
        deprecated: bool = False,
    ) -> Package:
        """Add a package; a ``None`` module name means the automatic module."""
        self._check_open()
        module = self._snapshot.find_module(module_name or AUTOMATIC_MODULE)
        if module is None:
            raise MissingParent(f"Could not find module {module_name or AUTOMATIC_MODULE} for package {name}")
        if name in self._packages:
            raise DuplicateEntity(f"Duplicate package: {self._packages[name].module_name}/{name}")
        package = Package(
            name=name,
            module_name=module.name,
            module_deprecated=module.deprecated,
            since=since,
            deprecated=deprecated,
        )
        module.packages[name] = package
        self._packages[name] = package
        return package

    def add_class(
        self,
        package_name: str,
        name: str,
        kind: ClassKind = ClassKind.CLASS,
        super_class: Optional[str] = None,
        interfaces: Iterable[str] = (),
        inherited_methods: Iterable[str] = (),
        since: Optional[Version] = None,
        deprecated: bool = False,
    ) -> ApiClass:
        self._check_open()
        package = self._packages.get(package_name)
        if package is None:
            raise MissingParent(f"Could not find package {package_name} for class {name}")
        if name in package.classes:
            raise DuplicateEntity(f"Duplicate class: {package.module_name}/{package_name}.{name}")

        signatures: dict[str, Signature] = {}
        for signature in sorted(inherited_methods):
            if signature in signatures:
                raise DuplicateEntity(f"Duplicate inherited method for class {package_name}.{name}: {signature}")
            signatures[signature] = Signature.parse(signature)

        api_class = ApiClass(
            name=name,
            package_name=package_name,
            kind=kind,
            super_class=super_class,
            interfaces=InterfaceList.of(interfaces),
            inherited_methods=tuple(signatures.values()),
            since=since,
            deprecated=deprecated,
        )
        package.classes[name] = api_class
        return api_class

    def add_member(
        self,
        package_name: str,
        class_name: str,
        kind: MemberKind,
        signature: str,
        since: Optional[Version] = None,
        deprecated: bool = False,
    ) -> Member:
        self._check_open()
        package = self._packages.get(package_name)
        api_class = None if package is None else package.find_class(class_name)
        if api_class is None:
            raise MissingParent(f"Could not find class {package_name}.{class_name} for member {signature}")

        member = Member(kind=kind, class_name=class_name, signature=signature, since=since, deprecated=deprecated)
        key = member.key
        if key in api_class.members:
            raise DuplicateEntity(
                f"Duplicate signature for class {package.module_name}/{package_name}.{class_name}: "
                f"{kind.value} {signature}"
            )
        api_class.members[key] = member
        return member

    def build(self) -> ApiSnapshot:
        self._check_open()
        self._built = True
        logger.debug(
            "Built snapshot with %d modules and %d packages",
            len(self._snapshot.modules),
            len(self._packages),
        )
        return self._snapshot

    def _check_open(self) -> None:
        if self._built:
            raise RuntimeError("Snapshot has already been built")
