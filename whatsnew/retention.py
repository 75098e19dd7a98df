"""
Pruning and merging of snapshots.

Both operations return new trees and never touch their inputs, so a
snapshot can be pruned or folded into a cumulative view while other
computations still hold it.
"""
from __future__ import annotations
import logging
from functools import reduce
from typing import Mapping

from .model import ApiClass, ApiSnapshot, Module, Package
from .version import Version

logger = logging.getLogger(__name__)


# ── Retention ────────────────────────────────────────────────────────

def retain_since(snapshot: ApiSnapshot, floor: Version) -> ApiSnapshot:
    """
    Drop everything introduced before ``floor``.

    A node survives if its own since is at or above the floor, or if it
    still has surviving children. Applying it twice changes nothing.
    """
    modules = {}
    for name, module in snapshot.modules.items():
        retained = _retain_module(module, floor)
        if retained.packages or retained.has_minimal_since(floor):
            modules[name] = retained
    return snapshot.model_copy(update={"modules": modules})


def _retain_module(module: Module, floor: Version) -> Module:
    packages = {}
    for name, package in module.packages.items():
        retained = _retain_package(package, floor)
        if retained.classes or retained.has_minimal_since(floor):
            packages[name] = retained
    return module.model_copy(update={"packages": packages})


def _retain_package(package: Package, floor: Version) -> Package:
    classes = {}
    for name, api_class in package.classes.items():
        retained = _retain_class(api_class, floor)
        if retained.members or retained.has_minimal_since(floor):
            classes[name] = retained
    return package.model_copy(update={"classes": classes})


def _retain_class(api_class: ApiClass, floor: Version) -> ApiClass:
    members = {key: m for key, m in api_class.members.items() if m.has_minimal_since(floor)}
    return api_class.model_copy(update={"members": members})


# ── Merging ──────────────────────────────────────────────────────────

def merge(first: ApiSnapshot, second: ApiSnapshot) -> ApiSnapshot:
    """
    Combine two snapshots of the same API.

    Children of ``second`` missing from ``first`` are added, shared ones
    are merged recursively; attributes of ``first`` win. Packages are
    matched by name across all modules of ``first``, so a package keeps a
    single home when snapshots with and without modules are combined.
    Unmatched packages go to the module of the same name in ``first``,
    created if missing (the automatic module for releases without modules).
    """
    modules = {name: _detached(module) for name, module in first.modules.items()}
    owners = {p.name: p.module_name for p in first.all_packages()}

    for other_module in second.modules.values():
        target = modules.get(other_module.name)
        if target is None:
            target = modules[other_module.name] = _detached(other_module, keep_packages=False)

        for other_package in other_module.packages.values():
            owner = modules[owners.get(other_package.name, target.name)]
            existing = owner.packages.get(other_package.name)
            if existing is None:
                owner.packages[other_package.name] = other_package
                owners[other_package.name] = owner.name
            else:
                owner.packages[other_package.name] = _merge_package(existing, other_package)

    return first.model_copy(update={"modules": modules})


def _detached(module: Module, keep_packages: bool = True) -> Module:
    """A module copy whose package map can be filled without touching the original."""
    packages = dict(module.packages) if keep_packages else {}
    return module.model_copy(update={"packages": packages})


def _merge_package(mine: Package, other: Package) -> Package:
    classes = dict(mine.classes)
    for name, api_class in other.classes.items():
        existing = classes.get(name)
        classes[name] = api_class if existing is None else _merge_class(existing, api_class)
    return mine.model_copy(update={"classes": classes})


def _merge_class(mine: ApiClass, other: ApiClass) -> ApiClass:
    members = dict(mine.members)
    for key, member in other.members.items():
        members.setdefault(key, member)
    return mine.model_copy(update={"members": members})


def cumulative_view(snapshots: Mapping[Version, ApiSnapshot]) -> ApiSnapshot:
    """Fold all snapshots, newest first, into one 'everything ever seen' tree."""
    if not snapshots:
        raise ValueError("No snapshots to merge")
    ordered = [snapshots[v] for v in sorted(snapshots, reverse=True)]
    logger.debug("Merging %d snapshots into a cumulative view", len(ordered))
    return reduce(merge, ordered)
