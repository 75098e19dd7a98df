"""
Tests for pruning by since and for merging snapshots.
Run with: pytest tests/test_retention.py -v
"""
import pytest
from whatsnew.model import AUTOMATIC_MODULE
from whatsnew.retention import cumulative_view, merge, retain_since
from whatsnew.serialization import dump_snapshot
from factories import cls, flat, interface, load, modular, module, package, v


def mixed_history():
    return modular({
        "java.base": module({
            "java.util": package({
                "List": interface(methods={"of--": {"since": "9"}, "size--": {}}),
                "Old": cls(since="1.2"),
                "Stream": interface(since="1.8"),
            }, since="1.0"),
            "java.lang.module": package({
                "ModuleFinder": interface(),
            }, since="9"),
            "java.io": package({
                "File": cls(methods={"toPath--": {"since": "1.7"}}),
            }, since="1.0"),
        }),
        "java.desktop": module({
            "java.applet": package({"Applet": cls()}, since="1.0"),
        }),
    })


# ── Test: retain_since ───────────────────────────────────────────────

def test_retain_keeps_newer_nodes_and_their_ancestors():
    retained = retain_since(load(mixed_history()), v("8"))

    util = retained.find_package("java.util")
    assert util is not None
    assert set(util.classes) == {"List", "Stream"}
    assert [m.signature for m in util.find_class("List").members.values()] == ["of--"]
    assert util.find_class("Stream").members == {}


def test_retain_keeps_new_node_without_untagged_children():
    retained = retain_since(load(mixed_history()), v("8"))
    package = retained.find_package("java.lang.module")
    assert package is not None
    assert package.classes == {}


def test_retain_drops_old_branches():
    retained = retain_since(load(mixed_history()), v("8"))
    assert retained.find_package("java.io") is None
    assert retained.find_module("java.desktop") is None


def test_retain_is_idempotent():
    snapshot = load(mixed_history())
    once = retain_since(snapshot, v("5.0"))
    twice = retain_since(once, v("5.0"))
    assert dump_snapshot(once) == dump_snapshot(twice)


def test_retain_leaves_input_untouched():
    snapshot = load(mixed_history())
    before = dump_snapshot(snapshot)
    retain_since(snapshot, v("11"))
    assert dump_snapshot(snapshot) == before


# ── Test: merge ──────────────────────────────────────────────────────

def test_merge_with_itself_is_identity():
    snapshot = load(mixed_history())
    assert dump_snapshot(merge(snapshot, snapshot)) == dump_snapshot(snapshot)


def test_merge_unions_children_and_first_wins():
    newer = load(modular({
        "java.base": module({
            "java.util": package({
                "List": interface(methods=["of--", "size--"], since="1.2"),
            }),
        }),
    }))
    older = load(modular({
        "java.base": module({
            "java.util": package({
                "List": interface(methods=["size--", "add-E-"], since="1.3"),
                "Vector": cls(),
            }),
            "java.io": package(),
        }),
    }))

    merged = merge(newer, older)
    util = merged.find_package("java.util")
    assert set(util.classes) == {"List", "Vector"}
    assert {m.signature for m in util.find_class("List").members.values()} == {"of--", "size--", "add-E-"}
    assert util.find_class("List").since == v("1.2")
    assert merged.find_package("java.io").module_name == "java.base"

    assert set(newer.find_package("java.util").classes) == {"List"}


def test_merge_across_module_system_keeps_single_home():
    newer = load(modular({
        "java.base": module({"java.util": package({"List": interface(methods=["of--"])})}),
    }))
    older = load(flat({
        "java.util": package({"List": interface(methods=["size--"])}),
        "java.applet": package(),
    }))

    merged = merge(newer, older)
    homes = [p.module_name for p in merged.all_packages() if p.name == "java.util"]
    assert homes == ["java.base"]
    assert len(merged.find_class("java.util", "List").members) == 2
    assert merged.find_package("java.applet").module_name == AUTOMATIC_MODULE


def test_cumulative_view_prefers_newest():
    snapshots = {
        v("8"): load(flat({"java.util": package({"List": interface(since="1.2")})})),
        v("11"): load(modular({
            "java.base": module({"java.util": package({"List": interface(since="1.3")})}),
        })),
    }
    view = cumulative_view(snapshots)
    assert view.find_class("java.util", "List").since == v("1.3")
    assert view.find_package("java.util").module_name == "java.base"


def test_cumulative_view_needs_snapshots():
    with pytest.raises(ValueError):
        cumulative_view({})
