"""
Tests for the persisted snapshot format.
Run with: pytest tests/test_serialization.py -v
"""
import json
from pathlib import Path

import pytest
from whatsnew.errors import MalformedSnapshot
from whatsnew.serialization import (
    dump_snapshot,
    load_snapshots,
    read_snapshot,
    snapshot_to_json,
    snapshot_version,
    write_snapshot,
)
from factories import REGISTRY, cls, flat, interface, load, modular, module, package, v


def sample_modular():
    return modular({
        "java.base": module({
            "java.util": package({
                "List": interface(
                    methods={"of--": {"since": "9"}, "size--": {}},
                    interfaces=["java.util.Collection<E>"],
                    since="1.2",
                ),
                "ArrayList": cls(
                    constructors=["<init>--", "<init>-int-"],
                    methods={"trimToSize--": {"since": "1.2"}},
                    inherited=["equals-java.lang.Object-", "hashCode--"],
                    super_class="java.util.AbstractList<E>",
                    interfaces=["java.util.List<E>", "java.util.RandomAccess"],
                ),
            }, since="1.0"),
        }, since="9"),
        "java.corba": module({
            "org.omg.CORBA": package({
                "ORB": cls(fields={"DEFAULT": {"deprecated": True}}, deprecated=True),
            }),
        }, deprecated=True),
    })


# ── Test: Round trip ─────────────────────────────────────────────────

def test_modular_round_trip():
    document = sample_modular()
    assert dump_snapshot(load(document)) == document


def test_flat_round_trip():
    document = flat({
        "java.lang": package({
            "Object": cls(methods=["equals-java.lang.Object-"], super_class=None),
            "Runnable": interface(methods=["run--"]),
        }),
    })
    del document["packages"]["java.lang"]["classes"]["Object"]["superClass"]
    snapshot = load(document)
    assert snapshot.has_automatic_module()
    assert dump_snapshot(snapshot) == document


def test_loaded_values():
    snapshot = load(sample_modular())
    assert snapshot.javadoc.uses_modules
    assert snapshot.find_package("java.util").since == v("1.0")
    assert snapshot.find_package("org.omg.CORBA").is_deprecated
    array_list = snapshot.find_class("java.util", "ArrayList")
    assert array_list.super_class == "java.util.AbstractList<E>"
    assert array_list.is_inherited_method("hashCode--")
    assert len(array_list.members) == 3


def test_json_text_is_loadable():
    snapshot = load(sample_modular())
    assert dump_snapshot(load(json.loads(snapshot_to_json(snapshot)))) == sample_modular()


# ── Test: Malformed documents ────────────────────────────────────────

def test_missing_javadoc():
    document = sample_modular()
    del document["javadoc"]
    with pytest.raises(MalformedSnapshot):
        load(document)


def test_modules_and_packages_are_exclusive():
    document = sample_modular()
    document["packages"] = {}
    with pytest.raises(MalformedSnapshot):
        load(document)

    with pytest.raises(MalformedSnapshot):
        load({"javadoc": document["javadoc"]})


def test_missing_class_key():
    document = sample_modular()
    del document["modules"]["java.base"]["packages"]["java.util"]["classes"]["List"]["methods"]
    with pytest.raises(MalformedSnapshot) as info:
        load(document)
    assert "methods" in str(info.value)


def test_class_without_super_class_is_malformed():
    document = sample_modular()
    del document["modules"]["java.base"]["packages"]["java.util"]["classes"]["ArrayList"]["superClass"]
    with pytest.raises(MalformedSnapshot):
        load(document)


def test_bad_member_since_names_its_path(tmp_path):
    document = sample_modular()
    document["modules"]["java.base"]["packages"]["java.util"]["classes"]["List"]["methods"]["of--"] = {"since": "nine"}
    path = tmp_path / "java-11.json"
    path.write_text(json.dumps(document), encoding="utf-8")

    with pytest.raises(MalformedSnapshot) as info:
        read_snapshot(path, REGISTRY)
    message = str(info.value)
    assert str(path) in message
    assert "java.base/java.util.List#of--" in message
    assert "'nine'" in message


def test_bad_package_since_names_its_path():
    document = flat({"java.util": package(since="one point two")})
    with pytest.raises(MalformedSnapshot) as info:
        load(document)
    assert "<snapshot>: java.util:" in str(info.value)


# ── Test: Files and directories ──────────────────────────────────────

def test_snapshot_version_from_file_name():
    assert snapshot_version(Path("java-8u40.json"), REGISTRY) == v("8u40")
    assert snapshot_version(Path("java-1.8.json"), REGISTRY) == v("8")
    assert snapshot_version(Path("notes.json"), REGISTRY) is None


def test_write_and_read(tmp_path):
    snapshot = load(sample_modular())
    path = tmp_path / "out" / "java-11.json"
    write_snapshot(snapshot, path)
    assert dump_snapshot(read_snapshot(path, REGISTRY)) == sample_modular()


def test_invalid_json_names_the_file(tmp_path):
    path = tmp_path / "java-9.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(MalformedSnapshot) as info:
        read_snapshot(path, REGISTRY)
    assert str(path) in str(info.value)


def test_load_snapshots_orders_by_version(tmp_path):
    (tmp_path / "java-11.json").write_text(json.dumps(sample_modular()), encoding="utf-8")
    (tmp_path / "java-9.json").write_text(json.dumps(sample_modular()), encoding="utf-8")
    (tmp_path / "java-1.8.json").write_text(json.dumps(flat({"java.util": package()})), encoding="utf-8")
    (tmp_path / "README.md").write_text("not a snapshot", encoding="utf-8")

    snapshots = load_snapshots(tmp_path, REGISTRY)
    assert list(snapshots) == [v("8"), v("9"), v("11")]


def test_load_snapshots_rejects_duplicate_versions(tmp_path):
    (tmp_path / "java-1.8.json").write_text(json.dumps(flat({})), encoding="utf-8")
    (tmp_path / "java-8.json").write_text(json.dumps(flat({})), encoding="utf-8")
    with pytest.raises(MalformedSnapshot):
        load_snapshots(tmp_path, REGISTRY)


def test_ignored_packages_are_skipped(tmp_path):
    (tmp_path / "java-11.json").write_text(json.dumps(sample_modular()), encoding="utf-8")
    snapshots = load_snapshots(tmp_path, REGISTRY, ignore_packages=["org.omg.CORBA"])
    snapshot = snapshots[v("11")]
    assert snapshot.find_package("org.omg.CORBA") is None
    assert snapshot.find_module("java.corba") is not None
