"""
Tests for the snapshot tree and its builder.
Run with: pytest tests/test_model.py -v
"""
import pytest
from whatsnew.errors import DuplicateEntity, MissingParent
from whatsnew.model import AUTOMATIC_MODULE, ClassKind, Javadoc, SnapshotBuilder
from whatsnew.signatures import MemberKind
from factories import v


def make_builder():
    return SnapshotBuilder(Javadoc(base_url="https://example.org/api/", uses_modules=True))


def make_base_builder():
    builder = make_builder()
    builder.add_module("java.base", since=v("9"))
    builder.add_package("java.base", "java.util")
    builder.add_class("java.util", "List", ClassKind.INTERFACE, interfaces=["java.util.Collection<E>"])
    return builder


# ── Test: Navigation ─────────────────────────────────────────────────

def test_find_queries():
    builder = make_base_builder()
    builder.add_member("java.util", "List", MemberKind.METHOD, "of--", since=v("9"))
    snapshot = builder.build()

    assert snapshot.find_module("java.base").name == "java.base"
    assert snapshot.find_package("java.util").module_name == "java.base"
    assert snapshot.find_class("java.util", "List").full_name == "java.util.List"
    assert snapshot.find_member("java.util", "List", MemberKind.METHOD, "of--").since == v("9")
    assert snapshot.find_member("java.util", "List", MemberKind.METHOD, "size--") is None
    assert snapshot.find_class("java.lang", "Object") is None
    assert not snapshot.has_automatic_module()


def test_member_pretty_signature():
    builder = make_builder()
    builder.add_automatic_module()
    builder.add_package(None, "java.util")
    builder.add_class("java.util", "ArrayList", super_class="java.util.AbstractList")
    member = builder.add_member("java.util", "ArrayList", MemberKind.CONSTRUCTOR, "<init>-int-")
    assert member.pretty_signature == "ArrayList(int)"
    assert str(member) == "ArrayList.ArrayList(int)"


def test_interface_list_by_raw_name():
    snapshot = make_base_builder().build()
    interfaces = snapshot.find_class("java.util", "List").interfaces
    assert interfaces.has_interface("java.util.Collection")
    assert interfaces.generic_name("java.util.Collection") == "java.util.Collection<E>"
    assert not interfaces.has_interface("java.lang.Iterable")


# ── Test: Automatic module ───────────────────────────────────────────

def test_automatic_module_holds_packages():
    builder = make_builder()
    builder.add_automatic_module()
    builder.add_package(None, "java.lang")
    snapshot = builder.build()
    assert snapshot.has_automatic_module()
    assert snapshot.find_package("java.lang").module_name == AUTOMATIC_MODULE


def test_automatic_module_excludes_named_modules():
    builder = make_builder()
    builder.add_automatic_module()
    with pytest.raises(DuplicateEntity):
        builder.add_module("java.base")

    builder = make_builder()
    builder.add_module("java.base")
    with pytest.raises(DuplicateEntity):
        builder.add_automatic_module()


# ── Test: Builder rejects inconsistent input ─────────────────────────

def test_duplicates_are_rejected():
    builder = make_base_builder()
    with pytest.raises(DuplicateEntity):
        builder.add_module("java.base")
    with pytest.raises(DuplicateEntity):
        builder.add_class("java.util", "List", ClassKind.INTERFACE)

    builder.add_member("java.util", "List", MemberKind.METHOD, "of--")
    with pytest.raises(DuplicateEntity):
        builder.add_member("java.util", "List", MemberKind.METHOD, "of--")


def test_packages_are_unique_across_modules():
    builder = make_base_builder()
    builder.add_module("java.desktop")
    with pytest.raises(DuplicateEntity):
        builder.add_package("java.desktop", "java.util")


def test_duplicate_constructor_spellings_collide():
    builder = make_builder()
    builder.add_automatic_module()
    builder.add_package(None, "java.util")
    builder.add_class("java.util", "ArrayList", super_class="java.util.AbstractList")
    builder.add_member("java.util", "ArrayList", MemberKind.CONSTRUCTOR, "ArrayList-int-")
    with pytest.raises(DuplicateEntity):
        builder.add_member("java.util", "ArrayList", MemberKind.CONSTRUCTOR, "<init>-int-")


def test_missing_parents():
    builder = make_builder()
    with pytest.raises(MissingParent):
        builder.add_package("java.base", "java.util")
    with pytest.raises(MissingParent):
        builder.add_class("java.util", "List", ClassKind.INTERFACE)
    with pytest.raises(MissingParent):
        builder.add_member("java.util", "List", MemberKind.METHOD, "of--")


def test_class_requires_super_class():
    builder = make_base_builder()
    with pytest.raises(ValueError):
        builder.add_class("java.util", "ArrayList", ClassKind.CLASS)


def test_duplicate_inherited_methods_are_rejected():
    builder = make_base_builder()
    with pytest.raises(DuplicateEntity):
        builder.add_class("java.util", "ArrayList", super_class="java.util.AbstractList",
                          inherited_methods=["equals-java.lang.Object-", "equals-java.lang.Object-"])


def test_build_closes_the_builder():
    builder = make_base_builder()
    builder.build()
    with pytest.raises(RuntimeError):
        builder.add_package("java.base", "java.io")
    with pytest.raises(RuntimeError):
        builder.build()


# ── Test: Since and deprecation ──────────────────────────────────────

def test_package_inherits_module_deprecation():
    builder = make_builder()
    builder.add_module("java.corba", deprecated=True)
    builder.add_package("java.corba", "org.omg.CORBA")
    package = builder.build().find_package("org.omg.CORBA")
    assert not package.deprecated
    assert package.is_deprecated


def test_since_queries():
    snapshot = make_base_builder().build()
    module = snapshot.find_module("java.base")
    assert module.has_minimal_since(v("8"))
    assert module.is_at_least_since(v("9"))
    assert not module.has_minimal_since(v("10"))
    assert not snapshot.find_package("java.util").has_minimal_since(v("1.0"))


def test_module_is_since_at_introduction_needs_all_packages_new():
    builder = make_builder()
    builder.add_module("java.base", since=v("9"))
    builder.add_package("java.base", "java.lang", since=v("1.0"))
    builder.add_module("jdk.jshell", since=v("9"))
    builder.add_package("jdk.jshell", "jdk.jshell", since=v("9"))
    snapshot = builder.build()

    assert not snapshot.find_module("java.base").is_since(v("9"))
    assert snapshot.find_module("jdk.jshell").is_since(v("9"))


def test_inherited_method_matching():
    builder = make_base_builder()
    builder.add_class("java.util", "ArrayList", super_class="java.util.AbstractList",
                      inherited_methods=["add-E-", "equals-java.lang.Object-"])
    api_class = builder.build().find_class("java.util", "ArrayList")

    assert api_class.is_inherited_method("equals-java.lang.Object-")
    assert api_class.is_inherited_method("add-java.lang.String-")
    assert not api_class.is_inherited_method("add-int-int-")
    assert api_class.inherited_signatures() == ["add-E-", "equals-java.lang.Object-"]
