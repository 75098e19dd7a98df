"""
Member signature normalization and matching.

Javadoc anchors encode member signatures as URL fragments, e.g.
``compareTo-java.lang.Object-`` or ``toArray-T:A-``. These helpers turn them
into readable signatures (``compareTo(java.lang.Object)``) and decide
whether two signatures from different releases denote the same member.
"""
from __future__ import annotations
import re
from enum import Enum
from typing import NamedTuple
from pydantic import BaseModel, ConfigDict

_ARGUMENT_SPLIT  = re.compile(r"\s*,\s*")
_GENERIC_TYPE    = re.compile(r"[A-Z][A-Za-z_]*")
_CONSTRUCTOR_TAG = "<init>"


class MemberKind(str, Enum):
    CONSTRUCTOR = "constructor"
    METHOD      = "method"
    FIELD       = "field"


class MemberKey(NamedTuple):
    """Identity of a member within its class."""
    kind: MemberKind
    signature: str


def prettify(signature: str) -> str:
    """Rewrite a raw anchor into a reader-facing signature."""
    pretty = signature.replace("-", "(", 1)
    pretty = re.sub(r"-$", ")", pretty, count=1)
    pretty = pretty.replace("-", ",")
    pretty = pretty.replace(":A", "[]")
    pretty = re.sub(r"^Z:Z_", "_", pretty, count=1)
    return pretty.replace(" ", "")


def display_signature(signature: str, class_name: str) -> str:
    """Prettified signature with constructors named after their class."""
    return prettify(signature).replace(_CONSTRUCTOR_TAG, class_name)


def normalize_constructor(pretty: str) -> str:
    return re.sub(r"^.*\(", _CONSTRUCTOR_TAG + "(", pretty, count=1)


def member_key(kind: MemberKind, signature: str) -> MemberKey:
    """
    Map key for a member.

    Constructors collapse to ``<init>(...)`` so that anchors scraped as
    ``<init>-int-`` in one release and ``ArrayList-int-`` in another collide.
    """
    pretty = prettify(signature)
    if kind is MemberKind.CONSTRUCTOR:
        pretty = normalize_constructor(pretty)
    return MemberKey(kind, pretty)


class Signature(BaseModel):
    """A parsed method signature used for generics-tolerant matching."""
    model_config = ConfigDict(frozen=True)

    original: str
    pretty: str
    name: str
    arguments: tuple[str, ...] = ()

    @classmethod
    def parse(cls, signature: str) -> Signature:
        pretty = prettify(signature)
        index = pretty.find("(")
        if index == -1:
            return cls(original=signature, pretty=pretty, name=pretty)

        name = pretty[:index]
        if pretty.endswith("()"):
            arguments: tuple[str, ...] = ()
        else:
            end = pretty.find(")", index)
            argument_list = pretty[index + 1:] if end == -1 else pretty[index + 1:end]
            arguments = tuple(_ARGUMENT_SPLIT.split(argument_list))
        return cls(original=signature, pretty=pretty, name=name, arguments=arguments)

    def matches(self, other: Signature) -> bool:
        """
        True if both signatures denote the same member across releases.

        Besides exact equality, argument types that look like a bare type
        parameter (``T``, ``E``, ``Key``) match any type, since one release
        may show the erased parameter and another the resolved argument.
        A concrete single-word type name is indistinguishable from a type
        parameter here and will match too.
        """
        if self.pretty == other.pretty:
            return True
        if self.name != other.name:
            return False
        if len(self.arguments) != len(other.arguments):
            return False
        return all(
            _argument_matches(mine, theirs)
            for mine, theirs in zip(self.arguments, other.arguments)
        )


def _argument_matches(first: str, second: str) -> bool:
    return first == second or is_generic_type(first) or is_generic_type(second)


def is_generic_type(argument_type: str) -> bool:
    return _GENERIC_TYPE.fullmatch(argument_type) is not None
