"""
Java release identifiers.

Javadoc ``@since`` tags have been written many different ways over the
years (``1.2``, ``JDK1.1``, ``1.5``, ``5.0``, ``7.0``, ``8u40``, ``6.0.18``).
``Version.parse`` maps all of them onto a canonical (major, minor, patch)
triple so they can be compared and grouped.
"""
from __future__ import annotations
import re
from typing import Optional
from pydantic import BaseModel, ConfigDict

from .errors import InvalidVersionFormat

_PREFIX_PATTERN  = re.compile(r"^(?:JDK|J2SE|JSE)\s*")
_VERSION_PATTERN = re.compile(r"(\d+)(?:\.(\d+))?(?:[.u](\d+))?\.?")

# Historical renumbering, applied in order to the cleaned string.
_RENUMBERING = (
    (re.compile(r"^7\.0$"), "7"),      # some Java 7 and 8 members were tagged 7.0
    (re.compile(r"^1\.5"),  "5.0"),
    (re.compile(r"^1\.6"),  "6"),
    (re.compile(r"^1\.7"),  "7"),
    (re.compile(r"^1\.8"),  "8"),
)

MODULES_INTRODUCED = (9, 0, 0)


class Version(BaseModel):
    """A parsed release identifier, ordered and compared by its triple."""
    model_config = ConfigDict(frozen=True)

    major: int
    minor: int = 0
    patch: int = 0
    display: str

    # ── Parsing ──────────────────────────────────────────────────────

    @classmethod
    def parse(cls, value: str) -> Version:
        return cls._from_cleaned(clean(value))

    @classmethod
    def _from_cleaned(cls, cleaned: str) -> Version:
        match = _VERSION_PATTERN.fullmatch(cleaned)
        if not match:
            raise InvalidVersionFormat(cleaned)

        major = int(match.group(1))
        minor = int(match.group(2) or 0)
        patch = int(match.group(3) or 0)

        if f"{major}.0{minor}" == cleaned:
            # 1.02 is 1.0.2
            minor, patch = 0, minor
        elif major > 1 and minor != 0 and patch == 0:
            # 8.40 is update 40 of 8, same as 8u40
            minor, patch = 0, minor

        display = cleaned
        if major > 1 and minor == 0 and patch != 0:
            display = f"{major}u{patch}"
        return cls(major=major, minor=minor, patch=patch, display=display)

    # ── Module system ────────────────────────────────────────────────

    def introduced_modules(self) -> bool:
        """True only for the release that introduced the module system."""
        return self.triple == MODULES_INTRODUCED

    def has_modules(self) -> bool:
        return self.major >= MODULES_INTRODUCED[0]

    # ── Ordering ─────────────────────────────────────────────────────

    @property
    def triple(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.triple == other.triple

    def __hash__(self) -> int:
        return hash(self.triple)

    def __lt__(self, other: Version) -> bool:
        return self.triple < other.triple

    def __le__(self, other: Version) -> bool:
        return self.triple <= other.triple

    def __gt__(self, other: Version) -> bool:
        return self.triple > other.triple

    def __ge__(self, other: Version) -> bool:
        return self.triple >= other.triple

    def __str__(self) -> str:
        return self.display

    def __repr__(self) -> str:
        return f"Version({self.display!r})"


def clean(value: str) -> str:
    """Strip legacy prefixes and apply the historical renumbering."""
    cleaned = _PREFIX_PATTERN.sub("", value.strip())
    for pattern, replacement in _RENUMBERING:
        cleaned = pattern.sub(replacement, cleaned, count=1)
    return cleaned


class VersionRegistry:
    """
    Interns parsed versions for one run.

    Equivalent strings (``8u40``, ``8.40``) resolve to the same instance,
    keyed first by cleaned string and then by canonical triple.
    """

    def __init__(self) -> None:
        self._by_text: dict[str, Version] = {}
        self._by_triple: dict[tuple[int, int, int], Version] = {}

    def parse(self, value: str) -> Version:
        cleaned = clean(value)
        cached = self._by_text.get(cleaned)
        if cached is not None:
            return cached

        version = Version._from_cleaned(cleaned)
        version = self._by_triple.setdefault(version.triple, version)
        self._by_text[cleaned] = version
        return version

    def parse_optional(self, value: Optional[str]) -> Optional[Version]:
        return None if value is None else self.parse(value)

    def __len__(self) -> int:
        return len(self._by_triple)

    def __contains__(self, value: str) -> bool:
        return clean(value) in self._by_text
