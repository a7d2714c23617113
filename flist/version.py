from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

VERSION_PATTERN = "major.minor.build.private"

U32_MAX = 0xFFFF_FFFF

_COMPONENT_RE = re.compile(r"\+?[0-9]+", re.ASCII)


class VersionFormatError(ValueError):
    def __init__(self, text: str, component: str):
        self.text = text
        self.component = component
        super().__init__(
            f"Invalid version '{text}': component '{component}' is not an unsigned 32-bit integer. "
            f"Expected format: {VERSION_PATTERN} (e.g., 1.2.3.4)"
        )


def _parse_component(text: str, part: str) -> Optional[int]:
    if not part:
        return None
    if not _COMPONENT_RE.fullmatch(part):
        raise VersionFormatError(text, part)
    value = int(part)
    if value > U32_MAX:
        raise VersionFormatError(text, part)
    return value


@dataclass(frozen=True)
class Version:
    """
    File version with up to four parts: major.minor.build.private.

    Equality is structural, so a missing part differs from an explicit 0:
    Version.parse("1.2") != Version.parse("1.2.0.0").
    Ordering and display treat a missing part as 0.
    """

    major: Optional[int] = None
    minor: Optional[int] = None
    build: Optional[int] = None
    private: Optional[int] = None

    @classmethod
    def parse(cls, text: str) -> "Version":
        # Components past the fourth are ignored.
        parts = text.split(".")[:4]
        parts += [""] * (4 - len(parts))
        major, minor, build, private = (_parse_component(text, p) for p in parts)
        return cls(major=major, minor=minor, build=build, private=private)

    def _key(self) -> Tuple[int, int, int, int]:
        return (self.major or 0, self.minor or 0, self.build or 0, self.private or 0)

    @property
    def is_complete(self) -> bool:
        return None not in (self.major, self.minor, self.build, self.private)

    def format(self) -> str:
        return "{}.{}.{}.{}".format(*self._key())

    def __str__(self) -> str:
        return self.format()

    def __format__(self, spec: str) -> str:
        return format(self.format(), spec)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() <= other._key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() > other._key()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() >= other._key()
