"""Protocol version reported by the daemon in its banner."""

from typing import NamedTuple

from .errors import ParseError, ParseErrorKind


class Version(NamedTuple):
    """Protocol version triple, ordered lexicographically."""

    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return "{}.{}.{}".format(self.major, self.minor, self.patch)

    @classmethod
    def parse(cls, text: str) -> "Version":
        """Parse "<major>.<minor>.<patch>".

        Raises ParseError(BAD_VERSION) unless there are exactly three
        non-negative integer components.
        """
        parts = text.split(".")
        if len(parts) != 3 or not all(p.isascii() and p.isdigit() for p in parts):
            raise ParseError(ParseErrorKind.BAD_VERSION, text)
        return cls(int(parts[0]), int(parts[1]), int(parts[2]))
