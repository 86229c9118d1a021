from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Span:
    """Half-open ``[start, end)`` offset range into a source buffer."""
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid span: {self.start}..{self.end}")

    def __repr__(self):
        return f"{self.start}..{self.end}"

    def __len__(self) -> int:
        return self.end - self.start

    def __contains__(self, offset: int) -> bool:
        return self.start <= offset < self.end

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def to_range(self) -> range:
        return range(self.start, self.end)

    @classmethod
    def coerce(cls, value: Any) -> "Span":
        """
        Accept a Span, a step-1 range or a (start, end) pair.
        """
        if isinstance(value, Span):
            return Span(value.start, value.end)
        if isinstance(value, range):
            if value.step != 1:
                raise TypeError(f"Cannot use a range with step {value.step} as a span")
            return cls(value.start, value.stop)
        if isinstance(value, tuple) and len(value) == 2 and all(
            isinstance(v, int) and not isinstance(v, bool) for v in value
        ):
            return cls(value[0], value[1])
        raise TypeError(f"Expected a span-like value, got {type(value).__name__}: {value!r}")
