"""
Rich-based report engine.

Builds rustc style reports: a header with the severity and message,
the primary location, every labelled source line with coloured underlines in
label order, and an optional trailing note.
"""

import io
import logging
import sys
from bisect import bisect_right
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import List, NamedTuple, Optional, TextIO, Tuple, Union

from rich.cells import cell_len
from rich.color import Color
from rich.console import Console
from rich.style import Style
from rich.text import Text

from diagenum.settings import get_settings
from diagenum.span import Span

logger = logging.getLogger(__name__)

DEFAULT_LABEL_COLOR = "red"

ColorLike = Union[str, Color]


class ReportKind(Enum):
    ERROR = ("Error", "red")
    WARNING = ("Warning", "yellow")
    ADVICE = ("Advice", "medium_purple1")

    def __init__(self, title: str, color: str):
        self.title = title
        self.color = color

    @classmethod
    def parse(cls, value: Union["ReportKind", str]) -> "ReportKind":
        if isinstance(value, ReportKind):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise ValueError(f"Unknown report kind: {value!r}")


class IndexType(Enum):
    BYTE = "byte"
    CHAR = "char"


class CharSet(Enum):
    UNICODE = "unicode"
    ASCII = "ascii"


class _Glyphs(NamedTuple):
    vbar: str
    hbar: str
    ltop: str
    lbot: str
    gap: str
    underline: str


_GLYPHS = {
    CharSet.UNICODE: _Glyphs("│", "─", "╭", "╯", "┆", "^"),
    CharSet.ASCII: _Glyphs("|", "-", ",", "'", ":", "^"),
}


@dataclass(frozen=True)
class Config:
    index_type: IndexType = IndexType.BYTE
    char_set: CharSet = CharSet.UNICODE
    color: bool = True
    compact: bool = False
    tab_width: int = 4

    @classmethod
    def default(cls) -> "Config":
        settings = get_settings()
        return cls(
            index_type=IndexType(settings.index_type),
            char_set=CharSet(settings.char_set),
            color=settings.color,
            compact=settings.compact,
            tab_width=settings.tab_width,
        )


class Source:
    """A source buffer with a line table for offset lookups."""

    def __init__(self, text: str):
        self.text = text
        self._encoded = text.encode("utf-8")
        self.line_starts: List[int] = [0]
        for i, char in enumerate(text):
            if char == "\n":
                self.line_starts.append(i + 1)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "Source":
        return cls(Path(path).read_text(encoding="utf-8"))

    def __len__(self):
        return len(self.text)

    @property
    def line_count(self) -> int:
        return len(self.line_starts)

    def line(self, index: int) -> str:
        start = self.line_starts[index]
        end = self.line_starts[index + 1] if index + 1 < len(self.line_starts) else len(self.text)
        return self.text[start:end].rstrip("\r\n")

    def char_offset(self, offset: int, index_type: IndexType) -> int:
        # Offsets past the buffer clamp to its end; a byte offset inside a
        # multi-byte character rounds down to that character.
        if index_type is IndexType.BYTE:
            offset = max(0, min(offset, len(self._encoded)))
            return len(self._encoded[:offset].decode("utf-8", errors="ignore"))
        return max(0, min(offset, len(self.text)))

    def position(self, char_offset: int) -> Tuple[int, int]:
        """Zero-based (line, column) of a char offset."""
        line = bisect_right(self.line_starts, char_offset) - 1
        return line, char_offset - self.line_starts[line]


@dataclass(frozen=True)
class Label:
    span: Tuple[str, Span]
    message: Optional[str] = None
    color: Optional[ColorLike] = None

    def with_message(self, message: str) -> "Label":
        return replace(self, message=message)

    def with_color(self, color: ColorLike) -> "Label":
        return replace(self, color=color)


class _Placed(NamedTuple):
    label: Label
    start_line: int
    start_col: int
    end_line: int
    end_col: int


@dataclass(frozen=True)
class Report:
    kind: ReportKind
    location: Tuple[str, Span]
    config: Config
    message: Optional[str] = None
    code: Optional[int] = None
    note: Optional[str] = None
    labels: Tuple[Label, ...] = field(default_factory=tuple)

    def render_lines(self, cache: Tuple[str, Union[Source, str]]) -> List[Text]:
        source_id, source = cache
        if isinstance(source, str):
            source = Source(source)
        if self.location[0] != source_id:
            raise ValueError(f"Report for {self.location[0]!r} cannot render against {source_id!r}")

        cfg = self.config
        glyphs = _GLYPHS[cfg.char_set]
        gutter_style = Style(dim=True)
        kind_style = Style(color=self.kind.color, bold=True)

        primary = self._place(source, Label(self.location))
        placed = []
        for label in self.labels:
            if label.span[0] != source_id:
                raise ValueError(f"Label for {label.span[0]!r} cannot render against {source_id!r}")
            placed.append(self._place(source, label))

        shown = sorted({p.start_line for p in placed} | {p.end_line for p in placed})
        if not shown:
            shown = [primary.start_line]
        width = len(str(shown[-1] + 1))
        pad = " " * (width + 2)

        out: List[Text] = []
        header = Text()
        if self.code is not None:
            header.append(f"[{self.code}] ", style=kind_style)
        header.append(f"{self.kind.title}:", style=kind_style)
        if self.message:
            header.append(f" {self.message}")
        out.append(header)

        out.append(Text.assemble(
            (f"{pad}{glyphs.ltop}{glyphs.hbar}[", gutter_style),
            f"{source_id}:{primary.start_line + 1}:{primary.start_col + 1}",
            ("]", gutter_style),
        ))
        if not cfg.compact:
            out.append(Text(f"{pad}{glyphs.vbar}", style=gutter_style))

        previous = None
        for line_index in shown:
            if previous is not None and line_index > previous + 1:
                out.append(Text(f"{pad}{glyphs.gap}", style=gutter_style))
            previous = line_index

            raw = source.line(line_index)
            row = Text()
            row.append(f" {line_index + 1:>{width}} {glyphs.vbar} ", style=gutter_style)
            row.append(raw.expandtabs(cfg.tab_width))
            out.append(row)

            for p in placed:
                if line_index not in (p.start_line, p.end_line):
                    continue
                out.append(self._underline(p, line_index, raw, pad, glyphs, gutter_style))

        out.append(Text(glyphs.hbar * (width + 2) + glyphs.lbot, style=gutter_style))

        if self.note:
            prefix = f"{pad}= note: "
            note_lines = self.note.split("\n")
            first = Text()
            first.append(f"{pad}= ", style=gutter_style)
            first.append("note:", style=Style(bold=True))
            first.append(f" {note_lines[0]}")
            out.append(first)
            for extra in note_lines[1:]:
                out.append(Text(" " * len(prefix) + extra))
        return out

    def render_text(self, cache: Tuple[str, Union[Source, str]]) -> str:
        buffer = io.StringIO()
        console = Console(
            file=buffer,
            force_terminal=self.config.color,
            color_system="256" if self.config.color else None,
            legacy_windows=False,
            no_color=not self.config.color,
            highlight=False,
            soft_wrap=True,
            emoji=False,
            markup=False,
        )
        for line in self.render_lines(cache):
            console.print(line)
        return buffer.getvalue()

    def write(self, cache: Tuple[str, Union[Source, str]], sink: TextIO) -> None:
        # One write per report; errors from the sink reach the caller as-is.
        sink.write(self.render_text(cache))
        sink.flush()

    def eprint(self, cache: Tuple[str, Union[Source, str]]) -> None:
        self.write(cache, sys.stderr)

    def print(self, cache: Tuple[str, Union[Source, str]]) -> None:
        self.write(cache, sys.stdout)

    def _place(self, source: Source, label: Label) -> _Placed:
        span = label.span[1]
        start = source.char_offset(span.start, self.config.index_type)
        end = source.char_offset(span.end, self.config.index_type)
        start_line, start_col = source.position(start)
        if end > start:
            # The end is exclusive, so the last covered char decides the line.
            end_line, last_col = source.position(end - 1)
            end_col = last_col + 1
        else:
            end_line, end_col = start_line, start_col
        return _Placed(label, start_line, start_col, end_line, end_col)

    def _underline(self, placed: _Placed, line_index: int, raw: str, pad: str,
                   glyphs: _Glyphs, gutter_style: Style) -> Text:
        if placed.start_line == placed.end_line:
            start_col, end_col = placed.start_col, placed.end_col
        elif line_index == placed.start_line:
            start_col, end_col = placed.start_col, max(len(raw), placed.start_col + 1)
        else:
            start_col, end_col = 0, placed.end_col

        tab_width = self.config.tab_width
        start_cell = cell_len(raw[:start_col].expandtabs(tab_width))
        end_cell = cell_len(raw[:end_col].expandtabs(tab_width))
        color = placed.label.color or DEFAULT_LABEL_COLOR
        style = Style(color=color)

        row = Text()
        row.append(f"{pad}{glyphs.vbar} ", style=gutter_style)
        row.append(" " * start_cell)
        row.append(glyphs.underline * max(1, end_cell - start_cell), style=style)
        if placed.label.message and line_index == placed.end_line:
            row.append(f" {placed.label.message}", style=style)
        return row


class ReportBuilder:
    def __init__(self, kind: ReportKind, location: Tuple[str, Span], config: Config):
        self.kind = kind
        self.location = (location[0], Span.coerce(location[1]))
        self.config = config
        self.message: Optional[str] = None
        self.code: Optional[int] = None
        self.note: Optional[str] = None
        self.labels: List[Label] = []

    def with_message(self, message: str) -> "ReportBuilder":
        self.message = message
        return self

    def with_code(self, code: int) -> "ReportBuilder":
        self.code = code
        return self

    def with_config(self, config: Config) -> "ReportBuilder":
        self.config = config
        return self

    def with_label(self, label: Label) -> "ReportBuilder":
        self.labels.append(label)
        return self

    def with_labels(self, labels) -> "ReportBuilder":
        for label in labels:
            self.with_label(label)
        return self

    def with_note(self, note: str) -> "ReportBuilder":
        self.note = note
        return self

    def finish(self) -> Report:
        return Report(
            kind=self.kind,
            location=self.location,
            config=self.config,
            message=self.message,
            code=self.code,
            note=self.note,
            labels=tuple(self.labels),
        )


class RichReportEngine:
    """Default engine handed to the renderer when the caller supplies none."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config

    def build(self, kind: ReportKind, location: Tuple[str, Span]) -> ReportBuilder:
        config = self.config if self.config is not None else Config.default()
        logger.debug("Building %s report at %s:%r", kind.title, location[0], location[1])
        return ReportBuilder(kind, location, config)
