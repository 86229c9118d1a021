"""
Annotation vocabulary for diagnostic unions.

Case decorators::

    @message("unexpected token {}", "token")
    @note("expected {}", "expected")
    @report(kind=ReportKind.WARNING, code=12)

Field markers, placed in ``typing.Annotated`` metadata::

    span: Annotated[Span, here, label("found {}", "token"), colored("yellow")]

Template arguments are field references (``"name"`` or ``"name.attr"``),
positional indices for ``TupleCase`` members, or callables that receive the
case instance.
"""

import string
import typing
from dataclasses import dataclass
from types import UnionType
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from rich.color import Color, ColorParseError

from diagenum.errors import SchemaError
from diagenum.report import Config, ReportKind
from diagenum.span import Span

ANNOTATIONS_ATTR = "__diagnostic_annotations__"

Argument = Union[str, int, Callable[[Any], Any]]


def _check_argument(arg: Any) -> Argument:
    if isinstance(arg, bool) or not (isinstance(arg, (str, int)) or callable(arg)):
        raise SchemaError(
            f"Template argument {arg!r} must be a field name, a positional index or a callable"
        )
    if isinstance(arg, int) and arg < 0:
        raise SchemaError(f"Positional index {arg} must not be negative")
    if isinstance(arg, str) and not all(part.isidentifier() for part in arg.split(".")):
        raise SchemaError(f"Template argument {arg!r} is not a valid field reference")
    return arg


def _count_placeholders(fmt: str, auto: int, explicit: set) -> int:
    for _literal, field_name, spec, _conversion in string.Formatter().parse(fmt):
        if field_name is None:
            continue
        if field_name == "":
            auto += 1
        else:
            head = field_name.split(".", 1)[0].split("[", 1)[0]
            if not head.isdigit():
                raise ValueError(f"named placeholder {{{field_name}}} is not supported")
            explicit.add(int(head))
        if spec:
            auto = _count_placeholders(spec, auto, explicit)
    return auto


class Template:
    """A format string with positional ``{}`` placeholders and its arguments."""

    def __init__(self, fmt: str, args: Sequence[Any]):
        if not isinstance(fmt, str):
            raise SchemaError(f"Template must be a string literal, got {fmt!r}")
        self.fmt = fmt
        self.args: Tuple[Argument, ...] = tuple(_check_argument(arg) for arg in args)
        self._check_grammar()

    def _check_grammar(self):
        explicit: set = set()
        try:
            auto = _count_placeholders(self.fmt, 0, explicit)
        except ValueError as e:
            raise SchemaError(f"Malformed template {self.fmt!r}: {e}") from None
        if auto and explicit:
            raise SchemaError(
                f"Template {self.fmt!r} mixes automatic and manual field numbering"
            )
        if explicit:
            if explicit != set(range(len(self.args))):
                raise SchemaError(
                    f"Template {self.fmt!r} must use each of its {len(self.args)} argument(s) "
                    f"exactly by index, got {sorted(explicit)}"
                )
        elif auto != len(self.args):
            raise SchemaError(
                f"Template {self.fmt!r} has {auto} placeholder(s) but {len(self.args)} argument(s)"
            )

    def __repr__(self):
        args = "".join(f", {arg!r}" for arg in self.args)
        return f"Template({self.fmt!r}{args})"

    def __eq__(self, other):
        return isinstance(other, Template) and (self.fmt, self.args) == (other.fmt, other.args)

    def __hash__(self):
        return hash((self.fmt, self.args))

    def field_references(self) -> Tuple[str, ...]:
        return tuple(arg.split(".", 1)[0] for arg in self.args if isinstance(arg, str))

    def positional_references(self) -> Tuple[int, ...]:
        return tuple(arg for arg in self.args if isinstance(arg, int))

    def resolve(self, instance: Any) -> str:
        return self.fmt.format(*(evaluate(arg, instance) for arg in self.args))


def evaluate(arg: Argument, instance: Any) -> Any:
    if isinstance(arg, str):
        value = instance
        for part in arg.split("."):
            value = getattr(value, part)
        return value
    if isinstance(arg, int):
        return instance[arg]
    return arg(instance)


# --- Case annotations ---

@dataclass(frozen=True)
class MessageAnnotation:
    template: Template
    tag = "message"


@dataclass(frozen=True)
class NoteAnnotation:
    template: Template
    tag = "note"


@dataclass(frozen=True)
class ReportAnnotation:
    kind: Optional[ReportKind] = None
    config: Optional[Config] = None
    code: Optional[int] = None
    tag = "report"


CaseAnnotation = Union[MessageAnnotation, NoteAnnotation, ReportAnnotation]


def _annotate(annotation: CaseAnnotation):
    def decorate(target):
        if not isinstance(target, type):
            raise SchemaError(f"@{annotation.tag} can only decorate a case class, not {target!r}")
        if getattr(target, "__schema__", None) is not None:
            raise SchemaError(
                f"@{annotation.tag} cannot be applied to {target.__qualname__} after its union was "
                f"compiled; annotate the nested case classes instead"
            )
        # Decorators apply bottom-up; prepending keeps source order.
        existing = target.__dict__.get(ANNOTATIONS_ATTR, ())
        setattr(target, ANNOTATIONS_ATTR, (annotation,) + tuple(existing))
        return target
    return decorate


def message(fmt: str, *args: Argument):
    """Headline of the diagnostic."""
    return _annotate(MessageAnnotation(Template(fmt, args)))


def note(fmt: str, *args: Argument):
    """Trailing note printed under the report."""
    return _annotate(NoteAnnotation(Template(fmt, args)))


REPORT_SETTINGS = ("kind", "config", "code")


def report(**settings: Any):
    """Severity, render config and numeric code; each one optional."""
    unknown = sorted(set(settings) - set(REPORT_SETTINGS))
    if unknown:
        raise SchemaError(
            f"Unknown report setting(s) {', '.join(unknown)}; expected kind, config or code"
        )

    kind = settings.get("kind")
    if kind is not None:
        try:
            kind = ReportKind.parse(kind)
        except ValueError as e:
            raise SchemaError(str(e)) from None

    config = settings.get("config")
    if config is not None and not isinstance(config, Config):
        raise SchemaError(f"Report config must be a Config, got {type(config).__name__}")

    code = settings.get("code")
    if code is not None and (isinstance(code, bool) or not isinstance(code, int) or code < 0):
        raise SchemaError(f"Report code must be a non-negative integer, got {code!r}")

    return _annotate(ReportAnnotation(kind=kind, config=config, code=code))


# --- Field markers ---

class _Here:
    __slots__ = ()

    def __call__(self):
        return self

    def __repr__(self):
        return "here"


here = _Here()


@dataclass(frozen=True)
class LabelMarker:
    template: Template


@dataclass(frozen=True)
class ColoredMarker:
    color: Union[str, Color]


def label(fmt: str, *args: Argument) -> LabelMarker:
    return LabelMarker(Template(fmt, args))


def colored(color: Union[str, Color]) -> ColoredMarker:
    if isinstance(color, str):
        try:
            Color.parse(color)
        except ColorParseError as e:
            raise SchemaError(f"Invalid label color {color!r}: {e}") from None
    elif not isinstance(color, Color):
        raise SchemaError(f"Label color must be a color name or rich Color, got {color!r}")
    return ColoredMarker(color)


FieldMarker = Union[_Here, LabelMarker, ColoredMarker]


def split_annotated(tp: Any) -> Tuple[Any, Tuple[FieldMarker, ...]]:
    """Split ``Annotated[T, ...]`` into ``T`` and the diagnostic markers it carries."""
    if typing.get_origin(tp) is typing.Annotated:
        base, *metadata = typing.get_args(tp)
        markers = tuple(m for m in metadata if isinstance(m, (_Here, LabelMarker, ColoredMarker)))
        return base, markers
    return tp, ()


def holds_span(tp: Any) -> bool:
    """Whether a field declared as ``tp`` can carry a span."""
    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is UnionType:
        return any(holds_span(arg) for arg in typing.get_args(tp) if arg is not type(None))
    if origin is not None:
        tp = origin
    if not isinstance(tp, type):
        return True
    return issubclass(tp, (Span, range, tuple))


def case_annotations(case: type) -> Dict[str, Tuple[CaseAnnotation, ...]]:
    grouped: Dict[str, Tuple[CaseAnnotation, ...]] = {}
    for annotation in case.__dict__.get(ANNOTATIONS_ATTR, ()):
        grouped[annotation.tag] = grouped.get(annotation.tag, ()) + (annotation,)
    return grouped
