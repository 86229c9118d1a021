"""
Schema compiler for diagnostic unions.

A union is a ``DiagnosticEnum`` subclass whose nested ``Case``/``TupleCase``
classes are its cases. When the union class is created every case is rebuilt
as a frozen dataclass deriving from the union, and one ``CaseDescriptor`` is
compiled per case. ``Schema`` turns those descriptors into total accessors:
every case resolves every concern, falling back to the documented default.

Duplicate annotations keep the first one in source order. ``strict=True``
turns duplicates and other tolerated irregularities into ``SchemaError``.
"""

import dataclasses
import inspect
import logging
import typing
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from diagenum import renderer
from diagenum.assembler import DiagnosticRecord, ResolvedLabel, assemble
from diagenum.errors import SchemaError
from diagenum.report import DEFAULT_LABEL_COLOR, ColorLike, Config, ReportKind
from diagenum.schema import (
    ColoredMarker,
    LabelMarker,
    ReportAnnotation,
    Template,
    case_annotations,
    here,
    holds_span,
    split_annotated,
)
from diagenum.span import Span

logger = logging.getLogger(__name__)

CASE_FLAG = "__diagnostic_case__"
SHAPE_ATTR = "__diagnostic_shape__"
FIELDS_ATTR = "__diagnostic_fields__"

RESERVED_NAMES = frozenset({
    "message", "note", "kind", "code", "config", "location", "labels",
    "render", "report", "assemble", "cases",
})

# Entries of a case's own __dict__ that must not be copied onto the rebuilt class.
_SKIPPED_ATTRS = frozenset({
    "__dict__", "__weakref__", "__annotations__", "__annotate__",
    "__annotate_func__", "__annotations_cache__",
})


class Shape(Enum):
    UNIT = "unit"
    NAMED = "named"
    POSITIONAL = "positional"


class Case:
    """Base for unit and named-field cases declared inside a DiagnosticEnum."""


class TupleCase(Case):
    """Base for positional cases. Declare ``members = (type, ...)``."""


class _PositionalMembers:
    """Tuple-style access for positional cases, whose fields are arg0..argN."""

    def __getitem__(self, index):
        return tuple(self)[index]

    def __iter__(self):
        return iter(getattr(self, f.name) for f in dataclasses.fields(self))

    def __len__(self):
        return len(dataclasses.fields(self))


@dataclass(frozen=True)
class LabelField:
    field: str
    template: Template
    color: ColorLike = DEFAULT_LABEL_COLOR


@dataclass(frozen=True)
class CaseDescriptor:
    name: str
    shape: Shape
    fields: Tuple[str, ...]
    message: Optional[Template] = None
    note: Optional[Template] = None
    kind: ReportKind = ReportKind.ERROR
    config: Optional[Config] = None
    code: Optional[int] = None
    location_field: Optional[str] = None
    label_fields: Tuple[LabelField, ...] = ()


class Schema:
    """Compiled, immutable accessor table for one union."""

    def __init__(self, union: type, descriptors: Dict[type, CaseDescriptor], strict: bool = False):
        self.union = union
        self.descriptors: Mapping[type, CaseDescriptor] = MappingProxyType(dict(descriptors))
        self.strict = strict

    def __repr__(self):
        return f"<Schema {self.union.__qualname__}: {len(self.descriptors)} case(s)>"

    def descriptor(self, instance: Any) -> CaseDescriptor:
        try:
            return self.descriptors[type(instance)]
        except KeyError:
            raise TypeError(f"{instance!r} is not a case of {self.union.__qualname__}") from None

    def message(self, instance: Any) -> Optional[str]:
        template = self.descriptor(instance).message
        return template.resolve(instance) if template is not None else None

    def note(self, instance: Any) -> Optional[str]:
        template = self.descriptor(instance).note
        return template.resolve(instance) if template is not None else None

    def kind(self, instance: Any) -> ReportKind:
        return self.descriptor(instance).kind

    def code(self, instance: Any) -> Optional[int]:
        return self.descriptor(instance).code

    def config(self, instance: Any) -> Optional[Config]:
        return self.descriptor(instance).config

    def location(self, instance: Any) -> Optional[Span]:
        name = self.descriptor(instance).location_field
        if name is None:
            return None
        value = getattr(instance, name)
        return Span.coerce(value) if value is not None else None

    def labels(self, instance: Any) -> List[ResolvedLabel]:
        labels = []
        for label_field in self.descriptor(instance).label_fields:
            value = getattr(instance, label_field.field)
            # Optional span fields that are unset contribute no label.
            if value is None:
                continue
            labels.append(ResolvedLabel(
                label_field.color,
                label_field.template.resolve(instance),
                Span.coerce(value),
            ))
        return labels


class DiagnosticEnum:
    """
    Base class for diagnostic unions.

    Example::

        class ParseError(DiagnosticEnum):
            @message("unexpected {}", "token")
            class Unexpected(Case):
                token: str
                span: Annotated[Span, here, label("here")]

    Pass ``strict=True`` in the class statement to reject duplicate or
    ineffective annotations instead of warning about them.
    """

    __schema__ = None
    __cases__ = ()

    def __init_subclass__(cls, strict: bool = False, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.__dict__.get(CASE_FLAG):
            return
        _materialize_cases(cls)
        cls.__schema__ = compile_schema(cls, strict=strict)

    def __new__(cls, *args, **kwargs):
        if not cls.__dict__.get(CASE_FLAG):
            raise TypeError(f"{cls.__qualname__} is a diagnostic union; instantiate one of its cases")
        return super().__new__(cls)

    @classmethod
    def cases(cls) -> Tuple[type, ...]:
        return cls.__cases__

    def message(self) -> Optional[str]:
        return type(self).__schema__.message(self)

    def note(self) -> Optional[str]:
        return type(self).__schema__.note(self)

    def kind(self) -> ReportKind:
        return type(self).__schema__.kind(self)

    def code(self) -> Optional[int]:
        return type(self).__schema__.code(self)

    def config(self) -> Optional[Config]:
        return type(self).__schema__.config(self)

    def location(self) -> Optional[Span]:
        return type(self).__schema__.location(self)

    def labels(self) -> List[ResolvedLabel]:
        return type(self).__schema__.labels(self)

    def assemble(self) -> DiagnosticRecord:
        return assemble(self)

    def report(self, display_name: str, *, engine=None):
        return renderer.build_report(self, display_name, engine=engine)

    def render(self, display_name: str, source, *, engine=None, sink=None) -> None:
        renderer.render(self, display_name, source, engine=engine, sink=sink)


def _source_location(obj: Any) -> Optional[str]:
    try:
        filename = inspect.getsourcefile(obj)
        _, lineno = inspect.getsourcelines(obj)
    except (OSError, TypeError):
        return None
    return f"{filename}:{lineno}"


def _error(message: str, union: type, case_name: Optional[str] = None,
           case: Optional[type] = None, field: Optional[str] = None) -> SchemaError:
    return SchemaError(
        message,
        union=union.__qualname__,
        case=case_name,
        field=field,
        location=_source_location(case if case is not None else union),
    )


def _is_class_var(tp: Any) -> bool:
    return tp is typing.ClassVar or typing.get_origin(tp) is typing.ClassVar


def _functions_of(value: Any):
    if isinstance(value, (staticmethod, classmethod)):
        value = value.__func__
    if isinstance(value, property):
        return [f for f in (value.fget, value.fset, value.fdel) if f is not None]
    return [value] if inspect.isfunction(value) else []


def _rebind_class_cells(namespace: Mapping[str, Any], old: type, new: type) -> None:
    # Zero-argument super() reads the __class__ cell, which still names the
    # class body the case was written in.
    for value in namespace.values():
        for func in _functions_of(value):
            func = inspect.unwrap(func)
            if func.__closure__ is None or "__class__" not in func.__code__.co_freevars:
                continue
            cell = func.__closure__[func.__code__.co_freevars.index("__class__")]
            if cell.cell_contents is old:
                cell.cell_contents = new


def _rebuild_case(union: type, name: str, case: type) -> type:
    extra_bases = tuple(b for b in case.__bases__ if b not in (Case, TupleCase, object))
    for base in extra_bases:
        if issubclass(base, Case) or issubclass(base, DiagnosticEnum):
            raise _error(f"cases cannot inherit from {base.__qualname__}", union, name, case)

    if issubclass(case, TupleCase):
        members = case.__dict__.get("members")
        if not isinstance(members, tuple):
            raise _error("positional case must declare members as a tuple of field types",
                         union, name, case)
        if inspect.get_annotations(case):
            raise _error("positional case cannot declare named fields", union, name, case)
        hints = {f"arg{i}": tp for i, tp in enumerate(members)}
        shape = Shape.POSITIONAL if hints else Shape.UNIT
        bases = extra_bases + ((_PositionalMembers, union) if hints else (union,))
    else:
        try:
            resolved = typing.get_type_hints(case, include_extras=True)
        except NameError as e:
            raise _error(f"cannot resolve field annotation: {e}", union, name, case) from None
        hints = {k: v for k, v in resolved.items() if not _is_class_var(v)}
        shape = Shape.NAMED if hints else Shape.UNIT
        bases = extra_bases + (union,)

    for field_name in hints:
        if field_name in RESERVED_NAMES:
            raise _error(f"field name {field_name!r} would shadow the {field_name}() accessor",
                         union, name, case, field_name)

    skipped = _SKIPPED_ATTRS | {"members"} if issubclass(case, TupleCase) else _SKIPPED_ATTRS
    namespace = {k: v for k, v in vars(case).items() if k not in skipped}
    namespace.update({
        "__annotations__": dict(hints),
        "__qualname__": f"{union.__qualname__}.{name}",
        "__module__": case.__module__,
        CASE_FLAG: True,
        SHAPE_ATTR: shape,
        FIELDS_ATTR: MappingProxyType(dict(hints)),
    })
    rebuilt = type(union)(name, bases, namespace)
    try:
        rebuilt = dataclass(frozen=True)(rebuilt)
    except TypeError as e:
        raise _error(str(e), union, name, case) from None
    _rebind_class_cells(namespace, case, rebuilt)
    return rebuilt


def _materialize_cases(union: type) -> None:
    cases = []
    for name, value in list(vars(union).items()):
        if isinstance(value, type) and issubclass(value, Case):
            rebuilt = _rebuild_case(union, name, value)
            setattr(union, name, rebuilt)
            cases.append(rebuilt)
    union.__cases__ = tuple(cases)


class _CaseCompiler:
    def __init__(self, union: type, case: type, strict: bool):
        self.union = union
        self.case = case
        self.name = case.__name__
        self.strict = strict
        self.shape: Shape = case.__dict__[SHAPE_ATTR]
        self.hints: Mapping[str, Any] = case.__dict__[FIELDS_ATTR]
        self.fields = tuple(f.name for f in dataclasses.fields(case))

    def fail(self, message: str, field: Optional[str] = None) -> SchemaError:
        return _error(message, self.union, self.name, self.case, field)

    def irregular(self, message: str, field: Optional[str] = None):
        error = self.fail(message, field)
        if self.strict:
            raise error
        logger.warning("%s", error)

    def check_references(self, template: Template, field: Optional[str] = None):
        for ref in template.field_references():
            if ref not in self.fields:
                if self.shape is Shape.UNIT:
                    raise self.fail(f"template {template.fmt!r} references field {ref!r} "
                                    f"but the case has no fields", field)
                raise self.fail(f"template {template.fmt!r} references unknown field {ref!r}", field)
        for index in template.positional_references():
            if self.shape is not Shape.POSITIONAL:
                raise self.fail(f"template {template.fmt!r} uses positional index {index} "
                                f"outside a positional case", field)
            if index >= len(self.fields):
                raise self.fail(f"template {template.fmt!r} uses positional index {index} "
                                f"but the case has {len(self.fields)} member(s)", field)

    def first(self, grouped, tag: str):
        annotations = grouped.get(tag, ())
        if len(annotations) > 1:
            self.irregular(f"@{tag} is declared {len(annotations)} times; the first one is used")
        return annotations[0] if annotations else None

    def compile(self) -> CaseDescriptor:
        grouped = case_annotations(self.case)
        message = self.first(grouped, "message")
        note = self.first(grouped, "note")
        report: ReportAnnotation = self.first(grouped, "report") or ReportAnnotation()
        for annotation in (message, note):
            if annotation is not None:
                self.check_references(annotation.template)

        location_field = None
        label_fields = []
        for field_name in self.fields:
            base, markers = split_annotated(self.hints[field_name])
            here_marks = [m for m in markers if m is here]
            labels = [m for m in markers if isinstance(m, LabelMarker)]
            colors = [m for m in markers if isinstance(m, ColoredMarker)]

            if (here_marks or labels) and not holds_span(base):
                raise self.fail(f"field of type {getattr(base, '__name__', base)!s} cannot hold a span",
                                field_name)
            if len(here_marks) > 1:
                self.irregular("location marker is repeated", field_name)
            if here_marks:
                if location_field is None:
                    location_field = field_name
                else:
                    self.irregular(f"more than one location field; keeping {location_field!r}",
                                   field_name)
            if len(colors) > 1:
                self.irregular("color is declared more than once; the first one is used", field_name)
            if colors and not labels:
                self.irregular("color has no effect without a label", field_name)

            color = colors[0].color if colors else DEFAULT_LABEL_COLOR
            for marker in labels:
                self.check_references(marker.template, field_name)
                label_fields.append(LabelField(field_name, marker.template, color))

        return CaseDescriptor(
            name=self.name,
            shape=self.shape,
            fields=self.fields,
            message=message.template if message is not None else None,
            note=note.template if note is not None else None,
            kind=report.kind if report.kind is not None else ReportKind.ERROR,
            config=report.config,
            code=report.code,
            location_field=location_field,
            label_fields=tuple(label_fields),
        )


def compile_schema(union: Any, strict: bool = False) -> Schema:
    """
    Compile the accessor table for a union.

    Can be called again on an existing union, e.g. with ``strict=True`` to
    validate it more tightly than its definition asked for.
    """
    if (
        not isinstance(union, type)
        or not issubclass(union, DiagnosticEnum)
        or union is DiagnosticEnum
        or union.__dict__.get(CASE_FLAG)
    ):
        name = getattr(union, "__qualname__", type(union).__qualname__)
        raise SchemaError(
            f"{name} is not a diagnostic union; derive it from DiagnosticEnum "
            f"and declare its cases as nested Case classes"
        )

    cases = union.__dict__.get("__cases__", ())
    if not cases:
        raise _error("union declares no cases", union)
    if union.__dict__.get("__diagnostic_annotations__"):
        raise _error("case annotations belong on cases, not on the union", union)

    descriptors = {case: _CaseCompiler(union, case, strict).compile() for case in cases}
    schema = Schema(union, descriptors, strict)
    logger.debug("Compiled %r", schema)
    return schema
