import importlib
import logging

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from diagenum.compiler import Schema, compile_schema
from diagenum.errors import SchemaError
from diagenum.log import configure_logging

app = typer.Typer(
    name="diagenum",
    help="Inspect and validate diagnostic unions",
    add_completion=False,
)
console = Console()


def _load_union(target: str) -> type:
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise typer.BadParameter(f"expected module:Union, got {target!r}")
    try:
        obj = importlib.import_module(module_name)
        for part in attr.split("."):
            obj = getattr(obj, part)
    except (ImportError, AttributeError) as e:
        raise typer.BadParameter(f"cannot load {target}: {e}")
    return obj


def _compile(target: str, strict: bool) -> Schema:
    try:
        return compile_schema(_load_union(target), strict=strict)
    except SchemaError as e:
        console.print(f"[bold red]Schema error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)


def _describe_template(template) -> str:
    if template is None:
        return ""
    if not template.args:
        return repr(template.fmt)
    args = ", ".join(arg if isinstance(arg, str) else str(getattr(arg, "__name__", arg))
                     for arg in template.args)
    return f"{template.fmt!r} <- {args}"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    configure_logging(logging.DEBUG if verbose else None)


@app.command()
def inspect(
    target: str = typer.Argument(..., help="Union to inspect, as module:Union"),
    strict: bool = typer.Option(False, "--strict", help="Reject duplicate or ineffective annotations"),
):
    """
    Show what every case of a union resolves to.
    """
    schema = _compile(target, strict)
    table = Table(title=schema.union.__qualname__)
    for column in ("Case", "Shape", "Message", "Note", "Kind", "Code", "Config", "Location", "Labels"):
        table.add_column(column)
    for descriptor in schema.descriptors.values():
        config = descriptor.config
        table.add_row(
            descriptor.name,
            descriptor.shape.value,
            _describe_template(descriptor.message),
            _describe_template(descriptor.note),
            descriptor.kind.title,
            "" if descriptor.code is None else str(descriptor.code),
            "" if config is None else f"{config.index_type.value}/{config.char_set.value}",
            descriptor.location_field or "",
            "\n".join(
                f"{lf.field}: {_describe_template(lf.template)} ({lf.color})"
                for lf in descriptor.label_fields
            ),
        )
    console.print(table)


@app.command()
def check(
    target: str = typer.Argument(..., help="Union to validate, as module:Union"),
    strict: bool = typer.Option(False, "--strict", help="Reject duplicate or ineffective annotations"),
):
    """
    Compile a union and fail if its annotations are invalid.
    """
    schema = _compile(target, strict)
    console.print(f"[green]{schema.union.__qualname__}: {len(schema.descriptors)} case(s) OK[/green]")


if __name__ == "__main__":
    app()
