"""TypeAtlas CLI — infer, generate and document types from API samples."""

import json
import logging
import os
import sys

import click
import yaml
from rich.console import Console
from rich.table import Table

from .catalog import ParserOutput, TypeKind
from .docs import DEFAULT_TITLE, write_docs
from .engine import DEFAULT_ROOT_NAME, InferenceDepthError, TypeInferrer
from .generator import DEFAULT_OUTPUT_NAME, TypeScriptGenerator
from .reference import ReferenceMatcher

console = Console()


class _SampleLoader(yaml.SafeLoader):
    """SafeLoader that keeps timestamps as plain strings, as JSON would."""


_SampleLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _load_sample(path: str):
    """Decode a JSON or YAML sample file."""
    with open(path, "r", encoding="utf-8") as f:
        if path.lower().endswith((".yaml", ".yml")):
            return yaml.load(f, Loader=_SampleLoader)
        return json.load(f)


def _get_references(path):
    if not path:
        return ReferenceMatcher()
    return ReferenceMatcher.from_file(path)


def _fail(message: str, err):
    console.print(f"[red]{message}:[/] {err}")
    sys.exit(1)


def _write_output(path, text):
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w") as f:
        f.write(text)
    console.print(f"[green]Output written to {path}[/]")


def _load_parser_output(path):
    try:
        return ParserOutput.load(path)
    except (OSError, ValueError, KeyError, TypeError) as e:
        _fail(f"Cannot read parser output {path}", e)


def _references_or_fail(reference) -> ReferenceMatcher:
    try:
        return _get_references(reference)
    except (OSError, ValueError) as e:
        _fail("Reference schemas unavailable", e)


def _infer(input_path, references, root_name, max_depth=None) -> ParserOutput:
    try:
        data = _load_sample(input_path)
    except (ValueError, yaml.YAMLError) as e:
        _fail(f"Input is not valid JSON/YAML ({input_path})", e)
    except OSError as e:
        _fail("Cannot read input", e)
    try:
        return TypeInferrer(references=references, max_depth=max_depth).parse(
            data, root_name=root_name, source=os.path.basename(input_path),
        )
    except InferenceDepthError as e:
        _fail("Inference aborted", e)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose):
    """TypeAtlas — structural type inference for API responses."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False))
@click.option("-r", "--reference", type=click.Path(), envvar="TYPEATLAS_REFERENCE",
              help="Reference schema YAML/JSON file")
@click.option("-n", "--root-name", default=DEFAULT_ROOT_NAME, envvar="TYPEATLAS_ROOT_NAME",
              show_default=True, help="Name of the root type")
@click.option("-f", "--format", "fmt", type=click.Choice(["table", "yaml", "json"]), default="table")
@click.option("-o", "--output", type=click.Path(), help="Write output to file")
@click.option("--max-depth", type=int, default=None, help="Abort on samples nested deeper than this")
def parse(input_path, reference, root_name, fmt, output, max_depth):
    """Infer type definitions from a JSON/YAML sample."""
    result = _infer(input_path, _references_or_fail(reference), root_name, max_depth)

    if fmt == "table":
        _print_types(result)
        if output:
            _write_output(output, result.to_json())
    elif fmt == "yaml":
        text = yaml.dump(result.to_dict(), default_flow_style=False, sort_keys=False)
        if output:
            _write_output(output, text)
        else:
            click.echo(text)
    elif fmt == "json":
        text = result.to_json()
        if output:
            _write_output(output, text)
        else:
            click.echo(text)


def _print_types(result: ParserOutput):
    """Print a Rich summary of the inferred catalog."""
    if len(result.types) == 1:
        _print_detail(result.types[0], result.root_type)
        return

    table = Table(title=f"Inferred Types (root: {result.root_type})", show_lines=True)
    table.add_column("#", style="dim", width=4)
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Fields", justify="right")
    table.add_column("Optional", justify="right")
    table.add_column("References")

    for i, t in enumerate(result.types, 1):
        refs = sorted(r for r in t.references() if result.get(r.removesuffix("[]")) is not None)
        optional = sum(1 for f in t.fields if not f.required)
        name = f"[bold]{t.name}[/]" if t.name == result.root_type else t.name
        table.add_row(
            str(i),
            name,
            t.kind.wire_name,
            str(len(t.fields)),
            str(optional),
            ", ".join(refs) or "-",
        )

    console.print(table)


def _print_detail(t, root_type):
    console.print(f"\n[bold cyan]{t.name}[/] ({t.kind.wire_name})")
    if t.name == root_type:
        console.print("  Root type")
    if t.kind is TypeKind.RECORD:
        for f in t.fields:
            marker = "" if f.required else "[dim]?[/]"
            console.print(f"    {f.name}{marker}: [green]{f.type_ref}[/]")
    else:
        console.print(f"    Values: {', '.join(t.alternatives)}")
    console.print()


@main.command()
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False))
@click.option("-t", "--template", type=click.Path(), envvar="TYPEATLAS_TEMPLATE",
              help="Interface template file")
@click.option("-r", "--reference", type=click.Path(), envvar="TYPEATLAS_REFERENCE",
              help="Reference schema YAML/JSON file")
@click.option("-o", "--output", type=click.Path(), help="Write TypeScript to this file or directory")
@click.option("--storybook", is_flag=True, help="Append Storybook documentation types")
def generate(input_path, template, reference, output, storybook):
    """Generate TypeScript declarations from parser output JSON."""
    parsed = _load_parser_output(input_path)
    references = _references_or_fail(reference)

    generator = TypeScriptGenerator(template_path=template, references=references, storybook=storybook)
    result = generator.generate(parsed)

    if output:
        try:
            path = generator.write(output, result)
        except OSError as e:
            _fail("Write failed", e)
        console.print(f"[green]Generated TypeScript code: {path}[/]")
        console.print(f"  Types generated: {', '.join(result.files)}")
    else:
        click.echo(result.code)


@main.command()
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", "out_dir", type=click.Path(file_okay=False), default="docs",
              show_default=True, help="Output directory")
@click.option("--title", default=DEFAULT_TITLE, show_default=True, help="Documentation title")
def docs(input_path, out_dir, title):
    """Render HTML documentation from parser output JSON."""
    parsed = _load_parser_output(input_path)
    try:
        path = write_docs(parsed, out_dir, title=title)
    except OSError as e:
        _fail("Write failed", e)
    console.print(f"[green]Documentation generated:[/] {path}")


@main.command(name="all")
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False))
@click.option("-d", "--output-dir", type=click.Path(file_okay=False), default="output", show_default=True)
@click.option("-r", "--reference", type=click.Path(), envvar="TYPEATLAS_REFERENCE",
              help="Reference schema YAML/JSON file")
@click.option("-t", "--template", type=click.Path(), envvar="TYPEATLAS_TEMPLATE",
              help="Interface template file")
@click.option("-n", "--root-name", default=DEFAULT_ROOT_NAME, envvar="TYPEATLAS_ROOT_NAME", show_default=True)
@click.option("--title", default=DEFAULT_TITLE, show_default=True, help="Documentation title")
def all_cmd(input_path, output_dir, reference, template, root_name, title):
    """Run the full pipeline: parse, generate and document."""
    console.print("[bold]Step 1/3:[/] inferring types...")
    references = _references_or_fail(reference)
    parsed = _infer(input_path, references, root_name)
    parsed_path = os.path.join(output_dir, "parsed-types.json")

    try:
        _write_output(parsed_path, parsed.to_json())

        console.print("[bold]Step 2/3:[/] generating TypeScript...")
        generator = TypeScriptGenerator(template_path=template, references=references)
        generated = generator.generate(parsed)
        ts_path = generator.write(os.path.join(output_dir, "interfaces", DEFAULT_OUTPUT_NAME), generated)
        console.print(f"[green]Generated {len(generated.files)} declaration(s):[/] {ts_path}")

        console.print("[bold]Step 3/3:[/] rendering documentation...")
        docs_path = write_docs(parsed, os.path.join(output_dir, "docs"), title=title)
        console.print(f"[green]Documentation generated:[/] {docs_path}")
    except (OSError, ValueError) as e:
        _fail("Pipeline failed", e)

    console.print(f"\n[bold green]Pipeline complete[/]: root type {parsed.root_type}, {len(parsed.types)} types")
