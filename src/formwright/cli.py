"""
formwright command line interface.

Commands:
- compile: Compile a template and report structural issues
- render: Render a template to HTML
- schema: Show the submission rules generated for a template
- inject: Render a template with chip values from a context file
- check: Validate submission data against a template
- version: Show the installed version
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from formwright import __version__
from formwright.config import ConfigError, load_config
from formwright.core.compiler import (
    CompiledForm,
    compile_form,
    render_with_data,
    validate_submission,
)
from formwright.core.errors import TemplateIssue
from formwright.core.injector import build_prefill
from formwright.runtime.logging import setup_logging

app = typer.Typer(
    help="Compile, render and validate formwright form templates",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True, soft_wrap=True)


@app.callback()
def main_callback(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to formwright.toml"),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override the configured log level"),
    ] = None,
) -> None:
    """Compile, render and validate formwright form templates."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        err_console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1)

    setup_logging(
        level=log_level or config.logging.level,
        log_dir=config.logging.dir,
        json_output=config.logging.json,
    )


# =============================================================================
# Helpers
# =============================================================================


def _read_text(path: Path) -> str:
    if not path.exists():
        err_console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(code=1)
    return path.read_text(encoding="utf-8")


def _read_json(path: Path, what: str) -> dict[str, Any]:
    try:
        data = json.loads(_read_text(path))
    except json.JSONDecodeError as e:
        err_console.print(f"[red]Invalid JSON in {what} file {path}: {e}[/red]")
        raise typer.Exit(code=1)
    if not isinstance(data, dict):
        err_console.print(f"[red]{what.capitalize()} file {path} must hold a JSON object[/red]")
        raise typer.Exit(code=1)
    return data


def _print_issues(issues: list[TemplateIssue]) -> None:
    table = Table(title="Template issues")
    table.add_column("Line", justify="right")
    table.add_column("Severity")
    table.add_column("Message")
    for issue in issues:
        color = "red" if issue.is_error else "yellow"
        table.add_row(
            str(issue.line) if issue.line else "-",
            f"[{color}]{issue.severity.value}[/{color}]",
            issue.message,
        )
    err_console.print(table)


def _compile_or_exit(template: Path) -> CompiledForm:
    compiled = compile_form(_read_text(template))
    if not compiled.is_valid:
        _print_issues(compiled.errors + compiled.warnings)
        err_console.print(f"[red]Template {template} has {len(compiled.errors)} error(s)[/red]")
        raise typer.Exit(code=1)
    return compiled


def _write_or_print(content: str, output: Path | None) -> None:
    if output:
        output.write_text(content, encoding="utf-8")
        err_console.print(f"[green]Written to {output}[/green]")
    else:
        typer.echo(content)


# =============================================================================
# Commands
# =============================================================================


@app.command(name="compile")
def compile_command(
    template: Annotated[Path, typer.Argument(help="Template file")],
    output_json: Annotated[
        bool, typer.Option("--json", help="Print the compiled form as JSON")
    ] = False,
) -> None:
    """Compile a template and report errors and warnings."""
    compiled = compile_form(_read_text(template))

    if output_json:
        typer.echo(json.dumps(compiled.to_dict(), indent=2))
    else:
        issues = compiled.errors + compiled.warnings
        if issues:
            _print_issues(sorted(issues, key=lambda issue: issue.line))
        ast = compiled.ast
        field_count = sum(len(section.fields) for section in ast.sections)
        console.print(f"[bold]{ast.title or '(untitled)'}[/bold]")
        console.print(
            f"  {len(ast.pages)} page(s), {len(ast.sections)} section(s), "
            f"{field_count} top-level container(s)"
        )
        if ast.metadata.chip_references:
            console.print(f"  chips: {', '.join(ast.metadata.chip_references)}")
        if compiled.is_valid:
            console.print("[green]Template is valid[/green]")

    if not compiled.is_valid:
        raise typer.Exit(code=1)


@app.command(name="render")
def render_command(
    template: Annotated[Path, typer.Argument(help="Template file")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Output file (default: stdout)")
    ] = None,
) -> None:
    """Render a template to an HTML form skeleton."""
    compiled = _compile_or_exit(template)
    _write_or_print(compiled.html_preview, output)


@app.command(name="schema")
def schema_command(
    template: Annotated[Path, typer.Argument(help="Template file")],
    output_json: Annotated[bool, typer.Option("--json", help="Print the JSON Schema")] = False,
) -> None:
    """Show the validation rules generated for each field."""
    compiled = _compile_or_exit(template)
    schema = compiled.schema
    if schema is None:
        err_console.print(f"[red]No submission schema for {template}[/red]")
        raise typer.Exit(code=1)

    if output_json:
        typer.echo(json.dumps(schema.json_schema(), indent=2))
        return

    table = Table(title=f"Submission rules: {compiled.ast.title}")
    table.add_column("Field")
    table.add_column("Type")
    table.add_column("Required")
    table.add_column("Constraints")
    for rule in schema.rules:
        constraints = ", ".join(f"{key}={value}" for key, value in rule.constraints.items())
        table.add_row(
            rule.field_id, rule.field_type.value, "yes" if rule.required else "no", constraints
        )
    console.print(table)


@app.command(name="inject")
def inject_command(
    template: Annotated[Path, typer.Argument(help="Template file")],
    context_file: Annotated[
        Path,
        typer.Option("--context", help="JSON file with vendor/campaign/listing objects"),
    ],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Output file (default: stdout)")
    ] = None,
    prefill_only: Annotated[
        bool, typer.Option("--prefill", help="Print the prefill map as JSON instead of HTML")
    ] = False,
) -> None:
    """Render a template with chip values resolved from a context file."""
    compiled = _compile_or_exit(template)
    context = _read_json(context_file, "context")

    if prefill_only:
        prefill = build_prefill(compiled.ast, context)
        _write_or_print(json.dumps(prefill, indent=2, default=str), output)
        return

    rendered = render_with_data(compiled, context)
    if rendered.missing_chips:
        missing = ", ".join(rendered.missing_chips)
        err_console.print(f"[yellow]Unresolved chips: {missing}[/yellow]")
    _write_or_print(rendered.html, output)


@app.command(name="check")
def check_command(
    template: Annotated[Path, typer.Argument(help="Template file")],
    data_file: Annotated[Path, typer.Option("--data", help="JSON file with submission data")],
) -> None:
    """Validate submission data against a template."""
    compiled = compile_form(_read_text(template))
    data = _read_json(data_file, "data")
    result = validate_submission(compiled, data)

    if result.is_valid:
        console.print("[green]Submission is valid[/green]")
        typer.echo(json.dumps(result.normalized_data, indent=2, default=str))
        return

    table = Table(title="Submission errors")
    table.add_column("Field")
    table.add_column("Message")
    for path, messages in result.errors.items():
        for message in messages:
            table.add_row(path, message)
    err_console.print(table)
    raise typer.Exit(code=1)


@app.command(name="version")
def version_command() -> None:
    """Show the installed formwright version."""
    typer.echo(f"formwright {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
