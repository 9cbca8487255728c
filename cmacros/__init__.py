import json
import sys
from importlib.metadata import (
    version as get_version,
)
from typing import (
    IO,
    Callable,
)

import click

from .extractor import (
    extract_macros,
)
from .ir import (
    Emit,
    Skip,
)
from .targets import (
    get_default_target,
    get_target_info,
)
from .translator import (
    DefaultPolicy,
    translate,
)
from .writer import (
    describe_skips,
    write_source,
)

__version__ = get_version("cmacros2")


def _debug_print(msg: str) -> None:
    """Print debug message to stderr."""
    print(f"[cmacros] {msg}", file=sys.stderr)


def translate_header(
    code: str,
    target: str = "rust",
    exclude: list[str] | None = None,
    include_skipped: bool = False,
    source_name: str | None = None,
    debug: bool = False,
    report: Callable[[int, str], None] | None = None,
) -> str:
    """Translate the ``#define`` constants of C header code.

    Args:
        code: C header source code.
        target: Target language name ("rust", "python").
        exclude: fnmatch patterns of macro names to leave out, e.g. ["*_H"].
        include_skipped: Emit a comment for every macro that was not translated.
        source_name: Header name mentioned at the top of the output.
        debug: Print debug info to stderr.
        report: Called with ``(line, message)`` for every extraction
            diagnostic and every skipped macro, in that order.

    Returns:
        Target-language source text.
    """
    macros, diagnostics = extract_macros(code)

    if debug:
        _debug_print(f"Target: {target}")
        _debug_print(f"Found {len(macros)} macros")
        for diagnostic in diagnostics:
            _debug_print(f"  {diagnostic}")
    if report is not None:
        for diagnostic in diagnostics:
            report(diagnostic.line, diagnostic.message)

    results = translate(macros, DefaultPolicy(target=target, exclude=exclude or ()))

    if debug:
        emitted = sum(1 for _, outcome in results if isinstance(outcome, Emit))
        _debug_print(f"Translated {emitted} of {len(results)} macros")
        for message in describe_skips(results):
            _debug_print(f"  {message}")
    if report is not None:
        for macro, outcome in results:
            if isinstance(outcome, Skip):
                report(macro.source_line, f"{macro.name} skipped: {outcome.reason}")

    return write_source(results, target, include_skipped=include_skipped, source_name=source_name)


CONTEXT_SETTINGS: dict[str, list[str]] = dict(help_option_names=["-h", "--help"])


def _print_targets_human() -> None:
    """Print target info in human-readable format."""
    info = get_target_info()
    print("Available targets:")
    for target in info:
        default_marker = " (default)" if target["default"] else ""
        print(f"  {target['name']:12} {target['description']}{default_marker}")

    print(f"\nDefault: {get_default_target()}")


def _print_targets_json() -> None:
    """Print target info in JSON format."""
    output = {"targets": get_target_info()}
    print(json.dumps(output))


@click.command(
    context_settings=CONTEXT_SETTINGS,
    help="""Translate #define constants from a C header into another language.

\b
Function-like macros and bodies that are not literals or simple
arithmetic expressions are skipped.
""",
)
@click.option("--version", "-v", is_flag=True, help="Print version and exit.")
@click.option(
    "--target",
    "-t",
    type=click.Choice(["rust", "python"], case_sensitive=False),
    default="rust",
    help="Target language (default: rust).",
)
@click.option(
    "--list-targets",
    is_flag=True,
    help="List available targets and exit.",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="JSON output (with --list-targets).",
)
@click.option(
    "--exclude",
    "-e",
    multiple=True,
    metavar="<pattern>",
    help="Skip macros whose name matches pattern (e.g. '*_H'). Repeatable.",
)
@click.option(
    "--emit-skipped",
    is_flag=True,
    help="Write a comment for every macro that was not translated.",
)
@click.option(
    "--extract-only",
    is_flag=True,
    help="Print the extracted #define lines instead of translating them.",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress diagnostics.",
)
@click.option(
    "--debug/--no-debug",
    default=False,
    help="Print debug info to stderr.",
)
@click.argument(
    "infile",
    type=click.File("r"),
    required=False,
)
@click.argument(
    "outfile",
    type=click.File("w"),
    default=sys.stdout,
)
def cli(
    version: bool,
    infile: IO[str] | None,
    outfile: IO[str],
    target: str,
    list_targets: bool,
    json_output: bool,
    exclude: tuple[str, ...],
    emit_skipped: bool,
    extract_only: bool,
    quiet: bool,
    debug: bool,
) -> None:
    if version:
        print(__version__)
        return

    if json_output and not list_targets:
        click.echo("Error: --json requires --list-targets", err=True)
        raise SystemExit(1)

    if list_targets:
        if json_output:
            _print_targets_json()
        else:
            _print_targets_human()
        return

    # Require infile for translation
    if infile is None:
        click.echo("Error: Missing argument 'INFILE'.", err=True)
        raise SystemExit(2)

    if extract_only and (emit_skipped or exclude):
        click.echo("Error: --extract-only cannot be combined with --emit-skipped or --exclude", err=True)
        raise SystemExit(1)

    def report(line: int, message: str) -> None:
        click.echo(f"{infile.name}:{line}: {message}", err=True)

    code = infile.read()
    if extract_only:
        macros, diagnostics = extract_macros(code)
        if not quiet:
            for diagnostic in diagnostics:
                report(diagnostic.line, diagnostic.message)
        outfile.write("".join(f"{macro}\n" for macro in macros))
        return

    outfile.write(
        translate_header(
            code,
            target=target.lower(),
            exclude=list(exclude),
            include_skipped=emit_skipped,
            source_name=infile.name,
            debug=debug,
            report=None if quiet else report,
        )
    )
