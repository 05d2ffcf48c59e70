#!/usr/bin/env python3
from pathlib import Path
from typing import List, Optional

import click

from callslice.analysis import analyze_file
from callslice.errors import CallSliceError, UsageError
from callslice.logger import logger, setup_logging
from callslice.models import CallGraph
from callslice.pipeline import output_format, render_slice
from callslice.prompts import PresetAnswers, click_ask, fields_banner, gather_options
from callslice.selector import parse_csv_list, select_slice
from callslice.settings import OutputFormat, RefMode, SliceSettings, load_settings
from callslice.sinks import ClipboardSink, FileSink, OutputSink, StdoutSink

USAGE = "Usage: callslice <file.js>"


def _check_seeds(graph: CallGraph):
    def _check(seeds: List[str]) -> None:
        # Raises SeedResolutionError before the remaining questions are asked.
        select_slice(graph, seeds, 0, 0)

    return _check


def _pick_sink(clipboard: bool, output: Optional[Path]) -> OutputSink:
    if output is not None:
        return FileSink(output)
    if clipboard:
        return ClipboardSink()
    return StdoutSink()


def run(
    source: Path,
    settings: SliceSettings,
    preset: PresetAnswers,
    fmt: Optional[OutputFormat] = None,
    output: Optional[Path] = None,
) -> None:
    try:
        graph = analyze_file(source, default_language=settings.default_language)
    except (OSError, UnicodeDecodeError) as ex:
        raise UsageError(f"Unable to read {source}: {ex}") from ex

    if preset.seeds is None:
        click.echo(fields_banner(), err=True)

    options = gather_options(click_ask, settings, preset, on_seeds=_check_seeds(graph))
    text = render_slice(graph, options, settings, fmt)

    logger.debug(
        "Rendered slice",
        format=output_format(options, fmt).value,
        chars=len(text),
    )
    _pick_sink(options.clipboard, output).write_text(text)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument(
    "source",
    required=False,
    type=click.Path(
        file_okay=True, dir_okay=False, readable=True, path_type=Path
    ),
)
@click.option(
    "--seed",
    "seeds",
    type=str,
    default=None,
    help="Comma-separated seed ids or names. Skips the seed question.",
)
@click.option(
    "--full-radius",
    type=click.IntRange(min=0),
    default=None,
    help="Hops within which nodes get full source and call references.",
)
@click.option(
    "--context-radius",
    type=click.IntRange(min=0),
    default=None,
    help="Hops within which nodes are shown as structural stubs.",
)
@click.option(
    "--children/--no-children",
    default=None,
    help="Keep (or flatten away) the ownership tree structure.",
)
@click.option(
    "--child-count/--no-child-count",
    default=None,
    help="With --no-children, emit a childCount field.",
)
@click.option(
    "--refs",
    type=click.Choice([m.value for m in RefMode]),
    default=None,
    help="Rendering of calls/calledBy references.",
)
@click.option("--pretty/--compact", default=None, help="Indent the JSON output.")
@click.option(
    "--clipboard/--no-clipboard",
    default=None,
    help="Copy the rendered output to the clipboard instead of printing it.",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice([f.value for f in OutputFormat]),
    default=None,
    help="Output encoding (default: json to stdout, module to clipboard).",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    default=None,
    help="Write the rendered output to this file.",
)
@click.option(
    "--debug/--no-debug",
    default=False,
    help="Enable debug logging of parse and selection stats.",
)
def main(
    source: Optional[Path],
    seeds: Optional[str],
    full_radius: Optional[int],
    context_radius: Optional[int],
    children: Optional[bool],
    child_count: Optional[bool],
    refs: Optional[str],
    pretty: Optional[bool],
    clipboard: Optional[bool],
    fmt: Optional[str],
    output: Optional[Path],
    debug: bool,
) -> None:
    """
    Extract a call-graph slice around seed functions of a JS/TS file.

    Questions not answered by flags are asked interactively on stderr.
    """
    setup_logging(debug)

    if source is None:
        click.echo(USAGE, err=True)
        raise SystemExit(1)

    preset = PresetAnswers(
        seeds=parse_csv_list(seeds) if seeds is not None else None,
        full_radius=full_radius,
        context_radius=context_radius,
        include_children=children,
        include_child_count=child_count,
        ref_mode=RefMode(refs) if refs is not None else None,
        pretty=pretty,
        clipboard=clipboard,
    )

    try:
        settings = load_settings()
        run(
            source,
            settings,
            preset,
            fmt=OutputFormat(fmt) if fmt is not None else None,
            output=output,
        )
    except CallSliceError as ex:
        click.echo(str(ex), err=True)
        raise SystemExit(ex.exit_code)


if __name__ == "__main__":
    main()
