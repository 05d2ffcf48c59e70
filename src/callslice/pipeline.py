from typing import Optional, Tuple

from callslice.models import CallGraph, SelectionState, TreeNode
from callslice.projector import ProjectionOptions, render
from callslice.prompts import SliceOptions
from callslice.selector import filter_tree, select_slice
from callslice.settings import OutputFormat, SliceSettings


def output_format(options: SliceOptions, override: Optional[OutputFormat] = None) -> OutputFormat:
    """Clipboard output defaults to the module text form, stdout to JSON."""
    if override is not None:
        return override
    return OutputFormat.MODULE if options.clipboard else OutputFormat.JSON


def slice_graph(
    graph: CallGraph, options: SliceOptions
) -> Tuple[SelectionState, list[TreeNode]]:
    selection = select_slice(
        graph, options.seeds, options.full_radius, options.context_radius
    )
    return selection, filter_tree(graph.forest(), selection.included_ids)


def render_slice(
    graph: CallGraph,
    options: SliceOptions,
    settings: Optional[SliceSettings] = None,
    fmt: Optional[OutputFormat] = None,
) -> str:
    """Select, filter, project and encode. No I/O."""
    settings = settings or SliceSettings()
    selection, forest = slice_graph(graph, options)
    projection = ProjectionOptions(
        structural_fields=settings.structural_fields,
        include_children=options.include_children,
        include_child_count=options.include_child_count,
        ref_mode=options.ref_mode,
    )
    return render(
        forest,
        graph,
        selection,
        projection,
        fmt=output_format(options, fmt),
        pretty=options.pretty,
        indent=settings.json_indent,
    )
