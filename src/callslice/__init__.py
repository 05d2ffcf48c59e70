from callslice.analysis import analyze_file, analyze_source, parse_source
from callslice.models import CallGraph, DeclarationNode, NodeKind, SelectionState, TreeNode
from callslice.pipeline import render_slice
from callslice.projector import ProjectionOptions, Projector, render
from callslice.prompts import SliceOptions
from callslice.selector import filter_tree, resolve_seed_ids, select_slice
from callslice.settings import OutputFormat, RefMode, SliceSettings, load_settings

__all__ = [
    "analyze_file",
    "analyze_source",
    "parse_source",
    "CallGraph",
    "DeclarationNode",
    "NodeKind",
    "SelectionState",
    "TreeNode",
    "render_slice",
    "ProjectionOptions",
    "Projector",
    "render",
    "SliceOptions",
    "filter_tree",
    "resolve_seed_ids",
    "select_slice",
    "OutputFormat",
    "RefMode",
    "SliceSettings",
    "load_settings",
]
