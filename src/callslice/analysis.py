from pathlib import Path
from typing import Optional

import callslice.lang  # noqa: F401  (registers the grammars)
from callslice.logger import logger
from callslice.models import CallGraph
from callslice.parsers import CodeParserRegistry
from callslice.resolver import build_call_graph
from callslice.syntax import SourceModule


def parse_source(
    text: str,
    path: Optional[str] = None,
    *,
    language: Optional[str] = None,
    default_language: str = "tsx",
) -> SourceModule:
    """Parse *text* with the grammar matching *path* (or *language*)."""
    if language is not None:
        parser_cls = CodeParserRegistry.get_by_language(language)
        if parser_cls is None:
            raise ValueError(f"Unsupported language: {language}")
    else:
        parser_cls = CodeParserRegistry.get_for_path(path, default_language)
    return parser_cls().parse(text, path=path)


def analyze_source(
    text: str,
    path: Optional[str] = None,
    *,
    language: Optional[str] = None,
    default_language: str = "tsx",
) -> CallGraph:
    """
    Parse, collect and resolve. Pure: no file system access.
    """
    module = parse_source(
        text, path, language=language, default_language=default_language
    )
    graph = build_call_graph(module)
    logger.debug("Built call graph", path=path, **graph.stats().model_dump())
    return graph


def analyze_file(path: Path, *, default_language: str = "tsx") -> CallGraph:
    text = path.read_text(encoding="utf-8")
    return analyze_source(text, str(path), default_language=default_language)
