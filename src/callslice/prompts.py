from typing import Callable, List, Optional, Sequence

import click
from pydantic import BaseModel, Field

from callslice.selector import parse_csv_list
from callslice.settings import ALL_FIELDS, RefMode, SliceSettings

# ask(question, default) -> answer
Ask = Callable[[str, str], str]


class SliceOptions(BaseModel):
    """Answers to the interactive questions, in the order they are asked."""

    seeds: List[str] = Field(default_factory=list)
    full_radius: int = 1
    context_radius: int = 2
    include_children: bool = True
    include_child_count: bool = False
    ref_mode: RefMode = RefMode.NAME
    pretty: bool = True
    clipboard: bool = False


class PresetAnswers(BaseModel):
    """Answers supplied up front (CLI flags); ``None`` means ask."""

    seeds: Optional[List[str]] = None
    full_radius: Optional[int] = None
    context_radius: Optional[int] = None
    include_children: Optional[bool] = None
    include_child_count: Optional[bool] = None
    ref_mode: Optional[RefMode] = None
    pretty: Optional[bool] = None
    clipboard: Optional[bool] = None


def click_ask(question: str, default: str = "") -> str:
    # Prompts go to stderr so stdout only carries the rendered document.
    return click.prompt(
        question, default=default, show_default=False, err=True, prompt_suffix="\n> "
    )


def parse_int_or_default(s: Optional[str], default: int) -> int:
    try:
        n = int(str(s if s is not None else "").strip())
    except ValueError:
        return default
    return n if n >= 0 else default


def normalize_yes_no(s: Optional[str], default: bool = True) -> bool:
    v = str(s or "").strip().lower()
    if not v:
        return default
    if v in ("y", "yes", "true", "1"):
        return True
    if v in ("n", "no", "false", "0"):
        return False
    return default


def normalize_enum(s: Optional[str], allowed: Sequence[str], default: str) -> str:
    v = str(s or "").strip().lower()
    if v in allowed:
        return v
    return default


def _yes_no_hint(default: bool) -> str:
    return "[Y/n]" if default else "[y/N]"


def fields_banner() -> str:
    return f"\nFields available:\n  {', '.join(ALL_FIELDS)}\n"


def gather_options(
    ask: Ask,
    settings: Optional[SliceSettings] = None,
    preset: Optional[PresetAnswers] = None,
    on_seeds: Optional[Callable[[List[str]], None]] = None,
) -> SliceOptions:
    """
    Ask the configuration questions in order, skipping the ones answered by
    *preset*. Empty or unparsable answers take the default from *settings*.
    *on_seeds* runs right after the seed question so a bad seed fails fast.
    """
    settings = settings or SliceSettings()
    preset = preset or PresetAnswers()

    if preset.seeds is not None:
        seeds = list(preset.seeds)
    else:
        seeds = parse_csv_list(
            ask(
                "Seed function(s) (comma-separated; can be id or name; "
                "substring allowed as fallback)",
                "",
            )
        )
    if on_seeds is not None:
        on_seeds(seeds)

    if preset.full_radius is not None:
        full_radius = preset.full_radius
    else:
        full_radius = parse_int_or_default(
            ask(
                f"Full-detail radius (bidirectional, >=0) [default: {settings.full_radius}]",
                "",
            ),
            settings.full_radius,
        )

    if preset.context_radius is not None:
        context_radius = preset.context_radius
    else:
        context_radius = parse_int_or_default(
            ask(
                "Structural-context radius (bidirectional, >= full) "
                f"[default: {settings.context_radius}]",
                "",
            ),
            settings.context_radius,
        )
    context_radius = max(context_radius, full_radius)

    if preset.include_children is not None:
        include_children = preset.include_children
    else:
        include_children = normalize_yes_no(
            ask(
                "Include children (keep tree structure)? "
                + _yes_no_hint(settings.include_children),
                "",
            ),
            settings.include_children,
        )

    include_child_count = False
    if not include_children:
        if preset.include_child_count is not None:
            include_child_count = preset.include_child_count
        else:
            include_child_count = normalize_yes_no(
                ask(
                    "If children are omitted, include childCount? "
                    + _yes_no_hint(settings.include_child_count),
                    "",
                ),
                settings.include_child_count,
            )

    if preset.ref_mode is not None:
        ref_mode = preset.ref_mode
    else:
        ref_mode = RefMode(
            normalize_enum(
                ask(
                    'For calls/calledBy, show "id", "name", or "both"? '
                    f"[default: {settings.ref_mode.value}]",
                    "",
                ),
                [m.value for m in RefMode],
                settings.ref_mode.value,
            )
        )

    if preset.pretty is not None:
        pretty = preset.pretty
    else:
        pretty = normalize_yes_no(
            ask(
                "Pretty-print JSON (indentation)? " + _yes_no_hint(settings.pretty), ""
            ),
            settings.pretty,
        )

    if preset.clipboard is not None:
        clipboard = preset.clipboard
    else:
        clipboard = normalize_yes_no(
            ask(
                "Copy ENTIRE output tree to clipboard? "
                + _yes_no_hint(settings.clipboard),
                "",
            ),
            settings.clipboard,
        )

    return SliceOptions(
        seeds=seeds,
        full_radius=full_radius,
        context_radius=context_radius,
        include_children=include_children,
        include_child_count=include_child_count,
        ref_mode=ref_mode,
        pretty=pretty,
        clipboard=clipboard,
    )
