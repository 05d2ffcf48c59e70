from enum import Enum
from typing import Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RefMode(str, Enum):
    """How call/calledBy references are rendered."""

    ID = "id"
    NAME = "name"
    BOTH = "both"


class OutputFormat(str, Enum):
    JSON = "json"
    MODULE = "module"
    OUTLINE = "outline"


STRUCTURAL_FIELDS: Tuple[str, ...] = ("id", "name", "type", "startLine", "endLine")
ALL_FIELDS: Tuple[str, ...] = (
    "id",
    "name",
    "type",
    "params",
    "startLine",
    "endLine",
    "calls",
    "calledBy",
)


class SliceSettings(BaseSettings):
    """Defaults for every interactive question plus output tuning."""

    model_config = SettingsConfigDict(env_prefix="CALLSLICE_", extra="ignore")

    full_radius: int = Field(
        default=1,
        ge=0,
        description="Bidirectional hop count within which nodes get full source and call references.",
    )
    context_radius: int = Field(
        default=2,
        ge=0,
        description="Bidirectional hop count within which nodes are shown as structural stubs.",
    )
    include_children: bool = Field(
        default=True, description="Keep the ownership tree structure in the output."
    )
    include_child_count: bool = Field(
        default=True,
        description="When children are omitted, emit a `childCount` field instead.",
    )
    ref_mode: RefMode = Field(
        default=RefMode.NAME,
        description='Rendering of call references: "id", "name" or "both".',
    )
    pretty: bool = Field(default=True, description="Indent the JSON output.")
    clipboard: bool = Field(
        default=False,
        description="Copy the rendered output to the clipboard instead of printing it.",
    )
    structural_fields: Tuple[str, ...] = Field(
        default=STRUCTURAL_FIELDS,
        description="Identity fields emitted for structural-only nodes.",
    )
    json_indent: int = Field(
        default=2, ge=0, description="Indent width used when pretty-printing."
    )
    default_language: str = Field(
        default="tsx",
        description="Grammar used for files with an unknown extension.",
    )

    @field_validator("structural_fields")
    @classmethod
    def _known_fields(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        unknown = [f for f in value if f not in STRUCTURAL_FIELDS]
        if unknown:
            raise ValueError(
                f"Unknown structural fields: {', '.join(unknown)}. "
                f"Allowed: {', '.join(STRUCTURAL_FIELDS)}"
            )
        return tuple(value)


def load_settings(
    env_prefix: Optional[str] = None,
    env_file: Optional[str] = None,
    **kwargs,
) -> SliceSettings:
    config_dict = SettingsConfigDict(
        env_prefix=env_prefix if env_prefix is not None else "CALLSLICE_",
        env_file=env_file,
        extra="ignore",
    )

    class Settings(SliceSettings):
        model_config = config_dict

    return Settings(**kwargs)
