class CallSliceError(Exception):
    """Base class for failures that terminate a run with a specific exit code."""

    exit_code: int = 1


class UsageError(CallSliceError):
    exit_code = 1


class SeedResolutionError(CallSliceError):
    """None of the seed tokens matched a declaration."""

    exit_code = 2

    def __init__(self, tokens: list[str]) -> None:
        self.tokens = list(tokens)
        shown = ", ".join(self.tokens) if self.tokens else "(none)"
        super().__init__(
            f"No seed functions matched ({shown}). Try an exact name or id."
        )


class SinkError(CallSliceError):
    """Writing the rendered output to its destination failed."""

    exit_code = 3
