from abc import ABC, abstractmethod
from pathlib import Path

import click
import pyperclip

from callslice.errors import SinkError
from callslice.logger import logger


class OutputSink(ABC):
    """One-shot destination for the rendered document."""

    @abstractmethod
    def write_text(self, text: str) -> None: ...


class StdoutSink(OutputSink):
    def write_text(self, text: str) -> None:
        click.echo(text)


class ClipboardSink(OutputSink):
    def write_text(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as ex:
            raise SinkError(f"Unable to copy to clipboard: {ex}") from ex
        size = len(text.encode("utf-8"))
        logger.debug("Copied output to clipboard", bytes=size)
        click.echo(f"Copied {size} bytes to clipboard.", err=True)


class FileSink(OutputSink):
    def __init__(self, path: Path) -> None:
        self.path = path

    def write_text(self, text: str) -> None:
        try:
            self.path.write_text(text, encoding="utf-8")
        except OSError as ex:
            raise SinkError(f"Unable to write {self.path}: {ex}") from ex
        size = len(text.encode("utf-8"))
        logger.debug("Wrote output file", path=str(self.path), bytes=size)
        click.echo(f"Wrote {size} bytes to {self.path}.", err=True)
