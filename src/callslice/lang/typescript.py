import tree_sitter as ts
import tree_sitter_typescript as tsts

from callslice.models import ProgrammingLanguage
from callslice.parsers import AbstractCodeParser

TS_LANGUAGE = ts.Language(tsts.language_typescript())
TSX_LANGUAGE = ts.Language(tsts.language_tsx())


class TypeScriptCodeParser(AbstractCodeParser):
    language = ProgrammingLanguage.TYPESCRIPT
    extensions = [".ts", ".mts", ".cts"]

    @classmethod
    def get_ts_language(cls) -> ts.Language:
        return TS_LANGUAGE


class TsxCodeParser(AbstractCodeParser):
    """TypeScript with JSX; also the fallback for unknown extensions."""

    language = ProgrammingLanguage.TSX
    extensions = [".tsx"]

    @classmethod
    def get_ts_language(cls) -> ts.Language:
        return TSX_LANGUAGE
