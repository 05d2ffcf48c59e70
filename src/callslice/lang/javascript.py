import tree_sitter as ts
import tree_sitter_javascript as tsjs

from callslice.models import ProgrammingLanguage
from callslice.parsers import AbstractCodeParser

JS_LANGUAGE = ts.Language(tsjs.language())


class JavaScriptCodeParser(AbstractCodeParser):
    """JavaScript, including JSX."""

    language = ProgrammingLanguage.JAVASCRIPT
    extensions = [".js", ".jsx", ".mjs", ".cjs"]

    @classmethod
    def get_ts_language(cls) -> ts.Language:
        return JS_LANGUAGE
