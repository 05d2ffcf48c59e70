from callslice.lang.javascript import JavaScriptCodeParser
from callslice.lang.typescript import TsxCodeParser, TypeScriptCodeParser

__all__ = ["JavaScriptCodeParser", "TypeScriptCodeParser", "TsxCodeParser"]
