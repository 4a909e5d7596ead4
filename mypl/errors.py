"""MyPL diagnostics — one exception type per pipeline pass."""

from __future__ import annotations


LEXER: str = "Lexer"
SYNTAX: str = "Syntax"
SEMANTIC: str = "Semantic"
RUNTIME: str = "Runtime"


class MyPLError(Exception):
    """Base error for every MyPL pass."""

    kind: str = ""

    def __init__(self, msg: str, line: int | None = None, column: int | None = None):
        self.msg: str = msg
        self.line: int | None = line
        self.column: int | None = column
        super().__init__(self.render())

    def render(self) -> str:
        text = self.kind + " error: " + self.msg
        if self.line is not None and self.column is not None:
            text += " at line " + str(self.line) + " column " + str(self.column)
        return text


class LexerError(MyPLError):
    """Malformed literal or symbol in the source text."""

    kind = LEXER


class ParseError(MyPLError):
    """Unexpected token while parsing."""

    kind = SYNTAX


class SemanticError(MyPLError):
    """Static type or declaration error."""

    kind = SEMANTIC


class MyPLRuntimeError(MyPLError):
    """Fault raised while evaluating a well-typed program."""

    kind = RUNTIME
