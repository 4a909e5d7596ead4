"""MyPL lexer, parser, typechecker, and interpreter — public API."""

from __future__ import annotations

from typing import TextIO

from .ast import Program
from .check import check as check_program
from .emit import to_source
from .errors import (
    LexerError as LexerError,
    MyPLError as MyPLError,
    MyPLRuntimeError as MyPLRuntimeError,
    ParseError as ParseError,
    SemanticError as SemanticError,
)
from .parse import Parser
from .runtime import RunResult, run as run_program
from .tokens import Lexer, tokenize as tokenize


def parse(source: str) -> Program:
    """Parse MyPL source code into a Program AST."""
    return Parser(Lexer(source)).parse()


def check(source: str) -> Program:
    """Parse and type-check MyPL source; returns the checked Program."""
    program = parse(source)
    check_program(program)
    return program


def run(
    source: str,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> RunResult:
    """Parse, type-check, and run MyPL source."""
    return run_program(check(source), stdin=stdin, stdout=stdout)


def emit(program: Program) -> str:
    """Emit a Program AST as MyPL source text."""
    return to_source(program)
