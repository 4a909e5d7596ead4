"""MyPL emitter — converts a parsed Program back into MyPL source text.

Total over the node types in `mypl/ast.py`; the output re-parses to an
equivalent Program.
"""

from __future__ import annotations

from .ast import (
    AssignStmt,
    BasicIf,
    CallExpr,
    CallStmt,
    ComplexTerm,
    Decl,
    Expr,
    ForStmt,
    FunDecl,
    IDRValue,
    IfStmt,
    NegatedRValue,
    NewRValue,
    Program,
    ReturnStmt,
    RValue,
    SimpleRValue,
    SimpleTerm,
    Stmt,
    Term,
    TypeDecl,
    VarDeclStmt,
    WhileStmt,
)
from .tokens import TK_CHAR_VAL, TK_STRING_VAL, Token


def to_source(program: Program) -> str:
    """Render a `Program` back into MyPL source text."""
    return _Emitter().emit_program(program)


class _Emitter:
    _INDENT: str = "    "

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._indent_level: int = 0

    # ── Public ──────────────────────────────────────────────

    def emit_program(self, program: Program) -> str:
        self._lines = []
        self._indent_level = 0
        first = True
        for decl in program.decls:
            if not first:
                self._lines.append("")
            first = False
            self._emit_decl(decl)
        text = "\n".join(self._lines)
        if text == "":
            return ""
        return text + "\n"

    # ── Lines / Blocks ──────────────────────────────────────

    def _emit_line(self, line: str) -> None:
        self._lines.append(self._INDENT * self._indent_level + line)

    def _emit_stmt_block(self, stmts: list[Stmt]) -> None:
        self._indent_level += 1
        for stmt in stmts:
            self._emit_stmt(stmt)
        self._indent_level -= 1

    # ── Decls ───────────────────────────────────────────────

    def _emit_decl(self, decl: Decl) -> None:
        if isinstance(decl, FunDecl):
            params = ", ".join(p.id.lexeme + ": " + p.type.lexeme for p in decl.params)
            self._emit_line(
                "fun " + decl.return_type.lexeme + " " + decl.id.lexeme + "(" + params + ")"
            )
            self._emit_stmt_block(decl.body)
            self._emit_line("end")
            return
        if isinstance(decl, TypeDecl):
            self._emit_line("type " + decl.id.lexeme)
            self._emit_stmt_block(list(decl.fields))
            self._emit_line("end")
            return
        raise TypeError("unhandled decl type")

    # ── Stmts ───────────────────────────────────────────────

    def _emit_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, VarDeclStmt):
            line = "var " + stmt.id.lexeme
            if stmt.type is not None:
                line += ": " + stmt.type.lexeme
            self._emit_line(line + " = " + self._render_expr(stmt.expr))
            return
        if isinstance(stmt, AssignStmt):
            self._emit_line(self._render_path(stmt.path) + " = " + self._render_expr(stmt.expr))
            return
        if isinstance(stmt, CallStmt):
            self._emit_line(self._render_call(stmt.call))
            return
        if isinstance(stmt, ReturnStmt):
            self._emit_line("return " + self._render_expr(stmt.expr))
            return
        if isinstance(stmt, IfStmt):
            self._emit_clause("if", stmt.if_part)
            for clause in stmt.else_ifs:
                self._emit_clause("elseif", clause)
            if stmt.has_else or stmt.else_body:
                self._emit_line("else")
                self._emit_stmt_block(stmt.else_body)
            self._emit_line("end")
            return
        if isinstance(stmt, WhileStmt):
            self._emit_line("while " + self._render_expr(stmt.cond) + " do")
            self._emit_stmt_block(stmt.body)
            self._emit_line("end")
            return
        if isinstance(stmt, ForStmt):
            self._emit_line(
                "for " + stmt.var.lexeme + " = " + self._render_expr(stmt.start)
                + " to " + self._render_expr(stmt.end) + " do"
            )
            self._emit_stmt_block(stmt.body)
            self._emit_line("end")
            return
        raise TypeError("unhandled stmt type")

    def _emit_clause(self, keyword: str, clause: BasicIf) -> None:
        self._emit_line(keyword + " " + self._render_expr(clause.cond) + " then")
        self._emit_stmt_block(clause.body)

    # ── Exprs ───────────────────────────────────────────────

    def _render_expr(self, expr: Expr) -> str:
        if expr.negated and isinstance(expr.first, ComplexTerm):
            first = "not " + self._render_expr(expr.first.expr)
        elif expr.negated:
            first = "not " + self._render_term(expr.first)
        else:
            first = self._render_term(expr.first)
        if expr.op is None or expr.rest is None:
            return first
        # not/neg swallow everything to their right when re-parsed
        if expr.negated or _is_negation(expr.first):
            first = "(" + first + ")"
        return first + " " + expr.op.lexeme + " " + self._render_expr(expr.rest)

    def _render_term(self, term: Term) -> str:
        if isinstance(term, SimpleTerm):
            return self._render_rvalue(term.rvalue)
        if isinstance(term, ComplexTerm):
            return "(" + self._render_expr(term.expr) + ")"
        raise TypeError("unhandled term type")

    def _render_rvalue(self, rv: RValue) -> str:
        if isinstance(rv, SimpleRValue):
            return _render_literal(rv.value)
        if isinstance(rv, NewRValue):
            return "new " + rv.type_id.lexeme
        if isinstance(rv, CallExpr):
            return self._render_call(rv)
        if isinstance(rv, IDRValue):
            return self._render_path(rv.path)
        if isinstance(rv, NegatedRValue):
            return "neg " + self._render_expr(rv.expr)
        raise TypeError("unhandled rvalue type")

    def _render_call(self, call: CallExpr) -> str:
        args = ", ".join(self._render_expr(a) for a in call.args)
        return call.function_id.lexeme + "(" + args + ")"

    def _render_path(self, path: list[Token]) -> str:
        return ".".join(tok.lexeme for tok in path)


def _render_literal(tok: Token) -> str:
    if tok.kind == TK_CHAR_VAL:
        return "'" + tok.lexeme + "'"
    if tok.kind == TK_STRING_VAL:
        return '"' + tok.lexeme + '"'
    return tok.lexeme


def _is_negation(term: Term) -> bool:
    return isinstance(term, SimpleTerm) and isinstance(term.rvalue, NegatedRValue)
