"""MyPL runtime — tree-walking evaluation of a checked Program.

Statement execution yields an explicit outcome (CONTINUE or Returned) so a
`return` unwinds through blocks without using exceptions. A function call
runs against the global environment plus one fresh frame; the language has
no closures.
"""

from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass
from typing import Callable, TextIO, Union

from .ast import (
    AssignStmt,
    CallExpr,
    CallStmt,
    ComplexTerm,
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
from .check import TY_STRING
from .errors import MyPLRuntimeError
from .symtab import SymbolTable
from .tokens import (
    TK_AND,
    TK_BOOL_VAL,
    TK_CHAR_VAL,
    TK_DIVIDE,
    TK_DOUBLE_VAL,
    TK_EQUAL,
    TK_GREATER,
    TK_GREATER_EQUAL,
    TK_INT_VAL,
    TK_LESS,
    TK_LESS_EQUAL,
    TK_MINUS,
    TK_MODULO,
    TK_MULTIPLY,
    TK_NOT_EQUAL,
    TK_OR,
    TK_PLUS,
    TK_STRING_VAL,
    Token,
)
from .values import (
    NIL,
    Heap,
    HeapObject,
    Value,
    VBool,
    VChar,
    VDouble,
    VInt,
    VRef,
    VString,
)

logger = logging.getLogger(__name__)

RETURN_MARKER: str = ">>>"


# ============================================================
# Statement outcomes
# ============================================================


@dataclass(frozen=True)
class Continue:
    """Statement finished; keep executing the enclosing body."""


@dataclass(frozen=True)
class Returned:
    value: Value


CONTINUE: Continue = Continue()

Outcome = Union[Continue, Returned]


@dataclass
class RunResult:
    exit_code: int
    value: Value


def unescape(text: str) -> str:
    """Resolve the two-character sequences \\n and \\t."""
    return text.replace("\\n", "\n").replace("\\t", "\t")


# ============================================================
# Runtime I/O
# ============================================================


class _Input:
    def __init__(self, stream: TextIO):
        self._stream = stream

    def read_token(self) -> str:
        """Consume one whitespace-delimited token; empty at end of input."""
        c = self._stream.read(1)
        while c != "" and c.isspace():
            c = self._stream.read(1)
        chars: list[str] = []
        while c != "" and not c.isspace():
            chars.append(c)
            c = self._stream.read(1)
        return "".join(chars)


# ============================================================
# Arithmetic
# ============================================================


def _int_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def _int_mod(a: int, b: int) -> int:
    return a - b * _int_div(a, b)


def _float_div(a: float, b: float) -> float:
    if b != 0.0:
        return a / b
    if a == 0.0 or math.isnan(a):
        return math.nan
    negative = (a < 0) != (math.copysign(1.0, b) < 0)
    return -math.inf if negative else math.inf


# ============================================================
# Interpreter
# ============================================================


class Interpreter:
    """Evaluation context: symbol table, heap, and the declaration tables."""

    def __init__(self, *, stdin: TextIO | None = None, stdout: TextIO | None = None):
        self.symtab: SymbolTable[Value] = SymbolTable()
        self.heap: Heap = Heap()
        self.functions: dict[str, FunDecl] = {}
        self.types: dict[str, TypeDecl] = {}
        self.global_env_id: int = 0
        self.ret_code: int = 0
        self.out: TextIO = stdout if stdout is not None else sys.stdout
        self.input: _Input = _Input(stdin if stdin is not None else sys.stdin)

    def error(self, msg: str, tok: Token | None = None) -> MyPLRuntimeError:
        if tok is None:
            return MyPLRuntimeError(msg)
        return MyPLRuntimeError(msg, tok.line, tok.column)

    # ── Running ──────────────────────────────────────────────

    def run(self, program: Program) -> RunResult:
        self.global_env_id = self.symtab.push_environment()
        outcome: Outcome = CONTINUE
        try:
            for decl in program.decls:
                if isinstance(decl, FunDecl):
                    self.functions[decl.id.lexeme] = decl
                elif isinstance(decl, TypeDecl):
                    self.types[decl.id.lexeme] = decl
            if "main" not in self.functions:
                raise self.error("undefined 'main' function")
            logger.debug("running main")
            outcome = self.invoke(self.functions["main"], [])
        except MyPLRuntimeError:
            self.ret_code = 1
            raise
        except RecursionError:
            self.ret_code = 1
            raise self.error("maximum recursion depth exceeded") from None
        finally:
            self.symtab.pop_environment()
        if self.symtab.depth() != 0:
            raise self.error("environment stack not empty after main returned")
        value = NIL
        if isinstance(outcome, Returned):
            value = outcome.value
            self.out.write(RETURN_MARKER + unescape(value.to_string()) + "\n")
        logger.debug("run finished with %d heap objects", len(self.heap))
        return RunResult(self.ret_code, value)

    # ── Functions ──────────────────────────────────────────────

    def invoke(self, decl: FunDecl, args: list[Value]) -> Outcome:
        """Run decl's body in a fresh frame on top of the global environment."""
        caller_env = self.symtab.get_environment_id()
        self.symtab.set_environment_id(self.global_env_id)
        self.symtab.push_environment()
        try:
            for param, arg in zip(decl.params, args):
                self.symtab.add_name(param.id.lexeme, arg)
            return self.exec_stmts(decl.body)
        finally:
            self.symtab.pop_environment()
            if caller_env is not None:
                self.symtab.set_environment_id(caller_env)

    def eval_call(self, call: CallExpr) -> Value:
        name = call.function_id.lexeme
        args = [self.eval_expr(a) for a in call.args]
        builtin = BUILTINS.get(name)
        if builtin is not None:
            return builtin(self, call, args)
        decl = self.functions.get(name)
        if decl is None:
            raise self.error("undefined function '" + name + "'", call.function_id)
        outcome = self.invoke(decl, args)
        if isinstance(outcome, Returned):
            return outcome.value
        return NIL

    # ── Statements ──────────────────────────────────────────────

    def exec_block(self, stmts: list[Stmt]) -> Outcome:
        self.symtab.push_environment()
        try:
            return self.exec_stmts(stmts)
        finally:
            self.symtab.pop_environment()

    def exec_stmts(self, stmts: list[Stmt]) -> Outcome:
        for st in stmts:
            outcome = self.exec_stmt(st)
            if isinstance(outcome, Returned):
                return outcome
        return CONTINUE

    def exec_stmt(self, st: Stmt) -> Outcome:
        if isinstance(st, VarDeclStmt):
            self.symtab.add_name(st.id.lexeme, self.eval_expr(st.expr))
            return CONTINUE

        if isinstance(st, AssignStmt):
            value = _widen(st.inferred, self.eval_expr(st.expr))
            name = st.path[-1].lexeme
            if len(st.path) == 1:
                self.symtab.set(name, value)
            else:
                owner = self.deref(self.eval_path(st.path[:-1]), st.path[-1])
                owner.set_att(name, value)
            return CONTINUE

        if isinstance(st, CallStmt):
            self.eval_call(st.call)
            return CONTINUE

        if isinstance(st, ReturnStmt):
            return Returned(self.eval_expr(st.expr))

        if isinstance(st, IfStmt):
            for clause in [st.if_part] + st.else_ifs:
                if self.eval_condition(clause.cond):
                    return self.exec_block(clause.body)
            return self.exec_block(st.else_body)

        if isinstance(st, WhileStmt):
            self.symtab.push_environment()
            try:
                while self.eval_condition(st.cond):
                    outcome = self.exec_stmts(st.body)
                    if isinstance(outcome, Returned):
                        return outcome
                return CONTINUE
            finally:
                self.symtab.pop_environment()

        if isinstance(st, ForStmt):
            return self.exec_for(st)

        raise self.error("unsupported statement " + type(st).__name__)

    def exec_for(self, st: ForStmt) -> Outcome:
        name = st.var.lexeme
        loop_env = self.symtab.push_environment()
        try:
            start = self.eval_int(st.start)
            self.symtab.add_name(name, VInt(start))
            end = self.eval_int(st.end)
            self.symtab.push_environment()
            try:
                for i in range(start, end + 1):
                    self.symtab.set_in(loop_env, name, VInt(i))
                    outcome = self.exec_stmts(st.body)
                    if isinstance(outcome, Returned):
                        return outcome
            finally:
                self.symtab.pop_environment()
            return CONTINUE
        finally:
            self.symtab.pop_environment()

    # ── Expressions ──────────────────────────────────────────────

    def eval_condition(self, expr: Expr) -> bool:
        value = self.eval_expr(expr)
        if not isinstance(value, VBool):
            raise self.error("condition evaluated to " + value.type_name(), expr.first_token())
        return value.value

    def eval_int(self, expr: Expr) -> int:
        value = self.eval_expr(expr)
        if not isinstance(value, VInt):
            raise self.error("expected int, got " + value.type_name(), expr.first_token())
        return value.value

    def eval_expr(self, expr: Expr) -> Value:
        lhs = self.eval_term(expr.first)
        if expr.negated:
            if not isinstance(lhs, VBool):
                raise self.error("'not' applied to " + lhs.type_name(), expr.first_token())
            lhs = VBool(not lhs.value)
        if expr.op is None or expr.rest is None:
            return lhs
        rhs = self.eval_expr(expr.rest)
        return self.eval_binary(expr.op, lhs, rhs)

    def eval_term(self, term: Term) -> Value:
        if isinstance(term, SimpleTerm):
            return self.eval_rvalue(term.rvalue)
        if isinstance(term, ComplexTerm):
            return self.eval_expr(term.expr)
        raise self.error("unsupported term " + type(term).__name__)

    def eval_rvalue(self, rv: RValue) -> Value:
        if isinstance(rv, SimpleRValue):
            return self.eval_literal(rv.value)
        if isinstance(rv, NewRValue):
            return self.allocate(rv.type_id)
        if isinstance(rv, CallExpr):
            return self.eval_call(rv)
        if isinstance(rv, IDRValue):
            return self.eval_path(rv.path)
        if isinstance(rv, NegatedRValue):
            value = self.eval_expr(rv.expr)
            if isinstance(value, VInt):
                return VInt(-value.value)
            if isinstance(value, VDouble):
                return VDouble(-value.value)
            raise self.error("cannot negate " + value.type_name(), rv.first_token())
        raise self.error("unsupported rvalue " + type(rv).__name__)

    def eval_literal(self, tok: Token) -> Value:
        if tok.kind == TK_INT_VAL:
            return VInt(int(tok.lexeme))
        if tok.kind == TK_DOUBLE_VAL:
            return VDouble(float(tok.lexeme))
        if tok.kind == TK_BOOL_VAL:
            return VBool(tok.lexeme == "true")
        if tok.kind == TK_CHAR_VAL:
            return VChar(tok.lexeme)
        if tok.kind == TK_STRING_VAL:
            return VString(tok.lexeme)
        return NIL

    # ── Objects and paths ──────────────────────────────────────────────

    def allocate(self, type_id: Token) -> VRef:
        """Create an instance of a UDT, running its field initializers."""
        decl = self.types.get(type_id.lexeme)
        if decl is None:
            raise self.error("undefined type '" + type_id.lexeme + "'", type_id)
        oid = self.heap.allocate(decl.id.lexeme)
        obj = self.heap.get_obj(oid)
        caller_env = self.symtab.get_environment_id()
        self.symtab.set_environment_id(self.global_env_id)
        self.symtab.push_environment()
        try:
            for field_decl in decl.fields:
                value = self.eval_expr(field_decl.expr)
                self.symtab.add_name(field_decl.id.lexeme, value)
                obj.set_att(field_decl.id.lexeme, value)
        finally:
            self.symtab.pop_environment()
            if caller_env is not None:
                self.symtab.set_environment_id(caller_env)
        return VRef(oid, decl.id.lexeme)

    def deref(self, value: Value, tok: Token) -> HeapObject:
        if not isinstance(value, VRef):
            raise self.error(
                "cannot access '" + tok.lexeme + "' on " + value.type_name() + " value", tok
            )
        if value.oid not in self.heap:
            raise self.error("dangling reference " + value.to_string(), tok)
        return self.heap.get_obj(value.oid)

    def eval_path(self, path: list[Token]) -> Value:
        root = path[0]
        if not self.symtab.name_exists(root.lexeme):
            raise self.error("undefined variable '" + root.lexeme + "'", root)
        value = self.symtab.get(root.lexeme)
        for tok in path[1:]:
            obj = self.deref(value, tok)
            if not obj.has_att(tok.lexeme):
                raise self.error("object of type " + obj.udt + " has no attribute '" + tok.lexeme + "'", tok)
            value = obj.get_val(tok.lexeme)
        return value

    # ── Operators ──────────────────────────────────────────────

    def eval_binary(self, op: Token, lhs: Value, rhs: Value) -> Value:
        kind = op.kind
        if kind == TK_EQUAL:
            return VBool(lhs == rhs)
        if kind == TK_NOT_EQUAL:
            return VBool(lhs != rhs)
        if kind in (TK_AND, TK_OR) and isinstance(lhs, VBool) and isinstance(rhs, VBool):
            if kind == TK_AND:
                return VBool(lhs.value and rhs.value)
            return VBool(lhs.value or rhs.value)
        if kind in (TK_LESS, TK_LESS_EQUAL, TK_GREATER, TK_GREATER_EQUAL) and _same_ordered(lhs, rhs):
            a = getattr(lhs, "value")
            b = getattr(rhs, "value")
            if kind == TK_LESS:
                return VBool(a < b)
            if kind == TK_LESS_EQUAL:
                return VBool(a <= b)
            if kind == TK_GREATER:
                return VBool(a > b)
            return VBool(a >= b)
        if kind == TK_PLUS and isinstance(lhs, (VChar, VString)) and isinstance(rhs, (VChar, VString)):
            return VString(lhs.value + rhs.value)
        if isinstance(lhs, VInt) and isinstance(rhs, VInt):
            return self.eval_int_op(op, lhs.value, rhs.value)
        if isinstance(lhs, VDouble) and isinstance(rhs, VDouble):
            return self.eval_double_op(op, lhs.value, rhs.value)
        raise self.error(
            "unsupported operands for '" + op.lexeme + "': "
            + lhs.type_name() + " and " + rhs.type_name(),
            op,
        )

    def eval_int_op(self, op: Token, a: int, b: int) -> Value:
        kind = op.kind
        if kind == TK_PLUS:
            return VInt(a + b)
        if kind == TK_MINUS:
            return VInt(a - b)
        if kind == TK_MULTIPLY:
            return VInt(a * b)
        if kind in (TK_DIVIDE, TK_MODULO):
            if b == 0:
                raise self.error("integer division by zero", op)
            if kind == TK_DIVIDE:
                return VInt(_int_div(a, b))
            return VInt(_int_mod(a, b))
        raise self.error("unsupported operator '" + op.lexeme + "' for int", op)

    def eval_double_op(self, op: Token, a: float, b: float) -> Value:
        kind = op.kind
        if kind == TK_PLUS:
            return VDouble(a + b)
        if kind == TK_MINUS:
            return VDouble(a - b)
        if kind == TK_MULTIPLY:
            return VDouble(a * b)
        if kind == TK_DIVIDE:
            return VDouble(_float_div(a, b))
        raise self.error("unsupported operator '" + op.lexeme + "' for double", op)


def _same_ordered(lhs: Value, rhs: Value) -> bool:
    return type(lhs) is type(rhs) and isinstance(lhs, (VInt, VDouble, VChar, VString))


def _widen(target: str | None, value: Value) -> Value:
    # A char stored into a string-typed slot becomes a one-character string
    if target == TY_STRING and isinstance(value, VChar):
        return VString(value.value)
    return value


# ============================================================
# Built-in functions
# ============================================================


def _arg_string(rt: Interpreter, call: CallExpr, args: list[Value], i: int) -> str:
    value = args[i]
    if not isinstance(value, (VString, VChar)):
        raise rt.error(
            call.function_id.lexeme + " expects a string, got " + value.type_name(),
            call.function_id,
        )
    return value.value


def _arg_int(rt: Interpreter, call: CallExpr, args: list[Value], i: int) -> int:
    value = args[i]
    if not isinstance(value, VInt):
        raise rt.error(
            call.function_id.lexeme + " expects an int, got " + value.type_name(),
            call.function_id,
        )
    return value.value


def _builtin_print(rt: Interpreter, call: CallExpr, args: list[Value]) -> Value:
    rt.out.write(unescape(args[0].to_string()))
    return NIL


def _builtin_stoi(rt: Interpreter, call: CallExpr, args: list[Value]) -> Value:
    text = _arg_string(rt, call, args, 0)
    try:
        if "_" in text:
            raise ValueError(text)
        return VInt(int(text.strip()))
    except ValueError:
        raise rt.error("stoi: invalid int '" + text + "'", call.function_id) from None


def _builtin_stod(rt: Interpreter, call: CallExpr, args: list[Value]) -> Value:
    text = _arg_string(rt, call, args, 0)
    try:
        if "_" in text:
            raise ValueError(text)
        return VDouble(float(text.strip()))
    except ValueError:
        raise rt.error("stod: invalid double '" + text + "'", call.function_id) from None


def _builtin_to_string(rt: Interpreter, call: CallExpr, args: list[Value]) -> Value:
    return VString(args[0].to_string())


def _builtin_get(rt: Interpreter, call: CallExpr, args: list[Value]) -> Value:
    index = _arg_int(rt, call, args, 0)
    text = _arg_string(rt, call, args, 1)
    if index < 0 or index >= len(text):
        raise rt.error(
            "get: index " + str(index) + " out of bounds for string of length " + str(len(text)),
            call.function_id,
        )
    return VChar(text[index])


def _builtin_length(rt: Interpreter, call: CallExpr, args: list[Value]) -> Value:
    return VInt(len(_arg_string(rt, call, args, 0)))


def _builtin_read(rt: Interpreter, call: CallExpr, args: list[Value]) -> Value:
    return VString(rt.input.read_token())


BUILTINS: dict[str, Callable[[Interpreter, CallExpr, list[Value]], Value]] = {
    "print": _builtin_print,
    "stoi": _builtin_stoi,
    "stod": _builtin_stod,
    "itos": _builtin_to_string,
    "dtos": _builtin_to_string,
    "get": _builtin_get,
    "length": _builtin_length,
    "read": _builtin_read,
}


def run(
    program: Program,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> RunResult:
    """Evaluate a type-checked Program by calling its main function."""
    return Interpreter(stdin=stdin, stdout=stdout).run(program)
