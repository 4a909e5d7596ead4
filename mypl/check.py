"""MyPL typechecker — validates a parsed Program before anything runs.

Types are plain names: the six scalars ("int", "double", "bool", "char",
"string", "nil") or a user-defined type name. The symbol table payload is a
type name for a variable, a signature list [param types..., return type] for
a function, and an attribute -> type map for a user-defined type.
"""

from __future__ import annotations

import logging
from typing import Union

from .ast import (
    AssignStmt,
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
from .errors import SemanticError
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
    TK_NIL,
    TK_NOT_EQUAL,
    TK_OR,
    TK_PLUS,
    TK_STRING_VAL,
    Token,
)

logger = logging.getLogger(__name__)


# ============================================================
# TYPE NAMES
# ============================================================

TY_INT: str = "int"
TY_DOUBLE: str = "double"
TY_BOOL: str = "bool"
TY_CHAR: str = "char"
TY_STRING: str = "string"
TY_NIL: str = "nil"
# Parameter type that accepts any argument; not a lexable identifier
TY_ANY: str = "*"

SCALAR_TYPES: set[str] = {TY_INT, TY_DOUBLE, TY_BOOL, TY_CHAR, TY_STRING}
ORDERED_TYPES: set[str] = {TY_INT, TY_DOUBLE, TY_CHAR, TY_STRING}
TEXT_TYPES: set[str] = {TY_CHAR, TY_STRING}
NUMERIC_TYPES: set[str] = {TY_INT, TY_DOUBLE}

LITERAL_TYPES: dict[str, str] = {
    TK_INT_VAL: TY_INT,
    TK_DOUBLE_VAL: TY_DOUBLE,
    TK_BOOL_VAL: TY_BOOL,
    TK_CHAR_VAL: TY_CHAR,
    TK_STRING_VAL: TY_STRING,
    TK_NIL: TY_NIL,
}

BUILTIN_SIGNATURES: dict[str, list[str]] = {
    "print": [TY_ANY, TY_NIL],
    "stoi": [TY_STRING, TY_INT],
    "stod": [TY_STRING, TY_DOUBLE],
    "itos": [TY_INT, TY_STRING],
    "dtos": [TY_DOUBLE, TY_STRING],
    "get": [TY_INT, TY_STRING, TY_CHAR],
    "length": [TY_STRING, TY_INT],
    "read": [TY_STRING],
}

EQUALITY_OPS: set[str] = {TK_EQUAL, TK_NOT_EQUAL}
ORDERING_OPS: set[str] = {TK_LESS, TK_LESS_EQUAL, TK_GREATER, TK_GREATER_EQUAL}
ARITHMETIC_OPS: set[str] = {TK_MINUS, TK_MULTIPLY, TK_DIVIDE}
LOGICAL_OPS: set[str] = {TK_AND, TK_OR}

Signature = list[str]
Attributes = dict[str, str]
Info = Union[str, Signature, Attributes]


class TypeChecker:
    """Checking context: the symbol table plus the enclosing function's return type."""

    def __init__(self) -> None:
        self.symtab: SymbolTable[Info] = SymbolTable()
        self.current_return: str | None = None
        self.global_env_id: int = 0

    def error(self, msg: str, tok: Token | None = None) -> SemanticError:
        if tok is None:
            return SemanticError(msg)
        return SemanticError(msg, tok.line, tok.column)

    # ── Symbol helpers ────────────────────────────────────────

    def global_info(self, name: str) -> Info | None:
        """Types and functions live in the global environment; locals never hide them."""
        return self.symtab.get_in(self.global_env_id, name)

    def is_udt(self, name: str) -> bool:
        return isinstance(self.global_info(name), dict)

    def is_valid_type(self, name: str) -> bool:
        return name in SCALAR_TYPES or self.is_udt(name)

    def variable_type(self, tok: Token) -> str:
        name = tok.lexeme
        if not self.symtab.name_exists(name):
            raise self.error("variable '" + name + "' used before declaration", tok)
        info = self.symtab.get(name)
        if not isinstance(info, str):
            raise self.error("'" + name + "' is not a variable", tok)
        return info

    def declare_var(self, tok: Token, typ: str) -> None:
        if self.symtab.name_exists_in_curr_env(tok.lexeme):
            raise self.error("redeclaration of '" + tok.lexeme + "' in the same scope", tok)
        self.symtab.add_name(tok.lexeme, typ)

    # ── Program ──────────────────────────────────────────────

    def check_program(self, program: Program) -> None:
        self.global_env_id = self.symtab.push_environment()
        for name, sig in BUILTIN_SIGNATURES.items():
            self.symtab.add_name(name, list(sig))
        self.collect_declarations(program.decls)
        self.check_main()
        for decl in program.decls:
            if isinstance(decl, TypeDecl):
                self.check_type_decl(decl)
        self.check_self_instantiation(program.decls)
        for decl in program.decls:
            if isinstance(decl, FunDecl):
                self.check_fun_decl(decl)
        self.symtab.pop_environment()
        logger.debug("checked %d declarations", len(program.decls))

    # ── Pass 1: Collect declarations ─────────────────────────

    def collect_declarations(self, decls: list[Decl]) -> None:
        for decl in decls:
            if isinstance(decl, TypeDecl):
                if self.symtab.name_exists_in_curr_env(decl.id.lexeme):
                    raise self.error("redeclaration of '" + decl.id.lexeme + "'", decl.id)
                self.symtab.add_name(decl.id.lexeme, {})
        for decl in decls:
            if isinstance(decl, FunDecl):
                self.collect_fun_signature(decl)

    def collect_fun_signature(self, decl: FunDecl) -> None:
        name = decl.id.lexeme
        if self.symtab.name_exists_in_curr_env(name):
            raise self.error("redeclaration of '" + name + "'", decl.id)
        sig: Signature = []
        for p in decl.params:
            if not self.is_valid_type(p.type.lexeme):
                raise self.error("undefined parameter type '" + p.type.lexeme + "'", p.type)
            sig.append(p.type.lexeme)
        ret = decl.return_type.lexeme
        if ret != TY_NIL and not self.is_valid_type(ret):
            raise self.error("undefined return type '" + ret + "'", decl.return_type)
        sig.append(ret)
        self.symtab.add_name(name, sig)

    def check_main(self) -> None:
        if not self.symtab.name_exists_in_curr_env("main"):
            raise self.error("undefined 'main' function")
        info = self.symtab.get("main")
        if not isinstance(info, list):
            raise self.error("'main' must be a function")
        if len(info) != 1:
            raise self.error("'main' function must take no parameters")

    # ── Pass 2: Check bodies ──────────────────────────────────

    def check_type_decl(self, decl: TypeDecl) -> None:
        attributes: Attributes = {}
        self.symtab.push_environment()
        for field_decl in decl.fields:
            attributes[field_decl.id.lexeme] = self.check_var_decl(field_decl)
        self.symtab.pop_environment()
        self.symtab.set_in(self.global_env_id, decl.id.lexeme, attributes)

    def check_self_instantiation(self, decls: list[Decl]) -> None:
        """Reject types whose field initializers end up doing `new` on the same type.

        Every `new` in a field initializer runs on each allocation, so a cycle
        through them never terminates. Calls are not followed.
        """
        creates: dict[str, list[Token]] = {}
        for decl in decls:
            if isinstance(decl, TypeDecl):
                toks: list[Token] = []
                for field_decl in decl.fields:
                    _collect_new_types(field_decl.expr, toks)
                creates[decl.id.lexeme] = toks
        for decl in decls:
            if not isinstance(decl, TypeDecl):
                continue
            name = decl.id.lexeme
            seen: set[str] = set()
            pending = list(creates[name])
            while pending:
                tok = pending.pop()
                if tok.lexeme == name:
                    raise self.error("type '" + name + "' instantiates itself in its field initializers", tok)
                if tok.lexeme in seen or tok.lexeme not in creates:
                    continue
                seen.add(tok.lexeme)
                pending.extend(creates[tok.lexeme])

    def check_fun_decl(self, decl: FunDecl) -> None:
        self.current_return = decl.return_type.lexeme
        self.symtab.push_environment()
        for p in decl.params:
            self.declare_var(p.id, p.type.lexeme)
        self.check_stmts(decl.body)
        self.symtab.pop_environment()
        self.current_return = None

    # ── Statement checking ────────────────────────────────────

    def check_block(self, stmts: list[Stmt]) -> None:
        self.symtab.push_environment()
        self.check_stmts(stmts)
        self.symtab.pop_environment()

    def check_stmts(self, stmts: list[Stmt]) -> None:
        for s in stmts:
            self.check_stmt(s)

    def check_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, VarDeclStmt):
            self.check_var_decl(stmt)
        elif isinstance(stmt, AssignStmt):
            self.check_assign_stmt(stmt)
        elif isinstance(stmt, CallStmt):
            self.check_call(stmt.call)
        elif isinstance(stmt, ReturnStmt):
            self.check_return_stmt(stmt)
        elif isinstance(stmt, IfStmt):
            self.check_if_stmt(stmt)
        elif isinstance(stmt, WhileStmt):
            self.check_while_stmt(stmt)
        elif isinstance(stmt, ForStmt):
            self.check_for_stmt(stmt)
        else:
            raise self.error("unhandled statement type: " + type(stmt).__name__)

    def check_var_decl(self, stmt: VarDeclStmt) -> str:
        """Check a declaration, bind it, and return the variable's type."""
        declared: str | None = None
        if stmt.type is not None:
            declared = stmt.type.lexeme
            if not self.is_valid_type(declared):
                raise self.error("undefined type '" + declared + "'", stmt.type)
        inferred = self.check_expr(stmt.expr)
        typ = inferred
        if declared is not None:
            if inferred != TY_NIL and inferred != declared:
                raise self.error(
                    "declared type " + declared + " does not match initializer type " + inferred,
                    stmt.id,
                )
            typ = declared
        self.declare_var(stmt.id, typ)
        return typ

    def check_assign_stmt(self, stmt: AssignStmt) -> None:
        lhs = self.check_path(stmt.path)
        stmt.inferred = lhs
        rhs = self.check_expr(stmt.expr)
        if rhs == TY_CHAR and lhs == TY_STRING:
            return
        if lhs != TY_NIL and rhs != TY_NIL and lhs != rhs:
            raise self.error("cannot assign " + rhs + " to " + lhs, stmt.path[0])

    def check_return_stmt(self, stmt: ReturnStmt) -> None:
        typ = self.check_expr(stmt.expr)
        if self.current_return is None:
            raise self.error("return outside of function", stmt.token)
        if typ == TY_NIL:
            return
        if self.current_return == TY_NIL:
            raise self.error("cannot return " + typ + " from a nil function", stmt.token)
        if typ != self.current_return:
            raise self.error(
                "cannot return " + typ + " from function returning " + self.current_return,
                stmt.token,
            )

    def check_condition(self, cond: Expr, what: str) -> None:
        typ = self.check_expr(cond)
        if typ != TY_BOOL:
            raise self.error(what + " condition must be bool, got " + typ, cond.first_token())

    def check_if_stmt(self, stmt: IfStmt) -> None:
        self.check_condition(stmt.if_part.cond, "if")
        self.check_block(stmt.if_part.body)
        for clause in stmt.else_ifs:
            self.check_condition(clause.cond, "elseif")
            self.check_block(clause.body)
        self.check_block(stmt.else_body)

    def check_while_stmt(self, stmt: WhileStmt) -> None:
        self.check_condition(stmt.cond, "while")
        self.check_block(stmt.body)

    def check_for_stmt(self, stmt: ForStmt) -> None:
        for bound in (stmt.start, stmt.end):
            typ = self.check_expr(bound)
            if typ != TY_INT:
                raise self.error("for loop bounds must be int, got " + typ, bound.first_token())
        self.symtab.push_environment()
        self.symtab.add_name(stmt.var.lexeme, TY_INT)
        self.check_block(stmt.body)
        self.symtab.pop_environment()

    # ── Expression checking ──────────────────────────────────

    def check_expr(self, expr: Expr) -> str:
        """Infer the type of expr, record it on the node, and return it."""
        lhs = self.check_term(expr.first)
        if expr.negated:
            if lhs != TY_BOOL:
                raise self.error("'not' requires a bool operand, got " + lhs, expr.first_token())
            lhs = TY_BOOL
        typ = lhs
        if expr.op is not None and expr.rest is not None:
            rhs = self.check_expr(expr.rest)
            typ = self.check_binary_op(expr.op, lhs, rhs)
        expr.inferred = typ
        return typ

    def check_binary_op(self, op: Token, lhs: str, rhs: str) -> str:
        kind = op.kind
        if kind in LOGICAL_OPS:
            if lhs != TY_BOOL or rhs != TY_BOOL:
                raise self.error("'" + op.lexeme + "' requires bool operands, got " + lhs + " and " + rhs, op)
            return TY_BOOL
        if kind in EQUALITY_OPS:
            if lhs != rhs and lhs != TY_NIL and rhs != TY_NIL:
                raise self.error("cannot compare " + lhs + " and " + rhs, op)
            return TY_BOOL
        if kind in ORDERING_OPS:
            if lhs != rhs or lhs not in ORDERED_TYPES:
                raise self.error("cannot order " + lhs + " and " + rhs, op)
            return TY_BOOL
        if kind == TK_PLUS:
            if lhs in TEXT_TYPES and rhs in TEXT_TYPES:
                return TY_STRING
            if lhs == rhs and lhs in NUMERIC_TYPES:
                return lhs
            raise self.error("cannot add " + lhs + " and " + rhs, op)
        if kind in ARITHMETIC_OPS:
            if lhs == rhs and lhs in NUMERIC_TYPES:
                return lhs
            raise self.error("'" + op.lexeme + "' not defined for " + lhs + " and " + rhs, op)
        if kind == TK_MODULO:
            if lhs == TY_INT and rhs == TY_INT:
                return TY_INT
            raise self.error("'%' requires int operands, got " + lhs + " and " + rhs, op)
        raise self.error("unknown binary operator '" + op.lexeme + "'", op)

    def check_term(self, term: Term) -> str:
        if isinstance(term, SimpleTerm):
            return self.check_rvalue(term.rvalue)
        if isinstance(term, ComplexTerm):
            return self.check_expr(term.expr)
        raise self.error("unhandled term type: " + type(term).__name__)

    def check_rvalue(self, rvalue: RValue) -> str:
        if isinstance(rvalue, SimpleRValue):
            return LITERAL_TYPES[rvalue.value.kind]
        if isinstance(rvalue, NewRValue):
            if not self.is_udt(rvalue.type_id.lexeme):
                raise self.error("undefined type '" + rvalue.type_id.lexeme + "'", rvalue.type_id)
            return rvalue.type_id.lexeme
        if isinstance(rvalue, CallExpr):
            return self.check_call(rvalue)
        if isinstance(rvalue, IDRValue):
            return self.check_path(rvalue.path)
        if isinstance(rvalue, NegatedRValue):
            typ = self.check_expr(rvalue.expr)
            if typ not in NUMERIC_TYPES:
                raise self.error("negation requires int or double, got " + typ, rvalue.first_token())
            return typ
        raise self.error("unhandled rvalue type: " + type(rvalue).__name__)

    def check_call(self, call: CallExpr) -> str:
        fid = call.function_id
        sig = self.global_info(fid.lexeme)
        if sig is None and not self.symtab.name_exists(fid.lexeme):
            raise self.error("undefined function '" + fid.lexeme + "'", fid)
        if not isinstance(sig, list):
            raise self.error("'" + fid.lexeme + "' is not a function", fid)
        params = sig[:-1]
        if len(params) != len(call.args):
            raise self.error(
                "'" + fid.lexeme + "' expects " + str(len(params))
                + " argument(s), got " + str(len(call.args)),
                fid,
            )
        for i, arg in enumerate(call.args):
            typ = self.check_expr(arg)
            if params[i] != TY_ANY and typ != TY_NIL and typ != params[i]:
                raise self.error(
                    "argument " + str(i + 1) + " of '" + fid.lexeme + "' expected "
                    + params[i] + ", got " + typ,
                    arg.first_token(),
                )
        return sig[-1]

    def check_path(self, path: list[Token]) -> str:
        typ = self.variable_type(path[0])
        for tok in path[1:]:
            attributes = self.global_info(typ)
            if not isinstance(attributes, dict):
                raise self.error("cannot access '" + tok.lexeme + "' on non-object type " + typ, tok)
            if tok.lexeme not in attributes:
                raise self.error("type " + typ + " has no attribute '" + tok.lexeme + "'", tok)
            typ = attributes[tok.lexeme]
        return typ


def _collect_new_types(expr: Expr, out: list[Token]) -> None:
    """Append the type token of every `new` evaluated by expr."""
    term = expr.first
    if isinstance(term, ComplexTerm):
        _collect_new_types(term.expr, out)
    elif isinstance(term, SimpleTerm):
        rv = term.rvalue
        if isinstance(rv, NewRValue):
            out.append(rv.type_id)
        elif isinstance(rv, CallExpr):
            for arg in rv.args:
                _collect_new_types(arg, out)
        elif isinstance(rv, NegatedRValue):
            _collect_new_types(rv.expr, out)
    if expr.rest is not None:
        _collect_new_types(expr.rest, out)


# ============================================================
# PUBLIC API
# ============================================================


def check(program: Program) -> None:
    """Type-check a parsed Program; raises SemanticError on the first violation."""
    TypeChecker().check_program(program)
