"""MyPL AST — parse-time node definitions.

Positions come from the tokens each node keeps; nodes are plain dataclasses
and the two passes (checker, interpreter) dispatch over them with isinstance.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .tokens import Token


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class RValue:
    """Base for the leaves of an expression."""

    def first_token(self) -> Token:
        raise NotImplementedError


@dataclass
class SimpleRValue(RValue):
    """A literal: int, double, bool, char, string, or nil."""

    value: Token

    def first_token(self) -> Token:
        return self.value


@dataclass
class NewRValue(RValue):
    """new TypeName."""

    type_id: Token

    def first_token(self) -> Token:
        return self.type_id


@dataclass
class CallExpr(RValue):
    """f(args...)."""

    function_id: Token
    args: list[Expr]

    def first_token(self) -> Token:
        return self.function_id


@dataclass
class IDRValue(RValue):
    """A path a.b.c; a bare identifier is a one-element path."""

    path: list[Token]

    def first_token(self) -> Token:
        return self.path[0]


@dataclass
class NegatedRValue(RValue):
    """neg expr: numeric negation of the whole following expression."""

    expr: Expr

    def first_token(self) -> Token:
        return self.expr.first_token()


@dataclass
class Term:
    """Base for the first operand of an Expr."""

    def first_token(self) -> Token:
        raise NotImplementedError


@dataclass
class SimpleTerm(Term):
    rvalue: RValue

    def first_token(self) -> Token:
        return self.rvalue.first_token()


@dataclass
class ComplexTerm(Term):
    """A parenthesized expression, or the operand of `not`."""

    expr: Expr

    def first_token(self) -> Token:
        return self.expr.first_token()


@dataclass
class Expr:
    """first (op rest)?; rest is a full Expr, so chains associate to the right.

    negated means logical `not` applied to first. inferred is filled in by
    the type checker.
    """

    first: Term
    negated: bool = False
    op: Token | None = None
    rest: Expr | None = None
    inferred: str | None = field(default=None, compare=False)

    def first_token(self) -> Token:
        return self.first.first_token()


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Stmt:
    """Base for all statements."""


@dataclass
class VarDeclStmt(Stmt):
    """var id (: type)? = expr."""

    id: Token
    type: Token | None
    expr: Expr


@dataclass
class AssignStmt(Stmt):
    """a.b.c = expr; inferred is the target's type, filled in by the type checker."""

    path: list[Token]
    expr: Expr
    inferred: str | None = field(default=None, compare=False)


@dataclass
class CallStmt(Stmt):
    """A call evaluated for its effect."""

    call: CallExpr


@dataclass
class ReturnStmt(Stmt):
    token: Token
    expr: Expr


@dataclass
class BasicIf:
    """One (condition, body) clause of an if statement."""

    cond: Expr
    body: list[Stmt]


@dataclass
class IfStmt(Stmt):
    """if ... then ... (elseif ... then ...)* (else ...)? end."""

    if_part: BasicIf
    else_ifs: list[BasicIf]
    else_body: list[Stmt]
    has_else: bool = False


@dataclass
class WhileStmt(Stmt):
    cond: Expr
    body: list[Stmt]


@dataclass
class ForStmt(Stmt):
    """for var = start to end do ... end; end is inclusive."""

    var: Token
    start: Expr
    end: Expr
    body: list[Stmt]


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass
class Decl:
    """Base for top-level declarations."""


@dataclass
class FunParam:
    id: Token
    type: Token


@dataclass
class FunDecl(Decl):
    """fun ret_type name(params) body end."""

    return_type: Token
    id: Token
    params: list[FunParam]
    body: list[Stmt]


@dataclass
class TypeDecl(Decl):
    """type Name field-decls end."""

    id: Token
    fields: list[VarDeclStmt]


@dataclass
class Program:
    """Top-level program: list of declarations."""

    decls: list[Decl] = field(default_factory=list)
