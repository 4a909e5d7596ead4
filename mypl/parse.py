"""MyPL parser — recursive descent, one method per grammar production."""

from __future__ import annotations

import logging

from .ast import (
    AssignStmt,
    BasicIf,
    CallExpr,
    CallStmt,
    ComplexTerm,
    Expr,
    ForStmt,
    FunDecl,
    FunParam,
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
    TypeDecl,
    VarDeclStmt,
    WhileStmt,
)
from .errors import ParseError
from .tokens import (
    TK_AND,
    TK_ASSIGN,
    TK_BOOL_TYPE,
    TK_BOOL_VAL,
    TK_CHAR_TYPE,
    TK_CHAR_VAL,
    TK_COLON,
    TK_COMMA,
    TK_DIVIDE,
    TK_DO,
    TK_DOT,
    TK_DOUBLE_TYPE,
    TK_DOUBLE_VAL,
    TK_ELSE,
    TK_ELSEIF,
    TK_END,
    TK_EOS,
    TK_EQUAL,
    TK_FOR,
    TK_FUN,
    TK_GREATER,
    TK_GREATER_EQUAL,
    TK_ID,
    TK_IF,
    TK_INT_TYPE,
    TK_INT_VAL,
    TK_LESS,
    TK_LESS_EQUAL,
    TK_LPAREN,
    TK_MINUS,
    TK_MODULO,
    TK_MULTIPLY,
    TK_NEG,
    TK_NEW,
    TK_NIL,
    TK_NOT,
    TK_NOT_EQUAL,
    TK_OR,
    TK_PLUS,
    TK_RETURN,
    TK_RPAREN,
    TK_STRING_TYPE,
    TK_STRING_VAL,
    TK_THEN,
    TK_TO,
    TK_TYPE,
    TK_VAR,
    TK_WHILE,
    Lexer,
    Token,
)

logger = logging.getLogger(__name__)

BINARY_OPS: set[str] = {
    TK_PLUS,
    TK_MINUS,
    TK_MULTIPLY,
    TK_DIVIDE,
    TK_MODULO,
    TK_AND,
    TK_OR,
    TK_EQUAL,
    TK_NOT_EQUAL,
    TK_LESS,
    TK_LESS_EQUAL,
    TK_GREATER,
    TK_GREATER_EQUAL,
}

LITERALS: set[str] = {
    TK_INT_VAL,
    TK_DOUBLE_VAL,
    TK_BOOL_VAL,
    TK_CHAR_VAL,
    TK_STRING_VAL,
    TK_NIL,
}

DATA_TYPES: set[str] = {
    TK_INT_TYPE,
    TK_DOUBLE_TYPE,
    TK_BOOL_TYPE,
    TK_CHAR_TYPE,
    TK_STRING_TYPE,
    TK_ID,
}


class Parser:
    """Recursive descent parser for MyPL, reading tokens lazily from a Lexer."""

    def __init__(self, lexer: Lexer):
        self.lexer: Lexer = lexer
        self.current: Token = lexer.next_token()

    # ── Helpers ──────────────────────────────────────────────

    def advance(self) -> Token:
        tok = self.current
        self.current = self.lexer.next_token()
        return tok

    def at(self, kind: str) -> bool:
        return self.current.kind == kind

    def expect(self, kind: str, production: str) -> Token:
        if self.current.kind != kind:
            raise self.error("expected " + kind + " in " + production)
        return self.advance()

    def error(self, msg: str) -> ParseError:
        tok = self.current
        found = tok.lexeme if tok.kind != TK_EOS else "end-of-file"
        return ParseError(msg + ", found '" + found + "'", tok.line, tok.column)

    # ── Top Level ────────────────────────────────────────────

    def parse(self, program: Program | None = None) -> Program:
        """Consume the whole token stream, appending declarations to program."""
        if program is None:
            program = Program()
        while not self.at(TK_EOS):
            if self.at(TK_TYPE):
                program.decls.append(self.parse_type_decl())
            elif self.at(TK_FUN):
                program.decls.append(self.parse_fun_decl())
            else:
                raise self.error("expected declaration (type or fun)")
        logger.debug("parsed %d declarations", len(program.decls))
        return program

    def parse_type_decl(self) -> TypeDecl:
        self.expect(TK_TYPE, "type declaration")
        name = self.expect(TK_ID, "type declaration")
        fields: list[VarDeclStmt] = []
        while self.at(TK_VAR):
            fields.append(self.parse_var_decl())
        self.expect(TK_END, "type declaration")
        return TypeDecl(name, fields)

    def parse_fun_decl(self) -> FunDecl:
        self.expect(TK_FUN, "function declaration")
        if self.at(TK_NIL):
            ret = self.advance()
        else:
            ret = self.parse_data_type("function return type")
        name = self.expect(TK_ID, "function declaration")
        self.expect(TK_LPAREN, "function declaration")
        params: list[FunParam] = []
        if not self.at(TK_RPAREN):
            params.append(self.parse_param())
            while self.at(TK_COMMA):
                self.advance()
                params.append(self.parse_param())
        self.expect(TK_RPAREN, "function declaration")
        body = self.parse_stmts({TK_END})
        self.expect(TK_END, "function declaration")
        return FunDecl(ret, name, params, body)

    def parse_param(self) -> FunParam:
        name = self.expect(TK_ID, "function parameter")
        self.expect(TK_COLON, "function parameter")
        typ = self.parse_data_type("function parameter")
        return FunParam(name, typ)

    def parse_data_type(self, production: str) -> Token:
        if self.current.kind not in DATA_TYPES:
            raise self.error("expected data type in " + production)
        return self.advance()

    # ── Statements ───────────────────────────────────────────

    def parse_stmts(self, terminators: set[str]) -> list[Stmt]:
        stmts: list[Stmt] = []
        while self.current.kind not in terminators:
            stmts.append(self.parse_stmt())
        return stmts

    def parse_stmt(self) -> Stmt:
        if self.at(TK_VAR):
            return self.parse_var_decl()
        if self.at(TK_ID):
            return self.parse_id_stmt()
        if self.at(TK_IF):
            return self.parse_if_stmt()
        if self.at(TK_WHILE):
            return self.parse_while_stmt()
        if self.at(TK_FOR):
            return self.parse_for_stmt()
        if self.at(TK_RETURN):
            return self.parse_return_stmt()
        raise self.error("expected statement")

    def parse_var_decl(self) -> VarDeclStmt:
        self.expect(TK_VAR, "variable declaration")
        name = self.expect(TK_ID, "variable declaration")
        typ: Token | None = None
        if self.at(TK_COLON):
            self.advance()
            typ = self.parse_data_type("variable declaration")
        self.expect(TK_ASSIGN, "variable declaration")
        return VarDeclStmt(name, typ, self.parse_expr())

    def parse_id_stmt(self) -> Stmt:
        name = self.expect(TK_ID, "statement")
        if self.at(TK_LPAREN):
            return CallStmt(CallExpr(name, self.parse_args()))
        path = [name]
        while self.at(TK_DOT):
            self.advance()
            path.append(self.expect(TK_ID, "assignment path"))
        self.expect(TK_ASSIGN, "assignment")
        return AssignStmt(path, self.parse_expr())

    def parse_if_stmt(self) -> IfStmt:
        self.expect(TK_IF, "if statement")
        clause_ends = {TK_ELSEIF, TK_ELSE, TK_END}
        cond = self.parse_expr()
        self.expect(TK_THEN, "if statement")
        if_part = BasicIf(cond, self.parse_stmts(clause_ends))
        else_ifs: list[BasicIf] = []
        while self.at(TK_ELSEIF):
            self.advance()
            elif_cond = self.parse_expr()
            self.expect(TK_THEN, "elseif clause")
            else_ifs.append(BasicIf(elif_cond, self.parse_stmts(clause_ends)))
        else_body: list[Stmt] = []
        has_else = False
        if self.at(TK_ELSE):
            self.advance()
            has_else = True
            else_body = self.parse_stmts({TK_END})
        self.expect(TK_END, "if statement")
        return IfStmt(if_part, else_ifs, else_body, has_else)

    def parse_while_stmt(self) -> WhileStmt:
        self.expect(TK_WHILE, "while statement")
        cond = self.parse_expr()
        self.expect(TK_DO, "while statement")
        body = self.parse_stmts({TK_END})
        self.expect(TK_END, "while statement")
        return WhileStmt(cond, body)

    def parse_for_stmt(self) -> ForStmt:
        self.expect(TK_FOR, "for statement")
        var = self.expect(TK_ID, "for statement")
        self.expect(TK_ASSIGN, "for statement")
        start = self.parse_expr()
        self.expect(TK_TO, "for statement")
        end = self.parse_expr()
        self.expect(TK_DO, "for statement")
        body = self.parse_stmts({TK_END})
        self.expect(TK_END, "for statement")
        return ForStmt(var, start, end, body)

    def parse_return_stmt(self) -> ReturnStmt:
        tok = self.expect(TK_RETURN, "return statement")
        return ReturnStmt(tok, self.parse_expr())

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        if self.at(TK_NOT):
            self.advance()
            return Expr(ComplexTerm(self.parse_expr()), negated=True)
        if self.at(TK_LPAREN):
            self.advance()
            inner = self.parse_expr()
            self.expect(TK_RPAREN, "parenthesized expression")
            expr = Expr(ComplexTerm(inner))
        else:
            expr = Expr(SimpleTerm(self.parse_rvalue()))
        if self.current.kind in BINARY_OPS:
            expr.op = self.advance()
            expr.rest = self.parse_expr()
        return expr

    def parse_rvalue(self) -> RValue:
        if self.current.kind in LITERALS:
            return SimpleRValue(self.advance())
        if self.at(TK_NEW):
            self.advance()
            return NewRValue(self.expect(TK_ID, "new expression"))
        if self.at(TK_NEG):
            self.advance()
            return NegatedRValue(self.parse_expr())
        if self.at(TK_ID):
            name = self.advance()
            if self.at(TK_LPAREN):
                return CallExpr(name, self.parse_args())
            path = [name]
            while self.at(TK_DOT):
                self.advance()
                path.append(self.expect(TK_ID, "path expression"))
            return IDRValue(path)
        raise self.error("expected expression")

    def parse_args(self) -> list[Expr]:
        self.expect(TK_LPAREN, "call")
        args: list[Expr] = []
        if not self.at(TK_RPAREN):
            args.append(self.parse_expr())
            while self.at(TK_COMMA):
                self.advance()
                args.append(self.parse_expr())
        self.expect(TK_RPAREN, "call")
        return args
