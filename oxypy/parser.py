from __future__ import annotations
from .lexer import TK, Token
from .errors import ParseError
from . import ast_nodes as ast


# Operator precedence for binary operators (higher = tighter), all left-associative
_BINARY_OPS: dict[TK, int] = {
    TK.OR:      1,
    TK.AND:     2,
    TK.EQ:      3,
    TK.NEQ:     3,
    TK.LT:      4,
    TK.LE:      4,
    TK.GT:      4,
    TK.GE:      4,
    TK.PLUS:    5,
    TK.MINUS:   5,
    TK.STAR:    6,
    TK.SLASH:   6,
    TK.PERCENT: 6,
}

_BINOP_NAMES: dict[TK, str] = {
    TK.OR: "||", TK.AND: "&&", TK.EQ: "==", TK.NEQ: "!=",
    TK.LT: "<", TK.LE: "<=", TK.GT: ">", TK.GE: ">=",
    TK.PLUS: "+", TK.MINUS: "-", TK.STAR: "*", TK.SLASH: "/", TK.PERCENT: "%",
}

# A bare `return` ends at a line break or before a token that cannot start its value.
_RETURN_TERMINATORS = (
    TK.RBRACE, TK.SEMICOLON, TK.EOF, TK.LET, TK.FN, TK.CLASS,
    TK.IF, TK.WHILE, TK.FOR, TK.RETURN,
)

_ASSIGNABLE = (ast.Identifier, ast.FieldAccess, ast.Index)

# Deepest nesting of blocks and sub-expressions the parser accepts.
_MAX_NESTING = 200
_TOO_DEEP = "less deeply nested code"


class Parser:
    def __init__(self, tokens: list[Token]):
        self.tokens = list(tokens)
        if not self.tokens or self.tokens[-1].kind != TK.EOF:
            last = self.tokens[-1] if self.tokens else None
            line = last.line if last else 1
            column = last.column + len(last.lexeme) if last else 1
            self.tokens.append(Token(TK.EOF, "", None, line, column))
        self.pos = 0
        # Cleared while parsing `if`/`while` conditions and `for` ranges so
        # that `if ready { ... }` is not read as an object literal.
        self._allow_object_literal = True
        self._depth = 0

    # ---- helpers ----

    def _cur(self) -> Token:
        return self.tokens[self.pos]

    def _peek_kind(self, offset: int = 0) -> TK:
        p = self.pos + offset
        if p >= len(self.tokens):
            return TK.EOF
        return self.tokens[p].kind

    def _line(self) -> int:
        return self._cur().line

    def _check(self, kind: TK) -> bool:
        return self._peek_kind() == kind

    def _match(self, kind: TK) -> Token | None:
        if self._check(kind):
            tok = self._cur()
            self.pos += 1
            return tok
        return None

    def _expect(self, kind: TK, expected: str) -> Token:
        tok = self._match(kind)
        if tok is None:
            self._error(expected)
        return tok

    def _error(self, expected: str, tok: Token | None = None):
        tok = tok or self._cur()
        found = "end of input" if tok.kind == TK.EOF else f"'{tok.lexeme}'"
        raise ParseError(expected, found, tok.line, tok.column)

    def _enter(self):
        self._depth += 1
        if self._depth > _MAX_NESTING:
            self._error(_TOO_DEEP)

    def _skip_semicolons(self):
        while self._match(TK.SEMICOLON):
            pass

    # ---- top-level ----

    def parse(self) -> ast.Program:
        try:
            return self._parse_program()
        except RecursionError:
            self._error(_TOO_DEEP)

    def _parse_program(self) -> ast.Program:
        stmts: list = []
        while True:
            self._skip_semicolons()
            if self._check(TK.EOF):
                break
            stmts.append(self._parse_statement())
        return ast.Program(stmts, 1)

    # ---- block ----

    def _parse_block(self) -> ast.Block:
        line = self._line()
        self._expect(TK.LBRACE, "'{'")
        self._enter()
        saved = self._allow_object_literal
        self._allow_object_literal = True
        stmts: list = []
        while True:
            self._skip_semicolons()
            if self._check(TK.RBRACE) or self._check(TK.EOF):
                break
            stmts.append(self._parse_statement())
        self._expect(TK.RBRACE, "'}'")
        self._allow_object_literal = saved
        self._depth -= 1
        return ast.Block(stmts, line)

    # ---- statements ----

    def _parse_statement(self):
        k = self._peek_kind()
        if k == TK.LET:
            return self._parse_let()
        if k == TK.FN:
            return self._parse_fn()
        if k == TK.CLASS:
            return self._parse_class()
        if k == TK.IF:
            return self._parse_if()
        if k == TK.WHILE:
            return self._parse_while()
        if k == TK.FOR:
            return self._parse_for()
        if k == TK.RETURN:
            return self._parse_return()
        if k == TK.LBRACE:
            return self._parse_block()
        return self._parse_expr_stat()

    def _parse_type(self) -> str:
        return self._expect(TK.NAME, "type name").lexeme

    def _parse_let(self):
        line = self._line()
        self._expect(TK.LET, "'let'")
        name = self._expect(TK.NAME, "variable name").lexeme
        declared_type = None
        if self._match(TK.COLON):
            declared_type = self._parse_type()
        self._expect(TK.ASSIGN, "'='")
        value = self._parse_expression()
        return ast.VarDecl(name, declared_type, value, line)

    def _parse_fn(self) -> ast.FnDecl:
        line = self._line()
        self._expect(TK.FN, "'fn'")
        name = self._expect(TK.NAME, "function name").lexeme
        self._expect(TK.LPAREN, "'('")
        params: list[ast.Param] = []
        if not self._check(TK.RPAREN):
            params.append(self._parse_param())
            while self._match(TK.COMMA):
                params.append(self._parse_param())
        self._expect(TK.RPAREN, "')'")
        seen = set()
        for param in params:
            if param.name in seen:
                self._error(f"unique parameter name (duplicate '{param.name}')")
            seen.add(param.name)
        return_type = None
        if self._match(TK.ARROW):
            return_type = self._parse_type()
        body = self._parse_block()
        return ast.FnDecl(name, params, return_type, body, line)

    def _parse_param(self) -> ast.Param:
        tok = self._expect(TK.NAME, "parameter name")
        type_name = None
        if self._match(TK.COLON):
            type_name = self._parse_type()
        return ast.Param(tok.lexeme, type_name, tok.line)

    def _parse_class(self):
        line = self._line()
        self._expect(TK.CLASS, "'class'")
        name = self._expect(TK.NAME, "class name").lexeme
        self._expect(TK.LBRACE, "'{'")

        # first public group: fields
        self._expect(TK.PUBLIC, "'public'")
        self._expect(TK.LBRACE, "'{'")
        fields: list[ast.FieldDecl] = []
        while not self._check(TK.RBRACE):
            tok = self._expect(TK.NAME, "field name")
            self._expect(TK.COLON, "':'")
            type_name = self._parse_type()
            if any(f.name == tok.lexeme for f in fields):
                self._error(f"unique field name (duplicate '{tok.lexeme}')", tok)
            fields.append(ast.FieldDecl(tok.lexeme, type_name, tok.line))
            if not self._match(TK.COMMA):
                self._match(TK.SEMICOLON)
        self._expect(TK.RBRACE, "'}'")

        # second public group: methods
        methods: list[ast.FnDecl] = []
        if self._match(TK.PUBLIC):
            self._expect(TK.LBRACE, "'{'")
            while True:
                self._skip_semicolons()
                if self._check(TK.RBRACE):
                    break
                if not self._check(TK.FN):
                    self._error("'fn'")
                method = self._parse_fn()
                if any(m.name == method.name for m in methods):
                    self._error(f"unique method name (duplicate '{method.name}')")
                methods.append(method)
            self._expect(TK.RBRACE, "'}'")

        self._expect(TK.RBRACE, "'}'")
        return ast.ClassDecl(name, fields, methods, line)

    def _parse_condition(self):
        saved = self._allow_object_literal
        self._allow_object_literal = False
        expr = self._parse_expression()
        self._allow_object_literal = saved
        return expr

    def _parse_if(self):
        line = self._line()
        self._expect(TK.IF, "'if'")
        cond = self._parse_condition()
        then_block = self._parse_block()
        else_block = None
        if self._match(TK.ELSE):
            if self._check(TK.IF):
                nested = self._parse_if()
                else_block = ast.Block([nested], nested.line)
            else:
                else_block = self._parse_block()
        return ast.If(cond, then_block, else_block, line)

    def _parse_while(self):
        line = self._line()
        self._expect(TK.WHILE, "'while'")
        cond = self._parse_condition()
        body = self._parse_block()
        return ast.While(cond, body, line)

    def _parse_for(self):
        line = self._line()
        self._expect(TK.FOR, "'for'")
        var = self._expect(TK.NAME, "loop variable name").lexeme
        self._expect(TK.IN, "'in'")
        start = self._parse_condition()
        self._expect(TK.DOTDOT, "'..'")
        end = self._parse_condition()
        step = None
        if self._check(TK.NAME) and self._cur().lexeme == "step":
            self.pos += 1
            step_tok = self._cur()
            step = self._parse_condition()
            if (
                isinstance(step, ast.Literal)
                and not isinstance(step.value, bool)
                and step.value == 0
            ):
                self._error("non-zero step", step_tok)
        body = self._parse_block()
        return ast.For(var, start, end, step, body, line)

    def _parse_return(self):
        line = self._line()
        self._expect(TK.RETURN, "'return'")
        value = None
        nxt = self._cur()
        if nxt.kind not in _RETURN_TERMINATORS and nxt.line == line:
            value = self._parse_expression()
        return ast.Return(value, line)

    def _parse_expr_stat(self):
        """Parse an assignment or a bare expression statement."""
        line = self._line()
        expr = self._parse_expression()
        eq_tok = self._match(TK.ASSIGN)
        if eq_tok is not None:
            if not isinstance(expr, _ASSIGNABLE):
                self._error("assignable target before '='", eq_tok)
            value = self._parse_expression()
            return ast.Assignment(expr, value, line)
        return ast.ExprStmt(expr, line)

    # ---- expressions ----

    def _parse_expression(self, min_prec: int = 0):
        left = self._parse_unary()

        while True:
            k = self._peek_kind()
            if k not in _BINARY_OPS:
                break
            prec = _BINARY_OPS[k]
            if prec < min_prec:
                break
            op_tok = self._cur()
            self.pos += 1
            right = self._parse_expression(prec + 1)
            left = ast.BinaryOp(_BINOP_NAMES[k], left, right, op_tok.line)

        return left

    def _parse_unary(self):
        self._enter()
        k = self._peek_kind()
        if k in (TK.BANG, TK.MINUS):
            line = self._line()
            self.pos += 1
            op = "!" if k == TK.BANG else "-"
            node = ast.UnaryOp(op, self._parse_unary(), line)
        else:
            node = self._parse_postfix()
        self._depth -= 1
        return node

    def _parse_postfix(self):
        expr = self._parse_primary()
        while True:
            k = self._peek_kind()
            if k == TK.DOT:
                self.pos += 1
                name = self._expect(TK.NAME, "field or method name")
                if self._check(TK.LPAREN):
                    args = self._parse_call_args()
                    expr = ast.MethodCall(expr, name.lexeme, args, name.line)
                else:
                    expr = ast.FieldAccess(expr, name.lexeme, name.line)
            elif k == TK.LBRACKET:
                line = self._line()
                self.pos += 1
                saved = self._allow_object_literal
                self._allow_object_literal = True
                index = self._parse_expression()
                self._allow_object_literal = saved
                self._expect(TK.RBRACKET, "']'")
                expr = ast.Index(expr, index, line)
            elif k == TK.LPAREN:
                if not isinstance(expr, ast.Identifier):
                    self._error("function name before '('")
                args = self._parse_call_args()
                expr = ast.Call(expr.name, args, expr.line)
            else:
                break
        return expr

    def _parse_call_args(self) -> list:
        self._expect(TK.LPAREN, "'('")
        saved = self._allow_object_literal
        self._allow_object_literal = True
        args: list = []
        if not self._check(TK.RPAREN):
            args.append(self._parse_expression())
            while self._match(TK.COMMA):
                args.append(self._parse_expression())
        self._allow_object_literal = saved
        self._expect(TK.RPAREN, "')'")
        return args

    def _parse_primary(self):
        k = self._peek_kind()
        tok = self._cur()
        if k in (TK.INT, TK.FLOAT, TK.STRING, TK.TRUE, TK.FALSE):
            self.pos += 1
            return ast.Literal(tok.value, tok.line)
        if k == TK.NAME:
            if self._allow_object_literal and self._at_object_literal():
                return self._parse_object_literal()
            self.pos += 1
            return ast.Identifier(tok.lexeme, tok.line)
        if k == TK.LPAREN:
            self.pos += 1
            saved = self._allow_object_literal
            self._allow_object_literal = True
            expr = self._parse_expression()
            self._allow_object_literal = saved
            self._expect(TK.RPAREN, "')'")
            return expr
        if k == TK.LBRACKET:
            return self._parse_list_literal()
        self._error("expression")

    def _at_object_literal(self) -> bool:
        if self._peek_kind(1) != TK.LBRACE:
            return False
        if self._peek_kind(2) == TK.RBRACE:
            return True
        return self._peek_kind(2) == TK.NAME and self._peek_kind(3) == TK.COLON

    def _parse_object_literal(self) -> ast.ObjectLiteral:
        name_tok = self._expect(TK.NAME, "class name")
        self._expect(TK.LBRACE, "'{'")
        fields: list = []
        while not self._check(TK.RBRACE):
            field = self._expect(TK.NAME, "field name")
            self._expect(TK.COLON, "':'")
            fields.append((field.lexeme, self._parse_expression()))
            if not self._match(TK.COMMA):
                break
        self._expect(TK.RBRACE, "'}'")
        return ast.ObjectLiteral(name_tok.lexeme, fields, name_tok.line)

    def _parse_list_literal(self) -> ast.ListLiteral:
        line = self._line()
        self._expect(TK.LBRACKET, "'['")
        saved = self._allow_object_literal
        self._allow_object_literal = True
        elements: list = []
        while not self._check(TK.RBRACKET):
            elements.append(self._parse_expression())
            if not self._match(TK.COMMA):
                break
        self._allow_object_literal = saved
        self._expect(TK.RBRACKET, "']'")
        return ast.ListLiteral(elements, line)


def parse(tokens: list[Token]) -> ast.Program:
    """Parse a token sequence into a Program, raising ParseError on the first mismatch."""
    return Parser(tokens).parse()
