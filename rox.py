#!/usr/bin/env python3
"""rox: scanner, parser and tree-walking interpreter for a small Lox-style language"""
# pylint: disable=line-too-long,too-many-arguments,multiple-statements,too-many-lines
import argparse
import enum
import math
import sys
import time
import typing


class TokenType(enum.Enum):
    """Token types"""
    # Single-character tokens.
    LEFT_PAREN = enum.auto()
    RIGHT_PAREN = enum.auto()
    LEFT_BRACE = enum.auto()
    RIGHT_BRACE = enum.auto()

    COMMA = enum.auto()
    DOT = enum.auto()
    MINUS = enum.auto()
    PLUS = enum.auto()
    SEMICOLON = enum.auto()
    SLASH = enum.auto()
    STAR = enum.auto()

    # One or two character tokens.
    BANG = enum.auto()
    BANG_EQUAL = enum.auto()
    EQUAL = enum.auto()
    EQUAL_EQUAL = enum.auto()
    GREATER = enum.auto()
    GREATER_EQUAL = enum.auto()
    LESS = enum.auto()
    LESS_EQUAL = enum.auto()

    # Literals.
    IDENTIFIER = enum.auto()
    STRING = enum.auto()
    NUMBER = enum.auto()

    # Keywords.
    AND = enum.auto()
    CLASS = enum.auto()
    ELSE = enum.auto()
    FALSE = enum.auto()
    FUN = enum.auto()
    FOR = enum.auto()
    IF = enum.auto()
    NIL = enum.auto()
    OR = enum.auto()

    PRINT = enum.auto()
    RETURN = enum.auto()
    SUPER = enum.auto()
    THIS = enum.auto()
    TRUE = enum.auto()
    VAR = enum.auto()
    WHILE = enum.auto()

    EOF = enum.auto()


KEYWORDS = {
    'and':    TokenType.AND,
    'class':  TokenType.CLASS,
    'else':   TokenType.ELSE,
    'false':  TokenType.FALSE,
    'for':    TokenType.FOR,
    'fun':    TokenType.FUN,
    'if':     TokenType.IF,
    'nil':    TokenType.NIL,
    'or':     TokenType.OR,
    'print':  TokenType.PRINT,
    'return': TokenType.RETURN,
    'super':  TokenType.SUPER,
    'this':   TokenType.THIS,
    'true':   TokenType.TRUE,
    'var':    TokenType.VAR,
    'while':  TokenType.WHILE,
}

LiteralValue = typing.Union[str, float, bool, None]


class Token:
    """Token"""
    def __init__(self, token_type:TokenType, lexeme:str, literal:LiteralValue, line:int) -> None:
        self.type = token_type
        self.lexeme = lexeme
        self.literal = literal
        self.line = line

    def __str__(self) -> str:
        return f"{self.type} {self.lexeme} {self.literal}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.type}, {self.lexeme!r}, {self.literal!r}, {self.line!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, self.__class__):
            return False
        return (
            self.type == other.type
            and self.lexeme == other.lexeme
            and self.literal == other.literal
            and self.line == other.line
        )

    def __hash__(self) -> int:
        return hash((self.type, self.lexeme, self.literal, self.line))


def token_location(token:Token) -> str:
    """location fragment of a diagnostic for a token"""
    if token.type == TokenType.EOF:
        return " at end"
    return f" at '{token.lexeme}'"


class RoxError(Exception):
    """Base class for every diagnostic raised while scanning, parsing or running"""
    def __init__(self, line:int, msg:str, where:str = "") -> None:
        super().__init__(msg)
        self.line = line
        self.where = where
        self.message = msg

    def report(self) -> str:
        """format as `[line N] Error<where>: <message>`"""
        return f"[line {self.line}] Error{self.where}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.line!r}, {self.message!r}, {self.where!r})"


def is_digit(c:str) -> bool:
    """ascii digit"""
    return '0' <= c <= '9'


def is_alpha(c:str) -> bool:
    """ascii letter or underscore"""
    return 'a' <= c <= 'z' or 'A' <= c <= 'Z' or c == '_'


class Scanner:
    """Scanner

        Scans the whole source on construction. Lexical errors are collected in
        `errors` and scanning carries on with the next character.
    """

    class ScannerError(RoxError):
        """Scanner error"""

    def __init__(self, source:str) -> None:
        self.source = source
        self.tokens:typing.List[Token] = []
        self.errors:typing.List[Scanner.ScannerError] = []
        self.start = 0
        self.current = 0
        self.line = 1

        while not self.is_at_end:
            self.start = self.current
            self.scan_token()
        self.tokens.append(Token(TokenType.EOF, "", None, self.line))

    is_at_end = property(lambda self: self.current >= len(self.source))
    next_is_at_end = property(lambda self: (self.current + 1) >= len(self.source))
    peek = property(lambda self: self.source[self.current] if not self.is_at_end else '\0')
    peek_next = property(lambda self: self.source[self.current + 1] if not self.next_is_at_end else '\0')

    def advance(self) -> str:
        """advance to the next character"""
        c = self.source[self.current]
        self.current += 1
        return c

    def match(self, expected:str) -> bool:
        """match current character"""
        if self.is_at_end: return False
        if self.source[self.current] != expected: return False
        self.current += 1
        return True

    def scan_error(self, msg:str) -> None:
        """record a lexical error at the current line"""
        self.errors.append(self.ScannerError(self.line, msg))

    def string(self) -> None:
        """scan a string"""
        while self.peek != '"' and not self.is_at_end:
            if self.peek == '\n': self.line += 1
            self.advance()

        if self.is_at_end:
            self.scan_error("Unterminated string.")
            return

        self.advance()

        value = self.source[self.start + 1: self.current - 1]
        self.add_token(TokenType.STRING, value)

    def number(self) -> None:
        """scan a number"""
        while is_digit(self.peek): self.advance()
        if self.peek == '.' and is_digit(self.peek_next):
            self.advance()
            while is_digit(self.peek): self.advance()
        self.add_token(TokenType.NUMBER, float(self.source[self.start:self.current]))

    def identifier(self) -> None:
        """scan an identifier or keyword"""
        while is_alpha(self.peek) or is_digit(self.peek): self.advance()
        value = self.source[self.start:self.current]
        self.add_token(KEYWORDS.get(value, TokenType.IDENTIFIER))

    def add_token(self, token_type:TokenType, literal:LiteralValue = None) -> None:
        """add a scanned token"""
        text = self.source[self.start:self.current]
        self.tokens.append(Token(token_type, text, literal, self.line))

    def scan_token(self) -> None:  # noqa:C901 # too-complex
        """scan for a token"""
        # pylint: disable=too-many-branches
        c = self.advance()
        if c == '(': self.add_token(TokenType.LEFT_PAREN)
        elif c == ')': self.add_token(TokenType.RIGHT_PAREN)
        elif c == '{': self.add_token(TokenType.LEFT_BRACE)
        elif c == '}': self.add_token(TokenType.RIGHT_BRACE)
        elif c == ',': self.add_token(TokenType.COMMA)
        elif c == '.': self.add_token(TokenType.DOT)
        elif c == '-': self.add_token(TokenType.MINUS)
        elif c == '+': self.add_token(TokenType.PLUS)
        elif c == ';': self.add_token(TokenType.SEMICOLON)
        elif c == '*': self.add_token(TokenType.STAR)
        elif c == '!': self.add_token(TokenType.BANG_EQUAL if self.match('=') else TokenType.BANG)
        elif c == '=': self.add_token(TokenType.EQUAL_EQUAL if self.match('=') else TokenType.EQUAL)
        elif c == '<': self.add_token(TokenType.LESS_EQUAL if self.match('=') else TokenType.LESS)
        elif c == '>': self.add_token(TokenType.GREATER_EQUAL if self.match('=') else TokenType.GREATER)
        elif c == '/':
            if self.match('/'):
                while self.peek != '\n' and not self.is_at_end: self.advance()
            else:
                self.add_token(TokenType.SLASH)
        elif c in (' ', '\t', '\r'): pass
        elif c == '\n': self.line += 1
        elif c == '"': self.string()
        elif is_digit(c): self.number()
        elif is_alpha(c): self.identifier()
        else:
            self.scan_error(f"Unexpected character '{c}'.")


class Expr:
    """Expression"""
    def __repr__(self):
        return f"{self.__class__.__name__}({', '.join(f'{k}={v!r}' for k,v in self.__dict__.items())})"

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return False
        return self.__dict__ == other.__dict__

    __hash__ = None


class Stmt:
    """Statement"""
    def __repr__(self):
        return f"{self.__class__.__name__}({', '.join(f'{k}={v!r}' for k,v in self.__dict__.items())})"

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return False
        return self.__dict__ == other.__dict__

    __hash__ = None


class Binary(Expr):
    """Binary expression"""
    def __init__(self, left:Expr, operator:Token, right:Expr):
        self.left = left
        self.operator = operator
        self.right = right


class Assign(Expr):
    """Assignment expression"""
    def __init__(self, name:Token, value:Expr):
        self.name = name
        self.value = value


class Call(Expr):
    """Call expression"""
    def __init__(self, callee:Expr, paren:Token, arguments:typing.List[Expr]):
        self.callee = callee
        self.paren = paren
        self.arguments = arguments


class Grouping(Expr):
    """Grouping expression"""
    def __init__(self, expression:Expr):
        self.expression = expression


class Literal(Expr):
    """Literal expression"""
    def __init__(self, value:LiteralValue):
        self.value = value

    def __eq__(self, other):
        # keep True and 1.0 apart
        if not isinstance(other, Literal):
            return False
        return type(self.value) is type(other.value) and self.value == other.value


class Logical(Expr):
    """Logical expression"""
    def __init__(self, left:Expr, operator:Token, right:Expr):
        self.left = left
        self.operator = operator
        self.right = right


class Unary(Expr):
    """Unary expression"""
    def __init__(self, operator:Token, right:Expr):
        self.operator = operator
        self.right = right


class Variable(Expr):
    """Variable expression"""
    def __init__(self, name:Token):
        self.name = name


class Block(Stmt):
    """Block statement"""
    def __init__(self, statements:typing.List[Stmt]):
        self.statements = statements


class Function(Stmt):
    """Function statement"""
    def __init__(self, name:Token, params:typing.List[Token], body:typing.List[Stmt]):
        self.name = name
        self.params = params
        self.body = body


class Expression(Stmt):
    """Expression statement"""
    def __init__(self, expression:Expr):
        self.expression = expression


class If(Stmt):
    """If statement"""
    def __init__(self, condition:Expr, then_branch:Stmt, else_branch:typing.Optional[Stmt]):
        self.condition = condition
        self.then_branch = then_branch
        self.else_branch = else_branch


class Print(Stmt):
    """Print statement"""
    def __init__(self, expression:Expr):
        self.expression = expression


class Return(Stmt):
    """Return statement"""
    def __init__(self, keyword:Token, value:typing.Optional[Expr]):
        self.keyword = keyword
        self.value = value


class Var(Stmt):
    """Var statement"""
    def __init__(self, name:Token, initializer:typing.Optional[Expr]):
        self.name = name
        self.initializer = initializer


class While(Stmt):
    """While statement"""
    def __init__(self, condition:Expr, body:Stmt):
        self.condition = condition
        self.body = body


class Parser:
    """
    program        → declaration* EOF ;
    declaration    → funDecl | varDecl | statement ;
    funDecl        → "fun" function ;
    function       → IDENTIFIER "(" parameters? ")" block ;
    parameters     → IDENTIFIER ( "," IDENTIFIER )* ;
    varDecl        → "var" IDENTIFIER ( "=" expression )? ";" ;
    statement      → exprStmt | forStmt | ifStmt | printStmt | returnStmt | whileStmt | block ;
    exprStmt       → expression ";" ;
    forStmt        → "for" "(" ( varDecl | exprStmt | ";" ) expression? ";" expression? ")" statement ;
    ifStmt         → "if" "(" expression ")" statement ( "else" statement )? ;
    printStmt      → "print" expression ";" ;
    returnStmt     → "return" expression? ";" ;
    whileStmt      → "while" "(" expression ")" statement ;
    block          → "{" declaration* "}" ;

    expression     → assignment ;
    assignment     → IDENTIFIER "=" assignment | logic_or ;
    logic_or       → logic_and ( "or" logic_and )* ;
    logic_and      → equality ( "and" equality )* ;
    equality       → comparison ( ( "!=" | "==" ) comparison )* ;
    comparison     → term ( ( ">" | ">=" | "<" | "<=" ) term )* ;
    term           → factor ( ( "-" | "+" ) factor )* ;
    factor         → unary ( ( "/" | "*" ) unary )* ;
    unary          → ( "!" | "-" ) unary | call ;
    call           → primary ( "(" arguments? ")" )* ;
    arguments      → expression ( "," expression )* ;
    primary        → NUMBER | STRING | "true" | "false" | "nil" | "(" expression ")" | IDENTIFIER ;
    """
    # pylint: disable=too-many-public-methods
    MAX_ARGUMENTS = 255

    previous = property(lambda self: self.tokens[self.current - 1], doc="return the previous token")
    peek = property(lambda self: self.tokens[self.current], doc="return the current token")
    is_at_end = property(lambda self: self.peek.type == TokenType.EOF, doc="check if we are at the EOF token")

    class ParserError(RoxError):
        """Parser error"""
        def __init__(self, token:Token, msg:str) -> None:
            super().__init__(token.line, msg, token_location(token))
            self.token = token

    def __init__(self, tokens:typing.List[Token]):
        """Parse a token sequence as produced by the Scanner, ending in EOF"""
        self.tokens = tokens
        self.current = 0
        self.errors:typing.List[Parser.ParserError] = []
        self.call_depth = 0

    def parse(self) -> typing.List[Stmt]:
        """main entry point to start the parsing

            Statements that failed to parse are dropped; check `errors` before
            handing the result to an interpreter.
        """
        statements:typing.List[Stmt] = []
        while not self.is_at_end:
            stmt:typing.Optional[Stmt] = self.declaration()
            if stmt is not None:
                statements.append(stmt)
        return statements

    def declaration(self) -> typing.Optional[Stmt]:
        """declaration    → funDecl | varDecl | statement ;"""
        try:
            if self.match(TokenType.FUN): return self.function()
            if self.match(TokenType.VAR): return self.var_declaration()
            return self.statement()
        except self.ParserError as exc:
            self.errors.append(exc)
            self.synchronize()
            return None
        except RecursionError:
            self.errors.append(self.ParserError(self.peek, "Too much nesting."))
            self.synchronize()
            return None

    def function(self) -> Stmt:
        """function       → IDENTIFIER "(" parameters? ")" block ;"""
        name:Token = self.consume(TokenType.IDENTIFIER, "Expect function name.")

        self.consume(TokenType.LEFT_PAREN, "Expect '(' after function name.")
        parameters:typing.List[Token] = []
        if not self.check(TokenType.RIGHT_PAREN):
            parameters.append(self.consume(TokenType.IDENTIFIER, "Expect parameter name."))
            while self.match(TokenType.COMMA):
                if len(parameters) >= self.MAX_ARGUMENTS:
                    self.error(self.peek, f"Can't have more than {self.MAX_ARGUMENTS} parameters.")
                parameters.append(self.consume(TokenType.IDENTIFIER, "Expect parameter name."))
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after parameters.")

        self.consume(TokenType.LEFT_BRACE, "Expect '{' before function body.")
        self.call_depth += 1
        try:
            body:typing.List[Stmt] = self.block()
        finally:
            self.call_depth -= 1
        return Function(name, parameters, body)

    def var_declaration(self) -> Stmt:
        """varDecl        → "var" IDENTIFIER ( "=" expression )? ";" ;"""
        name:Token = self.consume(TokenType.IDENTIFIER, "Expect variable name.")
        initializer:typing.Optional[Expr] = self.expression() if self.match(TokenType.EQUAL) else None
        self.consume(TokenType.SEMICOLON, "Expect ';' after variable declaration.")
        return Var(name, initializer)

    def statement(self) -> Stmt:
        """
            statement      → exprStmt | forStmt | ifStmt | printStmt
                           | returnStmt | whileStmt | block ;
        """
        # pylint: disable=too-many-return-statements
        if self.match(TokenType.FOR): return self.for_statement()
        if self.match(TokenType.IF): return self.if_statement()
        if self.match(TokenType.PRINT): return self.print_statement()
        if self.match(TokenType.RETURN): return self.return_statement()
        if self.match(TokenType.WHILE): return self.while_statement()
        if self.match(TokenType.LEFT_BRACE): return Block(self.block())  # instantiate Block here so as to reuse block() for functions
        return self.expression_statement()

    def return_statement(self) -> Stmt:
        """returnStmt     → "return" expression? ";" ;"""
        keyword:Token = self.previous
        if not self.call_depth:
            self.error(keyword, "Can't return from top-level code.")
        value:typing.Optional[Expr] = None

        if not self.check(TokenType.SEMICOLON):
            value = self.expression()

        self.consume(TokenType.SEMICOLON, "Expect ';' after return value.")
        return Return(keyword, value)

    def block(self) -> typing.List[Stmt]:
        """block          → "{" declaration* "}" ;"""
        statements:typing.List[Stmt] = []

        while not self.check(TokenType.RIGHT_BRACE) and not self.is_at_end:
            stmt = self.declaration()
            if stmt is not None:
                statements.append(stmt)

        self.consume(TokenType.RIGHT_BRACE, "Expect '}' after block.")
        return statements

    def for_statement(self) -> Stmt:
        """forStmt        → "for" "(" ( varDecl | exprStmt | ";" ) expression? ";" expression? ")" statement ;

            Desugared into a while loop, wrapped in a block when there is an initializer.
        """
        self.consume(TokenType.LEFT_PAREN, "Expect '(' after 'for'.")
        initializer:typing.Optional[Stmt] = None
        if self.match(TokenType.SEMICOLON):
            pass
        elif self.match(TokenType.VAR):
            initializer = self.var_declaration()
        else:
            initializer = self.expression_statement()

        condition:typing.Optional[Expr] = None
        if not self.check(TokenType.SEMICOLON):
            condition = self.expression()
        self.consume(TokenType.SEMICOLON, "Expect ';' after loop condition.")

        increment:typing.Optional[Expr] = None
        if not self.check(TokenType.RIGHT_PAREN):
            increment = self.expression()
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after for clauses.")

        body:Stmt = self.statement()

        if increment is not None:
            body = Block([body, Expression(increment)])

        if condition is None:
            condition = Literal(True)

        body = While(condition, body)

        if initializer is not None:
            body = Block([initializer, body])

        return body

    def if_statement(self) -> Stmt:
        """ifStmt         → "if" "(" expression ")" statement ( "else" statement )? ;"""
        self.consume(TokenType.LEFT_PAREN, "Expect '(' after 'if'.")
        condition:Expr = self.expression()
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after if condition.")

        then_branch:Stmt = self.statement()
        else_branch:typing.Optional[Stmt] = None
        if self.match(TokenType.ELSE):
            else_branch = self.statement()
        return If(condition, then_branch, else_branch)

    def while_statement(self) -> Stmt:
        """whileStmt      → "while" "(" expression ")" statement ;"""
        self.consume(TokenType.LEFT_PAREN, "Expect '(' after 'while'.")
        condition:Expr = self.expression()
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after condition.")
        body:Stmt = self.statement()
        return While(condition, body)

    def expression_statement(self) -> Stmt:
        """exprStmt       → expression ";" ;"""
        expr:Expr = self.expression()
        self.consume(TokenType.SEMICOLON, "Expect ';' after expression.")
        return Expression(expr)

    def print_statement(self) -> Stmt:
        """printStmt      → "print" expression ";" ;"""
        value:Expr = self.expression()
        self.consume(TokenType.SEMICOLON, "Expect ';' after value.")
        return Print(value)

    def error(self, token:Token, msg:str) -> typing.NoReturn:
        """Error handling"""
        raise self.ParserError(token, msg)

    def advance(self) -> Token:
        """advance to the next token"""
        if not self.is_at_end:
            self.current += 1
        return self.previous

    def check(self, token_type:TokenType) -> bool:
        """check the current token for a given TokenType"""
        if self.is_at_end: return False
        return self.peek.type == token_type

    def match(self, *types:TokenType) -> bool:
        """Match the current token for a list of TokenTypes"""
        for t in types:
            if self.check(t):
                self.advance()
                return True
        return False

    def expression(self) -> Expr:
        """expression     → assignment ;"""
        return self.assignment()

    def assignment(self) -> Expr:
        """
            assignment     → IDENTIFIER "=" assignment
                           | logic_or ;
        """
        expr:Expr = self.logic_or()

        if self.match(TokenType.EQUAL):
            equals:Token = self.previous
            value:Expr = self.assignment()

            if isinstance(expr, Variable):
                return Assign(expr.name, value)

            self.error(equals, "Invalid assignment target.")

        return expr

    def logic_or(self) -> Expr:
        """logic_or       → logic_and ( "or" logic_and )* ;"""
        expr:Expr = self.logic_and()
        while self.match(TokenType.OR):
            operator:Token = self.previous
            right:Expr = self.logic_and()
            expr = Logical(expr, operator, right)
        return expr

    def logic_and(self) -> Expr:
        """logic_and      → equality ( "and" equality )* ;"""
        expr:Expr = self.equality()
        while self.match(TokenType.AND):
            operator:Token = self.previous
            right:Expr = self.equality()
            expr = Logical(expr, operator, right)
        return expr

    def equality(self) -> Expr:
        """equality       → comparison ( ( "!=" | "==" ) comparison )* ;"""
        expr:Expr = self.comparison()

        while self.match(TokenType.BANG_EQUAL, TokenType.EQUAL_EQUAL):
            operator:Token = self.previous
            right:Expr = self.comparison()
            expr = Binary(expr, operator, right)

        return expr

    def comparison(self) -> Expr:
        """comparison     → term ( ( ">" | ">=" | "<" | "<=" ) term )* ;"""
        expr:Expr = self.term()

        while self.match(TokenType.GREATER, TokenType.GREATER_EQUAL, TokenType.LESS, TokenType.LESS_EQUAL):
            operator:Token = self.previous
            right:Expr = self.term()
            expr = Binary(expr, operator, right)

        return expr

    def term(self) -> Expr:
        """term           → factor ( ( "-" | "+" ) factor )* ;"""
        expr:Expr = self.factor()

        while self.match(TokenType.MINUS, TokenType.PLUS):
            operator:Token = self.previous
            right:Expr = self.factor()
            expr = Binary(expr, operator, right)

        return expr

    def factor(self) -> Expr:
        """factor         → unary ( ( "/" | "*" ) unary )* ;"""
        expr:Expr = self.unary()

        while self.match(TokenType.SLASH, TokenType.STAR):
            operator:Token = self.previous
            right:Expr = self.unary()
            expr = Binary(expr, operator, right)

        return expr

    def unary(self) -> Expr:
        """unary          → ( "!" | "-" ) unary | call ;"""
        if self.match(TokenType.BANG, TokenType.MINUS):
            operator:Token = self.previous
            right:Expr = self.unary()
            return Unary(operator, right)
        return self.call()

    def call(self) -> Expr:
        """call           → primary ( "(" arguments? ")" )* ;"""
        expr:Expr = self.primary()
        while self.match(TokenType.LEFT_PAREN):
            expr = self.finish_call(expr)
        return expr

    def finish_call(self, callee:Expr) -> Expr:
        """arguments      → expression ( "," expression )* ;"""
        arguments:typing.List[Expr] = []
        if not self.check(TokenType.RIGHT_PAREN):
            arguments.append(self.expression())
            while self.match(TokenType.COMMA):
                if len(arguments) >= self.MAX_ARGUMENTS:
                    self.error(self.peek, f"Can't have more than {self.MAX_ARGUMENTS} arguments.")
                arguments.append(self.expression())
        paren:Token = self.consume(TokenType.RIGHT_PAREN, "Expect ')' after arguments.")
        return Call(callee, paren, arguments)

    def primary(self) -> Expr:
        """primary        → NUMBER | STRING | "true" | "false" | "nil"
                          | "(" expression ")" | IDENTIFIER ;
        """
        # pylint: disable=too-many-return-statements
        if self.match(TokenType.FALSE): return Literal(False)
        if self.match(TokenType.TRUE): return Literal(True)
        if self.match(TokenType.NIL): return Literal(None)

        if self.match(TokenType.NUMBER, TokenType.STRING):
            return Literal(self.previous.literal)

        if self.match(TokenType.LEFT_PAREN):
            expr:Expr = self.expression()
            self.consume(TokenType.RIGHT_PAREN, "Expect ')' after expression.")
            return Grouping(expr)

        if self.match(TokenType.IDENTIFIER):
            return Variable(self.previous)

        return self.error(self.peek, "Expect expression.")

    def consume(self, token_type:TokenType, msg:str) -> Token:
        """check for next expected token, raise error msg if not"""
        if self.check(token_type): return self.advance()
        return self.error(self.peek, msg)

    SYNCHRONIZE_TOKEN_TYPES = (
        TokenType.CLASS,
        TokenType.FUN,
        TokenType.VAR,
        TokenType.FOR,
        TokenType.IF,
        TokenType.WHILE,
        TokenType.PRINT,
        TokenType.RETURN
    )

    def synchronize(self) -> None:
        """Discard tokens up to the next statement boundary"""
        self.advance()
        while not self.is_at_end:
            if self.previous.type == TokenType.SEMICOLON: return
            if self.peek.type in self.__class__.SYNCHRONIZE_TOKEN_TYPES: return
            self.advance()


class Environment:
    """Environment to store variables and values"""

    class RuntimeError(RoxError):
        """Runtime error, raised by lookups and by the interpreter"""
        def __init__(self, token:typing.Optional[Token], msg:str) -> None:
            if token is None:
                super().__init__(0, msg)
            else:
                super().__init__(token.line, msg, token_location(token))
            self.token = token

    def __init__(self, enclosing:typing.Optional['Environment'] = None):
        """Optional enclosing environment scope to check on get/assign"""
        self.values:typing.Dict[str, typing.Any] = {}
        self.enclosing = enclosing

    def define(self, name:str, value:typing.Any) -> None:
        """bind a name to a value in this frame, replacing any earlier binding"""
        self.values[name] = value

    def get(self, token:Token) -> typing.Any:
        """return a value by name, searching outward through enclosing frames"""
        environment:typing.Optional[Environment] = self
        while environment is not None:
            if token.lexeme in environment.values:
                return environment.values[token.lexeme]
            environment = environment.enclosing
        raise self.RuntimeError(token, f"Undefined variable '{token.lexeme}'.")

    def assign(self, token:Token, value:typing.Any) -> None:
        """Assign a value in the nearest frame that defines the name"""
        environment:typing.Optional[Environment] = self
        while environment is not None:
            if token.lexeme in environment.values:
                environment.values[token.lexeme] = value
                return
            environment = environment.enclosing
        raise self.RuntimeError(token, f"Undefined variable '{token.lexeme}'.")

    def __repr__(self):
        return str(self.values)


EPSILON = sys.float_info.epsilon


def is_truthy(value:typing.Any) -> bool:
    """nil and false are falsy, everything else is truthy"""
    if value is None: return False
    if isinstance(value, bool): return value
    return True


def is_equal(left:typing.Any, right:typing.Any) -> bool:
    """nil-aware, same-variant equality with a tolerance for numbers"""
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, float) and isinstance(right, float):
        return left == right or abs(left - right) < EPSILON
    if type(left) is not type(right):
        return False
    return left == right


def first_token(node:typing.Union[Expr, Stmt]) -> typing.Optional[Token]:
    """first token found under a node, breadth first"""
    pending:typing.List[typing.Any] = [node]
    while pending:
        item = pending.pop(0)
        if isinstance(item, Token): return item
        if isinstance(item, (Expr, Stmt)): pending.extend(item.__dict__.values())
        elif isinstance(item, list): pending.extend(item)
    return None


def stringify(value:typing.Any) -> str:
    """display form of a runtime value"""
    if value is None: return "nil"
    if isinstance(value, bool): return "true" if value else "false"
    if isinstance(value, float):
        text = repr(value)
        return text[:-2] if text.endswith(".0") else text
    return str(value)


def describe(value:typing.Any) -> str:
    """value as quoted in an error message"""
    if isinstance(value, str): return f'"{value}"'
    return stringify(value)


class Interpreter:
    """Interpreter"""

    RuntimeError = Environment.RuntimeError
    DEFAULT_MAX_CALL_DEPTH = 128
    FRAMES_PER_CALL = 32

    class ReturnException(Exception):
        """Return statement value that breaks evaluation of a function"""
        def __init__(self, value):
            super().__init__(self.__class__.__name__)
            self.value = value

    class Callable:
        """Native callable"""
        def __init__(self, name:str, arity:int, func:typing.Optional[typing.Callable]):
            self.name = name
            self.arity = arity
            self.func = func

        def call(self, interpreter:'Interpreter', arguments:typing.List[typing.Any]) -> typing.Any:
            """run the host routine"""
            return self.func(interpreter, *arguments)

        def __str__(self):
            return f"<native fn {self.name}>"

    class Function(Callable):
        """User function closing over its defining environment"""
        def __init__(self, declaration:Function, closure:Environment):
            super().__init__(name=declaration.name.lexeme, arity=len(declaration.params), func=None)
            self.declaration = declaration
            self.closure:Environment = closure

        def call(self, interpreter:'Interpreter', arguments:typing.List[typing.Any]) -> typing.Any:
            environment = Environment(self.closure)
            for param, argument in zip(self.declaration.params, arguments):
                environment.define(param.lexeme, argument)
            try:
                interpreter.execute_block(self.declaration.body, environment)
            except Interpreter.ReturnException as exc:
                return exc.value
            return None

        def __str__(self):
            return f"<fn {self.name}>"

    def __init__(self, out:typing.Optional[typing.TextIO] = None, max_call_depth:int = DEFAULT_MAX_CALL_DEPTH) -> None:
        """out defaults to whatever sys.stdout is at print time"""
        self.out = out
        self.max_call_depth = max_call_depth
        self.call_depth = 0
        self.globals = Environment()
        self.environment = self.globals
        self.has_errors = False

        # builtins/ffi
        self.globals.define("clock", self.Callable("clock", arity=0, func=lambda _: float(time.time_ns() // 1_000_000)))

    def interpret(self, statements:typing.List[Stmt]) -> typing.Optional[Environment.RuntimeError]:
        """Execute top-level statements, stopping at the first runtime error, which is returned"""
        self.has_errors = False
        limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(limit, limit + self.max_call_depth * self.FRAMES_PER_CALL))
        try:
            for statement in statements:
                try:
                    self.eval(statement)
                except RecursionError as exc:
                    raise self.RuntimeError(first_token(statement), "Stack overflow.") from exc
        except self.RuntimeError as exc:
            self.has_errors = True
            return exc
        finally:
            sys.setrecursionlimit(limit)
            self.environment = self.globals
            self.call_depth = 0
        return None

    def eval(self, expression:typing.Union[Expr, Stmt]) -> typing.Any:  # noqa:C901 # too-complex
        """eval an expression or statement"""
        # pylint: disable=too-many-return-statements,too-many-branches
        if isinstance(expression, Literal):
            return expression.value
        if isinstance(expression, Grouping):
            return self.eval(expression.expression)
        if isinstance(expression, Unary):
            return self._eval_unary(expression)
        if isinstance(expression, Variable):
            return self.environment.get(expression.name)
        if isinstance(expression, Assign):
            value = self.eval(expression.value)
            self.environment.assign(expression.name, value)
            return value
        if isinstance(expression, Logical):
            return self._eval_logical(expression)
        if isinstance(expression, Binary):
            return self._eval_binary(expression)
        if isinstance(expression, Call):
            return self._eval_call(expression)
        if isinstance(expression, Stmt):
            return self._eval_statement(expression)

        raise TypeError(f"Cannot evaluate {expression!r}")

    def _eval_unary(self, expr:Unary) -> typing.Any:
        """evaluate a unary expression"""
        right = self.eval(expr.right)
        if expr.operator.type == TokenType.MINUS:
            self.check_numbers(expr.operator, right)
            return -right
        return not is_truthy(right)

    def _eval_call(self, expr:Call) -> typing.Any:
        """evaluate a call expression"""
        function = self.eval(expr.callee)

        arguments:typing.List[typing.Any] = []
        for argument in expr.arguments:
            arguments.append(self.eval(argument))

        if not isinstance(function, self.Callable):
            raise self.RuntimeError(expr.paren, f"Can only call functions, got {describe(function)}.")

        if function.arity != len(arguments):
            raise self.RuntimeError(expr.paren, f"Expected {function.arity} arguments but got {len(arguments)}.")

        if self.call_depth >= self.max_call_depth:
            raise self.RuntimeError(expr.paren, "Stack overflow.")

        self.call_depth += 1
        try:
            return function.call(self, arguments)
        except RecursionError as exc:
            raise self.RuntimeError(expr.paren, "Stack overflow.") from exc
        finally:
            self.call_depth -= 1

    def _eval_logical(self, expression:Logical) -> typing.Any:
        """evaluate a logical expression"""
        left = self.eval(expression.left)
        if expression.operator.type == TokenType.OR:
            if is_truthy(left): return left
        elif not is_truthy(left):
            return left
        return self.eval(expression.right)

    def _eval_binary(self, expression:Binary) -> typing.Any:  # noqa:C901 # too-complex
        """evaluate a binary expression"""
        # pylint: disable=too-many-return-statements,too-many-branches
        left = self.eval(expression.left)
        right = self.eval(expression.right)
        operator:Token = expression.operator
        if operator.type == TokenType.BANG_EQUAL:
            return not is_equal(left, right)
        if operator.type == TokenType.EQUAL_EQUAL:
            return is_equal(left, right)
        if operator.type == TokenType.PLUS:
            if isinstance(left, float) and isinstance(right, float):
                return left + right
            if isinstance(left, str) and isinstance(right, str):
                return left + right
            raise self.RuntimeError(operator, f"Operands must be two numbers or two strings, got {describe(left)} and {describe(right)}.")

        self.check_numbers(operator, left, right)
        if operator.type == TokenType.GREATER: return left > right
        if operator.type == TokenType.GREATER_EQUAL: return left >= right
        if operator.type == TokenType.LESS: return left < right
        if operator.type == TokenType.LESS_EQUAL: return left <= right
        if operator.type == TokenType.MINUS: return left - right
        if operator.type == TokenType.STAR: return left * right
        if operator.type == TokenType.SLASH:
            if right == 0:
                if left == 0 or math.isnan(left): return math.nan
                return math.copysign(math.inf, left) * math.copysign(1.0, right)
            return left / right

        raise self.RuntimeError(operator, f"Unknown binary operator {operator.lexeme}.")

    def _eval_statement(self, stmt:Stmt) -> None:  # noqa:C901 # too-complex
        """evaluate a statement"""
        # pylint: disable=too-many-branches
        if isinstance(stmt, Expression):
            self.eval(stmt.expression)
        elif isinstance(stmt, Print):
            print(stringify(self.eval(stmt.expression)), file=self.out or sys.stdout)
        elif isinstance(stmt, Var):
            value = self.eval(stmt.initializer) if stmt.initializer is not None else None
            self.environment.define(stmt.name.lexeme, value)
        elif isinstance(stmt, Block):
            self.execute_block(stmt.statements, Environment(self.environment))
        elif isinstance(stmt, If):
            if is_truthy(self.eval(stmt.condition)):
                self.eval(stmt.then_branch)
            elif stmt.else_branch is not None:
                self.eval(stmt.else_branch)
        elif isinstance(stmt, While):
            while is_truthy(self.eval(stmt.condition)):
                self.eval(stmt.body)
        elif isinstance(stmt, Function):
            function = self.Function(stmt, self.environment)
            self.environment.define(stmt.name.lexeme, function)
        elif isinstance(stmt, Return):
            value:typing.Any = None
            if stmt.value is not None:
                value = self.eval(stmt.value)
            raise self.ReturnException(value)
        else:
            raise TypeError(f"Cannot execute {stmt!r}")

    def execute_block(self, statements:typing.List[Stmt], environment:Environment) -> None:
        """execute a block of statements"""
        previous:Environment = self.environment
        try:
            self.environment = environment
            for stmt in statements:
                self.eval(stmt)
        finally:
            self.environment = previous

    @classmethod
    def check_numbers(cls, token:Token, *values:typing.Any) -> None:
        """check if values are numeric"""
        if all(isinstance(_, float) for _ in values):
            return
        if len(values) == 1:
            raise cls.RuntimeError(token, f"Operand must be a number, got {describe(values[0])}.")
        raise cls.RuntimeError(token, f"Operands must be numbers, got {', '.join(describe(_) for _ in values[:-1])} and {describe(values[-1])}.")


class Result:
    """Structured outcome of running source through the pipeline"""
    SUCCESS = 0
    COMPILE_ERROR = 65
    RUNTIME_ERROR = 70

    def __init__(self, errors:typing.Optional[typing.List[RoxError]] = None) -> None:
        self.errors:typing.List[RoxError] = list(errors or [])

    status = property(lambda self: 'error' if self.errors else 'success')
    has_runtime_error = property(lambda self: any(isinstance(_, Environment.RuntimeError) for _ in self.errors))

    @property
    def exit_code(self) -> int:
        """process exit status for this result"""
        if not self.errors: return self.SUCCESS
        if self.has_runtime_error: return self.RUNTIME_ERROR
        return self.COMPILE_ERROR

    def reports(self) -> typing.List[str]:
        """one diagnostic line per error"""
        return [_.report() for _ in self.errors]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.errors!r})"


class Rox:
    """Runs source text through Scanner, Parser and Interpreter

        The interpreter, and so the global environment, is kept across calls to run().
    """

    def __init__(self, out:typing.Optional[typing.TextIO] = None, err:typing.Optional[typing.TextIO] = None,
                 max_call_depth:int = Interpreter.DEFAULT_MAX_CALL_DEPTH) -> None:
        self.interpreter = Interpreter(out=out, max_call_depth=max_call_depth)
        self.err = err

    def run(self, source:str) -> Result:
        """scan, parse and, when both are clean, interpret"""
        scanner = Scanner(source)
        parser = Parser(scanner.tokens)
        statements = parser.parse()

        errors:typing.List[RoxError] = [*scanner.errors, *parser.errors]
        if errors:
            return Result(errors)

        error = self.interpreter.interpret(statements)
        return Result([error] if error is not None else [])

    def report(self, result:Result) -> None:
        """write the diagnostics of a result"""
        for line in result.reports():
            print(line, file=self.err or sys.stderr)

    def run_file(self, path:str) -> int:
        """run a script file, report diagnostics, return the exit status"""
        with open(path, encoding="utf-8") as fp:
            source = fp.read()
        result = self.run(source)
        self.report(result)
        return result.exit_code


EXIT_USAGE = 64
EXIT_NO_INPUT = 66


def main(argv:typing.Optional[typing.List[str]] = None) -> int:
    """command line entry point"""
    parser = argparse.ArgumentParser(prog="rox", description="Run rox scripts")
    parser.add_argument("script", nargs="?", help="script file to run")
    parser.add_argument("--max-call-depth", type=int, default=Interpreter.DEFAULT_MAX_CALL_DEPTH,
                        help="maximum nesting of function calls before a stack overflow error")
    args = parser.parse_args(argv)

    if args.script is None:
        print("Usage: rox [script]")
        return EXIT_USAGE

    try:
        return Rox(max_call_depth=args.max_call_depth).run_file(args.script)
    except OSError as exc:
        print(f"Error: cannot read {args.script}: {exc.strerror}", file=sys.stderr)
        return EXIT_NO_INPUT


if __name__ == '__main__':
    sys.exit(main())
