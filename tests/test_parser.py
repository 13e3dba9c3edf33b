import pytest

from rox import (Assign, Binary, Block, Call, Expression, Function, Grouping, If, Literal, Logical, Parser, Print,
                 Return, Scanner, Token, TokenType, Unary, Var, Variable, While)


def parser_for(source):
    return Parser(Scanner(source).tokens)


def ident(name, line=1):
    return Token(TokenType.IDENTIFIER, name, None, line)


def op(token_type, lexeme, line=1):
    return Token(token_type, lexeme, None, line)


PLUS = op(TokenType.PLUS, '+')
MINUS = op(TokenType.MINUS, '-')
STAR = op(TokenType.STAR, '*')
SLASH = op(TokenType.SLASH, '/')


parser_expression_testcases = (
    ('1 + 2 * 3', Binary(Literal(1.0), PLUS, Binary(Literal(2.0), STAR, Literal(3.0)))),
    ('(1 + 2) * 3', Binary(Grouping(Binary(Literal(1.0), PLUS, Literal(2.0))), STAR, Literal(3.0))),
    ('1 - 2 - 3', Binary(Binary(Literal(1.0), MINUS, Literal(2.0)), MINUS, Literal(3.0))),
    ('1<6>3', Binary(Binary(Literal(1.0), op(TokenType.LESS, '<'), Literal(6.0)), op(TokenType.GREATER, '>'), Literal(3.0))),
    ('!1', Unary(op(TokenType.BANG, '!'), Literal(1.0))),
    ('-11000', Unary(MINUS, Literal(11000.0))),
    ('--1', Unary(MINUS, Unary(MINUS, Literal(1.0)))),
    ('10*100/(1000*200)', Binary(Binary(Literal(10.0), STAR, Literal(100.0)), SLASH, Grouping(Binary(Literal(1000.0), STAR, Literal(200.0))))),
    ('true', Literal(True)),
    ('false', Literal(False)),
    ('nil', Literal(None)),
    ('"foo" + "bar"', Binary(Literal('foo'), PLUS, Literal('bar'))),
    ('1 == 0 != true', Binary(Binary(Literal(1.0), op(TokenType.EQUAL_EQUAL, '=='), Literal(0.0)), op(TokenType.BANG_EQUAL, '!='), Literal(True))),
    ('a or b and c', Logical(Variable(ident('a')), op(TokenType.OR, 'or'), Logical(Variable(ident('b')), op(TokenType.AND, 'and'), Variable(ident('c'))))),
    ('a = b = 1', Assign(ident('a'), Assign(ident('b'), Literal(1.0)))),
    ('foo(a, b)', Call(Variable(ident('foo')), op(TokenType.RIGHT_PAREN, ')'), [Variable(ident('a')), Variable(ident('b'))])),
    ('f()()', Call(Call(Variable(ident('f')), op(TokenType.RIGHT_PAREN, ')'), []), op(TokenType.RIGHT_PAREN, ')'), [])),
)


@pytest.mark.parametrize("source, expected", parser_expression_testcases)
def test_parse_expression(source, expected):
    assert parser_for(source).expression() == expected


def test_precedence_is_not_left_to_right():
    wrong = Binary(Grouping(Binary(Literal(1.0), PLUS, Literal(2.0))), STAR, Literal(3.0))
    assert parser_for('1 + 2 * 3').expression() != wrong


parser_statement_testcases = (
    ('print "Hello, world!";', [Print(Literal('Hello, world!'))]),
    ('var foo;', [Var(ident('foo'), None)]),
    ('var foo = "bar";', [Var(ident('foo'), Literal('bar'))]),
    ('foo;', [Expression(Variable(ident('foo')))]),
    ('{ var a; a = 2; }', [Block([Var(ident('a'), None), Expression(Assign(ident('a'), Literal(2.0)))])]),
    ('if (a) print 1; else print 2;', [If(Variable(ident('a')), Print(Literal(1.0)), Print(Literal(2.0)))]),
    ('if (a) if (b) print 1; else print 2;', [If(Variable(ident('a')), If(Variable(ident('b')), Print(Literal(1.0)), Print(Literal(2.0))), None)]),
    ('while (a) a = nil;', [While(Variable(ident('a')), Expression(Assign(ident('a'), Literal(None))))]),
    ('fun sum(a, b) { return a + b; }', [Function(ident('sum'), [ident('a'), ident('b')], [Return(op(TokenType.RETURN, 'return'), Binary(Variable(ident('a')), PLUS, Variable(ident('b'))))])]),
    ('fun noop() { return; }', [Function(ident('noop'), [], [Return(op(TokenType.RETURN, 'return'), None)])]),
)


@pytest.mark.parametrize("source, expected", parser_statement_testcases)
def test_parse_statements(source, expected):
    p = parser_for(source)
    assert p.parse() == expected
    assert not p.errors


def test_for_is_desugared_into_a_while_loop():
    p = parser_for('for (var i = 0; i < 3; i = i + 1) print i;')
    assert p.parse() == [
        Block([
            Var(ident('i'), Literal(0.0)),
            While(
                Binary(Variable(ident('i')), op(TokenType.LESS, '<'), Literal(3.0)),
                Block([
                    Print(Variable(ident('i'))),
                    Expression(Assign(ident('i'), Binary(Variable(ident('i')), PLUS, Literal(1.0)))),
                ]),
            ),
        ])
    ]


def test_for_without_clauses_loops_on_true():
    assert parser_for('for (;;) print 1;').parse() == [While(Literal(True), Print(Literal(1.0)))]


parser_error_testcases = (
    ('1 + 2 = 3;', "[line 1] Error at '=': Invalid assignment target."),
    ('(a) = 3;', "[line 1] Error at '=': Invalid assignment target."),
    ('print 1', "[line 1] Error at end: Expect ';' after value."),
    ('var 1 = 2;', "[line 1] Error at '1': Expect variable name."),
    ('print (1;', "[line 1] Error at ';': Expect ')' after expression."),
    ('return 1;', "[line 1] Error at 'return': Can't return from top-level code."),
    ('class Foo {}', "[line 1] Error at 'class': Expect expression."),
    ('{ print 1;', "[line 1] Error at end: Expect '}' after block."),
    ('fun (a) {}', "[line 1] Error at '(': Expect function name."),
)


@pytest.mark.parametrize("source, report", parser_error_testcases)
def test_parse_errors(source, report):
    p = parser_for(source)
    p.parse()
    assert p.errors
    assert p.errors[0].report() == report


def test_parser_synchronizes_and_reports_every_error():
    p = parser_for('var = 1;\nprint 2;\nprint ;\nvar ok = 3;')
    statements = p.parse()
    assert [_.line for _ in p.errors] == [1, 3]
    assert statements == [Print(Literal(2.0)), Var(ident('ok', 4), Literal(3.0))]


def test_error_inside_block_keeps_remaining_statements():
    p = parser_for('{ print ; print 1; }')
    statements = p.parse()
    assert len(p.errors) == 1
    assert statements == [Block([Print(Literal(1.0))])]


def test_parameter_limit():
    params = ', '.join(f'p{_}' for _ in range(256))
    p = parser_for(f'fun f({params}) {{}}')
    p.parse()
    assert p.errors[0].message == "Can't have more than 255 parameters."
    assert p.errors[0].token.lexeme == 'p255'


def test_parameter_limit_allows_exactly_255():
    params = ', '.join(f'p{_}' for _ in range(255))
    p = parser_for(f'fun f({params}) {{}}')
    statements = p.parse()
    assert not p.errors
    assert len(statements[0].params) == 255


def test_argument_limit():
    p = parser_for('foo(' + ", ".join(f'variable{_}' for _ in range(260)) + ');')
    p.parse()
    assert p.errors[0].message == "Can't have more than 255 arguments."
    assert p.errors[0].token.lexeme == 'variable255'


@pytest.mark.parametrize("source", [
    'print ' + '(' * 2000 + '1' + ')' * 2000 + ';',
    'print ' + '-' * 2000 + '1;',
    '{' * 2000 + '}' * 2000,
])
def test_too_much_nesting_is_a_parse_error(source):
    p = parser_for(source + '\nprint "after";')
    p.parse()
    assert p.errors
    assert p.errors[0].message == "Too much nesting."
    assert p.errors[0].line == 1
