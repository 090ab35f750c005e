import pytest
from oxypy.lexer import Lexer, TK, tokenize
from oxypy.errors import LexError, OxySyntaxError


class TestNumbers:
    def test_largest_integer(self):
        tokens = Lexer("9223372036854775807").tokens
        assert tokens[0].value == 9223372036854775807

    def test_integer_out_of_range(self):
        with pytest.raises(LexError) as exc:
            Lexer("x = 9223372036854775808")
        assert exc.value.column == 5

    def test_very_long_integer(self):
        with pytest.raises(LexError):
            Lexer("1" * 5000)

    def test_leading_zeros_within_range(self):
        tokens = Lexer("0" * 30 + "5").tokens
        assert tokens[0].value == 5

    def test_integer(self):
        tokens = Lexer("42").tokens
        assert tokens[0].kind == TK.INT
        assert tokens[0].value == 42

    def test_float(self):
        tokens = Lexer("3.14").tokens
        assert tokens[0].kind == TK.FLOAT
        assert tokens[0].value == 3.14

    def test_lexeme_preserved(self):
        tokens = Lexer("007").tokens
        assert tokens[0].lexeme == "007"
        assert tokens[0].value == 7

    def test_range_is_not_a_float(self):
        kinds = [t.kind for t in Lexer("0..3").tokens]
        assert kinds == [TK.INT, TK.DOTDOT, TK.INT, TK.EOF]

    def test_trailing_dot_is_separate(self):
        kinds = [t.kind for t in Lexer("1.").tokens]
        assert kinds == [TK.INT, TK.DOT, TK.EOF]

    def test_no_scientific_notation(self):
        kinds = [t.kind for t in Lexer("1e5").tokens]
        assert kinds == [TK.INT, TK.NAME, TK.EOF]


class TestStrings:
    def test_double_quoted(self):
        tokens = Lexer('"hello"').tokens
        assert tokens[0].kind == TK.STRING
        assert tokens[0].value == "hello"

    def test_single_quoted(self):
        tokens = Lexer("'hello'").tokens
        assert tokens[0].value == "hello"

    def test_escape_sequences(self):
        tokens = Lexer(r'"hello\nworld"').tokens
        assert tokens[0].value == "hello\nworld"

    def test_escape_tab(self):
        tokens = Lexer(r'"a\tb"').tokens
        assert tokens[0].value == "a\tb"

    def test_escape_backslash(self):
        tokens = Lexer(r'"a\\b"').tokens
        assert tokens[0].value == "a\\b"

    def test_escaped_quote(self):
        tokens = Lexer(r'"say \"hi\""').tokens
        assert tokens[0].value == 'say "hi"'

    def test_unknown_escape_kept(self):
        tokens = Lexer(r'"a\qb"').tokens
        assert tokens[0].value == "a\\qb"

    def test_comment_marker_inside_string(self):
        tokens = Lexer('"http://x"').tokens
        assert tokens[0].value == "http://x"

    def test_unfinished_string(self):
        with pytest.raises(LexError):
            Lexer('"hello')


class TestKeywords:
    @pytest.mark.parametrize("kw,tk", [
        ("let", TK.LET), ("fn", TK.FN), ("class", TK.CLASS),
        ("public", TK.PUBLIC), ("if", TK.IF), ("else", TK.ELSE),
        ("while", TK.WHILE), ("for", TK.FOR), ("in", TK.IN),
        ("return", TK.RETURN), ("true", TK.TRUE), ("false", TK.FALSE),
    ])
    def test_keyword(self, kw, tk):
        tokens = Lexer(kw).tokens
        assert tokens[0].kind == tk

    def test_boolean_values(self):
        tokens = Lexer("true false").tokens
        assert tokens[0].value is True
        assert tokens[1].value is False

    def test_identifier(self):
        tokens = Lexer("myVar").tokens
        assert tokens[0].kind == TK.NAME
        assert tokens[0].lexeme == "myVar"

    def test_identifier_with_underscore(self):
        tokens = Lexer("_private").tokens
        assert tokens[0].kind == TK.NAME

    def test_keyword_prefix_is_identifier(self):
        tokens = Lexer("letter iffy").tokens
        assert [t.kind for t in tokens[:2]] == [TK.NAME, TK.NAME]

    def test_type_names_are_identifiers(self):
        tokens = Lexer("i32 f64 string self").tokens
        assert all(t.kind == TK.NAME for t in tokens[:4])


class TestOperators:
    @pytest.mark.parametrize("op,tk", [
        ("+", TK.PLUS), ("-", TK.MINUS), ("*", TK.STAR),
        ("/", TK.SLASH), ("%", TK.PERCENT), ("!", TK.BANG),
        ("&&", TK.AND), ("||", TK.OR), ("==", TK.EQ), ("!=", TK.NEQ),
        ("<", TK.LT), ("<=", TK.LE), (">", TK.GT), (">=", TK.GE),
        ("=", TK.ASSIGN), ("->", TK.ARROW), ("(", TK.LPAREN),
        (")", TK.RPAREN), ("{", TK.LBRACE), ("}", TK.RBRACE),
        ("[", TK.LBRACKET), ("]", TK.RBRACKET), (";", TK.SEMICOLON),
        (":", TK.COLON), (",", TK.COMMA), (".", TK.DOT), ("..", TK.DOTDOT),
    ])
    def test_operator(self, op, tk):
        tokens = Lexer(op).tokens
        assert tokens[0].kind == tk

    def test_longest_match(self):
        kinds = [t.kind for t in Lexer("a==b=c").tokens]
        assert kinds == [TK.NAME, TK.EQ, TK.NAME, TK.ASSIGN, TK.NAME, TK.EOF]

    def test_lone_ampersand(self):
        with pytest.raises(LexError) as exc:
            Lexer("a & b")
        assert exc.value.char == "&"


class TestComments:
    def test_single_line_comment(self):
        tokens = Lexer("// this is a comment\n42").tokens
        assert tokens[0].kind == TK.INT
        assert tokens[0].value == 42

    def test_trailing_comment(self):
        kinds = [t.kind for t in Lexer("x // note").tokens]
        assert kinds == [TK.NAME, TK.EOF]


class TestPositions:
    def test_line_numbers(self):
        tokens = Lexer("a\nb\nc").tokens
        assert [t.line for t in tokens[:3]] == [1, 2, 3]

    def test_columns(self):
        tokens = Lexer("let x = 10").tokens
        assert [t.column for t in tokens[:4]] == [1, 5, 7, 9]

    def test_position_tuple(self):
        tokens = Lexer("a\n  b").tokens
        assert tokens[1].position == (2, 3)

    def test_error_position(self):
        with pytest.raises(LexError) as exc:
            Lexer("let x = 1\nlet y = @")
        assert exc.value.line == 2
        assert exc.value.column == 9


class TestEdgeCases:
    def test_empty_source(self):
        tokens = Lexer("").tokens
        assert tokens[0].kind == TK.EOF

    def test_whitespace_only(self):
        tokens = Lexer("   \t\n  ").tokens
        assert tokens[0].kind == TK.EOF

    def test_unexpected_char(self):
        with pytest.raises(OxySyntaxError):
            Lexer("@")

    def test_tokenize_is_deterministic(self):
        source = 'class P { public { x: i32 } }\nlet p = P { x: 1 }\nprintln("x" + p.x)'
        assert tokenize(source) == tokenize(source)
