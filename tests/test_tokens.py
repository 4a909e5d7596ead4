"""Unit tests for the lexer beyond the phase specs."""

import pytest

from mypl.errors import LexerError
from mypl.tokens import TK_EOS, TK_ID, TK_INT_VAL, Lexer, tokenize


def test_eos_repeats_after_end():
    lexer = Lexer("x")
    assert lexer.next_token().kind == TK_ID
    assert lexer.next_token().kind == TK_EOS
    assert lexer.next_token().kind == TK_EOS


def test_tokenize_ends_with_single_eos():
    tokens = tokenize("a 1")
    assert [t.kind for t in tokens] == [TK_ID, TK_INT_VAL, TK_EOS]


def test_tokens_are_lazy():
    # The error sits after the first token and is not hit until requested
    lexer = Lexer("ok @")
    assert lexer.next_token().lexeme == "ok"
    with pytest.raises(LexerError) as exc:
        lexer.next_token()
    assert exc.value.line == 1
    assert exc.value.column == 4


def test_error_render():
    with pytest.raises(LexerError) as exc:
        tokenize("\n  !x")
    assert str(exc.value) == "Lexer error: invalid symbol '!' at line 2 column 3"
