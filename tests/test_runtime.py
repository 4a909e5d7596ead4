"""Interpreter tests that need I/O streams or inspect the run result."""

import io

import pytest

from mypl import MyPLRuntimeError, check, run
from mypl.runtime import RETURN_MARKER, Interpreter, unescape
from mypl.tokens import TK_ID, Token
from mypl.values import NIL, Oid, VInt, VRef, VString


def _run(source: str, stdin: str = "") -> tuple[str, object]:
    out = io.StringIO()
    result = run(source, stdin=io.StringIO(stdin), stdout=out)
    return out.getvalue(), result


def test_read_splits_on_whitespace():
    source = """
fun nil main()
  var a = read()
  var b = read()
  var c = read()
  print(a + "|" + b + "|" + c + "|")
end
"""
    out, _ = _run(source, stdin="  one\ttwo\n\nthree four")
    assert out == "one|two|three|"


def test_read_and_convert():
    source = """
fun nil main()
  var total = 0
  var word = read()
  while length(word) > 0 do
    total = total + stoi(word)
    word = read()
  end
  print(total)
end
"""
    out, _ = _run(source, stdin="1 2 3\n4\n")
    assert out == "10"


def test_run_result_for_plain_main():
    out, result = _run("fun nil main()\n  print(1)\nend\n")
    assert out == "1"
    assert result.exit_code == 0
    assert result.value == NIL


def test_run_result_carries_main_return_value():
    out, result = _run("fun int main()\n  return 4 * 5\nend\n")
    assert out == RETURN_MARKER + "20\n"
    assert result.value == VInt(20)


def test_main_return_is_unescaped():
    out, result = _run('fun string main()\n  return "a\\nb"\nend\n')
    assert out == ">>>a\nb\n"
    assert result.value == VString("a\\nb")


def test_runtime_error_carries_position():
    with pytest.raises(MyPLRuntimeError) as exc:
        _run("fun nil main()\n  var x = 0\n  print(3 / x)\nend\n")
    assert exc.value.line == 3
    assert exc.value.column == 11
    assert exc.value.render().startswith("Runtime error: integer division by zero")


def test_output_before_error_is_kept():
    out = io.StringIO()
    with pytest.raises(MyPLRuntimeError):
        run(
            'fun nil main()\n  print("kept")\n  print(get(9, "x"))\nend\n',
            stdin=io.StringIO(""),
            stdout=out,
        )
    assert out.getvalue() == "kept"


def test_deep_recursion_within_limits():
    source = """
fun int sum(n: int)
  if n == 0 then
    return 0
  end
  return n + sum(n - 1)
end
fun nil main()
  print(sum(50))
end
"""
    out, _ = _run(source)
    assert out == "1275"


def test_unescape():
    assert unescape("a\\tb\\nc") == "a\tb\nc"
    assert unescape("plain") == "plain"


def test_environment_stack_is_empty_after_run():
    interp = Interpreter(stdin=io.StringIO(""), stdout=io.StringIO())
    interp.run(check("fun nil main()\n  var x = 1\n  if x > 0 then\n    print(x)\n  end\nend\n"))
    assert interp.symtab.depth() == 0


def test_reference_outside_heap_is_rejected():
    interp = Interpreter(stdin=io.StringIO(""), stdout=io.StringIO())
    tok = Token(TK_ID, "x", 1, 1)
    with pytest.raises(MyPLRuntimeError, match="dangling reference"):
        interp.deref(VRef(Oid(3), "Box"), tok)


def test_recursion_error_becomes_runtime_error():
    source = """
fun int down(n: int)
  return down(n - 1)
end
fun nil main()
  print(down(0))
end
"""
    with pytest.raises(MyPLRuntimeError, match="maximum recursion depth exceeded"):
        _run(source)
