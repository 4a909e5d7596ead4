"""Test runner for MyPL phase cases (lexer, parser, checker, runtime)."""

import io
import signal
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import pytest

from mypl import MyPLError, check as mypl_check, parse as mypl_parse
from mypl.runtime import run as mypl_run
from mypl.tokens import Token, tokenize

PHASE_TIMEOUT = 5
TESTS_DIR = Path(__file__).parent

TESTS = {
    "mypl_lex": {"dir": "lexer", "run": "phase"},
    "mypl_parse": {"dir": "parser", "run": "phase"},
    "mypl_check": {"dir": "checker", "run": "phase"},
    "mypl_run": {"dir": "runtime", "run": "phase"},
}


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------


def _timeout_handler(signum, frame):
    raise TimeoutError("phase timed out")


signal.signal(signal.SIGALRM, _timeout_handler)


# ---------------------------------------------------------------------------
# Case file parsing
# ---------------------------------------------------------------------------


def parse_case_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, input, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            test_input = "\n".join(input_lines)
            expected = "\n".join(expected_lines).strip()
            result.append((test_name, test_input, expected))
        else:
            i += 1
    return result


def discover_cases(test_dir: Path) -> list[tuple[str, str, str]]:
    """Glob *.tests in test_dir, return (test_id, input, expected) tuples."""
    results = []
    for test_file in sorted(test_dir.glob("*.tests")):
        for name, input_code, expected in parse_case_file(test_file):
            results.append((f"{test_file.stem}/{name}", input_code, expected))
    return results


# ---------------------------------------------------------------------------
# Phase result + assertion checker
# ---------------------------------------------------------------------------


@dataclass
class PhaseResult:
    errors: list[str] = field(default_factory=list)
    data: dict | None = None
    output: str = ""


def summarize(node: object) -> object:
    """Reduce an AST (or token) to nested dicts/lists of plain values."""
    if isinstance(node, Token):
        return node.lexeme
    if isinstance(node, list):
        return [summarize(n) for n in node]
    if is_dataclass(node) and not isinstance(node, type):
        data: dict[str, object] = {"kind": type(node).__name__}
        for f in fields(node):
            if f.name == "inferred":
                continue
            data[f.name] = summarize(getattr(node, f.name))
        return data
    return node


def resolve_dotpath(obj: object, path: str) -> object:
    """Resolve a dot-separated path against a nested dict/list structure."""
    current = obj
    for part in path.split("."):
        if part == "length":
            return len(current)
        if isinstance(current, list):
            current = current[int(part)]
        elif isinstance(current, dict):
            current = current[part]
        else:
            raise KeyError(
                f"cannot traverse {type(current).__name__} with key {part!r}"
            )
    return current


def to_comparable(value: object) -> str:
    """Convert a value to its string form for comparison."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value
    return str(value)


def check_expected(expected: str, result: PhaseResult, phase: str) -> None:
    if expected == "ok":
        if result.errors:
            pytest.fail(f"Expected ok, got error: {result.errors[0]}")
        return
    if expected.startswith("error:"):
        expected_msg = expected[6:].strip()
        if not result.errors:
            pytest.fail(f"Expected error containing '{expected_msg}', got ok")
        found = any(expected_msg.lower() in e.lower() for e in result.errors)
        if not found:
            pytest.fail(
                f"Expected error containing '{expected_msg}', got: {result.errors}"
            )
        return
    if result.errors:
        pytest.fail(f"{phase} failed: {result.errors[0]}")
    if result.data is None:
        # Program output comparison
        assert result.output.strip() == expected, (
            f"{phase} output mismatch\n"
            f"  expected: {expected!r}\n"
            f"  actual:   {result.output.strip()!r}"
        )
        return
    # Dotpath assertions
    for line in expected.split("\n"):
        line = line.strip()
        if not line:
            continue
        if "=" not in line:
            pytest.fail(f"Bad assertion (no '='): {line}")
        path, expected_val = line.split("=", 1)
        path = path.strip()
        expected_val = expected_val.strip()
        try:
            actual = resolve_dotpath(result.data, path)
        except (KeyError, IndexError, TypeError) as e:
            pytest.fail(f"Path '{path}' not found in result: {e}")
        actual_str = to_comparable(actual)
        if actual_str != expected_val:
            pytest.fail(
                f"Assertion failed: {path}\n"
                f"  expected: {expected_val!r}\n"
                f"  actual:   {actual_str!r}"
            )


# ---------------------------------------------------------------------------
# Phase runners
# ---------------------------------------------------------------------------


def run_mypl_lex(source: str) -> PhaseResult:
    try:
        signal.alarm(PHASE_TIMEOUT)
        tokens = tokenize(source)
        return PhaseResult(
            data={
                "kinds": " ".join(t.kind for t in tokens),
                "tokens": [
                    {"kind": t.kind, "lexeme": t.lexeme, "line": t.line, "column": t.column}
                    for t in tokens
                ],
            }
        )
    except MyPLError as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)


def run_mypl_parse(source: str) -> PhaseResult:
    try:
        signal.alarm(PHASE_TIMEOUT)
        program = mypl_parse(source)
        data = summarize(program)
        assert isinstance(data, dict)
        return PhaseResult(data=data)
    except MyPLError as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)


def run_mypl_check(source: str) -> PhaseResult:
    try:
        signal.alarm(PHASE_TIMEOUT)
        mypl_check(source)
        return PhaseResult()
    except MyPLError as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)


def run_mypl_run(source: str) -> PhaseResult:
    out = io.StringIO()
    try:
        signal.alarm(PHASE_TIMEOUT)
        mypl_run(mypl_check(source), stdin=io.StringIO(""), stdout=out)
        return PhaseResult(output=out.getvalue())
    except MyPLError as e:
        return PhaseResult(errors=[str(e)], output=out.getvalue())
    finally:
        signal.alarm(0)




# ---------------------------------------------------------------------------
# Parametrization
# ---------------------------------------------------------------------------


def pytest_generate_tests(metafunc):
    for name, cfg in TESTS.items():
        test_dir = TESTS_DIR / cfg["dir"]
        if cfg["run"] == "phase":
            fixture = f"{name}_input"
            if fixture in metafunc.fixturenames:
                cases = discover_cases(test_dir)
                params = [pytest.param(inp, exp, id=tid) for tid, inp, exp in cases]
                metafunc.parametrize(f"{fixture},{name}_expected", params)


# ---------------------------------------------------------------------------
# Test functions
# ---------------------------------------------------------------------------


def test_mypl_lex(mypl_lex_input, mypl_lex_expected):
    check_expected(mypl_lex_expected, run_mypl_lex(mypl_lex_input), "mypl_lex")


def test_mypl_parse(mypl_parse_input, mypl_parse_expected):
    check_expected(mypl_parse_expected, run_mypl_parse(mypl_parse_input), "mypl_parse")


def test_mypl_check(mypl_check_input, mypl_check_expected):
    check_expected(mypl_check_expected, run_mypl_check(mypl_check_input), "mypl_check")


def test_mypl_run(mypl_run_input, mypl_run_expected):
    check_expected(mypl_run_expected, run_mypl_run(mypl_run_input), "mypl_run")
