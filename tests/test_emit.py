"""Tests for the source emitter."""

from mypl import parse, to_source

SAMPLE = """
type Node
var val: int = 0
var next: Node = nil
end
fun int sum(head: Node)
var total = 0
while head != nil do
total = total + head.val
head = head.next
end
return total
end
fun nil main()
var n = new Node
n.val = neg 3 + 1
if not (n.val < 0) and true then
print("pos")
elseif n.val == 0 then
print('z')
else
end
for i = 1 to 2 do
print(sum(n))
end
end
"""

EXPECTED = """\
type Node
    var val: int = 0
    var next: Node = nil
end

fun int sum(head: Node)
    var total = 0
    while head != nil do
        total = total + head.val
        head = head.next
    end
    return total
end

fun nil main()
    var n = new Node
    n.val = neg 3 + 1
    if not (n.val < 0) and true then
        print("pos")
    elseif n.val == 0 then
        print('z')
    else
    end
    for i = 1 to 2 do
        print(sum(n))
    end
end
"""


def test_emit_formats_program():
    assert to_source(parse(SAMPLE)) == EXPECTED


def test_emit_is_stable():
    once = to_source(parse(SAMPLE))
    assert to_source(parse(once)) == once


def test_emit_empty_program():
    assert to_source(parse("")) == ""


def test_emit_keeps_grouping():
    src = "fun nil main()\n  var x = (1 - 2) - 3\n  var y = 1 - (2 - 3)\nend\n"
    out = to_source(parse(src))
    assert "var x = (1 - 2) - 3" in out
    assert "var y = 1 - (2 - 3)" in out


def test_emit_if_without_else():
    src = "fun nil main()\n  if true then\n    print(1)\n  end\nend\n"
    out = to_source(parse(src))
    assert "else" not in out
