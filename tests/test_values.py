"""Unit tests for runtime values and the heap."""

import math

from mypl.values import NIL, Heap, VBool, VChar, VDouble, VInt, VRef, VString


def test_scalar_rendering():
    assert VBool(True).to_string() == "true"
    assert VBool(False).to_string() == "false"
    assert VInt(-12).to_string() == "-12"
    assert VDouble(2.0).to_string() == "2.0"
    assert VDouble(math.inf).to_string() == "inf"
    assert VChar("q").to_string() == "q"
    assert VString("a b").to_string() == "a b"
    assert NIL.to_string() == "nil"


def test_type_names():
    assert VInt(1).type_name() == "int"
    assert VDouble(1.0).type_name() == "double"
    assert VString("").type_name() == "string"
    assert NIL.type_name() == "nil"
    assert VRef(0, "Node").type_name() == "Node"


def test_equality_is_by_type_and_value():
    assert VInt(1) == VInt(1)
    assert VInt(1) != VDouble(1.0)
    assert VChar("a") != VString("a")
    assert NIL == NIL
    assert VInt(0) != NIL


def test_heap_allocates_distinct_objects():
    heap = Heap()
    a = heap.allocate("Node")
    b = heap.allocate("Node")
    assert a != b
    assert len(heap) == 2
    assert a in heap
    assert 5 not in heap


def test_heap_objects_hold_attributes():
    heap = Heap()
    oid = heap.allocate("Point")
    obj = heap.get_obj(oid)
    assert obj.udt == "Point"
    assert not obj.has_att("x")
    obj.set_att("x", VInt(3))
    assert heap.get_obj(oid).get_val("x") == VInt(3)


def test_references_alias_one_object():
    heap = Heap()
    oid = heap.allocate("Box")
    first = VRef(oid, "Box")
    second = VRef(oid, "Box")
    heap.get_obj(first.oid).set_att("v", VInt(1))
    assert heap.get_obj(second.oid).get_val("v") == VInt(1)
    assert first == second
    assert first.to_string() == "Box@0"
