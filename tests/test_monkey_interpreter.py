import sys

import pytest
from monkey.monkey_runtime import ScriptRunner
from monkey.monkey_interpreter import Evaluator, EvaluationFault, is_truthy
from monkey.monkey_parser import parse
from monkey.monkey_datatypes import (
    Integer, String, Array, Hash, Function, BuiltIn, Error,
    NULL, TRUE, FALSE, INT_MIN,
)


def run_monkey(src: str):
    runner = ScriptRunner(persistent=False)
    return runner.handle_script(src)


def assert_ok(res, expected=None):
    assert res.status == 'success', f"expected success, got {res.status}: {res.error_message}"
    if expected is not None:
        assert res.value == expected


def assert_fault(res, fragment):
    assert res.status == 'error'
    assert res.error_message.startswith("EvaluationFault:")
    assert fragment in res.error_message


# --- Arithmetic ---

@pytest.mark.parametrize("source, expected", [
    ("5", 5),
    ("-5", -5),
    ("5 + 5 + 5 + 5 - 10", 10),
    ("2 * (5 + 10)", 30),
    ("-50 + 100 + -50", 0),
    ("(5 + 10 * 2 + 15 / 3) * 2 + -10", 50),
    ("7 / 2", 3),
    ("-7 / 2", -3),
    ("7 / -2", -3),
    ("-7 / -2", 3),
    ("-9223372036854775807 - 1", INT_MIN),
], ids=["literal", "negation", "sum", "grouping", "negatives", "mixed",
        "div", "div_neg_left", "div_neg_right", "div_both_neg", "int_min"])
def test_integer_arithmetic(source, expected):
    assert_ok(run_monkey(source), Integer(expected))


def test_division_by_zero_is_an_error_value():
    assert_ok(run_monkey("1 / 0"), Error("division by zero"))


def test_overflow_is_an_error_value():
    assert_ok(run_monkey("9223372036854775807 + 1"),
              Error("integer overflow: 9223372036854775807 + 1"))
    assert_ok(run_monkey("3037000500 * 3037000500"),
              Error("integer overflow: 3037000500 * 3037000500"))


def test_negating_int_min_overflows():
    res = run_monkey("-(-9223372036854775807 - 1)")
    assert_ok(res)
    assert isinstance(res.value, Error)
    assert res.value.message.startswith("integer overflow")


# --- Booleans and truthiness ---

@pytest.mark.parametrize("source, expected", [
    ("true", TRUE),
    ("1 < 2", TRUE),
    ("1 > 2", FALSE),
    ("1 <= 1", TRUE),
    ("2 >= 3", FALSE),
    ("1 == 1", TRUE),
    ("1 != 1", FALSE),
    ("!true", FALSE),
    ("!false", TRUE),
    ("!5", FALSE),
    ("!0", TRUE),
    ("!!5", TRUE),
    ('!""', FALSE),
    ("![]", FALSE),
], ids=lambda v: v if isinstance(v, str) else None)
def test_boolean_expressions(source, expected):
    assert_ok(run_monkey(source), expected)


def test_is_truthy():
    assert not is_truthy(NULL)
    assert not is_truthy(Integer(0))
    assert not is_truthy(FALSE)
    assert is_truthy(Integer(-1))
    assert is_truthy(String(""))
    assert is_truthy(Array())
    assert is_truthy(Hash())


# --- Conditionals ---

@pytest.mark.parametrize("source, expected", [
    ("if (true) { 10 }", Integer(10)),
    ("if (false) { 10 }", NULL),
    ("if (1) { 10 }", Integer(10)),
    ("if (0) { 10 } else { 20 }", Integer(20)),
    ("if (1 < 2) { 10 } else { 20 }", Integer(10)),
    ('if ("") { 1 } else { 2 }', Integer(1)),
], ids=["true", "false_no_else", "nonzero", "zero", "comparison", "empty_string"])
def test_if_expressions(source, expected):
    assert_ok(run_monkey(source), expected)


def test_if_branches_share_the_enclosing_scope():
    assert_ok(run_monkey("if (true) { let x = 5; }; x"), Integer(5))


def test_if_condition_error_short_circuits():
    assert_ok(run_monkey("if (nope) { 1 } else { 2 }"), Error("identifier not found: nope"))


# --- Return ---

@pytest.mark.parametrize("source, expected", [
    ("return 10;", 10),
    ("return 10; 9;", 10),
    ("9; return 2 * 5; 9;", 10),
    ("if (10 > 1) { if (10 > 1) { return 10; } return 1; }", 10),
    ("if (10 > 1) { if (10 > 1) { return 10; } } return 1;", 10),
    ("let f = fn(x) { return x; x + 10; }; f(10);", 10),
    ("let f = fn(x) { if (x > 1) { return 1; } 2 }; f(5) + f(0)", 3),
], ids=["bare", "stops_program", "middle", "nested_blocks", "nested_blocks_outer_return",
        "function", "function_twice"])
def test_return_statements(source, expected):
    assert_ok(run_monkey(source), Integer(expected))


# --- Let and identifiers ---

def test_let_evaluates_to_bound_value():
    assert_ok(run_monkey("let a = 5;"), Integer(5))
    assert_ok(run_monkey("let a = 5; let b = a * 2; b"), Integer(10))


def test_let_rebinding_overwrites():
    assert_ok(run_monkey("let a = 1; let a = a + 1; a"), Integer(2))


def test_let_with_error_does_not_bind():
    assert_ok(run_monkey("let a = nope; a"), Error("identifier not found: a"))


def test_unknown_identifier():
    assert_ok(run_monkey("foobar"), Error("identifier not found: foobar"))


def test_error_statement_does_not_stop_program():
    assert_ok(run_monkey("foobar; 5"), Integer(5))


# --- Type errors ---

@pytest.mark.parametrize("source, message", [
    ("5 + true;", "Expected number, got Int(5) and Bool(true)"),
    ("true + false", "Expected number, got Bool(true) and Bool(false)"),
    ('1 + "a"', 'Expected number, got Int(1) and String("a")'),
    ("-true", "unknown operator: -BOOLEAN"),
    ('"Hello" - "World"', "unknown operator: STRING - STRING"),
    ('"a" == "a"', "unknown operator: STRING == STRING"),
    ("5[0]", "Can not index object type: INTEGER"),
    ("[1][true]", "Invalid index value: Bool(true)"),
], ids=["int_bool", "bool_bool", "int_string", "neg_bool", "string_minus", "string_eq", "index_int", "bad_index"])
def test_type_errors(source, message):
    assert_ok(run_monkey(source), Error(message))


# --- Error short-circuiting ---

@pytest.mark.parametrize("source", [
    "-nope",
    "nope + 1",
    "1 + nope",
    "[1, nope, 3]",
    "nope[0]",
    "[1][nope]",
    '{nope: 1}',
    '{"a": nope}',
    "len(nope)",
    "fn(x) { x }(nope)",
], ids=["prefix", "infix_left", "infix_right", "array_element", "index_target",
        "index", "hash_key", "hash_value", "builtin_arg", "function_arg"])
def test_errors_propagate_through_expressions(source):
    assert_ok(run_monkey(source), Error("identifier not found: nope"))


# --- Strings ---

def test_string_concatenation():
    assert_ok(run_monkey('"Hello" + " " + "World!"'), String("Hello World!"))
    assert_ok(run_monkey('"n=" + 5'), String("n=5"))
    assert_ok(run_monkey('"n=" + -5'), String("n=-5"))


# --- Functions and closures ---

def test_function_literal_value():
    res = run_monkey("fn(x) { x + 2; };")
    assert_ok(res)
    assert isinstance(res.value, Function)
    assert [p.name for p in res.value.params] == ["x"]
    assert repr(res.value) == "Function { params: [x] }"


@pytest.mark.parametrize("source, expected", [
    ("let identity = fn(x) { x; }; identity(5);", 5),
    ("let double = fn(x) { x * 2; }; double(5);", 10),
    ("let add = fn(x, y) { x + y; }; add(5, add(5, 5));", 15),
    ("fn(x) { x; }(5)", 5),
], ids=["identity", "double", "nested_call", "immediate"])
def test_function_application(source, expected):
    assert_ok(run_monkey(source), Integer(expected))


def test_closures_capture_their_environment():
    src = """
    let newAdder = fn(x) { fn(y) { x + y } };
    let addTwo = newAdder(2);
    addTwo(3);
    """
    assert_ok(run_monkey(src), Integer(5))


def test_closure_sees_later_bindings_in_enclosing_scope():
    assert_ok(run_monkey("let f = fn() { y }; let y = 7; f()"), Integer(7))


def test_callee_cannot_rebind_caller_names():
    assert_ok(run_monkey("let x = 1; let f = fn() { let x = 2; x }; f(); x"), Integer(1))


def test_call_scope_is_chained_to_definition_not_caller():
    src = """
    let f = fn() { secret };
    let g = fn() { let secret = 1; f() };
    g()
    """
    assert_ok(run_monkey(src), Error("identifier not found: secret"))


def test_extra_arguments_are_ignored():
    assert_ok(run_monkey("let f = fn(a) { a }; f(1, 2)"), Integer(1))


def test_missing_arguments_stay_unbound():
    assert_ok(run_monkey("let f = fn(a, b) { b }; f(1)"), Error("identifier not found: b"))


def test_recursion():
    src = """
    let fib = fn(n) { if (n < 2) { return n; } fib(n - 1) + fib(n - 2) };
    fib(15)
    """
    assert_ok(run_monkey(src), Integer(610))


def test_higher_order_functions():
    src = """
    let map = fn(arr, f) {
      let iter = fn(arr, acc) {
        if (len(arr) == 0) { acc } else { iter(rest(arr), push(acc, f(last(arr)))) }
      };
      iter(arr, [])
    };
    map([1, 2, 3], fn(x) { x * 2 })
    """
    # rest() drops the last element, so this walks the array from the end.
    assert_ok(run_monkey(src), Array([Integer(6), Integer(4), Integer(2)]))


# --- Arrays and hashes ---

@pytest.mark.parametrize("source, expected", [
    ("[1, 2, 3][0]", Integer(1)),
    ("[1, 2, 3][2]", Integer(3)),
    ("let i = 0; [1][i]", Integer(1)),
    ("[1, 2, 3][1 + 1]", Integer(3)),
    ("[1, 2, 3][3]", NULL),
    ("[1, 2, 3][-1]", NULL),
    ("[][0]", NULL),
], ids=["first", "last", "identifier", "expression", "past_end", "negative", "empty"])
def test_array_index(source, expected):
    assert_ok(run_monkey(source), expected)


def test_array_literal():
    assert_ok(run_monkey("[1, 2 * 2, 3 + 3]"), Array([Integer(1), Integer(4), Integer(6)]))


def test_hash_literal_evaluates_keys_and_values():
    src = """
    let two = "two";
    {"one": 10 - 9, two: 1 + 1, "thr" + "ee": 6 / 2, 4: 4, true: 5, false: 6}
    """
    res = run_monkey(src)
    assert_ok(res)
    assert isinstance(res.value, Hash)
    assert list(res.value.pairs.items()) == [
        (String("one"), Integer(1)),
        (String("two"), Integer(2)),
        (String("three"), Integer(3)),
        (Integer(4), Integer(4)),
        (TRUE, Integer(5)),
        (FALSE, Integer(6)),
    ]


@pytest.mark.parametrize("source, expected", [
    ('{"foo": 5}["foo"]', Integer(5)),
    ('let key = "foo"; {"foo": 5}[key]', Integer(5)),
    ("{5: 5}[5]", Integer(5)),
    ("{true: 5}[true]", Integer(5)),
    ('{1: "int", true: "bool"}[1]', String("int")),
    ('{1: "int", true: "bool"}[true]', String("bool")),
    ('{"a": 1, "a": 2}["a"]', Integer(2)),
], ids=["string", "identifier", "int", "bool", "int_not_bool", "bool_not_int", "duplicate_overwrites"])
def test_hash_index(source, expected):
    assert_ok(run_monkey(source), expected)


def test_hash_miss_is_an_error():
    assert_ok(run_monkey('{"a": 1}["b"]'), Error('key not found: String("b")'))
    assert_ok(run_monkey("{}[1]"), Error("key not found: Int(1)"))


@pytest.mark.parametrize("source, type_name", [
    ("{[1]: 2}", "ARRAY"),
    ('{"a": 1}[fn(x) { x }]', "FUNCTION"),
    ("{{}: 1}", "HASH"),
], ids=["array_key", "function_index", "hash_key"])
def test_unusable_hash_keys(source, type_name):
    assert_ok(run_monkey(source), Error(f"unusable as hash key: {type_name}"))


# --- Fatal faults ---

def test_calling_a_non_function_is_fatal():
    assert_fault(run_monkey("5()"), "not a function: Int(5)")
    assert_fault(run_monkey('"f"(1)'), 'not a function: String("f")')


def test_calling_an_error_value_is_fatal():
    assert_fault(run_monkey("foobar()"), "cannot call an error value: identifier not found: foobar")


def test_fault_carries_the_call_stack():
    evaluator = Evaluator()
    program = parse("let f = fn(x) { x() }; f(1)")
    with pytest.raises(EvaluationFault) as exc:
        evaluator.evaluate(program)
    assert [frame['name'] for frame in exc.value.stack] == ['<fn>']
    assert exc.value.stack[0]['args'] == [Integer(1)]
    # Frames are popped once the fault unwinds.
    assert evaluator.call_stack == []


def test_unbounded_recursion_is_fatal():
    res = run_monkey("let f = fn(n) { f(n + 1) }; f(0)")
    assert_fault(res, "maximum recursion depth exceeded")


# --- Evaluator API ---

def test_fresh_evaluator_has_builtins():
    evaluator = Evaluator()
    for name in ("len", "first", "last", "push", "rest", "put"):
        assert isinstance(evaluator.env.resolve(name), BuiltIn)


def test_evaluator_keeps_top_level_bindings():
    evaluator = Evaluator()
    evaluator.evaluate(parse("let x = 3"))
    assert evaluator.evaluate(parse("x * x")) == Integer(9)


def test_call_applies_function_values():
    evaluator = Evaluator()
    func = evaluator.evaluate(parse("fn(a, b) { a - b }"))
    assert evaluator.call(func, [Integer(5), Integer(3)]) == Integer(2)
    with pytest.raises(EvaluationFault):
        evaluator.call(Integer(1), [])


@pytest.mark.parametrize("depth", [150, 1000, 2000], ids=["150", "1000", "2000"])
def test_deep_recursion_succeeds(depth):
    src = f"let f = fn(n) {{ if (n == 0) {{ return 0 }} 1 + f(n - 1) }}; f({depth})"
    assert_ok(run_monkey(src), Integer(depth))


def test_recursion_over_a_long_array():
    src = """
    let sum = fn(arr) { if (len(arr) == 0) { 0 } else { last(arr) + sum(rest(arr)) } };
    let build = fn(n, acc) { if (n == 0) { acc } else { build(n - 1, push(acc, n)) } };
    sum(build(500, []))
    """
    assert_ok(run_monkey(src), Integer(125250))


def test_recursion_limit_is_restored_after_evaluation():
    before = sys.getrecursionlimit()
    run_monkey("let f = fn(n) { if (n == 0) { 0 } else { f(n - 1) } }; f(300)")
    assert sys.getrecursionlimit() == before
