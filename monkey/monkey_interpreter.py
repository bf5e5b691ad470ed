"""
The core Monkey interpreter: a tree-walking Evaluator over the AST.
"""
import os
import sys
import threading
from typing import Any, List, Optional

from monkey.monkey_ast import (
    Node, Program, Operator,
    Identifier, IntegerLiteral, BooleanLiteral, StringLiteral,
    PrefixExpression, InfixExpression, FunctionLiteral, CallExpression,
    ArrayLiteral, IndexExpression, HashLiteral,
    LetStatement, ReturnStatement, IfStatement, ExpressionStatement,
)
from monkey.monkey_datatypes import (
    MonkeyObject, MonkeyCallable, Hashable, Null, Integer, Boolean, String, Array, Hash,
    Function, BuiltIn, ReturnValue, Error, Environment,
    NULL, INT_MIN, INT_MAX, native_bool, is_error,
)


class EvaluationFault(Exception):
    """Evaluation could not complete. Distinct from an in-language Error value."""
    def __init__(self, message: str, node: Optional[Node] = None, stack: Optional[List[dict]] = None):
        super().__init__(message)
        self.node = node
        self.stack = stack or []


# Helper: unwrap control-flow "return" wrappers at a function or program boundary
def unwrap_return(x):
    return x.value if isinstance(x, ReturnValue) else x


def is_truthy(obj: MonkeyObject) -> bool:
    """Null and 0 are false, booleans are themselves, everything else is true."""
    match obj:
        case Null():
            return False
        case Integer(value=0):
            return False
        case Boolean(value=value):
            return value
        case _:
            return True


def _checked(result: int, left: int, operator: Operator, right: int) -> MonkeyObject:
    if result < INT_MIN or result > INT_MAX:
        return Error(f"integer overflow: {left} {operator.symbol} {right}")
    return Integer(result)


# Each Monkey call costs several Python frames; evaluation and parsing run
# on a worker thread whose stack is large enough to back this limit.
RECURSION_LIMIT = 30_000
STACK_SIZE = 512 * 1024 * 1024


def call_with_deep_stack(fn, *args):
    """Run `fn(*args)` with a raised recursion limit on a large-stack thread.

    Exceptions raised by `fn` are re-raised in the calling thread.
    """
    outcome = {}

    def target():
        try:
            outcome['value'] = fn(*args)
        except BaseException as e:
            outcome['error'] = e

    old_limit = sys.getrecursionlimit()
    sys.setrecursionlimit(max(old_limit, RECURSION_LIMIT))
    old_size = threading.stack_size()
    try:
        threading.stack_size(STACK_SIZE)
        worker = threading.Thread(target=target, name="monkey-eval")
        worker.start()
    finally:
        threading.stack_size(old_size)
    try:
        worker.join()
    finally:
        sys.setrecursionlimit(old_limit)

    if 'error' in outcome:
        raise outcome['error']
    return outcome['value']


class Evaluator:
    """The Monkey execution engine.

    Each Evaluator owns one top-level environment, pre-populated with the
    built-in functions.
    """
    def __init__(self):
        # local import: the runtime module imports this one
        from monkey.monkey_runtime import StdLib
        self.stdlib = StdLib(self)
        self.env = Environment()
        self.stdlib.install(self.env)
        self.call_stack: List[dict] = []
        self.current_node: Optional[Node] = None

    def _push_frame(self, name, func, args, call_site_node):
        span = getattr(call_site_node, 'span', None)
        self.call_stack.append({
            'name': name,
            'func': func,
            'args': args,
            'call_site': span.to_loc() if span is not None else None,
        })

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    def _dbg(self, *parts):
        if os.environ.get("MONKEY_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    # -----------------------------------------------------------------
    # Entry points
    # -----------------------------------------------------------------

    def evaluate(self, program: Program) -> MonkeyObject:
        """Evaluate a whole program in this evaluator's top-level environment."""
        try:
            return call_with_deep_stack(self.eval, program, self.env)
        except RecursionError:
            raise EvaluationFault("maximum recursion depth exceeded", self.current_node) from None

    def eval(self, node: Node, env: Environment) -> MonkeyObject:
        """Public entry point for evaluation. Unwraps 'return' wrappers."""
        return unwrap_return(self._eval(node, env))

    def _eval(self, node: Node, env: Environment) -> MonkeyObject:
        """Recursive dispatcher for evaluating any AST node."""
        self.current_node = node
        match node:
            case Program():
                return self._eval_block(node, env)

            # Statements
            case LetStatement(name=name, value=expr):
                value = self._eval(expr, env)
                if is_error(value):
                    return value
                return env.define(name.name, value)

            case ReturnStatement(value=expr):
                return ReturnValue(self._eval(expr, env))

            case IfStatement():
                return self._eval_if(node, env)

            case ExpressionStatement(expression=expr):
                return self._eval(expr, env)

            # Literals
            case IntegerLiteral(value=value):
                return Integer(value)

            case BooleanLiteral(value=value):
                return native_bool(value)

            case StringLiteral(value=value):
                return String(value)

            case Identifier(name=name):
                value = env.resolve(name)
                if value is None:
                    return Error(f"identifier not found: {name}")
                return value

            # Operators
            case PrefixExpression(operator=operator, right=right_node):
                right = self._eval(right_node, env)
                if is_error(right):
                    return right
                return self.eval_prefix(operator, right)

            case InfixExpression(operator=operator, left=left_node, right=right_node):
                left = self._eval(left_node, env)
                if is_error(left):
                    return left
                right = self._eval(right_node, env)
                if is_error(right):
                    return right
                return self.eval_infix(operator, left, right)

            case FunctionLiteral(params=params, body=body):
                return Function(params, body, env)

            case CallExpression():
                return self._eval_call(node, env)

            case ArrayLiteral(elements=elements):
                values = self._eval_expressions(elements, env)
                if is_error(values):
                    return values
                return Array(values)

            case IndexExpression(left=left_node, index=index_node):
                left = self._eval(left_node, env)
                if is_error(left):
                    return left
                index = self._eval(index_node, env)
                if is_error(index):
                    return index
                return self.eval_index(left, index)

            case HashLiteral():
                return self._eval_hash_literal(node, env)

            case _:
                raise EvaluationFault(f"cannot evaluate node: {node!r}", node)

    def _eval_block(self, program: Program, env: Environment) -> MonkeyObject:
        result: MonkeyObject = NULL
        for statement in program.statements:
            result = self._eval(statement, env)
            # Only 'return' stops a block; nested returns pass through unwrapped.
            if isinstance(result, ReturnValue):
                return result
        return result

    def _eval_if(self, node: IfStatement, env: Environment) -> MonkeyObject:
        condition = self._eval(node.condition, env)
        if is_error(condition):
            return condition
        # Branches share the enclosing environment.
        if is_truthy(condition):
            return self._eval_block(node.consequence, env)
        if node.alternative is not None:
            return self._eval_block(node.alternative, env)
        return NULL

    def _eval_expressions(self, nodes, env: Environment) -> Any:
        """Evaluate left to right; returns the first Error instead of a list."""
        values = []
        for expr in nodes:
            value = self._eval(expr, env)
            if is_error(value):
                return value
            values.append(value)
        return values

    def _eval_hash_literal(self, node: HashLiteral, env: Environment) -> MonkeyObject:
        pairs = {}
        for key_node, value_node in node.pairs:
            key = self._eval(key_node, env)
            if is_error(key):
                return key
            if not isinstance(key, Hashable):
                return Error(f"unusable as hash key: {key.type_name}")
            value = self._eval(value_node, env)
            if is_error(value):
                return value
            pairs[key] = value
        return Hash(pairs)

    # -----------------------------------------------------------------
    # Operators and indexing
    # -----------------------------------------------------------------

    def eval_prefix(self, operator: Operator, right: MonkeyObject) -> MonkeyObject:
        match operator:
            case Operator.NOT:
                return native_bool(not is_truthy(right))
            case Operator.NEG:
                if not isinstance(right, Integer):
                    return Error(f"unknown operator: -{right.type_name}")
                if -right.value > INT_MAX:
                    return Error(f"integer overflow: -{right.value}")
                return Integer(-right.value)
            case _:
                return Error(f"unknown operator: {operator.symbol}{right.type_name}")

    def eval_infix(self, operator: Operator, left: MonkeyObject, right: MonkeyObject) -> MonkeyObject:
        match (left, right):
            case (Integer(), Integer()):
                return self._eval_integer_infix(operator, left.value, right.value)
            case (String(), String()) | (String(), Integer()):
                if operator is Operator.ADD:
                    return String(left.value + str(right.value))
                return Error(f"unknown operator: {left.type_name} {operator.symbol} {right.type_name}")
            case _:
                return Error(f"Expected number, got {left!r} and {right!r}")

    def _eval_integer_infix(self, operator: Operator, left: int, right: int) -> MonkeyObject:
        match operator:
            case Operator.ADD:
                return _checked(left + right, left, operator, right)
            case Operator.SUB:
                return _checked(left - right, left, operator, right)
            case Operator.MUL:
                return _checked(left * right, left, operator, right)
            case Operator.DIV:
                if right == 0:
                    return Error("division by zero")
                # Truncate toward zero, unlike Python's floor division.
                quotient = abs(left) // abs(right)
                if (left < 0) != (right < 0):
                    quotient = -quotient
                return _checked(quotient, left, operator, right)
            case Operator.LESS:
                return native_bool(left < right)
            case Operator.GREATER:
                return native_bool(left > right)
            case Operator.LESS_EQUAL:
                return native_bool(left <= right)
            case Operator.GREATER_EQUAL:
                return native_bool(left >= right)
            case Operator.EQUAL:
                return native_bool(left == right)
            case Operator.NOT_EQUAL:
                return native_bool(left != right)
            case _:
                return Error(f"unknown operator: INTEGER {operator.symbol} INTEGER")

    def eval_index(self, left: MonkeyObject, index: MonkeyObject) -> MonkeyObject:
        match left:
            case Array(elements=elements):
                if not isinstance(index, Integer):
                    return Error(f"Invalid index value: {index!r}")
                if index.value < 0 or index.value >= len(elements):
                    return NULL
                return elements[index.value]
            case Hash(pairs=pairs):
                if not isinstance(index, Hashable):
                    return Error(f"unusable as hash key: {index.type_name}")
                if index not in pairs:
                    return Error(f"key not found: {index!r}")
                return pairs[index]
            case _:
                return Error(f"Can not index object type: {left.type_name}")

    # -----------------------------------------------------------------
    # Calls
    # -----------------------------------------------------------------

    def _eval_call(self, node: CallExpression, env: Environment) -> MonkeyObject:
        func = self._eval(node.function, env)
        if not isinstance(func, MonkeyCallable):
            if is_error(func):
                raise EvaluationFault(f"cannot call an error value: {func.message}", node, list(self.call_stack))
            raise EvaluationFault(f"not a function: {func!r}", node, list(self.call_stack))

        args = self._eval_expressions(node.arguments, env)
        if is_error(args):
            return args
        self.current_node = node
        return self.call(func, args, node)

    def call(self, func: MonkeyObject, args: List[MonkeyObject], call_site: Optional[Node] = None) -> MonkeyObject:
        match func:
            case Function():
                # A call creates a new environment whose parent is the closure's
                # environment, not the caller's.
                call_env = Environment(parent=func.env)
                # Extra arguments are ignored; missing ones stay unbound.
                for param, arg in zip(func.params, args):
                    call_env.define(param.name, arg)
                self._dbg("Function call", repr(func), "argc", len(args))
                self._push_frame('<fn>', func, args, call_site)
                try:
                    result = self._eval(func.body, call_env)
                finally:
                    self._pop_frame()
                return unwrap_return(result)

            case BuiltIn():
                if len(args) != func.arity:
                    return Error(
                        f"{func.name}(): wrong number of arguments - expected {func.arity}, got {len(args)}"
                    )
                self._dbg("BuiltIn call", func.name, "argc", len(args))
                self._push_frame(func.name, func, args, call_site)
                try:
                    return func.fn(*args)
                finally:
                    self._pop_frame()

            case Error():
                raise EvaluationFault(f"cannot call an error value: {func.message}", call_site, list(self.call_stack))

            case _:
                raise EvaluationFault(f"not a function: {func!r}", call_site, list(self.call_stack))
