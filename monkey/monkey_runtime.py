# monkey_runtime.py

import inspect
from dataclasses import dataclass
from typing import Any, List, Literal, Optional, Dict

from monkey.monkey_lexer import Lexer, LexError
from monkey.monkey_ast import Program
from monkey.monkey_parser import Parser, ParseError, NestingTooDeep
from monkey.monkey_interpreter import Evaluator, EvaluationFault, call_with_deep_stack
from monkey.monkey_datatypes import (
    MonkeyObject, Hashable, String, Integer, Array, Hash, BuiltIn, Error, Environment, NULL
)

# ===================================================================
# 1. The Built-in Library
# ===================================================================


def monkey_builtin(func):
    """A decorator to mark StdLib methods that are installed as built-ins."""
    func._is_monkey_builtin = True
    return func


class StdLib:
    """Contains Python implementations for all Monkey built-ins.

    Each marked method `_name` is bound as `name`; its arity is the number
    of parameters it declares.
    """
    def __init__(self, evaluator):
        self.evaluator = evaluator

    def builtins(self) -> List[BuiltIn]:
        out = []
        for name, member in inspect.getmembers(self):
            if not getattr(member, "_is_monkey_builtin", False):
                continue
            monkey_name = name.lstrip('_')
            arity = len(inspect.signature(member).parameters)
            out.append(BuiltIn(monkey_name, arity, member))
        return out

    def install(self, env: Environment):
        for builtin in self.builtins():
            env.define(builtin.name, builtin)

    @monkey_builtin
    def _len(self, obj):
        match obj:
            case String(value=value):
                return Integer(len(value.encode("utf-8")))
            case Array(elements=elements):
                return Integer(len(elements))
            case _:
                return Error(f"len(): Invalid argument: {obj!r}")

    @monkey_builtin
    def _first(self, obj):
        if not isinstance(obj, Array):
            return Error(f"first(): Invalid argument: {obj!r}")
        return obj.elements[0] if obj.elements else NULL

    @monkey_builtin
    def _last(self, obj):
        if not isinstance(obj, Array):
            return Error(f"last(): Invalid argument: {obj!r}")
        return obj.elements[-1] if obj.elements else NULL

    @monkey_builtin
    def _push(self, target, obj):
        if not isinstance(target, Array):
            return Error(f"push(): Invalid argument: {target!r}")
        return Array(target.elements + [obj])

    @monkey_builtin
    def _rest(self, obj):
        """All elements but the LAST one (not the first, despite the name)."""
        if not isinstance(obj, Array):
            return Error(f"rest(): Invalid argument: {obj!r}")
        return Array(obj.elements[:-1])

    @monkey_builtin
    def _put(self, target, key, value):
        if not isinstance(target, Hash):
            return Error(f"put(): Invalid argument: {target!r}")
        if not isinstance(key, Hashable):
            return Error(f"unusable as hash key: {key.type_name}")
        pairs = dict(target.pairs)
        pairs[key] = value
        return Hash(pairs)


# ===================================================================
# 2. Script Execution
# ===================================================================

Token = Dict[str, Any]


def parse_source(source_code: str) -> Program:
    """Lex and parse `source_code`; running out of recursion is a parse failure."""
    parser = Parser(Lexer(source_code))
    try:
        return call_with_deep_stack(parser.parse_program)
    except RecursionError:
        raise NestingTooDeep(parser.current) from None


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Optional[MonkeyObject] = None
    error_message: Optional[str] = None
    error_token: Optional[Token] = None

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")

        if self.error_token and 'line' in self.error_token:
            line = self.error_token.get('line')
            col = self.error_token.get('col')
            if not msg.startswith("Error on line "):
                col_info = f", col {col}" if col is not None else ""
                return f"Error on line {line}{col_info}: {msg}"
        return msg


class ScriptRunner:
    """Lexes, parses, and evaluates Monkey source.

    With `persistent=True` one Evaluator is reused, so top-level bindings
    carry over between calls (REPL behaviour). Otherwise each call gets a
    fresh Evaluator.
    """

    def __init__(self, persistent: bool = True):
        self.persistent = persistent
        self.evaluator = Evaluator()

    def _format_source_error(self, kind: str, e, source: str) -> tuple[str, Optional[dict]]:
        span = getattr(e, 'span', None)
        if span is None:
            return f"{kind}: {e}", None
        loc = span.to_loc()
        msg = f"{kind}: {e}\n{self._source_context(source, loc['line'], loc['col'])}"
        return msg, loc

    def _format_runtime_error(self, e, source: str) -> tuple[str, Optional[dict]]:
        match e:
            case EvaluationFault():
                msg = f"EvaluationFault: {e}"
            case _:
                msg = f"InternalError: {e}"

        token = None
        node = getattr(e, 'node', None)
        span = getattr(node, 'span', None)
        if span is not None:
            token = span.to_loc()
            line, col = token['line'], token['col']
            msg = f"{msg}\n(line {line}, col {col})\n{self._source_context(source, line, col)}"

        st = self._format_stacktrace(getattr(e, 'stack', None) or [])
        if st:
            msg += "\n" + st
        return msg, token

    def _source_context(self, source: str, line: int, col: Optional[int], radius: int = 2) -> str:
        lines = source.splitlines()
        if not line or line < 1 or line > len(lines):
            return ""
        start = max(1, line - radius)
        end = min(len(lines), line + radius)
        width = len(str(end))
        out = []
        for i in range(start, end + 1):
            prefix = ">" if i == line else " "
            ln = str(i).rjust(width)
            content = lines[i - 1]
            out.append(f"{prefix} {ln} | {content}")
            if i == line and col is not None:
                caret = " " * max(col - 1, 0)
                out.append(f"  {' ' * width} | {caret}^")
        return "\n".join(out)

    def _format_stacktrace(self, stack: List[dict]) -> str:
        if not stack:
            return ""
        frames = []
        for frame in stack:
            name = frame.get('name') or '<call>'
            args = " ".join(repr(a) for a in frame.get('args') or [])
            frames.append(f"({name} {args})" if args else f"({name})")
        return "Monkey stacktrace: " + " ".join(frames)

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a script. Never raises."""
        try:
            if not self.persistent:
                self.evaluator = Evaluator()
            self.evaluator.call_stack.clear()
            self.evaluator._dbg("handle_script", f"{len(source_code)} chars")

            # 1. Lex + parse
            try:
                program = parse_source(source_code)
            except LexError as e:
                msg, token = self._format_source_error("LexError", e, source_code)
                return ExecutionResult(status='error', error_message=msg, error_token=token)
            except ParseError as e:
                msg, token = self._format_source_error("ParseError", e, source_code)
                return ExecutionResult(status='error', error_message=msg, error_token=token)

            # 2. Evaluate; in-language Error values are ordinary results
            result = self.evaluator.evaluate(program)
            return ExecutionResult(status='success', value=result)

        except Exception as e:
            self.evaluator._dbg("fault", type(e).__name__, str(e))
            err_msg, err_token = self._format_runtime_error(e, source_code)
            return ExecutionResult(status='error', error_message=err_msg, error_token=err_token)
