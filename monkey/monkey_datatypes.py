"""
Defines the runtime value model for the Monkey evaluator.

Every value the evaluator produces is a `MonkeyObject`. Only `Integer`,
`Boolean` and `String` may be used as hash keys; they compare and hash by
(type, value) so that `1` and `true` are distinct keys.
"""

from abc import ABC
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from monkey.monkey_lexer import escape_string

if TYPE_CHECKING:
    from monkey.monkey_ast import Identifier, Program

# Integers are signed 64-bit; results outside this range are reported as errors.
INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1


# =================================================================
# Abstract Base Classes
# =================================================================

class MonkeyObject(ABC):
    """Abstract base class for every runtime value."""
    type_name = "OBJECT"


class Hashable(MonkeyObject):
    """Marker base for values usable as hash keys."""
    pass


class MonkeyCallable(MonkeyObject):
    """Abstract base class for values that can be called."""
    pass


# =================================================================
# Core Runtime Types
# =================================================================

class Null(MonkeyObject):
    type_name = "NULL"

    def __repr__(self) -> str:
        return "Null"

    def __eq__(self, other):
        return isinstance(other, Null)

    __hash__ = None


class Integer(Hashable):
    type_name = "INTEGER"

    def __init__(self, value: int):
        self.value = value

    def __repr__(self) -> str:
        return f"Int({self.value})"

    def __eq__(self, other):
        return type(other) is Integer and self.value == other.value

    def __hash__(self):
        return hash((Integer, self.value))


class Boolean(Hashable):
    type_name = "BOOLEAN"

    def __init__(self, value: bool):
        self.value = value

    def __repr__(self) -> str:
        return f"Bool({'true' if self.value else 'false'})"

    def __eq__(self, other):
        return type(other) is Boolean and self.value == other.value

    def __hash__(self):
        return hash((Boolean, self.value))


class String(Hashable):
    type_name = "STRING"

    def __init__(self, value: str):
        self.value = value

    def __repr__(self) -> str:
        return f'String("{escape_string(self.value)}")'

    def __eq__(self, other):
        return type(other) is String and self.value == other.value

    def __hash__(self):
        return hash((String, self.value))


class Array(MonkeyObject):
    type_name = "ARRAY"

    def __init__(self, elements: Optional[List[MonkeyObject]] = None):
        self.elements: List[MonkeyObject] = list(elements or [])

    def __len__(self) -> int:
        return len(self.elements)

    def __repr__(self) -> str:
        return f"Array([{', '.join(repr(e) for e in self.elements)}])"

    def __eq__(self, other):
        return isinstance(other, Array) and self.elements == other.elements

    __hash__ = None


class Hash(MonkeyObject):
    """A mapping from hashable keys to values, kept in insertion order."""
    type_name = "HASH"

    def __init__(self, pairs: Optional[Dict[Hashable, MonkeyObject]] = None):
        self.pairs: Dict[Hashable, MonkeyObject] = dict(pairs or {})

    def __len__(self) -> int:
        return len(self.pairs)

    def __repr__(self) -> str:
        body = ', '.join(f"{k!r}: {v!r}" for k, v in self.pairs.items())
        return f"Hash({{{body}}})"

    def __eq__(self, other):
        return isinstance(other, Hash) and self.pairs == other.pairs

    __hash__ = None


class Function(MonkeyCallable):
    """A closure: parameters, body, and the environment it was defined in.

    The environment is shared, not copied, so bindings added to it after
    the function was created are visible when the function runs.
    """
    type_name = "FUNCTION"

    def __init__(self, params: List['Identifier'], body: 'Program', env: 'Environment'):
        self.params = params
        self.body = body
        self.env = env

    def __repr__(self) -> str:
        # env may contain this function; never print it.
        names = ', '.join(p.name for p in self.params)
        return f"Function {{ params: [{names}] }}"


class BuiltIn(MonkeyCallable):
    """A host function with a fixed arity."""
    type_name = "BUILTIN"

    def __init__(self, name: str, arity: int, fn: Callable[..., MonkeyObject]):
        self.name = name
        self.arity = arity
        self.fn = fn

    def __repr__(self) -> str:
        return f'BuiltIn {{ name: "{self.name}", arity: {self.arity} }}'


class ReturnValue(MonkeyObject):
    """Control-flow wrapper produced by `return`; never escapes evaluation."""
    type_name = "RETURN_VALUE"

    def __init__(self, value: MonkeyObject):
        self.value = value

    def __repr__(self) -> str:
        return f"Return({self.value!r})"

    def __eq__(self, other):
        return isinstance(other, ReturnValue) and self.value == other.value

    __hash__ = None


class Error(MonkeyObject):
    """An in-language error. It is an ordinary value, never raised."""
    type_name = "ERROR"

    def __init__(self, message: str):
        self.message = message

    def __repr__(self) -> str:
        return f'Error("{escape_string(self.message)}")'

    def __eq__(self, other):
        return isinstance(other, Error) and self.message == other.message

    __hash__ = None


NULL = Null()
TRUE = Boolean(True)
FALSE = Boolean(False)


def native_bool(value: bool) -> Boolean:
    return TRUE if value else FALSE


def is_error(obj: Any) -> bool:
    return isinstance(obj, Error)


# =================================================================
# Environment
# =================================================================

class Environment:
    """A mutable binding table chained to an enclosing environment.

    `define` only ever writes to this frame; `resolve` walks outward and
    stops at the first frame that binds the name.
    """
    def __init__(self, parent: Optional['Environment'] = None):
        self.bindings: Dict[str, MonkeyObject] = {}
        self.parent = parent

    def define(self, name: str, value: MonkeyObject) -> MonkeyObject:
        if isinstance(value, ReturnValue):
            raise TypeError(f"cannot bind a return wrapper to {name!r}")
        self.bindings[name] = value
        return value

    def find_owner(self, name: str) -> Optional['Environment']:
        env = self
        while env is not None:
            if name in env.bindings:
                return env
            env = env.parent
        return None

    def resolve(self, name: str) -> Optional[MonkeyObject]:
        """Look `name` up through the chain; None on a lookup miss."""
        owner = self.find_owner(name)
        if owner is None:
            return None
        return owner.bindings[name]

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        parent_id = f", parent=#{id(self.parent)}" if self.parent else ""
        return f"<Environment bindings=[{keys}]{parent_id}>"
