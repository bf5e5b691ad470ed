from __future__ import annotations

import json
from typing import Any

import yaml

from monkey.monkey_datatypes import (
    MonkeyObject, Null, Integer, Boolean, String, Array, Hash,
    Function, BuiltIn, ReturnValue, Error,
)
from monkey.monkey_printer import Printer


SUPPORTED_FORMATS = ('json', 'yaml')


# --------------------------
# Helpers
# --------------------------

def _key_to_builtin(key: MonkeyObject, printer: Printer) -> Any:
    # JSON object keys must be strings; keep string keys raw, render the rest.
    if isinstance(key, String):
        return key.value
    return printer.pformat(key)


def to_builtin(obj: MonkeyObject, printer: Printer | None = None) -> Any:
    """Convert a Monkey value into plain Python data (dict/list/str/int/bool/None)."""
    printer = printer or Printer()
    match obj:
        case Null():
            return None
        case Integer(value=value) | Boolean(value=value) | String(value=value):
            return value
        case Array(elements=elements):
            return [to_builtin(e, printer) for e in elements]
        case Hash(pairs=pairs):
            out = {}
            for k, v in pairs.items():
                key = _key_to_builtin(k, printer)
                if key in out:
                    # e.g. 1 and "1" both become the key "1"
                    raise ValueError(f"hash keys collide after conversion: {key!r}")
                out[key] = to_builtin(v, printer)
            return out
        case Function() | BuiltIn():
            return printer.pformat(obj)
        case Error(message=message):
            return {"error": message}
        case ReturnValue(value=value):
            return to_builtin(value, printer)
        case _:
            raise TypeError(f"cannot serialize {type(obj).__name__}")


# --------------------------
# Public API
# --------------------------

def serialize(value: MonkeyObject, *, fmt: str, pretty: bool = True) -> str:
    """
    Serialize a Monkey value to text.
    - fmt: 'json' | 'yaml'
    - pretty: indent JSON output (YAML is always block style)
    """
    f = (fmt or '').lower()
    built = to_builtin(value)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported format: {fmt!r} (expected one of {', '.join(SUPPORTED_FORMATS)})")
