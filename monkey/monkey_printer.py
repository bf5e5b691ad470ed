"""
A pretty-printer for Monkey runtime values and AST nodes.

Runtime values are rendered the human-readable way the CLI prints them;
`repr()` gives the debug rendering the REPL prints. AST nodes are rendered
back into source with every prefix/infix expression parenthesised, so the
output parses to the same tree.
"""
from monkey.monkey_lexer import escape_string
from monkey.monkey_datatypes import (
    Null, Integer, Boolean, String, Array, Hash, Function, BuiltIn, ReturnValue, Error
)
from monkey.monkey_ast import (
    Program, Identifier, IntegerLiteral, BooleanLiteral, StringLiteral,
    PrefixExpression, InfixExpression, FunctionLiteral, CallExpression,
    ArrayLiteral, IndexExpression, HashLiteral,
    LetStatement, ReturnStatement, IfStatement, ExpressionStatement,
)


class Printer:
    """Formats Monkey objects into readable strings and AST nodes into source."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            # Default to Python's repr for unknown types
            return repr(obj)
        return handler(obj, level)

    def _create_handlers(self):
        return {
            # runtime values
            Null: self._pformat_null,
            Integer: self._pformat_integer,
            Boolean: self._pformat_boolean,
            String: self._pformat_string,
            Array: self._pformat_array,
            Hash: self._pformat_hash,
            Function: self._pformat_function,
            BuiltIn: self._pformat_builtin,
            ReturnValue: self._pformat_return_value,
            Error: self._pformat_error,
            # AST
            Program: self._pformat_program,
            LetStatement: self._pformat_let,
            ReturnStatement: self._pformat_return,
            IfStatement: self._pformat_if,
            ExpressionStatement: self._pformat_expression_statement,
            Identifier: self._pformat_identifier,
            IntegerLiteral: self._pformat_integer,
            BooleanLiteral: self._pformat_boolean,
            StringLiteral: self._pformat_string_literal,
            PrefixExpression: self._pformat_prefix,
            InfixExpression: self._pformat_infix,
            FunctionLiteral: self._pformat_function_literal,
            CallExpression: self._pformat_call,
            ArrayLiteral: self._pformat_array_literal,
            IndexExpression: self._pformat_index,
            HashLiteral: self._pformat_hash_literal,
        }

    # -----------------------------------------------------------------
    # Runtime values
    # -----------------------------------------------------------------

    def _pformat_null(self, obj, level):
        return "Null"

    def _pformat_integer(self, obj, level):
        return str(obj.value)

    def _pformat_boolean(self, obj, level):
        return 'true' if obj.value else 'false'

    def _pformat_string(self, obj, level):
        # Display form: no escaping
        return f'"{obj.value}"'

    def _pformat_array(self, obj, level):
        if not obj.elements:
            return "[]"
        return "[ " + ", ".join(self.pformat(e, level) for e in obj.elements) + " ]"

    def _pformat_hash(self, obj, level):
        if not obj.pairs:
            return "{}"
        items = ", ".join(f"{self.pformat(k, level)}: {self.pformat(v, level)}" for k, v in obj.pairs.items())
        return "{ " + items + " }"

    def _pformat_function(self, obj, level):
        params = ", ".join(p.name for p in obj.params)
        return f"fn({params}) {self._pformat_block(obj.body, level)}"

    def _pformat_builtin(self, obj, level):
        return f"builtin {obj.name}"

    def _pformat_return_value(self, obj, level):
        return self.pformat(obj.value, level)

    def _pformat_error(self, obj, level):
        return f"Error: {obj.message}"

    # -----------------------------------------------------------------
    # AST
    # -----------------------------------------------------------------

    def _pformat_program(self, obj, level):
        return "\n".join(f"{self.pformat(s, level)};" for s in obj.statements)

    def _pformat_block(self, program, level):
        if not program.statements:
            return "{}"

        outer_indent = self._indent_char * level
        inner_level = level + 1
        inner_indent = self._indent_char * inner_level

        lines = []
        for statement in program.statements:
            text = self.pformat(statement, inner_level)
            # Subsequent lines are already indented by the recursive call.
            lines.append(f"{inner_indent}{text};")
        return "{\n" + "\n".join(lines) + f"\n{outer_indent}}}"

    def _pformat_let(self, obj, level):
        return f"let {obj.name.name} = {self.pformat(obj.value, level)}"

    def _pformat_return(self, obj, level):
        return f"return {self.pformat(obj.value, level)}"

    def _pformat_if(self, obj, level):
        out = f"if ({self.pformat(obj.condition, level)}) {self._pformat_block(obj.consequence, level)}"
        if obj.alternative is not None:
            out += f" else {self._pformat_block(obj.alternative, level)}"
        return out

    def _pformat_expression_statement(self, obj, level):
        return self.pformat(obj.expression, level)

    def _pformat_identifier(self, obj, level):
        return obj.name

    def _pformat_string_literal(self, obj, level):
        return f'"{escape_string(obj.value)}"'

    def _pformat_prefix(self, obj, level):
        return f"({obj.operator.symbol}{self.pformat(obj.right, level)})"

    def _pformat_infix(self, obj, level):
        left = self.pformat(obj.left, level)
        right = self.pformat(obj.right, level)
        return f"({left} {obj.operator.symbol} {right})"

    def _pformat_function_literal(self, obj, level):
        params = ", ".join(p.name for p in obj.params)
        return f"fn({params}) {self._pformat_block(obj.body, level)}"

    def _pformat_call(self, obj, level):
        args = ", ".join(self.pformat(a, level) for a in obj.arguments)
        return f"{self.pformat(obj.function, level)}({args})"

    def _pformat_array_literal(self, obj, level):
        return "[" + ", ".join(self.pformat(e, level) for e in obj.elements) + "]"

    def _pformat_index(self, obj, level):
        return f"({self.pformat(obj.left, level)}[{self.pformat(obj.index, level)}])"

    def _pformat_hash_literal(self, obj, level):
        items = ", ".join(f"{self.pformat(k, level)}: {self.pformat(v, level)}" for k, v in obj.pairs)
        return "{" + items + "}"
