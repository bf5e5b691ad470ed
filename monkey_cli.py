import sys
from pathlib import Path

from monkey.monkey_runtime import ScriptRunner, parse_source
from monkey.monkey_printer import Printer
from monkey.monkey_serialize import serialize
from monkey.monkey_lexer import LexError, token_snapshot
from monkey.monkey_parser import ParseError

USAGE = """\
monkey [OPTIONS] [FILE]

Run a Monkey program. Without FILE, start the interactive REPL.

Options:
  -i, --input FILE   Read the program from FILE
  --format FORMAT    Render the result as text (default), debug, json or yaml
  --tokens           Print the token stream instead of evaluating
  --ast              Print the parsed program instead of evaluating
  -h, --help         Show this help message
"""

FORMATS = ("text", "debug", "json", "yaml")


# A basic input prompt; returns "" on end of input.
def input_line(prompt: str) -> str:
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return sys.stdin.readline()


def render(value, fmt: str) -> str:
    if fmt == "debug":
        return repr(value)
    if fmt in ("json", "yaml"):
        return serialize(value, fmt=fmt).rstrip("\n")
    return Printer().pformat(value)


def _read_source(file_path: str):
    try:
        return Path(file_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return None


def dump_tokens(file_path: str) -> int:
    source = _read_source(file_path)
    if source is None:
        return 1
    try:
        print(token_snapshot(source), end="")
    except (LexError, ValueError) as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1
    return 0


def dump_ast(file_path: str) -> int:
    source = _read_source(file_path)
    if source is None:
        return 1
    try:
        program = parse_source(source)
    except (LexError, ParseError) as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1
    print(Printer().pformat(program))
    return 0


def run_script_file(file_path: str, fmt: str = "text") -> int:
    """Run a Monkey script file non-interactively and return the exit status."""
    source = _read_source(file_path)
    if source is None:
        return 1
    runner = ScriptRunner(persistent=False)
    result = runner.handle_script(source)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        return 1
    # An in-language Error value is still a successful run.
    try:
        text = render(result.value, fmt)
    except ValueError as e:
        print(f"Error: cannot render result as {fmt}: {e}", file=sys.stderr)
        return 1
    print(text)
    return 0


def repl() -> int:
    print("Monkey REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runner = ScriptRunner(persistent=True)

    while True:
        raw = input_line(">> ")
        if raw == "":
            print("\nExiting.")
            break
        line = raw.strip()

        if not line:
            continue
        if line == "exit":
            break

        result = runner.handle_script(line)
        if result.status == 'error':
            # Lex, parse and fatal errors do not end the session.
            print(result.format_error(), file=sys.stderr)
            continue
        print(repr(result.value))
    return 0


def main(argv=None) -> int:
    """Run a script file when provided, otherwise start the interactive REPL."""
    args = argv if argv is not None else sys.argv[1:]
    file_path = ""
    fmt = "text"
    mode = "run"
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("-h", "--help"):
            print(USAGE, end="")
            return 0
        elif arg in ("-i", "--input"):
            if i + 1 >= len(args):
                print(f"monkey: {arg} requires a file argument", file=sys.stderr)
                return 2
            file_path = args[i + 1]
            i += 2
        elif arg == "--format":
            if i + 1 >= len(args) or args[i + 1] not in FORMATS:
                print(f"monkey: --format expects one of {', '.join(FORMATS)}", file=sys.stderr)
                return 2
            fmt = args[i + 1]
            i += 2
        elif arg == "--tokens":
            mode = "tokens"
            i += 1
        elif arg == "--ast":
            mode = "ast"
            i += 1
        elif arg.startswith("-"):
            print(f"monkey: unknown flag '{arg}'", file=sys.stderr)
            return 2
        elif file_path == "":
            file_path = arg
            i += 1
        else:
            print(f"monkey: unexpected argument '{arg}'", file=sys.stderr)
            return 2

    if file_path == "":
        if mode != "run":
            print("monkey: missing file argument", file=sys.stderr)
            return 2
        return repl()
    if mode == "tokens":
        return dump_tokens(file_path)
    if mode == "ast":
        return dump_ast(file_path)
    return run_script_file(file_path, fmt)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nExiting.")
