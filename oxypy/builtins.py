from __future__ import annotations
import re
import time
from .errors import ArityError, BuiltinError, ConversionError
from .interpreter import Interpreter
from .values import OxyList, BuiltinFunction, to_display, type_name

_INT_TEXT = re.compile(r"[+-]?[0-9]+")
_I64_MIN, _I64_MAX = -(1 << 63), (1 << 63) - 1


def _expect_args(name: str, args: list, count: int):
    if len(args) != count:
        raise ArityError(f"{name}() expects {count} argument(s), got {len(args)}")


def install_builtins(interp: Interpreter):
    """Install the native functions into the interpreter's built-in registry."""
    registry = interp.builtins

    def _bf(name, fn):
        registry[name] = BuiltinFunction(name, fn)

    def _print(args):
        interp.write(" ".join(to_display(a) for a in args))

    def _println(args):
        interp.write(" ".join(to_display(a) for a in args) + "\n")

    def _len(args):
        _expect_args("len", args, 1)
        v = args[0]
        if isinstance(v, (str, OxyList)):
            return len(v)
        raise BuiltinError("len", f"expected string or list, got {type_name(v)}")

    def _current_time(args):
        _expect_args("current_time", args, 0)
        return int(time.time())

    def _to_string(args):
        _expect_args("to_string", args, 1)
        return to_display(args[0])

    def _parse_int(args):
        _expect_args("parse_int", args, 1)
        v = args[0]
        if isinstance(v, bool):
            raise ConversionError("parse_int", "cannot parse bool as integer")
        if isinstance(v, int):
            return v
        if isinstance(v, float):
            if v != v or v in (float("inf"), float("-inf")):
                raise ConversionError("parse_int", f"cannot convert {to_display(v)} to integer")
            return int(v)
        if isinstance(v, str):
            if not _INT_TEXT.fullmatch(v):
                raise ConversionError("parse_int", f"cannot parse '{v}' as integer")
            n = int(v)
            if n < _I64_MIN or n > _I64_MAX:
                raise ConversionError("parse_int", f"'{v}' is out of range for a 64-bit integer")
            return n
        raise ConversionError("parse_int", f"cannot parse {type_name(v)} as integer")

    _bf("print", _print)
    _bf("println", _println)
    _bf("len", _len)
    _bf("current_time", _current_time)
    _bf("to_string", _to_string)
    _bf("parse_int", _parse_int)
