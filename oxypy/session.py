from __future__ import annotations
import logging
from typing import Any, TextIO
from .lexer import tokenize
from .parser import parse
from .interpreter import Interpreter, Environment
from .values import UNIT, OxyList, Instance, UserFunction, BuiltinFunction, ClassDefinition
from .builtins import install_builtins
from .errors import OxyRuntimeError

logger = logging.getLogger(__name__)


class OxySession:
    """An OxyPy execution session with one persistent root environment.

    Declarations made by one `execute` call stay visible to the next, which is
    what the interactive front end relies on.

    Args:
        max_instructions: Max statements/loop iterations per execute call
            (default: unlimited).
        max_call_depth: Max function call nesting depth (default 200).
        max_output_bytes: Max total print output in bytes (default: unlimited).
        implicit_declare: Whether `x = 1` on an undeclared `x` creates a binding
            in the innermost scope (default) or raises OxyNameError.
        promote_mixed_numbers: Whether int/float operands promote to float
            (default) or raise TypeMismatchError.
        stdout: Stream that print output goes to; when omitted output is
            captured and returned by `execute`.
    """

    def __init__(
        self,
        max_instructions: int | None = None,
        max_call_depth: int = 200,
        max_output_bytes: int | None = None,
        implicit_declare: bool = True,
        promote_mixed_numbers: bool = True,
        stdout: TextIO | None = None,
    ):
        self.interpreter = Interpreter(
            max_instructions=max_instructions,
            max_call_depth=max_call_depth,
            max_output_bytes=max_output_bytes,
            implicit_declare=implicit_declare,
            promote_mixed_numbers=promote_mixed_numbers,
            stdout=stdout,
        )
        install_builtins(self.interpreter)
        self._env = Environment()

    @property
    def env(self) -> Environment:
        return self._env

    def run(self, code: str) -> Any:
        """Lex, parse and evaluate a source unit; returns the raw result value.

        Lex and parse errors are raised before anything runs. A runtime error
        stops the unit at the failing statement; bindings made by the
        statements before it are kept.
        """
        self.interpreter.instructions = 0
        self.interpreter.call_depth = 0
        with self.interpreter.python_stack():
            program = parse(tokenize(code))
            logger.debug("running %d statement(s)", len(program.statements))
            return self.interpreter.execute(program, self._env)

    def execute(self, code: str) -> str:
        """Execute code and return captured print output as a string."""
        self.interpreter.output = []
        self.interpreter._output_bytes = 0
        self.run(code)
        return "".join(self.interpreter.output)

    def eval(self, expression: str) -> Any:
        """Evaluate an expression and return the result as a Python value."""
        return self._to_python(self.run(f"return {expression}"))

    def set(self, name: str, value: Any):
        """Bind a Python value in the root environment."""
        self._env.define(name, self._to_oxy(value))

    def get(self, name: str) -> Any:
        """Get a root-environment binding as a Python value."""
        return self._to_python(self._env.get(name))

    def reset(self):
        """Drop every binding made so far."""
        self._env = Environment()

    def _to_oxy(self, value: Any) -> Any:
        """Convert a Python value to an OxyPy value."""
        if value is None:
            return UNIT
        if isinstance(value, (bool, int, float, str)):
            return value
        if isinstance(value, (list, tuple)):
            return OxyList([self._to_oxy(v) for v in value])
        if isinstance(value, (OxyList, Instance)):
            return value
        if callable(value):
            def wrapper(args):
                py_args = [self._to_python(a) for a in args]
                return self._to_oxy(value(*py_args))
            return BuiltinFunction(getattr(value, "__name__", "?"), wrapper)
        raise OxyRuntimeError(f"cannot convert {type(value).__name__} to an OxyPy value")

    def _to_python(self, value: Any) -> Any:
        """Convert an OxyPy value to a Python value."""
        if value is UNIT:
            return None
        if isinstance(value, OxyList):
            return [self._to_python(v) for v in value.items]
        if isinstance(value, Instance):
            return {k: self._to_python(v) for k, v in value.fields.items()}
        if isinstance(value, (UserFunction, BuiltinFunction, ClassDefinition)):
            return self._function_to_python(value)
        return value

    def _function_to_python(self, func) -> callable:
        """Wrap an OxyPy callable as a Python callable."""
        interp = self.interpreter

        def wrapper(*args):
            oxy_args = [self._to_oxy(a) for a in args]
            with interp.python_stack():
                result = interp.call_value(func, oxy_args, getattr(func, "name", "?"))
            return self._to_python(result)

        return wrapper
