from __future__ import annotations
import contextlib
import math
import operator
import sys
from typing import Any, TextIO
from . import ast_nodes as ast
from .errors import (
    OxyRuntimeError, OxyNameError, TypeMismatchError, DivisionByZeroError,
    ArityError, NoSuchMethodError, NoSuchFieldError, IndexOutOfBoundsError,
    InvalidRangeError,
)
from .values import (
    UNIT, OxyList, Instance, ClassDefinition, UserFunction, BuiltinFunction,
    type_name, to_display, default_for_type,
)


_INT_BITS = 64
_INT_MIN = -(1 << (_INT_BITS - 1))
_INT_MOD = 1 << _INT_BITS

# Python frames consumed by one user-level call, with room for nested
# blocks and expressions inside the body.
_FRAMES_PER_CALL = 40
_FRAME_HEADROOM = 4000

_COMPARISONS = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


class ReturnValue:
    """Result of a block that hit `return`; carried up to the call frame."""

    __slots__ = ("value",)

    def __init__(self, value):
        self.value = value


class Environment:
    __slots__ = ("vars", "parent")

    def __init__(self, parent: Environment | None = None):
        self.vars: dict[str, Any] = {}
        self.parent = parent

    def get_local(self, name: str):
        scope = self
        while scope is not None:
            if name in scope.vars:
                return scope.vars[name], True
            scope = scope.parent
        return None, False

    def get(self, name: str):
        val, found = self.get_local(name)
        if not found:
            raise OxyNameError(name)
        return val

    def set_existing(self, name: str, value) -> bool:
        scope = self
        while scope is not None:
            if name in scope.vars:
                scope.vars[name] = value
                return True
            scope = scope.parent
        return False

    def assign(self, name: str, value, declare_missing: bool = False):
        if self.set_existing(name, value):
            return
        if not declare_missing:
            raise OxyNameError(name, f"assignment to undeclared name '{name}'")
        self.define(name, value)

    def define(self, name: str, value):
        self.vars[name] = value

    def push_scope(self) -> Environment:
        return Environment(self)

    def pop_scope(self) -> Environment:
        if self.parent is None:
            raise OxyRuntimeError("cannot pop the root scope")
        return self.parent


def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _wrap_int(n: int) -> int:
    """Reduce an integer to signed 64-bit two's complement."""
    return (n - _INT_MIN) % _INT_MOD + _INT_MIN


def _int_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        q = -q
    return _wrap_int(q)


def _int_mod(a: int, b: int) -> int:
    r = abs(a) % abs(b)
    return -r if a < 0 else r


class Interpreter:
    def __init__(
        self,
        max_instructions: int | None = None,
        max_call_depth: int = 200,
        max_output_bytes: int | None = None,
        implicit_declare: bool = True,
        promote_mixed_numbers: bool = True,
        stdout: TextIO | None = None,
    ):
        self.builtins: dict[str, BuiltinFunction] = {}
        self.call_depth = 0
        self.max_call_depth = max_call_depth
        self.max_instructions = max_instructions
        self.max_output_bytes = max_output_bytes
        self.implicit_declare = implicit_declare
        self.promote_mixed_numbers = promote_mixed_numbers
        self.stdout = stdout
        self.instructions = 0
        self.output: list[str] = []
        self._output_bytes = 0

    # ---- public interface ----

    def execute(self, program: ast.Program, env: Environment | None = None):
        """Run a program; returns the value of a top-level `return`, else UNIT."""
        env = env or Environment()
        try:
            result = self._exec_block(program.statements, env)
        except RecursionError:
            raise OxyRuntimeError("stack overflow") from None
        return result.value if result is not None else UNIT

    @contextlib.contextmanager
    def python_stack(self):
        """Raise Python's recursion limit so `max_call_depth` is reachable.

        The previous limit is restored on exit; it is never lowered.
        """
        previous = sys.getrecursionlimit()
        needed = self.max_call_depth * _FRAMES_PER_CALL + _FRAME_HEADROOM
        if needed > previous:
            sys.setrecursionlimit(needed)
        try:
            yield
        finally:
            sys.setrecursionlimit(previous)

    def write(self, text: str):
        self._output_bytes += len(text.encode("utf-8"))
        if self.max_output_bytes is not None and self._output_bytes > self.max_output_bytes:
            raise OxyRuntimeError("output limit exceeded")
        if self.stdout is not None:
            self.stdout.write(text)
            self.stdout.flush()
        else:
            self.output.append(text)

    def _tick(self):
        self.instructions += 1
        if self.max_instructions is not None and self.instructions > self.max_instructions:
            raise OxyRuntimeError("execution quota exceeded")

    # ---- block / statement execution ----

    def _exec_block(self, stmts: list, env: Environment) -> ReturnValue | None:
        for stmt in stmts:
            result = self._exec_stmt(stmt, env)
            if result is not None:
                return result
        return None

    def _exec_stmt(self, stmt, env: Environment) -> ReturnValue | None:
        self._tick()
        try:
            return self._exec_stmt_inner(stmt, env)
        except OxyRuntimeError as e:
            if e.line is None:
                e.line = stmt.line
            raise

    def _exec_stmt_inner(self, stmt, env: Environment) -> ReturnValue | None:
        if isinstance(stmt, ast.ExprStmt):
            self._eval(stmt.expr, env)
        elif isinstance(stmt, ast.VarDecl):
            env.define(stmt.name, self._eval(stmt.initializer, env))
        elif isinstance(stmt, ast.Assignment):
            self._exec_assign(stmt, env)
        elif isinstance(stmt, ast.If):
            return self._exec_if(stmt, env)
        elif isinstance(stmt, ast.While):
            return self._exec_while(stmt, env)
        elif isinstance(stmt, ast.For):
            return self._exec_for(stmt, env)
        elif isinstance(stmt, ast.Return):
            value = self._eval(stmt.value, env) if stmt.value is not None else UNIT
            return ReturnValue(value)
        elif isinstance(stmt, ast.Block):
            return self._exec_block(stmt.statements, env.push_scope())
        elif isinstance(stmt, ast.FnDecl):
            env.define(stmt.name, UserFunction(stmt, env))
        elif isinstance(stmt, ast.ClassDecl):
            fields = [(f.name, f.type_name) for f in stmt.fields]
            methods = {m.name: m for m in stmt.methods}
            env.define(stmt.name, ClassDefinition(stmt.name, fields, methods, env))
        else:
            raise OxyRuntimeError(f"cannot execute node: {type(stmt).__name__}")
        return None

    def _exec_assign(self, stmt: ast.Assignment, env: Environment):
        value = self._eval(stmt.value, env)
        target = stmt.target
        if isinstance(target, ast.Identifier):
            env.assign(target.name, value, declare_missing=self.implicit_declare)
        elif isinstance(target, ast.FieldAccess):
            obj = self._eval(target.receiver, env)
            if not isinstance(obj, Instance):
                raise TypeMismatchError(
                    f"cannot assign field '{target.field}' on a {type_name(obj)} value"
                )
            if target.field not in obj.fields:
                raise NoSuchFieldError(obj.class_name, target.field)
            obj.fields[target.field] = value
        elif isinstance(target, ast.Index):
            coll = self._eval(target.collection, env)
            index = self._eval_index_value(target.index, env)
            if not isinstance(coll, OxyList):
                raise TypeMismatchError(f"cannot assign into a {type_name(coll)} value by index")
            coll.set(index, value)
        else:
            raise OxyRuntimeError(f"invalid assignment target: {type(target).__name__}")

    def _eval_condition(self, node, env: Environment, keyword: str) -> bool:
        value = self._eval(node, env)
        if not isinstance(value, bool):
            raise TypeMismatchError(f"'{keyword}' condition must be bool, got {type_name(value)}")
        return value

    def _exec_if(self, stmt: ast.If, env: Environment):
        if self._eval_condition(stmt.condition, env, "if"):
            return self._exec_block(stmt.then_block.statements, env.push_scope())
        if stmt.else_block is not None:
            return self._exec_block(stmt.else_block.statements, env.push_scope())
        return None

    def _exec_while(self, stmt: ast.While, env: Environment):
        while self._eval_condition(stmt.condition, env, "while"):
            self._tick()
            result = self._exec_block(stmt.body.statements, env.push_scope())
            if result is not None:
                return result
        return None

    def _exec_for(self, stmt: ast.For, env: Environment):
        start = self._eval(stmt.start, env)
        end = self._eval(stmt.end, env)
        step = self._eval(stmt.step, env) if stmt.step is not None else 1

        for label, v in (("start", start), ("end", end), ("step", step)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeMismatchError(f"'for' range {label} must be int, got {type_name(v)}")
        if step == 0:
            raise InvalidRangeError("'for' step is zero")

        i = start
        while (step > 0 and i < end) or (step < 0 and i > end):
            self._tick()
            inner = env.push_scope()
            inner.define(stmt.var, i)
            result = self._exec_block(stmt.body.statements, inner)
            if result is not None:
                return result
            i += step
        return None

    # ---- expression evaluation ----

    def _eval(self, node, env: Environment) -> Any:
        if isinstance(node, ast.Literal):
            return node.value
        if isinstance(node, ast.Identifier):
            return env.get(node.name)
        if isinstance(node, ast.BinaryOp):
            return self._eval_binop(node, env)
        if isinstance(node, ast.UnaryOp):
            return self._eval_unaryop(node, env)
        if isinstance(node, ast.Call):
            return self._eval_call(node, env)
        if isinstance(node, ast.MethodCall):
            return self._eval_method_call(node, env)
        if isinstance(node, ast.FieldAccess):
            obj = self._eval(node.receiver, env)
            if not isinstance(obj, Instance):
                raise TypeMismatchError(
                    f"cannot access field '{node.field}' on a {type_name(obj)} value"
                )
            if node.field not in obj.fields:
                raise NoSuchFieldError(obj.class_name, node.field)
            return obj.fields[node.field]
        if isinstance(node, ast.ListLiteral):
            return OxyList([self._eval(e, env) for e in node.elements])
        if isinstance(node, ast.Index):
            return self._eval_index(node, env)
        if isinstance(node, ast.ObjectLiteral):
            return self._eval_object_literal(node, env)
        raise OxyRuntimeError(f"cannot evaluate node: {type(node).__name__}")

    def _require_bool(self, value, op: str) -> bool:
        if not isinstance(value, bool):
            raise TypeMismatchError(f"operator '{op}' expects bool operands, got {type_name(value)}")
        return value

    def _eval_binop(self, node: ast.BinaryOp, env: Environment):
        op = node.op
        # Short-circuit operators
        if op == "&&":
            if not self._require_bool(self._eval(node.left, env), op):
                return False
            return self._require_bool(self._eval(node.right, env), op)
        if op == "||":
            if self._require_bool(self._eval(node.left, env), op):
                return True
            return self._require_bool(self._eval(node.right, env), op)

        left = self._eval(node.left, env)
        right = self._eval(node.right, env)

        if op == "+" and isinstance(left, str):
            return left + to_display(right)
        if op in ("+", "-", "*", "/", "%"):
            return self._arith(op, left, right)
        if op == "==":
            return self._values_equal(left, right)
        if op == "!=":
            return not self._values_equal(left, right)
        if op in _COMPARISONS:
            return self._compare(op, left, right)

        raise OxyRuntimeError(f"unknown binary operator: {op}")

    def _eval_unaryop(self, node: ast.UnaryOp, env: Environment):
        op = node.op
        val = self._eval(node.operand, env)

        if op == "!":
            return not self._require_bool(val, op)
        if op == "-":
            if isinstance(val, bool) or not isinstance(val, (int, float)):
                raise TypeMismatchError(f"cannot negate a {type_name(val)} value")
            if isinstance(val, int):
                return _wrap_int(-val)
            return -val

        raise OxyRuntimeError(f"unknown unary operator: {op}")

    def _eval_index_value(self, node, env: Environment) -> int:
        index = self._eval(node, env)
        if not isinstance(index, int) or isinstance(index, bool):
            raise TypeMismatchError(f"index must be int, got {type_name(index)}")
        return index

    def _eval_index(self, node: ast.Index, env: Environment):
        coll = self._eval(node.collection, env)
        index = self._eval_index_value(node.index, env)
        if isinstance(coll, OxyList):
            return coll.get(index)
        if isinstance(coll, str):
            if index < 0 or index >= len(coll):
                raise IndexOutOfBoundsError(index, len(coll))
            return coll[index]
        raise TypeMismatchError(f"cannot index a {type_name(coll)} value")

    def _eval_object_literal(self, node: ast.ObjectLiteral, env: Environment):
        cls, found = env.get_local(node.class_name)
        if not found:
            raise OxyNameError(node.class_name, f"undefined class '{node.class_name}'")
        if not isinstance(cls, ClassDefinition):
            raise TypeMismatchError(f"'{node.class_name}' is not a class")

        declared = cls.field_names
        supplied: dict[str, Any] = {}
        for name, expr in node.fields:
            if name not in declared:
                raise NoSuchFieldError(cls.name, name)
            if name in supplied:
                raise ArityError(f"field '{name}' supplied more than once for class '{cls.name}'")
            supplied[name] = self._eval(expr, env)

        missing = [name for name in declared if name not in supplied]
        if missing:
            raise ArityError(f"missing field(s) {', '.join(missing)} for class '{cls.name}'")
        return Instance(cls, {name: supplied[name] for name in declared})

    # ---- function calls ----

    def _eval_call(self, node: ast.Call, env: Environment):
        func, found = env.get_local(node.callee)
        if not found:
            func = self.builtins.get(node.callee)
            if func is None:
                raise OxyNameError(node.callee, f"undefined function '{node.callee}'")
        args = [self._eval(a, env) for a in node.args]
        return self.call_value(func, args, node.callee)

    def _eval_method_call(self, node: ast.MethodCall, env: Environment):
        obj = self._eval(node.receiver, env)
        if not isinstance(obj, Instance):
            raise TypeMismatchError(
                f"cannot call method '{node.method}' on a {type_name(obj)} value"
            )
        decl = obj.cls.methods.get(node.method)
        if decl is None:
            raise NoSuchMethodError(obj.class_name, node.method)
        args = [self._eval(a, env) for a in node.args]
        return self._call_user(decl, obj.cls.closure, args, obj)

    def call_value(self, func, args: list, name: str = "?"):
        if isinstance(func, BuiltinFunction):
            result = func.func(args)
            return UNIT if result is None else result
        if isinstance(func, UserFunction):
            return self._call_user(func.decl, func.closure, args)
        if isinstance(func, ClassDefinition):
            return self._construct(func, args)
        raise TypeMismatchError(f"'{name}' is not callable (it is a {type_name(func)} value)")

    def _construct(self, cls: ClassDefinition, args: list) -> Instance:
        fields = {name: default_for_type(t) for name, t in cls.fields}
        instance = Instance(cls, fields)
        init = cls.methods.get("__init__")
        if init is not None:
            self._call_user(init, cls.closure, args, instance)
        elif args:
            raise ArityError(
                f"class '{cls.name}' has no __init__ and takes no arguments, got {len(args)}"
            )
        return instance

    def _call_user(self, decl: ast.FnDecl, closure: Environment, args: list, receiver=None):
        scope = closure.push_scope()
        params = decl.params
        kind = "function"
        if receiver is not None:
            kind = "method"
            scope.define("self", receiver)
            if params and params[0].name == "self":
                params = params[1:]
        if len(args) != len(params):
            raise ArityError(
                f"{kind} '{decl.name}' expects {len(params)} argument(s), got {len(args)}"
            )
        for param, arg in zip(params, args):
            scope.define(param.name, arg)

        self.call_depth += 1
        if self.call_depth > self.max_call_depth:
            self.call_depth -= 1
            raise OxyRuntimeError("stack overflow")
        try:
            result = self._exec_block(decl.body.statements, scope)
        except RecursionError:
            raise OxyRuntimeError("stack overflow") from None
        finally:
            self.call_depth -= 1
        return result.value if result is not None else UNIT

    # ---- arithmetic helpers ----

    def _numeric_pair(self, op: str, left, right):
        if not (_is_number(left) and _is_number(right)):
            raise TypeMismatchError(
                f"unsupported operand types for '{op}': {type_name(left)} and {type_name(right)}"
            )
        if isinstance(left, int) and isinstance(right, int):
            return left, right
        if isinstance(left, float) and isinstance(right, float):
            return left, right
        if not self.promote_mixed_numbers:
            raise TypeMismatchError(
                f"mixed int/float operands for '{op}': {type_name(left)} and {type_name(right)}"
            )
        return float(left), float(right)

    def _arith(self, op: str, left, right):
        a, b = self._numeric_pair(op, left, right)
        if op in ("/", "%") and b == 0:
            raise DivisionByZeroError("division by zero" if op == "/" else "modulo by zero")
        if isinstance(a, int):
            if op == "+":
                return _wrap_int(a + b)
            if op == "-":
                return _wrap_int(a - b)
            if op == "*":
                return _wrap_int(a * b)
            if op == "/":
                return _int_div(a, b)
            return _int_mod(a, b)
        if op == "+":
            return a + b
        if op == "-":
            return a - b
        if op == "*":
            return a * b
        if op == "/":
            return a / b
        return math.fmod(a, b)

    def _compare(self, op: str, left, right) -> bool:
        if isinstance(left, str) and isinstance(right, str):
            return _COMPARISONS[op](left, right)
        a, b = self._numeric_pair(op, left, right)
        return _COMPARISONS[op](a, b)

    def _same_kind(self, left, right) -> bool:
        if _is_number(left) and _is_number(right):
            return self.promote_mixed_numbers or type(left) is type(right)
        if isinstance(left, bool) or isinstance(right, bool):
            return isinstance(left, bool) and isinstance(right, bool)
        for kind in (str, OxyList, Instance, ClassDefinition):
            if isinstance(left, kind) or isinstance(right, kind):
                return isinstance(left, kind) and isinstance(right, kind)
        functions = (UserFunction, BuiltinFunction)
        if isinstance(left, functions) or isinstance(right, functions):
            return isinstance(left, functions) and isinstance(right, functions)
        return left is UNIT and right is UNIT

    def _values_equal(self, left, right) -> bool:
        if not self._same_kind(left, right):
            raise TypeMismatchError(f"cannot compare {type_name(left)} with {type_name(right)}")
        if isinstance(left, OxyList):
            if left is right:
                return True
            if len(left) != len(right):
                return False
            for a, b in zip(left.items, right.items):
                if not (self._same_kind(a, b) and self._values_equal(a, b)):
                    return False
            return True
        if isinstance(left, (Instance, ClassDefinition, UserFunction, BuiltinFunction)):
            return left is right
        return left == right
