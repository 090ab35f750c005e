from __future__ import annotations
from typing import Any, Callable
from .errors import IndexOutOfBoundsError


class _Unit:
    """The value of expressions that produce nothing, printed as ``()``."""

    __slots__ = ()

    def __repr__(self):
        return "()"


UNIT = _Unit()


class OxyList:
    __slots__ = ("items",)

    def __init__(self, items: list | None = None):
        self.items: list = items if items is not None else []

    def _check_index(self, index: int) -> int:
        if index < 0 or index >= len(self.items):
            raise IndexOutOfBoundsError(index, len(self.items))
        return index

    def get(self, index: int):
        return self.items[self._check_index(index)]

    def set(self, index: int, value):
        self.items[self._check_index(index)] = value

    def __len__(self):
        return len(self.items)

    def __repr__(self):
        return f"OxyList({self.items!r})"


class ClassDefinition:
    __slots__ = ("name", "fields", "methods", "closure")

    def __init__(self, name: str, fields: list, methods: dict, closure):
        self.name = name
        self.fields = fields      # list of (field_name, type_name)
        self.methods = methods    # method name -> FnDecl
        self.closure = closure    # scope the class statement ran in

    @property
    def field_names(self) -> list[str]:
        return [name for name, _ in self.fields]

    def __repr__(self):
        return f"<class {self.name}>"


class Instance:
    __slots__ = ("cls", "fields")

    def __init__(self, cls: ClassDefinition, fields: dict[str, Any]):
        self.cls = cls
        self.fields = fields

    @property
    def class_name(self) -> str:
        return self.cls.name

    def __repr__(self):
        return f"<{self.class_name} instance>"


class UserFunction:
    __slots__ = ("decl", "closure")

    def __init__(self, decl, closure):
        self.decl = decl
        self.closure = closure

    @property
    def name(self) -> str:
        return self.decl.name

    def __repr__(self):
        return f"<fn {self.decl.name}>"


class BuiltinFunction:
    __slots__ = ("name", "func")

    def __init__(self, name: str, func: Callable):
        self.name = name
        self.func = func

    def __repr__(self):
        return f"<builtin {self.name}>"


def type_name(v) -> str:
    if v is UNIT:
        return "unit"
    if isinstance(v, bool):
        return "bool"
    if isinstance(v, int):
        return "int"
    if isinstance(v, float):
        return "float"
    if isinstance(v, str):
        return "string"
    if isinstance(v, OxyList):
        return "list"
    if isinstance(v, Instance):
        return v.class_name
    if isinstance(v, (UserFunction, BuiltinFunction)):
        return "function"
    if isinstance(v, ClassDefinition):
        return "class"
    return type(v).__name__


def format_float(v: float) -> str:
    if v != v:
        return "NaN"
    if v in (float("inf"), float("-inf")):
        return "inf" if v > 0 else "-inf"
    if v.is_integer() and abs(v) < 1e16:
        return str(int(v))
    return repr(v)


def to_display(v, nested: bool = False, _active: set | None = None) -> str:
    """Render a value the way `to_string` and `print` show it.

    A list or instance reached again while it is still being rendered prints
    as `[...]` or `Name {...}`.
    """
    if v is UNIT:
        return "()"
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, int):
        return str(v)
    if isinstance(v, float):
        return format_float(v)
    if isinstance(v, str):
        return f'"{v}"' if nested else v
    if isinstance(v, (OxyList, Instance)):
        active = _active if _active is not None else set()
        if id(v) in active:
            return "[...]" if isinstance(v, OxyList) else f"{v.class_name} {{...}}"
        active.add(id(v))
        try:
            if isinstance(v, OxyList):
                items = [to_display(item, True, active) for item in v.items]
                return "[" + ", ".join(items) + "]"
            if not v.fields:
                return f"{v.class_name} {{}}"
            parts = [f"{k}: {to_display(val, True, active)}" for k, val in v.fields.items()]
            return f"{v.class_name} {{ {', '.join(parts)} }}"
        finally:
            active.discard(id(v))
    if isinstance(v, (UserFunction, BuiltinFunction)):
        return f"<fn {v.name}>"
    if isinstance(v, ClassDefinition):
        return f"<class {v.name}>"
    return str(v)


_TYPE_DEFAULTS: dict[str, Callable[[], Any]] = {
    "i32": lambda: 0,
    "i64": lambda: 0,
    "int": lambda: 0,
    "f32": lambda: 0.0,
    "f64": lambda: 0.0,
    "float": lambda: 0.0,
    "bool": lambda: False,
    "string": lambda: "",
    "str": lambda: "",
    "list": OxyList,
}


def default_for_type(type_name_: str | None):
    """Initial field value used when an instance is built by a constructor call."""
    factory = _TYPE_DEFAULTS.get(type_name_ or "")
    return factory() if factory is not None else UNIT
