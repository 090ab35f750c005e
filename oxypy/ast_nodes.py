from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


# --------------- Expressions ---------------

@dataclass
class Literal:
    value: int | float | bool | str
    line: int = 0

@dataclass
class Identifier:
    name: str
    line: int = 0

@dataclass
class BinaryOp:
    op: str
    left: object
    right: object
    line: int = 0

@dataclass
class UnaryOp:
    op: str
    operand: object
    line: int = 0

@dataclass
class Call:
    callee: str
    args: list
    line: int = 0

@dataclass
class MethodCall:
    receiver: object
    method: str
    args: list
    line: int = 0

@dataclass
class FieldAccess:
    receiver: object
    field: str
    line: int = 0

@dataclass
class ListLiteral:
    elements: list
    line: int = 0

@dataclass
class Index:
    collection: object
    index: object
    line: int = 0

@dataclass
class ObjectLiteral:
    class_name: str
    fields: list  # list of (field_name, expr), in source order
    line: int = 0


# --------------- Statements ---------------

@dataclass
class Program:
    statements: list
    line: int = 0

@dataclass
class Block:
    statements: list
    line: int = 0

@dataclass
class VarDecl:
    name: str
    declared_type: Optional[str]
    initializer: object
    line: int = 0

@dataclass
class Assignment:
    target: Identifier | FieldAccess | Index
    value: object
    line: int = 0

@dataclass
class Param:
    name: str
    type_name: Optional[str]
    line: int = 0

@dataclass
class FnDecl:
    name: str
    params: list[Param]
    return_type: Optional[str]
    body: Block
    line: int = 0

@dataclass
class FieldDecl:
    name: str
    type_name: str
    line: int = 0

@dataclass
class ClassDecl:
    name: str
    fields: list[FieldDecl]
    methods: list[FnDecl]
    line: int = 0

@dataclass
class If:
    condition: object
    then_block: Block
    else_block: Optional[Block]  # an `else if` is a Block holding a single If
    line: int = 0

@dataclass
class While:
    condition: object
    body: Block
    line: int = 0

@dataclass
class For:
    var: str
    start: object
    end: object
    step: object  # may be None
    body: Block
    line: int = 0

@dataclass
class Return:
    value: object  # may be None
    line: int = 0

@dataclass
class ExprStmt:
    expr: object
    line: int = 0
