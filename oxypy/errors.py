class OxyError(Exception):
    pass


class OxySyntaxError(OxyError):
    def __init__(self, message, line=None, column=None):
        self.line = line
        self.column = column
        if line is None:
            prefix = ""
        elif column is None:
            prefix = f"line {line}: "
        else:
            prefix = f"line {line}:{column}: "
        super().__init__(f"{prefix}{message}")


class LexError(OxySyntaxError):
    def __init__(self, char, line=None, column=None, message=None):
        self.char = char
        super().__init__(message or f"unexpected character {char!r}", line, column)


class ParseError(OxySyntaxError):
    def __init__(self, expected, found, line=None, column=None):
        self.expected = expected
        self.found = found
        super().__init__(f"expected {expected}, found {found}", line, column)


class OxyRuntimeError(OxyError):
    def __init__(self, message):
        self.message = message
        self.line = None
        super().__init__(message)

    def __str__(self):
        if self.line is None:
            return self.message
        return f"line {self.line}: {self.message}"


class OxyNameError(OxyRuntimeError):
    def __init__(self, name, message=None):
        self.name = name
        super().__init__(message or f"undefined name '{name}'")


class TypeMismatchError(OxyRuntimeError):
    pass


class DivisionByZeroError(OxyRuntimeError):
    def __init__(self, message="division by zero"):
        super().__init__(message)


class ArityError(OxyRuntimeError):
    pass


class NoSuchMethodError(OxyRuntimeError):
    def __init__(self, class_name, method):
        self.class_name = class_name
        self.method = method
        super().__init__(f"class '{class_name}' has no method '{method}'")


class NoSuchFieldError(OxyRuntimeError):
    def __init__(self, class_name, field):
        self.class_name = class_name
        self.field = field
        super().__init__(f"class '{class_name}' has no field '{field}'")


class IndexOutOfBoundsError(OxyRuntimeError):
    def __init__(self, index, length):
        self.index = index
        self.length = length
        super().__init__(f"index {index} out of bounds for length {length}")


class InvalidRangeError(OxyRuntimeError):
    pass


class BuiltinError(OxyRuntimeError):
    def __init__(self, name, reason):
        self.name = name
        self.reason = reason
        super().__init__(f"{name}(): {reason}")


class ConversionError(BuiltinError):
    pass
