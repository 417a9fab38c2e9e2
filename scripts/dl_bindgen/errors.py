"""
Error types

Generator-time faults abort generation before anything is written.
Link-time faults are raised by generated modules through the runtime.
"""


class GenerationError(Exception):
    """Base class for all generator-time faults"""


class InvalidSpec(GenerationError):
    """The binding document is structurally wrong (missing key, wrong type)"""


class MalformedPrototype(GenerationError):
    """A prototype string does not have the shape TYPE NAME(PARAMS)"""


class UnknownModifier(GenerationError):
    """A pattern instruction uses an unrecognized tag"""


class MalformedInstruction(GenerationError):
    """A known pattern tag with wrong operands"""


class DuplicateErrorCheck(GenerationError):
    """A function declares more than one OK instruction"""


class UnboundParameter(GenerationError):
    """A prototype parameter is not filled, or an instruction names a
    parameter the prototype does not have"""


class DuplicateBinding(GenerationError):
    """Two instructions fill the same prototype parameter"""


class UnsupportedConstruct(GenerationError):
    """The construct cannot be marshaled (function pointers, arrays,
    opaque-element slices, MUT of a handle, ...)"""


class LinkError(Exception):
    """Base class for errors raised when a generated module is constructed"""


class LibraryNotFound(LinkError):
    """The shared library could not be opened"""

    def __init__(self, name: str):
        super().__init__(f'shared library "{name}" could not be opened')
        self.name = name


class MissingSymbol(LinkError):
    """A symbol does not exist in the opened library"""

    def __init__(self, symbol: str):
        super().__init__(f'symbol "{symbol}" does not exist')
        self.symbol = symbol
