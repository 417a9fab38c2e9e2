"""
dl_bindgen - safe binding generation for dynamically loaded C libraries

Reads a declarative JSON description of a library's functions, where every
function carries a C prototype and a list of marshaling instructions, and
generates a Python module that resolves the symbols at runtime through
ctypes and exposes safe wrappers.
"""

from .ir import SpecModel, FunctionBinding, EnumInfo, EnumVariant, AddressInfo, StructInfo, FieldInfo
from .prototype import Prototype, Param, parse_prototype
from .types import TypeMapper, SafeType
from .patterns import parse_instruction, parse_instructions
from .func import FuncInterpreter, SafeFunction
from .module import ModuleAssembler, Module, Assembly
from .emitter import Emitter, PythonEmitter
from .stubs import StubEmitter
from .generator import Generator
from .errors import (
    GenerationError, InvalidSpec, MalformedPrototype, UnknownModifier,
    MalformedInstruction, DuplicateErrorCheck, UnboundParameter,
    DuplicateBinding, UnsupportedConstruct,
    LinkError, LibraryNotFound, MissingSymbol,
)

__all__ = [
    'SpecModel', 'FunctionBinding', 'EnumInfo', 'EnumVariant', 'AddressInfo', 'StructInfo', 'FieldInfo',
    'Prototype', 'Param', 'parse_prototype',
    'TypeMapper', 'SafeType',
    'parse_instruction', 'parse_instructions',
    'FuncInterpreter', 'SafeFunction',
    'ModuleAssembler', 'Module', 'Assembly',
    'Emitter', 'PythonEmitter',
    'StubEmitter',
    'Generator',
    'GenerationError', 'InvalidSpec', 'MalformedPrototype', 'UnknownModifier',
    'MalformedInstruction', 'DuplicateErrorCheck', 'UnboundParameter',
    'DuplicateBinding', 'UnsupportedConstruct',
    'LinkError', 'LibraryNotFound', 'MissingSymbol',
]
