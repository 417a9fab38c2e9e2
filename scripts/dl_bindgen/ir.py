"""
IR (Intermediate Representation) module

Reads and represents a library's binding spec from a JSON document.
"""

from dataclasses import dataclass, field
from typing import Optional
import json
import os

from .errors import GenerationError, InvalidSpec
from .patterns import Instruction, parse_instructions
from .prototype import Prototype, parse_prototype


@dataclass
class EnumVariant:
    """Enum item; value is filled in from the previous item when omitted"""
    name: str
    value: int
    doc: str = ""


@dataclass
class EnumInfo:
    """Enum type information"""
    name: str
    variants: list[EnumVariant]
    type: Optional[str] = None
    doc: str = ""


@dataclass
class AddressInfo:
    """Opaque address type, exposed as a handle"""
    name: str
    doc: str = ""


@dataclass
class FieldInfo:
    """Struct field information"""
    name: str
    type: str


@dataclass
class StructInfo:
    """Struct type information"""
    name: str
    fields: list[FieldInfo]
    doc: str = ""


@dataclass
class FunctionBinding:
    """A prototype with its marshaling instructions and modules"""
    prototype: Prototype
    instructions: list[Instruction]
    modules: list[str]
    doc: str = ""

    @property
    def symbol(self) -> str:
        return self.prototype.name


@dataclass
class SpecModel:
    """Declarations of one shared library"""
    enums: list[EnumInfo] = field(default_factory=list)
    addresses: list[AddressInfo] = field(default_factory=list)
    structs: list[StructInfo] = field(default_factory=list)
    funcs: list[FunctionBinding] = field(default_factory=list)
    library: Optional[str] = None

    @classmethod
    def load(cls, json_path: str) -> 'SpecModel':
        """Load a spec from a JSON file"""
        with open(json_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> 'SpecModel':
        """Create a spec from an already decoded document"""
        if not isinstance(data, dict):
            raise InvalidSpec('spec document must be a JSON object')

        library = data.get('library')
        if library is not None and not isinstance(library, str):
            raise InvalidSpec('"library" must be a string')

        return cls(
            enums=[cls._parse_enum(d) for d in _section(data, 'enum')],
            addresses=[cls._parse_address(d) for d in _section(data, 'address')],
            structs=[cls._parse_struct(d) for d in _section(data, 'struct')],
            funcs=[cls._parse_func(d) for d in _section(data, 'func')],
            library=library,
        )

    @staticmethod
    def _parse_enum(decl: dict) -> EnumInfo:
        """Parse enum declaration"""
        variants = []
        next_value = 0
        for item in _list(decl, 'variant'):
            value = _get(item, 'value', int, None)
            if value is None:
                value = next_value
            variants.append(EnumVariant(
                name=_get(item, 'name', str),
                value=value,
                doc=_get(item, 'doc', str, ''),
            ))
            next_value = value + 1
        return EnumInfo(
            name=_get(decl, 'name', str),
            variants=variants,
            type=_get(decl, 'type', str, None),
            doc=_get(decl, 'doc', str, ''),
        )

    @staticmethod
    def _parse_address(decl: dict) -> AddressInfo:
        """Parse address declaration"""
        return AddressInfo(
            name=_get(decl, 'name', str),
            doc=_get(decl, 'doc', str, ''),
        )

    @staticmethod
    def _parse_struct(decl: dict) -> StructInfo:
        """Parse struct declaration"""
        fields = []
        for f in _list(decl, 'field'):
            fields.append(FieldInfo(
                name=_get(f, 'name', str),
                type=_get(f, 'type', str),
            ))
        return StructInfo(
            name=_get(decl, 'name', str),
            fields=fields,
            doc=_get(decl, 'doc', str, ''),
        )

    @staticmethod
    def _parse_func(decl: dict) -> FunctionBinding:
        """Parse function declaration"""
        proto_text = _get(decl, 'proto', str)
        prototype = parse_prototype(proto_text)
        try:
            instructions = parse_instructions(_list(decl, 'pat'))
        except GenerationError as e:
            raise type(e)(f'{prototype.name}: {e}') from None
        modules = _list(decl, 'mod')
        if not all(isinstance(m, str) for m in modules):
            raise InvalidSpec(f'{prototype.name}: "mod" must be a list of strings')
        return FunctionBinding(
            prototype=prototype,
            instructions=instructions,
            modules=modules,
            doc=_get(decl, 'doc', str, ''),
        )


def library_name_from_path(spec_path: str) -> str:
    """Shared object name derived from the binding file name

    Examples:
        ffi/foo.json -> libfoo
        ffi/foo,so,1.json -> libfoo.so.1
    """
    stem = os.path.splitext(os.path.basename(spec_path))[0]
    return 'lib' + stem.replace(',', '.')


_MISSING = object()


def _get(decl: dict, key: str, kind: type, default=_MISSING):
    """Typed lookup of one key of a declaration"""
    if not isinstance(decl, dict):
        raise InvalidSpec(f'expected a JSON object, got {decl!r}')
    if key not in decl:
        if default is _MISSING:
            raise InvalidSpec(f'missing "{key}" in {json.dumps(decl)}')
        return default
    value = decl[key]
    # bool is an int subclass; reject it where an integer is expected
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise InvalidSpec(f'"{key}" must be of type {kind.__name__} in {json.dumps(decl)}')
    return value


def _list(decl: dict, key: str) -> list:
    return _get(decl, key, list, [])


def _section(data: dict, key: str) -> list:
    section = _list(data, key)
    for decl in section:
        if not isinstance(decl, dict):
            raise InvalidSpec(f'entries of "{key}" must be JSON objects')
    return section
