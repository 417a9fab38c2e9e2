"""
Type mapping module

Maps C type spellings to canonical tokens and canonical tokens back to the
safe types exposed by generated wrappers.
"""

from dataclasses import dataclass
from typing import Optional, Union, TYPE_CHECKING

from .codegen import normalize_type_name
from .errors import InvalidSpec, MalformedPrototype

if TYPE_CHECKING:
    from .ir import SpecModel


# C spelling -> canonical scalar token
SCALAR_TYPES = {
    'int8_t': 'i8', 'uint8_t': 'u8',
    'int16_t': 'i16', 'uint16_t': 'u16',
    'int32_t': 'i32', 'uint32_t': 'u32',
    'int64_t': 'i64', 'uint64_t': 'u64',
    'size_t': 'usize', 'uintptr_t': 'usize',
    'ssize_t': 'isize', 'intptr_t': 'isize', 'ptrdiff_t': 'isize',
    'float': 'f32', 'double': 'f64',
    'bool': 'bool', '_Bool': 'bool',
    'void': 'void',
    'char': 'c_char',
    'signed char': 'c_schar',
    'unsigned char': 'c_uchar',
    'short': 'c_short', 'short int': 'c_short',
    'signed short': 'c_short', 'signed short int': 'c_short',
    'unsigned short': 'c_ushort', 'unsigned short int': 'c_ushort',
    'int': 'c_int', 'signed': 'c_int', 'signed int': 'c_int',
    'unsigned': 'c_uint', 'unsigned int': 'c_uint',
    'long': 'c_long', 'long int': 'c_long',
    'signed long': 'c_long', 'signed long int': 'c_long',
    'unsigned long': 'c_ulong', 'unsigned long int': 'c_ulong',
    'long long': 'c_longlong', 'long long int': 'c_longlong',
    'signed long long': 'c_longlong', 'signed long long int': 'c_longlong',
    'unsigned long long': 'c_ulonglong', 'unsigned long long int': 'c_ulonglong',
}

# Canonical token -> safe token.  C named integers only guarantee a minimum
# width, so their safe type is that minimum.
SAFE_SCALARS = {
    'i8': 'i8', 'u8': 'u8',
    'i16': 'i16', 'u16': 'u16',
    'i32': 'i32', 'u32': 'u32',
    'i64': 'i64', 'u64': 'u64',
    'isize': 'isize', 'usize': 'usize',
    'f32': 'f32', 'f64': 'f64',
    'bool': 'bool',
    'c_char': 'u8', 'c_schar': 'i8', 'c_uchar': 'u8',
    'c_short': 'i16', 'c_ushort': 'u16',
    'c_int': 'i16', 'c_uint': 'u16',
    'c_long': 'i32', 'c_ulong': 'u32',
    'c_longlong': 'i64', 'c_ulonglong': 'u64',
}

INTEGER_TOKENS = frozenset(t for t in SAFE_SCALARS if t not in ('f32', 'f64', 'bool'))

CHAR_TOKENS = frozenset(['c_char', 'c_schar', 'c_uchar'])

# Generic handle class for pointers that are not declared addresses
GENERIC_HANDLE = 'Handle'


@dataclass(frozen=True)
class Scalar:
    """Scalar value (enum types carry the enum's safe name)"""
    token: str
    enum: Optional[str] = None

    @property
    def is_void(self) -> bool:
        return self.token == 'void'

    @property
    def is_integer(self) -> bool:
        return self.token in INTEGER_TOKENS


@dataclass(frozen=True)
class Opaque:
    """Declared address type: pointer-sized, never inspected"""
    name: str


@dataclass(frozen=True)
class Struct:
    """Transparent struct type"""
    name: str


@dataclass(frozen=True)
class Pointer:
    """One level of indirection"""
    target: 'CType'
    const: bool = False


CType = Union[Scalar, Opaque, Struct, Pointer]


@dataclass(frozen=True)
class SafeType:
    """Public surface type of a value

    kind is one of 'scalar', 'enum', 'handle', 'struct', 'text'.
    name is the safe scalar token or the class name.
    """
    kind: str
    name: str


TEXT = SafeType('text', 'bytes')


def is_handle_like(ctype: 'CType') -> bool:
    """Opaque addresses and raw pointers are both carried as handles"""
    return isinstance(ctype, (Opaque, Pointer))


def is_text_pointer(ctype: 'CType') -> bool:
    """Check if type is char* (any signedness, any constness)"""
    return (isinstance(ctype, Pointer) and isinstance(ctype.target, Scalar)
            and ctype.target.token in CHAR_TOKENS)


class TypeMapper:
    """Maps raw C type strings through the declared types of a spec"""

    def __init__(self, spec: 'SpecModel'):
        self.spec = spec
        self._addresses = {a.name: normalize_type_name(a.name) for a in spec.addresses}
        self._enums = {}
        for en in spec.enums:
            underlying = self.map(en.type) if en.type else Scalar('c_int')
            if not isinstance(underlying, Scalar) or not underlying.is_integer:
                raise InvalidSpec(f'enum "{en.name}" has non-integer type "{en.type}"')
            self._enums[en.name] = Scalar(token=underlying.token, enum=normalize_type_name(en.name))

    @staticmethod
    def split(type_str: str) -> tuple[bool, int, str]:
        """Split a type into (const, pointer depth, base name)

        Examples:
            const char* -> (True, 1, 'char')
            unsigned long int -> (False, 0, 'unsigned long int')
            struct foo** -> (False, 2, 'foo')
            const char* const -> (True, 1, 'char')

        const reports the qualifier of the pointee; qualifiers after a '*'
        apply to the pointer itself and are dropped.
        """
        tokens = type_str.replace('*', ' * ').split()
        depth = tokens.count('*')
        base = tokens[:tokens.index('*')] if depth else tokens
        is_const = 'const' in base
        base = [t for t in base if t not in ('const', 'struct', 'enum', 'volatile')]
        return is_const, depth, ' '.join(base)

    def map(self, type_str: str) -> 'CType':
        """Map a C type string to a canonical type"""
        is_const, depth, base = self.split(type_str)
        if not base:
            raise MalformedPrototype(f'type "{type_str}" has no base name')

        result: CType
        if base in SCALAR_TYPES:
            result = Scalar(SCALAR_TYPES[base])
        elif base in self._addresses:
            result = Opaque(self._addresses[base])
        elif base in self._enums:
            result = self._enums[base]
        else:
            result = Struct(normalize_type_name(base))

        for _ in range(depth):
            result = Pointer(result, const=is_const)
        return result

    @staticmethod
    def safe_scalar(token: str) -> Optional[str]:
        """Inverse mapping for scalars; None means "no scalar equivalent" """
        return SAFE_SCALARS.get(token)

    def safe_type(self, ctype: 'CType') -> Optional[SafeType]:
        """Public surface type for a canonical type (None for void)"""
        if isinstance(ctype, Scalar):
            if ctype.is_void:
                return None
            if ctype.enum:
                return SafeType('enum', ctype.enum)
            return SafeType('scalar', self.safe_scalar(ctype.token))
        if isinstance(ctype, Opaque):
            return SafeType('handle', ctype.name)
        if isinstance(ctype, Struct):
            return SafeType('struct', ctype.name)
        if is_text_pointer(ctype):
            return TEXT
        return SafeType('handle', GENERIC_HANDLE)
