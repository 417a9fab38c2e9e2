"""
Python emitter

Renders an Assembly as a ctypes-based Python module.
"""

from abc import ABC, abstractmethod
from typing import Optional, TYPE_CHECKING

from .codegen import CodeGen, normalize_type_name, safe_ident
from .errors import UnsupportedConstruct
from .types import (
    CType, Scalar, Opaque, Struct, Pointer, SafeType, GENERIC_HANDLE,
    is_text_pointer,
)

if TYPE_CHECKING:
    from .func import SafeFunction, PublicParam, Output, ReturnShape, Step
    from .ir import EnumInfo, AddressInfo
    from .module import Assembly, Module, ModuleEntry, StructLayout

# Canonical scalar token -> ctypes type
CTYPES_NAMES = {
    'i8': 'ctypes.c_int8', 'u8': 'ctypes.c_uint8',
    'i16': 'ctypes.c_int16', 'u16': 'ctypes.c_uint16',
    'i32': 'ctypes.c_int32', 'u32': 'ctypes.c_uint32',
    'i64': 'ctypes.c_int64', 'u64': 'ctypes.c_uint64',
    'isize': 'ctypes.c_ssize_t', 'usize': 'ctypes.c_size_t',
    'f32': 'ctypes.c_float', 'f64': 'ctypes.c_double',
    'bool': 'ctypes.c_bool',
    'c_char': 'ctypes.c_ubyte', 'c_schar': 'ctypes.c_byte', 'c_uchar': 'ctypes.c_ubyte',
    'c_short': 'ctypes.c_short', 'c_ushort': 'ctypes.c_ushort',
    'c_int': 'ctypes.c_int', 'c_uint': 'ctypes.c_uint',
    'c_long': 'ctypes.c_long', 'c_ulong': 'ctypes.c_ulong',
    'c_longlong': 'ctypes.c_longlong', 'c_ulonglong': 'ctypes.c_ulonglong',
    'void': 'None',
}

# Safe scalar token -> Python annotation
PYTHON_SCALARS = {
    'f32': 'float', 'f64': 'float',
    'bool': 'bool',
}

HEADER = '# machine generated by dl_bindgen, do not edit'


class Emitter(ABC):
    """Renders an assembled binding model as target source text"""

    @abstractmethod
    def render(self, assembly: 'Assembly') -> str:
        """Return the complete output text"""
        pass


def annotation(safe: Optional[SafeType]) -> str:
    """Python annotation for a safe type"""
    if safe is None:
        return 'None'
    if safe.kind == 'scalar':
        return PYTHON_SCALARS.get(safe.name, 'int')
    if safe.kind == 'text':
        return 'Optional[bytes]'
    if safe.kind == 'handle' and safe.name == GENERIC_HANDLE:
        return '_rt.Handle'
    return safe.name


def param_annotation(param: 'PublicParam') -> str:
    """Python annotation for a public parameter"""
    kind = param.kind
    if kind == 'text':
        return 'Union[str, bytes]'
    if kind == 'raw':
        return 'Optional[int]'
    if kind == 'mut':
        return '_rt.Ref'
    if kind == 'opt_mut':
        return 'Optional[_rt.Ref]'
    if kind == 'slice':
        if param.safe.kind == 'scalar' and param.safe.name == 'u8':
            return 'Union[bytes, Sequence[int]]'
        return f'Sequence[{annotation(param.safe)}]'
    if kind == 'buffer':
        return '_rt.Buffer'
    return annotation(param.safe)


def return_annotation(shape: 'ReturnShape') -> str:
    """Python annotation for a return shape (fallible wrappers raise)"""
    if shape.kind == 'unit':
        return 'None'
    if shape.kind == 'single':
        return annotation(shape.outputs[0].safe)
    return 'Tuple[' + ', '.join(annotation(o.safe) for o in shape.outputs) + ']'


def signature(function: 'SafeFunction') -> str:
    """def line of a wrapper method, without the trailing colon"""
    params = ['self'] + [f'{safe_ident(p.name)}: {param_annotation(p)}' for p in function.params]
    return f'def {function.method}({", ".join(params)}) -> {return_annotation(function.returns)}'


class PythonEmitter(Emitter):
    """Renders a ctypes module"""

    def __init__(self, runtime_module: str = 'dl_bindgen.runtime'):
        self.runtime_module = runtime_module
        self._structs: set[str] = set()

    def render(self, assembly: 'Assembly') -> str:
        gen = CodeGen()
        self._structs = {s.name for s in assembly.structs}

        gen.line(HEADER)
        gen.line(f'"""Bindings for {assembly.library}"""')
        gen.line()
        gen.line('import ctypes')
        gen.line('import enum')
        gen.line('from typing import Optional, Sequence, Tuple, Union')
        gen.line()
        package, _, module = self.runtime_module.rpartition('.')
        gen.line(f'from {package} import {module} as _rt' if package else f'import {module} as _rt')
        gen.line()
        gen.line(f'SHARED_OBJECT_NAME = {assembly.library!r}')
        gen.line()

        for en in assembly.enums:
            self._gen_enum(en, gen)
        for address in assembly.addresses:
            self._gen_address(address, gen)
        for struct in assembly.structs:
            self._gen_struct_class(struct, gen)
        for struct in assembly.structs:
            self._gen_struct_fields(struct, gen)
        for module in assembly.modules:
            self._gen_module(module, gen)

        return gen.output()

    # --- types -------------------------------------------------------------

    def value_ctype(self, ctype: CType) -> str:
        """ctypes type holding one value of ctype"""
        if isinstance(ctype, Scalar):
            return CTYPES_NAMES[ctype.token]
        if isinstance(ctype, Opaque):
            return 'ctypes.c_void_p'
        if isinstance(ctype, Struct):
            if ctype.name not in self._structs:
                raise UnsupportedConstruct(f'struct "{ctype.name}" is used by value but never declared')
            return ctype.name
        if is_text_pointer(ctype):
            return 'ctypes.c_char_p'
        return 'ctypes.c_void_p'

    def arg_ctype(self, ctype: CType) -> str:
        """ctypes type used in argtypes and struct fields"""
        if not isinstance(ctype, Pointer) or is_text_pointer(ctype):
            return self.value_ctype(ctype)
        target = ctype.target
        if isinstance(target, Scalar) and target.is_void:
            return 'ctypes.c_void_p'
        if isinstance(target, Struct) and target.name not in self._structs:
            return 'ctypes.c_void_p'
        return f'ctypes.POINTER({self.value_ctype(target)})'

    def restype(self, ctype: CType) -> str:
        """ctypes restype; pointers come back as plain addresses"""
        if isinstance(ctype, Pointer) and not is_text_pointer(ctype):
            return 'ctypes.c_void_p'
        return self.value_ctype(ctype)

    @staticmethod
    def handle_class(safe: SafeType) -> str:
        return '_rt.Handle' if safe.name == GENERIC_HANDLE else safe.name

    def to_safe(self, expr: str, safe: SafeType, raw: CType) -> str:
        """Expression converting a raw Python value to its safe type"""
        if safe.kind == 'scalar':
            if isinstance(raw, Scalar) and raw.token.startswith('c_'):
                return f'_rt.narrow({safe.name!r}, {expr})'
            return expr
        if safe.kind == 'enum':
            return f'{safe.name}({expr})'
        if safe.kind == 'handle':
            return f'{self.handle_class(safe)}({expr})'
        return expr

    # --- declarations ------------------------------------------------------

    def _gen_enum(self, en: 'EnumInfo', gen: CodeGen):
        """Generate an IntEnum"""
        gen.line()
        with gen.block(f'class {normalize_type_name(en.name)}(enum.IntEnum):'):
            if en.doc:
                gen.docstring(en.doc)
            for variant in en.variants:
                if variant.doc:
                    gen.line(f'# {variant.doc}')
                gen.line(f'{safe_ident(variant.name)} = {variant.value}')
            if not en.doc and not en.variants:
                gen.line('pass')
        gen.line()

    def _gen_address(self, address: 'AddressInfo', gen: CodeGen):
        """Generate a Handle subclass"""
        gen.line()
        with gen.block(f'class {normalize_type_name(address.name)}(_rt.Handle):'):
            gen.docstring(address.doc or f'Opaque {address.name} handle')
            gen.line('__slots__ = ()')
        gen.line()

    def _gen_struct_class(self, struct: 'StructLayout', gen: CodeGen):
        gen.line()
        with gen.block(f'class {struct.name}(ctypes.Structure):'):
            if struct.doc:
                gen.docstring(struct.doc)
            else:
                gen.line('pass')
        gen.line()

    def _gen_struct_fields(self, struct: 'StructLayout', gen: CodeGen):
        """Fields are assigned after all classes exist, so structs can
        point at each other"""
        gen.line(f'{struct.name}._fields_ = [')
        gen.indent()
        for name, ctype in struct.fields:
            gen.line(f'({name!r}, {self.arg_ctype(ctype)}),')
        gen.dedent()
        gen.line(']')
        gen.line()

    # --- modules -----------------------------------------------------------

    def _gen_module(self, module: 'Module', gen: CodeGen):
        """Generate a module class: constructor plus one method per function"""
        gen.line()
        with gen.block(f'class {module.name}:'):
            gen.docstring(f'Functions of {module.name}, resolved from SHARED_OBJECT_NAME')
            gen.line()
            with gen.block('def __init__(self):'):
                gen.line('library = _rt.load_library(SHARED_OBJECT_NAME)')
                for entry in module.entries:
                    self._gen_resolve(entry, gen)
            for entry in module.entries:
                gen.line()
                self._gen_method(entry, gen)
        gen.line()

    def _gen_resolve(self, entry: 'ModuleEntry', gen: CodeGen):
        function = entry.function
        argtypes = ', '.join(self.arg_ctype(t) for t in function.raw_params)
        gen.line(f'self.{entry.slot.attr} = library.resolve(')
        gen.line(f'    {function.symbol!r}, {self.restype(function.raw_return)}, [{argtypes}])')

    def _gen_method(self, entry: 'ModuleEntry', gen: CodeGen):
        function = entry.function
        with gen.block(signature(function) + ':'):
            if function.doc:
                gen.docstring(function.doc)

            for param in function.params:
                if param.kind == 'slice':
                    ident = safe_ident(param.name)
                    gen.line(f'{ident}_arr = _rt.slice_arg({self.value_ctype(param.element)}, {ident})')
            for step in function.preamble:
                self._gen_step(step, function, gen)

            call = f'self.{entry.slot.attr}({", ".join(self._arg_expr(a) for a in function.args)})'
            if self._uses_return(function):
                gen.line(f'_ret = {call}')
            else:
                gen.line(call)

            # buffer lengths are only meaningful once the call succeeded
            lengths = [s for s in function.postamble if s.op == 'set_length']
            for step in function.postamble:
                if step.op != 'set_length':
                    self._gen_step(step, function, gen)

            if function.check is not None:
                check = function.check
                with gen.block(f'if {self._failure_test(check)}:'):
                    gen.line(f'raise _rt.CallFailed({function.symbol!r}, _ret)')

            for step in lengths:
                self._gen_step(step, function, gen)

            self._gen_return(function.returns, gen)

    @staticmethod
    def _uses_return(function: 'SafeFunction') -> bool:
        if function.check is not None:
            return True
        if any(o.name is None for o in function.returns.outputs):
            return True
        return any(s.op == 'set_length' and s.source is None for s in function.postamble)

    @staticmethod
    def _failure_test(check) -> str:
        comparator = check.failure_comparator
        if check.literal is None:
            return '_ret is None' if comparator == '==' else '_ret is not None'
        return f'_ret {comparator} {check.literal!r}'

    def _arg_expr(self, arg) -> str:
        ident = safe_ident(arg.name)
        op = arg.op
        if op == 'slot_address':
            return f'ctypes.byref({ident})'
        if op == 'text':
            return f'_rt.text_arg({ident})'
        if op == 'raw':
            return ident
        if op == 'handle':
            return f'{ident}.address'
        if op == 'value':
            if arg.safe.kind == 'struct':
                return ident
            if arg.safe.kind == 'scalar':
                return f'{PYTHON_SCALARS.get(arg.safe.name, "int")}({ident})'
            return f'int({ident})'
        if op == 'temp_address':
            return f'ctypes.byref({ident}_tmp)'
        if op == 'opt_temp_address':
            return f'{ident}_arg'
        if op == 'slice_base':
            return f'{ident}_arr'
        if op == 'slice_len':
            return f'{ident}_arr._length_'
        if op == 'buffer_base':
            return f'{ident}.base'
        if op == 'buffer_capacity':
            return f'{ident}.capacity'
        raise ValueError(f'unknown argument op {op!r}')

    def _gen_step(self, step: 'Step', function: 'SafeFunction', gen: CodeGen):
        ident = safe_ident(step.name)
        op = step.op
        if op == 'alloc':
            gen.line(f'{ident} = {self.value_ctype(step.raw)}()')
        elif op == 'copy_in':
            gen.line(f'{ident}_tmp = {self.value_ctype(step.raw)}({ident}.value)')
        elif op == 'opt_copy_in':
            with gen.block(f'if {ident} is not None:'):
                gen.line(f'{ident}_tmp = {self.value_ctype(step.raw)}({ident}.value)')
                gen.line(f'{ident}_arg = ctypes.byref({ident}_tmp)')
            with gen.block('else:'):
                gen.line(f'{ident}_arg = None')
        elif op == 'assert_live':
            gen.line(f'_rt.assert_live({ident}, {function.symbol!r})')
        elif op == 'write_back':
            gen.line(f'{ident}.value = {self.to_safe(f"{ident}_tmp.value", step.safe, step.raw)}')
        elif op == 'opt_write_back':
            with gen.block(f'if {ident} is not None:'):
                gen.line(f'{ident}.value = {self.to_safe(f"{ident}_tmp.value", step.safe, step.raw)}')
        elif op == 'invalidate':
            gen.line(f'{ident}.address = None')
        elif op == 'set_length':
            if step.source is None:
                count = '_ret'
            elif step.source_op == 'alloc':
                count = f'{safe_ident(step.source)}.value'
            else:
                count = f'{safe_ident(step.source)}_tmp.value'
            gen.line(f'{ident}.set_length({count})')
        else:
            raise ValueError(f'unknown step op {op!r}')

    def _output_expr(self, output: 'Output') -> str:
        if output.name is None:
            return self.to_safe('_ret', output.safe, output.raw)
        ident = safe_ident(output.name)
        if output.safe.kind == 'struct':
            return ident
        return self.to_safe(f'{ident}.value', output.safe, output.raw)

    def _gen_return(self, shape: 'ReturnShape', gen: CodeGen):
        if shape.kind == 'single':
            gen.line(f'return {self._output_expr(shape.outputs[0])}')
        elif shape.kind == 'tuple':
            gen.line('return (' + ', '.join(self._output_expr(o) for o in shape.outputs) + ')')
