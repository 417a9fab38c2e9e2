"""
Function binding generation module

Interprets a function's pattern instructions into a SafeFunction: the public
signature, the marshaling around the raw call and the return shape.  The
result carries no target syntax; emitters render it.
"""

from dataclasses import dataclass
from typing import Optional, Union, TYPE_CHECKING

from .codegen import as_method_name
from .errors import (
    DuplicateBinding, DuplicateErrorCheck, MalformedInstruction,
    UnboundParameter, UnsupportedConstruct,
)
from .patterns import (
    New, Str, Raw, Val, Ok, Mut, OptMut, Old, Slice, Out, OutVec,
    NEGATED, Instruction,
)
from .types import (
    CType, Scalar, Struct, Pointer, SafeType, TEXT,
    is_handle_like, is_text_pointer,
)

if TYPE_CHECKING:
    from .ir import FunctionBinding
    from .types import TypeMapper


@dataclass(frozen=True)
class PublicParam:
    """Parameter of the generated wrapper

    kind is one of 'text', 'raw', 'value', 'handle', 'mut', 'opt_mut',
    'old', 'slice', 'buffer'.  For 'slice' and 'buffer' safe and element
    describe one element.
    """
    name: str
    kind: str
    safe: Optional[SafeType]
    raw: CType
    element: Optional[CType] = None


@dataclass(frozen=True)
class Step:
    """Marshaling step run before or after the raw call

    op is one of 'alloc', 'copy_in', 'opt_copy_in', 'assert_live',
    'write_back', 'opt_write_back', 'invalidate', 'set_length'.
    For 'set_length', source names the count parameter (None: raw return).
    """
    op: str
    name: str
    raw: Optional[CType] = None
    safe: Optional[SafeType] = None
    source: Optional[str] = None
    source_op: Optional[str] = None


@dataclass(frozen=True)
class Arg:
    """Expression filling one raw-call position

    op is one of 'slot_address', 'text', 'raw', 'handle', 'value',
    'temp_address', 'opt_temp_address', 'slice_base', 'slice_len',
    'buffer_base', 'buffer_capacity'.  name is the public parameter the
    expression reads.
    """
    op: str
    name: str
    raw: CType
    safe: Optional[SafeType] = None


@dataclass(frozen=True)
class Output:
    """One value of the result; name None is the raw return value"""
    name: Optional[str]
    safe: SafeType
    raw: CType


@dataclass(frozen=True)
class ErrorCheck:
    """Success test on the raw return value"""
    comparator: str
    literal: Union[int, bool, None]

    @property
    def failure_comparator(self) -> str:
        return NEGATED[self.comparator]


@dataclass(frozen=True)
class ReturnShape:
    """Result of the wrapper: unit, one value or a tuple; maybe fallible"""
    outputs: tuple[Output, ...]
    fallible: bool

    @property
    def kind(self) -> str:
        if not self.outputs:
            return 'unit'
        if len(self.outputs) == 1:
            return 'single'
        return 'tuple'


@dataclass(frozen=True)
class SafeFunction:
    """Interpreted function, ready for rendering"""
    symbol: str
    method: str
    doc: str
    params: tuple[PublicParam, ...]
    preamble: tuple[Step, ...]
    args: tuple[Arg, ...]
    postamble: tuple[Step, ...]
    returns: ReturnShape
    check: Optional[ErrorCheck]
    raw_return: CType
    raw_params: tuple[CType, ...]


class FuncInterpreter:
    """Turns FunctionBindings into SafeFunctions"""

    def __init__(self, type_map: 'TypeMapper'):
        self.type_map = type_map

    def interpret(self, binding: 'FunctionBinding') -> SafeFunction:
        """Process instructions in declared order"""
        return _Interpretation(self.type_map, binding).run()


class _Interpretation:
    """State threaded through one function's instructions"""

    def __init__(self, type_map: 'TypeMapper', binding: 'FunctionBinding'):
        self.type_map = type_map
        self.binding = binding
        self.proto = binding.prototype
        self.symbol = binding.prototype.name
        self.raw_return = type_map.map(self.proto.return_type)
        self.raw_params = tuple(type_map.map(p.type) for p in self.proto.params)

        self.params: list[PublicParam] = []
        self.preamble: list[Step] = []
        self.args: dict[int, Arg] = {}
        self.postamble: list[Step] = []
        self.outputs: list[Output] = []
        self.check: Optional[ErrorCheck] = None
        # names produced by NEW / MUT, readable after the call
        self._slots: dict[str, str] = {}
        self._vec_sources: list[str] = []

    def run(self) -> SafeFunction:
        for instr in self.binding.instructions:
            self._dispatch(instr)

        for source in self._vec_sources:
            if source not in self._slots:
                raise UnboundParameter(
                    f'{self.symbol}: OUT_VEC count source "{source}" must be bound by NEW or MUT')
        # set_length steps need to know how their count source was bound
        self.postamble = [
            Step(s.op, s.name, s.raw, s.safe, s.source, self._slots[s.source])
            if s.op == 'set_length' and s.source else s
            for s in self.postamble
        ]

        missing = [p.name for i, p in enumerate(self.proto.params) if i not in self.args]
        if missing:
            raise UnboundParameter(
                f'{self.symbol}: parameter "{missing[0]}" is not bound by any instruction')

        return SafeFunction(
            symbol=self.symbol,
            method=as_method_name(self.symbol),
            doc=self.binding.doc,
            params=tuple(self.params),
            preamble=tuple(self.preamble),
            args=tuple(self.args[i] for i in range(len(self.proto.params))),
            postamble=tuple(self.postamble),
            returns=ReturnShape(tuple(self.outputs), fallible=self.check is not None),
            check=self.check,
            raw_return=self.raw_return,
            raw_params=self.raw_params,
        )

    def _dispatch(self, instr: Instruction):
        if isinstance(instr, New):
            self._new(instr)
        elif isinstance(instr, Str):
            self._str(instr)
        elif isinstance(instr, Raw):
            self._raw(instr)
        elif isinstance(instr, Val):
            self._val(instr)
        elif isinstance(instr, Ok):
            self._ok(instr)
        elif isinstance(instr, Mut):
            self._mut(instr.name, optional=False)
        elif isinstance(instr, OptMut):
            self._mut(instr.name, optional=True)
        elif isinstance(instr, Old):
            self._old(instr)
        elif isinstance(instr, Slice):
            self._slice(instr)
        elif isinstance(instr, Out):
            self._out(instr)
        elif isinstance(instr, OutVec):
            self._out_vec(instr)
        else:
            raise TypeError(f'not a pattern instruction: {instr!r}')

    # --- helpers -----------------------------------------------------------

    def _raw_type(self, name: str) -> CType:
        """Raw type of the prototype parameter called name"""
        idx = self.proto.index(name)
        if idx is None:
            raise UnboundParameter(f'{self.symbol}: "{name}" is not a parameter of "{self.proto.canonical()}"')
        return self.raw_params[idx]

    def _bind(self, arg: Arg, position: Optional[str] = None):
        """Fill the raw-call position of parameter position (default arg.name)"""
        position = position or arg.name
        idx = self.proto.index(position)
        if idx is None:
            raise UnboundParameter(f'{self.symbol}: "{position}" is not a parameter of "{self.proto.canonical()}"')
        if idx in self.args:
            raise DuplicateBinding(f'{self.symbol}: parameter "{position}" is bound twice')
        self.args[idx] = arg

    def _unsupported(self, what: str):
        raise UnsupportedConstruct(f'{self.symbol}: {what}')

    def _pointee(self, tag: str, name: str) -> CType:
        raw = self._raw_type(name)
        if not isinstance(raw, Pointer):
            self._unsupported(f'{tag} "{name}" needs a pointer parameter')
        return raw.target

    def _element(self, tag: str, name: str) -> tuple[CType, SafeType]:
        """Element type of a slice or buffer; void elements are bytes"""
        element = self._pointee(tag, name)
        if is_handle_like(element):
            self._unsupported(f'{tag} "{name}" has opaque elements')
        if isinstance(element, Scalar) and element.is_void:
            element = Scalar('u8')
        return element, self.type_map.safe_type(element)

    def _length(self, tag: str, name: str) -> CType:
        raw = self._raw_type(name)
        if not (isinstance(raw, Scalar) and raw.is_integer):
            self._unsupported(f'{tag} length "{name}" must be an integer')
        return raw

    # --- instructions ------------------------------------------------------

    def _new(self, instr: New):
        pointee = self._pointee('NEW', instr.name)
        safe = self.type_map.safe_type(pointee)
        if safe is None:
            self._unsupported(f'NEW "{instr.name}" points to void')
        self.preamble.append(Step('alloc', instr.name, raw=pointee, safe=safe))
        self._bind(Arg('slot_address', instr.name, self._raw_type(instr.name), safe))
        self.outputs.append(Output(instr.name, safe, pointee))
        self._slots[instr.name] = 'alloc'

    def _str(self, instr: Str):
        raw = self._raw_type(instr.name)
        if not is_text_pointer(raw):
            self._unsupported(f'STR "{instr.name}" must be a char pointer')
        self.params.append(PublicParam(instr.name, 'text', TEXT, raw))
        self._bind(Arg('text', instr.name, raw, TEXT))

    def _raw(self, instr: Raw):
        raw = self._raw_type(instr.name)
        if not is_handle_like(raw):
            self._unsupported(f'RAW "{instr.name}" must be a pointer')
        self.params.append(PublicParam(instr.name, 'raw', None, raw))
        self._bind(Arg('raw', instr.name, raw))

    def _val(self, instr: Val):
        raw = self._raw_type(instr.name)
        safe = self.type_map.safe_type(raw)
        if safe is None:
            self._unsupported(f'VAL "{instr.name}" is void')
        if is_handle_like(raw):
            if safe.kind == 'text':
                safe = self.type_map.safe_type(Pointer(Scalar('void')))
            self.params.append(PublicParam(instr.name, 'handle', safe, raw))
            self._bind(Arg('handle', instr.name, raw, safe))
        else:
            self.params.append(PublicParam(instr.name, 'value', safe, raw))
            self._bind(Arg('value', instr.name, raw, safe))

    def _ok(self, instr: Ok):
        if self.check is not None:
            raise DuplicateErrorCheck(f'{self.symbol}: more than one OK instruction')
        ret = self.raw_return
        if isinstance(ret, Scalar) and ret.is_void:
            self._unsupported('OK needs a non-void return value')
        if isinstance(ret, Struct):
            self._unsupported('OK cannot test a struct return value')
        if instr.literal is None:
            if not is_handle_like(ret):
                self._unsupported('OK with NULL needs a pointer return value')
            if instr.comparator not in ('==', '!='):
                self._unsupported(f'OK cannot order against NULL with "{instr.comparator}"')
        elif is_handle_like(ret):
            self._unsupported('OK on a pointer return value must compare with NULL')
        self.check = ErrorCheck(instr.comparator, instr.literal)

    def _mut(self, name: str, optional: bool):
        tag = 'OPT_MUT' if optional else 'MUT'
        pointee = self._pointee(tag, name)
        if is_handle_like(pointee):
            self._unsupported(f'{tag} "{name}" refers to an opaque handle')
        if not isinstance(pointee, Scalar) or pointee.is_void:
            self._unsupported(f'{tag} "{name}" must point to a scalar')
        safe = self.type_map.safe_type(pointee)
        prefix = 'opt_' if optional else ''
        self.params.append(PublicParam(name, prefix + 'mut', safe, self._raw_type(name)))
        self.preamble.append(Step(prefix + 'copy_in', name, raw=pointee, safe=safe))
        self._bind(Arg(prefix + 'temp_address', name, self._raw_type(name), safe))
        self.postamble.append(Step(prefix + 'write_back', name, raw=pointee, safe=safe))
        if not optional:
            self._slots[name] = 'copy_in'

    def _old(self, instr: Old):
        raw = self._raw_type(instr.name)
        if not is_handle_like(raw):
            self._unsupported(f'OLD "{instr.name}" must be a handle')
        safe = self.type_map.safe_type(raw)
        if safe.kind == 'text':
            self._unsupported(f'OLD "{instr.name}" must be a handle, not text')
        self.params.append(PublicParam(instr.name, 'old', safe, raw))
        self.preamble.append(Step('assert_live', instr.name, raw=raw, safe=safe))
        self._bind(Arg('handle', instr.name, raw, safe))
        self.postamble.append(Step('invalidate', instr.name, raw=raw, safe=safe))

    def _slice(self, instr: Slice):
        length = self._length('SLICE', instr.len_name)
        element, safe = self._element('SLICE', instr.name)
        raw = self._raw_type(instr.name)
        self.params.append(PublicParam(instr.name, 'slice', safe, raw, element))
        self._bind(Arg('slice_base', instr.name, raw, safe))
        self._bind(Arg('slice_len', instr.name, length), position=instr.len_name)

    def _out(self, instr: Out):
        if instr.name is None:
            safe = self.type_map.safe_type(self.raw_return)
            if safe is None:
                self._unsupported('OUT of a void return value')
            if any(o.name is None for o in self.outputs):
                raise MalformedInstruction(f'{self.symbol}: the return value is output twice')
            self.outputs.append(Output(None, safe, self.raw_return))
            return

        produced = [o for o in self.outputs if o.name == instr.name]
        if not produced:
            raise UnboundParameter(f'{self.symbol}: OUT "{instr.name}" was not produced by an earlier NEW')
        self.outputs.remove(produced[0])
        self.outputs.append(produced[0])

    def _out_vec(self, instr: OutVec):
        capacity = self._length('OUT_VEC', instr.len_name)
        element, safe = self._element('OUT_VEC', instr.name)
        raw = self._raw_type(instr.name)
        if instr.count_source is None:
            ret = self.raw_return
            if not (isinstance(ret, Scalar) and ret.is_integer):
                self._unsupported(f'OUT_VEC "{instr.name}" needs an integer return value or a count source')
        else:
            self._raw_type(instr.count_source)
            self._vec_sources.append(instr.count_source)
        self.params.append(PublicParam(instr.name, 'buffer', safe, raw, element))
        self._bind(Arg('buffer_base', instr.name, raw, safe))
        self._bind(Arg('buffer_capacity', instr.name, capacity), position=instr.len_name)
        self.postamble.append(Step('set_length', instr.name, raw=element, safe=safe,
                                   source=instr.count_source))
