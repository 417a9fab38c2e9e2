"""
Pattern instruction module

A closed set of marshaling instructions and the parser for their text form:

    NEW out            STR path          RAW ptr          VAL count
    OK == 0            MUT pos           OPT_MUT pos      OLD handle
    SLICE len data     OUT               OUT name
    OUT_VEC cap buf    OUT_VEC cap buf count
"""

from dataclasses import dataclass
from typing import Optional, Union

from .errors import MalformedInstruction, UnknownModifier


@dataclass(frozen=True)
class New:
    """Output slot allocated by the wrapper"""
    name: str


@dataclass(frozen=True)
class Str:
    """Borrowed null-terminated text"""
    name: str


@dataclass(frozen=True)
class Raw:
    """Untyped pointer passed through verbatim"""
    name: str


@dataclass(frozen=True)
class Val:
    """Value (scalar, struct) or borrowed handle"""
    name: str


@dataclass(frozen=True)
class Ok:
    """Success test on the raw return value"""
    comparator: str
    literal: Union[int, bool, None]


@dataclass(frozen=True)
class Mut:
    """Mutable scalar reference"""
    name: str


@dataclass(frozen=True)
class OptMut:
    """Optional mutable scalar reference"""
    name: str


@dataclass(frozen=True)
class Old:
    """Handle consumed by the call"""
    name: str


@dataclass(frozen=True)
class Slice:
    """Borrowed sequence passed as (pointer, count)"""
    len_name: str
    name: str


@dataclass(frozen=True)
class Out:
    """Append the raw return value (name=None) or a NEW output"""
    name: Optional[str] = None


@dataclass(frozen=True)
class OutVec:
    """Growable buffer filled by the call"""
    len_name: str
    name: str
    count_source: Optional[str] = None


Instruction = Union[New, Str, Raw, Val, Ok, Mut, OptMut, Old, Slice, Out, OutVec]

COMPARATORS = {'==', '!=', '<', '<=', '>', '>='}

NEGATED = {
    '==': '!=',
    '!=': '==',
    '<': '>=',
    '<=': '>',
    '>': '<=',
    '>=': '<',
}

# tag -> (class, minimum operands, maximum operands)
_TAGS = {
    'NEW': (New, 1, 1),
    'STR': (Str, 1, 1),
    'RAW': (Raw, 1, 1),
    'VAL': (Val, 1, 1),
    'OK': (Ok, 2, 2),
    'MUT': (Mut, 1, 1),
    'OPT_MUT': (OptMut, 1, 1),
    'OLD': (Old, 1, 1),
    'SLICE': (Slice, 2, 2),
    'OUT': (Out, 0, 1),
    'OUT_VEC': (OutVec, 2, 3),
}


def parse_literal(text: str) -> Union[int, bool, None]:
    """Parse an OK literal: integer, NULL, true or false"""
    if text == 'NULL':
        return None
    if text == 'true':
        return True
    if text == 'false':
        return False
    try:
        return int(text, 0)
    except ValueError:
        raise MalformedInstruction(f'invalid OK literal "{text}"') from None


def parse_instruction(source: Union[str, list]) -> Instruction:
    """Parse one instruction from its text or pre-split list form"""
    if isinstance(source, str):
        tokens = source.split()
    elif isinstance(source, list) and all(isinstance(t, str) for t in source):
        tokens = list(source)
    else:
        raise MalformedInstruction(f'instruction must be a string or a list of strings: {source!r}')
    if not tokens:
        raise MalformedInstruction('empty instruction')

    tag, operands = tokens[0], tokens[1:]
    if tag not in _TAGS:
        raise UnknownModifier(f'unknown pattern instruction "{tag}"')
    cls, lo, hi = _TAGS[tag]
    if not lo <= len(operands) <= hi:
        raise MalformedInstruction(
            f'{tag} takes {lo if lo == hi else f"{lo} to {hi}"} operand(s), got {len(operands)}')

    if cls is Ok:
        comparator = '==' if operands[0] == '=' else operands[0]
        if comparator not in COMPARATORS:
            raise MalformedInstruction(f'invalid OK comparator "{operands[0]}"')
        return Ok(comparator, parse_literal(operands[1]))
    return cls(*operands)


def parse_instructions(sources: list) -> list[Instruction]:
    """Parse a function's ordered instruction list"""
    return [parse_instruction(source) for source in sources]
