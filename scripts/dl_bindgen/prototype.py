"""
Prototype parser

Turns a C prototype string such as
``int32_t foo_open(const char* path, foo_t* out)`` into a Prototype.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .errors import MalformedPrototype, UnsupportedConstruct

_IDENT_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


@dataclass(frozen=True)
class Param:
    """Prototype parameter"""
    type: str
    name: str


@dataclass(frozen=True)
class Prototype:
    """Parsed function signature"""
    return_type: str
    name: str
    params: tuple[Param, ...] = ()

    def index(self, name: str) -> Optional[int]:
        """Position of the parameter called name, or None"""
        for i, param in enumerate(self.params):
            if param.name == name:
                return i
        return None

    def canonical(self) -> str:
        """Canonical text form; parse_prototype(p.canonical()) == p"""
        params = ', '.join(f'{p.type} {p.name}' for p in self.params)
        return f'{self.return_type} {self.name}({params})'


def normalize_stars(text: str) -> str:
    """Attach '*' markers to the type they qualify

    Examples:
        char *name -> char* name
        void * * out -> void** out
    """
    text = re.sub(r'\s*\*', '*', text)
    text = re.sub(r'\*(?=[^\s*])', '* ', text)
    return text


def _split_declaration(text: str, what: str, proto: str) -> tuple[str, str]:
    """Split 'qualifiers TYPE NAME' into (type, name)"""
    tokens = normalize_stars(text).split()
    if len(tokens) < 2:
        raise MalformedPrototype(f'{what} "{text.strip()}" needs a type and a name in "{proto}"')
    name = tokens[-1]
    if not _IDENT_RE.match(name):
        raise MalformedPrototype(f'{what} name "{name}" is not an identifier in "{proto}"')
    return ' '.join(tokens[:-1]), name


def parse_prototype(text: str) -> Prototype:
    """Parse a prototype string"""
    proto = ' '.join(text.split())
    if not proto.endswith(')'):
        raise MalformedPrototype(f'prototype "{proto}" does not end in ")"')
    if '(*' in proto.replace(' ', ''):
        raise UnsupportedConstruct(f'function pointer parameters are not supported: "{proto}"')
    if '[' in proto:
        raise UnsupportedConstruct(f'array types are not supported: "{proto}"')

    parts = proto[:-1].split('(')
    if len(parts) != 2:
        raise MalformedPrototype(f'prototype "{proto}" must contain exactly one "("')
    left, inner = parts

    return_type, name = _split_declaration(left, 'function', proto)

    params = []
    inner = inner.strip()
    if inner and inner != 'void':
        for group in inner.split(','):
            if group.strip() == '...':
                raise UnsupportedConstruct(f'variadic functions are not supported: "{proto}"')
            param_type, param_name = _split_declaration(group, 'parameter', proto)
            if any(p.name == param_name for p in params):
                raise MalformedPrototype(f'duplicate parameter "{param_name}" in "{proto}"')
            params.append(Param(type=param_type, name=param_name))

    return Prototype(return_type=return_type, name=name, params=tuple(params))
