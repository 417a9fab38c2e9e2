"""
Module assembly

Groups interpreted functions into named modules.  A function listed under
several modules gets one entry, and one resolved-symbol slot, per module.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import InvalidSpec

if TYPE_CHECKING:
    from .func import SafeFunction
    from .ir import EnumInfo, AddressInfo
    from .types import CType


@dataclass(frozen=True)
class SymbolSlot:
    """Where one module keeps the resolved address of one symbol"""
    module: str
    symbol: str

    @property
    def attr(self) -> str:
        return f'_fn_{self.symbol}'


@dataclass
class ModuleEntry:
    """A function as emitted inside one module"""
    function: 'SafeFunction'
    slot: SymbolSlot


@dataclass
class Module:
    """A named group of functions sharing one library handle"""
    name: str
    entries: list[ModuleEntry] = field(default_factory=list)

    def symbols(self) -> list[str]:
        return [e.function.symbol for e in self.entries]


@dataclass
class StructLayout:
    """Struct with its field types already mapped"""
    name: str
    fields: list[tuple[str, 'CType']]
    doc: str = ""


@dataclass
class Assembly:
    """Everything an emitter needs"""
    library: str
    enums: list['EnumInfo']
    addresses: list['AddressInfo']
    structs: list[StructLayout]
    modules: list[Module]


class ModuleAssembler:
    """Accumulates modules, kept sorted by name"""

    def __init__(self):
        self.modules: list[Module] = []
        self._by_name: dict[str, Module] = {}

    def add(self, function: 'SafeFunction', module_names: list[str]):
        """Add function to every module it is listed under"""
        if len(set(module_names)) != len(module_names):
            raise InvalidSpec(f'{function.symbol}: a module is listed twice')

        for name in module_names:
            module = self._by_name.get(name)
            if module is None:
                if not name.isidentifier():
                    raise InvalidSpec(f'{function.symbol}: module name "{name}" is not an identifier')
                module = Module(name)
                self._by_name[name] = module
                self.modules.append(module)
                self.modules.sort(key=lambda m: m.name)
            if function.symbol in module.symbols():
                raise InvalidSpec(f'{function.symbol}: declared twice in module "{name}"')
            module.entries.append(ModuleEntry(function, SymbolSlot(name, function.symbol)))

    def get(self, name: str) -> Module:
        return self._by_name[name]
