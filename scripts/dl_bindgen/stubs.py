"""
Type stub generation module

Generates .pyi files with the public surface of a generated module for IDE
autocompletion and type checkers.
"""

from typing import TYPE_CHECKING

from .codegen import normalize_type_name, safe_ident
from .emitter import Emitter, HEADER, signature

if TYPE_CHECKING:
    from .module import Assembly, Module


class StubEmitter(Emitter):
    """Generates a .pyi stub for a generated module"""

    def __init__(self, runtime_module: str = 'dl_bindgen.runtime'):
        self.runtime_module = runtime_module

    def render(self, assembly: 'Assembly') -> str:
        """Generate complete stub file"""
        lines = []
        lines.append(HEADER)
        lines.append('import ctypes')
        lines.append('import enum')
        lines.append('from typing import Optional, Sequence, Tuple, Union')
        lines.append('')
        package, _, module = self.runtime_module.rpartition('.')
        lines.append(f'from {package} import {module} as _rt' if package else f'import {module} as _rt')
        lines.append('')
        lines.append('SHARED_OBJECT_NAME: str')
        lines.append('')

        for en in assembly.enums:
            lines.append(f'class {normalize_type_name(en.name)}(enum.IntEnum):')
            for variant in en.variants:
                lines.append(f'    {safe_ident(variant.name)} = {variant.value}')
            if not en.variants:
                lines.append('    ...')
            lines.append('')

        for address in assembly.addresses:
            lines.append(f'class {normalize_type_name(address.name)}(_rt.Handle): ...')
            lines.append('')

        for struct in assembly.structs:
            lines.append(f'class {struct.name}(ctypes.Structure): ...')
            lines.append('')

        for module in assembly.modules:
            lines.extend(self._gen_module(module))
            lines.append('')

        return '\n'.join(lines)

    def _gen_module(self, module: 'Module') -> list[str]:
        """Generate module class signatures"""
        lines = [f'class {module.name}:']
        lines.append('    def __init__(self) -> None: ...')
        for entry in module.entries:
            lines.append(f'    {signature(entry.function)}: ...')
        return lines
