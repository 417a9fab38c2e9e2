"""
Main generator module

Orchestrates all components: spec model -> interpreted functions ->
assembled modules -> rendered text.
"""

import os
from typing import Optional

from .codegen import normalize_type_name
from .emitter import Emitter, PythonEmitter
from .errors import GenerationError, InvalidSpec
from .func import FuncInterpreter
from .ir import SpecModel, library_name_from_path
from .module import Assembly, ModuleAssembler, StructLayout
from .stubs import StubEmitter
from .types import TypeMapper


class Generator:
    """Main binding generator"""

    def __init__(self, spec: SpecModel, library: str):
        self.spec = spec
        self.library = library
        self.warnings: list[str] = []
        self._assembly: Optional[Assembly] = None

    @classmethod
    def from_file(cls, spec_path: str, library: Optional[str] = None) -> 'Generator':
        """Load a spec; library defaults to the document's, then the file name's"""
        spec = SpecModel.load(spec_path)
        return cls(spec, library or spec.library or library_name_from_path(spec_path))

    def warn(self, message: str):
        print(f'  >> warning: {message}')
        self.warnings.append(message)

    def assemble(self) -> Assembly:
        """Interpret every function and group them into modules"""
        if self._assembly is not None:
            return self._assembly

        type_map = TypeMapper(self.spec)
        interpreter = FuncInterpreter(type_map)
        assembler = ModuleAssembler()

        for binding in self.spec.funcs:
            function = interpreter.interpret(binding)
            if not binding.modules:
                self.warn(f'{binding.symbol} is not listed in any module, skipping')
                continue
            assembler.add(function, binding.modules)

        structs = []
        for struct in self.spec.structs:
            fields = []
            for fld in struct.fields:
                try:
                    fields.append((fld.name, type_map.map(fld.type)))
                except GenerationError as e:
                    raise type(e)(f'{struct.name}.{fld.name}: {e}') from None
            structs.append(StructLayout(normalize_type_name(struct.name), fields, struct.doc))

        declared = self.spec.enums + self.spec.addresses + self.spec.structs
        type_names = {normalize_type_name(d.name) for d in declared}
        for module in assembler.modules:
            if module.name in type_names:
                raise InvalidSpec(f'module "{module.name}" has the same name as a declared type')

        self._assembly = Assembly(
            library=self.library,
            enums=list(self.spec.enums),
            addresses=list(self.spec.addresses),
            structs=structs,
            modules=assembler.modules,
        )
        return self._assembly

    def generate(self, emitter: Optional[Emitter] = None) -> str:
        """Render the assembled model (Python module by default)"""
        emitter = emitter or PythonEmitter()
        return emitter.render(self.assemble())

    def generate_stubs(self) -> str:
        return self.generate(StubEmitter())


def write_text(path: str, text: str):
    """Write generated text, creating the parent directory"""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, 'w', newline='\n', encoding='utf-8') as f:
        f.write(text)
