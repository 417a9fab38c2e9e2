"""
Tests for module assembly.
"""

import pytest

from dl_bindgen.errors import InvalidSpec, MalformedPrototype, UnboundParameter
from dl_bindgen.func import FuncInterpreter
from dl_bindgen.generator import Generator
from dl_bindgen.module import ModuleAssembler
from dl_bindgen.types import TypeMapper


@pytest.fixture
def functions(make_spec):
    """Interpret a list of (proto, pat) pairs"""
    def _functions(*decls):
        spec = make_spec(func=[{'proto': p, 'mod': ['M'], 'pat': pat} for p, pat in decls])
        interpreter = FuncInterpreter(TypeMapper(spec))
        return [interpreter.interpret(b) for b in spec.funcs]
    return _functions


def test_function_in_two_modules(functions):
    fn, = functions(('int32_t foo_new(uint32_t* out)', ['NEW out']))
    assembler = ModuleAssembler()
    assembler.add(fn, ['Beta', 'Alpha'])

    alpha, beta = assembler.get('Alpha'), assembler.get('Beta')
    assert alpha.entries[0].function is beta.entries[0].function
    assert alpha.entries[0].slot != beta.entries[0].slot
    assert alpha.entries[0].slot.module == 'Alpha'
    assert beta.entries[0].slot.module == 'Beta'


def test_modules_sorted_by_name(functions):
    a, b, c = functions(('void a(void)', []), ('void b(void)', []), ('void c(void)', []))
    assembler = ModuleAssembler()
    assembler.add(a, ['Zeta'])
    assembler.add(b, ['Alpha'])
    assembler.add(c, ['Mid', 'Zeta'])
    assert [m.name for m in assembler.modules] == ['Alpha', 'Mid', 'Zeta']
    assert assembler.get('Zeta').symbols() == ['a', 'c']


def test_duplicate_symbol_in_module(functions):
    fn, = functions(('void a(void)', []))
    assembler = ModuleAssembler()
    assembler.add(fn, ['M'])
    with pytest.raises(InvalidSpec):
        assembler.add(fn, ['M'])


def test_module_listed_twice(functions):
    fn, = functions(('void a(void)', []))
    with pytest.raises(InvalidSpec):
        ModuleAssembler().add(fn, ['M', 'M'])


def test_module_name_must_be_identifier(functions):
    fn, = functions(('void a(void)', []))
    with pytest.raises(InvalidSpec):
        ModuleAssembler().add(fn, ['my module'])


def test_unlisted_function_is_skipped_with_warning(make_spec, capsys):
    spec = make_spec(func=[
        {'proto': 'void a(void)', 'mod': [], 'pat': []},
        {'proto': 'void b(void)', 'mod': ['M'], 'pat': []},
    ])
    gen = Generator(spec, 'libfoo.so')
    assembly = gen.assemble()
    assert [m.symbols() for m in assembly.modules] == [['b']]
    assert len(gen.warnings) == 1
    assert '>> warning: a is not listed in any module' in capsys.readouterr().out


def test_unlisted_function_is_still_checked(make_spec):
    spec = make_spec(func=[{'proto': 'void a(int x)', 'mod': [], 'pat': []}])
    with pytest.raises(UnboundParameter):
        Generator(spec, 'libfoo.so').assemble()


@pytest.mark.parametrize('section,decl', [
    ('address', {'name': 'foo_t'}),
    ('enum', {'name': 'foo_t', 'variant': []}),
    ('struct', {'name': 'foo_t', 'field': []}),
])
def test_module_name_clashes_with_type(make_spec, section, decl):
    spec = make_spec(func=[{'proto': 'void foo_run(void)', 'mod': ['Foo'], 'pat': []}], **{section: [decl]})
    with pytest.raises(InvalidSpec, match='"Foo"'):
        Generator(spec, 'libfoo.so').generate()


def test_struct_layout(make_spec):
    spec = make_spec(struct=[{'name': 'foo_point_t', 'field': [
        {'name': 'x', 'type': 'int32_t'}, {'name': 'y', 'type': 'int32_t'}]}])
    layout, = Generator(spec, 'libfoo.so').assemble().structs
    assert layout.name == 'FooPoint'
    assert [name for name, _ in layout.fields] == ['x', 'y']


def test_struct_field_error_names_the_field(make_spec):
    spec = make_spec(struct=[{'name': 'foo_point_t', 'field': [{'name': 'x', 'type': 'const *'}]}])
    with pytest.raises(MalformedPrototype, match='^foo_point_t.x: '):
        Generator(spec, 'libfoo.so').assemble()
