"""
Tests for the prototype parser.
"""

import pytest

from dl_bindgen.errors import MalformedPrototype, UnsupportedConstruct
from dl_bindgen.prototype import Param, Prototype, normalize_stars, parse_prototype


class TestParsePrototype:
    """Test well-formed prototypes"""

    def test_basic(self):
        proto = parse_prototype('int32_t foo_open(const char* path, foo_t* out)')
        assert proto.return_type == 'int32_t'
        assert proto.name == 'foo_open'
        assert proto.params == (Param('const char*', 'path'), Param('foo_t*', 'out'))

    def test_no_params(self):
        assert parse_prototype('void foo_init()').params == ()

    def test_void_params(self):
        assert parse_prototype('void foo_init(void)').params == ()

    def test_multi_word_types(self):
        proto = parse_prototype('unsigned long int foo_count(const struct foo_t* self_, unsigned char c)')
        assert proto.return_type == 'unsigned long int'
        assert proto.params[0] == Param('const struct foo_t*', 'self_')
        assert proto.params[1] == Param('unsigned char', 'c')

    def test_pointer_return(self):
        proto = parse_prototype('const char *foo_version(void)')
        assert proto.return_type == 'const char*'
        assert proto.name == 'foo_version'

    def test_whitespace_is_collapsed(self):
        proto = parse_prototype('  int32_t\n  foo_new (\n  uint32_t  *  out\n)  ')
        assert proto == Prototype('int32_t', 'foo_new', (Param('uint32_t*', 'out'),))

    def test_index(self):
        proto = parse_prototype('void f(int a, int b)')
        assert proto.index('b') == 1
        assert proto.index('c') is None

    def test_canonical_reparses_to_same_prototype(self):
        proto = parse_prototype('int   foo (const char *  a,void ** b)')
        assert parse_prototype(proto.canonical()) == proto
        assert proto.canonical() == 'int foo(const char* a, void** b)'


class TestNormalizeStars:
    """Test star attachment"""

    def test_star_on_name(self):
        assert normalize_stars('char *name') == 'char* name'

    def test_separated_stars(self):
        assert normalize_stars('void * * out') == 'void** out'

    def test_idempotent(self):
        once = normalize_stars('const char *  *argv')
        assert normalize_stars(once) == once


class TestMalformed:
    """Test rejected prototypes"""

    @pytest.mark.parametrize('text', [
        'int foo(int a',
        'int foo',
        'foo(int a)',
        'int foo(int)',
        'int foo(int a,)',
        'int foo((int a))',
        'int 1foo(int a)',
    ])
    def test_malformed(self, text):
        with pytest.raises(MalformedPrototype):
            parse_prototype(text)

    def test_duplicate_parameter(self):
        with pytest.raises(MalformedPrototype, match='duplicate parameter "a"'):
            parse_prototype('int foo(int a, char* a)')


class TestUnsupported:
    """Test constructs outside the prototype grammar"""

    def test_function_pointer(self):
        with pytest.raises(UnsupportedConstruct):
            parse_prototype('void foo_set(void (*cb)(int))')

    def test_array_parameter(self):
        with pytest.raises(UnsupportedConstruct):
            parse_prototype('void foo_fill(int values[4])')

    def test_variadic(self):
        with pytest.raises(UnsupportedConstruct):
            parse_prototype('int foo_log(const char* fmt, ...)')
