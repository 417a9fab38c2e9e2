"""
Tests for pattern instruction parsing.
"""

import pytest

from dl_bindgen.errors import MalformedInstruction, UnknownModifier
from dl_bindgen.patterns import (
    NEGATED, New, Ok, Old, Out, OutVec, OptMut, Slice, Str,
    parse_instruction, parse_instructions, parse_literal,
)


class TestParseInstruction:
    def test_single_operand(self):
        assert parse_instruction('NEW out') == New('out')
        assert parse_instruction('OPT_MUT pos') == OptMut('pos')
        assert parse_instruction('OLD handle') == Old('handle')

    def test_list_form(self):
        assert parse_instruction(['STR', 'path']) == Str('path')

    def test_slice_operand_order(self):
        assert parse_instruction('SLICE len data') == Slice(len_name='len', name='data')

    def test_out(self):
        assert parse_instruction('OUT') == Out()
        assert parse_instruction('OUT file') == Out('file')

    def test_out_vec(self):
        assert parse_instruction('OUT_VEC cap buf') == OutVec('cap', 'buf')
        assert parse_instruction('OUT_VEC cap buf count') == OutVec('cap', 'buf', 'count')

    def test_ok(self):
        assert parse_instruction('OK == 0') == Ok('==', 0)
        assert parse_instruction('OK >= 0') == Ok('>=', 0)

    def test_ok_single_equals(self):
        assert parse_instruction('OK = 0') == Ok('==', 0)

    def test_ok_null(self):
        assert parse_instruction('OK != NULL') == Ok('!=', None)

    def test_parse_instructions_keeps_order(self):
        parsed = parse_instructions(['STR path', 'NEW out', 'OK == 0'])
        assert parsed == [Str('path'), New('out'), Ok('==', 0)]


class TestLiterals:
    @pytest.mark.parametrize('text,value', [
        ('0', 0),
        ('-1', -1),
        ('0x10', 16),
        ('true', True),
        ('false', False),
        ('NULL', None),
    ])
    def test_literal(self, text, value):
        assert parse_literal(text) == value
        assert type(parse_literal(text)) is type(value)

    def test_bad_literal(self):
        with pytest.raises(MalformedInstruction):
            parse_literal('zero')


class TestRejected:
    def test_unknown_tag(self):
        with pytest.raises(UnknownModifier):
            parse_instruction('BORROW x')

    def test_lowercase_tag_is_unknown(self):
        with pytest.raises(UnknownModifier):
            parse_instruction('new out')

    @pytest.mark.parametrize('text', [
        'NEW',
        'NEW a b',
        'SLICE data',
        'OK 0',
        'OUT a b',
        'OUT_VEC buf',
        'OUT_VEC a b c d',
    ])
    def test_wrong_arity(self, text):
        with pytest.raises(MalformedInstruction):
            parse_instruction(text)

    def test_bad_comparator(self):
        with pytest.raises(MalformedInstruction):
            parse_instruction('OK =< 0')

    def test_empty(self):
        with pytest.raises(MalformedInstruction):
            parse_instruction('')

    def test_not_a_string(self):
        with pytest.raises(MalformedInstruction):
            parse_instruction(['NEW', 1])


def test_negation_is_an_involution():
    for comparator, negated in NEGATED.items():
        assert NEGATED[negated] == comparator
