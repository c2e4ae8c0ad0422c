"""
Tests for data substitution, tokenizing and term simplification.
"""

import copy

import pytest

from rollsmith.core.errors import FormulaError
from rollsmith.dice.terms import (
    BooleanTerm,
    Die,
    MathTerm,
    NullTerm,
    NumericTerm,
    OperatorTerm,
    ParentheticalTerm,
    RealStringTerm,
    StringTerm,
)
from rollsmith.dice.functions import IfTerm
from rollsmith.dice.simplifier import simplify_terms
from rollsmith.dice.tokenizer import (
    replace_formula_data,
    resolve_data_path,
    split_arguments,
    tokenize,
)


class TestDataSubstitution:
    """Test @path substitution."""

    def test_nested_paths(self):
        """Test dotted paths resolve through nested data."""
        data = {'abilities': {'str': {'mod': 4}}, 'level': 3}
        formula, warning = replace_formula_data('1d20 + @abilities.str.mod + @level', data)
        assert formula == '1d20 + 4 + 3'
        assert warning is False

    def test_missing_value_warns(self):
        """Test missing paths become 0 and raise the warning flag."""
        formula, warning = replace_formula_data('1d6 + @nope.nothing', {})
        assert formula == '1d6 + 0'
        assert warning is True

    def test_booleans_and_floats(self):
        """Test booleans and floats render as formula literals."""
        formula, _ = replace_formula_data('@flag + @half', {'flag': True, 'half': 2.0})
        assert formula == 'true + 2'

    def test_data_is_not_mutated(self):
        """Test substitution leaves the data untouched."""
        data = {'a': {'b': [1, 2]}, 'c': None}
        before = copy.deepcopy(data)
        replace_formula_data('@a.b + @c + @a.b.1', data)
        assert data == before

    def test_list_index(self):
        """Test numeric path parts index into lists."""
        assert resolve_data_path({'a': [5, 6]}, 'a.1') == 6
        assert resolve_data_path({'a': [5, 6]}, 'a.9') is None


class TestTokenize:
    """Test formula tokenizing."""

    def test_basic_formula(self):
        """Test dice, operators and numbers."""
        terms = tokenize('1d20 + 5')
        assert [type(t) for t in terms] == [Die, OperatorTerm, NumericTerm]
        assert terms[0].number == 1
        assert terms[0].faces == 20

    def test_dice_modifiers(self):
        """Test keep/drop modifiers are split off the die."""
        die = tokenize('4d6kh3')[0]
        assert die.modifiers == ['kh3']
        assert die.expression == '4d6kh3'

    def test_implicit_die_count(self):
        """Test a bare d20 means one die."""
        die = tokenize('d20')[0]
        assert die.number == 1

    def test_literals(self):
        """Test booleans, null and quoted strings."""
        terms = tokenize('true false null "M"')
        assert [type(t) for t in terms] == [BooleanTerm, BooleanTerm, NullTerm, RealStringTerm]

    def test_parenthetical(self):
        """Test parentheses build a sub-roll."""
        term = tokenize('(1d6 + 2)')[0]
        assert isinstance(term, ParentheticalTerm)
        assert term.expression == '(1d6 + 2)'

    def test_function_and_math_calls(self):
        """Test calls route to function terms first, then the math table."""
        terms = tokenize('if(1, 2) + max(1d6, 4)')
        assert isinstance(terms[0], IfTerm)
        assert isinstance(terms[2], MathTerm)
        assert terms[2].fn == 'max'

    def test_unknown_call_is_string_fragment(self):
        """Test unknown calls are kept as unresolved fragments."""
        term = tokenize('eval(1)')[0]
        assert isinstance(term, StringTerm)
        assert term.term == 'eval(1)'

    def test_unbalanced_parentheses(self):
        """Test unclosed groups are rejected."""
        with pytest.raises(FormulaError, match='Unbalanced parentheses'):
            tokenize('(1d6 + 2')

    def test_unknown_character(self):
        """Test stray characters are rejected."""
        with pytest.raises(FormulaError, match=r"Unexpected '\$'"):
            tokenize('1 $ 2')

    def test_oversized_number(self):
        """Test literals too long to convert are rejected."""
        with pytest.raises(FormulaError, match='too long'):
            tokenize('1' * 5000 + ' + 1')


def test_split_arguments():
    """Test arguments split on top-level commas only."""
    assert split_arguments("1, max(2, 3), '4,5'") == ['1', 'max(2, 3)', "'4,5'"]
    assert split_arguments('') == []
    assert split_arguments('1, , 3') == ['1', '', '3']
    assert split_arguments('1[a, b], (2, 3)') == ['1[a, b]', '(2, 3)']


class TestSimplifyTerms:
    """Test fragment merging and operator trimming."""

    def test_flavor_attaches_to_prior_term(self):
        """Test [text] becomes the previous term's flavor."""
        terms = simplify_terms(tokenize('1d6[fire] + 2[Strength]'))
        assert len(terms) == 3
        assert terms[0].flavor == 'fire'
        assert terms[2].flavor == 'Strength'
        assert terms[0].formula == '1d6[fire]'

    def test_computed_die_count(self):
        """Test a computed count merges with the die that follows it."""
        terms = simplify_terms(tokenize('ceil(10 / 5)d6'))
        assert len(terms) == 1
        assert isinstance(terms[0], Die)
        assert terms[0].expression == '2d6'

    def test_computed_die_count_keeps_flavor(self):
        """Test flavor survives fragment reclassification."""
        terms = simplify_terms(tokenize('floor(7 / 2)d8[Sneak]'))
        assert len(terms) == 1
        assert terms[0].formula == '3d8[Sneak]'

    def test_trims_operators(self):
        """Test leading non-minus and trailing operators are dropped."""
        terms = simplify_terms(tokenize('+ * 1d6 + 2 -'))
        assert [t.formula for t in terms] == ['1d6', '+', '2']

    def test_keeps_leading_minus(self):
        """Test a leading minus survives."""
        terms = simplify_terms(tokenize('-1d4 + 2'))
        assert isinstance(terms[0], OperatorTerm)
        assert terms[0].operator == '-'

    def test_idempotent(self):
        """Test simplifying twice changes nothing."""
        once = simplify_terms(tokenize('+ ceil(3 / 2)d6[acid] + 2 *'))
        twice = simplify_terms(once)
        assert [t.formula for t in twice] == [t.formula for t in once]

    def test_unresolvable_fragment_survives(self):
        """Test fragments that never resolve stay string terms."""
        terms = simplify_terms(tokenize('foo + 1'))
        assert isinstance(terms[0], StringTerm)
