"""
Tests for the Roll container.
"""

import asyncio

import pytest

from rollsmith.core.errors import (
    ErrorCode,
    EvaluationError,
    FormulaError,
    RollStateError,
    SerializationError,
)
import rollsmith.dice.roll as roll_module
from rollsmith.dice import DiceRoller, EvaluationMode, Roll, run, set_roller
from rollsmith.dice.functions import IfElseTerm
from rollsmith.dice.terms import Die


class TestFormula:
    """Test formula construction and rendering."""

    def test_data_substitution(self):
        """Test @references resolve against roll data."""
        roll = Roll('1d20 + @mod', {'mod': 3})
        assert roll.formula == '1d20 + 3'
        assert roll.warning is False

    def test_missing_data_warns(self):
        """Test missing references set the warning flag."""
        roll = Roll('1d20 + @nope')
        assert roll.formula == '1d20 + 0'
        assert roll.warning is True

    def test_computed_die_count(self):
        """Test a computed count becomes part of the die."""
        assert Roll('ceil(@hd / 5)d6', {'hd': 10}).formula == '2d6'

    def test_call_keeps_flavor(self):
        """Test math calls keep their call form and flavor."""
        roll = Roll('max(1d6, 4)[test]')
        assert roll.formula == 'max(1d6, 4)[test]'
        assert roll.terms[0].flavor == 'test'

    def test_non_string_formula(self):
        """Test formulas must be strings."""
        with pytest.raises(FormulaError):
            Roll(5)

    def test_data_is_not_mutated(self):
        """Test evaluation leaves the data untouched."""
        data = {'abilities': {'str': {'mod': 2}}}
        Roll('1d20 + @abilities.str.mod', data).evaluate()
        assert data == {'abilities': {'str': {'mod': 2}}}


class TestEvaluate:
    """Test evaluation."""

    def test_total_none_until_evaluated(self):
        """Test totals are only available after evaluation."""
        roll = Roll('1d6 + 1')
        assert roll.total is None
        roll.evaluate()
        assert 2 <= roll.total <= 7

    def test_minimize_and_maximize(self):
        """Test forced dice results."""
        assert Roll('max(1d6, 4)[test]').evaluate(maximize=True).total == 6
        assert Roll('max(1d6, 4)[test]').evaluate(minimize=True).total == 4
        assert Roll('-1d4 + 2').evaluate(minimize=True).total == 1

    def test_size_roll(self):
        """Test sizeRoll inside a formula."""
        assert Roll('sizeRoll(1, 6, 1)').evaluate(maximize=True).total == 8

    def test_comparisons_total_as_numbers(self):
        """Test boolean results become 0 or 1."""
        assert Roll('3 > 2').evaluate().total == 1
        assert Roll('2 == 3').evaluate().total == 0

    def test_ternary(self):
        """Test conditional formulas."""
        assert Roll('1 == 1 ? 1d6 : 0').evaluate(maximize=True).total == 6

    def test_division_by_zero(self):
        """Test division by zero fails evaluation."""
        with pytest.raises(EvaluationError) as exc:
            Roll('1 / 0').evaluate()
        assert exc.value.code == ErrorCode.DIVISION_BY_ZERO

    def test_unresolved_fragment(self):
        """Test surviving string fragments fail evaluation."""
        with pytest.raises(EvaluationError):
            Roll('foo + 1').evaluate()

    def test_evaluate_twice(self):
        """Test evaluated rolls are immutable."""
        roll = Roll('1d6').evaluate()
        with pytest.raises(RollStateError):
            roll.evaluate()

    def test_seeded_rolls_repeat(self):
        """Test the same seed gives the same totals."""
        set_roller(DiceRoller(seed=11))
        first = Roll('4d6 + 1d20').evaluate()
        set_roller(DiceRoller(seed=11))
        second = Roll('4d6 + 1d20').evaluate()
        assert [d.values for d in first.dice] == [d.values for d in second.dice]
        assert first.total == second.total

    def test_async_evaluation(self, roller):
        """Test the async path gives the same results as the sync path."""
        roll = asyncio.run(Roll('1d20 + 5').evaluate_async(maximize=True))
        assert roll.total == 25

        set_roller(DiceRoller(seed=5))
        sync_roll = Roll('3d6').evaluate()
        set_roller(DiceRoller(seed=5))
        async_roll = asyncio.run(Roll('3d6').evaluate_async())
        assert sync_roll.total == async_roll.total

    def test_dice(self):
        """Test dice are collected from every term."""
        roll = Roll('1d4 + max(2d6, 1) + if(1, 1d8)')
        assert [d.expression for d in roll.dice] == ['1d4', '2d6', '1d8']


def test_tooltip_data():
    """Test the tooltip breakdown."""
    roll = Roll('2d6[fire] - 3[penalty]').evaluate(maximize=True)
    tooltip = roll.get_tooltip_data()
    assert tooltip['total'] == 9
    assert tooltip['parts'] == [{
        'formula': '2d6',
        'flavor': 'fire',
        'total': 12,
        'rolls': [{'result': 6, 'active': True}, {'result': 6, 'active': True}],
    }]
    assert tooltip['numeric_parts'] == [{'flavor': 'penalty', 'total': -3}]


class TestSerialization:
    """Test to_dict/from_dict round trips."""

    def test_restored_roll_is_evaluated(self):
        """Test restored rolls keep their totals and cannot be rolled again."""
        roll = Roll('2d6kh + 3').evaluate()
        restored = Roll.from_json(roll.to_json())
        assert restored.total == roll.total
        assert restored.formula == roll.formula
        assert restored.dice[0].results == roll.dice[0].results
        with pytest.raises(RollStateError):
            restored.evaluate()

    def test_unevaluated_roll(self):
        """Test unevaluated rolls restore unevaluated."""
        restored = Roll.from_dict(Roll('1d8 + 1').to_dict())
        assert restored.evaluated is False
        assert restored.evaluate(maximize=True).total == 9

    def test_untaken_branch_serializes_as_null(self):
        """Test discarded branches are stored as null."""
        roll = Roll('ifelse(1, 2, 3d6)').evaluate()
        data = roll.to_dict()
        assert data['terms'][0]['terms'][2] is None

        restored = Roll.from_dict(data)
        assert isinstance(restored.terms[0], IfElseTerm)
        assert restored.total == 2

    def test_subclass_discriminator(self):
        """Test the class discriminator picks the roll class."""
        from rollsmith.dice import CheckRoll

        roll = CheckRoll('1d20 + 2').evaluate(maximize=True)
        restored = Roll.from_dict(roll.to_dict())
        assert isinstance(restored, CheckRoll)
        assert isinstance(restored.terms[0], Die)
        assert restored.is_crit is True

    def test_invalid_data(self):
        """Test malformed data is rejected."""
        with pytest.raises(SerializationError):
            Roll.from_dict({'terms': []})
        with pytest.raises(SerializationError):
            Roll.from_dict({'class': 'NoSuchRoll', 'terms': []})
        with pytest.raises(SerializationError):
            Roll.from_dict({'class': 'Roll', 'terms': [{'class': 'NoSuchTerm'}]})
        with pytest.raises(SerializationError):
            Roll.from_json('{not json')


class TestEvaluationModes:
    """Test sync and async evaluation share one driver."""

    def test_run_modes_agree(self):
        """Test both modes drive the same steps to the same results."""
        sync_die = Die(3, 6)
        run(sync_die.evaluation_steps(False, False), EvaluationMode.SYNC, DiceRoller(seed=3))
        async_die = Die(3, 6)
        pending = run(async_die.evaluation_steps(False, False), EvaluationMode.ASYNC, DiceRoller(seed=3))
        assert asyncio.iscoroutine(pending)
        asyncio.run(pending)
        assert sync_die.values == async_die.values

    def test_roll_passes_its_mode(self, monkeypatch):
        """Test evaluate and evaluate_async go through run with their mode."""
        modes = []

        def recording_run(steps, mode, roller=None):
            modes.append(mode)
            return run(steps, mode, roller)

        monkeypatch.setattr(roll_module, 'run', recording_run)
        Roll('1d6').evaluate()
        asyncio.run(Roll('1d6').evaluate_async())
        assert modes == [EvaluationMode.SYNC, EvaluationMode.ASYNC]
