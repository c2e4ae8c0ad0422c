"""
Tests for safe roll evaluation.
"""

import asyncio
import json
import logging

from rollsmith.core.errors import ErrorCode, EvaluationError, FormulaError, RollOptionsError, RollWarning
from rollsmith.dice import CheckRoll, DamageRoll, Roll, safe_roll, safe_roll_async, safe_total


class TestSafeRoll:
    """Test error containment."""

    def test_success(self):
        """Test a good formula evaluates normally."""
        roll = safe_roll('1d6 + 2', maximize=True)
        assert roll.total == 8
        assert roll.err is None

    def test_error_gives_zero_placeholder(self):
        """Test failures produce an evaluated zero roll carrying the error."""
        roll = safe_roll('1 / 0')
        assert roll.total == 0
        assert roll.evaluated is True
        assert isinstance(roll.err, EvaluationError)

    def test_placeholder_keeps_roll_class(self):
        """Test the placeholder uses the requested roll class."""
        roll = safe_roll('foo', roll_class=CheckRoll)
        assert isinstance(roll, CheckRoll)
        assert roll.total == 0
        assert roll.err is not None

    def test_placeholder_after_option_error(self):
        """Test bad options still produce a roll of the same class."""
        roll = safe_roll('1d6', roll_class=DamageRoll, options={'type': 'massive'})
        assert isinstance(roll, DamageRoll)
        assert isinstance(roll.err, RollOptionsError)
        assert roll.total == 0

    def test_oversized_result(self):
        """Test results too large to print give a placeholder that still serializes."""
        roll = safe_roll('10**5000')
        assert roll.total == 0
        assert roll.err.code == ErrorCode.RESULT_TOO_LARGE
        assert json.loads(roll.to_json())['total'] == 0

    def test_oversized_pool(self):
        """Test pools past the dice cap fail before anything is rolled."""
        roll = safe_roll('2000000d6')
        assert roll.total == 0
        assert isinstance(roll.err, FormulaError)

    def test_warning(self):
        """Test missing data attaches a warning without failing."""
        roll = safe_roll('@missing + 1')
        assert roll.total == 1
        assert isinstance(roll.err, RollWarning)
        assert str(roll.err) == 'This formula had a value replaced with null.'

    def test_classmethod(self):
        """Test Roll.safe_roll delegates with its own class."""
        roll = CheckRoll.safe_roll('1d20 + @bonus', {'bonus': 3}, maximize=True)
        assert isinstance(roll, CheckRoll)
        assert roll.total == 23

    def test_async(self):
        """Test the async wrapper contains errors too."""
        roll = asyncio.run(safe_roll_async('2d4', maximize=True))
        assert roll.total == 8
        roll = asyncio.run(Roll.safe_roll_async('1 / 0'))
        assert roll.total == 0
        assert isinstance(roll.err, EvaluationError)


class TestSafeRollLogging:
    """Test how contained errors are logged."""

    def test_context_is_logged(self, caplog):
        """Test errors with a context label are logged."""
        with caplog.at_level(logging.ERROR, logger='rollsmith'):
            safe_roll('1 / 0', context='Longsword attack')
        assert any(r.message.startswith('Longsword attack: ') for r in caplog.records)

    def test_error_travels_with_the_record(self, caplog):
        """Test the error and formula are attached to the log record."""
        with caplog.at_level(logging.ERROR, logger='rollsmith'):
            safe_roll('1 / 0', context='Longsword attack')
        record = caplog.records[-1]
        assert record.name == 'rollsmith.rolls'
        assert record.roll_error.code == ErrorCode.DIVISION_BY_ZERO
        assert record.formula == '1 / 0'

    def test_suppressed(self, caplog):
        """Test suppress_error silences the log."""
        with caplog.at_level(logging.ERROR, logger='rollsmith'):
            safe_roll('1 / 0', context='Longsword attack', suppress_error=True)
        assert caplog.records == []

    def test_no_context_is_quiet(self, caplog):
        """Test errors without a context are not logged by default."""
        with caplog.at_level(logging.ERROR, logger='rollsmith'):
            safe_roll('1 / 0')
        assert caplog.records == []

    def test_debug_rolls(self, caplog, monkeypatch):
        """Test ROLLSMITH_DEBUG_ROLLS logs every contained error."""
        from rollsmith.core.config import reset_config

        monkeypatch.setenv('ROLLSMITH_DEBUG_ROLLS', 'true')
        reset_config()
        with caplog.at_level(logging.ERROR, logger='rollsmith'):
            safe_roll('1 / 0')
        assert any(r.message.startswith('Roll error: ') for r in caplog.records)

    def test_warning_is_logged_with_context(self, caplog):
        """Test warnings are logged like errors."""
        with caplog.at_level(logging.ERROR, logger='rollsmith'):
            safe_roll('@missing', context='Skill check')
        assert 'Skill check: This formula had a value replaced with null.' in caplog.messages


def test_safe_total():
    """Test numeric shortcuts and the roll fallback."""
    assert safe_total(5) == 5
    assert safe_total('3') == 3
    assert safe_total(' -2.5 ') == -2.5
    assert safe_total('1d1 + @x', {'x': 2}) == 3
    assert safe_total('foo') == 0
