"""
API Blueprint - JSON endpoints for rolling and simplifying formulas.

Every roll goes through the safe wrapper, so a bad formula still produces a
roll (a zero placeholder) with the error reported next to it.
"""

import logging

from flask import Blueprint, jsonify, request

from rollsmith.core.errors import RollError
from rollsmith.dice import (
    CheckRoll,
    DamageRoll,
    Roll,
    get_function_registry,
    safe_roll,
    simplify_formula,
    size_roll,
)

logger = logging.getLogger(__name__)

# Create blueprint
api_bp = Blueprint('api', __name__, url_prefix='/api')

ROLL_KINDS = {
    'roll': Roll,
    'check': CheckRoll,
    'damage': DamageRoll,
}


def _error_payload(error):
    if isinstance(error, RollError):
        return error.to_dict()
    return {'error': str(error), 'error_code': 'unexpected_error', 'warning': False}


# ========== Rolling ==========

@api_bp.route('/roll', methods=['POST'])
def api_roll():
    """
    JSON API: Evaluate a formula.

    Request JSON:
        {
            "formula": "1d20 + @mod",
            "data": {"mod": 4},          # optional
            "kind": "check",             # optional: roll, check, damage
            "options": {"bonus": "2"},   # optional, per kind
            "context": "Attack"          # optional, labels logged errors
        }

    Returns:
        {
            "success": true,
            "roll": {...serialized roll...},
            "total": 17,
            "error": null,
            "check": {"is_crit": false, ...}    # check rolls only
        }
    """
    data = request.get_json(silent=True) or {}

    formula = data.get('formula')
    if not isinstance(formula, str) or not formula.strip():
        return jsonify({
            'success': False,
            'error': 'Missing required field: formula'
        }), 400

    kind = data.get('kind', 'roll')
    roll_class = ROLL_KINDS.get(kind)
    if roll_class is None:
        return jsonify({
            'success': False,
            'error': f"Unknown roll kind '{kind}'. Must be one of: {', '.join(ROLL_KINDS)}"
        }), 400

    roll = safe_roll(
        formula,
        data.get('data') or {},
        data.get('context'),
        roll_class=roll_class,
        options=data.get('options'),
    )

    result = {
        'success': True,
        'roll': roll.to_dict(),
        'total': roll.total,
        'error': _error_payload(roll.err) if roll.err is not None else None,
    }
    if isinstance(roll, CheckRoll):
        result['check'] = roll.to_chat_data()
    if isinstance(roll, DamageRoll):
        result['damage'] = {
            'damage_types': roll.damage_types,
            'is_critical': roll.is_critical,
        }
    return jsonify(result)


@api_bp.route('/simplify', methods=['POST'])
def api_simplify():
    """
    JSON API: Simplify a formula without rolling.

    Request JSON:
        {"formula": "1d8-1+32", "data": {...}}

    Returns:
        {"success": true, "formula": "1d8-1+32", "simplified": "1d8 + 31"}
    """
    data = request.get_json(silent=True) or {}

    formula = data.get('formula')
    if not isinstance(formula, str):
        return jsonify({
            'success': False,
            'error': 'Missing required field: formula'
        }), 400

    try:
        simplified = simplify_formula(formula, data.get('data') or {})
    except RollError as e:
        return jsonify({'success': False, **e.to_dict()}), 400

    return jsonify({
        'success': True,
        'formula': formula,
        'simplified': simplified
    })


# ========== Reference data ==========

@api_bp.route('/size-roll')
def api_size_roll():
    """JSON API: Step a die expression by size, e.g. ?count=1&faces=6&delta=1."""
    try:
        count = request.args.get('count', type=int)
        faces = request.args.get('faces', type=int)
        delta = request.args.get('delta', default=0, type=int)
        initial = request.args.get('initial')

        if count is None or faces is None:
            return jsonify({
                'success': False,
                'error': 'Missing required parameters: count, faces'
            }), 400

        if initial is not None and initial.lstrip('-').isdigit():
            initial = int(initial)

        size_die = size_roll(count, faces, delta, initial)
        return jsonify({
            'success': True,
            'count': size_die.count,
            'faces': size_die.faces,
            'formula': size_die.formula
        })
    except RollError as e:
        return jsonify({'success': False, **e.to_dict()}), 400


@api_bp.route('/functions')
def api_functions():
    """JSON API: List registered function terms in matching order."""
    registry = get_function_registry()
    return jsonify({
        'functions': [definition.to_dict() for definition in registry.get_all()]
    })
