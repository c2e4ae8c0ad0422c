"""
JSON Schemas for roll options and serialized roll data.
"""

TERM_SCHEMA = {
    "type": "object",
    "properties": {
        "class": {"type": "string", "minLength": 1},
        "options": {"type": "object"},
        "evaluated": {"type": "boolean"},
    },
    "required": ["class"],
}

ROLL_SCHEMA = {
    "type": "object",
    "properties": {
        "class": {"type": "string", "minLength": 1},
        "formula": {"type": "string"},
        "terms": {
            "type": "array",
            "items": {"type": "object"},
        },
        "total": {"type": ["number", "boolean", "null"]},
        "evaluated": {"type": "boolean"},
        "options": {"type": "object"},
    },
    "required": ["class", "terms"],
}

CHECK_OPTIONS_SCHEMA = {
    "type": "object",
    "properties": {
        "critical": {"type": "number"},
        "fumble": {"type": "number"},
        "misfire": {"type": "number"},
        "static_roll": {"type": ["number", "null"]},
        "bonus": {"type": "string"},
        "flavor": {"type": "string"},
    },
    "required": ["critical", "fumble", "misfire"],
}

DAMAGE_TYPE_SCHEMA = {
    "type": "object",
    "properties": {
        "values": {
            "type": "array",
            "items": {"type": "string"},
            "minItems": 1,
        },
        "custom": {"type": "string"},
    },
    "required": ["values", "custom"],
}

DAMAGE_OPTIONS_SCHEMA = {
    "type": "object",
    "properties": {
        "damage_type": DAMAGE_TYPE_SCHEMA,
        "type": {"enum": ["normal", "crit", "nonCrit"]},
        "flavor": {"type": "string"},
    },
    "required": ["damage_type", "type"],
}

__all__ = [
    'TERM_SCHEMA',
    'ROLL_SCHEMA',
    'CHECK_OPTIONS_SCHEMA',
    'DAMAGE_TYPE_SCHEMA',
    'DAMAGE_OPTIONS_SCHEMA',
]
