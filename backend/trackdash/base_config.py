"""Compiled-in dashboard configuration and the string codec of overrides.

Stored configuration rows only keep the string form of a value; this module
owns the defaults they override and the conversion back to python values.
"""

import json
from typing import Any, Dict


BASE_CONFIG: Dict[str, Any] = {
    "TITLE": "Dashboard de trayectoria académica",
    "SEARCH_BAR_PLACEHOLDER": "Ingresa el RUT o identificador del estudiante",
    "MOCKING_MODE_ENABLED": False,
    "SHOW_DROPOUT": True,
    "SHOW_STUDENT_LIST": True,
    "SHOW_GROUPED_VIEW": False,
    "STUDENT_LIST_LAST_N_YEARS": 2,
    "MAX_N_EXTERNAL_EVALUATIONS": 3,
    "APPROVED_GRADE": 4.0,
    "MAX_GRADE": 7.0,
    "SEMESTER_HEADER_TEXT_COLOR": "rgb(90,90,90)",
    "SEMESTER_HEADER_FONT_SIZE": "1.2em",
    "DROPOUT_BACKGROUND_COLOR": "rgb(255,255,255)",
    "ERROR_GENERIC_MESSAGE": "Ha ocurrido un error inesperado",
    "COURSE_STATE_LABELS": {
        "A": "Aprobado",
        "R": "Reprobado",
        "C": "Cursando",
    },
    "CYCLE_COLORS": ["#1e40af", "#0f766e", "#b45309", "#7c3aed"],
}


def config_string_to_value(value: str) -> Any:
    """Parse a stored configuration string; every string has a value.

    ``"true"``/``"false"`` become booleans, numeric strings become ``int`` or
    ``float``, JSON objects and arrays become ``dict``/``list`` and anything
    else is kept as the string itself.
    """

    stripped = value.strip()
    lowered = stripped.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        return int(stripped)
    except ValueError:
        pass
    try:
        return float(stripped)
    except ValueError:
        pass
    if stripped[:1] in ("{", "["):
        try:
            parsed = json.loads(stripped)
        except ValueError:
            return value
        if isinstance(parsed, (dict, list)):
            return parsed
    return value


def value_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    return "undefined"
