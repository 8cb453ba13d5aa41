# scholarmatch/engine/conditions.py
from __future__ import annotations

import enum
import math
from collections.abc import Mapping
from typing import Any, Optional


class ConditionValidationError(ValueError):
    pass


class ConditionType(str, enum.Enum):
    RANGE = "range"
    BOOLEAN = "boolean"
    LIST = "list"


class RangeOperator(str, enum.Enum):
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    EQ = "eq"
    NEQ = "neq"
    BETWEEN = "between"
    BETWEEN_EXCLUSIVE = "between_exclusive"
    OUTSIDE = "outside"


class BooleanOperator(str, enum.Enum):
    IS = "is"
    IS_NOT = "is_not"
    IS_TRUE = "is_true"
    IS_FALSE = "is_false"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"


class ListOperator(str, enum.Enum):
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    CONTAINS_ALL = "contains_all"
    CONTAINS_ANY = "contains_any"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    MATCHES_ANY = "matches_any"
    MATCHES_ALL = "matches_all"


class Importance(str, enum.Enum):
    REQUIRED = "required"
    PREFERRED = "preferred"
    OPTIONAL = "optional"


class Category(str, enum.Enum):
    ACADEMIC = "academic"
    FINANCIAL = "financial"
    DEMOGRAPHIC = "demographic"
    ENROLLMENT = "enrollment"
    LOCATION = "location"
    STATUS = "status"
    CUSTOM = "custom"


OPERATORS_BY_TYPE = {
    ConditionType.RANGE: RangeOperator,
    ConditionType.BOOLEAN: BooleanOperator,
    ConditionType.LIST: ListOperator,
}

# operators that answer a question about presence, so a missing value is a real input
EXISTENCE_OPERATORS = {
    BooleanOperator.EXISTS.value,
    BooleanOperator.NOT_EXISTS.value,
    ListOperator.IS_EMPTY.value,
    ListOperator.IS_NOT_EMPTY.value,
}

_INTERVAL_OPERATORS = {
    RangeOperator.BETWEEN.value,
    RangeOperator.BETWEEN_EXCLUSIVE.value,
    RangeOperator.OUTSIDE.value,
}


# -------------------------
# value helpers
# -------------------------
def has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple, set)):
        return len(value) > 0
    return True


def normalize_text(value: Any) -> Any:
    if isinstance(value, str):
        return " ".join(value.split()).casefold()
    return value


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def _as_items(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [normalize_text(v) for v in value if has_value(v)]
    return [normalize_text(value)] if has_value(value) else []


def _interval(threshold: Any) -> tuple[float, float]:
    if isinstance(threshold, Mapping):
        lo, hi = threshold.get("min"), threshold.get("max")
    elif isinstance(threshold, (list, tuple)) and len(threshold) == 2:
        lo, hi = threshold
    else:
        raise ConditionValidationError(f"Interval threshold must be {{min, max}}, got {threshold!r}")
    lo_n = _as_number(lo) if lo is not None else -math.inf
    hi_n = _as_number(hi) if hi is not None else math.inf
    if lo_n is None or hi_n is None:
        raise ConditionValidationError(f"Interval bounds must be numeric, got {threshold!r}")
    return lo_n, hi_n


def lookup_field(profile: Mapping, field: str) -> Any:
    """
    Resolve a student field by name: top-level profile key first, then the
    admin-defined ``custom_fields`` map, then a dotted path through nested
    mappings (``guardian.occupation``).
    """
    if not field:
        return None
    if field in profile:
        return profile[field]

    custom = profile.get("custom_fields") or {}
    if isinstance(custom, Mapping) and field in custom:
        return custom[field]

    current: Any = profile
    for key in field.split("."):
        if not isinstance(current, Mapping):
            return None
        if key in current:
            current = current[key]
        elif isinstance(current.get("custom_fields"), Mapping) and key in current["custom_fields"]:
            current = current["custom_fields"][key]
        else:
            return None
    return current


# -------------------------
# evaluators (None = value not provided)
# -------------------------
def evaluate_range(value: Any, operator: str, threshold: Any) -> Optional[bool]:
    number = _as_number(value)
    if number is None:
        return None

    op = RangeOperator(operator)
    if op.value in _INTERVAL_OPERATORS:
        lo, hi = _interval(threshold)
        if op is RangeOperator.BETWEEN:
            return lo <= number <= hi
        if op is RangeOperator.BETWEEN_EXCLUSIVE:
            return lo < number < hi
        return number < lo or number > hi

    limit = _as_number(threshold)
    if limit is None:
        raise ConditionValidationError(f"Range threshold must be numeric, got {threshold!r}")
    if op is RangeOperator.LT:
        return number < limit
    if op is RangeOperator.LTE:
        return number <= limit
    if op is RangeOperator.GT:
        return number > limit
    if op is RangeOperator.GTE:
        return number >= limit
    if op is RangeOperator.EQ:
        return math.isclose(number, limit)
    return not math.isclose(number, limit)


def evaluate_boolean(value: Any, operator: str, expected: Any = True) -> Optional[bool]:
    op = BooleanOperator(operator)
    if op is BooleanOperator.EXISTS:
        return has_value(value)
    if op is BooleanOperator.NOT_EXISTS:
        return not has_value(value)

    if value is None:
        return None
    flag = bool(value)
    if op is BooleanOperator.IS_TRUE:
        return flag
    if op is BooleanOperator.IS_FALSE:
        return not flag
    target = True if expected is None else bool(expected)
    if op is BooleanOperator.IS:
        return flag == target
    return flag != target


def _fuzzy(a: Any, b: Any) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        return a in b or b in a
    return a == b


def evaluate_list(value: Any, operator: str, required: Any) -> Optional[bool]:
    """
    Membership checks against a requirement list.

    ``in``/``not_in`` test a single applicant value; the ``contains`` family
    treats the applicant value as a collection; ``matches_*`` use substring
    matching. Text comparison is case-insensitive.
    """
    op = ListOperator(operator)
    items = _as_items(value)

    if op is ListOperator.IS_EMPTY:
        return not items
    if op is ListOperator.IS_NOT_EMPTY:
        return bool(items)

    wanted = _as_items(required)
    if not wanted:
        # no restriction
        return True

    if op in (ListOperator.CONTAINS_ALL, ListOperator.CONTAINS_ANY):
        if value is None or (isinstance(value, str) and not has_value(value)):
            return None
        if not items:
            return False
        if op is ListOperator.CONTAINS_ALL:
            return all(w in items for w in wanted)
        return any(w in items for w in wanted)

    if not items:
        return None

    if op is ListOperator.IN:
        return items[0] in wanted
    if op is ListOperator.NOT_IN:
        return items[0] not in wanted
    if op is ListOperator.CONTAINS:
        return any(i in wanted for i in items)
    if op is ListOperator.NOT_CONTAINS:
        return not any(i in wanted for i in items)
    if op is ListOperator.MATCHES_ANY:
        return any(_fuzzy(w, i) for w in wanted for i in items)
    return all(any(_fuzzy(w, i) for i in items) for w in wanted)


def evaluate_condition(condition_type: str, value: Any, operator: str, threshold: Any) -> Optional[bool]:
    ctype = ConditionType(condition_type)
    if ctype is ConditionType.RANGE:
        return evaluate_range(value, operator, threshold)
    if ctype is ConditionType.BOOLEAN:
        return evaluate_boolean(value, operator, threshold)
    return evaluate_list(value, operator, threshold)


# -------------------------
# authoring-time validation
# -------------------------
def validate_condition(raw: Mapping) -> dict:
    """
    Normalise an admin-authored custom condition, raising
    ConditionValidationError for anything the evaluator could not run.
    """
    if not isinstance(raw, Mapping):
        raise ConditionValidationError("Custom condition must be an object")

    cond = dict(raw)
    field = cond.get("student_field")
    if not isinstance(field, str) or not field.strip():
        raise ConditionValidationError("Custom condition is missing student_field")
    cond["student_field"] = field.strip()

    try:
        ctype = ConditionType(cond.get("condition_type"))
    except ValueError:
        raise ConditionValidationError(f"Unknown condition type: {cond.get('condition_type')!r}")
    cond["condition_type"] = ctype.value

    family = OPERATORS_BY_TYPE[ctype]
    try:
        op = family(cond.get("operator"))
    except ValueError:
        raise ConditionValidationError(
            f"Operator {cond.get('operator')!r} is not a {ctype.value} operator"
        )
    cond["operator"] = op.value

    value = cond.get("value")
    if ctype is ConditionType.RANGE:
        if op.value in _INTERVAL_OPERATORS:
            lo, hi = _interval(value)
            if math.isinf(lo) and math.isinf(hi):
                raise ConditionValidationError("Interval needs at least one bound")
            if lo > hi:
                raise ConditionValidationError("Interval min is greater than max")
        elif _as_number(value) is None:
            raise ConditionValidationError(f"Range value must be numeric, got {value!r}")
    elif ctype is ConditionType.BOOLEAN:
        if op in (BooleanOperator.IS, BooleanOperator.IS_NOT):
            if value is None:
                cond["value"] = True
            elif not isinstance(value, bool):
                raise ConditionValidationError(f"Boolean value must be true/false, got {value!r}")
    elif op.value not in EXISTENCE_OPERATORS:
        if isinstance(value, str):
            cond["value"] = [value]
        elif not isinstance(value, (list, tuple)):
            raise ConditionValidationError(f"List value must be a list, got {value!r}")
        else:
            cond["value"] = list(value)

    try:
        cond["importance"] = Importance(cond.get("importance") or Importance.REQUIRED.value).value
    except ValueError:
        raise ConditionValidationError(f"Unknown importance: {cond.get('importance')!r}")
    try:
        cond["category"] = Category(cond.get("category") or Category.CUSTOM.value).value
    except ValueError:
        raise ConditionValidationError(f"Unknown category: {cond.get('category')!r}")

    cond["id"] = str(cond.get("id") or f"{cond['student_field']}:{op.value}")
    cond["name"] = cond.get("name") or cond["student_field"]
    cond["is_active"] = bool(cond.get("is_active", True))
    return cond
