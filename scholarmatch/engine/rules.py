# scholarmatch/engine/rules.py
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterator, List, Optional

from .conditions import (
    EXISTENCE_OPERATORS,
    ConditionType,
    Importance,
    evaluate_condition,
    evaluate_list,
    evaluate_range,
    has_value,
    lookup_field,
    validate_condition,
)
from .criteria_config import (
    BOOLEAN_CRITERIA,
    LIST_CRITERIA,
    RANGE_CRITERIA,
    STAGES,
    stage_for,
)


@dataclass
class CheckResult:
    id: str
    criterion: str
    passed: bool
    applicant_value: Any
    required_value: Any
    notes: str
    type: str  # range / boolean / list
    category: str
    importance: str = Importance.REQUIRED.value

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class EligibilityOut:
    passed: bool
    score: float
    checks: List[CheckResult] = field(default_factory=list)
    stages: Dict[str, List[dict]] = field(default_factory=dict)
    summary: Dict[str, int] = field(default_factory=dict)
    failed_required: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "score": self.score,
            "checks": [c.to_dict() for c in self.checks],
            "stages": self.stages,
            "summary": self.summary,
            "failed_required": self.failed_required,
        }


def _fmt(value: Any, pattern: str) -> str:
    try:
        return pattern.format(float(value))
    except (TypeError, ValueError):
        return str(value)


def _describe_bounds(lo: Any, hi: Any, pattern: str) -> str:
    if lo is not None and hi is not None:
        return f"between {_fmt(lo, pattern)} and {_fmt(hi, pattern)}"
    if lo is not None:
        return f"at least {_fmt(lo, pattern)}"
    return f"at most {_fmt(hi, pattern)}"


def _fail_note(name: str, requirement: str, importance: str) -> str:
    note = f"{name} does not meet requirement ({requirement})"
    if importance != Importance.REQUIRED.value:
        note += " (advisory)"
    return note


# ---------- built-in range criteria ----------
def _range_checks(profile: dict, criteria: dict) -> Iterator[CheckResult]:
    for crit in RANGE_CRITERIA:
        lo = criteria.get(crit["min_key"]) if crit["min_key"] else None
        hi = criteria.get(crit["max_key"]) if crit["max_key"] else None
        if lo is None and hi is None:
            continue

        value = profile.get(crit["field"])
        requirement = _describe_bounds(lo, hi, crit["format"])
        if lo is not None and hi is not None:
            ok = evaluate_range(value, "between", {"min": lo, "max": hi})
        elif lo is not None:
            ok = evaluate_range(value, "gte", lo)
        else:
            ok = evaluate_range(value, "lte", hi)

        if ok is None:
            notes = f"{crit['name']} not provided"
        elif ok:
            notes = f"{crit['name']} {_fmt(value, crit['format'])} is {requirement}"
        else:
            notes = _fail_note(crit["name"], requirement, Importance.REQUIRED.value)

        yield CheckResult(
            id=crit["id"],
            criterion=crit["name"],
            passed=bool(ok),
            applicant_value=value,
            required_value={"min": lo, "max": hi},
            notes=notes,
            type="range",
            category=crit["category"],
        )


# ---------- built-in list criteria ----------
def _list_checks(profile: dict, criteria: dict) -> Iterator[CheckResult]:
    for crit in LIST_CRITERIA:
        allowed = criteria.get(crit["key"]) or []
        if not allowed:
            continue

        value = profile.get(crit["field"])
        ok = evaluate_list(value, "in", allowed)
        if ok is None:
            notes = f"{crit['name']} not provided"
        elif ok:
            notes = f"{crit['name']} {value} is eligible"
        else:
            notes = _fail_note(crit["name"], "must be one of: " + ", ".join(map(str, allowed)),
                               Importance.REQUIRED.value)

        yield CheckResult(
            id=crit["id"],
            criterion=crit["name"],
            passed=bool(ok),
            applicant_value=value,
            required_value=list(allowed),
            notes=notes,
            type="list",
            category=crit["category"],
        )


# ---------- built-in boolean criteria ----------
def _boolean_checks(profile: dict, criteria: dict) -> Iterator[CheckResult]:
    for crit in BOOLEAN_CRITERIA:
        if not criteria.get(crit["key"]):
            continue

        value = profile.get(crit["field"])
        if crit["mode"] == "must_not":
            ok = not bool(value)
            requirement = f"{crit['field']} must be false"
            notes = crit["name"] if ok else _fail_note(crit["name"], requirement, Importance.REQUIRED.value)
        else:
            ok = bool(value)
            requirement = f"{crit['field']} must be true"
            if value is None:
                notes = f"{crit['name']} not provided"
            else:
                notes = crit["name"] if ok else _fail_note(crit["name"], requirement, Importance.REQUIRED.value)

        yield CheckResult(
            id=crit["id"],
            criterion=crit["name"],
            passed=ok,
            applicant_value=value,
            required_value=crit["mode"] == "requires",
            notes=notes,
            type="boolean",
            category=crit["category"],
        )


# ---------- admin-defined conditions ----------
def _custom_checks(profile: dict, criteria: dict) -> Iterator[CheckResult]:
    seen_ids: set = set()
    for index, raw in enumerate(criteria.get("custom_conditions") or []):
        cond = validate_condition(raw)
        if cond["id"] in seen_ids:
            cond["id"] = f"{cond['id']}#{index}"
        seen_ids.add(cond["id"])
        if not cond["is_active"]:
            continue

        value = lookup_field(profile, cond["student_field"])
        # list conditions decide missing values themselves (an empty requirement auto-passes)
        missing = value is None or (isinstance(value, str) and not has_value(value))
        if (
            missing
            and cond["condition_type"] != ConditionType.LIST.value
            and cond["operator"] not in EXISTENCE_OPERATORS
        ):
            ok = None
        else:
            ok = evaluate_condition(cond["condition_type"], value, cond["operator"], cond.get("value"))

        if ok is None:
            notes = f"{cond['name']} not provided"
            if cond["importance"] != Importance.REQUIRED.value:
                notes += " (advisory)"
        elif ok:
            notes = f"{cond['name']} satisfied"
        else:
            notes = _fail_note(cond["name"], f"{cond['operator']} {cond.get('value')!r}", cond["importance"])

        yield CheckResult(
            id=f"custom:{cond['id']}",
            criterion=cond["name"],
            passed=bool(ok),
            applicant_value=value,
            required_value=cond.get("value"),
            notes=notes,
            type=cond["condition_type"],
            category=cond["category"],
            importance=cond["importance"],
        )


def iter_checks(profile: dict, criteria: Optional[dict]) -> Iterator[CheckResult]:
    criteria = criteria or {}
    profile = profile or {}
    yield from _range_checks(profile, criteria)
    yield from _list_checks(profile, criteria)
    yield from _boolean_checks(profile, criteria)
    yield from _custom_checks(profile, criteria)


def evaluate(profile: dict, criteria: Optional[dict]) -> EligibilityOut:
    """
    Run every configured criterion against a profile.

    Unset criteria produce no check. Missing applicant values fail with a
    "not provided" note. Only required checks decide ``passed``; ``score``
    counts every check.
    """
    checks = list(iter_checks(profile, criteria))

    total = len(checks)
    passed_count = sum(1 for c in checks if c.passed)
    failed_required = [
        c.id for c in checks
        if not c.passed and c.importance == Importance.REQUIRED.value
    ]

    stages: Dict[str, List[dict]] = {name: [] for name in STAGES}
    for c in checks:
        stages[stage_for(c.category)].append(c.to_dict())

    return EligibilityOut(
        passed=not failed_required,
        score=round(passed_count / total, 4) if total else 1.0,
        checks=checks,
        stages=stages,
        summary={"total": total, "passed": passed_count, "failed": total - passed_count},
        failed_required=failed_required,
    )


def quick_check(profile: dict, criteria: Optional[dict]) -> bool:
    for c in iter_checks(profile, criteria):
        if not c.passed and c.importance == Importance.REQUIRED.value:
            return False
    return True
