from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

from .context import EstimateInput, LogicalOperator, Operator, RuleCondition
from .errors import InvalidConditionError

D = Decimal


class _Missing:
    """Sentinel for a path that does not resolve (JS 'undefined'); distinct from None."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def get_field_value(path: str, source: Union[EstimateInput, Mapping[str, Any]]) -> Any:
    """
    Walk a dot path ('pickup.stairsCount') into the input.
    Any missing step yields MISSING; this never raises.
    """
    current: Any = source.field_view if isinstance(source, EstimateInput) else source
    for key in str(path).split("."):
        if isinstance(current, Mapping):
            current = current.get(key, MISSING)
        elif isinstance(current, (list, tuple)) and key.isdigit():
            idx = int(key)
            current = current[idx] if idx < len(current) else MISSING
        else:
            return MISSING
        if current is MISSING:
            return MISSING
    return current


# -----------------------------
# Coercion helpers
# -----------------------------


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float, Decimal)) and not isinstance(v, bool)


def to_number(v: Any) -> Optional[D]:
    """
    Numeric coercion for gt/gte/lt/lte/between.
    None -> 0, bool -> 0/1, '' -> 0, missing or non-numeric -> None (never matches).
    """
    if v is MISSING:
        return None
    if v is None:
        return D("0")
    if isinstance(v, bool):
        return D(int(v))
    if isinstance(v, Decimal):
        return v if v.is_finite() else None
    if isinstance(v, (int, float)):
        try:
            out = D(str(v))
        except InvalidOperation:
            return None
        return out if out.is_finite() else None
    if isinstance(v, datetime):
        return D(str(v.timestamp() * 1000))
    if isinstance(v, str):
        s = v.strip()
        if s == "":
            return D("0")
        try:
            out = D(s)
        except InvalidOperation:
            return None
        return out if out.is_finite() else None
    return None


def strict_equals(a: Any, b: Any) -> bool:
    """Strict equality: no bool/number mixing, numbers compare by value."""
    if a is MISSING or b is MISSING:
        return a is b
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        left, right = to_number(a), to_number(b)
        return left is not None and left == right
    if _is_number(a) or _is_number(b):
        return False
    if a is None or b is None:
        return a is b
    if type(a) is not type(b) and not (isinstance(a, str) and isinstance(b, str)):
        return False
    return a == b


def as_text(v: Any) -> str:
    """String rendering used by the regex operator."""
    if v is MISSING:
        return "undefined"
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, Decimal):
        n = v.normalize()
        return format(n, "f") if n != n.to_integral_value() else str(int(n))
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    if isinstance(v, (list, tuple)):
        return ",".join(as_text(x) for x in v)
    return str(v)


def _compare(field_value: Any, value: Any, op: Callable[[D, D], bool]) -> bool:
    left, right = to_number(field_value), to_number(value)
    if left is None or right is None:
        return False
    return op(left, right)


# -----------------------------
# Operators (closed set, one handler per Operator)
# -----------------------------


def _op_eq(fv: Any, value: Any) -> bool:
    return strict_equals(fv, value)


def _op_ne(fv: Any, value: Any) -> bool:
    return not strict_equals(fv, value)


def _op_gt(fv: Any, value: Any) -> bool:
    return _compare(fv, value, lambda a, b: a > b)


def _op_gte(fv: Any, value: Any) -> bool:
    return _compare(fv, value, lambda a, b: a >= b)


def _op_lt(fv: Any, value: Any) -> bool:
    return _compare(fv, value, lambda a, b: a < b)


def _op_lte(fv: Any, value: Any) -> bool:
    return _compare(fv, value, lambda a, b: a <= b)


def _op_in(fv: Any, value: Any) -> bool:
    return isinstance(value, (list, tuple)) and any(strict_equals(fv, v) for v in value)


def _op_nin(fv: Any, value: Any) -> bool:
    return isinstance(value, (list, tuple)) and not any(strict_equals(fv, v) for v in value)


def _op_between(fv: Any, value: Any) -> bool:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return False
    x, lo, hi = to_number(fv), to_number(value[0]), to_number(value[1])
    if x is None or lo is None or hi is None:
        return False
    return lo <= x <= hi


def _op_exists(fv: Any, value: Any) -> bool:
    return fv is not MISSING and fv is not None


def _op_regex(fv: Any, value: Any) -> bool:
    try:
        pattern = re.compile(as_text(value))
    except re.error as e:
        raise InvalidConditionError(
            f"Invalid regex in condition: {value!r}", {"pattern": str(value)}
        ) from e
    return pattern.search(as_text(fv)) is not None


OPERATORS: Dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQ: _op_eq,
    Operator.NE: _op_ne,
    Operator.GT: _op_gt,
    Operator.GTE: _op_gte,
    Operator.LT: _op_lt,
    Operator.LTE: _op_lte,
    Operator.IN: _op_in,
    Operator.NIN: _op_nin,
    Operator.BETWEEN: _op_between,
    Operator.EXISTS: _op_exists,
    Operator.REGEX: _op_regex,
}

# fail fast als er ooit een Operator bijkomt zonder handler
_unhandled = set(Operator) - set(OPERATORS)
if _unhandled:  # pragma: no cover
    raise RuntimeError(f"Operators without handler: {sorted(o.value for o in _unhandled)}")


class ConditionEvaluator:
    """
    Evaluates condition lists with a strict left fold:

        result = True, op = AND
        for c in conditions:
            result = result <op> outcome(c)
            op = c.logical_operator or op

    The operator on a condition governs the combination with the *next*
    condition; there is no AND-over-OR precedence.
    """

    def evaluate_condition(self, condition: RuleCondition, source: Any) -> bool:
        field_value = get_field_value(condition.field, source)
        return OPERATORS[Operator(condition.operator)](field_value, condition.value)

    def evaluate(self, conditions: Sequence[RuleCondition], source: Any) -> bool:
        if not conditions:
            return True

        result = True
        current = LogicalOperator.AND

        for condition in conditions:
            outcome = self.evaluate_condition(condition, source)

            if current == LogicalOperator.AND:
                result = result and outcome
            else:
                result = result or outcome

            if condition.logical_operator:
                current = LogicalOperator(condition.logical_operator)

        return result
