"""
Payment signal detection on the free-form answers payload.

Rules, first match wins:
1. explicit "paid" key - its boolean value is final
2. subscription.active is truthy
3. payment.status in {paid, success, completed}
4. payment.amount > 0 and payment.status in {captured, charged}
"""
from typing import Any, Optional

_PAID_STATUSES = frozenset({"paid", "success", "completed"})
_CAPTURED_STATUSES = frozenset({"captured", "charged"})
_TRUE_STRINGS = frozenset({"1", "true", "on", "yes"})


def to_bool(value: Any) -> bool:
    """Loose boolean cast: "yes"/"on"/"1"/"true" and non-zero numbers are true."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def _dig(payload: dict, path: str) -> Optional[Any]:
    """Dotted-path lookup: _dig(p, "payment.status")."""
    current: Any = payload
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _to_amount(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class LeadPaymentService:

    def should_mark_paid(self, payload: Optional[dict] = None) -> bool:
        payload = payload or {}

        if "paid" in payload:
            return to_bool(payload["paid"])

        if to_bool(_dig(payload, "subscription.active")):
            return True

        status = _dig(payload, "payment.status")
        status = str(status).lower() if status is not None else ""
        if status in _PAID_STATUSES:
            return True

        return _to_amount(_dig(payload, "payment.amount")) > 0 and status in _CAPTURED_STATUSES
