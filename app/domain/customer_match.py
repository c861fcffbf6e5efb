"""Customer identity matching.

Pure comparison of submitted contact details against a stored customer.
No persistence here; the customer service acts on the returned outcome.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Protocol


class ResolutionOutcome(str, Enum):
    """Result of resolving submitted details against the customer store."""

    CREATED = "Created"
    UPGRADED = "Upgraded"
    EXACT_MATCH = "ExactMatch"
    CONFLICT = "Conflict"


class StoredCustomer(Protocol):
    first_name: str
    last_name: str
    phone: str
    date_of_birth: date | None
    password_hash: str | None


@dataclass(frozen=True)
class FieldConflict:
    """One differing field: stored value vs submitted value."""

    field: str
    existing: Any
    new: Any

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "existing": _plain(self.existing), "new": _plain(self.new)}


def _plain(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value


def _norm_name(value: str | None) -> str:
    return (value or "").strip().lower()


def diff_customer(
    stored: StoredCustomer,
    first_name: str,
    last_name: str,
    phone: str,
    date_of_birth: date | None = None,
) -> list[FieldConflict]:
    """List the fields where submitted details disagree with the stored record.

    Names compare case-insensitively, phone exactly. Date of birth is only
    compared when both sides carry one.
    """
    conflicts: list[FieldConflict] = []

    if _norm_name(stored.first_name) != _norm_name(first_name):
        conflicts.append(FieldConflict("firstName", stored.first_name, first_name))
    if _norm_name(stored.last_name) != _norm_name(last_name):
        conflicts.append(FieldConflict("lastName", stored.last_name, last_name))
    if (stored.phone or "").strip() != (phone or "").strip():
        conflicts.append(FieldConflict("phone", stored.phone, phone))
    if date_of_birth and stored.date_of_birth and stored.date_of_birth != date_of_birth:
        conflicts.append(FieldConflict("dateOfBirth", stored.date_of_birth, date_of_birth))

    return conflicts


def classify_match(
    stored: StoredCustomer,
    conflicts: list[FieldConflict],
    password: str | None,
) -> ResolutionOutcome:
    """Decide the outcome for an email that already exists.

    A guest whose details match exactly and who submits a password is upgraded.
    """
    if conflicts:
        return ResolutionOutcome.CONFLICT
    if password and not stored.password_hash:
        return ResolutionOutcome.UPGRADED
    return ResolutionOutcome.EXACT_MATCH
