"""Normalisation of enum-valued input at the storage boundary."""

from enum import Enum

from protean.exceptions import ValidationError


def normalize_choice(enum_cls: type[Enum], value, field: str = "status") -> str:
    """Return the uppercase stored value of ``value`` within ``enum_cls``.

    Accepts enum members, member names and values in any letter case, so
    ``"on_hold"``, ``"On-Hold"`` and ``OrderStatus.ON_HOLD`` all map to
    ``"ON-HOLD"``.
    """
    if isinstance(value, enum_cls):
        return value.value

    raw = str(value).strip().upper()
    for member in enum_cls:
        if raw in (member.value, member.name):
            return member.value

    allowed = ", ".join(member.value for member in enum_cls)
    raise ValidationError({field: [f"Unknown value {value!r}; expected one of {allowed}"]})
