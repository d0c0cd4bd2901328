"""
Domain: Loosely-typed labels (category, supplier, counterparty).

The back-office stores these fields either as a plain string or as a reference
object carrying a `nome`/`name` field. Both shapes are normalized once, at the
join boundary, into a discriminated union:

- NamedLabel(kind="name", value=...)
- RefLabel(kind="ref", name=..., ref_id=...)

Resolution tries the reference field first, then the plain string. A value with
neither resolves to a sentinel instead of being dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional, Union

UNCATEGORIZED = "Uncategorized"
UNKNOWN = "Unknown"

_NAME_FIELDS = ("nome", "name")
_ID_FIELDS = ("_id", "id", "codigo", "code")


@dataclass(frozen=True, slots=True)
class NamedLabel:
    value: str
    kind: Literal["name"] = "name"


@dataclass(frozen=True, slots=True)
class RefLabel:
    name: Optional[str]
    ref_id: Optional[str] = None
    kind: Literal["ref"] = "ref"


Label = Union[NamedLabel, RefLabel]


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _field(raw: Any, names: tuple[str, ...]) -> Any:
    for name in names:
        if isinstance(raw, Mapping):
            if raw.get(name) is not None:
                return raw[name]
        elif getattr(raw, name, None) is not None:
            return getattr(raw, name)
    return None


def label_from_raw(raw: Any) -> Optional[Label]:
    """
    Normalize a raw category/supplier value.

    Examples:
        label_from_raw({"_id": "c1", "nome": "Shoes"})  # RefLabel(name="Shoes", ref_id="c1")
        label_from_raw("Shoes")                         # NamedLabel(value="Shoes")
        label_from_raw(None)                            # None
    """
    if raw is None:
        return None
    if isinstance(raw, (NamedLabel, RefLabel)):
        return raw
    if isinstance(raw, str):
        text = _clean(raw)
        return NamedLabel(value=text) if text else None

    name = _clean(_field(raw, _NAME_FIELDS))
    ref_id = _clean(_field(raw, _ID_FIELDS))
    if name is None and ref_id is None:
        return None
    return RefLabel(name=name, ref_id=ref_id)


def resolve_label(label: Optional[Label], default: str = UNCATEGORIZED) -> str:
    """Display name of a label, or `default` when there is nothing to show."""

    if label is None:
        return default
    if isinstance(label, RefLabel):
        return label.name or default
    return label.value or default


def same_label(resolved: str, wanted: str) -> bool:
    """Case-insensitive comparison used by the category/supplier filters."""

    return resolved.strip().casefold() == wanted.strip().casefold()


__all__ = [
    "Label",
    "NamedLabel",
    "RefLabel",
    "UNCATEGORIZED",
    "UNKNOWN",
    "label_from_raw",
    "resolve_label",
    "same_label",
]
