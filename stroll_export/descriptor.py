"""
Transform Descriptor
====================
Maps a filter id plus adjustment values to a canonical ordered list of visual
effect terms. The same (filter_id, adjustments) pair always yields the same
terms, so the editor preview, the feed render and the bake step agree even when
only the preview ever materialises pixels.

Composition:
  base terms of the filter (fixed per filter id)
  + one term per adjustment field off its default, in the order
    brightness, contrast, saturation, hue
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from .models import Adjustments

logger = logging.getLogger("stroll.export.descriptor")

IDENTITY = "none"

FILTER_BASE_TERMS: Dict[str, Tuple[str, ...]] = {
    "none": (),
    "vintage": ("brightness(1.1)", "contrast(0.9)", "saturate(0.8)", "sepia(0.2)"),
    "blackwhite": ("grayscale(100%)",),
    "sepia": ("sepia(1)", "brightness(1.1)", "contrast(0.9)"),
    "cool": ("hue-rotate(30deg)", "saturate(0.9)"),
    "warm": ("hue-rotate(-30deg)", "saturate(1.1)"),
    "contrast": ("contrast(1.3)",),
    "bright": ("brightness(1.2)", "contrast(1.1)"),
}

FILTER_NAMES: Dict[str, str] = {
    "none": "Original",
    "vintage": "Vintage",
    "blackwhite": "B&W",
    "sepia": "Sepia",
    "cool": "Cool",
    "warm": "Warm",
    "contrast": "Contrast",
    "bright": "Bright",
}


def format_number(value: float) -> str:
    """Shortest decimal form: 2 not 2.0, 1.2 not 1.2000000000000002 when exact."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def adjustment_terms(adjustments: Adjustments) -> List[str]:
    terms = []
    for name in adjustments.changed_fields():
        value = getattr(adjustments, name)
        if name == "brightness":
            terms.append(f"brightness({format_number(1 + value / 100)})")
        elif name == "contrast":
            terms.append(f"contrast({format_number(value)})")
        elif name == "saturation":
            terms.append(f"saturate({format_number(value)})")
        elif name == "hue":
            terms.append(f"hue-rotate({format_number(value)}deg)")
    return terms


@dataclass(frozen=True)
class TransformDescriptor:
    """Canonical, immutable description of a visual transform."""
    filter_id: str
    adjustments: Adjustments
    terms: Tuple[str, ...]

    @property
    def is_identity(self) -> bool:
        return not self.terms

    def as_list(self) -> List[str]:
        """Canonical ordered form; identity is the explicit ["none"]."""
        return list(self.terms) if self.terms else [IDENTITY]

    def as_css(self) -> str:
        """Flat textual form for a display-time style property."""
        return " ".join(self.terms) if self.terms else IDENTITY

    def __str__(self) -> str:
        return self.as_css()


def describe(filter_id: Optional[str], adjustments: Optional[Adjustments] = None) -> TransformDescriptor:
    """
    Derive the descriptor for a filter choice plus adjustments.

    Pure and total: unknown filter ids contribute no base terms.
    """
    filter_id = filter_id or IDENTITY
    adjustments = adjustments or Adjustments()
    base = FILTER_BASE_TERMS.get(filter_id, ())
    terms = base + tuple(adjustment_terms(adjustments))
    return TransformDescriptor(filter_id=filter_id, adjustments=adjustments, terms=terms)


def _adjustments_from_record(record: Mapping[str, Any]) -> Adjustments:
    raw = record.get("adjustments")
    edits = record.get("edits")
    if raw is None and edits:
        if isinstance(edits, str):
            try:
                edits = json.loads(edits)
            except ValueError:
                logger.debug("[Descriptor] Unparseable edits blob, using identity adjustments")
                return Adjustments()
        if isinstance(edits, Mapping):
            raw = edits.get("adjustments")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return Adjustments()
    if not isinstance(raw, Mapping):
        return Adjustments()
    try:
        return Adjustments(**raw)
    except (TypeError, ValidationError):
        logger.debug(f"[Descriptor] Invalid adjustments in record: {raw}")
        return Adjustments()


def describe_post(record: Mapping[str, Any]) -> TransformDescriptor:
    """
    Re-derive the descriptor for a persisted post.

    Render-time consumers (feed, profile grid, trending carousel) use this to
    reproduce a metadata-only filter as a display-time style.
    """
    return describe(record.get("filter") or IDENTITY, _adjustments_from_record(record))


__all__ = [
    "IDENTITY",
    "FILTER_BASE_TERMS",
    "FILTER_NAMES",
    "TransformDescriptor",
    "describe",
    "describe_post",
    "format_number",
]
