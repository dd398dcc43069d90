"""Inbound adapters: validation and translation of raw producer payloads."""

from __future__ import annotations

from .schema import (
    ActorPayload,
    InsightBatchPayload,
    ManualResolutionPayload,
    ProposedUpdatePayload,
)
from .translator import (
    mapping_summary,
    parse_bulk_items,
    parse_update_payload,
    proposals_from_insights,
    translate_update,
)

__all__ = [
    "ActorPayload",
    "InsightBatchPayload",
    "ManualResolutionPayload",
    "ProposedUpdatePayload",
    "mapping_summary",
    "parse_bulk_items",
    "parse_update_payload",
    "proposals_from_insights",
    "translate_update",
]
