"""Metric definitions for the live session coordinator."""

from __future__ import annotations

from .registry import registry


live_connections = registry.gauge(
    "live_active_connections",
    "Number of websocket clients registered with the live session.",
)

live_events_total = registry.counter(
    "live_events_total",
    "Count of live session messages handled (in) and events broadcast (out).",
    label_names=("direction", "type"),
)

live_dropped_messages_total = registry.counter(
    "live_dropped_messages_total",
    "Inbound websocket messages discarded without effect.",
    label_names=("reason",),
)

live_countdowns_total = registry.counter(
    "live_countdowns_total",
    "Countdown sessions by lifecycle outcome.",
    label_names=("outcome",),
)

live_moderation_total = registry.counter(
    "live_moderation_total",
    "Message moderation actions.",
    label_names=("action",),
)
