"""Delivery scheduling: policy resolution, reconciliation and reporting."""

from .aggregation import (
    agent_performance,
    agent_scorecard,
    aggregate_by_agent,
    aggregate_by_day,
    aggregate_by_route,
    count_active_agents,
    group_tasks_by_route,
    latest_locations,
    ledger_statistics,
    operational_alerts,
    outcome_counts,
    route_performance,
    severity_counts,
    summarize_day,
    task_stats,
)
from .anomalies import AnomalyLog
from .reconciliation import build_manifest, day_bounds, reconcile, select_daily_record
from .resolver import is_due, weekday_label

__all__ = [
    "AnomalyLog",
    "agent_performance",
    "agent_scorecard",
    "aggregate_by_agent",
    "aggregate_by_day",
    "aggregate_by_route",
    "build_manifest",
    "count_active_agents",
    "day_bounds",
    "group_tasks_by_route",
    "is_due",
    "latest_locations",
    "ledger_statistics",
    "operational_alerts",
    "outcome_counts",
    "reconcile",
    "route_performance",
    "severity_counts",
    "select_daily_record",
    "summarize_day",
    "task_stats",
    "weekday_label",
]
