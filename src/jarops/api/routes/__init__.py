"""Route group exports."""

from . import deliveries, delivery_boys, health, operations, schedule

__all__ = ["deliveries", "delivery_boys", "health", "operations", "schedule"]
