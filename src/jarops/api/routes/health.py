"""Health endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from ...data import AdapterConfig
from ..deps import get_adapter_config

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database(config: AdapterConfig = Depends(get_adapter_config)) -> dict:
    """Check that the directory and ledger tables answer."""
    from ...db.supabase import get_supabase_client

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set JAROPS_SUPABASE_URL and JAROPS_SUPABASE_KEY environment variables.",
        }

    tables: dict[str, bool] = {}
    for table in (config.customers_table, config.deliveries_table, config.routes_table, config.users_table):
        try:
            supabase.table(table).select("*", count="exact").limit(1).execute()
            tables[table] = True
        except Exception as exc:
            logging.warning(f"Health check query on '{table}' failed: {exc}")
            tables[table] = False

    connected = all(tables.values())
    return {
        "configured": True,
        "connected": connected,
        "tables": tables,
        "message": "Database connected." if connected else "Database reachable check failed for some tables.",
    }
