"""Request dependencies: role gate, adapters and the business calendar."""

from __future__ import annotations

from datetime import date, datetime

from fastapi import Depends, HTTPException, Request, status

from ..config import settings
from ..data import AdapterConfig, Directory, Ledger, SupabaseDirectory, SupabaseLedger
from ..db.supabase import get_supabase_client
from ..errors import CollaboratorUnavailableError
from ..services.scheduling import AnomalyLog


def require_admin(request: Request) -> str:
    """Reject callers whose gateway-forwarded role is not admin."""
    role = request.headers.get(settings.admin_role_header)
    if not role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized. No role provided.")
    if role != settings.admin_role:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden: Admin access required")
    return role


def get_adapter_config() -> AdapterConfig:
    return AdapterConfig(timezone=settings.timezone, page_size=settings.supabase_page_size)


def get_anomaly_log() -> AnomalyLog:
    # FastAPI caches dependencies per request, so adapters and routers share one log.
    return AnomalyLog()


def get_directory(
    config: AdapterConfig = Depends(get_adapter_config),
    anomalies: AnomalyLog = Depends(get_anomaly_log),
) -> Directory:
    client = get_supabase_client()
    if client is None:
        raise CollaboratorUnavailableError("directory", "Supabase is not configured")
    return SupabaseDirectory(client, config, anomalies)


def get_ledger(
    config: AdapterConfig = Depends(get_adapter_config),
    anomalies: AnomalyLog = Depends(get_anomaly_log),
) -> Ledger:
    client = get_supabase_client()
    if client is None:
        raise CollaboratorUnavailableError("ledger", "Supabase is not configured")
    return SupabaseLedger(client, config, anomalies)


def get_today(config: AdapterConfig = Depends(get_adapter_config)) -> date:
    return datetime.now(config.tz).date()


def get_now(config: AdapterConfig = Depends(get_adapter_config)) -> datetime:
    return datetime.now(config.tz)
