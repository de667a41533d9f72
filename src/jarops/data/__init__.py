"""Directory and ledger adapters."""

from .base import AdapterConfig, CompletionHooks, Directory, Ledger
from .memory import InMemoryDirectory, InMemoryLedger
from .supabase_store import SupabaseDirectory, SupabaseLedger

__all__ = [
    "AdapterConfig",
    "CompletionHooks",
    "Directory",
    "InMemoryDirectory",
    "InMemoryLedger",
    "Ledger",
    "SupabaseDirectory",
    "SupabaseLedger",
]
