# Services

from .notifications import Notifier, LoggingNotifier, QueueNotifier
from .supabase_storage import SupabaseClient, SupabaseCartStorage

__all__ = [
    "Notifier",
    "LoggingNotifier",
    "QueueNotifier",
    "SupabaseClient",
    "SupabaseCartStorage",
]
