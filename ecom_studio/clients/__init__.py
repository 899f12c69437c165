from .storage import BunnyStorageClient, StorageError
from .studio import StudioClient
from .supabase import SupabaseClient, SupabaseError, build_filter_params
from .webhooks import WebhookClient, WebhookError

__all__ = [
    "BunnyStorageClient",
    "StorageError",
    "StudioClient",
    "SupabaseClient",
    "SupabaseError",
    "WebhookClient",
    "WebhookError",
    "build_filter_params",
]
