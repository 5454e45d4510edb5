import asyncio
import threading

from supabase import create_client, acreate_client, Client, AsyncClient

from helpdesk.utils.constants import settings


def _credentials():
    api_key = settings.SUPABASE_SECRET_KEY or settings.SUPABASE_KEY
    supabase_url = settings.SUPABASE_URL

    if not api_key or not supabase_url:
        raise ValueError("SUPABASE_URL and SUPABASE_SECRET_KEY (or SUPABASE_KEY) must be set in environment variables")
    return supabase_url, api_key


class SupabaseClientSingleton:
    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> Client:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    supabase_url, api_key = _credentials()
                    cls._instance = create_client(supabase_url, api_key)

        return cls._instance


class AsyncSupabaseClientSingleton:
    """Async client, needed for realtime channels."""

    _instance = None
    _lock = asyncio.Lock()

    @classmethod
    async def get_instance(cls) -> AsyncClient:
        if cls._instance is None:
            async with cls._lock:
                if cls._instance is None:
                    supabase_url, api_key = _credentials()
                    cls._instance = await acreate_client(supabase_url, api_key)

        return cls._instance
