from supabase import create_client, Client
from course_scheduler.core.config import settings
from course_scheduler.stores.base import CatalogAdapter, RecordStore
from course_scheduler.stores.supabase import SupabaseCatalog, SupabaseRecordStore

_supabase_client: Client | None = None


def get_supabase() -> Client:
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_KEY or settings.SUPABASE_KEY,
        )
    return _supabase_client


# FastAPI dependencies; tests swap these through app.dependency_overrides
def get_catalog() -> CatalogAdapter:
    return SupabaseCatalog(get_supabase())


def get_record_store() -> RecordStore:
    return SupabaseRecordStore(get_supabase())
