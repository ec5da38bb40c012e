from family_ledger.bot.dispatcher import Dispatcher
from family_ledger.cache.reference_cache import ReferenceCache
from family_ledger.config import get_settings
from family_ledger.db.repository import ExpenseRepository

settings = get_settings()

repo = ExpenseRepository(settings.db_path)
reference_cache = ReferenceCache(ttl_seconds=settings.reference_ttl_seconds)
dispatcher = Dispatcher(repo, reference_cache)
