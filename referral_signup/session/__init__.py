"""
Módulo de cache do código de indicação.
Suporta tanto InMemoryReferralCache quanto RedisReferralCache.
"""

from .redis_session_manager import RedisReferralCache
from ..core.session_manager import InMemoryReferralCache

__all__ = ["RedisReferralCache", "InMemoryReferralCache"]
