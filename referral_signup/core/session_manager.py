import logging
import time
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


def referral_key(session_id: str) -> str:
    return f"signup:{session_id}:referral_code"


class InMemoryReferralCache:
    """
    Cache simples do código de indicação por sessão de navegação, em memória.
    Em produção, o RedisReferralCache é usado quando REDIS_URL está configurada.
    """

    def __init__(self, session_ttl_seconds: int = 7200) -> None:
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._session_ttl_seconds = session_ttl_seconds

    def save_referral_code(self, session_id: str, referral_code: str) -> None:
        now = time.monotonic()
        self._purge_expired(now)
        self._entries[referral_key(session_id)] = (referral_code, now + self._session_ttl_seconds)
        logger.debug(f"Código de indicação em cache: session_id={session_id}")

    def get_referral_code(self, session_id: str) -> Optional[str]:
        key = referral_key(session_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        referral_code, expires_at = entry
        if time.monotonic() >= expires_at:
            logger.debug(f"Código de indicação expirado: session_id={session_id}")
            del self._entries[key]
            return None
        return referral_code

    def clear_session(self, session_id: str) -> None:
        self._entries.pop(referral_key(session_id), None)

    def _purge_expired(self, now: float) -> None:
        # Sessões abandonadas que nunca voltam não são lidas de novo
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
