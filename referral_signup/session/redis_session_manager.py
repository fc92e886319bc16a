"""
Cache do código de indicação usando Redis como backend.
Guarda apenas o código, por sessão de navegação, com TTL configurável.
"""
import logging
from typing import Optional
from redis import Redis
from redis.exceptions import RedisError
from ..core.session_manager import referral_key

logger = logging.getLogger(__name__)


class RedisReferralCache:
    """
    Cache do código de indicação em Redis.

    Cada sessão usa a chave signup:{session_id}:referral_code,
    com TTL para expiração automática.
    """

    def __init__(
        self,
        redis_url: str,
        session_ttl_seconds: int = 7200,
        client: Optional[Redis] = None,
    ) -> None:
        """
        Inicializa o cache Redis.

        Args:
            redis_url: URL de conexão Redis (ex: redis://localhost:6379/0)
            session_ttl_seconds: TTL em segundos para expiração das chaves
            client: cliente Redis já criado (usado nos testes)
        """
        self._redis = client or Redis.from_url(redis_url, decode_responses=True)
        self._session_ttl_seconds = session_ttl_seconds

        # Testar conexão
        try:
            self._redis.ping()
            logger.info(
                f"RedisReferralCache inicializado: redis_url={redis_url}, "
                f"ttl={session_ttl_seconds}s"
            )
        except RedisError as e:
            logger.error(f"Erro ao conectar ao Redis: {e}")
            raise

    def save_referral_code(self, session_id: str, referral_code: str) -> None:
        """
        Salva o código de indicação da sessão com TTL.
        """
        try:
            self._redis.setex(referral_key(session_id), self._session_ttl_seconds, referral_code)
            logger.debug(
                f"Código de indicação salvo no Redis: session_id={session_id}, "
                f"ttl={self._session_ttl_seconds}s"
            )
        except RedisError as e:
            # Sem cache o fluxo continua; só um recarregamento perderia o código
            logger.error(f"Erro ao salvar código no Redis: session_id={session_id}, error={e}")

    def get_referral_code(self, session_id: str) -> Optional[str]:
        try:
            value = self._redis.get(referral_key(session_id))
        except RedisError as e:
            logger.error(f"Erro ao ler código do Redis: session_id={session_id}, error={e}")
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value or None

    def clear_session(self, session_id: str) -> None:
        try:
            self._redis.delete(referral_key(session_id))
            logger.debug(f"Código de indicação removido do Redis: session_id={session_id}")
        except RedisError as e:
            logger.error(f"Erro ao remover código do Redis: session_id={session_id}, error={e}")
