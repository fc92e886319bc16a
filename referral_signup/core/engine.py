import logging
import time
from typing import Dict, Optional, Tuple
from uuid import uuid4
from .exceptions import MissingReferralCode, OperationPending, RemoteFailure, SessionNotFound
from .session_manager import InMemoryReferralCache
from .wizard import OnboardingWizard
from ..config import AppConfig
from ..infra.address_lookup import AddressLookupClient
from ..infra.payment_plan_client import PaymentPlanClient
from ..infra.referral_client import ReferralClient
from ..infra.registration_client import AccountRegistrationClient
from ..session.redis_session_manager import RedisReferralCache

logger = logging.getLogger(__name__)


class SignupEngine:
    """
    Núcleo do serviço de cadastro por indicação.

    - Monta os clientes dos serviços externos a partir da configuração
    - Resolve o código de indicação (link de entrada ou cache da sessão)
    - Mantém em memória um wizard por sessão de navegação
    - Descarta o wizard quando o cadastro termina ou é abandonado
    """

    def __init__(
        self,
        config: AppConfig,
        address_client: Optional[AddressLookupClient] = None,
        registration_client: Optional[AccountRegistrationClient] = None,
        plan_client: Optional[PaymentPlanClient] = None,
        referral_client: Optional[ReferralClient] = None,
        referral_cache=None,
    ) -> None:
        self._config = config
        timeout = config.http_timeout_seconds

        self._address_client = address_client or AddressLookupClient(
            config.address_lookup_url, timeout_seconds=timeout
        )
        self._registration_client = registration_client or AccountRegistrationClient(
            config.api_base_url, timeout_seconds=timeout
        )
        self._plan_client = plan_client or PaymentPlanClient(
            config.api_base_url, timeout_seconds=timeout
        )
        self._referral_client = referral_client or ReferralClient(
            config.api_base_url, timeout_seconds=timeout
        )

        # Escolher cache do código de indicação: Redis se configurado, senão InMemory
        if referral_cache is not None:
            self._referral_cache = referral_cache
        elif config.redis_url and config.redis_url.strip():
            try:
                self._referral_cache = RedisReferralCache(
                    redis_url=config.redis_url,
                    session_ttl_seconds=config.session_ttl_seconds,
                )
                logger.info(f"Cache de indicação usando Redis: url={config.redis_url}")
            except Exception as e:
                logger.error(f"Erro ao inicializar RedisReferralCache: {e}, usando InMemory como fallback")
                self._referral_cache = InMemoryReferralCache(config.session_ttl_seconds)
        else:
            self._referral_cache = InMemoryReferralCache(config.session_ttl_seconds)

        self._wizards: Dict[str, OnboardingWizard] = {}
        self._last_seen: Dict[str, float] = {}

    def _new_wizard(self, referral_code: str) -> OnboardingWizard:
        return OnboardingWizard.start(
            referral_code,
            address_client=self._address_client,
            registration_client=self._registration_client,
            plan_client=self._plan_client,
            plan_label=self._config.plan_label,
            operation_timeout_seconds=self._config.operation_timeout_seconds,
        )

    async def start_session(
        self,
        referral_code: Optional[str],
        session_id: Optional[str] = None,
    ) -> Tuple[str, OnboardingWizard]:
        """
        Entra no fluxo de cadastro.

        O código do link de entrada tem prioridade e fica em cache na sessão;
        sem ele (ex: página recarregada), usa o código em cache. Sem nenhum
        dos dois, levanta MissingReferralCode antes de aceitar qualquer dado.
        """
        self._evict_expired()
        session_id = session_id or uuid4().hex
        code = (referral_code or "").strip()
        from_link = bool(code)

        if not from_link:
            code = self._referral_cache.get_referral_code(session_id) or ""
            if not code:
                logger.warning(f"Cadastro sem código de indicação: session_id={session_id}")
                raise MissingReferralCode()

        existing = self._wizards.get(session_id)
        if existing is not None and existing.state.referral_code == code:
            if from_link:
                self._referral_cache.save_referral_code(session_id, code)
            self._touch(session_id)
            logger.debug(f"Cadastro retomado na sessão: session_id={session_id}")
            return session_id, existing
        if existing is not None and existing.state.pending:
            # Trocar o wizard agora perderia a resposta da chamada em andamento
            logger.warning(
                f"Troca de código com operação pendente: session_id={session_id}, "
                f"referral_code={code}"
            )
            raise OperationPending(f"Sessão com operação em andamento: {session_id}")

        if from_link:
            self._referral_cache.save_referral_code(session_id, code)

        wizard = self._new_wizard(code)
        await self._greet_referrer(wizard)
        self._wizards[session_id] = wizard
        self._touch(session_id)
        logger.info(f"Sessão de cadastro criada: session_id={session_id}, referral_code={code}")
        return session_id, wizard

    async def _greet_referrer(self, wizard: OnboardingWizard) -> None:
        # Nome de quem indicou é só cortesia: falha aqui não bloqueia o cadastro
        try:
            referrer = await self._referral_client.validate(wizard.state.referral_code)
        except RemoteFailure as e:
            logger.warning(
                f"Não foi possível validar o código de indicação: "
                f"referral_code={wizard.state.referral_code}, error={e}"
            )
            return
        if referrer is not None:
            wizard.state.referrer_name = referrer.referrer_name or None

    def get_wizard(self, session_id: str) -> OnboardingWizard:
        wizard = self._wizards.get(session_id)
        if wizard is None:
            raise SessionNotFound(f"Sessão de cadastro não encontrada: {session_id}")
        self._touch(session_id)
        return wizard

    def release_if_completed(self, session_id: str) -> bool:
        """
        Descarta o wizard e o código em cache quando o carnê já foi gerado.
        """
        wizard = self._wizards.get(session_id)
        if wizard is None or not wizard.state.completed:
            return False
        self.discard_session(session_id)
        logger.info(f"Cadastro concluído e descartado: session_id={session_id}")
        return True

    def discard_session(self, session_id: str) -> None:
        self._wizards.pop(session_id, None)
        self._last_seen.pop(session_id, None)
        self._referral_cache.clear_session(session_id)

    def active_sessions(self) -> int:
        return len(self._wizards)

    def _touch(self, session_id: str) -> None:
        self._last_seen[session_id] = time.monotonic()

    def _evict_expired(self) -> None:
        # Cadastros abandonados saem da memória após o TTL da sessão
        limit = time.monotonic() - self._config.session_ttl_seconds
        expired = [sid for sid, seen in self._last_seen.items() if seen < limit]
        for session_id in expired:
            wizard = self._wizards.get(session_id)
            if wizard is not None and wizard.state.pending:
                continue
            self._wizards.pop(session_id, None)
            self._last_seen.pop(session_id, None)
            self._referral_cache.clear_session(session_id)
            logger.debug(f"Sessão de cadastro expirada: session_id={session_id}")
