from dataclasses import dataclass
import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3000/api"
DEFAULT_ADDRESS_LOOKUP_URL = "https://viacep.com.br/ws"


@dataclass(frozen=True)
class AppConfig:
    """
    Configurações principais do serviço de cadastro por indicação.

    Centraliza URLs dos serviços externos, timeouts e parâmetros
    de sessão para facilitar revisão, testes e mudanças futuras.
    """
    api_base_url: str = DEFAULT_API_URL
    address_lookup_url: str = DEFAULT_ADDRESS_LOOKUP_URL
    http_timeout_ms: int = 10000  # timeout das chamadas HTTP (httpx)
    operation_timeout_ms: int = 30000  # limite total de cada operação remota do wizard
    redis_url: str = ""
    session_ttl_seconds: int = 2 * 60 * 60  # código de indicação vive enquanto durar a navegação
    plan_label: str = "Plano Anual Essencial Saúde"
    env: str = "dev"  # "dev" ou "prod"

    @property
    def http_timeout_seconds(self) -> float:
        return self.http_timeout_ms / 1000.0

    @property
    def operation_timeout_seconds(self) -> float:
        return self.operation_timeout_ms / 1000.0

    @classmethod
    def load_from_env(cls) -> "AppConfig":
        """
        Carrega configuração a partir de variáveis de ambiente.
        Primeiro tenta carregar do arquivo .env, depois do ambiente do sistema.
        Levanta erro explícito se algo crítico faltar.
        """
        load_dotenv()

        api_base_url = os.getenv("SIGNUP_API_URL", "").strip()
        address_lookup_url = os.getenv("ADDRESS_LOOKUP_URL", DEFAULT_ADDRESS_LOOKUP_URL).strip()
        redis_url = os.getenv("REDIS_URL", "")
        plan_label = os.getenv("PLAN_LABEL", "Plano Anual Essencial Saúde")

        env = os.getenv("ENV", "dev").lower()
        if env not in ("dev", "prod"):
            logger.warning(f"ENV inválido '{env}', usando 'dev' como padrão")
            env = "dev"

        # Em produção a URL da API do clube precisa ser explícita
        if env == "prod":
            if not api_base_url:
                raise RuntimeError(
                    "ENV=prod requer SIGNUP_API_URL definida. "
                    "Configure SIGNUP_API_URL no ambiente de produção."
                )
            logger.info("Modo PRODUÇÃO: SIGNUP_API_URL validada")
        elif not api_base_url:
            logger.warning(
                f"MODO DEV: SIGNUP_API_URL não configurada, usando {DEFAULT_API_URL}"
            )
            api_base_url = DEFAULT_API_URL

        http_timeout_ms = int(os.getenv("HTTP_TIMEOUT_MS", "10000"))
        operation_timeout_ms = int(os.getenv("OPERATION_TIMEOUT_MS", "30000"))
        session_ttl_seconds = int(os.getenv("SESSION_TTL_SECONDS", str(2 * 60 * 60)))

        return cls(
            api_base_url=api_base_url.rstrip("/"),
            address_lookup_url=address_lookup_url.rstrip("/"),
            http_timeout_ms=http_timeout_ms,
            operation_timeout_ms=operation_timeout_ms,
            redis_url=redis_url,
            session_ttl_seconds=session_ttl_seconds,
            plan_label=plan_label,
            env=env,
        )
