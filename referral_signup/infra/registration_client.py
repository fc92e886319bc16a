import logging
from dataclasses import dataclass
from typing import Any, Dict
from .api_client import JsonApiClient
from ..core.exceptions import RemoteFailure
from ..core.models import AccountRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationPayload:
    """Dados enviados para criar a conta do indicado"""
    name: str
    national_id: str
    email: str
    phone: str
    password: str
    referral_code: str

    def to_api(self) -> Dict[str, Any]:
        return {
            "nome": self.name,
            "cpf": self.national_id,
            "email": self.email,
            "telefone": self.phone,
            "senha": self.password,
            "referral_code": self.referral_code,
        }


class AccountRegistrationClient(JsonApiClient):
    """
    Criação de conta na API do clube (POST /auth/register).
    """

    async def register(self, payload: RegistrationPayload) -> AccountRecord:
        """
        Cria a conta e retorna o registro criado.

        Raises:
            RemoteFailure: erro estruturado da API (ex: e-mail já cadastrado) ou transporte
        """
        logger.info(
            f"Registrando conta: email={payload.email}, "
            f"referral_code={payload.referral_code}"
        )
        body = await self._request_json("POST", "/auth/register", payload.to_api())

        user = body.get("user")
        if not isinstance(user, dict) or "id" not in user:
            raise RemoteFailure("Resposta de cadastro sem o usuário criado")

        account = AccountRecord.from_api(user, submitted_cpf=payload.national_id)
        logger.info(f"Conta criada: account_id={account.id}, email={account.email}")
        return account
