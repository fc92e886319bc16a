import logging
from typing import Optional
from urllib.parse import quote
from .api_client import JsonApiClient
from ..core.exceptions import RemoteFailure
from ..core.models import ReferrerInfo

logger = logging.getLogger(__name__)


class ReferralClient(JsonApiClient):
    """
    Validação do código de indicação, usada só para saudar o indicado
    com o nome de quem indicou.
    """

    async def validate(self, referral_code: str) -> Optional[ReferrerInfo]:
        """
        Retorna quem indicou, ou None se o código não existir.

        Raises:
            RemoteFailure: falha de transporte ou erro inesperado da API
        """
        try:
            body = await self._request_json("POST", f"/referrals/validate/{quote(referral_code, safe='')}")
        except RemoteFailure as e:
            if e.status_code == 404:
                logger.info(f"Código de indicação desconhecido: referral_code={referral_code}")
                return None
            raise

        if not body.get("valid"):
            return None
        return ReferrerInfo(
            referrer_id=body.get("referrer_id"),
            referrer_name=body.get("referrer_name") or body.get("referrerName") or "",
        )
