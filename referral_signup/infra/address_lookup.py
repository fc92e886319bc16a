import logging
from typing import Optional
import httpx
from .api_client import JsonApiClient
from ..config import DEFAULT_ADDRESS_LOOKUP_URL
from ..core.exceptions import LookupNotFound
from ..core.models import AddressResult

logger = logging.getLogger(__name__)


class AddressLookupClient(JsonApiClient):
    """
    Consulta de endereço por CEP (ViaCEP). Sem estado local.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_ADDRESS_LOOKUP_URL,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(base_url, timeout_seconds=timeout_seconds, transport=transport)

    async def lookup(self, postal_code: str) -> AddressResult:
        """
        Busca o endereço de um CEP com 8 dígitos.

        Raises:
            LookupNotFound: resposta bem formada com o marcador "erro"
            RemoteFailure: falha de transporte ou resposta inválida
        """
        data = await self._request_json("GET", f"/{postal_code}/json/")

        # ViaCEP devolve {"erro": true} (ou "true") para CEP inexistente
        if data.get("erro") in (True, "true"):
            logger.info(f"CEP não encontrado: postal_code={postal_code}")
            raise LookupNotFound(postal_code)

        address = AddressResult.from_viacep(postal_code, data)
        logger.debug(
            f"CEP encontrado: postal_code={postal_code}, "
            f"city={address.city}, state={address.state_code}"
        )
        return address
