import logging
import time
from typing import Any, Dict, Optional
import httpx
from ..core.exceptions import RemoteFailure

logger = logging.getLogger(__name__)


def extract_error_message(response: httpx.Response) -> Optional[str]:
    """
    Extrai a mensagem de erro para o usuário de uma resposta da API do clube.
    A API responde erros como {"error": "..."}.
    """
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("error") or body.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


class JsonApiClient:
    """
    Base dos clientes HTTP do cadastro.

    Cada chamada abre um httpx.AsyncClient com timeout próprio e converte
    qualquer falha (rede, timeout, status não-2xx, corpo não-JSON) em
    RemoteFailure. Não há retry automático: o usuário refaz a ação.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout_seconds,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def _request_json(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        start_time = time.time()
        try:
            async with self._client() as client:
                response = await client.request(method, url, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout na chamada HTTP: method={method}, url={url}, error={e}")
            raise RemoteFailure(f"Timeout em {method} {url}") from e
        except httpx.HTTPError as e:
            logger.error(
                f"Erro de transporte na chamada HTTP: method={method}, url={url}, "
                f"error={type(e).__name__}: {e}"
            )
            raise RemoteFailure(f"Falha de transporte em {method} {url}: {e}") from e

        duration_ms = (time.time() - start_time) * 1000
        logger.debug(
            f"Chamada HTTP concluída: method={method}, url={url}, "
            f"status={response.status_code}, duration_ms={duration_ms:.2f}"
        )

        if response.status_code >= 400:
            user_message = extract_error_message(response)
            logger.warning(
                f"API respondeu erro: method={method}, url={url}, "
                f"status={response.status_code}, message={user_message}"
            )
            raise RemoteFailure(
                f"{method} {url} respondeu {response.status_code}",
                user_message=user_message,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise RemoteFailure(f"Resposta não-JSON em {url}: {e}") from e
        if not isinstance(body, dict):
            raise RemoteFailure(f"Resposta JSON inesperada em {url}: {type(body).__name__}")
        return body
