import logging
from .api_client import JsonApiClient
from ..core.exceptions import RemoteFailure
from ..core.models import InstallmentPlan

logger = logging.getLogger(__name__)


class PaymentPlanClient(JsonApiClient):
    """
    Geração do carnê anual para uma conta recém-criada
    (POST /asaas/public/installments).

    Não impedir carnê em duplicidade para a mesma conta é responsabilidade do servidor.
    """

    async def create_installment_plan(self, account_id: int, description: str) -> InstallmentPlan:
        """
        Raises:
            RemoteFailure: erro estruturado da API ou transporte
        """
        logger.info(f"Gerando carnê: account_id={account_id}")
        body = await self._request_json(
            "POST",
            "/asaas/public/installments",
            {"userId": account_id, "description": description},
        )

        installment = body.get("installment")
        if not isinstance(installment, dict) or not installment.get("bankSlipUrl"):
            raise RemoteFailure("Resposta do carnê sem link do boleto")

        plan = InstallmentPlan.from_api(installment)
        logger.info(
            f"Carnê gerado: account_id={account_id}, plan_id={plan.id}, "
            f"installments={plan.installment_count}"
        )
        return plan
