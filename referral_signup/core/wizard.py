import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Optional, TypeVar
from .exceptions import (
    InvalidTransition,
    InvariantViolation,
    LookupNotFound,
    MissingReferralCode,
    OperationPending,
    RemoteFailure,
    ValidationError,
    ValidationReason,
)
from .models import InstallmentPlan
from .normalizers import (
    CPF_LENGTH,
    PHONE_MAX_DIGITS,
    mask_digits,
    normalize_postal_code,
    normalize_state_code,
    only_digits,
)
from .validation import validate_stage
from .wizard_state import WizardFields, WizardStage, WizardState
from ..infra.address_lookup import AddressLookupClient
from ..infra.payment_plan_client import PaymentPlanClient
from ..infra.registration_client import AccountRegistrationClient, RegistrationPayload

logger = logging.getLogger(__name__)

T = TypeVar("T")

ADDRESS_NOT_FOUND_MESSAGE = "CEP não encontrado."
ADDRESS_LOOKUP_FAILED_MESSAGE = "Erro ao buscar CEP. Verifique e tente novamente."
REGISTRATION_FAILED_MESSAGE = "Ocorreu um erro ao registrar. Tente novamente."
INSTALLMENT_PLAN_FAILED_MESSAGE = "Ocorreu um erro ao gerar seu carnê. Por favor, contate o suporte."
DEFAULT_PLAN_LABEL = "Plano Anual Essencial Saúde"

# Operações remotas que marcam o wizard como pendente
ADDRESS_LOOKUP = "address_lookup"
REGISTRATION = "registration"
INSTALLMENT_PLAN = "installment_plan"


@dataclass
class StepOutcome:
    """
    Resultado de uma tentativa de avanço de passo.
    Erros de validação e de serviços remotos chegam aqui, nunca como exceção.
    """
    state: WizardState
    advanced: bool
    error: Optional[str] = None
    validation_reason: Optional[ValidationReason] = None


class OnboardingWizard:
    """
    Máquina de estados do cadastro por indicação.

    PERSONAL_DATA → ADDRESS → CREDENTIALS → PAYMENT, com volta permitida
    apenas a partir de ADDRESS e CREDENTIALS. Sair de CREDENTIALS cria a
    conta; em PAYMENT o usuário pede o carnê, cuja presença encerra o fluxo.

    Toda chamada remota marca o estado como pendente e é limitada por
    operation_timeout_seconds, para que uma chamada travada não deixe o
    wizard bloqueado.
    """

    def __init__(
        self,
        state: WizardState,
        address_client: AddressLookupClient,
        registration_client: AccountRegistrationClient,
        plan_client: PaymentPlanClient,
        plan_label: str = DEFAULT_PLAN_LABEL,
        operation_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._state = state
        self._address_client = address_client
        self._registration_client = registration_client
        self._plan_client = plan_client
        self._plan_label = plan_label
        self._operation_timeout_seconds = operation_timeout_seconds
        self._pending_operation: Optional[str] = None
        # Sequência das consultas de CEP: só a resposta da mais recente é aplicada
        self._lookup_seq = 0

    @classmethod
    def start(cls, referral_code: Optional[str], **kwargs: Any) -> "OnboardingWizard":
        """
        Cria o wizard a partir do código de indicação do link de entrada.
        """
        code = (referral_code or "").strip()
        if not code:
            raise MissingReferralCode()
        logger.info(f"Cadastro iniciado: referral_code={code}")
        return cls(WizardState(referral_code=code), **kwargs)

    @property
    def state(self) -> WizardState:
        return self._state

    # ------------------------------------------------------------------
    # Campos
    # ------------------------------------------------------------------

    def set_field(self, name: str, value: Optional[str]) -> None:
        """
        Atualiza um campo do formulário aplicando a máscara correspondente.
        """
        if name not in WizardFields.names():
            raise KeyError(f"Campo desconhecido: {name}")

        value = value or ""
        if name == "national_id":
            value = mask_digits(value, CPF_LENGTH)
        elif name == "phone":
            value = mask_digits(value, PHONE_MAX_DIGITS)
        elif name == "state_code":
            value = normalize_state_code(value)
        elif name == "postal_code":
            value = only_digits(value)
            if value != self._state.fields.postal_code:
                self._supersede_lookup()

        setattr(self._state.fields, name, value)

    def update_fields(self, values: Dict[str, Optional[str]]) -> None:
        for name, value in values.items():
            self.set_field(name, value)

    # ------------------------------------------------------------------
    # Consulta de CEP
    # ------------------------------------------------------------------

    async def change_postal_code(self, raw: str) -> None:
        """
        Guarda o CEP digitado e, ao completar 8 dígitos, preenche
        logradouro, bairro, cidade e UF a partir da consulta.

        Número e complemento nunca são tocados. Se o CEP mudar enquanto
        uma consulta estiver em andamento, a resposta antiga é descartada.
        """
        if self._pending_operation in (REGISTRATION, INSTALLMENT_PLAN):
            raise OperationPending(f"Operação em andamento: {self._pending_operation}")

        digits = only_digits(raw)
        self._state.fields.postal_code = digits
        seq = self._supersede_lookup()

        if normalize_postal_code(digits) is None:
            return

        self._begin(ADDRESS_LOOKUP)
        self._state.address_lookup_error = None
        try:
            address = await self._call(self._address_client.lookup(digits))
        except LookupNotFound:
            if self._is_current_lookup(seq, digits):
                self._state.address_lookup_error = ADDRESS_NOT_FOUND_MESSAGE
        except RemoteFailure as e:
            if self._is_current_lookup(seq, digits):
                logger.warning(f"Falha na consulta de CEP: postal_code={digits}, error={e}")
                self._state.address_lookup_error = ADDRESS_LOOKUP_FAILED_MESSAGE
        else:
            if self._is_current_lookup(seq, digits):
                fields = self._state.fields
                fields.street = address.street
                fields.neighborhood = address.neighborhood
                fields.city = address.city
                fields.state_code = normalize_state_code(address.state_code)
        finally:
            if seq == self._lookup_seq:
                self._finish()

    def _supersede_lookup(self) -> int:
        self._lookup_seq += 1
        # Consulta em andamento ficou obsoleta: libera o wizard
        if self._pending_operation == ADDRESS_LOOKUP:
            self._finish()
        return self._lookup_seq

    def _is_current_lookup(self, seq: int, postal_code: str) -> bool:
        if seq != self._lookup_seq:
            logger.debug(
                f"Resposta de CEP obsoleta descartada: postal_code={postal_code}, "
                f"seq={seq}, latest={self._lookup_seq}"
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Transições
    # ------------------------------------------------------------------

    async def advance(self) -> StepOutcome:
        """
        Tenta avançar para o próximo passo.

        Em CREDENTIALS, validar e criar a conta são uma única ação:
        o passo só muda para PAYMENT com a conta criada.
        """
        self._ensure_idle()
        state = self._state
        stage = state.stage

        if stage is WizardStage.PAYMENT:
            raise InvalidTransition("Não há passo após o pagamento")

        state.last_error = None
        state.validation_reason = None
        try:
            validate_stage(stage, state.fields)
        except ValidationError as e:
            state.last_error = e.message
            state.validation_reason = e.reason
            logger.info(f"Validação falhou: stage={stage.value}, reason={e.reason.value}")
            return StepOutcome(state=state, advanced=False, error=e.message, validation_reason=e.reason)

        if stage is WizardStage.CREDENTIALS:
            return await self._submit_registration()

        state.stage = stage.next()
        logger.debug(f"Passo avançado: {stage.value} -> {state.stage.value}")
        return StepOutcome(state=state, advanced=True)

    def back(self) -> WizardState:
        """
        Volta um passo (apenas de ADDRESS e CREDENTIALS).
        """
        self._ensure_idle()
        state = self._state
        if not state.stage.can_go_back:
            raise InvalidTransition(f"Não é possível voltar a partir de {state.stage.value}")

        state.stage = state.stage.previous()
        state.last_error = None
        state.validation_reason = None
        return state

    async def _submit_registration(self) -> StepOutcome:
        state = self._state
        if state.account is not None:
            logger.error(f"Conta já criada antes de sair de CREDENTIALS: {state.get_summary()}")
            raise InvariantViolation("Conta já criada para este cadastro")

        fields = state.fields
        payload = RegistrationPayload(
            name=fields.name.strip(),
            national_id=fields.national_id,
            email=fields.email.strip(),
            phone=fields.phone,
            password=fields.password,
            referral_code=state.referral_code,
        )

        self._begin(REGISTRATION)
        try:
            account = await self._call(self._registration_client.register(payload))
        except RemoteFailure as e:
            state.last_error = e.user_message or REGISTRATION_FAILED_MESSAGE
            logger.warning(
                f"Cadastro recusado: email={payload.email}, status={e.status_code}, "
                f"error={state.last_error}"
            )
            return StepOutcome(state=state, advanced=False, error=state.last_error)
        else:
            state.account = account
            state.stage = WizardStage.PAYMENT
            logger.info(f"Conta criada, indo para pagamento: account_id={account.id}")
            return StepOutcome(state=state, advanced=True)
        finally:
            self._finish()

    # ------------------------------------------------------------------
    # Carnê
    # ------------------------------------------------------------------

    async def request_installment_plan(self) -> Optional[InstallmentPlan]:
        """
        Gera o carnê da conta criada. Chamar de novo depois do sucesso
        devolve o mesmo carnê sem nova chamada remota; após falha,
        pode ser chamado novamente.
        """
        state = self._state
        if state.installment_plan is not None:
            logger.debug(f"Carnê já gerado, ignorando nova solicitação: {state.get_summary()}")
            return state.installment_plan

        if state.account is None:
            logger.error(f"Tentativa de gerar carnê sem conta criada: {state.get_summary()}")
            raise InvariantViolation("Carnê solicitado sem conta criada")

        self._ensure_idle()
        account = state.account
        description = f"{self._plan_label} - {account.name}"

        self._begin(INSTALLMENT_PLAN)
        state.last_error = None
        try:
            plan = await self._call(self._plan_client.create_installment_plan(account.id, description))
        except RemoteFailure as e:
            state.last_error = e.user_message or INSTALLMENT_PLAN_FAILED_MESSAGE
            logger.warning(
                f"Falha ao gerar carnê: account_id={account.id}, status={e.status_code}, "
                f"error={state.last_error}"
            )
            return None
        else:
            state.installment_plan = plan
            logger.info(f"Cadastro concluído: account_id={account.id}, plan_id={plan.id}")
            return plan
        finally:
            self._finish()

    # ------------------------------------------------------------------
    # Auxiliares
    # ------------------------------------------------------------------

    def _ensure_idle(self) -> None:
        if self._state.pending:
            raise OperationPending(f"Operação em andamento: {self._pending_operation}")

    def _begin(self, operation: str) -> None:
        self._state.pending = True
        self._pending_operation = operation

    def _finish(self) -> None:
        self._state.pending = False
        self._pending_operation = None

    async def _call(self, awaitable: Awaitable[T]) -> T:
        if self._operation_timeout_seconds is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self._operation_timeout_seconds)
        except asyncio.TimeoutError as e:
            raise RemoteFailure(
                f"Operação remota excedeu {self._operation_timeout_seconds}s"
            ) from e

    def snapshot(self) -> Dict[str, Any]:
        """
        Visão do estado para a camada de apresentação (sem as senhas).
        """
        state = self._state
        return {
            "referral_code": state.referral_code,
            "referrer_name": state.referrer_name,
            "stage": state.stage.value,
            "stage_index": state.stage.ordinal,
            "stage_label": state.stage.label,
            "can_go_back": state.stage.can_go_back and not state.pending,
            "fields": state.fields.to_dict(),
            "pending": state.pending,
            "last_error": state.last_error,
            "validation_reason": state.validation_reason.value if state.validation_reason else None,
            "address_lookup_error": state.address_lookup_error,
            "account": state.account.to_dict() if state.account else None,
            "installment_plan": state.installment_plan.to_dict() if state.installment_plan else None,
            "completed": state.completed,
        }
