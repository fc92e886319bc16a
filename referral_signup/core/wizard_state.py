from enum import Enum
from dataclasses import dataclass, field, fields as dataclass_fields
from typing import Dict, Optional
from .models import AccountRecord, InstallmentPlan
from .exceptions import ValidationReason


class WizardStage(str, Enum):
    """
    Passos do wizard de cadastro por indicação, em ordem.
    """
    PERSONAL_DATA = "personal_data"
    ADDRESS = "address"
    CREDENTIALS = "credentials"
    PAYMENT = "payment"

    @property
    def ordinal(self) -> int:
        return STAGE_ORDER.index(self)

    @property
    def label(self) -> str:
        return STAGE_LABELS[self]

    @property
    def can_go_back(self) -> bool:
        # Voltar fica desabilitado no primeiro e no último passo
        return self in (WizardStage.ADDRESS, WizardStage.CREDENTIALS)

    def next(self) -> "WizardStage":
        if self is WizardStage.PAYMENT:
            raise ValueError("payment é o último passo")
        return STAGE_ORDER[self.ordinal + 1]

    def previous(self) -> "WizardStage":
        if self is WizardStage.PERSONAL_DATA:
            raise ValueError("personal_data é o primeiro passo")
        return STAGE_ORDER[self.ordinal - 1]


STAGE_ORDER = (
    WizardStage.PERSONAL_DATA,
    WizardStage.ADDRESS,
    WizardStage.CREDENTIALS,
    WizardStage.PAYMENT,
)

STAGE_LABELS = {
    WizardStage.PERSONAL_DATA: "Dados Pessoais",
    WizardStage.ADDRESS: "Endereço",
    WizardStage.CREDENTIALS: "Sua Senha",
    WizardStage.PAYMENT: "Pagamento",
}

SECRET_FIELDS = ("password", "password_confirmation")


@dataclass
class WizardFields:
    """
    Todos os campos do formulário, num único registro.
    Cada passo lê e escreve apenas o seu subconjunto.
    """
    name: str = ""
    national_id: str = ""
    email: str = ""
    phone: str = ""
    postal_code: str = ""
    street: str = ""
    number: str = ""
    complement: str = ""
    neighborhood: str = ""
    city: str = ""
    state_code: str = ""
    password: str = ""
    password_confirmation: str = ""

    @classmethod
    def names(cls) -> tuple:
        return tuple(f.name for f in dataclass_fields(cls))

    def to_dict(self, include_secrets: bool = False) -> Dict[str, str]:
        return {
            name: getattr(self, name)
            for name in self.names()
            if include_secrets or name not in SECRET_FIELDS
        }


@dataclass
class WizardState:
    """
    Estado de um cadastro em andamento.
    Vive apenas durante a sessão de navegação; nada é gravado em disco.
    """
    referral_code: str
    stage: WizardStage = WizardStage.PERSONAL_DATA
    fields: WizardFields = field(default_factory=WizardFields)
    pending: bool = False
    last_error: Optional[str] = None
    validation_reason: Optional[ValidationReason] = None
    address_lookup_error: Optional[str] = None
    account: Optional[AccountRecord] = None
    installment_plan: Optional[InstallmentPlan] = None
    referrer_name: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.installment_plan is not None

    def get_summary(self) -> str:
        """
        Resumo curto para logs (sem senha nem documento completo).
        """
        parts = [f"stage={self.stage.value}", f"pending={self.pending}"]
        if self.account:
            parts.append(f"account_id={self.account.id}")
        if self.installment_plan:
            parts.append(f"plan_id={self.installment_plan.id}")
        if self.last_error:
            parts.append(f"last_error={self.last_error[:60]}")
        return ", ".join(parts)
