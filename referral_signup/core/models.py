from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class AddressResult:
    """
    Endereço retornado pela consulta de CEP.
    Número e complemento nunca vêm da consulta: ficam para o usuário.
    """
    postal_code: str
    street: str
    neighborhood: str
    city: str
    state_code: str

    @classmethod
    def from_viacep(cls, postal_code: str, data: Dict[str, Any]) -> "AddressResult":
        return cls(
            postal_code=postal_code,
            street=data.get("logradouro") or "",
            neighborhood=data.get("bairro") or "",
            city=data.get("localidade") or "",
            state_code=data.get("uf") or "",
        )


@dataclass(frozen=True)
class AccountRecord:
    """
    Conta criada pela API do clube.
    Definida uma única vez, após o cadastro bem-sucedido.
    """
    id: int
    name: str
    email: str
    national_id: str
    kind: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any], submitted_cpf: str = "") -> "AccountRecord":
        # A API devolve apenas id, nome, email e tipo: o CPF enviado completa o registro
        return cls(
            id=data["id"],
            name=data.get("nome") or "",
            email=data.get("email") or "",
            national_id=data.get("cpf") or submitted_cpf,
            kind=data.get("tipo"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "national_id": self.national_id,
            "kind": self.kind,
        }


@dataclass(frozen=True)
class InstallmentPayment:
    """Uma parcela do carnê"""
    id: str
    value: Optional[float]
    due_date: Optional[str]
    status: Optional[str]
    invoice_url: Optional[str]


@dataclass(frozen=True)
class InstallmentPlan:
    """
    Carnê (parcelamento) gerado para a conta.
    A presença deste registro é o sinal terminal do fluxo.
    """
    id: Optional[str]
    bank_slip_url: str
    invoice_url: Optional[str] = None
    installment_count: Optional[int] = None
    installment_value: Optional[float] = None
    total_value: Optional[float] = None
    payments: List[InstallmentPayment] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "InstallmentPlan":
        payments = [
            InstallmentPayment(
                id=p.get("id"),
                value=p.get("value"),
                due_date=p.get("dueDate"),
                status=p.get("status"),
                invoice_url=p.get("invoiceUrl"),
            )
            for p in data.get("payments") or []
        ]
        return cls(
            id=data.get("id"),
            bank_slip_url=data["bankSlipUrl"],
            invoice_url=data.get("invoiceUrl"),
            installment_count=data.get("installmentCount"),
            installment_value=data.get("installmentValue"),
            total_value=data.get("totalValue"),
            payments=payments,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "bank_slip_url": self.bank_slip_url,
            "invoice_url": self.invoice_url,
            "installment_count": self.installment_count,
            "installment_value": self.installment_value,
            "total_value": self.total_value,
            "payments": [
                {
                    "id": p.id,
                    "value": p.value,
                    "due_date": p.due_date,
                    "status": p.status,
                    "invoice_url": p.invoice_url,
                }
                for p in self.payments
            ],
        }


@dataclass(frozen=True)
class ReferrerInfo:
    """Quem indicou (apenas o primeiro nome é exposto pela API)"""
    referrer_id: Optional[int]
    referrer_name: str
