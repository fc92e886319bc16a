"""
Regras de validação por passo do wizard.

Funções puras sobre (passo, campos): não alteram os campos, não
guardam resultado e devem ser reavaliadas a cada tentativa de avanço.
"""
from typing import Optional
from .exceptions import ValidationError, ValidationReason
from .wizard_state import WizardFields, WizardStage

MIN_PASSWORD_LENGTH = 6

PERSONAL_FIELDS = ("name", "national_id", "email", "phone")
# Complemento é opcional
ADDRESS_FIELDS = ("postal_code", "street", "number", "neighborhood", "city", "state_code")


def _missing(fields: WizardFields, names: tuple) -> bool:
    return any(not (getattr(fields, name) or "").strip() for name in names)


def stage_errors(stage: WizardStage, fields: WizardFields) -> Optional[ValidationReason]:
    """
    Retorna a causa da falha de validação do passo, ou None se puder avançar.
    """
    if stage is WizardStage.PERSONAL_DATA:
        if _missing(fields, PERSONAL_FIELDS):
            return ValidationReason.MISSING_PERSONAL_FIELDS
        return None

    if stage is WizardStage.ADDRESS:
        # Endereço digitado manualmente vale, independente da consulta de CEP
        if _missing(fields, ADDRESS_FIELDS):
            return ValidationReason.MISSING_ADDRESS_FIELDS
        return None

    if stage is WizardStage.CREDENTIALS:
        if not fields.password or not fields.password_confirmation:
            return ValidationReason.MISSING_PASSWORD
        if fields.password != fields.password_confirmation:
            return ValidationReason.PASSWORD_MISMATCH
        if len(fields.password) < MIN_PASSWORD_LENGTH:
            return ValidationReason.PASSWORD_TOO_SHORT
        return None

    if stage is WizardStage.PAYMENT:
        # Passo terminal: só depende do resultado da geração do carnê
        return None

    raise ValueError(f"Passo desconhecido: {stage!r}")


def validate_stage(stage: WizardStage, fields: WizardFields) -> None:
    """
    Levanta ValidationError se os campos não bastam para sair do passo.
    """
    reason = stage_errors(stage, fields)
    if reason is not None:
        raise ValidationError(reason)
