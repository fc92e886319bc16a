"""
Exceções do fluxo de cadastro por indicação.

Erros de validação e de serviços remotos são capturados pelo wizard e
viram estado (last_error / address_lookup_error). Os erros de fluxo
(OperationPending, InvalidTransition, MissingReferralCode) sobem para a
camada de apresentação. InvariantViolation indica defeito interno.
"""
from enum import Enum
from typing import Optional


class ValidationReason(str, Enum):
    """
    Causa precisa de uma falha de validação, para a camada de apresentação.
    """
    MISSING_PERSONAL_FIELDS = "missing personal fields"
    MISSING_ADDRESS_FIELDS = "missing address fields"
    MISSING_PASSWORD = "missing password"
    PASSWORD_MISMATCH = "password mismatch"
    PASSWORD_TOO_SHORT = "password too short"


VALIDATION_MESSAGES = {
    ValidationReason.MISSING_PERSONAL_FIELDS: "Por favor, preencha todos os campos.",
    ValidationReason.MISSING_ADDRESS_FIELDS: "Por favor, preencha todos os campos de endereço.",
    ValidationReason.MISSING_PASSWORD: "Por favor, defina e confirme sua senha.",
    ValidationReason.PASSWORD_MISMATCH: "As senhas não coincidem.",
    ValidationReason.PASSWORD_TOO_SHORT: "A senha deve ter no mínimo 6 caracteres.",
}


class SignupError(Exception):
    """Base de todos os erros do cadastro"""
    pass


class ValidationError(SignupError):
    """Campos do passo atual ausentes ou inválidos (local, nunca chega a chamada remota)"""

    def __init__(self, reason: ValidationReason) -> None:
        self.reason = reason
        self.message = VALIDATION_MESSAGES[reason]
        super().__init__(reason.value)


class LookupNotFound(SignupError):
    """CEP bem formado, mas sem endereço correspondente"""

    def __init__(self, postal_code: str) -> None:
        self.postal_code = postal_code
        super().__init__(f"CEP não encontrado: {postal_code}")


class RemoteFailure(SignupError):
    """
    Falha de transporte ou erro retornado por um serviço remoto.

    user_message guarda a mensagem fornecida pelo servidor, quando existir.
    """

    def __init__(
        self,
        detail: str,
        user_message: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.user_message = user_message
        self.status_code = status_code
        super().__init__(detail)


class InvariantViolation(SignupError):
    """Estado interno impossível (ex: gerar carnê sem conta criada)"""
    pass


class OperationPending(SignupError):
    """Já existe uma operação remota em andamento para este wizard"""
    pass


class InvalidTransition(SignupError):
    """Transição de passo não permitida a partir do passo atual"""
    pass


class MissingReferralCode(SignupError):
    """Fluxo iniciado sem código de indicação"""

    message = "Código de indicação não encontrado. Por favor, use o link fornecido."

    def __init__(self) -> None:
        super().__init__(self.message)


class SessionNotFound(SignupError):
    """Não há cadastro em andamento para a sessão informada"""
    pass
