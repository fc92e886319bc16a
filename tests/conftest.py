"""
Configuração do pytest e fixtures compartilhadas dos testes do cadastro.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from referral_signup.config import AppConfig
from referral_signup.core.models import AccountRecord, AddressResult, InstallmentPlan
from referral_signup.core.wizard import OnboardingWizard
from referral_signup.core.wizard_state import WizardStage
from referral_signup.infra.address_lookup import AddressLookupClient
from referral_signup.infra.payment_plan_client import PaymentPlanClient
from referral_signup.infra.referral_client import ReferralClient
from referral_signup.infra.registration_client import AccountRegistrationClient


@pytest.fixture
def app_config():
    """Configuração fixa, sem Redis"""
    return AppConfig(
        api_base_url="http://club.test/api",
        address_lookup_url="http://cep.test/ws",
        http_timeout_ms=1000,
        operation_timeout_ms=2000,
        redis_url="",
    )


@pytest.fixture
def paulista_address():
    """Endereço retornado para o CEP 01310100"""
    return AddressResult(
        postal_code="01310100",
        street="Avenida Paulista",
        neighborhood="Bela Vista",
        city="São Paulo",
        state_code="SP",
    )


@pytest.fixture
def created_account():
    return AccountRecord(
        id=42,
        name="Maria Silva",
        email="maria@example.com",
        national_id="12345678900",
        kind="cliente",
    )


@pytest.fixture
def installment_plan():
    return InstallmentPlan(
        id="ins_123",
        bank_slip_url="https://pay.test/carne/ins_123.pdf",
        invoice_url="https://pay.test/i/pay_1",
        installment_count=12,
        installment_value=49.9,
        total_value=598.8,
    )


@pytest.fixture
def address_client(paulista_address):
    client = MagicMock(spec=AddressLookupClient)
    client.lookup = AsyncMock(return_value=paulista_address)
    return client


@pytest.fixture
def registration_client(created_account):
    client = MagicMock(spec=AccountRegistrationClient)
    client.register = AsyncMock(return_value=created_account)
    return client


@pytest.fixture
def plan_client(installment_plan):
    client = MagicMock(spec=PaymentPlanClient)
    client.create_installment_plan = AsyncMock(return_value=installment_plan)
    return client


@pytest.fixture
def referral_client():
    client = MagicMock(spec=ReferralClient)
    client.validate = AsyncMock(return_value=None)
    return client


@pytest.fixture
def make_wizard(address_client, registration_client, plan_client):
    """Fábrica de wizards com o código ABC123 e os clientes simulados"""
    def factory(operation_timeout_seconds=1.0):
        return OnboardingWizard.start(
            "ABC123",
            address_client=address_client,
            registration_client=registration_client,
            plan_client=plan_client,
            operation_timeout_seconds=operation_timeout_seconds,
        )
    return factory


@pytest.fixture
def wizard(make_wizard):
    """Wizard recém-iniciado com o código ABC123"""
    return make_wizard()


PERSONAL = {
    "name": "Maria Silva",
    "national_id": "12345678900",
    "email": "maria@example.com",
    "phone": "11999990000",
}

ADDRESS = {
    "postal_code": "01310100",
    "street": "Avenida Paulista",
    "number": "1000",
    "neighborhood": "Bela Vista",
    "city": "São Paulo",
    "state_code": "SP",
}

CREDENTIALS = {
    "password": "segredo123",
    "password_confirmation": "segredo123",
}


@pytest.fixture
def personal_fields():
    return dict(PERSONAL)


@pytest.fixture
def address_fields():
    return dict(ADDRESS)


@pytest.fixture
def credential_fields():
    return dict(CREDENTIALS)


@pytest.fixture
def wizard_at_credentials(wizard):
    """Wizard com dados pessoais e endereço preenchidos, no passo de senha"""
    wizard.update_fields(PERSONAL)
    wizard.update_fields(ADDRESS)
    wizard.state.stage = WizardStage.CREDENTIALS
    wizard.update_fields(CREDENTIALS)
    return wizard
