"""
Testes dos clientes HTTP usando httpx.MockTransport (sem rede).
"""
import json
import httpx
import pytest

from referral_signup.core.exceptions import LookupNotFound, RemoteFailure
from referral_signup.infra.address_lookup import AddressLookupClient
from referral_signup.infra.payment_plan_client import PaymentPlanClient
from referral_signup.infra.referral_client import ReferralClient
from referral_signup.infra.registration_client import AccountRegistrationClient, RegistrationPayload

API_URL = "http://club.test/api"


def transport_returning(status_code, body, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=body)
    return httpx.MockTransport(handler)


def failing_transport(exc_type=httpx.ConnectError):
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type("falha simulada", request=request)
    return httpx.MockTransport(handler)


@pytest.fixture
def payload():
    return RegistrationPayload(
        name="Maria Silva",
        national_id="12345678900",
        email="maria@example.com",
        phone="11999990000",
        password="segredo123",
        referral_code="ABC123",
    )


class TestAddressLookupClient:

    @pytest.mark.asyncio
    async def test_found(self):
        seen = []
        client = AddressLookupClient(
            "http://cep.test/ws",
            transport=transport_returning(200, {
                "cep": "01310-100",
                "logradouro": "Avenida Paulista",
                "bairro": "Bela Vista",
                "localidade": "São Paulo",
                "uf": "SP",
            }, seen),
        )

        address = await client.lookup("01310100")

        assert str(seen[0].url) == "http://cep.test/ws/01310100/json/"
        assert address.street == "Avenida Paulista"
        assert address.neighborhood == "Bela Vista"
        assert address.city == "São Paulo"
        assert address.state_code == "SP"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("marker", [True, "true"])
    async def test_not_found_marker(self, marker):
        client = AddressLookupClient("http://cep.test/ws", transport=transport_returning(200, {"erro": marker}))

        with pytest.raises(LookupNotFound):
            await client.lookup("00000000")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        client = AddressLookupClient("http://cep.test/ws", transport=failing_transport())

        with pytest.raises(RemoteFailure):
            await client.lookup("01310100")

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = AddressLookupClient("http://cep.test/ws", transport=failing_transport(httpx.ReadTimeout))

        with pytest.raises(RemoteFailure):
            await client.lookup("01310100")

    @pytest.mark.asyncio
    async def test_http_error(self):
        client = AddressLookupClient("http://cep.test/ws", transport=transport_returning(400, {}))

        with pytest.raises(RemoteFailure) as exc:
            await client.lookup("0131010x")
        assert exc.value.status_code == 400


class TestAccountRegistrationClient:

    @pytest.mark.asyncio
    async def test_register(self, payload):
        seen = []
        client = AccountRegistrationClient(API_URL, transport=transport_returning(201, {
            "message": "Usuário cadastrado com sucesso!",
            "user": {"id": 42, "nome": "Maria Silva", "email": "maria@example.com", "tipo": "cliente"},
        }, seen))

        account = await client.register(payload)

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == f"{API_URL}/auth/register"
        assert json.loads(request.content) == {
            "nome": "Maria Silva",
            "cpf": "12345678900",
            "email": "maria@example.com",
            "telefone": "11999990000",
            "senha": "segredo123",
            "referral_code": "ABC123",
        }
        assert account.id == 42
        assert account.name == "Maria Silva"
        assert account.national_id == "12345678900"
        assert account.kind == "cliente"

    @pytest.mark.asyncio
    async def test_structured_error(self, payload):
        client = AccountRegistrationClient(
            API_URL, transport=transport_returning(409, {"error": "Email ou CPF já cadastrado."})
        )

        with pytest.raises(RemoteFailure) as exc:
            await client.register(payload)
        assert exc.value.user_message == "Email ou CPF já cadastrado."
        assert exc.value.status_code == 409

    @pytest.mark.asyncio
    async def test_error_without_message(self, payload):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        client = AccountRegistrationClient(API_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(RemoteFailure) as exc:
            await client.register(payload)
        assert exc.value.user_message is None

    @pytest.mark.asyncio
    async def test_missing_user_in_response(self, payload):
        client = AccountRegistrationClient(API_URL, transport=transport_returning(201, {"message": "ok"}))

        with pytest.raises(RemoteFailure):
            await client.register(payload)


class TestPaymentPlanClient:

    @pytest.mark.asyncio
    async def test_create_installment_plan(self):
        seen = []
        client = PaymentPlanClient(API_URL, transport=transport_returning(201, {
            "message": "Carnê criado com sucesso!",
            "installment": {
                "id": "ins_123",
                "totalValue": 598.8,
                "installmentCount": 12,
                "installmentValue": 49.9,
                "bankSlipUrl": "https://pay.test/carne/ins_123.pdf",
                "invoiceUrl": "https://pay.test/i/pay_1",
                "payments": [
                    {"id": "pay_1", "value": 49.9, "dueDate": "2026-10-22",
                     "status": "PENDING", "invoiceUrl": "https://pay.test/i/pay_1"},
                ],
            },
        }, seen))

        plan = await client.create_installment_plan(42, "Plano Anual Essencial Saúde - Maria Silva")

        assert str(seen[0].url) == f"{API_URL}/asaas/public/installments"
        assert json.loads(seen[0].content) == {
            "userId": 42,
            "description": "Plano Anual Essencial Saúde - Maria Silva",
        }
        assert plan.bank_slip_url == "https://pay.test/carne/ins_123.pdf"
        assert plan.installment_count == 12
        assert plan.payments[0].due_date == "2026-10-22"

    @pytest.mark.asyncio
    async def test_missing_slip_url(self):
        client = PaymentPlanClient(API_URL, transport=transport_returning(201, {"installment": {"id": "ins_1"}}))

        with pytest.raises(RemoteFailure):
            await client.create_installment_plan(42, "x")

    @pytest.mark.asyncio
    async def test_server_error(self):
        client = PaymentPlanClient(
            API_URL, transport=transport_returning(404, {"error": "Usuário não encontrado."})
        )

        with pytest.raises(RemoteFailure) as exc:
            await client.create_installment_plan(42, "x")
        assert exc.value.user_message == "Usuário não encontrado."


class TestReferralClient:

    @pytest.mark.asyncio
    async def test_valid_code(self):
        client = ReferralClient(API_URL, transport=transport_returning(200, {
            "valid": True, "referrer_id": 7, "referrer_name": "João",
        }))

        referrer = await client.validate("ABC123")

        assert referrer.referrer_id == 7
        assert referrer.referrer_name == "João"

    @pytest.mark.asyncio
    async def test_unknown_code(self):
        client = ReferralClient(API_URL, transport=transport_returning(404, {
            "valid": False, "error": "Código de indicação não encontrado.",
        }))

        assert await client.validate("NOPE") is None

    @pytest.mark.asyncio
    async def test_server_failure_propagates(self):
        client = ReferralClient(API_URL, transport=transport_returning(500, {"error": "Erro interno do servidor."}))

        with pytest.raises(RemoteFailure):
            await client.validate("ABC123")
