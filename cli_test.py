import sys
import getpass
import requests

from referral_signup.core.normalizers import format_cpf

BASE_URL = "http://localhost:8000"

referral_code = sys.argv[1] if len(sys.argv) > 1 else input("Código de indicação: ")

resp = requests.post(f"{BASE_URL}/signup/sessions", json={"referral_code": referral_code})
if resp.status_code != 200:
    print("Erro:", resp.json().get("detail"))
    sys.exit(1)

state = resp.json()
session_id = state["session_id"]
if state.get("referrer_name"):
    print(f"Você foi indicado por {state['referrer_name']}!")

PROMPTS = {
    "personal_data": [("name", "Nome completo"), ("national_id", "CPF"), ("email", "E-mail"), ("phone", "Telefone / WhatsApp")],
    "address": [("postal_code", "CEP"), ("street", "Rua / Avenida"), ("number", "Número"), ("complement", "Complemento (opcional)"),
                ("neighborhood", "Bairro"), ("city", "Cidade"), ("state_code", "UF")],
    "credentials": [("password", "Senha"), ("password_confirmation", "Confirmar senha")],
}

while not state["completed"]:
    print(f"\n== {state['stage_label']} ==")
    if state["last_error"]:
        print("Erro:", state["last_error"])

    if state["stage"] == "payment":
        account = state["account"]
        print(f"{account['name']} <{account['email']}> CPF {format_cpf(account['national_id'])}")
        if input("Gerar carnê e finalizar? (s/n) ").lower().startswith("s"):
            state = requests.post(f"{BASE_URL}/signup/sessions/{session_id}/installment-plan").json()
            continue
        break

    for name, label in PROMPTS[state["stage"]]:
        current = state["fields"].get(name, "")
        hint = f" [{current}]" if current else ""
        if name.startswith("password"):
            value = getpass.getpass(f"{label}: ")
        else:
            value = input(f"{label}{hint}: ") or current
        state = requests.patch(f"{BASE_URL}/signup/sessions/{session_id}/fields", json={name: value}).json()
        if name == "postal_code" and state["address_lookup_error"]:
            print("CEP:", state["address_lookup_error"])

    state = requests.post(f"{BASE_URL}/signup/sessions/{session_id}/advance").json()

if state["completed"]:
    print("\nParabéns! Seu carnê foi gerado.")
    print("Ver meu carnê:", state["installment_plan"]["bank_slip_url"])
