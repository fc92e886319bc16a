"""
Funções para normalizar dados digitados no formulário de cadastro.
"""
import re
import unicodedata
from typing import Optional


POSTAL_CODE_LENGTH = 8
CPF_LENGTH = 11
PHONE_MAX_DIGITS = 11

# Mapeamento de UFs brasileiras
UF_MAP = {
    "AC": "AC", "AL": "AL", "AP": "AP", "AM": "AM", "BA": "BA", "CE": "CE",
    "DF": "DF", "ES": "ES", "GO": "GO", "MA": "MA", "MT": "MT", "MS": "MS",
    "MG": "MG", "PA": "PA", "PB": "PB", "PR": "PR", "PE": "PE", "PI": "PI",
    "RJ": "RJ", "RN": "RN", "RS": "RS", "RO": "RO", "RR": "RR", "SC": "SC",
    "SP": "SP", "SE": "SE", "TO": "TO",
}

# Nomes completos (sem acento) para UF; os mais longos vêm antes
# para que "MATO GROSSO DO SUL" não caia em "MATO GROSSO"
STATE_NAMES = {
    "MATO GROSSO DO SUL": "MS",
    "RIO GRANDE DO NORTE": "RN",
    "RIO GRANDE DO SUL": "RS",
    "DISTRITO FEDERAL": "DF",
    "ESPIRITO SANTO": "ES",
    "RIO DE JANEIRO": "RJ",
    "SANTA CATARINA": "SC",
    "MINAS GERAIS": "MG",
    "MATO GROSSO": "MT",
    "PERNAMBUCO": "PE",
    "TOCANTINS": "TO",
    "SAO PAULO": "SP",
    "MARANHAO": "MA",
    "AMAZONAS": "AM",
    "RONDONIA": "RO",
    "ALAGOAS": "AL",
    "PARAIBA": "PB",
    "RORAIMA": "RR",
    "SERGIPE": "SE",
    "PARANA": "PR",
    "AMAPA": "AP",
    "BAHIA": "BA",
    "CEARA": "CE",
    "GOIAS": "GO",
    "PIAUI": "PI",
    "ACRE": "AC",
    "PARA": "PA",
}


def strip_accents(text: str) -> str:
    """
    Remove acentos de uma string.
    """
    return "".join(
        ch for ch in unicodedata.normalize("NFD", text)
        if unicodedata.category(ch) != "Mn"
    )


def only_digits(raw: str) -> str:
    """Remove tudo que não é dígito."""
    return re.sub(r"\D", "", raw or "")


def mask_digits(raw: str, max_length: int) -> str:
    """
    Máscara de entrada: mantém apenas dígitos e corta no tamanho máximo.

    Exemplo:
        mask_digits("123.456.789-10", 11) → "12345678910"
    """
    return only_digits(raw)[:max_length]


def normalize_postal_code(raw: str) -> Optional[str]:
    """
    Retorna os 8 dígitos do CEP, ou None se ainda não estiver completo.

    Aceita formatos como "01310-100" e "01310100".
    """
    digits = only_digits(raw)
    if len(digits) != POSTAL_CODE_LENGTH:
        return None
    return digits


def normalize_state_code(raw: str) -> str:
    """
    Normaliza a UF digitada ("sp", "São Paulo", "PARANÁ") para a sigla.
    Se não reconhecer, devolve o texto em maiúsculas para o usuário corrigir.
    """
    text = strip_accents(raw or "").upper().strip()
    if text in UF_MAP:
        return text
    for name, uf in STATE_NAMES.items():
        if text == name:
            return uf
    return text


def format_cpf(cpf: str) -> str:
    """
    Formata CPF para exibição: "12345678910" → "123.456.789-10".
    """
    digits = only_digits(cpf)
    if len(digits) != CPF_LENGTH:
        return cpf or ""
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"
