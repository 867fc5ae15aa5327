"""
Validadores de documentos brasileiros (CNPJ / CPF)
"""
import re


def only_digits(value: str) -> str:
    return re.sub(r'\D', '', value or '')


def _cnpj_check_digit(base: str) -> int:
    weights = [6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2][-len(base):]
    total = sum(int(d) * w for d, w in zip(base, weights))
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


def validate_cnpj(cnpj: str) -> bool:
    """
    Valida CNPJ.
    - 14 dígitos após remover pontuação
    - Não pode ser sequência repetida (00000000000000, 11111111111111, ...)
    - Os dois dígitos verificadores devem conferir
    """
    cleaned = only_digits(cnpj)

    if len(cleaned) != 14:
        return False

    if cleaned == cleaned[0] * 14:
        return False

    first = _cnpj_check_digit(cleaned[:12])
    second = _cnpj_check_digit(cleaned[:12] + str(first))

    return cleaned[-2:] == f"{first}{second}"


def validate_cpf(cpf: str) -> bool:
    """
    Valida CPF.
    - 11 dígitos após remover pontuação
    - Não pode ser sequência repetida
    - Dígitos verificadores com pesos 10..2 e 11..2
    """
    cleaned = only_digits(cpf)

    if len(cleaned) != 11 or cleaned == cleaned[0] * 11:
        return False

    for position in (9, 10):
        total = sum(int(cleaned[i]) * (position + 1 - i) for i in range(position))
        digit = (total * 10) % 11
        if digit == 10:
            digit = 0
        if digit != int(cleaned[position]):
            return False

    return True


def validate_cpf_cnpj(document: str) -> bool:
    cleaned = only_digits(document)
    if len(cleaned) == 11:
        return validate_cpf(cleaned)
    if len(cleaned) == 14:
        return validate_cnpj(cleaned)
    return False
