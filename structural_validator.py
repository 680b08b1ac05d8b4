from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

logger = logging.getLogger(__name__)

MALFORMED_INPUT_ERROR = "Data must be a valid JSON object"

MIN_VALID_HOST_RATIO = 0.5
MIN_DOMAIN_FIELD_RATIO = 0.3

# Campos típicos de dados de scan de hosts (basta um por host)
DOMAIN_INDICATOR_FIELDS = (
    "services",             # serviços/portas
    "location",             # geolocalização
    "autonomous_system",    # ASN
    "dns",
    "threat_intelligence",
    "protocols",
    "certificates",         # certificados TLS
)

_OCTET = r"(25[0-5]|2[0-4][0-9]|1[0-9][0-9]|[1-9]?[0-9])"
IPV4_PATTERN = re.compile(rf"{_OCTET}(\.{_OCTET}){{3}}", re.ASCII)
IPV6_PATTERN = re.compile(r"([0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}|::1|::", re.ASCII)


@dataclass
class StructuralVerdict:
    """Resultado da validação estrutural (determinística)."""
    structurally_valid: bool
    looks_like_domain_data: bool
    valid_host_count: int = 0
    error: Optional[str] = None


def _percent(ratio: float) -> int:
    """Percentual arredondado (meio para cima)."""
    return int(ratio * 100 + 0.5)


def _reject(error: str, valid_host_count: int = 0) -> StructuralVerdict:
    return StructuralVerdict(
        structurally_valid=True,
        looks_like_domain_data=False,
        valid_host_count=valid_host_count,
        error=error,
    )


def is_valid_ip_address(value: Any) -> bool:
    """IPv4 em dotted-quad, IPv6 completo (oito grupos) ou 'localhost'."""
    if not isinstance(value, str):
        return False
    return (
        IPV4_PATTERN.fullmatch(value) is not None
        or IPV6_PATTERN.fullmatch(value) is not None
        or value == "localhost"
    )


def is_valid_host(host: Any) -> bool:
    if not isinstance(host, Mapping):
        return False
    ip = host.get("ip")
    if not ip or not isinstance(ip, str):
        return False
    return is_valid_ip_address(ip)


def has_domain_indicators(host: Any) -> bool:
    if not isinstance(host, Mapping):
        return False
    return any(field in host for field in DOMAIN_INDICATOR_FIELDS)


def extract_valid_hosts(document: Any) -> List[dict]:
    """Hosts que passam no predicado por host, na ordem original."""
    if not isinstance(document, Mapping):
        return []
    hosts = document.get("hosts")
    if not isinstance(hosts, list):
        return []
    return [h for h in hosts if is_valid_host(h)]


def _check_domain_signal(valid_hosts: List[dict], total: int) -> Optional[str]:
    """Retorna mensagem de erro se faltar sinal de dado de domínio."""
    with_fields = sum(1 for h in valid_hosts if has_domain_indicators(h))
    if with_fields == 0:
        return (
            "Data does not appear to contain host scan information. Expected fields like "
            '"services", "location", or "autonomous_system" are missing.'
        )

    ratio = with_fields / total
    if ratio < MIN_DOMAIN_FIELD_RATIO:
        return (
            f"Only {_percent(ratio)}% of hosts contain typical host scan fields. "
            "This may not be genuine host scan data."
        )
    return None


def _check(document: Any) -> StructuralVerdict:
    if not isinstance(document, Mapping):
        return StructuralVerdict(
            structurally_valid=False,
            looks_like_domain_data=False,
            error=MALFORMED_INPUT_ERROR,
        )

    hosts = document.get("hosts")
    if hosts is None:
        return _reject(
            'Data does not contain a "hosts" field. '
            'Expected host scan format: {"hosts": [...]}'
        )

    if not isinstance(hosts, list):
        return _reject('The "hosts" field must be an array')

    if not hosts:
        return _reject('The "hosts" array is empty. Please provide data with at least one host.')

    valid_hosts = [h for h in hosts if is_valid_host(h)]
    valid_count = len(valid_hosts)
    if valid_count == 0:
        return _reject(
            'No valid hosts found. Each host must have an "ip" field with a valid IP address.'
        )

    valid_ratio = valid_count / len(hosts)
    if valid_ratio < MIN_VALID_HOST_RATIO:
        return _reject(
            f"Only {_percent(valid_ratio)}% of hosts have valid IP addresses. "
            "This may not be host scan data.",
            valid_count,
        )

    signal_error = _check_domain_signal(valid_hosts, len(hosts))
    if signal_error:
        return _reject(signal_error, valid_count)

    return StructuralVerdict(
        structurally_valid=True,
        looks_like_domain_data=True,
        valid_host_count=valid_count,
    )


def check_structure(document: Any) -> StructuralVerdict:
    """
    Valida a estrutura do documento sem chamadas externas.

    Ordem (para no primeiro passo que falhar):
      - objeto JSON (fatal se não for)
      - campo 'hosts' presente, lista, não vazia
      - maioria dos hosts com IP válido
      - pelo menos 30% dos hosts com campos típicos de scan

    Nunca lança exceção: falhas internas viram erro fatal.
    """
    try:
        return _check(document)
    except Exception as e:
        logger.warning("[STRUCTURE_CHECK_FAILED] err=%r", e)
        return StructuralVerdict(
            structurally_valid=False,
            looks_like_domain_data=False,
            error=MALFORMED_INPUT_ERROR,
        )
