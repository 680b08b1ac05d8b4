"""
Fixtures compartilhadas: documentos de exemplo e um provider falso
com respostas roteirizadas (nenhuma chamada de rede).
"""
import json
import sys
from pathlib import Path

import pytest

# Adicionar raiz do projeto ao PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


class ScriptedProvider:
    """Provider falso: devolve texto fixo ou levanta o erro configurado."""
    name = "scripted"

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


def oracle_reply(is_domain=True, confidence=0.9, concerns=None, **extra):
    body = {
        "isDomainData": is_domain,
        "confidence": confidence,
        "reasoning": "hosts array with ip and services",
        "identifiedFields": ["hosts", "ip", "services"],
        "concerns": concerns or [],
    }
    body.update(extra)
    return "Here is my analysis:\n```json\n" + json.dumps(body) + "\n```"


@pytest.fixture
def domain_document():
    return {
        "metadata": {"description": "Host data collection", "hosts_count": 2},
        "hosts": [
            {
                "ip": "192.168.1.1",
                "services": [{"port": 443, "protocol": "HTTPS"}],
                "location": {"city": "Lisbon", "country": "Portugal"},
            },
            {"ip": "10.0.0.1", "autonomous_system": {"asn": 64512, "name": "EXAMPLE-AS"}},
        ],
    }


@pytest.fixture
def plain_ip_document():
    return {"hosts": [{"ip": "192.168.1.1"}, {"ip": "10.0.0.1"}]}
