from __future__ import annotations

import asyncio
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import requests
from jsonschema import ValidationError
from jsonschema import validate as js_validate

from config import settings
from prompts import DOMAIN_VALIDATION_PROMPT
from schemas import ORACLE_OUTPUT_SCHEMA

logger = logging.getLogger(__name__)

SAMPLE_HOST_LIMIT = 3
SAMPLE_STRING_LIMIT = 20

# Corte usado quando o oráculo opina sozinho (a fusão usa 0.6)
ORACLE_CONFIDENCE_THRESHOLD = 0.7


class OracleError(Exception):
    """Falha do oráculo semântico."""


class OracleUnavailable(OracleError):
    """A chamada ao provider falhou (rede, credenciais, quota...)."""


class OracleParseFailure(OracleError):
    """A resposta do provider não contém um julgamento interpretável."""


@dataclass
class OracleJudgment:
    """Julgamento do oráculo semântico (confiança não verificada)."""
    looks_like_domain_data: bool = False
    confidence: float = 0.0
    reasoning: str = ""
    identified_fields: List[str] = field(default_factory=list)
    concerns: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

class BaseProvider:
    name: str = "base"

    async def generate(self, prompt: str) -> str:
        raise NotImplementedError


class OpenAIProvider(BaseProvider):
    name = "openai"

    def __init__(self):
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY não configurada no .env.")
        from openai import AsyncOpenAI

        self.client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.timeout_s)

    async def generate(self, prompt: str) -> str:
        resp = await self.client.responses.create(
            model=settings.llm_model,
            input=prompt,
            temperature=settings.temperature,
            top_p=settings.top_p,
            max_output_tokens=settings.max_output_tokens,
        )
        return getattr(resp, "output_text", "") or ""


class GeminiProvider(BaseProvider):
    name = "gemini"

    def __init__(self):
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY não configurada no .env.")
        from google import genai

        self.client = genai.Client(api_key=settings.gemini_api_key)

    async def generate(self, prompt: str) -> str:
        from google.genai import types

        cfg = types.GenerateContentConfig(
            temperature=settings.temperature,
            top_p=settings.top_p,
            max_output_tokens=settings.max_output_tokens,
        )
        resp = await self.client.aio.models.generate_content(
            model=settings.llm_model,
            contents=prompt,
            config=cfg,
        )
        return getattr(resp, "text", "") or ""


class LlamaProvider(BaseProvider):
    """Endpoint OpenAI-compatible (ex.: Ollama /v1)."""
    name = "llama"

    def __init__(self):
        if not settings.llama_base_url:
            raise ValueError("LLAMA_BASE_URL não configurada no .env.")
        self.base_url = settings.llama_base_url.rstrip("/")
        self.api_key = settings.llama_api_key or ""

    def _post(self, prompt: str) -> str:
        url = f"{self.base_url}/chat/completions"
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {
            "model": settings.llm_model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": settings.temperature,
            "top_p": settings.top_p,
            "max_tokens": settings.max_output_tokens,
        }
        r = requests.post(url, headers=headers, json=payload, timeout=settings.timeout_s)
        r.raise_for_status()
        data = r.json()
        return data["choices"][0]["message"]["content"] or ""

    async def generate(self, prompt: str) -> str:
        return await asyncio.to_thread(self._post, prompt)


def build_provider() -> BaseProvider:
    """Instancia o provider definido no .env."""
    if settings.llm_provider == "openai":
        return OpenAIProvider()
    if settings.llm_provider == "gemini":
        return GeminiProvider()
    if settings.llm_provider == "llama":
        return LlamaProvider()
    raise ValueError(f"LLM_PROVIDER inválido: {settings.llm_provider}")


# ---------------------------------------------------------------------------
# Amostra, prompt e parse
# ---------------------------------------------------------------------------

def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _shape(value: Any) -> str:
    """Resume um valor de host sem expor o conteúdo completo."""
    if isinstance(value, str):
        if len(value) > SAMPLE_STRING_LIMIT:
            return f"{value[:SAMPLE_STRING_LIMIT]}..."
        return value
    if isinstance(value, list):
        return f"[array with {len(value)} items]"
    if isinstance(value, Mapping):
        return "{object with keys: " + ", ".join(str(k) for k in value) + "}"
    return _type_name(value)


def build_sample(document: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Monta amostra limitada do documento para o oráculo:
    tipos das chaves de topo e, se houver 'hosts', até 3 hosts resumidos.
    """
    sample: Dict[str, Any] = {
        "structure": {k: _type_name(v) for k, v in document.items()},
        "sampleHosts": [],
    }

    hosts = document.get("hosts")
    if isinstance(hosts, list):
        sample["hostCount"] = len(hosts)
        sample["sampleHosts"] = [
            {k: _shape(v) for k, v in host.items()} if isinstance(host, Mapping) else {}
            for host in hosts[:SAMPLE_HOST_LIMIT]
        ]
    return sample


def build_validation_prompt(sample: Dict[str, Any]) -> str:
    return DOMAIN_VALIDATION_PROMPT.replace("{{SAMPLE}}", json.dumps(sample, ensure_ascii=False, indent=2))


def _extract_json_object(text: str) -> str:
    if text is not None and not isinstance(text, str):
        raise OracleParseFailure(f"Oracle response is not text: {type(text).__name__}")
    t = (text or "").strip()
    i, j = t.find("{"), t.rfind("}")
    if i < 0 or j <= i:
        raise OracleParseFailure("No JSON found in oracle response")
    return t[i : j + 1]


def _string_list(items: Any) -> List[str]:
    out: List[str] = []
    for it in items or []:
        s = str(it).strip() if it is not None else ""
        if s:
            out.append(s)
    return out


def parse_oracle_reply(text: str) -> OracleJudgment:
    """
    Interpreta a resposta livre do oráculo.
    Levanta OracleParseFailure se não houver objeto JSON válido no texto.
    """
    raw = _extract_json_object(text)
    try:
        obj = json.loads(raw)
    except json.JSONDecodeError as e:
        raise OracleParseFailure(f"Invalid JSON in oracle response: {e}") from e

    try:
        js_validate(instance=obj, schema=ORACLE_OUTPUT_SCHEMA)
    except ValidationError as e:
        raise OracleParseFailure(f"Oracle response does not match schema: {e.message}") from e

    confidence = float(obj.get("confidence") or 0.0)
    if not math.isfinite(confidence):
        raise OracleParseFailure(f"Non-finite confidence in oracle response: {confidence}")
    return OracleJudgment(
        looks_like_domain_data=bool(obj.get("isDomainData") or False),
        confidence=max(0.0, min(1.0, confidence)),
        reasoning=str(obj.get("reasoning") or ""),
        identified_fields=_string_list(obj.get("identifiedFields")),
        concerns=_string_list(obj.get("concerns")),
    )


def judgment_error(judgment: OracleJudgment) -> Optional[str]:
    """Erro do lado do oráculo: baixa confiança (< 0.7) ou preocupações."""
    if judgment.confidence < ORACLE_CONFIDENCE_THRESHOLD or judgment.concerns:
        detail = ", ".join(judgment.concerns) or "Low confidence in data validity"
        return f"AI validation concerns: {detail}"
    return None


# ---------------------------------------------------------------------------
# Validador semântico
# ---------------------------------------------------------------------------

class SemanticOracleValidator:
    """Oráculo semântico: uma chamada ao provider por documento, sem retries."""

    def __init__(self, provider: BaseProvider):
        self.provider = provider

    async def check(self, document: Mapping[str, Any]) -> OracleJudgment:
        prompt = build_validation_prompt(build_sample(document))
        name = getattr(self.provider, "name", type(self.provider).__name__)

        try:
            text = await self.provider.generate(prompt)
        except Exception as e:
            logger.warning("[ORACLE_CALL_FAILED] provider=%s model=%s err=%r", name, settings.llm_model, e)
            raise OracleUnavailable(f"{type(e).__name__}: {e}") from e

        try:
            judgment = parse_oracle_reply(text)
        except OracleParseFailure as e:
            logger.warning("[ORACLE_PARSE_FAILED] provider=%s err=%s", name, e)
            logger.debug("[ORACLE_RAW_REPLY] %s", str(text)[:300])
            raise

        logger.debug(
            "[ORACLE_JUDGMENT] provider=%s domain=%s confidence=%.2f",
            name, judgment.looks_like_domain_data, judgment.confidence,
        )
        return judgment

    async def test_connection(self) -> bool:
        """Verifica se o provider responde (espera 'OK' na resposta)."""
        try:
            text = await self.provider.generate('Test connection. Please respond with "OK".')
        except Exception as e:
            logger.warning("[ORACLE_SMOKE_FAILED] err=%r", e)
            return False
        return "OK" in (text or "")
