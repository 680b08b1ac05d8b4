from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Carrega o .env ANTES de ler qualquer variável de ambiente
ROOT = Path(__file__).resolve().parent
load_dotenv(ROOT / ".env")


@dataclass(frozen=True)
class Settings:
    # Provider e modelo do oráculo
    llm_provider: str = os.getenv("LLM_PROVIDER", "gemini").lower()
    llm_model: str = os.getenv("LLM_MODEL", "gemini-2.5-flash")

    # Chaves
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
    llama_base_url: str | None = os.getenv("LLAMA_BASE_URL")
    llama_api_key: str | None = os.getenv("LLAMA_API_KEY")

    # Runtime
    timeout_s: float = float(os.getenv("LLM_TIMEOUT_S", "30"))
    temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.0"))
    top_p: float = float(os.getenv("LLM_TOP_P", "1.0"))
    max_output_tokens: int = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "1024"))

    # Upload
    max_file_size_mb: int = int(os.getenv("MAX_FILE_SIZE_MB", "10"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
