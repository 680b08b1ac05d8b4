from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from config import settings
from llm_oracle import SemanticOracleValidator, build_provider
from validation_fusion import FusedVerdict, ValidationFusion

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_BAD_INPUT = 2


class UploadError(Exception):
    """Arquivo recusado antes da validação (tamanho ou JSON inválido)."""


def load_document(path: Path, max_bytes: int) -> Any:
    """Lê e parseia o arquivo, recusando arquivos acima do limite."""
    size = path.stat().st_size
    if size > max_bytes:
        raise UploadError(
            f"File is too large ({size} bytes). Maximum allowed size is {max_bytes} bytes."
        )
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise UploadError(
            "Invalid JSON file. Please ensure your file contains valid JSON data."
        ) from e


def build_engine(with_oracle: bool) -> ValidationFusion:
    """Monta o motor; sem credenciais válidas, segue sem oráculo."""
    if not with_oracle:
        return ValidationFusion()
    try:
        provider = build_provider()
    except (ValueError, ImportError) as e:
        logger.warning("[ORACLE_NOT_CONFIGURED] %s", e)
        return ValidationFusion()
    return ValidationFusion(SemanticOracleValidator(provider))


def smoke_test() -> int:
    """Testa se o provider atual está respondendo."""
    try:
        provider = build_provider()
    except (ValueError, ImportError) as e:
        print(f"[SMOKE] provider not configured: {e}")
        return EXIT_REJECTED
    ok = asyncio.run(SemanticOracleValidator(provider).test_connection())
    print("[SMOKE] provider =", provider.name, "model =", settings.llm_model)
    print("[SMOKE] status =", "OK" if ok else "FAILED")
    return EXIT_OK if ok else EXIT_REJECTED


def run(args: argparse.Namespace) -> int:
    try:
        document = load_document(Path(args.file), settings.max_file_size_mb * 1024 * 1024)
    except (UploadError, OSError) as e:
        print(json.dumps({"error": str(e)}, ensure_ascii=False))
        return EXIT_BAD_INPUT

    engine = build_engine(with_oracle=not args.structure_only)

    if args.oracle_only:
        verdict = asyncio.run(engine.validate_with_oracle(document))
    else:
        verdict = asyncio.run(engine.evaluate(document, use_semantic_check=not args.structure_only))

    out = verdict.to_dict()
    if args.hosts:
        out["hosts"] = engine.extract_valid_hosts(document)
    print(json.dumps(out, ensure_ascii=False, indent=2))

    return EXIT_OK if _accepted(verdict) else EXIT_REJECTED


def _accepted(verdict: FusedVerdict) -> bool:
    return verdict.structurally_valid and verdict.looks_like_domain_data


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Valida se um JSON contém dados de scan de hosts.")
    ap.add_argument("file", nargs="?", help="Arquivo JSON a validar.")
    mode = ap.add_mutually_exclusive_group()
    mode.add_argument("--structure-only", action="store_true", help="Apenas validação estrutural (sem LLM).")
    mode.add_argument("--oracle-only", action="store_true", help="Apenas o oráculo LLM.")
    ap.add_argument("--hosts", action="store_true", help="Inclui os hosts válidos na saída.")
    ap.add_argument("--smoke", action="store_true", help="Executa apenas teste de integração do provider atual.")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )

    if args.smoke:
        return smoke_test()
    if not args.file:
        ap.error("file is required unless --smoke is given")
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
