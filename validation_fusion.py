from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional

from llm_oracle import (
    OracleError,
    OracleJudgment,
    OracleParseFailure,
    OracleUnavailable,
    SemanticOracleValidator,
    judgment_error,
)
from structural_validator import (
    MALFORMED_INPUT_ERROR,
    StructuralVerdict,
    check_structure,
    extract_valid_hosts,
)

logger = logging.getLogger(__name__)

FUSION_CONFIDENCE_THRESHOLD = 0.6


@dataclass
class FusedVerdict:
    """Veredito final entregue ao chamador."""
    structurally_valid: bool
    looks_like_domain_data: bool
    host_count: Optional[int] = None
    error: Optional[str] = None
    oracle_judgment: Optional[OracleJudgment] = None
    fallback_to_manual: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def _from_structural(s: StructuralVerdict) -> FusedVerdict:
    accepted = s.structurally_valid and s.looks_like_domain_data
    return FusedVerdict(
        structurally_valid=s.structurally_valid,
        looks_like_domain_data=s.looks_like_domain_data,
        host_count=s.valid_host_count if accepted else None,
        error=s.error,
    )


def _append(error: Optional[str], addition: str, standalone: str) -> str:
    return f"{error}. {addition}" if error else standalone


def fuse(structural: StructuralVerdict, judgment: OracleJudgment) -> FusedVerdict:
    """
    Combina o veredito estrutural com o julgamento do oráculo.

    A estrutura é necessária mas não suficiente: os dois precisam concordar.
    Com confiança baixa (< 0.6) o oráculo só rebaixa documentos que a
    estrutura já não reconhecia como dado de domínio.
    """
    verdict = FusedVerdict(
        structurally_valid=structural.structurally_valid,
        looks_like_domain_data=structural.looks_like_domain_data and judgment.looks_like_domain_data,
        host_count=_from_structural(structural).host_count,
        oracle_judgment=judgment,
    )

    errors: List[str] = []
    if structural.error:
        errors.append(f"Structure validation: {structural.error}")
    oracle_error = judgment_error(judgment)
    if oracle_error:
        errors.append(f"AI validation: {oracle_error}")
    error = " | ".join(errors) or None

    pct = int(judgment.confidence * 100 + 0.5)
    if judgment.confidence < FUSION_CONFIDENCE_THRESHOLD:
        if structural.looks_like_domain_data:
            error = _append(
                error,
                f"AI confidence warning: {pct}% confidence",
                f"AI validation warning: {pct}% confidence - data structure is valid",
            )
        else:
            verdict.looks_like_domain_data = False
            failed = (
                f"AI validation failed ({pct}% confidence) - data structure is valid "
                "but content authenticity is questionable"
            )
            error = _append(error, failed, failed)

    if judgment.concerns:
        concern_text = ", ".join(judgment.concerns)
        error = _append(
            error,
            f"AI concerns: {concern_text}",
            f"AI validation concerns: {concern_text}",
        )

    verdict.error = error
    return verdict


class ValidationFusion:
    """
    Orquestra validação estrutural + oráculo semântico.

    A etapa estrutural sempre roda primeiro e decide se o oráculo é chamado;
    sem oráculo configurado, a checagem semântica cai no modo manual.
    """

    def __init__(self, oracle: Optional[SemanticOracleValidator] = None):
        self.oracle = oracle

    def check_structure_only(self, document: Any) -> StructuralVerdict:
        return check_structure(document)

    def extract_valid_hosts(self, document: Any) -> List[dict]:
        return extract_valid_hosts(document)

    async def _ask_oracle(self, document: Mapping[str, Any]) -> OracleJudgment:
        if self.oracle is None:
            raise OracleUnavailable("No oracle configured")
        return await self.oracle.check(document)

    async def evaluate(self, document: Any, use_semantic_check: bool = True) -> FusedVerdict:
        structural = check_structure(document)

        if not structural.structurally_valid or not use_semantic_check:
            return _from_structural(structural)

        try:
            judgment = await self._ask_oracle(document)
        except OracleError as e:
            logger.warning("[ORACLE_FALLBACK] %s: %s", type(e).__name__, e)
            verdict = _from_structural(structural)
            if structural.error:
                verdict.error = f"{structural.error} (AI validation unavailable)"
            verdict.fallback_to_manual = True
            return verdict

        return fuse(structural, judgment)

    async def validate_with_oracle(self, document: Any) -> FusedVerdict:
        """Validação apenas pelo oráculo (corte de confiança 0.7)."""
        if not isinstance(document, Mapping):
            return FusedVerdict(
                structurally_valid=False,
                looks_like_domain_data=False,
                error=MALFORMED_INPUT_ERROR,
            )

        try:
            judgment = await self._ask_oracle(document)
        except OracleParseFailure:
            return FusedVerdict(
                structurally_valid=True,
                looks_like_domain_data=False,
                error="Failed to parse AI validation response",
                fallback_to_manual=True,
            )
        except OracleUnavailable as e:
            logger.warning("[ORACLE_FALLBACK] %s", e)
            verdict = _from_structural(check_structure(document))
            verdict.error = "AI validation unavailable, relying on traditional validation"
            verdict.fallback_to_manual = True
            return verdict

        hosts = document.get("hosts")
        host_count = None
        if judgment.looks_like_domain_data and isinstance(hosts, list):
            host_count = len(hosts)

        return FusedVerdict(
            structurally_valid=True,
            looks_like_domain_data=judgment.looks_like_domain_data,
            host_count=host_count,
            error=judgment_error(judgment),
            oracle_judgment=judgment,
        )
