# Schema JSON para validar a resposta do oráculo semântico.
# Nenhum campo é obrigatório: ausentes recebem valores padrão no parse.

ORACLE_OUTPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "isDomainData": {"type": ["boolean", "null"]},
        "confidence": {"type": ["number", "null"]},
        "reasoning": {"type": ["string", "null"]},
        "identifiedFields": {"type": ["array", "null"]},
        "concerns": {"type": ["array", "null"]},
    },
    "additionalProperties": True,
}
