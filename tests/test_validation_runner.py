"""
Testes da CLI (leitura do arquivo, códigos de saída, oráculo falso).
"""
import json

import pytest

import validation_runner
from conftest import ScriptedProvider, oracle_reply
from validation_runner import (
    EXIT_BAD_INPUT,
    EXIT_OK,
    EXIT_REJECTED,
    UploadError,
    load_document,
    main,
)


@pytest.fixture
def write_json(tmp_path):
    def _write(obj, name="scan.json"):
        path = tmp_path / name
        path.write_text(json.dumps(obj), encoding="utf-8")
        return path
    return _write


def test_load_document_rejects_large_files(write_json):
    path = write_json({"hosts": []})
    with pytest.raises(UploadError, match="too large"):
        load_document(path, max_bytes=5)


def test_load_document_rejects_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{hosts: [", encoding="utf-8")
    with pytest.raises(UploadError, match="Invalid JSON"):
        load_document(path, max_bytes=1024)


def test_structure_only_accepts(write_json, domain_document, capsys):
    code = main([str(write_json(domain_document)), "--structure-only", "--hosts"])
    out = json.loads(capsys.readouterr().out)
    assert code == EXIT_OK
    assert out["looks_like_domain_data"] is True
    assert out["host_count"] == 2
    assert [h["ip"] for h in out["hosts"]] == ["192.168.1.1", "10.0.0.1"]
    assert "error" not in out


def test_structure_only_rejects(write_json, plain_ip_document, capsys):
    code = main([str(write_json(plain_ip_document)), "--structure-only"])
    out = json.loads(capsys.readouterr().out)
    assert code == EXIT_REJECTED
    assert out["looks_like_domain_data"] is False


def test_bad_input_exit_code(tmp_path, capsys):
    path = tmp_path / "broken.json"
    path.write_text("not json", encoding="utf-8")
    assert main([str(path)]) == EXIT_BAD_INPUT
    assert "Invalid JSON" in json.loads(capsys.readouterr().out)["error"]


def test_missing_file_exit_code(tmp_path, capsys):
    assert main([str(tmp_path / "missing.json"), "--structure-only"]) == EXIT_BAD_INPUT


def test_semantic_check_uses_provider(write_json, domain_document, capsys, monkeypatch):
    provider = ScriptedProvider(reply=oracle_reply(confidence=0.9))
    monkeypatch.setattr(validation_runner, "build_provider", lambda: provider)
    code = main([str(write_json(domain_document))])
    out = json.loads(capsys.readouterr().out)
    assert code == EXIT_OK
    assert out["oracle_judgment"]["looks_like_domain_data"] is True
    assert len(provider.prompts) == 1


def test_unconfigured_provider_falls_back(write_json, domain_document, capsys, monkeypatch):
    def no_provider():
        raise ValueError("GEMINI_API_KEY não configurada no .env.")

    monkeypatch.setattr(validation_runner, "build_provider", no_provider)
    code = main([str(write_json(domain_document))])
    out = json.loads(capsys.readouterr().out)
    assert code == EXIT_OK
    assert out["fallback_to_manual"] is True


def test_smoke(monkeypatch, capsys):
    monkeypatch.setattr(validation_runner, "build_provider", lambda: ScriptedProvider(reply="OK"))
    assert main(["--smoke"]) == EXIT_OK
    assert "status = OK" in capsys.readouterr().out
