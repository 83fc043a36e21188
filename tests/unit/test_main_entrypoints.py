from __future__ import annotations

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
import typer

from rttypes import main as main_mod
from rttypes.features import FeatureRegistry, OperationResult
from rttypes.version import get_version

SCHEMA = """
struct vec2 { x: f32; y: f32; }
struct line { start: vec2; end: vec2; color: text; }
"""


@pytest.mark.unit
def test_feature_or_exit_unknown():
    with pytest.raises(typer.Exit):
        main_mod._feature_or_exit("does-not-exist")


@pytest.mark.unit
def test_handle_cli_result_failure_raises_exit():
    with pytest.raises(typer.Exit):
        main_mod._handle_cli_result("layout", OperationResult.fail("boom"))


@pytest.mark.unit
def test_registered_features():
    assert set(FeatureRegistry.get_all_features()) >= {"version", "layout", "demo"}


@pytest.mark.unit
def test_version_command(capsys: pytest.CaptureFixture[str]):
    main_mod.version()
    assert capsys.readouterr().out.strip() == f"rttypes version: {get_version()}"


@pytest.mark.unit
def test_layout_command_table_and_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    src = tmp_path / "shapes.rtt"
    src.write_text(SCHEMA, encoding="utf-8")

    main_mod.layout(str(src), as_json=False, debug=False, verbose=False)
    out = capsys.readouterr().out
    assert "struct vec2 (size 8, align 4)" in out
    assert "struct line (size 24, align 8)" in out
    assert "color: text" in out

    main_mod.layout(str(src), as_json=True, debug=False, verbose=False)
    payload = json.loads(capsys.readouterr().out)
    assert [s["name"] for s in payload["structs"]] == ["vec2", "line"]
    assert payload["structs"][1]["fields"][1]["offset"] == 8


@pytest.mark.unit
def test_layout_command_failures(tmp_path: Path):
    with pytest.raises(typer.Exit):
        main_mod.layout(str(tmp_path / "missing.rtt"), as_json=False, debug=False, verbose=False)

    bad = tmp_path / "bad.rtt"
    bad.write_text("struct a { b: nope; }", encoding="utf-8")
    with pytest.raises(typer.Exit):
        main_mod.layout(str(bad), as_json=False, debug=False, verbose=False)


@pytest.mark.unit
def test_demo_command(capsys: pytest.CaptureFixture[str], heap_guard):
    main_mod.demo(debug=False)
    out = capsys.readouterr().out
    assert "color = green" in out
    assert "1 2 3 4" in out


@pytest.mark.unit
def test_serve_uses_settings(monkeypatch: pytest.MonkeyPatch):
    captured: dict[str, object] = {}
    monkeypatch.setattr(main_mod.uvicorn, "run", lambda app, host, port: captured.update(host=host, port=port))
    monkeypatch.setenv("RTTYPES_SERVE_HOST", "0.0.0.0")
    monkeypatch.setenv("RTTYPES_SERVE_PORT", "9123")

    main_mod.serve(host=None, port=None, debug=False)
    assert captured == {"host": "0.0.0.0", "port": 9123}

    main_mod.serve(host="localhost", port=8080, debug=False)
    assert captured == {"host": "localhost", "port": 8080}


@pytest.mark.unit
def test_version_endpoints(api_client: TestClient):
    for path in ("/version", "/api/v1/version"):
        response = api_client.get(path)
        assert response.status_code == 200
        assert response.json() == {"version": get_version()}


@pytest.mark.unit
def test_layout_endpoint(api_client: TestClient):
    response = api_client.post("/api/v1/layout", json={"source": SCHEMA})
    assert response.status_code == 200
    line = response.json()["structs"][1]
    assert line["size"] == 24
    assert line["fields"][2] == {
        "name": "color",
        "type": "text",
        "kind": "scalar",
        "offset": 16,
        "size": 8,
        "alignment": 8,
        "element": None,
    }


@pytest.mark.unit
def test_layout_endpoint_reports_schema_errors(api_client: TestClient):
    response = api_client.post("/api/v1/layout", json={"source": "struct a { b: nope; }"})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "E_UNKNOWN_TYPE"

    response = api_client.post("/api/v1/layout", json={"source": "struct a { b f32; }"})
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "E_SCHEMA_SYNTAX"
    assert detail["line"] == 1


@pytest.mark.unit
def test_layout_endpoint_rejects_oversized_schema(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("RTTYPES_MAX_SCHEMA_BYTES", "10")
    response = api_client.post("/api/v1/layout", json={"source": SCHEMA})
    assert response.status_code == 413
    assert response.json()["detail"]["code"] == "E_SCHEMA_TOO_LARGE"


@pytest.mark.unit
def test_layout_endpoint_hides_internal_errors(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    def explode(**kwargs):
        raise ValueError("unexpected")

    feature = FeatureRegistry.get_feature("layout")
    monkeypatch.setattr(feature, "handler", explode)
    response = api_client.post("/api/v1/layout", json={"source": SCHEMA})
    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"
