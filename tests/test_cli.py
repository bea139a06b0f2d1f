import json

from url_threat_scoring.cli import main, run_once


def test_run_once_local_only():
    payload = json.loads(run_once("g00gle.com", local_only=True))
    assert payload["safe"] is False
    assert payload["checks"]["notTyposquat"] is False
    assert payload["source"] == ["local"]


def test_run_once_full_pipeline_with_network_disabled(monkeypatch):
    monkeypatch.setenv("URL_THREAT_SCORING_PROBE_ENABLED", "false")
    monkeypatch.setenv("URL_THREAT_SCORING_RDAP_ENABLED", "false")
    payload = json.loads(run_once("https://example.com"))
    assert payload["score"] == 100
    assert payload["safe"] is True


def test_main_prints_ascii_json(capsys):
    assert main(["--url", "https://bücher.de/straße", "--local-only"]) == 0
    out = capsys.readouterr().out
    assert out.isascii()
    assert json.loads(out)["url"].startswith("https://xn--bcher-kva.de/")


def test_main_reports_config_errors(tmp_path, capsys):
    path = tmp_path / "broken.yaml"
    path.write_text("- nope\n", encoding="utf-8")
    assert main(["--url", "example.com", "--config", str(path)]) == 2
    assert "configuration error" in capsys.readouterr().err
