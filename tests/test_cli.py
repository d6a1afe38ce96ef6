import json

import pytest

from edgetriage.cli import main

CSV = "\n".join([
    "ts,service,region,pop,status,ttms",
    "2024-01-15T10:00:00Z,live,us,iad,200,10",
    "2024-01-15T10:00:30Z,live,us,iad,200,20",
    "2024-01-15T10:01:30Z,live,us,iad,500,30",
])

@pytest.fixture
def csv_path(tmp_path):
    p = tmp_path / "edge.csv"
    p.write_text(CSV, encoding="utf-8")
    return str(p)

def test_run_json(csv_path, capsys):
    assert main(["run", "--csv", csv_path, "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["totalRequests"] == 3
    assert data["errorCount"] == 1

def test_run_summary(csv_path, capsys):
    assert main(["run", "--csv", csv_path, "--service", "live", "--window", "1"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("*CDN TRIAGE SUMMARY*")
    assert "• Requests: *2*" in out

def test_run_invalid_window(csv_path, capsys):
    assert main(["run", "--csv", csv_path, "--window", "0"]) == 1
    assert "[error] windowMinutes must be a positive number." in capsys.readouterr().err

def test_run_missing_file(tmp_path, capsys):
    assert main(["run", "--csv", str(tmp_path / "nope.csv")]) == 1
    assert "[error]" in capsys.readouterr().err

def test_quality(csv_path, capsys):
    assert main(["quality", "--csv", csv_path, "--pop", "iad"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["dataQuality"]["all"]["invalidTs"] == 0
    assert data["warnings"] == ["POP filter 'iad' did not reduce dataset."]
