import json
import subprocess

import pytest

from linkcrawler.audit import LighthouseAuditor, parse_lighthouse_report
from linkcrawler.errors import ConfigurationError


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def test_parse_lighthouse_report():
    report = {
        "categories": {
            "performance": {"score": 0.42},
            "seo": {"score": 1},
            "pwa": {"score": None},
        }
    }
    assert parse_lighthouse_report(report) == {"performance": 0.42, "seo": 1.0, "pwa": None}

    with pytest.raises(ValueError):
        parse_lighthouse_report({"lhr": {}})


def test_audit_runs_cli_and_returns_scores():
    calls = []

    def runner(command, **kwargs):
        calls.append((command, kwargs))
        return _completed(stdout=json.dumps({"categories": {"seo": {"score": 0.9}}}))

    auditor = LighthouseAuditor("lighthouse", categories=("seo",), runner=runner)

    assert auditor.audit("https://ex.com/") == {"seo": 0.9}
    command, kwargs = calls[0]
    assert command[:2] == ["lighthouse", "https://ex.com/"]
    assert "--only-categories=seo" in command
    assert kwargs["timeout"] == auditor.timeout_seconds


@pytest.mark.parametrize(
    "outcome",
    [
        _completed(returncode=1, stderr="Chrome could not be launched"),
        _completed(stdout="not json"),
        subprocess.TimeoutExpired(cmd="lighthouse", timeout=1),
    ],
)
def test_audit_failures_return_none(outcome, caplog):
    def runner(command, **kwargs):
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    auditor = LighthouseAuditor(runner=runner)

    assert auditor.audit("https://ex.com/") is None
    assert "ighthouse" in caplog.text


def test_missing_binary_is_configuration_error(monkeypatch):
    monkeypatch.setattr("linkcrawler.audit.shutil.which", lambda binary: None)
    with pytest.raises(ConfigurationError, match="not found"):
        LighthouseAuditor("lighthouse")
