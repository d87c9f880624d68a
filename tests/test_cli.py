"""Tests for the command-line interface."""

import json

import pytest
from typer.testing import CliRunner

from bastion import __version__
from bastion.cli import app

runner = CliRunner()

WORST_POSTURE = {
    "deviceId": "dev-bad",
    "firewallEnabled": False,
    "antivirusEnabled": False,
    "diskEncryptionEnabled": False,
    "lastUpdate": "2020-01-01T00:00:00Z",
    "complianceScore": 12,
}


def write(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(json.dumps(data))
    return path


class TestDeviceCommand:
    def test_worst_case_json(self, tmp_path):
        path = write(tmp_path, "posture.json", WORST_POSTURE)
        result = runner.invoke(app, ["device", str(path), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["score"] == 100
        assert data["level"] == "CRITICAL"
        assert data["decision"] == "DENY"

    def test_table_output(self, tmp_path):
        path = write(tmp_path, "posture.json", WORST_POSTURE)
        result = runner.invoke(app, ["device", str(path)])
        assert result.exit_code == 0
        assert "Risk Factors" in result.output
        assert "CRITICAL" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["device", str(tmp_path / "missing.json")])
        assert result.exit_code == 1

    def test_invalid_posture(self, tmp_path):
        path = write(tmp_path, "posture.json", {"complianceScore": 150})
        result = runner.invoke(app, ["device", str(path)])
        assert result.exit_code == 1


class TestAssessCommand:
    def test_new_country_unknown_device(self, tmp_path):
        posture = write(tmp_path, "posture.json", {"isKnownDevice": False})
        profile = write(
            tmp_path,
            "profile.json",
            {"id": "user-9", "knownCountries": ["US"], "riskTolerance": "LOW"},
        )
        context = write(tmp_path, "context.json", {"country": "NG"})
        result = runner.invoke(
            app, ["assess", "-p", str(posture), "-u", str(profile), "-c", str(context), "--json"]
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["score"] == 35
        assert data["level"] == "HIGH"
        assert data["requires_mfa"] is True

    def test_profile_without_id(self, tmp_path):
        posture = write(tmp_path, "posture.json", {})
        profile = write(tmp_path, "profile.json", {"knownCountries": ["US"]})
        result = runner.invoke(app, ["assess", "-p", str(posture), "-u", str(profile)])
        assert result.exit_code == 1


@pytest.mark.usefixtures("configured_db")
class TestUserCommand:
    def test_compliant_user(self):
        result = runner.invoke(app, ["user", "user-1", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["level"] == "LOW"

    def test_unknown_user(self):
        result = runner.invoke(app, ["user", "nobody"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_negative_amount(self):
        result = runner.invoke(app, ["user", "user-1", "--amount=-5"])
        assert result.exit_code == 1
        assert "Invalid input" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
