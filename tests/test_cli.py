"""Tests for the tlshunter command line."""

import json

import pytest
from typer.testing import CliRunner

from tlshunter import __version__
from tlshunter.cli.main import app
from tests.conftest import create_test_apk, manifest_xml

runner = CliRunner()


@pytest.fixture
def apks(tmp_path):
    modern = create_test_apk(
        tmp_path / "modern.apk",
        {"AndroidManifest.xml": manifest_xml(30, name="com.example.Modern")},
    )
    legacy = create_test_apk(
        tmp_path / "legacy.apk",
        {"AndroidManifest.xml": manifest_xml(21, name="com.example.Legacy")},
    )
    other = create_test_apk(
        tmp_path / "other.apk",
        {"AndroidManifest.xml": manifest_xml(29, name="com.example.Other")},
    )
    return modern, legacy, other


class TestScanApk:
    def test_text_report(self, apks):
        modern, legacy, other = apks
        result = runner.invoke(app, ["scan", "apk", str(modern), str(legacy), str(other)])

        assert result.exit_code == 0
        assert f"File    : {modern}" in result.stdout
        assert "Name    : com.example.Modern" in result.stdout
        assert "Version : Android 11 (target)" in result.stdout
        assert "    1. Type: NSCMissing Reason: Manifest does not specify NSC" in result.stdout
        assert "    1. Type: Cleartext Reason: Manifest defaults permit cleartext traffic." in (
            result.stdout
        )
        assert "Statistics:" in result.stdout
        assert "Risk: NSCMissing Count: 2" in result.stdout
        assert f"        File: {other} Name: com.example.Other" in result.stdout

    def test_reports_keep_input_order_with_workers(self, apks):
        modern, legacy, other = apks
        result = runner.invoke(
            app, ["scan", "apk", "-w", "3", str(other), str(legacy), str(modern)]
        )
        assert result.exit_code == 0
        positions = [result.stdout.index(f"File    : {p}") for p in (other, legacy, modern)]
        assert positions == sorted(positions)

    def test_no_summary(self, apks):
        result = runner.invoke(app, ["scan", "apk", "--no-summary", str(apks[0])])
        assert result.exit_code == 0
        assert "Statistics:" not in result.stdout

    def test_failed_file_does_not_stop_batch(self, apks, tmp_path):
        broken = tmp_path / "broken.apk"
        broken.write_bytes(b"not a zip")
        result = runner.invoke(app, ["scan", "apk", str(broken), str(apks[0])])

        assert result.exit_code == 1
        assert f"File    : {apks[0]}" in result.stdout

    def test_json_report(self, apks):
        modern, legacy, _ = apks
        result = runner.invoke(app, ["scan", "apk", "--json", str(modern), str(legacy)])

        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert [a["file"] for a in report["analyses"]] == [str(modern), str(legacy)]
        assert report["analyses"][0]["risks"] == [
            {
                "type": "NSCMissing",
                "reason": (
                    "Manifest does not specify NSC where target Android version "
                    "supports it."
                ),
                "description": "Android network security configuration is missing.",
            }
        ]
        assert report["failures"] == []
        assert [g["type"] for g in report["summary"]] == ["NSCMissing", "Cleartext"]
        assert report["summary"][1]["reasons"][0]["files"] == [str(legacy)]

    def test_expiration_option(self, tmp_path):
        nsc = (
            "<network-security-config><domain-config><domain>example.com</domain>"
            '<pin-set expiration="2999-01-01"><pin digest="SHA-256">a=</pin></pin-set>'
            "</domain-config></network-security-config>"
        )
        apk = create_test_apk(
            tmp_path / "pinned.apk",
            {
                "AndroidManifest.xml": manifest_xml(30, nsc="res/xml/nsc.xml"),
                "res/xml/nsc.xml": nsc,
            },
        )
        quiet = runner.invoke(app, ["scan", "apk", "--json", str(apk)])
        assert json.loads(quiet.stdout)["analyses"][0]["risks"] == []

        loud = runner.invoke(
            app, ["scan", "apk", "--json", "--expiration-days", "1000000", str(apk)]
        )
        risks = json.loads(loud.stdout)["analyses"][0]["risks"]
        assert [r["type"] for r in risks] == ["PinningExpiration"]


class TestMisc:
    def test_list_risks_json(self):
        result = runner.invoke(app, ["scan", "risks", "--json"])
        assert result.exit_code == 0
        kinds = json.loads(result.stdout)
        assert len(kinds) == 8
        assert kinds[0] == {
            "type": "NSCMissing",
            "description": "Android network security configuration is missing.",
        }

    def test_list_risks_table(self):
        result = runner.invoke(app, ["scan", "risks"])
        assert result.exit_code == 0
        assert "ProxyAnchors" in result.stdout

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"tlshunter {__version__}" in result.stdout
