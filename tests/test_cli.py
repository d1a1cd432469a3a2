"""Tests for the `evaldbt` CLI."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from click.testing import CliRunner

from evaldbt import __version__
from evaldbt.cli import main
from evaldbt.rules import NodeTest

if TYPE_CHECKING:
    from pathlib import Path


class TestCheckCommand:
    def test_porcelain_default_when_piped(self, manifest_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["check", "--path", str(manifest_path)])

        assert result.exit_code == 0, result.output
        assert "no-parents:orphan" in result.output
        assert "staging-on-downstream:stg_payments" in result.output

    def test_json_format(self, manifest_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main, ["check", "-p", str(manifest_path), "--format", "json", "-r", "no-parents"]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["report"] == {NodeTest.NO_PARENTS.description: ["orphan"]}

    def test_rich_format(self, manifest_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["check", "-p", str(manifest_path), "--format", "rich"])

        assert result.exit_code == 0, result.output
        assert "6 violations found" in result.output

    def test_case_insensitive_rules(self, manifest_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main, ["check", "-p", str(manifest_path), "-r", "NoParents", "-r", "UNUSED_SOURCES"]
        )

        assert result.exit_code == 0, result.output
        assert result.output.strip() == "no-parents:orphan"

    def test_strict_with_violations(self, manifest_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["check", "-p", str(manifest_path), "--strict"])

        assert result.exit_code == 1

    def test_strict_clean(self, manifest_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main, ["check", "-p", str(manifest_path), "--strict", "-r", "unused-sources"]
        )

        assert result.exit_code == 0
        assert result.output == ""

    def test_unknown_rule(self, manifest_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["check", "-p", str(manifest_path), "-r", "bogus"])

        assert result.exit_code == 2
        assert "unknown rule 'bogus'" in result.output

    def test_missing_manifest(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["check", "-p", str(tmp_path / "manifest.json")])

        assert result.exit_code == 2
        assert "Invalid manifest" in result.output

    def test_manifest_with_invalid_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "manifest.json"
        path.write_bytes(b'{"nodes": {"\xff": 1}}')

        runner = CliRunner()
        result = runner.invoke(main, ["check", "-p", str(path)])

        assert result.exit_code == 2
        assert "Error: Invalid manifest" in result.output

    def test_config_file(self, manifest_path: Path, tmp_path: Path) -> None:
        config = tmp_path / "evaldbt.yml"
        config.write_text("rules: [no-parents]\nformat: json\nstrict: true\n")

        runner = CliRunner()
        result = runner.invoke(
            main, ["check", "-p", str(manifest_path), "--config", str(config)]
        )

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["summary"]["rules"] == ["no-parents"]

    def test_flags_override_config(self, manifest_path: Path, tmp_path: Path) -> None:
        config = tmp_path / "evaldbt.yml"
        config.write_text("rules: [no-parents]\nformat: json\n")

        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "check",
                "-p",
                str(manifest_path),
                "--config",
                str(config),
                "--format",
                "porcelain",
                "-r",
                "staging-on-downstream",
            ],
        )

        assert result.exit_code == 0, result.output
        assert result.output.strip() == "staging-on-downstream:stg_payments"

    def test_invalid_config(self, manifest_path: Path, tmp_path: Path) -> None:
        config = tmp_path / "evaldbt.yml"
        config.write_text("format: html\n")

        runner = CliRunner()
        result = runner.invoke(
            main, ["check", "-p", str(manifest_path), "--config", str(config)]
        )

        assert result.exit_code == 2
        assert "invalid format" in result.output


class TestRulesCommand:
    def test_json(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["rules", "--json"])

        assert result.exit_code == 0, result.output
        catalog = json.loads(result.output)
        assert [entry["rule"] for entry in catalog] == [t.value for t in NodeTest]
        defaults = {entry["rule"] for entry in catalog if entry["default"]}
        assert "naming-conventions" not in defaults
        assert "unused-sources" in defaults

    def test_table(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["rules"])

        assert result.exit_code == 0, result.output
        assert "bad-directory" in result.output


class TestVersion:
    def test_version(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output
