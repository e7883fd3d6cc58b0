"""Tests for CLI module."""

import json
import shutil
import tempfile
from pathlib import Path

from click.testing import CliRunner

from brandlens.cli import cli

from conftest import build_package, filled_shape, slide_xml, text_shape, theme_xml


class TestCLI:
    """Tests for CLI functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()
        self.temp_dir = Path(tempfile.mkdtemp())
        self.store = self.temp_dir / "rules.json"

        self.deck = self.temp_dir / "deck.pptx"
        self.deck.write_bytes(build_package(
            theme=theme_xml('<a:accent1><a:srgbClr val="FF0000"/></a:accent1>'),
            slides=[slide_xml(filled_shape("FF0000", 8, 16) + text_shape("00FF00"))],
        ))

        self.notes = self.temp_dir / "notes.txt"
        self.notes.write_text("not a brand document")

    def teardown_method(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def invoke(self, *args):
        return self.runner.invoke(cli, ["--store", str(self.store), *args])

    def test_cli_version(self):
        result = self.runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_cli_help(self):
        result = self.runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "BrandLens" in result.output
        assert "analyze" in result.output
        assert "rules" in result.output

    def test_analyze_stores_rules(self):
        output = self.temp_dir / "result.json"

        result = self.invoke("analyze", str(self.deck), "--brand", "acme", "--output", str(output))

        assert result.exit_code == 0, result.output
        assert "Stored" in result.output
        stored = json.loads(self.store.read_text())
        assert stored["analysis_status"]["acme"] == "review"
        payload = json.loads(output.read_text())
        assert payload["rules"][0]["value"]["color"] == "#ff0000"

    def test_analyze_no_store(self):
        result = self.invoke("analyze", str(self.deck), "--no-store")

        assert result.exit_code == 0, result.output
        assert not self.store.exists()

    def test_analyze_without_supported_files(self):
        result = self.invoke("analyze", str(self.notes))

        assert result.exit_code == 1
        assert "No analyzable files" in result.output

    def test_analyze_reports_broken_file(self):
        broken = self.temp_dir / "broken.pptx"
        broken.write_bytes(b"garbage")

        result = self.invoke("analyze", str(self.deck), str(broken), "--no-store")

        assert result.exit_code == 0, result.output
        assert "broken.pptx" in result.output

    def test_analyze_writes_assets(self):
        deck = self.temp_dir / "logo-deck.pptx"
        deck.write_bytes(build_package(media={"logo.png": b"\x89PNG fake"}))
        assets_dir = self.temp_dir / "assets"

        result = self.invoke("analyze", str(deck), "--no-store", "--assets-dir", str(assets_dir))

        assert result.exit_code == 0, result.output
        assert (assets_dir / "logos" / "logo.png").read_bytes() == b"\x89PNG fake"

    def test_inspect(self):
        result = self.invoke("inspect", str(self.deck))

        assert result.exit_code == 0, result.output
        assert "accent1" in result.output
        assert "#ff0000" in result.output

    def test_rules_workflow(self):
        self.invoke("analyze", str(self.deck), "--brand", "acme")
        rules = json.loads(self.store.read_text())["rules"]["acme"]
        grid_id = [r["id"] for r in rules if r["category"] == "spacing"][0]

        show = self.invoke("rules", "show", "--brand", "acme")
        assert show.exit_code == 0, show.output
        assert "acme" in show.output

        confirm = self.invoke("rules", "confirm", grid_id, "--brand", "acme")
        assert confirm.exit_code == 0, confirm.output

        missing = self.invoke("rules", "confirm", "rule-missing", "--brand", "acme")
        assert missing.exit_code == 1

        delete = self.invoke("rules", "delete", grid_id, "--brand", "acme")
        assert delete.exit_code == 0
        again = self.invoke("rules", "delete", grid_id, "--brand", "acme")
        assert again.exit_code == 0

        exported = self.invoke("rules", "export", "--brand", "acme")
        assert exported.exit_code == 0
        assert grid_id not in [r["id"] for r in json.loads(exported.output)]

    def test_rules_add_import_and_clear(self):
        rule = {
            "category": "typography",
            "name": "Heading font",
            "description": "Montserrat for headings",
            "value": {"kind": "typography", "type": "heading", "font_family": "Montserrat"},
        }

        added = self.invoke("rules", "add", json.dumps(rule), "--brand", "acme")
        assert added.exit_code == 0, added.output

        export_file = self.temp_dir / "export.json"
        self.invoke("rules", "export", "--brand", "acme", "--output", str(export_file))
        imported = self.invoke("rules", "import", str(export_file), "--brand", "globex")
        assert imported.exit_code == 0, imported.output

        stored = json.loads(self.store.read_text())
        assert stored["rules"]["globex"][0]["value"]["font_family"] == "Montserrat"
        assert stored["analysis_status"]["globex"] == "complete"

        self.invoke("rules", "confirm-all", "--brand", "globex")
        cleared = self.invoke("rules", "clear", "--brand", "acme")
        assert cleared.exit_code == 0
        assert json.loads(self.store.read_text())["rules"]["acme"] == []

    def test_rules_add_invalid(self):
        result = self.invoke("rules", "add", '{"category": "color"}', "--brand", "acme")

        assert result.exit_code == 1
        assert "Invalid rule" in result.output
