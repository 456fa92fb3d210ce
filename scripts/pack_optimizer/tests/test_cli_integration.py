"""
Integration tests for the pack optimizer CLI.
Tests command-line interface functionality and argument parsing.
"""

import os
import json
import shutil
import tempfile
import zipfile
from pathlib import Path

import toml
from typer.testing import CliRunner

from .. import __version__
from ..cli import app


class TestCLIIntegration:
    """Test CLI integration and command functionality."""

    def setup_method(self):
        """Set up a pack and an output directory in a scratch working directory."""
        self.runner = CliRunner()
        self.temp_dir = tempfile.mkdtemp()
        self.original_cwd = os.getcwd()
        os.chdir(self.temp_dir)

        os.makedirs("pack/assets/minecraft/models", exist_ok=True)
        os.makedirs("dist", exist_ok=True)
        Path("pack/pack.mcmeta").write_text('{\n  "pack": {"pack_format": 15}\n}\n')
        Path("pack/assets/minecraft/models/stone.json").write_text('{ "parent": "block/cube_all" }')
        Path("pack/README.md").write_text("# readme")

    def teardown_method(self):
        """Clean up test environment after each test."""
        os.chdir(self.original_cwd)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_cli_help(self):
        result = self.runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "run" in result.output
        assert "config" in result.output

    def test_run_no_confirm(self):
        result = self.runner.invoke(app, ["run", "pack", "dist", "--no-confirm"])

        assert result.exit_code == 0
        assert "Exiting..." in result.output
        assert "Exiting Program..." not in result.output
        assert Path("dist/pack.mcmeta").read_text() == '{"pack":{"pack_format":15}}'
        assert Path("dist/assets/minecraft/models/stone.json").exists()
        assert not Path("dist/README.md").exists()

    def test_run_with_zip(self):
        result = self.runner.invoke(app, ["run", "pack", "dist", "--zip", "pack.zip", "--no-confirm"])

        assert result.exit_code == 0
        assert "SHA1 hash" in result.output
        assert sorted(os.listdir("dist")) == ["pack.zip"]
        with zipfile.ZipFile("dist/pack.zip") as archive:
            assert "pack.mcmeta" in archive.namelist()

    def test_run_archive_flag_uses_default_name(self):
        result = self.runner.invoke(app, ["run", "pack", "dist", "--archive", "--no-confirm"])

        assert result.exit_code == 0
        assert os.listdir("dist") == ["output.zip"]
        with zipfile.ZipFile("dist/output.zip") as archive:
            assert "pack.mcmeta" in archive.namelist()

    def test_run_zip_name_wins_over_archive_flag(self):
        result = self.runner.invoke(app, ["run", "pack", "dist", "-a", "-z", "named.zip", "--no-confirm"])

        assert result.exit_code == 0
        assert os.listdir("dist") == ["named.zip"]

    def test_run_interactive_confirm(self):
        # clone, four stages, cleanup
        result = self.runner.invoke(app, ["run", "pack", "dist"], input="y\n" * 6)

        assert result.exit_code == 0
        assert "Exiting..." in result.output
        assert Path("dist/pack.mcmeta").exists()

    def test_run_interactive_reprompts_on_unknown_answer(self):
        result = self.runner.invoke(app, ["run", "pack", "dist"], input="maybe\n" + "yes\n" * 6)

        assert result.exit_code == 0
        assert Path("dist/pack.mcmeta").exists()

    def test_run_declined(self):
        result = self.runner.invoke(app, ["run", "pack", "dist"], input="n\n")

        assert result.exit_code == 0
        assert "Exiting Program..." in result.output
        assert "User did not confirm" in result.output
        assert os.listdir("dist") == []

    def test_run_closed_input_counts_as_decline(self):
        result = self.runner.invoke(app, ["run", "pack", "dist"], input="")

        assert result.exit_code == 0
        assert "User did not confirm" in result.output

    def test_run_missing_input(self):
        result = self.runner.invoke(app, ["run", "missing", "dist", "--no-confirm"])

        assert result.exit_code == 0
        assert "Exiting Program..." in result.output
        assert "Input directory does not exist" in result.output

    def test_run_output_inside_input(self):
        os.makedirs("pack/out")
        result = self.runner.invoke(app, ["run", "pack", "pack/out", "--no-confirm"])

        assert result.exit_code == 0
        assert "Exiting Program..." in result.output
        assert os.listdir("pack/out") == []

    def test_run_invalid_zip_name(self):
        result = self.runner.invoke(app, ["run", "pack", "dist", "--zip", "nested/pack.zip", "--no-confirm"])

        assert result.exit_code == 0
        assert "Exiting Program..." in result.output
        assert os.listdir("dist") == []

    def test_run_malformed_json(self):
        Path("pack/broken.json").write_text("{ nope")
        result = self.runner.invoke(app, ["run", "pack", "dist", "--no-confirm"])

        assert result.exit_code == 0
        assert "Exiting Program..." in result.output
        assert "broken.json" in result.output
        assert os.listdir("dist") == []

    def test_run_uses_config_file(self):
        Path("settings.json").write_text(json.dumps({
            "paths": {"input_path": "pack", "output_path": "dist"},
            "output": {"no_confirm": True},
        }))

        result = self.runner.invoke(app, ["run", "--config", "settings.json"])

        assert result.exit_code == 0
        assert "Exiting..." in result.output
        assert Path("dist/pack.mcmeta").exists()

    def test_run_malformed_discovered_toml(self):
        Path("pack_optimizer.toml").write_text("[paths\ninput_path = ")

        result = self.runner.invoke(app, ["run", "pack", "dist", "--no-confirm"])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Invalid configuration file" in result.output
        assert os.listdir("dist") == []

    def test_run_malformed_discovered_json(self):
        Path("pack_optimizer.json").write_text("{ nope")

        result = self.runner.invoke(app, ["run", "pack", "dist", "--no-confirm"])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Invalid configuration file" in result.output

    def test_run_uses_discovered_config(self):
        Path("pack_optimizer.toml").write_text('[paths]\ninput_path = "pack"\noutput_path = "dist"\n')

        result = self.runner.invoke(app, ["run", "--no-confirm"])

        assert result.exit_code == 0
        assert Path("dist/pack.mcmeta").exists()

    def test_config_env_vars(self):
        result = self.runner.invoke(app, ["config", "--env-vars"])
        assert result.exit_code == 0
        assert "Environment Variables" in result.output

    def test_config_init_show_validate(self):
        result = self.runner.invoke(app, ["config", "--init", "custom.toml"])
        assert result.exit_code == 0
        assert Path("custom.toml").exists()
        assert "processing" in toml.load("custom.toml")

        result = self.runner.invoke(app, ["config", "--show", "--config", "custom.toml"])
        assert result.exit_code == 0
        assert "Pack Optimizer Configuration" in result.output

        result = self.runner.invoke(app, ["config", "--validate", "--config", "custom.toml"])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_config_init_refuses_overwrite(self):
        Path("custom.toml").write_text("")
        result = self.runner.invoke(app, ["config", "--init", "custom.toml"])
        assert result.exit_code == 1
        assert Path("custom.toml").read_text() == ""

    def test_config_validate_reports_errors(self):
        Path("bad.toml").write_text("[processing]\nmax_workers = 0\n")
        result = self.runner.invoke(app, ["config", "--validate", "--config", "bad.toml"])
        assert result.exit_code == 1
        assert "max_workers" in result.output

    def test_config_missing_file(self):
        result = self.runner.invoke(app, ["config", "--show", "--config", "missing.toml"])
        assert result.exit_code == 1

    def test_version(self):
        result = self.runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert f"Version: {__version__}" in result.output
