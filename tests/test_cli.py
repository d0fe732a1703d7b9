"""
CLI interface tests for style-versioning.
Tests the command-line interface and main entry points.
"""

import json
from pathlib import Path

from click.testing import CliRunner

from style_versioning.cli_config import ComprehensiveConfig, create_sample_config, set_config
from style_versioning.main import __version__, cli


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self):
        """Test CLI help message."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "style-versioning" in result.output.lower()

    def test_cli_version(self):
        """Test CLI version display."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_info_command(self):
        """Test the info command."""
        runner = CliRunner()
        result = runner.invoke(cli, ["info"])

        assert result.exit_code == 0
        assert "Manifest Files" in result.output
        assert "check.fail_on_empty" in result.output

    def test_no_command_shows_help(self):
        """Test running without a command prints the help."""
        runner = CliRunner()
        result = runner.invoke(cli, [])

        assert result.exit_code == 0
        assert "check" in result.output


class TestCheckCommand:
    """Test the check command."""

    def test_check_satisfied(self, satisfied_yaml):
        """Test a manifest whose dependencies are satisfied."""
        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(satisfied_yaml)])

        assert result.exit_code == 0
        assert "dependencies satisfied" in result.output

    def test_check_mismatch(self, mismatch_yaml):
        """Test a version mismatch fails the check."""
        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(mismatch_yaml)])

        assert result.exit_code == 1
        assert (
            'Module "grid" requires "core" v3.0.0. But "core" v2.0.0 included.'
            in result.output
        )

    def test_check_empty_manifest_passes_by_default(self, write_manifest):
        """Test a manifest without modules passes unless configured otherwise."""
        path = write_manifest("empty.yaml", "modules: []\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == 0

    def test_check_fail_on_empty(self, write_manifest):
        """Test check.fail_on_empty rejects a manifest without modules."""
        config = ComprehensiveConfig()
        config.check.fail_on_empty = True
        config.logging.log_level = "CRITICAL"
        set_config(config)

        path = write_manifest("empty.yaml", "modules: []\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == 1
        assert "No modules were declared" in result.output

    def test_check_missing_quiet(self, missing_yaml):
        """Test quiet mode prints only the diagnostic."""
        runner = CliRunner()
        result = runner.invoke(cli, ["check", "--quiet", str(missing_yaml)])

        assert result.exit_code == 1
        assert result.output.strip() == (
            'Module "grid" requires "buttons" v1.0.0. '
            "But the dependency is missing entirely"
        )

    def test_check_quiet_success_is_silent(self, satisfied_yaml):
        """Test quiet mode prints nothing for a clean build."""
        runner = CliRunner()
        result = runner.invoke(cli, ["check", "-q", str(satisfied_yaml)])

        assert result.exit_code == 0
        assert result.output.strip() == ""

    def test_check_verbose(self, satisfied_yaml):
        """Test verbose mode lists the registered modules."""
        runner = CliRunner()
        result = runner.invoke(cli, ["check", "--verbose", str(satisfied_yaml)])

        assert result.exit_code == 0
        assert "Registered Modules" in result.output
        assert "grid" in result.output

    def test_check_spans_files(self, write_manifest):
        """Test modules from several files are checked together."""
        core = write_manifest("core.yaml", "modules:\n  - name: core\n    version: 1.4.0\n")
        grid = write_manifest(
            "grid.json",
            '{"modules": [{"name": "grid", "version": "1.0.0", '
            '"dependencies": {"core": "1.2.0"}}]}',
        )

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(grid), str(core)])

        assert result.exit_code == 0

    def test_check_removal(self, write_manifest):
        """Test edges listed under remove are not checked."""
        path = write_manifest(
            "removal.yaml",
            "modules:\n  - name: grid\n    version: 1.0.0\n"
            "    dependencies:\n      buttons: 1.0.0\n"
            "remove:\n  - buttons\n",
        )

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == 0

    def test_check_json_output(self, mismatch_yaml):
        """Test JSON output of a failed check."""
        runner = CliRunner()
        result = runner.invoke(
            cli, ["check", "--output-format", "json", str(mismatch_yaml)]
        )

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["success"] is False
        assert data["error"]["kind"] == "mismatch"
        assert data["error"]["found_version"] == "2.0.0"
        assert [module["name"] for module in data["modules"]] == ["core", "grid"]
        assert data["modules"][1]["dependencies"] == [
            {"name": "core", "version": "3.0.0"}
        ]

    def test_check_json_success(self, satisfied_yaml):
        """Test JSON output of a clean check."""
        runner = CliRunner()
        result = runner.invoke(
            cli, ["check", "--output-format", "json", str(satisfied_yaml)]
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["success"] is True
        assert data["error"] is None
        assert data["files"] == [str(satisfied_yaml)]

    def test_check_registration_error(self, write_manifest):
        """Test an invalid declaration fails the check."""
        path = write_manifest(
            "invalid.yaml", 'modules:\n  - name: core\n    version: "1.0"\n'
        )

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == 1
        assert "The version '1.0' is not a valid semver version." in result.output

    def test_check_registration_error_json(self, write_manifest):
        """Test registration errors in JSON output."""
        path = write_manifest("invalid.yaml", "modules:\n  - name: 12\n    version: 1.0.0\n")

        runner = CliRunner()
        result = runner.invoke(cli, ["check", "--output-format", "json", str(path)])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["error"] == {
            "kind": "registration",
            "message": "The first attribute of register() needs to be a string. "
            "It's currently a number",
        }

    def test_check_malformed_manifest(self, write_manifest):
        """Test an unreadable manifest is reported as a CLI error."""
        path = write_manifest("broken.yaml", "modules: [\n")

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == 1
        assert "Failed to read manifest" in result.output

    def test_check_nonexistent_file(self):
        """Test checking a non-existent file."""
        runner = CliRunner()
        result = runner.invoke(cli, ["check", "nonexistent.yaml"])

        assert result.exit_code == 2

    def test_check_requires_files(self):
        """Test at least one file is required."""
        runner = CliRunner()
        result = runner.invoke(cli, ["check"])

        assert result.exit_code == 2


class TestTestCommand:
    """Test the fixture runner command."""

    def test_all_sample_fixtures_pass(self, fixtures_dir):
        """Test the sample fixtures through the CLI."""
        runner = CliRunner()
        result = runner.invoke(cli, ["test", "--pattern", str(fixtures_dir / "*")])

        assert result.exit_code == 0
        assert "passed" in result.output
        assert "0 failed" in result.output

    def test_failing_fixture(self, write_manifest):
        """Test a failing fixture is reported with both diagnostics."""
        path = write_manifest("failing.yaml", "# expected: something else\nmodules: []\n")

        runner = CliRunner()
        result = runner.invoke(cli, ["test", str(path)])

        assert result.exit_code == 1
        assert "failed" in result.output
        assert "Error was:" in result.output
        assert "Should've:" in result.output
        assert "something else" in result.output

    def test_quiet_reports_failures_only(self, fixtures_dir, write_manifest):
        """Test quiet mode lists only failing fixtures."""
        failing = write_manifest("failing.yaml", "# expected: something\nmodules: []\n")

        runner = CliRunner()
        result = runner.invoke(
            cli, ["test", "--quiet", str(fixtures_dir / "satisfied.yaml"), str(failing)]
        )

        assert result.exit_code == 1
        assert "failing.yaml failed" in result.output
        assert "satisfied.yaml" not in result.output

    def test_no_fixtures_found(self, temp_dir):
        """Test an empty fixture set is an error."""
        runner = CliRunner()
        result = runner.invoke(cli, ["test", "--pattern", str(temp_dir / "*.yaml")])

        assert result.exit_code == 1
        assert "No fixtures found" in result.output


class TestSemverCommands:
    """Test the semver utility commands."""

    def test_clean(self):
        """Test cleaning a version."""
        runner = CliRunner()
        result = runner.invoke(cli, ["semver", "clean", "=v1.2.3"])

        assert result.exit_code == 0
        assert result.output.strip() == "1.2.3"

    def test_valid(self):
        """Test validating a good and a bad version."""
        runner = CliRunner()

        good = runner.invoke(cli, ["semver", "valid", "1.2.3"])
        bad = runner.invoke(cli, ["semver", "valid", "1.2"])

        assert good.exit_code == 0
        assert good.output.strip() == "true"
        assert bad.exit_code == 1
        assert bad.output.strip() == "false"

    def test_inc(self):
        """Test incrementing with a prerelease name."""
        runner = CliRunner()
        result = runner.invoke(cli, ["semver", "inc", "1.2.3", "premajor", "--preid", "rc"])

        assert result.exit_code == 0
        assert result.output.strip() == "2.0.0-rc.0"

    def test_inc_unknown_release(self):
        """Test an unknown release kind fails."""
        runner = CliRunner()
        result = runner.invoke(cli, ["semver", "inc", "1.2.3", "huge"])

        assert result.exit_code == 1
        assert "Cannot increment" in result.output

    def test_cmp(self):
        """Test comparing versions."""
        runner = CliRunner()

        true_result = runner.invoke(cli, ["semver", "cmp", "1.2.3", ">=", "1.0.0"])
        false_result = runner.invoke(cli, ["semver", "cmp", "1.2.3", "<", "1.0.0"])

        assert true_result.exit_code == 0
        assert true_result.output.strip() == "true"
        assert false_result.exit_code == 1
        assert false_result.output.strip() == "false"

    def test_cmp_invalid_comparator(self):
        """Test an unknown comparator fails."""
        runner = CliRunner()
        result = runner.invoke(cli, ["semver", "cmp", "1.2.3", "~", "1.0.0"])

        assert result.exit_code == 1
        assert "not supported" in result.output

    def test_cmp_invalid_version(self):
        """Test an invalid version fails."""
        runner = CliRunner()
        result = runner.invoke(cli, ["semver", "cmp", "1.2", "==", "1.2.0"])

        assert result.exit_code == 1
        assert "not a valid semver version" in result.output


class TestConfigCommands:
    """Test configuration management commands."""

    def test_config_init(self):
        """Test creating a sample config file."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["config", "init"])

            assert result.exit_code == 0
            assert Path(".style-versioning.json").exists()
            data = json.loads(Path(".style-versioning.json").read_text())
            assert data["semver"]["default_prerelease_name"] == "beta"

    def test_config_init_existing(self):
        """Test an existing config file is not overwritten."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("custom.json").write_text("{}")
            result = runner.invoke(cli, ["config", "init", "--path", "custom.json"])

            assert result.exit_code == 0
            assert "already exists" in result.output
            assert Path("custom.json").read_text() == "{}"

    def test_config_show(self):
        """Test showing the configuration."""
        runner = CliRunner()
        result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0
        assert "Default Prerelease Name: beta" in result.output

    def test_config_validate_valid(self, temp_dir):
        """Test validating the sample configuration."""
        config_file = temp_dir / "config.json"
        config_file.write_text(create_sample_config())

        runner = CliRunner()
        result = runner.invoke(cli, ["config", "validate", str(config_file)])

        assert result.exit_code == 0
        assert "is valid" in result.output

    def test_config_validate_invalid(self, temp_dir):
        """Test validating a configuration with a bad value."""
        config_file = temp_dir / "config.yaml"
        config_file.write_text("semver:\n  default_prerelease_name: rc-1\n")

        runner = CliRunner()
        result = runner.invoke(cli, ["config", "validate", str(config_file)])

        assert result.exit_code == 1
        assert "must not contain '-'" in result.output
