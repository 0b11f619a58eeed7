"""Tests for the command-line entry point"""

import pytest

from unifi_exporter import cli


@pytest.fixture(autouse=True)
def _isolated(clean_env):
    return clean_env


class TestArguments:
    """Flags map onto configuration fields"""

    def test_flags_override_environment(self, clean_env):
        clean_env.setenv("UNIFI_CONTROLLER_URL", "https://from-env.local")
        clean_env.setenv("UNIFI_API_KEY", "env-key")
        args = cli.build_parser().parse_args([
            "--controller-url", "https://from-cli.local",
            "--site", "branch",
            "-p", "9100",
            "--verify-ssl", "false",
        ])

        config = cli.load_config(args)

        assert config.unifi_controller_url == "https://from-cli.local"
        assert config.unifi_api_key == "env-key"
        assert config.unifi_site == "branch"
        assert config.metrics_port == 9100
        assert config.verify_ssl is False

    def test_unset_flags_keep_defaults(self, clean_env):
        args = cli.build_parser().parse_args([
            "--controller-url", "https://unifi.local", "--username", "admin", "--password", "pw",
        ])
        config = cli.load_config(args)
        assert config.verify_ssl is True
        assert config.poll_interval == 30

    @pytest.mark.parametrize("argv,expected", [
        (["--verify-ssl", "false"], False),
        (["--verify-ssl", "true"], True),
        (["--verify-ssl"], True),
    ])
    def test_verify_ssl_takes_a_value(self, argv, expected):
        args = cli.build_parser().parse_args(
            ["--controller-url", "https://unifi.local", "--api-key", "k"] + argv
        )
        assert cli.load_config(args).verify_ssl is expected

    def test_yaml_config_flag(self, tmp_path):
        path = tmp_path / "exporter.yaml"
        path.write_text("unifi_controller_url: https://unifi.local\nunifi_api_key: yaml-key\n")
        args = cli.build_parser().parse_args(["--config", str(path), "--log-level", "debug"])

        config = cli.load_config(args)

        assert config.unifi_api_key == "yaml-key"
        assert config.log_level == "debug"


class TestStartup:
    """Invalid configuration aborts before anything starts"""

    def test_invalid_config_exits(self, capsys, monkeypatch):
        started = []
        monkeypatch.setattr(cli.uvicorn, "run", lambda *a, **kw: started.append(True))

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--controller-url", "ftp://unifi.local", "--api-key", "k"])

        assert exc_info.value.code == 1
        assert "Configuration error" in capsys.readouterr().err
        assert started == []

    def test_invalid_verify_ssl_value_exits(self, capsys, monkeypatch):
        monkeypatch.setattr(cli.uvicorn, "run", lambda *a, **kw: None)

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--controller-url", "https://unifi.local", "--api-key", "k",
                      "--verify-ssl", "maybe"])

        assert exc_info.value.code == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_valid_config_starts_server(self, monkeypatch):
        calls = []
        disabled = []
        monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kw: calls.append(kw))
        monkeypatch.setattr(cli, "disable_created_metrics", lambda: disabled.append(True))

        cli.main(["--controller-url", "https://unifi.local", "--api-key", "k", "-p", "9100"])

        assert calls == [{"host": "0.0.0.0", "port": 9100, "log_level": "info"}]
        assert disabled == [True]
