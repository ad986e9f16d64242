import pytest
import yaml
from click.testing import CliRunner

from netplan_dns import cli as cli_module
from netplan_dns.core.backups import BackupStore
from netplan_dns.core.dns_updater import DNSUpdater
from netplan_dns.core.interfaces import InterfaceDetector

from conftest import DEFAULT_LINKS, DHCP_CONFIG, FakeCommands


@pytest.fixture
def fake_commands():
    return FakeCommands()


@pytest.fixture
def invoke(monkeypatch, ctx, fake_commands):
    monkeypatch.setattr(cli_module, "init_logging", lambda *args, **kwargs: None)

    def build_updater(context):
        context = context.model_copy(update={
            "sysfs_net_dir": ctx.sysfs_net_dir,
            "resolv_conf": ctx.resolv_conf,
            "verify_domains": [],
        })
        return DNSUpdater(
            context,
            commands=fake_commands,
            detector=InterfaceDetector(context, lister=lambda: DEFAULT_LINKS),
            backups=BackupStore(context.backup_dir),
            chooser=cli_module.prompt_choice if context.interactive else None,
        )

    monkeypatch.setattr(cli_module, "build_updater", build_updater)
    dirs = ["--netplan-dir", str(ctx.netplan_dir), "--backup-dir", str(ctx.backup_dir)]

    def _invoke(*args, input=None):
        return CliRunner().invoke(cli_module.cli, dirs + list(args), input=input)

    return _invoke


def nameservers(path, interface="eth0"):
    document = yaml.safe_load(path.read_text())
    return document["network"]["ethernets"][interface]["nameservers"]["addresses"]


def test_providers_lists_presets(invoke):
    result = invoke("providers")

    assert result.exit_code == 0
    for name in ("Cloudflare", "Google", "Quad9", "OpenDNS", "AdGuard", "NextDNS", "Custom"):
        assert name in result.output


def test_set_non_interactive(invoke, config_file):
    result = invoke("--non-interactive", "set", "cloudflare", "--no-verify")

    assert result.exit_code == 0, result.output
    assert "DNS configuration completed successfully" in result.output
    assert nameservers(config_file) == ["1.1.1.1", "1.0.0.1"]


def test_set_asks_for_confirmation(invoke, config_file):
    result = invoke("set", "2", "--no-verify", input="y\n")

    assert result.exit_code == 0, result.output
    assert "Apply this configuration?" in result.output
    assert nameservers(config_file) == ["8.8.8.8", "8.8.4.4"]


def test_set_cancelled(invoke, config_file, fake_commands):
    result = invoke("set", "google", input="n\n")

    assert result.exit_code == 0
    assert "Configuration cancelled" in result.output
    assert config_file.read_text() == DHCP_CONFIG
    assert fake_commands.calls == []


def test_set_custom_prompts_for_servers(invoke, config_file):
    result = invoke("set", "custom", "--no-verify", input="999.1.1.1\n10.0.0.53\n\ny\n")

    assert result.exit_code == 0, result.output
    assert "Invalid IP address: 999.1.1.1" in result.output
    assert nameservers(config_file) == ["10.0.0.53"]


def test_set_custom_from_options(invoke, config_file):
    result = invoke("--non-interactive", "set", "custom", "--custom", "10.0.0.53",
                    "--custom", "10.0.0.54", "--no-verify")

    assert result.exit_code == 0, result.output
    assert nameservers(config_file) == ["10.0.0.53", "10.0.0.54"]


def test_invalid_custom_address_exit_code(invoke, config_file):
    result = invoke("--non-interactive", "set", "custom", "--custom", "300.1.1.1")

    assert result.exit_code == 3
    assert "InvalidAddress" in result.output


def test_unknown_provider_exit_code(invoke, config_file):
    result = invoke("--non-interactive", "set", "bogus")

    assert result.exit_code == 3
    assert "UnknownProvider" in result.output


def test_ambiguous_configuration_exit_code(invoke, ctx, config_file):
    (ctx.netplan_dir / "99-extra.yaml").write_text("network: {version: 2}\n")

    result = invoke("--non-interactive", "set", "cloudflare")

    assert result.exit_code == 2
    assert "AmbiguousConfiguration" in result.output


def test_apply_failure_reports_rollback(invoke, config_file, fake_commands):
    fake_commands.fail_apply = 1

    result = invoke("--non-interactive", "set", "cloudflare", "--no-verify")

    assert result.exit_code == 6
    assert "ApplyFailed" in result.output
    assert "Previous configuration was restored" in result.output
    assert config_file.read_text() == DHCP_CONFIG


def test_failed_rollback_is_loud(invoke, config_file, fake_commands):
    fake_commands.fail_apply = -1

    result = invoke("--non-interactive", "set", "cloudflare", "--no-verify")

    assert result.exit_code == 6
    assert "ROLLBACK FAILED" in result.output


def test_restore_without_backups(invoke, config_file):
    result = invoke("--non-interactive", "restore")

    assert result.exit_code == 7
    assert "BackupNotFound" in result.output


def test_restore_after_change(invoke, config_file):
    invoke("--non-interactive", "set", "quad9", "--no-verify")

    result = invoke("--non-interactive", "restore", "latest")

    assert result.exit_code == 0, result.output
    assert config_file.read_text() == DHCP_CONFIG


def test_backups_listing(invoke, config_file):
    assert "No backups found" in invoke("backups").output

    invoke("--non-interactive", "set", "quad9", "--no-verify")
    result = invoke("backups")

    assert result.exit_code == 0
    assert "latest" in result.output


def test_show(invoke, config_file):
    result = invoke("show")

    assert result.exit_code == 0
    assert "eth0" in result.output
    assert "dhcp4: true" in result.output


def test_menu_show_current(invoke, config_file):
    result = invoke(input="8\n")

    assert result.exit_code == 0, result.output
    assert "Select DNS provider" in result.output
    assert "Netplan configuration" in result.output


def test_menu_provider_choice(invoke, config_file):
    result = invoke(input="5\ny\n")

    assert result.exit_code == 0, result.output
    assert nameservers(config_file) == ["94.140.14.14", "94.140.15.15"]


def test_permission_error_is_reported_cleanly(invoke, config_file, monkeypatch):
    def unwritable(self, source):
        raise PermissionError(13, "Permission denied", "backups")

    monkeypatch.setattr(BackupStore, "create", unwritable)

    result = invoke("--non-interactive", "set", "google", "--no-verify")

    assert result.exit_code == 1
    assert "are you root?" in result.output
    assert not isinstance(result.exception, PermissionError)
    assert config_file.read_text() == DHCP_CONFIG


def test_show_lists_physical_interfaces(invoke, fake_commands, config_file):
    fake_commands.status = "Link 2 (eth0)"

    result = invoke("show")

    assert result.exit_code == 0, result.output
    assert "Physical interfaces" in result.output
    assert "eth0 (ethernet, UP)" in result.output
    assert "Link 2 (eth0)" in result.output
