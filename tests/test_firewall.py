#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from provisioning.bootstrap_config import BootstrapConfig
from provisioning.firewall import build_allow_rules, configure_firewall
from provisioning.utils import BootstrapError


class TestAllowRules:
    def test_exactly_two_scoped_rules(self):
        rules = build_allow_rules(BootstrapConfig(use_sudo=False))
        assert rules == [
            [
                "ufw", "allow", "from", "192.168.0.0/16", "to", "any",
                "port", "11434", "proto", "tcp",
                "comment", "Ollama API - local network",
            ],
            [
                "ufw", "allow", "from", "192.168.0.0/16", "to", "any",
                "port", "8080", "proto", "tcp",
                "comment", "Open WebUI - local network",
            ],
        ]

    def test_cidr_is_passed_verbatim(self):
        rules = build_allow_rules(
            BootstrapConfig(allow_from="10.1.2.0/24", use_sudo=False)
        )
        assert all(rule[3] == "10.1.2.0/24" for rule in rules)


class TestConfigureFirewall:
    @pytest.mark.parametrize(
        "models", [["qwen2.5-coder:7b"], ["a:1", "b:2", "c:3", "d:4"]]
    )
    @pytest.mark.parametrize("accelerator_policy", ["enabled", "disabled", "auto"])
    @pytest.mark.parametrize("bundled_runtime", [False, True])
    def test_rules_then_enable(self, models, accelerator_policy, bundled_runtime):
        config = BootstrapConfig(
            models=models,
            accelerator_policy=accelerator_policy,
            bundled_runtime=bundled_runtime,
            use_sudo=False,
        )
        with patch("provisioning.firewall.check_command"), patch(
            "provisioning.firewall.run_command"
        ) as mock_run:
            configure_firewall(config)
        commands = [c.args[0] for c in mock_run.call_args_list]
        assert len(commands) == 3
        assert [c[:2] for c in commands[:2]] == [["ufw", "allow"], ["ufw", "allow"]]
        assert commands[2] == ["ufw", "--force", "enable"]

    def test_missing_ufw(self):
        with patch(
            "provisioning.firewall.check_command",
            side_effect=BootstrapError("ufw is required but not installed."),
        ), patch("provisioning.firewall.run_command") as mock_run:
            with pytest.raises(BootstrapError):
                configure_firewall(BootstrapConfig(use_sudo=False))
        mock_run.assert_not_called()

    @pytest.mark.parametrize(
        "ssh_connection,warnings", [(None, 1), ("10.0.0.2 50000 10.0.0.1 22", 2)]
    )
    def test_lockout_warnings(self, monkeypatch, ssh_connection, warnings):
        if ssh_connection:
            monkeypatch.setenv("SSH_CONNECTION", ssh_connection)
        else:
            monkeypatch.delenv("SSH_CONNECTION", raising=False)
        with patch("provisioning.firewall.check_command"), patch(
            "provisioning.firewall.run_command"
        ), patch("provisioning.firewall.logger") as mock_logger:
            configure_firewall(BootstrapConfig(use_sudo=False))
        assert mock_logger.warning.call_count == warnings
