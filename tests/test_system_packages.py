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
from provisioning.system_packages import apt_commands, install_system_packages
from provisioning.utils import BootstrapError

APT = ["env", "DEBIAN_FRONTEND=noninteractive", "apt-get"]


def test_apt_commands():
    assert apt_commands(BootstrapConfig(use_sudo=False)) == [
        APT + ["update", "-qq"],
        APT + ["upgrade", "-y", "-qq"],
        APT + ["install", "-y", "-qq", "curl", "git", "ufw"],
    ]


def test_apt_commands_with_sudo():
    with patch("provisioning.utils.os.geteuid", return_value=1000):
        commands = apt_commands(BootstrapConfig())
    assert all(cmd[0] == "sudo" for cmd in commands)


def test_upgrade_failure_stops_install():
    with patch(
        "provisioning.system_packages.run_command",
        side_effect=[0, BootstrapError("command failed with return code 100")],
    ) as mock_run:
        with pytest.raises(BootstrapError):
            install_system_packages(BootstrapConfig(use_sudo=False))
    assert mock_run.call_count == 2
