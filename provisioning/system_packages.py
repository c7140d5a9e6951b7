# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import logging

from provisioning.bootstrap_config import BootstrapConfig
from provisioning.utils import privileged, run_command

logger = logging.getLogger("run_log")

# sudo resets the environment, so the frontend is set on the command itself
APT_GET = ["env", "DEBIAN_FRONTEND=noninteractive", "apt-get"]
APT_FLAGS = ["-y", "-qq"]


def apt_commands(config: BootstrapConfig):
    # fmt: off
    return [
        privileged([*APT_GET, "update", "-qq"], config.use_sudo),
        privileged([*APT_GET, "upgrade", *APT_FLAGS], config.use_sudo),
        privileged([*APT_GET, "install", *APT_FLAGS, *config.prerequisite_packages], config.use_sudo),
    ]
    # fmt: on


def install_system_packages(config: BootstrapConfig):
    logger.info("Updating system packages ...")
    for cmd in apt_commands(config):
        run_command(cmd, logger=logger, check=True)
    logger.info(
        f"✅ System packages updated, installed: {' '.join(config.prerequisite_packages)}"
    )
