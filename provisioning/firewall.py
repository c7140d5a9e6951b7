# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import logging
import os

from provisioning.bootstrap_config import BootstrapConfig
from provisioning.utils import check_command, privileged, run_command

logger = logging.getLogger("run_log")


def build_allow_rules(config: BootstrapConfig):
    """One TCP allow rule per service port, both scoped to config.allow_from."""
    services = [
        (config.runtime_port, "Ollama API - local network"),
        (config.webui_port, "Open WebUI - local network"),
    ]
    # fmt: off
    return [
        privileged([
            "ufw", "allow",
            "from", config.allow_from,
            "to", "any",
            "port", str(port),
            "proto", "tcp",
            "comment", comment,
        ], config.use_sudo)
        for port, comment in services
    ]
    # fmt: on


def build_enable_command(config: BootstrapConfig):
    return privileged(["ufw", "--force", "enable"], config.use_sudo)


def warn_remote_lockout():
    logger.warning(
        "⚠️  Enabling ufw now. Only the two service ports are added, any other inbound "
        "access (including SSH) is closed unless an existing rule allows it."
    )
    if os.getenv("SSH_CONNECTION"):
        logger.warning(
            "⚠️  This session is running over SSH. If port 22 is not already allowed, "
            "you will lose this connection. Run `sudo ufw allow OpenSSH` first if needed."
        )


def configure_firewall(config: BootstrapConfig):
    logger.info(f"Configuring ufw firewall (allow only {config.allow_from}) ...")
    check_command("ufw")
    warn_remote_lockout()
    for rule in build_allow_rules(config):
        run_command(rule, logger=logger, check=True)
    run_command(build_enable_command(config), logger=logger, check=True)
    logger.info("✅ Firewall enabled.")
