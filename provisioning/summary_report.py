# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import logging
from typing import List

from provisioning.bootstrap_config import BootstrapConfig
from provisioning.host_detection import HostResolution
from provisioning.utils import BootstrapError, capture_command

logger = logging.getLogger("run_log")

FALLBACK_IP = "127.0.0.1"
RULE = "─" * 62


def get_host_ip() -> str:
    """First address reported by `hostname -I`."""
    try:
        result = capture_command(["hostname", "-I"], logger=logger)
    except BootstrapError as e:
        logger.warning(f"Could not determine host IP: {e}")
        return FALLBACK_IP
    addresses = result.stdout.split()
    if not addresses:
        logger.warning(f"hostname -I reported no addresses, using {FALLBACK_IP}")
        return FALLBACK_IP
    return addresses[0]


def format_summary(
    config: BootstrapConfig, resolution: HostResolution, host_ip: str
) -> List[str]:
    runtime_url = f"http://{host_ip}:{config.runtime_port}"
    webui_url = f"http://{host_ip}:{config.webui_port}"
    accelerator = "enabled" if resolution.use_accelerator else "disabled"
    return [
        RULE,
        "Setup complete!",
        "",
        f"• Architecture   → {resolution.architecture.value}",
        f"• GPU            → {accelerator}",
        f"• Ollama API     → {runtime_url}",
        f"• Open WebUI     → {webui_url}     (open in browser)",
        f"• Models         → {', '.join(config.models)}",
        "",
        "VS Code / Continue extension config:",
        f"  apiBase: {runtime_url}",
        f"  model:   {config.primary_model}",
        "",
        "Test commands (from another machine on LAN):",
        f"  curl {runtime_url}                  # should say 'Ollama is running'",
        f"  curl {runtime_url}/api/tags         # list models",
        "",
        "Security notes:",
        f"  • Only {config.allow_from} is allowed (ufw rules)",
        "  • For HTTPS / authentication → add Caddy / Nginx reverse proxy later",
        "  • Change allow_from (config file, ALLOW_FROM or --allow-from) if your subnet is different",
        RULE,
        "Log out and back in (or reboot) so docker group membership takes effect.",
    ]


def report_summary(config: BootstrapConfig, resolution: HostResolution) -> str:
    host_ip = get_host_ip()
    resolution.host_ip = host_ip
    for line in format_summary(config, resolution, host_ip):
        logger.info(line)
    return host_ip
