# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import logging
import time
from pathlib import Path

import requests

from provisioning.bootstrap_config import BootstrapConfig
from provisioning.utils import (
    BootstrapError,
    check_command,
    piped_installer,
    privileged,
    run_command,
    write_privileged_file,
)

logger = logging.getLogger("run_log")

SYSTEMD_DIR = Path("/etc/systemd/system")
RUNTIME_CLI = "ollama"
WILDCARD_HOSTS = ("0.0.0.0", "::", "")


def get_override_path(config: BootstrapConfig) -> Path:
    return SYSTEMD_DIR / f"{config.runtime_service}.service.d" / "override.conf"


def render_service_override(config: BootstrapConfig) -> str:
    lines = [
        "[Service]",
        f'Environment="OLLAMA_HOST={config.runtime_host}:{config.runtime_port}"',
        f'Environment="OLLAMA_ORIGINS={config.runtime_origins}"',
    ]
    if config.max_loaded_models:
        lines.append(
            f'Environment="OLLAMA_MAX_LOADED_MODELS={config.max_loaded_models}"'
        )
    return "\n".join(lines) + "\n"


def get_local_runtime_host(config: BootstrapConfig) -> str:
    """Address this host uses to reach the runtime, loopback when it binds all interfaces."""
    if config.runtime_host in WILDCARD_HOSTS:
        return "127.0.0.1"
    return config.runtime_host


def check_runtime_liveness(host: str, port: int, timeout: float = 5) -> bool:
    """Single GET against the runtime root, any 2xx means it is serving."""
    url = f"http://{host}:{port}/"
    try:
        response = requests.get(url, timeout=timeout)
        http_status = response.status_code
    except requests.exceptions.RequestException as e:
        logger.error(f"Liveness request to {url} failed: {e}")
        return False
    logger.info(f"Liveness HTTP status: {http_status}")
    return 200 <= http_status < 300


def install_runtime(config: BootstrapConfig):
    logger.info("Installing Ollama ...")
    check_command("curl")
    run_command(piped_installer(config.runtime_install_url), logger=logger, check=True)
    check_command(RUNTIME_CLI)


def configure_runtime_service(config: BootstrapConfig):
    override_path = get_override_path(config)
    logger.info(
        f"Configuring {config.runtime_service} to listen on "
        f"{config.runtime_host}:{config.runtime_port} ..."
    )
    write_privileged_file(
        override_path,
        render_service_override(config),
        logger=logger,
        use_sudo=config.use_sudo,
    )
    check_command("systemctl")
    run_command(
        privileged(["systemctl", "daemon-reload"], config.use_sudo),
        logger=logger,
        check=True,
    )
    run_command(
        privileged(["systemctl", "restart", config.runtime_service], config.use_sudo),
        logger=logger,
        check=True,
    )


def install_model_runtime(config: BootstrapConfig):
    install_runtime(config)
    configure_runtime_service(config)

    logger.info(f"Waiting {config.runtime_settle_seconds}s for the runtime to settle ...")
    time.sleep(config.runtime_settle_seconds)

    if not check_runtime_liveness(get_local_runtime_host(config), config.runtime_port):
        raise BootstrapError(
            f"Ollama is not responding on port {config.runtime_port}. "
            f"Check the service log: journalctl -u {config.runtime_service}"
        )
    logger.info(f"✅ Ollama is running on port {config.runtime_port}")
