# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import getpass
import logging
import os
import shlex
import shutil
import time

from provisioning.bootstrap_config import BootstrapConfig
from provisioning.model_runtime import get_local_runtime_host
from provisioning.utils import (
    capture_command,
    check_command,
    piped_installer,
    privileged,
    run_command,
)

logger = logging.getLogger("run_log")

DOCKER_GROUP = "docker"
WEBUI_CONTAINER_PORT = 8080
WEBUI_DATA_DIR = "/app/backend/data"
BUNDLED_RUNTIME_DIR = "/root/.ollama"


def get_invoking_user() -> str:
    # under sudo the login user is the one who needs the group
    return os.getenv("SUDO_USER") or getpass.getuser()


def install_docker(config: BootstrapConfig):
    if shutil.which("docker"):
        logger.info("Docker already installed, skipping installer.")
        return
    logger.info("Installing Docker (required for Open WebUI) ...")
    check_command("curl")
    run_command(
        piped_installer(config.docker_install_url, use_sudo=config.use_sudo),
        logger=logger,
        check=True,
    )
    check_command("docker")


def add_user_to_docker_group(config: BootstrapConfig, user=None):
    user = user or get_invoking_user()
    run_command(
        privileged(["usermod", "-aG", DOCKER_GROUP, user], config.use_sudo),
        logger=logger,
        check=True,
    )
    logger.info(
        f"✅ Added {user} to the {DOCKER_GROUP} group, log out and back in for it to take effect."
    )


def container_exists(config: BootstrapConfig) -> bool:
    name = config.webui_container_name
    # fmt: off
    result = capture_command(
        privileged([
            "docker", "ps", "-a",
            "--filter", f"name=^/{name}$",
            "--format", "{{.Names}}",
        ], config.use_sudo),
        logger=logger,
    )
    # fmt: on
    return name in result.stdout.split()


def remove_existing_container(config: BootstrapConfig):
    if not container_exists(config):
        return
    logger.info(f"Removing existing container: {config.webui_container_name}")
    run_command(
        privileged(["docker", "rm", "-f", config.webui_container_name], config.use_sudo),
        logger=logger,
        check=True,
    )


def build_webui_command(config: BootstrapConfig, use_accelerator: bool):
    # fmt: off
    docker_command = [
        "docker", "run", "-d",
        "--name", config.webui_container_name,
        "--volume", f"{config.webui_data_volume}:{WEBUI_DATA_DIR}",
        "--restart", "always",
    ]
    if config.bundled_runtime:
        docker_command.extend([
            "--publish", f"{config.webui_port}:{WEBUI_CONTAINER_PORT}",
            "--volume", f"{config.runtime_volume}:{BUNDLED_RUNTIME_DIR}",
        ])
    else:
        # host networking keeps runtime traffic on loopback, which ufw always accepts
        runtime_url = f"http://{get_local_runtime_host(config)}:{config.runtime_port}"
        docker_command.extend([
            "--network", "host",
            "--env", f"PORT={config.webui_port}",
            "--env", f"OLLAMA_BASE_URL={runtime_url}",
        ])
    # fmt: on
    if use_accelerator:
        docker_command.extend(["--gpus", "all"])

    # add docker image at end
    docker_command.append(config.webui_container_image)
    return privileged(docker_command, config.use_sudo)


def launch_web_ui(config: BootstrapConfig, use_accelerator: bool):
    install_docker(config)
    add_user_to_docker_group(config)
    remove_existing_container(config)

    docker_command = build_webui_command(config, use_accelerator)
    logger.info("Launching Open WebUI ...")
    logger.info(f"Docker run command:\n{shlex.join(docker_command)}\n")
    run_command(docker_command, logger=logger, check=True)

    logger.info(f"Waiting {config.webui_settle_seconds}s for the container to start ...")
    time.sleep(config.webui_settle_seconds)
    logger.info(
        f"✅ Open WebUI container {config.webui_container_name} started"
        f"{' with GPU passthrough' if use_accelerator else ''}."
    )
