# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import logging

from provisioning.bootstrap_config import BootstrapConfig
from provisioning.firewall import configure_firewall
from provisioning.host_detection import HostResolution, detect_host
from provisioning.model_fetch import fetch_models
from provisioning.model_runtime import install_model_runtime
from provisioning.run_web_ui import launch_web_ui
from provisioning.summary_report import report_summary
from provisioning.system_packages import install_system_packages

logger = logging.getLogger("run_log")


class HostSetupManager:
    """
    Provisions the host in a fixed order and stops at the first BootstrapError.

    Nothing is rolled back on failure. Every stage is safe to repeat, so the
    recovery path is to fix the cause and run the whole sequence again.
    """

    def __init__(self, config: BootstrapConfig, detect=detect_host):
        self.config = config
        self.detect = detect
        self.resolution = None

    def resolve_environment(self) -> HostResolution:
        # detection only reads the host, it must pass before anything is changed
        logger.info("Checking host architecture and accelerator ...")
        self.resolution = self.detect(self.config)
        logger.info(
            f"✅ architecture={self.resolution.architecture.value}, "
            f"gpu={'enabled' if self.resolution.use_accelerator else 'disabled'}"
        )
        return self.resolution

    def run_setup(self) -> HostResolution:
        resolution = self.resolve_environment()
        install_system_packages(self.config)
        install_model_runtime(self.config)
        fetch_models(self.config)
        launch_web_ui(self.config, resolution.use_accelerator)
        configure_firewall(self.config)
        report_summary(self.config, resolution)
        logger.info("✅ done run_setup")
        return resolution


def setup_host(config: BootstrapConfig) -> HostResolution:
    manager = HostSetupManager(config=config)
    return manager.run_setup()
