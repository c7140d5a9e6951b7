# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import logging
import platform
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, Optional

from provisioning.bootstrap_config import BootstrapConfig
from provisioning.host_types import AcceleratorPolicy, Architecture
from provisioning.utils import BootstrapError

logger = logging.getLogger("run_log")

ACCELERATOR_TOOL = "nvidia-smi"


@dataclass
class HostResolution:
    architecture: Architecture
    use_accelerator: bool
    host_ip: Optional[str] = None


def read_machine_architecture() -> str:
    return platform.machine()


def has_accelerator_tool() -> bool:
    return shutil.which(ACCELERATOR_TOOL) is not None


def has_accelerator_device(timeout=10) -> bool:
    """Look for an NVIDIA entry in the PCI device list."""
    if not shutil.which("lspci"):
        logger.debug("lspci not found, skipping PCI accelerator probe")
        return False
    try:
        result = subprocess.run(
            ["lspci"],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"lspci probe failed: {e}")
        return False
    if result.returncode != 0:
        return False
    return "nvidia" in result.stdout.lower()


def resolve_architecture(
    override: Optional[Architecture], machine: Optional[str]
) -> Architecture:
    if override is not None:
        return override
    try:
        return Architecture.from_machine(machine or "")
    except ValueError:
        raise BootstrapError(
            f"Unsupported architecture: {machine!r}. Supported: aarch64/arm64, x86_64."
        )


def resolve_accelerator(
    policy: AcceleratorPolicy, tool_found: bool, device_found: bool
) -> bool:
    if policy == AcceleratorPolicy.ENABLED:
        return True
    if policy == AcceleratorPolicy.DISABLED:
        return False
    return bool(tool_found or device_found)


def detect_host(
    config: BootstrapConfig,
    machine_probe: Callable[[], str] = read_machine_architecture,
    tool_probe: Callable[[], bool] = has_accelerator_tool,
    device_probe: Callable[[], bool] = has_accelerator_device,
) -> HostResolution:
    """
    Fill in architecture and accelerator decisions the config left unset.
    Only reads the host, probes run lazily and only when needed.
    """
    if config.architecture is None:
        machine = machine_probe()
        logger.info(f"Detected machine architecture: {machine}")
        architecture = resolve_architecture(None, machine)
    else:
        architecture = config.architecture
        logger.info(f"Using architecture override: {architecture.value}")

    if config.accelerator_policy == AcceleratorPolicy.AUTO:
        tool_found = tool_probe()
        device_found = False if tool_found else device_probe()
        use_accelerator = resolve_accelerator(
            config.accelerator_policy, tool_found, device_found
        )
        logger.info(
            f"Accelerator auto-detection: {ACCELERATOR_TOOL}={tool_found}, "
            f"pci_device={device_found} -> "
            f"{'enabled' if use_accelerator else 'disabled'}"
        )
    else:
        use_accelerator = resolve_accelerator(config.accelerator_policy, False, False)
        logger.info(f"Using accelerator override: {config.accelerator_policy.value}")

    return HostResolution(architecture=architecture, use_accelerator=use_accelerator)
