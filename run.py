#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import argparse
import logging
import sys
from datetime import datetime

from provisioning.bootstrap_config import (
    apply_cli_overrides,
    format_config_summary,
    load_bootstrap_config,
)
from provisioning.log_setup import setup_run_logger
from provisioning.setup_host import setup_host
from provisioning.utils import (
    BootstrapError,
    get_default_log_root,
    get_run_id,
)

logger = logging.getLogger("run_log")

EPILOG = """
Environment variables:
  MODEL        model(s) to pull, comma-separated (default: qwen2.5-coder:7b)
  ALLOW_FROM   CIDR allowed through the firewall (default: 192.168.0.0/16)
  BOOTSTRAP_LOG_ROOT  directory for run logs (default: ./bootstrap_logs)

Without --arm/--x86 the architecture is detected from the host.
Without --gpu/--no-gpu the GPU is detected via nvidia-smi or lspci.

WARNING: the firewall is enabled at the end of the run. If you are connected
over SSH make sure port 22 is already allowed.
"""


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        description="Install Ollama, pull models, start Open WebUI and restrict access to the local network.",
        epilog=EPILOG,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "--arm",
        dest="architecture",
        action="store_const",
        const="arm64",
        help="Target 64-bit ARM (aarch64)",
    )
    parser.add_argument(
        "--x86",
        dest="architecture",
        action="store_const",
        const="x86_64",
        help="Target x86_64",
    )
    parser.add_argument(
        "--gpu",
        dest="accelerator",
        action="store_const",
        const="enabled",
        help="Force NVIDIA GPU passthrough for Open WebUI",
    )
    parser.add_argument(
        "--no-gpu",
        dest="accelerator",
        action="store_const",
        const="disabled",
        help="Disable GPU passthrough",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="YAML config file, keys are BootstrapConfig field names",
    )
    parser.add_argument(
        "--model",
        action="append",
        help="Model to pull, repeat for several (overrides MODEL and the config file)",
    )
    parser.add_argument(
        "--allow-from",
        type=str,
        help="CIDR allowed through the firewall (overrides ALLOW_FROM and the config file)",
    )
    return parser.parse_args(argv)


def build_config(args):
    config = load_bootstrap_config(args.config)
    return apply_cli_overrides(config, args)


def main(argv=None):
    args = parse_arguments(argv)

    run_timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    run_id = get_run_id(timestamp=run_timestamp, architecture=args.architecture)
    run_logs_path = get_default_log_root() / "run_logs"
    run_log_path = run_logs_path / f"run_{run_id}.log"
    setup_run_logger(logger=logger, run_id=run_id, run_log_path=run_log_path)

    try:
        config = build_config(args)
        logger.info(format_config_summary(config))
        setup_host(config)
    except (BootstrapError, ValueError) as e:
        logger.error(f"⛔ {e}")
        logger.error(f"Run log saved at: {run_log_path}")
        return 1

    logger.info(f"This log file is saved on local machine at: {run_log_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
