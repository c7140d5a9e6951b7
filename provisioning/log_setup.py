# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import logging
import sys

from provisioning.utils import ensure_readwriteable_dir

LOG_FORMAT = "%(asctime)s - %(filename)s:%(lineno)d - %(levelname)s: %(message)s"


class ConditionalFormatter(logging.Formatter):
    """
    This formatter enables raw logging for messages that are consumed and re-logged
    from a child process. Output of package managers and installers is streamed
    line by line into the run logger and should appear exactly as the tool printed it.
    """

    def format(self, record):
        if getattr(record, "raw", False):
            return record.getMessage()
        else:
            return super().format(record)


class _BelowLevelFilter(logging.Filter):
    def __init__(self, level):
        super().__init__()
        self.level = level

    def filter(self, record):
        return record.levelno < self.level


def setup_run_logger(logger, run_id, run_log_path, log_level=logging.DEBUG):
    """
    This logger is for the run.py process.

    Progress goes to stdout, errors go to stderr, and the log file keeps everything.
    """
    logger.setLevel(log_level)

    # Disable propagation to prevent duplicate logs
    logger.propagate = False
    # prevent duplicate handlers
    if logger.handlers:
        return logger

    formatter = ConditionalFormatter(LOG_FORMAT)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(logging.INFO)
    stdout_handler.addFilter(_BelowLevelFilter(logging.ERROR))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR)

    for handler in (stdout_handler, stderr_handler):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # directory messages go to the console handlers
    ensure_readwriteable_dir(run_log_path.parent, logger=logger)
    file_handler = logging.FileHandler(run_log_path)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logger.debug(f"run_id={run_id}")
    return logger
