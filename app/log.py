"""
Copyright BOOSTRY Co., Ltd.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.

You may obtain a copy of the License at
http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing,
software distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.

See the License for the specific language governing permissions and
limitations under the License.

SPDX-License-Identifier: Apache-2.0
"""

import logging
import sys
from typing import TextIO

from config import APP_ENV, LOG_LEVEL, NOTIFICATION_LOGFILE

logging.basicConfig(level=LOG_LEVEL)
LOG = logging.getLogger("bridge_relayer")
LOG.propagate = False
NOTIFICATION_LOG = logging.getLogger("bridge_relayer_notification")
NOTIFICATION_LOG.propagate = False

# web3 logs every RPC request
WEB3_REQUEST_LOGGERS = (
    "web3.manager.RequestManager",
    "web3.providers.AsyncHTTPProvider",
)
for logger_name in WEB3_REQUEST_LOGGERS:
    logging.getLogger(logger_name).propagate = False
    logging.getLogger(logger_name).addHandler(logging.NullHandler())

INFO_FORMAT = "[%(asctime)s] {}[%(process)d] [%(levelname)s] %(message)s"
DEBUG_FORMAT = "[%(asctime)s] {}[%(process)d] [%(levelname)s] %(message)s [in %(pathname)s:%(lineno)d]"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %z"
# [kind] [delivered channels] [failed channels] message
NOTIFICATION_FORMAT = "[%s] [%s] [%s] %s"


def build_handler(
    stream: TextIO, prefix: str = "", debug: bool = False
) -> logging.Handler:
    """Build a stream handler with the relayer log format

    :param stream: output stream
    :param prefix: prefix placed before the process ID (e.g. "[PROCESSOR-X] ")
    :param debug: add the source path and line number
    :return: Handler
    """
    log_format = DEBUG_FORMAT if debug else INFO_FORMAT
    handler = logging.StreamHandler(stream)
    formatter = logging.Formatter(log_format.format(prefix), TIMESTAMP_FORMAT)
    handler.setFormatter(formatter)
    return handler


if APP_ENV == "live":
    LOG.addHandler(build_handler(sys.stdout))
    NOTIFICATION_LOG.addHandler(
        build_handler(open(NOTIFICATION_LOGFILE, "a"), prefix="[NOTIFICATION-LOG] ")
    )

if APP_ENV == "dev" or APP_ENV == "local":
    LOG.addHandler(build_handler(sys.stdout, debug=True))
    # Same live's formatter
    NOTIFICATION_LOG.addHandler(
        build_handler(open(NOTIFICATION_LOGFILE, "a"), prefix="[NOTIFICATION-LOG] ")
    )


def get_logger():
    return LOG


def output_notification_log(
    kind: str, message: str, delivered: list[str], failed: list[str]
):
    """Record the result of a notification delivery"""
    NOTIFICATION_LOG.info(
        NOTIFICATION_FORMAT
        % (kind, ",".join(delivered) or "-", ",".join(failed) or "-", message)
    )
