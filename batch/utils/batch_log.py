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

from app.log import build_handler
from config import APP_ENV, LOG_LEVEL

BASE_LOGGER = logging.getLogger("background")
BASE_LOGGER.setLevel(LOG_LEVEL)
BASE_LOGGER.propagate = False


def get_logger(process_name: str = None):
    """Get a logger for the batch process

    Each process gets a child of the "background" logger whose
    records are prefixed with the process name.

    :param process_name: process name (e.g. PROCESSOR-Bridge-Settlement)
    :return: Logger
    """
    log = BASE_LOGGER.getChild(process_name) if process_name else BASE_LOGGER
    if log.handlers:
        return log

    prefix = f"[{process_name}] " if process_name else ""
    log.addHandler(build_handler(sys.stdout, prefix=prefix, debug=APP_ENV != "live"))
    return log
