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

import asyncio

from aiohttp import ClientError
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from app.exceptions import ServiceUnavailableError

# JSON-RPC error codes that indicate a temporary condition of the provider
# - -32005: limit exceeded
# - 429: too many requests
RETRYABLE_RPC_ERROR_CODES = frozenset({-32005, 429})

# Lowercased message fragments of temporary failures
RETRYABLE_MESSAGE_PATTERNS = (
    "network error",
    "timeout",
    "timed out",
    "nonce too low",
    "replacement transaction underpriced",
    "already known",
    "connection reset",
)

RETRYABLE_EXCEPTION_TYPES = (
    TimeExhausted,
    ClientError,
    asyncio.TimeoutError,
    ConnectionError,
    ServiceUnavailableError,
)


def _rpc_error_code(err: BaseException) -> int | None:
    if isinstance(err, Web3RPCError) and isinstance(err.rpc_response, dict):
        error = err.rpc_response.get("error")
        if isinstance(error, dict) and isinstance(error.get("code"), int):
            return error["code"]
    return None


def _iter_causes(err: BaseException):
    seen = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__ or err.__context__


def is_retryable_error(err: BaseException) -> bool:
    """Classify a settlement error

    Structured signals are checked first (exception types and JSON-RPC
    error codes), then the message of each exception in the cause chain.
    A contract revert is never retryable.

    :param err: raised exception
    :return: True if the operation should be retried on the next cycle
    """
    chain = list(_iter_causes(err))

    for e in chain:
        if isinstance(e, ContractLogicError):
            return False

    for e in chain:
        if isinstance(e, RETRYABLE_EXCEPTION_TYPES):
            return True
        if _rpc_error_code(e) in RETRYABLE_RPC_ERROR_CODES:
            return True

    for e in chain:
        message = str(e).lower()
        if any(pattern in message for pattern in RETRYABLE_MESSAGE_PATTERNS):
            return True

    return False
