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


class AppError(Exception):
    code: int | None = None


################################################
# Configuration
################################################
class ConfigurationError(AppError):
    """
    Invalid or missing configuration
    """

    code = 1


class ChainNotFoundError(AppError):
    """
    Chain ID that has no descriptor in the registry
    """

    code = 2

    def __init__(self, chain_id: int):
        self.chain_id = chain_id
        super().__init__(f"Unsupported chain ID: {chain_id}")


################################################
# Storage
################################################
class StoreError(AppError):
    """
    Storage I/O error
    """

    code = 10


class InvalidStatusTransitionError(AppError):
    """
    Bridge event status transition that is not allowed
    """

    code = 11

    def __init__(self, tx_id: str, current: str, requested: str):
        self.tx_id = tx_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Invalid status transition: tx_id={tx_id}, {current} -> {requested}"
        )


################################################
# Blockchain
################################################
class SendTransactionError(AppError):
    code = 20


class ServiceUnavailableError(AppError):
    code = 21
