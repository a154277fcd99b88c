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

from typing import Iterable

from pydantic import ValidationError

from app import log
from app.exceptions import ChainNotFoundError
from app.model.schema import ChainDescriptor
from config import SUPPORTED_CHAINS

LOG = log.get_logger()


class ChainRegistry:
    """Read-only registry of chain descriptors

    Chains without an RPC endpoint or bridge address, or with invalid
    settings, are known to the registry but excluded from the active set.
    """

    def __init__(self, chains: Iterable[dict] = None):
        if chains is None:
            chains = SUPPORTED_CHAINS

        self._known: dict[int, str] = {}
        self._active: dict[int, ChainDescriptor] = {}
        # Key: (rpc_url, bridge_address), Value: chain_id
        endpoints: dict[tuple[str, str], int] = {}
        for chain in chains:
            chain_id = int(chain["chain_id"])
            name = chain.get("name", str(chain_id))
            self._known[chain_id] = name

            if not chain.get("rpc_url") or not chain.get("bridge_address"):
                LOG.warning(
                    f"Missing RPC endpoint or bridge address, chain is disabled: chain_id={chain_id}, name={name}"
                )
                continue
            try:
                descriptor = ChainDescriptor(**chain)
            except ValidationError as err:
                LOG.warning(
                    f"Invalid chain configuration, chain is disabled: chain_id={chain_id}, name={name}\n{err}"
                )
                continue

            endpoint = (descriptor.rpc_url, descriptor.bridge_address.lower())
            if endpoint in endpoints:
                LOG.warning(
                    f"Bridge endpoint is already used by another chain, chain is disabled: chain_id={chain_id}, name={name}, used_by={endpoints[endpoint]}"
                )
                continue
            endpoints[endpoint] = chain_id
            self._active[chain_id] = descriptor

    def describe(self, chain_id: int) -> ChainDescriptor:
        """Get descriptor of an active chain

        :param chain_id: chain ID
        :return: ChainDescriptor
        :raises ChainNotFoundError: chain is unknown or disabled
        """
        descriptor = self._active.get(chain_id)
        if descriptor is None:
            raise ChainNotFoundError(chain_id)
        return descriptor

    def is_known(self, chain_id: int) -> bool:
        return chain_id in self._known

    def is_active(self, chain_id: int) -> bool:
        return chain_id in self._active

    def name_of(self, chain_id: int) -> str:
        return self._known.get(chain_id, str(chain_id))

    def all_chain_ids(self) -> set[int]:
        return set(self._known.keys())

    def active_chain_ids(self) -> set[int]:
        return set(self._active.keys())

    def active_chains(self) -> list[ChainDescriptor]:
        return list(self._active.values())
