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

import pytest

from app.chain_registry import ChainRegistry
from app.exceptions import ChainNotFoundError
from app.model.schema import ChainDescriptor
from config import SUPPORTED_CHAINS, supported_chains
from tests.bridge_utils import BRIDGE_ADDRESS, chain_config, chain_descriptor

CHAIN_ENV_PREFIXES = (
    "ETHEREUM",
    "BSC",
    "POLYGON",
    "ARBITRUM",
    "AVALANCHE",
    "FANTOM",
    "ESR",
    "ESR_TESTNET",
)


@pytest.fixture(scope="function")
def app_log(caplog: pytest.LogCaptureFixture):
    log = logging.getLogger("bridge_relayer")
    default_log_level = log.level
    log.setLevel(logging.DEBUG)
    log.propagate = True
    yield log
    log.propagate = False
    log.setLevel(default_log_level)


class TestChainRegistry:
    ###########################################################################
    # Normal Case
    ###########################################################################

    # <Normal_1>
    # Configured chains are active
    def test_normal_1(self):
        registry = ChainRegistry(
            [
                chain_config(chain_descriptor(1, "Ethereum", 12)),
                chain_config(chain_descriptor(56, "BSC", 15, max_gas_price="20")),
            ]
        )

        assert registry.all_chain_ids() == {1, 56}
        assert registry.active_chain_ids() == {1, 56}
        assert registry.is_active(56) is True

        chain = registry.describe(56)
        assert isinstance(chain, ChainDescriptor)
        assert chain.name == "BSC"
        assert chain.min_confirmations == 15
        assert chain.max_gas_price_wei == 20 * 10**9
        assert chain.bridge_address == BRIDGE_ADDRESS

    # <Normal_2>
    # Chain without RPC endpoint is known but disabled
    def test_normal_2(self, app_log, caplog):
        disabled = chain_config(chain_descriptor(137, "Polygon", 20))
        disabled["rpc_url"] = None

        registry = ChainRegistry(
            [chain_config(chain_descriptor(1, "Ethereum", 12)), disabled]
        )

        assert registry.all_chain_ids() == {1, 137}
        assert registry.active_chain_ids() == {1}
        assert registry.is_known(137) is True
        assert registry.is_active(137) is False
        assert registry.name_of(137) == "Polygon"
        assert [c.chain_id for c in registry.active_chains()] == [1]
        assert (
            app_log.name,
            logging.WARNING,
            "Missing RPC endpoint or bridge address, chain is disabled: chain_id=137, name=Polygon",
        ) in caplog.record_tuples

    # <Normal_3>
    # Chain with invalid settings is disabled
    def test_normal_3(self, app_log, caplog):
        invalid = chain_config(chain_descriptor(250, "Fantom", 10))
        invalid["bridge_address"] = "0x1234"

        registry = ChainRegistry([invalid])

        assert registry.is_known(250) is True
        assert registry.is_active(250) is False
        assert caplog.records[0].levelno == logging.WARNING
        assert caplog.messages[0].startswith(
            "Invalid chain configuration, chain is disabled: chain_id=250, name=Fantom"
        )

    # <Normal_4>
    # Default registry contains every supported chain
    def test_normal_4(self):
        registry = ChainRegistry()

        assert registry.all_chain_ids() == {
            chain["chain_id"] for chain in SUPPORTED_CHAINS
        }
        assert registry.active_chain_ids() <= registry.all_chain_ids()

    # <Normal_5>
    # ESR settings do not activate ESR Testnet
    def test_normal_5(self, monkeypatch):
        for prefix in CHAIN_ENV_PREFIXES:
            for key in ("RPC_URL", "BRIDGE_ADDRESS", "START_BLOCK"):
                monkeypatch.delenv(f"{prefix}_{key}", raising=False)
        monkeypatch.setenv("ESR_RPC_URL", "http://esr:8545")
        monkeypatch.setenv("ESR_BRIDGE_ADDRESS", BRIDGE_ADDRESS)

        registry = ChainRegistry(supported_chains())

        assert registry.active_chain_ids() == {2612}
        assert registry.describe(2612).rpc_url == "http://esr:8545"
        assert registry.is_active(25062019) is False

        # ESR Testnet has its own settings
        monkeypatch.setenv("ESR_TESTNET_RPC_URL", "http://esr-testnet:8545")
        monkeypatch.setenv("ESR_TESTNET_BRIDGE_ADDRESS", BRIDGE_ADDRESS)

        registry = ChainRegistry(supported_chains())

        assert registry.active_chain_ids() == {2612, 25062019}
        assert registry.describe(25062019).rpc_url == "http://esr-testnet:8545"

    # <Normal_6>
    # Chain sharing the bridge endpoint of another chain is disabled
    def test_normal_6(self, app_log, caplog):
        esr = chain_config(chain_descriptor(2612, "ESR", 5))
        esr_testnet = chain_config(chain_descriptor(25062019, "ESR Testnet", 3))
        esr_testnet["rpc_url"] = esr["rpc_url"]
        esr_testnet["bridge_address"] = BRIDGE_ADDRESS.lower()

        registry = ChainRegistry([esr, esr_testnet])

        assert registry.active_chain_ids() == {2612}
        assert registry.is_known(25062019) is True
        assert (
            app_log.name,
            logging.WARNING,
            "Bridge endpoint is already used by another chain, chain is disabled: chain_id=25062019, name=ESR Testnet, used_by=2612",
        ) in caplog.record_tuples

    ###########################################################################
    # Error Case
    ###########################################################################

    # <Error_1>
    # Unknown chain
    def test_error_1(self):
        registry = ChainRegistry([chain_config(chain_descriptor(1, "Ethereum", 12))])

        with pytest.raises(ChainNotFoundError, match="Unsupported chain ID: 999") as e:
            registry.describe(999)
        assert e.value.chain_id == 999
        assert registry.is_known(999) is False
        assert registry.name_of(999) == "999"

    # <Error_2>
    # Disabled chain cannot be described
    def test_error_2(self):
        disabled = chain_config(chain_descriptor(137, "Polygon", 20))
        disabled["bridge_address"] = None
        registry = ChainRegistry([disabled])

        with pytest.raises(ChainNotFoundError):
            registry.describe(137)
