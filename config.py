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

import configparser
import os
import sys

SERVER_NAME = "bridge-relayer"

####################################################
# Basic settings
####################################################
# Environment-specific settings
APP_ENV = os.environ.get("APP_ENV") or "local"
INI_FILE = os.path.join(
    os.path.dirname(os.path.realpath(__file__)), f"conf/{APP_ENV}.ini"
)
CONFIG = configparser.ConfigParser()
CONFIG.read(INI_FILE)

####################################################
# Server settings
####################################################

# Database
# - sqlite and postgresql are supported
if "pytest" in sys.modules:  # for unit test
    DATABASE_URL = os.environ.get("TEST_DATABASE_URL") or "sqlite:///:memory:"
else:
    DATABASE_URL = os.environ.get("DATABASE_URL") or "sqlite:///data/relayer.db"
ASYNC_DATABASE_URL = DATABASE_URL.replace(
    "postgresql://", "postgresql+asyncpg://"
).replace("sqlite://", "sqlite+aiosqlite://")
DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+psycopg://")

DATABASE_SCHEMA = os.environ.get("DATABASE_SCHEMA")
DB_ECHO = True if CONFIG["database"]["echo"] == "yes" else False

# Logging
LOG_LEVEL = CONFIG["logging"]["level"]
NOTIFICATION_LOGFILE = os.environ.get("NOTIFICATION_LOGFILE") or "/dev/stdout"


####################################################
# Web3 settings
####################################################
# HTTP request timeout for RPC endpoints [sec]
WEB3_REQUEST_TIMEOUT = (
    int(os.environ.get("WEB3_REQUEST_TIMEOUT"))
    if os.environ.get("WEB3_REQUEST_TIMEOUT")
    else 30
)

# Relayer account
# - Private key used to sign settlement transactions (hex string)
RELAYER_PRIVATE_KEY = os.environ.get("RELAYER_PRIVATE_KEY")


####################################################
# Chain settings
####################################################
# NOTE:
# RPC endpoint, bridge contract address and start block are read from
# "{ENV_PREFIX}_RPC_URL", "{ENV_PREFIX}_BRIDGE_ADDRESS" and "{ENV_PREFIX}_START_BLOCK".
# Every chain has its own prefix.
#   - min_confirmations: number of blocks required before settlement
#   - gas_limit: gas limit of releaseTokens
#   - max_gas_price: gas price ceiling [gwei]
#   - block_time: expected block interval [ms]
def _chain_env(prefix: str, key: str) -> str | None:
    return os.environ.get(f"{prefix}_{key}") or None


def _chain(
    chain_id: int,
    name: str,
    env_prefix: str,
    min_confirmations: int,
    gas_limit: int,
    max_gas_price: str,
    block_time: int,
) -> dict:
    start_block = _chain_env(env_prefix, "START_BLOCK")
    return {
        "chain_id": chain_id,
        "name": name,
        "rpc_url": _chain_env(env_prefix, "RPC_URL"),
        "bridge_address": _chain_env(env_prefix, "BRIDGE_ADDRESS"),
        "min_confirmations": min_confirmations,
        "gas_limit": gas_limit,
        "max_gas_price": max_gas_price,
        "block_time": block_time,
        "start_block": int(start_block) if start_block else 0,
    }


def supported_chains() -> list[dict]:
    """Build the chain table from the current environment"""
    return [
        _chain(1, "Ethereum", "ETHEREUM", 12, 500000, "100", 12000),
        _chain(56, "BSC", "BSC", 15, 300000, "20", 3000),
        _chain(137, "Polygon", "POLYGON", 20, 300000, "50", 2000),
        _chain(42161, "Arbitrum", "ARBITRUM", 1, 1000000, "10", 1000),
        _chain(43114, "Avalanche", "AVALANCHE", 5, 300000, "30", 2000),
        _chain(250, "Fantom", "FANTOM", 10, 300000, "200", 1000),
        _chain(2612, "ESR", "ESR", 5, 200000, "1", 5000),
        _chain(25062019, "ESR Testnet", "ESR_TESTNET", 3, 200000, "1", 3000),
    ]


SUPPORTED_CHAINS = supported_chains()


####################################################
# Batch settings
####################################################

# =============================
# Event Watcher
# =============================
# Historical sweep interval [sec]
HISTORICAL_SWEEP_INTERVAL = (
    int(os.environ.get("HISTORICAL_SWEEP_INTERVAL"))
    if os.environ.get("HISTORICAL_SWEEP_INTERVAL")
    else 30
)
# Maximum number of blocks per eth_getLogs request
SWEEP_BLOCK_LOT_MAX_SIZE = (
    int(os.environ.get("SWEEP_BLOCK_LOT_MAX_SIZE"))
    if os.environ.get("SWEEP_BLOCK_LOT_MAX_SIZE")
    else 1000
)
# Interval for draining live events [sec]
LIVE_INGEST_INTERVAL = (
    float(os.environ.get("LIVE_INGEST_INTERVAL"))
    if os.environ.get("LIVE_INGEST_INTERVAL")
    else 1
)

# =============================
# Settlement Processor
# =============================
# Settlement cycle interval [sec]
SETTLEMENT_INTERVAL = (
    int(os.environ.get("PROCESSING_INTERVAL_MS")) / 1000
    if os.environ.get("PROCESSING_INTERVAL_MS")
    else 30
)
# Delay between settlement transactions in one cycle [sec]
SETTLEMENT_TX_INTERVAL = (
    float(os.environ.get("SETTLEMENT_TX_INTERVAL"))
    if os.environ.get("SETTLEMENT_TX_INTERVAL")
    else 1
)
# Timeout for waiting for the settlement receipt [sec]
RECEIPT_TIMEOUT = (
    int(os.environ.get("RECEIPT_TIMEOUT"))
    if os.environ.get("RECEIPT_TIMEOUT")
    else 300
)

# =============================
# Relayer Monitor
# =============================
HEALTH_CHECK_INTERVAL = (
    int(os.environ.get("HEALTH_CHECK_INTERVAL"))
    if os.environ.get("HEALTH_CHECK_INTERVAL")
    else 300
)
BALANCE_CHECK_INTERVAL = (
    int(os.environ.get("BALANCE_CHECK_INTERVAL"))
    if os.environ.get("BALANCE_CHECK_INTERVAL")
    else 3600
)
DAILY_REPORT_INTERVAL = (
    int(os.environ.get("DAILY_REPORT_INTERVAL"))
    if os.environ.get("DAILY_REPORT_INTERVAL")
    else 86400
)
# Relayer balance alert threshold [ether]
LOW_BALANCE_THRESHOLD = os.environ.get("LOW_BALANCE_THRESHOLD") or "0.1"


####################################################
# Notification settings
####################################################
DISCORD_WEBHOOK_URL = os.environ.get("DISCORD_WEBHOOK_URL")
SLACK_WEBHOOK_URL = os.environ.get("SLACK_WEBHOOK_URL")
TELEGRAM_BOT_TOKEN = os.environ.get("TELEGRAM_BOT_TOKEN")
TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID")
# HTTP request timeout for webhooks [sec]
NOTIFICATION_REQUEST_TIMEOUT = (
    int(os.environ.get("NOTIFICATION_REQUEST_TIMEOUT"))
    if os.environ.get("NOTIFICATION_REQUEST_TIMEOUT")
    else 10
)
