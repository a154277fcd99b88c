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

import re
from typing import Annotated, Any

from pydantic import WrapValidator
from pydantic_core.core_schema import ValidatorFunctionWrapHandler
from web3 import Web3


def ethereum_address_validator(
    value: Any, handler: ValidatorFunctionWrapHandler, *args, **kwargs
):
    """Validator for ethereum address"""
    if value is not None:
        if not isinstance(value, str):
            raise ValueError("value must be of string")
        if not Web3.is_address(value):
            raise ValueError("invalid ethereum address")
    return value


EthereumAddress = Annotated[str, WrapValidator(ethereum_address_validator)]


BYTES32_HEX_PATTERN = re.compile(r"^0x[0-9a-fA-F]{1,64}$")


def bytes32_hex_validator(
    value: Any, handler: ValidatorFunctionWrapHandler, *args, **kwargs
):
    """Validator for 0x-prefixed bytes32 hex string

    - bytes values are converted to lowercase hex string
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 32:
            raise ValueError("value must be 32 bytes")
        return "0x" + bytes(value).hex()
    if not isinstance(value, str):
        raise ValueError("value must be of string")
    if not BYTES32_HEX_PATTERN.match(value):
        raise ValueError("value must be 0x-prefixed hex string of at most 32 bytes")
    return value.lower()


Bytes32Hex = Annotated[str, WrapValidator(bytes32_hex_validator)]


def decimal_string_validator(
    value: Any, handler: ValidatorFunctionWrapHandler, *args, **kwargs
):
    """Validator for unsigned integer amount stored as decimal string"""
    if isinstance(value, bool):
        raise ValueError("value must be an unsigned integer")
    if isinstance(value, int):
        if value < 0:
            raise ValueError("value must not be negative")
        return str(value)
    if not isinstance(value, str) or not value.isdigit():
        raise ValueError("value must be an unsigned integer decimal string")
    return str(int(value))


AmountStr = Annotated[str, WrapValidator(decimal_string_validator)]
