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

import ctypes
import ctypes.util
import platform


def free_malloc():
    """Return freed heap memory to the OS (glibc only)"""
    if platform.system() != "Linux":
        return
    libc_path = ctypes.util.find_library("c")
    if libc_path is None:
        return
    libc = ctypes.CDLL(libc_path)
    if hasattr(libc, "malloc_trim"):
        libc.malloc_trim(0)
