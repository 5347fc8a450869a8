# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Core infrastructure: configuration, errors, logging, ledger access."""

from .config import Settings, get_settings
from .errors import AuthError, ErrorKind
from .result_types import Err, Ok, Result

__all__ = ["AuthError", "Err", "ErrorKind", "Ok", "Result", "Settings", "get_settings"]
