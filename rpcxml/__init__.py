#!/usr/bin/env python
import logging

__version__ = "0.3.0"

## Silence notification of no default logging handler
log = logging.getLogger("rpcxml")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

from .client import XMLRPCClient, get_client  # noqa: E402
from .lib.error import Fault  # noqa: E402

__all__ = ["__version__", "XMLRPCClient", "get_client", "Fault"]
