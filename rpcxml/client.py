#!/usr/bin/env python
import logging
import os
import sys
from types import TracebackType
from typing import Any, List, Optional

from rpcxml.config import ClientConfig
from rpcxml.io import SyncIO, SyncIOProtocol
from rpcxml.protocol import Value, XMLRPCProtocol

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self

"""
The ``XMLRPCClient`` class sends procedure calls to one XML-RPC
endpoint and hands back the decoded params.  ``get_client`` builds one
from parameters, environment variables or a configuration file.
"""

log = logging.getLogger("rpcxml")


class _Method:
    """
    Attribute access on the client builds dotted method names, so
    ``client.system.listMethods()`` calls ``system.listMethods``.
    """

    def __init__(self, client: "XMLRPCClient", name: str) -> None:
        self._client = client
        self._name = name

    def __getattr__(self, name: str) -> "_Method":
        if name.startswith("_"):
            raise AttributeError(name)
        return _Method(self._client, f"{self._name}.{name}")

    def __call__(self, *args: Any) -> List[Value]:
        return self._client.call(self._name, *args)

    def __repr__(self) -> str:
        return f"<_Method {self._name}>"


class XMLRPCClient:
    """
    Synchronous XML-RPC client.

    Example:
        with XMLRPCClient("scgi://localhost:5000/") as client:
            [version] = client.call("system.client_version")
            print(version.to_python())
    """

    def __init__(
        self,
        url: str,
        config: Optional[ClientConfig] = None,
        io: Optional[SyncIOProtocol] = None,
    ) -> None:
        """
        Args:
            url: Endpoint URL; http, https, scgi (host:port) or scgi+unix
                 (socket path)
            config: Transport settings, defaults to ClientConfig()
            io: I/O implementation, defaults to SyncIO(config=config)
        """
        self.url = url
        self.config = config or ClientConfig()
        self.protocol = XMLRPCProtocol(
            url=url,
            headers=self.config.headers,
            username=self.config.username,
            password=self.config.password,
            huge_tree=self.config.huge_tree,
        )
        self.io = io or SyncIO(config=self.config)

    def call(self, method_name: str, *args: Any) -> List[Value]:
        """
        Calls a remote procedure.

        Args:
            method_name: Method name, e.g. ``examples.getStateName``
            args: Call arguments, Value instances or plain Python data

        Returns:
            The decoded params of the response, in order

        Raises:
            Fault: The server answered with a fault
            DecodeError: The response was not a valid methodResponse
            ProtocolError: The transport reported an error status
            UnsupportedArgumentType: An argument cannot be encoded
        """
        request = self.protocol.call_request(method_name, args)
        log.debug(f"calling {method_name} at {self.url}")
        response = self.io.execute(request)
        return self.protocol.parse_call_response(response)

    def __getattr__(self, name: str) -> _Method:
        if name.startswith("_"):
            raise AttributeError(name)
        return _Method(self, name)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Optional[BaseException] = None,
        exc_value: Optional[BaseException] = None,
        traceback: Optional[TracebackType] = None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """
        Closes the underlying I/O session
        """
        self.io.close()


def get_client(
    url: Optional[str] = None,
    config_file: Optional[str] = None,
    config_section: Optional[str] = None,
    environment: bool = True,
    check_config_file: bool = True,
    **config_data: Any,
) -> XMLRPCClient:
    """
    This function will yield an XMLRPCClient object.  It will not try to
    connect.  It will read configuration from various sources, in this
    order:

    * The url and configuration data given as parameters
    * Environment variables prepended with `RPCXML_`, like `RPCXML_URL`,
      `RPCXML_USERNAME`, `RPCXML_PASSWORD`, `RPCXML_TIMEOUT`
    * The section `config_section` (or `RPCXML_CONFIG_SECTION`, or
      "default") of the configuration file `config_file` (or
      `RPCXML_CONFIG_FILE`, or the default locations)
    """
    if url:
        return XMLRPCClient(url, ClientConfig.from_dict(config_data))

    if environment:
        conf = {}
        for conf_key in (
            x for x in os.environ if x.startswith("RPCXML_") and not x.startswith("RPCXML_CONFIG")
        ):
            conf[conf_key[7:].lower()] = os.environ[conf_key]
        if "timeout" in conf:
            conf["timeout"] = float(conf["timeout"])
        if conf.get("url"):
            conf.update(config_data)
            return XMLRPCClient(conf["url"], ClientConfig.from_dict(conf))
        if not config_file:
            config_file = os.environ.get("RPCXML_CONFIG_FILE")
        if not config_section:
            config_section = os.environ.get("RPCXML_CONFIG_SECTION")

    if check_config_file:
        from rpcxml import config

        cfg = config.read_config(config_file)
        if cfg:
            section = config.config_section(cfg, config_section or "default")
            section.update(config_data)
            if section.get("url"):
                return XMLRPCClient(section["url"], ClientConfig.from_dict(section))

    raise ValueError("no XML-RPC endpoint configured, pass url or set RPCXML_URL")
