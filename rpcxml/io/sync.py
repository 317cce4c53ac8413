"""
Synchronous I/O implementation using the requests library.
"""

from typing import Optional

import requests
from requests.adapters import HTTPAdapter

from rpcxml.config import ClientConfig
from rpcxml.protocol.types import RPCRequest, RPCResponse

from .scgi import SCGIAdapter


class SyncIO:
    """
    Synchronous I/O shell using requests.

    This is a thin wrapper that executes RPCRequest objects and returns
    RPCResponse objects.  http:// and https:// go through a pooled
    HTTPAdapter, scgi:// and scgi+unix:// through SCGIAdapter.

    Example:
        io = SyncIO()
        request = protocol.call_request("system.listMethods")
        response = io.execute(request)
        methods = protocol.parse_call_response(response)
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        config: Optional[ClientConfig] = None,
    ):
        """
        Initialize the sync I/O handler.

        Args:
            session: Existing requests Session to use (creates new if None)
            config: Transport settings, defaults to ClientConfig()
        """
        self.config = config or ClientConfig()
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.timeout = self.config.timeout
        self.verify = self.config.ssl_verify_cert
        self.cert = self.config.ssl_cert
        self.proxies = None
        if self.config.proxy:
            self.proxies = {"http": self.config.proxy, "https": self.config.proxy}
        if self._owns_session:
            self._mount_adapters()

    def _mount_adapters(self) -> None:
        http_adapter = HTTPAdapter(
            pool_connections=self.config.pool_connections,
            pool_maxsize=self.config.max_idle_connections,
        )
        self.session.mount("http://", http_adapter)
        self.session.mount("https://", http_adapter)
        scgi_adapter = SCGIAdapter()
        self.session.mount("scgi://", scgi_adapter)
        self.session.mount("scgi+unix://", scgi_adapter)
        for prefix, adapter in self.config.adapters.items():
            self.session.mount(prefix, adapter)

    def execute(self, request: RPCRequest) -> RPCResponse:
        """
        Execute an RPCRequest and return RPCResponse.

        The underlying connection is released before returning, also
        when reading the body fails.

        Args:
            request: The request to execute

        Returns:
            RPCResponse with status, headers, and body
        """
        with self.session.request(
            method=request.method,
            url=request.url,
            headers=request.headers,
            data=request.body,
            timeout=self.timeout,
            verify=self.verify,
            cert=self.cert,
            proxies=self.proxies,
        ) as response:
            return RPCResponse(
                status=response.status_code,
                headers=dict(response.headers),
                body=response.content,
                reason=response.reason or "",
            )

    def close(self) -> None:
        """Close the session if we created it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self) -> "SyncIO":
        """Context manager entry."""
        return self

    def __exit__(self, *args) -> None:
        """Context manager exit."""
        self.close()
