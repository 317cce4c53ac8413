import json
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

"""
Client configuration.

All transport settings live in an explicit ClientConfig object handed to
the client; nothing is configured process wide.  ClientConfig objects can
be built from a section of a JSON or YAML config file.
"""

log = logging.getLogger(__name__)


@dataclass
class ClientConfig:
    """
    Transport settings for one XMLRPCClient.

    Attributes:
        connect_timeout: Seconds to wait for the connection (dial timeout)
        read_timeout: Seconds to wait for the server between bytes
        max_idle_connections: Connections kept in the pool per host
        pool_connections: Number of host pools kept by the session
        ssl_verify_cert: Verify server certificates, or path to a CA bundle
        ssl_cert: Client certificate, path or (cert, key) tuple
        proxy: Proxy URL used for http and https
        headers: Extra headers sent with every call
        username: Username for Basic authentication
        password: Password for Basic authentication
        huge_tree: Allow parsing very large XML documents
        adapters: URL prefix -> requests transport adapter.  scgi:// and
                  scgi+unix:// are always registered unless overridden here.
    """

    connect_timeout: Optional[float] = 30.0
    read_timeout: Optional[float] = 90.0
    max_idle_connections: int = 100
    pool_connections: int = 10
    ssl_verify_cert: Any = True
    ssl_cert: Any = None
    proxy: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    username: Optional[str] = None
    password: Optional[str] = None
    huge_tree: bool = False
    adapters: Dict[str, Any] = field(default_factory=dict)

    @property
    def timeout(self):
        """The (connect, read) tuple handed to requests"""
        return (self.connect_timeout, self.read_timeout)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        """
        Builds a ClientConfig from a config file section.  The "url" key
        is not a transport setting and is skipped, "timeout" is an alias of
        read_timeout.  Other unknown keys are logged and ignored.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            if key in known:
                kwargs[key] = value
            elif key not in ("url", "inherits", "timeout"):
                log.warning(f"ignoring unknown configuration key {key!r}")
        if "timeout" in data and "read_timeout" not in data:
            kwargs["read_timeout"] = data["timeout"]
        return cls(**kwargs)


def config_section(config: Dict[str, Any], section: str = "default") -> Dict[str, Any]:
    """
    Returns the section, with the keys from sections it "inherits" from
    filled in.
    """
    if section in config and "inherits" in config[section]:
        ret = config_section(config, config[section]["inherits"])
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    return ret


def read_config(fn: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Reads a JSON config file, or YAML if PyYAML is installed.  Without a
    file name the default locations are tried in order and None is
    returned if none of them exists.
    """
    if not fn:
        cfgdir = f"{os.environ.get('HOME', '/')}/.config"
        for config_file in (
            f"{cfgdir}/rpcxml/client.conf",
            f"{cfgdir}/rpcxml/client.yaml",
            f"{cfgdir}/rpcxml/client.json",
            "/etc/rpcxml/client.conf",
        ):
            cfg = read_config(config_file)
            if cfg:
                return cfg
        return None

    try:
        with open(fn, "rb") as config_file:
            data = config_file.read()
    except FileNotFoundError:
        log.info(f"no config file found at {fn}")
        return {}

    try:
        return json.loads(data)
    except json.decoder.JSONDecodeError:
        pass

    ## Late import, yaml is not a hard requirement
    try:
        import yaml
    except ImportError:
        log.error(f"config file {fn} exists but is not valid json, and pyyaml is not installed.")
        return {}
    try:
        return yaml.safe_load(data) or {}
    except yaml.YAMLError:
        log.error(
            f"config file {fn} exists but is neither valid json nor yaml.  Check the syntax.",
            exc_info=True,
        )
        return {}
