"""Endpoint string and credential resolution."""

import re
from pathlib import Path

import structlog
from pydantic import ValidationError

from ..constants import DEFAULT_JAAS_SECTION, DEFAULT_ZK_PORT, ROOT_PATH
from ..models.auth import AuthMode, DigestAuth, OpenAuth, SaslAuth
from ..models.endpoint import ZKEndpoint
from ..models.node import validate_znode_path
from .exceptions import ConfigurationError
from .jaas_config_parser import JaasConfigParser

logger = structlog.get_logger()

_BRACKETED_HOST = re.compile(r"^\[(?P<host>[0-9A-Fa-f:.]+)\](?::(?P<port>[^:]*))?$")


def parse_endpoint(endpoint: str) -> ZKEndpoint:
    """Parse ``host[:port][,host[:port]...][/chroot]`` into a ZKEndpoint.

    Ports default to 2181. IPv6 hosts must be bracketed (``[::1]:2181``).

    Raises:
        ConfigurationError: If the string is empty or any component is malformed
    """
    if endpoint is None or not endpoint.strip():
        raise ConfigurationError("ZooKeeper endpoint is empty")

    value = endpoint.strip()
    slash = value.find("/")
    if slash == -1:
        host_part, chroot = value, ROOT_PATH
    else:
        host_part, chroot = value[:slash], value[slash:]
        if chroot != ROOT_PATH:
            chroot = chroot.rstrip("/")

    try:
        chroot = validate_znode_path(chroot)
    except ValueError as e:
        raise ConfigurationError(f"invalid chroot path in endpoint '{endpoint}': {e}") from e

    hosts = [_parse_host(item.strip(), endpoint) for item in host_part.split(",")]

    try:
        return ZKEndpoint(hosts=hosts, chroot_path=chroot)
    except ValidationError as e:
        raise ConfigurationError(f"invalid endpoint '{endpoint}': {e}") from e


def _parse_host(item: str, endpoint: str) -> str:
    """Normalize one ``host[:port]`` entry to ``host:port``."""
    if not item:
        raise ConfigurationError(f"empty host in endpoint '{endpoint}'")

    bracketed = _BRACKETED_HOST.match(item)
    if bracketed:
        host = f"[{bracketed.group('host')}]"
        port_text = bracketed.group("port")
    elif item.count(":") > 1:
        raise ConfigurationError(f"IPv6 host must be bracketed in endpoint '{endpoint}': {item}")
    else:
        host, sep, port_text = item.partition(":")
        if not sep:
            port_text = None
        if not host:
            raise ConfigurationError(f"empty host in endpoint '{endpoint}'")

    if port_text is None:
        return f"{host}:{DEFAULT_ZK_PORT}"

    if not port_text.isdigit():
        raise ConfigurationError(f"invalid port '{port_text}' in endpoint '{endpoint}'")
    port = int(port_text)
    if not 1 <= port <= 65535:
        raise ConfigurationError(f"port {port} out of valid range 1-65535 in endpoint '{endpoint}'")
    return f"{host}:{port}"


def resolve_auth(
    auth_info: str | None = None,
    krb_conf: str | Path | None = None,
    jaas_section: str = DEFAULT_JAAS_SECTION,
) -> AuthMode:
    """Build the session's auth mode from a digest credential or a JAAS file.

    Args:
        auth_info: ``username:password`` for digest authentication
        krb_conf: Path to a JAAS login configuration for Kerberos
        jaas_section: Login section to read from the JAAS file

    Raises:
        ConfigurationError: If both are given, the credential is malformed, or the JAAS
            file cannot be used
    """
    if auth_info and krb_conf:
        raise ConfigurationError("digest credentials and a Kerberos config are mutually exclusive")

    if auth_info:
        try:
            return DigestAuth(credential=auth_info.encode("utf-8"))
        except ValidationError as e:
            raise ConfigurationError("auth must be given as username:password") from e

    if krb_conf:
        entry = JaasConfigParser(krb_conf).get_section(jaas_section)
        logger.info(
            "Resolved Kerberos login configuration",
            jaas_config=str(krb_conf),
            section=entry.name,
            principal=entry.principal,
            key_tab=entry.key_tab,
        )
        return SaslAuth(
            jaas_config=str(krb_conf),
            principal=entry.principal,
            service=entry.service_name or SaslAuth.model_fields["service"].default,
        )

    return OpenAuth()
