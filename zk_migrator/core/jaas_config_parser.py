"""JAAS login configuration parser for Kerberos-authenticated sessions."""

import re
from pathlib import Path

import structlog

from ..constants import DEFAULT_JAAS_SECTION
from .exceptions import ConfigurationError

logger = structlog.get_logger()

# Quoted strings are captured so comment markers inside them survive
_COMMENTS = re.compile(r'("(?:[^"\\]|\\.)*")|/\*.*?\*/|//[^\n]*', re.DOTALL)
_SECTION = re.compile(r"([A-Za-z0-9_.\-]+)\s*\{(.*?)\}\s*;?", re.DOTALL)
_OPTION = re.compile(r'([A-Za-z0-9_.\-]+)\s*=\s*("(?:[^"\\]|\\.)*"|[^\s;]+)')


class JaasLoginEntry:
    """Represents the first login module of one JAAS section."""

    def __init__(self, name: str):
        self.name = name
        self.login_module: str | None = None
        self.control_flag: str | None = None
        self.options: dict[str, str] = {}

    @property
    def principal(self) -> str | None:
        return self.options.get("principal")

    @property
    def service_name(self) -> str | None:
        return self.options.get("serviceName")

    @property
    def key_tab(self) -> str | None:
        return self.options.get("keyTab")

    @property
    def use_ticket_cache(self) -> bool:
        return self.options.get("useTicketCache", "false").lower() == "true"

    def __repr__(self) -> str:
        return (
            f"JaasLoginEntry(name='{self.name}', login_module='{self.login_module}', "
            f"principal='{self.principal}')"
        )


class JaasConfigParser:
    """Parser for JAAS login configuration files."""

    def __init__(self, config_path: str | Path):
        self.config_path = Path(config_path)

    def parse(self) -> dict[str, JaasLoginEntry]:
        """Parse the file and return login entries keyed by section name.

        Raises:
            ConfigurationError: If the file is missing, unreadable, or has no sections
        """
        if not self.config_path.is_file():
            raise ConfigurationError(f"JAAS config file not found: {self.config_path}")

        logger.debug("Parsing JAAS config file", path=str(self.config_path))

        try:
            content = self.config_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Failed to read JAAS config file: {e}") from e

        entries = self._parse_content(content)
        if not entries:
            raise ConfigurationError(f"No login sections found in {self.config_path}")
        return entries

    def get_section(self, name: str = DEFAULT_JAAS_SECTION) -> JaasLoginEntry:
        """Return one named login section.

        Raises:
            ConfigurationError: If the section is absent
        """
        entries = self.parse()
        if name not in entries:
            raise ConfigurationError(
                f"JAAS section '{name}' not found in {self.config_path} "
                f"(available: {', '.join(sorted(entries))})"
            )
        return entries[name]

    def _parse_content(self, content: str) -> dict[str, JaasLoginEntry]:
        content = _COMMENTS.sub(lambda m: m.group(1) or "", content)
        entries: dict[str, JaasLoginEntry] = {}

        for match in _SECTION.finditer(content):
            name, body = match.group(1), match.group(2)
            modules = [chunk for chunk in body.split(";") if chunk.strip()]
            if not modules:
                logger.warning("Skipping empty JAAS section", section=name)
                continue
            entries[name] = self._parse_module(name, modules[0])

        return entries

    def _parse_module(self, name: str, chunk: str) -> JaasLoginEntry:
        entry = JaasLoginEntry(name)
        head = _OPTION.sub("", chunk).split()
        if not head:
            raise ConfigurationError(f"JAAS section '{name}' has no login module")

        entry.login_module = head[0]
        entry.control_flag = head[1] if len(head) > 1 else None
        for key, value in _OPTION.findall(chunk):
            entry.options[key] = _unquote(value)
        return entry


def _unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return re.sub(r"\\(.)", r"\1", value[1:-1])
    return value
