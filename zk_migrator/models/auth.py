"""Authentication modes for ZooKeeper sessions.

Exactly one mode is active per migration, so the modes are a tagged union discriminated
on ``mode`` rather than a set of optional fields.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import DEFAULT_SASL_MECHANISM, DEFAULT_SASL_SERVICE, PERM_ALL
from .node import AclEntry


def open_acl() -> list[AclEntry]:
    """world:anyone with every permission."""
    return [AclEntry(scheme="world", id="anyone", perms=PERM_ALL)]


def creator_all_acl() -> list[AclEntry]:
    """Every permission for the identities authenticated on the creating session."""
    return [AclEntry(scheme="auth", id="", perms=PERM_ALL)]


class OpenAuth(BaseModel):
    """No credentials."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["open"] = "open"

    def default_acl(self) -> list[AclEntry]:
        return open_acl()


class DigestAuth(BaseModel):
    """Shared-secret ``username:password`` digest authentication."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["digest"] = "digest"
    credential: bytes = Field(repr=False)

    @field_validator("credential")
    @classmethod
    def check_credential(cls, v: bytes) -> bytes:
        username, sep, _ = v.partition(b":")
        if not sep or not username:
            raise ValueError("digest credential must look like username:password")
        return v

    @property
    def username(self) -> str:
        return self.credential.partition(b":")[0].decode("utf-8")

    def default_acl(self) -> list[AclEntry]:
        return creator_all_acl()


class SaslAuth(BaseModel):
    """Kerberos (GSSAPI) authentication resolved from a JAAS login configuration."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["sasl"] = "sasl"
    jaas_config: str
    principal: str | None = None
    service: str = DEFAULT_SASL_SERVICE
    mechanism: str = DEFAULT_SASL_MECHANISM

    def default_acl(self) -> list[AclEntry]:
        return creator_all_acl()


AuthMode = Annotated[OpenAuth | DigestAuth | SaslAuth, Field(discriminator="mode")]
