"""Tests for endpoint parsing and credential resolution."""

import pytest

from zk_migrator.core.endpoint import parse_endpoint, resolve_auth
from zk_migrator.core.exceptions import ConfigurationError
from zk_migrator.models.auth import DigestAuth, OpenAuth, SaslAuth

JAAS = """
Client {
  com.sun.security.auth.module.Krb5LoginModule required
  useKeyTab=true
  keyTab="/etc/security/zkcli.keytab"
  principal="zkcli@EXAMPLE.COM";
};
"""


class TestParseEndpoint:
    """Test parsing of host:port/chroot strings."""

    @pytest.mark.parametrize(
        "value, hosts, chroot",
        [
            ("zk1", ["zk1:2181"], "/"),
            ("zk1:2182", ["zk1:2182"], "/"),
            ("zk1:2181,zk2:2182,zk3", ["zk1:2181", "zk2:2182", "zk3:2181"], "/"),
            ("zk1/kafka", ["zk1:2181"], "/kafka"),
            ("zk1:2181/kafka/prod/", ["zk1:2181"], "/kafka/prod"),
            ("zk1/", ["zk1:2181"], "/"),
            (" zk1 , zk2 /app", ["zk1:2181", "zk2:2181"], "/app"),
            ("[::1]:2200/app", ["[::1]:2200"], "/app"),
            ("[fe80::1]", ["[fe80::1]:2181"], "/"),
            ("10.0.0.5:2181", ["10.0.0.5:2181"], "/"),
        ],
    )
    def test_valid(self, value, hosts, chroot):
        endpoint = parse_endpoint(value)

        assert endpoint.hosts == hosts
        assert endpoint.chroot_path == chroot

    @pytest.mark.parametrize(
        "value, message",
        [
            ("", "empty"),
            ("   ", "empty"),
            ("zk1,,zk2", "empty host"),
            ("/kafka", "empty host"),
            (":2181", "empty host"),
            ("zk1:abc", "invalid port"),
            ("zk1:", "invalid port"),
            ("zk1:0", "out of valid range"),
            ("zk1:65536", "out of valid range"),
            ("::1", "must be bracketed"),
            ("zk1/a//b", "invalid chroot"),
            ("zk1/a/../b", "invalid chroot"),
        ],
    )
    def test_invalid(self, value, message):
        with pytest.raises(ConfigurationError, match=message):
            parse_endpoint(value)

    def test_str_round_trip(self):
        """Test the endpoint renders back to a connect string with its chroot."""
        endpoint = parse_endpoint("zk1,zk2:2182/kafka")

        assert str(endpoint) == "zk1:2181,zk2:2182/kafka"
        assert parse_endpoint(str(endpoint)) == endpoint


class TestResolveAuth:
    """Test building the auth mode from CLI options."""

    def test_open_by_default(self):
        assert resolve_auth() == OpenAuth()

    def test_digest(self):
        auth = resolve_auth("alice:secret")

        assert isinstance(auth, DigestAuth)
        assert auth.username == "alice"
        assert auth.credential == b"alice:secret"
        assert "secret" not in repr(auth)

    @pytest.mark.parametrize("credential", ["alice", ":secret"])
    def test_malformed_digest(self, credential):
        with pytest.raises(ConfigurationError, match="username:password"):
            resolve_auth(credential)

    def test_mutually_exclusive(self, tmp_path):
        with pytest.raises(ConfigurationError, match="mutually exclusive"):
            resolve_auth("alice:secret", tmp_path / "jaas.conf")

    def test_kerberos(self, tmp_path):
        """Test the principal is read from the JAAS Client section."""
        jaas = tmp_path / "jaas.conf"
        jaas.write_text(JAAS)

        auth = resolve_auth(krb_conf=jaas)

        assert isinstance(auth, SaslAuth)
        assert auth.principal == "zkcli@EXAMPLE.COM"
        assert auth.service == "zookeeper"
        assert auth.jaas_config == str(jaas)

    def test_kerberos_service_name_and_section(self, tmp_path):
        jaas = tmp_path / "jaas.conf"
        jaas.write_text(
            'ZkMirror { com.sun.security.auth.module.Krb5LoginModule required '
            'serviceName="zk-prod" useTicketCache=true; };'
        )

        auth = resolve_auth(krb_conf=jaas, jaas_section="ZkMirror")

        assert auth.service == "zk-prod"
        assert auth.principal is None

    def test_kerberos_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            resolve_auth(krb_conf=tmp_path / "missing.conf")
