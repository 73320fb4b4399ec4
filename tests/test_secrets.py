import pytest

from ambari_manager.errors import ConfigurationError
from ambari_manager.secrets import SecretResolver


def _fake_boto3(response: dict):
    class FakeClient:
        def get_secret_value(self, SecretId):
            return response

    class FakeBoto3:
        def client(self, name):
            assert name == "secretsmanager"
            return FakeClient()

    return FakeBoto3()


def test_secret_resolver_plaintext_with_key(monkeypatch):
    monkeypatch.setattr("ambari_manager.secrets.boto3", _fake_boto3({"SecretString": "mypassword"}))

    values = SecretResolver().resolve({"password": {"aws_secret": "plain", "key": "password"}})
    assert values["password"] == "mypassword"


def test_secret_resolver_binary_secret(monkeypatch):
    monkeypatch.setattr("ambari_manager.secrets.boto3", _fake_boto3({"SecretBinary": "aGVsbG8="}))

    assert SecretResolver().resolve_value({"aws_secret": "bin"}) == "hello"


def test_secret_resolver_missing_key(monkeypatch):
    monkeypatch.setattr("ambari_manager.secrets.boto3", _fake_boto3({"SecretString": '{"a": "1"}'}))

    with pytest.raises(ConfigurationError, match="no key 'b'"):
        SecretResolver().resolve_value({"aws_secret": "json", "key": "b"})


def test_secret_resolver_requires_boto3(monkeypatch):
    monkeypatch.setattr("ambari_manager.secrets.boto3", None)

    with pytest.raises(ConfigurationError, match="boto3 is required"):
        SecretResolver().resolve_value({"aws_secret": "x"})


def test_plain_values_pass_through():
    assert SecretResolver().resolve({"a": [1, {"b": "c"}]}) == {"a": [1, {"b": "c"}]}
