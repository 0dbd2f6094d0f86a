"""CLI tests for the Cloud KMS encrypt and decrypt tools."""

from __future__ import annotations

import base64
import json
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from google.api_core.exceptions import PermissionDenied
from typer.testing import CliRunner

from actors.cloudkms import common, decrypt, encrypt
from packages.service_kit.secrets import new_secrets_client

KMS_ARGS = [
    "--gcp-project-id",
    "proj",
    "--cloudkms-key-ring",
    "ring",
    "--cloudkms-key",
    "key",
]


class FakeKms:
    """Reversible stand-in for the KMS API."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    def encrypt(self, request: Any = None, **_: Any) -> Any:
        if self.fail:
            raise PermissionDenied("denied")
        return SimpleNamespace(ciphertext=b"enc:" + request["plaintext"], name=request["name"])

    def decrypt(self, request: Any = None, **_: Any) -> Any:
        if self.fail:
            raise PermissionDenied("denied")
        return SimpleNamespace(plaintext=request["ciphertext"].removeprefix(b"enc:"))


@pytest.fixture(autouse=True)
def _remote_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Emit JSON log lines so output can be asserted on."""
    for name in ("DATABASE_URL", "DEBUG", "DYNO", "PORT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("REMOTE", "1")


def _use_kms(monkeypatch: pytest.MonkeyPatch, kms: FakeKms) -> None:
    def factory(ctx: Any, config: Any, log_client: Any) -> Any:
        return new_secrets_client(ctx, config, log_client, kms)

    monkeypatch.setattr(common, "new_secrets_client", factory)


def _logs(output: str) -> list[dict[str, Any]]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


def test_encrypt_plaintext_and_save_secret_file(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """Encrypting with save-as flags should write the secret JSON file."""
    _use_kms(monkeypatch, FakeKms())

    result = CliRunner().invoke(
        encrypt.app,
        [
            *KMS_ARGS,
            "--plaintext",
            "hunter2",
            "--save-as-secret-domain",
            "db",
            "--save-as-secret-type",
            "password",
            "--output-dir",
            str(tmp_path),
        ],
    )

    assert result.exit_code == 0, result.output
    saved = tmp_path / "db_password_cloudkms-dev.json"
    text = saved.read_text(encoding="utf-8")
    assert "\n\t" in text
    assert base64.b64decode(json.loads(text)["ciphertext"]) == b"enc:hunter2"

    logs = _logs(result.stdout)
    assert all(line["correlation_id"] == "START_UP" for line in logs)
    messages = [line["message"] for line in logs]
    assert messages.index("Starting") < messages.index("Passed flag check")
    assert messages[-1] == "Saved"


def test_encrypt_reads_plaintext_from_file(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """--path-to-file should supply the plaintext."""
    _use_kms(monkeypatch, FakeKms())
    source = tmp_path / "plain.txt"
    source.write_bytes(b"from file")

    result = CliRunner().invoke(encrypt.app, [*KMS_ARGS, "--path-to-file", str(source)])

    assert result.exit_code == 0, result.output
    encrypted = [line for line in _logs(result.stdout) if line["message"] == "Encrypted"]
    secret = encrypted[0]["fields"]["secret"]["value"]
    assert base64.b64decode(secret["ciphertext"]) == b"enc:from file"


@pytest.mark.parametrize(
    ("args", "message"),
    [
        (
            [*KMS_ARGS],
            "Either `--plaintext` or `--path-to-file` flag values must be provided, not both",
        ),
        (
            [*KMS_ARGS, "--plaintext", "x", "--path-to-file", "y"],
            "Either `--plaintext` or `--path-to-file` flag values must be provided, not both",
        ),
        (
            [*KMS_ARGS, "--plaintext", "x", "--save-as-secret-domain", "db"],
            "Both or neither `--save-as-secret-domain` and `--save-as-secret-type` flag values"
            " must be provided",
        ),
        ([*KMS_ARGS, "--plaintext", "x", "--env", ""], "Missing `--env` flag value"),
        (
            ["--plaintext", "x", "--cloudkms-key-ring", "ring", "--cloudkms-key", "key"],
            "Missing `--gcp-project-id` flag value",
        ),
        (
            ["--plaintext", "x", "--gcp-project-id", "proj", "--cloudkms-key-ring", "ring"],
            "Missing `--cloudkms-key` flag value",
        ),
        (
            ["--plaintext", "x", "--gcp-project-id", "proj", "--cloudkms-key", "key"],
            "Missing `--cloudkms-key-ring` flag value",
        ),
    ],
)
def test_encrypt_flag_checks_exit_fatally(
    monkeypatch: pytest.MonkeyPatch, args: list[str], message: str
) -> None:
    """Flag problems should be logged as fatal with exit code 1."""
    _use_kms(monkeypatch, FakeKms())

    result = CliRunner().invoke(encrypt.app, args)

    assert result.exit_code == 1
    last = _logs(result.stdout)[-1]
    assert last["severity"] == "CRITICAL"
    assert last["message"] == "Failed flag check"
    assert last["fields"]["error"]["friendly"] == message


def test_decrypt_ciphertext_and_save_plaintext(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """Decrypting with save-as flags should write the plaintext file."""
    _use_kms(monkeypatch, FakeKms())
    ciphertext = base64.b64encode(b"enc:hunter2").decode()

    result = CliRunner().invoke(
        decrypt.app,
        [
            *KMS_ARGS,
            "--ciphertext",
            ciphertext,
            "--save-as-secret-domain",
            "db",
            "--save-as-secret-type",
            "password",
            "--save-as-file-type",
            "txt",
            "--output-dir",
            str(tmp_path),
        ],
    )

    assert result.exit_code == 0, result.output
    assert (tmp_path / "db_password_plaintext.txt").read_bytes() == b"hunter2"


def test_decrypt_reads_secret_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """--path-to-file should load a saved secret JSON file."""
    _use_kms(monkeypatch, FakeKms())
    secret_file = tmp_path / "db_password_cloudkms-dev.json"
    secret_file.write_text(
        json.dumps({"ciphertext": base64.b64encode(b"enc:saved").decode()}), encoding="utf-8"
    )

    result = CliRunner().invoke(decrypt.app, [*KMS_ARGS, "--path-to-file", str(secret_file)])

    assert result.exit_code == 0, result.output
    decrypted = [line for line in _logs(result.stdout) if line["message"] == "Decrypted"]
    assert decrypted[0]["fields"]["plaintext"] == "saved"


@pytest.mark.parametrize(
    ("args", "kms", "message"),
    [
        (["--ciphertext", "not base64!"], FakeKms(), "Failed reading secret"),
        (["--path-to-file", "/nonexistent/secret.json"], FakeKms(), "Failed reading secret"),
        (["--ciphertext", "ZW5jOng="], FakeKms(fail=True), "Failed decrypting ciphertext"),
    ],
)
def test_decrypt_failures_exit_fatally(
    monkeypatch: pytest.MonkeyPatch, args: list[str], kms: FakeKms, message: str
) -> None:
    """Unreadable secrets and KMS failures should exit with code 1."""
    _use_kms(monkeypatch, kms)

    result = CliRunner().invoke(decrypt.app, [*KMS_ARGS, *args])

    assert result.exit_code == 1
    assert _logs(result.stdout)[-1]["message"] == message


def test_check_flags_passes_complete_flags() -> None:
    """Complete, consistent flags should pass the check."""
    flags = common.KmsFlags(
        env="dev",
        gcp_project_id="proj",
        cloudkms_key="key",
        cloudkms_key_ring="ring",
        save_as_secret_domain="db",
        save_as_secret_type="password",
    )
    common.check_flags("ciphertext", "abc", "", flags)
