"""Tests for oauthview.trust.certificates."""

from __future__ import annotations

import re
from pathlib import Path

import pytest
from cryptography import x509

from oauthview.exceptions import CertificateError
from oauthview.models import SslErrorInfo
from oauthview.trust.certificates import (
    certificate_to_pem,
    describe_certificate,
    extract_certificate,
    fingerprint_sha256,
    load_certificate_file,
    parse_certificate,
)


class TestParseCertificate:
    def test_pem(self, certificate: x509.Certificate, certificate_pem: bytes) -> None:
        assert parse_certificate(certificate_pem) == certificate

    def test_pem_with_surrounding_whitespace(
        self, certificate: x509.Certificate, certificate_pem: bytes
    ) -> None:
        assert parse_certificate(b"\n  " + certificate_pem + b"\n\n") == certificate

    def test_der(self, certificate: x509.Certificate, certificate_der: bytes) -> None:
        assert parse_certificate(certificate_der) == certificate

    def test_garbage_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_certificate(b"\x00\x01garbage")


class TestExtractCertificate:
    def test_returns_certificate(self, certificate, certificate_pem: bytes) -> None:
        error = SslErrorInfo(url="https://idp.example.com", certificate=certificate_pem)
        assert extract_certificate(error) == certificate

    @pytest.mark.parametrize("raw", [None, b"", b"garbage", b"-----BEGIN CERTIFICATE-----\n"])
    def test_unusable_data_yields_none(self, raw) -> None:
        assert extract_certificate(SslErrorInfo(url="https://x", certificate=raw)) is None


class TestLoadCertificateFile:
    def test_loads_pem_file(self, certificate, certificate_file: Path) -> None:
        assert load_certificate_file(certificate_file) == certificate

    def test_loads_der_file(self, tmp_path: Path, certificate, certificate_der: bytes) -> None:
        path = tmp_path / "idp.der"
        path.write_bytes(certificate_der)
        assert load_certificate_file(str(path)) == certificate

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(CertificateError, match="not found"):
            load_certificate_file(tmp_path / "nope.pem")

    def test_not_a_certificate(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        with pytest.raises(CertificateError, match="Not an X.509 certificate"):
            load_certificate_file(path)


class TestDescribe:
    def test_fingerprint_format(self, certificate) -> None:
        fingerprint = fingerprint_sha256(certificate)
        assert re.fullmatch(r"([0-9A-F]{2}:){31}[0-9A-F]{2}", fingerprint)

    def test_distinct_certificates_distinct_fingerprints(
        self, certificate, other_certificate
    ) -> None:
        assert fingerprint_sha256(certificate) != fingerprint_sha256(other_certificate)

    def test_pem_roundtrip(self, certificate) -> None:
        pem = certificate_to_pem(certificate)
        assert pem.startswith("-----BEGIN CERTIFICATE-----")
        assert parse_certificate(pem.encode("ascii")) == certificate

    def test_describe_fields(self, certificate) -> None:
        details = describe_certificate(certificate)
        assert details["subject"] == "CN=idp.example.com"
        assert details["issuer"] == "CN=idp.example.com"
        assert details["fingerprint"] == fingerprint_sha256(certificate)
        assert details["serial"] == f"{certificate.serial_number:X}"
        assert details["not_valid_before"] < details["not_valid_after"]
