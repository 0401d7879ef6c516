"""Tests for the og-sign-url command in ogimage/cli/sign_url.py."""

import time
from urllib.parse import parse_qs, urlsplit

import pytest

from ogimage.cli.sign_url import resolve_secret, run, sign_url
from ogimage.security.signing import SignatureAuthority, build_signing_payload, compute_signature, parse_query

SOURCE_URL = "https://example.com/api/og_x?title=Hello&site=Blog"


def _query(url: str) -> dict[str, list[str]]:
    return parse_qs(urlsplit(url).query)


class TestSignUrl:
    def test_signature_matches_canonical_payload(self):
        signed = sign_url(SOURCE_URL, "test-secret")
        expected = compute_signature(build_signing_payload(parse_query(urlsplit(signed).query)), "test-secret")
        assert _query(signed)["sig"] == [expected]

    def test_server_accepts_signed_url(self):
        assert SignatureAuthority("test-secret").verify(sign_url(SOURCE_URL, "test-secret"))

    def test_param_order_does_not_matter(self):
        a = _query(sign_url("https://example.com/api/og_x?title=Hello&site=Blog", "s"))["sig"]
        b = _query(sign_url("https://example.com/api/og_x?site=Blog&title=Hello", "s"))["sig"]
        assert a == b

    def test_replaces_existing_sig_and_exp(self):
        signed = sign_url(SOURCE_URL + "&sig=stale&exp=1", "test-secret", exp=2_000_000_000)
        query = _query(signed)
        assert query["exp"] == ["2000000000"]
        assert len(query["sig"]) == 1
        assert query["sig"] != ["stale"]

    def test_keeps_path_and_unicode_values(self):
        signed = sign_url("https://example.com/api/og_x?title=%E4%BD%A0%E5%A5%BD", "s")
        assert signed.startswith("https://example.com/api/og_x?")
        assert SignatureAuthority("s").verify(signed)


class TestResolveSecret:
    def test_precedence(self):
        env = {"OG_SIGNATURE_SECRET": "sig", "OG_SECRET": "unified"}
        assert resolve_secret("explicit", env) == "explicit"
        assert resolve_secret(None, env) == "sig"
        assert resolve_secret(None, {"OG_SECRET": " unified "}) == "unified"
        assert resolve_secret(None, {}) == ""


class TestRun:
    def test_prints_signed_url(self, capsys):
        assert run(["--url", SOURCE_URL, "--secret", "test-secret"], env={}) == 0
        signed = capsys.readouterr().out.strip()
        assert SignatureAuthority("test-secret").verify(signed)

    def test_secret_from_environment(self, capsys):
        assert run(["--url", SOURCE_URL], env={"OG_SECRET": "env-secret"}) == 0
        assert SignatureAuthority("env-secret").verify(capsys.readouterr().out.strip())

    def test_exp_seconds(self, capsys):
        now = int(time.time())
        assert run(["--url", SOURCE_URL, "--secret", "s", "--exp-seconds", "120"], env={}) == 0
        exp = int(_query(capsys.readouterr().out.strip())["exp"][0])
        assert now + 119 <= exp <= now + 121

    def test_absolute_exp(self, capsys):
        assert run(["--url", SOURCE_URL, "--secret", "s", "--exp", "2000000000"], env={}) == 0
        assert _query(capsys.readouterr().out.strip())["exp"] == ["2000000000"]

    def test_missing_secret(self, capsys):
        code = run(["--url", SOURCE_URL], env={"OG_SECRET": "", "OG_SIGNATURE_SECRET": ""})
        assert code == 1
        assert "Missing secret" in capsys.readouterr().err

    @pytest.mark.parametrize("flag", ["--exp", "--exp-seconds"])
    def test_invalid_exp(self, capsys, flag):
        assert run(["--url", SOURCE_URL, "--secret", "s", flag, "invalid"], env={}) == 1
        assert f"Invalid {flag}" in capsys.readouterr().err

    def test_missing_url_prints_usage(self, capsys):
        assert run([], env={}) == 1
        assert "usage" in capsys.readouterr().err
