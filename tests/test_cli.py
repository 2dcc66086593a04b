"""Tests for signable.ui.cli -- argument parsing and command handlers."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from signable.core.lifecycle import EventKind, SignatureEvent
from signable.core.models import SignatureStatus
from signable.core.text import SanitizeMode
from signable.errors import ConfigError, ProviderError
from signable.signing.orchestrator import SigningOrchestrator
from signable.storage.memory import InMemoryDocumentStore
from signable.ui.cli import build_parser, main

LANDLORD = "Ann Lee:ann@example.com"
TENANT = "Bo Park:bo@example.com"


@pytest.fixture
def body_file(tmp_path, lease_body):
    path = tmp_path / "body.html"
    path.write_text(lease_body, encoding="utf-8")
    return path


@pytest.fixture
def orchestrator(mock_provider, store):
    orchestrator = SigningOrchestrator(mock_provider, store)
    with (
        patch("signable.ui.cli.documents.open_orchestrator", return_value=orchestrator),
        patch("signable.ui.cli.documents.open_store", return_value=store),
    ):
        yield orchestrator


def _exit_code(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


# ── Parser ────────────────────────────────────────────────────────


def test_no_command_prints_help(capsys):
    assert _exit_code([]) == 1
    assert "usage" in capsys.readouterr().out.lower()


def test_version(capsys):
    assert _exit_code(["-V"]) == 0
    assert "signable" in capsys.readouterr().out


def test_parser_repeatable_parties():
    args = build_parser().parse_args(
        ["send", "doc-1", "--landlord", LANDLORD, "--tenant", TENANT, "--tenant", "C:c@x.com"]
    )
    assert args.landlord == [LANDLORD]
    assert args.tenant == [TENANT, "C:c@x.com"]


def test_parser_setup_mode_flags():
    parser = build_parser()
    assert parser.parse_args(["setup"]).test_mode is None
    assert parser.parse_args(["setup", "--test-mode"]).test_mode is True
    assert parser.parse_args(["setup", "--live"]).test_mode is False


# ── render ────────────────────────────────────────────────────────


def test_render_writes_pdf(tmp_path, body_file, capsys):
    out = tmp_path / "lease.pdf"
    main(["render", "Residential Lease", str(body_file), "-o", str(out)])
    assert out.read_bytes().startswith(b"%PDF-")
    stdout = capsys.readouterr().out
    assert "1 page(s)" in stdout
    assert "Landlord signature: page 1" in stdout
    assert "Tenant signature: page 1" in stdout


def test_render_with_parties(tmp_path, body_file, capsys):
    out = tmp_path / "lease.pdf"
    main(["render", "Lease", str(body_file), "-o", str(out), "--tenant", TENANT])
    stdout = capsys.readouterr().out
    assert "Tenant signature" in stdout
    assert "Landlord signature" not in stdout


def test_render_bad_party(tmp_path, body_file, capsys):
    out = tmp_path / "lease.pdf"
    assert _exit_code(["render", "L", str(body_file), "-o", str(out), "--tenant", "Bo"]) == 1
    assert "NAME:EMAIL" in capsys.readouterr().err
    assert not out.exists()


def test_render_missing_body(tmp_path, capsys):
    code = _exit_code(["render", "L", str(tmp_path / "none.md"), "-o", str(tmp_path / "x.pdf")])
    assert code == 1
    assert "not found" in capsys.readouterr().err


# ── add ───────────────────────────────────────────────────────────


def test_add_stores_document(body_file, capsys):
    store = InMemoryDocumentStore()
    with patch("signable.ui.cli.documents.open_store", return_value=store):
        main(["add", "Lease", str(body_file), "--id", "lease-7", "--plain"])
    doc = store.get("lease-7")
    assert doc.title == "Lease"
    assert doc.content_format is SanitizeMode.PLAIN
    assert "Added document lease-7" in capsys.readouterr().out


def test_add_generates_id(body_file, capsys):
    store = InMemoryDocumentStore()
    with patch("signable.ui.cli.documents.open_store", return_value=store):
        main(["add", "Lease", str(body_file)])
    doc_id = capsys.readouterr().out.split("Added document ")[1].split(":")[0]
    assert len(doc_id) == 12
    assert store.get(doc_id).content_format is SanitizeMode.MARKUP


def test_add_duplicate_id(body_file, store, capsys):
    with patch("signable.ui.cli.documents.open_store", return_value=store):
        assert _exit_code(["add", "Lease", str(body_file), "--id", "doc-1"]) == 1
    assert "already exists" in capsys.readouterr().err


# ── send ──────────────────────────────────────────────────────────


def test_send(orchestrator, mock_provider, capsys):
    main(["send", "doc-1", "--landlord", LANDLORD, "--tenant", TENANT, "--subject", "Sign"])
    assert "request req-1" in capsys.readouterr().out
    assert mock_provider.create_signing_request.call_args[1]["subject"] == "Sign"
    assert orchestrator.store.get("doc-1").signature_status is SignatureStatus.PENDING


def test_send_requires_party(orchestrator, capsys):
    assert _exit_code(["send", "doc-1"]) == 1
    assert "--landlord or --tenant" in capsys.readouterr().err


def test_send_twice(orchestrator, capsys):
    main(["send", "doc-1", "--tenant", TENANT])
    assert _exit_code(["send", "doc-1", "--tenant", TENANT]) == 1
    assert "Cancel it before sending again" in capsys.readouterr().err


def test_send_provider_error(orchestrator, mock_provider, capsys):
    mock_provider.create_signing_request.side_effect = ProviderError("HTTP 401", status=401)
    assert _exit_code(["send", "doc-1", "--tenant", TENANT]) == 1
    err = capsys.readouterr().err
    assert "failed to send for signature" in err
    assert "HTTP 401" in err


def test_send_without_api_key(capsys):
    with patch(
        "signable.ui.cli.documents.open_orchestrator",
        side_effect=ConfigError("No provider API key configured. Run 'signable setup' first."),
    ):
        assert _exit_code(["send", "doc-1", "--tenant", TENANT]) == 1
    assert "signable setup" in capsys.readouterr().err


# ── status / cancel / remind / download ───────────────────────────


def test_status_refreshes(orchestrator, mock_provider, capsys):
    main(["send", "doc-1", "--tenant", TENANT])
    capsys.readouterr()
    main(["status", "doc-1"])
    mock_provider.get_status.assert_called_once_with("req-1")
    out = capsys.readouterr().out
    assert "Status:    pending" in out
    assert "Bo Park <bo@example.com>: awaiting" in out


def test_status_no_refresh(orchestrator, mock_provider, capsys):
    main(["status", "doc-1", "--no-refresh"])
    mock_provider.get_status.assert_not_called()
    assert "Status:    none" in capsys.readouterr().out


def test_status_unknown_document(orchestrator, capsys):
    assert _exit_code(["status", "nope"]) == 1
    assert "Document not found" in capsys.readouterr().err


def test_cancel(orchestrator, mock_provider, capsys):
    main(["send", "doc-1", "--tenant", TENANT])
    main(["cancel", "doc-1"])
    mock_provider.cancel.assert_called_once_with("req-1")
    assert "doc-1: cancelled" in capsys.readouterr().out


def test_remind(orchestrator, mock_provider, capsys):
    main(["send", "doc-1", "--tenant", TENANT])
    main(["remind", "doc-1", "bo@example.com"])
    assert "Reminder sent to bo@example.com" in capsys.readouterr().out


def test_remind_not_needed(orchestrator, capsys):
    main(["send", "doc-1", "--tenant", TENANT])
    orchestrator.reconciler.apply_event(SignatureEvent(EventKind.COMPLETED, "req-1"))
    main(["remind", "doc-1", "bo@example.com"])
    assert "No reminder needed" in capsys.readouterr().out


def test_download(orchestrator, tmp_path, capsys):
    main(["send", "doc-1", "--tenant", TENANT])
    orchestrator.reconciler.apply_event(SignatureEvent(EventKind.COMPLETED, "req-1"))
    out = tmp_path / "signed.pdf"
    main(["download", "doc-1", "-o", str(out)])
    assert out.read_bytes() == b"%PDF-1.7 signed"


def test_download_not_completed(orchestrator, tmp_path, capsys):
    main(["send", "doc-1", "--tenant", TENANT])
    assert _exit_code(["download", "doc-1", "-o", str(tmp_path / "x.pdf")]) == 1
    assert "not completed" in capsys.readouterr().err


# ── serve-webhooks ────────────────────────────────────────────────


def test_serve_webhooks(store):
    with (
        patch("signable.ui.cli.documents.open_store", return_value=store),
        patch("signable.ui.cli.documents.get_webhook_secret", return_value="whsec"),
        patch("signable.ui.cli.documents.serve") as mock_serve,
    ):
        main(["serve-webhooks", "--port", "9000"])
    reconciler = mock_serve.call_args[0][0]
    assert reconciler.store is store
    assert reconciler.provider is None
    assert mock_serve.call_args[1] == {"host": "127.0.0.1", "port": 9000, "secret": "whsec"}


# ── setup / logout / reset ────────────────────────────────────────


def test_setup_saves_key_and_settings(config_dir, capsys):
    _, config_file, fake = config_dir
    with patch("signable.ui.cli.setup.getpass.getpass", return_value=" sk-new "):
        main(["setup", "--timeout", "45", "--test-mode", "--webhook-secret", "whsec"])
    assert fake.store[("signable", "signwell-api-key")] == "sk-new"
    data = json.loads(config_file.read_text(encoding="utf-8"))
    assert data == {"timeout": 45, "test_mode": True, "webhook_secret": "whsec"}
    assert "API key saved" in capsys.readouterr().out


def test_setup_saves_provider(config_dir):
    _, config_file, _ = config_dir
    with patch("signable.ui.cli.setup.getpass.getpass", return_value="dbs-key"):
        main(["setup", "--provider", "dropbox_sign"])
    data = json.loads(config_file.read_text(encoding="utf-8"))
    assert data == {"provider": "dropbox_sign"}


def test_parser_setup_rejects_unknown_provider():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["setup", "--provider", "docusign"])


def test_setup_keeps_existing_key(config_dir, capsys):
    _, _, fake = config_dir
    fake.set_password("signable", "signwell-api-key", "sk-old")
    with (
        patch("signable.ui.cli.setup.confirm_choice", return_value=False),
        patch("signable.ui.cli.setup.getpass.getpass") as mock_getpass,
    ):
        main(["setup"])
    mock_getpass.assert_not_called()
    assert fake.store[("signable", "signwell-api-key")] == "sk-old"
    assert "Keeping the existing API key" in capsys.readouterr().out


def test_setup_empty_key(config_dir, capsys):
    with patch("signable.ui.cli.setup.getpass.getpass", return_value=""):
        assert _exit_code(["setup"]) == 1
    assert "API key is required" in capsys.readouterr().err


def test_setup_rejects_http_url(config_dir, capsys):
    with patch("signable.ui.cli.setup.getpass.getpass", return_value="sk"):
        assert _exit_code(["setup", "--api-url", "http://plain.example.com"]) == 1
    assert "HTTPS" in capsys.readouterr().err


def test_logout(config_dir, capsys):
    _, _, fake = config_dir
    fake.set_password("signable", "signwell-api-key", "sk")
    main(["logout"])
    assert fake.store == {}
    assert "signable setup" in capsys.readouterr().out


def test_reset(config_dir, capsys):
    _, config_file, fake = config_dir
    fake.set_password("signable", "signwell-api-key", "sk")
    config_file.write_text('{"timeout": 10}', encoding="utf-8")
    main(["reset"])
    assert fake.store == {}
    assert json.loads(config_file.read_text(encoding="utf-8")) == {}
    assert "cleared" in capsys.readouterr().out.lower()
