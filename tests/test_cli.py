"""Command-line tests driven through click's CliRunner with the in-memory transport."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import NET_UDID, USB_UDID, FakePrompt
from pairing_cli.cli import main
from pairing_cli.core import Operation, SessionOrchestrator
from pairing_cli.mock import MockTransport


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _invoke(runner: CliRunner, orchestrator: SessionOrchestrator, *args: str):
    return runner.invoke(main, list(args), obj={"orchestrator": orchestrator})


def _last_json(output: str):
    return json.loads(output.strip().splitlines()[-1])


def test_devices_lists_in_order(runner: CliRunner, orchestrator: SessionOrchestrator) -> None:
    result = _invoke(runner, orchestrator, "devices")

    assert result.exit_code == 0, result.output
    data = _last_json(result.output)
    assert [d["udid"] for d in data] == [USB_UDID, NET_UDID]
    assert [d["connection_type"] for d in data] == ["usb", "network"]


def test_devices_without_devices_exits_nonzero(runner: CliRunner) -> None:
    result = _invoke(runner, SessionOrchestrator(MockTransport([])), "devices")

    assert result.exit_code == 1
    assert _last_json(result.output)["kind"] == "no_devices_found"


def test_export(runner: CliRunner, orchestrator: SessionOrchestrator, transport: MockTransport, tmp_path: Path) -> None:
    transport.records[USB_UDID] = b"payload"

    result = _invoke(runner, orchestrator, "--udid", USB_UDID, "export", "--output-dir", str(tmp_path))

    assert result.exit_code == 0, result.output
    data = _last_json(result.output)
    assert data["status"] == "ok"
    assert data["udid"] == USB_UDID
    assert (tmp_path / f"{USB_UDID}.plist").read_bytes() == b"payload"


def test_export_missing_record(runner: CliRunner, orchestrator: SessionOrchestrator, tmp_path: Path) -> None:
    result = _invoke(runner, orchestrator, "--udid", USB_UDID, "export", "-o", str(tmp_path))

    assert result.exit_code == 1
    data = _last_json(result.output)
    assert data["kind"] == "pairing_record_not_found"
    assert data["udid"] == USB_UDID


def test_test_wifi_invalid_ip(runner: CliRunner, orchestrator: SessionOrchestrator) -> None:
    result = _invoke(runner, orchestrator, "--udid", USB_UDID, "test-wifi", "--ip", "nope")

    assert result.exit_code == 1
    assert _last_json(result.output)["kind"] == "invalid_address"


def test_test_wifi_failure_exits_nonzero(
    runner: CliRunner, orchestrator: SessionOrchestrator, transport: MockTransport
) -> None:
    transport.records[USB_UDID] = b"payload"

    result = _invoke(runner, orchestrator, "--udid", USB_UDID, "test-wifi", "--ip", "10.9.9.9")

    assert result.exit_code == 1
    assert _last_json(result.output)["status"] == "failed"


def test_regenerate_over_network_is_rejected(runner: CliRunner, orchestrator: SessionOrchestrator) -> None:
    result = _invoke(runner, orchestrator, "--udid", NET_UDID, "regenerate", "-o", "unused")

    assert result.exit_code == 1
    assert _last_json(result.output)["kind"] == "wrong_transport_for_pairing"


def test_menu_runs_chosen_operation(runner: CliRunner, transport: MockTransport, tmp_path: Path) -> None:
    prompt = FakePrompt(directory=tmp_path, operation=Operation.REGENERATE)
    orchestrator = SessionOrchestrator(transport, prompt=prompt)

    result = _invoke(runner, orchestrator)

    assert result.exit_code == 0, result.output
    assert prompt.calls == ["choose_device", "choose_operation", "choose_directory"]
    assert (tmp_path / f"{USB_UDID}.plist").exists()


def test_mock_flag_uses_sample_devices(runner: CliRunner) -> None:
    result = runner.invoke(main, ["--mock", "devices"])

    assert result.exit_code == 0, result.output
    assert [d["name"] for d in _last_json(result.output)] == ["Mock iPhone", "Mock iPad"]
