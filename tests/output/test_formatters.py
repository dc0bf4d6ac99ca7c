"""Tests for the format_result dispatcher and OutputSettings."""

import json

from dotctl.output.formatters import OutputSettings, format_result
from dotctl.services.result import ServiceError, ServiceResult


def _ok(op: str = "test", **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


def _err(op: str = "test", msg: str = "fail") -> ServiceResult:
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code="ERR", message=msg),
    )


class TestOutputSettings:
    def test_defaults(self) -> None:
        s = OutputSettings()
        assert s.json_output is False
        assert s.quiet is False
        assert s.verbose is False


class TestFormatResultJSON:
    def test_json_mode_returns_valid_json(self) -> None:
        output = format_result(_ok("install", changed=1), settings=OutputSettings(json_output=True))
        data = json.loads(output)
        assert data["ok"] is True
        assert data["op"] == "install"
        assert data["data"]["changed"] == 1

    def test_json_mode_error(self) -> None:
        output = format_result(_err("install", "Bad"), json_output=True)
        data = json.loads(output)
        assert data["ok"] is False
        assert data["error"]["message"] == "Bad"

    def test_settings_overrides_legacy_kwarg(self) -> None:
        output = format_result(_ok(), settings=OutputSettings(), json_output=True)
        assert output.startswith("OK")


class TestFormatResultQuiet:
    def test_quiet_success(self) -> None:
        assert format_result(_ok("doctor"), settings=OutputSettings(quiet=True)) == "OK: doctor"

    def test_quiet_error(self) -> None:
        result = _err("inject", "2 of 2 template(s) failed")
        output = format_result(result, settings=OutputSettings(quiet=True))
        assert output == "ERROR: inject — 2 of 2 template(s) failed"
