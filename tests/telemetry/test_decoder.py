"""Tests for the JSON telemetry frame decoder."""

from __future__ import annotations

import json
from typing import Any

import pytest

from gcslink.errors import DecodeError, FieldRangeError, MalformedFrameError
from gcslink.telemetry.decoder import TelemetryDecoder


class TestDecodeValid:
    def test_decodes_bytes(self, make_frame: Any) -> None:
        sample = TelemetryDecoder().decode(make_frame())
        assert sample.timestamp == 1737264000.0
        assert sample.temperature == 24.1
        assert sample.voltage == 11.9
        assert (sample.gyro_x, sample.gyro_y, sample.gyro_z) == (3.2, -1.0, 0.4)
        assert sample.altitude == 412.5
        assert sample.altitude_rate == 12.7
        assert sample.latitude == -7.7714
        assert sample.longitude == 110.3775
        assert sample.launch_stage == 2
        assert sample.error_code == 0
        assert sample.raw.startswith("RAW|")

    def test_decodes_text(self, make_frame: Any) -> None:
        sample = TelemetryDecoder().decode(make_frame().decode())
        assert sample.altitude == 412.5

    def test_integer_numbers_accepted_for_float_fields(self, make_frame: Any) -> None:
        sample = TelemetryDecoder().decode(make_frame(timestamp=1737264000, altitude=0))
        assert sample.timestamp == 1737264000.0
        assert sample.altitude == 0.0

    def test_extra_keys_ignored(self, make_frame: Any) -> None:
        sample = TelemetryDecoder().decode(make_frame(firmware="1.4.2"))
        assert not hasattr(sample, "firmware")

    def test_decode_is_deterministic(self, make_frame: Any) -> None:
        decoder = TelemetryDecoder()
        frame = make_frame()
        assert decoder.decode(frame) == decoder.decode(frame)

    def test_boundary_codes_accepted(self, make_frame: Any) -> None:
        decoder = TelemetryDecoder()
        assert decoder.decode(make_frame(launchStatus=0, errorCode=0)).launch_stage == 0
        assert decoder.decode(make_frame(launchStatus=5, errorCode=5)).error_code == 5


class TestDecodeMalformed:
    def test_invalid_json(self) -> None:
        with pytest.raises(MalformedFrameError, match="not valid JSON"):
            TelemetryDecoder().decode(b"{not json")

    def test_invalid_utf8(self) -> None:
        with pytest.raises(MalformedFrameError, match="UTF-8"):
            TelemetryDecoder().decode(b"\xff\xfe\x00")

    def test_non_object_payload(self) -> None:
        with pytest.raises(MalformedFrameError, match="JSON object"):
            TelemetryDecoder().decode(b"[1, 2, 3]")

    def test_missing_field(self, make_payload: Any) -> None:
        payload = make_payload()
        del payload["voltage"]
        with pytest.raises(MalformedFrameError, match="voltage"):
            TelemetryDecoder().decode(json.dumps(payload))

    def test_wrong_type(self, make_frame: Any) -> None:
        with pytest.raises(MalformedFrameError, match="temperature"):
            TelemetryDecoder().decode(make_frame(temperature="hot"))

    def test_numeric_string_rejected(self, make_frame: Any) -> None:
        with pytest.raises(MalformedFrameError, match="altitude"):
            TelemetryDecoder().decode(make_frame(altitude="412.5"))

    def test_fractional_code_rejected(self, make_frame: Any) -> None:
        with pytest.raises(MalformedFrameError, match="launchStatus"):
            TelemetryDecoder().decode(make_frame(launchStatus=2.5))

    def test_boolean_code_rejected(self, make_frame: Any) -> None:
        with pytest.raises(MalformedFrameError, match="errorCode"):
            TelemetryDecoder().decode(make_frame(errorCode=True))

    def test_nan_rejected(self, make_payload: Any) -> None:
        frame = json.dumps(make_payload(voltage=float("nan")))
        assert "NaN" in frame
        with pytest.raises(MalformedFrameError, match="voltage"):
            TelemetryDecoder().decode(frame)

    def test_infinity_rejected(self, make_payload: Any) -> None:
        frame = json.dumps(make_payload(altitude=float("inf")))
        with pytest.raises(MalformedFrameError, match="altitude"):
            TelemetryDecoder().decode(frame)

    def test_multiple_problems_summarised(self, make_payload: Any) -> None:
        payload = make_payload()
        del payload["voltage"]
        del payload["latitude"]
        with pytest.raises(MalformedFrameError, match=r"\(\+1 more\)"):
            TelemetryDecoder().decode(json.dumps(payload))

    def test_deeply_nested_json(self) -> None:
        frame = b"[" * 100_000 + b"]" * 100_000
        with pytest.raises(MalformedFrameError, match="nested too deeply"):
            TelemetryDecoder().decode(frame)

    def test_oversized_integer_literal(self) -> None:
        frame = b'{"timestamp": ' + b"9" * 5000 + b"}"
        with pytest.raises(MalformedFrameError, match="not valid JSON"):
            TelemetryDecoder().decode(frame)

    def test_decode_errors_are_value_errors(self) -> None:
        with pytest.raises(ValueError):
            TelemetryDecoder().decode(b"")


class TestCodeRanges:
    def test_launch_status_out_of_range(self, make_frame: Any) -> None:
        with pytest.raises(FieldRangeError) as exc_info:
            TelemetryDecoder().decode(make_frame(launchStatus=7))
        assert exc_info.value.field == "launchStatus"
        assert exc_info.value.value == 7
        assert "0..5" in str(exc_info.value)

    def test_negative_error_code(self, make_frame: Any) -> None:
        with pytest.raises(FieldRangeError) as exc_info:
            TelemetryDecoder().decode(make_frame(errorCode=-1))
        assert exc_info.value.field == "errorCode"

    def test_range_error_is_decode_error(self, make_frame: Any) -> None:
        with pytest.raises(DecodeError):
            TelemetryDecoder().decode(make_frame(errorCode=9))

    def test_lenient_mode_passes_codes_through(self, make_frame: Any) -> None:
        decoder = TelemetryDecoder(strict_codes=False)
        assert decoder.strict_codes is False
        sample = decoder.decode(make_frame(launchStatus=6, errorCode=9))
        assert sample.launch_stage == 6
        assert sample.error_code == 9

    def test_lenient_mode_still_rejects_malformed(self, make_frame: Any) -> None:
        with pytest.raises(MalformedFrameError):
            TelemetryDecoder(strict_codes=False).decode(make_frame(launchStatus="six"))
