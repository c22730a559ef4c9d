"""Unit tests for TransportConfig."""

from __future__ import annotations

import pytest

from lugma_starlette.config import TransportConfig
from lugma_starlette.errors import ConfigError


class TestTransportConfig:
    def test_defaults(self) -> None:
        config = TransportConfig()

        assert config.ok_status == 200
        assert config.rejected_status == 400
        assert config.invalid_request_status == 400
        assert config.close_code == 1000
        assert config.path_prefix == ""

    def test_prefix_trailing_slash_removed(self) -> None:
        assert TransportConfig(path_prefix="/api/").path_prefix == "/api"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"ok_status": 99},
            {"rejected_status": 600},
            {"close_code": 999},
            {"path_prefix": "api"},
        ],
    )
    def test_invalid_values(self, kwargs: dict) -> None:
        with pytest.raises(ConfigError):
            TransportConfig(**kwargs)

    def test_from_env(self) -> None:
        config = TransportConfig.from_env(
            {
                "LUGMA_OK_STATUS": "201",
                "LUGMA_REJECTED_STATUS": "422",
                "LUGMA_INVALID_REQUEST_STATUS": "415",
                "LUGMA_CLOSE_CODE": "4000",
                "LUGMA_PATH_PREFIX": "/rpc",
            }
        )

        assert config == TransportConfig(
            ok_status=201,
            rejected_status=422,
            invalid_request_status=415,
            close_code=4000,
            path_prefix="/rpc",
        )

    def test_from_env_empty_uses_defaults(self) -> None:
        assert TransportConfig.from_env({"LUGMA_OK_STATUS": ""}) == TransportConfig()

    def test_from_env_reads_os_environ(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LUGMA_REJECTED_STATUS", "409")
        assert TransportConfig.from_env().rejected_status == 409

    def test_from_env_bad_integer(self) -> None:
        with pytest.raises(ConfigError, match="LUGMA_CLOSE_CODE"):
            TransportConfig.from_env({"LUGMA_CLOSE_CODE": "normal"})
