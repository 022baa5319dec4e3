import pytest

from geolocator.model.settings import Config, reload_config
from geolocator.model.validation import (
    ValidationError,
    validate_positive_float,
    validate_positive_int,
    validate_string_choice,
    validate_tokens,
    validate_window,
)


class TestConfig:

    def test_defaults(self):
        assert Config.CELLS.PRECISION == 2
        assert Config.CELLS.CODEC == "numeric"
        assert Config.SCORING.CONFIDENCE_WINDOW == 0.3
        assert Config.LOADER.STRICT is False
        assert Config.WORKER.MAX_WORKERS == 4

    def test_reload_reads_environment(self, monkeypatch):
        version = Config.to_dict()["version"]
        monkeypatch.setenv("GEOLOCATOR_SCORING_CONFIDENCE_WINDOW", "0.5")
        monkeypatch.setenv("GEOLOCATOR_LOADER_STRICT", "yes")
        monkeypatch.setenv("GEOLOCATOR_CELLS_CODEC", " text ")
        reload_config()

        assert Config.SCORING.CONFIDENCE_WINDOW == 0.5
        assert Config.LOADER.STRICT is True
        assert Config.CELLS.CODEC == "text"
        assert Config.to_dict()["version"] == version + 1

    def test_invalid_value_keeps_default(self, monkeypatch):
        monkeypatch.setenv("GEOLOCATOR_WORKER_MAX_WORKERS", "many")
        reload_config()
        assert Config.WORKER.MAX_WORKERS == 4

    def test_to_dict(self):
        data = Config.to_dict()
        assert data["scoring"] == {"CONFIDENCE_WINDOW": 0.3}
        assert set(data) >= {"cells", "loader", "features", "worker", "api", "version"}


class TestValidation:

    def test_window_default_and_bounds(self):
        assert validate_window(None) == 0.3
        assert validate_window("") == 0.3
        assert validate_window("0.5") == 0.5
        assert validate_window(0) == 0.0
        for bad in ("-0.1", "abc", "inf", "nan", 400):
            with pytest.raises(ValidationError):
                validate_window(bad)

    def test_positive_int(self):
        assert validate_positive_int("3", "workers") == 3
        assert validate_positive_int(None, "workers", default=2) == 2
        assert validate_positive_int(4.0, "workers") == 4
        for bad in (True, 2.5, "2.5", "many"):
            with pytest.raises(ValidationError):
                validate_positive_int(bad, "workers")
        with pytest.raises(ValidationError):
            validate_positive_int(9, "workers", max_value=8)
        with pytest.raises(ValidationError):
            validate_positive_int("0", "workers")
        with pytest.raises(ValidationError):
            validate_positive_int(None, "workers")

    def test_positive_float_max(self):
        with pytest.raises(ValidationError):
            validate_positive_float(2.5, "x", max_value=2.0)

    def test_tokens_from_string(self):
        assert validate_tokens("eiffel, louvre  eiffel") == ["eiffel", "louvre", "eiffel"]

    def test_tokens_from_repeated_params(self):
        assert validate_tokens(["eiffel,louvre", "big"]) == ["eiffel", "louvre", "big"]

    @pytest.mark.parametrize("value", [None, "", " , ", 42])
    def test_tokens_rejected(self, value):
        with pytest.raises(ValidationError):
            validate_tokens(value)

    def test_tokens_limit(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_tokens("a b c", max_tokens=2)
        assert "at most 2" in str(exc_info.value)

    def test_string_choice(self):
        assert validate_string_choice("TEXT", "codec", ["numeric", "text"]) == "text"
        with pytest.raises(ValidationError):
            validate_string_choice("hex", "codec", ["numeric", "text"])

    def test_to_response(self):
        response = ValidationError("window", "must be finite", "nan").to_response()
        assert response["success"] is False
        assert response["error"]["code"] == "INVALID_PARAMETER"
        assert response["error"]["httpStatus"] == 400
        assert response["error"]["details"] == {"parameter": "window", "value": "nan"}
