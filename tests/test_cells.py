import pytest

from geolocator.model.cells import (
    NumericCellCodec,
    TextCellCodec,
    get_codec,
    parse_coordinates,
)
from geolocator.model.errors import MalformedCellError
from geolocator.model.validation import ValidationError

VALID_CELLS = [
    "48.85_2.35",
    "40.71_-74.01",
    "-33.87_151.21",
    "0_0",
    "-0.05_-0.5",
    "90_180",
    "-90.00_-180.00",
    "51.5_-0.12",
]


class TestParseCoordinates:

    def test_parses_lat_lon(self):
        assert parse_coordinates("40.71_-74.01", 2) == (40.71, -74.01)

    @pytest.mark.parametrize("text", [
        "",
        "48.85",
        "48.85-2.35",
        "48.85_2.35_1",
        "abc_def",
        "48.853_2.35",     # finer than the grid
        "91.00_2.35",      # latitude out of range
        "48.85_180.01",    # longitude out of range
        "1e2_3",
    ])
    def test_rejects_malformed(self, text):
        with pytest.raises(MalformedCellError):
            parse_coordinates(text, 2)

    def test_rejects_non_text(self):
        with pytest.raises(MalformedCellError):
            parse_coordinates(4885, 2)

    def test_precision_zero_accepts_integers_only(self):
        assert parse_coordinates("48_2", 0) == (48.0, 2.0)
        with pytest.raises(MalformedCellError):
            parse_coordinates("48.5_2", 0)


@pytest.mark.parametrize("codec", [NumericCellCodec(2), TextCellCodec(2)], ids=["numeric", "text"])
class TestRoundTrip:

    @pytest.mark.parametrize("cell", VALID_CELLS)
    def test_decode_encode_matches_coordinates(self, codec, cell):
        assert codec.decode(codec.encode(cell)) == parse_coordinates(cell, 2)

    def test_encode_rejects_malformed(self, codec):
        with pytest.raises(MalformedCellError):
            codec.encode("not_a_cell")


class TestNumericCellCodec:

    def test_encodes_to_non_negative_int(self, numeric_codec):
        cell_id = numeric_codec.encode("48.85_2.35")
        assert isinstance(cell_id, int)
        assert cell_id == 499892120

    def test_distinct_cells_get_distinct_ids(self, numeric_codec):
        ids = {numeric_codec.encode(c) for c in VALID_CELLS}
        assert len(ids) == len(VALID_CELLS)

    def test_equivalent_texts_share_an_id(self, numeric_codec):
        assert numeric_codec.encode("51.5_-0.12") == numeric_codec.encode("51.50_-0.12")

    @pytest.mark.parametrize("bad", [-1, 10 ** 12, "499892120", 1.5, True])
    def test_decode_rejects_foreign_ids(self, numeric_codec, bad):
        with pytest.raises(MalformedCellError):
            numeric_codec.decode(bad)

    def test_higher_precision_grid(self):
        codec = NumericCellCodec(3)
        assert codec.decode(codec.encode("48.853_2.349")) == (48.853, 2.349)


class TestTextCellCodec:

    def test_keeps_text_as_id(self, text_codec):
        assert text_codec.encode(" 48.85_2.35 ") == "48.85_2.35"


class TestGetCodec:

    def test_by_name(self):
        assert isinstance(get_codec("numeric", 2), NumericCellCodec)
        assert isinstance(get_codec("TEXT", 2), TextCellCodec)

    def test_default_from_config(self, monkeypatch):
        from geolocator.model.settings import reload_config

        monkeypatch.setenv("GEOLOCATOR_CELLS_CODEC", "text")
        monkeypatch.setenv("GEOLOCATOR_CELLS_PRECISION", "1")
        reload_config()

        codec = get_codec()
        assert isinstance(codec, TextCellCodec)
        assert codec.precision == 1

    def test_unknown_name(self):
        with pytest.raises(ValidationError):
            get_codec("hilbert", 2)
