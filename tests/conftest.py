import pytest

from geolocator.model.cells import NumericCellCodec, TextCellCodec
from geolocator.model.settings import reload_config
from geolocator.model.table import LoadOptions, build_table

# Paris cells are 0.01 degrees apart, New York is far away
PARIS = "48.85_2.35"
PARIS_EAST = "48.86_2.36"
NEW_YORK = "40.71_-74.01"
LONDON = "51.50_-0.12"


def table_line(token, entropy, cells):
    pairs = " ".join(f"{cell}>{prob}" for cell, prob in cells)
    return f"{token}\t{entropy}\t{pairs}"


@pytest.fixture
def text_codec():
    return TextCellCodec(precision=2)


@pytest.fixture
def numeric_codec():
    return NumericCellCodec(precision=2)


@pytest.fixture
def sample_lines():
    return [
        table_line("eiffel", 0.1, [(PARIS, 0.8), (PARIS_EAST, 0.2)]),
        table_line("louvre", 0.2, [(PARIS, 0.6), (LONDON, 0.4)]),
        table_line("yankees", 0.4, [(NEW_YORK, 0.9), (LONDON, 0.1)]),
        table_line("big", 1.5, [(NEW_YORK, 0.3), (LONDON, 0.3), (PARIS, 0.4)]),
    ]


@pytest.fixture
def sample_bundle(sample_lines, text_codec):
    return build_table(sample_lines, text_codec, LoadOptions())


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Drop GEOLOCATOR_* overrides and restore defaults around each test."""
    import os
    for key in list(os.environ):
        if key.startswith("GEOLOCATOR_"):
            monkeypatch.delenv(key)
    reload_config()
    yield
    monkeypatch.undo()
    reload_config()
