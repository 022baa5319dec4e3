"""
Cell Codec - Grid cell identifiers and their coordinates
========================================================

Converts between the textual cell representation found in probability
tables and the identifier used as a dictionary key while scoring, and
decodes identifiers back to (latitude, longitude) in decimal degrees.

Cell Text Format
----------------
    "<lat>_<lon>"   e.g. "40.71_-74.01"

The numbers are the cell's reference corner on a grid with
``precision`` decimal places (2 = 0.01 degree cells). A cell text with
more decimals than the grid, a missing separator or coordinates out of
range raises MalformedCellError.

Codecs
------
    NumericCellCodec:
        Packs the quantised latitude/longitude indices into one int.
        Compact keys for large tables.

    TextCellCodec:
        Keeps the validated text as the identifier. Readable output.

Both satisfy ``decode(encode(s)) == parse_coordinates(s)``.

Public Functions
----------------
    parse_coordinates(text, precision)
        Validate cell text and return (lat, lon).

    get_codec(name, precision)
        Build the codec named in configuration.
"""

import re
from typing import Dict, Optional, Pattern, Tuple, Union

from .errors import MalformedCellError
from .settings import Config
from .validation import validate_string_choice

# ═══════════════════════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════════════════════

CellId = Union[int, str]
Coordinates = Tuple[float, float]

CELL_SEPARATOR = "_"

MAX_LATITUDE = 90
MAX_LONGITUDE = 180

CODEC_NAMES = ["numeric", "text"]

_pattern_cache: Dict[int, Pattern] = {}


def _cell_pattern(precision: int) -> Pattern:
    """Compiled cell text pattern for a grid precision."""
    pattern = _pattern_cache.get(precision)
    if pattern is None:
        number = r"-?\d{1,3}" + (rf"(?:\.\d{{1,{precision}}})?" if precision > 0 else "")
        pattern = re.compile(rf"^({number}){CELL_SEPARATOR}({number})$")
        _pattern_cache[precision] = pattern
    return pattern


# ═══════════════════════════════════════════════════════════════════════════════
# Core Functions
# ═══════════════════════════════════════════════════════════════════════════════

def parse_coordinates(text: str, precision: Optional[int] = None) -> Coordinates:
    """
    Parse cell text into (latitude, longitude).

    Args:
        text: Cell text such as "40.71_-74.01"
        precision: Grid decimal places (default Config.CELLS.PRECISION)

    Returns:
        Tuple of floats (lat, lon)

    Raises:
        MalformedCellError: If the text does not match the grid pattern
            or the coordinates are out of range
    """
    _precision = precision if precision is not None else Config.CELLS.PRECISION

    if not isinstance(text, str):
        raise MalformedCellError(f"Cell identifier must be text, got {text!r}")

    match = _cell_pattern(_precision).match(text.strip())
    if match is None:
        raise MalformedCellError(
            f"Invalid cell identifier: {text!r}",
            details={"cell": text, "precision": _precision},
        )

    lat = float(match.group(1))
    lon = float(match.group(2))

    if abs(lat) > MAX_LATITUDE or abs(lon) > MAX_LONGITUDE:
        raise MalformedCellError(
            f"Cell coordinates out of range: {text!r}",
            details={"cell": text},
        )

    return lat, lon


class CellCodec:
    """
    Base cell codec.

    Subclasses implement encode() and decode(). Codecs hold only the grid
    precision and are safe to share between threads.
    """

    name = "base"

    def __init__(self, precision: Optional[int] = None):
        self.precision = precision if precision is not None else Config.CELLS.PRECISION
        if self.precision < 0:
            raise ValueError(f"precision must be non-negative, got {self.precision}")

    def encode(self, text: str) -> CellId:
        raise NotImplementedError

    def decode(self, cell_id: CellId) -> Coordinates:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(precision={self.precision})"


class NumericCellCodec(CellCodec):
    """
    Packs a cell into a single non-negative int.

        lat_index = lat * 10^precision + 90 * 10^precision
        lon_index = lon * 10^precision + 180 * 10^precision
        cell_id   = lat_index * lon_span + lon_index

    with lon_span = 360 * 10^precision + 1.
    """

    name = "numeric"

    def __init__(self, precision: Optional[int] = None):
        super().__init__(precision)
        self._scale = 10 ** self.precision
        self._lat_offset = MAX_LATITUDE * self._scale
        self._lon_offset = MAX_LONGITUDE * self._scale
        self._lon_span = 2 * self._lon_offset + 1
        self._max_id = (2 * self._lat_offset + 1) * self._lon_span - 1

    def encode(self, text: str) -> int:
        lat, lon = parse_coordinates(text, self.precision)
        lat_index = round(lat * self._scale) + self._lat_offset
        lon_index = round(lon * self._scale) + self._lon_offset
        return lat_index * self._lon_span + lon_index

    def decode(self, cell_id: CellId) -> Coordinates:
        if isinstance(cell_id, bool) or not isinstance(cell_id, int):
            raise MalformedCellError(f"Numeric cell id must be an int, got {cell_id!r}")
        if cell_id < 0 or cell_id > self._max_id:
            raise MalformedCellError(f"Numeric cell id out of range: {cell_id}")

        lat_index, lon_index = divmod(cell_id, self._lon_span)
        # Integer division by the scale yields the float nearest the decimal text
        lat = round((lat_index - self._lat_offset) / self._scale, self.precision)
        lon = round((lon_index - self._lon_offset) / self._scale, self.precision)
        return lat, lon


class TextCellCodec(CellCodec):
    """Uses the validated cell text itself as the identifier."""

    name = "text"

    def encode(self, text: str) -> str:
        parse_coordinates(text, self.precision)
        return text.strip()

    def decode(self, cell_id: CellId) -> Coordinates:
        return parse_coordinates(cell_id, self.precision)


def get_codec(name: Optional[str] = None, precision: Optional[int] = None) -> CellCodec:
    """
    Build a codec by configuration name.

    Args:
        name: "numeric" or "text" (default Config.CELLS.CODEC)
        precision: Grid decimal places (default Config.CELLS.PRECISION)

    Raises:
        ValidationError: If the name is unknown
    """
    codec_name = validate_string_choice(name or Config.CELLS.CODEC, "codec", CODEC_NAMES)
    if codec_name == "text":
        return TextCellCodec(precision)
    return NumericCellCodec(precision)
