# Reader for KiCad footprint position reports (.rpt).
#
# The report is a flat list of whitespace separated tokens:
#
#   $MODULE "U1"
#   position 1.2500 0.8000  orientation 90.00
#   $PAD "1"
#   position -0.0250 0.0500  size 0.0300 0.0600
#   drill 0.0000
#   $EndPAD
#   $EndMODULE
#
# rpt_parse() only recognises the keywords and hands them to an event
# receiver. PadCollector turns those events into absolute SMD pads.

import math
import sys
from typing import Iterator, List, Optional, TextIO, Tuple

from pad_optimizer import Pad

# --- CONFIGURATION PARAMETERS ---

# Report coordinates are in inches unless a 'unit' line says otherwise.
INCH_TO_MM = 25.4
UNIT_FACTORS = {'INCH': INCH_TO_MM, 'MM': 1.0}

# --------------------------------


class RptParseError(ValueError):
    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class ParseEventReceiver:
    """Callbacks fired by rpt_parse(). Everything defaults to a no-op."""

    def start_component(self):
        pass

    def end_component(self):
        pass

    def start_pad(self):
        pass

    def end_pad(self):
        pass

    def position(self, x: float, y: float):
        pass

    def size(self, w: float, h: float):
        pass

    def drill(self, diameter: float):
        pass

    def orientation(self, angle: float):
        pass

    def unit(self, name: str):
        pass


# =========================================================================================
def _tokenize(stream: TextIO) -> Iterator[Tuple[str, int]]:
    for line_number, line in enumerate(stream, start=1):
        for token in line.split():
            yield token, line_number


def _next_token(tokens: Iterator[Tuple[str, int]], keyword: str, line_number: int) -> Tuple[str, int]:
    try:
        return next(tokens)
    except StopIteration:
        raise RptParseError(f"unexpected end of file after '{keyword}'", line_number) from None


def _read_floats(tokens: Iterator[Tuple[str, int]], keyword: str, line_number: int, count: int) -> List[float]:
    values = []
    for _ in range(count):
        token, line_number = _next_token(tokens, keyword, line_number)
        try:
            value = float(token)
        except ValueError:
            value = math.nan
        if not math.isfinite(value):
            raise RptParseError(f"'{keyword}' expects a number, got '{token}'", line_number)
        values.append(value)
    return values


def _dispatch(token: str, tokens: Iterator[Tuple[str, int]], line_number: int, event: ParseEventReceiver):
    if token == '$MODULE':
        event.start_component()
    elif token == '$EndMODULE':
        event.end_component()
    elif token == '$PAD':
        event.start_pad()
    elif token == '$EndPAD':
        event.end_pad()
    elif token == 'position':
        x, y = _read_floats(tokens, token, line_number, 2)
        event.position(x, y)
    elif token == 'size':
        w, h = _read_floats(tokens, token, line_number, 2)
        event.size(w, h)
    elif token == 'drill':
        dia, = _read_floats(tokens, token, line_number, 1)
        event.drill(dia)
    elif token == 'orientation':
        angle, = _read_floats(tokens, token, line_number, 1)
        event.orientation(angle)
    elif token == 'unit':
        name, _ = _next_token(tokens, token, line_number)
        event.unit(name)


def rpt_parse(stream: TextIO, event: ParseEventReceiver) -> bool:
    """Feeds every recognised keyword of the report to event. Other tokens are skipped."""
    tokens = _tokenize(stream)

    for token, line_number in tokens:
        try:
            _dispatch(token, tokens, line_number, event)
        except RptParseError as e:
            if e.line_number is not None:
                raise
            # Receiver errors don't know where they happened.
            raise RptParseError(str(e), line_number) from None

    return True


# =========================================================================================
class PadCollector(ParseEventReceiver):
    def __init__(self, pads: List[Pad], verbose: bool = False):
        self.pads = pads
        self.verbose = verbose
        self.unit_mult: float = INCH_TO_MM
        self.through_hole_count: int = 0

        # Current component coordinate system.
        self.origin_x: float = 0.0
        self.origin_y: float = 0.0
        self.angle: float = 0.0

        # Not None while between $PAD and $EndPAD.
        self.current_pad: Optional[Pad] = None

    def start_component(self):
        if self.current_pad is not None:
            raise RptParseError("$MODULE inside an open $PAD")
        self.origin_x = 0.0
        self.origin_y = 0.0
        self.angle = 0.0

    def start_pad(self):
        if self.current_pad is not None:
            raise RptParseError("$PAD inside an open $PAD")
        self.current_pad = Pad()

    def end_pad(self):
        pad = self.current_pad
        if pad is None:
            raise RptParseError("$EndPAD without $PAD")
        self.current_pad = None

        if pad.drill != 0:
            # Through-hole, no paste needed.
            self.through_hole_count += 1
            return

        self.pads.append(pad)
        if self.verbose:
            print(f"Pad ({pad.x:7.2f},{pad.y:7.2f}) area {pad.area:.3f}", file=sys.stderr)

    def position(self, x: float, y: float):
        if self.current_pad is None:
            self.origin_x = x
            self.origin_y = y
            return

        x, y = self._rotate(x, y)
        self.current_pad.x = (self.origin_x + x) * self.unit_mult
        self.current_pad.y = (self.origin_y + y) * self.unit_mult

    def size(self, w: float, h: float):
        if self.current_pad is None:
            return
        self.current_pad.area = w * self.unit_mult * self.unit_mult * h

    def drill(self, diameter: float):
        if self.current_pad is None:
            raise RptParseError("drill outside of a $PAD")
        self.current_pad.drill = diameter

    def orientation(self, angle: float):
        if self.current_pad is None:
            # Degrees, and the report turns the other way round (mirrored board).
            self.angle = -math.pi * angle / 180.0

    def unit(self, name: str):
        try:
            self.unit_mult = UNIT_FACTORS[name.upper()]
        except KeyError:
            raise RptParseError(f"unknown unit '{name}'") from None

    def _rotate(self, x: float, y: float) -> Tuple[float, float]:
        cos_a = math.cos(self.angle)
        sin_a = math.sin(self.angle)
        return x * cos_a - y * sin_a, x * sin_a + y * cos_a
