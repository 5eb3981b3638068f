# Output back-ends for the paste dispenser route.
#
# Every printer gets init() with the board extent, one pad() call per pad in
# dispensing order, and finish() at the end.
#
# 1) GCodePrinter      -> G-code for the dispenser (solenoid on the fan output)
# 2) PostScriptPrinter -> vector preview of pads and travel moves
# 3) PngPreview        -> raster preview of the same, written with Pillow

import math
import sys
from typing import List, Optional, TextIO, Tuple

from PIL import Image, ImageDraw

# --- CONFIGURATION PARAMETERS ---

# Dispense time: fixed minimum plus a share per mm^2 of pad area.
MINIMUM_MILLISECONDS = 50
AREA_TO_MILLISECONDS = 25

# Z heights (mm)
Z_DISPENSING = 0.6  # Position to dispense paste
Z_HOVER_DISPENSER = 2  # Hovering above the pad
Z_HIGH_UP_DISPENSER = 4  # High up to separate the paste

# Rate Parameters (mm/min)
FAST_FEED_RATE = 20000
MOVE_FEED_RATE = 4000

# Previews
MM_TO_POINT = 72.0 / 25.4
POSTSCRIPT_MARGIN = 3.0  # mm around the pads
PNG_SCALE = 10  # pixels per mm
PNG_MARGIN = 5.0  # mm

# --------------------------------


def dispense_milliseconds(area: float) -> float:
    return MINIMUM_MILLISECONDS + area * AREA_TO_MILLISECONDS


class Printer:
    def __init__(self, out: Optional[TextIO] = None):
        self.out = out if out is not None else sys.stdout

    def init(self, min_x: float, min_y: float, max_x: float, max_y: float):
        raise NotImplementedError

    def pad(self, x: float, y: float, area: float):
        raise NotImplementedError

    def finish(self):
        raise NotImplementedError


# =========================================================================================
class GCodePrinter(Printer):
    def init(self, min_x: float, min_y: float, max_x: float, max_y: float):
        # The machine is expected to be homed already, X0 Y0 may be out of reach.
        self.out.write("G21\n")
        self.out.write(f"G0 F{FAST_FEED_RATE}\n")
        self.out.write(f"G1 F{MOVE_FEED_RATE}\n")
        self.out.write(f"G0 Z{Z_HIGH_UP_DISPENSER}\n")

    def pad(self, x: float, y: float, area: float):
        self.out.write(f"G0 X{x:.3f} Y{y:.3f} Z{Z_HOVER_DISPENSER}\n")
        self.out.write(f"G1 Z{Z_DISPENSING}\n")
        self.out.write("M106\n")  # solenoid on
        self.out.write(f"G4 P{dispense_milliseconds(area):.1f}\n")
        self.out.write("M107\n")  # solenoid off
        self.out.write(f"G1 Z{Z_HIGH_UP_DISPENSER}\n")

    def finish(self):
        self.out.write(";done\n")


# =========================================================================================
class PostScriptPrinter(Printer):
    def init(self, min_x: float, min_y: float, max_x: float, max_y: float):
        min_x -= POSTSCRIPT_MARGIN
        min_y -= POSTSCRIPT_MARGIN
        max_x += POSTSCRIPT_MARGIN
        max_y += POSTSCRIPT_MARGIN

        self.out.write("%!PS-Adobe-3.0\n")
        self.out.write(f"%%BoundingBox: {min_x * MM_TO_POINT:.0f} {min_y * MM_TO_POINT:.0f} "
                       f"{max_x * MM_TO_POINT:.0f} {max_y * MM_TO_POINT:.0f}\n")
        self.out.write("% PastePad. Stack: <diameter>\n"
                       "/pp { 1 setlinewidth 0 360 arc stroke } def\n")
        self.out.write("% Move. Stack: <x> <y>\n"
                       "/m { 0.1 setlinewidth lineto currentpoint stroke } def\n")
        self.out.write("0 0 moveto ")

    def pad(self, x: float, y: float, area: float):
        x *= MM_TO_POINT
        y *= MM_TO_POINT
        radius = math.sqrt(area / math.pi)
        self.out.write(f"{x:.3f} {y:.3f} m {radius:.3f} pp \n")
        self.out.write(f"{x:.3f} {y:.3f} moveto\n")

    def finish(self):
        self.out.write("showpage\n")


# =========================================================================================
class PngPreview(Printer):
    def __init__(self, filename: str):
        # Writes its own file on finish(), no text stream.
        self.out = None
        self.filename = filename
        self.scale = PNG_SCALE
        self.bounds: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
        self.pads: List[Tuple[float, float, float]] = []

    def init(self, min_x: float, min_y: float, max_x: float, max_y: float):
        self.bounds = (min_x, min_y, max_x, max_y)
        self.pads = []

    def pad(self, x: float, y: float, area: float):
        self.pads.append((x, y, area))

    def finish(self):
        min_x, min_y, max_x, max_y = self.bounds

        x_min_plot = min_x - PNG_MARGIN
        y_min_plot = min_y - PNG_MARGIN
        width_px = max(1, int((max_x - min_x + 2 * PNG_MARGIN) * self.scale))
        height_px = max(1, int((max_y - min_y + 2 * PNG_MARGIN) * self.scale))

        img = Image.new('RGB', (width_px, height_px), color='black')
        draw = ImageDraw.Draw(img)

        # MM to pixel, Y axis points up
        def mm_to_px(x, y):
            screen_x = int((x - x_min_plot) * self.scale)
            screen_y = int(height_px - (y - y_min_plot) * self.scale)
            return (screen_x, screen_y)

        # Board area
        draw.rectangle([mm_to_px(min_x, max_y), mm_to_px(max_x, min_y)], fill=(0, 80, 0))

        # Travel moves (White)
        if len(self.pads) > 1:
            draw.line([mm_to_px(x, y) for x, y, _ in self.pads], fill=(255, 255, 255), width=1)

        # Paste dots (Blue), radius from area
        for x, y, area in self.pads:
            x_center_px, y_center_px = mm_to_px(x, y)
            radius_px = max(1, int(math.sqrt(area / math.pi) * self.scale))
            draw.ellipse((x_center_px - radius_px, y_center_px - radius_px,
                          x_center_px + radius_px, y_center_px + radius_px),
                         fill=(0, 0, 255), outline=(173, 216, 230))

        # Start point (Green)
        if self.pads:
            start_x, start_y = mm_to_px(self.pads[0][0], self.pads[0][1])
            draw.line([(start_x - 10, start_y), (start_x + 10, start_y)], fill=(0, 255, 0), width=2)
            draw.line([(start_x, start_y - 10), (start_x, start_y + 10)], fill=(0, 255, 0), width=2)

        img.save(self.filename, format='PNG')
        print(f"Visualization saved to '{self.filename}'", file=sys.stderr)


def make_printer(postscript: bool, out: Optional[TextIO] = None) -> Printer:
    if postscript:
        return PostScriptPrinter(out)
    return GCodePrinter(out)
