#!/usr/bin/python3
# Generates a solder paste dispensing path from a KiCad footprint report (.rpt).
#
# Only SMD pads are dispensed, through-hole pads are skipped. Pads are visited
# in nearest-neighbor order to keep head travel short.
#
# Output goes to stdout (or -o file):
#  - G-code for the dispenser (default)
#  - PostScript preview (-p)
# Optionally a PNG preview of the route (--png file).
#
# Requires 'numpy', 'shapely' and 'Pillow'.

import argparse
import sys
from typing import List, Optional, TextIO, Tuple

import numpy as np

from pad_optimizer import Pad, optimize_pads, route_length
from paste_output import PngPreview, Printer, make_printer
from rpt_parser import PadCollector, RptParseError, rpt_parse

# --- CONFIGURATION PARAMETERS ---

# Machine position of the smallest pad coordinate (mm)
OFFSET_X = 50.0
OFFSET_Y = 50.0

# --------------------------------


def board_bounds(pads: List[Pad]) -> Tuple[float, float, float, float]:
    """Smallest and largest pad coordinates as (min_x, min_y, max_x, max_y)."""
    if not pads:
        raise ValueError("No pads found for board bounds.")

    coords_array = np.array([(pad.x, pad.y) for pad in pads], dtype=float)

    min_x = float(np.min(coords_array[:, 0]))
    max_x = float(np.max(coords_array[:, 0]))
    min_y = float(np.min(coords_array[:, 1]))
    max_y = float(np.max(coords_array[:, 1]))

    return min_x, min_y, max_x, max_y


def place_pads(pads: List[Pad], bounds: Tuple[float, float, float, float],
               offset_x: float = OFFSET_X, offset_y: float = OFFSET_Y) -> List[Tuple[float, float, float]]:
    """
    Machine coordinates (x, y, area) for every pad, in list order.

    X is moved relative to the smallest X. The report is mirrored in Y, so
    Y is mirrored at the largest Y.
    """
    min_x, _, _, max_y = bounds
    return [(pad.x - min_x + offset_x, max_y - pad.y + offset_y, pad.area) for pad in pads]


def read_pads(filename: str, verbose: bool = False) -> List[Pad]:
    pads: List[Pad] = []
    collector = PadCollector(pads, verbose=verbose)

    # Only the ASCII keywords matter, odd bytes in names and values are replaced.
    with open(filename, 'r', encoding='utf-8', errors='replace') as f:
        rpt_parse(f, collector)

    print(f"Loaded {len(pads)} SMD pads from '{filename}' "
          f"({collector.through_hole_count} through-hole skipped)", file=sys.stderr)
    return pads


def select_printers(args: argparse.Namespace, out: Optional[TextIO] = None) -> List[Printer]:
    printers = [make_printer(args.postscript, out)]
    if args.png:
        printers.append(PngPreview(args.png))
    return printers


def write_route(pads: List[Pad], printers: List[Printer], offset_x: float = OFFSET_X, offset_y: float = OFFSET_Y):
    min_x, min_y, max_x, max_y = board_bounds(pads)
    placed = place_pads(pads, (min_x, min_y, max_x, max_y), offset_x, offset_y)

    for printer in printers:
        printer.init(offset_x, offset_y, (max_x - min_x) + offset_x, (max_y - min_y) + offset_y)
        for x, y, area in placed:
            printer.pad(x, y, area)
        printer.finish()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='rpt2paste',
        description="Solder paste dispenser path from a KiCad footprint report.")
    parser.add_argument('rpt_file', help="KiCad .rpt footprint report")
    parser.add_argument('-p', dest='postscript', action='store_true',
                        help="Output as PostScript instead of G-code")
    parser.add_argument('-o', dest='output', metavar='FILE',
                        help="Write output to FILE instead of stdout")
    parser.add_argument('--png', metavar='FILE',
                        help="Also save a PNG preview of the route")
    parser.add_argument('--offset', nargs=2, type=float, metavar=('X', 'Y'),
                        default=(OFFSET_X, OFFSET_Y),
                        help=f"Machine position of the board corner in mm (default {OFFSET_X:g} {OFFSET_Y:g})")
    parser.add_argument('--no-optimize', dest='optimize', action='store_false',
                        help="Keep report order instead of optimizing the route")
    parser.add_argument('-v', '--verbose', action='store_true',
                        help="Print every collected pad")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    offset_x, offset_y = args.offset

    try:
        pads = read_pads(args.rpt_file, args.verbose)
    except FileNotFoundError:
        print(f"ERROR: Report file '{args.rpt_file}' not found.", file=sys.stderr)
        return 1
    except RptParseError as e:
        print(f"ERROR: {args.rpt_file}: {e}", file=sys.stderr)
        return 1

    if not pads:
        print("ERROR: No SMD pads in report, nothing to dispense.", file=sys.stderr)
        return 1

    if args.optimize:
        file_order_length = route_length(pads)
        optimize_pads(pads)
        print(f"OPTIMIZATION: Route {route_length(pads):.1f} mm "
              f"(report order {file_order_length:.1f} mm)", file=sys.stderr)

    try:
        if args.output:
            with open(args.output, 'w', encoding='utf-8') as out:
                write_route(pads, select_printers(args, out), offset_x, offset_y)
            print(f"Output written to '{args.output}'", file=sys.stderr)
        else:
            write_route(pads, select_printers(args), offset_x, offset_y)
    except OSError as e:
        print(f"ERROR: Cannot write output: {e}", file=sys.stderr)
        return 1

    print(f"Dispensed {len(pads)} pads.", file=sys.stderr)
    return 0


if __name__ == '__main__':
    sys.exit(main())
