"""Command line driver, end to end."""
import pytest

from pad_optimizer import Pad
from rpt2paste import board_bounds, main, place_pads

REPORT = """\
unit MM
$MODULE "J1"
position 0 0  orientation 0
$PAD "1" position 0 0 size 1 1 drill 0 $EndPAD
$PAD "2" position 30 0 size 1 1 drill 0 $EndPAD
$PAD "3" position 10 0 size 1 1 drill 0 $EndPAD
$PAD "4" position 20 5 size 2 1 drill 0 $EndPAD
$PAD "5" position 15 15 size 1 1 drill 1.0 $EndPAD
$EndMODULE "J1"
"""


@pytest.fixture
def report(tmp_path):
    path = tmp_path / "board.rpt"
    path.write_text(REPORT)
    return str(path)


def moves(gcode):
    return [line for line in gcode.splitlines() if line.startswith("G0 X")]


def test_board_bounds():
    pads = [Pad(x=3, y=-1), Pad(x=-2, y=4), Pad(x=1, y=1)]
    assert board_bounds(pads) == (-2.0, -1.0, 3.0, 4.0)


def test_board_bounds_empty():
    with pytest.raises(ValueError):
        board_bounds([])


def test_place_pads_mirrors_y():
    pads = [Pad(x=10, y=0, area=1.0), Pad(x=12, y=4, area=2.0)]
    placed = place_pads(pads, board_bounds(pads), offset_x=50, offset_y=50)
    assert placed == [(50.0, 54.0, 1.0), (52.0, 50.0, 2.0)]


def test_gcode_route(report, capsys):
    assert main([report]) == 0
    captured = capsys.readouterr()

    assert moves(captured.out) == [
        "G0 X50.000 Y55.000 Z2",
        "G0 X60.000 Y55.000 Z2",
        "G0 X70.000 Y50.000 Z2",
        "G0 X80.000 Y55.000 Z2",
    ]
    assert captured.out.endswith(";done\n")
    assert "1 through-hole skipped" in captured.err
    assert "Dispensed 4 pads." in captured.err


def test_report_order_kept_without_optimization(report, capsys):
    assert main(["--no-optimize", report]) == 0
    assert moves(capsys.readouterr().out) == [
        "G0 X50.000 Y55.000 Z2",
        "G0 X80.000 Y55.000 Z2",
        "G0 X60.000 Y55.000 Z2",
        "G0 X70.000 Y50.000 Z2",
    ]


def test_offset(report, capsys):
    assert main(["--offset", "0", "10", report]) == 0
    assert moves(capsys.readouterr().out)[0] == "G0 X0.000 Y15.000 Z2"


def test_postscript_to_file(report, tmp_path, capsys):
    out_file = tmp_path / "board.ps"
    assert main(["-p", "-o", str(out_file), report]) == 0

    text = out_file.read_text()
    assert text.startswith("%!PS-Adobe-3.0\n")
    assert text.count(" pp \n") == 4
    assert text.endswith("showpage\n")
    assert capsys.readouterr().out == ""


def test_png_preview(report, tmp_path, capsys):
    png_file = tmp_path / "board.png"
    assert main(["--png", str(png_file), report]) == 0
    assert png_file.exists()
    assert "G0 X50.000 Y55.000 Z2" in capsys.readouterr().out


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.rpt")]) == 1
    assert "not found" in capsys.readouterr().err


def test_malformed_report(tmp_path, capsys):
    path = tmp_path / "bad.rpt"
    path.write_text("$MODULE\n$PAD\nsize 1 x\n")
    assert main([str(path)]) == 1
    assert "line 3" in capsys.readouterr().err


def test_no_smd_pads(tmp_path, capsys):
    path = tmp_path / "tht.rpt"
    path.write_text("$MODULE\n$PAD position 0 0 drill 0.8 $EndPAD\n$EndMODULE\n")
    assert main([str(path)]) == 1
    assert "No SMD pads" in capsys.readouterr().err


def test_usage_error(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 2


def test_latin1_bytes_in_names(tmp_path, capsys):
    path = tmp_path / "legacy.rpt"
    path.write_bytes(b'unit MM\n$MODULE "C1"\nvalue "4.7\xb5F"\nposition 0 0\n'
                     b'$PAD position 1 2 size 1 1 drill 0 $EndPAD\n$EndMODULE\n')
    assert main([str(path)]) == 0
    assert "G0 X50.000 Y50.000 Z2" in capsys.readouterr().out


def test_non_finite_position_in_report(tmp_path, capsys):
    path = tmp_path / "inf.rpt"
    path.write_text("$MODULE\n$PAD position inf 0 size 1 1 $EndPAD\n$EndMODULE\n")
    assert main([str(path)]) == 1
    captured = capsys.readouterr()
    assert "line 2" in captured.err
    assert "Xinf" not in captured.out


def test_unwritable_output(report, tmp_path, capsys):
    out_file = tmp_path / "missing_dir" / "board.gcode"
    assert main(["-o", str(out_file), report]) == 1
    assert "ERROR: Cannot write output" in capsys.readouterr().err


def test_unwritable_png(report, tmp_path, capsys):
    png_file = tmp_path / "missing_dir" / "board.png"
    assert main(["--png", str(png_file), report]) == 1
    assert "ERROR: Cannot write output" in capsys.readouterr().err
