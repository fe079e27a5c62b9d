from __future__ import annotations

import argparse
import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from libodol.errors import OdolReadError
from libodol.reader import DecodeOptions, read_odol
from libodol.summary import summarize_odol
from libodol.writer import MlodWriteError, write_mlod

VERSION = "0.1.0"

console = Console()
err_console = Console(stderr=True)


def _setup_logging(args: argparse.Namespace) -> None:
    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_time=False, show_path=False)],
        force=True,
    )


def print_summary(path: str) -> None:
    s = summarize_odol(path)
    console.print(f"[bold]File:[/bold] {s.path}")
    console.print(f"[bold]Size:[/bold] {s.file_size} bytes")
    console.print(f"[bold]Version:[/bold] {s.version}   [bold]App id:[/bold] {s.app_id}")
    skeleton = s.skeleton_name or "(none)"
    console.print(f"[bold]Skeleton:[/bold] {skeleton} ({s.bone_count} bones)   [bold]Animations:[/bold] {s.animation_count}")

    lt = Table(title="LODs")
    lt.add_column("Resolution", justify="right")
    lt.add_column("Offset", justify="right")
    lt.add_column("Points", justify="right")
    lt.add_column("Faces", justify="right")
    lt.add_column("Selections", overflow="fold")
    for lod in s.lods:
        lt.add_row(
            f"{lod.resolution:g}",
            f"0x{lod.offset:X}",
            str(lod.points),
            str(lod.faces),
            ", ".join(lod.selections) or "-",
        )
    console.print(lt)

    t = Table(title="Textures / Materials")
    t.add_column("LOD", justify="right")
    t.add_column("Path", overflow="fold")
    for lod in s.lods:
        for path in lod.textures + lod.materials:
            t.add_row(f"{lod.resolution:g}", path)
    if not t.row_count:
        t.add_row("-", "(none found)")
    console.print(t)


def run(args: argparse.Namespace) -> int:
    if args.summary:
        print_summary(args.input)
        return 0

    mesh = read_odol(args.input, DecodeOptions(translate_points=args.translate_points))
    if args.output:
        write_mlod(mesh, args.output)
        logging.getLogger(__name__).info("Wrote %s (%d LODs)", args.output, len(mesh.lods))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="crowbar", description="Decode an ODOL model back into MLOD.")
    p.add_argument("input", help="ODOL file to read")
    p.add_argument("output", nargs="?", help="MLOD file to write (omit to only validate)")
    p.add_argument("--version", action="version", version=f"v{VERSION}")
    p.add_argument("--summary", action="store_true", help="Print a table of LODs, textures and selections")
    p.add_argument(
        "--translate-points",
        action="store_true",
        help="Offset points by the model's bounding center",
    )
    noise = p.add_mutually_exclusive_group()
    noise.add_argument("-q", "--quiet", action="store_true", help="Only report errors")
    noise.add_argument("-v", "--verbose", action="store_true", help="Log every decoded field")
    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args)

    try:
        return run(args)
    except OdolReadError as e:
        err_console.print(f"[red]{e.kind}:[/red] {escape(str(e))}", highlight=False)
    except MlodWriteError as e:
        err_console.print(f"[red]MlodWriteError:[/red] {escape(str(e))}", highlight=False)
    except OSError as e:
        err_console.print(f"[red]{type(e).__name__}:[/red] {escape(str(e))}", highlight=False)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
