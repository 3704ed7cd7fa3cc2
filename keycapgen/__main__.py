"""
Command line entry point.

    python -m keycapgen                       # grid of default keycaps
    python -m keycapgen --scene my.kcs3d      # export a saved scene
    python -m keycapgen --batch 1u 2u 6.25u   # one STL per size
"""

import argparse
import logging

from . import constants as C
from .errors import KeycapGenError
from .evaluator import Evaluator
from .export import batch_export_stl, export_scene_stl, make_base_name
from .logging_config import setup_logging
from .params import EmbossParams, KeycapParams
from .scene import Scene, create_group_node, create_keycap_node, deserialise_scene

# --- PARAMETERS ---

# Grid layout
ROWS = 1
COLS = 4
SPACING = 19.05  # Standard 1U spacing in mm

# Keycap
PROFILE = 'Cherry'
SIZE = '1u'
TOP_RADIUS = 0.5
WALL_THICKNESS = 1.5
HAS_STEM = True
LEGEND = ''

OUTPUT_DIR = 'stl'


def grid_scene(params):
    """ROWS x COLS copies of one keycap, SPACING apart."""
    # Wider keys take proportionally more of the row
    pitch_x = SPACING * C.KEYCAP_SIZES[params.size]['width'] / C.KEYCAP_SIZES['1u']['width']
    keycaps = []
    for row in range(ROWS):
        for col in range(COLS):
            keycaps.append(create_keycap_node(
                params,
                name=f"Keycap ({row+1}, {col+1})",
                position=[col * pitch_x, row * SPACING, 0.0],
            ))
    return Scene(root=create_group_node(keycaps, id='root', name='Grid'), name='Grid')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog='keycapgen', description="Generate printable keycap STL files.")
    parser.add_argument('--scene', help="Scene document (.kcs3d) to export")
    parser.add_argument('--batch', nargs='+', metavar='SIZE', help="Export one keycap per size")
    parser.add_argument('--profile', default=PROFILE, choices=sorted(C.PROFILES))
    parser.add_argument('--size', default=SIZE)
    parser.add_argument('--legend', default=LEGEND)
    parser.add_argument('--no-stem', action='store_true')
    parser.add_argument('-o', '--output', help="Output file (or directory for --batch)")
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(getattr(logging, args.log_level))

    params = KeycapParams(
        profile=args.profile,
        size=args.size,
        has_stem=HAS_STEM and not args.no_stem,
        top_radius=TOP_RADIUS,
        wall_thickness=WALL_THICKNESS,
        emboss=EmbossParams(enabled=bool(args.legend), text=args.legend),
    )
    evaluator = Evaluator()

    print("--- Starting Keycap Generation ---")
    try:
        if args.batch:
            out_dir = args.output or OUTPUT_DIR
            written = batch_export_stl(params, args.batch, out_dir, evaluator, on_progress=print)
            print(f"\nSuccess! {len(written)} of {len(args.batch)} keycaps saved to '{out_dir}'")
            return 0 if written else 1

        if args.scene:
            with open(args.scene, encoding='utf-8') as f:
                scene = deserialise_scene(f.read())
            output = args.output or f"{scene.name or 'scene'}.stl"
        else:
            scene = grid_scene(params.clamped())
            output = args.output or f"{make_base_name(params.size, args.legend)}.stl"

        export_scene_stl(scene, output, evaluator, on_stage=print)
    except (KeycapGenError, OSError) as e:
        print(f"\nExport failed: {e}")
        return 1

    print(f"\nSuccess! 3D model saved as '{output}'")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
