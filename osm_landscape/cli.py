"""
Command-line interface for the OSM landscape importer

Usage:
    osm-landscape import city.osm --output streetmap.json
    osm-landscape landscape city.osm --radius 1000 --quad-size 1 --output ./landscape/
"""

import os
import sys
import json
import signal
import argparse
import threading

from loguru import logger
from .config import LandscapeBuildSettings, get_config
from .errors import StreetMapImportError, UserCancelled
from .landscape import FileLandscapeSink
from .pipeline import StreetMapImporter
from .progress import LoggingProgress


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def _summary(importer: StreetMapImporter, street_map) -> dict:
    osm = importer.osm_file
    summary = {
        "origin": [street_map.origin_longitude, street_map.origin_latitude],
        "roads": len(street_map.roads),
        "buildings": len(street_map.buildings),
        "misc_ways": len(street_map.misc_ways),
        "nodes": len(street_map.nodes),
        "bounds_cm": street_map.bounds.model_dump() if street_map.bounds else None,
    }
    if osm is not None and osm.nodes:
        summary["osm_bbox"] = [osm.min_longitude, osm.min_latitude, osm.max_longitude, osm.max_latitude]
    return summary


def cmd_import(args):
    """Import an OSM file into a street map JSON"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    output_path = args.output or os.path.splitext(os.path.basename(args.input))[0] + "_streetmap.json"

    try:
        importer = StreetMapImporter()
        street_map = importer.import_file(args.input)
        importer.save(street_map, output_path)

        logger.info(f"✓ Generated: {output_path}")

        if args.summary:
            print(json.dumps(_summary(importer, street_map), indent=2))

        return 0

    except (StreetMapImportError, ValueError, OSError) as e:
        logger.error(f"Failed to import street map: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def cmd_landscape(args):
    """Import an OSM file and build the landscape under it"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    config = get_config()
    if args.cache_dir:
        config.elevation.cache_dir = args.cache_dir

    settings = LandscapeBuildSettings(
        radius_m=args.radius,
        quad_size_m=args.quad_size,
        layers=args.layer or list(config.landscape.layers),
        material=args.material,
    )
    config.landscape = settings

    # Ctrl-C requests a cooperative cancel; the download loop notices it on its next pass
    cancel_event = threading.Event()
    progress = LoggingProgress(cancel_event)

    def on_interrupt(signum, frame):
        logger.warning("Cancel requested")
        cancel_event.set()

    previous_handler = signal.signal(signal.SIGINT, on_interrupt)

    try:
        importer = StreetMapImporter(config, progress=progress)
        street_map = importer.import_file(args.input)

        os.makedirs(args.output, exist_ok=True)
        importer.save(street_map, os.path.join(args.output, "streetmap.json"))

        request = importer.build_landscape(street_map, settings, sink=FileLandscapeSink(args.output))
        height_field = importer.height_field

        logger.info(f"✓ Generated: {args.output}")
        logger.info(f"  Heightmap: {height_field.size}x{height_field.size}")
        logger.info(f"  Elevation: {height_field.elev_min:.1f}m .. {height_field.elev_max:.1f}m")
        logger.info(f"  Scale: {request.transform.scale}")
        return 0

    except UserCancelled:
        logger.warning("Landscape import cancelled")
        return 1
    except (StreetMapImportError, ValueError, OSError) as e:
        logger.error(f"Failed to build landscape: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="OSM Landscape Importer CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Import a street map:
    osm-landscape import city.osm --output streetmap.json --summary

  Build the landscape around the map center:
    osm-landscape landscape city.osm --radius 1000 --quad-size 2 --layer Ground --layer Grass --output ./landscape/
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Import command
    import_parser = subparsers.add_parser("import", help="Import an OSM XML file into a street map")
    import_parser.add_argument("input", help="Input .osm file")
    import_parser.add_argument("--output", "-o", help="Output JSON file")
    import_parser.add_argument("--summary", "-s", action="store_true", help="Print summary to stdout")
    import_parser.set_defaults(func=cmd_import)

    # Landscape command
    landscape_parser = subparsers.add_parser("landscape", help="Import a street map and build its landscape")
    landscape_parser.add_argument("input", help="Input .osm file")
    landscape_parser.add_argument("--output", "-o", default="landscape", help="Output directory")
    landscape_parser.add_argument("--radius", "-r", type=float, default=1000.0, help="Landscape radius in meters")
    landscape_parser.add_argument("--quad-size", "-q", type=float, default=1.0, help="Meters per heightmap cell")
    landscape_parser.add_argument("--layer", "-l", action="append", help="Layer name (repeatable; first gets full weight)")
    landscape_parser.add_argument("--material", help="Landscape material reference")
    landscape_parser.add_argument("--cache-dir", help="Elevation tile cache directory")
    landscape_parser.set_defaults(func=cmd_landscape)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
