"""Command-line interface for KTXBrew."""

import argparse
import logging
import os
import re
import sys

from .config import Filter, Mode, PipelineConfig
from .core.logging import setup_logging
from .core.version import ToolNotFoundError, VersionParseError

logger = logging.getLogger("ktxbrew")

_RESIZE_RE = re.compile(r"^(\d+)[xX](\d+)$")


def _parse_resize(value: str):
    m = _RESIZE_RE.match(value.strip())
    if not m or int(m.group(1)) <= 0 or int(m.group(2)) <= 0:
        raise argparse.ArgumentTypeError(
            f"--resize expects WIDTHxHEIGHT with positive integers, got '{value}'"
        )
    return [int(m.group(1)), int(m.group(2))]


def _add_common_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--input", "-i", help="Input asset directory")
    p.add_argument("--output", "-o", help="Output directory")
    p.add_argument("--config", "-c", help="Path to config YAML")
    p.add_argument("--dry-run", action="store_true",
                   help="Plan toktx invocations without running them")
    p.add_argument("--log-level",
                   choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])


def _add_shared_encode_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--filter", choices=[f.value for f in Filter],
                   help="Mipmap filter (default: lanczos4)")
    p.add_argument("--filter-scale", type=float,
                   help="Scale mipmap filter kernel by this value (default: 1)")
    p.add_argument("--power-of-two", action="store_true", default=None,
                   help="Resize any non-power-of-two textures to the nearest power of two")
    p.add_argument("--resize", type=_parse_resize, metavar="WxH",
                   help="Resize every texture to WIDTHxHEIGHT before rounding")
    p.add_argument("--slots",
                   help='Glob over texture slots, e.g. "{normalTexture,occlusionTexture}"')
    p.add_argument("--pattern",
                   help="Glob over texture URI or name")
    p.add_argument("--jobs", type=int,
                   help="Spawn up to this many toktx processes in parallel")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="KTXBrew",
        description="Batch KTX2 + Basis Universal texture compression with toktx",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  KTXBrew uastc -i ./textures -o ./textures_ktx
  KTXBrew etc1s -i ./textures -o ./textures_ktx --quality 192 --slots "*color*"
  KTXBrew uastc -c config.yaml --dry-run
  KTXBrew ktxfix -i ./textures_ktx -o ./textures_fixed
  KTXBrew --generate-config config.yaml
        """,
    )
    parser.add_argument("--generate-config", nargs="?", const="config.yaml",
                        metavar="PATH", help="Write a default config YAML and exit")
    sub = parser.add_subparsers(dest="command")

    etc1s = sub.add_parser("etc1s", help="Compress textures with ETC1S (low size)")
    _add_common_arguments(etc1s)
    _add_shared_encode_arguments(etc1s)
    etc1s.add_argument("--quality", type=int,
                       help="Quality level, 1-255 (default: 128)")
    etc1s.add_argument("--compression", type=int,
                       help="Compression level, 0-5 (default: 1)")
    etc1s.add_argument("--max-endpoints", type=int,
                       help="Manually set the max number of color endpoint clusters, 1-16128")
    etc1s.add_argument("--max-selectors", type=int,
                       help="Manually set the max number of color selector clusters, 1-16128")
    etc1s.add_argument("--rdo-threshold", type=float,
                       help="Endpoint and selector rate-distortion threshold")
    etc1s.add_argument("--rdo-off", action="store_true", default=None,
                       help="Disable endpoint and selector rate-distortion optimization")

    uastc = sub.add_parser("uastc", help="Compress textures with UASTC (high quality)")
    _add_common_arguments(uastc)
    _add_shared_encode_arguments(uastc)
    uastc.add_argument("--level", type=int,
                       help="Quality/speed level, 0-4 (default: 2)")
    uastc.add_argument("--rdo", type=float,
                       help="Rate-distortion quality scalar; 0 disables (default: 0)")
    uastc.add_argument("--rdo-dictionary-size", type=int,
                       help="RDO dictionary size in bytes (default: 32768)")
    uastc.add_argument("--rdo-block-scale", type=float,
                       help="RDO max smooth block error scale (default: 10)")
    uastc.add_argument("--rdo-std-dev", type=float,
                       help="RDO max smooth block standard deviation (default: 18)")
    uastc.add_argument("--rdo-multithreading", dest="rdo_multithreading",
                       action="store_true", default=None,
                       help="Enable multithreaded RDO (default)")
    uastc.add_argument("--no-rdo-multithreading", dest="rdo_multithreading",
                       action="store_false",
                       help="Disable multithreaded RDO; slower, slightly smaller output")
    uastc.add_argument("--zstd", type=int,
                       help="Zstandard supercompression level, 0-22; 0 disables (default: 18)")

    fix = sub.add_parser("ktxfix", help="Fix color metadata of existing KTX2 textures")
    _add_common_arguments(fix)
    return parser


_SHARED_OVERRIDES = (
    "filter", "filter_scale", "power_of_two", "resize", "slots", "pattern", "jobs",
)
_ETC1S_OVERRIDES = (
    "quality", "compression", "max_endpoints", "max_selectors",
    "rdo_threshold", "rdo_off",
)
_UASTC_OVERRIDES = (
    "level", "rdo", "rdo_dictionary_size", "rdo_block_scale",
    "rdo_std_dev", "rdo_multithreading", "zstd",
)


def _apply_overrides(config: PipelineConfig, args: argparse.Namespace) -> None:
    if args.input:
        config.input_dir = args.input
    if args.output:
        config.output_dir = args.output
    if args.dry_run:
        config.dry_run = True
    if args.log_level:
        config.log_level = args.log_level

    if args.command not in (Mode.ETC1S.value, Mode.UASTC.value):
        return
    config.ktx.mode = args.command
    for name in _SHARED_OVERRIDES:
        value = getattr(args, name, None)
        if value is not None:
            setattr(config.ktx, name, value)
    section, names = (
        (config.etc1s, _ETC1S_OVERRIDES) if args.command == Mode.ETC1S.value
        else (config.uastc, _UASTC_OVERRIDES)
    )
    for name in names:
        value = getattr(args, name, None)
        if value is not None:
            setattr(section, name, value)


def main(argv=None):
    """Parse CLI arguments, run the requested command, and exit with its status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.generate_config:
        dest = args.generate_config
        if os.path.isdir(dest):
            dest = os.path.join(dest, "config.yaml")
        PipelineConfig().to_yaml(dest)
        logger.info("Generated default %s", dest)
        print(f"Generated default {dest}")
        return

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Ensure early validation warnings from from_yaml() are visible on stderr
    # before the full file-based logging is configured.
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    if args.config:
        if not os.path.exists(args.config):
            logger.error("Config file not found: %s", args.config)
            print(f"Error: Config file not found: {args.config}")
            sys.exit(1)
        try:
            config = PipelineConfig.from_yaml(args.config)
        except ValueError as e:
            logger.error("Invalid config file '%s': %s", args.config, e)
            print(f"Error: Invalid config: {e}")
            sys.exit(1)
    else:
        config = PipelineConfig()

    _apply_overrides(config, args)

    if not config.input_dir or not os.path.isdir(config.input_dir):
        logger.error("Input directory invalid or not found: %s", config.input_dir)
        print(f"Error: Input directory not found: {config.input_dir}")
        sys.exit(1)

    log_file = None
    if not config.dry_run:
        os.makedirs(config.output_dir, exist_ok=True)
        log_file = os.path.join(config.output_dir, "ktxbrew.log")
    setup_logging(config.log_level, log_file, force=True)

    try:
        config.validate()
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    from .pipeline import KTXPipeline
    pipeline = KTXPipeline(config)

    try:
        if args.command == "ktxfix":
            pipeline.run_ktxfix()
        else:
            pipeline.run()
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        sys.exit(130)
    except (ToolNotFoundError, VersionParseError) as exc:
        logger.error(str(exc))
        print(f"Error: {exc}")
        sys.exit(2)
    except FileNotFoundError as exc:
        logger.error(str(exc))
        print(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
