"""Entrypoint for `python -m KTXBrew`.

Usage:
  - UASTC: `python -m KTXBrew uastc -i ./textures -o ./textures_ktx`
  - ETC1S: `python -m KTXBrew etc1s -i ./textures -o ./textures_ktx`
"""
import logging

logger = logging.getLogger("ktxbrew")


def _run_cli():
    from .cli import main as cli_main
    logger.debug("Dispatching to CLI entrypoint.")
    cli_main()


if __name__ == "__main__":
    _run_cli()
