"""
Entry point for GramFrame.

This module provides the command-line interface for launching the viewer.
It handles argument parsing, logging setup and initializes the Qt application.

Usage:
    python -m gramframe DESCRIPTOR [options]

Options:
    --mode, -m       Initial mode (cross_cursor, harmonics, doppler)
    --config, -c     Path to custom config file (YAML or JSON)
    --log-level      Logging level (DEBUG, INFO, WARNING, ERROR)
    --log-file       Also write the log to this file

Examples:
    # Open a spectrogram described by a YAML descriptor
    python -m gramframe run3.yaml

    # Start in Doppler mode with verbose logging
    python -m gramframe run3.yaml --mode doppler --log-level DEBUG
"""

import sys
import argparse

from PyQt6.QtWidgets import QApplication

from . import config as config_module
from .annotation.features import Mode
from .errors import ConfigurationError
from .loader import load_gram
from .ui.main_window import MainWindow
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def parse_args(argv=None):
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace with:
            - descriptor: Path to the gram descriptor
            - mode: Initial mode name
            - config: Path to custom config file (optional)
            - log_level: Logging level name
            - log_file: Log file path (optional)
    """
    parser = argparse.ArgumentParser(
        description="GramFrame - interactive spectrogram measurement"
    )
    parser.add_argument(
        "descriptor",
        help="Gram descriptor (YAML or JSON) naming the image and its data range"
    )
    parser.add_argument(
        "--mode", "-m",
        default=Mode.CROSS_CURSOR.value,
        choices=[m.value for m in Mode if m is not Mode.PAN],
        help="Initial interaction mode"
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to custom config file (YAML or JSON)"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    parser.add_argument(
        "--log-file",
        help="Also write log output to this file"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """
    Main entry point for the GramFrame viewer.

    Loads the descriptor before creating any window so configuration
    errors are reported on the console and nothing is built.

    Returns:
        Exit code (0 for success, 2 for an invalid descriptor)
    """
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    # Load custom config if specified (must happen before MainWindow is created)
    if args.config:
        config_module.reload_config(args.config)

    try:
        source = load_gram(args.descriptor)
    except ConfigurationError as e:
        logger.error("Cannot open %s: %s", args.descriptor, e)
        return 2

    app = QApplication(sys.argv)
    app.setApplicationName("GramFrame")
    app.setOrganizationName("GramFrame")

    window = MainWindow(source, initial_mode=args.mode)
    window.resize(source.image_width + 120, source.image_height + 160)
    window.show()

    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
