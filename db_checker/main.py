"""Main application entry point for the database connectivity checker."""

import argparse
import asyncio
import logging
import signal
import sys
import threading
import time
from typing import Callable, Optional

from prometheus_client import CollectorRegistry, start_http_server

from .config.loader import ConfigLoader
from .config.models import CheckerSystemConfig
from .config.settings import Settings
from .errors import ConfigError, RetriesExhausted, SecurityConfigError
from .probes.registry import DriverProbe
from .probes.tls import FileReader
from .services.coordinator import FanOutCoordinator
from .services.periodic_prober import PeriodicProber
from .services.publisher import ResultsPublisher
from .services.retry_handler import RetryRunner
from .utils.logger import setup_logger


EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_UNREACHABLE = 2


class CheckerApp:
    """
    Connectivity checker application.

    Runs either a one-shot readiness check (run_once) or the long-lived
    metrics exporter (serve).
    """

    def __init__(
        self,
        config: CheckerSystemConfig,
        logger: logging.Logger,
        file_reader: Optional[FileReader] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize checker application.

        Args:
            config: Validated configuration
            logger: Logger instance
            file_reader: Source of TLS trust bundles (filesystem by default)
            sleep: Sleep used between retries
        """
        self.config = config
        self.logger = logger
        self._shutdown = threading.Event()

        self.probe = DriverProbe(
            logger,
            file_reader=file_reader,
            timeout=config.checker.probe_timeout
        )
        self.runner = RetryRunner(self.probe, logger, sleep=sleep)
        self.coordinator = FanOutCoordinator(self.runner, logger)
        self.publisher = ResultsPublisher(namespace=config.exporter.metrics_namespace)
        self.prober = PeriodicProber(
            config.targets,
            self.probe,
            self.publisher,
            logger,
            check_interval=config.exporter.check_interval
        )

        if config.targets:
            self.logger.info("Discovered database targets:")
            for target in config.targets:
                self.logger.info(f" - {target.driver}://{target.user}@{target.label}")

    def run_once(self) -> int:
        """
        Block until every target is reachable or one exhausts its retries.

        Returns:
            int: EXIT_OK, EXIT_UNREACHABLE or EXIT_CONFIG_ERROR
        """
        try:
            asyncio.run(
                self.coordinator.check_all(self.config.targets, self.config.checker.tries)
            )
        except RetriesExhausted as e:
            self.logger.error(f"Error: {e}", extra={"target": e.target.label})
            return EXIT_UNREACHABLE
        except SecurityConfigError as e:
            self.logger.error(f"Error: {e}")
            return EXIT_CONFIG_ERROR

        return EXIT_OK

    def serve(self) -> int:
        """
        Run the periodic prober and serve metrics until SIGTERM/SIGINT.

        Returns:
            int: EXIT_OK after shutdown, EXIT_CONFIG_ERROR if TLS material is
            broken or the listener fails
        """
        registry = CollectorRegistry()
        registry.register(self.publisher)

        try:
            for target in self.config.targets:
                self.probe.verify_tls(target)
        except SecurityConfigError as e:
            self.logger.error(f"Error: {e}")
            return EXIT_CONFIG_ERROR

        self.prober.start()

        port = self.config.exporter.port
        try:
            start_http_server(port, registry=registry)
        except OSError as e:
            self.logger.error(f"Error starting HTTP server: {e}")
            self.prober.stop()
            return EXIT_CONFIG_ERROR

        self.logger.info(f"Starting metrics exporter on :{port}/metrics")
        self.logger.info(f"Check interval: {self.prober.check_interval}s")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            self._shutdown.wait()
        finally:
            self.prober.stop()

        return EXIT_OK

    def shutdown(self) -> None:
        """Release serve() from another thread."""
        self._shutdown.set()

    def _signal_handler(self, signum, frame):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, initiating graceful shutdown...")
        self.shutdown()


def load_config(config_path: Optional[str]) -> CheckerSystemConfig:
    """Load from the YAML file when given, otherwise from environment variables."""
    if config_path:
        return ConfigLoader.load_from_file(config_path)
    return ConfigLoader.load_from_env()


def main(argv=None):
    """
    CLI entry point.

    Parses command-line arguments, then runs the readiness check or the
    exporter and exits with its status.
    """
    parser = argparse.ArgumentParser(
        description='Wait for databases to become reachable, or export their availability',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Wait for targets discovered from MYSQL_* / POSTGRES_* / MONGODB_URI
  db-checker

  # Same, with targets from a YAML file and 5 tries per target
  db-checker --config config/config.yaml --tries 5

  # Serve Prometheus metrics instead of exiting
  db-checker --exporter

Exit codes:
  0  all targets reachable
  1  configuration or setup error
  2  one or more targets never became reachable
        """
    )

    parser.add_argument(
        '--config',
        default=None,
        help='Path to YAML configuration file (default: read environment variables)'
    )

    parser.add_argument(
        '--exporter',
        action='store_true',
        help='Run the metrics exporter (same as EXPORTER=true)'
    )

    parser.add_argument(
        '--tries',
        type=int,
        default=None,
        help='Attempts per target in one-shot mode (default: TRIES or 10)'
    )

    parser.add_argument(
        '--log-level',
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: LOG_LEVEL env var or INFO)'
    )

    args = parser.parse_args(argv)

    logger = setup_logger("db_checker", args.log_level or Settings.get("LOG_LEVEL", "INFO"))

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(EXIT_CONFIG_ERROR)
    except ConfigError as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(EXIT_CONFIG_ERROR)

    if args.log_level is None:
        logger.setLevel(config.log_level.upper())

    if args.tries is not None:
        if args.tries < 1:
            logger.error(f"--tries must be at least 1, got {args.tries}")
            sys.exit(EXIT_CONFIG_ERROR)
        config.checker.tries = args.tries

    if args.exporter:
        config.exporter.enabled = True

    try:
        app = CheckerApp(config, logger)
        if config.exporter.enabled:
            exit_code = app.serve()
        else:
            exit_code = app.run_once()
    except Exception as e:
        logger.error(f"Application startup failed: {e}", exc_info=True)
        exit_code = EXIT_CONFIG_ERROR

    sys.exit(exit_code)


if __name__ == '__main__':
    main()
