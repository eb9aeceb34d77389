"""
Command line entry point: load a configuration file, build the TLS client
configuration it describes and print a summary.
"""

import os
import sys
import logging
from typing import Optional

from .services.config_service import ConfigService
from .services.logging_service import LoggingService
from .security.tls_service import TLSService
from .security.models import KeyPairError, TLSConfiguration


class TLSClientApplication:
    """Wires configuration, logging and the TLS service together."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the application.

        Args:
            config_path: Path to configuration file (optional)
        """
        self.config_path = config_path or self._get_default_config_path()
        self.logger = logging.getLogger(__name__)
        self.config_service = None
        self.config = None
        self.logging_service = None
        self.tls_service = None
        self.tls_config: Optional[TLSConfiguration] = None

    def _get_default_config_path(self) -> str:
        """Get the default configuration file path."""
        possible_paths = [
            "config/tlsutil.ini",
            "tlsutil.ini",
            os.path.expanduser("~/.tlsutil/config.ini"),
            "/etc/tlsutil/config.ini"
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        return possible_paths[0]

    def initialize(self) -> bool:
        """
        Load configuration and build the TLS client configuration.

        Returns:
            True if initialization successful, False otherwise
        """
        try:
            self.config_service = ConfigService()
            self.config = self.config_service.load_config(self.config_path)
        except (FileNotFoundError, ValueError) as e:
            self.logger.error(f"Failed to load configuration: {e}")
            return False

        try:
            self.logging_service = LoggingService(self.config)
        except OSError as e:
            self.logger.error(f"Failed to set up logging: {e}")
            return False

        self.tls_service = TLSService(self.config)

        try:
            self.tls_config = self.tls_service.build_client_config()
        except (OSError, KeyPairError) as e:
            self.logging_service.log_with_context(
                'error', "Failed to build TLS configuration",
                config_path=self.config_path, error=str(e)
            )
            return False

        return True

    def get_status(self) -> dict:
        """Get application status information."""
        status = {
            'config_path': self.config_path,
            'tls_enabled': self.config.enable_tls if self.config else False,
        }
        if self.tls_config is not None:
            status.update(self.tls_service.describe(self.tls_config))
        return status


def main(argv=None):
    """Main entry point for the application."""
    import argparse

    parser = argparse.ArgumentParser(description='TLS client configuration builder')
    parser.add_argument('--config', '-c', help='Configuration file path')
    parser.add_argument('--check-config', action='store_true', help='Check configuration and exit')
    parser.add_argument('--create-config', metavar='PATH', help='Write an example configuration file and exit')

    args = parser.parse_args(argv)

    if args.create_config:
        ConfigService().create_default_config_file(args.create_config)
        print(f"Created configuration file: {args.create_config}")
        sys.exit(0)

    app = TLSClientApplication(config_path=args.config)

    if not app.initialize():
        print("Failed to build TLS configuration")
        sys.exit(1)

    status = app.get_status()
    if args.check_config:
        print("Configuration check passed")
        print(f"Config path: {status['config_path']}")
        print(f"TLS enabled: {status['tls_enabled']}")
        sys.exit(0)

    print(f"Config path: {status['config_path']}")
    print(f"Verify server certificate: {status['verify']}")
    print(f"Server name: {status['server_name'] or '-'}")
    print(f"Trusted roots: {len(status['trusted_roots'])}")
    for subject in status['trusted_roots']:
        print(f"  - {subject}")
    print(f"Client certificate: {status['client_certificate'] or '-'}")


if __name__ == '__main__':
    main()
