#!/usr/bin/env python3
"""
Example script demonstrating TLS client configuration building.
"""
import sys
import os

# Add the project root to the path so we can import our modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tlsutil.models.config import Config
from tlsutil.security import KeyPair, KeyPairError, create_tls_config
from tlsutil.services.config_service import ConfigService


def main():
    """Demonstrate configuration validation and TLS config building."""
    config_service = ConfigService()

    print("=== TLS Configuration Demo ===\n")

    # Example 1: TLS disabled, no files are touched
    print("1. Building configuration with TLS disabled...")
    tls_config = create_tls_config(lambda: False, "db.internal", "nonexistent/ca.crt")
    print(f"  - Skip verification: {tls_config.insecure_skip_verify}")

    # Example 2: TLS enabled with a CA bundle and optional client key pair
    ca_path = "certs/ca.crt"
    print(f"\n2. Building configuration trusting {ca_path}...")
    key_pair = None
    if os.path.exists("certs/client.crt") and os.path.exists("certs/client.key"):
        key_pair = KeyPair(cert_path="certs/client.crt", key_path="certs/client.key")

    try:
        tls_config = create_tls_config(lambda: True, "db.internal", ca_path, key_pair)
        print(f"  - Server name: {tls_config.server_name}")
        print(f"  - Trusted roots: {tls_config.root_cas.subjects()}")
        print(f"  - Client certificates: {len(tls_config.certificates)}")
    except (OSError, KeyPairError) as e:
        print(f"✗ Failed to build TLS configuration: {e}")

    # Example 3: Demonstrate validation
    print("\n3. Testing configuration validation...")
    test_config = Config(
        ca_cert_path="nonexistent.crt",
        client_cert_path="certs/client.crt"
    )

    validation_result = config_service.validate_config(test_config)
    print(validation_result.get_error_summary())

    print("\n=== Demo Complete ===")


if __name__ == "__main__":
    main()
