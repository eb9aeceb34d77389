"""
Tests for the command line entry point.
"""

import logging
import os
import shutil
import tempfile
import pytest
from unittest.mock import patch

from tlsutil.main import TLSClientApplication, main
from tests.cert_factory import (
    cert_pem, create_test_ca, create_test_cert, key_pem, write_file
)


@pytest.fixture(scope="module")
def pki():
    ca_cert, ca_key = create_test_ca("Test CA")
    client_cert, client_key = create_test_cert(ca_cert, ca_key, "client")
    return ca_cert, client_cert, client_key


class TestTLSClientApplication:
    """Test cases for TLSClientApplication and main()."""

    @pytest.fixture(autouse=True)
    def setup(self, pki):
        ca_cert, client_cert, client_key = pki
        self.temp_dir = tempfile.mkdtemp()
        self.ca_path = write_file(os.path.join(self.temp_dir, 'ca.crt'), cert_pem(ca_cert))
        self.cert_path = write_file(os.path.join(self.temp_dir, 'client.crt'), cert_pem(client_cert))
        self.key_path = write_file(os.path.join(self.temp_dir, 'client.key'), key_pem(client_key))
        self.config_path = self._write_config(enabled="true")
        root_handlers = logging.getLogger().handlers[:]

        yield

        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            handler.close()
            root_logger.removeHandler(handler)
        for handler in root_handlers:
            root_logger.addHandler(handler)
        shutil.rmtree(self.temp_dir)

    def _write_config(self, enabled, ca_path=None):
        path = os.path.join(self.temp_dir, 'tlsutil.ini')
        with open(path, 'w') as f:
            f.write(f"""
[tls]
enabled = {enabled}
server_name = db.internal
ca_cert_path = {ca_path or self.ca_path}
client_cert_path = {self.cert_path}
client_key_path = {self.key_path}

[app]
log_level = INFO
log_file_path = {os.path.join(self.temp_dir, 'tlsutil.log')}
""")
        return path

    def test_initialize_builds_tls_config(self):
        app = TLSClientApplication(config_path=self.config_path)

        assert app.initialize()
        assert app.tls_config.server_name == "db.internal"
        assert len(app.tls_config.certificates) == 1

        status = app.get_status()
        assert status['tls_enabled'] is True
        assert status['verify'] is True
        assert status['trusted_roots'] == ["CN=Test CA"]
        assert status['client_certificate'] == "CN=client"

    def test_initialize_fails_for_missing_config(self):
        app = TLSClientApplication(config_path=os.path.join(self.temp_dir, 'missing.ini'))

        assert not app.initialize()
        assert app.tls_config is None

    def test_initialize_fails_for_mismatched_key_pair(self):
        # The CA certificate paired with the client key
        self.cert_path = self.ca_path
        app = TLSClientApplication(config_path=self._write_config(enabled="true"))

        assert not app.initialize()
        assert app.tls_config is None

    def test_initialize_fails_when_log_directory_is_unwritable(self):
        app = TLSClientApplication(config_path=self.config_path)

        with patch("tlsutil.main.LoggingService", side_effect=PermissionError("denied")):
            assert not app.initialize()

        assert app.tls_config is None

    def test_main_exits_when_logging_setup_fails(self):
        with patch("tlsutil.main.LoggingService", side_effect=PermissionError("denied")):
            with pytest.raises(SystemExit) as exc_info:
                main(['--config', self.config_path])

        assert exc_info.value.code == 1

    def test_default_config_path(self):
        app = TLSClientApplication()

        assert app.config_path.endswith(".ini")

    def test_main_prints_summary(self, capsys):
        main(['--config', self.config_path])

        output = capsys.readouterr().out
        assert "Verify server certificate: True" in output
        assert "Server name: db.internal" in output
        assert "CN=Test CA" in output
        assert "Client certificate: CN=client" in output

    def test_main_disabled_tls(self, capsys):
        main(['--config', self._write_config(enabled="false")])

        output = capsys.readouterr().out
        assert "Verify server certificate: False" in output
        assert "Trusted roots: 0" in output

    def test_main_check_config(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(['--config', self.config_path, '--check-config'])

        assert exc_info.value.code == 0
        assert "Configuration check passed" in capsys.readouterr().out

    def test_main_failure_exits_with_error(self):
        with pytest.raises(SystemExit) as exc_info:
            main(['--config', os.path.join(self.temp_dir, 'missing.ini')])

        assert exc_info.value.code == 1

    def test_main_create_config(self):
        path = os.path.join(self.temp_dir, 'new', 'tlsutil.ini')

        with pytest.raises(SystemExit) as exc_info:
            main(['--create-config', path])

        assert exc_info.value.code == 0
        assert os.path.exists(path)
