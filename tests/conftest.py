import os
import shutil
import tempfile

import pytest

from miracle import MiracleConfig


@pytest.fixture
def socket_path():
    # Unix socket paths are limited to ~108 bytes, so keep the directory short
    tmpdir = tempfile.mkdtemp(prefix="miracle-")
    yield os.path.join(tmpdir, "ipc.sock")
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def config(socket_path):
    return MiracleConfig(socket_path=socket_path)
