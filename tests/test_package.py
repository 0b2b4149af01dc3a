"""Import-level tests for the spackle package."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

import spackle


class TestPackageImport:
    @pytest.mark.unit
    def test_version(self):
        assert spackle.__version__ == "0.4.0"

    @pytest.mark.unit
    def test_public_api_exported(self):
        for name in spackle.__all__:
            assert hasattr(spackle, name), name

    @pytest.mark.unit
    def test_fresh_interpreter_import_and_render(self):
        # A new process runs every module body from scratch.
        src_dir = Path(spackle.__file__).resolve().parents[1]
        paths = [str(src_dir), os.environ.get("PYTHONPATH", "")]
        env = {**os.environ, "PYTHONPATH": os.pathsep.join(p for p in paths if p)}
        code = (
            "import spackle\n"
            "from spackle.template import render\n"
            "print(render('{{ n | snake_case }}', {'n': 'MyApp'}))\n"
        )

        proc = subprocess.run(
            [sys.executable, "-c", code], capture_output=True, text=True, env=env, check=False
        )

        assert proc.returncode == 0, proc.stderr
        assert proc.stdout.strip() == "my_app"
