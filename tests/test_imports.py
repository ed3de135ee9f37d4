"""Each package must import cleanly when it is the first one loaded."""

import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent


@pytest.mark.parametrize(
    "module",
    [
        "sentry.analyzers",
        "sentry.analyzers.context",
        "sentry.core",
        "sentry.core.engine",
        "sentry.core.scheduler",
        "sentry.core.vendors",
        "sentry.collectors",
        "sentry.collectors.wigle",
        "sentry.output",
        "sentry.cli",
    ],
)
def test_fresh_import(module):
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=ROOT,
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0, result.stderr
