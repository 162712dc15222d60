import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Qt must never try to reach a display server while the suite runs.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session")
def qapp():
    qt_gui = pytest.importorskip("PySide6.QtGui", reason="Qt GUI module not available", exc_type=ImportError)
    app = qt_gui.QGuiApplication.instance()
    if app is None:
        app = qt_gui.QGuiApplication([])
    yield app
