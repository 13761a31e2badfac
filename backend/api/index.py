import os
import sys

# Serverless entry point: make the backend root importable
backend_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if backend_root not in sys.path:
    sys.path.insert(0, backend_root)

from webradio.main import app  # noqa: E402, F401
