#!/usr/bin/env python3
"""Start the household dashboard in a local Streamlit server.

Extra arguments are forwarded to ``streamlit run``, e.g.
``python run_dashboard.py --server.port 8600``.
"""

import subprocess
import sys
from pathlib import Path

APP_DIR = Path(__file__).parent.resolve() / "household_dashboard"


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    # multipage discovery looks for pages/ next to the entry script
    command = [sys.executable, "-m", "streamlit", "run", str(APP_DIR / "Home.py"), *args]
    return subprocess.call(command, cwd=APP_DIR)


if __name__ == "__main__":
    sys.exit(main())
