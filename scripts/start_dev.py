#!/usr/bin/env python3
"""Apply migrations and run the API dev server.

Usage:
    python scripts/start_dev.py
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
ALEMBIC_CONFIG = "societyhub/alembic.ini"
DEFAULT_PORT = os.environ.get("SOCIETYHUB_PORT", "8000")


def _find_executable(name: str) -> Path | None:
    """Look next to the running interpreter first, fall back to PATH."""
    candidate = Path(sys.executable).parent / name
    if candidate.exists():
        return candidate
    resolved = shutil.which(name)
    return Path(resolved) if resolved else None


def main() -> None:
    uvicorn_exe = _find_executable("uvicorn")
    alembic_exe = _find_executable("alembic")
    missing_bins = [name for name, path in (("uvicorn", uvicorn_exe), ("alembic", alembic_exe)) if path is None]
    if missing_bins:
        raise SystemExit(f"Missing required executables: {', '.join(missing_bins)}. Install dependencies and try again.")

    env = os.environ.copy()
    env.setdefault("PYTHONPATH", str(ROOT))

    print("[launcher] applying database migrations...")
    subprocess.run([str(alembic_exe), "-c", ALEMBIC_CONFIG, "upgrade", "head"], cwd=str(ROOT), env=env, check=True)

    print(f"[launcher] backend on http://127.0.0.1:{DEFAULT_PORT}")
    try:
        subprocess.run(
            [str(uvicorn_exe), "societyhub.main:app", "--reload", "--port", DEFAULT_PORT, "--log-level", "info"],
            cwd=str(ROOT),
            env=env,
            check=True,
        )
    except KeyboardInterrupt:
        print("\n[launcher] interrupted by user.")


if __name__ == "__main__":
    main()
