"""
Entry point for running the BM Tutor package as a module.

Run with:
    python -m bm_tutor
"""

from bm_tutor.interfaces.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
