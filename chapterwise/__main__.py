"""Module entrypoint for running Chapterwise as ``python -m chapterwise``."""

from __future__ import annotations

from chapterwise.cli import main


if __name__ == "__main__":
    main()
