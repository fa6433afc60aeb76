from __future__ import annotations

import sys
from pathlib import Path

if __package__:
    # python -m dot_count_trainer, or the dot-count-trainer script
    from .app import run
else:
    # python dot_count_trainer/__main__.py: the checkout root is not importable yet
    _root = str(Path(__file__).resolve().parent.parent)
    if _root not in sys.path:
        sys.path.insert(0, _root)
    from dot_count_trainer.app import run


def main() -> int:
    """Open the Dot Count window and block until it is closed."""
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
