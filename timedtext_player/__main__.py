"""Package entry point for ``python -m timedtext_player``."""

from timedtext_player.cli import main

if __name__ == "__main__":
    main()
