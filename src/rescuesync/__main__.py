"""Allow running the CLI with ``python -m rescuesync``."""

from rescuesync.client.cli import main

main()
