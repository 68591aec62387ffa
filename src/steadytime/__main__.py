"""Allow ``python -m steadytime``."""

from steadytime.cli import main

main()
